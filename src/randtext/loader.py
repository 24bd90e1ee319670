# -------------------------------------
# rule loader - table file access
# -------------------------------------
"""
Load rule tables from YAML and CSV files.

A rule file is named after its rule in lower_snake_case
(magic_item.yml -> MagicItem). Parsed files are cached by resolved path;
clear_cache() empties the cache.

YAML:
    rule: Character                  # optional, defaults from the file name
    pick: "args[0] == gender"        # optional simpleeval predicate
    types:
      gender: {enum: [f, m]}
      friend: {reference: Character, required: false}
      age: integer
    has_many:
      - {name: items, rule: Item, attribute: owner, required: false}
    entities:
      - {id: 1, value: "Alice"}

CSV: a header row, then one row per entity; every column but id and weight
is Text.
"""
import csv
import logging
import re
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import yaml

from .entity import Entity
from .errors import RuleError
from .rule import HasMany, Rule, camelize

logger = logging.getLogger(__name__)

YAML_SUFFIXES = (".yml", ".yaml")
CSV_SUFFIXES = (".csv",)

_FILE_NAME_RE = re.compile(r"[a-z][a-z0-9]*(_[a-z0-9]+)*\Z")

# Module-level cache for parsed rule files: resolved path -> definition
_RULE_CACHE: dict[str, dict[str, Any]] = {}


def clear_cache():
    """Clear the rule file cache."""
    _RULE_CACHE.clear()


def rule_name(path: str | Path) -> str:
    """
    Rule name of a rule file.

    Raises:
        RuleError: the file name is not lower_snake_case
    """
    stem = Path(path).stem
    if not _FILE_NAME_RE.match(stem):
        raise RuleError(f"file {path} does not have a valid name")
    return camelize(stem)


# ============================================================
# File readers
# ============================================================

def _read_yaml(path: Path) -> dict[str, Any]:
    with open(path, "r") as f:
        data = yaml.safe_load(f)
    if data is None:
        data = {}
    if isinstance(data, list):
        data = {"entities": data}
    if not isinstance(data, dict):
        raise RuleError(f"{path}: expected a mapping or a list of entities")
    return data


def _read_csv(path: Path) -> dict[str, Any]:
    with open(path, "r", newline="") as f:
        reader = csv.DictReader(f)
        rows = []
        for row in reader:
            if None in row:
                raise RuleError(f"{path}:{reader.line_num}: too many fields")
            rows.append({k.strip(): v for k, v in row.items()})
    return {"entities": rows}


def load_definition(path: str | Path) -> dict[str, Any]:
    """
    Load one rule file and return its definition mapping (cached).

    Raises:
        FileNotFoundError: If the file doesn't exist
        yaml.YAMLError: If a YAML file is not valid YAML
        RuleError: unsupported file type or malformed content
    """
    path = Path(path)
    path_str = str(path.resolve())

    if path_str in _RULE_CACHE:
        return _RULE_CACHE[path_str]

    suffix = path.suffix.lower()
    if suffix in YAML_SUFFIXES:
        data = _read_yaml(path)
    elif suffix in CSV_SUFFIXES:
        data = _read_csv(path)
    else:
        raise RuleError(f"unsupported rule file {path}")

    data.setdefault("rule", rule_name(path))
    _RULE_CACHE[path_str] = data
    logger.info("loaded %s (%d entities)", path, len(data.get("entities") or ()))
    return data


# ============================================================
# Rules
# ============================================================

def build_rule(
    data: Mapping[str, Any],
    entity_classes: Mapping[str, type[Entity]] | None = None,
) -> Rule:
    """
    Build a Rule from a definition mapping.

    Raises:
        RuleError: malformed definition
    """
    name = data.get("rule")
    entities = data.get("entities") or []
    if not isinstance(entities, list) or not all(isinstance(e, Mapping) for e in entities):
        raise RuleError(f"rule {name}: entities must be a list of mappings")
    relations = []
    for rel in data.get("has_many") or []:
        try:
            relations.append(HasMany(
                str(rel["name"]), str(rel["rule"]), str(rel["attribute"]),
                bool(rel.get("required", False)),
            ))
        except (KeyError, TypeError) as e:
            raise RuleError(f"rule {name}: invalid has_many entry {rel!r}") from e
    return Rule(
        name,
        entities,
        data.get("types") or {},
        entity_class=(entity_classes or {}).get(name, Entity),
        pick=data.get("pick"),
        relations=relations,
    )


def rule_files(path: str | Path) -> list[Path]:
    """Rule files under path (a directory, or a single file), sorted by name."""
    path = Path(path)
    if path.is_dir():
        suffixes = YAML_SUFFIXES + CSV_SUFFIXES
        return sorted(p for p in path.iterdir() if p.is_file() and p.suffix.lower() in suffixes)
    if not path.exists():
        raise FileNotFoundError(path)
    return [path]


def load_rules(
    path: str | Path,
    *,
    entity_classes: Mapping[str, type[Entity]] | None = None,
) -> list[Rule]:
    """
    Load every rule table under path.

    Args:
        path: directory of rule files, or one rule file
        entity_classes: rule name -> Entity subclass for rules with behaviour

    Raises:
        FileNotFoundError: path doesn't exist
        RuleError: malformed file or duplicated rule name
    """
    rules: dict[str, Rule] = {}
    for f in rule_files(path):
        rule = build_rule(load_definition(f), entity_classes)
        if rule.name in rules:
            raise RuleError(f"rule {rule.name} defined twice (in {f})")
        rules[rule.name] = rule
    return list(rules.values())
