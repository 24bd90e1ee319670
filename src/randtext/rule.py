# -------------------------------------
# rules: entity template pools
# -------------------------------------
"""
A Rule is a table of entities: typed columns, one row per entity.

The raw rows never change once the rule is built. compile() returns a copy
holding typed cells (every Text cell parsed once); contexts then materialize
Entity instances from the pool with instantiate().
"""
from __future__ import annotations

import copy
import logging
import re
from collections.abc import Collection, Iterable, Iterator, Mapping
from dataclasses import dataclass
from types import MappingProxyType
from typing import TYPE_CHECKING, Any

from .datatypes import Data, DataType, Identifier, Text, Weight, from_spec, to_int
from .entity import Entity
from .errors import Location, RuleError

if TYPE_CHECKING:
    from .context import Context

logger = logging.getLogger(__name__)

RULE_NAME_RE = re.compile(r"[A-Z][A-Za-z0-9]*\Z")
ATTRIBUTE_RE = re.compile(r"[a-z_][a-z0-9_]*\Z")
RESERVED = ("id", "weight")


def camelize(name: str) -> str:
    """lower_snake_case -> UpperCamelCase ("magic_item" -> "MagicItem")."""
    return "".join(part[:1].upper() + part[1:] for part in name.split("_"))


@dataclass(frozen=True)
class HasMany:
    """
    Entities of `rule` whose `attribute` references the owning entity.

    The owner gains `<name>_list` (all of them) and `<name>` (a weighted
    pick among them). required: an owner with none is an error.
    """
    name: str
    rule: str
    attribute: str
    required: bool = False


class Rule:

    def __init__(
        self,
        name: str,
        rows: Iterable[Mapping[str, Any]],
        types: Mapping[str, Any] | None = None,
        *,
        entity_class: type[Entity] = Entity,
        pick: str | None = None,
        relations: Iterable[HasMany] = (),
    ):
        """
        Args:
            name: UpperCamelCase rule name
            rows: one mapping per entity; each needs an `id`
            types: attribute -> DataType or type notation (datatypes.from_spec);
                   untyped attributes are Text
            entity_class: Entity subclass to materialize
            pick: simpleeval expression deciding pickable(*args)
            relations: has-many relations of this rule

        Raises:
            RuleError: invalid name, attribute or rows
        """
        if not RULE_NAME_RE.match(name or ""):
            raise RuleError(f"invalid rule name {name!r}")
        if not (isinstance(entity_class, type) and issubclass(entity_class, Entity)):
            raise RuleError(f"entity class of rule {name} must derive from Entity")
        self.name = name
        self.entity_class = entity_class
        self.pick = pick

        self._types: dict[str, DataType] = {"id": Identifier(), "weight": Weight()}
        for attr, spec in (types or {}).items():
            if attr in RESERVED:
                raise RuleError(f"cannot set type for reserved attribute {attr} in rule {name}")
            self._check_attribute(attr)
            try:
                self._types[attr] = from_spec(spec)
            except ValueError as e:
                raise RuleError(f"rule {name}, attribute {attr}: {e}") from e

        self._rows: dict[int, dict[str, Any]] = {}
        for row in rows:
            if row.get("id") is None:
                raise RuleError(f"row without id in rule {name}: {dict(row)}")
            entity_id = to_int(row["id"])
            if entity_id in self._rows:
                raise RuleError(f"id {entity_id} duplicated in rule {name}")
            for attr in row:
                if attr not in self._types:
                    self._check_attribute(attr)
                    self._types[attr] = Text()
            self._rows[entity_id] = dict(row)

        self.relations: dict[str, HasMany] = {}
        for rel in relations:
            if rel.name in self.relations or rel.name in self._types:
                raise RuleError(f"relation {rel.name} already set in rule {name}")
            self.relations[rel.name] = rel

        self._cells: dict[int, dict[str, Data]] | None = None

    def _check_attribute(self, attr: str) -> None:
        if not ATTRIBUTE_RE.match(str(attr)):
            raise RuleError(f'invalid name for attribute "{attr}" in rule {self.name}')

    def __repr__(self) -> str:
        return f"<Rule {self.name} entities={len(self._rows)}>"

    def __len__(self) -> int:
        return len(self._rows)

    # ============================================================
    # Columns
    # ============================================================

    @property
    def attributes(self) -> tuple[str, ...]:
        return tuple(self._types)

    @property
    def types(self) -> Mapping[str, DataType]:
        return MappingProxyType(self._types)

    @property
    def plain_attributes(self) -> tuple[str, ...]:
        """Attributes that are neither reserved nor Text."""
        return tuple(
            a for a, t in self._types.items()
            if a not in RESERVED and not isinstance(t, Text)
        )

    # ============================================================
    # Template pool
    # ============================================================

    def ids(self) -> list[int]:
        return sorted(self._rows)

    def has_entity(self, entity_id: int) -> bool:
        return entity_id in self._rows

    def row(self, entity_id: int) -> Mapping[str, Any]:
        """Raw values of one entity."""
        return MappingProxyType(self._rows[entity_id])

    def compile(
        self,
        functions: Collection[str] = (),
        rules: Collection[str] | None = None,
    ) -> "Rule":
        """
        Copy of this rule with its typed cells built; Text cells are parsed
        against the given function and rule names.

        The rule itself is left as it was, so one Rule can be handed to
        several generators, each with its own function names.
        """
        compiled = copy.copy(self)
        compiled._cells = self._build_cells(functions, rules)
        return compiled

    def _build_cells(
        self,
        functions: Collection[str] = (),
        rules: Collection[str] | None = None,
    ) -> dict[int, dict[str, Data]]:
        cells: dict[int, dict[str, Data]] = {}
        for entity_id, row in self._rows.items():
            cells[entity_id] = {
                attr: t.data(row.get(attr), Location(self.name, entity_id, attr),
                             functions=functions, rules=rules)
                for attr, t in self._types.items()
            }
        logger.debug("compiled rule %s (%d entities)", self.name, len(cells))
        return cells

    def data(self, entity_id: int, attribute: str) -> Data:
        """
        Cell of one entity's attribute.

        Raises:
            AttributeError: no such attribute
        """
        if self._cells is None:
            self._cells = self._build_cells()
        try:
            return self._cells[entity_id][attribute]
        except KeyError:
            raise AttributeError(
                f"rule {self.name} has no attribute {attribute!r} for id {entity_id}"
            ) from None

    def cells(self) -> Iterator[Data]:
        """Every cell, row by row."""
        if self._cells is None:
            self._cells = self._build_cells()
        for entity_id in self.ids():
            yield from self._cells[entity_id].values()

    def instantiate(self, entity_id: int, context: "Context") -> Entity:
        """
        Materialize entity entity_id in context.

        Raises:
            KeyError: no such entity
        """
        if entity_id not in self._rows:
            raise KeyError(f"no entity of id {entity_id} in rule {self.name}")
        return self.entity_class(self, entity_id, context)
