# -------------------------------------
# attribute types
# -------------------------------------
"""
Attribute types of rule tables.

A DataType describes a column; DataType.data(raw, location) builds the
immutable cell (Data) holding one entity's raw value. Cells convert their
raw value when an entity reads them (Data.value(context)) and report
anomalies statically (Data.verify(generator)).

  Identifier   id column, positive integer
  Weight       weight column, non-negative integer, 1 when absent
  Integer      integer
  Text         expansion template (parsed once, evaluated on read)
  Enum         one tag from a fixed set
  MultEnum     list of tags from a fixed set
  Reference    id of an entity of another rule (0: none)
"""
from __future__ import annotations

import re
from collections.abc import Collection, Iterable
from typing import TYPE_CHECKING, Any

from . import evaluator
from .errors import (
    EvaluationFailure,
    Location,
    Message,
    NOWHERE,
    ParseError,
    error,
    warning,
)
from .nodes import text
from .parser import parse

if TYPE_CHECKING:
    from .context import Context
    from .generator import Generator
    from .nodes import Choice

_INT_RE = re.compile(r"\s*(-?\d+)")
_STRICT_INT_RE = re.compile(r"\s*(-?\d+)?\s*\Z")
_TAG_SEP_RE = re.compile(r"[\s,]+")


def to_int(raw: Any) -> int:
    if isinstance(raw, bool):
        return int(raw)
    if isinstance(raw, int):
        return raw
    m = _INT_RE.match(str(raw))
    return int(m.group(1)) if m else 0


# ============================================================
# Base classes
# ============================================================

class Data:
    """One cell: the raw value of an attribute of one entity."""

    def __init__(self, type: "DataType", raw: Any, location: Location = NOWHERE):
        self.type = type
        self.raw = raw
        self.location = location

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.raw!r})"

    @property
    def missing(self) -> bool:
        return self.raw is None

    def value(self, context: "Context" | None = None) -> Any:
        return self.raw

    def verify(self, generator: "Generator") -> list[Message]:
        if self.missing:
            return [error(f"missing {self.location.attribute} attribute", self.location)]
        return []


class DataType:
    """Base attribute type."""

    data_class = Data

    def __repr__(self) -> str:
        return type(self).__name__

    def __eq__(self, other) -> bool:
        return type(self) is type(other)

    def __hash__(self) -> int:
        return hash(type(self))

    def data(self, raw: Any, location: Location = NOWHERE, **names) -> Data:
        """Build the cell holding raw."""
        return self.data_class(self, raw, location)

    def verify(self, generator: "Generator", location: Location = NOWHERE) -> list[Message]:
        """Check the type definition itself."""
        return []


# ============================================================
# Integers
# ============================================================

class IntegerData(Data):

    def value(self, context=None) -> int:
        return to_int(self.raw)

    def verify(self, generator):
        messages = super().verify(generator)
        if not self.missing and not isinstance(self.raw, int) \
                and not _STRICT_INT_RE.match(str(self.raw)):
            messages.append(warning(
                f'"{self.raw}" is confusing for an integer ({self.value()} inferred)',
                self.location,
            ))
        if isinstance(self.raw, bool):
            messages.append(warning(
                f"{self.raw} is confusing for an integer ({self.value()} inferred)",
                self.location,
            ))
        return messages


class Integer(DataType):
    data_class = IntegerData


class IdentifierData(IntegerData):

    def verify(self, generator):
        messages = super().verify(generator)
        if not self.missing and self.value() <= 0:
            messages.append(error("id cannot be null or negative", self.location))
        return messages


class Identifier(Integer):
    data_class = IdentifierData


class WeightData(IntegerData):

    @property
    def missing(self) -> bool:
        return False

    def value(self, context=None) -> int:
        return 1 if self.raw is None else to_int(self.raw)

    def verify(self, generator):
        if self.raw is None:
            return []
        messages = super().verify(generator)
        if self.value() < 0:
            messages.append(error("weight cannot be negative", self.location))
        return messages


class Weight(Integer):
    data_class = WeightData


# ============================================================
# Text
# ============================================================

class TextData(Data):
    """
    Template cell.

    The template is parsed when the cell is built; a syntax error is kept
    and reported by verify(). Reading the cell evaluates the template in a
    fork of the reading context; only global variables and variables the
    reader already had flow back.
    """

    def __init__(self, type, raw, location=NOWHERE, *, functions=(), rules=None):
        super().__init__(type, raw, location)
        self.tree: "Choice | None" = None
        self.parse_error: ParseError | None = None
        if self.missing:
            self.tree = text("", location)
            return
        try:
            self.tree = parse(str(raw), location, functions=functions, rules=rules)
        except ParseError as e:
            self.parse_error = e

    def value(self, context: "Context" | None = None) -> str:
        if self.tree is None:
            raise EvaluationFailure(f"invalid template: {self.parse_error}", self.location)
        child = context.fork()
        out = evaluator.evaluate(self.tree, child)
        return context.merge(child, local=False, carry=out)

    def verify(self, generator):
        if self.missing:
            return [warning(f"missing {self.location.attribute} attribute "
                            "(empty text inferred)", self.location)]
        if self.parse_error is not None:
            return [error(str(self.parse_error), self.location)]
        return []


class Text(DataType):
    data_class = TextData

    def data(self, raw, location=NOWHERE, *, functions: Collection[str] = (),
             rules: Collection[str] | None = None, **names) -> TextData:
        return TextData(self, raw, location, functions=functions, rules=rules)


# ============================================================
# Enumerations
# ============================================================

class EnumData(Data):

    def value(self, context=None) -> str:
        return str(self.raw).strip()

    def verify(self, generator):
        messages = super().verify(generator)
        if not self.missing and self.value() not in self.type.values:
            messages.append(error(
                f'invalid value "{self.value()}" (expected {", ".join(self.type.values)})',
                self.location,
            ))
        return messages


class Enum(DataType):
    data_class = EnumData

    def __init__(self, *values: str):
        self.values: tuple[str, ...] = tuple(sorted({str(v) for v in values}))

    def __repr__(self) -> str:
        return f"Enum<{', '.join(self.values)}>"

    def __eq__(self, other) -> bool:
        return type(self) is type(other) and self.values == other.values

    def __hash__(self) -> int:
        return hash((type(self), self.values))


class MultEnumData(Data):

    def tags(self) -> list[str]:
        if self.raw is None:
            return []
        if isinstance(self.raw, (list, tuple)):
            return [str(v).strip() for v in self.raw]
        return [t for t in _TAG_SEP_RE.split(str(self.raw)) if t]

    def value(self, context=None) -> list[str]:
        return self.tags()

    def verify(self, generator):
        messages = super().verify(generator)
        for tag in self.tags():
            if tag not in self.type.values:
                messages.append(error(
                    f'invalid value "{tag}" (expected {", ".join(self.type.values)})',
                    self.location,
                ))
        return messages


class MultEnum(Enum):
    data_class = MultEnumData

    def __repr__(self) -> str:
        return "Mult" + super().__repr__()


# ============================================================
# References
# ============================================================

class ReferenceData(IntegerData):

    @property
    def missing(self) -> bool:
        return self.raw is None and self.type.required

    def value(self, context: "Context" | None = None):
        entity_id = to_int(self.raw)
        if entity_id == 0 or context is None:
            return None
        return context.entity(self.type.target, entity_id)

    def verify(self, generator):
        if self.raw is None and not self.type.required:
            return []
        messages = super().verify(generator)
        if self.missing:
            return messages
        entity_id = to_int(self.raw)
        target = generator.rules.get(self.type.target)
        if self.type.required and entity_id <= 0:
            messages.append(error(
                f"required reference to rule {self.type.target} cannot be null or negative",
                self.location,
            ))
        elif entity_id != 0 and target is not None and not target.has_entity(entity_id):
            report = error if self.type.required else warning
            messages.append(report(
                f"no entity of id {entity_id} in rule {self.type.target}", self.location
            ))
        return messages


class Reference(Integer):
    data_class = ReferenceData

    def __init__(self, target: str, required: bool = True):
        self.target = target
        self.required = required

    def __repr__(self) -> str:
        kind = "required" if self.required else "optional"
        return f"Reference<{self.target}, {kind}>"

    def __eq__(self, other) -> bool:
        return (type(self) is type(other) and self.target == other.target
                and self.required == other.required)

    def __hash__(self) -> int:
        return hash((type(self), self.target, self.required))

    def verify(self, generator, location=NOWHERE):
        if self.target not in generator.rules:
            return [error(f"no rule named {self.target}", location)]
        return []


# ============================================================
# Type specs
# ============================================================

def from_spec(spec: Any) -> DataType:
    """
    Build a type from its table notation.

      "integer" | "text"
      {"enum": [a, b]}  {"mult_enum": [a, b]}
      {"reference": Rule, "required": false}

    Raises:
        ValueError: unknown type notation
    """
    if isinstance(spec, DataType):
        return spec
    if isinstance(spec, str):
        simple = {"integer": Integer, "text": Text}
        if spec.lower() in simple:
            return simple[spec.lower()]()
        raise ValueError(f"unknown attribute type {spec!r}")
    if isinstance(spec, dict):
        if "enum" in spec:
            return Enum(*_values(spec["enum"]))
        if "mult_enum" in spec:
            return MultEnum(*_values(spec["mult_enum"]))
        if "reference" in spec:
            return Reference(str(spec["reference"]), bool(spec.get("required", True)))
    raise ValueError(f"unknown attribute type {spec!r}")


def _values(values: Any) -> Iterable[str]:
    if isinstance(values, str):
        return [v for v in _TAG_SEP_RE.split(values) if v]
    return [str(v) for v in values]
