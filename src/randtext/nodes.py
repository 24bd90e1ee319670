# -------------------------------------
# expansion tree nodes
# -------------------------------------
"""
Node tree of the expansion language (parser output, evaluator input).

  choice      := Choice(variant+)
  variant     := Variant(part*)
  part        := choice | Optional(choice) | Text(string) | statement
  statement   := Print(expression)
               | Assignment(symbol, operator, expression)
               | Predicate(symbol)
               | AttrSetter(expression, symbol, operator, expression)
  expression  := MethodCall(expression, symbol, choice*)
               | SymbolReading(symbol)
               | FunctionCall(symbol, choice*)
               | Picker(symbol, choice*)
               | AssignmentExpr(assignment)
               | SetterExpr(setter)
               | Reference(symbol, id)

Nodes are frozen dataclasses: immutable after parsing, compared
structurally (the location is not part of equality). `deterministic` is a
pure function of the subtree: True when evaluating the same subtree against
an identical context always gives the same outcome.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Union

from .errors import Location, NOWHERE

OPERATORS = ("=", "||=")


@dataclass(frozen=True)
class _Node:
    location: Location = field(default=NOWHERE, compare=False, repr=False, kw_only=True)

    # trees are shared between contexts, never copied
    def __copy__(self):
        return self

    def __deepcopy__(self, memo):
        return self


def _args(arguments) -> str:
    if not arguments:
        return ""
    return "(" + ",".join(str(a) for a in arguments) + ")"


# ============================================================
# Parts
# ============================================================

@dataclass(frozen=True)
class Choice(_Node):
    variants: tuple[Variant, ...]

    def __post_init__(self):
        if not self.variants:
            raise ValueError("a choice needs at least one variant")

    @property
    def deterministic(self) -> bool:
        return len(self.variants) == 1 and self.variants[0].deterministic

    def __str__(self) -> str:
        return "|".join(str(v) for v in self.variants)


@dataclass(frozen=True)
class Variant(_Node):
    parts: tuple[Part, ...] = ()

    @property
    def deterministic(self) -> bool:
        return all(p.deterministic for p in self.parts)

    def __str__(self) -> str:
        return "".join(f"({p})" if isinstance(p, Choice) else str(p) for p in self.parts)


@dataclass(frozen=True)
class Optional(_Node):
    choice: Choice

    @property
    def deterministic(self) -> bool:
        return False

    def __str__(self) -> str:
        return f"({self.choice})?"


@dataclass(frozen=True)
class Text(_Node):
    text: str

    @property
    def deterministic(self) -> bool:
        return True

    def __str__(self) -> str:
        return self.text


# ============================================================
# Statements
# ============================================================

@dataclass(frozen=True)
class Print(_Node):
    expression: Expression

    @property
    def deterministic(self) -> bool:
        return self.expression.deterministic

    def __str__(self) -> str:
        return f"{{ {self.expression} }}"


@dataclass(frozen=True)
class Assignment(_Node):
    symbol: str
    operator: str
    expression: Expression

    def __post_init__(self):
        if self.operator not in OPERATORS:
            raise ValueError(f"unknown assignment operator {self.operator!r}")

    @property
    def deterministic(self) -> bool:
        return self.expression.deterministic

    def source(self) -> str:
        return f"{self.symbol} {self.operator} {self.expression}"

    def __str__(self) -> str:
        return f"{{ {self.source()} }}"


@dataclass(frozen=True)
class Predicate(_Node):
    symbol: str

    @property
    def deterministic(self) -> bool:
        return True

    def __str__(self) -> str:
        return f"{{ {self.symbol}! }}"


@dataclass(frozen=True)
class AttrSetter(_Node):
    receiver: Expression
    symbol: str
    operator: str
    value: Expression

    def __post_init__(self):
        if self.operator not in OPERATORS:
            raise ValueError(f"unknown assignment operator {self.operator!r}")

    @property
    def deterministic(self) -> bool:
        return self.receiver.deterministic and self.value.deterministic

    def source(self) -> str:
        return f"{self.receiver}.{self.symbol} {self.operator} {self.value}"

    def __str__(self) -> str:
        return f"{{ {self.source()} }}"


# ============================================================
# Expressions
# ============================================================

@dataclass(frozen=True)
class MethodCall(_Node):
    receiver: Expression
    symbol: str
    arguments: tuple[Choice, ...] = ()

    @property
    def deterministic(self) -> bool:
        return False

    def __str__(self) -> str:
        return f"{self.receiver}.{self.symbol}{_args(self.arguments)}"


@dataclass(frozen=True)
class SymbolReading(_Node):
    """
    Reading of `self`, of a variable, or a zero-argument function call.

    function: the parser resolved the symbol to a known function
    word: on the right-hand side of an assignment, an unbound symbol that
          is not a function evaluates to the symbol itself
    """
    symbol: str
    function: bool = False
    word: bool = False

    @property
    def deterministic(self) -> bool:
        return not self.function

    def __str__(self) -> str:
        return self.symbol


@dataclass(frozen=True)
class FunctionCall(_Node):
    symbol: str
    arguments: tuple[Choice, ...] = ()

    @property
    def deterministic(self) -> bool:
        return False

    def __str__(self) -> str:
        return f"{self.symbol}{_args(self.arguments)}"


@dataclass(frozen=True)
class Picker(_Node):
    symbol: str
    arguments: tuple[Choice, ...] = ()

    @property
    def deterministic(self) -> bool:
        return False

    def __str__(self) -> str:
        return f"{self.symbol}{_args(self.arguments)}"


@dataclass(frozen=True)
class AssignmentExpr(_Node):
    assignment: Assignment

    @property
    def deterministic(self) -> bool:
        return False

    def __str__(self) -> str:
        return f"` {self.assignment.source()} `"


@dataclass(frozen=True)
class SetterExpr(_Node):
    setter: AttrSetter

    @property
    def deterministic(self) -> bool:
        return False

    def __str__(self) -> str:
        return f"` {self.setter.source()} `"


@dataclass(frozen=True)
class Reference(_Node):
    symbol: str
    id: int

    @property
    def deterministic(self) -> bool:
        return True

    def __str__(self) -> str:
        return f"{self.symbol}[{self.id}]"


Statement = Union[Print, Assignment, Predicate, AttrSetter]
Part = Union[Choice, Optional, Text, Statement]
Expression = Union[
    MethodCall, SymbolReading, FunctionCall, Picker, AssignmentExpr, SetterExpr, Reference
]
Node = Union[Choice, Variant, Part, Expression]


# ============================================================
# Helpers
# ============================================================

def children(node: Node) -> tuple[Node, ...]:
    """Direct sub-nodes of node, in evaluation order."""
    if isinstance(node, Choice):
        return node.variants
    if isinstance(node, Variant):
        return node.parts
    if isinstance(node, Optional):
        return (node.choice,)
    if isinstance(node, (Print, Assignment)):
        return (node.expression,)
    if isinstance(node, AttrSetter):
        return (node.receiver, node.value)
    if isinstance(node, MethodCall):
        return (node.receiver, *node.arguments)
    if isinstance(node, (FunctionCall, Picker)):
        return node.arguments
    if isinstance(node, AssignmentExpr):
        return (node.assignment,)
    if isinstance(node, SetterExpr):
        return (node.setter,)
    return ()


def text(value: str, location: Location = NOWHERE) -> Choice:
    """A choice holding a single literal variant."""
    return Choice((Variant((Text(value, location=location),), location=location),),
                  location=location)
