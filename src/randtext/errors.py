# -------------------------------------
# errors and locations
# -------------------------------------
"""
Exception and diagnostic types shared by the parser, the evaluator and the
rule loader.

Runtime failures (EvaluationFailure and subclasses) are recovered by the
retry protocol of the evaluator; everything else is a programming or data
error and propagates.
"""
from __future__ import annotations

from dataclasses import dataclass


# ============================================================
# Locations
# ============================================================

@dataclass(frozen=True)
class Location:
    """Where a node is defined: rule, entity id and attribute."""
    rule: str | None = None
    entity_id: int | None = None
    attribute: str | None = None

    def __bool__(self) -> bool:
        return self.rule is not None

    def __str__(self) -> str:
        if self.rule is None:
            return "<template>"
        out = self.rule
        if self.entity_id is not None:
            out += f"[{self.entity_id}]"
        if self.attribute is not None:
            out += f"#{self.attribute}"
        return out


NOWHERE = Location()


# ============================================================
# Runtime failures
# ============================================================

class EvaluationFailure(Exception):
    """A node could not meet its contract in the current context."""

    def __init__(self, message: str, location: Location | None = None):
        super().__init__(message)
        self.message = message
        self.location = location or NOWHERE

    def __str__(self) -> str:
        if self.location:
            return f"{self.location}: {self.message}"
        return self.message


class SymbolFailure(EvaluationFailure):
    """Unbound, duplicate or reserved variable name."""


class ArityError(EvaluationFailure):
    """Function called with a wrong number of arguments."""


class PickFailure(EvaluationFailure):
    """No entity can be picked or referenced."""


# ============================================================
# Static errors
# ============================================================

class ParseError(ValueError):
    """Syntax error in an expansion template."""

    def __init__(self, message: str, text: str = "", pos: int = 0):
        self.text = text
        self.pos = pos
        super().__init__(f"{message} at column {pos + 1} in {text!r}")


class RuleError(ValueError):
    """Malformed rule definition."""


class GeneratorError(RuntimeError):
    """Generation requested from a generator with static errors."""


# ============================================================
# Static diagnostics
# ============================================================

WARNING = "WARNING"
ERROR = "ERROR"


@dataclass(frozen=True)
class Message:
    """A static diagnostic: collected, never raised."""
    level: str
    text: str
    location: Location = NOWHERE

    @property
    def is_error(self) -> bool:
        return self.level == ERROR

    def __str__(self) -> str:
        return f"{self.level}: {self.location}: {self.text}"


def warning(text: str, location: Location = NOWHERE) -> Message:
    return Message(WARNING, text, location)


def error(text: str, location: Location = NOWHERE) -> Message:
    return Message(ERROR, text, location)
