# -------------------------------------
# functions callable from templates
# -------------------------------------
"""
Function descriptors and the built-in function registry.

A function receives ResultPair arguments (value + the context the value was
produced in) and returns a ResultPair whose context is merged back into the
caller's context.

Modes:
  - "sequential": arguments are evaluated one after the other in one shared
    context, earlier side effects are visible to later arguments
  - "concurrent": each argument is evaluated in its own forked context,
    for functions that keep a single argument (like pick)
"""
from __future__ import annotations

import inspect
import math
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Callable, Literal

from simpleeval import SimpleEval, InvalidExpression

from . import state
from . import weighted
from .errors import ArityError, EvaluationFailure

if TYPE_CHECKING:
    from .context import Context

Mode = Literal["sequential", "concurrent"]

SEQUENTIAL: Mode = "sequential"
CONCURRENT: Mode = "concurrent"


# ============================================================
# Result pair
# ============================================================

@dataclass(frozen=True)
class ResultPair:
    """A value together with the context it lives in."""
    value: Any
    context: "Context"

    @classmethod
    def empty(cls, context: "Context") -> "ResultPair":
        return cls("", context)


# ============================================================
# Function descriptor
# ============================================================

def arity(fn: Callable) -> tuple[int, float]:
    """(min, max) positional arity of fn; *args gives an infinite max."""
    min_arity = 0
    max_arity: float = 0
    for p in inspect.signature(fn).parameters.values():
        if p.kind in (p.POSITIONAL_ONLY, p.POSITIONAL_OR_KEYWORD):
            max_arity += 1
            if p.default is p.empty:
                min_arity += 1
        elif p.kind == p.VAR_POSITIONAL:
            max_arity = math.inf
    return min_arity, max_arity


@dataclass(frozen=True)
class Function:
    """
    Immutable function descriptor.

    min_arity/max_arity are read from fn's signature; a trailing *args
    makes max_arity infinite.
    """
    name: str
    fn: Callable[..., ResultPair] = field(compare=False)
    mode: Mode = SEQUENTIAL
    min_arity: int = field(init=False)
    max_arity: float = field(init=False)

    def __post_init__(self):
        if self.mode not in (SEQUENTIAL, CONCURRENT):
            raise ValueError(
                f"mode must be 'sequential' or 'concurrent', got {self.mode!r}"
            )
        lo, hi = arity(self.fn)
        if hi == 0:
            # a zero-argument reading passes one empty ResultPair
            raise ValueError(f"function {self.name!r} must accept at least one parameter")
        object.__setattr__(self, "min_arity", lo)
        object.__setattr__(self, "max_arity", hi)

    def call(self, *args: ResultPair) -> ResultPair:
        if len(args) < self.min_arity:
            raise ArityError(
                f"too few arguments for function {self.name} "
                f"({self.min_arity} expected, {len(args)} given)"
            )
        if len(args) > self.max_arity:
            raise ArityError(
                f"too many arguments for function {self.name} "
                f"({self.max_arity} expected, {len(args)} given)"
            )
        out = self.fn(*args)
        if not isinstance(out, ResultPair):
            raise TypeError(
                f"function {self.name} returned {type(out).__name__}, expected ResultPair"
            )
        return out


def function(name: str, mode: Mode = SEQUENTIAL):
    """Decorator: wrap a callable into a Function."""
    def wrap(fn):
        return Function(name, fn, mode)
    return wrap


# ============================================================
# Built-in functions
# ============================================================

@function("s")
def _s(string):
    return string


@function("capitalize")
def _capitalize(string):
    text = str(string.value)
    return ResultPair(text[:1].upper() + text[1:], string.context)


@function("cat")
def _cat(first, *rest):
    return ResultPair("".join(str(a.value) for a in (first, *rest)), first.context)


@function("pick", CONCURRENT)
def _pick(first, *rest):
    return weighted.pick((first, *rest), weight=lambda _: 1, rng=state.get_rng())


@function("fail")
def _fail(message=None):
    text = str(message.value) if message is not None and message.value else "explicit failure"
    raise EvaluationFailure(text)


# --- calc: arithmetic through simpleeval

CALC_FUNCS: dict[str, object] = {
    "int": int,
    "float": float,
    "round": round,
    "abs": abs,
    "min": min,
    "max": max,
}


def _as_number(v):
    if isinstance(v, str):
        for conv in (int, float):
            try:
                return conv(v)
            except ValueError:
                pass
    return v


def _format_number(v) -> str:
    if isinstance(v, float) and v.is_integer():
        return str(int(v))
    return str(v)


@function("calc")
def _calc(expr):
    names = {
        k: _as_number(v) for k, v in expr.context.variables.items()
        if isinstance(v, (int, float, str)) and k.isidentifier()
    }
    se = SimpleEval(names=names, functions=CALC_FUNCS, operators=state.ALLOWED_OPS)
    try:
        v = se.eval(str(expr.value))
    except (InvalidExpression, ArithmeticError, SyntaxError, TypeError, ValueError) as e:
        raise EvaluationFailure(f"calc({expr.value}) failed: {e}") from e
    return ResultPair(_format_number(v), expr.context)


# ============================================================
# Function registry
# ============================================================

BUILTINS: dict[str, Function] = {
    f.name: f for f in (_s, _capitalize, _cat, _pick, _fail, _calc)
}
