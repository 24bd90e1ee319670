# -------------------------------------
# node evaluation
# -------------------------------------
"""
Evaluate a node tree against a Context.

Failures are EvaluationFailure exceptions. Three places recover them:

  - Choice: variants are tried in random order, each in a forked context,
    until one succeeds; the last failure propagates when all fail.
  - sequence batch (a Variant's parts, an argument list): the members run
    in one forked context; on failure the fork is dropped and the batch is
    tried again, at most state.MAX_ATTEMPTS times in total, and only while
    some member that completed before the failure was non-deterministic.
  - Optional: a coin flip decides between the guarded choice and "";
    a failure of the choice yields "".

Successful forks are merged back with Context.merge, which also remaps
the returned value into the parent context.
"""
from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import Any, Callable

from . import state
from .context import Context
from .entity import Entity
from .errors import EvaluationFailure, PickFailure, SymbolFailure
from .function import CONCURRENT, Function, ResultPair
from .nodes import (
    Assignment,
    AssignmentExpr,
    AttrSetter,
    Choice,
    FunctionCall,
    MethodCall,
    Node,
    Optional,
    Picker,
    Predicate,
    Print,
    Reference,
    SetterExpr,
    SymbolReading,
    Text,
    Variant,
)

logger = logging.getLogger(__name__)


# ============================================================
# Entry points
# ============================================================

def evaluate(node: Node, context: Context) -> Any:
    """
    Evaluate node against context.

    Raises:
        EvaluationFailure: the node cannot be evaluated in this context
            (after the retries of the enclosing batches); the failure carries
            the location of the innermost located node
    """
    try:
        handler = _EVALUATORS[type(node)]
    except KeyError:
        raise TypeError(f"cannot evaluate {type(node).__name__}") from None
    try:
        value = handler(node, context)
    except EvaluationFailure as e:
        if not e.location:
            e.location = node.location
        raise
    if value is None:
        raise EvaluationFailure("None value returned by expression", node.location)
    return value


def evaluate_sequence(nodes: Iterable[Node], context: Context) -> list[Any]:
    """
    Evaluate nodes left to right as one all-or-nothing batch.

    Earlier members' side effects are visible to later ones. On failure the
    batch is rolled back and retried while attempts remain and a member
    evaluated before the failure was non-deterministic.
    """
    nodes = tuple(nodes)
    if not nodes:
        return []
    attempt = 1
    while True:
        child = context.fork()
        values: list[Any] = []
        try:
            for node in nodes:
                values.append(evaluate(node, child))
        except EvaluationFailure as e:
            done = nodes[:len(values)]
            if attempt >= state.MAX_ATTEMPTS or all(n.deterministic for n in done):
                raise
            attempt += 1
            logger.debug("retrying sequence (attempt %d/%d) after failure: %s",
                         attempt, state.MAX_ATTEMPTS, e)
            continue
        return context.merge(child, carry=values)


def stringify(value: Any) -> str:
    """Natural string form of an evaluated value."""
    if isinstance(value, str):
        return value
    if isinstance(value, (list, tuple)):
        return ", ".join(stringify(v) for v in value)
    return str(value)


# ============================================================
# Parts
# ============================================================

def _choice(node: Choice, context: Context) -> str:
    if len(node.variants) == 1:
        return evaluate(node.variants[0], context)
    pool = list(node.variants)
    state.get_rng().shuffle(pool)
    failure = None
    for i, variant in enumerate(pool):
        child = context.fork()
        try:
            value = evaluate(variant, child)
        except EvaluationFailure as e:
            failure = e
            if i + 1 < len(pool):
                logger.debug("retrying choice after failure: %s", e)
            continue
        return context.merge(child, carry=value)
    raise failure


def _variant(node: Variant, context: Context) -> str:
    return "".join(evaluate_sequence(node.parts, context))


def _optional(node: Optional, context: Context) -> str:
    if not state.get_rng().getrandbits(1):
        return ""
    child = context.fork()
    try:
        value = evaluate(node.choice, child)
    except EvaluationFailure as e:
        logger.debug("optional part dropped after failure: %s", e)
        return ""
    return context.merge(child, carry=value)


def _text(node: Text, context: Context) -> str:
    return node.text


# ============================================================
# Statements
# ============================================================

def _print(node: Print, context: Context) -> str:
    value = evaluate(node.expression, context)
    if isinstance(value, str):
        return value
    try:
        inner = value.value
    except AttributeError:
        return stringify(value)
    if inner is None:
        raise EvaluationFailure(f"None value printed from {node.expression}")
    return stringify(inner)


def _assign(node: Assignment, context: Context) -> Any:
    if node.operator == "||=" and context.has_variable(node.symbol):
        return context.lookup(node.symbol)
    value = evaluate(node.expression, context)
    return context.bind(node.symbol, value)


def _assignment(node: Assignment, context: Context) -> str:
    _assign(node, context)
    return ""


def _predicate(node: Predicate, context: Context) -> str:
    if not context.has_variable(node.symbol):
        raise SymbolFailure(f'symbol "{node.symbol}" is not defined')
    return ""


def _set(node: AttrSetter, context: Context) -> Any:
    receiver = evaluate(node.receiver, context)
    if not isinstance(receiver, Entity):
        raise EvaluationFailure(
            f"cannot set attribute {node.symbol} on {type(receiver).__name__}"
        )
    if node.operator == "||=" and receiver.has_field(node.symbol):
        current = getattr(receiver, node.symbol)
        if current is not None:
            return current
    value = evaluate(node.value, context)
    receiver.set_field(node.symbol, value)
    return value


def _setter(node: AttrSetter, context: Context) -> str:
    _set(node, context)
    return ""


# ============================================================
# Expressions
# ============================================================

def _call(fn: Function, args: tuple[Choice, ...], context: Context) -> Any:
    if fn.mode == CONCURRENT:
        pairs = []
        for arg in args:
            child = context.fork()
            pairs.append(ResultPair(evaluate(arg, child), child))
    else:
        child = context.fork()
        pairs = [ResultPair(v, child) for v in evaluate_sequence(args, child)]
    if not pairs:
        pairs = [ResultPair.empty(context.fork())]
    out = fn.call(*pairs)
    return context.merge(out.context, carry=out.value)


def _self(node: SymbolReading, context: Context) -> Entity:
    loc = node.location
    ent = None
    if loc.rule is not None and loc.entity_id is not None:
        ent = context.entity(loc.rule, loc.entity_id)
    if ent is None:
        raise SymbolFailure("self is only defined inside an entity attribute")
    return ent


def _symbol(node: SymbolReading, context: Context) -> Any:
    name = node.symbol
    if name == state.SELF:
        return _self(node, context)
    if context.has_variable(name):
        return context.lookup(name)
    fn = context.generator.functions.get(name)
    if fn is not None:
        return _call(fn, (), context)
    if node.word:
        return name
    raise SymbolFailure(f'no variable named "{name}" in current context')


def _method_call(node: MethodCall, context: Context) -> Any:
    receiver, *args = evaluate_sequence((node.receiver, *node.arguments), context)
    if node.symbol.startswith("_"):
        raise EvaluationFailure(f"{node.symbol} is private to {type(receiver).__name__}")
    try:
        attr = getattr(receiver, node.symbol)
    except AttributeError:
        raise EvaluationFailure(
            f"{type(receiver).__name__} has no method {node.symbol}"
        ) from None
    if callable(attr):
        return attr(*args)
    if args:
        raise EvaluationFailure(f"{node.symbol} is not a method of {type(receiver).__name__}")
    return attr


def _function_call(node: FunctionCall, context: Context) -> Any:
    fn = context.generator.functions.get(node.symbol)
    if fn is None:
        raise SymbolFailure(f'unknown function "{node.symbol}"')
    return _call(fn, node.arguments, context)


def _picker(node: Picker, context: Context) -> Entity:
    args = evaluate_sequence(node.arguments, context)
    if not context.has_rule(node.symbol):
        raise PickFailure(f'unknown rule "{node.symbol}"')
    ent = context.pick(node.symbol, *args)
    if ent is None:
        shown = ", ".join(stringify(a) for a in args)
        raise PickFailure(f"no entity of {node.symbol} can be picked with ({shown})")
    return ent


def _assignment_expr(node: AssignmentExpr, context: Context) -> Any:
    return _assign(node.assignment, context)


def _setter_expr(node: SetterExpr, context: Context) -> Any:
    return _set(node.setter, context)


def _reference(node: Reference, context: Context) -> Entity:
    ent = context.entity(node.symbol, node.id)
    if ent is None:
        raise PickFailure(f"no entity {node.symbol}[{node.id}]")
    return ent


_EVALUATORS: dict[type, Callable[[Any, Context], Any]] = {
    Choice: _choice,
    Variant: _variant,
    Optional: _optional,
    Text: _text,
    Print: _print,
    Assignment: _assignment,
    Predicate: _predicate,
    AttrSetter: _setter,
    MethodCall: _method_call,
    SymbolReading: _symbol,
    FunctionCall: _function_call,
    Picker: _picker,
    AssignmentExpr: _assignment_expr,
    SetterExpr: _setter_expr,
    Reference: _reference,
}
