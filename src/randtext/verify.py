# -------------------------------------
# static verification
# -------------------------------------
"""
Read-only checks of node trees and rules.

Nothing here raises on bad input: every anomaly becomes a Message
(WARNING or ERROR) located at the offending rule / entity / attribute.
A generator refuses to create contexts while any ERROR is reported.
"""
from __future__ import annotations

import ast
from typing import TYPE_CHECKING

from . import state
from .datatypes import Reference, to_int
from .errors import Location, Message, error, warning
from .function import arity
from .nodes import (
    Assignment,
    FunctionCall,
    Node,
    Picker,
    Reference as ReferenceNode,
    SymbolReading,
    children,
)
from .rule import Rule

if TYPE_CHECKING:
    from .generator import Generator


def _plural(n, word: str) -> str:
    return f"{n} {word}" if n == 1 else f"{n} {word}s"


# ============================================================
# Node trees
# ============================================================

def verify_node(node: Node, generator: "Generator") -> list[Message]:
    """Check node and its subtree against generator's registries."""
    messages: list[Message] = []
    _walk(node, generator, messages)
    return messages


def _walk(node: Node, generator: "Generator", out: list[Message]) -> None:
    loc = node.location
    functions = generator.functions
    rules = generator.rules

    if isinstance(node, FunctionCall):
        fn = functions.get(node.symbol)
        if fn is None:
            out.append(error(f'unknown function "{node.symbol}"', loc))
        else:
            n = len(node.arguments)
            if n < fn.min_arity:
                out.append(error(
                    f"too few arguments for function {fn.name} "
                    f"({fn.min_arity} expected, {n} given)", loc))
            elif n > fn.max_arity:
                out.append(error(
                    f"too many arguments for function {fn.name} "
                    f"({fn.max_arity} expected, {n} given)", loc))

    elif isinstance(node, SymbolReading):
        fn = functions.get(node.symbol)
        if fn is not None and node.symbol != state.SELF:
            if fn.min_arity > 1:
                out.append(error(
                    f"function {fn.name} needs {_plural(fn.min_arity, 'argument')}", loc))
            elif fn.min_arity == 1:
                out.append(warning(
                    f"function {fn.name} called without argument "
                    "(one empty argument given)", loc))
        elif node.symbol == state.SELF and loc.rule is None:
            out.append(error("self is only defined inside an entity attribute", loc))

    elif isinstance(node, Picker):
        rule = rules.get(node.symbol)
        if rule is None:
            out.append(error(f"no rule named {node.symbol}", loc))
        elif rule.pick is None:
            lo, hi = arity(rule.entity_class.pickable)
            # minus self
            lo, hi = max(0, lo - 1), hi - 1
            n = len(node.arguments)
            if n < lo or n > hi:
                expected = lo if lo == hi else f"{lo}..{hi}"
                out.append(error(
                    f"wrong number of arguments for picking {node.symbol} "
                    f"({expected} expected, {n} given)", loc))

    elif isinstance(node, ReferenceNode):
        rule = rules.get(node.symbol)
        if rule is None:
            out.append(error(f"no rule named {node.symbol}", loc))
        elif not rule.has_entity(node.id):
            out.append(error(f"no entity of id {node.id} in rule {node.symbol}", loc))

    elif isinstance(node, Assignment):
        if node.symbol == state.SELF:
            out.append(error("symbol self is reserved", loc))
        elif node.symbol in functions:
            out.append(error(f'symbol "{node.symbol}" is already the name of a function', loc))

    for child in children(node):
        _walk(child, generator, out)


# ============================================================
# Rules
# ============================================================

def verify_rule(rule: Rule, generator: "Generator") -> list[Message]:
    """Check rule's types, cells, templates, relations and pick expression."""
    messages: list[Message] = []
    for attr, t in rule.types.items():
        messages += t.verify(generator, Location(rule.name, None, attr))

    for data in rule.cells():
        messages += data.verify(generator)
        tree = getattr(data, "tree", None)
        if tree is not None:
            messages += verify_node(tree, generator)

    if rule.pick is not None:
        try:
            ast.parse(rule.pick, mode="eval")
        except SyntaxError as e:
            messages.append(error(
                f"invalid pick expression {rule.pick!r}: {e.msg}", Location(rule.name)))

    for rel in rule.relations.values():
        messages += _verify_relation(rule, rel, generator)
    return messages


def _verify_relation(rule: Rule, rel, generator: "Generator") -> list[Message]:
    loc = Location(rule.name, None, rel.name)
    target = generator.rules.get(rel.rule)
    if target is None:
        return [error(f"rule {rel.rule} does not exist", loc)]
    t = target.types.get(rel.attribute)
    if t is None:
        return [error(f"rule {rel.rule} has no {rel.attribute} attribute", loc)]
    if not isinstance(t, Reference) or t.target != rule.name:
        return [error(
            f"attribute {rel.attribute} from rule {rel.rule} is not a reference to this rule",
            loc)]
    if not rel.required:
        return []
    referenced = {to_int(target.row(i).get(rel.attribute)) for i in target.ids()}
    return [
        error(f"no entity of rule {rel.rule} does reference this entity",
              Location(rule.name, i, rel.name))
        for i in rule.ids() if i not in referenced
    ]
