# -------------------------------------
# evaluation context
# -------------------------------------
"""
Evaluation context of one generation request.

A context owns:
  - variables: name -> value, each name bound at most once
  - entities: rule -> id -> Entity, materialized lazily from the rule's
    immutable template pool; the same (rule, id) always returns the same
    instance within one context

Isolation is fork / merge-on-commit: speculative evaluation runs in a
forked child and is merged back on success, or dropped on failure.
snapshot() and restore() are the same copy applied to a detached child.

Every copy goes through one deepcopy whose memo is pre-filled with the
entity remap table (source instance -> destination instance), so values
that aliased the same object still alias one copy afterwards, and values
holding entities point at the destination context's instances.
"""
from __future__ import annotations

import copy
from collections.abc import Iterator, Mapping
from types import MappingProxyType
from typing import TYPE_CHECKING, Any

from . import state
from . import weighted
from .errors import SymbolFailure

if TYPE_CHECKING:
    from .entity import Entity
    from .generator import Generator


class Context:

    def __init__(self, generator: "Generator"):
        self.generator = generator
        self._variables: dict[str, Any] = {}
        self._entities: dict[str, dict[int, "Entity"]] = {}

    def __repr__(self) -> str:
        n = sum(len(by_id) for by_id in self._entities.values())
        return f"<Context variables={len(self._variables)} entities={n}>"

    # ============================================================
    # Variables
    # ============================================================

    @property
    def variables(self) -> Mapping[str, Any]:
        """Read-only view of the bound variables."""
        return MappingProxyType(self._variables)

    def has_variable(self, name: str) -> bool:
        return name in self._variables

    def lookup(self, name: str, default: Any = None) -> Any:
        """Return the value bound to name, or default if unbound."""
        return self._variables.get(name, default)

    def fetch(self, name: str) -> Any:
        """Return the value bound to name; fail if unbound."""
        try:
            return self._variables[name]
        except KeyError:
            raise SymbolFailure(f'no variable named "{name}" in current context') from None

    def bind(self, name: str, value: Any) -> Any:
        """
        Bind name to value.

        Raises:
            SymbolFailure: name is `self`, already bound, or a function name
        """
        if name == state.SELF:
            raise SymbolFailure("symbol self is reserved")
        if name in self._variables:
            raise SymbolFailure(f'symbol "{name}" already exists in the context')
        if name in self.generator.functions:
            raise SymbolFailure(f'symbol "{name}" is already the name of a function')
        self._variables[name] = value
        return value

    # ============================================================
    # Entities
    # ============================================================

    def has_rule(self, rule: str) -> bool:
        return rule in self.generator.rules

    def entity(self, rule: str, entity_id: int) -> "Entity | None":
        """Return entity (rule, entity_id), materializing it on first access."""
        by_id = self._entities.get(rule)
        if by_id is not None and entity_id in by_id:
            return by_id[entity_id]
        r = self.generator.rules.get(rule)
        if r is None or not r.has_entity(entity_id):
            return None
        ent = r.instantiate(entity_id, self)
        self._entities.setdefault(rule, {})[entity_id] = ent
        return ent

    def entities(self, rule: str) -> list["Entity"]:
        """Materialize and return every entity of rule."""
        r = self.generator.rules.get(rule)
        if r is None:
            return []
        return [self.entity(rule, i) for i in r.ids()]

    def pick(self, rule: str, *args: Any) -> "Entity | None":
        """Weighted choice among the entities of rule accepting args."""
        candidates = [e for e in self.entities(rule) if e.pickable(*args)]
        return weighted.pick(candidates)

    def materialized(self) -> Iterator[tuple[str, int, "Entity"]]:
        """Iterate (rule, id, entity) over the entities touched so far."""
        for rule, by_id in self._entities.items():
            for entity_id, ent in by_id.items():
                yield rule, entity_id, ent

    # ============================================================
    # Isolation
    # ============================================================

    def _states(self) -> dict[tuple[str, int], dict[str, Any]]:
        return {(rule, i): ent.get_state() for rule, i, ent in self.materialized()}

    def _copy_from(self, source: "Context", carry: Any = None) -> tuple[dict, dict, Any]:
        """
        Copy source's variables, entity states and carry into this context.

        Returns (variables, states, carry); entities referenced from the
        copies are this context's instances.
        """
        memo: dict[int, Any] = {}
        for rule, entity_id, ent in source.materialized():
            memo[id(ent)] = self.entity(rule, entity_id)
        return copy.deepcopy((source._variables, source._states(), carry), memo)

    def fork(self) -> "Context":
        """Return a child context starting as a copy of this one."""
        child = Context(self.generator)
        for rule, entity_id, ent in self.materialized():
            child._entities.setdefault(rule, {})[entity_id] = ent.clone_for(child)
        variables, states, _ = child._copy_from(self)
        child._variables = variables
        for (rule, entity_id), st in states.items():
            child._entities[rule][entity_id].restore_state(st)
        return child

    def merge(self, child: "Context", *, local: bool = True, carry: Any = None) -> Any:
        """
        Commit a successful child back into this context.

        Entity states are always written back. Variables are written back
        when local is true; otherwise only names this context already has,
        plus global ($-prefixed) names.

        Returns carry (a value produced in child) in this context's terms.
        """
        variables, states, carry = self._copy_from(child, carry)
        for (rule, entity_id), st in states.items():
            self._entities[rule][entity_id].restore_state(st)
        for name, value in variables.items():
            if local or state.is_global(name) or name in self._variables:
                self._variables[name] = value
        return carry

    def snapshot(self) -> "Context":
        """Capture the current state; pass the token to restore()."""
        return self.fork()

    def restore(self, token: "Context") -> None:
        """Reinstate the state captured by snapshot(); token stays reusable."""
        variables, states, _ = self._copy_from(token)
        self._variables = variables
        for rule, entity_id, ent in self.materialized():
            st = states.get((rule, entity_id))
            if st is None:
                ent.reset()
            else:
                ent.restore_state(st)

    def reset(self) -> "Context":
        """Clear variables and entities."""
        self._variables = {}
        self._entities = {}
        return self
