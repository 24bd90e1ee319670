# -------------------------------------
# entity instances
# -------------------------------------
"""
Entity: one row of a rule, materialized in one context.

Attribute cells are computed from the rule's raw cells on first read and
cached only when the read succeeds. Ad hoc fields (set from templates with
`e.attr = ...`) are write-once.

Everything in the instance __dict__ besides _rule, _id and _context is the
entity's state; Context copies it on fork / merge / snapshot / restore, so
subclasses can keep their own attributes and they follow the same rules.

Subclass to add behaviour to a rule:

    class Character(Entity):
        def init(self):
            self.mood = "calm"

        def pickable(self, gender=None, *rest):
            return gender is None or self.gender == gender

        def name_upper(self):
            return self.name.upper()
"""
from __future__ import annotations

from typing import TYPE_CHECKING, Any

from simpleeval import EvalWithCompoundTypes, InvalidExpression

from . import state
from . import weighted
from .errors import EvaluationFailure, SymbolFailure

if TYPE_CHECKING:
    from .context import Context
    from .rule import Rule

_FIXED = frozenset({"_rule", "_id", "_context"})

PICK_FUNCS: dict[str, object] = {
    "int": int,
    "str": str,
    "len": len,
    "abs": abs,
    "min": min,
    "max": max,
}


class Entity:

    def __init__(self, rule: "Rule", entity_id: int, context: "Context"):
        self._rule = rule
        self._id = entity_id
        self._context = context
        self._cells: dict[str, Any] = {}
        self._extras: dict[str, Any] = {}
        self.init()

    def init(self) -> None:
        """Hook run when the entity is materialized or reset."""

    # ============================================================
    # Identity
    # ============================================================

    @property
    def rule(self) -> "Rule":
        return self._rule

    @property
    def id(self) -> int:
        return self._id

    @property
    def context(self) -> "Context":
        return self._context

    @property
    def weight(self) -> int:
        return self.attribute("weight")

    def __eq__(self, other) -> bool:
        if not isinstance(other, Entity):
            return NotImplemented
        return self._rule.name == other._rule.name and self._id == other._id

    def __hash__(self) -> int:
        return hash((self._rule.name, self._id))

    def __repr__(self) -> str:
        return f"<{self._rule.name} id={self._id}>"

    def __str__(self) -> str:
        return f"{self._rule.name}[{self._id}]"

    # instances are remapped by Context, never copied
    def __copy__(self):
        return self

    def __deepcopy__(self, memo):
        return self

    # ============================================================
    # Attributes
    # ============================================================

    def attribute(self, name: str) -> Any:
        """
        Value of a declared attribute.

        Raises:
            AttributeError: the rule has no such attribute
            EvaluationFailure: a Text attribute could not be expanded
        """
        if name in self._cells:
            return self._cells[name]
        data = self._rule.data(self._id, name)
        value = data.value(self._context)
        # reading a Text cell merges into our context and replaces _cells
        if value is not None:
            self._cells[name] = value
        return value

    def __getattr__(self, name: str) -> Any:
        if name.startswith("_"):
            raise AttributeError(name)
        extras = self.__dict__.get("_extras", {})
        if name in extras:
            return extras[name]
        rule = self.__dict__.get("_rule")
        if rule is not None:
            if name in rule.attributes:
                return self.attribute(name)
            if name.endswith("_list") and name[:-5] in rule.relations:
                return self.related(name[:-5])
            if name in rule.relations:
                return weighted.pick(self.related(name))
        raise AttributeError(f"{type(self).__name__} object has no attribute {name!r}")

    def related(self, relation: str) -> list["Entity"]:
        """Entities of a has-many relation referencing this entity."""
        rel = self._rule.relations[relation]
        return [
            e for e in self._context.entities(rel.rule)
            if getattr(e, rel.attribute, None) == self
        ]

    # ============================================================
    # Ad hoc fields
    # ============================================================

    def has_field(self, name: str) -> bool:
        """
        True if reading name on this entity finds something: an ad hoc field,
        a declared attribute, a relation, or an attribute of the object itself
        (set by init(), or defined on the class).
        """
        if name.startswith("_"):
            return False
        return (
            name in self._extras
            or name in self._rule.attributes
            or name in self._rule.relations
            or name.endswith("_list") and name[:-5] in self._rule.relations
            or name in self.__dict__
            or hasattr(type(self), name)
        )

    def field(self, name: str) -> Any:
        return getattr(self, name)

    def set_field(self, name: str, value: Any) -> Any:
        """
        Add the ad hoc field name.

        Raises:
            SymbolFailure: the field already exists or shadows a method
        """
        if name.startswith("_") or callable(getattr(type(self), name, None)):
            raise SymbolFailure(f"cannot set attribute {name} of {self}")
        if self.has_field(name):
            raise SymbolFailure(f"attribute {name} of {self} already exists")
        self._extras[name] = value
        return value

    # ============================================================
    # Picking
    # ============================================================

    def pickable(self, *args: Any) -> bool:
        """
        Whether a Picker with arguments args may choose this entity.

        Uses the rule's pick expression when it has one; names available:
        args, id, weight and every non-Text attribute.
        """
        expr = self._rule.pick
        if expr is None:
            return True
        names = {"args": args, "id": self._id, "weight": self.weight}
        for attr in self._rule.plain_attributes:
            names[attr] = self.attribute(attr)
        se = EvalWithCompoundTypes(names=names, functions=PICK_FUNCS,
                                   operators=state.COMPARE_OPS)
        try:
            return bool(se.eval(expr))
        except (InvalidExpression, ArithmeticError, IndexError, KeyError,
                SyntaxError, TypeError, ValueError) as e:
            raise EvaluationFailure(
                f"pick expression {expr!r} failed for {self}: {e}"
            ) from e

    # ============================================================
    # State
    # ============================================================

    def get_state(self) -> dict[str, Any]:
        """Everything but the identity, for Context copies."""
        return {k: v for k, v in self.__dict__.items() if k not in _FIXED}

    def restore_state(self, st: dict[str, Any]) -> None:
        for k in [k for k in self.__dict__ if k not in _FIXED]:
            del self.__dict__[k]
        self.__dict__.update(st)

    def reset(self) -> None:
        """Forget cached cells and ad hoc fields, then rerun init()."""
        self.restore_state({"_cells": {}, "_extras": {}})
        self.init()

    def clone_for(self, context: "Context") -> "Entity":
        """Same entity, bound to context, with no state yet."""
        clone = object.__new__(type(self))
        clone._rule = self._rule
        clone._id = self._id
        clone._context = context
        return clone
