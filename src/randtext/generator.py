# -------------------------------------
# generator: registries + driver
# -------------------------------------
"""
Generator: the rule and function registries, static diagnostics, and the
entry points that run one generation request each.

    g = Generator.from_path("rules/")
    g.generate("Character")            # weighted pick, then its value
    g.generate("Character", 2, "name")
    g.expand("{x = Character()}{x.name} says hi")

Every request gets a fresh Context; a failure affects only that request.
"""
from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from pathlib import Path
from types import MappingProxyType

from . import weighted
from .context import Context
from .entity import Entity
from .errors import GeneratorError, Location, Message, NOWHERE
from .evaluator import evaluate, stringify
from .function import BUILTINS, Function
from .loader import load_rules
from .nodes import Choice
from .parser import parse as parse_template
from .rule import Rule
from .verify import verify_node, verify_rule

logger = logging.getLogger(__name__)


class Generator:

    def __init__(
        self,
        rules: Iterable[Rule] = (),
        functions: Iterable[Function] = (),
        *,
        builtins: bool = True,
    ):
        """
        Args:
            rules: rule tables
            functions: designer functions (override built-ins of the same name)
            builtins: register function.BUILTINS first
        """
        funcs: dict[str, Function] = dict(BUILTINS) if builtins else {}
        for f in functions:
            funcs[f.name] = f
        self._functions = funcs

        by_name: dict[str, Rule] = {}
        for r in rules:
            if r.name in by_name:
                raise GeneratorError(f"rule {r.name} registered twice")
            by_name[r.name] = r
        # compiled copies: a Rule may be shared with other generators
        self._rules = {name: r.compile(self._functions, by_name) for name, r in by_name.items()}

        self.messages: list[Message] = []
        for r in self._rules.values():
            self.messages += verify_rule(r, self)

        errors = sum(1 for m in self.messages if m.is_error)
        logger.info(
            "generator ready: %d rules, %d functions, %d errors, %d warnings",
            len(self._rules), len(self._functions), errors, len(self.messages) - errors,
        )

    @classmethod
    def from_path(
        cls,
        path: str | Path,
        functions: Iterable[Function] = (),
        entity_classes: Mapping[str, type[Entity]] | None = None,
    ) -> "Generator":
        """Build a generator from the rule files under path (see loader)."""
        return cls(load_rules(path, entity_classes=entity_classes), functions)

    def __repr__(self) -> str:
        return f"<Generator rules={list(self._rules)} failed={self.failed}>"

    # ============================================================
    # Registries
    # ============================================================

    @property
    def rules(self) -> Mapping[str, Rule]:
        return MappingProxyType(self._rules)

    @property
    def functions(self) -> Mapping[str, Function]:
        return MappingProxyType(self._functions)

    @property
    def failed(self) -> bool:
        """True if the static diagnostics contain an error."""
        return any(m.is_error for m in self.messages)

    @property
    def errors(self) -> list[Message]:
        return [m for m in self.messages if m.is_error]

    # ============================================================
    # Generation
    # ============================================================

    def new_context(self) -> Context:
        """
        Fresh, empty context for one generation request.

        Raises:
            GeneratorError: the rules have static errors
        """
        if self.failed:
            raise GeneratorError(
                f"cannot generate: {len(self.errors)} static error(s), first: {self.errors[0]}"
            )
        return Context(self)

    def parse(self, text: str, location: Location | None = None) -> Choice:
        """Parse text against this generator's functions and rules."""
        return parse_template(text, location or NOWHERE,
                              functions=self._functions, rules=self._rules)

    def check(self, text: str) -> list[Message]:
        """Static diagnostics of an ad hoc template."""
        return verify_node(self.parse(text), self)

    def expand(self, text: str | Choice, context: Context | None = None) -> str:
        """
        Parse (if needed) and evaluate an ad hoc template.

        Raises:
            ParseError: text is not a valid template
            EvaluationFailure: the template could not be expanded
        """
        node = self.parse(text) if isinstance(text, str) else text
        if context is None:
            context = self.new_context()
        return stringify(evaluate(node, context))

    def generate(
        self,
        rule: str,
        entity_id: int | None = None,
        attribute: str = "value",
    ) -> str:
        """
        Expand one attribute of one entity in a fresh context.

        With no entity_id, an entity of rule is drawn by weight.

        Raises:
            GeneratorError: unknown rule, no entity to draw, or static errors
            AttributeError: the rule has no such attribute
            EvaluationFailure: the attribute could not be expanded
        """
        if rule not in self._rules:
            raise GeneratorError(f"no rule named {rule}")
        context = self.new_context()
        if entity_id is None:
            entity = weighted.pick(context.entities(rule))
        else:
            entity = context.entity(rule, entity_id)
        if entity is None:
            raise GeneratorError(f"no entity to generate in rule {rule}")
        return stringify(entity.attribute(attribute))

