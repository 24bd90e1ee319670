# -------------------------------------
# template parser
# -------------------------------------
"""
Surface syntax -> node tree.

Text mode (templates, parenthesised groups, arguments):
  a|b|c            Choice of variants
  (a|b)            nested Choice
  (a|b)?           Optional
  {statements}     one or more ';'-separated statements
  \\x              escaped character

Statement mode (inside {...}, whitespace and /* comments */ ignored):
  expr             Print
  x = expr         Assignment (also ||=)
  x!               Predicate
  e.attr = expr    AttrSetter (also ||=)

Expressions:
  name             SymbolReading (self, variable, or zero-argument function)
  name(a,b)        FunctionCall, or Picker if name is a rule
  Rule[3]          Reference
  e.name(a,b)      MethodCall (argument list optional)
  `x = expr`       AssignmentExpr / SetterExpr
"""
from __future__ import annotations

import re
from collections.abc import Collection

from . import state
from .errors import Location, NOWHERE, ParseError
from .nodes import (
    Assignment,
    AssignmentExpr,
    AttrSetter,
    Choice,
    FunctionCall,
    MethodCall,
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

_SYMBOL_RE = re.compile(r"[A-Za-z_$][A-Za-z0-9_]*")
_INT_RE = re.compile(r"-?\d+")


class _Parser:

    def __init__(
        self,
        text: str,
        location: Location,
        functions: Collection[str],
        rules: Collection[str] | None,
    ):
        self.s = text
        self.i = 0
        self.location = location
        self.functions = functions
        self.rules = rules

    # ------------------------------------------------------------
    # scanning helpers
    # ------------------------------------------------------------

    def error(self, message: str):
        raise ParseError(message, self.s, self.i)

    def peek(self) -> str:
        return self.s[self.i] if self.i < len(self.s) else ""

    def expect(self, ch: str) -> None:
        if self.peek() != ch:
            found = repr(self.peek()) if self.peek() else "end of text"
            self.error(f"expected {ch!r}, found {found}")
        self.i += 1

    def skip_ws(self) -> None:
        n = len(self.s)
        while self.i < n:
            if self.s[self.i].isspace():
                self.i += 1
            elif self.s.startswith("/*", self.i):
                end = self.s.find("*/", self.i + 2)
                if end < 0:
                    self.error("unterminated comment")
                self.i = end + 2
            else:
                break

    def symbol(self) -> str:
        m = _SYMBOL_RE.match(self.s, self.i)
        if not m:
            self.error("expected a symbol")
        self.i = m.end()
        return m.group(0)

    def operator(self) -> str | None:
        if self.s.startswith("||=", self.i):
            self.i += 3
            return "||="
        if self.peek() == "=" and not self.s.startswith("==", self.i):
            self.i += 1
            return "="
        return None

    def is_rule(self, name: str) -> bool:
        if self.rules is not None and name in self.rules:
            return True
        return name not in self.functions and name[:1].isupper()

    # ------------------------------------------------------------
    # text mode
    # ------------------------------------------------------------

    def choice(self, stops: str) -> Choice:
        variants = [self.variant(stops)]
        while self.peek() == "|":
            self.i += 1
            variants.append(self.variant(stops))
        return Choice(tuple(variants), location=self.location)

    def variant(self, stops: str) -> Variant:
        loc = self.location
        parts: list = []
        buf: list[str] = []

        def flush():
            if buf:
                parts.append(Text("".join(buf), location=loc))
                buf.clear()

        n = len(self.s)
        while self.i < n:
            ch = self.s[self.i]
            if ch == "|" or ch in stops:
                break
            if ch == "\\":
                if self.i + 1 >= n:
                    self.error("dangling escape")
                buf.append(self.s[self.i + 1])
                self.i += 2
            elif ch == "(":
                flush()
                self.i += 1
                inner = self.choice(")")
                self.expect(")")
                if self.peek() == "?":
                    self.i += 1
                    parts.append(Optional(inner, location=loc))
                else:
                    parts.append(inner)
            elif ch == "{":
                flush()
                self.i += 1
                parts.extend(self.statements())
            elif ch in ")}":
                self.error(f"unexpected {ch!r}")
            else:
                buf.append(ch)
                self.i += 1
        flush()
        return Variant(tuple(parts), location=loc)

    def arguments(self) -> tuple[Choice, ...]:
        self.expect("(")
        args = [self.choice(",)")]
        while self.peek() == ",":
            self.i += 1
            args.append(self.choice(",)"))
        self.expect(")")
        return tuple(args)

    # ------------------------------------------------------------
    # statement mode
    # ------------------------------------------------------------

    def statements(self) -> list:
        out = []
        while True:
            self.skip_ws()
            ch = self.peek()
            if ch == "}":
                self.i += 1
                return out
            if ch == ";":
                self.i += 1
                continue
            if not ch:
                self.error("unterminated statement block")
            out.append(self.statement())
            self.skip_ws()
            if self.peek() not in (";", "}"):
                self.error("expected ';' or '}'")

    def statement(self):
        expr = self.expression()
        self.skip_ws()
        if self.peek() == "!":
            if not isinstance(expr, SymbolReading):
                self.error("a predicate expects a variable name")
            self.i += 1
            return Predicate(expr.symbol, location=self.location)
        op = self.operator()
        if op:
            return self.assignment(expr, op)
        return Print(expr, location=self.location)

    def assignment(self, target, op: str):
        loc = self.location
        at = self.i
        value = self.expression(rhs=True)
        if isinstance(target, SymbolReading):
            return Assignment(target.symbol, op, value, location=loc)
        if isinstance(target, MethodCall):
            if target.arguments:
                self.i = at
                self.error(f"unexpected argument list for attribute {target.symbol!r}")
            return AttrSetter(target.receiver, target.symbol, op, value, location=loc)
        self.i = at
        self.error("invalid assignment target")

    # ------------------------------------------------------------
    # expressions
    # ------------------------------------------------------------

    def expression(self, rhs: bool = False):
        self.skip_ws()
        expr = self.atom()
        while True:
            save = self.i
            self.skip_ws()
            if self.peek() != ".":
                self.i = save
                break
            self.i += 1
            self.skip_ws()
            name = self.symbol()
            args = self.arguments() if self.peek() == "(" else ()
            expr = MethodCall(expr, name, args, location=self.location)
        if rhs and isinstance(expr, SymbolReading) and not expr.function:
            expr = SymbolReading(expr.symbol, word=True, location=self.location)
        return expr

    def atom(self):
        loc = self.location
        if self.peek() == "`":
            self.i += 1
            self.skip_ws()
            target = self.expression()
            self.skip_ws()
            op = self.operator()
            if not op:
                self.error("expected '=' or '||=' in backtick expression")
            st = self.assignment(target, op)
            self.skip_ws()
            self.expect("`")
            if isinstance(st, Assignment):
                return AssignmentExpr(st, location=loc)
            return SetterExpr(st, location=loc)

        name = self.symbol()
        if self.peek() == "(":
            args = self.arguments()
            if self.is_rule(name):
                return Picker(name, args, location=loc)
            return FunctionCall(name, args, location=loc)
        if self.peek() == "[":
            self.i += 1
            self.skip_ws()
            m = _INT_RE.match(self.s, self.i)
            if not m:
                self.error("expected an entity id")
            self.i = m.end()
            self.skip_ws()
            self.expect("]")
            return Reference(name, int(m.group(0)), location=loc)
        is_function = name != state.SELF and name in self.functions
        return SymbolReading(name, function=is_function, location=loc)


# ============================================================
# Entry point
# ============================================================

def parse(
    text: str,
    location: Location = NOWHERE,
    *,
    functions: Collection[str] = (),
    rules: Collection[str] | None = None,
) -> Choice:
    """
    Parse a template into its node tree.

    Args:
        text: template source
        location: where the template is defined (copied onto every node)
        functions: known function names (zero-argument readings)
        rules: known rule names (Name(...) is a Picker); when None,
               UpperCamelCase names are taken as rules

    Raises:
        ParseError: on syntax errors
    """
    p = _Parser(text, location, functions, rules)
    node = p.choice("")
    if p.i != len(text):
        p.error(f"unexpected {p.peek()!r}")
    return node
