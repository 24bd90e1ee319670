"""Tests for randtext.nodes module."""

import copy
import dataclasses

import pytest

from randtext.errors import Location
from randtext.nodes import (
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
    children,
    text,
)


class TestDeterministic:
    """Tests for the deterministic property."""

    def test_text(self):
        assert Text("a").deterministic

    def test_single_variant_choice(self):
        assert text("a").deterministic

    def test_multi_variant_choice(self):
        assert not Choice((Variant((Text("a"),)), Variant((Text("b"),)))).deterministic

    def test_optional(self):
        assert not Optional(text("a")).deterministic

    def test_variable_reading(self):
        assert Print(SymbolReading("x")).deterministic

    def test_function_reading(self):
        assert not Print(SymbolReading("f", function=True)).deterministic

    def test_word_assignment(self):
        assert Assignment("x", "=", SymbolReading("a", word=True)).deterministic

    def test_function_assignment(self):
        assert not Assignment("x", "=", FunctionCall("s", (text("a"),))).deterministic

    def test_predicate(self):
        assert Predicate("x").deterministic

    def test_reference(self):
        assert Reference("Rule", 1).deterministic
        assert AttrSetter(Reference("Rule", 1), "a", "=", SymbolReading("b", word=True)).deterministic

    @pytest.mark.parametrize("node", [
        MethodCall(SymbolReading("x"), "m"),
        FunctionCall("f", (text("a"),)),
        Picker("Rule", ()),
        AssignmentExpr(Assignment("x", "=", SymbolReading("a", word=True))),
        SetterExpr(AttrSetter(Reference("Rule", 1), "a", "=", SymbolReading("b", word=True))),
    ])
    def test_non_deterministic_expressions(self, node):
        assert not node.deterministic

    def test_variant_is_conjunction(self):
        v = Variant((Text("a"), Print(SymbolReading("x")), Optional(text("b"))))
        assert not v.deterministic
        assert Variant(()).deterministic


class TestNodeValues:
    """Tests for equality, immutability and construction checks."""

    def test_location_not_compared(self):
        loc = Location("Rule", 1, "value")
        assert Text("a", location=loc) == Text("a")
        assert Text("a", location=loc).location == loc

    def test_frozen(self):
        node = Text("a")
        with pytest.raises(dataclasses.FrozenInstanceError):
            node.text = "b"

    def test_empty_choice_rejected(self):
        with pytest.raises(ValueError):
            Choice(())

    def test_unknown_operator_rejected(self):
        with pytest.raises(ValueError, match="operator"):
            Assignment("x", "+=", SymbolReading("a"))
        with pytest.raises(ValueError, match="operator"):
            AttrSetter(SymbolReading("e"), "a", "+=", SymbolReading("b"))

    def test_deepcopy_shares_tree(self):
        tree = text("shared")
        assert copy.deepcopy(tree) is tree
        assert copy.copy(tree) is tree


class TestStr:
    """Tests for the source-like string forms."""

    def test_assignment(self):
        node = Assignment("var1", "=", FunctionCall("s", (text("my second text"),)))
        assert str(node) == "{ var1 = s(my second text) }"

    def test_assignment_expr(self):
        node = AssignmentExpr(Assignment("var1", "=", FunctionCall("s", (text("my second text"),))))
        assert str(node) == "` var1 = s(my second text) `"

    def test_optional(self):
        node = Optional(Choice((Variant((Print(SymbolReading("var1")),)),)))
        assert str(node) == "({ var1 })?"

    def test_method_call(self):
        node = MethodCall(Reference("SimpleRule", 2), "my_method", (text("my first text"),))
        assert str(node) == "SimpleRule[2].my_method(my first text)"

    def test_setter(self):
        node = AttrSetter(SymbolReading("self"), "mood", "||=", SymbolReading("calm", word=True))
        assert str(node) == "{ self.mood ||= calm }"

    def test_predicate(self):
        assert str(Predicate("x")) == "{ x! }"

    def test_choice(self):
        node = Choice((Variant((Text("a"),)), Variant((Text("b "), text("c")))))
        assert str(node) == "a|b (c)"


class TestChildren:
    """Tests for the children helper."""

    def test_method_call(self):
        recv = SymbolReading("x")
        arg = text("a")
        assert children(MethodCall(recv, "m", (arg,))) == (recv, arg)

    def test_setter(self):
        recv = Reference("Rule", 1)
        value = SymbolReading("b", word=True)
        assert children(AttrSetter(recv, "a", "=", value)) == (recv, value)

    def test_leaves(self):
        assert children(Text("a")) == ()
        assert children(Reference("Rule", 1)) == ()
        assert children(Predicate("x")) == ()
