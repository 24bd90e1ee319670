"""Tests for randtext.rule and randtext.entity modules."""

import pytest

from randtext.datatypes import Enum, Identifier, Integer, Text, Weight
from randtext.entity import Entity
from randtext.errors import EvaluationFailure, RuleError, SymbolFailure
from randtext.generator import Generator
from randtext.rule import HasMany, Rule, camelize


class Greeter(Entity):
    def init(self):
        self.greeted = 0

    def greet(self, who):
        self.greeted += 1
        return f"hello {who}"


def owners_and_pets(required=False):
    owner = Rule("Owner", [
        {"id": 1, "value": "Ann"},
        {"id": 2, "value": "Bob"},
    ], relations=[HasMany("pets", "Pet", "owner", required)])
    pet = Rule("Pet", [
        {"id": 1, "value": "cat", "owner": 1},
        {"id": 2, "value": "dog", "owner": 1},
    ], {"owner": {"reference": "Owner"}})
    return owner, pet


class TestCamelize:

    @pytest.mark.parametrize("name,expected", [
        ("thing", "Thing"),
        ("magic_item", "MagicItem"),
        ("npc_2", "Npc2"),
    ])
    def test_camelize(self, name, expected):
        assert camelize(name) == expected


class TestRule:
    """Tests for rule construction."""

    def test_columns(self):
        r = Rule("Thing", [{"id": 2, "value": "b"}, {"id": 1, "value": "a", "size": 3}],
                 {"size": "integer"})
        assert r.ids() == [1, 2]
        assert len(r) == 2
        assert set(r.attributes) == {"id", "weight", "size", "value"}
        assert r.types["id"] == Identifier()
        assert r.types["weight"] == Weight()
        assert r.types["size"] == Integer()
        assert r.types["value"] == Text()
        assert r.plain_attributes == ("size",)

    def test_row(self):
        r = Rule("Thing", [{"id": 1, "value": "a"}])
        assert r.row(1)["value"] == "a"
        assert r.has_entity(1)
        assert not r.has_entity(2)

    def test_string_ids(self):
        r = Rule("Thing", [{"id": "4", "value": "a"}])
        assert r.ids() == [4]

    @pytest.mark.parametrize("name", ["thing", "", "Bad-Name", "1Thing"])
    def test_invalid_name(self, name):
        with pytest.raises(RuleError, match="invalid rule name"):
            Rule(name, [])

    def test_row_without_id(self):
        with pytest.raises(RuleError, match="without id"):
            Rule("Thing", [{"value": "a"}])

    def test_duplicate_id(self):
        with pytest.raises(RuleError, match="duplicated"):
            Rule("Thing", [{"id": 1}, {"id": "1"}])

    def test_reserved_type(self):
        with pytest.raises(RuleError, match="reserved"):
            Rule("Thing", [], {"weight": "integer"})

    def test_invalid_attribute(self):
        with pytest.raises(RuleError, match="invalid name for attribute"):
            Rule("Thing", [{"id": 1, "Bad-Attr": "x"}])

    def test_invalid_type(self):
        with pytest.raises(RuleError, match="unknown attribute type"):
            Rule("Thing", [], {"size": "float"})

    def test_entity_class_must_derive_from_entity(self):
        with pytest.raises(RuleError, match="derive from Entity"):
            Rule("Thing", [], entity_class=object)

    def test_duplicate_relation(self):
        with pytest.raises(RuleError, match="already set"):
            Rule("Thing", [{"id": 1, "pets": "x"}], relations=[HasMany("pets", "Pet", "owner")])

    def test_data_unknown_attribute(self):
        r = Rule("Thing", [{"id": 1}])
        with pytest.raises(AttributeError):
            r.data(1, "nope")

    def test_compile_locations(self):
        r = Rule("Thing", [{"id": 1, "value": "a"}]).compile()
        cell = r.data(1, "value")
        assert str(cell.location) == "Thing[1]#value"

    def test_instantiate_unknown(self):
        g = Generator([Rule("Thing", [{"id": 1}])])
        with pytest.raises(KeyError):
            g.rules["Thing"].instantiate(9, g.new_context())

    def test_rows_never_change(self):
        g = Generator([Rule("Thing", [{"id": 1, "value": "a"}])])
        g.expand("{Thing[1].mood = x}")
        assert dict(g.rules["Thing"].row(1)) == {"id": 1, "value": "a"}


class TestEntity:
    """Tests for entity identity, attributes and fields."""

    @pytest.fixture
    def g(self):
        return Generator([
            Rule("Thing", [{"id": 1, "value": "one", "size": "3", "tag": "x"}],
                 {"size": "integer", "tag": {"enum": ["x", "y"]}}),
            Rule("Person", [{"id": 1, "value": "Ann"}], entity_class=Greeter),
        ])

    def test_identity(self, g):
        a = g.new_context().entity("Thing", 1)
        b = g.new_context().entity("Thing", 1)
        assert a is not b
        assert a == b
        assert hash(a) == hash(b)
        assert repr(a) == "<Thing id=1>"
        assert str(a) == "Thing[1]"

    def test_attributes(self, g):
        e = g.new_context().entity("Thing", 1)
        assert e.id == 1
        assert e.weight == 1
        assert e.size == 3
        assert e.tag == "x"
        assert e.value == "one"
        assert e.rule is g.rules["Thing"]

    def test_unknown_attribute(self, g):
        e = g.new_context().entity("Thing", 1)
        with pytest.raises(AttributeError):
            e.nope

    def test_set_field(self, g):
        e = g.new_context().entity("Thing", 1)
        assert e.set_field("mood", "calm") == "calm"
        assert e.has_field("mood")
        assert e.mood == "calm"
        assert e.field("mood") == "calm"

    def test_set_field_write_once(self, g):
        e = g.new_context().entity("Thing", 1)
        e.set_field("mood", "calm")
        with pytest.raises(SymbolFailure, match="already exists"):
            e.set_field("mood", "angry")

    @pytest.mark.parametrize("name", ["value", "size", "_secret", "pickable", "rule"])
    def test_set_field_refused(self, g, name):
        e = g.new_context().entity("Thing", 1)
        with pytest.raises(SymbolFailure):
            e.set_field(name, "x")

    def test_subclass_init_and_method(self, g):
        ctx = g.new_context()
        assert g.expand("{Person[1].greet(you)}", ctx) == "hello you"
        assert ctx.entity("Person", 1).greeted == 1

    def test_subclass_state_in_snapshot(self, g):
        ctx = g.new_context()
        p = ctx.entity("Person", 1)
        token = ctx.snapshot()
        p.greet("x")
        ctx.restore(token)
        assert p.greeted == 0

    def test_reset(self, g):
        p = g.new_context().entity("Person", 1)
        p.greet("x")
        p.set_field("mood", "calm")
        p.reset()
        assert p.greeted == 0
        assert not p.has_field("mood")


class TestPick:
    """Tests for pickable()."""

    def test_without_expression(self):
        g = Generator([Rule("Thing", [{"id": 1}])])
        assert g.new_context().entity("Thing", 1).pickable("anything")

    def test_expression(self):
        g = Generator([Rule("Thing", [{"id": 1, "size": 3}], {"size": "integer"},
                            pick="size >= int(args[0])")])
        e = g.new_context().entity("Thing", 1)
        assert e.pickable("2")
        assert not e.pickable("4")

    def test_expression_sees_enum_values(self):
        g = Generator([Rule("Thing", [{"id": 1, "tags": "a, b"}], {"tags": {"mult_enum": ["a", "b"]}},
                            pick="args[0] in tags")])
        e = g.new_context().entity("Thing", 1)
        assert e.pickable("a")
        assert not e.pickable("c")

    def test_expression_error(self):
        g = Generator([Rule("Thing", [{"id": 1}], pick="args[3] == 1")])
        with pytest.raises(EvaluationFailure, match="pick expression"):
            g.new_context().entity("Thing", 1).pickable()


class TestHasMany:
    """Tests for has-many relations."""

    def test_related(self):
        g = Generator(owners_and_pets())
        ctx = g.new_context()
        ann = ctx.entity("Owner", 1)
        bob = ctx.entity("Owner", 2)
        assert [p.id for p in ann.pets_list] == [1, 2]
        assert ann.pets in ann.pets_list
        assert bob.pets_list == []
        assert bob.pets is None

    def test_related_from_template(self):
        g = Generator(owners_and_pets())
        assert {g.expand("{Owner[1].pets}") for _ in range(50)} == {"cat", "dog"}

    def test_relation_is_a_field(self):
        g = Generator(owners_and_pets())
        ann = g.new_context().entity("Owner", 1)
        assert ann.has_field("pets")
        assert ann.has_field("pets_list")
        with pytest.raises(SymbolFailure):
            ann.set_field("pets", "x")

    def test_required_relation_reported(self):
        g = Generator(owners_and_pets(required=True))
        assert g.failed
        assert [str(m.location) for m in g.errors] == ["Owner[2]#pets"]
        assert "does reference" in g.errors[0].text
