"""Tests for statehold.util — map-aware serialization, clone and equality."""

import json
from datetime import datetime, timezone
from enum import Enum
from types import SimpleNamespace

from statehold.util import (
    KeyNamespace,
    deep_clone,
    deep_equals,
    get_path,
    parse,
    shallow_clone,
    shallow_equals,
    stringify,
)


class Person:
    def __init__(self, name, age):
        self.name = name
        self.age = age

    def greet(self):
        return f"hi {self.name}"


class Key:
    def __init__(self, ident):
        self.ident = ident


class Color(Enum):
    RED = "red"


class TestStringify:
    def test_map_encoding_is_exact(self):
        assert stringify({1: "a", "b": 2}) == '{"dataType":"Map","value":[[1,"a"],["b",2]]}'

    def test_map_keeps_insertion_order(self):
        assert stringify({"b": 1, "a": 2}) != stringify({"a": 2, "b": 1})

    def test_object_encodes_own_attributes(self):
        assert stringify(Person("ada", 36)) == '{"name":"ada","age":36}'

    def test_sequences_and_scalars(self):
        assert stringify([1, (2, 3), None, True]) == "[1,[2,3],null,true]"

    def test_datetime_and_enum(self):
        moment = datetime(2024, 1, 2, 3, 4, 5, tzinfo=timezone.utc)
        assert stringify([moment, Color.RED]) == '["2024-01-02T03:04:05+00:00","red"]'

    def test_unknown_leaf_uses_str(self):
        class Opaque:
            __slots__ = ()

            def __str__(self):
                return "opaque"

        assert stringify([Opaque()]) == '["opaque"]'


class TestParse:
    def test_map_round_trip_keeps_non_string_keys(self):
        value = {1: {2: "x"}, "k": [1, 2]}
        assert parse(stringify(value)) == value

    def test_plain_json_degrades_keys(self):
        value = {1: {2: "x"}}
        assert json.loads(json.dumps(value)) != value
        assert deep_equals(parse(stringify(value)), value)

    def test_tuple_keys_come_back_hashable(self):
        assert parse(stringify({(1, 2): "pair"})) == {(1, 2): "pair"}

    def test_objects_become_namespaces(self):
        restored = parse(stringify(Person("ada", 36)))
        assert isinstance(restored, SimpleNamespace)
        assert restored.name == "ada"
        assert restored.age == 36


class TestShallow:
    def test_clone_of_none(self):
        assert shallow_clone(None) is None

    def test_clone_is_detached(self):
        original = {"items": [1, 2]}
        clone = shallow_clone(original)
        clone["items"].append(3)
        assert original == {"items": [1, 2]}

    def test_equals_compares_text(self):
        assert shallow_equals(Person("a", 1), SimpleNamespace(name="a", age=1))
        assert not shallow_equals(Person("a", 1), Person("a", 2))


class TestDeepClone:
    def test_scalars_returned_as_is(self):
        moment = datetime.now(timezone.utc)
        assert deep_clone(moment) is moment
        assert deep_clone("x") == "x"

    def test_nested_containers_are_copied(self):
        original = {"a": [1, {"b": 2}]}
        clone = deep_clone(original)
        assert clone == original
        clone["a"][1]["b"] = 3
        assert original["a"][1]["b"] == 2

    def test_objects_become_namespaces_without_methods(self):
        clone = deep_clone(Person("ada", 36))
        assert clone == SimpleNamespace(name="ada", age=36)


class TestDeepEquals:
    def test_map_order_is_irrelevant(self):
        assert deep_equals({"a": 1, "b": 2}, {"b": 2, "a": 1})

    def test_object_attribute_order_is_irrelevant(self):
        assert deep_equals(SimpleNamespace(a=1, b=2), SimpleNamespace(b=2, a=1))

    def test_kinds_never_match(self):
        assert not deep_equals(1, "1")
        assert not deep_equals(True, 1)
        assert not deep_equals({"a": 1}, SimpleNamespace(a=1))
        assert not deep_equals([1], {0: 1})

    def test_sequences_compare_element_wise(self):
        assert deep_equals([1, (2, 3)], [1, [2, 3]])
        assert not deep_equals([1, 2], [2, 1])

    def test_missing_key(self):
        assert not deep_equals({"a": 1}, {"b": 1})


class TestGetPath:
    def test_walks_objects_lists_and_maps(self):
        data = SimpleNamespace(staff=[Person("ada", 36), Person("bob", 40)], ids={1: "one"})
        assert get_path(data, "staff.1.name") == "bob"
        assert get_path(data, "ids.1") == "one"

    def test_missing_segment_is_none(self):
        data = {"a": [1]}
        assert get_path(data, "a.5") is None
        assert get_path(data, "b.c") is None


class TestObjectKeys:
    def test_clone_snapshots_object_keys(self):
        key = Key(1)
        original = {key: [1]}
        clone = deep_clone(original)
        key.ident = 2
        assert clone == {KeyNamespace(ident=1): [1]}
        assert clone[KeyNamespace(ident=1)] is not original[key]

    def test_clone_snapshots_object_set_members(self):
        key = Key(1)
        assert deep_clone({key}) == {KeyNamespace(ident=1)}
        assert deep_clone(frozenset([key])) == frozenset([KeyNamespace(ident=1)])

    def test_clone_still_copies_tuple_keys(self):
        assert deep_clone({(1, 2): "pair"}) == {(1, 2): "pair"}

    def test_deep_equals_with_object_keys(self):
        original = {Key(1): "one"}
        assert deep_equals(original, deep_clone(original))
        assert not deep_equals(original, {KeyNamespace(ident=2): "one"})

    def test_deep_equals_sets_of_objects(self):
        original = {Key(1), Key(2)}
        assert deep_equals(original, deep_clone(original))
        assert not deep_equals({Key(1)}, {KeyNamespace(ident=3)})

    def test_parse_turns_object_keys_into_key_namespaces(self):
        restored = parse(stringify({Key(1): "one"}))
        key = next(iter(restored))
        assert isinstance(key, KeyNamespace)
        assert key.ident == 1
        assert restored[KeyNamespace(ident=1)] == "one"

    def test_key_namespace_with_nested_values_is_hashable(self):
        key = KeyNamespace(ident=1, tags=["a"], meta={"k": SimpleNamespace(v=1)})
        assert {key: 1}[KeyNamespace(ident=1, tags=["a"], meta={"k": SimpleNamespace(v=1)})] == 1

    def test_shallow_clone_of_object_keyed_map(self):
        clone = shallow_clone({Key(1): "one", Key(2): "two"})
        assert [k.ident for k in clone] == [1, 2]
