"""Tests for the special-type codec."""

from __future__ import annotations

import enum
import json
import logging
from dataclasses import dataclass, field
from datetime import UTC, date, datetime, time
from typing import Any

import pytest

from pypersist._codec import (
    Symbol,
    TypeMarker,
    element_selector,
    is_special_type,
    process_for_deserialization,
    process_for_serialization,
)
from pypersist.exceptions import RestoredError


def _round_trip(value: Any, **kwargs: Any) -> Any:
    text = json.dumps(process_for_serialization(value, **kwargs))
    return process_for_deserialization(json.loads(text), **kwargs)


class Color(enum.Enum):
    RED = 1


class Theme(enum.StrEnum):
    DARK = "dark"


@dataclass
class FakeElement:
    tag_name: str
    id: str = ""
    class_name: str = ""


@dataclass
class FakeContext:
    found: Any = "resolved"
    queries: list[str] = field(default_factory=list)

    def query_selector(self, selector: str) -> Any:
        self.queries.append(selector)
        return self.found


class TestRoundTrip:
    def test_mixed_state_survives_json(self) -> None:
        state = {
            "count": 1,
            "ratio": 0.5,
            "name": "John",
            "flag": True,
            "nothing": None,
            "items": [1, [2, 3], {"x": 1}],
            "created": datetime(2024, 1, 15, 12, 0, tzinfo=UTC),
            "day": date(2024, 1, 15),
            "alarm": time(8, 30),
            "lookup": {1: "one", (1, 2): "pair", "s": {"nested": True}},
            "tags": {1, 2, 3},
            "nested": {"deep": {"when": datetime(2020, 5, 1, 9, 30)}},
        }
        assert _round_trip(state) == state

    def test_temporal_types_are_preserved(self) -> None:
        restored = _round_trip({"d": date(2024, 1, 15), "dt": datetime(2024, 1, 15, 1, 2, 3)})
        assert type(restored["d"]) is date
        assert type(restored["dt"]) is datetime

    def test_javascript_style_iso_string_decodes(self) -> None:
        envelope = {"__type": "__DATE__", "value": "2024-01-15T12:00:00.000Z"}
        assert process_for_deserialization(envelope) == datetime(2024, 1, 15, 12, 0, tzinfo=UTC)

    def test_map_preserves_insertion_order(self) -> None:
        mapping = {3: "c", 1: "a", 2: "b"}
        assert list(_round_trip(mapping)) == [3, 1, 2]

    def test_frozenset_decodes_as_equal_set(self) -> None:
        assert _round_trip(frozenset({"a", "b"})) == {"a", "b"}

    def test_set_of_frozensets_survives(self) -> None:
        state = {"groups": {frozenset({1, 2}), frozenset({3})}}
        assert _round_trip(state) == state

    def test_frozenset_map_key_survives(self) -> None:
        state = {"m": {frozenset({"a"}): 1, (1, (2, 3)): 2}}
        restored = _round_trip(state)
        assert restored == state
        assert frozenset({"a"}) in restored["m"]

    def test_tuple_value_comes_back_as_list(self) -> None:
        assert _round_trip({"point": (1, 2)}) == {"point": [1, 2]}


class TestEncode:
    def test_primitives_pass_through(self) -> None:
        for value in (None, True, 3, 2.5, "text"):
            assert process_for_serialization(value) == value

    def test_str_enum_is_plain_string(self) -> None:
        assert process_for_serialization({"theme": Theme.DARK}) == {"theme": "dark"}

    def test_datetime_envelope(self) -> None:
        encoded = process_for_serialization(datetime(2024, 1, 15, 12, 0, tzinfo=UTC))
        assert encoded == {"__type": "__DATE__", "value": "2024-01-15T12:00:00+00:00"}

    def test_map_envelope_for_non_string_keys(self) -> None:
        encoded = process_for_serialization({1: datetime(2024, 1, 1)})
        assert encoded["__type"] == TypeMarker.MAP
        assert encoded["value"] == [[1, {"__type": "__DATE__", "value": "2024-01-01T00:00:00"}]]

    def test_string_keyed_dict_stays_plain(self) -> None:
        assert process_for_serialization({"a": {"b": [1]}}) == {"a": {"b": [1]}}

    def test_tuple_encodes_as_list(self) -> None:
        assert process_for_serialization((1, 2)) == [1, 2]

    def test_set_envelope(self) -> None:
        encoded = process_for_serialization({7})
        assert encoded == {"__type": "__SET__", "value": [7]}

    def test_enum_member_becomes_symbol_label(self) -> None:
        assert process_for_serialization(Color.RED) == {"__type": "__SYMBOL__", "value": "Color.RED"}

    def test_callables_are_described_by_name(self) -> None:
        def handler() -> None:
            return None

        encoded = process_for_serialization(handler)
        assert encoded["__type"] == "__FUNCTION__"
        assert encoded["value"].endswith("handler")
        assert process_for_serialization(lambda: None)["value"] == "anonymous"

    def test_error_envelope(self) -> None:
        encoded = process_for_serialization(ValueError("boom"))
        assert encoded == {
            "__type": "__ERROR__",
            "value": {"message": "boom", "name": "ValueError", "stack": None},
        }

    def test_raised_error_keeps_traceback_text(self) -> None:
        try:
            raise RuntimeError("failed")
        except RuntimeError as exc:
            encoded = process_for_serialization(exc)
        assert "RuntimeError: failed" in encoded["value"]["stack"]

    def test_class_instance_envelope(self) -> None:
        class Point:
            def __init__(self) -> None:
                self.x = 1
                self.y = date(2024, 1, 1)

        encoded = process_for_serialization(Point())
        assert encoded["__type"] == "__CLASS__"
        assert encoded["className"] == "Point"
        assert encoded["value"] == {"x": 1, "y": {"__type": "__DATE__", "value": "2024-01-01", "kind": "date"}}

    def test_fieldless_value_becomes_empty_bag_and_is_logged(self, caplog: pytest.LogCaptureFixture) -> None:
        with caplog.at_level(logging.DEBUG, logger="pypersist._codec"):
            encoded = process_for_serialization(b"raw")

        assert encoded == {"__type": "__CLASS__", "value": {}, "className": "bytes"}
        assert "bytes has no fields to persist" in caplog.text


class TestElements:
    def test_selector_prefers_id_over_classes(self) -> None:
        assert element_selector(FakeElement("DIV", id="main", class_name="a b")) == "div#main"
        assert element_selector(FakeElement("BUTTON", class_name="btn  primary")) == "button.btn.primary"
        assert element_selector(FakeElement("SPAN")) == "span"

    def test_element_encoded_only_with_context(self) -> None:
        element = FakeElement("DIV", id="main")
        context = FakeContext()

        encoded = process_for_serialization({"focus": element}, context=context)
        assert encoded == {"focus": {"__type": "__DOM_ELEMENT__", "value": "div#main"}}

        without_context = process_for_serialization(element)
        assert without_context["__type"] == "__CLASS__"

    def test_element_resolves_through_context(self) -> None:
        context = FakeContext(found="<div id=main>")
        envelope = {"__type": "__DOM_ELEMENT__", "value": "div#main"}

        assert process_for_deserialization(envelope, context=context) == "<div id=main>"
        assert context.queries == ["div#main"]

    def test_element_without_context_decodes_to_none(self) -> None:
        assert process_for_deserialization({"__type": "__DOM_ELEMENT__", "value": "div#main"}) is None


class TestDecode:
    def test_symbol_is_new_token_with_same_description(self) -> None:
        original = Symbol("session")
        restored = _round_trip(original)
        assert isinstance(restored, Symbol)
        assert restored.description == "session"
        assert restored is not original
        assert restored != original

    def test_function_decodes_to_noop(self) -> None:
        restored = _round_trip({"cb": print})
        assert callable(restored["cb"])
        assert restored["cb"]("ignored") is None

    def test_builtin_error_is_rebuilt(self) -> None:
        restored = _round_trip(KeyError("missing"))
        assert isinstance(restored, KeyError)
        assert restored.args == ("missing",)

    def test_unknown_error_class_becomes_restored_error(self) -> None:
        class QuotaExceeded(Exception):
            pass

        restored = _round_trip(QuotaExceeded("too much"))
        assert isinstance(restored, RestoredError)
        assert restored.name == "QuotaExceeded"
        assert str(restored) == "too much"

    def test_restored_error_keeps_its_name_when_encoded_again(self) -> None:
        error = RestoredError("x", name="Custom", stack="trace")
        assert _round_trip(error).name == "Custom"
        assert _round_trip(error).stack == "trace"

    def test_class_instance_decodes_to_property_bag(self) -> None:
        @dataclass
        class Point:
            x: int
            y: int

        assert _round_trip(Point(1, 2)) == {"x": 1, "y": 2}

    def test_unknown_marker_returns_raw_value(self) -> None:
        envelope = {"__type": "__FUTURE__", "value": {"a": [1, 2]}}
        assert process_for_deserialization(envelope) == {"a": [1, 2]}

    def test_known_marker_with_bad_payload_decodes_to_none(self) -> None:
        assert process_for_deserialization({"__type": "__DATE__", "value": 5}) is None
        assert process_for_deserialization({"__type": "__MAP__", "value": "nope"}) is None
        assert process_for_deserialization({"__type": "__CLASS__", "value": 3, "className": "X"}) is None

    def test_envelopes_nested_in_lists_are_decoded(self) -> None:
        data = [{"__type": "__SET__", "value": [1]}, {"plain": {"__type": "__SET__", "value": []}}]
        assert process_for_deserialization(data) == [{1}, {"plain": set()}]


def test_is_special_type() -> None:
    assert is_special_type({"__type": "__MAP__", "value": []})
    assert not is_special_type({"__type": "__OTHER__", "value": []})
    assert not is_special_type({"value": 1})
    assert not is_special_type([1])
