"""Tests for hover event UUID normalization."""

import json
import struct
import uuid

import pytest

from mcpacketfix.normalizer import (
    NormalizationOptions,
    NormalizationRecord,
    normalize,
)

ALL = NormalizationOptions()
NONE = NormalizationOptions(convert_int_array=False, convert_uuid_object=False)

ENTITY = uuid.UUID("8c2d12d7-0a8f-4e36-9c07-4f8e8d86a321")


def _quad(value: uuid.UUID) -> list[int]:
    return list(struct.unpack(">4i", value.bytes))


def _bytes(value: uuid.UUID) -> list[int]:
    return list(struct.unpack(">16b", value.bytes))


def _halves(value: uuid.UUID) -> dict[str, int]:
    most, least = struct.unpack(">2q", value.bytes)
    return {"most": most, "least": least}


def _component(entity_id, key="contents", action="show_entity", **tooltip) -> dict:
    return {
        "text": "Villager",
        "hoverEvent": {
            "action": action,
            key: {"type": "minecraft:villager", "id": entity_id, **tooltip},
        },
    }


def _run(document, options=ALL):
    records: list[NormalizationRecord] = []
    result = normalize(json.dumps(document), options, records.append)
    return result, records


class TestConversion:
    def test_int_quad(self):
        result, records = _run(_component(_quad(ENTITY)))

        parsed = json.loads(result)
        assert parsed["hoverEvent"]["contents"]["id"] == str(ENTITY)
        assert len(records) == 1
        assert records[0].normalized_uuid == str(ENTITY)
        assert records[0].original_payload == json.dumps(
            _quad(ENTITY), separators=(",", ":")
        )

    def test_byte_sequence(self):
        result, records = _run(_component(_bytes(ENTITY), key="value"))

        assert json.loads(result)["hoverEvent"]["value"]["id"] == str(ENTITY)
        assert len(records) == 1

    def test_halves_object(self):
        result, records = _run(_component(_halves(ENTITY)))

        assert json.loads(result)["hoverEvent"]["contents"]["id"] == str(ENTITY)
        assert records[0].original_payload.startswith('{"most":')

    def test_action_case_insensitive(self):
        result, _ = _run(_component(_quad(ENTITY), action="SHOW_Entity"))
        assert json.loads(result)["hoverEvent"]["contents"]["id"] == str(ENTITY)

    def test_value_and_contents_both_converted(self):
        other = uuid.UUID("0f25d8f8-0e46-42fb-86cf-4b761cddf0aa")
        document = {
            "text": "Villager",
            "hoverEvent": {
                "action": "show_entity",
                "value": {"id": _bytes(ENTITY), "name": "Villager"},
                "contents": {
                    "type": "minecraft:villager",
                    "id": [(b & 0xFF) + 1024 for b in _bytes(other)],
                    "nbt": "{}",
                },
            },
        }

        result, records = _run(document)

        hover = json.loads(result)["hoverEvent"]
        assert hover["value"]["id"] == str(ENTITY)
        assert hover["contents"]["id"] == str(other)
        assert [r.normalized_uuid for r in records] == [str(ENTITY), str(other)]

    def test_output_is_compact_and_preserves_key_order(self):
        document = _component(_quad(ENTITY))
        result, _ = _run(document)

        expected = dict(document)
        expected["hoverEvent"]["contents"]["id"] = str(ENTITY)
        assert result == json.dumps(expected, separators=(",", ":"))
        assert list(json.loads(result)["hoverEvent"]["contents"]) == [
            "type",
            "id",
        ]

    def test_non_ascii_text_kept_verbatim(self):
        document = _component(_quad(ENTITY))
        document["text"] = "Dorfbewohner äöü"
        result, _ = _run(document)

        assert "Dorfbewohner äöü" in result


class TestMasking:
    def test_negative_quad_equals_unsigned_quad(self):
        signed, _ = _run(_component(_quad(ENTITY)))
        unsigned, _ = _run(_component(list(struct.unpack(">4I", ENTITY.bytes))))

        assert signed == unsigned

    def test_oversized_bytes_equal_in_range_bytes(self):
        oversized = [(b & 0xFF) + 256 for b in _bytes(ENTITY)]
        in_range, _ = _run(_component(list(ENTITY.bytes)))
        shifted, _ = _run(_component(oversized))

        assert in_range == shifted


class TestNoConversion:
    def test_already_canonical_is_returned_unchanged(self):
        text = json.dumps(_component(str(ENTITY)), indent=2)
        records = []

        result = normalize(text, ALL, records.append)

        assert result is text
        assert records == []

    def test_original_formatting_kept_when_nothing_changes(self):
        text = '{ "text" : "hi",\n  "extra" : [ 1 , 2 ] }'
        assert normalize(text, ALL) is text

    @pytest.mark.parametrize("length", [3, 5])
    def test_arity_guard(self, length):
        text = json.dumps(_component(list(range(1, length + 1))))
        records = []

        assert normalize(text, ALL, records.append) is text
        assert records == []

    @pytest.mark.parametrize(
        "entity_id",
        [_quad(ENTITY), _bytes(ENTITY), _halves(ENTITY)],
        ids=["quad", "bytes", "halves"],
    )
    def test_options_disabled(self, entity_id):
        text = json.dumps(_component(entity_id))
        assert normalize(text, NONE) is text

    def test_int_array_option_only_gates_arrays(self):
        options = NormalizationOptions(convert_int_array=False, convert_uuid_object=True)
        text = json.dumps(_component(_quad(ENTITY)))
        assert normalize(text, options) is text

        result = normalize(json.dumps(_component(_halves(ENTITY))), options)
        assert json.loads(result)["hoverEvent"]["contents"]["id"] == str(ENTITY)

    def test_uuid_object_option_only_gates_objects(self):
        options = NormalizationOptions(convert_int_array=True, convert_uuid_object=False)
        text = json.dumps(_component(_halves(ENTITY)))
        assert normalize(text, options) is text

    def test_other_actions_ignored(self):
        text = json.dumps(_component(_quad(ENTITY), action="show_text"))
        assert normalize(text, ALL) is text

    def test_non_numeric_quad_ignored(self):
        text = json.dumps(_component([1, 2, "3", 4]))
        assert normalize(text, ALL) is text

    def test_uuid_object_missing_half_ignored(self):
        text = json.dumps(_component({"most": 1}))
        assert normalize(text, ALL) is text

    def test_id_outside_hover_event_ignored(self):
        text = json.dumps({"text": "x", "id": _quad(ENTITY)})
        assert normalize(text, ALL) is text

    def test_hover_event_that_is_not_an_object(self):
        text = json.dumps({"text": "x", "hoverEvent": [{"id": _quad(ENTITY)}]})
        assert normalize(text, ALL) is text

    @pytest.mark.parametrize(
        "text", ["", "not json", "{", '{"hoverEvent":', "null", "[1, 2"]
    )
    def test_malformed_input_returned_unchanged(self, text):
        assert normalize(text, ALL) is text

    def test_deeply_nested_input_returned_unchanged(self):
        text = "[" * 100_000 + "]" * 100_000
        assert normalize(text, ALL) is text

    def test_idempotent(self):
        once = normalize(json.dumps(_component(_quad(ENTITY))), ALL)
        records = []

        assert normalize(once, ALL, records.append) is once
        assert records == []


class TestNestedComponents:
    def test_multiple_hover_events_with_tooltip_arrays(self):
        ids = [uuid.uuid4() for _ in range(4)]
        document = [
            {
                "text": "first",
                "hoverEvent": {
                    "action": "show_entity",
                    "contents": [{"id": _quad(ids[0])}, {"id": _bytes(ids[1])}],
                },
            },
            {
                "text": "second",
                "extra": [
                    {
                        "text": "third",
                        "hoverEvent": {
                            "action": "show_entity",
                            "contents": [
                                {"id": _halves(ids[2])},
                                "not a tooltip",
                                {"id": _quad(ids[3])},
                            ],
                        },
                    }
                ],
            },
        ]

        result, records = _run(document)

        parsed = json.loads(result)
        first = parsed[0]["hoverEvent"]["contents"]
        third = parsed[1]["extra"][0]["hoverEvent"]["contents"]
        assert [first[0]["id"], first[1]["id"]] == [str(ids[0]), str(ids[1])]
        assert [third[0]["id"], third[2]["id"]] == [str(ids[2]), str(ids[3])]
        assert third[1] == "not a tooltip"
        assert sorted(r.normalized_uuid for r in records) == sorted(
            str(i) for i in ids
        )

    def test_hover_event_inside_tooltip_name(self):
        inner = uuid.uuid4()
        document = _component(
            _quad(ENTITY),
            name={
                "text": "nested",
                "hoverEvent": {
                    "action": "show_entity",
                    "contents": {"id": _quad(inner)},
                },
            },
        )

        result, records = _run(document)

        contents = json.loads(result)["hoverEvent"]["contents"]
        assert contents["id"] == str(ENTITY)
        assert contents["name"]["hoverEvent"]["contents"]["id"] == str(inner)
        assert len(records) == 2

    def test_hover_event_inside_show_text_value(self):
        inner = uuid.uuid4()
        document = {
            "hoverEvent": {
                "action": "show_text",
                "contents": {
                    "text": "tip",
                    "hoverEvent": {
                        "action": "show_entity",
                        "contents": {"id": _quad(inner)},
                    },
                },
            }
        }

        result, records = _run(document)

        nested = json.loads(result)["hoverEvent"]["contents"]["hoverEvent"]
        assert nested["contents"]["id"] == str(inner)
        assert len(records) == 1

    def test_each_tooltip_recorded_once(self):
        inner = uuid.uuid4()
        document = _component(
            _quad(ENTITY),
            name={
                "extra": [
                    {
                        "hoverEvent": {
                            "action": "show_entity",
                            "value": [{"id": _quad(inner)}],
                        }
                    }
                ]
            },
        )

        _, records = _run(document)

        assert [r.normalized_uuid for r in records] == [str(ENTITY), str(inner)]

    def test_hover_event_directly_on_tooltip_in_array(self):
        document = {
            "hoverEvent": {
                "action": "show_entity",
                "contents": [
                    {
                        "type": "minecraft:villager",
                        "id": "already-text",
                        "hoverEvent": {
                            "action": "show_entity",
                            "contents": {"type": "x", "id": _quad(ENTITY)},
                        },
                    }
                ],
            }
        }

        result, records = _run(document)

        tooltip = json.loads(result)["hoverEvent"]["contents"][0]
        assert tooltip["id"] == "already-text"
        assert tooltip["hoverEvent"]["contents"]["id"] == str(ENTITY)
        assert [r.normalized_uuid for r in records] == [str(ENTITY)]

    def test_hover_event_directly_on_converted_tooltip(self):
        inner = uuid.uuid4()
        document = _component(
            _halves(ENTITY),
            hoverEvent={"action": "SHOW_ENTITY", "value": {"id": _bytes(inner)}},
        )

        result, records = _run(document)

        contents = json.loads(result)["hoverEvent"]["contents"]
        assert contents["id"] == str(ENTITY)
        assert contents["hoverEvent"]["value"]["id"] == str(inner)
        assert len(records) == 2


class TestRecordSink:
    def test_no_sink(self):
        result = normalize(json.dumps(_component(_quad(ENTITY))), ALL)
        assert json.loads(result)["hoverEvent"]["contents"]["id"] == str(ENTITY)

    def test_failing_sink_does_not_abort(self):
        def sink(record):
            raise RuntimeError("disk full")

        result = normalize(json.dumps(_component(_quad(ENTITY))), ALL, sink)
        assert json.loads(result)["hoverEvent"]["contents"]["id"] == str(ENTITY)

    def test_default_options_convert_everything(self):
        result = normalize(json.dumps(_component(_halves(ENTITY))))
        assert json.loads(result)["hoverEvent"]["contents"]["id"] == str(ENTITY)
