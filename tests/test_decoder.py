"""Tests for taskstream/stream/decoder.py."""

import json

import pytest

from taskstream.schemas.events import (
    DecodeFailure,
    PlanEvent,
    StepEndEvent,
    StepStartEvent,
    TextEvent,
    UnknownEvent,
)
from taskstream.stream.decoder import decode


def test_text_frame_plan():
    frame = json.dumps({
        "type": "plan",
        "plan": [
            {"id": "s1", "title": "Scaffold", "description": "Create project", "status": "pending"},
            {"id": "s2", "title": "Implement", "description": "Write code", "status": "pending"},
        ],
    })
    ev = decode(frame)
    assert isinstance(ev, PlanEvent)
    assert [s.id for s in ev.plan] == ["s1", "s2"]
    assert ev.plan[0].title == "Scaffold"


def test_step_events_use_wire_names():
    start = decode('{"type": "stepStart", "stepId": "s1"}')
    end = decode('{"type": "stepEnd", "stepId": "s1"}')
    assert isinstance(start, StepStartEvent) and start.step_id == "s1"
    assert isinstance(end, StepEndEvent) and end.step_id == "s1"


def test_binary_frame_with_utf8_text():
    ev = decode('{"type": "text", "stepId": "s1", "text": "héllo"}'.encode("utf-8"))
    assert isinstance(ev, TextEvent)
    assert ev.text == "héllo"
    assert ev.step_id == "s1"


def test_text_without_step_id():
    ev = decode(bytearray(b'{"type": "text", "text": "free"}'))
    assert isinstance(ev, TextEvent)
    assert ev.step_id is None


def test_not_json():
    ev = decode("not json")
    assert isinstance(ev, DecodeFailure)
    assert ev.reason == "invalid_json"
    assert ev.preview == "not json"


def test_binary_that_is_not_text():
    ev = decode(b"\xff\xfe\x00garbage")
    assert isinstance(ev, DecodeFailure)
    assert ev.reason == "binary_not_text"


def test_unsupported_frame_type():
    ev = decode(12345)
    assert isinstance(ev, DecodeFailure)
    assert ev.reason == "unsupported_frame"
    assert "int" in ev.detail


@pytest.mark.parametrize(
    "frame",
    [
        "[1, 2, 3]",
        '"just a string"',
        '{"plan": []}',
        '{"type": 7}',
        '{"type": "stepStart"}',
        '{"type": "text", "stepId": "s1"}',
        '{"type": "plan", "plan": "nope"}',
    ],
)
def test_invalid_shapes(frame):
    ev = decode(frame)
    assert isinstance(ev, DecodeFailure)
    assert ev.reason == "invalid_shape"


def test_duplicate_step_ids_are_rejected():
    frame = json.dumps({"type": "plan", "plan": [{"id": "s1", "title": "a"}, {"id": "s1", "title": "b"}]})
    ev = decode(frame)
    assert isinstance(ev, DecodeFailure)
    assert ev.reason == "invalid_shape"


def test_unknown_tag_is_passed_through_not_failed():
    ev = decode('{"type": "toolCall", "name": "bash"}')
    assert isinstance(ev, UnknownEvent)
    assert ev.type == "toolCall"
    assert ev.payload["name"] == "bash"


def test_long_frame_preview_is_truncated():
    ev = decode("x" * 1000)
    assert isinstance(ev, DecodeFailure)
    assert len(ev.preview) == 120


def test_deeply_nested_json_is_a_failure():
    ev = decode("[" * 100000 + "]" * 100000)
    assert isinstance(ev, DecodeFailure)
    assert ev.reason == "invalid_json"
    assert ev.preview == "[" * 120
