# stream/decoder.py
from __future__ import annotations
import json
from typing import Any, Union

from pydantic import ValidationError

from taskstream.core.constants import FRAME_PREVIEW_CHARS
from taskstream.core.logging import get_logger
from taskstream.schemas.events import (
    KNOWN_EVENT_TYPES,
    DecodeFailure,
    DecodeReason,
    StreamEvent,
    UnknownEvent,
    event_adapter,
)

logger = get_logger("taskstream.stream.decoder")

Decoded = Union[StreamEvent, UnknownEvent, DecodeFailure]


def _preview(raw: Any) -> str:
    s = raw if isinstance(raw, str) else repr(raw)
    return s[:FRAME_PREVIEW_CHARS]


def _fail(reason: DecodeReason, detail: str, raw: Any) -> DecodeFailure:
    failure = DecodeFailure(reason=reason, detail=detail, preview=_preview(raw))
    logger.warning("DECODE_FAIL reason=%s detail=%s frame=%r", reason, detail, failure.preview)
    return failure


def decode(frame: Any) -> Decoded:
    """Turn one transport frame into a StreamEvent.

    Text frames are parsed as JSON directly, binary frames must carry UTF-8 text.
    Nothing here raises: bad frames come back as a DecodeFailure so the caller
    can skip them and keep reading.
    """
    if isinstance(frame, (bytes, bytearray, memoryview)):
        try:
            text = bytes(frame).decode("utf-8")
        except UnicodeDecodeError as e:
            return _fail("binary_not_text", str(e), frame)
    elif isinstance(frame, str):
        text = frame
    else:
        return _fail("unsupported_frame", type(frame).__name__, frame)

    try:
        data = json.loads(text)
    except (json.JSONDecodeError, RecursionError) as e:
        return _fail("invalid_json", getattr(e, "msg", str(e)), text)

    if not isinstance(data, dict) or not isinstance(data.get("type"), str):
        return _fail("invalid_shape", "expected an object with a string 'type'", text)

    if data["type"] not in KNOWN_EVENT_TYPES:
        logger.debug("ignoring unknown event type=%s", data["type"])
        return UnknownEvent(type=data["type"], payload=data)

    try:
        return event_adapter.validate_python(data)
    except ValidationError as e:
        return _fail("invalid_shape", f"{e.error_count()} validation error(s) for {data['type']}", text)
