# schemas/events.py
from __future__ import annotations
from typing import Annotated, Any, Dict, List, Literal, Optional, Union, get_args

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, field_validator

from taskstream.schemas.plan import PlanStep

EventType = Literal["plan", "stepStart", "stepEnd", "text"]
KNOWN_EVENT_TYPES = frozenset(get_args(EventType))

DecodeReason = Literal["binary_not_text", "unsupported_frame", "invalid_json", "invalid_shape"]


class _WireModel(BaseModel):
    # wire is camelCase, attributes are snake_case; accept both on input
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    def to_wire(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class PlanEvent(_WireModel):
    type: Literal["plan"] = "plan"
    plan: List[PlanStep]

    @field_validator("plan")
    @classmethod
    def _unique_ids(cls, steps: List[PlanStep]) -> List[PlanStep]:
        seen = set()
        for s in steps:
            if s.id in seen:
                raise ValueError(f"duplicate step id: {s.id}")
            seen.add(s.id)
        return steps


class StepStartEvent(_WireModel):
    type: Literal["stepStart"] = "stepStart"
    step_id: str = Field(..., alias="stepId")


class StepEndEvent(_WireModel):
    type: Literal["stepEnd"] = "stepEnd"
    step_id: str = Field(..., alias="stepId")


class TextEvent(_WireModel):
    type: Literal["text"] = "text"
    step_id: Optional[str] = Field(None, alias="stepId")
    text: str


StreamEvent = Annotated[
    Union[PlanEvent, StepStartEvent, StepEndEvent, TextEvent],
    Field(discriminator="type"),
]

event_adapter = TypeAdapter(StreamEvent)


class UnknownEvent(BaseModel):
    """Well-formed frame with a tag this client does not understand yet."""

    model_config = ConfigDict(frozen=True)

    type: str
    payload: Dict[str, Any] = Field(default_factory=dict)


class DecodeFailure(BaseModel):
    model_config = ConfigDict(frozen=True)

    reason: DecodeReason
    detail: str = ""
    preview: str = ""
