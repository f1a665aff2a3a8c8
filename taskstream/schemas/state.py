# schemas/state.py
from __future__ import annotations
from enum import Enum
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

from taskstream.schemas.plan import PlanStep


class ConnectionState(str, Enum):
    IDLE = "idle"
    CONNECTING = "connecting"
    OPEN = "open"
    CLOSED = "closed"
    ERRORED = "errored"


class TaskSessionState(str, Enum):
    IDLE = "idle"
    SUBMITTING = "submitting"
    WAITING_FOR_PLAN = "waiting_for_plan"
    EXECUTING = "executing"
    STOPPED = "stopped"
    FAILED = "failed"


class Message(BaseModel):
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    id: int
    type: Literal["user", "agent"]
    content: str
    step_id: Optional[str] = Field(None, alias="stepId")


class StreamState(BaseModel):
    model_config = ConfigDict(frozen=True)

    plan: List[PlanStep] = Field(default_factory=list)
    messages: List[Message] = Field(default_factory=list)
    waiting_for_plan: bool = False


class Notice(BaseModel):
    title: str
    description: str = ""
    variant: Literal["default", "destructive"] = "default"


class StreamView(BaseModel):
    connection: ConnectionState
    session: TaskSessionState
    is_connected: bool
    is_submitting: bool
    is_executing: bool
    is_waiting_for_plan: bool
    completed_steps: int
    total_steps: int
    progress: float
