# session/reducer.py
from __future__ import annotations
from typing import Any, List, Optional, Tuple

from taskstream.core.constants import GREETING
from taskstream.schemas.events import PlanEvent, StepEndEvent, StepStartEvent, TextEvent
from taskstream.schemas.plan import PlanStep, StepStatus, can_advance
from taskstream.schemas.state import Message, StreamState


def initial_state(greeting: Optional[str] = GREETING) -> StreamState:
    if not greeting:
        return StreamState()
    return StreamState(messages=[Message(id=1, type="agent", content=greeting)])


def _next_id(messages: List[Message]) -> int:
    return messages[-1].id + 1 if messages else 1


def _set_status(plan: List[PlanStep], step_id: str, status: StepStatus) -> List[PlanStep]:
    return [
        s.model_copy(update={"status": status}) if s.id == step_id and can_advance(s.status, status) else s
        for s in plan
    ]


def _append_text(messages: List[Message], ev: TextEvent) -> List[Message]:
    last = messages[-1] if messages else None
    if last is not None and last.type == "agent" and last.step_id == ev.step_id:
        return [*messages[:-1], last.model_copy(update={"content": last.content + ev.text})]
    return [*messages, Message(id=_next_id(messages), type="agent", content=ev.text, step_id=ev.step_id)]


def reduce(state: StreamState, event: Any) -> StreamState:
    """Fold one decoded event into the plan/message state.

    Pure: the input state is never mutated, and anything not understood
    (unknown tags, stale step ids) returns the state unchanged.
    """
    if isinstance(event, PlanEvent):
        plan = [s if s.status == "pending" else s.model_copy(update={"status": "pending"}) for s in event.plan]
        return state.model_copy(update={"plan": plan, "waiting_for_plan": False})
    if isinstance(event, (StepStartEvent, StepEndEvent)):
        status: StepStatus = "running" if isinstance(event, StepStartEvent) else "completed"
        if not any(s.id == event.step_id for s in state.plan):
            return state
        return state.model_copy(update={"plan": _set_status(state.plan, event.step_id, status)})
    if isinstance(event, TextEvent):
        return state.model_copy(update={"messages": _append_text(state.messages, event)})
    return state


def add_user_message(state: StreamState, content: str) -> StreamState:
    msg = Message(id=_next_id(state.messages), type="user", content=content)
    return state.model_copy(update={"messages": [*state.messages, msg]})


def add_agent_message(state: StreamState, content: str) -> StreamState:
    msg = Message(id=_next_id(state.messages), type="agent", content=content)
    return state.model_copy(update={"messages": [*state.messages, msg]})


def clear_plan(state: StreamState) -> StreamState:
    return state.model_copy(update={"plan": [], "waiting_for_plan": False})


def begin_submission(state: StreamState, content: str) -> StreamState:
    state = add_user_message(state, content)
    return state.model_copy(update={"plan": [], "waiting_for_plan": True})


def progress(state: StreamState) -> Tuple[int, int]:
    done = sum(1 for s in state.plan if s.status == "completed")
    return done, len(state.plan)


def progress_fraction(state: StreamState) -> float:
    done, total = progress(state)
    return done / total if total else 0.0


def plan_finished(state: StreamState) -> bool:
    done, total = progress(state)
    return total > 0 and done == total
