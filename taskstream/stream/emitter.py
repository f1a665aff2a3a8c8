# stream/emitter.py
from __future__ import annotations
from typing import Any, Awaitable, Callable, Dict, Iterable, Optional, Union

from taskstream.core.config import env_flag
from taskstream.core.logging import get_logger
from taskstream.schemas.events import PlanEvent, StepEndEvent, StepStartEvent, StreamEvent, TextEvent
from taskstream.schemas.plan import PlanStep

logger = get_logger("taskstream.stream.emitter")

Send = Callable[[StreamEvent], Awaitable[None]]


class Emitter:
    """Producer-side helper: builds typed events for one task topic and hands them to ``send``."""

    def __init__(self, topic: str, send: Send):
        self.topic, self.send = topic, send

    async def emit(self, ev: StreamEvent) -> None:
        # Keep logs useful without flooding text fragments unless explicitly requested.
        if ev.type != "text" or env_flag("LOG_STREAM_TEXT"):
            logger.info("STREAM_EMIT type=%s topic=%s keys=%s", ev.type, self.topic, ",".join(sorted(ev.to_wire().keys())))
        await self.send(ev)

    async def plan(self, steps: Iterable[Union[PlanStep, Dict[str, Any]]]) -> None:
        plan = [s if isinstance(s, PlanStep) else PlanStep.model_validate(s) for s in steps]
        await self.emit(PlanEvent(plan=plan))

    async def step_start(self, step_id: str) -> None:
        await self.emit(StepStartEvent(step_id=step_id))

    async def step_end(self, step_id: str) -> None:
        await self.emit(StepEndEvent(step_id=step_id))

    async def text(self, text: str, step_id: Optional[str] = None) -> None:
        await self.emit(TextEvent(step_id=step_id, text=text))
