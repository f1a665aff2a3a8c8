# session/controller.py
from __future__ import annotations
import asyncio
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Optional, Protocol, Set

from taskstream.core.constants import GREETING, STOPPED_MESSAGE
from taskstream.core.logging import get_logger
from taskstream.schemas.events import PlanEvent
from taskstream.schemas.state import (
    ConnectionState,
    Notice,
    StreamState,
    StreamView,
    TaskSessionState,
)
from taskstream.session.identity import AgentSession
from taskstream.session.reducer import (
    add_agent_message,
    begin_submission,
    clear_plan,
    initial_state,
    plan_finished,
    progress,
    progress_fraction,
    reduce,
)
from taskstream.stream.subscriber import ConnectError, SubscriberClient

logger = get_logger("taskstream.session.controller")

ACTIVE = (TaskSessionState.WAITING_FOR_PLAN, TaskSessionState.EXECUTING)


class TaskApi(Protocol):
    async def submit_message(self, message: str, agent_id: str) -> str: ...

    async def cancel_task(self, agent_id: str) -> Optional[str]: ...


Subscribe = Callable[..., SubscriberClient]


@dataclass
class _Submission:
    text: str
    snapshot: StreamState
    task: Optional[asyncio.Task] = None
    aborted: bool = False


class TaskStreamController:
    """Binds task submission, the event subscription and cancellation into one session.

    The controller is the only writer of ``state``; ``stream`` only changes through
    the reducer. At most one subscription is live at a time: events from a
    subscription that was closed or replaced are dropped by generation.
    """

    def __init__(
        self,
        api: TaskApi,
        session: Optional[AgentSession] = None,
        subscribe: Subscribe = SubscriberClient,
        on_change: Optional[Callable[[StreamView], None]] = None,
        on_notice: Optional[Callable[[Notice], None]] = None,
        greeting: Optional[str] = GREETING,
    ):
        self.api = api
        self.session = session or AgentSession()
        self.state = TaskSessionState.IDLE
        self.stream = initial_state(greeting)
        self.draft = ""
        self.task_id: Optional[str] = None
        self._subscribe = subscribe
        self._on_change = on_change
        self._on_notice = on_notice
        self._connection: Optional[SubscriberClient] = None
        self._generation = 0
        self._submission: Optional[_Submission] = None
        self._background: Set[asyncio.Task] = set()

    @property
    def connection_state(self) -> ConnectionState:
        return self._connection.state if self._connection is not None else ConnectionState.IDLE

    def view(self) -> StreamView:
        conn = self.connection_state
        done, total = progress(self.stream)
        return StreamView(
            connection=conn,
            session=self.state,
            is_connected=conn is ConnectionState.OPEN,
            is_submitting=self.state is TaskSessionState.SUBMITTING,
            is_executing=self.state in ACTIVE,
            is_waiting_for_plan=self.stream.waiting_for_plan,
            completed_steps=done,
            total_steps=total,
            progress=progress_fraction(self.stream),
        )

    # ---- commands ----

    async def submit(self, text: Optional[str] = None) -> bool:
        """Submit ``text`` (or the current draft) and subscribe to the resulting task.

        Returns True once the subscription is open. Failures roll the message log
        and draft back to how they were before the call.
        """
        text = self.draft if text is None else text
        if not text.strip():
            return False

        if self._submission is not None:
            self._abort_submission(rollback=True)
        await self._disconnect()

        sub = _Submission(text=text, snapshot=self.stream)
        self._submission = sub
        self.stream = begin_submission(self.stream, text)
        self.draft = ""
        self.task_id = None
        self._set_state(TaskSessionState.SUBMITTING)

        sub.task = asyncio.create_task(self.api.submit_message(text, self.session.agent_id))
        try:
            task_id = await sub.task
        except asyncio.CancelledError:
            if sub.aborted:
                return False
            if self._submission is sub:
                self._abort_submission(rollback=True)
            raise
        except Exception as e:
            if sub.aborted:
                return False
            logger.error("SUBMIT_FAIL agent_id=%s err=%s", self.session.agent_id, e)
            self._submission = None
            self._rollback(sub)
            self._notify(Notice(
                title="Error",
                description="Failed to submit your request. Please try again.",
                variant="destructive",
            ))
            return False

        if sub.aborted:
            return False
        self._submission = None
        self.task_id = task_id
        self._set_state(TaskSessionState.WAITING_FOR_PLAN)
        return await self._connect(task_id)

    async def stop(self) -> None:
        if self.state in (TaskSessionState.IDLE, TaskSessionState.STOPPED) and self._submission is None:
            return
        if self._submission is not None:
            # nothing reached the stream yet: retract the message and restore the draft
            self._abort_submission(rollback=True)
            await self._disconnect()
            self._spawn(self._request_cancel())
            return
        await self._disconnect()

        self.stream = add_agent_message(clear_plan(self.stream), STOPPED_MESSAGE)
        self._set_state(TaskSessionState.STOPPED)
        self._notify(Notice(title="Execution Stopped", description="The coding agent execution has been stopped."))
        self._spawn(self._request_cancel())

    async def aclose(self) -> None:
        """Release everything: in-flight submission, subscription, pending cancel requests."""
        if self._submission is not None:
            self._abort_submission(rollback=True)
        await self._disconnect()
        pending = list(self._background)
        for t in pending:
            t.cancel()
        if pending:
            await asyncio.wait(pending)

    async def drain(self) -> None:
        """Wait for fire-and-forget work (cancel requests, socket cleanup) to finish."""
        while self._background:
            await asyncio.wait(list(self._background))

    # ---- subscription ----

    async def _connect(self, task_id: str) -> bool:
        self._generation += 1
        gen = self._generation
        conn = self._subscribe(
            task_id,
            on_event=lambda ev: self._handle_event(gen, ev),
            on_error=lambda err: self._handle_lost(gen, err),
        )
        self._connection = conn
        try:
            await conn.open()
        except ConnectError as e:
            if gen != self._generation:
                return False
            logger.error("SUBSCRIBE_FAIL task_id=%s err=%s", task_id, e)
            self._set_state(TaskSessionState.FAILED)
            self._notify(Notice(
                title="Connection failed",
                description="Could not connect to the task stream. Submit again to retry.",
                variant="destructive",
            ))
            return False

        if gen != self._generation:
            return False
        self._changed()
        self._notify(Notice(
            title="Request Submitted",
            description="Your coding request has been submitted and is being processed.",
        ))
        return True

    async def _disconnect(self) -> None:
        self._generation += 1
        if self._connection is not None:
            await self._connection.close()

    def _handle_event(self, gen: int, ev: Any) -> None:
        if gen != self._generation:
            return
        self.stream = reduce(self.stream, ev)
        if isinstance(ev, PlanEvent) and self.state is TaskSessionState.WAITING_FOR_PLAN:
            logger.info("PLAN_RECEIVED task_id=%s steps=%d", self.task_id, len(ev.plan))
            self._set_state(TaskSessionState.EXECUTING)
        else:
            self._changed()

    def _handle_lost(self, gen: int, err: Exception) -> None:
        if gen != self._generation:
            return
        if self._connection is not None:
            self._spawn(self._connection.close())
        if self.state not in ACTIVE:
            self._changed()
            return
        if plan_finished(self.stream):
            logger.info("TASK_DONE task_id=%s", self.task_id)
            self._set_state(TaskSessionState.IDLE)
            return
        logger.warning("CONNECTION_LOST task_id=%s err=%s", self.task_id, err)
        self._set_state(TaskSessionState.FAILED)
        self._notify(Notice(
            title="Connection lost",
            description="Lost connection to the task stream. Submit a new request to continue.",
            variant="destructive",
        ))

    # ---- helpers ----

    def _abort_submission(self, rollback: bool) -> None:
        sub, self._submission = self._submission, None
        if sub is None:
            return
        sub.aborted = True
        if sub.task is not None:
            sub.task.cancel()
        if rollback:
            self._rollback(sub)

    def _rollback(self, sub: _Submission) -> None:
        self.stream = sub.snapshot
        self.draft = sub.text
        self._set_state(TaskSessionState.IDLE)

    async def _request_cancel(self) -> None:
        try:
            await self.api.cancel_task(self.session.agent_id)
        except Exception as e:
            logger.error("CANCEL_FAIL agent_id=%s err=%s", self.session.agent_id, e)
            self._notify(Notice(
                title="Error",
                description="Failed to stop the execution. Please try again.",
                variant="destructive",
            ))

    def _spawn(self, coro: Awaitable[Any]) -> None:
        task = asyncio.ensure_future(coro)
        self._background.add(task)
        task.add_done_callback(self._background.discard)

    def _set_state(self, state: TaskSessionState) -> None:
        if state is not self.state:
            logger.info("SESSION_STATE %s -> %s agent_id=%s", self.state.value, state.value, self.session.agent_id)
        self.state = state
        self._changed()

    def _changed(self) -> None:
        if self._on_change is not None:
            self._on_change(self.view())

    def _notify(self, notice: Notice) -> None:
        if notice.variant == "destructive":
            logger.warning("NOTICE %s: %s", notice.title, notice.description)
        if self._on_notice is not None:
            self._on_notice(notice)
