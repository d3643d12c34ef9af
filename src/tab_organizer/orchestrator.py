"""Task orchestrator: starts, observes, and cancels organize runs.

A run is started by one caller and then lives on as a detached asyncio
task. Progress is only ever communicated through the persisted
``TaskState``, so an observer that did not start the run (or a UI that was
closed and reopened) sees the same monotonic phase sequence.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator
from dataclasses import dataclass
from datetime import datetime
from typing import Any
from uuid import uuid4

from tab_organizer.cancellation import CancellationToken
from tab_organizer.config.settings import Settings, get_settings, resolve_grouping_config
from tab_organizer.errors import AlreadyRunning, Cancelled, TabOrganizerError
from tab_organizer.graph.state import PipelineRuntime
from tab_organizer.graph.workflow import build_graph
from tab_organizer.grouping.client import GroupingClient
from tab_organizer.models import GroupingConfig
from tab_organizer.state import build_state_store
from tab_organizer.state.base import TaskStateStore
from tab_organizer.state.models import (
    CancelledState,
    CompletedState,
    ErrorState,
    RunningState,
    TaskState,
    utc_now,
)
from tab_organizer.tabs.applier import TabMutationApplier
from tab_organizer.tabs.memory import InMemoryTabPlatform
from tab_organizer.tabs.platform import TabPlatform

logger = logging.getLogger(__name__)

UNEXPECTED_ERROR_MESSAGE = "Unexpected error while organizing tabs"


@dataclass(frozen=True)
class StartAck:
    """Returned as soon as a run is accepted; the run itself continues detached."""

    run_id: str
    started_at: datetime


class TaskOrchestrator:
    def __init__(
        self,
        *,
        store: TaskStateStore,
        platform: TabPlatform,
        client: GroupingClient | None = None,
        settings: Settings | None = None,
    ) -> None:
        self.settings = settings or get_settings()
        self.store = store
        self.applier = TabMutationApplier(platform)
        self.client = client or GroupingClient.from_settings(self.settings)
        self._graph = build_graph()
        self._runs: dict[str, asyncio.Task[None]] = {}
        self._tokens: dict[str, CancellationToken] = {}

    def state(self) -> TaskState:
        return self.store.get()

    async def start(self) -> StartAck:
        """Validate config, claim the running slot, and launch the run.

        Raises ``ConfigInvalid`` without touching the stored state, and
        ``AlreadyRunning`` without modifying the existing running state.
        """
        config = resolve_grouping_config(self.settings)
        run_id = uuid4().hex
        started_at = utc_now()
        running = RunningState(run_id=run_id, phase="fetching-tabs", started_at=started_at)
        if not await asyncio.to_thread(self.store.try_start, running):
            logger.info("organize event=start_rejected reason=already_running")
            raise AlreadyRunning()

        token = CancellationToken()
        self._tokens[run_id] = token
        task = asyncio.create_task(
            self._run(run_id, started_at, config, token),
            name=f"organize-{run_id}",
        )
        self._runs[run_id] = task
        task.add_done_callback(lambda _task: self._runs.pop(run_id, None))
        logger.info("organize event=start run_id=%s model=%s", run_id, config.model)
        return StartAck(run_id=run_id, started_at=started_at)

    async def cancel(self) -> TaskState | None:
        """Persist a cancellation for the running task, if any.

        Must be awaited on the loop that runs the task; it trips the run's
        token directly.
        """
        cancelled = await asyncio.to_thread(self.store.request_cancel)
        if cancelled is None:
            return None
        token = self._tokens.get(cancelled.run_id or "")
        if token is not None:
            token.cancel()
        logger.info("organize event=cancel_requested run_id=%s", cancelled.run_id)
        return cancelled

    def dismiss(self) -> bool:
        """Return a finished task's state to idle (UI dismissal)."""
        return self.store.reset()

    async def wait(self, run_id: str) -> TaskState:
        task = self._runs.get(run_id)
        if task is not None:
            await task
        return await asyncio.to_thread(self.store.get)

    async def watch(self, interval_s: float = 0.25) -> AsyncIterator[TaskState]:
        """Yield the persisted state every time it changes. Never ends on its own."""
        last: TaskState | None = None
        while True:
            current = await asyncio.to_thread(self.store.get)
            if current != last:
                last = current
                yield current
            await asyncio.sleep(interval_s)

    async def _run(
        self,
        run_id: str,
        started_at: datetime,
        config: GroupingConfig,
        token: CancellationToken,
    ) -> None:
        debug_log: list[str] = []
        runtime = PipelineRuntime(
            run_id=run_id,
            started_at=started_at,
            applier=self.applier,
            client=self.client,
            config=config,
            store=self.store,
            token=token,
            collapse_others=self.settings.collapse_others,
            debug=debug_log.append if self.settings.debug_mode else _discard,
        )
        watcher = asyncio.create_task(self._watch_for_cancel(run_id, token))
        runtime.debug("Starting organization...")
        try:
            final = await self._run_pipeline(runtime, debug_log)
        except asyncio.CancelledError:
            # The task itself is going away; record it without awaiting.
            self._finish(run_id, self._cancelled_state(run_id))
            raise
        finally:
            watcher.cancel()
            self._tokens.pop(run_id, None)
        await asyncio.to_thread(self._finish, run_id, final)

    async def _run_pipeline(self, runtime: PipelineRuntime, debug_log: list[str]) -> TaskState:
        run_id = runtime.run_id
        try:
            result: dict[str, Any] = await self._graph.ainvoke(
                {"run_id": run_id, "runtime": runtime}
            )
        except Cancelled:
            return self._cancelled_state(run_id)
        except TabOrganizerError as exc:
            if await runtime.cancelled():
                return self._cancelled_state(run_id)
            runtime.debug(f"Error: {exc.user_message}")
            if exc.detail:
                runtime.debug(f"Detail: {exc.detail}")
            logger.warning(
                "organize event=failed run_id=%s error=%s message=%s",
                run_id,
                type(exc).__name__,
                exc.user_message,
            )
            return ErrorState(
                run_id=run_id,
                message=exc.user_message,
                debug=self._debug_payload(debug_log),
                failed_at=utc_now(),
            )
        except Exception as exc:  # noqa: BLE001
            logger.exception("organize event=failed run_id=%s error=unexpected", run_id)
            runtime.debug(f"Error: {exc}")
            return ErrorState(
                run_id=run_id,
                message=UNEXPECTED_ERROR_MESSAGE,
                debug=self._debug_payload(debug_log),
                failed_at=utc_now(),
            )

        if result.get("cancelled", False) or "outcome" not in result:
            return self._cancelled_state(run_id)
        outcome = result["outcome"]
        runtime.debug("Done!")
        logger.info(
            "organize event=completed run_id=%s groups=%d skipped=%d failed=%d",
            run_id,
            outcome.created,
            len(outcome.skipped),
            len(outcome.failures),
        )
        return CompletedState(
            run_id=run_id,
            group_count=outcome.created,
            debug=self._debug_payload(debug_log),
            completed_at=utc_now(),
        )

    async def _watch_for_cancel(self, run_id: str, token: CancellationToken) -> None:
        # Trips the local token when another process persists a cancellation,
        # so the in-flight AI call stops without waiting for a phase boundary.
        while not token.cancelled:
            await asyncio.sleep(self.settings.cancel_poll_interval_s)
            current = await asyncio.to_thread(self.store.get)
            if current.status != "running" or current.run_id != run_id:
                token.cancel()

    def _finish(self, run_id: str, state: TaskState) -> None:
        if not self.store.advance(run_id, state):
            logger.info(
                "organize event=finish_skipped run_id=%s status=%s reason=no_longer_running",
                run_id,
                state.status,
            )

    def _cancelled_state(self, run_id: str) -> CancelledState:
        logger.info("organize event=cancelled run_id=%s", run_id)
        return CancelledState(run_id=run_id, cancelled_at=utc_now())

    def _debug_payload(self, debug_log: list[str]) -> list[str] | None:
        if not self.settings.debug_mode:
            return None
        return list(debug_log)


def _discard(_message: str) -> None:
    return None


def build_orchestrator(
    settings: Settings | None = None,
    *,
    platform: TabPlatform | None = None,
) -> TaskOrchestrator:
    """Wire an orchestrator from settings; the tab platform defaults to ``tabs_file``."""
    settings = settings or get_settings()
    if platform is None:
        if settings.tabs_file:
            platform = InMemoryTabPlatform.from_export(settings.tabs_file)
        else:
            platform = InMemoryTabPlatform()
    return TaskOrchestrator(
        store=build_state_store(settings),
        platform=platform,
        settings=settings,
    )
