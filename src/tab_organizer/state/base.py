"""Storage interface for the single persisted task state record.

The orchestrator is the only writer of lifecycle transitions. The one
exception is ``request_cancel``, which any observer may call. Each backend
applies the transition rules below atomically (read, decide, write).
"""

from __future__ import annotations

from datetime import datetime
from typing import Protocol

from tab_organizer.state.models import (
    CancelledState,
    IdleState,
    RunningState,
    TaskState,
    utc_now,
)


class TaskStateStore(Protocol):
    def get(self) -> TaskState: ...

    def try_start(self, running: RunningState) -> bool: ...

    def advance(self, run_id: str, state: TaskState) -> bool: ...

    def request_cancel(self, at: datetime | None = None) -> TaskState | None: ...

    def reset(self) -> bool: ...


def next_for_start(current: TaskState, running: RunningState) -> TaskState | None:
    if current.status == "running":
        return None
    return running


def next_for_advance(current: TaskState, run_id: str, state: TaskState) -> TaskState | None:
    # Only the run that owns the running record may move it forward; this
    # is what keeps a cancelled state from being overwritten later.
    if current.status != "running" or current.run_id != run_id:
        return None
    return state


def next_for_cancel(current: TaskState, at: datetime | None) -> TaskState | None:
    if current.status != "running":
        return None
    return CancelledState(run_id=current.run_id, cancelled_at=at or utc_now())


def next_for_reset(current: TaskState) -> TaskState | None:
    if current.status == "running":
        return None
    return IdleState()
