"""In-memory task state store for tests and single-process use."""

from __future__ import annotations

import threading
from collections.abc import Callable
from datetime import datetime

from tab_organizer.state.base import (
    next_for_advance,
    next_for_cancel,
    next_for_reset,
    next_for_start,
)
from tab_organizer.state.models import IdleState, RunningState, TaskState


class InMemoryTaskStateStore:
    def __init__(self, initial: TaskState | None = None) -> None:
        self._state: TaskState = initial or IdleState()
        self._lock = threading.Lock()

    def get(self) -> TaskState:
        with self._lock:
            return self._state.model_copy(deep=True)

    def try_start(self, running: RunningState) -> bool:
        return self._transition(lambda current: next_for_start(current, running)) is not None

    def advance(self, run_id: str, state: TaskState) -> bool:
        return self._transition(lambda current: next_for_advance(current, run_id, state)) is not None

    def request_cancel(self, at: datetime | None = None) -> TaskState | None:
        return self._transition(lambda current: next_for_cancel(current, at))

    def reset(self) -> bool:
        return self._transition(next_for_reset) is not None

    def _transition(self, decide: Callable[[TaskState], TaskState | None]) -> TaskState | None:
        with self._lock:
            next_state = decide(self._state)
            if next_state is None:
                return None
            self._state = next_state.model_copy(deep=True)
            return next_state
