"""Persisted task state and its storage backends."""

from __future__ import annotations

from typing import Any

from tab_organizer.state.base import TaskStateStore
from tab_organizer.state.memory import InMemoryTaskStateStore
from tab_organizer.state.models import (
    PHASES,
    CancelledState,
    CompletedState,
    ErrorState,
    IdleState,
    RunningState,
    TaskPhase,
    TaskState,
    dump_state,
    load_state,
    utc_now,
)
from tab_organizer.state.postgres import PostgresTaskStateStore
from tab_organizer.state.sqlite import SqliteTaskStateStore


def build_state_store(settings: Any) -> TaskStateStore:
    backend = settings.state_backend
    if backend == "sqlite":
        return SqliteTaskStateStore(settings.state_path)
    if backend == "postgres":
        return PostgresTaskStateStore(settings.database_url)
    return InMemoryTaskStateStore()


__all__ = [
    "PHASES",
    "CancelledState",
    "CompletedState",
    "ErrorState",
    "IdleState",
    "InMemoryTaskStateStore",
    "PostgresTaskStateStore",
    "RunningState",
    "SqliteTaskStateStore",
    "TaskPhase",
    "TaskState",
    "TaskStateStore",
    "build_state_store",
    "dump_state",
    "load_state",
    "utc_now",
]
