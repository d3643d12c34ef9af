"""Persisted task state: a tagged union over the organize task lifecycle."""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, Field, TypeAdapter

TaskPhase = Literal["fetching-tabs", "ungrouping", "calling-ai", "creating-groups"]
PHASES: tuple[TaskPhase, ...] = ("fetching-tabs", "ungrouping", "calling-ai", "creating-groups")


def utc_now() -> datetime:
    return datetime.now(tz=UTC)


class IdleState(BaseModel):
    status: Literal["idle"] = "idle"


class RunningState(BaseModel):
    status: Literal["running"] = "running"
    run_id: str
    phase: TaskPhase
    started_at: datetime


class CompletedState(BaseModel):
    status: Literal["completed"] = "completed"
    run_id: str
    group_count: int
    debug: list[str] | None = None
    completed_at: datetime


class ErrorState(BaseModel):
    status: Literal["error"] = "error"
    run_id: str | None = None
    message: str
    debug: list[str] | None = None
    failed_at: datetime


class CancelledState(BaseModel):
    status: Literal["cancelled"] = "cancelled"
    run_id: str | None = None
    cancelled_at: datetime


TaskState = Annotated[
    Union[IdleState, RunningState, CompletedState, ErrorState, CancelledState],
    Field(discriminator="status"),
]

_TASK_STATE_ADAPTER: TypeAdapter[TaskState] = TypeAdapter(TaskState)


def load_state(raw: Any) -> TaskState:
    """Parse a stored payload (JSON text or decoded object) into a TaskState."""
    if raw is None:
        return IdleState()
    if isinstance(raw, (str, bytes)):
        return _TASK_STATE_ADAPTER.validate_json(raw)
    return _TASK_STATE_ADAPTER.validate_python(raw)


def dump_state(state: TaskState) -> dict[str, Any]:
    return state.model_dump(mode="json", exclude_none=True)
