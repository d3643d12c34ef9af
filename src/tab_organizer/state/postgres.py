"""PostgreSQL task state store for deployments where observers run elsewhere."""

from __future__ import annotations

import threading
from collections.abc import Callable
from datetime import datetime
from typing import Any

from tab_organizer.state.base import (
    next_for_advance,
    next_for_cancel,
    next_for_reset,
    next_for_start,
)
from tab_organizer.state.models import (
    IdleState,
    RunningState,
    TaskState,
    dump_state,
    load_state,
    utc_now,
)
from tab_organizer.state.sqlite import DEFAULT_STATE_KEY


class PostgresTaskStateStore:
    """Single keyed row; transitions lock it with ``SELECT ... FOR UPDATE``."""

    def __init__(self, database_url: str, *, key: str = DEFAULT_STATE_KEY) -> None:
        if not database_url:
            raise ValueError("TAB_ORGANIZER_DATABASE_URL is required")
        self.database_url = database_url
        self.key = key
        self._lock = threading.Lock()
        self._psycopg, self._dict_row, self._json_wrapper = self._load_psycopg()
        self.migrate()

    def migrate(self) -> None:
        with self._lock, self._connect() as conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS task_state (
                    state_key TEXT PRIMARY KEY,
                    state_json JSONB NOT NULL,
                    updated_at TIMESTAMPTZ NOT NULL
                )
                """)
            conn.execute(
                """
                INSERT INTO task_state (state_key, state_json, updated_at)
                VALUES (%s, %s, %s)
                ON CONFLICT (state_key) DO NOTHING
                """,
                (self.key, self._json_wrapper(dump_state(IdleState())), utc_now()),
            )
            conn.commit()

    def get(self) -> TaskState:
        with self._connect() as conn:
            row = conn.execute(
                "SELECT state_json FROM task_state WHERE state_key = %s",
                (self.key,),
            ).fetchone()
        return load_state(row["state_json"] if row else None)

    def try_start(self, running: RunningState) -> bool:
        return self._transition(lambda current: next_for_start(current, running)) is not None

    def advance(self, run_id: str, state: TaskState) -> bool:
        return self._transition(lambda current: next_for_advance(current, run_id, state)) is not None

    def request_cancel(self, at: datetime | None = None) -> TaskState | None:
        return self._transition(lambda current: next_for_cancel(current, at))

    def reset(self) -> bool:
        return self._transition(next_for_reset) is not None

    def _transition(self, decide: Callable[[TaskState], TaskState | None]) -> TaskState | None:
        with self._lock, self._connect() as conn:
            row = conn.execute(
                "SELECT state_json FROM task_state WHERE state_key = %s FOR UPDATE",
                (self.key,),
            ).fetchone()
            next_state = decide(load_state(row["state_json"] if row else None))
            if next_state is not None:
                conn.execute(
                    """
                    UPDATE task_state
                    SET state_json = %s,
                        updated_at = %s
                    WHERE state_key = %s
                    """,
                    (self._json_wrapper(dump_state(next_state)), utc_now(), self.key),
                )
            conn.commit()
        return next_state

    def _connect(self) -> Any:
        return self._psycopg.connect(self.database_url, row_factory=self._dict_row)

    @staticmethod
    def _load_psycopg() -> tuple[Any, Any, Any]:
        try:
            import psycopg
            from psycopg.rows import dict_row
            from psycopg.types.json import Json
        except ImportError as exc:  # pragma: no cover - exercised only without dependency
            raise RuntimeError(
                "PostgreSQL backend requires psycopg. Install with: "
                'python -m pip install "tab-organizer[postgres]"'
            ) from exc
        return psycopg, dict_row, Json
