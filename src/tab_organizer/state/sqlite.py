"""SQLite task state store shared by processes on the same machine."""

from __future__ import annotations

import json
import sqlite3
import threading
from collections.abc import Callable
from datetime import datetime
from pathlib import Path

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

DEFAULT_STATE_KEY = "organize_task"


class SqliteTaskStateStore:
    """Single keyed row; transitions run inside ``BEGIN IMMEDIATE``."""

    def __init__(self, path: str | Path, *, key: str = DEFAULT_STATE_KEY) -> None:
        self.path = Path(path).expanduser()
        self.key = key
        self._lock = threading.Lock()
        self.migrate()

    def migrate(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        conn = self._connect()
        try:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS task_state (
                    state_key TEXT PRIMARY KEY,
                    state_json TEXT NOT NULL,
                    updated_at TEXT NOT NULL
                )
                """)
        finally:
            conn.close()

    def get(self) -> TaskState:
        conn = self._connect()
        try:
            return self._read(conn)
        finally:
            conn.close()

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
            conn = self._connect()
            try:
                # IMMEDIATE takes the write lock up front so the read-decide-write
                # is atomic across processes too.
                conn.execute("BEGIN IMMEDIATE")
                next_state = decide(self._read(conn))
                if next_state is not None:
                    conn.execute(
                        """
                        INSERT INTO task_state (state_key, state_json, updated_at)
                        VALUES (?, ?, ?)
                        ON CONFLICT(state_key) DO UPDATE SET
                            state_json = excluded.state_json,
                            updated_at = excluded.updated_at
                        """,
                        (self.key, json.dumps(dump_state(next_state)), utc_now().isoformat()),
                    )
                conn.execute("COMMIT")
            except Exception:
                if conn.in_transaction:
                    conn.execute("ROLLBACK")
                raise
            finally:
                conn.close()
        return next_state

    def _read(self, conn: sqlite3.Connection) -> TaskState:
        row = conn.execute(
            "SELECT state_json FROM task_state WHERE state_key = ?",
            (self.key,),
        ).fetchone()
        if row is None:
            return IdleState()
        return load_state(row[0])

    def _connect(self) -> sqlite3.Connection:
        # Autocommit mode; transactions are opened explicitly.
        return sqlite3.connect(self.path, timeout=5.0, isolation_level=None)
