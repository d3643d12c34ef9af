"""Typed state contract for the organize LangGraph workflow."""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime
from typing import TypedDict

from tab_organizer.cancellation import CancellationToken
from tab_organizer.grouping.client import GroupingClient
from tab_organizer.models import GroupingConfig, GroupSpec, TabRecord
from tab_organizer.state.base import TaskStateStore
from tab_organizer.state.models import RunningState, TaskPhase
from tab_organizer.tabs.applier import ApplyOutcome, TabMutationApplier


def _discard(_message: str) -> None:
    return None


@dataclass
class PipelineRuntime:
    """Collaborators and cancellation sources for one task run."""

    run_id: str
    started_at: datetime
    applier: TabMutationApplier
    client: GroupingClient
    config: GroupingConfig
    store: TaskStateStore
    token: CancellationToken = field(default_factory=CancellationToken)
    collapse_others: bool = False
    debug: Callable[[str], None] = _discard

    async def cancelled(self) -> bool:
        """True once either the local token or the persisted state says stop."""
        if self.token.cancelled:
            return True
        current = await asyncio.to_thread(self.store.get)
        if current.status == "running" and current.run_id == self.run_id:
            return False
        self.token.cancel()
        return True

    async def enter_phase(self, phase: TaskPhase) -> bool:
        """Persist ``phase``; False means the run was cancelled and must stop."""
        if await self.cancelled():
            return False
        entered = await asyncio.to_thread(
            self.store.advance,
            self.run_id,
            RunningState(run_id=self.run_id, phase=phase, started_at=self.started_at),
        )
        if not entered:
            self.token.cancel()
        return entered


class OrganizeState(TypedDict, total=False):
    run_id: str
    runtime: PipelineRuntime
    tabs: list[TabRecord]
    groups: list[GroupSpec]
    active_tab_id: int | None
    outcome: ApplyOutcome
    cancelled: bool
