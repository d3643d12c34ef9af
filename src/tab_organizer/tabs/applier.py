"""Apply validated groups back onto the live tab set."""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field

from tab_organizer.errors import ApplyPartialFailure
from tab_organizer.models import GroupSpec, TabRecord
from tab_organizer.tabs.platform import TabNotFoundError, TabPlatform, TabPlatformError

logger = logging.getLogger(__name__)


@dataclass
class ApplyOutcome:
    created: int = 0
    skipped: list[str] = field(default_factory=list)
    failures: list[tuple[str, str]] = field(default_factory=list)

    def partial_failure(self) -> ApplyPartialFailure | None:
        if not self.failures:
            return None
        detail = "; ".join(f"{name}: {reason}" for name, reason in self.failures)
        return ApplyPartialFailure([name for name, _ in self.failures], detail=detail)


class TabMutationApplier:
    """Snapshot, ungroup and regroup tabs through a ``TabPlatform``.

    Every call tolerates tabs that were closed since the last snapshot.
    """

    def __init__(self, platform: TabPlatform) -> None:
        self.platform = platform

    async def list_tabs(self) -> list[TabRecord]:
        tabs = await self.platform.query_tabs()
        return [
            TabRecord(id=tab.id, title=tab.title or "Untitled", url=tab.url)
            for tab in tabs
            if tab.id is not None and tab.url
        ]

    async def active_tab_id(self) -> int | None:
        return await self.platform.get_active_tab_id()

    async def ungroup_all(self, on_debug: Callable[[str], None] | None = None) -> int:
        """Remove every tab in the window from its group; returns tabs ungrouped."""
        tab_ids: list[int] = []
        for group_id in await self.platform.query_groups():
            for tab in await self.platform.query_tabs_in_group(group_id):
                if tab.id is not None:
                    tab_ids.append(tab.id)
        if not tab_ids:
            return 0

        try:
            await self.platform.ungroup(tab_ids)
            return len(tab_ids)
        except TabPlatformError as exc:
            logger.info("organize event=bulk_ungroup_failed tabs=%d reason=%s", len(tab_ids), exc)

        ungrouped = 0
        for tab_id in tab_ids:
            try:
                await self.platform.ungroup([tab_id])
            except TabNotFoundError:
                logger.info("organize event=ungroup_skipped tab_id=%s reason=closed", tab_id)
                if on_debug:
                    on_debug(f"Tab {tab_id} closed before ungrouping, skipped")
                continue
            ungrouped += 1
        return ungrouped

    async def apply_groups(
        self,
        groups: Sequence[GroupSpec],
        *,
        collapse_others: bool = False,
        active_tab_id: int | None = None,
    ) -> ApplyOutcome:
        outcome = ApplyOutcome()
        for group in groups:
            live_ids = [tab_id for tab_id in group.tab_ids if await self.platform.get_tab(tab_id)]
            if not live_ids:
                outcome.skipped.append(group.name)
                continue

            collapsed = collapse_others and active_tab_id not in live_ids
            try:
                group_id = await self.platform.group_tabs(live_ids)
                await self.platform.update_group(
                    group_id,
                    title=group.name,
                    color=group.color,
                    collapsed=collapsed,
                )
            except Exception as exc:  # noqa: BLE001
                logger.warning(
                    "organize event=group_create_failed group=%r tabs=%d reason=%s",
                    group.name,
                    len(live_ids),
                    exc,
                )
                outcome.failures.append((group.name, str(exc)))
                continue
            outcome.created += 1
        return outcome
