"""In-process tab platform backed by a tab export snapshot."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from pydantic import BaseModel

from tab_organizer.tabs.platform import PlatformTab, TabNotFoundError, TabPlatformError


class TabGroupInfo(BaseModel):
    group_id: int
    title: str = ""
    color: str = "grey"
    collapsed: bool = False


class InMemoryTabPlatform:
    """One browser window held in memory.

    Mirrors the browser tab-group API closely enough to run the full
    organize pipeline offline: bulk ``ungroup`` fails when any id is stale,
    a group disappears once its last tab leaves it.
    """

    def __init__(self, tabs: list[PlatformTab] | None = None) -> None:
        self._tabs: dict[int, PlatformTab] = {}
        self._groups: dict[int, TabGroupInfo] = {}
        self._next_group_id = 1
        for tab in tabs or []:
            if tab.id is None:
                continue
            self._tabs[tab.id] = tab.model_copy()
            if tab.group_id is not None and tab.group_id not in self._groups:
                self._groups[tab.group_id] = TabGroupInfo(group_id=tab.group_id)
                self._next_group_id = max(self._next_group_id, tab.group_id + 1)

    @classmethod
    def from_export(cls, path: str | Path) -> InMemoryTabPlatform:
        """Load a tab export: a list of windows with ``tabs``, or a flat tab list."""
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
        return cls(load_export_tabs(data))

    async def query_tabs(self) -> list[PlatformTab]:
        return [tab.model_copy() for tab in self._tabs.values()]

    async def get_tab(self, tab_id: int) -> PlatformTab | None:
        tab = self._tabs.get(tab_id)
        return tab.model_copy() if tab else None

    async def get_active_tab_id(self) -> int | None:
        for tab in self._tabs.values():
            if tab.active:
                return tab.id
        return None

    async def query_groups(self) -> list[int]:
        return sorted(self._groups)

    async def query_tabs_in_group(self, group_id: int) -> list[PlatformTab]:
        return [tab.model_copy() for tab in self._tabs.values() if tab.group_id == group_id]

    async def group_tabs(self, tab_ids: list[int]) -> int:
        if not tab_ids:
            raise TabPlatformError("At least one tab id is required")
        self._require(tab_ids)
        group_id = self._next_group_id
        self._next_group_id += 1
        self._groups[group_id] = TabGroupInfo(group_id=group_id)
        for tab_id in tab_ids:
            self._tabs[tab_id].group_id = group_id
        self._drop_empty_groups()
        return group_id

    async def update_group(
        self,
        group_id: int,
        *,
        title: str,
        color: str,
        collapsed: bool,
    ) -> None:
        group = self._groups.get(group_id)
        if group is None:
            raise TabPlatformError(f"No group with id: {group_id}")
        group.title = title
        group.color = color
        group.collapsed = collapsed

    async def ungroup(self, tab_ids: list[int]) -> None:
        self._require(tab_ids)
        for tab_id in tab_ids:
            self._tabs[tab_id].group_id = None
        self._drop_empty_groups()

    def close_tab(self, tab_id: int) -> None:
        self._tabs.pop(tab_id, None)
        self._drop_empty_groups()

    def activate(self, tab_id: int) -> None:
        self._require([tab_id])
        for tab in self._tabs.values():
            tab.active = tab.id == tab_id

    def groups(self) -> list[TabGroupInfo]:
        return [group.model_copy() for group in self._groups.values()]

    def tabs_in(self, group_id: int) -> list[int]:
        return [tab_id for tab_id, tab in self._tabs.items() if tab.group_id == group_id]

    def _require(self, tab_ids: list[int]) -> None:
        for tab_id in tab_ids:
            if tab_id not in self._tabs:
                raise TabNotFoundError(tab_id)

    def _drop_empty_groups(self) -> None:
        in_use = {tab.group_id for tab in self._tabs.values() if tab.group_id is not None}
        for group_id in list(self._groups):
            if group_id not in in_use:
                del self._groups[group_id]


def load_export_tabs(data: Any) -> list[PlatformTab]:
    """Read tabs from an export payload; tabs without an ``id`` get their position.

    ``groupId`` (or ``group_id``) is kept so existing groups survive the load.
    """
    if isinstance(data, dict):
        data = data.get("windows", data.get("tabs", []))
    if not isinstance(data, list):
        raise ValueError("Tab export must be a list of windows or tabs")

    raw_tabs: list[dict[str, Any]] = []
    for item in data:
        if not isinstance(item, dict):
            continue
        if isinstance(item.get("tabs"), list):
            raw_tabs.extend(t for t in item["tabs"] if isinstance(t, dict))
        else:
            raw_tabs.append(item)

    tabs: list[PlatformTab] = []
    for position, raw in enumerate(raw_tabs):
        tab_id = raw.get("id", position)
        tabs.append(
            PlatformTab(
                id=tab_id if isinstance(tab_id, int) else position,
                title=raw.get("title"),
                url=raw.get("url"),
                group_id=_export_group_id(raw.get("groupId", raw.get("group_id"))),
                active=bool(raw.get("active", False)),
            )
        )
    return tabs


def _export_group_id(value: Any) -> int | None:
    # Browsers export ungrouped tabs with groupId -1.
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        return None
    return value
