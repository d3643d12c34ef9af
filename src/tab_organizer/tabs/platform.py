"""Browser tab platform surface consumed by the applier."""

from __future__ import annotations

from typing import Protocol

from pydantic import BaseModel


class TabPlatformError(Exception):
    """A tab platform call failed."""


class TabNotFoundError(TabPlatformError):
    """A tab identifier no longer resolves (the tab was closed)."""

    def __init__(self, tab_id: int) -> None:
        self.tab_id = tab_id
        super().__init__(f"No tab with id: {tab_id}")


class PlatformTab(BaseModel):
    """Tab as reported by the platform for the active window."""

    id: int | None = None
    title: str | None = None
    url: str | None = None
    group_id: int | None = None
    active: bool = False


class TabPlatform(Protocol):
    async def query_tabs(self) -> list[PlatformTab]: ...

    async def get_tab(self, tab_id: int) -> PlatformTab | None: ...

    async def get_active_tab_id(self) -> int | None: ...

    async def query_groups(self) -> list[int]: ...

    async def query_tabs_in_group(self, group_id: int) -> list[PlatformTab]: ...

    async def group_tabs(self, tab_ids: list[int]) -> int: ...

    async def update_group(
        self,
        group_id: int,
        *,
        title: str,
        color: str,
        collapsed: bool,
    ) -> None: ...

    async def ungroup(self, tab_ids: list[int]) -> None: ...
