"""Fetch node: snapshot the tabs of the active window."""

from __future__ import annotations

from tab_organizer.errors import NoTabs
from tab_organizer.graph.state import OrganizeState


async def run(state: OrganizeState) -> OrganizeState:
    runtime = state["runtime"]
    if not await runtime.enter_phase("fetching-tabs"):
        return {"cancelled": True}

    runtime.debug("Fetching tabs...")
    tabs = await runtime.applier.list_tabs()
    runtime.debug(f"Found {len(tabs)} tabs")
    if not tabs:
        raise NoTabs()
    return {"tabs": tabs, "cancelled": await runtime.cancelled()}
