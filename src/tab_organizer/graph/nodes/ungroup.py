"""Ungroup node: clear existing groups before regrouping.

Not rolled back if a later phase fails; tabs are then left ungrouped.
"""

from __future__ import annotations

from tab_organizer.graph.state import OrganizeState


async def run(state: OrganizeState) -> OrganizeState:
    runtime = state["runtime"]
    if not await runtime.enter_phase("ungrouping"):
        return {"cancelled": True}

    runtime.debug("Ungrouping existing groups...")
    ungrouped = await runtime.applier.ungroup_all(on_debug=runtime.debug)
    runtime.debug(f"Ungrouped {ungrouped} tabs")
    return {"cancelled": await runtime.cancelled()}
