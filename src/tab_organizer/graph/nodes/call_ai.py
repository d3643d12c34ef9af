"""AI node: ask the grouping endpoint for groups."""

from __future__ import annotations

from tab_organizer.graph.state import OrganizeState


async def run(state: OrganizeState) -> OrganizeState:
    runtime = state["runtime"]
    if not await runtime.enter_phase("calling-ai"):
        return {"cancelled": True}

    runtime.debug("Calling AI...")
    groups = await runtime.client.organize(
        state.get("tabs", []),
        runtime.config,
        token=runtime.token,
        on_debug=runtime.debug,
    )
    return {"groups": groups, "cancelled": await runtime.cancelled()}
