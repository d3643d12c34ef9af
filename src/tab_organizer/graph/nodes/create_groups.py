"""Apply node: create the groups on the live tab set."""

from __future__ import annotations

import logging

from tab_organizer.graph.state import OrganizeState

logger = logging.getLogger(__name__)


async def run(state: OrganizeState) -> OrganizeState:
    runtime = state["runtime"]
    if not await runtime.enter_phase("creating-groups"):
        return {"cancelled": True}

    runtime.debug("Creating groups...")
    # Resolved here, not at fetch time: the user may have switched tabs
    # while the AI call was in flight.
    active_tab_id = await runtime.applier.active_tab_id()
    outcome = await runtime.applier.apply_groups(
        state.get("groups", []),
        collapse_others=runtime.collapse_others,
        active_tab_id=active_tab_id,
    )
    for name in outcome.skipped:
        runtime.debug(f"Skipped group {name!r}: none of its tabs are open")

    partial = outcome.partial_failure()
    if partial is not None:
        logger.warning(
            "organize event=apply_partial_failure run_id=%s failed=%d created=%d",
            runtime.run_id,
            len(partial.failed_groups),
            outcome.created,
        )
        runtime.debug(f"{partial.user_message}: {partial.detail}")

    return {
        "outcome": outcome,
        "active_tab_id": active_tab_id,
        "cancelled": await runtime.cancelled(),
    }
