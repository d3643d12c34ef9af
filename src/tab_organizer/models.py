"""Pydantic models shared by the grouping client, tab applier and orchestrator."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field

# Tab group colors supported by the browser tab-group API.
TabColor = Literal["grey", "blue", "red", "yellow", "green", "pink", "purple", "cyan", "orange"]
TAB_COLORS: tuple[str, ...] = (
    "grey",
    "blue",
    "red",
    "yellow",
    "green",
    "pink",
    "purple",
    "cyan",
    "orange",
)
DEFAULT_COLOR: TabColor = "grey"
DEFAULT_GROUP_NAME = "Unnamed"

ReasoningEffort = Literal["off", "low", "medium", "high"]


class TabRecord(BaseModel):
    """One tab from a fresh snapshot. ``id`` may go stale at any await."""

    id: int
    title: str
    url: str


class GroupSpec(BaseModel):
    """A validated group ready to apply: tab ids are real tab identifiers."""

    name: str
    color: TabColor = DEFAULT_COLOR
    tab_ids: list[int] = Field(default_factory=list)


class GroupingConfig(BaseModel):
    """AI endpoint settings validated at task start."""

    endpoint: str
    api_key: str = Field(repr=False)
    model: str
    reasoning_effort: ReasoningEffort = "off"
