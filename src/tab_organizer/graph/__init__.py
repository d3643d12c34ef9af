"""Organize pipeline graph."""

from tab_organizer.graph.state import OrganizeState, PipelineRuntime
from tab_organizer.graph.workflow import build_graph

__all__ = ["OrganizeState", "PipelineRuntime", "build_graph"]
