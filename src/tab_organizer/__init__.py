"""Group open browser tabs into named, colored clusters with an AI endpoint."""

from tab_organizer.grouping.client import GroupingClient
from tab_organizer.models import GroupingConfig, GroupSpec, TabRecord
from tab_organizer.orchestrator import StartAck, TaskOrchestrator, build_orchestrator
from tab_organizer.sanitize import sanitize_url

__all__ = [
    "GroupSpec",
    "GroupingClient",
    "GroupingConfig",
    "StartAck",
    "TabRecord",
    "TaskOrchestrator",
    "build_orchestrator",
    "sanitize_url",
]
