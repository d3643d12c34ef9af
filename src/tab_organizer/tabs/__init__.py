"""Tab platform surface and the mutation applier."""

from tab_organizer.tabs.applier import ApplyOutcome, TabMutationApplier
from tab_organizer.tabs.memory import InMemoryTabPlatform, TabGroupInfo, load_export_tabs
from tab_organizer.tabs.platform import (
    PlatformTab,
    TabNotFoundError,
    TabPlatform,
    TabPlatformError,
)

__all__ = [
    "ApplyOutcome",
    "InMemoryTabPlatform",
    "PlatformTab",
    "TabGroupInfo",
    "TabMutationApplier",
    "TabNotFoundError",
    "TabPlatform",
    "TabPlatformError",
    "load_export_tabs",
]
