"""Runtime configuration."""

from tab_organizer.config.settings import Settings, get_settings, resolve_grouping_config

__all__ = ["Settings", "get_settings", "resolve_grouping_config"]
