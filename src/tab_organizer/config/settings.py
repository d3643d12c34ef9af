"""Application settings."""

from functools import lru_cache
import os
from pathlib import Path
from typing import Literal
from urllib.parse import urlsplit

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from tab_organizer.errors import ConfigInvalid
from tab_organizer.models import GroupingConfig

PROJECT_ROOT = Path(__file__).resolve().parents[3]


class Settings(BaseSettings):
    """Runtime settings loaded from environment variables."""

    app_name: str = "tab-organizer"
    api_endpoint: str = "https://api.openai.com/v1"
    api_key: str = ""
    model: str = "gpt-4o"
    reasoning_effort: Literal["off", "low", "medium", "high"] = "off"
    debug_mode: bool = False
    collapse_others: bool = False
    ai_timeout_s: float = Field(default=60.0, gt=0.0)
    http_timeout_s: float = Field(default=45.0, gt=0.0)
    ai_max_retries: int = Field(default=2, ge=0)
    ai_backoff_s: float = Field(default=1.0, ge=0.0)
    state_backend: Literal["memory", "sqlite", "postgres"] = "memory"
    state_path: str = "tab_organizer_state.db"
    database_url: str = ""
    cancel_poll_interval_s: float = Field(default=0.5, gt=0.0)
    tabs_file: str = ""

    model_config = SettingsConfigDict(
        env_prefix="TAB_ORGANIZER_",
        extra="ignore",
        env_file=(PROJECT_ROOT / ".env", PROJECT_ROOT / ".env.local"),
        env_file_encoding="utf-8",
    )

    def resolved_api_key(self) -> str:
        return self.api_key or os.getenv("OPENAI_API_KEY", "")


def resolve_grouping_config(settings: Settings) -> GroupingConfig:
    """Validate the AI settings needed to start a task.

    Raises ``ConfigInvalid`` before any task state is written, so a bad
    configuration never shows up as a running task.
    """
    endpoint = settings.api_endpoint.strip().rstrip("/")
    try:
        parts = urlsplit(endpoint)
        # Raises ValueError for a non-numeric or out-of-range port.
        parts.port
    except ValueError as exc:
        raise ConfigInvalid("API endpoint is not a valid URL", detail=str(exc)) from exc
    if parts.scheme not in ("http", "https") or not parts.hostname:
        raise ConfigInvalid("API endpoint must be an http:// or https:// URL")
    if any(char.isspace() for char in parts.netloc):
        raise ConfigInvalid("API endpoint is not a valid URL")

    api_key = settings.resolved_api_key().strip()
    if not api_key:
        raise ConfigInvalid("Please configure an API key in the extension options")

    model = settings.model.strip()
    if not model:
        raise ConfigInvalid("Please choose a model in the extension options")

    return GroupingConfig(
        endpoint=endpoint,
        api_key=api_key,
        model=model,
        reasoning_effort=settings.reasoning_effort,
    )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
