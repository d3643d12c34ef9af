from __future__ import annotations

import pytest

from fakes import DOCS, GMAIL, REPO
from tab_organizer.config.settings import Settings
from tab_organizer.models import GroupingConfig, TabRecord
from tab_organizer.tabs.memory import InMemoryTabPlatform
from tab_organizer.tabs.platform import PlatformTab


@pytest.fixture
def settings(monkeypatch: pytest.MonkeyPatch) -> Settings:
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)
    return Settings(
        _env_file=None,
        api_endpoint="https://api.example.test/v1",
        api_key="sk-test",
        model="test-model",
        ai_backoff_s=0.0,
        cancel_poll_interval_s=0.01,
    )


@pytest.fixture
def grouping_config() -> GroupingConfig:
    return GroupingConfig(
        endpoint="https://api.example.test/v1",
        api_key="sk-test",
        model="test-model",
    )


@pytest.fixture
def tabs() -> list[TabRecord]:
    return [TabRecord(**GMAIL), TabRecord(**REPO)]


@pytest.fixture
def platform() -> InMemoryTabPlatform:
    return InMemoryTabPlatform(
        [
            PlatformTab(**GMAIL, active=True),
            PlatformTab(**REPO),
            PlatformTab(**DOCS),
        ]
    )
