from __future__ import annotations

import asyncio
import threading

import pytest

from fakes import BlockingTransport, FakeTransport, RecordingStore, groups_completion
from tab_organizer.errors import AlreadyRunning, ConfigInvalid
from tab_organizer.grouping.client import GroupingClient
from tab_organizer.grouping.transport import HttpResponse
from tab_organizer.orchestrator import UNEXPECTED_ERROR_MESSAGE, TaskOrchestrator
from tab_organizer.state import PHASES, InMemoryTaskStateStore, RunningState, utc_now
from tab_organizer.tabs.memory import InMemoryTabPlatform

MAIL_AND_DEV = groups_completion(
    [
        {"name": "📧 Mail", "color": "red", "tabIds": [0]},
        {"name": "💻 Dev", "color": "blue", "tabIds": [1, 2]},
    ]
)


def _orchestrator(settings, platform, transport, store=None) -> TaskOrchestrator:
    return TaskOrchestrator(
        store=store or InMemoryTaskStateStore(),
        platform=platform,
        client=GroupingClient.from_settings(settings, transport=transport),
        settings=settings,
    )


def _run_to_end(orchestrator: TaskOrchestrator):
    async def scenario():
        ack = await orchestrator.start()
        return await orchestrator.wait(ack.run_id)

    return asyncio.run(scenario())


def test_organize_runs_every_phase_and_completes(settings, platform) -> None:
    store = RecordingStore()
    orchestrator = _orchestrator(settings, platform, FakeTransport(MAIL_AND_DEV), store)
    asyncio.run(platform.group_tabs([1, 3]))

    final = _run_to_end(orchestrator)

    assert final.status == "completed"
    assert final.group_count == 2
    assert final.debug is None
    phases: list[str] = []
    for state in store.history:
        if state.status == "running" and (not phases or phases[-1] != state.phase):
            phases.append(state.phase)
    assert tuple(phases) == PHASES
    assert store.history[-1] == final
    assert sorted(group.title for group in platform.groups()) == ["💻 Dev", "📧 Mail"]


def test_debug_mode_keeps_the_progress_log(settings, platform) -> None:
    settings = settings.model_copy(update={"debug_mode": True})
    orchestrator = _orchestrator(settings, platform, FakeTransport(MAIL_AND_DEV))

    final = _run_to_end(orchestrator)

    assert final.debug[0] == "Starting organization..."
    assert final.debug[-1] == "Done!"
    assert "Found 3 tabs" in final.debug
    assert any(line.startswith("Response: ") for line in final.debug)


@pytest.mark.parametrize(
    "update",
    [{"api_key": ""}, {"api_endpoint": "https://api.example.test:abc/v1"}],
)
def test_invalid_config_is_rejected_before_any_state_change(settings, platform, update) -> None:
    settings = settings.model_copy(update=update)
    transport = FakeTransport(MAIL_AND_DEV)
    orchestrator = _orchestrator(settings, platform, transport)
    asyncio.run(platform.group_tabs([1, 2]))

    with pytest.raises(ConfigInvalid):
        asyncio.run(orchestrator.start())

    assert orchestrator.state().status == "idle"
    assert transport.calls == []
    (existing,) = platform.groups()
    assert sorted(platform.tabs_in(existing.group_id)) == [1, 2]


def test_second_start_is_rejected_while_running(settings, platform) -> None:
    running = RunningState(run_id="other", phase="calling-ai", started_at=utc_now())
    store = InMemoryTaskStateStore(running)
    orchestrator = _orchestrator(settings, platform, FakeTransport(MAIL_AND_DEV), store)

    with pytest.raises(AlreadyRunning):
        asyncio.run(orchestrator.start())

    assert orchestrator.state() == running


def test_window_without_tabs_ends_in_error(settings) -> None:
    transport = FakeTransport(MAIL_AND_DEV)
    orchestrator = _orchestrator(settings, InMemoryTabPlatform(), transport)

    final = _run_to_end(orchestrator)

    assert (final.status, final.message) == ("error", "No tabs found")
    assert transport.calls == []


def test_bad_api_key_ends_in_error_without_provider_text(settings, platform) -> None:
    transport = FakeTransport(HttpResponse(status=401, text="incorrect key sk-abc"))
    orchestrator = _orchestrator(settings, platform, transport)

    final = _run_to_end(orchestrator)

    assert (final.status, final.message) == ("error", "Invalid API key")
    assert final.debug is None
    assert len(transport.calls) == 1


def test_error_debug_log_includes_provider_text_in_debug_mode(settings, platform) -> None:
    settings = settings.model_copy(update={"debug_mode": True})
    transport = FakeTransport(HttpResponse(status=401, text="incorrect key sk-abc"))

    final = _run_to_end(_orchestrator(settings, platform, transport))

    assert final.message == "Invalid API key"
    assert any("incorrect key" in line for line in final.debug)


def test_unexpected_failure_ends_in_generic_error(settings, platform) -> None:
    transport = FakeTransport(RuntimeError("boom"))

    final = _run_to_end(_orchestrator(settings, platform, transport))

    assert (final.status, final.message) == ("error", UNEXPECTED_ERROR_MESSAGE)


def test_cancel_during_ai_call_leaves_groups_untouched(settings, platform) -> None:
    transport = BlockingTransport(MAIL_AND_DEV)
    orchestrator = _orchestrator(settings, platform, transport)

    async def scenario():
        try:
            ack = await orchestrator.start()
            assert await asyncio.to_thread(transport.entered.wait, 5.0)
            assert orchestrator.state().phase == "calling-ai"
            cancelled = await orchestrator.cancel()
            assert cancelled is not None
            return await orchestrator.wait(ack.run_id)
        finally:
            transport.release.set()

    final = asyncio.run(scenario())

    assert final.status == "cancelled"
    assert platform.groups() == []
    assert asyncio.run(orchestrator.cancel()) is None


def test_cancel_persisted_by_another_observer_stops_the_run(settings, platform) -> None:
    store = InMemoryTaskStateStore()
    transport = BlockingTransport(MAIL_AND_DEV)
    orchestrator = _orchestrator(settings, platform, transport, store)

    async def scenario():
        try:
            ack = await orchestrator.start()
            assert await asyncio.to_thread(transport.entered.wait, 5.0)
            store.request_cancel()
            return await asyncio.wait_for(orchestrator.wait(ack.run_id), timeout=5.0)
        finally:
            transport.release.set()

    final = asyncio.run(scenario())

    assert final.status == "cancelled"
    assert platform.groups() == []


def test_tab_closed_during_ai_call_is_skipped(settings, platform) -> None:
    transport = FakeTransport(MAIL_AND_DEV, on_call=lambda _index: platform.close_tab(2))

    final = _run_to_end(_orchestrator(settings, platform, transport))

    assert final.status == "completed"
    assert final.group_count == 2
    dev = next(group for group in platform.groups() if group.title == "💻 Dev")
    assert platform.tabs_in(dev.group_id) == [3]


def test_collapse_uses_the_tab_active_when_groups_are_created(settings, platform) -> None:
    settings = settings.model_copy(update={"collapse_others": True})
    transport = FakeTransport(MAIL_AND_DEV, on_call=lambda _index: platform.activate(3))

    _run_to_end(_orchestrator(settings, platform, transport))

    collapsed = {group.title: group.collapsed for group in platform.groups()}
    assert collapsed == {"📧 Mail": True, "💻 Dev": False}


def test_dismiss_returns_a_finished_task_to_idle(settings, platform) -> None:
    orchestrator = _orchestrator(settings, platform, FakeTransport(MAIL_AND_DEV))
    _run_to_end(orchestrator)

    assert orchestrator.dismiss() is True
    assert orchestrator.state().status == "idle"


def test_watch_reports_each_state_change(settings, platform) -> None:
    orchestrator = _orchestrator(settings, platform, FakeTransport(MAIL_AND_DEV))

    async def scenario() -> list[str]:
        seen: list[str] = []
        await orchestrator.start()
        async for state in orchestrator.watch(interval_s=0.001):
            seen.append(state.status)
            if state.status != "running":
                break
        return seen

    seen = asyncio.run(asyncio.wait_for(scenario(), timeout=5.0))

    assert seen[0] == "running"
    assert seen[-1] == "completed"


class ThreadTrackingStore(InMemoryTaskStateStore):
    """Records the thread of every read and transition."""

    def __init__(self) -> None:
        super().__init__()
        self.threads: set[int] = set()

    def get(self):
        self.threads.add(threading.get_ident())
        return super().get()

    def _transition(self, decide):
        self.threads.add(threading.get_ident())
        return super()._transition(decide)


def test_store_is_never_touched_from_the_event_loop_thread(settings, platform) -> None:
    store = ThreadTrackingStore()
    orchestrator = _orchestrator(settings, platform, FakeTransport(MAIL_AND_DEV), store)

    async def scenario():
        loop_thread = threading.get_ident()
        ack = await orchestrator.start()
        final = await orchestrator.wait(ack.run_id)
        return loop_thread, final

    loop_thread, final = asyncio.run(scenario())

    assert final.status == "completed"
    assert store.threads
    assert loop_thread not in store.threads


def test_closed_tab_that_empties_a_group_skips_that_group(settings, platform) -> None:
    transport = FakeTransport(MAIL_AND_DEV, on_call=lambda _index: platform.close_tab(1))

    final = _run_to_end(_orchestrator(settings, platform, transport))

    assert final.status == "completed"
    assert final.group_count == 1
    assert [group.title for group in platform.groups()] == ["💻 Dev"]
