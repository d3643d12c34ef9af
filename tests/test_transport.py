from __future__ import annotations

import asyncio
import http.client
import io
from urllib import error

import pytest

from fakes import RecordingSleep, groups_completion
from tab_organizer.errors import TransientApiError
from tab_organizer.grouping.client import GroupingClient
from tab_organizer.grouping.transport import urllib_transport

URL = "https://api.example.test/v1/chat/completions"


class StubUrlopenResponse:
    def __init__(self, status: int, text: str) -> None:
        self.status = status
        self._body = text.encode("utf-8")

    def read(self) -> bytes:
        return self._body

    def __enter__(self) -> StubUrlopenResponse:
        return self

    def __exit__(self, *exc_info) -> None:
        return None


def _scripted_urlopen(monkeypatch: pytest.MonkeyPatch, *outcomes) -> list[str]:
    calls: list[str] = []

    def fake_urlopen(req, timeout):
        calls.append(req.full_url)
        outcome = outcomes[min(len(calls) - 1, len(outcomes) - 1)]
        if isinstance(outcome, Exception):
            raise outcome
        return outcome

    monkeypatch.setattr("tab_organizer.grouping.transport.request.urlopen", fake_urlopen)
    return calls


def _send():
    return urllib_transport(URL, headers={}, body=b"{}", timeout_s=1.0)


def test_http_error_status_is_returned_with_body(monkeypatch: pytest.MonkeyPatch) -> None:
    _scripted_urlopen(
        monkeypatch,
        error.HTTPError(URL, 503, "Service Unavailable", None, io.BytesIO(b"busy")),
    )

    response = _send()

    assert (response.status, response.text, response.ok) == (503, "busy", False)


@pytest.mark.parametrize(
    "failure",
    [http.client.IncompleteRead(b"{\"choi"), http.client.BadStatusLine("HTTP/1.1 ???")],
)
def test_protocol_failures_surface_as_connection_errors(monkeypatch, failure) -> None:
    _scripted_urlopen(monkeypatch, failure)

    with pytest.raises(ConnectionError):
        _send()


def test_protocol_failure_is_retried_by_the_client(monkeypatch, tabs, grouping_config) -> None:
    body = groups_completion([{"name": "Work", "color": "blue", "tabIds": [0, 1]}]).text
    calls = _scripted_urlopen(
        monkeypatch,
        http.client.IncompleteRead(b"{\"choi"),
        StubUrlopenResponse(200, body),
    )
    sleep = RecordingSleep()
    client = GroupingClient(transport=urllib_transport, backoff_s=0.5, sleep=sleep)

    groups = asyncio.run(client.organize(tabs, grouping_config))

    assert [group.tab_ids for group in groups] == [[1, 2]]
    assert calls == [URL, URL]
    assert sleep.delays == [0.5]


def test_persistent_protocol_failure_is_transient(monkeypatch, tabs, grouping_config) -> None:
    _scripted_urlopen(monkeypatch, http.client.BadStatusLine("garbage"))
    client = GroupingClient(transport=urllib_transport, max_retries=1, sleep=RecordingSleep())

    with pytest.raises(TransientApiError, match="Could not reach the AI endpoint"):
        asyncio.run(client.organize(tabs, grouping_config))
