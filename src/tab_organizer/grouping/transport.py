"""Blocking HTTP transport for the chat completions endpoint."""

from __future__ import annotations

import http.client
from dataclasses import dataclass
from typing import Protocol
from urllib import error, request


@dataclass(frozen=True)
class HttpResponse:
    status: int
    text: str

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300


class Transport(Protocol):
    """Send one POST. Returns any HTTP status; raises ``OSError`` on network failure."""

    def __call__(
        self,
        url: str,
        *,
        headers: dict[str, str],
        body: bytes,
        timeout_s: float,
    ) -> HttpResponse: ...


def urllib_transport(
    url: str,
    *,
    headers: dict[str, str],
    body: bytes,
    timeout_s: float,
) -> HttpResponse:
    req = request.Request(url=url, data=body, method="POST", headers=headers)
    try:
        with request.urlopen(req, timeout=timeout_s) as response:
            return HttpResponse(
                status=response.status,
                text=response.read().decode("utf-8", errors="replace"),
            )
    except error.HTTPError as exc:
        raw_error = exc.read().decode("utf-8", errors="replace")
        return HttpResponse(status=exc.code, text=raw_error)
    except http.client.HTTPException as exc:
        # Truncated bodies and garbled status lines are network failures too.
        raise ConnectionError(f"{type(exc).__name__}: {exc}") from exc
