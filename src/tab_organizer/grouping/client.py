"""AI grouping client: request, retry/backoff, timeout, cancellation, parsing."""

from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import Awaitable, Callable, Sequence
from typing import Any

from tab_organizer.cancellation import CancellationToken
from tab_organizer.errors import (
    ApiError,
    AuthError,
    Cancelled,
    InvalidInput,
    MalformedResponse,
    TransientApiError,
)
from tab_organizer.grouping.parser import extract_message_content, parse_grouping_content
from tab_organizer.grouping.prompt import SYSTEM_PROMPT, TabIndexMapping, build_user_prompt
from tab_organizer.grouping.transport import HttpResponse, Transport, urllib_transport
from tab_organizer.models import GroupingConfig, GroupSpec, TabRecord

logger = logging.getLogger(__name__)

DebugSink = Callable[[str], None]
Sleep = Callable[[CancellationToken, float], Awaitable[None]]

RETRYABLE_STATUSES = frozenset({429, 500, 502, 503, 504})
AUTH_STATUSES = frozenset({401, 403})

# Provider bodies may contain sensitive text, so users only ever see these.
STATUS_MESSAGES: dict[int, str] = {
    401: "Invalid API key",
    403: "Access denied - check API key permissions",
    429: "Rate limited - please wait and try again",
    500: "API server error - try again later",
    502: "API gateway error - try again later",
    503: "API service unavailable - try again later",
    504: "API gateway timeout - try again later",
}


async def _token_sleep(token: CancellationToken, delay_s: float) -> None:
    await token.sleep(delay_s)


def _discard(_message: str) -> None:
    return None


def build_request_body(tabs: Sequence[TabRecord], config: GroupingConfig) -> dict[str, Any]:
    body: dict[str, Any] = {
        "model": config.model,
        "messages": [
            {"role": "system", "content": SYSTEM_PROMPT},
            {"role": "user", "content": build_user_prompt(tabs)},
        ],
        "temperature": 0.3,
    }
    if config.reasoning_effort != "off":
        body["reasoning_effort"] = config.reasoning_effort
    return body


class GroupingClient:
    """Ask a chat completions endpoint to group tabs.

    Each attempt is bounded by ``timeout_s`` of wall clock, separate from
    the socket timeout handed to the transport. Network failures,
    timeouts and 429/5xx responses are retried up to ``max_retries`` times
    with ``backoff_s * 2**(k-1)`` seconds before retry ``k``. Credential
    errors and unusable answers are not retried.
    """

    def __init__(
        self,
        *,
        transport: Transport | None = None,
        timeout_s: float = 60.0,
        http_timeout_s: float = 45.0,
        max_retries: int = 2,
        backoff_s: float = 1.0,
        sleep: Sleep | None = None,
    ) -> None:
        self._transport = transport
        self.timeout_s = timeout_s
        self.http_timeout_s = http_timeout_s
        self.max_retries = max(0, max_retries)
        self.backoff_s = max(0.0, backoff_s)
        self._sleep = sleep or _token_sleep

    @classmethod
    def from_settings(cls, settings: Any, *, transport: Transport | None = None) -> GroupingClient:
        return cls(
            transport=transport,
            timeout_s=settings.ai_timeout_s,
            http_timeout_s=settings.http_timeout_s,
            max_retries=settings.ai_max_retries,
            backoff_s=settings.ai_backoff_s,
        )

    async def organize(
        self,
        tabs: Sequence[TabRecord],
        config: GroupingConfig,
        token: CancellationToken | None = None,
        on_debug: DebugSink | None = None,
    ) -> list[GroupSpec]:
        if not tabs:
            raise InvalidInput()
        token = token or CancellationToken()
        debug = on_debug or _discard
        token.raise_if_cancelled()

        mapping = TabIndexMapping.from_tabs(tabs)
        url = f"{config.endpoint}/chat/completions"
        body = json.dumps(build_request_body(tabs, config)).encode("utf-8")
        headers = {
            "Authorization": f"Bearer {config.api_key}",
            "Content-Type": "application/json",
        }
        debug(f"Request to {url}")
        debug(f"Model: {config.model}")
        debug(f"Tabs: {len(tabs)}")

        response = await self._request_with_retry(url, headers, body, token, debug)

        try:
            response_json = json.loads(response.text)
        except json.JSONDecodeError as exc:
            debug(f"Unparseable API response: {response.text[:2000]}")
            raise MalformedResponse(
                "API returned a non-JSON response", detail=str(exc)
            ) from exc
        content = extract_message_content(response_json)
        debug(f"Response: {content}")

        groups = parse_grouping_content(content, mapping)
        debug(f"AI returned {len(groups)} groups")
        return groups

    async def _request_with_retry(
        self,
        url: str,
        headers: dict[str, str],
        body: bytes,
        token: CancellationToken,
        debug: DebugSink,
    ) -> HttpResponse:
        attempts = self.max_retries + 1
        last_error: ApiError | None = None
        for attempt in range(attempts):
            if attempt > 0:
                delay_s = self.backoff_s * 2 ** (attempt - 1)
                debug(f"Retrying in {delay_s:g}s (attempt {attempt + 1}/{attempts})")
                await self._sleep(token, delay_s)
            token.raise_if_cancelled()

            try:
                response = await self._send(url, headers, body, token)
            except TimeoutError as exc:
                last_error = TransientApiError("AI request timed out", detail=str(exc))
            except OSError as exc:
                last_error = TransientApiError("Could not reach the AI endpoint", detail=str(exc))
            else:
                if response.ok:
                    return response
                debug(f"Error: {response.status} - {response.text}")
                last_error = _error_for_status(response)
                if not isinstance(last_error, TransientApiError):
                    logger.warning(
                        "organize event=ai_request_rejected status=%d attempt=%d/%d",
                        response.status,
                        attempt + 1,
                        attempts,
                    )
                    raise last_error

            if last_error.detail and last_error.status is None:
                debug(f"Error: {last_error.detail}")
            logger.warning(
                "organize event=ai_request_failed attempt=%d/%d reason=%s",
                attempt + 1,
                attempts,
                last_error.user_message,
            )

        if last_error is None:
            raise TransientApiError()
        raise last_error

    async def _send(
        self,
        url: str,
        headers: dict[str, str],
        body: bytes,
        token: CancellationToken,
    ) -> HttpResponse:
        call = asyncio.ensure_future(
            asyncio.to_thread(
                self._transport or urllib_transport,
                url,
                headers=headers,
                body=body,
                timeout_s=self.http_timeout_s,
            )
        )
        cancel_wait = asyncio.ensure_future(token.wait())
        try:
            done, _pending = await asyncio.wait(
                {call, cancel_wait},
                timeout=self.timeout_s,
                return_when=asyncio.FIRST_COMPLETED,
            )
        finally:
            cancel_wait.cancel()

        if token.cancelled:
            call.cancel()
            raise Cancelled()
        if call not in done:
            call.cancel()
            raise TimeoutError(f"AI request exceeded {self.timeout_s:g}s")
        return call.result()


def _error_for_status(response: HttpResponse) -> ApiError:
    status = response.status
    message = STATUS_MESSAGES.get(status, f"API error: {status}")
    if status in AUTH_STATUSES:
        return AuthError(message, status=status, detail=response.text)
    if status in RETRYABLE_STATUSES:
        return TransientApiError(message, status=status, detail=response.text)
    return ApiError(message, status=status, detail=response.text)
