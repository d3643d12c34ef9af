"""Failure taxonomy for the organize pipeline.

Every error carries a short ``user_message`` that is safe to show in UI.
Anything verbose (provider response bodies, parser messages) goes into
``detail``, which only ever reaches the optional debug log.
"""

from __future__ import annotations


class TabOrganizerError(Exception):
    """Base class for errors surfaced to the task starter or task state."""

    default_message = "Unknown error"

    def __init__(self, user_message: str | None = None, *, detail: str | None = None) -> None:
        self.user_message = user_message or self.default_message
        self.detail = detail
        super().__init__(self.user_message)


class ConfigInvalid(TabOrganizerError):
    default_message = "Please configure API settings in the extension options"


class AlreadyRunning(TabOrganizerError):
    default_message = "An organize task is already running"


class InvalidInput(TabOrganizerError):
    default_message = "No tabs to organize"


class NoTabs(InvalidInput):
    default_message = "No tabs found"


class ApiError(TabOrganizerError):
    """Non-success response from the AI endpoint."""

    def __init__(
        self,
        user_message: str | None = None,
        *,
        status: int | None = None,
        detail: str | None = None,
    ) -> None:
        self.status = status
        super().__init__(user_message, detail=detail)


class AuthError(ApiError):
    default_message = "Invalid API key"


class TransientApiError(ApiError):
    default_message = "API server error - try again later"


class MalformedResponse(TabOrganizerError):
    default_message = "AI returned invalid JSON. Try again or enable debug mode."


class EmptyResult(TabOrganizerError):
    default_message = "AI returned no groups"


class Cancelled(TabOrganizerError):
    default_message = "Cancelled"


class ApplyPartialFailure(TabOrganizerError):
    """Some groups could not be created; reported, never raised out of a run."""

    def __init__(self, failed_groups: list[str], *, detail: str | None = None) -> None:
        self.failed_groups = list(failed_groups)
        super().__init__(
            f"{len(self.failed_groups)} group(s) could not be created",
            detail=detail,
        )
