"""
Error taxonomy for registry synchronization.

Per-item errors (not found, transient after retries, remote, persistence) are
collected by the batch runner and never abort a run. Only faults that escape
the orchestrator mark a run as failed.
"""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, Field


class SyncError(RuntimeError):
    pass


class RemoteApiError(SyncError):
    """Non-2xx response (other than 404) from the registry."""

    def __init__(self, status: int | None, body: str | None = None, *, url: str | None = None) -> None:
        self.status = status
        self.body = body
        self.url = url
        detail = f"HTTP {status}" if status is not None else "request failed"
        if body:
            detail = f"{detail}: {_truncate(body)}"
        super().__init__(f"registry API error {detail}")


class TransientRemoteError(RemoteApiError):
    """Timeouts, transport failures, 429 and 5xx. Eligible for retry."""

    def __init__(
        self,
        status: int | None,
        body: str | None = None,
        *,
        url: str | None = None,
        cause: Exception | None = None,
    ) -> None:
        if cause is not None and body is None:
            body = f"{type(cause).__name__}: {cause}"
        super().__init__(status, body, url=url)


class EntityNotFound(SyncError):
    """The registry answered 404 for an entity id."""

    def __init__(self, external_id: str) -> None:
        self.external_id = external_id
        super().__init__("not found")


class PersistenceError(SyncError):
    """A local store write failed for one entity. Never retried."""

    def __init__(self, external_id: str, message: str) -> None:
        self.external_id = external_id
        super().__init__(f"persistence failed: {message}")


class UnsupportedJurisdiction(SyncError, ValueError):
    def __init__(self, code: str) -> None:
        self.code = code
        super().__init__(f"unsupported jurisdiction: {code!r}")


class OrchestratorFault(SyncError):
    """An exception that escaped batch-level isolation."""


class ErrorType(str, Enum):
    """Machine-interpretable error classes used for retry decisions and reporting."""

    NOT_FOUND = "NOT_FOUND"
    """Remote 404. Recorded as a per-item error."""

    TRANSIENT = "TRANSIENT"
    """Timeout, transport failure, 429 or 5xx. Retried with backoff."""

    REMOTE = "REMOTE"
    """Other non-2xx registry responses."""

    PERSISTENCE = "PERSISTENCE"
    """Local store write failure."""

    FAULT = "FAULT"
    """Anything else. Per-item when raised inside an item, fatal when it escapes a run."""


def classify_error(exc: BaseException) -> ErrorType:
    if isinstance(exc, EntityNotFound):
        return ErrorType.NOT_FOUND
    if isinstance(exc, TransientRemoteError):
        return ErrorType.TRANSIENT
    if isinstance(exc, RemoteApiError):
        return ErrorType.REMOTE
    if isinstance(exc, PersistenceError):
        return ErrorType.PERSISTENCE
    return ErrorType.FAULT


class RetryPolicy(BaseModel):
    """Retry policy for a single work item."""

    max_retries: int = Field(default=3, ge=0, description="Retries after the first attempt")
    base_backoff_seconds: float = Field(default=1.0, ge=0, description="Base for exponential backoff")
    max_backoff_seconds: float = Field(default=30.0, ge=0, description="Maximum backoff time")
    retryable: frozenset[ErrorType] = Field(default=frozenset({ErrorType.TRANSIENT}))

    def can_retry(self, error_type: ErrorType, retry_count: int) -> bool:
        """Check if an error type can be retried after `retry_count` retries."""
        return error_type in self.retryable and retry_count < self.max_retries

    def get_backoff_seconds(self, retry_count: int) -> float:
        """Calculate exponential backoff with a ceiling."""
        backoff = self.base_backoff_seconds * (2**retry_count)
        return min(backoff, self.max_backoff_seconds)


def error_details(exc: BaseException) -> dict[str, Any]:
    details: dict[str, Any] = {"type": classify_error(exc).value, "message": str(exc)}
    if isinstance(exc, RemoteApiError):
        details["status"] = exc.status
    external_id = getattr(exc, "external_id", None)
    if external_id is not None:
        details["external_id"] = external_id
    return details


def _truncate(text: str, limit: int = 300) -> str:
    text = text.strip()
    return text if len(text) <= limit else text[:limit] + "..."
