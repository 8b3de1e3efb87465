"""Application-level exception types.

This module defines domain errors used across services/adapters, enabling
consistent error handling, logging, and API responses.

Each subclass carries the HTTP status the exception handlers render it with,
so a client can tell "try a different location" (400) from "try again later"
(429/503) from "the service is misconfigured" (500).
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, ClassVar, NotRequired, TypedDict


class ErrorDetails(TypedDict, total=False):
    """Structured error context for observability and clients.

    Fields are optional to keep backward compatibility while encouraging
    consistent shapes across the codebase.
    """

    hint: str
    location: str
    upstream_status: int
    limit: int
    remaining: int
    reset_at: int
    retry_after: int
    backend: str
    request_id: str
    context: NotRequired[dict[str, Any]]


@dataclass
class AppError(Exception):
    """Base error for application/domain failures.

    Attributes:
        code: Stable, machine-readable error code.
        message: Human-readable error message.
        details: Optional structured details for debugging/observability.
    """

    code: str
    message: str
    details: ErrorDetails | None = None

    http_status: ClassVar[int] = 400

    def __post_init__(self) -> None:
        # Populate Exception args so str(error) is useful in logs/tracebacks.
        super().__init__(self.message)


class ValidationAppError(AppError):
    """Raised when caller input violates the request contract."""


class InvalidLocationAppError(ValidationAppError):
    """Raised when the upstream provider does not recognize the location."""


class UpstreamAppError(AppError):
    """Base for upstream weather provider failures."""

    http_status: ClassVar[int] = 500


class UpstreamAuthAppError(UpstreamAppError):
    """Raised when the provider rejects our API credentials."""


class UpstreamUnavailableAppError(UpstreamAppError):
    """Raised on timeout, network failure or any unexpected provider response."""

    http_status: ClassVar[int] = 503


class RateLimitAppError(AppError):
    """Raised when a caller exhausts its admission budget for the window."""

    http_status: ClassVar[int] = 429


class CacheAppError(AppError):
    """Raised when an explicit cache invalidation cannot be carried out."""

    http_status: ClassVar[int] = 500
