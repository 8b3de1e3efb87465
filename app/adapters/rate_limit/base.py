"""Rate limiter interfaces.

The service depends on this abstraction (not the concrete implementation)
so the counting strategy can change without touching the request flow.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass(frozen=True)
class RateLimitResult:
    """Result of a rate limit check/consume operation.

    Attributes:
        allowed: Whether the request is allowed to proceed.
        limit: Max requests per window.
        remaining: Remaining requests in the current window (0 when blocked).
        reset_at: UNIX epoch seconds when the current window resets.
        retry_after_seconds: Suggested wait time in seconds when blocked.
        degraded: True when the decision was made without reaching the store.
    """

    allowed: bool
    limit: int
    remaining: int
    reset_at: int
    retry_after_seconds: int | None
    degraded: bool = False


class AbstractRateLimiter(ABC):
    """Interface for rate limiters."""

    @abstractmethod
    async def consume(self, identity: str) -> RateLimitResult:
        """Consume one unit of budget for a caller identity.

        Args:
            identity: Caller identity (e.g., forwarded client address); empty
                values share the default bucket.

        Returns:
            RateLimitResult describing whether it was allowed.
        """
        raise NotImplementedError
