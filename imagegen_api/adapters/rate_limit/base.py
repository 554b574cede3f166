"""Rate limiter interfaces.

The API depends on this abstraction (not the concrete implementation) so the
limiter can be replaced in tests without touching the HTTP layer.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass


class StoreUnavailableError(Exception):
    """Raised when a limiter cannot reach its backing store.

    Distinct from a denial: callers must not treat it as admitted or as
    throttled.
    """


@dataclass(frozen=True)
class RateLimitResult:
    """Outcome of one admission attempt.

    Attributes:
        allowed: True when the hit was recorded and the request may proceed.
        limit: Requests admitted per rolling window.
        remaining: Admissions left in the window, 0 when denied.
        reset_at: UNIX epoch seconds when the oldest counted request leaves
            the window.
        retry_after_seconds: Seconds until a slot frees up, None when allowed.
    """

    allowed: bool
    limit: int
    remaining: int
    reset_at: int
    retry_after_seconds: int | None


class AbstractRateLimiter(ABC):
    """Admission control keyed by caller identifier."""

    @abstractmethod
    async def consume(self, identifier: str) -> RateLimitResult:
        """Consume one unit of budget for a given identifier.

        Args:
            identifier: Caller identifier (fingerprint or client address).

        Returns:
            RateLimitResult describing whether it was allowed.

        Raises:
            StoreUnavailableError: If the backing store fails.
        """
        raise NotImplementedError
