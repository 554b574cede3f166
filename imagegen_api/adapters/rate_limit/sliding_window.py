"""Store-backed sliding-window rate limiter.

Each identifier owns a log of admission timestamps in the shared store. A
request is admitted when fewer than ``limit`` admissions fall inside the
trailing window ending now, so bursts cannot be laundered by waiting for a
calendar bucket boundary. The check-and-record step runs as one atomic store
operation; no state is kept in the process.
"""

from __future__ import annotations

import math
import time
import uuid
from typing import Callable

from imagegen_api.adapters.rate_limit.base import (
    AbstractRateLimiter,
    RateLimitResult,
    StoreUnavailableError,
)
from imagegen_api.adapters.store.base import AbstractKeyValueStore, StoreError, WindowAdmission


class SlidingWindowRateLimiter(AbstractRateLimiter):
    """Admit at most ``limit`` requests per identifier in any rolling window."""

    def __init__(
        self,
        store: AbstractKeyValueStore,
        *,
        limit: int = 10,
        window_seconds: int = 60,
        prefix: str = "imagegen:ratelimit",
        clock: Callable[[], float] = time.time,
    ) -> None:
        """Initialize the limiter.

        Args:
            store: Shared key-value store holding the admission logs.
            limit: Maximum admissions per window.
            window_seconds: Size of the rolling window in seconds.
            prefix: Key namespace, keeping window logs apart from other keys.
            clock: Time source function returning UNIX time in seconds.

        Raises:
            ValueError: If limit, window_seconds or prefix are invalid.
        """
        if limit < 1:
            raise ValueError("limit must be >= 1")
        if window_seconds < 1:
            raise ValueError("window_seconds must be >= 1")
        if not prefix:
            raise ValueError("prefix must be a non-empty string")

        self._store = store
        self._limit = limit
        self._window_seconds = window_seconds
        self._prefix = prefix
        self._clock = clock

    @property
    def limit(self) -> int:
        return self._limit

    @property
    def window_seconds(self) -> int:
        return self._window_seconds

    def key_for(self, identifier: str) -> str:
        return f"{self._prefix}:{identifier}"

    def _build_result(self, admission: WindowAdmission, now_ms: int) -> RateLimitResult:
        window_ms = self._window_seconds * 1000
        oldest_ms = admission.oldest_ms if admission.oldest_ms is not None else now_ms
        reset_at_ms = oldest_ms + window_ms
        remaining = max(0, self._limit - admission.count)

        if admission.admitted:
            return RateLimitResult(
                allowed=True,
                limit=self._limit,
                remaining=remaining,
                reset_at=int(math.ceil(reset_at_ms / 1000)),
                retry_after_seconds=None,
            )

        retry_after = max(1, int(math.ceil((reset_at_ms - now_ms) / 1000)))
        return RateLimitResult(
            allowed=False,
            limit=self._limit,
            remaining=0,
            reset_at=int(math.ceil(reset_at_ms / 1000)),
            retry_after_seconds=retry_after,
        )

    async def consume(self, identifier: str) -> RateLimitResult:
        """Evaluate and, when under quota, record a request for identifier.

        Args:
            identifier: Caller identifier.

        Returns:
            RateLimitResult with the admission decision and metadata.

        Raises:
            ValueError: If identifier is empty.
            StoreUnavailableError: If the store fails during evaluation.
        """
        if not identifier:
            raise ValueError("identifier must be a non-empty string")

        now_ms = int(self._clock() * 1000)
        # Unique member so simultaneous hits in the same millisecond all count
        member = f"{now_ms}-{uuid.uuid4().hex}"

        try:
            admission = await self._store.window_admit(
                self.key_for(identifier),
                now_ms=now_ms,
                window_ms=self._window_seconds * 1000,
                limit=self._limit,
                member=member,
            )
        except StoreError as exc:
            raise StoreUnavailableError(str(exc)) from exc

        return self._build_result(admission, now_ms)
