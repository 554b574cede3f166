"""Daily usage quota for expensive operations.

A counter per identifier records completed image generations. The counter
receives its TTL in the same atomic store call as the first increment, so the
budget resets at a fixed offset from first use rather than on a rolling basis.
A counter found without a TTL gets one on its next increment.

Failure policy differs from the request throttle: metering is best-effort.
- check_status fails open (reports "not at limit") when the store is down.
- increment logs and drops store errors; the operation already succeeded.

The check and the later increment are separate calls, separated by the whole
generation latency. Concurrent requests from one identifier can all pass the
check before any of them increments, so usage may exceed the budget by at most
the number of requests in flight at once. This bound is accepted; closing it
would require holding a lock across the generation call.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from imagegen_api.adapters.store.base import AbstractKeyValueStore, StoreError
from imagegen_api.core.identity import hash_identifier

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class QuotaStatus:
    """Usage state for one identifier.

    Attributes:
        at_limit: Whether the budget is exhausted.
        identifier: Caller identifier the status belongs to.
        usage: Completed operations counted so far.
        limit: Budget per period.
        seconds_to_reset: Remaining counter TTL, only populated when at limit.
    """

    at_limit: bool
    identifier: str
    usage: int
    limit: int
    seconds_to_reset: int | None = None


class UsageQuotaTracker:
    """Fixed-budget usage counter backed by the shared store."""

    def __init__(
        self,
        store: AbstractKeyValueStore,
        *,
        limit: int = 2,
        ttl_seconds: int = 15 * 60 * 60,
        prefix: str = "imagegen:usagelimit",
    ) -> None:
        if limit < 1:
            raise ValueError("limit must be >= 1")
        if ttl_seconds < 1:
            raise ValueError("ttl_seconds must be >= 1")
        if not prefix:
            raise ValueError("prefix must be a non-empty string")

        self._store = store
        self._limit = limit
        self._ttl_seconds = ttl_seconds
        self._prefix = prefix

    @property
    def limit(self) -> int:
        return self._limit

    def key_for(self, identifier: str) -> str:
        return f"{self._prefix}:{identifier}"

    async def check_status(self, identifier: str) -> QuotaStatus:
        """Report whether identifier has exhausted its budget.

        Args:
            identifier: Caller identifier.

        Returns:
            QuotaStatus; ``seconds_to_reset`` is None unless at limit, and also
            None when the counter vanished between the two reads.
        """
        key = self.key_for(identifier)

        try:
            raw = await self._store.get(key)
            usage = int(raw) if raw else 0
            at_limit = usage >= self._limit

            seconds_to_reset: int | None = None
            if at_limit:
                seconds_to_reset = await self._store.ttl(key)
        except (StoreError, ValueError) as exc:
            logger.error(
                "usage.check_failed",
                extra={
                    "identifier_hash": hash_identifier(identifier),
                    "error_type": type(exc).__name__,
                    "error_msg": str(exc),
                    "fail_open": True,
                },
            )
            return QuotaStatus(at_limit=False, identifier=identifier, usage=0, limit=self._limit)

        logger.info(
            "usage.check",
            extra={
                "identifier_hash": hash_identifier(identifier),
                "at_limit": at_limit,
                "usage": usage,
                "limit": self._limit,
                "ttl_s": seconds_to_reset,
            },
        )
        return QuotaStatus(
            at_limit=at_limit,
            identifier=identifier,
            usage=usage,
            limit=self._limit,
            seconds_to_reset=seconds_to_reset,
        )

    async def increment(self, identifier: str) -> None:
        """Count one completed operation for identifier.

        Must only be called after the guarded operation succeeded. Increment
        and TTL are applied in one store call, so a counter can never be left
        without an expiry.
        """
        key = self.key_for(identifier)

        try:
            new_count = await self._store.incr_with_ttl(key, self._ttl_seconds)
        except StoreError as exc:
            logger.error(
                "usage.increment_failed",
                extra={
                    "identifier_hash": hash_identifier(identifier),
                    "error_msg": str(exc),
                },
            )
            return

        logger.info(
            "usage.incremented",
            extra={
                "identifier_hash": hash_identifier(identifier),
                "usage": new_count,
                "limit": self._limit,
            },
        )


def quota_exhausted_message(seconds_to_reset: int | None, *, reset_soon_seconds: int = 6 * 60 * 60) -> str:
    """Pick the user-facing message for an exhausted quota.

    Args:
        seconds_to_reset: Remaining counter TTL, or None when unknown.
        reset_soon_seconds: Threshold below which the reset is "shortly".

    Returns:
        Human-readable message.
    """
    if seconds_to_reset is not None and seconds_to_reset < reset_soon_seconds:
        return "Your credits are due to reset shortly. Please try again in a little while."
    return "You have utilized all the free credits. Feel free to come back tomorrow same time."
