"""Caller identification for throttling and usage metering.

The identifier is taken, in order of precedence, from:
1. ``X-Fingerprint``: a browser fingerprint supplied by the frontend
2. ``X-Forwarded-For``: the first (client) address of the proxy chain
3. the loopback address, when neither header carries a value

Callers behind the same address without a fingerprint share one identifier.
"""

from __future__ import annotations

import hashlib
from typing import Annotated

from fastapi import Header

FALLBACK_IDENTIFIER = "127.0.0.1"


def resolve_identifier(fingerprint: str | None, forwarded_for: str | None) -> str:
    """Derive the caller identifier from request metadata.

    Examples:
        >>> resolve_identifier("abc", "1.2.3.4")
        'abc'
        >>> resolve_identifier(None, "1.2.3.4, 5.6.7.8")
        '1.2.3.4'
        >>> resolve_identifier(None, None)
        '127.0.0.1'
    """
    if fingerprint:
        return fingerprint

    if forwarded_for:
        first_hop = forwarded_for.split(",")[0].strip()
        if first_hop:
            return first_hop

    return FALLBACK_IDENTIFIER


def hash_identifier(identifier: str) -> str:
    """Hash an identifier for logging without exposing fingerprints or IPs."""
    return hashlib.sha256(identifier.encode()).hexdigest()[:16]


async def get_client_identifier(
    x_fingerprint: Annotated[str | None, Header(alias="X-Fingerprint")] = None,
    x_forwarded_for: Annotated[str | None, Header(alias="X-Forwarded-For")] = None,
) -> str:
    """FastAPI dependency resolving the caller identifier from headers."""
    return resolve_identifier(x_fingerprint, x_forwarded_for)
