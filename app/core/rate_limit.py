"""Caller identity resolution for rate limiting.

Admission control runs inside ``WeatherService`` (it is the first step of the
request flow); the HTTP layer only decides *who* is calling.

Identity strategy:
- First hop of ``X-Forwarded-For`` (the original client behind our proxy).
- No header → shared ``default`` bucket; anonymous callers share one budget.
"""

from __future__ import annotations

import logging
from typing import Annotated

from fastapi import Header

from app.adapters.rate_limit.fixed_window import DEFAULT_IDENTITY
from app.core.logging import hash_identifier

logger = logging.getLogger(__name__)


def parse_forwarded_for(header_value: str | None) -> str:
    """Extract the originating client from an X-Forwarded-For header.

    Examples:
        >>> parse_forwarded_for("203.0.113.7, 10.0.0.1")
        '203.0.113.7'
        >>> parse_forwarded_for(None)
        'default'
        >>> parse_forwarded_for(" , ")
        'default'
    """
    if not header_value:
        return DEFAULT_IDENTITY

    first_hop = header_value.split(",", 1)[0].strip()
    return first_hop or DEFAULT_IDENTITY


async def get_client_identity(
    x_forwarded_for: Annotated[str | None, Header(alias="X-Forwarded-For")] = None,
) -> str:
    """FastAPI dependency returning the rate limit identity for the request."""

    identity = parse_forwarded_for(x_forwarded_for)
    logger.debug(
        "rate_limit.identity",
        extra={
            "identity_hash": hash_identifier(identity),
            "anonymous": identity == DEFAULT_IDENTITY,
        },
    )
    return identity
