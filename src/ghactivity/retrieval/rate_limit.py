"""Rate limit probing and abuse-detection backoff.

GitHub enforces two separate limits on the GraphQL API:
- Primary: a point quota per hour with a known reset time (``rateLimit``)
- Secondary: undocumented abuse detection that asks clients to
  "wait a few minutes" before retrying

The backoff policy covers the secondary limit; the probe reports the
primary one so a driver can wait out a full reset.
"""

import random
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

from ghactivity.errors import ConfigError, ResponseShapeError
from ghactivity.retrieval.client import GraphQLClient


BACKOFF_BASE_SECONDS = 20.0
BACKOFF_VARIANCE_SECONDS = 3.0

RATE_LIMIT_QUERY = """
query {
  viewer { login }
  rateLimit { limit cost remaining resetAt }
}
"""

VIEWER_QUERY = """
query {
  viewer { login }
}
"""


def compute_backoff(
    attempt: int,
    base: float = BACKOFF_BASE_SECONDS,
    variance: float = BACKOFF_VARIANCE_SECONDS,
    rng: Optional[random.Random] = None,
) -> float:
    """Seconds to wait before retry number ``attempt`` after a throttle.

    Grows quadratically with the attempt count. The jitter keeps concurrent
    streams from retrying in lockstep.
    """
    if attempt < 1:
        raise ValueError(f"attempt must be >= 1, got {attempt}")
    jitter = (rng or random).uniform(0, variance)
    return (base + jitter) * attempt * attempt


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def parse_timestamp(value: str) -> datetime:
    """Parse a GitHub ISO-8601 timestamp (``2024-01-01T00:00:00Z``)."""
    return datetime.fromisoformat(value.replace("Z", "+00:00"))


@dataclass
class RateLimitStatus:
    """Snapshot of the primary GraphQL rate limit."""

    remaining: int
    reset_at: datetime
    limit: int = 0
    cost: int = 0
    viewer_login: Optional[str] = None


async def probe_rate_limit(client: GraphQLClient) -> RateLimitStatus:
    """Query the remaining quota and its reset time.

    Failures propagate unchanged; the caller decides whether to retry.
    """
    data = await client.execute(RATE_LIMIT_QUERY)
    rate_limit = data.get("rateLimit")
    if not isinstance(rate_limit, dict):
        raise ResponseShapeError("rateLimit missing from response")
    try:
        reset_at = parse_timestamp(rate_limit["resetAt"])
        remaining = int(rate_limit["remaining"])
    except (KeyError, TypeError, ValueError) as e:
        raise ResponseShapeError(f"Malformed rateLimit: {rate_limit!r}") from e

    viewer = data.get("viewer") or {}
    return RateLimitStatus(
        remaining=remaining,
        reset_at=reset_at,
        limit=int(rate_limit.get("limit") or 0),
        cost=int(rate_limit.get("cost") or 0),
        viewer_login=viewer.get("login"),
    )


async def fetch_viewer_login(client: GraphQLClient) -> str:
    """Resolve the login that owns the token."""
    data = await client.execute(VIEWER_QUERY)
    login = (data.get("viewer") or {}).get("login")
    if not login:
        raise ConfigError("Could not determine login of the token owner")
    return login
