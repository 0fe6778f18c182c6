"""Error types raised while fetching and reporting contributions."""

from datetime import datetime
from typing import Optional


# Phrases GitHub uses when its abuse detection (secondary rate limit) kicks in.
THROTTLE_PHRASES = (
    "wait a few minutes",
    "abuse detection",
    "secondary rate limit",
)

# Phrase GitHub uses once the hourly point quota (primary rate limit) is spent.
RATE_LIMIT_EXCEEDED_PHRASE = "api rate limit exceeded"


def is_throttle_message(message: str) -> bool:
    """Check whether an error message signals abuse-detection throttling."""
    lowered = message.lower()
    return any(phrase in lowered for phrase in THROTTLE_PHRASES)


def is_rate_limit_exceeded_message(message: str) -> bool:
    """Check whether an error message signals an exhausted primary quota."""
    return RATE_LIMIT_EXCEEDED_PHRASE in message.lower()


class GhActivityError(Exception):
    """Base class for all ghactivity errors."""

    pass


class ThrottleError(GhActivityError):
    """Raised when GitHub's abuse detection temporarily blocks requests.

    Recoverable: the pagination driver waits and retries the same page.
    """

    pass


class RateLimitExceededError(ThrottleError):
    """Raised when the primary rate limit quota is exhausted.

    Only waiting for the reset helps, so the driver skips the short backoff.
    ``reset_at`` comes from the ``x-ratelimit-reset`` header when GitHub
    sends one.
    """

    def __init__(self, message: str, reset_at: Optional[datetime] = None):
        self.reset_at = reset_at
        super().__init__(message)


class TransportError(GhActivityError):
    """Raised when a GraphQL request fails for any non-throttle reason."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        self.status_code = status_code
        super().__init__(message)


class ResponseShapeError(TransportError):
    """Raised when a response is missing fields the retriever relies on."""

    pass


class ConfigError(GhActivityError):
    """Raised for invalid configuration before any retrieval starts."""

    pass


class NormalizationError(GhActivityError):
    """Raised when a single record cannot be flattened into a row."""

    pass
