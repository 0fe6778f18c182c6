"""Async GraphQL client for the GitHub API.

Wraps a single httpx.AsyncClient shared by every stream of a run and maps
failures onto the ghactivity error taxonomy:

- Abuse detection (secondary rate limit) -> ThrottleError, retried by the driver
- Exhausted quota (primary rate limit) -> RateLimitExceededError, waited out
- Anything else (network, HTTP status, GraphQL errors) -> TransportError
"""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional

import httpx

from ghactivity.config import GITHUB_GRAPHQL_URL
from ghactivity.errors import (
    RateLimitExceededError,
    ThrottleError,
    TransportError,
    is_rate_limit_exceeded_message,
    is_throttle_message,
)

logger = logging.getLogger(__name__)


def _reset_from_headers(response: httpx.Response) -> Optional[datetime]:
    """Read ``x-ratelimit-reset`` (epoch seconds) if GitHub sent it."""
    value = response.headers.get("x-ratelimit-reset")
    try:
        return datetime.fromtimestamp(int(value), tz=timezone.utc)
    except (TypeError, ValueError):
        return None


def _quota_exhausted(response: httpx.Response) -> bool:
    return response.headers.get("x-ratelimit-remaining") == "0"


class GraphQLClient:
    """GitHub GraphQL client with bearer-token auth.

    The token is handed in explicitly; the client never reads the environment.
    """

    def __init__(
        self,
        token: str,
        endpoint: str = GITHUB_GRAPHQL_URL,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.endpoint = endpoint
        self.timeout = timeout
        self._token = token
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    async def __aenter__(self) -> "GraphQLClient":
        await self._ensure_client()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    async def close(self) -> None:
        """Close the underlying HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None

    async def _ensure_client(self) -> httpx.AsyncClient:
        """Ensure HTTP client is initialized."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=self.timeout,
                transport=self._transport,
                headers={
                    "Authorization": f"bearer {self._token}",
                    "Accept": "application/vnd.github+json",
                    "User-Agent": "ghactivity",
                },
            )
        return self._client

    def _raise_for_status(self, response: httpx.Response) -> None:
        """Translate a non-2xx response into a ghactivity error."""
        if response.is_success:
            return

        message = response.text
        try:
            body = response.json()
        except ValueError:
            body = None
        if isinstance(body, dict) and body.get("message"):
            message = body["message"]

        if is_throttle_message(message):
            raise ThrottleError(message)
        if response.status_code in (403, 429) and (
            _quota_exhausted(response) or is_rate_limit_exceeded_message(message)
        ):
            raise RateLimitExceededError(message, reset_at=_reset_from_headers(response))
        if response.status_code == 401:
            raise TransportError(
                f"Bad credentials (HTTP 401): {message}", status_code=401
            )
        raise TransportError(
            f"GraphQL request failed with HTTP {response.status_code}: {message}",
            status_code=response.status_code,
        )

    async def execute(
        self, query: str, variables: Optional[Dict[str, Any]] = None
    ) -> Dict[str, Any]:
        """Run one GraphQL query and return its ``data`` object.

        Raises:
            ThrottleError: GitHub asked us to slow down (abuse detection).
            RateLimitExceededError: The hourly quota is spent.
            TransportError: Any other failure.
        """
        client = await self._ensure_client()
        payload = {"query": query, "variables": variables or {}}

        try:
            response = await client.post(self.endpoint, json=payload)
        except httpx.HTTPError as e:
            raise TransportError(f"GraphQL request failed: {e}") from e

        self._raise_for_status(response)

        try:
            body = response.json()
        except ValueError as e:
            raise TransportError(f"GraphQL response is not JSON: {e}") from e
        if not isinstance(body, dict):
            raise TransportError("GraphQL response has no data")

        errors = body.get("errors")
        if errors:
            message = "; ".join(
                str(err.get("message", err)) if isinstance(err, dict) else str(err)
                for err in errors
            )
            if is_throttle_message(message):
                raise ThrottleError(message)
            rate_limited = any(
                isinstance(err, dict) and err.get("type") == "RATE_LIMITED"
                for err in errors
            )
            if rate_limited or is_rate_limit_exceeded_message(message):
                raise RateLimitExceededError(
                    message, reset_at=_reset_from_headers(response)
                )
            raise TransportError(f"GraphQL errors: {message}")

        data = body.get("data")
        if not isinstance(data, dict):
            raise TransportError("GraphQL response has no data")
        return data
