"""Tests for the GraphQL client's request format and error mapping."""

import asyncio
import json
from datetime import datetime, timezone

import httpx
import pytest

from ghactivity.errors import (
    RateLimitExceededError,
    ThrottleError,
    TransportError,
    is_rate_limit_exceeded_message,
    is_throttle_message,
)
from ghactivity.retrieval.client import GraphQLClient


def execute(handler, query="query { viewer { login } }", variables=None):
    async def go():
        async with GraphQLClient("secret-token", transport=httpx.MockTransport(handler)) as client:
            return await client.execute(query, variables)

    return asyncio.run(go())


def test_sends_bearer_token_and_payload():
    seen = {}

    def handler(request):
        seen["auth"] = request.headers["Authorization"]
        seen["url"] = str(request.url)
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json={"data": {"viewer": {"login": "octocat"}}})

    data = execute(handler, variables={"login": "octocat"})

    assert data == {"viewer": {"login": "octocat"}}
    assert seen["auth"] == "bearer secret-token"
    assert seen["url"] == "https://api.github.com/graphql"
    assert seen["body"]["variables"] == {"login": "octocat"}
    assert "viewer" in seen["body"]["query"]


def test_abuse_detection_http_403_is_throttle():
    def handler(request):
        return httpx.Response(
            403,
            json={
                "message": "You have triggered an abuse detection mechanism. "
                "Please wait a few minutes before you try again."
            },
        )

    with pytest.raises(ThrottleError):
        execute(handler)


def test_secondary_rate_limit_graphql_error_is_throttle():
    def handler(request):
        return httpx.Response(
            200,
            json={"errors": [{"message": "You have exceeded a secondary rate limit."}]},
        )

    with pytest.raises(ThrottleError):
        execute(handler)


def test_rate_limited_graphql_error_is_quota_exhaustion():
    def handler(request):
        return httpx.Response(
            200,
            headers={"x-ratelimit-remaining": "0", "x-ratelimit-reset": "1714568400"},
            json={
                "errors": [
                    {"type": "RATE_LIMITED", "message": "API rate limit exceeded for user ID 1."}
                ]
            },
        )

    with pytest.raises(RateLimitExceededError) as exc_info:
        execute(handler)
    assert exc_info.value.reset_at == datetime(2024, 5, 1, 13, 0, 0, tzinfo=timezone.utc)


def test_http_403_with_no_remaining_quota_is_quota_exhaustion():
    def handler(request):
        return httpx.Response(
            403,
            headers={"x-ratelimit-remaining": "0"},
            json={"message": "Forbidden"},
        )

    with pytest.raises(RateLimitExceededError) as exc_info:
        execute(handler)
    assert exc_info.value.reset_at is None


def test_http_403_with_quota_left_is_fatal():
    def handler(request):
        return httpx.Response(
            403,
            headers={"x-ratelimit-remaining": "4000"},
            json={"message": "Resource not accessible by integration"},
        )

    with pytest.raises(TransportError) as exc_info:
        execute(handler)
    assert exc_info.value.status_code == 403


def test_other_graphql_errors_are_fatal():
    def handler(request):
        return httpx.Response(
            200,
            json={
                "data": {"user": None},
                "errors": [{"message": "Could not resolve to a User with the login of 'nobody'."}],
            },
        )

    with pytest.raises(TransportError, match="Could not resolve"):
        execute(handler)


def test_bad_credentials():
    def handler(request):
        return httpx.Response(401, json={"message": "Bad credentials"})

    with pytest.raises(TransportError, match="Bad credentials") as exc_info:
        execute(handler)
    assert exc_info.value.status_code == 401


def test_server_error_is_fatal():
    def handler(request):
        return httpx.Response(502, text="Bad gateway")

    with pytest.raises(TransportError) as exc_info:
        execute(handler)
    assert exc_info.value.status_code == 502
    assert not isinstance(exc_info.value, ThrottleError)


def test_network_failure_is_transport_error():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(TransportError, match="connection refused"):
        execute(handler)


def test_missing_data_is_transport_error():
    def handler(request):
        return httpx.Response(200, json={})

    with pytest.raises(TransportError, match="no data"):
        execute(handler)


@pytest.mark.parametrize(
    "message,expected",
    [
        ("Please wait a few minutes before you try again", True),
        ("You have triggered an ABUSE DETECTION mechanism", True),
        ("exceeded a secondary rate limit", True),
        ("Bad credentials", False),
        ("", False),
    ],
)
def test_is_throttle_message(message, expected):
    assert is_throttle_message(message) is expected


@pytest.mark.parametrize(
    "message,expected",
    [
        ("API rate limit exceeded for user ID 1.", True),
        ("api RATE LIMIT exceeded", True),
        ("You have exceeded a secondary rate limit", False),
    ],
)
def test_is_rate_limit_exceeded_message(message, expected):
    assert is_rate_limit_exceeded_message(message) is expected
