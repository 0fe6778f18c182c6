"""Record retrievers: one GraphQL page request per call, no retries."""

import logging
from datetime import datetime
from typing import Any, Dict, Optional

from ghactivity.errors import ResponseShapeError, TransportError
from ghactivity.retrieval.client import GraphQLClient
from ghactivity.retrieval.records import (
    ISSUES,
    PULL_REQUESTS,
    REPOSITORIES,
    REVIEWS,
    ContributionKind,
    PageInfo,
    RawRecord,
    RecordPage,
    RecordRetriever,
)

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 50


def _iso(instant: datetime) -> str:
    return instant.isoformat().replace("+00:00", "Z")


def parse_page(kind: ContributionKind, data: Dict[str, Any], login: str) -> RecordPage[RawRecord]:
    """Extract a RecordPage from a contributionsCollection response."""
    user = data.get("user")
    if user is None:
        raise TransportError(f"Could not resolve user {login!r}")

    try:
        connection = user["contributionsCollection"][kind.connection]
        total_count = int(connection["totalCount"])
        page_info = PageInfo.from_graphql(connection["pageInfo"])
        nodes = connection["nodes"]
    except (KeyError, TypeError, ValueError) as e:
        raise ResponseShapeError(
            f"Unexpected {kind.connection} response for {login!r}: {e}"
        ) from e

    if not isinstance(nodes, list):
        raise ResponseShapeError(f"{kind.connection}.nodes is not a list")

    records = []
    for node in nodes:
        record = node.get(kind.node_field) if isinstance(node, dict) else None
        if record is None:
            # Deleted or inaccessible content comes back as null
            logger.debug(f"Skipping empty {kind.node_field} node for {login}")
            continue
        records.append(record)

    return RecordPage(records=records, total_count=total_count, page_info=page_info)


def make_retriever(
    client: GraphQLClient,
    kind: ContributionKind,
    login: str,
    start: datetime,
    end: datetime,
    page_size: int = DEFAULT_PAGE_SIZE,
) -> RecordRetriever[RawRecord]:
    """Build a retriever fetching one page of ``kind`` per call.

    Args:
        client: Shared GraphQL client
        kind: Contribution stream to query
        login: GitHub login whose contributions are fetched
        start: Window start (inclusive)
        end: Window end (inclusive)
        page_size: Records per request

    Returns:
        Async callable taking the previous page's end cursor (or None)
    """
    query = kind.build_query()
    base_variables = {
        "login": login,
        "from": _iso(start),
        "to": _iso(end),
        "first": page_size,
    }

    async def retrieve(cursor: Optional[str] = None) -> RecordPage[RawRecord]:
        data = await client.execute(query, {**base_variables, "after": cursor})
        return parse_page(kind, data, login)

    retrieve.__name__ = f"retrieve_{kind.connection}"
    return retrieve


def pull_request_retriever(client, login, start, end, page_size=DEFAULT_PAGE_SIZE):
    return make_retriever(client, PULL_REQUESTS, login, start, end, page_size)


def issue_retriever(client, login, start, end, page_size=DEFAULT_PAGE_SIZE):
    return make_retriever(client, ISSUES, login, start, end, page_size)


def review_retriever(client, login, start, end, page_size=DEFAULT_PAGE_SIZE):
    return make_retriever(client, REVIEWS, login, start, end, page_size)


def repository_retriever(client, login, start, end, page_size=DEFAULT_PAGE_SIZE):
    return make_retriever(client, REPOSITORIES, login, start, end, page_size)


# Named factory per stream, keyed by its contribution kind
RETRIEVERS = {
    PULL_REQUESTS: pull_request_retriever,
    ISSUES: issue_retriever,
    REVIEWS: review_retriever,
    REPOSITORIES: repository_retriever,
}
