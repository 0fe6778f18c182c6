"""Tests for record retrievers and response envelope parsing."""

import asyncio
from datetime import datetime, timezone

import pytest

from conftest import FakeGitHub, make_issue, make_pr, make_repo, make_review
from ghactivity.errors import ResponseShapeError, TransportError
from ghactivity.retrieval.records import ALL_KINDS, ISSUES, PULL_REQUESTS, REVIEWS
from ghactivity.retrieval.retrievers import (
    RETRIEVERS,
    issue_retriever,
    make_retriever,
    parse_page,
    pull_request_retriever,
    repository_retriever,
    review_retriever,
)

START = datetime(2024, 1, 1, tzinfo=timezone.utc)
END = datetime(2024, 1, 31, 23, 59, 59, tzinfo=timezone.utc)


def envelope(connection, nodes, has_next=False, total=None, end_cursor="Y3Vyc29y"):
    return {
        "user": {
            "contributionsCollection": {
                connection: {
                    "totalCount": len(nodes) if total is None else total,
                    "pageInfo": {
                        "startCursor": None,
                        "endCursor": end_cursor,
                        "hasNextPage": has_next,
                        "hasPreviousPage": False,
                    },
                    "nodes": nodes,
                }
            }
        }
    }


class TestParsePage:

    def test_unwraps_node_field(self):
        data = envelope("issueContributions", [{"issue": make_issue(1)}, {"issue": make_issue(2)}], True, 7)

        page = parse_page(ISSUES, data, "octocat")

        assert [r["title"] for r in page.records] == ["Issue 1", "Issue 2"]
        assert page.total_count == 7
        assert page.page_info.has_next_page is True
        assert page.page_info.end_cursor == "Y3Vyc29y"

    def test_skips_null_records(self):
        data = envelope("pullRequestContributions", [{"pullRequest": None}, {"pullRequest": make_pr(3)}])

        page = parse_page(PULL_REQUESTS, data, "octocat")

        assert len(page.records) == 1

    def test_unknown_user(self):
        with pytest.raises(TransportError, match="Could not resolve user"):
            parse_page(REVIEWS, {"user": None}, "nobody")

    def test_missing_connection(self):
        data = {"user": {"contributionsCollection": {}}}
        with pytest.raises(ResponseShapeError):
            parse_page(REVIEWS, data, "octocat")

    def test_missing_page_info(self):
        data = envelope("issueContributions", [])
        data["user"]["contributionsCollection"]["issueContributions"]["pageInfo"] = {}
        with pytest.raises(ResponseShapeError):
            parse_page(ISSUES, data, "octocat")

    def test_nodes_not_a_list(self):
        data = envelope("issueContributions", [])
        data["user"]["contributionsCollection"]["issueContributions"]["nodes"] = None
        with pytest.raises(ResponseShapeError):
            parse_page(ISSUES, data, "octocat")


class TestQueries:

    @pytest.mark.parametrize("kind", ALL_KINDS, ids=lambda k: k.connection)
    def test_query_uses_variables(self, kind):
        query = kind.build_query()
        assert f"{kind.connection}(first: $first, after: $after)" in query
        assert "contributionsCollection(from: $from, to: $to)" in query
        assert "pageInfo { startCursor endCursor hasNextPage hasPreviousPage }" in query
        assert kind.node_field in query


def test_retriever_passes_cursor_and_window():
    github = FakeGitHub({"octocat": {"pullRequestContributions": [[make_pr(1)], [make_pr(2)]]}})
    retriever = make_retriever(github, PULL_REQUESTS, "octocat", START, END, page_size=25)

    async def go():
        first = await retriever(None)
        second = await retriever(first.page_info.end_cursor)
        return first, second

    first, second = asyncio.run(go())

    assert first.page_info.has_next_page
    assert not second.page_info.has_next_page
    _, vars_first = github.calls[0]
    _, vars_second = github.calls[1]
    assert vars_first == {
        "login": "octocat",
        "from": "2024-01-01T00:00:00Z",
        "to": "2024-01-31T23:59:59Z",
        "first": 25,
        "after": None,
    }
    assert vars_second["after"] == "c1"


@pytest.mark.parametrize(
    "factory,connection,record",
    [
        (pull_request_retriever, "pullRequestContributions", make_pr(1)),
        (issue_retriever, "issueContributions", make_issue(1)),
        (review_retriever, "pullRequestReviewContributions", make_review(1)),
        (repository_retriever, "repositoryContributions", make_repo()),
    ],
)
def test_named_retrievers(factory, connection, record):
    github = FakeGitHub({"octocat": {connection: [[record]]}})

    page = asyncio.run(factory(github, "octocat", START, END)(None))

    assert page.records == [record]
    assert github.calls[0][1]["first"] == 50


def test_every_kind_has_a_named_retriever():
    assert set(RETRIEVERS) == set(ALL_KINDS)


def test_retriever_does_not_retry():
    github = FakeGitHub({}, failures={"issueContributions": TransportError("boom")})
    retriever = make_retriever(github, ISSUES, "octocat", START, END)

    with pytest.raises(TransportError):
        asyncio.run(retriever(None))
    assert len(github.calls) == 1
