"""Shared fakes for retrieval tests: sleep recorder, progress recorder, fake GitHub."""

import asyncio
from typing import Any, Dict, List, Optional

import pytest

from ghactivity.retrieval.progress import ProgressSink


class FakeSleep:
    """Records requested sleeps instead of waiting."""

    def __init__(self):
        self.calls: List[float] = []

    async def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)

    @property
    def total(self) -> float:
        return sum(self.calls)


class RecordingSink(ProgressSink):
    def __init__(self):
        self.updates = []
        self.closed = False

    def report(self, stream, current, total, note=None):
        self.updates.append((stream, current, total, note))

    def close(self):
        self.closed = True


class ZeroJitter:
    """Stand-in for random.Random that never adds jitter."""

    def uniform(self, a, b):
        return a


def make_repo(name="widget", owner="acme", stars=10, releases=2, langs=("Python",)):
    return {
        "url": f"https://github.com/{owner}/{name}",
        "name": name,
        "owner": {"login": owner},
        "stargazers": {"totalCount": stars},
        "releases": {"totalCount": releases},
        "languages": {"nodes": [{"name": lang} for lang in langs]},
    }


def make_issue(number=1, author="octocat", repo=None):
    return {
        "url": f"https://github.com/acme/widget/issues/{number}",
        "title": f"Issue {number}",
        "createdAt": "2024-03-05T10:00:00Z",
        "comments": {"totalCount": 3},
        "author": {"login": author} if author else None,
        "repository": repo or make_repo(),
    }


def make_pr(number=1, author="octocat", repo=None):
    pr = make_issue(number, author, repo)
    pr["url"] = f"https://github.com/acme/widget/pull/{number}"
    pr.update({"additions": 12, "deletions": 4, "changedFiles": 2})
    return pr


def make_review(number=1, author="octocat", pr_author="hubot"):
    return {
        "url": f"https://github.com/acme/widget/pull/{number}#pullrequestreview-{number}",
        "createdAt": "2024-03-06T08:30:00Z",
        "comments": {"totalCount": 1},
        "author": {"login": author},
        "pullRequest": make_pr(number, pr_author),
    }


CONNECTION_NODES = {
    "pullRequestContributions": "pullRequest",
    "issueContributions": "issue",
    "pullRequestReviewContributions": "pullRequestReview",
    "repositoryContributions": "repository",
}


class FakeGitHub:
    """Duck-typed GraphQLClient answering from canned pages.

    ``pages`` maps login -> connection -> list of pages (each a list of records).
    Unknown logins come back as ``user: null``. ``probe_failures`` are raised,
    in order, by the first rate limit probes.
    """

    def __init__(
        self,
        pages: Dict[str, Dict[str, List[List[Dict[str, Any]]]]],
        viewer: str = "octocat",
        delays: Optional[Dict[str, float]] = None,
        failures: Optional[Dict[str, Exception]] = None,
        probe_failures: Optional[List[Exception]] = None,
    ):
        self.pages = pages
        self.viewer = viewer
        self.delays = delays or {}
        self.failures = failures or {}
        self.probe_failures = list(probe_failures or [])
        self.calls = []
        self.completed = []

    async def execute(self, query, variables=None):
        variables = variables or {}
        self.calls.append((query, variables))

        if "rateLimit" in query:
            if self.probe_failures:
                raise self.probe_failures.pop(0)
            return {
                "viewer": {"login": self.viewer},
                "rateLimit": {
                    "limit": 5000,
                    "cost": 1,
                    "remaining": 4999,
                    "resetAt": "2030-01-01T00:00:00Z",
                },
            }
        if "contributionsCollection" not in query:
            return {"viewer": {"login": self.viewer}}

        connection = next(c for c in CONNECTION_NODES if f"{c}(" in query)
        if connection in self.failures:
            raise self.failures[connection]
        if connection in self.delays:
            await asyncio.sleep(self.delays[connection])

        login = variables["login"]
        if login not in self.pages:
            return {"user": None}

        pages = self.pages[login].get(connection, [[]])
        after = variables.get("after")
        index = int(after[1:]) if after else 0
        has_next = index + 1 < len(pages)
        records = pages[index]
        self.completed.append(connection)
        return {
            "user": {
                "contributionsCollection": {
                    connection: {
                        "totalCount": sum(len(p) for p in pages),
                        "pageInfo": {
                            "startCursor": f"s{index}",
                            "endCursor": f"c{index + 1}",
                            "hasNextPage": has_next,
                            "hasPreviousPage": index > 0,
                        },
                        "nodes": [
                            {CONNECTION_NODES[connection]: r} for r in records
                        ],
                    }
                }
            }
        }


@pytest.fixture
def fake_sleep():
    return FakeSleep()


@pytest.fixture
def sink():
    return RecordingSink()
