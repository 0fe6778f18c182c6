"""Page and stream descriptors shared by retrievers and the pagination driver."""

from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, Generic, List, Optional, TypeVar

from ghactivity.errors import ResponseShapeError

T = TypeVar("T")

RawRecord = Dict[str, Any]


@dataclass
class PageInfo:
    """GraphQL connection cursor state for one page."""

    start_cursor: Optional[str] = None
    end_cursor: Optional[str] = None
    has_next_page: bool = False
    has_previous_page: bool = False

    @classmethod
    def from_graphql(cls, data: Dict[str, Any]) -> "PageInfo":
        """Build from a ``pageInfo`` object."""
        if not isinstance(data, dict) or "hasNextPage" not in data:
            raise ResponseShapeError(f"Malformed pageInfo: {data!r}")
        return cls(
            start_cursor=data.get("startCursor"),
            end_cursor=data.get("endCursor"),
            has_next_page=bool(data["hasNextPage"]),
            has_previous_page=bool(data.get("hasPreviousPage", False)),
        )


@dataclass
class RecordPage(Generic[T]):
    """One page of records plus the connection's total count."""

    records: List[T] = field(default_factory=list)
    total_count: int = 0
    page_info: PageInfo = field(default_factory=PageInfo)


RecordRetriever = Callable[[Optional[str]], Awaitable[RecordPage[T]]]


# Repository fields shared by every record kind.
REPOSITORY_SELECTION = """
url
name
owner { login }
stargazers { totalCount }
releases { totalCount }
languages(first: 10) { nodes { name } }
"""

ISSUE_SELECTION = f"""
url
title
createdAt
comments {{ totalCount }}
author {{ login }}
repository {{ {REPOSITORY_SELECTION} }}
"""

PULL_REQUEST_SELECTION = f"""
{ISSUE_SELECTION}
additions
deletions
changedFiles
"""

REVIEW_SELECTION = f"""
url
createdAt
comments {{ totalCount }}
author {{ login }}
pullRequest {{
  url
  title
  additions
  deletions
  changedFiles
  createdAt
  author {{ login }}
  repository {{ {REPOSITORY_SELECTION} }}
}}
"""


@dataclass(frozen=True)
class ContributionKind:
    """Describes one contribution stream of ``contributionsCollection``.

    Attributes:
        name: Display name used in progress output.
        connection: Connection field on contributionsCollection.
        node_field: Field of each connection node that holds the record.
        selection: GraphQL selection set for one record.
    """

    name: str
    connection: str
    node_field: str
    selection: str

    def build_query(self) -> str:
        """GraphQL query fetching one page of this stream."""
        return f"""
query($login: String!, $from: DateTime!, $to: DateTime!, $first: Int!, $after: String) {{
  user(login: $login) {{
    contributionsCollection(from: $from, to: $to) {{
      {self.connection}(first: $first, after: $after) {{
        totalCount
        pageInfo {{ startCursor endCursor hasNextPage hasPreviousPage }}
        nodes {{
          {self.node_field} {{ {self.selection} }}
        }}
      }}
    }}
  }}
}}
"""


PULL_REQUESTS = ContributionKind(
    name="Pull Requests",
    connection="pullRequestContributions",
    node_field="pullRequest",
    selection=PULL_REQUEST_SELECTION,
)

ISSUES = ContributionKind(
    name="Issues",
    connection="issueContributions",
    node_field="issue",
    selection=ISSUE_SELECTION,
)

REVIEWS = ContributionKind(
    name="Code Reviews",
    connection="pullRequestReviewContributions",
    node_field="pullRequestReview",
    selection=REVIEW_SELECTION,
)

REPOSITORIES = ContributionKind(
    name="Repositories",
    connection="repositoryContributions",
    node_field="repository",
    selection=REPOSITORY_SELECTION,
)

ALL_KINDS = (PULL_REQUESTS, ISSUES, REVIEWS, REPOSITORIES)
