"""Flatten raw GraphQL contribution records into tabular rows.

A record that cannot be flattened is logged and dropped; the rest of the
batch is still normalized, so a report may hold fewer rows than records
fetched. Missing authors (deleted accounts) fall back to ``UNKNOWN``.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Iterable, List, TypeVar

from ghactivity.errors import NormalizationError
from ghactivity.retrieval.orchestrator import AggregatedContributions
from ghactivity.retrieval.rate_limit import parse_timestamp
from ghactivity.retrieval.records import RawRecord

logger = logging.getLogger(__name__)

UNKNOWN = "unknown"

_REQUIRED = object()

Row = TypeVar("Row")


@dataclass(frozen=True)
class IssueRow:
    user: str
    url: str
    title: str
    comment_count: int
    created_at: str
    repo_stars: int
    repo_name: str
    repo_releases: int
    repo_owner: str
    repo_langs: str


@dataclass(frozen=True)
class PullRequestRow:
    user: str
    url: str
    title: str
    comment_count: int
    created_at: str
    additions: int
    deletions: int
    changed_files: int
    repo_stars: int
    repo_name: str
    repo_releases: int
    repo_owner: str
    repo_langs: str


@dataclass(frozen=True)
class RepositoryRow:
    user: str
    url: str
    name: str
    owner: str
    stars: int
    releases: int
    langs: str


@dataclass(frozen=True)
class ReviewRow:
    user: str
    url: str
    created_at: str
    comment_count: int
    pr_url: str
    pr_additions: int
    pr_deletions: int
    pr_changed_files: int
    pr_created_at: str
    pr_author: str
    pr_repo_stars: int
    pr_repo_release_count: int
    pr_repo_languages: str
    pr_repo_name: str
    pr_repo_owner: str
    pr_repo_url: str


def _dig(record: Any, *path: str, default: Any = _REQUIRED) -> Any:
    """Follow ``path`` through nested dicts.

    Missing or null values return ``default``, or raise NormalizationError
    when no default is given.
    """
    value = record
    for key in path:
        value = value.get(key) if isinstance(value, dict) else None
        if value is None:
            if default is _REQUIRED:
                raise NormalizationError(f"missing field {'.'.join(path)}")
            return default
    return value


def _date(record: RawRecord, *path: str) -> str:
    raw = _dig(record, *path)
    try:
        return parse_timestamp(raw).date().isoformat()
    except (AttributeError, ValueError) as e:
        raise NormalizationError(f"bad timestamp {'.'.join(path)}={raw!r}") from e


def _langs(repository: RawRecord) -> str:
    nodes = _dig(repository, "languages", "nodes", default=[])
    return ", ".join(n["name"] for n in nodes if isinstance(n, dict) and n.get("name"))


def _int(record: RawRecord, *path: str) -> int:
    value = _dig(record, *path)
    try:
        return int(value)
    except (TypeError, ValueError) as e:
        raise NormalizationError(f"bad integer {'.'.join(path)}={value!r}") from e


def normalize_issue(issue: RawRecord) -> IssueRow:
    repo = _dig(issue, "repository")
    return IssueRow(
        user=_dig(issue, "author", "login", default=UNKNOWN),
        url=_dig(issue, "url"),
        title=_dig(issue, "title", default=""),
        comment_count=_int(issue, "comments", "totalCount"),
        created_at=_date(issue, "createdAt"),
        repo_stars=_int(repo, "stargazers", "totalCount"),
        repo_name=_dig(repo, "name"),
        repo_releases=_int(repo, "releases", "totalCount"),
        repo_owner=_dig(repo, "owner", "login", default=UNKNOWN),
        repo_langs=_langs(repo),
    )


def normalize_pull_request(pr: RawRecord) -> PullRequestRow:
    repo = _dig(pr, "repository")
    return PullRequestRow(
        user=_dig(pr, "author", "login", default=UNKNOWN),
        url=_dig(pr, "url"),
        title=_dig(pr, "title", default=""),
        comment_count=_int(pr, "comments", "totalCount"),
        created_at=_date(pr, "createdAt"),
        additions=_int(pr, "additions"),
        deletions=_int(pr, "deletions"),
        changed_files=_int(pr, "changedFiles"),
        repo_stars=_int(repo, "stargazers", "totalCount"),
        repo_name=_dig(repo, "name"),
        repo_releases=_int(repo, "releases", "totalCount"),
        repo_owner=_dig(repo, "owner", "login", default=UNKNOWN),
        repo_langs=_langs(repo),
    )


def normalize_repository(repo: RawRecord, user: str = UNKNOWN) -> RepositoryRow:
    """Repository creations carry no author, so the login is passed in."""
    return RepositoryRow(
        user=user,
        url=_dig(repo, "url"),
        name=_dig(repo, "name"),
        owner=_dig(repo, "owner", "login", default=UNKNOWN),
        stars=_int(repo, "stargazers", "totalCount"),
        releases=_int(repo, "releases", "totalCount"),
        langs=_langs(repo),
    )


def normalize_review(review: RawRecord) -> ReviewRow:
    pr = _dig(review, "pullRequest")
    repo = _dig(pr, "repository")
    return ReviewRow(
        user=_dig(review, "author", "login", default=UNKNOWN),
        url=_dig(review, "url"),
        created_at=_date(review, "createdAt"),
        comment_count=_int(review, "comments", "totalCount"),
        pr_url=_dig(pr, "url"),
        pr_additions=_int(pr, "additions"),
        pr_deletions=_int(pr, "deletions"),
        pr_changed_files=_int(pr, "changedFiles"),
        pr_created_at=_date(pr, "createdAt"),
        pr_author=_dig(pr, "author", "login", default=UNKNOWN),
        pr_repo_stars=_int(repo, "stargazers", "totalCount"),
        pr_repo_release_count=_int(repo, "releases", "totalCount"),
        pr_repo_languages=_langs(repo),
        pr_repo_name=_dig(repo, "name"),
        pr_repo_owner=_dig(repo, "owner", "login", default=UNKNOWN),
        pr_repo_url=_dig(repo, "url", default=""),
    )


def normalize_all(
    records: Iterable[RawRecord],
    normalize: Callable[[RawRecord], Row],
    label: str,
) -> List[Row]:
    """Normalize every record, dropping (and logging) the malformed ones."""
    rows = []
    dropped = 0
    for record in records:
        try:
            rows.append(normalize(record))
        except NormalizationError as e:
            dropped += 1
            url = record.get("url") if isinstance(record, dict) else None
            logger.warning(f"Dropping malformed {label} record {url or '?'}: {e}")
    if dropped:
        logger.warning(f"Dropped {dropped} malformed {label} record(s)")
    return rows


@dataclass
class ContributionReport:
    """Normalized rows of one or more logins, ready for CSV export."""

    pull_requests: List[PullRequestRow] = field(default_factory=list)
    issues: List[IssueRow] = field(default_factory=list)
    reviews: List[ReviewRow] = field(default_factory=list)
    repositories: List[RepositoryRow] = field(default_factory=list)

    def extend(self, other: "ContributionReport") -> None:
        """Append another report's rows, keeping their order."""
        self.pull_requests.extend(other.pull_requests)
        self.issues.extend(other.issues)
        self.reviews.extend(other.reviews)
        self.repositories.extend(other.repositories)


def normalize_contributions(
    contributions: AggregatedContributions, login: str
) -> ContributionReport:
    """Flatten everything fetched for ``login``."""
    return ContributionReport(
        pull_requests=normalize_all(
            contributions.pull_requests, normalize_pull_request, "pull request"
        ),
        issues=normalize_all(contributions.issues, normalize_issue, "issue"),
        reviews=normalize_all(contributions.reviews, normalize_review, "review"),
        repositories=normalize_all(
            contributions.repositories,
            lambda repo: normalize_repository(repo, user=login),
            "repository",
        ),
    )
