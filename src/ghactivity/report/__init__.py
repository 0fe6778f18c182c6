"""Normalization and CSV export of fetched contributions."""

from ghactivity.report.csv_writer import rows_to_csv, write_report
from ghactivity.report.normalize import (
    ContributionReport,
    IssueRow,
    PullRequestRow,
    RepositoryRow,
    ReviewRow,
    normalize_contributions,
)

__all__ = [
    "ContributionReport",
    "IssueRow",
    "PullRequestRow",
    "RepositoryRow",
    "ReviewRow",
    "normalize_contributions",
    "rows_to_csv",
    "write_report",
]
