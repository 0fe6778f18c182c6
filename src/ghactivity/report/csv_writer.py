"""CSV export of contribution reports."""

import csv
import io
import logging
from dataclasses import asdict, fields
from pathlib import Path
from typing import Dict, Sequence, Type

from ghactivity.report.normalize import (
    ContributionReport,
    IssueRow,
    PullRequestRow,
    RepositoryRow,
    ReviewRow,
)

logger = logging.getLogger(__name__)

PULL_REQUESTS_FILE = "pull-requests.csv"
ISSUES_FILE = "issues.csv"
REPOSITORIES_FILE = "repos.csv"
REVIEWS_FILE = "reviews.csv"


def rows_to_csv(rows: Sequence, row_type: Type) -> str:
    """Serialize rows of a dataclass type, header first.

    The header comes from the dataclass so empty reports still get one.
    """
    buffer = io.StringIO()
    writer = csv.DictWriter(
        buffer, fieldnames=[f.name for f in fields(row_type)], lineterminator="\n"
    )
    writer.writeheader()
    for row in rows:
        writer.writerow(asdict(row))
    return buffer.getvalue()


def write_report(report: ContributionReport, out_dir: Path) -> Dict[str, Path]:
    """Write the four CSV files of ``report`` into ``out_dir``.

    Returns:
        Mapping of file name to written path
    """
    out_dir = Path(out_dir)
    out_dir.mkdir(parents=True, exist_ok=True)

    outputs = {
        PULL_REQUESTS_FILE: rows_to_csv(report.pull_requests, PullRequestRow),
        ISSUES_FILE: rows_to_csv(report.issues, IssueRow),
        REPOSITORIES_FILE: rows_to_csv(report.repositories, RepositoryRow),
        REVIEWS_FILE: rows_to_csv(report.reviews, ReviewRow),
    }

    written = {}
    for name, content in outputs.items():
        path = out_dir / name
        with open(path, "w", newline="", encoding="utf-8") as f:
            f.write(content)
        written[name] = path

    logger.info(
        f"Wrote {len(report.pull_requests)} pull requests, {len(report.issues)} issues, "
        f"{len(report.repositories)} repos, {len(report.reviews)} reviews to {out_dir}"
    )
    return written
