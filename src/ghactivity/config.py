"""Configuration for contribution retrieval and report generation."""

import calendar
from dataclasses import dataclass, field
from datetime import date, datetime, time, timezone
from pathlib import Path
from typing import List, Optional, Tuple

from ghactivity.errors import ConfigError


GITHUB_GRAPHQL_URL = "https://api.github.com/graphql"


@dataclass
class RetrievalConfig:
    """Tuning knobs for paging through the GraphQL API.

    Attributes:
        endpoint: GraphQL endpoint URL.
        page_size: Records requested per page.
        page_delay_seconds: Fixed pause between successful pages of one stream.
        backoff_base_seconds: Base wait for abuse-detection backoff.
        backoff_variance_seconds: Upper bound of the random jitter added to the base.
        long_throttle_attempt: Attempt number from which a throttle waits for
            the full rate-limit reset instead of backing off.
        reset_margin_seconds: Extra wait after the rate-limit reset time.
        countdown_tick_seconds: Interval between progress updates while waiting.
        request_timeout_seconds: HTTP timeout per GraphQL request.
    """

    endpoint: str = GITHUB_GRAPHQL_URL
    page_size: int = 50
    page_delay_seconds: float = 3.0
    backoff_base_seconds: float = 20.0
    backoff_variance_seconds: float = 3.0
    long_throttle_attempt: int = 4
    reset_margin_seconds: float = 1.0
    countdown_tick_seconds: float = 0.1
    request_timeout_seconds: float = 30.0


@dataclass
class ReportConfig:
    """Configuration for one report run.

    Attributes:
        token: GitHub token sent as bearer credential.
        start: First day of the contribution window (inclusive).
        end: Last day of the contribution window (inclusive).
        logins: Logins to report on. Empty means the token owner.
        out_dir: Root directory for CSV output.
        combine: Merge all logins into one set of CSV files.
        keep_going: Log a failing login and continue with the next one.
        retrieval: Paging and backoff settings.
    """

    token: str
    start: date
    end: date
    logins: List[str] = field(default_factory=list)
    out_dir: Path = field(default_factory=lambda: Path("out"))
    combine: bool = False
    keep_going: bool = False
    retrieval: RetrievalConfig = field(default_factory=RetrievalConfig)

    def __post_init__(self):
        """Validate credentials and the date window."""
        if isinstance(self.out_dir, str):
            self.out_dir = Path(self.out_dir)
        if not self.token or not self.token.strip():
            raise ConfigError(
                "No GitHub token provided. Pass --token or set GITHUB_TOKEN."
            )
        if self.start > self.end:
            raise ConfigError(
                f"Start date {self.start.isoformat()} is after end date {self.end.isoformat()}"
            )
        # contributionsCollection rejects spans longer than one year
        start_at, end_at = self.window()
        max_span = (
            datetime.combine(one_year_after(self.start), time.min, tzinfo=timezone.utc)
            - start_at
        )
        if end_at - start_at > max_span:
            raise ConfigError(
                f"Date window {self.start.isoformat()}..{self.end.isoformat()} "
                f"exceeds one year; the last day must be before "
                f"{one_year_after(self.start).isoformat()}"
            )

    def window(self) -> Tuple[datetime, datetime]:
        """Return the window as UTC instants covering both boundary days."""
        return (
            datetime.combine(self.start, time.min, tzinfo=timezone.utc),
            datetime.combine(self.end, time(23, 59, 59), tzinfo=timezone.utc),
        )


def one_month_before(day: date) -> date:
    """Same day in the previous month, clamped to that month's length."""
    year, month = (day.year, day.month - 1) if day.month > 1 else (day.year - 1, 12)
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, min(day.day, last_day))


def one_year_after(day: date) -> date:
    """Same day next year; 29 February maps to 28 February."""
    try:
        return day.replace(year=day.year + 1)
    except ValueError:
        return day.replace(year=day.year + 1, day=28)


def parse_date(value: str) -> date:
    """Parse a YYYY-MM-DD (or full ISO-8601) string into a date."""
    try:
        return datetime.fromisoformat(value.strip()).date()
    except ValueError:
        raise ConfigError(f"Invalid date {value!r}, expected YYYY-MM-DD") from None


def parse_logins(value: str) -> List[str]:
    """Split a comma-separated login list, dropping blanks."""
    return [login.strip() for login in value.split(",") if login.strip()]


def default_window(today: Optional[date] = None) -> Tuple[date, date]:
    """One calendar month ending today."""
    today = today or date.today()
    return one_month_before(today), today

