"""Command-line interface for contribution reports.

Usage:
    ghactivity --login octocat,hubot --start 2024-01-01 --end 2024-03-31
    ghactivity --combine -l octocat,hubot -o reports
    python -m ghactivity

Environment Variables (can be set in .env file):
    GITHUB_TOKEN - GitHub personal access token (overridden by --token)
"""

import argparse
import asyncio
import logging
import os
import sys
from pathlib import Path
from typing import List, Optional

from dotenv import find_dotenv, load_dotenv

from ghactivity.config import (
    ReportConfig,
    RetrievalConfig,
    default_window,
    parse_date,
    parse_logins,
)
from ghactivity.errors import ConfigError, GhActivityError
from ghactivity.retrieval.client import GraphQLClient
from ghactivity.retrieval.orchestrator import ContributionOrchestrator, tqdm_progress
from ghactivity.retrieval.progress import LoggingProgressSink
from ghactivity.runner import run_report

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="ghactivity",
        description="Export GitHub contribution activity (pull requests, issues, "
        "code reviews, repository creations) to CSV",
    )
    parser.add_argument(
        "--start", "-s",
        help="First day of the window, YYYY-MM-DD (default: one month before --end)",
    )
    parser.add_argument(
        "--end", "-e",
        help="Last day of the window, YYYY-MM-DD (default: today)",
    )
    parser.add_argument(
        "--login", "-l",
        default="",
        help="Comma-separated GitHub logins (default: owner of the token)",
    )
    parser.add_argument(
        "--out", "-o",
        default="out",
        help="Output directory (default: out)",
    )
    parser.add_argument(
        "--combine",
        action="store_true",
        help="Write all logins into one set of CSV files",
    )
    parser.add_argument(
        "--token", "-t",
        default=None,
        help="GitHub token (env: GITHUB_TOKEN)",
    )
    parser.add_argument(
        "--keep-going",
        action="store_true",
        help="Continue with the next login when one fails",
    )
    parser.add_argument(
        "--no-progress",
        action="store_true",
        help="Log progress lines instead of drawing progress bars",
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable debug logging",
    )
    return parser


def config_from_args(args: argparse.Namespace) -> ReportConfig:
    """Build the run configuration from parsed arguments.

    Raises:
        ConfigError: Missing token or invalid dates.
    """
    default_start, default_end = default_window()
    end = parse_date(args.end) if args.end else default_end
    if args.start:
        start = parse_date(args.start)
    elif args.end:
        start, _ = default_window(end)
    else:
        start = default_start

    token = args.token if args.token is not None else os.environ.get("GITHUB_TOKEN", "")

    return ReportConfig(
        token=token,
        start=start,
        end=end,
        logins=parse_logins(args.login or ""),
        out_dir=Path(args.out),
        combine=args.combine,
        keep_going=args.keep_going,
        retrieval=RetrievalConfig(),
    )


async def run(config: ReportConfig, show_progress: bool = True) -> List[str]:
    """Run a report with a fresh GraphQL client."""
    sink = LoggingProgressSink()

    def log_progress(index, stream):
        return sink

    progress_factory = tqdm_progress if show_progress else log_progress

    async with GraphQLClient(
        config.token,
        endpoint=config.retrieval.endpoint,
        timeout=config.retrieval.request_timeout_seconds,
    ) as client:
        orchestrator = ContributionOrchestrator(
            client, config.retrieval, progress_factory=progress_factory
        )
        return await run_report(config, client, orchestrator)


def main(argv: Optional[List[str]] = None) -> int:
    load_dotenv(find_dotenv(usecwd=True))

    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    try:
        config = config_from_args(args)
    except ConfigError as e:
        logger.error(str(e))
        return 1

    logger.info(
        f"Window {config.start.isoformat()} to {config.end.isoformat()}, "
        f"output {config.out_dir}"
    )

    try:
        failed = asyncio.run(run(config, show_progress=not args.no_progress))
    except GhActivityError as e:
        logger.error(str(e))
        return 1
    except KeyboardInterrupt:
        logger.error("Interrupted")
        return 130

    return 1 if failed else 0


if __name__ == "__main__":
    sys.exit(main())
