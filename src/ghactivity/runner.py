"""Report generation across one or more logins.

Logins are processed one after another, never concurrently, so a batch
never multiplies the pressure on the shared rate limit.
"""

import logging
from typing import List, Optional

from ghactivity.config import ReportConfig
from ghactivity.errors import GhActivityError
from ghactivity.report.csv_writer import write_report
from ghactivity.report.normalize import ContributionReport, normalize_contributions
from ghactivity.retrieval.client import GraphQLClient
from ghactivity.retrieval.orchestrator import ContributionOrchestrator
from ghactivity.retrieval.rate_limit import fetch_viewer_login

logger = logging.getLogger(__name__)


async def resolve_logins(config: ReportConfig, client: GraphQLClient) -> List[str]:
    """Configured logins, or the token owner when none were given."""
    if config.logins:
        return list(config.logins)
    login = await fetch_viewer_login(client)
    logger.warning(f'No user specified. Falling back to auth token owner "{login}"')
    return [login]


async def run_report(
    config: ReportConfig,
    client: GraphQLClient,
    orchestrator: Optional[ContributionOrchestrator] = None,
) -> List[str]:
    """Fetch, normalize and write contributions for every configured login.

    Without ``combine`` each login gets its own ``out_dir/<login>`` directory;
    a run that fell back to the token owner writes straight into ``out_dir``.
    With ``combine`` all rows are merged and written once to ``out_dir``.

    Returns:
        Logins that failed (only non-empty when ``keep_going`` is set)
    """
    orchestrator = orchestrator or ContributionOrchestrator(client, config.retrieval)
    explicit = bool(config.logins)
    logins = await resolve_logins(config, client)
    start, end = config.window()

    combined = ContributionReport()
    failed: List[str] = []

    for login in logins:
        logger.info(
            f"Fetching data from GitHub for user {login} "
            f"({config.start.isoformat()} to {config.end.isoformat()})"
        )
        try:
            contributions = await orchestrator.collect(login, start, end)
        except GhActivityError as e:
            if not config.keep_going:
                raise
            logger.error(f"Failed to fetch contributions for {login}: {e}")
            failed.append(login)
            continue

        report = normalize_contributions(contributions, login)
        if config.combine:
            combined.extend(report)
        else:
            write_report(report, config.out_dir / login if explicit else config.out_dir)

    if config.combine:
        write_report(combined, config.out_dir)

    if failed:
        logger.warning(f"Finished with {len(failed)} failed login(s): {', '.join(failed)}")
    return failed
