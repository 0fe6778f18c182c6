"""Per-user contribution retrieval.

Probes the rate limit once, then pages through the four contribution
streams concurrently. The streams share nothing but the GraphQL client and
the probed reset time.
"""

import asyncio
import logging
import random
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, List, Optional

from ghactivity.config import RetrievalConfig
from ghactivity.errors import RateLimitExceededError, ThrottleError, TransportError
from ghactivity.retrieval.client import GraphQLClient
from ghactivity.retrieval.pagination import PaginationDriver, Sleep
from ghactivity.retrieval.progress import ProgressSink, TqdmProgressSink
from ghactivity.retrieval.rate_limit import (
    RateLimitStatus,
    compute_backoff,
    probe_rate_limit,
    utcnow,
)
from ghactivity.retrieval.records import ALL_KINDS, ContributionKind, RawRecord
from ghactivity.retrieval.retrievers import RETRIEVERS

logger = logging.getLogger(__name__)

# Called with (stream index, stream name); returns the sink for that stream.
ProgressFactory = Callable[[int, str], ProgressSink]


def tqdm_progress(index: int, stream: str) -> ProgressSink:
    return TqdmProgressSink(position=index)


@dataclass
class AggregatedContributions:
    """Raw records of one login, per contribution stream."""

    pull_requests: List[RawRecord] = field(default_factory=list)
    issues: List[RawRecord] = field(default_factory=list)
    reviews: List[RawRecord] = field(default_factory=list)
    repositories: List[RawRecord] = field(default_factory=list)


class ContributionOrchestrator:
    """Runs the four pagination drivers for one login at a time."""

    def __init__(
        self,
        client: GraphQLClient,
        config: Optional[RetrievalConfig] = None,
        progress_factory: ProgressFactory = tqdm_progress,
        sleep: Sleep = asyncio.sleep,
        now: Callable[[], datetime] = utcnow,
        rng: Optional[random.Random] = None,
    ):
        self.client = client
        self.config = config or RetrievalConfig()
        self.progress_factory = progress_factory
        self._sleep = sleep
        self._now = now
        self._rng = rng

    def _driver(self) -> PaginationDriver:
        return PaginationDriver(
            self.config,
            probe=lambda: probe_rate_limit(self.client),
            sleep=self._sleep,
            now=self._now,
            rng=self._rng,
        )

    async def _probe(self) -> RateLimitStatus:
        """Probe the rate limit, backing off while GitHub throttles the probe.

        Gives up after ``long_throttle_attempt`` tries with a TransportError.
        """
        attempt = 1
        while True:
            try:
                return await probe_rate_limit(self.client)
            except ThrottleError as e:
                if attempt >= self.config.long_throttle_attempt:
                    raise TransportError(
                        f"Rate limit probe still throttled after {attempt} tries: {e}"
                    ) from e
                if isinstance(e, RateLimitExceededError) and e.reset_at:
                    wait = max(0.0, (e.reset_at - self._now()).total_seconds())
                    wait += self.config.reset_margin_seconds
                else:
                    wait = compute_backoff(
                        attempt,
                        base=self.config.backoff_base_seconds,
                        variance=self.config.backoff_variance_seconds,
                        rng=self._rng,
                    )
                logger.warning(
                    f"Rate limit probe throttled; waiting {wait:.1f}s "
                    f"before trying again (try {attempt})"
                )
                await self._sleep(wait)
                attempt += 1

    async def _retrieve_stream(
        self,
        index: int,
        kind: ContributionKind,
        login: str,
        start: datetime,
        end: datetime,
        reset_at: datetime,
    ) -> List[RawRecord]:
        retriever = RETRIEVERS[kind](
            self.client, login, start, end, page_size=self.config.page_size
        )
        progress = self.progress_factory(index, kind.name)
        try:
            return await self._driver().retrieve_all(
                retriever, kind.name, progress, reset_at
            )
        finally:
            progress.close()

    async def collect(
        self, login: str, start: datetime, end: datetime
    ) -> AggregatedContributions:
        """Fetch all contributions of ``login`` between ``start`` and ``end``.

        Fails as soon as any stream fails; the other streams are cancelled.
        """
        status = await self._probe()
        logger.info(
            f"Rate limit: {status.remaining}/{status.limit} remaining, "
            f"resets at {status.reset_at.isoformat()}"
        )

        tasks = [
            asyncio.ensure_future(
                self._retrieve_stream(i, kind, login, start, end, status.reset_at)
            )
            for i, kind in enumerate(ALL_KINDS)
        ]
        try:
            pull_requests, issues, reviews, repositories = await asyncio.gather(*tasks)
        except BaseException:
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            raise

        return AggregatedContributions(
            pull_requests=pull_requests,
            issues=issues,
            reviews=reviews,
            repositories=repositories,
        )
