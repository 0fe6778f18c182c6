"""Cursor pagination with throttle recovery.

Walks every page of one record stream, in cursor order, and recovers from
GitHub's two kinds of throttling differently:

- Abuse detection (short path): back off ``compute_backoff(attempt)`` seconds
  and retry the same cursor.
- Persistent throttling (long path): once ``long_throttle_attempt`` tries have
  failed, wait until the primary rate limit resets, re-probe it and start
  counting attempts from 1 again. An exhausted quota takes this path on
  the first failure, since backing off cannot help before the reset.

Any other failure propagates immediately.

The attempt counter is shared by both paths and resets to 1 after every
successful page and after every full-reset wait.
"""

import asyncio
import logging
import random
from datetime import datetime
from typing import Awaitable, Callable, List, Optional

from ghactivity.config import RetrievalConfig
from ghactivity.errors import RateLimitExceededError, ThrottleError
from ghactivity.retrieval.progress import ProgressSink
from ghactivity.retrieval.rate_limit import RateLimitStatus, compute_backoff, utcnow
from ghactivity.retrieval.records import PageInfo, RecordPage, RecordRetriever, T

logger = logging.getLogger(__name__)

Sleep = Callable[[float], Awaitable[None]]
RateLimitProbe = Callable[[], Awaitable[RateLimitStatus]]


class PaginationDriver:
    """Fetches all pages of a stream, retrying throttled requests.

    Sleeping, the clock and the jitter source are injectable so the retry
    schedule can be exercised without real waits.
    """

    def __init__(
        self,
        config: RetrievalConfig,
        probe: RateLimitProbe,
        sleep: Sleep = asyncio.sleep,
        now: Callable[[], datetime] = utcnow,
        rng: Optional[random.Random] = None,
    ):
        self.config = config
        self.probe = probe
        self._sleep = sleep
        self._now = now
        self._rng = rng

    async def _countdown(
        self, duration: float, on_tick: Callable[[float], None]
    ) -> None:
        """Sleep ``duration`` seconds, calling ``on_tick(remaining)`` every tick."""
        tick = self.config.countdown_tick_seconds
        elapsed = 0.0
        while duration - elapsed > 1e-9:
            step = min(tick, duration - elapsed)
            await self._sleep(step)
            elapsed += step
            on_tick(max(0.0, duration - elapsed))

    async def _back_off(self, stream: str, attempt: int, report: Callable) -> None:
        backoff = compute_backoff(
            attempt,
            base=self.config.backoff_base_seconds,
            variance=self.config.backoff_variance_seconds,
            rng=self._rng,
        )
        logger.warning(
            f"{stream}: triggered abuse detection; waiting {backoff:.1f}s "
            f"before trying again (try {attempt})"
        )
        await self._countdown(
            backoff,
            lambda remaining: report(
                f"triggered abuse detection; waiting {remaining:04.1f}s "
                f"before trying again (try {attempt})"
            ),
        )

    async def _wait_for_reset(
        self, stream: str, reset_at: datetime, report: Callable
    ) -> datetime:
        """Wait out the primary rate limit and return the fresh reset time."""
        until_reset = max(0.0, (reset_at - self._now()).total_seconds())
        wait = until_reset + self.config.reset_margin_seconds
        logger.warning(
            f"{stream}: still throttled; waiting {wait:.0f}s for rate limit "
            f"reset at {reset_at.isoformat()}"
        )
        await self._countdown(
            wait,
            lambda remaining: report(
                f"rate limited; waiting {remaining:.0f}s for reset"
            ),
        )
        try:
            status = await self.probe()
        except ThrottleError as e:
            logger.warning(f"{stream}: rate limit probe throttled ({e}); keeping old reset time")
            return reset_at
        logger.info(
            f"{stream}: rate limit re-probed, {status.remaining} remaining, "
            f"resets at {status.reset_at.isoformat()}"
        )
        return status.reset_at

    async def retrieve_all(
        self,
        retriever: RecordRetriever[T],
        stream_name: str,
        progress: Optional[ProgressSink],
        reset_at: datetime,
    ) -> List[T]:
        """Fetch every page of ``retriever`` and return the records in order.

        Args:
            retriever: Async callable mapping a cursor to a RecordPage
            stream_name: Name used in progress and log output
            progress: Sink for status updates (None to discard them)
            reset_at: Primary rate limit reset time from the last probe

        Returns:
            All records, in page order

        Raises:
            Any non-throttle error raised by the retriever or the probe.
        """
        progress = progress or ProgressSink()
        records: List[T] = []
        page: RecordPage[T] = RecordPage(page_info=PageInfo(has_next_page=True))
        attempt = 1

        def report(note: Optional[str] = None) -> None:
            progress.report(stream_name, len(records), page.total_count, note)

        while True:
            try:
                page = await retriever(page.page_info.end_cursor)
            except RateLimitExceededError as e:
                reset_at = await self._wait_for_reset(
                    stream_name, e.reset_at or reset_at, report
                )
                attempt = 1
                report()
                continue
            except ThrottleError:
                if attempt < self.config.long_throttle_attempt:
                    await self._back_off(stream_name, attempt, report)
                    attempt += 1
                else:
                    reset_at = await self._wait_for_reset(stream_name, reset_at, report)
                    attempt = 1
                report()
                continue

            records.extend(page.records)
            attempt = 1
            report()

            if not page.page_info.has_next_page:
                logger.debug(f"{stream_name}: done, {len(records)} records")
                return records

            await self._sleep(self.config.page_delay_seconds)
