"""Progress sinks for per-stream status updates.

The pagination driver only ever calls ``report(stream, current, total, note)``;
how that is displayed is up to the sink.
"""

import logging
from typing import Dict, Optional

from tqdm import tqdm

logger = logging.getLogger(__name__)


def format_progress(
    stream: str, current: int, total: int, note: Optional[str] = None
) -> str:
    """Render ``"{stream}: {current}/{total}"`` with an optional note."""
    text = f"{stream}: {current}/{total}"
    if note:
        text = f"{text} - {note}"
    return text


class ProgressSink:
    """Receives progress updates. The base class discards them."""

    def report(
        self, stream: str, current: int, total: int, note: Optional[str] = None
    ) -> None:
        pass

    def close(self) -> None:
        pass


class LoggingProgressSink(ProgressSink):
    """Logs progress lines.

    Page progress goes to INFO; countdown ticks while waiting would flood
    the log, so notes are only logged when they change to a new wait.
    """

    def __init__(self, log: logging.Logger = logger):
        self.log = log
        self._waiting: Dict[str, bool] = {}

    def report(self, stream, current, total, note=None):
        if note is None:
            self._waiting[stream] = False
            self.log.info(format_progress(stream, current, total))
        elif not self._waiting.get(stream):
            self._waiting[stream] = True
            self.log.info(format_progress(stream, current, total, note))
        else:
            self.log.debug(format_progress(stream, current, total, note))


class TqdmProgressSink(ProgressSink):
    """One tqdm bar per stream, stacked by ``position``."""

    def __init__(self, position: int = 0, leave: bool = True):
        self.position = position
        self.leave = leave
        self._bar: Optional[tqdm] = None

    def _ensure_bar(self, stream: str) -> tqdm:
        if self._bar is None:
            self._bar = tqdm(
                desc=stream,
                total=0,
                unit="rec",
                position=self.position,
                leave=self.leave,
                dynamic_ncols=True,
            )
        return self._bar

    def report(self, stream, current, total, note=None):
        bar = self._ensure_bar(stream)
        bar.total = total
        bar.n = current
        bar.set_postfix_str(note or "", refresh=False)
        bar.refresh()

    def close(self):
        if self._bar is not None:
            self._bar.close()
            self._bar = None
