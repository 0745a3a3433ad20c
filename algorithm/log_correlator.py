"""
goal: pull the log lines around a moment in time. takes an already collected, time-ordered snapshot of log
entries and answers two questions: did a given process log anything, and what was logged close to a given
timestamp. the snapshot is copied once and never changed, so every query is a pure read.
"""

from __future__ import annotations

import bisect
import logging
from collections.abc import Iterable
from dataclasses import dataclass, replace
from datetime import datetime, timedelta
from typing import Any

logger = logging.getLogger("auditeye.logs")

DEFAULT_WINDOW = timedelta(minutes=3)


@dataclass(frozen=True)
class LogEntry:
    timestamp: datetime
    text: str  # the raw log line
    source: str = ""  # process or sender that wrote the line


def _naive(ts: datetime) -> datetime:
    # aware timestamps become naive local time so every comparison is between naive values
    return ts.astimezone().replace(tzinfo=None) if ts.tzinfo is not None else ts


def _is_valid(entry: Any) -> bool:
    return (
        isinstance(entry, LogEntry)
        and isinstance(entry.timestamp, datetime)
        and isinstance(entry.text, str)
    )


class LogCorrelator:
    def __init__(
        self,
        entries: Iterable[Any],
        before: timedelta = DEFAULT_WINDOW,
        after: timedelta = DEFAULT_WINDOW,
    ) -> None:
        kept: list[LogEntry] = []
        skipped = 0
        for entry in entries:
            if _is_valid(entry):
                if entry.timestamp.tzinfo is not None:
                    entry = replace(entry, timestamp=_naive(entry.timestamp))
                kept.append(entry)
            else:
                skipped += 1
        if skipped:
            logger.debug("skipped %d malformed log entries", skipped)
        self._entries: tuple[LogEntry, ...] = tuple(kept)
        self._times = [e.timestamp for e in self._entries]
        self._sources = frozenset(e.source for e in self._entries)
        self._ordered = all(a <= b for a, b in zip(self._times, self._times[1:]))
        self.before = before
        self.after = after

    @property
    def entries(self) -> tuple[LogEntry, ...]:
        return self._entries

    def has_log_entries(self, name: str) -> bool:
        return name in self._sources

    def log_entries_around(self, date: datetime) -> str:
        """Newline-joined text of every entry within [date - before, date + after], in original order."""
        date = _naive(date)
        start = date - self.before
        end = date + self.after
        if self._ordered:
            lo = bisect.bisect_left(self._times, start)
            hi = bisect.bisect_right(self._times, end)
            window = self._entries[lo:hi]
        else:
            # snapshot was not sorted after all, fall back to a scan that keeps original order
            window = tuple(e for e in self._entries if start <= e.timestamp <= end)
        return "\n".join(e.text for e in window)
