"""
goal: turn raw syslog text into LogEntry records for the log correlator. understands the classic BSD format
("Oct 19 10:05:01 host process[123]: message") and the RFC 3339 format used by newer syslog daemons
("2026-10-19T10:05:01.123+00:00 host process[123]: message"). lines that match neither are skipped.
also counts kernel disk I/O errors per device so the run can flag a failing drive S.M.A.R.T. missed.
"""

from __future__ import annotations

import logging
import os
import re
from collections import Counter
from collections.abc import Iterable
from datetime import datetime

from algorithm.log_correlator import LogEntry

logger = logging.getLogger("auditeye.logs")

_BSD_RE = re.compile(
    r"^(?P<ts>[A-Z][a-z]{2}\s+\d{1,2}\s\d{2}:\d{2}:\d{2})\s+\S+\s+(?P<source>[^\s\[:]+)(?:\[\d+\])?:"
)
_RFC3339_RE = re.compile(
    r"^(?P<ts>\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}(?:\.\d+)?(?:Z|[+-]\d{2}:\d{2})?)\s+\S+\s+"
    r"(?P<source>[^\s\[:]+)(?:\[\d+\])?:"
)
# kernel lines like "disk0s2: I/O error." name the failing device
_DISK_ERROR_RE = re.compile(r"\b(?P<device>disk\d+(?:s\d+)*): I/O error")


def parse_line(line: str, year: int) -> LogEntry | None:
    text = line.rstrip("\n")
    m = _BSD_RE.match(text)
    if m:
        try:
            # BSD syslog has no year, collapse runs of spaces from day padding first
            ts = datetime.strptime(f"{year} {' '.join(m.group('ts').split())}", "%Y %b %d %H:%M:%S")
        except ValueError:
            return None
        return LogEntry(timestamp=ts, text=text, source=m.group("source"))
    m = _RFC3339_RE.match(text)
    if m:
        raw = m.group("ts").replace("Z", "+00:00")
        try:
            ts = datetime.fromisoformat(raw)
        except ValueError:
            return None
        # keep everything naive local time so it compares with BSD entries
        if ts.tzinfo is not None:
            ts = ts.astimezone().replace(tzinfo=None)
        return LogEntry(timestamp=ts, text=text, source=m.group("source"))
    return None


def parse_syslog(lines: Iterable[str], year: int | None = None) -> list[LogEntry]:
    year = year or datetime.now().year
    entries: list[LogEntry] = []
    skipped = 0
    for line in lines:
        entry = parse_line(line, year)
        if entry is None:
            skipped += 1
            continue
        entries.append(entry)
    if skipped:
        logger.debug("skipped %d unparseable log lines", skipped)
    return entries


def read_syslog(path: str, year: int | None = None) -> list[LogEntry]:
    """Read and parse a syslog file. Missing or unreadable files yield no entries."""
    if not path or not os.path.exists(path):
        return []
    try:
        with open(path, encoding="utf-8", errors="replace") as f:
            return parse_syslog(f, year)
    except OSError as e:
        logger.debug("could not read %s: %s", path, e)
        return []


def count_disk_errors(entries: Iterable[LogEntry]) -> dict[str, int]:
    """Number of logged I/O errors per disk device, like {"disk0s2": 3}."""
    counts: Counter[str] = Counter()
    for entry in entries:
        m = _DISK_ERROR_RE.search(entry.text)
        if m:
            counts[m.group("device")] += 1
    return dict(counts)
