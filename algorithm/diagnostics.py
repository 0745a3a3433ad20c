"""
goal: the diagnostic event aggregator. every check phase feeds it typed observations and it reduces them
into a stable, deduplicated result: the set of serious problem identifiers, whether adware was found,
which files were unknown to the classification lists, and which files were flagged as adware.

identifiers come from a closed taxonomy (CriticalError) or are ad hoc string keys for lesser issues.
only taxonomy members and ad hoc keys registered with register_problem() can ever end up in
serious_problems, and only at SERIOUS severity or above.

the numeric checks (RAM, disk, memory pressure, cache, OS age, backup, SMART status, logged disk errors) compare
supplied measurements against a Thresholds policy object, the aggregator never measures anything itself.
"""

from __future__ import annotations  # lets us use string annotations before classes are defined

import logging  # for debug output when problems are recorded
import threading  # one lock per shared collection
from collections.abc import Mapping  # type hint for per-device status maps
from dataclasses import dataclass, replace  # for immutable events and thresholds
from enum import Enum, IntEnum  # for the closed taxonomy, severities and OS ordinals

logger = logging.getLogger("auditeye.diagnostics")


class CriticalError(Enum):
    """Closed taxonomy of reportable problems. Values are the stable report identifiers."""

    HARD_DISK_FAILURE = "harddiskfailure"
    NO_BACKUP = "nobackup"
    LOW_HARD_DISK = "lowharddisk"
    LOW_RAM = "lowram"
    MEMORY_PRESSURE = "memorypressure"
    ADWARE = "adware"
    OUTDATED_OS = "outdatedos"
    HIGH_CACHE = "highcache"


class Severity(IntEnum):
    INFO = 0
    WARNING = 1
    SERIOUS = 2
    CRITICAL = 3


class OSVersion(IntEnum):
    """Ordinal OS scale, equal to the Darwin kernel major version. Newer releases continue at 16."""

    SNOW_LEOPARD = 10
    LION = 11
    MOUNTAIN_LION = 12
    MAVERICKS = 13
    YOSEMITE = 14
    EL_CAPITAN = 15


LATEST_OS = max(OSVersion)

# SMART statuses that do not indicate a failing drive
_HEALTHY_SMART = {"verified", "not supported", ""}

# a problem key is either a taxonomy member or an ad hoc string
ProblemKey = CriticalError | str


def problem_id(key: ProblemKey) -> str:
    # map a problem key to its report string, only used at the report boundary
    return key.value if isinstance(key, CriticalError) else key


def canonical_key(key: ProblemKey) -> ProblemKey:
    # a string spelling a taxonomy value is that taxonomy member, never a separate ad hoc key
    if isinstance(key, CriticalError):
        return key
    try:
        return CriticalError(key)
    except ValueError:
        return key


@dataclass(frozen=True)
class DiagnosticEvent:
    identifier: ProblemKey  # taxonomy member or ad hoc key
    severity: Severity  # how bad it is
    details: str = ""  # free-form text for the report
    subject: str = ""  # what the event is about (volume, path, label), part of the dedupe key


@dataclass(frozen=True)
class Thresholds:
    min_ram_gb: float = 4.0  # less physical RAM than this is "low"
    min_free_disk_gb: float = 15.0  # less free space on a volume than this is "low"
    max_memory_pressure: float = 80.0  # percent of memory in use before we call it pressure
    max_cache_gb: float = 10.0  # user cache folder larger than this is "high"
    outdated_os_gap: int = 1  # how many major releases behind the latest is still fine


class DiagnosticAggregator:
    """Collects events from all check phases into a deduplicated, severity-classified result set."""

    def __init__(self, thresholds: Thresholds | None = None) -> None:
        self.thresholds = thresholds or Thresholds()
        self._events: dict[tuple[ProblemKey, str], DiagnosticEvent] = {}
        self._serious: set[ProblemKey] = set()
        self._registered: set[str] = set()  # ad hoc keys allowed into the serious set
        self._adware_found = False
        self._events_lock = threading.Lock()  # guards events, serious set, adware flag, adware files
        self._unknown: set[str] = set()
        self._unknown_lock = threading.Lock()
        self._adware_files: dict[str, str] = {}

    # recording

    def register_problem(self, key: str) -> None:
        with self._events_lock:
            self._registered.add(canonical_key(key))

    def record(self, event: DiagnosticEvent) -> None:
        identifier = canonical_key(event.identifier)
        if identifier is not event.identifier:
            event = replace(event, identifier=identifier)
        key = (event.identifier, event.subject)
        with self._events_lock:
            existing = self._events.get(key)
            if existing is None or event.severity > existing.severity:
                self._events[key] = event
            reportable = isinstance(event.identifier, CriticalError) or event.identifier in self._registered
            if reportable and event.severity >= Severity.SERIOUS:
                self._serious.add(event.identifier)
            if event.identifier is CriticalError.ADWARE:
                self._adware_found = True
        logger.debug("recorded %s (%s) %s", problem_id(event.identifier), event.severity.name, event.subject)

    def record_adware(self, path: str, label: str) -> None:
        with self._events_lock:
            self._adware_files[path] = label
        self.record(
            DiagnosticEvent(
                identifier=CriticalError.ADWARE,
                severity=Severity.SERIOUS,
                details=f"{label} adware: {path}",
                subject=path,
            )
        )

    def note_unknown_file(self, path: str) -> None:
        with self._unknown_lock:
            self._unknown.add(path)

    # derived state

    @property
    def events(self) -> tuple[DiagnosticEvent, ...]:
        with self._events_lock:
            return tuple(self._events.values())

    @property
    def serious_problems(self) -> frozenset[ProblemKey]:
        with self._events_lock:
            return frozenset(self._serious)

    def serious_problem_ids(self) -> list[str]:
        return sorted(problem_id(k) for k in self.serious_problems)

    @property
    def adware_found(self) -> bool:
        with self._events_lock:
            return self._adware_found

    @property
    def adware_possible(self) -> bool:
        with self._events_lock:
            return CriticalError.ADWARE in self._serious or self._adware_found

    @property
    def adware_files(self) -> dict[str, str]:
        with self._events_lock:
            return dict(self._adware_files)

    @property
    def unknown_files(self) -> frozenset[str]:
        with self._unknown_lock:
            return frozenset(self._unknown)

    # threshold checks

    def check_os_version(self, major: int) -> bool:
        """Record OUTDATED_OS when ``major`` is more than the allowed gap behind the latest known release."""
        gap = int(LATEST_OS) - major
        if gap <= self.thresholds.outdated_os_gap:
            return False
        self.record(
            DiagnosticEvent(
                identifier=CriticalError.OUTDATED_OS,
                severity=Severity.SERIOUS,
                details=f"OS version {major} is {gap} releases behind {int(LATEST_OS)}",
            )
        )
        return True

    def check_ram(self, physical_ram_gb: float) -> bool:
        if physical_ram_gb >= self.thresholds.min_ram_gb:
            return False
        self.record(
            DiagnosticEvent(
                identifier=CriticalError.LOW_RAM,
                severity=Severity.SERIOUS,
                details=f"{physical_ram_gb:g} GB RAM installed",
            )
        )
        return True

    def check_disk_space(self, volume: str, free_gb: float) -> bool:
        if free_gb >= self.thresholds.min_free_disk_gb:
            return False
        self.record(
            DiagnosticEvent(
                identifier=CriticalError.LOW_HARD_DISK,
                severity=Severity.SERIOUS,
                details=f"{volume} has {free_gb:.1f} GB free",
                subject=volume,
            )
        )
        return True

    def check_memory_pressure(self, percent: float) -> bool:
        if percent <= self.thresholds.max_memory_pressure:
            return False
        self.record(
            DiagnosticEvent(
                identifier=CriticalError.MEMORY_PRESSURE,
                severity=Severity.SERIOUS,
                details=f"{percent:.0f}% of memory in use",
            )
        )
        return True

    def check_cache_size(self, cache_gb: float) -> bool:
        if cache_gb <= self.thresholds.max_cache_gb:
            return False
        self.record(
            DiagnosticEvent(
                identifier=CriticalError.HIGH_CACHE,
                severity=Severity.SERIOUS,
                details=f"{cache_gb:.1f} GB of cache files",
            )
        )
        return True

    def check_backup(self, backup_exists: bool) -> bool:
        if backup_exists:
            return False
        self.record(
            DiagnosticEvent(
                identifier=CriticalError.NO_BACKUP,
                severity=Severity.SERIOUS,
                details="No backup found",
            )
        )
        return True

    def check_disk_health(self, statuses: Mapping[str, str]) -> bool:
        # statuses maps a device to its SMART status string, "Verified" means healthy
        failed = False
        for device, status in statuses.items():
            if status.strip().lower() in _HEALTHY_SMART:
                continue
            failed = True
            self.record(
                DiagnosticEvent(
                    identifier=CriticalError.HARD_DISK_FAILURE,
                    severity=Severity.CRITICAL,
                    details=f"{device}: S.M.A.R.T. status {status}",
                    subject=device,
                )
            )
        return failed

    def check_disk_errors(self, errors: Mapping[str, int]) -> bool:
        # errors maps a device to how many I/O errors the logs reported for it
        failed = False
        for device, count in sorted(errors.items()):
            if count <= 0:
                continue
            failed = True
            self.record(
                DiagnosticEvent(
                    identifier=CriticalError.HARD_DISK_FAILURE,
                    severity=Severity.SERIOUS,
                    details=f"{device}: {count} I/O errors in the system log",
                    subject=f"{device} I/O",
                )
            )
        return failed
