"""
goal: the check phases that turn raw observations into recorded problems. each phase takes the run context and
a batch of observations (file paths, processes, launch jobs), classifies every item with the store and records
results on the aggregator. the run's switches decide which observations are dropped before classification and
which phases are allowed to record at all. phases can run on different threads against the same run.
"""

from __future__ import annotations  # lets us use string annotations before classes are defined

import logging  # for per-phase summaries at debug level
import os  # for basenames of observed paths
from collections.abc import Iterable  # type hint for observation batches
from dataclasses import dataclass  # for the immutable observation records

from algorithm.diagnostics import DiagnosticEvent, Severity
from algorithm.run_context import DiagnosticRun

logger = logging.getLogger("auditeye.phases")

APPLE_PREFIX = "com.apple."
# executables living under these roots are considered Apple-shipped
APPLE_LOCATIONS = ("/System/", "/usr/libexec/", "/usr/sbin/", "/usr/bin/", "/sbin/", "/bin/")

# ad hoc problem keys for lesser issues
INVALID_SIGNATURE = "invalidsignature"
FAILED_TASK = "failedtask"
# a check phase that crashed, registered as serious so the report cannot look clean
SCAN_FAILED = "scanfailed"


@dataclass(frozen=True)
class ProcessInfo:
    name: str  # process name as reported by the OS
    exe: str = ""  # full executable path, empty when access was denied
    signature_valid: bool | None = None  # None means "not checked"


@dataclass(frozen=True)
class LaunchJob:
    label: str  # launchd label, like com.example.updater
    status: int = 0  # last exit status, non-zero means the job failed
    path: str = ""  # plist path when known


@dataclass
class ScanSummary:
    scanned: int = 0
    skipped: int = 0
    adware: int = 0
    unknown: int = 0


def is_apple_name(name: str) -> bool:
    return name.startswith(APPLE_PREFIX)


def is_apple_process(proc: ProcessInfo) -> bool:
    return is_apple_name(proc.name) or proc.exe.startswith(APPLE_LOCATIONS)


def _classify(run: DiagnosticRun, name: str, path: str, summary: ScanSummary) -> None:
    summary.scanned += 1
    store = run.store
    if store.is_adware(path):
        label = store.adware_type(path) or ""
        run.aggregator.record_adware(path, label)
        summary.adware += 1
        return
    if not store.check_whitelist_file(name, path):
        summary.unknown += 1


def scan_files(run: DiagnosticRun, paths: Iterable[str]) -> ScanSummary:
    """Classify launch agents, daemons, extensions and similar files found on disk."""
    summary = ScanSummary()
    for path in paths:
        if not path:
            continue
        name = os.path.basename(path.rstrip("/"))
        if run.settings.hide_apple_tasks and is_apple_name(name):
            summary.skipped += 1
            continue
        _classify(run, name, path, summary)
    logger.debug("file scan: %s", summary)
    return summary


def scan_processes(run: DiagnosticRun, processes: Iterable[ProcessInfo]) -> ScanSummary:
    """Classify running processes by executable, optionally checking Apple signatures."""
    summary = ScanSummary()
    for proc in processes:
        apple = is_apple_process(proc)
        if run.settings.check_apple_signatures and apple and proc.signature_valid is False:
            run.aggregator.record(
                DiagnosticEvent(
                    identifier=INVALID_SIGNATURE,
                    severity=Severity.WARNING,
                    details=f"{proc.name} is not signed by Apple: {proc.exe}",
                    subject=proc.exe or proc.name,
                )
            )
        if run.settings.hide_apple_tasks and apple:
            summary.skipped += 1
            continue
        if not proc.exe:  # nothing to classify without a path
            summary.skipped += 1
            continue
        _classify(run, proc.name, proc.exe, summary)
    logger.debug("process scan: %s", summary)
    return summary


def scan_launch_jobs(run: DiagnosticRun, jobs: Iterable[LaunchJob]) -> int:
    """Record failed launch jobs. Returns how many were recorded."""
    recorded = 0
    for job in jobs:
        if job.status == 0:
            continue
        if run.settings.ignore_known_apple_failures and is_apple_name(job.label):
            continue
        run.aggregator.record(
            DiagnosticEvent(
                identifier=FAILED_TASK,
                severity=Severity.WARNING,
                details=f"{job.label} failed with status {job.status}",
                subject=job.label,
            )
        )
        recorded += 1
    return recorded
