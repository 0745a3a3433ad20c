"""
goal: one diagnostic run. owns the classification store, the event aggregator, the watchdog registry and
(once the logs are collected) the log correlator, plus the switches and thresholds for this run. created at
run start, handed to every check phase, thrown away after the report. nothing here is global.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import timedelta
from typing import Any

from algorithm.classification import ClassificationStore
from algorithm.diagnostics import DiagnosticAggregator, Thresholds
from algorithm.links import DEFAULT_SEARCH_URL, DetailsLink, get_details_url_for
from algorithm.log_correlator import DEFAULT_WINDOW, LogCorrelator
from algorithm.watchdog import TaskWatchdog


@dataclass(frozen=True)
class AuditSettings:
    ignore_known_apple_failures: bool = True  # skip failed com.apple.* launch jobs
    check_apple_signatures: bool = False  # flag Apple-located executables with bad signatures
    hide_apple_tasks: bool = True  # drop com.apple.* files and Apple processes before classification
    log_window_before: timedelta = DEFAULT_WINDOW
    log_window_after: timedelta = DEFAULT_WINDOW
    details_search_url: str = DEFAULT_SEARCH_URL


@dataclass
class MachineFacts:
    # pass-through values for the report, the core never reasons about them
    model: str = ""
    serial: str = ""
    computer_name: str = ""
    host_name: str = ""
    major_os_version: int = 0
    minor_os_version: int = 0
    physical_ram_gb: float = 0.0
    disk_errors: dict[str, int] = field(default_factory=dict)  # logged I/O errors per device


class DiagnosticRun:
    def __init__(
        self,
        settings: AuditSettings | None = None,
        thresholds: Thresholds | None = None,
        watchdog: TaskWatchdog | None = None,
    ) -> None:
        self.settings = settings or AuditSettings()
        self.aggregator = DiagnosticAggregator(thresholds)
        self.store = ClassificationStore(on_unknown=self.aggregator.note_unknown_file)
        self.watchdog = watchdog or TaskWatchdog()
        self.facts = MachineFacts()
        self.logs = LogCorrelator(
            (), before=self.settings.log_window_before, after=self.settings.log_window_after
        )

    def attach_logs(self, entries: Iterable[Any]) -> LogCorrelator:
        self.logs = LogCorrelator(
            entries, before=self.settings.log_window_before, after=self.settings.log_window_after
        )
        return self.logs

    def details_link(self, query: str) -> DetailsLink:
        return get_details_url_for(query, self.settings.details_search_url)

    # convenience passthroughs for the report renderer

    @property
    def adware_possible(self) -> bool:
        return self.aggregator.adware_possible

    @property
    def adware_found(self) -> bool:
        return self.aggregator.adware_found

    @property
    def serious_problems(self) -> list[str]:
        return self.aggregator.serious_problem_ids()

    @property
    def unknown_files(self) -> frozenset[str]:
        return self.aggregator.unknown_files

    @property
    def terminated_tasks(self):
        return self.watchdog.terminated_tasks
