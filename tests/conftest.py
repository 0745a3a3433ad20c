"""Shared fixtures for AuditEye tests."""

from __future__ import annotations

from datetime import datetime

import pytest

from algorithm.classification import MINIMUM_WHITELIST_SIZE, ClassificationStore
from algorithm.run_context import AuditSettings, DiagnosticRun
from algorithm.watchdog import TaskWatchdog


def filler_names(count: int, prefix: str = "known") -> list[str]:
    """Distinct whitelist names that never collide with test paths."""
    return [f"{prefix}-{i}.plist" for i in range(count)]


@pytest.fixture
def unknown_sink() -> list[str]:
    return []


@pytest.fixture
def store(unknown_sink) -> ClassificationStore:
    """An empty store reporting unknown files into a list."""
    return ClassificationStore(on_unknown=unknown_sink.append)


@pytest.fixture
def loaded_store(store) -> ClassificationStore:
    """A store whose whitelist is exactly at the trusted size."""
    store.append_to_whitelist(filler_names(MINIMUM_WHITELIST_SIZE - 1))
    store.append_to_whitelist_prefixes(["/Applications/"])
    store.append_to_blacklist(["com.genieo.engine.plist"])
    store.append_adware_signatures([(".download.plist", "Downlite"), ("vsearch.plist", "VSearch")])
    return store


@pytest.fixture
def fixed_clock():
    return lambda: datetime(2026, 10, 19, 10, 0, 0)


@pytest.fixture
def run(fixed_clock) -> DiagnosticRun:
    """A run with Apple items visible so tests see every observation."""
    settings = AuditSettings(hide_apple_tasks=False, ignore_known_apple_failures=False)
    return DiagnosticRun(settings=settings, watchdog=TaskWatchdog(clock=fixed_clock))


@pytest.fixture
def loaded_run(run) -> DiagnosticRun:
    run.store.append_to_whitelist(filler_names(MINIMUM_WHITELIST_SIZE))
    run.store.append_to_whitelist_prefixes(["/Applications/", "/System/"])
    run.store.append_to_blacklist(["com.genieo.engine.plist"])
    run.store.append_adware_signatures([(".download.plist", "Downlite")])
    return run
