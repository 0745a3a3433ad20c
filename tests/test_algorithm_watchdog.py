"""
Tests for algorithm.watchdog - TaskWatchdog functionality
"""

from __future__ import annotations

import itertools
import threading
from datetime import datetime, timedelta

from algorithm.watchdog import TaskWatchdog, TerminatedTask


class TestTaskWatchdog:
    def test_records_in_call_order(self, fixed_clock):
        wd = TaskWatchdog(clock=fixed_clock)
        wd.task_terminated("helperA", [])
        wd.task_terminated("helperB", ["-x"])
        assert wd.terminated_tasks == (
            TerminatedTask("helperA", (), fixed_clock()),
            TerminatedTask("helperB", ("-x",), fixed_clock()),
        )

    def test_no_dedupe(self, fixed_clock):
        wd = TaskWatchdog(clock=fixed_clock)
        wd.task_terminated("diskutil", ["info", "disk0"])
        wd.task_terminated("diskutil", ["info", "disk0"])
        assert len(wd.terminated_tasks) == 2

    def test_uses_clock_per_call(self):
        ticks = itertools.count()
        start = datetime(2026, 1, 1)
        wd = TaskWatchdog(clock=lambda: start + timedelta(seconds=next(ticks)))
        first = wd.task_terminated("a")
        second = wd.task_terminated("b")
        assert second.terminated_at > first.terminated_at

    def test_command_line(self, fixed_clock):
        task = TaskWatchdog(clock=fixed_clock).task_terminated("launchctl", ("list",))
        assert task.command_line == "launchctl list"

    def test_parallel_appends(self):
        wd = TaskWatchdog()
        threads = [
            threading.Thread(target=lambda: [wd.task_terminated("t") for _ in range(100)])
            for _ in range(4)
        ]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        assert len(wd.terminated_tasks) == 400
