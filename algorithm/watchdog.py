"""
goal: remember which helper programs had to be killed because they ran too long. one record per call,
kept in call order. the waiting and killing happen in agent.timed_run, this registry only records it.
"""

from __future__ import annotations

import threading
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from datetime import datetime

ClockFn = Callable[[], datetime]


@dataclass(frozen=True)
class TerminatedTask:
    program: str
    args: tuple[str, ...]
    terminated_at: datetime

    @property
    def command_line(self) -> str:
        return " ".join((self.program, *self.args))


class TaskWatchdog:
    """Append-only list of terminated tasks."""

    def __init__(self, clock: ClockFn = datetime.now) -> None:
        self._clock = clock
        self._tasks: list[TerminatedTask] = []
        self._lock = threading.Lock()

    def task_terminated(self, program: str, args: Sequence[str] = ()) -> TerminatedTask:
        task = TerminatedTask(program=program, args=tuple(str(a) for a in args), terminated_at=self._clock())
        with self._lock:
            self._tasks.append(task)
        return task

    @property
    def terminated_tasks(self) -> tuple[TerminatedTask, ...]:
        with self._lock:
            return tuple(self._tasks)
