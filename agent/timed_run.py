# SPDX-License-Identifier: GPL-3.0-or-later
"""
goal: run helper programs (diskutil, launchctl, system_profiler, codesign) with a hard timeout. when a helper
hangs it is killed and the kill is recorded on the run's watchdog registry so the report can say which tool
never answered. every failure path returns an empty result instead of raising into the audit.
"""

from __future__ import annotations  # lets us use string annotations before functions are defined

import logging  # for debug output when a helper fails
import subprocess  # for running the helper programs
from collections.abc import Sequence  # type hint for argument lists
from dataclasses import dataclass  # for the small result record

from algorithm.watchdog import TaskWatchdog

logger = logging.getLogger("auditeye.timed_run")

DEFAULT_TIMEOUT_SEC = 30.0


@dataclass(frozen=True)
class ToolResult:
    returncode: int  # -1 when the tool never finished or could not start
    stdout: str
    timed_out: bool = False


def run_tool(
    watchdog: TaskWatchdog,
    program: str,
    args: Sequence[str] = (),
    timeout: float = DEFAULT_TIMEOUT_SEC,
) -> ToolResult:
    cmd = [program, *args]
    try:
        proc = subprocess.run(
            cmd, capture_output=True, text=True, timeout=timeout
        )  # subprocess.run kills the child itself when the timeout expires
    except subprocess.TimeoutExpired:
        watchdog.task_terminated(program, list(args))  # remember that we had to kill it
        logger.warning("%s timed out after %.0fs and was terminated", program, timeout)
        return ToolResult(returncode=-1, stdout="", timed_out=True)
    except (FileNotFoundError, PermissionError) as e:  # tool not installed or not runnable here
        logger.debug("%s could not be started: %s", program, e)
        return ToolResult(returncode=-1, stdout="")
    except OSError as e:
        logger.debug("%s failed: %s", program, e)
        return ToolResult(returncode=-1, stdout="")
    return ToolResult(returncode=proc.returncode, stdout=proc.stdout or "")


def tool_output(
    watchdog: TaskWatchdog,
    program: str,
    args: Sequence[str] = (),
    timeout: float = DEFAULT_TIMEOUT_SEC,
) -> str:
    # stdout of a successful run, empty string otherwise
    result = run_tool(watchdog, program, args, timeout)
    return result.stdout if result.returncode == 0 else ""
