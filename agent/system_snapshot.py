"""
goal: collect the machine snapshot the audit core works on: running processes, physical RAM, memory pressure,
free space per volume, launch agent/daemon files, cache size, backup presence, SMART status, failed launch jobs
and the OS ordinal. uses psutil for process and system information and the timed runner for helper tools.
every collector is best-effort: a process that disappears, a folder we cannot read or a tool that is
missing just yields less data, never an exception.
"""

from __future__ import annotations  # lets us use string annotations before classes are defined

import glob  # for expanding backup location patterns
import logging  # for debug output when a collector gives up
import os  # for walking folders and expanding ~
import platform  # for the OS release string
import re  # for parsing tool output
import socket  # for the network host name
import sys  # for checking the platform (macOS vs other)
from collections.abc import Iterable  # type hint for folder lists

import psutil  # library for getting process and system information

from algorithm.phases import LaunchJob, ProcessInfo
from algorithm.watchdog import TaskWatchdog
from agent.timed_run import DEFAULT_TIMEOUT_SEC, run_tool, tool_output

logger = logging.getLogger("auditeye.snapshot")

GB = 1024**3

# folders where launch agents, daemons and browser add-ons live
DEFAULT_LAUNCH_DIRS = (
    "~/Library/LaunchAgents",
    "/Library/LaunchAgents",
    "/Library/LaunchDaemons",
    "/Library/Internet Plug-Ins",
    "~/Library/Internet Plug-Ins",
    "~/.config/autostart",
    "/etc/xdg/autostart",
)
DEFAULT_CACHE_DIRS = ("~/Library/Caches", "~/.cache")
DEFAULT_BACKUP_PATTERNS = ("/Volumes/*/Backups.backupdb", "/Volumes/*/*.backupbundle")

_SMART_RE = re.compile(r"SMART Status:\s*(?P<status>.+)")


def list_processes() -> list[ProcessInfo]:
    procs: list[ProcessInfo] = []
    for p in psutil.process_iter(attrs=[]):  # iterate through all running processes
        try:
            name = p.name()
            try:
                exe = p.exe() or ""
            except (psutil.AccessDenied, psutil.ZombieProcess):  # system processes hide their path
                exe = ""
            procs.append(ProcessInfo(name=name, exe=exe))
        except (psutil.NoSuchProcess, psutil.AccessDenied, psutil.ZombieProcess):  # process gone
            continue
    return procs


def physical_ram_gb() -> float:
    return psutil.virtual_memory().total / GB


def memory_pressure_percent() -> float:
    return float(psutil.virtual_memory().percent)


def free_disk_by_volume() -> dict[str, float]:
    # mountpoint -> free GB for every real partition we can stat
    free: dict[str, float] = {}
    for part in psutil.disk_partitions(all=False):
        try:
            usage = psutil.disk_usage(part.mountpoint)
        except (PermissionError, OSError) as e:  # removable media, locked volume, etc
            logger.debug("skipping %s: %s", part.mountpoint, e)
            continue
        free[part.mountpoint] = usage.free / GB
    return free


def list_launch_files(dirs: Iterable[str] = DEFAULT_LAUNCH_DIRS) -> list[str]:
    paths: list[str] = []
    for raw in dirs:
        folder = os.path.expanduser(raw)
        try:
            with os.scandir(folder) as it:
                for entry in it:
                    paths.append(entry.path)
        except (FileNotFoundError, NotADirectoryError, PermissionError):
            continue
    return sorted(paths)


def folder_size_gb(dirs: Iterable[str] = DEFAULT_CACHE_DIRS) -> float:
    total = 0
    for raw in dirs:
        folder = os.path.expanduser(raw)
        for root, _dirs, files in os.walk(folder):  # os.walk swallows unreadable folders itself
            for fname in files:
                try:
                    total += os.lstat(os.path.join(root, fname)).st_size
                except OSError:
                    continue
    return total / GB


def backup_exists(patterns: Iterable[str] = DEFAULT_BACKUP_PATTERNS) -> bool:
    return any(glob.glob(os.path.expanduser(p)) for p in patterns)


def os_ordinal_from_product_version(version: str) -> int:
    """
    Map a macOS product version to the ordinal OS scale.
    10.6 -> 10 (Snow Leopard) ... 10.11 -> 15 (El Capitan), 11 -> 20, 12 -> 21 and so on.
    """
    parts = version.split(".")
    try:
        major = int(parts[0])
        minor = int(parts[1]) if len(parts) > 1 and parts[1] else 0
    except ValueError:
        return 0
    if major == 10:
        return minor + 4
    return major + 9


def os_version() -> tuple[int, int]:
    """(major ordinal, minor) for this machine, (0, 0) when it cannot be determined or is not macOS."""
    if sys.platform != "darwin":  # other kernels have their own numbering, the ordinal scale does not apply
        return 0, 0
    product = platform.mac_ver()[0]
    if product:
        parts = product.split(".")
        minor = int(parts[2]) if len(parts) > 2 and parts[2].isdigit() else 0
        return os_ordinal_from_product_version(product), minor
    # Darwin kernel majors are the ordinal scale directly
    release = platform.release().split(".")
    try:
        return int(release[0]), int(release[1]) if len(release) > 1 else 0
    except ValueError:
        return 0, 0


def smart_statuses(
    watchdog: TaskWatchdog,
    devices: Iterable[str] = ("disk0",),
    timeout: float = DEFAULT_TIMEOUT_SEC,
) -> dict[str, str]:
    if sys.platform != "darwin":  # diskutil only exists on macOS
        return {}
    statuses: dict[str, str] = {}
    for device in devices:
        out = tool_output(watchdog, "diskutil", ["info", device], timeout)
        m = _SMART_RE.search(out)
        if m:
            statuses[device] = m.group("status").strip()
    return statuses


def parse_launchctl_list(out: str) -> list[LaunchJob]:
    # "PID\tStatus\tLabel" header followed by one job per line, PID is "-" when not running
    jobs: list[LaunchJob] = []
    for line in out.splitlines()[1:]:
        parts = line.split("\t")
        if len(parts) != 3:
            continue
        _pid, status, label = parts
        try:
            code = int(status)
        except ValueError:
            continue
        jobs.append(LaunchJob(label=label.strip(), status=code))
    return jobs


def launch_jobs(watchdog: TaskWatchdog, timeout: float = DEFAULT_TIMEOUT_SEC) -> list[LaunchJob]:
    if sys.platform != "darwin":
        return []
    return parse_launchctl_list(tool_output(watchdog, "launchctl", ["list"], timeout))


def machine_model(watchdog: TaskWatchdog, timeout: float = 60.0) -> tuple[str, str]:
    """(model identifier, serial number) from system_profiler, empty strings elsewhere."""
    if sys.platform != "darwin":
        return "", ""
    out = tool_output(watchdog, "system_profiler", ["SPHardwareDataType"], timeout)
    model = serial = ""
    for line in out.splitlines():
        key, _, value = line.strip().partition(":")
        if key == "Model Identifier":
            model = value.strip()
        elif key == "Serial Number (system)":
            serial = value.strip()
    return model, serial


def host_names(watchdog: TaskWatchdog, timeout: float = DEFAULT_TIMEOUT_SEC) -> tuple[str, str]:
    """(computer name, host name). The computer name is the user-facing macOS name, empty elsewhere."""
    computer = ""
    if sys.platform == "darwin":
        computer = tool_output(watchdog, "scutil", ["--get", "ComputerName"], timeout).strip()
    return computer, socket.gethostname()


def signature_valid(watchdog: TaskWatchdog, exe: str, timeout: float = 10.0) -> bool | None:
    # None when we cannot tell (not macOS, tool missing, timed out)
    if sys.platform != "darwin" or not exe:
        return None
    result = run_tool(watchdog, "codesign", ["--verify", exe], timeout)
    if result.timed_out or result.returncode < 0:
        return None
    return result.returncode == 0
