# SPDX-License-Identifier: GPL-3.0-or-later
"""
goal: main launcher for AuditEye: loads config, builds one diagnostic run, fills the classification lists,
collects the machine snapshot, runs the check phases (file and process scans on parallel threads) and prints
the text report. the terminal shows a small banner and the report, library log noise stays at ERROR unless
asked for.
"""

from __future__ import annotations  # lets us use string annotations before classes are defined

import argparse  # for parsing command line arguments
import dataclasses  # for attaching signature results and applying CLI switches
import logging  # for configuring log output
import sys  # for the exit code and writing the report
import threading  # for running the scan phases in background threads
from pathlib import Path  # for working with file paths

from dotenv import load_dotenv  # .env support so AUDITEYE_* overrides can live in a file

from agent import system_snapshot as snap
from agent.list_loader import load_classification
from agent.log_reader import count_disk_errors, read_syslog
from algorithm.diagnostics import DiagnosticEvent, Severity
from algorithm.phases import (
    SCAN_FAILED,
    ProcessInfo,
    is_apple_process,
    scan_files,
    scan_launch_jobs,
    scan_processes,
)
from algorithm.run_context import DiagnosticRun
from app.config import Config, load_config
from app.report import render_report

logger = logging.getLogger("auditeye.console")


# --- ASCII banner ---
def print_banner() -> None:
    # print a small banner, use ANSI color codes if available (Windows via colorama), otherwise plain text
    try:
        from colorama import init as _colorama_init  # enable ANSI color codes on Windows terminals

        _colorama_init()
        cyan = "\x1b[36m"  # ANSI code for cyan color
        dim = "\x1b[2m"  # ANSI code for dim/brightness
        bold = "\x1b[1m"  # ANSI code for bold text
        reset = "\x1b[0m"  # ANSI code to reset all formatting
    except ImportError:  # if colorama is not available
        cyan = dim = bold = reset = ""  # use empty strings so banner still works without colors

    banner = f"""
{dim}┌────────────────────────────────────────────────────────────┐{reset}
{dim}│{reset}{cyan}{bold}                   A  u  d  i  t  E  y  e{reset}{dim}                   │{reset}
{dim}├────────────────────────────────────────────────────────────┤{reset}
{dim}│{reset}  Checking disks, memory, software and logs...              {dim}│{reset}
{dim}└────────────────────────────────────────────────────────────┘{reset}
"""
    print(banner)


# --- end banner ---


def _with_signatures(run: DiagnosticRun, procs: list[ProcessInfo], timeout: float) -> list[ProcessInfo]:
    # only Apple-located executables are verified, everything else keeps "not checked"
    out: list[ProcessInfo] = []
    for proc in procs:
        if is_apple_process(proc) and proc.exe:
            valid = snap.signature_valid(run.watchdog, proc.exe, timeout)
            proc = dataclasses.replace(proc, signature_valid=valid)
        out.append(proc)
    return out


def _guarded(phase, run: DiagnosticRun, *args) -> None:
    # a crashed scan thread must still show up in the report and the exit code
    try:
        phase(run, *args)
    except Exception:
        name = phase.__name__.strip("_").replace("_", " ")
        logger.exception("%s failed", name)
        run.aggregator.record(
            DiagnosticEvent(
                identifier=SCAN_FAILED,
                severity=Severity.SERIOUS,
                details=f"{name} stopped early, results are incomplete",
                subject=name,
            )
        )


def _process_phase(run: DiagnosticRun, cfg: Config) -> None:
    procs = snap.list_processes()
    if run.settings.check_apple_signatures:
        procs = _with_signatures(run, procs, cfg.tool_timeout_sec)
    scan_processes(run, procs)


def _file_phase(run: DiagnosticRun) -> None:
    scan_files(run, snap.list_launch_files())


def run_audit(cfg: Config) -> DiagnosticRun:
    """Build a run, collect the snapshot and run every check phase. Returns the finished run."""
    run = DiagnosticRun(settings=cfg.settings(), thresholds=cfg.thresholds())
    run.aggregator.register_problem(SCAN_FAILED)

    # build phase: lists must be complete before any classification query
    load_classification(str(cfg.lists_path), run.store)

    facts = run.facts
    facts.model, facts.serial = snap.machine_model(run.watchdog, timeout=cfg.tool_timeout_sec)
    facts.computer_name, facts.host_name = snap.host_names(run.watchdog, timeout=cfg.tool_timeout_sec)
    facts.major_os_version, facts.minor_os_version = snap.os_version()
    facts.physical_ram_gb = snap.physical_ram_gb()
    run.attach_logs(read_syslog(str(cfg.log_path)))
    facts.disk_errors = count_disk_errors(run.logs.entries)

    # query phase: file and process scans share the run, the aggregator serializes their writes
    workers = [
        threading.Thread(target=_guarded, args=(_file_phase, run), name="scan-files", daemon=True),
        threading.Thread(target=_guarded, args=(_process_phase, run, cfg), name="scan-processes", daemon=True),
    ]
    for t in workers:
        t.start()

    agg = run.aggregator
    if facts.major_os_version:  # zero means "not macOS" or unknown
        agg.check_os_version(facts.major_os_version)
    agg.check_ram(facts.physical_ram_gb)
    agg.check_memory_pressure(snap.memory_pressure_percent())
    for volume, free_gb in snap.free_disk_by_volume().items():
        agg.check_disk_space(volume, free_gb)
    agg.check_cache_size(snap.folder_size_gb())
    agg.check_backup(snap.backup_exists())
    agg.check_disk_health(snap.smart_statuses(run.watchdog, timeout=cfg.tool_timeout_sec))
    agg.check_disk_errors(facts.disk_errors)
    scan_launch_jobs(run, snap.launch_jobs(run.watchdog, timeout=cfg.tool_timeout_sec))

    for t in workers:
        t.join()
    logger.info(
        "audit finished: %d serious problems, %d unknown files, %d terminated tasks",
        len(run.serious_problems),
        len(run.unknown_files),
        len(run.terminated_tasks),
    )
    return run


def main(argv: list[str] | None = None) -> int:
    # main entry point that sets up and runs the audit
    load_dotenv()  # load .env file if it exists
    parser = argparse.ArgumentParser(description="AuditEye")  # create argument parser
    parser.add_argument("--config", type=Path, default=None, help="path to a JSON config file")
    parser.add_argument("--log-level", default=None, help="logging level (DEBUG, INFO, WARNING, ERROR)")
    parser.add_argument("--no-banner", action="store_true", help="do not print the banner")
    parser.add_argument("--no-color", action="store_true", help="plain text report")
    parser.add_argument(
        "--check-apple-signatures", action="store_true", help="verify signatures of Apple executables"
    )
    parser.add_argument("--show-apple-tasks", action="store_true", help="classify com.apple.* items too")
    parser.add_argument(
        "--show-apple-failures", action="store_true", help="report failed com.apple.* launch jobs"
    )
    args = parser.parse_args(argv)

    cfg = load_config(args.config)
    # command line switches only ever turn checks on, config stays the baseline
    overrides = {}
    if args.check_apple_signatures:
        overrides["check_apple_signatures"] = True
    if args.show_apple_tasks:
        overrides["hide_apple_tasks"] = False
    if args.show_apple_failures:
        overrides["ignore_known_apple_failures"] = False
    if overrides:
        cfg = dataclasses.replace(cfg, **overrides)

    # root logging level stays high by default so library warnings do not spam the console
    level_name = (args.log_level or cfg.log_level).upper()
    logging.basicConfig(level=getattr(logging, level_name, logging.ERROR))

    if not args.no_banner:
        print_banner()

    run = run_audit(cfg)
    sys.stdout.write(render_report(run, color=not args.no_color))
    return 1 if run.serious_problems else 0


if __name__ == "__main__":
    sys.exit(main())
