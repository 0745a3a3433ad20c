"""
goal: render a finished diagnostic run as plain text for the terminal. lists the serious problems first, then
adware with its family and a details link, unknown files, lesser issues, and helper programs that had to be
terminated together with the log lines written around the time they were killed.
"""

from __future__ import annotations  # lets us use string annotations before classes are defined

from algorithm.diagnostics import Severity, problem_id
from algorithm.run_context import DiagnosticRun

# short human titles for the report, keyed by the stable problem identifier
PROBLEM_TITLES = {
    "harddiskfailure": "Hard disk failure",
    "nobackup": "No backup",
    "lowharddisk": "Low disk space",
    "lowram": "Not enough RAM",
    "memorypressure": "Memory pressure",
    "adware": "Adware",
    "outdatedos": "Outdated OS",
    "highcache": "Large cache",
    "invalidsignature": "Invalid Apple signature",
    "failedtask": "Failed launch job",
    "scanfailed": "Scan did not finish",
}


class _Colors:
    def __init__(self, enabled: bool) -> None:
        if enabled:
            try:
                from colorama import Fore, Style  # ANSI color constants, Windows support via init()

                self.red, self.yellow, self.cyan = Fore.RED, Fore.YELLOW, Fore.CYAN
                self.bold, self.reset = Style.BRIGHT, Style.RESET_ALL
                return
            except ImportError:
                pass
        self.red = self.yellow = self.cyan = self.bold = self.reset = ""


def _title(key: str) -> str:
    return PROBLEM_TITLES.get(key, key)


def render_report(run: DiagnosticRun, color: bool = False) -> str:
    c = _Colors(color)
    agg = run.aggregator
    facts = run.facts
    lines: list[str] = []

    lines.append(f"{c.bold}AuditEye report{c.reset}")
    if facts.computer_name or facts.host_name:
        name = facts.computer_name or facts.host_name
        lines.append(f"  Computer: {name}  Host: {facts.host_name or 'unknown'}")
    if facts.model or facts.serial:
        lines.append(f"  Model: {facts.model or 'unknown'}  Serial: {facts.serial or 'unknown'}")
    if facts.major_os_version:
        lines.append(f"  OS version: {facts.major_os_version}.{facts.minor_os_version}")
    if facts.physical_ram_gb:
        lines.append(f"  RAM: {facts.physical_ram_gb:.0f} GB")
    lines.append("")

    serious = run.serious_problems
    lines.append(f"{c.bold}Serious problems:{c.reset}")
    if not serious:
        lines.append("  none")
    for key in serious:
        lines.append(f"  {c.red}{_title(key)}{c.reset}")
        for event in agg.events:
            if problem_id(event.identifier) == key and event.details:
                lines.append(f"    {event.details}")
    lines.append("")

    if run.adware_possible:
        lines.append(f"{c.bold}Adware:{c.reset}")
        for path, label in sorted(agg.adware_files.items()):
            link = run.details_link(label)
            lines.append(f"  {c.red}{label}{c.reset}: {path} {c.cyan}{link.label} {link.url}{c.reset}")
        lines.append("")

    unknown = sorted(run.unknown_files)
    if unknown:
        lines.append(f"{c.bold}Unknown files ({len(unknown)}):{c.reset}")
        lines.extend(f"  {path}" for path in unknown)
        lines.append("")

    lesser = [e for e in agg.events if e.severity < Severity.SERIOUS]
    if lesser:
        lines.append(f"{c.bold}Other issues:{c.reset}")
        for event in sorted(lesser, key=lambda e: (problem_id(e.identifier), e.subject)):
            lines.append(f"  {c.yellow}{_title(problem_id(event.identifier))}{c.reset}: {event.details}")
        lines.append("")

    tasks = run.terminated_tasks
    if tasks:
        lines.append(f"{c.bold}Terminated tasks:{c.reset}")
        for task in tasks:
            lines.append(f"  {task.terminated_at:%Y-%m-%d %H:%M:%S} {task.command_line}")
            context = run.logs.log_entries_around(task.terminated_at)
            lines.extend(f"      {line}" for line in context.splitlines())
        lines.append("")

    return "\n".join(lines).rstrip() + "\n"
