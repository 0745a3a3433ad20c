"""
goal: configuration loader for the audit. loads settings from a JSON file and environment variables, with
      sensible defaults. handles PyInstaller frozen executables by detecting the base directory correctly.
      returns a frozen Config dataclass with list paths, policy thresholds and the audit switches.
"""

from __future__ import annotations

import json
import os
from dataclasses import dataclass
from datetime import timedelta
from pathlib import Path

from algorithm.diagnostics import Thresholds
from algorithm.links import DEFAULT_SEARCH_URL
from algorithm.run_context import AuditSettings

_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off"}


# figure out where the app is running from (handles PyInstaller bundles)
def _resolve_base_dir() -> Path:
    import sys

    # if we are frozen (PyInstaller), use the executable's directory
    if getattr(sys, "frozen", False):
        return Path(sys.executable).parent
    # otherwise, go up one level from this file (app/config.py -> project root)
    return Path(__file__).resolve().parents[1]


# frozen dataclass to hold all config values (immutable once created)
@dataclass(frozen=True)
class Config:
    base_dir: Path  # root directory of the project
    lists_path: Path  # path to the classification lists JSON
    log_path: Path  # syslog file to correlate against
    log_level: str  # root logging level for the console
    ignore_known_apple_failures: bool
    check_apple_signatures: bool
    hide_apple_tasks: bool
    min_ram_gb: float
    min_free_disk_gb: float
    max_memory_pressure: float
    max_cache_gb: float
    outdated_os_gap: int
    log_window_before_sec: float
    log_window_after_sec: float
    tool_timeout_sec: float  # how long a helper program may run before it is killed
    details_search_url: str

    def thresholds(self) -> Thresholds:
        return Thresholds(
            min_ram_gb=self.min_ram_gb,
            min_free_disk_gb=self.min_free_disk_gb,
            max_memory_pressure=self.max_memory_pressure,
            max_cache_gb=self.max_cache_gb,
            outdated_os_gap=self.outdated_os_gap,
        )

    def settings(self) -> AuditSettings:
        return AuditSettings(
            ignore_known_apple_failures=self.ignore_known_apple_failures,
            check_apple_signatures=self.check_apple_signatures,
            hide_apple_tasks=self.hide_apple_tasks,
            log_window_before=timedelta(seconds=self.log_window_before_sec),
            log_window_after=timedelta(seconds=self.log_window_after_sec),
            details_search_url=self.details_search_url,
        )


def _coerce_bool(value, default: bool) -> bool:
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text in _TRUE:
        return True
    if text in _FALSE:
        return False
    return default


# get a config value with priority: environment variable > JSON file > default
def _get(obj: dict, key: str, default):
    # check for environment variable first (AUDITEYE_* prefix)
    raw = os.getenv(f"AUDITEYE_{key.upper()}")
    if raw is None:
        raw = obj.get(key, default)
    # coerce to the type of the default, fall back to the default on bad values
    # bool first since bool is a subclass of int
    if isinstance(default, bool):
        return _coerce_bool(raw, default)
    if isinstance(default, int):
        try:
            return int(raw)
        except (TypeError, ValueError):
            return default
    if isinstance(default, float):
        try:
            return float(raw)
        except (TypeError, ValueError):
            return default
    return raw if isinstance(raw, str) else default


# load configuration from JSON file and environment variables
def load_config(config_file: Path | None = None) -> Config:
    # base directory can be overridden by env var, otherwise auto-detect
    base = Path(os.getenv("AUDITEYE_BASE_DIR") or _resolve_base_dir())
    # config file lives in data/config.json unless given explicitly
    cfg_file = config_file or base / "data" / "config.json"
    obj = {}
    # try to load the JSON config file if it exists
    if cfg_file.exists():
        try:
            loaded = json.loads(cfg_file.read_text(encoding="utf-8") or "{}")
            obj = loaded if isinstance(loaded, dict) else {}
        except (json.JSONDecodeError, OSError):
            # if JSON is broken, just use empty dict (all defaults)
            obj = {}

    defaults = Thresholds()
    return Config(
        base_dir=base,
        lists_path=base / _get(obj, "lists_path", "data/classification.json"),
        log_path=Path(_get(obj, "log_path", "/var/log/system.log")),
        log_level=_get(obj, "log_level", "ERROR").upper(),
        ignore_known_apple_failures=_get(obj, "ignore_known_apple_failures", True),
        check_apple_signatures=_get(obj, "check_apple_signatures", False),
        hide_apple_tasks=_get(obj, "hide_apple_tasks", True),
        min_ram_gb=_get(obj, "min_ram_gb", defaults.min_ram_gb),
        min_free_disk_gb=_get(obj, "min_free_disk_gb", defaults.min_free_disk_gb),
        max_memory_pressure=_get(obj, "max_memory_pressure", defaults.max_memory_pressure),
        max_cache_gb=_get(obj, "max_cache_gb", defaults.max_cache_gb),
        outdated_os_gap=_get(obj, "outdated_os_gap", defaults.outdated_os_gap),
        log_window_before_sec=_get(obj, "log_window_before_sec", 180.0),
        log_window_after_sec=_get(obj, "log_window_after_sec", 180.0),
        tool_timeout_sec=_get(obj, "tool_timeout_sec", 30.0),
        details_search_url=_get(obj, "details_search_url", DEFAULT_SEARCH_URL),
    )
