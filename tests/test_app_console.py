"""
Tests for app.console - Console entry point functionality
Tests the banner, the audit pipeline and the command line switches with every collector mocked.
"""

from __future__ import annotations

import json
import os
from unittest.mock import patch

import pytest

from algorithm.classification import MINIMUM_WHITELIST_SIZE
from algorithm.phases import LaunchJob, ProcessInfo
from app.config import load_config
from app.console import main, print_banner, run_audit


class TestPrintBanner:
    """Tests for print_banner function"""

    @patch("builtins.print")
    def test_print_banner_prints(self, mock_print):
        print_banner()
        mock_print.assert_called_once()
        assert "A  u  d  i  t  E  y  e" in mock_print.call_args.args[0]

    @patch("builtins.print")
    def test_print_banner_works_without_colorama(self, mock_print):
        """Test that print_banner works even if colorama import fails"""
        with patch.dict("sys.modules", {"colorama": None}):
            print_banner()
        banner = mock_print.call_args.args[0]
        assert "\x1b[" not in banner


@pytest.fixture
def base_dir(tmp_path):
    """A project dir with a trusted whitelist and a tiny syslog."""
    data = tmp_path / "data"
    data.mkdir()
    lists = {
        "whitelist": [f"known-{i}.plist" for i in range(MINIMUM_WHITELIST_SIZE)],
        "whitelist_prefixes": ["/Applications/"],
        "blacklist": ["com.genieo.engine.plist"],
        "adware_extensions": [[".download.plist", "Downlite"]],
    }
    (data / "classification.json").write_text(json.dumps(lists), encoding="utf-8")
    log = tmp_path / "system.log"
    log.write_text("Oct 19 10:00:00 mac kernel: booted\n", encoding="utf-8")
    (data / "config.json").write_text(json.dumps({"log_path": str(log)}), encoding="utf-8")
    with patch.dict(os.environ, {"AUDITEYE_BASE_DIR": str(tmp_path)}, clear=True):
        yield tmp_path


@pytest.fixture
def healthy_machine():
    """Patch every collector with the readings of a healthy machine."""
    with patch.multiple(
        "app.console.snap",
        list_processes=lambda: [ProcessInfo("App", "/Applications/App.app/Contents/MacOS/App")],
        list_launch_files=lambda: ["/Library/LaunchAgents/known-1.plist"],
        machine_model=lambda wd, timeout=60.0: ("MacBookPro11,1", "C02ABC123"),
        host_names=lambda wd, timeout=30.0: ("Office iMac", "office-imac.local"),
        os_version=lambda: (15, 6),
        physical_ram_gb=lambda: 16.0,
        memory_pressure_percent=lambda: 40.0,
        free_disk_by_volume=lambda: {"/": 100.0},
        folder_size_gb=lambda: 1.0,
        backup_exists=lambda: True,
        smart_statuses=lambda wd, timeout=30.0: {"disk0": "Verified"},
        launch_jobs=lambda wd, timeout=30.0: [LaunchJob("com.example.ok", 0)],
        signature_valid=lambda wd, exe, timeout=10.0: True,
    ) as mocks:
        yield mocks


class TestRunAudit:
    def test_healthy_machine(self, base_dir, healthy_machine):
        run = run_audit(load_config())
        assert run.serious_problems == []
        assert run.unknown_files == frozenset()
        assert run.facts.model == "MacBookPro11,1"
        assert run.facts.computer_name == "Office iMac"
        assert run.logs.has_log_entries("kernel")

    def test_problems_are_collected(self, base_dir, healthy_machine):
        with patch.multiple(
            "app.console.snap",
            list_launch_files=lambda: [
                "/Library/LaunchAgents/com.genieo.engine.plist",
                "/Library/LaunchAgents/com.mystery.plist",
            ],
            list_processes=lambda: [ProcessInfo("helper", "/Users/me/helper")],
            physical_ram_gb=lambda: 2.0,
            backup_exists=lambda: False,
            smart_statuses=lambda wd, timeout=30.0: {"disk0": "Failing"},
            launch_jobs=lambda wd, timeout=30.0: [LaunchJob("com.example.broken", 78)],
        ):
            run = run_audit(load_config())
        assert run.serious_problems == sorted(["adware", "harddiskfailure", "lowram", "nobackup"])
        assert run.adware_found is True
        assert run.unknown_files == frozenset({"/Library/LaunchAgents/com.mystery.plist", "/Users/me/helper"})

    def test_signatures_checked_only_when_enabled(self, base_dir, healthy_machine):
        calls = []

        def fake_signature(wd, exe, timeout=10.0):
            calls.append(exe)
            return False

        with patch.multiple(
            "app.console.snap",
            list_processes=lambda: [
                ProcessInfo("syslogd", "/usr/sbin/syslogd"),
                ProcessInfo("App", "/Applications/App.app/Contents/MacOS/App"),
            ],
            signature_valid=fake_signature,
        ):
            run_audit(load_config())
            assert calls == []
            with patch.dict(os.environ, {"AUDITEYE_CHECK_APPLE_SIGNATURES": "1"}):
                run = run_audit(load_config())
        assert calls == ["/usr/sbin/syslogd"]
        assert [e.identifier for e in run.aggregator.events] == ["invalidsignature"]

    def test_machine_model_uses_tool_timeout(self, base_dir, healthy_machine):
        seen = {}

        def fake_model(wd, timeout=60.0):
            seen["timeout"] = timeout
            return "", ""

        with patch.dict(os.environ, {"AUDITEYE_TOOL_TIMEOUT_SEC": "7"}), patch(
            "app.console.snap.machine_model", fake_model
        ):
            run_audit(load_config())
        assert seen["timeout"] == 7.0

    def test_logged_disk_errors_flag_the_disk(self, base_dir, healthy_machine):
        (base_dir / "system.log").write_text(
            "Oct 19 10:00:00 mac kernel: disk0s2: I/O error.\n"
            "Oct 19 10:00:05 mac kernel: disk0s2: I/O error.\n",
            encoding="utf-8",
        )
        run = run_audit(load_config())
        assert run.facts.disk_errors == {"disk0s2": 2}
        assert run.serious_problems == ["harddiskfailure"]

    def test_crashed_scan_is_reported(self, base_dir, healthy_machine):
        def boom():
            raise RuntimeError("process table unreadable")

        with patch("app.console.snap.list_processes", boom):
            run = run_audit(load_config())
        assert run.serious_problems == ["scanfailed"]
        (event,) = run.aggregator.events
        assert event.details == "process phase stopped early, results are incomplete"

    def test_crashed_scan_sets_exit_code(self, base_dir, healthy_machine, capsys):
        def boom():
            raise RuntimeError("launch folders unreadable")

        with patch("app.console.snap.list_launch_files", boom):
            assert main(["--no-banner", "--no-color"]) == 1
        assert "Scan did not finish" in capsys.readouterr().out


class TestMain:
    def test_exit_code_zero_when_healthy(self, base_dir, healthy_machine, capsys):
        assert main(["--no-banner", "--no-color"]) == 0
        out = capsys.readouterr().out
        assert "AuditEye report" in out
        assert "Serious problems:\n  none" in out

    def test_exit_code_one_on_serious_problem(self, base_dir, healthy_machine, capsys):
        with patch("app.console.snap.backup_exists", lambda: False):
            assert main(["--no-banner", "--no-color"]) == 1
        assert "No backup" in capsys.readouterr().out

    def test_banner_printed_by_default(self, base_dir, healthy_machine, capsys):
        with patch("app.console.print_banner") as mock_banner:
            main(["--no-color"])
        mock_banner.assert_called_once()

    def test_show_apple_failures_switch(self, base_dir, healthy_machine, capsys):
        with patch("app.console.snap.launch_jobs", lambda wd, timeout=30.0: [LaunchJob("com.apple.x", 1)]):
            main(["--no-banner", "--no-color"])
            assert "Failed launch job" not in capsys.readouterr().out
            main(["--no-banner", "--no-color", "--show-apple-failures"])
            assert "Failed launch job" in capsys.readouterr().out

    def test_explicit_config_file(self, base_dir, healthy_machine, capsys, tmp_path):
        cfg = tmp_path / "strict.json"
        cfg.write_text(json.dumps({"min_ram_gb": 64}), encoding="utf-8")
        assert main(["--no-banner", "--no-color", "--config", str(cfg)]) == 1
        assert "Not enough RAM" in capsys.readouterr().out
