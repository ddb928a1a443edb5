"""
Unit tests for CLI using Typer.

These tests verify that the CLI correctly handles commands
using Typer's CliRunner.
"""

import re
import sys
from pathlib import Path
from unittest.mock import MagicMock, patch

from typer.testing import CliRunner

sys.path.insert(0, str(Path(__file__).parent.parent.parent / "src"))

from blunderbuss import __version__
from blunderbuss.cli import (
    EXIT_CONFIG_ERROR,
    EXIT_NOT_IN_TMUX,
    app,
    build_demo_services,
    build_services,
)
from blunderbuss.config import Config, Settings
from blunderbuss.exceptions import DiscoveryError
from blunderbuss.fakes import FakeLauncher, FakeStatusChecker
from blunderbuss.implementations import DRY_RUN_WINDOW_ID, TmuxLauncher
from tests.fixtures import make_harness


def strip_ansi(text: str) -> str:
    """Remove ANSI escape codes from text."""
    return re.sub(r'\x1b\[[0-9;]*m', '', text)


runner = CliRunner()


class TestCLICommands:
    """Test CLI commands"""

    def test_main_help(self):
        """Main help shows the options and commands"""
        result = runner.invoke(app, ["--help"])
        assert result.exit_code == 0
        output = strip_ansi(result.stdout)
        assert "--dry-run" in output
        assert "--demo" in output
        assert "update-models" in output

    def test_version(self):
        result = runner.invoke(app, ["version"])
        assert result.exit_code == 0
        assert __version__ in result.stdout


class TestStartup:
    """Checks made before the TUI starts"""

    def test_refuses_to_run_outside_tmux(self, monkeypatch):
        monkeypatch.delenv("TMUX", raising=False)
        with patch("blunderbuss.tui.run_tui") as run_tui:
            result = runner.invoke(app, [])
        assert result.exit_code == EXIT_NOT_IN_TMUX
        assert "inside tmux" in strip_ansi(result.output)
        run_tui.assert_not_called()

    def test_bad_config_exits_with_config_error(self, monkeypatch, tmp_path):
        monkeypatch.setenv("TMUX", "/tmp/tmux,1,0")
        config_file = tmp_path / "config.yaml"
        config_file.write_text("harnesses: []\n")
        with patch("blunderbuss.tui.run_tui") as run_tui:
            result = runner.invoke(app, ["--config", str(config_file)])
        assert result.exit_code == EXIT_CONFIG_ERROR
        assert "Configuration error" in strip_ansi(result.output)
        run_tui.assert_not_called()

    def test_demo_runs_without_tmux(self, monkeypatch):
        monkeypatch.delenv("TMUX", raising=False)
        with patch("blunderbuss.tui.run_tui") as run_tui:
            result = runner.invoke(app, ["--demo"])
        assert result.exit_code == 0
        services = run_tui.call_args[0][0]
        assert isinstance(services.launcher, FakeLauncher)
        assert run_tui.call_args[1]["dry_run"] is True

    def test_dry_run_uses_real_config(self, monkeypatch, tmp_path):
        monkeypatch.delenv("TMUX", raising=False)
        config_file = tmp_path / "config.yaml"
        config_file.write_text("harnesses:\n  - name: a\n    command_template: echo hi\n")
        with patch("blunderbuss.tui.run_tui") as run_tui:
            result = runner.invoke(app, ["--dry-run", "--config", str(config_file)])
        assert result.exit_code == 0
        services = run_tui.call_args[0][0]
        assert [h.name for h in services.harnesses] == ["a"]
        assert services.launcher.dry_run


class TestBuildServices:
    def test_dry_run_windows_finish_immediately(self, tmp_path):
        config = Config(harnesses=[make_harness()])
        services = build_services(config, tmp_path / ".beads", dry_run=True)
        assert isinstance(services.launcher, TmuxLauncher)
        assert isinstance(services.status_checker, FakeStatusChecker)
        assert services.status_checker.check(DRY_RUN_WINDOW_ID).value == "dead"
        assert b"dry-run" in services.capture_factory(DRY_RUN_WINDOW_ID).read()

    def test_settings_flow_through(self, tmp_path):
        config = Config(harnesses=[make_harness()], settings=Settings(model_fetch_attempts=5))
        services = build_services(config, tmp_path / ".beads")
        assert services.models.attempts == 5
        assert services.settings.model_fetch_attempts == 5

    def test_repo_root_follows_beads_dir(self, tmp_path, monkeypatch):
        """The workspace comes from the beads directory, not from cwd"""
        project = tmp_path / "proj"
        (project / ".git").mkdir(parents=True)
        (project / ".beads").mkdir()
        elsewhere = tmp_path / "elsewhere"
        elsewhere.mkdir()
        monkeypatch.chdir(elsewhere)

        services = build_services(Config(harnesses=[make_harness()]), project / ".beads", dry_run=True)
        assert services.default_workspace == str(project.resolve())
        assert services.discoverer.repo_root == project.resolve()

    def test_demo_services_have_sample_data(self):
        services = build_demo_services()
        assert services.store.tickets
        assert {h.name for h in services.harnesses} == {"echo", "shell"}
        assert services.default_workspace == services.discoverer.repo_root


class TestUpdateModels:
    def test_success(self, tmp_path):
        registry = MagicMock(provider_count=12, cache_path=tmp_path / "models-api.json")
        with patch("blunderbuss.cli.ModelRegistry", return_value=registry):
            result = runner.invoke(app, ["update-models", "--cache-dir", str(tmp_path)])
        assert result.exit_code == 0
        registry.refresh.assert_called_once()
        assert "Cached 12 providers" in strip_ansi(result.stdout)

    def test_failure(self, tmp_path):
        registry = MagicMock()
        registry.refresh.side_effect = DiscoveryError("offline")
        with patch("blunderbuss.cli.ModelRegistry", return_value=registry):
            result = runner.invoke(app, ["update-models", "--cache-dir", str(tmp_path)])
        assert result.exit_code == 1
        assert "offline" in strip_ansi(result.stdout)
