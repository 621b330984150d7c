"""
Tests for CLI commands: run, config, about.
"""

import json
from unittest.mock import patch

import pytest
from typer.testing import CliRunner

from memfs import config
from memfs.cli import app


runner = CliRunner()


@pytest.fixture
def config_path(tmp_path):
    """Point configuration at a temporary file."""
    path = tmp_path / "memfs" / "config.json"
    with patch.object(config, 'get_config_path', return_value=path):
        yield path


@pytest.fixture
def script(tmp_path):
    """Write a script file and return its path."""
    def _write(*lines):
        path = tmp_path / "script.fs"
        path.write_text("\n".join(lines) + "\n")
        return path
    return _write


class TestRunCommand:
    """Test running command scripts."""

    def test_run_script(self, config_path, script):
        path = script(
            "# build a small tree",
            "mkdir docs",
            "cd docs",
            "touch notes",
            "",
            "write notes hello",
            "cat notes",
            "pwd",
        )

        result = runner.invoke(app, ["run", str(path)])

        assert result.exit_code == 0
        assert "hello" in result.stdout
        assert "/docs" in result.stdout
        assert "failed" not in result.stdout

    def test_run_echo(self, config_path, script):
        path = script("mkdir a")

        result = runner.invoke(app, ["run", str(path), "--echo"])

        assert result.exit_code == 0
        assert "memfs:/ $ mkdir a" in result.stdout

    def test_run_continues_after_error(self, config_path, script):
        path = script("cd missing", "mkdir a", "ls")

        result = runner.invoke(app, ["run", str(path)])

        assert result.exit_code == 0
        assert "No such file or directory" in result.stdout
        assert "a/" in result.stdout
        assert "1 command(s) failed" in result.stdout

    def test_run_strict_stops(self, config_path, script):
        path = script("cd missing", "mkdir never")

        result = runner.invoke(app, ["run", str(path), "--strict"])

        assert result.exit_code == 1
        assert "Stopped at line 1" in result.stdout

    def test_run_stdin(self, config_path):
        result = runner.invoke(app, ["run", "-"], input="mkdir x\nls\n")

        assert result.exit_code == 0
        assert "x/" in result.stdout

    def test_run_stops_at_exit(self, config_path, script):
        path = script("exit", "mkdir never")

        result = runner.invoke(app, ["run", str(path)])

        assert result.exit_code == 0
        assert "Goodbye!" in result.stdout

    def test_run_missing_script(self, config_path, tmp_path):
        result = runner.invoke(app, ["run", str(tmp_path / "nope.fs")])

        assert result.exit_code == 1
        assert "File not found" in result.stdout

    def test_run_uses_configured_modes(self, config_path, script):
        config.save_config(config.MemFSConfig(fs=config.FSConfig(default_file_mode=4)))
        path = script("touch f", "ls -l")

        result = runner.invoke(app, ["run", str(path)])

        assert "-r--" in result.stdout

    def test_run_with_out_of_range_config(self, config_path, script):
        config_path.parent.mkdir(parents=True)
        config_path.write_text(json.dumps({"fs": {"default_dir_mode": 9, "max_symlink_depth": 0}}))
        path = script("mkdir a", "ls -l")

        result = runner.invoke(app, ["run", str(path)])

        assert result.exit_code == 0
        assert "drwx" in result.stdout
        assert "failed" not in result.stdout


class TestConfigCommand:
    """Test viewing and editing configuration."""

    def test_show_defaults(self, config_path):
        result = runner.invoke(app, ["config", "--show"])

        assert result.exit_code == 0
        assert "memfs Configuration" in result.stdout
        assert "Max Symlink Depth: 8" in result.stdout

    def test_init_creates_file(self, config_path):
        result = runner.invoke(app, ["config", "--init"])

        assert result.exit_code == 0
        assert config_path.exists()

    def test_set_values(self, config_path):
        result = runner.invoke(app, ["config", "--file-mode", "4", "--prompt", "fs", "--no-color"])

        assert result.exit_code == 0
        assert "Configuration updated" in result.stdout

        data = json.loads(config_path.read_text())
        assert data["fs"]["default_file_mode"] == 4
        assert data["shell"]["prompt"] == "fs"
        assert data["shell"]["color"] is False

    def test_rejects_invalid_mode(self, config_path):
        result = runner.invoke(app, ["config", "--dir-mode", "9"])

        assert result.exit_code == 1
        assert not config_path.exists()


class TestAboutCommand:
    """Test the about command."""

    def test_about(self, config_path):
        result = runner.invoke(app, ["about"])

        assert result.exit_code == 0
        assert "In-Memory File System" in result.stdout
