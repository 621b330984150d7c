"""
Tests for core memfs modules: config, decorators, errors.

Focus on behavior: configuration round-trips through JSON, error tags
and messages, and the error boundary decorators.
"""

import io
import json
import tempfile
from pathlib import Path
from unittest.mock import patch

import pytest
import typer
from rich.console import Console

from memfs import config
from memfs.decorators import handle_cli_errors, handle_fs_errors
from memfs.vfs.errors import (
    DanglingLinkError,
    ErrorKind,
    FSError,
    InvalidDescriptorError,
    NotFoundError,
    RootRemovalError,
)


# ============================================================================
# CONFIG MODULE TESTS
# ============================================================================

class TestFSConfig:
    """Test file system configuration defaults."""

    def test_default_values(self):
        cfg = config.FSConfig()
        assert cfg.default_file_mode == 6
        assert cfg.default_dir_mode == 7
        assert cfg.first_descriptor == 3
        assert cfg.max_symlink_depth == 8


class TestShellConfig:
    """Test shell configuration defaults."""

    def test_default_values(self):
        cfg = config.ShellConfig()
        assert cfg.prompt == "memfs"
        assert cfg.history_file is None
        assert cfg.color is True


class TestMemFSConfig:
    """Test the combined configuration."""

    def test_to_dict_has_sections(self):
        data = config.MemFSConfig().to_dict()
        assert set(data) == {"fs", "shell", "cli"}
        assert data["fs"]["default_file_mode"] == 6

    def test_from_dict_partial(self):
        """Missing sections and keys should fall back to defaults."""
        cfg = config.MemFSConfig.from_dict({"shell": {"prompt": "fs"}})

        assert cfg.shell.prompt == "fs"
        assert cfg.shell.color is True
        assert cfg.fs.max_symlink_depth == 8

    def test_round_trip(self):
        original = config.MemFSConfig()
        original.fs.default_file_mode = 4
        original.cli.verbose = True

        restored = config.MemFSConfig.from_dict(original.to_dict())

        assert restored == original

    def test_from_dict_rejects_out_of_range_values(self):
        with pytest.raises(ValueError, match="default_dir_mode"):
            config.MemFSConfig.from_dict({"fs": {"default_dir_mode": 9}})
        with pytest.raises(ValueError, match="max_symlink_depth"):
            config.MemFSConfig.from_dict({"fs": {"max_symlink_depth": 0}})
        with pytest.raises(ValueError, match="default_file_mode"):
            config.MemFSConfig.from_dict({"fs": {"default_file_mode": True}})


class TestLoadConfig:
    """Test configuration loading behavior."""

    def test_returns_defaults_when_file_missing(self):
        """Missing config file should return default config."""
        with patch.object(config, 'get_config_path') as mock_path:
            mock_path.return_value = Path("/nonexistent/config.json")
            result = config.load_config()
            assert result == config.MemFSConfig()

    def test_loads_from_existing_file(self):
        """Should load values from existing config file."""
        with tempfile.TemporaryDirectory() as tmpdir:
            config_path = Path(tmpdir) / "config.json"
            config_path.write_text(json.dumps({"fs": {"max_symlink_depth": 4}}))

            with patch.object(config, 'get_config_path', return_value=config_path):
                result = config.load_config()
                assert result.fs.max_symlink_depth == 4

    def test_handles_invalid_json_gracefully(self):
        """Invalid JSON should return defaults, not crash."""
        with tempfile.TemporaryDirectory() as tmpdir:
            config_path = Path(tmpdir) / "config.json"
            config_path.write_text("not valid json {{{")

            with patch.object(config, 'get_config_path', return_value=config_path):
                result = config.load_config()
                assert isinstance(result, config.MemFSConfig)

    def test_handles_unknown_keys_gracefully(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            config_path = Path(tmpdir) / "config.json"
            config_path.write_text(json.dumps({"fs": {"no_such_key": 1}}))

            with patch.object(config, 'get_config_path', return_value=config_path):
                assert config.load_config() == config.MemFSConfig()

    @pytest.mark.parametrize("fs_section", [
        {"default_dir_mode": 9},
        {"default_file_mode": -1},
        {"max_symlink_depth": 0},
        {"first_descriptor": "3"},
    ])
    def test_out_of_range_values_fall_back_to_defaults(self, fs_section, caplog):
        """
        Given a config file with a value outside its allowed range
        When loading configuration
        Then the defaults are used and a warning is logged
        """
        with tempfile.TemporaryDirectory() as tmpdir:
            config_path = Path(tmpdir) / "config.json"
            config_path.write_text(json.dumps({"fs": fs_section, "shell": {"prompt": "fs"}}))

            with patch.object(config, 'get_config_path', return_value=config_path):
                with caplog.at_level("WARNING", logger="memfs.config"):
                    result = config.load_config()

        assert result == config.MemFSConfig()
        assert "Using default configuration" in caplog.text


class TestSaveConfig:
    """Test configuration saving behavior."""

    def test_creates_parent_directories(self):
        """save_config should create parent directories if needed."""
        with tempfile.TemporaryDirectory() as tmpdir:
            config_path = Path(tmpdir) / "deep" / "nested" / "config.json"

            with patch.object(config, 'get_config_path', return_value=config_path):
                assert config.save_config(config.MemFSConfig()) == config_path

                with open(config_path) as f:
                    data = json.load(f)
                    assert "fs" in data

    def test_ensure_config_exists_keeps_existing(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            config_path = Path(tmpdir) / "config.json"
            config_path.write_text(json.dumps({"shell": {"prompt": "kept"}}))

            with patch.object(config, 'get_config_path', return_value=config_path):
                config.ensure_config_exists()
                assert config.load_config().shell.prompt == "kept"


class TestUpdateConfig:
    """Test configuration update behavior."""

    def test_updates_specific_fields(self):
        """update_config should only modify specified fields."""
        with tempfile.TemporaryDirectory() as tmpdir:
            config_path = Path(tmpdir) / "config.json"

            initial = config.MemFSConfig()
            initial.shell.prompt = "initial"

            with patch.object(config, 'get_config_path', return_value=config_path):
                config.save_config(initial)

                config.update_config(default_file_mode=4, color=False)

                result = config.load_config()
                assert result.fs.default_file_mode == 4
                assert result.shell.color is False
                assert result.shell.prompt == "initial"  # Unchanged


# ============================================================================
# ERRORS MODULE TESTS
# ============================================================================

class TestErrors:
    """Test error tags and messages."""

    def test_message_with_path(self):
        assert str(NotFoundError("/docs")) == "No such file or directory: /docs"

    def test_message_without_path(self):
        assert str(RootRemovalError()) == "Cannot remove the root directory"

    def test_custom_message(self):
        error = DanglingLinkError("/l", "Too many levels of symbolic links")
        assert str(error) == "Too many levels of symbolic links: /l"

    def test_descriptor_as_path(self):
        error = InvalidDescriptorError(7)
        assert error.path == 7
        assert str(error) == "Bad file descriptor: 7"

    def test_every_kind_has_an_error(self):
        kinds = {cls.kind for cls in FSError.__subclasses__()}
        assert kinds == set(ErrorKind)


# ============================================================================
# DECORATORS MODULE TESTS
# ============================================================================

class FakeShell:
    """Minimal object with the attributes handle_fs_errors uses."""

    def __init__(self):
        self.console = Console(file=io.StringIO(), color_system=None)
        self.last_error = "stale"

    @handle_fs_errors
    def cmd_fail(self, args):
        raise NotFoundError(args[0])

    @handle_fs_errors
    def cmd_ok(self, args):
        return "done"


class TestHandleFsErrors:
    """Test the shell error boundary."""

    def test_passes_through_successful_calls(self):
        shell = FakeShell()
        assert shell.cmd_ok([]) == "done"
        assert shell.last_error is None

    def test_converts_error_to_message(self):
        shell = FakeShell()

        assert shell.cmd_fail(["/x"]) is None

        assert shell.last_error.kind is ErrorKind.NOT_FOUND
        assert "fail: No such file or directory: /x" in shell.console.file.getvalue()

    def test_preserves_function_name(self):
        assert FakeShell.cmd_ok.__name__ == "cmd_ok"


class TestHandleCliErrors:
    """Test the CLI error boundary."""

    def test_passes_through_successful_calls(self):
        @handle_cli_errors
        def successful_function():
            return "success"

        assert successful_function() == "success"

    def test_file_not_found_exits(self):
        @handle_cli_errors
        def missing():
            raise FileNotFoundError("script.fs")

        with pytest.raises(typer.Exit) as exc_info:
            missing()
        assert exc_info.value.exit_code == 1

    def test_keyboard_interrupt_exits_130(self):
        @handle_cli_errors
        def interrupted():
            raise KeyboardInterrupt

        with pytest.raises(typer.Exit) as exc_info:
            interrupted()
        assert exc_info.value.exit_code == 130
