"""
Configuration management for memfs.

Handles loading and saving user configuration from:
- XDG config directory: ~/.config/memfs/config.json
- Fallback: ~/.memfs/config.json
"""

import json
import logging
from pathlib import Path
from typing import Dict, Any, Optional
from dataclasses import dataclass, asdict, field

logger = logging.getLogger(__name__)


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


@dataclass
class FSConfig:
    """Defaults applied to every new file system session."""
    default_file_mode: int = 6
    default_dir_mode: int = 7
    first_descriptor: int = 3
    max_symlink_depth: int = 8

    def validate(self) -> 'FSConfig':
        """Check value ranges, raising ValueError on the first bad one."""
        checks = [
            ("default_file_mode", 0, 7),
            ("default_dir_mode", 0, 7),
            ("first_descriptor", 0, None),
            ("max_symlink_depth", 1, None),
        ]
        for key, low, high in checks:
            value = getattr(self, key)
            if not _is_int(value) or value < low or (high is not None and value > high):
                bound = f"between {low} and {high}" if high is not None else f"at least {low}"
                raise ValueError(f"{key} must be {bound}, got {value!r}")
        return self


@dataclass
class ShellConfig:
    """Interactive shell options."""
    prompt: str = "memfs"
    history_file: Optional[str] = None
    color: bool = True


@dataclass
class CLIConfig:
    """CLI default options."""
    verbose: bool = False


@dataclass
class MemFSConfig:
    """Main memfs configuration."""
    fs: FSConfig = field(default_factory=FSConfig)
    shell: ShellConfig = field(default_factory=ShellConfig)
    cli: CLIConfig = field(default_factory=CLIConfig)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "fs": asdict(self.fs),
            "shell": asdict(self.shell),
            "cli": asdict(self.cli),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'MemFSConfig':
        """Create from dictionary.

        Raises:
            ValueError: If a file system setting is out of range
        """
        return cls(
            fs=FSConfig(**data.get("fs", {})).validate(),
            shell=ShellConfig(**data.get("shell", {})),
            cli=CLIConfig(**data.get("cli", {})),
        )


def get_config_path() -> Path:
    """
    Get configuration file path.

    Follows XDG Base Directory specification:
    1. ~/.config/memfs/config.json
    2. Fallback: ~/.memfs/config.json

    Returns:
        Path to config file
    """
    xdg_config_home = Path.home() / ".config"
    if xdg_config_home.exists():
        config_dir = xdg_config_home / "memfs"
    else:
        config_dir = Path.home() / ".memfs"

    return config_dir / "config.json"


def load_config() -> MemFSConfig:
    """
    Load configuration from file.

    Returns:
        MemFSConfig instance with loaded values or defaults
    """
    config_path = get_config_path()

    if not config_path.exists():
        return MemFSConfig()

    try:
        with open(config_path, 'r') as f:
            data = json.load(f)
        return MemFSConfig.from_dict(data)
    except (ValueError, OSError, TypeError) as e:
        logger.warning(f"Failed to load config from {config_path}: {e}. Using default configuration")
        return MemFSConfig()


def save_config(config: MemFSConfig) -> Path:
    """
    Save configuration to file.

    Args:
        config: Configuration to save

    Returns:
        Path the configuration was written to
    """
    config_path = get_config_path()
    config_path.parent.mkdir(parents=True, exist_ok=True)

    with open(config_path, 'w') as f:
        json.dump(config.to_dict(), f, indent=2)

    logger.debug(f"Configuration saved to {config_path}")
    return config_path


def ensure_config_exists() -> Path:
    """
    Ensure configuration file exists, creating with defaults if not.

    Returns:
        Path to config file
    """
    config_path = get_config_path()

    if not config_path.exists():
        save_config(MemFSConfig())
        logger.info(f"Created default configuration at {config_path}")

    return config_path


def update_config(
    # File system settings
    default_file_mode: Optional[int] = None,
    default_dir_mode: Optional[int] = None,
    max_symlink_depth: Optional[int] = None,
    # Shell settings
    prompt: Optional[str] = None,
    history_file: Optional[str] = None,
    color: Optional[bool] = None,
    # CLI settings
    verbose: Optional[bool] = None,
) -> MemFSConfig:
    """
    Update configuration.

    Only updates provided values, leaving others unchanged.
    """
    config = load_config()

    if default_file_mode is not None:
        config.fs.default_file_mode = default_file_mode
    if default_dir_mode is not None:
        config.fs.default_dir_mode = default_dir_mode
    if max_symlink_depth is not None:
        config.fs.max_symlink_depth = max_symlink_depth

    if prompt is not None:
        config.shell.prompt = prompt
    if history_file is not None:
        config.shell.history_file = history_file
    if color is not None:
        config.shell.color = color

    if verbose is not None:
        config.cli.verbose = verbose

    save_config(config)
    return config
