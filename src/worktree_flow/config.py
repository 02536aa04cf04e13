"""
Configuration management for worktree-flow.

Loads configuration from .worktreerc files in the following priority:
1. Path specified via --config flag
2. .worktreerc in current directory
3. .worktreerc.toml in current directory
4. ~/.config/worktree-flow/config.toml
5. ~/.worktreerc
"""

import logging
import os
from pathlib import Path
from typing import Optional

import toml
from pydantic import BaseModel, Field, ValidationError

from worktree_flow.core.exceptions import ConfigError

logger = logging.getLogger(__name__)

DEFAULT_BASE_BRANCHES = ["develop", "main", "stg"]


class WorktreeConfig(BaseModel):
    """Configuration for worktree placement."""

    base_directory: str = Field(
        default="../{project}-worktrees",
        description="Directory holding new worktrees (relative to the primary worktree)",
    )
    base_branch_candidates: list[str] = Field(
        default_factory=lambda: list(DEFAULT_BASE_BRANCHES),
        description="Base branches probed in priority order",
    )

    def worktrees_directory(self, primary_root: Path) -> Path:
        """Resolve the directory new worktrees are created under."""
        relative = self.base_directory.format(project=primary_root.name)
        return Path(os.path.normpath(primary_root / relative))


class CreationConfig(BaseModel):
    """Configuration for the create flow."""

    stash_message: str = Field(
        default="wtflow: auto-stash before creating {branch}",
        description="Stash message used when stashing changes before creating a worktree",
    )


class LoggingConfig(BaseModel):
    """Configuration for log output."""

    level: str = Field(default="WARNING", description="Default log level")


class Config(BaseModel):
    """Main configuration model for worktree-flow."""

    worktree: WorktreeConfig = Field(default_factory=WorktreeConfig)
    creation: CreationConfig = Field(default_factory=CreationConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)


def _read_config(path: Path) -> Config:
    data = toml.load(path)
    return Config(**data)


def load_config(config_path: Optional[str] = None) -> Config:
    """
    Load configuration from file or use defaults.

    Args:
        config_path: Optional explicit path to config file.

    Returns:
        Config instance with loaded or default values.

    Raises:
        ConfigError: If the explicit config file is missing or invalid.
    """
    if config_path:
        path = Path(config_path)
        try:
            return _read_config(path)
        except (OSError, toml.TomlDecodeError, ValidationError) as e:
            raise ConfigError(f"Could not load config file {path}: {e}") from e

    search_paths = [
        Path.cwd() / ".worktreerc",
        Path.cwd() / ".worktreerc.toml",
        Path.home() / ".config" / "worktree-flow" / "config.toml",
        Path.home() / ".worktreerc",
    ]

    for path in search_paths:
        if path.exists():
            try:
                config = _read_config(path)
            except (OSError, toml.TomlDecodeError, ValidationError) as e:
                logger.warning(f"Ignoring invalid config file {path}: {e}")
                continue
            logger.debug(f"Loaded config from {path}")
            return config

    return Config()


def save_config(config: Config, path: Path) -> None:
    """
    Save configuration to a TOML file.

    Args:
        config: Configuration to save.
        path: Path to save the config file.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w") as f:
        toml.dump(config.model_dump(), f)
