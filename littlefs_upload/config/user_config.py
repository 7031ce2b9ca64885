"""
User configuration management for littlefs-upload.

This module handles user-specific configuration settings with multiple sources:
1. Environment variables (highest precedence)
2. Command-line provided config file
3. Config file in current directory
4. User's XDG config directory
5. Default values (lowest precedence)
"""

import logging
import os
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from littlefs_upload.adapters.config_file_adapter import (
    ConfigFileAdapter,
    create_config_file_adapter,
)
from littlefs_upload.config.models import UserConfigData
from littlefs_upload.core.errors import ConfigError


logger = logging.getLogger(__name__)

# Environment variable prefix
ENV_PREFIX = "LITTLEFS_UPLOAD_"


class UserConfig:
    """Manages user-specific configuration using Pydantic Settings."""

    def __init__(
        self,
        cli_config_path: str | Path | None = None,
        config_adapter: ConfigFileAdapter | None = None,
    ):
        """
        Initialize the user configuration handler.

        Args:
            cli_config_path: Optional config file path provided via CLI
            config_adapter: Optional adapter for file operations
        """
        self._adapter = config_adapter or create_config_file_adapter()
        self._config_sources: dict[str, str] = {}
        self._main_config_path: Path | None = None
        self._config_paths = self._generate_config_paths(cli_config_path)
        self._load_config()

    def _generate_config_paths(self, cli_config_path: str | Path | None) -> list[Path]:
        """Generate a list of config paths to search in order of precedence."""
        config_paths = []

        if cli_config_path:
            config_paths.append(Path(cli_config_path).expanduser().resolve())

        config_paths.extend(
            [Path.cwd() / "littlefs-upload.yaml", Path.cwd() / ".littlefs-upload.yml"]
        )

        xdg_config_home = os.environ.get("XDG_CONFIG_HOME")
        config_home = (
            Path(xdg_config_home) if xdg_config_home else Path.home() / ".config"
        )
        config_paths.extend(
            [
                config_home / "littlefs-upload" / "config.yaml",
                config_home / "littlefs-upload" / "config.yml",
            ]
        )

        return config_paths

    def _load_config(self) -> None:
        """Load configuration from config files and environment variables."""
        logger.debug("Config search paths: %s", [str(p) for p in self._config_paths])

        config_data, found_path = self._adapter.search_config_files(self._config_paths)

        try:
            self._config = UserConfigData(**config_data)
        except ValidationError as e:
            source = found_path or "environment"
            raise ConfigError(f"Invalid configuration in {source}: {e}") from e

        if found_path:
            logger.debug("Loaded user configuration from %s", found_path)
            self._main_config_path = found_path
            for key in config_data:
                self._config_sources[key] = found_path.name
        else:
            logger.debug("No user configuration files found, using defaults")
            self._main_config_path = self._config_paths[-1]

        for key in UserConfigData.model_fields:
            if f"{ENV_PREFIX}{key.upper()}" in os.environ:
                self._config_sources[key] = "environment"

    @property
    def config_file_path(self) -> Path | None:
        return self._main_config_path

    @property
    def data(self) -> UserConfigData:
        return self._config

    def get(self, key: str, default: Any = None) -> Any:
        """Get a configuration value by field name."""
        return getattr(self._config, key, default)

    def get_source(self, key: str) -> str:
        """Where a value came from: a file name, 'environment' or 'default'."""
        return self._config_sources.get(key, "default")

    def get_log_level_int(self) -> int:
        """Get the configured log level as a logging module constant."""
        return getattr(logging, self._config.log_level, logging.WARNING)  # type: ignore[no-any-return]


def create_user_config(
    cli_config_path: str | Path | None = None,
    config_adapter: ConfigFileAdapter | None = None,
) -> UserConfig:
    """Factory function to create a UserConfig instance."""
    return UserConfig(cli_config_path=cli_config_path, config_adapter=config_adapter)
