"""Adapter for reading YAML configuration files."""

import logging
from pathlib import Path
from typing import Any

import yaml

from littlefs_upload.core.errors import ConfigError


logger = logging.getLogger(__name__)


class ConfigFileAdapter:
    """Loads YAML configuration files."""

    def load_config(self, file_path: Path) -> dict[str, Any]:
        """Load a YAML file into a dictionary.

        Raises:
            ConfigError: If the file cannot be read or is not a YAML mapping
        """
        try:
            with file_path.open(encoding="utf-8") as f:
                data = yaml.safe_load(f)
        except (OSError, yaml.YAMLError) as e:
            raise ConfigError(f"Error loading config from {file_path}: {e}") from e

        if data is None:
            return {}
        if not isinstance(data, dict):
            raise ConfigError(f"Config file {file_path} must contain a mapping")
        return data

    def search_config_files(
        self, config_paths: list[Path]
    ) -> tuple[dict[str, Any], Path | None]:
        """Load the first existing file from ``config_paths``.

        Returns:
            Tuple of (config data, path it was loaded from); ({}, None) when
            none of the paths exist.
        """
        for path in config_paths:
            if path.is_file():
                logger.debug("Found config file: %s", path)
                return self.load_config(path), path
        return {}, None


def create_config_file_adapter() -> ConfigFileAdapter:
    """Factory function to create a ConfigFileAdapter."""
    return ConfigFileAdapter()
