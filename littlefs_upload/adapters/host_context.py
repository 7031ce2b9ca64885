"""Load the host context (board, sketch and port) from arduino-cli output files.

Three file shapes are understood:

* a context file (YAML or JSON) with ``fqbn``, ``sketch_path``,
  ``board_details`` and ``port`` keys;
* a ``key=value`` properties dump, as printed by
  ``arduino-cli compile --show-properties``;
* the JSON printed by ``arduino-cli board details --format json``.

Values given directly (from the command line) override file contents.
"""

import logging
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from littlefs_upload.core.errors import ConfigError
from littlefs_upload.models.board import (
    BoardDetails,
    BuildProperties,
    HostContext,
    PortInfo,
    parse_properties_lines,
)


logger = logging.getLogger(__name__)


def _load_mapping(file_path: Path) -> dict[str, Any]:
    try:
        with file_path.open(encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except (OSError, yaml.YAMLError) as e:
        raise ConfigError(f"Unable to read {file_path}: {e}") from e
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"{file_path} must contain a mapping")
    return data


def load_properties_file(file_path: Path) -> BuildProperties:
    """Read a ``key=value`` build properties dump."""
    try:
        lines = file_path.read_text(encoding="utf-8").splitlines()
    except OSError as e:
        raise ConfigError(f"Unable to read {file_path}: {e}") from e
    properties = parse_properties_lines(lines)
    logger.debug("Loaded %d build properties from %s", len(properties), file_path)
    return properties


def load_host_context(
    context_file: Path | None = None,
    properties_file: Path | None = None,
    board_details_file: Path | None = None,
    fqbn: str | None = None,
    sketch_path: Path | None = None,
    port: str | None = None,
    protocol: str | None = None,
) -> HostContext:
    """Assemble a HostContext from files and explicit overrides.

    Properties from ``properties_file`` are layered over the board details'
    own build properties; the board details file supplies the menu options.

    Raises:
        ConfigError: If a file cannot be read or does not validate
    """
    data: dict[str, Any] = _load_mapping(context_file) if context_file else {}

    try:
        context = HostContext.model_validate(data)
    except ValidationError as e:
        raise ConfigError(f"Invalid host context in {context_file}: {e}") from e

    board_details = context.board_details
    if board_details_file is not None:
        details_data = _load_mapping(board_details_file)
        try:
            loaded = BoardDetails.model_validate(details_data)
        except ValidationError as e:
            raise ConfigError(
                f"Invalid board details in {board_details_file}: {e}"
            ) from e
        if board_details is not None:
            loaded = BoardDetails(
                build_properties={
                    **board_details.build_properties,
                    **loaded.build_properties,
                },
                config_options=loaded.config_options or board_details.config_options,
            )
        board_details = loaded
        # arduino-cli board details carries the fqbn of the board it describes
        if context.fqbn is None and isinstance(details_data.get("fqbn"), str):
            context.fqbn = details_data["fqbn"]

    if properties_file is not None:
        properties = load_properties_file(properties_file)
        if board_details is None:
            board_details = BoardDetails(build_properties=properties)
        else:
            board_details = BoardDetails(
                build_properties={**board_details.build_properties, **properties},
                config_options=board_details.config_options,
            )

    context.board_details = board_details

    if fqbn:
        context.fqbn = fqbn
    if sketch_path is not None:
        context.sketch_path = sketch_path
    if port or protocol:
        current = context.port or PortInfo()
        context.port = PortInfo(
            address=port or current.address,
            protocol=protocol or current.protocol,
            label=current.label,
            properties=current.properties,
        )

    logger.debug(
        "Host context loaded: fqbn=%s sketch=%s port=%s",
        context.fqbn,
        context.sketch_path,
        context.port.address if context.port else None,
    )
    return context


__all__ = ["load_host_context", "load_properties_file"]
