"""Board metadata supplied by the host build system."""

from pathlib import Path
from typing import Any

from pydantic import Field, field_validator

from littlefs_upload.models.base import LittleFSBaseModel


BuildProperties = dict[str, str]


class ConfigOptionValue(LittleFSBaseModel):
    """One selectable value of a board menu option."""

    value: str
    value_label: str | None = None
    selected: bool = False


class ConfigOption(LittleFSBaseModel):
    """A board menu option, e.g. ``flash``, ``eesz`` or ``PartitionScheme``."""

    name: str = Field(alias="option")
    option_label: str | None = None
    values: list[ConfigOptionValue] = Field(default_factory=list)

    @property
    def selected_value(self) -> str | None:
        """Value of the selected entry, or None when nothing is selected."""
        for item in self.values:
            if item.selected:
                return item.value
        return None


class PortInfo(LittleFSBaseModel):
    """Port selected in the host, either a serial device or a network address."""

    address: str | None = None
    protocol: str = "serial"
    label: str | None = None
    properties: dict[str, str] = Field(default_factory=dict)

    @property
    def is_network(self) -> bool:
        return self.protocol == "network"


class BoardDetails(LittleFSBaseModel):
    """Build properties and menu options of the selected board."""

    build_properties: BuildProperties = Field(default_factory=dict)
    config_options: list[ConfigOption] = Field(default_factory=list)

    @field_validator("build_properties", mode="before")
    @classmethod
    def decode_build_properties(cls, v: Any) -> Any:
        """Accept arduino-cli's list of ``key=value`` strings as well as a mapping."""
        if isinstance(v, list):
            return parse_properties_lines(v)
        if isinstance(v, dict):
            return {
                str(key): "" if value is None else str(value)
                for key, value in v.items()
            }
        return v

    def selected_option(self, name: str) -> str | None:
        """Selected value of the named menu option, if any."""
        return selected_option_value(self.config_options, name)


class HostContext(LittleFSBaseModel):
    """Everything the host knows about the current sketch and board."""

    fqbn: str | None = None
    sketch_path: Path | None = None
    board_details: BoardDetails | None = None
    port: PortInfo | None = None

    @property
    def data_folder(self) -> Path | None:
        if self.sketch_path is None:
            return None
        return self.sketch_path / "data"


def selected_option_value(options: list[ConfigOption], name: str) -> str | None:
    """Selected value of the first option called ``name``, if any."""
    for option in options:
        if option.name == name:
            return option.selected_value
    return None


def parse_properties_lines(lines: list[str]) -> BuildProperties:
    """Parse ``key=value`` lines, keeping their order.

    Blank lines and ``#`` comments are skipped. Only the first ``=`` splits,
    so values may contain further ``=`` characters.
    """
    properties: BuildProperties = {}
    for raw_line in lines:
        line = raw_line.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue
        key, value = line.split("=", 1)
        properties[key.strip()] = value.strip()
    return properties


__all__ = [
    "BoardDetails",
    "BuildProperties",
    "ConfigOption",
    "ConfigOptionValue",
    "HostContext",
    "PortInfo",
    "parse_properties_lines",
    "selected_option_value",
]
