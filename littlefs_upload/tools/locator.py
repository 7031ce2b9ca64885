"""Locate external tools through the board's build properties.

Arduino cores publish the install directory of each tool under
``runtime.tools.<name>...`` keys. The keys carry version suffixes that vary
between releases, so tools are found by prefix: the first key in the
mapping's order that starts with the prefix wins.
"""

import platform
from collections.abc import Iterable

from littlefs_upload.core.structlog_logger import get_struct_logger
from littlefs_upload.models.board import BuildProperties
from littlefs_upload.models.layout import DeviceFamily, DeviceKind
from littlefs_upload.models.plan import ToolReference


logger = get_struct_logger(__name__)

# Logical tool names
MKLITTLEFS = "mklittlefs"
PYTHON3 = "python3"
PICOTOOL = "picotool"
OPENOCD = "openocd"
ESPTOOL = "esptool"
PLATFORM = "platform"

PLATFORM_PATH_KEY = "runtime.platform.path"

TOOL_PREFIXES: dict[DeviceKind, dict[str, str]] = {
    DeviceKind.RP2040: {
        MKLITTLEFS: "runtime.tools.pqt-mklittlefs",
        PYTHON3: "runtime.tools.pqt-python3",
        PICOTOOL: "runtime.tools.pqt-picotool",
        OPENOCD: "runtime.tools.pqt-openocd",
        PLATFORM: PLATFORM_PATH_KEY,
    },
    DeviceKind.RP2350: {
        MKLITTLEFS: "runtime.tools.pqt-mklittlefs",
        PYTHON3: "runtime.tools.pqt-python3",
        PICOTOOL: "runtime.tools.pqt-picotool",
        OPENOCD: "runtime.tools.pqt-openocd",
        PLATFORM: PLATFORM_PATH_KEY,
    },
    DeviceKind.ESP32: {
        MKLITTLEFS: "runtime.tools.mklittlefs.path",
        PYTHON3: "runtime.tools.python3.path",
        ESPTOOL: "runtime.tools.esptool_py.path",
        PLATFORM: PLATFORM_PATH_KEY,
    },
    DeviceKind.ESP8266: {
        MKLITTLEFS: "runtime.tools.mklittlefs",
        PYTHON3: "runtime.tools.python3",
        PLATFORM: PLATFORM_PATH_KEY,
    },
}


def current_system() -> str:
    """Host platform name: ``windows``, ``darwin`` or ``linux``."""
    return platform.system().lower()


def locate(build_properties: BuildProperties, key_prefix: str) -> str | None:
    """Value of the first key starting with ``key_prefix``, or None."""
    for key, value in build_properties.items():
        if key.startswith(key_prefix) and value is not None:
            return value
    return None


def executable_name(tool: str, system: str) -> str:
    """Platform file name of ``tool``.

    Compiled tools take ``.exe`` on Windows. esptool ships compiled on
    Windows and macOS but as a Python script on Linux.
    """
    if tool == ESPTOOL:
        if system == "windows":
            return "esptool.exe"
        if system == "darwin":
            return "esptool"
        return "esptool.py"
    if system == "windows":
        return f"{tool}.exe"
    return tool


def required_tools(
    family: DeviceFamily,
    upload_method: str | None,
    network: bool,
    do_upload: bool,
    convert: bool = False,
) -> list[str]:
    """Logical tools referenced by the pipeline for this invocation."""
    tools = [MKLITTLEFS]
    if not do_upload:
        return tools

    if family.is_pico:
        method = classify_pico_method(upload_method)
        if method == "picotool":
            tools.append(PICOTOOL)
        elif method == "openocd":
            tools.append(OPENOCD)
        else:
            tools.extend([PYTHON3, PLATFORM])
        if convert and PYTHON3 not in tools:
            tools.extend([PYTHON3, PLATFORM])
    elif family.kind == DeviceKind.ESP32:
        tools.extend([PYTHON3, PLATFORM] if network else [PYTHON3, ESPTOOL])
    elif family.kind == DeviceKind.ESP8266:
        tools.extend([PYTHON3, PLATFORM])
    else:
        raise ValueError(f"Unhandled device kind: {family.kind}")
    return tools


def classify_pico_method(upload_method: str | None) -> str:
    """Map an arduino-pico ``uploadmethod`` menu value onto an upload route."""
    method = (upload_method or "default").lower()
    if method == "picotool":
        return "picotool"
    if method.startswith("picoprobe") or method in ("picodebug", "cmsis-dap"):
        return "openocd"
    return "default"


class ToolLocator:
    """Resolves logical tool names for one device family."""

    def __init__(self, family: DeviceFamily, build_properties: BuildProperties):
        self.family = family
        self.build_properties = build_properties
        self.prefixes = TOOL_PREFIXES[family.kind]

    def locate_tool(self, name: str) -> ToolReference:
        """Locate one tool; unresolved tools are returned without a path."""
        prefix = self.prefixes.get(name)
        resolved = locate(self.build_properties, prefix) if prefix else None
        if resolved:
            logger.debug("tool_located", tool=name, prefix=prefix, path=resolved)
        else:
            logger.warning("tool_not_found", tool=name, prefix=prefix)
        return ToolReference(logical_name=name, resolved_path=resolved)

    def locate_all(self, names: Iterable[str]) -> dict[str, ToolReference]:
        return {name: self.locate_tool(name) for name in names}


__all__ = [
    "ESPTOOL",
    "MKLITTLEFS",
    "OPENOCD",
    "PICOTOOL",
    "PLATFORM",
    "PYTHON3",
    "TOOL_PREFIXES",
    "ToolLocator",
    "classify_pico_method",
    "current_system",
    "executable_name",
    "locate",
    "required_tools",
]
