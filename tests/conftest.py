"""Core test fixtures for the littlefs-upload project."""

import json
import os
import stat
import sys
import textwrap
from collections.abc import Callable, Generator
from pathlib import Path
from typing import Any

import pytest
from typer.testing import CliRunner

from littlefs_upload.config.models import UserConfigData
from littlefs_upload.models.board import BoardDetails, HostContext, PortInfo
from littlefs_upload.pipeline.sink import SinkRegistry, SinkState


# ---- Sinks ----


class RecordingSink:
    """Output sink that keeps everything written to it."""

    def __init__(self, title: str, state: SinkState, auto_open: bool = True) -> None:
        self.title = title
        self.state = state
        self.auto_open = auto_open
        self.writes: list[tuple[str, str]] = []
        self.events: list[tuple[str, str]] = []
        self.closed = False

    def open(self) -> None:
        if self.auto_open:
            self.state.mark_open()

    def close(self) -> None:
        self.closed = True
        self.state.mark_closed()

    def write(self, text: str, stream_type: str = "stdout") -> None:
        self.writes.append((text, stream_type))

    def heading(self, text: str) -> None:
        self.events.append(("heading", text))

    def info(self, label: str, value: str) -> None:
        self.events.append(("info", f"{label}: {value}"))

    def error(self, text: str) -> None:
        self.events.append(("error", text))

    def success(self, text: str) -> None:
        self.events.append(("success", text))

    def output(self, stream_type: str | None = None) -> str:
        return "".join(
            text for text, stream in self.writes if stream_type in (None, stream)
        )

    def texts(self, kind: str) -> list[str]:
        return [text for event, text in self.events if event == kind]


class RecordingRegistry(SinkRegistry):
    """SinkRegistry creating RecordingSinks and remembering each one."""

    def __init__(self, auto_open: bool = True) -> None:
        self.created: list[RecordingSink] = []

        def factory(title: str, state: SinkState) -> RecordingSink:
            sink = RecordingSink(title, state, auto_open=auto_open)
            self.created.append(sink)
            return sink

        super().__init__(factory)

    @property
    def last(self) -> RecordingSink:
        return self.created[-1]


@pytest.fixture
def recording_sink() -> RecordingSink:
    """An already open RecordingSink."""
    state = SinkState(ready=True)
    return RecordingSink("LittleFS Upload", state)


@pytest.fixture
def sink_registry() -> RecordingRegistry:
    return RecordingRegistry()


@pytest.fixture
def fast_settings(clean_environment: None) -> UserConfigData:
    """Settings with a short sink readiness wait."""
    return UserConfigData(sink_ready_attempts=5, sink_ready_interval=0.01)


# ---- Environment isolation ----


@pytest.fixture
def clean_environment(
    monkeypatch: pytest.MonkeyPatch, tmp_path: Path
) -> Generator[None, None, None]:
    """Remove LITTLEFS_UPLOAD_* variables and isolate config file lookup."""
    for key in list(os.environ):
        if key.startswith("LITTLEFS_UPLOAD_"):
            monkeypatch.delenv(key)
    xdg_home = tmp_path / "xdg"
    xdg_home.mkdir()
    monkeypatch.setenv("XDG_CONFIG_HOME", str(xdg_home))
    workdir = tmp_path / "cwd"
    workdir.mkdir()
    monkeypatch.chdir(workdir)
    yield


@pytest.fixture
def cli_runner() -> CliRunner:
    """Return a Typer CLI test runner."""
    return CliRunner()


# ---- Fake external tools ----


def make_fake_tool(directory: Path, name: str, body: str) -> Path:
    """Write an executable Python script called ``name`` into ``directory``.

    The script body sees ``sys`` and ``json`` already imported.
    """
    directory.mkdir(parents=True, exist_ok=True)
    script = directory / name
    script.write_text(
        f"#!{sys.executable}\nimport json\nimport sys\n"
        + textwrap.dedent(body),
        encoding="utf-8",
    )
    script.chmod(script.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
    return script


# Records argv into <script dir>/<name>.calls as JSON lines
RECORD_ARGS = """
import pathlib
log = pathlib.Path(sys.argv[0]).with_suffix(".calls")
with log.open("a") as f:
    f.write(json.dumps(sys.argv[1:]) + "\\n")
"""

# mklittlefs stand-in: records its arguments and writes the image file
FAKE_MKLITTLEFS = RECORD_ARGS + """
pathlib.Path(sys.argv[-1]).write_bytes(b"littlefs")
print("building image")
"""


def recorded_calls(script: Path) -> list[list[str]]:
    log = script.with_suffix(".calls")
    if not log.exists():
        return []
    return [json.loads(line) for line in log.read_text().splitlines()]


@pytest.fixture
def fake_tool() -> Callable[[Path, str, str], Path]:
    return make_fake_tool


@pytest.fixture
def calls_of() -> Callable[[Path], list[list[str]]]:
    return recorded_calls


# ---- Board data ----

PICO_FLASH_OPTION = "2097152_1048576"
PICO_FS_START = 0x10100000
PICO_FS_END = 0x10200000


def pico_build_properties(platform_path: Path, tools_dir: Path) -> dict[str, str]:
    prefix = f"menu.flash.{PICO_FLASH_OPTION}.build."
    return {
        "runtime.platform.path": str(platform_path),
        "runtime.tools.pqt-mklittlefs.path": str(tools_dir),
        "runtime.tools.pqt-python3.path": str(tools_dir),
        "runtime.tools.pqt-picotool.path": str(tools_dir),
        "runtime.tools.pqt-openocd.path": str(tools_dir),
        prefix + "fs_start": str(PICO_FS_START),
        prefix + "fs_end": str(PICO_FS_END),
        "version": "3.9.2",
    }


def menu_option(name: str, selected: str) -> dict[str, Any]:
    """A config option in the arduino-cli board details shape."""
    return {
        "option": name,
        "option_label": name,
        "values": [
            {"value": "other", "value_label": "other"},
            {"value": selected, "value_label": selected, "selected": True},
        ],
    }


ESP32_PARTITIONS = """\
# Name,   Type, SubType, Offset,  Size, Flags
nvs,      data, nvs,     0x9000,  0x5000,
otadata,  data, ota,     0xe000,  0x2000,
app0,     app,  ota_0,   0x10000, 0x140000,
app1,     app,  ota_1,   0x150000,0x140000,
spiffs,   data, spiffs,  0x290000,0x160000,
"""


def esp32_build_properties(platform_path: Path, tools_dir: Path) -> dict[str, str]:
    return {
        "runtime.platform.path": str(platform_path),
        "runtime.tools.mklittlefs.path": str(tools_dir),
        "runtime.tools.python3.path": str(tools_dir),
        "runtime.tools.esptool_py.path": str(tools_dir),
        "build.partitions": "default",
        "build.mcu": "esp32s3",
        "build.flash_mode": "dio",
        "build.flash_freq": "80m",
        "upload.speed": "921600",
    }


@pytest.fixture
def tools_dir(tmp_path: Path) -> Path:
    directory = tmp_path / "tools"
    directory.mkdir()
    return directory


@pytest.fixture
def platform_path(tmp_path: Path) -> Path:
    directory = tmp_path / "platform"
    (directory / "tools" / "partitions").mkdir(parents=True)
    (directory / "tools" / "partitions" / "default.csv").write_text(ESP32_PARTITIONS)
    return directory


@pytest.fixture
def sketch_path(tmp_path: Path) -> Path:
    """Sketch folder with a populated data/ directory."""
    sketch = tmp_path / "MySketch"
    (sketch / "data").mkdir(parents=True)
    (sketch / "data" / "index.html").write_text("<html></html>")
    return sketch


@pytest.fixture
def make_pico_context(
    platform_path: Path, tools_dir: Path, sketch_path: Path
) -> Callable[..., HostContext]:
    def factory(
        port: str | None = "/dev/ttyACM0",
        protocol: str = "serial",
        upload_method: str | None = None,
        **extra_properties: str,
    ) -> HostContext:
        properties = pico_build_properties(platform_path, tools_dir)
        properties.update(extra_properties)
        options = [menu_option("flash", PICO_FLASH_OPTION)]
        if upload_method:
            options.append(menu_option("uploadmethod", upload_method))
        return HostContext(
            fqbn="rp2040:rp2040:rpipico",
            sketch_path=sketch_path,
            board_details=BoardDetails(
                build_properties=properties, config_options=options
            ),
            port=PortInfo(address=port, protocol=protocol) if port else None,
        )

    return factory


@pytest.fixture
def make_esp32_context(
    platform_path: Path, tools_dir: Path, sketch_path: Path
) -> Callable[..., HostContext]:
    def factory(port: str | None = "/dev/ttyUSB0", protocol: str = "serial") -> HostContext:
        return HostContext(
            fqbn="esp32:esp32:esp32s3",
            sketch_path=sketch_path,
            board_details=BoardDetails(
                build_properties=esp32_build_properties(platform_path, tools_dir)
            ),
            port=PortInfo(address=port, protocol=protocol) if port else None,
        )

    return factory
