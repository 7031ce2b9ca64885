"""Tests for command plan construction."""

from pathlib import Path

import pytest

from littlefs_upload.core.errors import PortNotConfiguredError
from littlefs_upload.models.board import PortInfo
from littlefs_upload.models.layout import DeviceFamily, DeviceKind, FlashLayout
from littlefs_upload.models.plan import ToolReference
from littlefs_upload.pipeline.planner import PlanContext, build_plan, needs_conversion
from littlefs_upload.tools.locator import (
    ESPTOOL,
    MKLITTLEFS,
    OPENOCD,
    PICOTOOL,
    PLATFORM,
    PYTHON3,
)


RP2040 = DeviceFamily(kind=DeviceKind.RP2040)
RP2350 = DeviceFamily(kind=DeviceKind.RP2350)
ESP32 = DeviceFamily(kind=DeviceKind.ESP32, variant="esp32s3")
ESP8266 = DeviceFamily(kind=DeviceKind.ESP8266)

PICO_LAYOUT = FlashLayout(start=0x10100000, end=0x10200000, page=256, block=4096)
ESP32_LAYOUT = FlashLayout(
    start=0x290000, end=0x3F0000, page=256, block=4096, upload_speed=921600
)
ESP8266_LAYOUT = FlashLayout(
    start=0x200000, end=0x3FA000, page=256, block=8192, upload_speed=115200
)

IMAGE = Path("/tmp/image.littlefs.bin")
DATA = Path("/sketch/data")


def _tools(**paths: str) -> dict[str, ToolReference]:
    return {
        name: ToolReference(logical_name=name, resolved_path=path)
        for name, path in paths.items()
    }


PICO_TOOLS = _tools(
    **{
        MKLITTLEFS: "/pqt/mklittlefs",
        PYTHON3: "/pqt/python3",
        PICOTOOL: "/pqt/picotool",
        OPENOCD: "/pqt/openocd",
        PLATFORM: "/core",
    }
)
ESP_TOOLS = _tools(
    **{
        MKLITTLEFS: "/esp/mklittlefs",
        PYTHON3: "/esp/python3",
        PLATFORM: "/core",
    }
)


def _context(port: PortInfo | None = None, **kwargs) -> PlanContext:
    return PlanContext(image_file=IMAGE, port=port, system="linux", **kwargs)


SERIAL_PICO = PortInfo(address="/dev/ttyACM0", protocol="serial")
SERIAL_ESP = PortInfo(address="/dev/ttyUSB0", protocol="serial")
NETWORK = PortInfo(address="192.168.1.50", protocol="network")


class TestBuildStep:
    def test_build_only_plan(self):
        plan = build_plan(
            RP2040, PICO_LAYOUT, PICO_TOOLS, None, DATA, do_upload=False, context=_context()
        )

        assert plan.build_step.argv == [
            "/pqt/mklittlefs/mklittlefs",
            "-c",
            str(DATA),
            "-p",
            "256",
            "-b",
            "4096",
            "-s",
            "1048576",
            str(IMAGE),
        ]
        assert plan.conversion_step is None
        assert plan.upload_step is None
        assert [step.name for step in plan.steps] == ["Mklittlefs"]

    def test_build_only_needs_no_port(self):
        plan = build_plan(
            ESP32, ESP32_LAYOUT, ESP_TOOLS, None, DATA, do_upload=False, context=_context()
        )

        assert plan.upload_step is None

    def test_windows_suffix(self):
        context = PlanContext(image_file=IMAGE, system="windows")

        plan = build_plan(
            ESP8266, ESP8266_LAYOUT, ESP_TOOLS, None, DATA, do_upload=False, context=context
        )

        assert plan.build_step.executable.endswith("mklittlefs.exe")

    def test_unresolved_tool_uses_bare_name(self):
        plan = build_plan(
            ESP8266, ESP8266_LAYOUT, {}, None, DATA, do_upload=False, context=_context()
        )

        assert plan.build_step.executable == "mklittlefs"


class TestPicoUpload:
    def test_serial_uf2_upload(self):
        plan = build_plan(
            RP2040, PICO_LAYOUT, PICO_TOOLS, None, DATA, True, _context(SERIAL_PICO)
        )

        assert plan.build_step.arguments[-2:] == ["1048576", str(IMAGE)]
        assert plan.upload_step is not None
        assert plan.upload_step.argv == [
            "/pqt/python3/python3",
            "/core/tools/uf2conv.py",
            "--base",
            str(0x10100000),
            "--serial",
            "/dev/ttyACM0",
            "--family",
            "RP2040",
            str(IMAGE),
        ]

    def test_picotool_upload(self):
        plan = build_plan(
            RP2040, PICO_LAYOUT, PICO_TOOLS, "picotool", DATA, True, _context()
        )

        assert plan.upload_step.argv == [
            "/pqt/picotool/picotool",
            "load",
            str(IMAGE),
            "-o",
            "0x10100000",
            "-f",
            "-x",
        ]

    def test_openocd_upload(self):
        plan = build_plan(
            RP2350,
            PICO_LAYOUT,
            PICO_TOOLS,
            "picoprobe_cmsis_dap",
            DATA,
            True,
            _context(openocd_adapter_speed=4000),
        )

        assert plan.upload_step.argv == [
            "/pqt/openocd/bin/openocd",
            "-f",
            "interface/cmsis-dap.cfg",
            "-f",
            "target/rp2350.cfg",
            "-s",
            "/pqt/openocd/share/openocd/scripts",
            "-c",
            "adapter speed 4000",
            "-c",
            f"program {IMAGE} verify reset exit 0x10100000",
        ]

    def test_network_upload(self):
        plan = build_plan(RP2040, PICO_LAYOUT, PICO_TOOLS, None, DATA, True, _context(NETWORK))

        assert plan.upload_step.argv == [
            "/pqt/python3/python3",
            "/core/tools/espota.py",
            "-i",
            "192.168.1.50",
            "-p",
            "2040",
            "-s",
            "-f",
            str(IMAGE),
        ]

    def test_network_port_property(self):
        port = PortInfo(address="pico.local", protocol="network", properties={"port": "4000"})

        plan = build_plan(RP2040, PICO_LAYOUT, PICO_TOOLS, None, DATA, True, _context(port))

        assert plan.upload_step.arguments[3:5] == ["-p", "4000"]

    def test_serial_requires_port(self):
        with pytest.raises(PortNotConfiguredError):
            build_plan(RP2040, PICO_LAYOUT, PICO_TOOLS, None, DATA, True, _context())

    def test_picotool_needs_no_port(self):
        plan = build_plan(RP2040, PICO_LAYOUT, PICO_TOOLS, "picotool", DATA, True, _context())

        assert plan.upload_step is not None


class TestRp2350Conversion:
    @pytest.mark.parametrize(
        "family,version,expected",
        [
            (RP2350, "4.0.1", True),
            (RP2350, "3.9.9", False),
            (RP2350, None, False),
            (RP2350, "dev", False),
            (RP2040, "4.0.1", False),
        ],
    )
    def test_needs_conversion(self, family, version, expected):
        assert needs_conversion(family, version, threshold=3) is expected

    def test_conversion_step_and_uf2_upload(self):
        plan = build_plan(
            RP2350,
            PICO_LAYOUT,
            PICO_TOOLS,
            "picotool",
            DATA,
            True,
            _context(toolchain_version="4.2.0"),
        )
        uf2 = Path(f"{IMAGE}.uf2")

        assert plan.conversion_step is not None
        assert plan.conversion_step.argv == [
            "/pqt/python3/python3",
            "/core/tools/uf2conv.py",
            "--convert",
            "--base",
            str(0x10100000),
            "--family",
            "RP2350_ARM_S",
            "--output",
            str(uf2),
            str(IMAGE),
        ]
        assert plan.upload_image == uf2
        assert plan.upload_step.argv == ["/pqt/picotool/picotool", "load", str(uf2), "-f", "-x"]
        assert [step.name for step in plan.steps] == ["Mklittlefs", "Conversion", "Upload"]

    def test_openocd_programs_raw_image(self):
        plan = build_plan(
            RP2350,
            PICO_LAYOUT,
            PICO_TOOLS,
            "picodebug",
            DATA,
            True,
            _context(toolchain_version="4.2.0"),
        )

        assert plan.upload_step.arguments[-1] == (
            f"program {IMAGE} verify reset exit 0x10100000"
        )

    def test_no_conversion_when_building_only(self):
        plan = build_plan(
            RP2350, PICO_LAYOUT, PICO_TOOLS, None, DATA, False, _context(toolchain_version="5.0")
        )

        assert plan.conversion_step is None


class TestEsp32Upload:
    def _esptool_args(self, leading: list[str]) -> list[str]:
        return [
            *leading,
            "--chip",
            "esp32s3",
            "--port",
            "/dev/ttyUSB0",
            "--baud",
            "921600",
            "--before",
            "default_reset",
            "--after",
            "hard_reset",
            "write_flash",
            "-z",
            "--flash_mode",
            "dio",
            "--flash_freq",
            "80m",
            "--flash_size",
            "detect",
            "0x290000",
            str(IMAGE),
        ]

    def test_linux_prefers_python_script(self, tmp_path: Path):
        (tmp_path / "esptool.py").write_text("")
        tools = {**ESP_TOOLS, **_tools(**{ESPTOOL: str(tmp_path)})}

        plan = build_plan(
            ESP32,
            ESP32_LAYOUT,
            tools,
            None,
            DATA,
            True,
            _context(SERIAL_ESP, flash_mode="dio", flash_freq="80m"),
        )

        assert plan.upload_step.argv == [
            "/esp/python3/python3",
            *self._esptool_args([str(tmp_path / "esptool.py")]),
        ]

    def test_linux_falls_back_to_binary(self, tmp_path: Path):
        tools = {**ESP_TOOLS, **_tools(**{ESPTOOL: str(tmp_path)})}

        plan = build_plan(
            ESP32,
            ESP32_LAYOUT,
            tools,
            None,
            DATA,
            True,
            _context(SERIAL_ESP, flash_mode="dio", flash_freq="80m"),
        )

        assert plan.upload_step.argv == [
            str(tmp_path / "esptool"),
            *self._esptool_args([]),
        ]

    def test_linux_unresolved_uses_console_script(self):
        plan = build_plan(
            ESP32,
            ESP32_LAYOUT,
            ESP_TOOLS,
            None,
            DATA,
            True,
            _context(SERIAL_ESP, flash_mode="dio", flash_freq="80m"),
        )

        assert plan.upload_step.executable == "esptool.py"

    @pytest.mark.parametrize(
        "system,executable",
        [("windows", "/esptool/esptool.exe"), ("darwin", "/esptool/esptool")],
    )
    def test_compiled_binary_on_windows_and_macos(self, system: str, executable: str):
        tools = {**ESP_TOOLS, **_tools(**{ESPTOOL: "/esptool"})}
        context = PlanContext(
            image_file=IMAGE,
            port=SERIAL_ESP,
            system=system,
            flash_mode="dio",
            flash_freq="80m",
        )

        plan = build_plan(ESP32, ESP32_LAYOUT, tools, None, DATA, True, context)

        assert Path(plan.upload_step.executable) == Path(executable)
        assert plan.upload_step.arguments == self._esptool_args([])

    def test_flash_settings_default_to_keep(self):
        context = PlanContext.from_build_properties(IMAGE, {}, port=SERIAL_ESP)

        assert (context.flash_mode, context.flash_freq) == ("keep", "keep")

    def test_network_upload(self):
        plan = build_plan(ESP32, ESP32_LAYOUT, ESP_TOOLS, None, DATA, True, _context(NETWORK))

        assert plan.upload_step.argv == [
            "/esp/python3/python3",
            "/core/tools/espota.py",
            "-r",
            "-i",
            "192.168.1.50",
            "-p",
            "3232",
            "-f",
            str(IMAGE),
            "-s",
        ]

    def test_network_upload_windows_binary(self):
        context = PlanContext(image_file=IMAGE, port=NETWORK, system="windows")

        plan = build_plan(ESP32, ESP32_LAYOUT, ESP_TOOLS, None, DATA, True, context)

        assert Path(plan.upload_step.executable) == Path("/core/tools/espota.exe")
        assert plan.upload_step.arguments[0] == "-r"

    def test_requires_port(self):
        with pytest.raises(PortNotConfiguredError):
            build_plan(ESP32, ESP32_LAYOUT, ESP_TOOLS, None, DATA, True, _context())


class TestEsp8266Upload:
    def test_serial_upload(self):
        plan = build_plan(
            ESP8266, ESP8266_LAYOUT, ESP_TOOLS, None, DATA, True, _context(SERIAL_ESP)
        )

        assert plan.build_step.arguments[4:6] == ["-b", "8192"]
        assert plan.upload_step.argv == [
            "/esp/python3/python3",
            "/core/tools/upload.py",
            "--chip",
            "esp8266",
            "--port",
            "/dev/ttyUSB0",
            "--baud",
            "115200",
            "write_flash",
            "0x200000",
            str(IMAGE),
        ]

    def test_network_upload(self):
        plan = build_plan(
            ESP8266, ESP8266_LAYOUT, ESP_TOOLS, None, DATA, True, _context(NETWORK)
        )

        assert plan.upload_step.argv == [
            "/esp/python3/python3",
            "/core/tools/espota.py",
            "-i",
            "192.168.1.50",
            "-p",
            "8266",
            "-s",
            "-f",
            str(IMAGE),
        ]

    def test_port_without_address_rejected(self):
        with pytest.raises(PortNotConfiguredError):
            build_plan(
                ESP8266,
                ESP8266_LAYOUT,
                ESP_TOOLS,
                None,
                DATA,
                True,
                _context(PortInfo(protocol="serial")),
            )
