"""Tests for device family detection and flash layout resolution."""

from pathlib import Path
from unittest.mock import Mock, patch

import pytest
from pydantic import ValidationError

from littlefs_upload.core.errors import (
    FilesystemPartitionNotFoundError,
    InvalidLayoutError,
    PartitionFileNotFoundError,
    UnsupportedDeviceError,
)
from littlefs_upload.layout.family import detect_family
from littlefs_upload.layout.resolver import LayoutResolver, resolve_layout
from littlefs_upload.models.board import ConfigOption
from littlefs_upload.models.layout import DeviceFamily, DeviceKind, FlashLayout


def _option(name: str, selected: str) -> ConfigOption:
    return ConfigOption.model_validate(
        {"option": name, "values": [{"value": selected, "selected": True}]}
    )


class TestDetectFamily:
    @pytest.mark.parametrize(
        "fqbn,properties,kind,variant",
        [
            ("rp2040:rp2040:rpipico", {}, DeviceKind.RP2040, ""),
            ("rp2040:rp2040:rpipico2", {"build.chip": "rp2350"}, DeviceKind.RP2350, ""),
            ("rp2040:rp2350:board", {}, DeviceKind.RP2350, ""),
            ("esp8266:esp8266:nodemcuv2", {}, DeviceKind.ESP8266, ""),
            ("esp32:esp32:esp32", {}, DeviceKind.ESP32, "esp32"),
            ("esp32:esp32:esp32c3", {"build.mcu": "esp32c3"}, DeviceKind.ESP32, "esp32c3"),
        ],
    )
    def test_families(self, fqbn, properties, kind, variant):
        family = detect_family(fqbn, properties)

        assert family.kind == kind
        assert family.variant == variant

    @pytest.mark.parametrize("fqbn", ["arduino:avr:uno", "", "esp32"])
    def test_unsupported(self, fqbn: str):
        with pytest.raises(UnsupportedDeviceError, match="RP2040/RP2350, ESP32, and ESP8266"):
            detect_family(fqbn, {})

    def test_descriptions(self):
        assert DeviceFamily(kind=DeviceKind.RP2040).description == "RP2040 series"
        assert (
            DeviceFamily(kind=DeviceKind.ESP32, variant="esp32s3").description
            == "ESP32 series, model esp32s3"
        )


class TestFlashLayout:
    def test_valid_layout(self):
        layout = FlashLayout(start=0x290000, end=0x3F0000, page=256, block=4096)

        assert layout.size == 0x160000
        assert layout.upload_speed == 115200

    @pytest.mark.parametrize(
        "start,end,page,block",
        [
            (0, 0x1000, 256, 4096),
            (0x1000, 0, 256, 4096),
            (0x1000, 0x2000, 0, 4096),
            (0x1000, 0x2000, 256, 0),
            (0x2000, 0x2000, 256, 4096),
            (0x3000, 0x2000, 256, 4096),
        ],
    )
    def test_invalid_layout_rejected(self, start, end, page, block):
        with pytest.raises(ValidationError):
            FlashLayout(start=start, end=end, page=page, block=block)


class TestLayoutResolverPico:
    def _properties(self, start: str, end: str) -> dict[str, str]:
        return {
            "menu.flash.2097152_1048576.build.fs_start": start,
            "menu.flash.2097152_1048576.build.fs_end": end,
        }

    def test_menu_layout(self):
        on_progress = Mock()
        resolver = LayoutResolver(on_progress=on_progress)

        layout = resolver.resolve(
            DeviceFamily(kind=DeviceKind.RP2040),
            self._properties("269484032", "270532608"),
            [_option("flash", "2097152_1048576")],
            None,
        )

        assert layout.start == 269484032
        assert layout.size == 1048576
        assert (layout.page, layout.block) == (256, 4096)
        assert layout.upload_speed == 115200
        on_progress.assert_called_once()
        assert on_progress.call_args.args[0] == "Filesystem"

    def test_baud_menu_overrides_speed(self):
        layout = resolve_layout(
            DeviceFamily(kind=DeviceKind.RP2350),
            self._properties("0x10100000", "0x10200000"),
            [_option("flash", "2097152_1048576"), _option("baud", "230400")],
            None,
        )

        assert layout.upload_speed == 230400

    def test_no_filesystem_selected(self):
        with pytest.raises(InvalidLayoutError, match="check flash size menu"):
            resolve_layout(
                DeviceFamily(kind=DeviceKind.RP2040),
                self._properties("0", "0"),
                [_option("flash", "2097152_1048576")],
                None,
            )

    def test_missing_flash_menu(self):
        with pytest.raises(InvalidLayoutError):
            resolve_layout(
                DeviceFamily(kind=DeviceKind.RP2040),
                self._properties("269484032", "270532608"),
                [],
                None,
            )


class TestLayoutResolverEsp8266:
    def test_menu_layout_with_geometry(self):
        prefix = "menu.eesz.4M2M.build."
        properties = {
            prefix + "spiffs_start": "0x200000",
            prefix + "spiffs_end": "0x3FA000",
            prefix + "spiffs_pagesize": "256",
            prefix + "spiffs_blocksize": "8192",
        }

        layout = resolve_layout(
            DeviceFamily(kind=DeviceKind.ESP8266),
            properties,
            [_option("eesz", "4M2M"), _option("baud", "921600")],
            None,
        )

        assert layout.start == 0x200000
        assert layout.end == 0x3FA000
        assert layout.block == 8192
        assert layout.upload_speed == 921600

    def test_zero_block_size_rejected(self):
        prefix = "menu.eesz.4M.build."
        properties = {
            prefix + "spiffs_start": "0x200000",
            prefix + "spiffs_end": "0x3FA000",
            prefix + "spiffs_pagesize": "256",
            prefix + "spiffs_blocksize": "0",
        }

        with pytest.raises(InvalidLayoutError):
            resolve_layout(
                DeviceFamily(kind=DeviceKind.ESP8266), properties, [_option("eesz", "4M")], None
            )


class TestLayoutResolverEsp32:
    def test_partition_table_layout(self, platform_path: Path):
        properties = {
            "runtime.platform.path": str(platform_path),
            "build.partitions": "default",
            "upload.speed": "921600",
        }
        resolver = LayoutResolver()

        layout = resolver.resolve(
            DeviceFamily(kind=DeviceKind.ESP32, variant="esp32"), properties, [], None
        )

        assert layout.start == 0x290000
        assert layout.end == 0x3F0000
        assert (layout.page, layout.block) == (256, 4096)
        assert layout.upload_speed == 921600
        assert resolver.partition_file == (
            platform_path / "tools" / "partitions" / "default.csv"
        )

    def test_upload_speed_menu_wins(self, platform_path: Path):
        properties = {
            "runtime.platform.path": str(platform_path),
            "build.partitions": "default",
            "upload.speed": "921600",
        }

        layout = resolve_layout(
            DeviceFamily(kind=DeviceKind.ESP32, variant="esp32"),
            properties,
            [_option("UploadSpeed", "460800")],
            None,
        )

        assert layout.upload_speed == 460800

    def test_table_without_filesystem(self, platform_path: Path):
        (platform_path / "tools" / "partitions" / "nofs.csv").write_text(
            "nvs, data, nvs, 0x9000, 0x5000,\napp0, app, ota_0, 0x10000, 0x300000,\n"
        )
        properties = {
            "runtime.platform.path": str(platform_path),
            "build.partitions": "nofs",
        }

        with pytest.raises(FilesystemPartitionNotFoundError):
            resolve_layout(
                DeviceFamily(kind=DeviceKind.ESP32, variant="esp32"), properties, [], None
            )

    def test_undecodable_comment_ignored(self, platform_path: Path, tmp_path: Path):
        sketch = tmp_path / "sketch"
        sketch.mkdir()
        (sketch / "partitions.csv").write_bytes(
            b"# caf\xe9 layout\n"
            b"nvs, data, nvs, 0x9000, 0x5000,\n"
            b"littlefs, data, spiffs, 0x200000, 0x100000,\n"
        )

        layout = resolve_layout(
            DeviceFamily(kind=DeviceKind.ESP32, variant="esp32"),
            {"runtime.platform.path": str(platform_path)},
            [],
            sketch,
        )

        assert (layout.start, layout.end) == (0x200000, 0x300000)

    def test_unreadable_partition_file(self, platform_path: Path):
        properties = {
            "runtime.platform.path": str(platform_path),
            "build.partitions": "default",
        }

        with patch.object(Path, "read_text", side_effect=PermissionError("denied")):
            with pytest.raises(PartitionFileNotFoundError, match="Unable to read"):
                resolve_layout(
                    DeviceFamily(kind=DeviceKind.ESP32, variant="esp32"),
                    properties,
                    [],
                    None,
                )
