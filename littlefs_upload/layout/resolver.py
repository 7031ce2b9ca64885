"""Resolve the flash region and geometry of the filesystem image."""

from pathlib import Path

from littlefs_upload.config.models import DEFAULT_PARTITION_FLOOR
from littlefs_upload.core.errors import InvalidLayoutError, PartitionFileNotFoundError
from littlefs_upload.core.structlog_logger import get_struct_logger
from littlefs_upload.layout.partitions import (
    ProgressCallback,
    find_partition_file,
    parse_number,
    parse_partition_table,
    select_filesystem_partition,
)
from littlefs_upload.models.board import (
    BuildProperties,
    ConfigOption,
    selected_option_value,
)
from littlefs_upload.models.layout import DeviceFamily, DeviceKind, FlashLayout


logger = get_struct_logger(__name__)

DEFAULT_UPLOAD_SPEED = 115200
FIXED_PAGE_SIZE = 256
FIXED_BLOCK_SIZE = 4096

# Menu option holding the flash split, and the build fields it selects
FLASH_SIZE_OPTIONS: dict[DeviceKind, str] = {
    DeviceKind.RP2040: "flash",
    DeviceKind.RP2350: "flash",
    DeviceKind.ESP8266: "eesz",
}
PICO_FIELDS = ("fs_start", "fs_end")
ESP8266_FIELDS = ("spiffs_start", "spiffs_end", "spiffs_pagesize", "spiffs_blocksize")

BAUD_OPTIONS: dict[DeviceKind, tuple[str, ...]] = {
    DeviceKind.RP2040: ("baud",),
    DeviceKind.RP2350: ("baud",),
    DeviceKind.ESP8266: ("baud",),
    DeviceKind.ESP32: ("UploadSpeed", "baud"),
}


def _property_number(build_properties: BuildProperties, key: str) -> int:
    """Numeric build property; missing or malformed values count as zero."""
    value = build_properties.get(key, "")
    try:
        return parse_number(value)
    except ValueError:
        logger.warning("build_property_not_numeric", key=key, value=value)
        return 0


class LayoutResolver:
    """Works out the filesystem's FlashLayout for one device family.

    ESP32 layouts come from the partition table; RP2040/RP2350 and ESP8266
    layouts come from the selected flash-size menu entry. Both paths end in
    the same validation so no zero or inverted layout is ever returned.
    """

    def __init__(
        self,
        partition_floor: int = DEFAULT_PARTITION_FLOOR,
        default_upload_speed: int = DEFAULT_UPLOAD_SPEED,
        on_progress: ProgressCallback | None = None,
    ) -> None:
        self.partition_floor = partition_floor
        self.default_upload_speed = default_upload_speed
        self.on_progress = on_progress
        self.partition_file: Path | None = None

    def _report(self, label: str, value: str) -> None:
        if self.on_progress:
            self.on_progress(label, value)

    def resolve(
        self,
        family: DeviceFamily,
        build_properties: BuildProperties,
        config_options: list[ConfigOption],
        sketch_path: Path | None,
    ) -> FlashLayout:
        """Resolve the layout.

        Raises:
            PartitionFileNotFoundError: ESP32 partition table missing
            FilesystemPartitionNotFoundError: ESP32 table has no filesystem row
            InvalidLayoutError: Resolved values are zero or inverted
        """
        upload_speed = self.default_upload_speed

        if family.kind == DeviceKind.ESP32:
            start, end = self._resolve_partition_table(
                build_properties, config_options, sketch_path
            )
            page, block = FIXED_PAGE_SIZE, FIXED_BLOCK_SIZE
            upload_speed = (
                _property_number(build_properties, "upload.speed") or upload_speed
            )
        elif family.kind in (DeviceKind.RP2040, DeviceKind.RP2350, DeviceKind.ESP8266):
            start, end, page, block = self._resolve_flash_menu(
                family, build_properties, config_options
            )
        else:
            raise ValueError(f"Unhandled device kind: {family.kind}")

        upload_speed = self._selected_upload_speed(family, config_options, upload_speed)
        return self._validate(start, end, page, block, upload_speed)

    def _resolve_partition_table(
        self,
        build_properties: BuildProperties,
        config_options: list[ConfigOption],
        sketch_path: Path | None,
    ) -> tuple[int, int]:
        partition_file = find_partition_file(
            build_properties, config_options, sketch_path, self.on_progress
        )
        self.partition_file = partition_file
        self._report("Partitions", str(partition_file))

        try:
            # Comment text is discarded, so undecodable bytes are harmless
            text = partition_file.read_text(encoding="utf-8", errors="replace")
        except OSError as e:
            raise PartitionFileNotFoundError(
                f"Unable to read partition file {partition_file}: {e}"
            ) from e

        entries = parse_partition_table(text, floor=self.partition_floor)
        entry = select_filesystem_partition(entries)
        logger.info(
            "filesystem_partition_found",
            name=entry.name,
            offset=hex(entry.offset),
            length=hex(entry.length),
        )
        return entry.offset, entry.end

    def _resolve_flash_menu(
        self,
        family: DeviceFamily,
        build_properties: BuildProperties,
        config_options: list[ConfigOption],
    ) -> tuple[int, int, int, int]:
        option = FLASH_SIZE_OPTIONS[family.kind]
        selected = selected_option_value(config_options, option)
        if selected is None:
            logger.warning("flash_size_not_selected", option=option)
            return 0, 0, 0, 0

        prefix = f"menu.{option}.{selected}.build."
        if family.is_pico:
            start_key, end_key = PICO_FIELDS
            page, block = FIXED_PAGE_SIZE, FIXED_BLOCK_SIZE
        else:
            start_key, end_key, page_key, block_key = ESP8266_FIELDS
            page = _property_number(build_properties, prefix + page_key)
            block = _property_number(build_properties, prefix + block_key)

        start = _property_number(build_properties, prefix + start_key)
        end = _property_number(build_properties, prefix + end_key)
        logger.debug(
            "flash_menu_resolved",
            option=option,
            selected=selected,
            start=start,
            end=end,
            page=page,
            block=block,
        )
        return start, end, page, block

    def _selected_upload_speed(
        self,
        family: DeviceFamily,
        config_options: list[ConfigOption],
        upload_speed: int,
    ) -> int:
        for name in BAUD_OPTIONS[family.kind]:
            selected = selected_option_value(config_options, name)
            if selected is None:
                continue
            try:
                return parse_number(selected) or upload_speed
            except ValueError:
                logger.warning("baud_option_not_numeric", option=name, value=selected)
        return upload_speed

    def _validate(
        self, start: int, end: int, page: int, block: int, upload_speed: int
    ) -> FlashLayout:
        if not start or not end or not page or not block or end <= start:
            raise InvalidLayoutError(
                "No filesystem specified, check flash size menu"
            )
        layout = FlashLayout(
            start=start, end=end, page=page, block=block, upload_speed=upload_speed
        )

        self._report(
            "Filesystem",
            f"0x{layout.start:x}-0x{layout.end:x} ({layout.size} bytes)",
        )
        return layout


def resolve_layout(
    family: DeviceFamily,
    build_properties: BuildProperties,
    config_options: list[ConfigOption],
    sketch_path: Path | None,
    partition_floor: int = DEFAULT_PARTITION_FLOOR,
    default_upload_speed: int = DEFAULT_UPLOAD_SPEED,
    on_progress: ProgressCallback | None = None,
) -> FlashLayout:
    """Resolve the filesystem layout with a one-off LayoutResolver."""
    resolver = LayoutResolver(
        partition_floor=partition_floor,
        default_upload_speed=default_upload_speed,
        on_progress=on_progress,
    )
    return resolver.resolve(family, build_properties, config_options, sketch_path)


__all__ = ["LayoutResolver", "resolve_layout"]
