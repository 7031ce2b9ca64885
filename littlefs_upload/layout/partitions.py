"""ESP32 partition table lookup and parsing.

Partition tables are comma-separated text with ``#`` comments::

    # Name,   Type, SubType, Offset,   Size,     Flags
    nvs,      data, nvs,     0x9000,   0x5000,
    app0,     app,  ota_0,   ,         1280K,
    spiffs,   data, spiffs,  ,         0x160000,

Rows with an empty (or zero) offset are placed directly after the previous
row. The first row chains from a fixed floor that accounts for the bootloader
and the partition table itself.
"""

from collections.abc import Callable
from pathlib import Path

from littlefs_upload.config.models import DEFAULT_PARTITION_FLOOR
from littlefs_upload.core.errors import (
    FilesystemPartitionNotFoundError,
    PartitionFileNotFoundError,
)
from littlefs_upload.core.structlog_logger import get_struct_logger
from littlefs_upload.models.board import (
    BuildProperties,
    ConfigOption,
    selected_option_value,
)
from littlefs_upload.models.layout import PartitionEntry


logger = get_struct_logger(__name__)

FILESYSTEM_KINDS = ("SPIFFS", "LITTLEFS")
PARTITION_SCHEME_OPTION = "PartitionScheme"
LOCAL_PARTITION_FILE = "partitions.csv"

ProgressCallback = Callable[[str, str], None]


def parse_number(text: str) -> int:
    """Parse a partition table number.

    Accepts ``0x`` hexadecimal, plain decimal, and ``K``/``M`` suffixed
    values (case-insensitive, multiplying by 1024 and 1024*1024). Empty text
    is zero.

    Raises:
        ValueError: If the text is not a number in any of those notations
    """
    value = text.strip()
    if not value:
        return 0

    multiplier = 1
    suffix = value[-1].upper()
    if suffix == "K":
        multiplier = 1024
        value = value[:-1].strip()
    elif suffix == "M":
        multiplier = 1024 * 1024
        value = value[:-1].strip()

    if value.lower().startswith("0x"):
        number = int(value[2:], 16)
    else:
        number = int(value, 10)
    return number * multiplier


def parse_partition_table(
    text: str, floor: int = DEFAULT_PARTITION_FLOOR
) -> list[PartitionEntry]:
    """Parse partition table text into entries with effective offsets.

    Every parsed row advances the auto-offset chain, whatever its type.
    Rows with fewer than five fields are skipped; rows whose offset or size
    cannot be parsed are skipped with a warning and do not advance the chain.
    """
    entries: list[PartitionEntry] = []
    last_end = floor

    for line_number, raw_line in enumerate(text.splitlines(), start=1):
        line = raw_line.split("#", 1)[0]
        fields = line.split(",")
        if len(fields) < 5:
            continue

        try:
            offset = parse_number(fields[3])
            length = parse_number(fields[4])
        except ValueError:
            logger.warning(
                "partition_row_unparseable", line=line_number, row=raw_line.strip()
            )
            continue

        if not offset:
            offset = last_end
        last_end = offset + length

        entries.append(
            PartitionEntry(
                name=fields[0].strip(),
                part_type=fields[1].strip(),
                subtype=fields[2].strip(),
                offset=offset,
                length=length,
            )
        )

    return entries


def select_filesystem_partition(entries: list[PartitionEntry]) -> PartitionEntry:
    """Pick the SPIFFS/LittleFS entry; the last matching row wins.

    Raises:
        FilesystemPartitionNotFoundError: If no row matches
    """
    matches = [
        entry for entry in entries if entry.kind.strip().upper() in FILESYSTEM_KINDS
    ]
    if not matches:
        raise FilesystemPartitionNotFoundError(
            "Partition entry not found in csv file!"
        )
    if len(matches) > 1:
        logger.warning(
            "multiple_filesystem_partitions",
            names=[entry.name for entry in matches],
            using=matches[-1].name,
        )
    return matches[-1]


def find_partition_file(
    build_properties: BuildProperties,
    config_options: list[ConfigOption],
    sketch_path: Path | None,
    on_progress: ProgressCallback | None = None,
) -> Path:
    """Locate the partition table for the current ESP32 board.

    A ``partitions.csv`` in the sketch folder wins. Otherwise the selected
    partition scheme menu entry (or the board default ``build.partitions``)
    names a CSV under the platform's ``tools/partitions`` directory.

    Raises:
        PartitionFileNotFoundError: If no scheme can be determined or the
            resulting file does not exist
    """
    if sketch_path is not None:
        local_file = sketch_path / LOCAL_PARTITION_FILE
        if local_file.is_file():
            if on_progress:
                on_progress("Using partition", "partitions.csv in sketch folder")
            logger.info("partition_file_local", path=str(local_file))
            return local_file

    scheme = None
    selected = selected_option_value(config_options, PARTITION_SCHEME_OPTION)
    if selected is not None:
        scheme = build_properties.get(
            f"menu.{PARTITION_SCHEME_OPTION}.{selected}.build.partitions"
        )
        logger.debug("partition_scheme_selected", option=selected, scheme=scheme)
    if not scheme:
        scheme = build_properties.get("build.partitions")
    if not scheme:
        raise PartitionFileNotFoundError("No board partition scheme found")

    if on_progress:
        on_progress("Using partition", scheme)

    platform_path = build_properties.get("runtime.platform.path", "")
    partition_file = Path(platform_path) / "tools" / "partitions" / f"{scheme}.csv"
    if not partition_file.is_file():
        raise PartitionFileNotFoundError(
            f"Partition file not found: {partition_file}"
        )

    logger.info("partition_file_scheme", scheme=scheme, path=str(partition_file))
    return partition_file


__all__ = [
    "FILESYSTEM_KINDS",
    "find_partition_file",
    "parse_number",
    "parse_partition_table",
    "select_filesystem_partition",
]
