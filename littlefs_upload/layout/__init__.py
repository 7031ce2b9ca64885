"""Flash layout resolution: device family, partition tables and menu options."""

from .family import detect_family
from .partitions import (
    find_partition_file,
    parse_number,
    parse_partition_table,
    select_filesystem_partition,
)
from .resolver import LayoutResolver, resolve_layout


__all__ = [
    "LayoutResolver",
    "detect_family",
    "find_partition_file",
    "parse_number",
    "parse_partition_table",
    "resolve_layout",
    "select_filesystem_partition",
]
