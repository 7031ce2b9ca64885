"""Device family and flash layout models."""

from enum import Enum

from pydantic import ConfigDict, model_validator

from littlefs_upload.models.base import LittleFSBaseModel


class DeviceKind(str, Enum):
    """Supported device families."""

    RP2040 = "rp2040"
    RP2350 = "rp2350"
    ESP32 = "esp32"
    ESP8266 = "esp8266"


class DeviceFamily(LittleFSBaseModel):
    """Device family of the selected board.

    ``variant`` only carries meaning for ESP32, where it is the chip model
    passed to esptool (``esp32``, ``esp32s3``, ``esp32c3``...).
    """

    model_config = ConfigDict(frozen=True)

    kind: DeviceKind
    variant: str = ""

    @property
    def is_pico(self) -> bool:
        return self.kind in (DeviceKind.RP2040, DeviceKind.RP2350)

    @property
    def description(self) -> str:
        if self.kind == DeviceKind.RP2040:
            return "RP2040 series"
        if self.kind == DeviceKind.RP2350:
            return "RP2350 series"
        if self.kind == DeviceKind.ESP32:
            return f"ESP32 series, model {self.variant}"
        if self.kind == DeviceKind.ESP8266:
            return "ESP8266 series"
        raise ValueError(f"Unhandled device kind: {self.kind}")


class PartitionEntry(LittleFSBaseModel):
    """One row of an ESP32 partition table with its effective offset."""

    name: str
    part_type: str = ""
    subtype: str
    offset: int
    length: int

    @property
    def kind(self) -> str:
        """Filesystem kind column (the subtype), e.g. ``spiffs`` or ``littlefs``."""
        return self.subtype

    @property
    def end(self) -> int:
        return self.offset + self.length


class FlashLayout(LittleFSBaseModel):
    """Flash region and geometry of the filesystem image."""

    model_config = ConfigDict(frozen=True)

    start: int
    end: int
    page: int
    block: int
    upload_speed: int = 115200

    @model_validator(mode="after")
    def validate_geometry(self) -> "FlashLayout":
        """Reject zero or inverted layouts."""
        if not self.start or not self.end or not self.page or not self.block:
            raise ValueError("start, end, page and block must all be non-zero")
        if self.end <= self.start:
            raise ValueError(
                f"end (0x{self.end:x}) must be greater than start (0x{self.start:x})"
            )
        return self

    @property
    def size(self) -> int:
        return self.end - self.start


__all__ = ["DeviceFamily", "DeviceKind", "FlashLayout", "PartitionEntry"]
