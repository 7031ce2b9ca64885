"""User configuration models."""

from typing import Any

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


# Bootloader (0x1000..0x8000) plus the partition table itself (0xc00)
DEFAULT_PARTITION_FLOOR = 0x8000 + 0xC00


class UserConfigData(BaseSettings):
    """User configuration data model with automatic environment variable support.

    Precedence order (highest to lowest):
    1. Environment variables (highest)
    2. Constructor arguments (file data)
    3. .env file
    4. Default values (lowest)
    """

    model_config = SettingsConfigDict(
        env_prefix="LITTLEFS_UPLOAD_",
        env_nested_delimiter="__",
        case_sensitive=False,
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: Any,
        env_settings: Any,
        dotenv_settings: Any,
        file_secret_settings: Any,
    ) -> tuple[Any, ...]:
        """Return sources in priority order: env > init > dotenv > file_secret."""
        return (
            env_settings,
            init_settings,
            dotenv_settings,
            file_secret_settings,
        )

    log_level: str = "WARNING"

    sink_title: str = Field(
        default="LittleFS Upload",
        description="Title of the output terminal reused across invocations",
    )
    sink_ready_attempts: int = Field(
        default=50,
        ge=1,
        description="Number of readiness polls before giving up on the output terminal",
    )
    sink_ready_interval: float = Field(
        default=0.1,
        gt=0,
        description="Seconds between readiness polls",
    )

    partition_floor: int = Field(
        default=DEFAULT_PARTITION_FLOOR,
        ge=0,
        description="Offset assumed before the first ESP32 partition table row",
    )
    default_upload_speed: int = Field(
        default=115200,
        gt=0,
        description="Upload baud rate when no build property or menu overrides it",
    )
    rp2350_convert_threshold: int = Field(
        default=3,
        ge=0,
        description="RP2350 images are converted to UF2 when the core major version exceeds this",
    )
    openocd_adapter_speed: int = Field(
        default=5000,
        gt=0,
        description="Adapter speed in kHz for OpenOCD uploads",
    )
    image_suffix: str = Field(
        default=".mklittlefs.bin",
        description="Suffix of the image written beside the sketch by 'build'",
    )

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        level = v.upper()
        if level not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"Invalid log level: {v}")
        return level

    @field_validator("partition_floor", mode="before")
    @classmethod
    def decode_partition_floor(cls, v: Any) -> Any:
        """Allow hexadecimal strings such as ``0x9000``."""
        if isinstance(v, str):
            return int(v.strip(), 0)
        return v


__all__ = ["DEFAULT_PARTITION_FLOOR", "UserConfigData"]
