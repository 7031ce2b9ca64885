from .errors import (
    ConfigError,
    FilesystemPartitionNotFoundError,
    InvalidLayoutError,
    LittleFSUploadError,
    PartitionFileNotFoundError,
    PortNotConfiguredError,
    PreconditionMissingError,
    ProcessFailedError,
    UnsupportedDeviceError,
)
from .logging import get_logger, setup_logging


__all__ = [
    "setup_logging",
    "get_logger",
    "LittleFSUploadError",
    "ConfigError",
    "PreconditionMissingError",
    "UnsupportedDeviceError",
    "PartitionFileNotFoundError",
    "FilesystemPartitionNotFoundError",
    "InvalidLayoutError",
    "PortNotConfiguredError",
    "ProcessFailedError",
]
