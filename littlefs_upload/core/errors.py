"""Error types raised while resolving, building and uploading filesystem images."""


class LittleFSUploadError(Exception):
    """Base class for all littlefs-upload errors."""


class ConfigError(LittleFSUploadError):
    """Raised when the user configuration cannot be loaded."""


class PreconditionMissingError(LittleFSUploadError):
    """Raised when board data or the sketch data folder is unavailable."""


class UnsupportedDeviceError(LittleFSUploadError):
    """Raised when the FQBN names a device family that is not supported."""


class PartitionFileNotFoundError(LittleFSUploadError):
    """Raised when no ESP32 partition table file can be resolved."""


class FilesystemPartitionNotFoundError(LittleFSUploadError):
    """Raised when the partition table has no SPIFFS/LittleFS entry."""


class InvalidLayoutError(LittleFSUploadError):
    """Raised when the resolved flash geometry is zero or inverted."""


class PortNotConfiguredError(LittleFSUploadError):
    """Raised when an upload needs a port and none is selected."""


class ProcessFailedError(LittleFSUploadError):
    """Raised when an external tool exits with a non-zero status."""

    def __init__(self, step: str, exit_code: int) -> None:
        self.step = step
        self.exit_code = exit_code
        super().__init__(f"{step} step failed, error code: {exit_code}")


__all__ = [
    "ConfigError",
    "FilesystemPartitionNotFoundError",
    "InvalidLayoutError",
    "LittleFSUploadError",
    "PartitionFileNotFoundError",
    "PortNotConfiguredError",
    "PreconditionMissingError",
    "ProcessFailedError",
    "UnsupportedDeviceError",
]
