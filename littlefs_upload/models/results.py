"""Result models for build and upload operations."""

from datetime import datetime
from pathlib import Path
from typing import Any

from pydantic import Field, model_validator

from littlefs_upload.core.structlog_logger import get_struct_logger
from littlefs_upload.models.base import LittleFSBaseModel
from littlefs_upload.models.layout import DeviceFamily, FlashLayout


logger = get_struct_logger(__name__)


class BaseResult(LittleFSBaseModel):
    """Base class for all operation results."""

    success: bool
    timestamp: datetime = Field(default_factory=datetime.now)
    messages: list[str] = Field(default_factory=list)
    errors: list[str] = Field(default_factory=list)

    @model_validator(mode="after")
    def validate_success_consistency(self) -> "BaseResult":
        """Ensure success flag is consistent with errors."""
        if self.errors and self.success:
            logger.warning("result_success_mismatch", has_errors=len(self.errors) > 0)
            self.success = False
        return self

    def add_message(self, message: str) -> None:
        """Add an informational message."""
        self.messages.append(message)
        logger.debug("result_message_added", message=message)

    def add_error(self, error: str) -> None:
        """Add an error message."""
        self.errors.append(error)
        logger.debug("result_error_added", error=error)
        self.success = False

    def is_success(self) -> bool:
        """Check if the operation was successful."""
        return self.success and not self.errors

    def get_summary(self) -> dict[str, Any]:
        """Get a summary of the result."""
        return {
            "success": self.success,
            "timestamp": self.timestamp.isoformat(),
            "message_count": len(self.messages),
            "error_count": len(self.errors),
            "errors": self.errors if self.errors else None,
        }


class ExecutionResult(BaseResult):
    """Outcome of running a command plan."""

    exit_code: int = 0
    failed_step: str | None = None
    steps_run: list[str] = Field(default_factory=list)


class OperationResult(BaseResult):
    """Outcome of a user-visible build or upload operation."""

    exit_code: int = 0
    family: DeviceFamily | None = None
    layout: FlashLayout | None = None
    image_file: Path | None = None
    partition_file: Path | None = None


__all__ = ["BaseResult", "ExecutionResult", "OperationResult"]
