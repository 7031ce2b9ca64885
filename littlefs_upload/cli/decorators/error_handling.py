"""Error handling decorators for CLI commands."""

import logging
import sys
import traceback
from collections.abc import Callable
from functools import wraps
from typing import Any

import typer

from littlefs_upload.cli.helpers.output import print_error_message
from littlefs_upload.core.errors import (
    ConfigError,
    LittleFSUploadError,
    UnsupportedDeviceError,
)
from littlefs_upload.core.structlog_logger import get_struct_logger


__all__ = ["handle_errors", "print_stack_trace_if_verbose"]

logger = get_struct_logger(__name__)

# First matching type names the log event
ERROR_EVENTS: list[tuple[type[Exception], str]] = [
    (ConfigError, "configuration_error"),
    (UnsupportedDeviceError, "unsupported_device"),
    (LittleFSUploadError, "littlefs_upload_error"),
    (FileNotFoundError, "file_not_found"),
]


def _error_event(error: Exception) -> str:
    for error_type, event in ERROR_EVENTS:
        if isinstance(error, error_type):
            return event
    return "unexpected_error"


def _icon_mode(kwargs: dict[str, Any]) -> str:
    ctx = kwargs.get("ctx")
    app_ctx = getattr(ctx, "obj", None)
    return getattr(app_ctx, "icon_mode", "emoji")


def handle_errors(func: Callable[..., Any]) -> Callable[..., Any]:
    """Decorator to handle exceptions that escape a CLI command.

    Operation failures are reported through an OperationResult and never get
    here. Anything else (unreadable host files, bad options) is logged,
    printed once and turned into exit status 1.

    Args:
        func: The function to decorate

    Returns:
        Decorated function with error handling
    """

    @wraps(func)
    def wrapper(*args: Any, **kwargs: Any) -> Any:
        try:
            return func(*args, **kwargs)
        except typer.Exit:
            raise
        except Exception as e:
            event = _error_event(e)
            exc_info = event == "unexpected_error" and logger.isEnabledFor(
                logging.DEBUG
            )
            logger.error(event, error=str(e), exc_info=exc_info)
            print_error_message(str(e), icon_mode=_icon_mode(kwargs))
            print_stack_trace_if_verbose()
            raise typer.Exit(1) from e

    return wrapper


def print_stack_trace_if_verbose() -> None:
    """Print stack trace if verbose/debug mode is enabled."""
    if any(arg in sys.argv for arg in ["-v", "-vv", "--verbose", "--debug"]):
        print("\nStack trace:", file=sys.stderr)
        traceback.print_exc(file=sys.stderr)
