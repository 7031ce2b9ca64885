"""Helper functions for CLI output formatting with Rich integration."""

from littlefs_upload.cli.helpers.theme import get_themed_console
from littlefs_upload.models.results import BaseResult


def print_success_message(message: str, icon_mode: str = "emoji") -> None:
    """Print a success message with a checkmark.

    Args:
        message: The message to print
        icon_mode: Icon mode - "emoji" or "text"
    """
    get_themed_console(icon_mode=icon_mode).print_success(message)


def print_error_message(message: str, icon_mode: str = "emoji") -> None:
    """Print an error message with an X symbol.

    Args:
        message: The message to print
        icon_mode: Icon mode - "emoji" or "text"
    """
    get_themed_console(icon_mode=icon_mode).print_error(message)


def print_list_item(item: str, indent: int = 1, icon_mode: str = "emoji") -> None:
    get_themed_console(icon_mode=icon_mode).print_list_item(item, indent)


def print_result(
    result: BaseResult, success_message: str, icon_mode: str = "emoji"
) -> None:
    """Print the final notification for an operation result.

    Args:
        result: The operation result object
        success_message: Headline printed when the operation succeeded
        icon_mode: Icon mode - "emoji" or "text"
    """
    if result.is_success():
        print_success_message(success_message, icon_mode=icon_mode)
    else:
        print_error_message("Operation failed", icon_mode=icon_mode)
        for error in result.errors:
            print_list_item(error, icon_mode=icon_mode)


__all__ = [
    "print_error_message",
    "print_list_item",
    "print_result",
    "print_success_message",
]
