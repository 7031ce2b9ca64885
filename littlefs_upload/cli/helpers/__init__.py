"""Helper functions for CLI commands."""

from littlefs_upload.cli.helpers.output import (
    print_error_message,
    print_list_item,
    print_result,
    print_success_message,
)


__all__ = [
    "print_error_message",
    "print_list_item",
    "print_result",
    "print_success_message",
]
