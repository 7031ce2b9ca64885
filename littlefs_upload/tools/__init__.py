"""External tool lookup."""

from .locator import (
    ToolLocator,
    current_system,
    executable_name,
    locate,
    required_tools,
)


__all__ = [
    "ToolLocator",
    "current_system",
    "executable_name",
    "locate",
    "required_tools",
]
