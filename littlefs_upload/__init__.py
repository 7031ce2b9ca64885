"""littlefs-upload - build and upload LittleFS images for Arduino boards."""

from importlib.metadata import distribution

from .models import FlashLayout, OperationResult


__version__ = distribution("littlefs-upload").version

__all__ = [
    "FlashLayout",
    "OperationResult",
    "__version__",
]

# Import CLI after setting __version__ to avoid circular imports
from .cli import app, main


__all__ += ["app", "main"]
