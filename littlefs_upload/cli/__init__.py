"""Command-line interface for littlefs-upload."""

from littlefs_upload.cli.app import app, main


__all__ = ["app", "main"]
