"""CLI command modules."""

import typer

from littlefs_upload.cli.commands.filesystem import (
    register_commands as register_filesystem_commands,
)


def register_all_commands(app: typer.Typer) -> None:
    """Register all CLI commands with the main app.

    Args:
        app: The main Typer app
    """
    register_filesystem_commands(app)
