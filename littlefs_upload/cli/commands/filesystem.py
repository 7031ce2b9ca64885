"""Filesystem image commands: build, upload, partition-file and layout."""

import asyncio
import json
import logging
from pathlib import Path
from typing import Any

import typer
from rich.console import Console

from littlefs_upload.adapters.host_context import load_host_context
from littlefs_upload.cli.app import AppContext
from littlefs_upload.cli.decorators import handle_errors
from littlefs_upload.cli.helpers.output import print_result
from littlefs_upload.cli.helpers.parameters import (
    BoardDetailsFileOption,
    ContextFileOption,
    FqbnOption,
    OutputFormatOption,
    PortOption,
    PropertiesFileOption,
    ProtocolOption,
    SketchOption,
)
from littlefs_upload.cli.helpers.theme import TableStyles
from littlefs_upload.models.board import HostContext
from littlefs_upload.models.results import OperationResult
from littlefs_upload.pipeline.service import (
    FilesystemImageService,
    create_filesystem_image_service,
)


logger = logging.getLogger(__name__)


def _load_context(
    context_file: Path | None,
    properties_file: Path | None,
    board_details_file: Path | None,
    fqbn: str | None,
    sketch: Path | None,
    port: str | None,
    protocol: str | None,
) -> HostContext:
    return load_host_context(
        context_file=context_file,
        properties_file=properties_file,
        board_details_file=board_details_file,
        fqbn=fqbn,
        sketch_path=sketch,
        port=port,
        protocol=protocol,
    )


def _create_service(app_ctx: AppContext) -> FilesystemImageService:
    return create_filesystem_image_service(settings=app_ctx.user_config.data)


def shell_exit_status(exit_code: int) -> int:
    """Map a step exit code onto a shell status.

    A tool killed by a signal reports a negative code; shells report that
    as 128 plus the signal number.
    """
    if exit_code < 0:
        return 128 + -exit_code
    return exit_code


def _finish(result: OperationResult, success_message: str, icon_mode: str) -> None:
    """Print the final notification and exit with the operation's status."""
    print_result(result, success_message, icon_mode=icon_mode)
    if result.exit_code:
        raise typer.Exit(shell_exit_status(result.exit_code))


@handle_errors
def build_command(
    ctx: typer.Context,
    context_file: ContextFileOption = None,
    properties_file: PropertiesFileOption = None,
    board_details_file: BoardDetailsFileOption = None,
    fqbn: FqbnOption = None,
    sketch: SketchOption = None,
    port: PortOption = None,
    protocol: ProtocolOption = None,
) -> None:
    """Build the LittleFS image beside the sketch without uploading it."""
    app_ctx: AppContext = ctx.obj
    host_context = _load_context(
        context_file, properties_file, board_details_file, fqbn, sketch, port, protocol
    )

    result = asyncio.run(_create_service(app_ctx).build_image(host_context))
    _finish(result, "LittleFS build completed!", app_ctx.icon_mode)


@handle_errors
def upload_command(
    ctx: typer.Context,
    context_file: ContextFileOption = None,
    properties_file: PropertiesFileOption = None,
    board_details_file: BoardDetailsFileOption = None,
    fqbn: FqbnOption = None,
    sketch: SketchOption = None,
    port: PortOption = None,
    protocol: ProtocolOption = None,
) -> None:
    """Build the LittleFS image and upload it to the board."""
    app_ctx: AppContext = ctx.obj
    host_context = _load_context(
        context_file, properties_file, board_details_file, fqbn, sketch, port, protocol
    )

    result = asyncio.run(_create_service(app_ctx).upload_image(host_context))
    _finish(result, "LittleFS upload completed!", app_ctx.icon_mode)


@handle_errors
def partition_file_command(
    ctx: typer.Context,
    context_file: ContextFileOption = None,
    properties_file: PropertiesFileOption = None,
    board_details_file: BoardDetailsFileOption = None,
    fqbn: FqbnOption = None,
    sketch: SketchOption = None,
    port: PortOption = None,
    protocol: ProtocolOption = None,
) -> None:
    """Show the partition table file an ESP32 build uses."""
    app_ctx: AppContext = ctx.obj
    host_context = _load_context(
        context_file, properties_file, board_details_file, fqbn, sketch, port, protocol
    )

    result = asyncio.run(_create_service(app_ctx).show_partition_file(host_context))
    _finish(result, f"Partition scheme file: {result.partition_file}", app_ctx.icon_mode)


def _layout_data(result: OperationResult) -> dict[str, Any]:
    layout = result.layout
    family = result.family
    assert layout is not None and family is not None
    return {
        "family": family.kind.value,
        "variant": family.variant or None,
        "description": family.description,
        "start": layout.start,
        "end": layout.end,
        "size": layout.size,
        "page": layout.page,
        "block": layout.block,
        "upload_speed": layout.upload_speed,
        "partition_file": str(result.partition_file) if result.partition_file else None,
    }


def _print_layout_table(data: dict[str, Any], icon_mode: str) -> None:
    table = TableStyles.create_layout_table(icon_mode)
    table.add_row("Device", data["description"])
    table.add_row("Start", f"0x{data['start']:x}")
    table.add_row("End", f"0x{data['end']:x}")
    table.add_row("Size", f"{data['size']} bytes")
    table.add_row("Page", str(data["page"]))
    table.add_row("Block", str(data["block"]))
    table.add_row("Upload speed", str(data["upload_speed"]))
    if data["partition_file"]:
        table.add_row("Partitions", data["partition_file"])
    Console().print(table)


@handle_errors
def layout_command(
    ctx: typer.Context,
    context_file: ContextFileOption = None,
    properties_file: PropertiesFileOption = None,
    board_details_file: BoardDetailsFileOption = None,
    fqbn: FqbnOption = None,
    sketch: SketchOption = None,
    port: PortOption = None,
    protocol: ProtocolOption = None,
    output_format: OutputFormatOption = "table",
) -> None:
    """Show the resolved filesystem layout without building anything.

    Formats:
    - table: Rich table (default)
    - json: Layout as JSON
    """
    app_ctx: AppContext = ctx.obj
    host_context = _load_context(
        context_file, properties_file, board_details_file, fqbn, sketch, port, protocol
    )

    result = asyncio.run(_create_service(app_ctx).describe_layout(host_context))
    if not result.is_success():
        _finish(result, "", app_ctx.icon_mode)
        return

    data = _layout_data(result)
    if output_format.lower() == "json":
        print(json.dumps(data, indent=2))
    elif output_format.lower() == "table":
        _print_layout_table(data, app_ctx.icon_mode)
    else:
        print(f"Error: Unknown format '{output_format}'. Supported formats: table, json")
        raise typer.Exit(1)


def register_commands(app: typer.Typer) -> None:
    """Register filesystem image commands with the main app.

    Args:
        app: The main Typer app
    """
    app.command(name="build")(build_command)
    app.command(name="upload")(upload_command)
    app.command(name="partition-file")(partition_file_command)
    app.command(name="layout")(layout_command)
