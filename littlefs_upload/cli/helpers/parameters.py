"""Common CLI parameter definitions shared by every command."""

from pathlib import Path
from typing import Annotated

import typer


OUTPUT_FORMATS = ["table", "json"]


def complete_output_formats(incomplete: str) -> list[str]:
    """Tab completion for output formats."""
    return [fmt for fmt in OUTPUT_FORMATS if fmt.startswith(incomplete)]


ContextFileOption = Annotated[
    Path | None,
    typer.Option(
        "--context",
        help="YAML or JSON file with fqbn, sketch_path, board_details and port",
        exists=True,
        dir_okay=False,
    ),
]

PropertiesFileOption = Annotated[
    Path | None,
    typer.Option(
        "--properties",
        help="key=value build properties, as printed by 'arduino-cli compile --show-properties'",
        exists=True,
        dir_okay=False,
    ),
]

BoardDetailsFileOption = Annotated[
    Path | None,
    typer.Option(
        "--board-details",
        help="JSON from 'arduino-cli board details --format json'",
        exists=True,
        dir_okay=False,
    ),
]

FqbnOption = Annotated[
    str | None,
    typer.Option("--fqbn", "-b", help="Fully qualified board name, e.g. rp2040:rp2040:rpipico"),
]

SketchOption = Annotated[
    Path | None,
    typer.Option("--sketch", "-s", help="Sketch folder containing the data/ directory"),
]

PortOption = Annotated[
    str | None,
    typer.Option("--port", "-p", help="Serial port or network address to upload to"),
]

ProtocolOption = Annotated[
    str | None,
    typer.Option("--protocol", help="Port protocol: serial or network"),
]

OutputFormatOption = Annotated[
    str,
    typer.Option(
        "--format",
        "-f",
        help="Output format: table|json (default: table)",
        autocompletion=complete_output_formats,
    ),
]


__all__ = [
    "BoardDetailsFileOption",
    "ContextFileOption",
    "FqbnOption",
    "OutputFormatOption",
    "PortOption",
    "PropertiesFileOption",
    "ProtocolOption",
    "SketchOption",
]
