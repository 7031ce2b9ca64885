"""Main CLI application for littlefs-upload."""

import logging
import sys

# Import version from package metadata directly to avoid circular imports
from importlib.metadata import distribution
from typing import Annotated

import typer

from littlefs_upload.cli.decorators.error_handling import print_stack_trace_if_verbose
from littlefs_upload.cli.helpers.output import print_error_message
from littlefs_upload.config.user_config import UserConfig, create_user_config
from littlefs_upload.core.errors import ConfigError
from littlefs_upload.core.logging import setup_logging


__all__ = ["app", "main", "__version__", "setup_logging"]


__version__ = distribution("littlefs-upload").version

logger = logging.getLogger(__name__)


class AppContext:
    """Application context for storing shared state."""

    def __init__(
        self,
        user_config: UserConfig,
        verbose: int = 0,
        log_file: str | None = None,
        config_file: str | None = None,
        no_emoji: bool = False,
    ):
        """Initialize AppContext.

        Args:
            user_config: Loaded user configuration
            verbose: Verbosity level
            log_file: Path to log file
            config_file: Path to configuration file
            no_emoji: Whether to disable emoji icons
        """
        self.user_config = user_config
        self.verbose = verbose
        self.log_file = log_file
        self.config_file = config_file
        self.no_emoji = no_emoji

    @property
    def icon_mode(self) -> str:
        return "text" if self.no_emoji else "emoji"


app = typer.Typer(
    name="littlefs-upload",
    help=f"""LittleFS Filesystem Uploader v{__version__}

Builds a LittleFS image from a sketch's data/ folder with mklittlefs and
uploads it to Arduino-Pico (RP2040/RP2350), ESP32 or ESP8266 boards.

Board data comes from arduino-cli output files:
  • Build image:   littlefs-upload build --properties props.txt --fqbn rp2040:rp2040:rpipico --sketch MySketch
  • Upload image:  littlefs-upload upload --context context.yaml --port /dev/ttyACM0
  • Show layout:   littlefs-upload layout --context context.yaml --format json""",
    no_args_is_help=True,
    context_settings={"help_option_names": ["-h", "--help"]},
)


@app.callback(invoke_without_command=True)
def main_callback(
    ctx: typer.Context,
    verbose: Annotated[
        int,
        typer.Option(
            "-v",
            "--verbose",
            count=True,
            help="Increase verbosity (-v=INFO, -vv=DEBUG)",
        ),
    ] = 0,
    debug: Annotated[
        bool,
        typer.Option("--debug", help="Enable debug logging (equivalent to -vv)"),
    ] = False,
    log_file: Annotated[
        str | None, typer.Option("--log-file", help="Log to file")
    ] = None,
    log_json: Annotated[
        bool,
        typer.Option("--log-json", help="Render console logs as JSON lines"),
    ] = False,
    config_file: Annotated[
        str | None,
        typer.Option("-c", "--config", help="Path to configuration file"),
    ] = None,
    no_emoji: Annotated[
        bool,
        typer.Option("--no-emoji", help="Disable emoji icons in output"),
    ] = False,
    version: Annotated[
        bool, typer.Option("--version", help="Show version and exit")
    ] = False,
) -> None:
    """LittleFS Filesystem Uploader."""
    if version:
        print(f"littlefs-upload v{__version__}")
        raise typer.Exit()

    if ctx.invoked_subcommand is None:
        print(ctx.get_help())
        raise typer.Exit()

    try:
        user_config = create_user_config(cli_config_path=config_file)
    except ConfigError as e:
        print_error_message(str(e), icon_mode="text" if no_emoji else "emoji")
        raise typer.Exit(1) from e

    app_context = AppContext(
        user_config=user_config,
        verbose=verbose,
        log_file=log_file,
        config_file=config_file,
        no_emoji=no_emoji,
    )
    ctx.obj = app_context

    # Set log level based on verbosity, debug flag, or config
    if debug:
        log_level = logging.DEBUG
    elif verbose == 1:
        log_level = logging.INFO
    elif verbose >= 2:
        log_level = logging.DEBUG
    else:
        log_level = user_config.get_log_level_int()

    setup_logging(level=log_level, log_file=log_file, json_logs=log_json)


def main() -> int:
    """Main CLI entry point."""
    exit_code = 0

    try:
        from littlefs_upload.cli.commands import register_all_commands

        register_all_commands(app)

        app()
        exit_code = 0

    except SystemExit as e:
        # Capture SystemExit code (normal CLI exit)
        exit_code = e.code if isinstance(e.code, int) else 0

    except Exception as e:
        logger.exception(f"Unexpected error: {e}")
        print_stack_trace_if_verbose()
        exit_code = 1

    return exit_code


if __name__ == "__main__":
    sys.exit(main())
