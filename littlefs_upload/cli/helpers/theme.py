"""Theme for consistent Rich styling across CLI commands."""

from rich.console import Console
from rich.table import Table
from rich.theme import Theme


class Colors:
    """Standardized color palette for CLI output."""

    # Status colors
    SUCCESS = "bold green"
    ERROR = "bold red"
    WARNING = "bold yellow"
    INFO = "bold blue"

    # UI element colors
    PRIMARY = "cyan"
    SECONDARY = "blue"
    MUTED = "dim"

    HEADER = "bold cyan"


class Icons:
    """Standardized icons for different message types."""

    SUCCESS = "✅"
    ERROR = "❌"
    WARNING = "⚠️"
    BULLET = "•"
    FLASH = "⚡"

    _TEXT_FALLBACKS = {
        "SUCCESS": "[OK]",
        "ERROR": "[ERROR]",
        "WARNING": "[WARN]",
        "BULLET": "-",
        "FLASH": "",
    }

    @classmethod
    def get_icon(cls, icon_name: str, icon_mode: str = "emoji") -> str:
        """Get icon based on the specified mode.

        Args:
            icon_name: Name of the icon (e.g., "SUCCESS", "ERROR")
            icon_mode: Icon mode - "emoji" or "text"

        Returns:
            The appropriate icon based on mode
        """
        if icon_mode == "emoji":
            return getattr(cls, icon_name, "")
        return cls._TEXT_FALLBACKS.get(icon_name, f"[{icon_name}]")


LITTLEFS_THEME = Theme(
    {
        "success": Colors.SUCCESS,
        "error": Colors.ERROR,
        "warning": Colors.WARNING,
        "info": Colors.INFO,
        "primary": Colors.PRIMARY,
        "secondary": Colors.SECONDARY,
        "muted": Colors.MUTED,
        "header": Colors.HEADER,
    }
)


class ThemedConsole:
    """Console wrapper with the littlefs-upload theme applied."""

    def __init__(self, icon_mode: str = "emoji") -> None:
        self.console = Console(theme=LITTLEFS_THEME)
        self.icon_mode = icon_mode

    def print_success(self, message: str) -> None:
        icon = Icons.get_icon("SUCCESS", self.icon_mode)
        self.console.print(f"{icon} {message}", style="success", markup=False)

    def print_error(self, message: str) -> None:
        icon = Icons.get_icon("ERROR", self.icon_mode)
        self.console.print(f"{icon} {message}", style="error", markup=False)

    def print_list_item(self, message: str, indent: int = 1) -> None:
        spacing = "  " * indent
        bullet = Icons.get_icon("BULLET", self.icon_mode)
        self.console.print(f"{spacing}{bullet} {message}", style="primary", markup=False)


class TableStyles:
    """Predefined table styling templates."""

    @staticmethod
    def create_basic_table(
        title: str = "", icon: str = "", icon_mode: str = "emoji"
    ) -> Table:
        """Create a basic styled table, optionally prefixing the title with an icon."""
        display_icon = Icons.get_icon(icon.upper(), icon_mode) if icon else ""
        full_title = f"{display_icon} {title}" if display_icon and title else title
        return Table(
            title=full_title,
            show_header=True,
            header_style=Colors.HEADER,
            border_style=Colors.SECONDARY,
        )

    @staticmethod
    def create_layout_table(icon_mode: str = "emoji") -> Table:
        """Create table for a resolved filesystem layout."""
        table = TableStyles.create_basic_table("Filesystem Layout", "FLASH", icon_mode)
        table.add_column("Field", style=Colors.PRIMARY, no_wrap=True)
        table.add_column("Value", style="bold")
        return table


def get_themed_console(icon_mode: str = "emoji") -> ThemedConsole:
    """Get a themed console instance."""
    return ThemedConsole(icon_mode=icon_mode)


__all__ = [
    "Colors",
    "Icons",
    "LITTLEFS_THEME",
    "TableStyles",
    "ThemedConsole",
    "get_themed_console",
]
