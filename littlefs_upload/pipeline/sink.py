"""Output sink lifecycle: readiness state, reuse by title and the readiness wait."""

import asyncio
from collections.abc import Callable
from dataclasses import dataclass

from rich.console import Console
from rich.rule import Rule
from rich.text import Text

from littlefs_upload.core.structlog_logger import get_struct_logger
from littlefs_upload.protocols import OutputSinkProtocol


logger = get_struct_logger(__name__)

DEFAULT_READY_ATTEMPTS = 50
DEFAULT_READY_INTERVAL = 0.1


@dataclass
class SinkState:
    """Readiness of one sink, toggled by its open/close callbacks."""

    ready: bool = False

    def mark_open(self) -> None:
        self.ready = True

    def mark_closed(self) -> None:
        self.ready = False


SinkFactory = Callable[[str, SinkState], OutputSinkProtocol]


STDERR_STYLE = "red"
HEADING_STYLE = "bold cyan"
LABEL_STYLE = "bold blue"
ERROR_STYLE = "bold red"
SUCCESS_STYLE = "bold green"


class ConsoleSink:
    """Output sink rendering through a Rich console.

    Tool output is written verbatim; stderr chunks are styled red.
    """

    def __init__(
        self, title: str, state: SinkState, console: Console | None = None
    ) -> None:
        self.title = title
        self.state = state
        self.console = console or Console(highlight=False)

    def open(self) -> None:
        self.console.print(Rule(self.title, style=HEADING_STYLE))
        self.state.mark_open()

    def close(self) -> None:
        self.state.mark_closed()

    def write(self, text: str, stream_type: str = "stdout") -> None:
        if stream_type != "stderr":
            # Rich drops carriage returns, which progress bars rely on
            self.console.file.write(text)
            self.console.file.flush()
            return
        self.console.print(Text(text, style=STDERR_STYLE), end="", soft_wrap=True)

    def heading(self, text: str) -> None:
        self.console.print(Text(text, style=HEADING_STYLE))

    def info(self, label: str, value: str) -> None:
        line = Text.assemble((f"{label}: ", LABEL_STYLE), value)
        self.console.print(line)

    def error(self, text: str) -> None:
        self.console.print(Text(f"ERROR: {text}", style=ERROR_STYLE))

    def success(self, text: str) -> None:
        self.console.print(Text(text, style=SUCCESS_STYLE))


def create_console_sink(title: str, state: SinkState) -> ConsoleSink:
    """Default SinkFactory: a ConsoleSink on stdout."""
    return ConsoleSink(title, state)


class SinkRegistry:
    """Keeps one sink per title so repeated invocations share a terminal."""

    def __init__(self, factory: SinkFactory) -> None:
        self._factory = factory
        self._sinks: dict[str, tuple[OutputSinkProtocol, SinkState]] = {}

    def show(self, title: str) -> tuple[OutputSinkProtocol, SinkState]:
        """Return the live sink for ``title``, creating one if needed.

        A new sink is opened on the next event loop iteration, the way a
        host terminal signals readiness after it is created. Must be called
        from a running event loop.
        """
        existing = self._sinks.get(title)
        if existing is not None and existing[1].ready:
            logger.debug("sink_reused", title=title)
            return existing

        state = SinkState()
        sink = self._factory(title, state)
        self._sinks[title] = (sink, state)
        asyncio.get_running_loop().call_soon(sink.open)
        logger.debug("sink_created", title=title)
        return sink, state

    def close_all(self) -> None:
        for sink, _state in self._sinks.values():
            sink.close()
        self._sinks.clear()


async def wait_for_sink(
    state: SinkState,
    attempts: int = DEFAULT_READY_ATTEMPTS,
    interval: float = DEFAULT_READY_INTERVAL,
) -> bool:
    """Poll until the sink is ready; False once ``attempts`` polls have passed."""
    attempt = 0
    while not state.ready:
        if attempt >= attempts:
            logger.warning("sink_not_ready", attempts=attempts, interval=interval)
            return False
        attempt += 1
        await asyncio.sleep(interval)
    return True


__all__ = [
    "ConsoleSink",
    "OutputSinkProtocol",
    "SinkFactory",
    "SinkRegistry",
    "SinkState",
    "create_console_sink",
    "wait_for_sink",
]
