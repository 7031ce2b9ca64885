"""Protocol definition for output sinks."""

from typing import Protocol, runtime_checkable


@runtime_checkable
class OutputSinkProtocol(Protocol):
    """Destination for streamed tool output and progress text.

    ``open`` and ``close`` are lifecycle callbacks invoked by whoever owns
    the sink; writes are only expected between the two.
    """

    title: str

    def open(self) -> None:
        """Mark the sink ready to accept writes."""
        ...

    def close(self) -> None:
        """Mark the sink gone."""
        ...

    def write(self, text: str, stream_type: str = "stdout") -> None:
        """Write a chunk of tool output; ``stream_type`` is "stdout" or "stderr"."""
        ...

    def heading(self, text: str) -> None:
        """Write a section heading such as "Building LittleFS filesystem"."""
        ...

    def info(self, label: str, value: str) -> None:
        """Write a labelled progress value."""
        ...

    def error(self, text: str) -> None:
        """Write an error report."""
        ...

    def success(self, text: str) -> None:
        """Write a completion message."""
        ...
