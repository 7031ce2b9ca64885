"""Protocol definitions for littlefs-upload."""

from .output_sink_protocol import OutputSinkProtocol


__all__ = ["OutputSinkProtocol"]
