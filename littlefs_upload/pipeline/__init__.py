"""Command planning, execution and the user-visible build/upload operations."""

from .executor import PipelineExecutor, SinkOutputMiddleware, execute_plan
from .planner import PlanContext, build_plan, needs_conversion
from .service import FilesystemImageService, create_filesystem_image_service
from .sink import (
    ConsoleSink,
    SinkRegistry,
    SinkState,
    create_console_sink,
    wait_for_sink,
)


__all__ = [
    "ConsoleSink",
    "FilesystemImageService",
    "PipelineExecutor",
    "PlanContext",
    "SinkOutputMiddleware",
    "SinkRegistry",
    "SinkState",
    "build_plan",
    "create_console_sink",
    "create_filesystem_image_service",
    "execute_plan",
    "needs_conversion",
    "wait_for_sink",
]
