"""Models package for littlefs-upload."""

from littlefs_upload.models.base import LittleFSBaseModel
from littlefs_upload.models.board import (
    BoardDetails,
    BuildProperties,
    ConfigOption,
    ConfigOptionValue,
    HostContext,
    PortInfo,
)
from littlefs_upload.models.layout import (
    DeviceFamily,
    DeviceKind,
    FlashLayout,
    PartitionEntry,
)
from littlefs_upload.models.plan import CommandPlan, ProcessSpec, ToolReference
from littlefs_upload.models.results import BaseResult, ExecutionResult, OperationResult
from littlefs_upload.models.session import InvocationSession, InvocationState


__all__ = [
    "LittleFSBaseModel",
    "BaseResult",
    "BoardDetails",
    "BuildProperties",
    "CommandPlan",
    "ConfigOption",
    "ConfigOptionValue",
    "DeviceFamily",
    "DeviceKind",
    "ExecutionResult",
    "FlashLayout",
    "HostContext",
    "InvocationSession",
    "InvocationState",
    "OperationResult",
    "PartitionEntry",
    "PortInfo",
    "ProcessSpec",
    "ToolReference",
]
