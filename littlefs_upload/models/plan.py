"""Command plan models for the build and upload pipeline."""

import shlex
from collections.abc import Iterator
from pathlib import Path

from pydantic import ConfigDict, Field

from littlefs_upload.models.base import LittleFSBaseModel


class ToolReference(LittleFSBaseModel):
    """An external tool and the directory it was located in, if any."""

    model_config = ConfigDict(frozen=True)

    logical_name: str
    resolved_path: str | None = None

    @property
    def is_resolved(self) -> bool:
        return bool(self.resolved_path)

    def path_for(self, filename: str) -> str:
        """Join ``filename`` onto the located directory.

        An unresolved tool falls back to the bare filename so the caller's
        search path (or working directory, for relative scripts) is used.
        """
        if not self.resolved_path:
            return filename
        return str(Path(self.resolved_path) / filename)


class ProcessSpec(LittleFSBaseModel):
    """A single external process invocation."""

    name: str
    executable: str
    arguments: list[str] = Field(default_factory=list)

    @property
    def argv(self) -> list[str]:
        return [self.executable, *self.arguments]

    @property
    def command_line(self) -> str:
        return shlex.join(self.argv)


class CommandPlan(LittleFSBaseModel):
    """Ordered processes for one build or upload invocation."""

    build_step: ProcessSpec
    conversion_step: ProcessSpec | None = None
    upload_step: ProcessSpec | None = None
    image_file: Path
    upload_image: Path

    @property
    def steps(self) -> Iterator[ProcessSpec]:
        yield self.build_step
        if self.conversion_step is not None:
            yield self.conversion_step
        if self.upload_step is not None:
            yield self.upload_step


__all__ = ["CommandPlan", "ProcessSpec", "ToolReference"]
