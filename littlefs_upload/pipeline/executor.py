"""Sequential execution of a command plan with streamed output."""

from collections.abc import Callable

from littlefs_upload.core.structlog_logger import get_struct_logger
from littlefs_upload.models.plan import CommandPlan, ProcessSpec
from littlefs_upload.models.results import ExecutionResult
from littlefs_upload.protocols import OutputSinkProtocol
from littlefs_upload.utils.stream_process import OutputMiddleware, run_command


logger = get_struct_logger(__name__)

# Shell convention for "command not found"
SPAWN_FAILURE_EXIT_CODE = 127

StepCallback = Callable[[ProcessSpec], None]


class SinkOutputMiddleware(OutputMiddleware[None]):
    """Forwards every output chunk to a sink without keeping a copy."""

    def __init__(self, sink: OutputSinkProtocol) -> None:
        self.sink = sink

    def process(self, chunk: str, stream_type: str) -> None:
        self.sink.write(chunk, stream_type)


class PipelineExecutor:
    """Runs the steps of a CommandPlan one after another.

    The first step that exits non-zero (or cannot be started) ends the run;
    later steps are never spawned.
    """

    async def run_step(self, step: ProcessSpec, sink: OutputSinkProtocol) -> int:
        """Run one process, streaming its output to ``sink``."""
        logger.info("step_started", step=step.name, command=step.command_line)
        try:
            return_code, _, _ = await run_command(
                step.argv, middleware=SinkOutputMiddleware(sink)
            )
        except OSError as e:
            logger.error(
                "step_spawn_failed", step=step.name, executable=step.executable, error=str(e)
            )
            sink.write(f"{step.executable}: {e.strerror or e}\n", "stderr")
            return SPAWN_FAILURE_EXIT_CODE

        logger.info("step_finished", step=step.name, exit_code=return_code)
        return return_code

    async def execute(
        self,
        plan: CommandPlan,
        sink: OutputSinkProtocol,
        on_step: StepCallback | None = None,
    ) -> ExecutionResult:
        """Run every step of ``plan``; ``on_step`` is called before each spawn."""
        result = ExecutionResult(success=True)

        for step in plan.steps:
            if on_step:
                on_step(step)
            exit_code = await self.run_step(step, sink)
            result.steps_run.append(step.name)
            if exit_code != 0:
                result.exit_code = exit_code
                result.failed_step = step.name
                result.add_error(f"{step.name} step failed, error code: {exit_code}")
                break

        return result


async def execute_plan(
    plan: CommandPlan,
    sink: OutputSinkProtocol,
    on_step: StepCallback | None = None,
) -> ExecutionResult:
    """Execute ``plan`` with a one-off PipelineExecutor."""
    return await PipelineExecutor().execute(plan, sink, on_step=on_step)


__all__ = [
    "PipelineExecutor",
    "SPAWN_FAILURE_EXIT_CODE",
    "SinkOutputMiddleware",
    "execute_plan",
]
