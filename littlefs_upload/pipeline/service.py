"""Filesystem image build and upload service."""

import os
import tempfile
from pathlib import Path

from littlefs_upload import __version__
from littlefs_upload.config.models import UserConfigData
from littlefs_upload.core.errors import (
    LittleFSUploadError,
    PreconditionMissingError,
    ProcessFailedError,
    UnsupportedDeviceError,
)
from littlefs_upload.core.structlog_logger import (
    get_struct_logger,
    get_struct_logger_with_context,
)
from littlefs_upload.layout.family import detect_family
from littlefs_upload.layout.partitions import find_partition_file
from littlefs_upload.layout.resolver import LayoutResolver
from littlefs_upload.models.board import BoardDetails, HostContext
from littlefs_upload.models.layout import DeviceKind
from littlefs_upload.models.plan import CommandPlan, ProcessSpec
from littlefs_upload.models.results import OperationResult
from littlefs_upload.models.session import InvocationSession, InvocationState
from littlefs_upload.pipeline.executor import PipelineExecutor
from littlefs_upload.pipeline.planner import PlanContext, build_plan, needs_conversion
from littlefs_upload.pipeline.sink import (
    SinkRegistry,
    create_console_sink,
    wait_for_sink,
)
from littlefs_upload.protocols import OutputSinkProtocol
from littlefs_upload.tools.locator import ToolLocator, required_tools


logger = get_struct_logger(__name__)

TEMP_IMAGE_SUFFIX = ".littlefs.bin"
PARTITION_SINK_TITLE = "Partition Scheme"
UPLOAD_METHOD_OPTION = "uploadmethod"


class FilesystemImageService:
    """Builds LittleFS images from a sketch's data folder and uploads them.

    Every operation reports its own errors: a LittleFSUploadError is written
    to the sink once, recorded on the returned OperationResult, and moves
    the invocation to the failed state. Nothing is raised to the caller.
    """

    def __init__(
        self,
        settings: UserConfigData | None = None,
        sink_registry: SinkRegistry | None = None,
        executor: PipelineExecutor | None = None,
    ) -> None:
        self.settings = settings or UserConfigData()
        self.sink_registry = sink_registry or SinkRegistry(create_console_sink)
        self.executor = executor or PipelineExecutor()

    async def build_image(self, context: HostContext) -> OperationResult:
        """Build the image beside the sketch without uploading it."""
        return await self._run_pipeline(context, do_upload=False)

    async def upload_image(self, context: HostContext) -> OperationResult:
        """Build the image into a temporary file and upload it to the board."""
        return await self._run_pipeline(context, do_upload=True)

    async def show_partition_file(self, context: HostContext) -> OperationResult:
        """Report which partition table file an ESP32 build uses."""
        session = InvocationSession()
        result = OperationResult(success=True)
        sink: OutputSinkProtocol | None = None

        try:
            fqbn, board_details = self._require_board(context)
            sink = await self._open_sink(PARTITION_SINK_TITLE)
            session.transition(InvocationState.RESOLVING)

            family = detect_family(fqbn, board_details.build_properties)
            result.family = family
            if family.kind != DeviceKind.ESP32:
                raise UnsupportedDeviceError(
                    f"Partition scheme files are only used by ESP32 boards, not {family.description}"
                )

            partition_file = find_partition_file(
                board_details.build_properties,
                board_details.config_options,
                context.sketch_path,
                sink.info,
            )
            sink.info("Partition scheme file", str(partition_file))
            result.partition_file = partition_file
            session.transition(InvocationState.COMPLETED)
            result.add_message(f"Partition scheme file: {partition_file}")
        except LittleFSUploadError as e:
            self._report_failure(session, result, sink, e)

        return result

    async def describe_layout(self, context: HostContext) -> OperationResult:
        """Resolve the device family and flash layout without spawning tools."""
        session = InvocationSession()
        result = OperationResult(success=True)

        try:
            fqbn, board_details = self._require_board(context)
            session.transition(InvocationState.RESOLVING)
            family = detect_family(fqbn, board_details.build_properties)
            result.family = family

            resolver = self._create_resolver()
            result.layout = resolver.resolve(
                family,
                board_details.build_properties,
                board_details.config_options,
                context.sketch_path,
            )
            result.partition_file = resolver.partition_file
            session.transition(InvocationState.COMPLETED)
        except LittleFSUploadError as e:
            self._report_failure(session, result, None, e)

        return result

    async def _run_pipeline(
        self, context: HostContext, do_upload: bool
    ) -> OperationResult:
        session = InvocationSession()
        result = OperationResult(success=True)
        sink: OutputSinkProtocol | None = None
        temp_files: list[Path] = []

        log = get_struct_logger_with_context(
            __name__, fqbn=context.fqbn, upload=do_upload
        )
        log.info("pipeline_started")
        try:
            fqbn, board_details = self._require_board(context)
            sink = await self._open_sink(self.settings.sink_title)
            data_folder = self._require_data_folder(context, sink)
            build_properties = board_details.build_properties

            session.transition(InvocationState.RESOLVING)
            family = detect_family(fqbn, build_properties)
            result.family = family
            sink.info("Device", family.description)

            resolver = self._create_resolver(sink)
            layout = resolver.resolve(
                family,
                build_properties,
                board_details.config_options,
                context.sketch_path,
            )
            result.layout = layout
            result.partition_file = resolver.partition_file

            session.transition(InvocationState.TOOL_LOCATING)
            upload_method = board_details.selected_option(UPLOAD_METHOD_OPTION)
            network = context.port is not None and context.port.is_network
            convert = do_upload and needs_conversion(
                family,
                build_properties.get("version"),
                self.settings.rp2350_convert_threshold,
            )
            tools = ToolLocator(family, build_properties).locate_all(
                required_tools(family, upload_method, network, do_upload, convert)
            )
            for name, reference in tools.items():
                if not reference.is_resolved:
                    sink.info("Tool not found", f"{name}, trying the search path")

            image_file = self._image_path(context, do_upload)
            if do_upload:
                temp_files.append(image_file)
            result.image_file = image_file

            plan = build_plan(
                family,
                layout,
                tools,
                upload_method,
                data_folder,
                do_upload,
                PlanContext.from_build_properties(
                    image_file,
                    build_properties,
                    port=context.port,
                    convert_threshold=self.settings.rp2350_convert_threshold,
                    openocd_adapter_speed=self.settings.openocd_adapter_speed,
                ),
            )
            if plan.upload_image != plan.image_file:
                temp_files.append(plan.upload_image)

            execution = await self.executor.execute(
                plan,
                sink,
                on_step=lambda step: self._enter_step(session, sink, plan, step),
            )
            if not execution.is_success():
                raise ProcessFailedError(
                    execution.failed_step or "Unknown", execution.exit_code
                )

            session.transition(InvocationState.COMPLETED)
            message = "Completed upload." if do_upload else f"Completed build: {image_file}"
            sink.success(message)
            result.add_message(message)
            log.info("pipeline_completed", elapsed=round(session.elapsed_time, 2))
        except ProcessFailedError as e:
            self._report_failure(session, result, sink, e, exit_code=e.exit_code)
        except LittleFSUploadError as e:
            self._report_failure(session, result, sink, e)
        finally:
            for temp_file in temp_files:
                temp_file.unlink(missing_ok=True)

        return result

    def _require_board(self, context: HostContext) -> tuple[str, BoardDetails]:
        if context.board_details is None or not context.fqbn:
            raise PreconditionMissingError(
                "Board details not available. Compile the sketch once."
            )
        return context.fqbn, context.board_details

    async def _open_sink(self, title: str) -> OutputSinkProtocol:
        sink, state = self.sink_registry.show(title)
        ready = await wait_for_sink(
            state,
            attempts=self.settings.sink_ready_attempts,
            interval=self.settings.sink_ready_interval,
        )
        if not ready:
            raise PreconditionMissingError("Unable to open upload terminal")
        return sink

    def _require_data_folder(
        self, context: HostContext, sink: OutputSinkProtocol
    ) -> Path:
        sink.heading(f"LittleFS Filesystem Uploader v{__version__}")
        sink.info("Sketch Path", str(context.sketch_path or ""))
        data_folder = context.data_folder
        if data_folder is None:
            raise PreconditionMissingError("No sketch path available")
        sink.info("Data Path", str(data_folder))
        if not data_folder.is_dir():
            raise PreconditionMissingError(f"No data folder found at {data_folder}")
        return data_folder

    def _create_resolver(self, sink: OutputSinkProtocol | None = None) -> LayoutResolver:
        return LayoutResolver(
            partition_floor=self.settings.partition_floor,
            default_upload_speed=self.settings.default_upload_speed,
            on_progress=sink.info if sink else None,
        )

    def _image_path(self, context: HostContext, do_upload: bool) -> Path:
        if do_upload:
            fd, name = tempfile.mkstemp(suffix=TEMP_IMAGE_SUFFIX)
            os.close(fd)
            return Path(name)
        # data folder check guarantees a sketch path here
        assert context.sketch_path is not None
        sketch_path = context.sketch_path
        return sketch_path / f"{sketch_path.name}{self.settings.image_suffix}"

    def _enter_step(
        self,
        session: InvocationSession,
        sink: OutputSinkProtocol,
        plan: CommandPlan,
        step: ProcessSpec,
    ) -> None:
        if step is plan.build_step:
            session.transition(InvocationState.BUILDING)
            sink.heading("Building LittleFS filesystem")
        elif step is plan.conversion_step:
            session.transition(InvocationState.CONVERTING)
            sink.heading("Converting LittleFS image to UF2")
        else:
            session.transition(InvocationState.UPLOADING)
            sink.heading("Uploading LittleFS filesystem")
        sink.info("Command Line", step.command_line)

    def _report_failure(
        self,
        session: InvocationSession,
        result: OperationResult,
        sink: OutputSinkProtocol | None,
        error: LittleFSUploadError,
        exit_code: int = 1,
    ) -> None:
        session.fail()
        result.exit_code = exit_code
        result.add_error(str(error))
        if sink is not None:
            sink.error(str(error))
        logger.error(
            "operation_failed",
            error=str(error),
            error_type=type(error).__name__,
            exit_code=exit_code,
            state=session.history[-1].value if session.history else None,
        )


def create_filesystem_image_service(
    settings: UserConfigData | None = None,
    sink_registry: SinkRegistry | None = None,
    executor: PipelineExecutor | None = None,
) -> FilesystemImageService:
    """Create a FilesystemImageService with default collaborators."""
    return FilesystemImageService(
        settings=settings, sink_registry=sink_registry, executor=executor
    )


__all__ = ["FilesystemImageService", "create_filesystem_image_service"]
