"""Command plan construction for each device family and upload route.

Argument order and flag spelling are part of the contract with each external
tool, so every shape is spelled out literally here.
"""

from pathlib import Path

from pydantic import Field

from littlefs_upload.core.errors import PortNotConfiguredError
from littlefs_upload.core.structlog_logger import get_struct_logger
from littlefs_upload.models.base import LittleFSBaseModel
from littlefs_upload.models.board import BuildProperties, PortInfo
from littlefs_upload.models.layout import DeviceFamily, DeviceKind, FlashLayout
from littlefs_upload.models.plan import CommandPlan, ProcessSpec, ToolReference
from littlefs_upload.tools.locator import (
    ESPTOOL,
    MKLITTLEFS,
    OPENOCD,
    PICOTOOL,
    PLATFORM,
    PYTHON3,
    classify_pico_method,
    current_system,
    executable_name,
)


logger = get_struct_logger(__name__)

DEFAULT_FLASH_SETTING = "keep"
DEFAULT_CONVERT_THRESHOLD = 3
DEFAULT_OPENOCD_ADAPTER_SPEED = 5000

OTA_DEFAULT_PORTS: dict[DeviceKind, str] = {
    DeviceKind.RP2040: "2040",
    DeviceKind.RP2350: "2040",
    DeviceKind.ESP32: "3232",
    DeviceKind.ESP8266: "8266",
}
UF2_FAMILIES: dict[DeviceKind, str] = {
    DeviceKind.RP2040: "RP2040",
    DeviceKind.RP2350: "RP2350_ARM_S",
}
OPENOCD_TARGETS: dict[DeviceKind, str] = {
    DeviceKind.RP2040: "target/rp2040.cfg",
    DeviceKind.RP2350: "target/rp2350.cfg",
}


class PlanContext(LittleFSBaseModel):
    """Per-invocation inputs to plan construction beyond the layout."""

    image_file: Path
    port: PortInfo | None = None
    system: str = Field(default_factory=current_system)
    flash_mode: str = DEFAULT_FLASH_SETTING
    flash_freq: str = DEFAULT_FLASH_SETTING
    toolchain_version: str | None = None
    convert_threshold: int = DEFAULT_CONVERT_THRESHOLD
    openocd_adapter_speed: int = DEFAULT_OPENOCD_ADAPTER_SPEED

    @classmethod
    def from_build_properties(
        cls,
        image_file: Path,
        build_properties: BuildProperties,
        port: PortInfo | None = None,
        **kwargs: object,
    ) -> "PlanContext":
        """Fill the flash settings and toolchain version from build properties."""
        return cls(
            image_file=image_file,
            port=port,
            flash_mode=build_properties.get("build.flash_mode") or DEFAULT_FLASH_SETTING,
            flash_freq=build_properties.get("build.flash_freq") or DEFAULT_FLASH_SETTING,
            toolchain_version=build_properties.get("version"),
            **kwargs,
        )


def needs_conversion(
    family: DeviceFamily, version: str | None, threshold: int
) -> bool:
    """True when RP2350 images must be converted to UF2 before upload."""
    if family.kind != DeviceKind.RP2350 or not version:
        return False
    major = version.strip().split(".", 1)[0]
    try:
        return int(major) > threshold
    except ValueError:
        logger.warning("toolchain_version_unparseable", version=version)
        return False


def _tool(tools: dict[str, ToolReference], name: str) -> ToolReference:
    return tools.get(name) or ToolReference(logical_name=name)


def _platform_script(tools: dict[str, ToolReference], script: str) -> str:
    """Path of a script under the core's ``tools`` directory."""
    return _tool(tools, PLATFORM).path_for(str(Path("tools") / script))


def _python(tools: dict[str, ToolReference], system: str) -> str:
    return _tool(tools, PYTHON3).path_for(executable_name(PYTHON3, system))


def _require_port(port: PortInfo | None) -> PortInfo:
    if port is None or not port.address:
        raise PortNotConfiguredError("No port specified, check IDE menus")
    return port


def _ota_port(port: PortInfo, family: DeviceFamily) -> str:
    return port.properties.get("port") or OTA_DEFAULT_PORTS[family.kind]


def build_step(
    layout: FlashLayout,
    tools: dict[str, ToolReference],
    data_folder: Path,
    image_file: Path,
    system: str,
) -> ProcessSpec:
    mklittlefs = _tool(tools, MKLITTLEFS).path_for(executable_name(MKLITTLEFS, system))
    return ProcessSpec(
        name="Mklittlefs",
        executable=mklittlefs,
        arguments=[
            "-c",
            str(data_folder),
            "-p",
            str(layout.page),
            "-b",
            str(layout.block),
            "-s",
            str(layout.size),
            str(image_file),
        ],
    )


def conversion_step(
    layout: FlashLayout,
    tools: dict[str, ToolReference],
    image_file: Path,
    uf2_file: Path,
    system: str,
) -> ProcessSpec:
    return ProcessSpec(
        name="Conversion",
        executable=_python(tools, system),
        arguments=[
            _platform_script(tools, "uf2conv.py"),
            "--convert",
            "--base",
            str(layout.start),
            "--family",
            UF2_FAMILIES[DeviceKind.RP2350],
            "--output",
            str(uf2_file),
            str(image_file),
        ],
    )


def _pico_upload_step(
    family: DeviceFamily,
    layout: FlashLayout,
    tools: dict[str, ToolReference],
    upload_method: str | None,
    raw_image: Path,
    upload_image: Path,
    context: PlanContext,
) -> ProcessSpec:
    method = classify_pico_method(upload_method)
    system = context.system

    if method == "picotool":
        picotool = _tool(tools, PICOTOOL).path_for(executable_name(PICOTOOL, system))
        if upload_image != raw_image:
            # UF2 blocks carry their own target addresses
            arguments = ["load", str(upload_image), "-f", "-x"]
        else:
            arguments = ["load", str(raw_image), "-o", f"0x{layout.start:x}", "-f", "-x"]
        return ProcessSpec(name="Upload", executable=picotool, arguments=arguments)

    if method == "openocd":
        openocd_ref = _tool(tools, OPENOCD)
        arguments = [
            "-f",
            "interface/cmsis-dap.cfg",
            "-f",
            OPENOCD_TARGETS[family.kind],
        ]
        if openocd_ref.resolved_path:
            scripts = Path(openocd_ref.resolved_path) / "share" / "openocd" / "scripts"
            arguments.extend(["-s", str(scripts)])
        arguments.extend(
            [
                "-c",
                f"adapter speed {context.openocd_adapter_speed}",
                "-c",
                f"program {raw_image} verify reset exit 0x{layout.start:x}",
            ]
        )
        openocd = executable_name(OPENOCD, system)
        if openocd_ref.resolved_path:
            openocd = str(Path(openocd_ref.resolved_path) / "bin" / openocd)
        return ProcessSpec(name="Upload", executable=openocd, arguments=arguments)

    port = _require_port(context.port)
    if port.is_network:
        return ProcessSpec(
            name="Upload",
            executable=_python(tools, system),
            arguments=[
                _platform_script(tools, "espota.py"),
                "-i",
                port.address,
                "-p",
                _ota_port(port, family),
                "-s",
                "-f",
                str(upload_image),
            ],
        )

    return ProcessSpec(
        name="Upload",
        executable=_python(tools, system),
        arguments=[
            _platform_script(tools, "uf2conv.py"),
            "--base",
            str(layout.start),
            "--serial",
            port.address,
            "--family",
            UF2_FAMILIES[family.kind],
            str(upload_image),
        ],
    )


def _esptool_command(
    tools: dict[str, ToolReference], system: str
) -> tuple[str, list[str]]:
    """Executable and leading arguments needed to run esptool on ``system``."""
    esptool = _tool(tools, ESPTOOL)
    if system in ("windows", "darwin"):
        return esptool.path_for(executable_name(ESPTOOL, system)), []

    if not esptool.is_resolved:
        # pip installs esptool.py as a console script
        return executable_name(ESPTOOL, system), []

    script = Path(esptool.path_for(executable_name(ESPTOOL, system)))
    if script.is_file():
        return _python(tools, system), [str(script)]
    return esptool.path_for("esptool"), []


def _esp32_upload_step(
    family: DeviceFamily,
    layout: FlashLayout,
    tools: dict[str, ToolReference],
    image_file: Path,
    context: PlanContext,
) -> ProcessSpec:
    port = _require_port(context.port)
    system = context.system

    if port.is_network:
        ota_arguments = [
            "-r",
            "-i",
            port.address,
            "-p",
            _ota_port(port, family),
            "-f",
            str(image_file),
            "-s",
        ]
        if system == "windows":
            espota = _tool(tools, PLATFORM).path_for(str(Path("tools") / "espota.exe"))
            return ProcessSpec(name="Upload", executable=espota, arguments=ota_arguments)
        return ProcessSpec(
            name="Upload",
            executable=_python(tools, system),
            arguments=[_platform_script(tools, "espota.py"), *ota_arguments],
        )

    executable, leading = _esptool_command(tools, system)
    return ProcessSpec(
        name="Upload",
        executable=executable,
        arguments=[
            *leading,
            "--chip",
            family.variant,
            "--port",
            port.address,
            "--baud",
            str(layout.upload_speed),
            "--before",
            "default_reset",
            "--after",
            "hard_reset",
            "write_flash",
            "-z",
            "--flash_mode",
            context.flash_mode,
            "--flash_freq",
            context.flash_freq,
            "--flash_size",
            "detect",
            f"0x{layout.start:x}",
            str(image_file),
        ],
    )


def _esp8266_upload_step(
    family: DeviceFamily,
    layout: FlashLayout,
    tools: dict[str, ToolReference],
    image_file: Path,
    context: PlanContext,
) -> ProcessSpec:
    port = _require_port(context.port)
    python3 = _python(tools, context.system)

    if port.is_network:
        arguments = [
            _platform_script(tools, "espota.py"),
            "-i",
            port.address,
            "-p",
            _ota_port(port, family),
            "-s",
            "-f",
            str(image_file),
        ]
    else:
        arguments = [
            _platform_script(tools, "upload.py"),
            "--chip",
            "esp8266",
            "--port",
            port.address,
            "--baud",
            str(layout.upload_speed),
            "write_flash",
            f"0x{layout.start:x}",
            str(image_file),
        ]
    return ProcessSpec(name="Upload", executable=python3, arguments=arguments)


def build_plan(
    family: DeviceFamily,
    layout: FlashLayout,
    tools: dict[str, ToolReference],
    upload_method: str | None,
    data_folder: Path,
    do_upload: bool,
    context: PlanContext,
) -> CommandPlan:
    """Build the ordered process list for one invocation.

    Raises:
        PortNotConfiguredError: If the chosen upload route needs a port and
            none is selected
    """
    image_file = context.image_file
    plan_build = build_step(layout, tools, data_folder, image_file, context.system)

    if not do_upload:
        return CommandPlan(
            build_step=plan_build, image_file=image_file, upload_image=image_file
        )

    plan_conversion = None
    upload_image = image_file
    if needs_conversion(family, context.toolchain_version, context.convert_threshold):
        upload_image = image_file.with_name(image_file.name + ".uf2")
        plan_conversion = conversion_step(
            layout, tools, image_file, upload_image, context.system
        )

    if family.is_pico:
        plan_upload = _pico_upload_step(
            family, layout, tools, upload_method, image_file, upload_image, context
        )
    elif family.kind == DeviceKind.ESP32:
        plan_upload = _esp32_upload_step(family, layout, tools, image_file, context)
    elif family.kind == DeviceKind.ESP8266:
        plan_upload = _esp8266_upload_step(family, layout, tools, image_file, context)
    else:
        raise ValueError(f"Unhandled device kind: {family.kind}")

    logger.debug(
        "command_plan_built",
        family=family.kind.value,
        upload_method=upload_method,
        conversion=plan_conversion is not None,
        upload=plan_upload.command_line,
    )
    return CommandPlan(
        build_step=plan_build,
        conversion_step=plan_conversion,
        upload_step=plan_upload,
        image_file=image_file,
        upload_image=upload_image,
    )


__all__ = [
    "PlanContext",
    "build_plan",
    "build_step",
    "conversion_step",
    "needs_conversion",
]
