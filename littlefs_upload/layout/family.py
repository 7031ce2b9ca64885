"""Device family detection from the fully-qualified board name."""

from littlefs_upload.core.errors import UnsupportedDeviceError
from littlefs_upload.core.structlog_logger import get_struct_logger
from littlefs_upload.models.board import BuildProperties
from littlefs_upload.models.layout import DeviceFamily, DeviceKind


logger = get_struct_logger(__name__)


def detect_family(fqbn: str, build_properties: BuildProperties) -> DeviceFamily:
    """Determine the device family from the architecture segment of ``fqbn``.

    Args:
        fqbn: Board identifier such as ``rp2040:rp2040:rpipico``
        build_properties: Board build properties, used to tell RP2350 boards
            apart inside the rp2040 core and to read the ESP32 chip model

    Raises:
        UnsupportedDeviceError: For any architecture other than rp2040,
            rp2350, esp8266 or esp32
    """
    segments = fqbn.split(":")
    architecture = segments[1] if len(segments) > 1 else ""

    if architecture in ("rp2040", "rp2350"):
        chip = build_properties.get("build.chip", architecture)
        kind = DeviceKind.RP2350 if chip == "rp2350" else DeviceKind.RP2040
        family = DeviceFamily(kind=kind)
    elif architecture == "esp8266":
        family = DeviceFamily(kind=DeviceKind.ESP8266)
    elif architecture == "esp32":
        variant = build_properties.get("build.mcu") or "esp32"
        family = DeviceFamily(kind=DeviceKind.ESP32, variant=variant)
    else:
        raise UnsupportedDeviceError(
            "Only Arduino-Pico RP2040/RP2350, ESP32, and ESP8266 supported."
        )

    logger.debug("device_family_detected", fqbn=fqbn, family=family.description)
    return family
