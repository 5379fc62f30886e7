import hashlib
import math
import time

from loguru import logger
from typing_extensions import override

from core.config import SimulatorConfig

from .driver import FingerprintDriver
from .errors import SGFDX_ERROR_DEVICE_NOT_FOUND, SGFDX_ERROR_INVALID_PARAM
from .exceptions import DriverError
from .models import DeviceInfo, EnumeratedDevice, SecurityLevel


class SimulatedDriver(FingerprintDriver):
    """
    Hardware-free scanner for demos and development.

    Captures synthesize a ridge-like grayscale image, templates are derived
    from the image and a capture counter, and matching answers with the
    configured outcome.
    """

    def __init__(self, config: SimulatorConfig, template_size: int = 400):
        self.config = config
        self.template_size = template_size

        self._open = False
        self._captures = 0

    @override
    def enumerate(self) -> list[EnumeratedDevice]:
        if not self.config.PRESENT:
            return []

        return [
            EnumeratedDevice(
                device_name=0,
                device_id=self.config.DEVICE_ID,
                serial_number=self._serial(),
            )
        ]

    @override
    def open(self, device: EnumeratedDevice) -> None:
        if not self.config.PRESENT:
            raise DriverError("OpenDevice", SGFDX_ERROR_DEVICE_NOT_FOUND)

        self._open = True
        logger.info(f"Simulated scanner {self.config.SERIAL_NUMBER} opened")

    @override
    def get_device_info(self) -> DeviceInfo:
        self._require_open("GetDeviceInfo")

        return DeviceInfo(
            device_id=self.config.DEVICE_ID,
            serial_number=self._serial(),
            image_width=self.config.IMAGE_WIDTH,
            image_height=self.config.IMAGE_HEIGHT,
            image_dpi=self.config.IMAGE_DPI,
            firmware_version=self.config.FIRMWARE_VERSION,
            brightness=self.config.BRIGHTNESS,
            contrast=self.config.CONTRAST,
            gain=self.config.GAIN,
        )

    @override
    def get_image(self, buffer_size: int, timeout_ms: int, quality: int) -> bytes:
        self._require_open("GetImageEx")

        width, height = self.config.IMAGE_WIDTH, self.config.IMAGE_HEIGHT
        if buffer_size != width * height:
            raise DriverError("GetImageEx", SGFDX_ERROR_INVALID_PARAM)

        if self.config.CAPTURE_DELAY_MS:
            time.sleep(min(self.config.CAPTURE_DELAY_MS, timeout_ms) / 1000)

        self._captures += 1
        phase = self._captures * 0.7
        cx, cy = width / 2, height / 2.2

        # Concentric ridges around a core point, fading towards the border
        pixels = bytearray(buffer_size)
        for y in range(height):
            for x in range(width):
                dx, dy = x - cx, (y - cy) * 1.15
                r = math.hypot(dx, dy)
                ridge = math.sin(r / 2.8 + phase + 0.4 * math.atan2(dy, dx))
                fade = max(0.0, 1.0 - r / (0.55 * max(width, height)))
                pixels[y * width + x] = int(255 - (1 + ridge) * 100 * fade)

        return bytes(pixels)

    @override
    def get_image_quality(self, width: int, height: int, image: bytes) -> int:
        return self.config.QUALITY

    @override
    def create_template(self, image: bytes, quality: int = 0) -> bytes:
        self._require_open("CreateTemplate")

        seed = hashlib.sha256(image).digest()
        template = b""
        block = 0
        while len(template) < self.template_size:
            template += hashlib.sha256(seed + block.to_bytes(4, "little")).digest()
            block += 1
        return template[: self.template_size]

    @override
    def match_template(
        self, template1: bytes, template2: bytes, level: SecurityLevel
    ) -> bool:
        self._require_open("MatchTemplate")
        return self.config.MATCHED

    @override
    def get_matching_score(self, template1: bytes, template2: bytes) -> int:
        self._require_open("GetMatchingScore")
        return self.config.MATCH_SCORE

    @override
    def close_device(self) -> None:
        self._open = False

    def _require_open(self, primitive: str) -> None:
        if not self._open:
            raise DriverError(primitive, SGFDX_ERROR_DEVICE_NOT_FOUND)

    def _serial(self) -> bytes:
        return self.config.SERIAL_NUMBER.encode("ascii")[:15].ljust(16, b"\0")
