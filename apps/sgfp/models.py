from enum import IntEnum

from pydantic import BaseModel as PydanticBaseModel
from pydantic import ConfigDict, Field


class BaseModel(PydanticBaseModel):
    """Base model for values produced by the device layer"""

    model_config = ConfigDict(frozen=True)


class SecurityLevel(IntEnum):
    """Matcher strictness, SGFPM_SECURITY_LEVEL ordinals"""

    LOWEST = 0
    LOWER = 1
    LOW = 2
    BELOW_NORMAL = 3
    NORMAL = 4
    ABOVE_NORMAL = 5
    HIGH = 6
    HIGHER = 7
    HIGHEST = 8

    @classmethod
    def from_name(cls, name: str | None) -> "SecurityLevel":
        """Case-insensitive lookup, unknown or missing names fall back to NORMAL"""
        if not name:
            return cls.NORMAL
        return cls.__members__.get(name.strip().upper(), cls.NORMAL)


class EnumeratedDevice(BaseModel):
    """One entry of the vendor enumeration list"""

    device_name: int
    device_id: int
    device_type: int = 0
    serial_number: bytes = b""


class DeviceInfo(BaseModel):
    """Parameters read back from an open device (SGDeviceInfoParam)"""

    device_id: int
    serial_number: bytes = Field(description="Fixed-length buffer, NUL padded")
    image_width: int
    image_height: int
    image_dpi: int
    firmware_version: int
    brightness: int
    contrast: int
    gain: int


class CaptureResult(BaseModel):
    """Output of a single capture call, never retained by the server"""

    raw_image: bytes = Field(description="Grayscale pixels, width * height bytes")
    png_image: bytes
    width: int
    height: int
    quality: int
    capture_time_ms: int
    template: bytes


class MatchOutcome(BaseModel):
    matched: bool
    score: int
