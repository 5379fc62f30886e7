from datetime import datetime

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

from core.config import settings


class RequestModel(BaseModel):
    """Base model for request bodies, unknown keys are ignored"""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class CaptureRequest(RequestModel):
    timeout_ms: int = Field(
        default_factory=lambda: settings.DEVICE.DEFAULT_TIMEOUT_MS,
        ge=0,
        validation_alias=AliasChoices("timeoutMs", "timeout", "timeout_ms"),
        serialization_alias="timeoutMs",
    )
    quality_threshold: int = Field(
        default_factory=lambda: settings.DEVICE.DEFAULT_QUALITY,
        ge=0,
        le=100,
        validation_alias=AliasChoices("qualityThreshold", "quality", "quality_threshold"),
        serialization_alias="qualityThreshold",
    )


class CompareRequest(RequestModel):
    template1: str | None = Field(None)
    template2: str | None = Field(None)
    security_level: str = Field(
        default_factory=lambda: settings.DEVICE.DEFAULT_SECURITY_LEVEL,
        alias="securityLevel",
    )


class RegisterRequest(CompareRequest):
    pass


class VerifyRequest(RequestModel):
    registered_template: str | None = Field(None, alias="registeredTemplate")
    verify_template: str | None = Field(None, alias="verifyTemplate")
    security_level: str = Field(
        default_factory=lambda: settings.DEVICE.DEFAULT_SECURITY_LEVEL,
        alias="securityLevel",
    )


class BaseResponse(BaseModel):
    """Base response model for all API responses"""

    model_config = ConfigDict(populate_by_name=True)

    success: bool
    message: str | None = None
    error_code: str | None = Field(None, alias="errorCode")

    def to_json(self) -> dict:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class CaptureResponse(BaseResponse):
    image_encoded: str | None = Field(None, alias="imageEncoded")
    quality: int | None = Field(None)
    capture_time_ms: int | None = Field(None, alias="captureTimeMs")
    template_encoded: str | None = Field(None, alias="templateEncoded")


class CompareResponse(BaseResponse):
    matched: bool | None = Field(None)
    score: int | None = Field(None)


class RegisterResponse(BaseResponse):
    registered: bool | None = Field(None)
    score: int | None = Field(None)
    registered_template: str | None = Field(None, alias="registeredTemplate")


class VerifyResponse(BaseResponse):
    verified: bool | None = Field(None)
    score: int | None = Field(None)


class DeviceInfoResponse(BaseResponse):
    device_id: int | None = Field(None, alias="deviceId")
    serial_number: str | None = Field(None, alias="serialNumber")
    image_width: int | None = Field(None, alias="imageWidth")
    image_height: int | None = Field(None, alias="imageHeight")
    image_dpi: int | None = Field(None, alias="imageDPI")
    firmware_version: str | None = Field(None, alias="firmwareVersion")
    brightness: int | None = Field(None)
    contrast: int | None = Field(None)
    gain: int | None = Field(None)


class HealthResponse(BaseResponse):
    timestamp: datetime


class DiagnosticsResponse(BaseResponse):
    device_initialized: bool = Field(..., alias="deviceInitialized")
    timestamp: datetime


class CaptureEchoResponse(BaseResponse):
    received_request: dict = Field(..., alias="receivedRequest")
    timestamp: datetime
