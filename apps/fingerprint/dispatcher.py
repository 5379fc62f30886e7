from datetime import datetime, timezone

from loguru import logger

from apps.sgfp import codec
from apps.sgfp.exceptions import (
    DeviceError,
    InitializationFailedError,
    NoDeviceFoundError,
    NotInitializedError,
    TemplateDecodeError,
)
from apps.sgfp.models import DeviceInfo, MatchOutcome, SecurityLevel
from apps.sgfp.session import DeviceSession

from .models import (
    CaptureRequest,
    CaptureResponse,
    CompareRequest,
    CompareResponse,
    DeviceInfoResponse,
    DiagnosticsResponse,
    RegisterRequest,
    RegisterResponse,
    VerifyRequest,
    VerifyResponse,
)

NOT_INITIALIZED_MESSAGE = "Device not initialized - please check device connection"


def failure_message(error: DeviceError) -> str:
    """Client-facing text of a device error"""
    if isinstance(error, (NoDeviceFoundError, InitializationFailedError, NotInitializedError)):
        return "%s (%s)" % (NOT_INITIALIZED_MESSAGE, error.message)
    return error.message


def decode_template(text: str | None, field: str) -> bytes:
    """
    Decode a template supplied by the client

    Raises:
        TemplateDecodeError: If the field is missing, empty or not base64
    """
    if not text:
        raise TemplateDecodeError("Template '%s' is missing" % field)

    try:
        return codec.decode(text)
    except TemplateDecodeError as e:
        raise TemplateDecodeError("Template '%s': %s" % (field, e.message))


def serial_to_text(serial_number: bytes) -> str:
    return serial_number.rstrip(b"\0").decode("ascii", errors="replace")


def firmware_to_hex(firmware_version: int) -> str:
    return format(firmware_version & 0xFFFFFFFF, "X")


class OperationDispatcher:
    """
    Maps the five fingerprint operations onto the device session.

    Expected failures (no device, bad template, vendor status) come back as
    responses with success=False; only unexpected exceptions propagate.
    """

    def __init__(self, session: DeviceSession):
        self.session = session

    async def capture(self, request: CaptureRequest) -> CaptureResponse:
        logger.info(
            "Capture requested: timeout=%sms, quality=%s"
            % (request.timeout_ms, request.quality_threshold)
        )

        try:
            result = await self.session.capture_image(
                quality_threshold=request.quality_threshold,
                timeout_ms=request.timeout_ms,
            )
        except DeviceError as e:
            logger.warning("Capture failed: %s" % e.message)
            return CaptureResponse(
                success=False, message=failure_message(e), error_code=e.error_code
            )

        return CaptureResponse(
            success=True,
            message="Fingerprint captured successfully",
            image_encoded=codec.encode(result.png_image),
            quality=result.quality,
            capture_time_ms=result.capture_time_ms,
            template_encoded=codec.encode(result.template),
        )

    async def _match(
        self, first: tuple[str | None, str], second: tuple[str | None, str], level_name: str
    ) -> MatchOutcome:
        template1 = decode_template(*first)
        template2 = decode_template(*second)
        level = SecurityLevel.from_name(level_name)

        return await self.session.match(template1, template2, level)

    async def compare(self, request: CompareRequest) -> CompareResponse:
        try:
            outcome = await self._match(
                (request.template1, "template1"),
                (request.template2, "template2"),
                request.security_level,
            )
        except DeviceError as e:
            logger.warning("Compare failed: %s" % e.message)
            return CompareResponse(
                success=False, message=failure_message(e), error_code=e.error_code
            )

        return CompareResponse(
            success=True,
            message="Fingerprints match" if outcome.matched else "Fingerprints do not match",
            matched=outcome.matched,
            score=outcome.score,
        )

    async def register(self, request: RegisterRequest) -> RegisterResponse:
        """
        Registration succeeds when the two submitted templates match each
        other; template1 is returned unchanged as the registered template.
        """
        try:
            outcome = await self._match(
                (request.template1, "template1"),
                (request.template2, "template2"),
                request.security_level,
            )
        except DeviceError as e:
            logger.warning("Register failed: %s" % e.message)
            return RegisterResponse(
                success=False, message=failure_message(e), error_code=e.error_code
            )

        if not outcome.matched:
            return RegisterResponse(
                success=True,
                message="Registration failed - fingerprints do not match",
                registered=False,
                score=outcome.score,
            )

        return RegisterResponse(
            success=True,
            message="Registration successful",
            registered=True,
            score=outcome.score,
            registered_template=request.template1,
        )

    async def verify(self, request: VerifyRequest) -> VerifyResponse:
        try:
            outcome = await self._match(
                (request.registered_template, "registeredTemplate"),
                (request.verify_template, "verifyTemplate"),
                request.security_level,
            )
        except DeviceError as e:
            logger.warning("Verify failed: %s" % e.message)
            return VerifyResponse(
                success=False, message=failure_message(e), error_code=e.error_code
            )

        return VerifyResponse(
            success=True,
            message="Verification successful" if outcome.matched else "Verification failed",
            verified=outcome.matched,
            score=outcome.score,
        )

    async def device_info(self) -> DeviceInfoResponse:
        try:
            info: DeviceInfo = await self.session.device_info()
        except DeviceError as e:
            logger.warning("Device info failed: %s" % e.message)
            return DeviceInfoResponse(
                success=False, message=failure_message(e), error_code=e.error_code
            )

        return DeviceInfoResponse(
            success=True,
            message="Device information retrieved successfully",
            device_id=info.device_id,
            serial_number=serial_to_text(info.serial_number),
            image_width=info.image_width,
            image_height=info.image_height,
            image_dpi=info.image_dpi,
            firmware_version=firmware_to_hex(info.firmware_version),
            brightness=info.brightness,
            contrast=info.contrast,
            gain=info.gain,
        )

    async def diagnostics(self) -> DiagnosticsResponse:
        return DiagnosticsResponse(
            success=True,
            message="Test endpoint working",
            device_initialized=await self.session.is_initialized(),
            timestamp=datetime.now(timezone.utc),
        )
