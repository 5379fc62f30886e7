"""
Device session for the single fingerprint scanner of a process.

DeviceSession owns the driver and the initialized/uninitialized state
machine. Every hardware call goes through one asyncio.Lock, so at most one
vendor primitive runs at any time and waiting requests are served in
arrival order. Blocking driver calls run in a worker thread while the lock
is held, the event loop keeps accepting requests meanwhile.
"""

import asyncio
import time
from collections.abc import AsyncIterator, Callable
from contextlib import asynccontextmanager
from typing import Any, TypeVar

from loguru import logger

from core.config import Settings

from . import codec
from .driver import FingerprintDriver, SecuGenDriver
from .exceptions import (
    DriverError,
    DriverLoadError,
    InitializationFailedError,
    NoDeviceFoundError,
    NotInitializedError,
    OperationFailedError,
)
from .models import CaptureResult, DeviceInfo, MatchOutcome, SecurityLevel
from .simulator import SimulatedDriver

T = TypeVar("T")


class DeviceSession:
    """
    Single owner of the scanner.

    The session starts uninitialized and moves to initialized once a device
    has been enumerated, opened and read back; dispose() moves it back.
    Every operation holds the session lock for its whole duration,
    including any worker thread still running a vendor call.

    Args:
        driver: Vendor primitives to call
        auto_initialize: Open the device on demand before each operation.
            When disabled, operations on an unopened device raise
            NotInitializedError and ensure_initialized() must be called first.
    """

    def __init__(self, driver: FingerprintDriver, auto_initialize: bool = True):
        self._driver = driver
        self._auto_initialize = auto_initialize
        self._lock = asyncio.Lock()

        # Guarded by _lock
        self._initialized = False
        self._info: DeviceInfo | None = None
        self._image_width = 0
        self._image_height = 0

    @asynccontextmanager
    async def _exclusive(self, operation: str) -> AsyncIterator[None]:
        if self._lock.locked():
            logger.debug("Device busy, %s waiting for lock" % operation)

        async with self._lock:
            logger.debug("Lock acquired for %s" % operation)
            yield

    async def _call(self, func: Callable[..., T], *args: Any) -> T:
        name = getattr(func, "__name__", repr(func))
        logger.debug("Calling %s" % name)

        future = asyncio.ensure_future(asyncio.to_thread(func, *args))
        try:
            return await asyncio.shield(future)
        except asyncio.CancelledError:
            # A running vendor call can't be interrupted, the caller keeps
            # the lock until the worker thread has returned
            logger.warning("Request cancelled during %s, waiting for the device" % name)
            while not future.done():
                try:
                    await asyncio.wait({future})
                except asyncio.CancelledError:
                    pass
            if not future.cancelled():
                future.exception()
            raise

    async def is_initialized(self) -> bool:
        async with self._exclusive("is_initialized"):
            return self._initialized

    async def ensure_initialized(self) -> DeviceInfo:
        """
        Enumerate, select and open the scanner if not done yet.

        Idempotent: once initialized it returns the same DeviceInfo without
        touching the hardware.

        Raises:
            NoDeviceFoundError: Nothing enumerated or enumeration failed
            InitializationFailedError: Opening or reading back the device failed
        """
        async with self._exclusive("ensure_initialized"):
            return await self._ensure_initialized()

    async def _ensure_initialized(self) -> DeviceInfo:
        if self._initialized and self._info is not None:
            return self._info

        logger.info("Initializing fingerprint device...")

        try:
            devices = await self._call(self._driver.enumerate)
        except DriverError as e:
            logger.warning("Device enumeration failed: %s" % str(e))
            raise NoDeviceFoundError("Device enumeration failed: %s" % str(e))
        except DriverLoadError as e:
            logger.warning("Fingerprint driver unavailable: %s" % str(e))
            raise NoDeviceFoundError("Fingerprint driver unavailable: %s" % str(e))

        if not devices:
            logger.warning("No fingerprint devices found")
            raise NoDeviceFoundError("No fingerprint device found")

        # Always the first device in enumeration order
        selected = devices[0]
        logger.info(
            "Opening device %s (name=%s, type=%s)"
            % (selected.device_id, selected.device_name, selected.device_type)
        )

        try:
            await self._call(self._driver.open, selected)
        except DriverError as e:
            logger.warning("Opening device failed: %s" % str(e))
            raise InitializationFailedError(str(e))

        try:
            info = await self._call(self._driver.get_device_info)
        except DriverError as e:
            logger.warning("Reading device parameters failed: %s" % str(e))
            await self._close_quietly()
            raise InitializationFailedError(str(e))

        self._store_info(info)
        self._initialized = True

        logger.info(
            "Device initialized successfully: %sx%s @ %s DPI"
            % (info.image_width, info.image_height, info.image_dpi)
        )
        return info

    def _store_info(self, info: DeviceInfo) -> None:
        self._info = info
        self._image_width = info.image_width
        self._image_height = info.image_height

    async def _close_quietly(self) -> None:
        try:
            await self._call(self._driver.close_device)
        except DriverError as e:
            logger.warning("Closing device failed: %s" % str(e))

    async def _prepare(self) -> None:
        """Lock must be held. Open the device on demand or insist it is open."""
        if self._auto_initialize:
            await self._ensure_initialized()

        if not self._initialized:
            raise NotInitializedError("Device not initialized")

    async def capture_image(self, quality_threshold: int, timeout_ms: int) -> CaptureResult:
        """
        Capture one fingerprint: image, quality, PNG rendering and template.

        The vendor call enforces timeout_ms itself; no retry happens here.

        Raises:
            DeviceError: Initialization or any vendor step failed
        """
        async with self._exclusive("capture"):
            await self._prepare()

            width, height = self._image_width, self._image_height

            started = time.monotonic()
            try:
                raw_image = await self._call(
                    self._driver.get_image, width * height, timeout_ms, quality_threshold
                )
            except DriverError as e:
                raise OperationFailedError(e.primitive, e.vendor_code)
            capture_time_ms = int((time.monotonic() - started) * 1000)

            logger.info("Image captured in %sms" % capture_time_ms)

            try:
                quality = await self._call(
                    self._driver.get_image_quality, width, height, raw_image
                )
            except DriverError as e:
                raise OperationFailedError(e.primitive, e.vendor_code)

            try:
                png_image = codec.grayscale_to_png(raw_image, width, height)
            except ValueError as e:
                logger.warning("Image conversion failed: %s" % str(e))
                png_image = b""

            try:
                template = await self._call(
                    self._driver.create_template, raw_image, quality
                )
            except DriverError as e:
                raise OperationFailedError(
                    e.primitive, e.vendor_code, prefix="Template creation failed: "
                )

        logger.info(
            "Capture completed: quality=%s, template=%s bytes" % (quality, len(template))
        )

        return CaptureResult(
            raw_image=raw_image,
            png_image=png_image,
            width=width,
            height=height,
            quality=quality,
            capture_time_ms=capture_time_ms,
            template=template,
        )

    async def match(
        self, template1: bytes, template2: bytes, level: SecurityLevel
    ) -> MatchOutcome:
        """
        Match two templates and score them.

        Raises:
            DeviceError: Initialization, matching or scoring failed
        """
        async with self._exclusive("match"):
            await self._prepare()

            try:
                matched = await self._call(
                    self._driver.match_template, template1, template2, level
                )
                score = await self._call(
                    self._driver.get_matching_score, template1, template2
                )
            except DriverError as e:
                raise OperationFailedError(e.primitive, e.vendor_code)

        logger.info(
            "Match at %s: matched=%s, score=%s" % (level.name, matched, score)
        )
        return MatchOutcome(matched=matched, score=score)

    async def device_info(self) -> DeviceInfo:
        """
        Read live device parameters, never served from cache.

        Raises:
            DeviceError: Initialization or the parameter read failed
        """
        async with self._exclusive("device_info"):
            await self._prepare()

            try:
                info = await self._call(self._driver.get_device_info)
            except DriverError as e:
                raise OperationFailedError(e.primitive, e.vendor_code)

            self._store_info(info)
            return info

    async def dispose(self) -> None:
        """Close the device if open. Safe to call repeatedly."""
        async with self._exclusive("dispose"):
            if not self._initialized:
                return

            await self._close_quietly()

            self._initialized = False
            self._info = None
            self._image_width = 0
            self._image_height = 0

            logger.info("Device closed")


def create_driver(config: Settings) -> FingerprintDriver:
    """Build the driver selected by DEVICE.BACKEND"""
    if config.DEVICE.BACKEND == "simulator":
        logger.info("Using simulated fingerprint scanner")
        return SimulatedDriver(config.SIMULATOR, template_size=config.DEVICE.TEMPLATE_SIZE)

    return SecuGenDriver(
        lib_path=config.DEVICE.LIB_PATH,
        template_size=config.DEVICE.TEMPLATE_SIZE,
    )


class DeviceSessionManager:
    """
    Application-level owner of the device session.

    Created once per process, initialized during application startup and
    shut down once at exit.
    """

    def __init__(self, config: Settings, driver: FingerprintDriver | None = None):
        self._config = config
        self._driver = driver
        self._session: DeviceSession | None = None

    async def initialize(self) -> None:
        """
        Create the session. Should be called during application startup.

        With DEVICE.ENUMERATE_ON_STARTUP the scanner is opened right away,
        a missing scanner is only logged since requests retry lazily.
        """
        if self._session is not None:
            logger.warning("DeviceSessionManager already initialized")
            return

        if self._driver is None:
            self._driver = create_driver(self._config)

        self._session = DeviceSession(
            self._driver, auto_initialize=self._config.DEVICE.AUTO_INITIALIZE
        )

        if self._config.DEVICE.ENUMERATE_ON_STARTUP:
            try:
                await self._session.ensure_initialized()
            except (NoDeviceFoundError, InitializationFailedError) as e:
                logger.warning("Device not ready at startup: %s" % e.message)

        logger.info("DeviceSessionManager initialized successfully")

    async def shutdown(self) -> None:
        """Dispose the session and release the driver."""
        if self._session is None:
            logger.warning("DeviceSessionManager not initialized, nothing to shutdown")
            return

        await self._session.dispose()
        self._session = None

        if self._driver is not None:
            await asyncio.to_thread(self._driver.terminate)

        logger.info("DeviceSessionManager shutdown complete")

    @property
    def session(self) -> DeviceSession:
        if self._session is None:
            raise RuntimeError(
                "DeviceSessionManager not initialized. "
                "Call initialize() during application startup."
            )
        return self._session

    @property
    def is_initialized(self) -> bool:
        return self._session is not None
