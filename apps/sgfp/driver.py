"""
SecuGen FDx SDK Pro binding
===========================

FingerprintDriver is the capability interface the device session calls into:
one method per vendor primitive, each either returning its value or raising
DriverError with the primitive name and vendor status. SecuGenDriver
implements it on top of the vendor C library through ctypes.

None of the drivers are thread-safe; DeviceSession serializes every call.
"""

import ctypes
import platform
from abc import ABC, abstractmethod

from loguru import logger

from .errors import SGFDX_ERROR_NONE
from .exceptions import DriverError, DriverLoadError
from .models import DeviceInfo, EnumeratedDevice, SecurityLevel

# Constants from sgfplib.h
SGDEV_SN_LEN = 15

# sgfplib.h declares DWORD as unsigned long
DWORD = ctypes.c_ulong
WORD = ctypes.c_ushort
BOOL = ctypes.c_int
HSGFPM = ctypes.c_void_p
BYTE_P = ctypes.POINTER(ctypes.c_ubyte)

# SGFingerInfo defaults used for template creation
SG_FINGPOS_UK = 0
SG_IMPTYPE_LP = 0


class SGDeviceList(ctypes.Structure):
    _fields_ = [
        ("DevName", DWORD),
        ("DevID", DWORD),
        ("DevType", WORD),
        ("DevSN", ctypes.c_ubyte * (SGDEV_SN_LEN + 1)),
    ]


class SGDeviceInfoParam(ctypes.Structure):
    _fields_ = [
        ("DeviceID", DWORD),
        ("DeviceSN", ctypes.c_ubyte * (SGDEV_SN_LEN + 1)),
        ("ComPort", DWORD),
        ("ComSpeed", DWORD),
        ("ImageWidth", DWORD),
        ("ImageHeight", DWORD),
        ("Contrast", DWORD),
        ("Brightness", DWORD),
        ("Gain", DWORD),
        ("ImageDPI", DWORD),
        ("FWVersion", DWORD),
    ]


class SGFingerInfo(ctypes.Structure):
    _fields_ = [
        ("FingerNumber", WORD),
        ("ViewNumber", WORD),
        ("ImpressionType", WORD),
        ("ImageQuality", WORD),
    ]


class FingerprintDriver(ABC):
    """Vendor primitives needed by the device session."""

    @abstractmethod
    def enumerate(self) -> list[EnumeratedDevice]:
        """List connected scanners in vendor enumeration order."""

    @abstractmethod
    def open(self, device: EnumeratedDevice) -> None:
        """Open the given scanner, all later calls address it."""

    @abstractmethod
    def get_device_info(self) -> DeviceInfo:
        """Read live parameters of the open scanner."""

    @abstractmethod
    def get_image(self, buffer_size: int, timeout_ms: int, quality: int) -> bytes:
        """Capture one grayscale image of buffer_size bytes."""

    @abstractmethod
    def get_image_quality(self, width: int, height: int, image: bytes) -> int:
        """Assess the quality of a captured image."""

    @abstractmethod
    def create_template(self, image: bytes, quality: int = 0) -> bytes:
        """Extract a fixed-size template from a captured image."""

    @abstractmethod
    def match_template(
        self, template1: bytes, template2: bytes, level: SecurityLevel
    ) -> bool:
        """Compare two templates at the given security level."""

    @abstractmethod
    def get_matching_score(self, template1: bytes, template2: bytes) -> int:
        """Similarity score of two templates."""

    @abstractmethod
    def close_device(self) -> None:
        """Release the open scanner."""

    def terminate(self) -> None:
        """Release library resources at process shutdown."""
        return None


class SecuGenDriver(FingerprintDriver):
    """
    ctypes binding to sgfplib.

    The library is loaded lazily on the first enumeration so that a missing
    SDK surfaces as an absent device instead of a startup failure.
    """

    def __init__(self, lib_path: str | None = None, template_size: int = 400):
        if lib_path is None:
            if platform.system() == "Windows":
                lib_path = "sgfplib.dll"
            else:
                lib_path = "libsgfplib.so"

        self.lib_path = lib_path
        self.template_size = template_size

        self.lib: ctypes.CDLL | None = None
        self._hfpm = HSGFPM()

    def _load(self) -> None:
        if self.lib is not None:
            return

        try:
            lib = ctypes.CDLL(self.lib_path)
        except OSError as e:
            raise DriverLoadError(f"Could not load library '{self.lib_path}': {e}")

        self._setup_functions(lib)
        self._check("Create", lib.SGFPM_Create(ctypes.byref(self._hfpm)))

        self.lib = lib
        logger.info(f"Loaded SecuGen library: {self.lib_path}")

    @staticmethod
    def _setup_functions(lib: ctypes.CDLL) -> None:
        """Set up the function prototypes of the SDK functions."""
        # DWORD SGFPM_Create(HSGFPM* phFPM);
        lib.SGFPM_Create.restype = DWORD
        lib.SGFPM_Create.argtypes = [ctypes.POINTER(HSGFPM)]

        # DWORD SGFPM_Terminate(HSGFPM hFpm);
        lib.SGFPM_Terminate.restype = DWORD
        lib.SGFPM_Terminate.argtypes = [HSGFPM]

        # DWORD SGFPM_EnumerateDevice(HSGFPM hFpm, DWORD* ndevs, SGDeviceList** devList);
        lib.SGFPM_EnumerateDevice.restype = DWORD
        lib.SGFPM_EnumerateDevice.argtypes = [
            HSGFPM,
            ctypes.POINTER(DWORD),
            ctypes.POINTER(ctypes.POINTER(SGDeviceList)),
        ]

        # DWORD SGFPM_Init(HSGFPM hFpm, DWORD devName);
        lib.SGFPM_Init.restype = DWORD
        lib.SGFPM_Init.argtypes = [HSGFPM, DWORD]

        # DWORD SGFPM_OpenDevice(HSGFPM hFpm, DWORD devId);
        lib.SGFPM_OpenDevice.restype = DWORD
        lib.SGFPM_OpenDevice.argtypes = [HSGFPM, DWORD]

        # DWORD SGFPM_CloseDevice(HSGFPM hFpm);
        lib.SGFPM_CloseDevice.restype = DWORD
        lib.SGFPM_CloseDevice.argtypes = [HSGFPM]

        # DWORD SGFPM_GetDeviceInfo(HSGFPM hFpm, SGDeviceInfoParam* pInfo);
        lib.SGFPM_GetDeviceInfo.restype = DWORD
        lib.SGFPM_GetDeviceInfo.argtypes = [HSGFPM, ctypes.POINTER(SGDeviceInfoParam)]

        # DWORD SGFPM_GetImageEx(HSGFPM hFpm, BYTE* buffer, DWORD time, HWND dispWnd, DWORD quality);
        lib.SGFPM_GetImageEx.restype = DWORD
        lib.SGFPM_GetImageEx.argtypes = [HSGFPM, BYTE_P, DWORD, ctypes.c_void_p, DWORD]

        # DWORD SGFPM_GetImageQuality(HSGFPM hFpm, DWORD width, DWORD height, BYTE* imgBuf, DWORD* quality);
        lib.SGFPM_GetImageQuality.restype = DWORD
        lib.SGFPM_GetImageQuality.argtypes = [
            HSGFPM,
            DWORD,
            DWORD,
            BYTE_P,
            ctypes.POINTER(DWORD),
        ]

        # DWORD SGFPM_CreateTemplate(HSGFPM hFpm, SGFingerInfo* fpInfo, BYTE* rawImage, BYTE* minTemplate);
        lib.SGFPM_CreateTemplate.restype = DWORD
        lib.SGFPM_CreateTemplate.argtypes = [
            HSGFPM,
            ctypes.POINTER(SGFingerInfo),
            BYTE_P,
            BYTE_P,
        ]

        # DWORD SGFPM_MatchTemplate(HSGFPM hFpm, BYTE* minTemplate1, BYTE* minTemplate2, DWORD secuLevel, BOOL* matched);
        lib.SGFPM_MatchTemplate.restype = DWORD
        lib.SGFPM_MatchTemplate.argtypes = [
            HSGFPM,
            BYTE_P,
            BYTE_P,
            DWORD,
            ctypes.POINTER(BOOL),
        ]

        # DWORD SGFPM_GetMatchingScore(HSGFPM hFpm, BYTE* minTemplate1, BYTE* minTemplate2, DWORD* score);
        lib.SGFPM_GetMatchingScore.restype = DWORD
        lib.SGFPM_GetMatchingScore.argtypes = [
            HSGFPM,
            BYTE_P,
            BYTE_P,
            ctypes.POINTER(DWORD),
        ]

    @staticmethod
    def _check(primitive: str, status: int) -> None:
        if status != SGFDX_ERROR_NONE:
            logger.debug(f"SGFPM_{primitive} returned {status}")
            raise DriverError(primitive, status)

    def _template_buffer(self, template: bytes) -> ctypes.Array:
        # The matcher reads a full template, short input is zero padded
        buffer = (ctypes.c_ubyte * max(len(template), self.template_size))()
        ctypes.memmove(buffer, template, len(template))
        return buffer

    def enumerate(self) -> list[EnumeratedDevice]:
        self._load()

        count = DWORD(0)
        dev_list = ctypes.POINTER(SGDeviceList)()
        self._check(
            "EnumerateDevice",
            self.lib.SGFPM_EnumerateDevice(
                self._hfpm, ctypes.byref(count), ctypes.byref(dev_list)
            ),
        )

        devices = []
        for i in range(count.value):
            entry = dev_list[i]
            devices.append(
                EnumeratedDevice(
                    device_name=entry.DevName,
                    device_id=entry.DevID,
                    device_type=entry.DevType,
                    serial_number=bytes(entry.DevSN),
                )
            )

        logger.debug(f"Enumerated {len(devices)} device(s)")
        return devices

    def open(self, device: EnumeratedDevice) -> None:
        self._load()
        self._check("Init", self.lib.SGFPM_Init(self._hfpm, device.device_name))
        self._check("OpenDevice", self.lib.SGFPM_OpenDevice(self._hfpm, device.device_id))

    def get_device_info(self) -> DeviceInfo:
        info = SGDeviceInfoParam()
        self._check("GetDeviceInfo", self.lib.SGFPM_GetDeviceInfo(self._hfpm, ctypes.byref(info)))

        return DeviceInfo(
            device_id=info.DeviceID,
            serial_number=bytes(info.DeviceSN),
            image_width=info.ImageWidth,
            image_height=info.ImageHeight,
            image_dpi=info.ImageDPI,
            firmware_version=info.FWVersion,
            brightness=info.Brightness,
            contrast=info.Contrast,
            gain=info.Gain,
        )

    def get_image(self, buffer_size: int, timeout_ms: int, quality: int) -> bytes:
        image = (ctypes.c_ubyte * buffer_size)()
        self._check(
            "GetImageEx",
            self.lib.SGFPM_GetImageEx(self._hfpm, image, timeout_ms, None, quality),
        )
        return bytes(image)

    def get_image_quality(self, width: int, height: int, image: bytes) -> int:
        buffer = (ctypes.c_ubyte * len(image)).from_buffer_copy(image)
        quality = DWORD(0)
        self._check(
            "GetImageQuality",
            self.lib.SGFPM_GetImageQuality(
                self._hfpm, width, height, buffer, ctypes.byref(quality)
            ),
        )
        return quality.value

    def create_template(self, image: bytes, quality: int = 0) -> bytes:
        buffer = (ctypes.c_ubyte * len(image)).from_buffer_copy(image)
        template = (ctypes.c_ubyte * self.template_size)()
        finger_info = SGFingerInfo(
            FingerNumber=SG_FINGPOS_UK,
            ViewNumber=1,
            ImpressionType=SG_IMPTYPE_LP,
            ImageQuality=quality,
        )
        self._check(
            "CreateTemplate",
            self.lib.SGFPM_CreateTemplate(
                self._hfpm, ctypes.byref(finger_info), buffer, template
            ),
        )
        return bytes(template)

    def match_template(
        self, template1: bytes, template2: bytes, level: SecurityLevel
    ) -> bool:
        matched = BOOL(0)
        self._check(
            "MatchTemplate",
            self.lib.SGFPM_MatchTemplate(
                self._hfpm,
                self._template_buffer(template1),
                self._template_buffer(template2),
                int(level),
                ctypes.byref(matched),
            ),
        )
        return bool(matched.value)

    def get_matching_score(self, template1: bytes, template2: bytes) -> int:
        score = DWORD(0)
        self._check(
            "GetMatchingScore",
            self.lib.SGFPM_GetMatchingScore(
                self._hfpm,
                self._template_buffer(template1),
                self._template_buffer(template2),
                ctypes.byref(score),
            ),
        )
        return score.value

    def close_device(self) -> None:
        if self.lib is None:
            return
        self._check("CloseDevice", self.lib.SGFPM_CloseDevice(self._hfpm))

    def terminate(self) -> None:
        if self.lib is None or not self._hfpm:
            return

        status = self.lib.SGFPM_Terminate(self._hfpm)
        if status != SGFDX_ERROR_NONE:
            # Don't raise here to ensure shutdown continues
            logger.error(f"SGFPM_Terminate failed with error code: {status}")

        self._hfpm = HSGFPM()
        self.lib = None
        logger.info("SecuGen library terminated")
