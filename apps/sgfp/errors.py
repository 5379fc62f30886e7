"""
Error codes of the SecuGen FDx SDK Pro (sgfplib.h) and their descriptions.
"""

from typing import Final

SGFDX_ERROR_NONE: Final[int] = 0
SGFDX_ERROR_CREATION_FAILED: Final[int] = 1
SGFDX_ERROR_FUNCTION_FAILED: Final[int] = 2
SGFDX_ERROR_INVALID_PARAM: Final[int] = 3
SGFDX_ERROR_NOT_USED: Final[int] = 4
SGFDX_ERROR_DLLLOAD_FAILED: Final[int] = 5
SGFDX_ERROR_DLLLOAD_FAILED_DRV: Final[int] = 6
SGFDX_ERROR_DLLLOAD_FAILED_ALGO: Final[int] = 7

# Device errors
SGFDX_ERROR_SYSLOAD_FAILED: Final[int] = 51
SGFDX_ERROR_INITIALIZE_FAILED: Final[int] = 52
SGFDX_ERROR_LINE_DROPPED: Final[int] = 53
SGFDX_ERROR_TIME_OUT: Final[int] = 54
SGFDX_ERROR_DEVICE_NOT_FOUND: Final[int] = 55
SGFDX_ERROR_DRVLOAD_FAILED: Final[int] = 56
SGFDX_ERROR_WRONG_IMAGE: Final[int] = 57
SGFDX_ERROR_LACK_OF_BANDWIDTH: Final[int] = 58
SGFDX_ERROR_DEV_ALREADY_OPEN: Final[int] = 59
SGFDX_ERROR_GETSN_FAILED: Final[int] = 60
SGFDX_ERROR_UNSUPPORTED_DEV: Final[int] = 61

# Extract & verification errors
SGFDX_ERROR_FEAT_NUMBER: Final[int] = 101
SGFDX_ERROR_INVALID_TEMPLATE_TYPE: Final[int] = 102
SGFDX_ERROR_INVALID_TEMPLATE1: Final[int] = 103
SGFDX_ERROR_INVALID_TEMPLATE2: Final[int] = 104
SGFDX_ERROR_EXTRACT_FAIL: Final[int] = 105
SGFDX_ERROR_MATCH_FAIL: Final[int] = 106

UNKNOWN_ERROR: Final[str] = "Unknown error"

ERROR_MESSAGES: Final[dict[int, str]] = {
    SGFDX_ERROR_NONE: "Error none",
    SGFDX_ERROR_CREATION_FAILED: "Can not create object",
    SGFDX_ERROR_FUNCTION_FAILED: "Function Failed",
    SGFDX_ERROR_INVALID_PARAM: "Invalid Parameter",
    SGFDX_ERROR_NOT_USED: "Not used function",
    SGFDX_ERROR_DLLLOAD_FAILED: "Can not create object",
    SGFDX_ERROR_DLLLOAD_FAILED_DRV: "Can not load device driver",
    SGFDX_ERROR_DLLLOAD_FAILED_ALGO: "Can not load sgfpamx.dll",
    SGFDX_ERROR_SYSLOAD_FAILED: "Can not load driver kernel file",
    SGFDX_ERROR_INITIALIZE_FAILED: "Failed to initialize the device",
    SGFDX_ERROR_LINE_DROPPED: "Data transmission is not good",
    SGFDX_ERROR_TIME_OUT: "Time out",
    SGFDX_ERROR_DEVICE_NOT_FOUND: "Device not found",
    SGFDX_ERROR_DRVLOAD_FAILED: "Can not load driver file",
    SGFDX_ERROR_WRONG_IMAGE: "Wrong Image",
    SGFDX_ERROR_LACK_OF_BANDWIDTH: "Lack of USB Bandwith",
    SGFDX_ERROR_DEV_ALREADY_OPEN: "Device is already opened",
    SGFDX_ERROR_GETSN_FAILED: "Device serial number error",
    SGFDX_ERROR_UNSUPPORTED_DEV: "Unsupported device",
    SGFDX_ERROR_FEAT_NUMBER: "The number of minutiae is too small",
    SGFDX_ERROR_INVALID_TEMPLATE_TYPE: "Template is invalid",
    SGFDX_ERROR_INVALID_TEMPLATE1: "1st template is invalid",
    SGFDX_ERROR_INVALID_TEMPLATE2: "2nd template is invalid",
    SGFDX_ERROR_EXTRACT_FAIL: "Minutiae extraction failed",
    SGFDX_ERROR_MATCH_FAIL: "Matching failed",
}


def lookup(error_code: int) -> str:
    """Human-readable description of a vendor error code, never raises."""
    return ERROR_MESSAGES.get(error_code, UNKNOWN_ERROR)


def describe(primitive: str, error_code: int) -> str:
    """
    Format a vendor failure the way it is reported to clients.

    Example:
        >>> describe("GetImage", 54)
        'GetImage() Error # 54 : Time out'
    """
    return f"{primitive}() Error # {error_code} : {lookup(error_code)}"
