from .errors import describe


class DeviceError(Exception):
    """Base exception for all fingerprint device errors"""

    error_code: str = "DEVICE_ERROR"

    def __init__(self, message: str, error_code: str | None = None):
        self.message = message
        if error_code is not None:
            self.error_code = error_code
        super().__init__(self.message)


class NoDeviceFoundError(DeviceError):
    """Raised when enumeration finds no scanner or enumeration itself fails"""

    error_code = "NO_DEVICE"


class InitializationFailedError(DeviceError):
    """Raised when opening or reading back the selected scanner fails"""

    error_code = "INIT_FAILED"


class NotInitializedError(DeviceError):
    """Raised when a hardware call is attempted without an open device"""

    error_code = "NOT_INITIALIZED"


class OperationFailedError(DeviceError):
    """Raised when a vendor primitive returns a non-zero status"""

    error_code = "OPERATION_FAILED"

    def __init__(self, primitive: str, vendor_code: int, prefix: str = ""):
        self.primitive = primitive
        self.vendor_code = vendor_code
        super().__init__(prefix + describe(primitive, vendor_code))


class TemplateDecodeError(DeviceError):
    """Raised when an encoded template is not valid base64 text"""

    error_code = "DECODE_ERROR"


class DriverError(Exception):
    """Raised by a driver when a vendor primitive reports a failure status"""

    def __init__(self, primitive: str, vendor_code: int):
        self.primitive = primitive
        self.vendor_code = vendor_code
        super().__init__(describe(primitive, vendor_code))


class DriverLoadError(Exception):
    """Raised when the vendor shared library cannot be loaded"""

    pass
