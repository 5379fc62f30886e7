import unittest
from unittest import mock

from apps.sgfp.driver import SecuGenDriver
from apps.sgfp.exceptions import DriverError, DriverLoadError
from apps.sgfp.models import EnumeratedDevice, SecurityLevel


def fake_library(**statuses) -> mock.MagicMock:
    """Library double whose SGFPM_* functions return the given statuses, 0 otherwise"""
    lib = mock.MagicMock()
    for name in [
        "Create",
        "Terminate",
        "EnumerateDevice",
        "Init",
        "OpenDevice",
        "CloseDevice",
        "GetDeviceInfo",
        "GetImageEx",
        "GetImageQuality",
        "CreateTemplate",
        "MatchTemplate",
        "GetMatchingScore",
    ]:
        getattr(lib, "SGFPM_" + name).return_value = statuses.get(name, 0)
    return lib


class TestSecuGenDriver(unittest.TestCase):
    def test_default_library_name(self):
        with mock.patch("apps.sgfp.driver.platform.system", return_value="Linux"):
            self.assertEqual(SecuGenDriver().lib_path, "libsgfplib.so")
        with mock.patch("apps.sgfp.driver.platform.system", return_value="Windows"):
            self.assertEqual(SecuGenDriver().lib_path, "sgfplib.dll")

    def test_missing_library(self):
        driver = SecuGenDriver(lib_path="/nonexistent/libsgfplib.so")

        with mock.patch("apps.sgfp.driver.ctypes.CDLL", side_effect=OSError("not found")):
            with self.assertRaises(DriverLoadError) as ctx:
                driver.enumerate()

        self.assertIn("/nonexistent/libsgfplib.so", str(ctx.exception))
        self.assertIsNone(driver.lib)

    def test_failed_create_keeps_library_unloaded(self):
        driver = SecuGenDriver()
        lib = fake_library(Create=1)

        with mock.patch("apps.sgfp.driver.ctypes.CDLL", return_value=lib):
            with self.assertRaises(DriverError) as ctx:
                driver.enumerate()

        self.assertEqual(ctx.exception.primitive, "Create")
        self.assertIsNone(driver.lib)

    def test_library_is_loaded_once(self):
        driver = SecuGenDriver(lib_path="/opt/secugen/lib/libsgfplib.so")
        lib = fake_library()

        with mock.patch("apps.sgfp.driver.ctypes.CDLL", return_value=lib) as cdll:
            self.assertEqual(driver.enumerate(), [])
            driver.enumerate()

        cdll.assert_called_once_with("/opt/secugen/lib/libsgfplib.so")
        lib.SGFPM_Create.assert_called_once()
        self.assertEqual(lib.SGFPM_EnumerateDevice.call_count, 2)

    def test_vendor_status_raises_driver_error(self):
        driver = SecuGenDriver()
        lib = fake_library(OpenDevice=59)
        device = EnumeratedDevice(device_name=0, device_id=0)

        with mock.patch("apps.sgfp.driver.ctypes.CDLL", return_value=lib):
            with self.assertRaises(DriverError) as ctx:
                driver.open(device)

        self.assertEqual(ctx.exception.primitive, "OpenDevice")
        self.assertEqual(ctx.exception.vendor_code, 59)
        lib.SGFPM_Init.assert_called_once()

    def test_capture_passes_timeout_and_quality(self):
        driver = SecuGenDriver()
        lib = fake_library()

        with mock.patch("apps.sgfp.driver.ctypes.CDLL", return_value=lib):
            driver.enumerate()

        image = driver.get_image(16, 4000, 70)

        self.assertEqual(image, b"\x00" * 16)
        args = lib.SGFPM_GetImageEx.call_args.args
        self.assertEqual(args[2], 4000)
        self.assertEqual(args[4], 70)

    def test_match_uses_level_ordinal(self):
        driver = SecuGenDriver()
        lib = fake_library()

        with mock.patch("apps.sgfp.driver.ctypes.CDLL", return_value=lib):
            driver.enumerate()

        matched = driver.match_template(b"\x01" * 10, b"\x02" * 400, SecurityLevel.HIGHER)

        self.assertFalse(matched)
        args = lib.SGFPM_MatchTemplate.call_args.args
        self.assertEqual(len(args[1]), 400)
        self.assertEqual(args[3], 7)

    def test_template_failure(self):
        driver = SecuGenDriver(template_size=400)
        lib = fake_library(CreateTemplate=101)

        with mock.patch("apps.sgfp.driver.ctypes.CDLL", return_value=lib):
            driver.enumerate()

        with self.assertRaises(DriverError) as ctx:
            driver.create_template(b"\x80" * 64, 50)

        self.assertEqual(ctx.exception.vendor_code, 101)

    def test_close_and_terminate_without_library(self):
        driver = SecuGenDriver()

        driver.close_device()
        driver.terminate()

        self.assertIsNone(driver.lib)


if __name__ == "__main__":
    unittest.main()
