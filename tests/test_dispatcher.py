import base64
import unittest

from apps.fingerprint.dispatcher import (
    OperationDispatcher,
    decode_template,
    firmware_to_hex,
    serial_to_text,
)
from apps.fingerprint.models import (
    CaptureRequest,
    CompareRequest,
    RegisterRequest,
    VerifyRequest,
)
from apps.sgfp.exceptions import TemplateDecodeError
from apps.sgfp.models import SecurityLevel
from apps.sgfp.session import DeviceSession
from tests.mock_driver import FIXED_TEMPLATE, MockDriver

TEMPLATE_A = base64.b64encode(b"A" * 400).decode()
TEMPLATE_B = base64.b64encode(b"B" * 400).decode()


def make_dispatcher(**driver_options) -> tuple[OperationDispatcher, MockDriver]:
    driver = MockDriver(**driver_options)
    return OperationDispatcher(DeviceSession(driver)), driver


class TestHelpers(unittest.TestCase):
    def test_serial_number_is_trimmed(self):
        self.assertEqual(serial_to_text(b"H58220512345\0\0\0\0"), "H58220512345")
        self.assertEqual(serial_to_text(b"\0" * 16), "")

    def test_firmware_is_uppercase_hex(self):
        self.assertEqual(firmware_to_hex(0x3A7), "3A7")
        self.assertEqual(firmware_to_hex(0), "0")
        self.assertEqual(firmware_to_hex(-1), "FFFFFFFF")

    def test_decode_template_names_the_field(self):
        with self.assertRaises(TemplateDecodeError) as ctx:
            decode_template(None, "template1")
        self.assertIn("template1", ctx.exception.message)

        with self.assertRaises(TemplateDecodeError) as ctx:
            decode_template("%%%", "verifyTemplate")
        self.assertIn("verifyTemplate", ctx.exception.message)

        self.assertEqual(decode_template(TEMPLATE_A, "template1"), b"A" * 400)


class TestCapture(unittest.IsolatedAsyncioTestCase):
    async def test_no_device(self):
        dispatcher, driver = make_dispatcher(device_count=0)

        response = await dispatcher.capture(CaptureRequest())
        body = response.to_json()

        self.assertFalse(body["success"])
        self.assertIn("not initialized", body["message"])
        self.assertEqual(body["errorCode"], "NO_DEVICE")
        self.assertNotIn("imageEncoded", body)
        self.assertNotIn("templateEncoded", body)
        self.assertEqual(driver.counts["GetImageEx"], 0)

    async def test_successful_capture(self):
        dispatcher, driver = make_dispatcher()

        response = await dispatcher.capture(
            CaptureRequest(timeout_ms=5000, quality_threshold=60)
        )
        body = response.to_json()

        self.assertTrue(body["success"])
        self.assertEqual(body["message"], "Fingerprint captured successfully")
        self.assertEqual(body["quality"], 77)
        self.assertGreaterEqual(body["captureTimeMs"], 0)
        self.assertEqual(base64.b64decode(body["templateEncoded"]), FIXED_TEMPLATE)
        self.assertTrue(base64.b64decode(body["imageEncoded"]).startswith(b"\x89PNG"))
        self.assertNotIn("errorCode", body)
        self.assertEqual(driver.image_requests, [(64, 5000, 60)])

    async def test_capture_timeout(self):
        dispatcher, _ = make_dispatcher(failures={"GetImageEx": 54})

        body = (await dispatcher.capture(CaptureRequest())).to_json()

        self.assertFalse(body["success"])
        self.assertEqual(body["message"], "GetImageEx() Error # 54 : Time out")
        self.assertEqual(body["errorCode"], "OPERATION_FAILED")

    async def test_template_failure(self):
        dispatcher, _ = make_dispatcher(failures={"CreateTemplate": 101})

        body = (await dispatcher.capture(CaptureRequest())).to_json()

        self.assertFalse(body["success"])
        self.assertTrue(body["message"].startswith("Template creation failed: "))

    async def test_unopened_device_without_auto_initialization(self):
        driver = MockDriver()
        dispatcher = OperationDispatcher(DeviceSession(driver, auto_initialize=False))

        body = (await dispatcher.capture(CaptureRequest())).to_json()

        self.assertFalse(body["success"])
        self.assertEqual(body["errorCode"], "NOT_INITIALIZED")
        self.assertTrue(body["message"].startswith("Device not initialized - please check"))
        self.assertEqual(driver.calls, [])


class TestCompare(unittest.IsolatedAsyncioTestCase):
    async def test_matching_templates(self):
        dispatcher, driver = make_dispatcher(matched=True, score=120)

        body = (
            await dispatcher.compare(
                CompareRequest(template1=TEMPLATE_A, template2=TEMPLATE_B, security_level="HIGH")
            )
        ).to_json()

        self.assertEqual(
            body,
            {"success": True, "message": "Fingerprints match", "matched": True, "score": 120},
        )
        self.assertEqual(
            driver.match_requests, [(b"A" * 400, b"B" * 400, SecurityLevel.HIGH)]
        )

    async def test_non_matching_templates(self):
        dispatcher, _ = make_dispatcher(matched=False, score=15)

        body = (
            await dispatcher.compare(CompareRequest(template1=TEMPLATE_A, template2=TEMPLATE_B))
        ).to_json()

        self.assertTrue(body["success"])
        self.assertEqual(body["message"], "Fingerprints do not match")
        self.assertFalse(body["matched"])
        self.assertEqual(body["score"], 15)

    async def test_unknown_level_uses_normal(self):
        dispatcher, driver = make_dispatcher()

        await dispatcher.compare(
            CompareRequest(template1=TEMPLATE_A, template2=TEMPLATE_B, security_level="EXTREME")
        )

        self.assertIs(driver.match_requests[0][2], SecurityLevel.NORMAL)

    async def test_malformed_template_never_reaches_device(self):
        dispatcher, driver = make_dispatcher()

        body = (
            await dispatcher.compare(CompareRequest(template1="not base64!", template2=TEMPLATE_B))
        ).to_json()

        self.assertFalse(body["success"])
        self.assertEqual(body["errorCode"], "DECODE_ERROR")
        self.assertIn("template1", body["message"])
        self.assertEqual(driver.calls, [])

    async def test_missing_template(self):
        dispatcher, driver = make_dispatcher()

        body = (await dispatcher.compare(CompareRequest(template1=TEMPLATE_A))).to_json()

        self.assertFalse(body["success"])
        self.assertEqual(body["errorCode"], "DECODE_ERROR")
        self.assertIn("template2", body["message"])
        self.assertEqual(driver.calls, [])

    async def test_match_failure(self):
        dispatcher, _ = make_dispatcher(failures={"MatchTemplate": 103})

        body = (
            await dispatcher.compare(CompareRequest(template1=TEMPLATE_A, template2=TEMPLATE_B))
        ).to_json()

        self.assertFalse(body["success"])
        self.assertIn("MatchTemplate() Error # 103", body["message"])
        self.assertNotIn("matched", body)


class TestRegister(unittest.IsolatedAsyncioTestCase):
    async def test_registration_returns_first_template(self):
        dispatcher, _ = make_dispatcher(matched=True, score=150)

        body = (
            await dispatcher.register(
                RegisterRequest(template1=TEMPLATE_A, template2=TEMPLATE_B)
            )
        ).to_json()

        self.assertTrue(body["success"])
        self.assertEqual(body["message"], "Registration successful")
        self.assertTrue(body["registered"])
        self.assertEqual(body["score"], 150)
        self.assertEqual(body["registeredTemplate"], TEMPLATE_A)

    async def test_mismatch_is_not_registered(self):
        dispatcher, _ = make_dispatcher(matched=False, score=20)

        body = (
            await dispatcher.register(
                RegisterRequest(template1=TEMPLATE_A, template2=TEMPLATE_B)
            )
        ).to_json()

        self.assertTrue(body["success"])
        self.assertEqual(body["message"], "Registration failed - fingerprints do not match")
        self.assertFalse(body["registered"])
        self.assertEqual(body["score"], 20)
        self.assertNotIn("registeredTemplate", body)

    async def test_no_device(self):
        dispatcher, _ = make_dispatcher(device_count=0)

        body = (
            await dispatcher.register(
                RegisterRequest(template1=TEMPLATE_A, template2=TEMPLATE_B)
            )
        ).to_json()

        self.assertFalse(body["success"])
        self.assertIn("not initialized", body["message"])


class TestVerify(unittest.IsolatedAsyncioTestCase):
    async def test_verified(self):
        dispatcher, driver = make_dispatcher(matched=True, score=99)

        body = (
            await dispatcher.verify(
                VerifyRequest(
                    registered_template=TEMPLATE_A,
                    verify_template=TEMPLATE_B,
                    security_level="low",
                )
            )
        ).to_json()

        self.assertEqual(
            body,
            {"success": True, "message": "Verification successful", "verified": True, "score": 99},
        )
        self.assertIs(driver.match_requests[0][2], SecurityLevel.LOW)

    async def test_not_verified(self):
        dispatcher, _ = make_dispatcher(matched=False, score=3)

        body = (
            await dispatcher.verify(
                VerifyRequest(registered_template=TEMPLATE_A, verify_template=TEMPLATE_B)
            )
        ).to_json()

        self.assertTrue(body["success"])
        self.assertEqual(body["message"], "Verification failed")
        self.assertFalse(body["verified"])

    async def test_bad_verify_template(self):
        dispatcher, driver = make_dispatcher()

        body = (
            await dispatcher.verify(
                VerifyRequest(registered_template=TEMPLATE_A, verify_template="@@@")
            )
        ).to_json()

        self.assertFalse(body["success"])
        self.assertIn("verifyTemplate", body["message"])
        self.assertEqual(driver.calls, [])


class TestDeviceInfo(unittest.IsolatedAsyncioTestCase):
    async def test_device_info(self):
        dispatcher, _ = make_dispatcher()

        body = (await dispatcher.device_info()).to_json()

        self.assertEqual(
            body,
            {
                "success": True,
                "message": "Device information retrieved successfully",
                "deviceId": 100,
                "serialNumber": "H58220512345",
                "imageWidth": 8,
                "imageHeight": 8,
                "imageDPI": 500,
                "firmwareVersion": "3A7",
                "brightness": 70,
                "contrast": 30,
                "gain": 2,
            },
        )

    async def test_device_info_without_device(self):
        dispatcher, _ = make_dispatcher(device_count=0)

        body = (await dispatcher.device_info()).to_json()

        self.assertFalse(body["success"])
        self.assertIn("not initialized", body["message"])
        self.assertNotIn("serialNumber", body)


class TestDiagnostics(unittest.IsolatedAsyncioTestCase):
    async def test_reports_state_without_opening(self):
        dispatcher, driver = make_dispatcher()

        body = (await dispatcher.diagnostics()).to_json()

        self.assertTrue(body["success"])
        self.assertFalse(body["deviceInitialized"])
        self.assertIn("timestamp", body)
        self.assertEqual(driver.calls, [])

        await dispatcher.session.ensure_initialized()
        body = (await dispatcher.diagnostics()).to_json()
        self.assertTrue(body["deviceInitialized"])


if __name__ == "__main__":
    unittest.main()
