import os
from pathlib import Path
from typing import Literal

from dotenv import load_dotenv
from pydantic import BaseModel
from pydantic_settings import BaseSettings, SettingsConfigDict

load_dotenv()


class LoggingConfig(BaseModel):
    BASE_DIR: Path = Path(__file__).resolve().parent.parent

    LOG_DIR: str = os.path.join(BASE_DIR, "logs")

    LOG_STD_LEVEL: str = "INFO"

    LOG_TO_FILE: bool = True
    LOG_ROTATION: str = "100 MB"


class DeviceConfig(BaseModel):
    # "secugen" talks to the vendor library, "simulator" needs no hardware
    BACKEND: Literal["secugen", "simulator"] = "secugen"

    # Vendor shared library, OS default name is used when unset
    LIB_PATH: str | None = None

    # Fixed template length produced by SGFPM_CreateTemplate (SG400 format)
    TEMPLATE_SIZE: int = 400

    DEFAULT_TIMEOUT_MS: int = 10000
    DEFAULT_QUALITY: int = 50
    DEFAULT_SECURITY_LEVEL: str = "NORMAL"

    # Lazy initialization on first request unless enabled
    ENUMERATE_ON_STARTUP: bool = False

    # Open the device on demand before each operation, otherwise only
    # ENUMERATE_ON_STARTUP opens it
    AUTO_INITIALIZE: bool = True


class SimulatorConfig(BaseModel):
    # Whether enumeration reports the simulated scanner
    PRESENT: bool = True

    DEVICE_ID: int = 0
    SERIAL_NUMBER: str = "SIM0000000001"
    IMAGE_WIDTH: int = 260
    IMAGE_HEIGHT: int = 300
    IMAGE_DPI: int = 500
    FIRMWARE_VERSION: int = 0x1040
    BRIGHTNESS: int = 50
    CONTRAST: int = 50
    GAIN: int = 1

    QUALITY: int = 80
    MATCH_SCORE: int = 120
    MATCHED: bool = True

    CAPTURE_DELAY_MS: int = 0


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
    )

    # Don't run with debug turned on in production!
    DEBUG: bool = False

    HOST: str = "127.0.0.1"
    PORT: int = 8080

    # allowed origins
    ALLOWED_ORIGINS: list[str] = ["*"]

    OPENAPI_TITLE: str = "Fingerprint Scanner API"

    API_PREFIX: str = "/api/fingerprint"

    # Device configuration
    DEVICE: DeviceConfig = DeviceConfig()

    # Simulated device configuration
    SIMULATOR: SimulatorConfig = SimulatorConfig()

    # Logging configuration
    LOGGING: LoggingConfig = LoggingConfig()


settings = Settings()
