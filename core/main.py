from contextlib import asynccontextmanager

from fastapi import FastAPI
from loguru import logger
from starlette.exceptions import HTTPException
from starlette.middleware.cors import CORSMiddleware

from apps.fingerprint.dispatcher import OperationDispatcher
from apps.fingerprint.endpoints import router as fingerprint_router
from apps.sgfp.driver import FingerprintDriver
from apps.sgfp.session import DeviceSessionManager
from apps.utils.hooks import handle_http_exception, handle_unexpected_exception
from apps.utils.logger import setup_logger
from apps.utils.middlewares import CaseInsensitivePathMiddleware, PreflightMiddleware
from apps.utils.serialization import OrjsonResponse
from core.config import Settings, settings

setup_logger()

ENDPOINTS = [
    ("GET", "/health"),
    ("GET", "/device-info"),
    ("POST", "/capture"),
    ("POST", "/compare"),
    ("POST", "/register"),
    ("POST", "/verify"),
]


def create_app(
    config: Settings = settings, driver: FingerprintDriver | None = None
) -> FastAPI:
    """
    Build the API application.

    Args:
        config: Settings to use
        driver: Driver override, DEVICE.BACKEND decides when omitted
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        # One device session for the whole process
        manager = DeviceSessionManager(config, driver=driver)
        await manager.initialize()

        app.state.device_manager = manager
        app.state.dispatcher = OperationDispatcher(manager.session)

        logger.info("Fingerprint API started, available endpoints:")
        for method, path in ENDPOINTS:
            logger.info("  %-4s %s%s" % (method, config.API_PREFIX, path))

        yield

        await manager.shutdown()

        logger.info("Application shutdown complete")

    app = FastAPI(
        title=config.OPENAPI_TITLE,
        debug=config.DEBUG,
        lifespan=lifespan,
        default_response_class=OrjsonResponse,
    )

    app.state.allowed_origins = config.ALLOWED_ORIGINS

    app.include_router(fingerprint_router, prefix=config.API_PREFIX, tags=["Fingerprint"])

    app.add_exception_handler(HTTPException, handle_http_exception)
    app.add_exception_handler(Exception, handle_unexpected_exception)

    app.add_middleware(
        middleware_class=CORSMiddleware,
        allow_origins=config.ALLOWED_ORIGINS,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(CaseInsensitivePathMiddleware, prefix=config.API_PREFIX)
    app.add_middleware(PreflightMiddleware, allow_origins=config.ALLOWED_ORIGINS)

    return app


app = create_app()
