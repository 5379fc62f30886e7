from datetime import datetime, timezone
from typing import TypeVar

import orjson
from fastapi import APIRouter, Depends, Request
from loguru import logger
from pydantic import ValidationError

from apps.utils.serialization import OrjsonResponse, deserialize_json

from .dispatcher import OperationDispatcher
from .models import (
    CaptureEchoResponse,
    CaptureRequest,
    CompareRequest,
    HealthResponse,
    RegisterRequest,
    RequestModel,
    VerifyRequest,
)

RequestT = TypeVar("RequestT", bound=RequestModel)

router = APIRouter(default_response_class=OrjsonResponse)


def get_dispatcher(request: Request) -> OperationDispatcher:
    """FastAPI dependency returning the dispatcher created at startup"""
    return request.app.state.dispatcher


async def read_body(request: Request, model: type[RequestT]) -> RequestT:
    """
    Parse a JSON body into the given request model.

    Empty, malformed or invalid bodies never fail the request, they yield
    the model's default instance instead.
    """
    body = await request.body()
    if not body.strip():
        logger.debug("Empty request body, using default %s" % model.__name__)
        return model()

    try:
        data = deserialize_json(body)
        if not isinstance(data, dict):
            raise TypeError("expected a JSON object, got %s" % type(data).__name__)
        return model.model_validate(data)
    except (orjson.JSONDecodeError, TypeError, ValidationError) as e:
        logger.warning(
            "Unusable %s body, using defaults: %s" % (model.__name__, str(e))
        )
        return model()


@router.get("/health")
async def health():
    return HealthResponse(
        success=True,
        message="Fingerprint API is running",
        timestamp=datetime.now(timezone.utc),
    ).to_json()


@router.get("/test")
async def test(dispatcher: OperationDispatcher = Depends(get_dispatcher)):
    """Diagnostics: reports whether the device is open, never opens it."""
    response = await dispatcher.diagnostics()
    return response.to_json()


@router.post("/test-capture")
async def test_capture(request: Request):
    """Echo the parsed capture request without touching the device."""
    capture_request = await read_body(request, CaptureRequest)

    return CaptureEchoResponse(
        success=True,
        message="Test capture request received",
        received_request=capture_request.model_dump(by_alias=True),
        timestamp=datetime.now(timezone.utc),
    ).to_json()


@router.get("/device-info")
async def device_info(dispatcher: OperationDispatcher = Depends(get_dispatcher)):
    response = await dispatcher.device_info()
    return response.to_json()


@router.post("/capture")
async def capture(
    request: Request,
    dispatcher: OperationDispatcher = Depends(get_dispatcher),
):
    """
    Capture a fingerprint.

    Blocks until the scanner returns an image or its own timeout expires;
    concurrent hardware requests wait their turn.
    """
    capture_request = await read_body(request, CaptureRequest)
    response = await dispatcher.capture(capture_request)
    return response.to_json()


@router.post("/compare")
async def compare(
    request: Request,
    dispatcher: OperationDispatcher = Depends(get_dispatcher),
):
    compare_request = await read_body(request, CompareRequest)
    response = await dispatcher.compare(compare_request)
    return response.to_json()


@router.post("/register")
async def register(
    request: Request,
    dispatcher: OperationDispatcher = Depends(get_dispatcher),
):
    register_request = await read_body(request, RegisterRequest)
    response = await dispatcher.register(register_request)
    return response.to_json()


@router.post("/verify")
async def verify(
    request: Request,
    dispatcher: OperationDispatcher = Depends(get_dispatcher),
):
    verify_request = await read_body(request, VerifyRequest)
    response = await dispatcher.verify(verify_request)
    return response.to_json()
