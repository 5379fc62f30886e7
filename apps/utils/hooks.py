from fastapi import Request, status
from loguru import logger
from starlette.exceptions import HTTPException

from apps.utils.middlewares import cors_headers
from apps.utils.serialization import OrjsonResponse


async def handle_http_exception(request: Request, exc: HTTPException):
    logger.debug("HTTP %s: %s %s" % (exc.status_code, request.method, request.url.path))

    if exc.status_code == status.HTTP_404_NOT_FOUND:
        content = {"error": "Not found"}
    elif exc.status_code == status.HTTP_405_METHOD_NOT_ALLOWED:
        content = {"error": "Method not allowed"}
    else:
        content = {"error": str(exc.detail)}

    return OrjsonResponse(
        content=content,
        status_code=exc.status_code,
        headers=getattr(exc, "headers", None),
    )


async def handle_unexpected_exception(request: Request, exc: Exception):
    logger.opt(exception=exc).error(
        "Unhandled error on %s %s: %s" % (request.method, request.url.path, str(exc))
    )

    # Sent from outside the CORS middleware, so the headers are added here
    return OrjsonResponse(
        content={"error": str(exc) or exc.__class__.__name__},
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        headers=cors_headers(
            request.headers.get("origin"), request.app.state.allowed_origins
        ),
    )
