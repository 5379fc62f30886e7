from starlette.responses import Response
from starlette.types import ASGIApp, Receive, Scope, Send


def cors_headers(origin: str | None, allow_origins: list[str]) -> dict[str, str]:
    """Access-Control-Allow-Origin headers for a request from the given origin"""
    if "*" in allow_origins:
        return {"Access-Control-Allow-Origin": "*"}
    if origin in allow_origins:
        return {"Access-Control-Allow-Origin": origin, "Vary": "Origin"}
    return {}


class PreflightMiddleware:
    """Answer every OPTIONS request with an empty 200 and permissive CORS headers"""

    def __init__(self, app: ASGIApp, allow_origins: list[str]):
        self.app = app
        self.allow_origins = allow_origins

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http" or scope["method"] != "OPTIONS":
            await self.app(scope, receive, send)
            return

        headers = dict(
            (key.decode("latin-1").lower(), value.decode("latin-1"))
            for key, value in scope["headers"]
        )
        origin = headers.get("origin")

        response_headers = {
            "Access-Control-Allow-Methods": "GET, POST, PUT, DELETE, OPTIONS",
            "Access-Control-Allow-Headers": headers.get(
                "access-control-request-headers", "Content-Type, Authorization"
            ),
            "Access-Control-Max-Age": "600",
        }
        response_headers.update(cors_headers(origin, self.allow_origins))

        response = Response(status_code=200, headers=response_headers)
        await response(scope, receive, send)


class CaseInsensitivePathMiddleware:
    """Lower-case request paths below the given prefix before routing"""

    def __init__(self, app: ASGIApp, prefix: str):
        self.app = app
        self.prefix = prefix.lower()

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] == "http":
            path = scope["path"].lower()
            if path.startswith(self.prefix) and path != scope["path"]:
                scope = dict(scope, path=path)

        await self.app(scope, receive, send)
