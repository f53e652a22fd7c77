"""ASGI app hosting the MCP Streamable HTTP endpoint."""

from __future__ import annotations

import contextlib
import secrets
from collections.abc import AsyncIterator, Awaitable, Callable

from mcp.server.streamable_http_manager import StreamableHTTPSessionManager
from starlette.applications import Starlette
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse, Response
from starlette.routing import Route
from starlette.types import Receive, Scope, Send

from .config import AppConfig, load_config
from .errors import ConfigError
from .mcp_server import create_app_context, create_mcp_server
from .settings import Settings


class StreamableHTTPASGIApp:
    """Plain ASGI endpoint so /mcp is served without a trailing-slash redirect."""

    def __init__(self, session_manager: StreamableHTTPSessionManager) -> None:
        self._session_manager = session_manager

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        await self._session_manager.handle_request(scope, receive, send)


class ApiKeyMiddleware(BaseHTTPMiddleware):
    def __init__(self, app: Starlette, *, api_key: str) -> None:
        super().__init__(app)
        self._api_key = api_key

    @staticmethod
    def _bypass_auth(path: str) -> bool:
        # Allow unauthenticated health checks and OAuth discovery probes.
        if path == "/health":
            return True
        if path.startswith("/.well-known/"):
            return True
        return False

    async def dispatch(
        self,
        request: Request,
        call_next: Callable[[Request], Awaitable[Response]],
    ) -> Response:
        if self._bypass_auth(request.url.path):
            return await call_next(request)
        presented = request.headers.get("x-api-key")
        if not presented or not secrets.compare_digest(presented, self._api_key):
            return JSONResponse({"error": "unauthorized"}, status_code=401)
        return await call_next(request)


async def health(_: Request) -> Response:
    return JSONResponse({"ok": True})


def create_app(settings: Settings | None = None, config: AppConfig | None = None) -> Starlette:
    settings = settings or Settings()
    if not settings.mcp_api_key:
        raise ConfigError("MCP_API_KEY is required for the http transport")

    app_ctx = create_app_context(
        config or load_config(settings.config_path),
        timeout_seconds=settings.http_timeout_seconds,
    )
    server = create_mcp_server(app_ctx.tools, app_ctx.sync_gate)
    session_manager = StreamableHTTPSessionManager(
        app=server,
        json_response=True,
        stateless=True,
    )

    @contextlib.asynccontextmanager
    async def lifespan(_: Starlette) -> AsyncIterator[None]:
        try:
            async with session_manager.run():
                yield
        finally:
            await app_ctx.anki.aclose()

    app = Starlette(
        routes=[
            Route("/health", endpoint=health, methods=["GET"]),
            Route("/mcp", endpoint=StreamableHTTPASGIApp(session_manager)),
        ],
        lifespan=lifespan,
    )
    app.add_middleware(ApiKeyMiddleware, api_key=settings.mcp_api_key)
    return app
