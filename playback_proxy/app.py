"""FastAPI application factory."""

from __future__ import annotations

from datetime import UTC, datetime
from pathlib import Path

import httpx
import structlog
from fastapi import FastAPI, Request, Response

from playback_proxy.admin import create_admin_app
from playback_proxy.config import Settings
from playback_proxy.mode import ModeController
from playback_proxy.models import ProxyMode
from playback_proxy.player import Player
from playback_proxy.proxy import ProxyHandler
from playback_proxy.recorder import Recorder, create_http_client
from playback_proxy.storage import InteractionRepository, create_repository

logger = structlog.get_logger()

PROXY_METHODS = ["GET", "POST", "PUT", "PATCH", "DELETE", "HEAD", "OPTIONS"]

# Paths polled by tooling, kept out of the request log.
_QUIET_PATHS = frozenset({"/", "/health"})


def create_app(
    recordings_dir: Path | None = None,
    mode: str = "playback",
    settings: Settings | None = None,
    repository: InteractionRepository | None = None,
    http_client: httpx.AsyncClient | None = None,
) -> FastAPI:
    """Create a FastAPI application for the proxy."""
    if settings is None:
        settings = Settings(
            mode=ProxyMode(mode),
            recordings_dir=recordings_dir or Path("recordings"),
        )

    app = FastAPI(title="Playback Proxy")
    if repository is None:
        repository = create_repository(settings)
    if http_client is None:
        http_client = create_http_client(
            verify=not settings.tls_skip_verify,
            timeout=settings.proxy_timeout,
        )

    handler = ProxyHandler(
        settings=settings,
        repository=repository,
        mode_controller=ModeController(settings.mode),
        recorder=Recorder(repository, http_client=http_client, timeout=settings.proxy_timeout),
        player=Player(repository, ignore_headers=settings.fingerprint_ignore_headers),
    )
    app.state.handler = handler
    app.state.settings = settings
    app.state.repository = repository

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        response = await call_next(request)
        if request.url.path not in _QUIET_PATHS:
            logger.info(
                "request",
                client=request.client.host if request.client else None,
                method=request.method,
                url=str(request.url),
                status=response.status_code,
            )
        return response

    @app.get("/health")
    async def health() -> dict:
        return {"status": "healthy", "time": datetime.now(UTC)}

    app.mount("/admin", create_admin_app(handler))

    @app.api_route("/{path:path}", methods=PROXY_METHODS)
    async def proxy_endpoint(request: Request, path: str) -> Response:
        url = request.url.path
        if request.url.query:
            url = f"{url}?{request.url.query}"
        body = await request.body() or None

        status, resp_headers, resp_body = await handler.handle(
            method=request.method,
            url=url,
            headers=request.headers.items(),
            target=request.query_params.get("target"),
            body=body,
        )
        response = Response(content=resp_body, status_code=status)
        for name, value in resp_headers:
            response.headers.append(name, value)
        return response

    return app
