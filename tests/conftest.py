# tests/conftest.py
import json
import os
from collections.abc import AsyncIterator, Callable
from datetime import UTC, datetime
from pathlib import Path

import httpx
import pytest
from fastapi import FastAPI

from playback_proxy.app import create_app
from playback_proxy.models import (
    Interaction,
    InteractionMetadata,
    ProxyMode,
    RecordedRequest,
    RecordedResponse,
)


@pytest.fixture
def recordings_dir(tmp_path: Path) -> Path:
    return tmp_path / "recordings"


def make_interaction(
    method: str = "GET",
    url: str = "/api/users?target=api.users.com",
    request_headers: dict[str, list[str]] | None = None,
    request_body: bytes | None = None,
    status_code: int = 200,
    response_body: bytes | None = b'{"id": 1}',
    target: str = "api.users.com",
    timestamp: datetime | None = None,
    interaction_id: str = "test-123",
) -> Interaction:
    return Interaction(
        id=interaction_id,
        timestamp=timestamp or datetime(2025, 1, 1, tzinfo=UTC),
        request=RecordedRequest(
            method=method,
            url=url,
            headers=request_headers if request_headers is not None else {"Accept": ["application/json"]},
            body=request_body,
        ),
        response=RecordedResponse(
            status_code=status_code,
            headers={"Content-Type": ["application/json"]},
            body=response_body,
        ),
        metadata=InteractionMetadata(target=target, duration_ms=150),
    )


@pytest.fixture
def interaction_factory() -> Callable[..., Interaction]:
    return make_interaction


# --- Fixtures originally provided by the playback-proxy pytest plugin ---
# The plugin is disabled at test time (see root conftest.py) so coverage
# can track all playback_proxy module imports.  We replicate the three public
# fixtures here.


@pytest.fixture(scope="session")
def proxy_mode() -> ProxyMode:
    """Proxy mode: PROXY_RECORD=1 -> record, otherwise playback."""
    if os.environ.get("PROXY_RECORD") == "1":
        return ProxyMode.RECORD
    return ProxyMode.PLAYBACK


@pytest.fixture(scope="session")
def proxy_app(proxy_mode: ProxyMode, tmp_path_factory: pytest.TempPathFactory) -> FastAPI:
    """Session-scoped playback proxy FastAPI app."""
    return create_app(
        recordings_dir=tmp_path_factory.mktemp("plugin-recordings"),
        mode=proxy_mode.value,
    )


@pytest.fixture(scope="session")
def proxy_transport(proxy_app: FastAPI) -> httpx.ASGITransport:
    """Session-scoped ASGI transport wrapping the playback proxy app."""
    return httpx.ASGITransport(app=proxy_app)


# --- Fake upstream ---


class FakeUpstream:
    """httpx MockTransport handler that records every request it receives.

    Responses carry an unread stream, like a real transport, so the recorder
    can read the raw body.
    """

    def __init__(
        self,
        status_code: int = 200,
        headers: list[tuple[str, str]] | None = None,
        body: bytes | None = None,
    ) -> None:
        self.status_code = status_code
        self.headers = headers
        self.body = body
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        body = self.body
        if body is None:
            body = json.dumps(
                {"method": request.method, "path": request.url.path, "calls": len(self.requests)}
            ).encode()
        return httpx.Response(
            self.status_code,
            headers=self.headers or [("content-type", "application/json")],
            stream=httpx.ByteStream(body),
        )

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self))


@pytest.fixture
def upstream() -> FakeUpstream:
    return FakeUpstream()


@pytest.fixture
def upstream_factory() -> Callable[..., FakeUpstream]:
    return FakeUpstream


def _make_proxy_client(
    recordings_dir: Path, mode: str, upstream: FakeUpstream
) -> httpx.AsyncClient:
    app = create_app(
        recordings_dir=recordings_dir,
        mode=mode,
        http_client=upstream.client(),
    )
    return httpx.AsyncClient(
        transport=httpx.ASGITransport(app=app),
        base_url="http://proxy",
    )


@pytest.fixture
async def record_client(
    recordings_dir: Path, upstream: FakeUpstream
) -> AsyncIterator[httpx.AsyncClient]:
    async with _make_proxy_client(recordings_dir, "record", upstream) as client:
        yield client


@pytest.fixture
async def playback_client(
    recordings_dir: Path, upstream: FakeUpstream
) -> AsyncIterator[httpx.AsyncClient]:
    async with _make_proxy_client(recordings_dir, "playback", upstream) as client:
        yield client
