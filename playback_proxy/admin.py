"""Admin API for runtime management."""

from __future__ import annotations

import time
from datetime import datetime

from fastapi import FastAPI, HTTPException, Response
from pydantic import BaseModel

from playback_proxy.errors import InteractionNotFoundError, RepositoryError
from playback_proxy.matching import compute_fingerprint
from playback_proxy.models import HistoryEntry, ProxyMode, ProxyStats
from playback_proxy.proxy import ProxyHandler


class ModeRequest(BaseModel):
    mode: ProxyMode


class ModeResponse(BaseModel):
    mode: ProxyMode
    message: str | None = None


class StatusResponse(ProxyStats):
    uptime: str
    total_recordings: int


class HistoryResponse(BaseModel):
    count: int
    history: list[HistoryEntry]


class RecordingSummary(BaseModel):
    id: str
    uuid: str
    timestamp: datetime
    method: str
    url: str
    target: str
    status: int
    duration_ms: int


class RecordingsResponse(BaseModel):
    count: int
    recordings: list[RecordingSummary]


class ClearResponse(BaseModel):
    message: str


def format_uptime(seconds: float) -> str:
    """Format a duration as ``1h2m3s``, ``2m3s`` or ``3s``."""
    total = round(seconds)
    hours, rest = divmod(total, 3600)
    minutes, secs = divmod(rest, 60)
    if hours:
        return f"{hours}h{minutes}m{secs}s"
    if minutes:
        return f"{minutes}m{secs}s"
    return f"{secs}s"


def create_admin_app(handler: ProxyHandler) -> FastAPI:
    """Create the admin API FastAPI app."""
    admin = FastAPI(title="Playback Proxy Admin")
    repository = handler.repository
    ignore_headers = handler.settings.fingerprint_ignore_headers

    def _storage_error(exc: RepositoryError) -> HTTPException:
        return HTTPException(status_code=500, detail=str(exc))

    @admin.get("/status", response_model=StatusResponse)
    async def get_status() -> StatusResponse:
        try:
            total = repository.count()
        except RepositoryError as exc:
            raise _storage_error(exc) from exc
        return StatusResponse(
            **handler.stats().model_dump(),
            uptime=format_uptime(time.monotonic() - handler.started_at),
            total_recordings=total,
        )

    @admin.get("/mode", response_model=ModeResponse)
    async def get_mode() -> ModeResponse:
        return ModeResponse(mode=handler.mode_controller.get_mode())

    @admin.api_route("/mode", methods=["PUT", "POST"], response_model=ModeResponse)
    async def set_mode(req: ModeRequest) -> ModeResponse:
        mode = handler.mode_controller.set_mode(req.mode)
        return ModeResponse(mode=mode, message=f"Switched to {mode} mode")

    @admin.get("/history", response_model=HistoryResponse)
    async def get_history() -> HistoryResponse:
        history = handler.history()
        return HistoryResponse(count=len(history), history=history)

    @admin.get("/recordings", response_model=RecordingsResponse)
    async def list_recordings() -> RecordingsResponse:
        try:
            interactions = repository.find_all()
        except RepositoryError as exc:
            raise _storage_error(exc) from exc
        recordings = [
            RecordingSummary(
                id=compute_fingerprint(i.request, ignore_headers),
                uuid=i.id,
                timestamp=i.timestamp,
                method=i.request.method,
                url=i.request.url,
                target=i.metadata.target,
                status=i.response.status_code,
                duration_ms=i.metadata.duration_ms,
            )
            for i in interactions
        ]
        return RecordingsResponse(count=len(recordings), recordings=recordings)

    @admin.get("/recordings/{fingerprint}")
    async def get_recording(fingerprint: str) -> Response:
        # Same document as the file on disk, bodies in base64.
        try:
            interaction = repository.find(fingerprint)
        except InteractionNotFoundError as exc:
            raise HTTPException(status_code=404, detail=str(exc)) from exc
        except RepositoryError as exc:
            raise _storage_error(exc) from exc
        return Response(content=interaction.model_dump_json(), media_type="application/json")

    @admin.delete("/recordings", response_model=ClearResponse)
    async def clear_recordings() -> ClearResponse:
        try:
            repository.clear()
        except RepositoryError as exc:
            raise _storage_error(exc) from exc
        return ClearResponse(message="All recordings cleared successfully")

    return admin
