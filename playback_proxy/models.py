"""Pydantic models for the playback proxy."""

from __future__ import annotations

from datetime import datetime
from enum import StrEnum

from pydantic import BaseModel, ConfigDict


class ProxyMode(StrEnum):
    RECORD = "record"
    PLAYBACK = "playback"


# --- Interaction models ---

# Raw bodies travel through JSON as base64.
_BYTES_AS_BASE64 = ConfigDict(ser_json_bytes="base64", val_json_bytes="base64")


class RecordedRequest(BaseModel):
    model_config = _BYTES_AS_BASE64

    method: str
    url: str
    headers: dict[str, list[str]] = {}
    body: bytes | None = None


class RecordedResponse(BaseModel):
    model_config = _BYTES_AS_BASE64

    status_code: int
    headers: dict[str, list[str]] = {}
    body: bytes | None = None


class InteractionMetadata(BaseModel):
    target: str
    duration_ms: int = 0


class Interaction(BaseModel):
    id: str
    timestamp: datetime
    request: RecordedRequest
    response: RecordedResponse
    metadata: InteractionMetadata


# --- Matching ---


class FingerprintKey(BaseModel):
    method: str
    url: str
    headers: list[tuple[str, list[str]]] = []
    body: str | None = None  # sha256 of the raw body


# --- Stats and history ---


class ProxyStats(BaseModel):
    mode: ProxyMode
    record_count: int = 0
    playback_hits: int = 0
    playback_misses: int = 0
    errors: int = 0


class HistoryEntry(BaseModel):
    id: str
    timestamp: datetime
    method: str
    url: str
    target: str
    status: int
    duration_ms: int
    saved: bool
