"""Proxy request handling: dispatch to the recorder or the player by mode."""

from __future__ import annotations

import json
import threading
import time
from collections import deque
from collections.abc import Iterable
from datetime import UTC, datetime

import structlog

from playback_proxy.config import Settings
from playback_proxy.errors import ForwardError, NoRecordingError, PlaybackError
from playback_proxy.matching import compute_fingerprint
from playback_proxy.mode import ModeController
from playback_proxy.models import HistoryEntry, Interaction, ProxyMode, ProxyStats
from playback_proxy.player import Player
from playback_proxy.recorder import Recorder
from playback_proxy.recording import flatten_headers
from playback_proxy.storage import InteractionRepository

logger = structlog.get_logger()

JSON_HEADERS = [("content-type", "application/json")]

# Regenerated by the server for each response it writes.
HOP_BY_HOP_HEADERS = frozenset(
    {
        "connection",
        "keep-alive",
        "proxy-authenticate",
        "proxy-authorization",
        "te",
        "trailer",
        "transfer-encoding",
        "upgrade",
        "content-length",
    }
)


def _error_response(status: int, message: str) -> tuple[int, list[tuple[str, str]], bytes]:
    return status, list(JSON_HEADERS), json.dumps({"error": message}).encode()


def response_headers(interaction: Interaction) -> list[tuple[str, str]]:
    return [
        (k, v)
        for k, v in flatten_headers(interaction.response.headers)
        if k.lower() not in HOP_BY_HOP_HEADERS
    ]


class ProxyHandler:
    def __init__(
        self,
        settings: Settings,
        repository: InteractionRepository,
        mode_controller: ModeController,
        recorder: Recorder,
        player: Player,
    ) -> None:
        self.settings = settings
        self.repository = repository
        self.mode_controller = mode_controller
        self.recorder = recorder
        self.player = player
        self.started_at = time.monotonic()
        self._stats_lock = threading.Lock()
        self.stats_recorded = 0
        self.stats_hits = 0
        self.stats_misses = 0
        self.stats_errors = 0
        self._history: deque[HistoryEntry] = deque(maxlen=settings.history_size)

    @property
    def mode(self) -> ProxyMode:
        return self.mode_controller.get_mode()

    def stats(self) -> ProxyStats:
        with self._stats_lock:
            return ProxyStats(
                mode=self.mode,
                record_count=self.stats_recorded,
                playback_hits=self.stats_hits,
                playback_misses=self.stats_misses,
                errors=self.stats_errors,
            )

    def history(self) -> list[HistoryEntry]:
        """Handled requests, newest first."""
        with self._stats_lock:
            return list(self._history)

    def _count(self, field: str) -> None:
        with self._stats_lock:
            setattr(self, field, getattr(self, field) + 1)

    def _add_history(self, interaction: Interaction, mode: ProxyMode, duration_ms: int) -> None:
        entry = HistoryEntry(
            id=compute_fingerprint(interaction.request, self.settings.fingerprint_ignore_headers),
            timestamp=datetime.now(UTC),
            method=interaction.request.method,
            url=interaction.request.url,
            target=interaction.metadata.target,
            status=interaction.response.status_code,
            duration_ms=duration_ms,
            saved=mode == ProxyMode.RECORD,
        )
        with self._stats_lock:
            self._history.appendleft(entry)

    async def handle(
        self,
        method: str,
        url: str,
        headers: Iterable[tuple[str, str]],
        target: str | None,
        body: bytes | None,
    ) -> tuple[int, list[tuple[str, str]], bytes]:
        """Handle a proxy request. Returns (status, headers, body)."""
        if not target:
            return _error_response(400, "missing 'target' query parameter")

        headers = list(headers)
        mode = self.mode
        start = time.perf_counter()

        if mode == ProxyMode.RECORD:
            try:
                interaction = await self.recorder.handle(method, url, headers, target, body)
            except ForwardError as exc:
                self._count("stats_errors")
                logger.warning("record_failed", method=method, url=url, target=target, error=str(exc))
                return _error_response(502, f"record failed: {exc}")
            self._count("stats_recorded")
        else:
            try:
                interaction = await self.player.handle(method, url, headers, body)
            except NoRecordingError as exc:
                self._count("stats_misses")
                logger.info("playback_miss", method=exc.method, url=exc.url, fingerprint=exc.fingerprint)
                return _error_response(404, str(exc))
            except PlaybackError as exc:
                self._count("stats_errors")
                logger.error("playback_failed", method=method, url=url, error=str(exc))
                return _error_response(500, f"playback failed: {exc}")
            self._count("stats_hits")

        self._add_history(interaction, mode, int((time.perf_counter() - start) * 1000))
        return (
            interaction.response.status_code,
            response_headers(interaction),
            interaction.response.body or b"",
        )
