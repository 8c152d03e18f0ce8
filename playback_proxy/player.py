"""Playback mode: answer requests from previously recorded interactions."""

from __future__ import annotations

from collections.abc import Iterable

from playback_proxy.config import IGNORED_HEADERS_DEFAULT
from playback_proxy.errors import (
    InteractionNotFoundError,
    NoRecordingError,
    PlaybackError,
    RepositoryError,
)
from playback_proxy.matching import compute_fingerprint
from playback_proxy.models import Interaction
from playback_proxy.recording import build_recorded_request
from playback_proxy.storage import InteractionRepository


class Player:
    def __init__(
        self,
        repository: InteractionRepository,
        ignore_headers: frozenset[str] = IGNORED_HEADERS_DEFAULT,
    ) -> None:
        self.repository = repository
        self.ignore_headers = ignore_headers

    async def handle(
        self,
        method: str,
        url: str,
        headers: Iterable[tuple[str, str]],
        body: bytes | None = None,
    ) -> Interaction:
        """Return the recorded interaction whose request fingerprint matches.

        Raises NoRecordingError when nothing matches and PlaybackError when a
        recording exists but cannot be read.
        """
        recorded_req = build_recorded_request(method, url, headers, body)
        fingerprint = compute_fingerprint(recorded_req, self.ignore_headers)

        try:
            return self.repository.find(fingerprint)
        except InteractionNotFoundError:
            raise NoRecordingError(
                method=recorded_req.method,
                url=recorded_req.url,
                fingerprint=fingerprint,
            ) from None
        except RepositoryError as exc:
            raise PlaybackError(f"failed to retrieve recording: {exc}") from exc
