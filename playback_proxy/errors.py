"""Error types raised by the recorder, player and repositories."""

from __future__ import annotations


class PlaybackProxyError(Exception):
    """Base class for playback proxy errors."""


class ForwardError(PlaybackProxyError):
    """The live request could not be forwarded to the target or read back."""


class RepositoryError(PlaybackProxyError):
    """Stored interactions could not be written, read or decoded."""


class InteractionNotFoundError(PlaybackProxyError, LookupError):
    """No stored interaction has the requested fingerprint."""

    def __init__(self, fingerprint: str) -> None:
        self.fingerprint = fingerprint
        super().__init__(f"interaction not found for fingerprint: {fingerprint}")


class NoRecordingError(PlaybackProxyError):
    """No stored interaction matches a request seen in playback mode.

    Carries the request line and the computed fingerprint so a miss caused by a
    header difference can be told apart from one caused by the body.
    """

    def __init__(self, method: str, url: str, fingerprint: str) -> None:
        self.method = method
        self.url = url
        self.fingerprint = fingerprint
        super().__init__(f"no recording found for {method} {url} (fingerprint: {fingerprint})")


class PlaybackError(PlaybackProxyError):
    """A stored interaction exists but could not be retrieved."""
