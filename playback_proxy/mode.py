"""Runtime proxy mode, shared between the proxy handler and the admin API."""

from __future__ import annotations

import structlog

from playback_proxy.models import ProxyMode
from playback_proxy.locks import ReadWriteLock

logger = structlog.get_logger()


class ModeController:
    def __init__(self, mode: ProxyMode = ProxyMode.PLAYBACK) -> None:
        self._mode = ProxyMode(mode)
        self._lock = ReadWriteLock()

    def get_mode(self) -> ProxyMode:
        with self._lock.read_locked():
            return self._mode

    def set_mode(self, mode: ProxyMode | str) -> ProxyMode:
        """Switch modes. Raises ValueError for anything but record/playback."""
        new_mode = ProxyMode(mode)
        with self._lock.write_locked():
            previous, self._mode = self._mode, new_mode
        if previous != new_mode:
            logger.info("mode_changed", previous=previous.value, mode=new_mode.value)
        return new_mode
