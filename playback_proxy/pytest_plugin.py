"""pytest plugin providing session-scoped playback proxy fixtures."""

from __future__ import annotations

import os
import tomllib
from pathlib import Path

import httpx
import pytest
from fastapi import FastAPI

from playback_proxy.app import create_app
from playback_proxy.models import ProxyMode


def _load_pyproject_config() -> dict:
    """Load [tool.playback-proxy] from pyproject.toml."""
    pyproject = Path("pyproject.toml")
    if not pyproject.exists():
        return {}
    with pyproject.open("rb") as f:
        data = tomllib.load(f)
    return data.get("tool", {}).get("playback-proxy", {})


def _mode_from_env() -> ProxyMode:
    if os.environ.get("PROXY_RECORD") == "1":
        return ProxyMode.RECORD
    return ProxyMode.PLAYBACK


@pytest.fixture(scope="session")
def proxy_mode() -> ProxyMode:
    """Proxy mode: PROXY_RECORD=1 -> record, otherwise playback."""
    return _mode_from_env()


@pytest.fixture(scope="session")
def proxy_app(proxy_mode: ProxyMode) -> FastAPI:
    """Session-scoped playback proxy FastAPI app."""
    config = _load_pyproject_config()
    recordings_dir = Path(config.get("recordings_dir", "recordings"))
    return create_app(recordings_dir=recordings_dir, mode=proxy_mode.value)


@pytest.fixture(scope="session")
def proxy_transport(proxy_app: FastAPI) -> httpx.ASGITransport:
    """Session-scoped ASGI transport wrapping the playback proxy app."""
    return httpx.ASGITransport(app=proxy_app)
