"""Entrypoint: load settings and serve the proxy with uvicorn."""

from __future__ import annotations

import structlog
import uvicorn

from playback_proxy.app import create_app
from playback_proxy.config import Settings
from playback_proxy.logging import setup_logging

logger = structlog.get_logger()


def main() -> None:
    settings = Settings(_cli_parse_args=True)
    setup_logging(level=settings.log_level, fmt=settings.log_format)

    app = create_app(settings=settings)
    logger.info(
        "proxy_starting",
        address=settings.address,
        mode=settings.mode.value,
        recordings_dir=str(settings.recordings_dir),
        storage_type=settings.storage_type,
        tls_verify=not settings.tls_skip_verify,
        existing_recordings=app.state.repository.count(),
    )

    uvicorn.run(app, host=settings.host, port=settings.port, log_level=settings.log_level)

    logger.info("proxy_stopped", total_recordings=app.state.repository.count())


if __name__ == "__main__":
    main()
