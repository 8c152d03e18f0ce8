"""Record mode: forward a live request to its target and persist the exchange."""

from __future__ import annotations

import time
import uuid
from collections.abc import Iterable
from datetime import UTC, datetime

import httpx
import structlog

from playback_proxy.errors import ForwardError
from playback_proxy.models import Interaction, InteractionMetadata
from playback_proxy.recording import (
    build_recorded_request,
    build_recorded_response,
    build_target_url,
    flatten_headers,
    reencode_target_query,
)
from playback_proxy.storage import InteractionRepository

logger = structlog.get_logger()

# Derived by the HTTP client from the target URL and the body.
CLIENT_MANAGED_HEADERS = frozenset({"host", "content-length"})

DEFAULT_TIMEOUT = 30.0


def create_http_client(verify: bool = False, timeout: float = DEFAULT_TIMEOUT) -> httpx.AsyncClient:
    """HTTP client for upstream calls; certificate checks are off by default."""
    return httpx.AsyncClient(verify=verify, timeout=timeout, follow_redirects=True)


def resolve_target_url(target: str) -> str:
    """Absolute, properly encoded URL for a target taken from a query parameter."""
    try:
        return reencode_target_query(build_target_url(target))
    except ValueError as exc:
        raise ForwardError(f"failed to parse target URL {target!r}: {exc}") from exc


class Recorder:
    def __init__(
        self,
        repository: InteractionRepository,
        http_client: httpx.AsyncClient | None = None,
        timeout: float = DEFAULT_TIMEOUT,
    ) -> None:
        self.repository = repository
        self.http_client = http_client or create_http_client(timeout=timeout)
        self.timeout = timeout

    async def handle(
        self,
        method: str,
        url: str,
        headers: Iterable[tuple[str, str]],
        target: str,
        body: bytes | None = None,
    ) -> Interaction:
        """Forward a request to ``target`` and return the captured interaction.

        Forwarding failures raise ForwardError and nothing is stored. A failure
        to store the interaction is logged and the interaction is still returned.
        """
        started_at = datetime.now(UTC)
        start = time.perf_counter()

        recorded_req = build_recorded_request(method, url, headers, body)
        target_url = resolve_target_url(target)

        fwd_headers = [
            (k, v)
            for k, v in flatten_headers(recorded_req.headers)
            if k.lower() not in CLIENT_MANAGED_HEADERS
        ]
        try:
            request = self.http_client.build_request(
                method=recorded_req.method,
                url=target_url,
                headers=fwd_headers,
                content=recorded_req.body,
                timeout=self.timeout,
            )
        except (httpx.InvalidURL, ValueError, TypeError) as exc:
            raise ForwardError(f"failed to create forward request: {exc}") from exc

        try:
            response = await self.http_client.send(request, stream=True)
        except httpx.HTTPError as exc:
            raise ForwardError(f"failed to forward request to {target_url}: {exc}") from exc

        try:
            resp_body = b"".join([chunk async for chunk in response.aiter_raw()])
        except httpx.HTTPError as exc:
            raise ForwardError(f"failed to read response body from {target_url}: {exc}") from exc
        finally:
            await response.aclose()

        duration_ms = int((time.perf_counter() - start) * 1000)
        interaction = Interaction(
            id=str(uuid.uuid4()),
            timestamp=started_at,
            request=recorded_req,
            response=build_recorded_response(
                response.status_code,
                response.headers.multi_items(),
                resp_body,
            ),
            metadata=InteractionMetadata(target=target, duration_ms=duration_ms),
        )

        try:
            self.repository.save(interaction)
        except Exception as exc:
            logger.warning(
                "interaction_save_failed",
                error=str(exc),
                exc_info=True,
                method=recorded_req.method,
                url=recorded_req.url,
                target=target,
            )

        return interaction
