"""Request fingerprinting: normalization, key computation, and hashing."""

import hashlib

from playback_proxy.config import IGNORED_HEADERS_DEFAULT
from playback_proxy.models import FingerprintKey, RecordedRequest


def _normalize_headers(
    headers: dict[str, list[str]],
    ignore_headers: frozenset[str] = IGNORED_HEADERS_DEFAULT,
) -> list[tuple[str, list[str]]]:
    """Lowercase names, drop ignored headers, sort by name, keep value order."""
    merged: dict[str, list[str]] = {}
    for name, values in headers.items():
        lowered = name.lower()
        if lowered in ignore_headers:
            continue
        merged.setdefault(lowered, []).extend(values)
    return sorted(merged.items())


def _body_digest(body: bytes | None) -> str | None:
    if not body:
        return None
    return hashlib.sha256(body).hexdigest()


def compute_fingerprint_key(
    request: RecordedRequest,
    ignore_headers: frozenset[str] = IGNORED_HEADERS_DEFAULT,
) -> FingerprintKey:
    """Compute the canonical matching form of a request."""
    return FingerprintKey(
        method=request.method.upper(),
        url=request.url,
        headers=_normalize_headers(request.headers, ignore_headers),
        body=_body_digest(request.body),
    )


def compute_fingerprint(
    request: RecordedRequest,
    ignore_headers: frozenset[str] = IGNORED_HEADERS_DEFAULT,
) -> str:
    """Compute the SHA-256 fingerprint used as the storage key for a request.

    The digest depends only on the request itself, so a fingerprint written by
    one process is found again by any later one.
    """
    raw = compute_fingerprint_key(request, ignore_headers).model_dump_json()
    return hashlib.sha256(raw.encode()).hexdigest()
