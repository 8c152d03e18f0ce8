"""Shared recording utilities for building interaction data from raw HTTP."""

from collections.abc import Iterable
from urllib.parse import parse_qsl, quote, urlencode, urlsplit, urlunsplit

from playback_proxy.models import RecordedRequest, RecordedResponse

SECURE_SCHEME = "https://"


def group_headers(headers: Iterable[tuple[str, str]]) -> dict[str, list[str]]:
    """Collect header pairs into a name -> values mapping, keeping duplicates in order."""
    grouped: dict[str, list[str]] = {}
    for name, value in headers:
        grouped.setdefault(name, []).append(value)
    return grouped


def flatten_headers(headers: dict[str, list[str]]) -> list[tuple[str, str]]:
    return [(name, value) for name, values in headers.items() for value in values]


def build_recorded_request(
    method: str,
    url: str,
    headers: Iterable[tuple[str, str]],
    body: bytes | None,
) -> RecordedRequest:
    """Build a RecordedRequest from raw HTTP components."""
    return RecordedRequest(
        method=method.upper(),
        url=url,
        headers=group_headers(headers),
        body=body or None,
    )


def build_recorded_response(
    status_code: int,
    headers: Iterable[tuple[str, str]],
    body: bytes | None,
) -> RecordedResponse:
    """Build a RecordedResponse from raw HTTP components."""
    return RecordedResponse(
        status_code=status_code,
        headers=group_headers(headers),
        body=body or None,
    )


def has_scheme(target: str) -> bool:
    return target.startswith(("http://", "https://"))


def build_target_url(target: str) -> str:
    """Return the target as an absolute URL, defaulting to https."""
    if not has_scheme(target):
        return SECURE_SCHEME + target
    return target


def reencode_target_query(url: str) -> str:
    """Re-encode the query string of an already percent-decoded URL.

    Targets arrive through a query parameter, so their own query has been
    decoded once already. Values are parsed and encoded again (spaces become
    ``%20``) without reordering or dropping repeated keys. Raises ValueError
    when the URL or its query cannot be parsed.
    """
    parts = urlsplit(url)
    if not parts.query:
        return url
    pairs = parse_qsl(parts.query, keep_blank_values=True, errors="strict")
    query = urlencode(pairs, quote_via=quote)
    return urlunsplit(parts._replace(query=query))
