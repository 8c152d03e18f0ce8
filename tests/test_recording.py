# tests/test_recording.py
import pytest

from playback_proxy.recording import (
    build_recorded_request,
    build_recorded_response,
    build_target_url,
    flatten_headers,
    group_headers,
    reencode_target_query,
)


def test_group_headers_keeps_duplicates_in_order():
    grouped = group_headers([("Accept", "a"), ("X-Tag", "1"), ("X-Tag", "2")])
    assert grouped == {"Accept": ["a"], "X-Tag": ["1", "2"]}


def test_flatten_headers_inverts_grouping():
    pairs = [("Accept", "a"), ("X-Tag", "1"), ("X-Tag", "2")]
    assert flatten_headers(group_headers(pairs)) == pairs


def test_build_recorded_request():
    req = build_recorded_request(
        method="post",
        url="/api/users?target=api.users.com",
        headers=[("content-type", "application/json")],
        body=b'{"name": "Alice"}',
    )
    assert req.method == "POST"
    assert req.url == "/api/users?target=api.users.com"
    assert req.headers == {"content-type": ["application/json"]}
    assert req.body == b'{"name": "Alice"}'


def test_build_recorded_request_empty_body_is_none():
    req = build_recorded_request("GET", "/", [], b"")
    assert req.body is None


def test_build_recorded_response_keeps_raw_body():
    resp = build_recorded_response(200, [("content-encoding", "gzip")], b"\x1f\x8b\x08")
    assert resp.status_code == 200
    assert resp.body == b"\x1f\x8b\x08"
    assert resp.headers == {"content-encoding": ["gzip"]}


@pytest.mark.parametrize(
    ("target", "expected"),
    [
        ("api.example.com", "https://api.example.com"),
        ("http://api.example.com", "http://api.example.com"),
        ("https://api.example.com", "https://api.example.com"),
        ("0.0.0.0:8080", "https://0.0.0.0:8080"),
        ("api.example.com/v1/users?id=1", "https://api.example.com/v1/users?id=1"),
    ],
)
def test_build_target_url(target: str, expected: str):
    assert build_target_url(target) == expected


def test_reencode_query_encodes_spaces():
    url = "https://api.example.com/search?name=john doe"
    assert reencode_target_query(url) == "https://api.example.com/search?name=john%20doe"


def test_reencode_query_keeps_order_and_repeated_keys():
    url = "https://api.example.com/search?z=1&a=two words&z=3"
    assert reencode_target_query(url) == "https://api.example.com/search?z=1&a=two%20words&z=3"


def test_reencode_query_is_idempotent():
    url = "https://api.example.com/search?q=a b&tag=x/y&empty="
    once = reencode_target_query(url)
    assert reencode_target_query(once) == once
    assert once == "https://api.example.com/search?q=a%20b&tag=x%2Fy&empty="


def test_reencode_without_query_unchanged():
    assert reencode_target_query("https://api.example.com/v1") == "https://api.example.com/v1"


def test_reencode_invalid_url_raises():
    with pytest.raises(ValueError):
        reencode_target_query("https://[invalid/path?q=1")
