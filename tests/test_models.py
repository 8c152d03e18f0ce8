# tests/test_models.py
import json
from datetime import UTC, datetime

from playback_proxy.models import (
    FingerprintKey,
    Interaction,
    ProxyMode,
    RecordedRequest,
    RecordedResponse,
)


def test_recorded_request_defaults():
    req = RecordedRequest(method="GET", url="/api/users")
    assert req.headers == {}
    assert req.body is None


def test_recorded_request_multi_valued_headers():
    req = RecordedRequest(
        method="GET",
        url="/api/users",
        headers={"X-Tenant": ["org-123", "org-456"]},
    )
    assert req.headers["X-Tenant"] == ["org-123", "org-456"]


def test_body_serialized_as_base64():
    resp = RecordedResponse(status_code=200, body=b"\x00\xffbinary")
    data = json.loads(resp.model_dump_json())
    assert isinstance(data["body"], str)
    assert RecordedResponse.model_validate_json(resp.model_dump_json()).body == b"\x00\xffbinary"


def test_interaction_round_trip(interaction_factory):
    interaction = interaction_factory(request_body=b'{"name": "Alice"}')
    json_str = interaction.model_dump_json(indent=2)
    restored = Interaction.model_validate_json(json_str)
    assert restored == interaction


def test_interaction_json_fields(interaction_factory):
    data = json.loads(interaction_factory().model_dump_json())
    assert set(data) == {"id", "timestamp", "request", "response", "metadata"}
    assert set(data["request"]) == {"method", "url", "headers", "body"}
    assert set(data["response"]) == {"status_code", "headers", "body"}
    assert data["metadata"] == {"target": "api.users.com", "duration_ms": 150}


def test_interaction_timestamp_is_utc(interaction_factory):
    interaction = interaction_factory(timestamp=datetime(2025, 6, 1, 12, 0, tzinfo=UTC))
    restored = Interaction.model_validate_json(interaction.model_dump_json())
    assert restored.timestamp == datetime(2025, 6, 1, 12, 0, tzinfo=UTC)


def test_fingerprint_key_equality():
    key_a = FingerprintKey(method="GET", url="/api/users")
    key_b = FingerprintKey(method="GET", url="/api/users")
    assert key_a == key_b


def test_proxy_mode_values():
    assert ProxyMode("record") == ProxyMode.RECORD
    assert ProxyMode("playback") == ProxyMode.PLAYBACK
