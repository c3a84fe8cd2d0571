from datetime import datetime, timezone

import pytest

from mcpgate.adapter import (
    Adapter,
    Endpoint,
    EnvVar,
    HealthProbe,
    ImageRefSpec,
    Resources,
    SecretRef,
    SessionAffinity,
)
from mcpgate.errors import InvalidRequest

MINIMAL = {
    "name": "weather",
    "image": {"reference": "registry.example.com/test:1.0"},
    "endpoint": {"port": 8080},
}


def test_minimal_adapter_gets_defaults():
    adapter = Adapter.from_dict(MINIMAL)
    assert adapter.replicas == 1
    assert adapter.endpoint.path == "/mcp"
    assert adapter.session_affinity is SessionAffinity.STICKY
    assert adapter.health is None
    assert adapter.resources == Resources()
    assert adapter.labels == {}


def test_to_dict_skips_unset_optionals():
    data = Adapter.from_dict(MINIMAL).to_dict()
    for key in ("description", "upstream", "revision", "created_at", "updated_at"):
        assert key not in data
    assert data["health"] is None
    assert data["session_affinity"] == "sticky"
    assert data["resources"] == {}
    assert data["endpoint"] == {"port": 8080, "path": "/mcp"}


def test_full_round_trip():
    adapter = Adapter(
        name="weather",
        description="forecasts",
        image=ImageRefSpec("ghcr.io/owner/repo:v1"),
        endpoint=Endpoint(port=9000, path="/rpc"),
        upstream="http://localhost:9000/rpc",
        replicas=3,
        env=[EnvVar("MODE", "fast")],
        secret_refs=[SecretRef(name="k", provider="env", key="K")],
        required_roles=["mcp.viewer"],
        tags=["public"],
        resources=Resources(cpu="500m", memory="512Mi"),
        health=HealthProbe(path="/healthz", port=9000),
        session_affinity=SessionAffinity.NONE,
        labels={"team": "a"},
        revision=4,
        created_at=datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc),
        updated_at=datetime(2024, 5, 2, 8, 30, 15, 250000, tzinfo=timezone.utc),
    )
    assert Adapter.from_dict(adapter.to_dict()) == adapter


def test_timestamps_use_z_suffix():
    data = dict(MINIMAL, created_at="2024-05-01T12:00:00Z")
    assert Adapter.from_dict(data).to_dict()["created_at"] == "2024-05-01T12:00:00Z"


def test_nanosecond_timestamps_are_accepted():
    data = dict(MINIMAL, updated_at="2024-05-01T12:00:00.123456789Z")
    parsed = Adapter.from_dict(data).updated_at
    assert parsed.microsecond == 123456
    assert parsed.tzinfo is not None


def test_labels_are_sorted():
    data = dict(MINIMAL, labels={"z": "1", "a": "2"})
    assert list(Adapter.from_dict(data).to_dict()["labels"]) == ["a", "z"]


def test_missing_image_is_rejected():
    with pytest.raises(InvalidRequest):
        Adapter.from_dict({"name": "x", "endpoint": {"port": 1}})


@pytest.mark.parametrize("port", [-1, 70000, "80", True])
def test_bad_port_is_rejected(port):
    with pytest.raises(InvalidRequest):
        Adapter.from_dict(dict(MINIMAL, endpoint={"port": port}))


def test_bad_session_affinity_is_rejected():
    with pytest.raises(InvalidRequest):
        Adapter.from_dict(dict(MINIMAL, session_affinity="round_robin"))


def test_naive_timestamp_is_rejected():
    with pytest.raises(InvalidRequest):
        Adapter.from_dict(dict(MINIMAL, created_at="2024-05-01T12:00:00"))


def test_negative_replicas_rejected():
    with pytest.raises(InvalidRequest):
        Adapter.from_dict(dict(MINIMAL, replicas=-2))