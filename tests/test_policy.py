import pytest

from mcpgate.errors import InvalidRequest
from mcpgate.identity import UserContext
from mcpgate.policy import (
    Action,
    Decision,
    Env,
    Plane,
    PolicyInput,
    Resource,
    ResourceKind,
)


def test_plane_as_str():
    assert Plane.CONTROL.as_str() == "control"
    assert Plane.DATA.as_str() == "data"
    assert Plane("data") is Plane.DATA


def test_permit_and_deny():
    ok = Decision.permit()
    assert ok.allow is True
    assert ok.reason is None
    no = Decision.deny("default-deny")
    assert no.allow is False
    assert no.reason == "default-deny"
    assert no.policy_id is None


def test_decision_to_dict_skips_unset():
    assert Decision.permit().to_dict() == {"allow": True}
    assert Decision.deny("default-deny").to_dict() == {
        "allow": False,
        "reason": "default-deny",
    }


def test_decision_round_trip():
    d = Decision(allow=True, reason="rule:tools/call", policy_id="yaml-rbac:t")
    assert Decision.from_dict(d.to_dict()) == d


def test_decision_requires_allow():
    with pytest.raises(InvalidRequest):
        Decision.from_dict({"reason": "x"})


def test_decision_rejects_non_bool_allow():
    with pytest.raises(InvalidRequest):
        Decision.from_dict({"allow": "yes"})


def test_policy_input_minimal_serialization():
    user = UserContext(sub="alice")
    pi = PolicyInput(
        user=user,
        action=Action(plane=Plane.DATA, method="tools/list"),
        resource=Resource(kind=ResourceKind.TOOL, name="*"),
    )
    data = pi.to_dict()
    assert data["action"] == {"plane": "data", "method": "tools/list"}
    assert data["resource"] == {"kind": "tool", "name": "*"}
    assert data["env"] == {}
    assert data["user"] == user.to_dict()


def test_policy_input_full_serialization():
    pi = PolicyInput(
        user=UserContext(sub="alice"),
        action=Action(plane=Plane.CONTROL, method="adapters.read", tool="weather"),
        resource=Resource(
            kind=ResourceKind.ADAPTER,
            name="weather",
            tags=["public"],
            required_roles=["mcp.viewer"],
        ),
        env=Env(ip="127.0.0.1"),
    )
    data = pi.to_dict()
    assert data["action"]["tool"] == "weather"
    assert data["resource"]["tags"] == ["public"]
    assert data["resource"]["required_roles"] == ["mcp.viewer"]
    assert data["env"] == {"ip": "127.0.0.1"}