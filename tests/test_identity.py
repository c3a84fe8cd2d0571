import pytest

from mcpgate.errors import InvalidRequest
from mcpgate.identity import UserContext


def test_has_role():
    user = UserContext(sub="alice", roles=["mcp.engineer", "mcp.viewer"])
    assert user.has_role("mcp.engineer")
    assert not user.has_role("mcp.admin")


def test_to_dict_omits_unset_tenant():
    data = UserContext(sub="alice", roles=["mcp.viewer"]).to_dict()
    assert "tenant" not in data
    assert data["sub"] == "alice"
    assert data["roles"] == ["mcp.viewer"]
    assert data["claims"] is None


def test_round_trip_keeps_everything():
    user = UserContext(
        sub="bob",
        tenant="acme",
        roles=["mcp.admin"],
        groups=["ops"],
        scopes=["read"],
        claims={"nested": {"k": [1, 2]}},
    )
    assert UserContext.from_dict(user.to_dict()) == user


def test_from_dict_applies_defaults():
    user = UserContext.from_dict({"sub": "carol"})
    assert user == UserContext(sub="carol")
    assert user.roles == []
    assert user.groups == []


def test_from_dict_requires_sub():
    with pytest.raises(InvalidRequest):
        UserContext.from_dict({"roles": []})


def test_from_dict_rejects_bad_roles():
    with pytest.raises(InvalidRequest):
        UserContext.from_dict({"sub": "x", "roles": "mcp.admin"})


def test_to_dict_does_not_alias_lists():
    user = UserContext(sub="dave", roles=["a"])
    data = user.to_dict()
    data["roles"].append("b")
    assert user.roles == ["a"]