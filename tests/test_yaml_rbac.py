import pytest

from mcpgate.errors import InternalError
from mcpgate.identity import UserContext
from mcpgate.policy import Action, Plane, PolicyInput, Resource, ResourceKind
from mcpgate.yaml_rbac import (
    DefaultDecision,
    YamlRbacEngine,
    YamlRbacPolicy,
    action_glob_matches,
)

POLICY = """
version: 1
default: deny
rules:
  - plane: data
    action: "tools/list"
    allow_roles: ["*"]
  - plane: data
    action: "tools/call"
    target: "weather"
    allow_roles: ["mcp.engineer"]
  - plane: data
    action: "tools/call"
    target_tags: ["mutating"]
    allow_roles: ["mcp.admin"]
"""


def user(*roles):
    return UserContext(sub="alice", roles=list(roles))


def make_input(u, method, target, tags=(), plane=Plane.DATA):
    return PolicyInput(
        user=u,
        action=Action(plane=plane, method=method),
        resource=Resource(kind=ResourceKind.TOOL, name=target, tags=list(tags)),
    )


@pytest.mark.asyncio
async def test_rbac_allow_and_default_deny():
    engine = YamlRbacEngine.from_str(POLICY, "t")
    engineer = user("mcp.engineer")

    d = await engine.decide(make_input(engineer, "tools/list", "*"))
    assert d.allow

    d = await engine.decide(make_input(engineer, "tools/call", "weather"))
    assert d.allow

    d = await engine.decide(make_input(engineer, "tools/call", "other"))
    assert not d.allow

    d = await engine.decide(make_input(engineer, "tools/call", "deleter", ["mutating"]))
    assert not d.allow

    admin = user("mcp.admin")
    d = await engine.decide(make_input(admin, "tools/call", "deleter", ["mutating"]))
    assert d.allow


@pytest.mark.asyncio
async def test_decision_reason_and_policy_id():
    engine = YamlRbacEngine.from_str(POLICY, "t")
    allowed = await engine.decide(make_input(user("mcp.engineer"), "tools/call", "weather"))
    assert allowed.reason == "rule:tools/call"
    assert allowed.policy_id == "yaml-rbac:t"
    denied = await engine.decide(make_input(user(), "tools/call", "weather"))
    assert denied.reason == "default-deny"
    assert denied.policy_id == "yaml-rbac:t"


@pytest.mark.asyncio
async def test_default_allow():
    engine = YamlRbacEngine.from_str("version: 1\ndefault: allow\n", "x")
    d = await engine.decide(make_input(user(), "anything", "any"))
    assert d.allow
    assert d.reason == "default-allow"


@pytest.mark.asyncio
async def test_plane_must_match():
    engine = YamlRbacEngine.from_str(POLICY, "t")
    d = await engine.decide(make_input(user("mcp.engineer"), "tools/list", "*", plane=Plane.CONTROL))
    assert not d.allow


@pytest.mark.asyncio
async def test_rule_without_roles_never_allows():
    text = 'version: 1\nrules:\n  - action: "*"\n'
    engine = YamlRbacEngine.from_str(text, "t")
    d = await engine.decide(make_input(user("mcp.admin"), "ping", "x"))
    assert not d.allow


def test_policy_defaults():
    policy = YamlRbacEngine.from_str("rules: []", "t").policy()
    assert policy.version == 1
    assert policy.default is DefaultDecision.DENY
    assert policy.rules == []


def test_policy_from_dict_parses_rules():
    policy = YamlRbacPolicy.from_dict(
        {"rules": [{"plane": "control", "action": "adapters.*", "allow_roles": ["mcp.admin"]}]}
    )
    rule = policy.rules[0]
    assert rule.plane is Plane.CONTROL
    assert rule.action == "adapters.*"
    assert rule.allow_roles == ["mcp.admin"]
    assert rule.target is None
    assert rule.target_tags == []


def test_unsupported_version():
    with pytest.raises(InternalError):
        YamlRbacEngine.from_str("version: 2", "t")


@pytest.mark.parametrize(
    "text",
    [
        "rules:\n  - allow_roles: ['*']\n",
        "default: maybe\n",
        "rules:\n  - plane: sideways\n    action: x\n",
        "rules: {a: 1}\n",
        "version: [1\n",
    ],
)
def test_malformed_policy(text):
    with pytest.raises(InternalError):
        YamlRbacEngine.from_str(text, "t")


def test_from_path(tmp_path):
    path = tmp_path / "policy.yaml"
    path.write_text(POLICY, encoding="utf-8")
    engine = YamlRbacEngine.from_path(path)
    assert len(engine.policy().rules) == 3


def test_from_path_missing(tmp_path):
    with pytest.raises(InternalError):
        YamlRbacEngine.from_path(tmp_path / "absent.yaml")


def test_kind():
    assert YamlRbacEngine.from_str(POLICY, "t").kind() == "yaml-rbac"


def test_action_globs():
    assert action_glob_matches("*", "anything")
    assert action_glob_matches("adapters.*", "adapters.read")
    assert action_glob_matches("adapters.*", "adapters")
    assert not action_glob_matches("adapters.*", "tools")
    assert action_glob_matches("tools/", "tools/")
    assert action_glob_matches("tools/*", "tools/call")