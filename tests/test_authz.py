import pytest

from mcpgate.authz import DenyAllPolicyEngine
from mcpgate.identity import UserContext
from mcpgate.policy import Action, Plane, PolicyInput, Resource, ResourceKind


def _input(roles):
    return PolicyInput(
        user=UserContext(sub="alice", roles=list(roles)),
        action=Action(plane=Plane.DATA, method="tools/call"),
        resource=Resource(kind=ResourceKind.TOOL, name="weather"),
    )


@pytest.mark.asyncio
@pytest.mark.parametrize("roles", [[], ["mcp.admin"], ["*"]])
async def test_denies_everyone(roles):
    decision = await DenyAllPolicyEngine().decide(_input(roles))
    assert decision.allow is False
    assert decision.reason == "default-deny"
    assert decision.policy_id is None


def test_kind():
    assert DenyAllPolicyEngine().kind() == "deny-all"