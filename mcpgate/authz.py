"""Authorization engines that need no configuration."""

from __future__ import annotations

from .policy import Decision, PolicyInput
from .providers import PolicyEngine


class DenyAllPolicyEngine(PolicyEngine):
    """Denies everything. The default engine when nothing is configured."""

    async def decide(self, input: PolicyInput) -> Decision:  # noqa: A002
        return Decision.deny("default-deny")

    def kind(self) -> str:
        return "deny-all"