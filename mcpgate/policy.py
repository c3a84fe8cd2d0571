"""Input and decision contracts for policy engines."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from .errors import InvalidRequest
from .identity import UserContext


class Plane(Enum):
    """Which API surface an action belongs to."""

    CONTROL = "control"
    DATA = "data"

    def as_str(self) -> str:
        """Return the wire name of the plane."""
        return self.value


class ResourceKind(Enum):
    """The kind of object an action targets."""

    ADAPTER = "adapter"
    TOOL = "tool"
    GATEWAY = "gateway"


@dataclass(frozen=True)
class Action:
    """The operation being attempted."""

    plane: Plane
    method: str
    tool: str | None = None


@dataclass(frozen=True)
class Resource:
    """The object the operation targets."""

    kind: ResourceKind
    name: str
    tags: list[str] = field(default_factory=list)
    required_roles: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class Env:
    """Request environment attributes."""

    ip: str | None = None
    region: str | None = None


@dataclass(frozen=True)
class PolicyInput:
    """Everything a policy engine needs to reach a decision."""

    user: UserContext
    action: Action
    resource: Resource
    env: Env = field(default_factory=Env)

    def to_dict(self) -> dict[str, Any]:
        """Serialize to a JSON-compatible dict, omitting empty optional parts."""
        action: dict[str, Any] = {
            "plane": self.action.plane.value,
            "method": self.action.method,
        }
        if self.action.tool is not None:
            action["tool"] = self.action.tool

        resource: dict[str, Any] = {
            "kind": self.resource.kind.value,
            "name": self.resource.name,
        }
        if self.resource.tags:
            resource["tags"] = list(self.resource.tags)
        if self.resource.required_roles:
            resource["required_roles"] = list(self.resource.required_roles)

        env = {
            key: value
            for key, value in (("ip", self.env.ip), ("region", self.env.region))
            if value is not None
        }
        return {
            "user": self.user.to_dict(),
            "action": action,
            "resource": resource,
            "env": env,
        }


@dataclass(frozen=True)
class Decision:
    """Outcome of a policy evaluation."""

    allow: bool
    reason: str | None = None
    policy_id: str | None = None

    @classmethod
    def permit(cls) -> Decision:
        """An unconditional allow with no reason."""
        return cls(allow=True)

    @classmethod
    def deny(cls, reason: str) -> Decision:
        """A denial carrying ``reason``."""
        return cls(allow=False, reason=reason)

    def to_dict(self) -> dict[str, Any]:
        """Serialize to a dict, omitting unset optional fields."""
        data: dict[str, Any] = {"allow": self.allow}
        if self.reason is not None:
            data["reason"] = self.reason
        if self.policy_id is not None:
            data["policy_id"] = self.policy_id
        return data

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Decision:
        """Build a decision from a dict; ``allow`` is required."""
        if not isinstance(data, Mapping):
            raise InvalidRequest("decision: expected a mapping")
        if "allow" not in data:
            raise InvalidRequest("decision: missing field `allow`")
        allow = data["allow"]
        if not isinstance(allow, bool):
            raise InvalidRequest("decision: `allow` must be a boolean")
        reason = data.get("reason")
        policy_id = data.get("policy_id")
        for key, value in (("reason", reason), ("policy_id", policy_id)):
            if value is not None and not isinstance(value, str):
                raise InvalidRequest(f"decision: `{key}` must be a string")
        return cls(allow=allow, reason=reason, policy_id=policy_id)