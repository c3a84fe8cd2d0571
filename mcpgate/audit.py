"""Audit record schema."""

from __future__ import annotations

import json
from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from .errors import InvalidRequest
from .identity import UserContext
from .policy import Plane

_U64_MAX = 0xFFFF_FFFF_FFFF_FFFF


def _mapping(value: Any, what: str) -> Mapping[str, Any]:
    if not isinstance(value, Mapping):
        raise InvalidRequest(f"{what}: expected a mapping")
    return value


def _string(data: Mapping[str, Any], key: str, what: str) -> str:
    if key not in data:
        raise InvalidRequest(f"{what}: missing field `{key}`")
    value = data[key]
    if not isinstance(value, str):
        raise InvalidRequest(f"{what}.{key}: expected a string")
    return value


def _opt_string(data: Mapping[str, Any], key: str, what: str) -> str | None:
    value = data.get(key)
    if value is not None and not isinstance(value, str):
        raise InvalidRequest(f"{what}.{key}: expected a string")
    return value


@dataclass
class AuditUser:
    """The caller as recorded in the audit trail."""

    sub: str
    tenant: str | None = None
    roles: list[str] = field(default_factory=list)

    @classmethod
    def from_user(cls, user: UserContext) -> AuditUser:
        """Copy the auditable fields out of a user context."""
        return cls(sub=user.sub, tenant=user.tenant, roles=list(user.roles))


@dataclass
class AuditTarget:
    kind: str
    name: str


class AuditDecision(Enum):
    ALLOW = "allow"
    DENY = "deny"


@dataclass(kw_only=True)
class AuditRecord:
    """One audited request."""

    ts: str
    trace_id: str
    user: AuditUser
    plane: Plane
    action: str
    target: AuditTarget
    decision: AuditDecision
    policy_id: str | None = None
    latency_ms: int
    upstream_status: str
    request_hash: str
    error: str | None = None

    def to_dict(self) -> dict[str, Any]:
        """Serialize to a JSON-compatible dict, omitting unset optional fields."""
        user: dict[str, Any] = {"sub": self.user.sub}
        if self.user.tenant is not None:
            user["tenant"] = self.user.tenant
        user["roles"] = list(self.user.roles)
        data: dict[str, Any] = {
            "ts": self.ts,
            "trace_id": self.trace_id,
            "user": user,
            "plane": self.plane.value,
            "action": self.action,
            "target": {"kind": self.target.kind, "name": self.target.name},
            "decision": self.decision.value,
        }
        if self.policy_id is not None:
            data["policy_id"] = self.policy_id
        data["latency_ms"] = self.latency_ms
        data["upstream_status"] = self.upstream_status
        data["request_hash"] = self.request_hash
        if self.error is not None:
            data["error"] = self.error
        return data

    def to_json(self) -> str:
        """Render as a single compact JSON line."""
        return json.dumps(self.to_dict(), separators=(",", ":"), ensure_ascii=False)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> AuditRecord:
        """Build a record from a dict as produced by :meth:`to_dict`."""
        what = "audit record"
        data = _mapping(data, what)

        user_data = _mapping(data.get("user"), f"{what}.user")
        roles = user_data.get("roles", [])
        if not isinstance(roles, list) or not all(isinstance(r, str) for r in roles):
            raise InvalidRequest(f"{what}.user.roles: expected a list of strings")
        user = AuditUser(
            sub=_string(user_data, "sub", f"{what}.user"),
            tenant=_opt_string(user_data, "tenant", f"{what}.user"),
            roles=list(roles),
        )

        target_data = _mapping(data.get("target"), f"{what}.target")
        target = AuditTarget(
            kind=_string(target_data, "kind", f"{what}.target"),
            name=_string(target_data, "name", f"{what}.target"),
        )

        try:
            plane = Plane(_string(data, "plane", what))
            decision = AuditDecision(_string(data, "decision", what))
        except ValueError as exc:
            raise InvalidRequest(f"{what}: {exc}") from exc

        latency = data.get("latency_ms")
        if isinstance(latency, bool) or not isinstance(latency, int) or not 0 <= latency <= _U64_MAX:
            raise InvalidRequest(f"{what}.latency_ms: expected an unsigned integer")

        return cls(
            ts=_string(data, "ts", what),
            trace_id=_string(data, "trace_id", what),
            user=user,
            plane=plane,
            action=_string(data, "action", what),
            target=target,
            decision=decision,
            policy_id=_opt_string(data, "policy_id", what),
            latency_ms=latency,
            upstream_status=_string(data, "upstream_status", what),
            request_hash=_string(data, "request_hash", what),
            error=_opt_string(data, "error", what),
        )