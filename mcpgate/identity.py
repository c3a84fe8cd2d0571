"""User identity derived from an authenticated token."""

from __future__ import annotations

import copy
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from .errors import InvalidRequest


def _string_list(data: Mapping[str, Any], key: str) -> list[str]:
    value = data.get(key, [])
    if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
        raise InvalidRequest(f"user context: `{key}` must be a list of strings")
    return list(value)


@dataclass
class UserContext:
    """Authenticated caller with roles, groups, scopes and raw claims."""

    sub: str = ""
    tenant: str | None = None
    roles: list[str] = field(default_factory=list)
    groups: list[str] = field(default_factory=list)
    scopes: list[str] = field(default_factory=list)
    claims: Any = None

    def has_role(self, role: str) -> bool:
        """Return True if the user carries ``role``."""
        return role in self.roles

    def to_dict(self) -> dict[str, Any]:
        """Serialize to a JSON-compatible dict, omitting an unset tenant."""
        data: dict[str, Any] = {"sub": self.sub}
        if self.tenant is not None:
            data["tenant"] = self.tenant
        data["roles"] = list(self.roles)
        data["groups"] = list(self.groups)
        data["scopes"] = list(self.scopes)
        data["claims"] = copy.deepcopy(self.claims)
        return data

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> UserContext:
        """Build a user context from a dict; ``sub`` is required."""
        if not isinstance(data, Mapping):
            raise InvalidRequest("user context: expected a mapping")
        if "sub" not in data:
            raise InvalidRequest("user context: missing field `sub`")
        sub = data["sub"]
        if not isinstance(sub, str):
            raise InvalidRequest("user context: `sub` must be a string")
        tenant = data.get("tenant")
        if tenant is not None and not isinstance(tenant, str):
            raise InvalidRequest("user context: `tenant` must be a string")
        return cls(
            sub=sub,
            tenant=tenant,
            roles=_string_list(data, "roles"),
            groups=_string_list(data, "groups"),
            scopes=_string_list(data, "scopes"),
            claims=copy.deepcopy(data.get("claims")),
        )