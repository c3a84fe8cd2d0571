"""Role-based access control driven by a YAML policy file.

Policy file schema::

    version: 1
    default: deny        # deny | allow
    rules:
      - plane: data      # control | data (optional)
        action: "tools/call"
        target: "weather"           # exact target name (optional)
        target_tags: ["public"]     # all listed tags must be present (optional)
        allow_roles: ["mcp.engineer", "*"]   # "*" means any authenticated user

Actions match exactly, or with ``*`` as a terminal wildcard
(``adapters.*`` matches ``adapters`` and ``adapters.read``).
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any

import yaml

from .errors import InternalError
from .policy import Decision, Plane, PolicyInput
from .providers import PolicyEngine

_U32_MAX = 0xFFFF_FFFF


def _fail(message: str) -> InternalError:
    return InternalError(f"policy yaml: {message}")


def _string_list(data: Mapping[str, Any], key: str, what: str) -> list[str]:
    value = data.get(key)
    if value is None:
        return []
    if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
        raise _fail(f"{what}.{key}: expected a list of strings")
    return list(value)


def _opt_string(data: Mapping[str, Any], key: str, what: str) -> str | None:
    value = data.get(key)
    if value is not None and not isinstance(value, str):
        raise _fail(f"{what}.{key}: expected a string")
    return value


class DefaultDecision(Enum):
    """Outcome when no rule matches."""

    ALLOW = "allow"
    DENY = "deny"


@dataclass
class Rule:
    """A single allow rule."""

    action: str
    plane: Plane | None = None
    target: str | None = None
    target_tags: list[str] = field(default_factory=list)
    allow_roles: list[str] = field(default_factory=list)

    @classmethod
    def _from_dict(cls, data: Any, index: int) -> Rule:
        what = f"rules[{index}]"
        if not isinstance(data, Mapping):
            raise _fail(f"{what}: expected a mapping")
        if "action" not in data:
            raise _fail(f"{what}: missing field `action`")
        action = data["action"]
        if not isinstance(action, str):
            raise _fail(f"{what}.action: expected a string")
        plane_raw = data.get("plane")
        plane = None
        if plane_raw is not None:
            try:
                plane = Plane(plane_raw)
            except ValueError as exc:
                raise _fail(f"{what}.plane: unknown variant {plane_raw!r}") from exc
        return cls(
            action=action,
            plane=plane,
            target=_opt_string(data, "target", what),
            target_tags=_string_list(data, "target_tags", what),
            allow_roles=_string_list(data, "allow_roles", what),
        )

    def matches(self, input: PolicyInput) -> bool:  # noqa: A002
        """True if plane, action, target and tags all fit ``input``."""
        if self.plane is not None and self.plane is not input.action.plane:
            return False
        if not action_glob_matches(self.action, input.action.method):
            return False
        if self.target is not None and self.target != input.resource.name:
            return False
        return all(tag in input.resource.tags for tag in self.target_tags)

    def roles_allowed(self, input: PolicyInput) -> bool:  # noqa: A002
        """True if the rule admits ``*`` or one of the user's roles."""
        return any(role == "*" or role in input.user.roles for role in self.allow_roles)


@dataclass
class YamlRbacPolicy:
    """Parsed policy document."""

    version: int = 1
    default: DefaultDecision = DefaultDecision.DENY
    rules: list[Rule] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Any) -> YamlRbacPolicy:
        """Build a policy from a parsed YAML mapping."""
        if not isinstance(data, Mapping):
            raise _fail("expected a mapping at the top level")
        version = data.get("version", 1)
        if isinstance(version, bool) or not isinstance(version, int) or not 0 <= version <= _U32_MAX:
            raise _fail("version: expected an unsigned integer")
        default_raw = data.get("default", DefaultDecision.DENY.value)
        try:
            default = DefaultDecision(default_raw)
        except ValueError as exc:
            raise _fail(f"default: unknown variant {default_raw!r}") from exc
        rules_raw = data.get("rules")
        if rules_raw is None:
            rules_raw = []
        if not isinstance(rules_raw, list):
            raise _fail("rules: expected a list")
        rules = [Rule._from_dict(item, index) for index, item in enumerate(rules_raw)]
        return cls(version=version, default=default, rules=rules)


class YamlRbacEngine(PolicyEngine):
    """Policy engine evaluating a :class:`YamlRbacPolicy` in rule order."""

    def __init__(self, policy: YamlRbacPolicy, source: str) -> None:
        self._policy = policy
        self._source = source

    def __repr__(self) -> str:
        return f"YamlRbacEngine(source={self._source!r}, rules={len(self._policy.rules)})"

    @classmethod
    def from_str(cls, yaml_text: str, source: str) -> YamlRbacEngine:
        """Parse policy text; ``source`` names it in decisions."""
        try:
            data = yaml.safe_load(yaml_text)
        except yaml.YAMLError as exc:
            raise _fail(str(exc)) from exc
        policy = YamlRbacPolicy.from_dict(data)
        if policy.version != 1:
            raise InternalError(f"policy version {policy.version} unsupported (expected 1)")
        return cls(policy, str(source))

    @classmethod
    def from_path(cls, path: str | os.PathLike[str]) -> YamlRbacEngine:
        """Read and parse a policy file."""
        p = Path(path)
        try:
            text = p.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            raise InternalError(f"policy read {p}: {exc}") from exc
        return cls.from_str(text, str(p))

    def policy(self) -> YamlRbacPolicy:
        """The parsed policy."""
        return self._policy

    async def decide(self, input: PolicyInput) -> Decision:  # noqa: A002
        policy_id = f"yaml-rbac:{self._source}"
        for rule in self._policy.rules:
            if rule.matches(input) and rule.roles_allowed(input):
                return Decision(allow=True, reason=f"rule:{rule.action}", policy_id=policy_id)
        if self._policy.default is DefaultDecision.ALLOW:
            return Decision(allow=True, reason="default-allow", policy_id=policy_id)
        return Decision(allow=False, reason="default-deny", policy_id=policy_id)

    def kind(self) -> str:
        return "yaml-rbac"


def action_glob_matches(pattern: str, action: str) -> bool:
    """Match ``action`` against ``pattern`` with a terminal ``*`` wildcard."""
    if pattern == "*" or pattern == action:
        return True
    if pattern.endswith(".*"):
        prefix = pattern[:-2]
        return action == prefix or action.startswith(f"{prefix}.")
    if pattern.endswith("*"):
        return action.startswith(pattern[:-1])
    return False