"""Registered MCP server (adapter) domain model."""

from __future__ import annotations

import re
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from .errors import InvalidRequest

_U16_MAX = 0xFFFF
_U32_MAX = 0xFFFF_FFFF
_U64_MAX = 0xFFFF_FFFF_FFFF_FFFF

_FRACTION = re.compile(r"\.(\d+)")


@dataclass
class ImageRefSpec:
    """Fully-qualified OCI reference (registry/repo:tag[@digest])."""

    reference: str


@dataclass
class Endpoint:
    """Port and HTTP path the workload serves MCP on."""

    port: int
    path: str = "/mcp"


@dataclass(frozen=True)
class EnvVar:
    name: str
    value: str


@dataclass(frozen=True)
class SecretRef:
    name: str
    provider: str
    key: str


@dataclass
class Resources:
    """Kubernetes-style resource limits (``"500m"``, ``"512Mi"``)."""

    cpu: str | None = None
    memory: str | None = None


@dataclass
class HealthProbe:
    path: str
    port: int


class SessionAffinity(Enum):
    STICKY = "sticky"
    NONE = "none"


# --------------------------------------------------------------------------
# Field helpers shared with the tool model.
# --------------------------------------------------------------------------


def _mapping(value: Any, what: str) -> Mapping[str, Any]:
    if not isinstance(value, Mapping):
        raise InvalidRequest(f"{what}: expected a mapping")
    return value


def _require(data: Mapping[str, Any], key: str, what: str) -> Any:
    if key not in data:
        raise InvalidRequest(f"{what}: missing field `{key}`")
    return data[key]


def _string(value: Any, what: str) -> str:
    if not isinstance(value, str):
        raise InvalidRequest(f"{what}: expected a string")
    return value


def _opt_string(data: Mapping[str, Any], key: str, what: str) -> str | None:
    value = data.get(key)
    return None if value is None else _string(value, f"{what}.{key}")


def _unsigned(value: Any, maximum: int, what: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or not 0 <= value <= maximum:
        raise InvalidRequest(f"{what}: expected an integer in 0..={maximum}")
    return value


def _string_list(data: Mapping[str, Any], key: str, what: str) -> list[str]:
    value = data.get(key, [])
    if not isinstance(value, list):
        raise InvalidRequest(f"{what}.{key}: expected a list")
    return [_string(item, f"{what}.{key}") for item in value]


def _format_datetime(value: datetime) -> str:
    return value.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")


def _parse_datetime(value: Any, what: str) -> datetime:
    text = _string(value, what)
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    # Normalise sub-second precision to the microseconds Python can hold.
    text = _FRACTION.sub(lambda m: "." + m.group(1)[:6].ljust(6, "0"), text, count=1)
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError as exc:
        raise InvalidRequest(f"{what}: invalid timestamp {value!r}") from exc
    if parsed.tzinfo is None:
        raise InvalidRequest(f"{what}: timestamp must carry a UTC offset")
    return parsed.astimezone(timezone.utc)


def _opt_datetime(data: Mapping[str, Any], key: str, what: str) -> datetime | None:
    value = data.get(key)
    return None if value is None else _parse_datetime(value, f"{what}.{key}")


def _image_from(value: Any, what: str) -> ImageRefSpec:
    data = _mapping(value, what)
    return ImageRefSpec(reference=_string(_require(data, "reference", what), f"{what}.reference"))


def _endpoint_from(value: Any, what: str) -> Endpoint:
    data = _mapping(value, what)
    port = _unsigned(_require(data, "port", what), _U16_MAX, f"{what}.port")
    path = data.get("path", "/mcp")
    return Endpoint(port=port, path=_string(path, f"{what}.path"))


def _endpoint_to(endpoint: Endpoint) -> dict[str, Any]:
    return {"port": endpoint.port, "path": endpoint.path}


def _env_from(data: Mapping[str, Any], what: str) -> list[EnvVar]:
    items = data.get("env", [])
    if not isinstance(items, list):
        raise InvalidRequest(f"{what}.env: expected a list")
    result = []
    for item in items:
        entry = _mapping(item, f"{what}.env")
        result.append(
            EnvVar(
                name=_string(_require(entry, "name", f"{what}.env"), f"{what}.env.name"),
                value=_string(_require(entry, "value", f"{what}.env"), f"{what}.env.value"),
            )
        )
    return result


def _env_to(env: list[EnvVar]) -> list[dict[str, str]]:
    return [{"name": e.name, "value": e.value} for e in env]


def _secret_refs_from(data: Mapping[str, Any], what: str) -> list[SecretRef]:
    items = data.get("secret_refs", [])
    if not isinstance(items, list):
        raise InvalidRequest(f"{what}.secret_refs: expected a list")
    ctx = f"{what}.secret_refs"
    result = []
    for item in items:
        entry = _mapping(item, ctx)
        result.append(
            SecretRef(
                name=_string(_require(entry, "name", ctx), f"{ctx}.name"),
                provider=_string(_require(entry, "provider", ctx), f"{ctx}.provider"),
                key=_string(_require(entry, "key", ctx), f"{ctx}.key"),
            )
        )
    return result


def _secret_refs_to(refs: list[SecretRef]) -> list[dict[str, str]]:
    return [{"name": r.name, "provider": r.provider, "key": r.key} for r in refs]


def _resources_from(data: Mapping[str, Any], what: str) -> Resources:
    value = data.get("resources")
    if value is None:
        return Resources()
    entry = _mapping(value, f"{what}.resources")
    ctx = f"{what}.resources"
    return Resources(cpu=_opt_string(entry, "cpu", ctx), memory=_opt_string(entry, "memory", ctx))


def _resources_to(resources: Resources) -> dict[str, str]:
    data = {}
    if resources.cpu is not None:
        data["cpu"] = resources.cpu
    if resources.memory is not None:
        data["memory"] = resources.memory
    return data


def _health_from(data: Mapping[str, Any], what: str) -> HealthProbe | None:
    value = data.get("health")
    if value is None:
        return None
    ctx = f"{what}.health"
    entry = _mapping(value, ctx)
    return HealthProbe(
        path=_string(_require(entry, "path", ctx), f"{ctx}.path"),
        port=_unsigned(_require(entry, "port", ctx), _U16_MAX, f"{ctx}.port"),
    )


def _labels_from(data: Mapping[str, Any], what: str) -> dict[str, str]:
    value = data.get("labels", {})
    entry = _mapping(value, f"{what}.labels")
    return {
        _string(k, f"{what}.labels"): _string(v, f"{what}.labels")
        for k, v in sorted(entry.items())
    }


@dataclass(kw_only=True)
class Adapter:
    """A registered MCP server."""

    name: str
    description: str | None = None
    image: ImageRefSpec
    endpoint: Endpoint
    upstream: str | None = None
    replicas: int = 1
    env: list[EnvVar] = field(default_factory=list)
    secret_refs: list[SecretRef] = field(default_factory=list)
    required_roles: list[str] = field(default_factory=list)
    tags: list[str] = field(default_factory=list)
    resources: Resources = field(default_factory=Resources)
    health: HealthProbe | None = None
    session_affinity: SessionAffinity = SessionAffinity.STICKY
    labels: dict[str, str] = field(default_factory=dict)
    revision: int | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    def to_dict(self) -> dict[str, Any]:
        """Serialize to a JSON-compatible dict, omitting unset optional fields."""
        data: dict[str, Any] = {"name": self.name}
        if self.description is not None:
            data["description"] = self.description
        data["image"] = {"reference": self.image.reference}
        data["endpoint"] = _endpoint_to(self.endpoint)
        if self.upstream is not None:
            data["upstream"] = self.upstream
        data["replicas"] = self.replicas
        data["env"] = _env_to(self.env)
        data["secret_refs"] = _secret_refs_to(self.secret_refs)
        data["required_roles"] = list(self.required_roles)
        data["tags"] = list(self.tags)
        data["resources"] = _resources_to(self.resources)
        data["health"] = (
            None if self.health is None else {"path": self.health.path, "port": self.health.port}
        )
        data["session_affinity"] = self.session_affinity.value
        data["labels"] = dict(sorted(self.labels.items()))
        if self.revision is not None:
            data["revision"] = self.revision
        if self.created_at is not None:
            data["created_at"] = _format_datetime(self.created_at)
        if self.updated_at is not None:
            data["updated_at"] = _format_datetime(self.updated_at)
        return data

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Adapter:
        """Build an adapter from a dict, applying the documented defaults."""
        what = "adapter"
        data = _mapping(data, what)
        affinity_raw = data.get("session_affinity", SessionAffinity.STICKY.value)
        try:
            affinity = SessionAffinity(affinity_raw)
        except ValueError as exc:
            raise InvalidRequest(f"{what}.session_affinity: unknown value {affinity_raw!r}") from exc
        revision = data.get("revision")
        return cls(
            name=_string(_require(data, "name", what), f"{what}.name"),
            description=_opt_string(data, "description", what),
            image=_image_from(_require(data, "image", what), f"{what}.image"),
            endpoint=_endpoint_from(_require(data, "endpoint", what), f"{what}.endpoint"),
            upstream=_opt_string(data, "upstream", what),
            replicas=_unsigned(data.get("replicas", 1), _U32_MAX, f"{what}.replicas"),
            env=_env_from(data, what),
            secret_refs=_secret_refs_from(data, what),
            required_roles=_string_list(data, "required_roles", what),
            tags=_string_list(data, "tags", what),
            resources=_resources_from(data, what),
            health=_health_from(data, what),
            session_affinity=affinity,
            labels=_labels_from(data, what),
            revision=None if revision is None else _unsigned(revision, _U64_MAX, f"{what}.revision"),
            created_at=_opt_datetime(data, "created_at", what),
            updated_at=_opt_datetime(data, "updated_at", what),
        )