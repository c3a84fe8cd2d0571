"""Registered tool domain model."""

from __future__ import annotations

import copy
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from .adapter import (
    _U64_MAX,
    Endpoint,
    EnvVar,
    ImageRefSpec,
    Resources,
    SecretRef,
    _endpoint_from,
    _endpoint_to,
    _env_from,
    _env_to,
    _format_datetime,
    _image_from,
    _mapping,
    _opt_datetime,
    _opt_string,
    _require,
    _resources_from,
    _resources_to,
    _secret_refs_from,
    _secret_refs_to,
    _string,
    _string_list,
    _unsigned,
)


@dataclass(kw_only=True)
class ToolDefinition:
    """MCP tool definition as advertised in ``tools/list``."""

    name: str
    title: str | None = None
    description: str | None = None
    input_schema: Any
    annotations: Any = None

    def to_dict(self) -> dict[str, Any]:
        """Serialize to a dict, omitting unset optional fields."""
        data: dict[str, Any] = {"name": self.name}
        if self.title is not None:
            data["title"] = self.title
        if self.description is not None:
            data["description"] = self.description
        data["input_schema"] = copy.deepcopy(self.input_schema)
        if self.annotations is not None:
            data["annotations"] = copy.deepcopy(self.annotations)
        return data

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> ToolDefinition:
        """Build a definition; ``name`` and ``input_schema`` are required."""
        what = "tool_definition"
        data = _mapping(data, what)
        return cls(
            name=_string(_require(data, "name", what), f"{what}.name"),
            title=_opt_string(data, "title", what),
            description=_opt_string(data, "description", what),
            input_schema=copy.deepcopy(_require(data, "input_schema", what)),
            annotations=copy.deepcopy(data.get("annotations")),
        )


@dataclass(kw_only=True)
class Tool:
    """A registered single-tool workload."""

    name: str
    description: str | None = None
    image: ImageRefSpec
    endpoint: Endpoint
    tool_definition: ToolDefinition
    env: list[EnvVar] = field(default_factory=list)
    secret_refs: list[SecretRef] = field(default_factory=list)
    required_roles: list[str] = field(default_factory=list)
    tags: list[str] = field(default_factory=list)
    resources: Resources = field(default_factory=Resources)
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
        data["tool_definition"] = self.tool_definition.to_dict()
        data["env"] = _env_to(self.env)
        data["secret_refs"] = _secret_refs_to(self.secret_refs)
        data["required_roles"] = list(self.required_roles)
        data["tags"] = list(self.tags)
        data["resources"] = _resources_to(self.resources)
        if self.revision is not None:
            data["revision"] = self.revision
        if self.created_at is not None:
            data["created_at"] = _format_datetime(self.created_at)
        if self.updated_at is not None:
            data["updated_at"] = _format_datetime(self.updated_at)
        return data

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Tool:
        """Build a tool from a dict, applying the documented defaults."""
        what = "tool"
        data = _mapping(data, what)
        revision = data.get("revision")
        return cls(
            name=_string(_require(data, "name", what), f"{what}.name"),
            description=_opt_string(data, "description", what),
            image=_image_from(_require(data, "image", what), f"{what}.image"),
            endpoint=_endpoint_from(_require(data, "endpoint", what), f"{what}.endpoint"),
            tool_definition=ToolDefinition.from_dict(_require(data, "tool_definition", what)),
            env=_env_from(data, what),
            secret_refs=_secret_refs_from(data, what),
            required_roles=_string_list(data, "required_roles", what),
            tags=_string_list(data, "tags", what),
            resources=_resources_from(data, what),
            revision=None if revision is None else _unsigned(revision, _U64_MAX, f"{what}.revision"),
            created_at=_opt_datetime(data, "created_at", what),
            updated_at=_opt_datetime(data, "updated_at", what),
        )