from datetime import datetime, timezone

import pytest

from mcpgate.adapter import Endpoint, EnvVar, ImageRefSpec, Resources
from mcpgate.errors import InvalidRequest
from mcpgate.tool import Tool, ToolDefinition

MINIMAL = {
    "name": "weather",
    "image": {"reference": "registry.example.com/t:1"},
    "endpoint": {"port": 8080},
    "tool_definition": {"name": "weather", "input_schema": {"type": "object"}},
}


def test_definition_to_dict_skips_unset():
    definition = ToolDefinition(name="weather", input_schema={"type": "object"})
    assert definition.to_dict() == {"name": "weather", "input_schema": {"type": "object"}}


def test_definition_round_trip():
    definition = ToolDefinition(
        name="weather",
        title="Weather",
        description="forecast",
        input_schema={"type": "object", "properties": {"city": {"type": "string"}}},
        annotations={"readOnlyHint": True},
    )
    assert ToolDefinition.from_dict(definition.to_dict()) == definition


def test_definition_requires_input_schema():
    with pytest.raises(InvalidRequest):
        ToolDefinition.from_dict({"name": "weather"})


def test_minimal_tool_defaults():
    tool = Tool.from_dict(MINIMAL)
    assert tool.endpoint.path == "/mcp"
    assert tool.resources == Resources()
    assert tool.tags == []
    assert tool.tool_definition.input_schema == {"type": "object"}
    data = tool.to_dict()
    assert "revision" not in data
    assert "description" not in data


def test_tool_round_trip():
    tool = Tool(
        name="deploy",
        description="rolls out",
        image=ImageRefSpec("ghcr.io/owner/repo@sha256:abc"),
        endpoint=Endpoint(port=8081),
        tool_definition=ToolDefinition(name="deploy", input_schema={"type": "object"}),
        env=[EnvVar("LEVEL", "debug")],
        tags=["admin"],
        revision=2,
        created_at=datetime(2024, 1, 2, 3, 4, 5, tzinfo=timezone.utc),
    )
    assert Tool.from_dict(tool.to_dict()) == tool


def test_tool_requires_definition():
    data = {k: v for k, v in MINIMAL.items() if k != "tool_definition"}
    with pytest.raises(InvalidRequest):
        Tool.from_dict(data)