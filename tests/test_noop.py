import pytest

from mcpgate.adapter import Adapter, ImageRefSpec
from mcpgate.adapter import Endpoint as AdapterEndpoint
from mcpgate.noop import NoopExternalProvider
from mcpgate.providers import DeploymentHandle, DeploymentKind, DeploymentSpec, Endpoint
from mcpgate.session import BackendId
from mcpgate.tool import Tool, ToolDefinition

UPSTREAM = "http://upstream.example.com/mcp"


def _adapter_spec(upstream):
    adapter = Adapter(
        name="weather",
        image=ImageRefSpec(reference="registry.example.com/weather:1"),
        endpoint=AdapterEndpoint(port=8080),
        upstream=upstream,
    )
    return DeploymentSpec(name="weather", kind=DeploymentKind.ADAPTER, adapter=adapter)


def _tool_spec():
    tool = Tool(
        name="calc",
        image=ImageRefSpec(reference="registry.example.com/calc:1"),
        endpoint=AdapterEndpoint(port=8080),
        tool_definition=ToolDefinition(name="calc", input_schema={"type": "object"}),
    )
    return DeploymentSpec(name="calc", kind=DeploymentKind.TOOL, tool=tool)


@pytest.mark.asyncio
async def test_apply_uses_adapter_upstream():
    provider = NoopExternalProvider()
    handle = await provider.apply(_adapter_spec(UPSTREAM))
    assert handle == DeploymentHandle(id="weather", namespace=None, endpoint_url=UPSTREAM)


@pytest.mark.asyncio
async def test_apply_tool_has_no_url():
    handle = await NoopExternalProvider().apply(_tool_spec())
    assert handle.id == "calc"
    assert handle.endpoint_url is None


@pytest.mark.asyncio
async def test_endpoints_round_trip():
    provider = NoopExternalProvider()
    handle = await provider.apply(_adapter_spec(UPSTREAM))
    assert await provider.endpoints(handle) == [
        Endpoint(url=UPSTREAM, backend_id=BackendId("weather"))
    ]


@pytest.mark.asyncio
async def test_endpoints_empty_without_url():
    provider = NoopExternalProvider()
    handle = await provider.apply(_adapter_spec(None))
    assert await provider.endpoints(handle) == []


@pytest.mark.asyncio
async def test_status_is_external_and_ready():
    provider = NoopExternalProvider()
    handle = DeploymentHandle(id="weather")
    await provider.delete(handle)
    status = await provider.status(handle)
    assert status.ready
    assert status.replicas == 1
    assert status.ready_replicas == status.replicas
    assert status.message == "external"


@pytest.mark.asyncio
async def test_logs_are_empty():
    stream = await NoopExternalProvider().logs(DeploymentHandle(id="weather"))
    lines = [line async for line in stream]
    assert lines == []


def test_kind():
    assert NoopExternalProvider().kind() == "noop-external"