# mcpgate

Building blocks for a gateway that sits in front of Model Context Protocol
(MCP) servers: domain models, policy evaluation, audit records and
deployment providers. Everything is a library; the package has no command
line entry point.

## What is in the package

| module               | contents |
|----------------------|----------|
| `mcpgate.errors`     | `McpError` and its subclasses `Unauthenticated`, `Forbidden`, `NotFound`, `Conflict`, `InvalidRequest`, `UpstreamUnavailable`, `UpstreamTimeout`, `RateLimited`, `InternalError` |
| `mcpgate.identity`   | `UserContext` (`sub`, `tenant`, `roles`, `groups`, `scopes`, `claims`) with `has_role`, `to_dict`, `from_dict` |
| `mcpgate.policy`     | `Plane`, `ResourceKind`, `Action`, `Resource`, `Env`, `PolicyInput`, `Decision` |
| `mcpgate.session`    | `SessionId`, `BackendId`, `Binding` |
| `mcpgate.adapter`    | `Adapter` (a registered MCP server) and its parts: `ImageRefSpec`, `Endpoint`, `EnvVar`, `SecretRef`, `Resources`, `HealthProbe`, `SessionAffinity` |
| `mcpgate.tool`       | `Tool` and `ToolDefinition` |
| `mcpgate.audit`      | `AuditRecord`, `AuditUser`, `AuditTarget`, `AuditDecision` |
| `mcpgate.providers`  | abstract interfaces `IdProvider`, `PolicyEngine`, `DeploymentProvider`, `MetadataStore`, `SessionStore`, `SecretProvider`, `AuditSink`, `ImageRegistry`, their data classes, and `internal(err)` |
| `mcpgate.authz`      | `DenyAllPolicyEngine` |
| `mcpgate.yaml_rbac`  | `YamlRbacEngine`, `YamlRbacPolicy`, `Rule`, `DefaultDecision`, `action_glob_matches` |
| `mcpgate.audit_sink` | `StdoutAuditSink` |
| `mcpgate.image_ref`  | `ImageRef` |
| `mcpgate.noop`       | `NoopExternalProvider` |
| `mcpgate.docker`     | `DockerProvider`, `DockerConfig`, `parse_cpu_limit`, `parse_memory_limit`, `map_status` |

Python 3.10 or later is required. The runtime dependencies are PyYAML and
httpx; the `test` extra adds pytest and pytest-asyncio.

## Models and dictionaries

`Adapter`, `Tool`, `ToolDefinition`, `UserContext`, `Decision` and
`AuditRecord` convert to and from plain dictionaries with `to_dict()` and
`from_dict()`. Unset optional fields are left out of the output, and missing
fields take their defaults on input (an adapter gets `replicas=1`, an
endpoint path of `/mcp` and sticky session affinity). Malformed input raises
`InvalidRequest`. Timestamps are written as UTC ISO 8601 with a `Z` suffix.

```python
from mcpgate.adapter import Adapter

adapter = Adapter.from_dict({
    "name": "weather",
    "image": {"reference": "ghcr.io/example/weather:1.0"},
    "endpoint": {"port": 8080},
    "tags": ["public"],
})
adapter.endpoint.path   # "/mcp"
adapter.replicas        # 1
```

## Errors

All errors derive from `McpError`. Each carries a `detail` string, and
`str()` puts a category prefix in front of it:

```python
from mcpgate.errors import NotFound, RateLimited

str(NotFound("adapter weather"))   # "not found: adapter weather"
str(RateLimited())                 # "rate limited"
```

## YAML RBAC policies

A policy file looks like this:

```yaml
version: 1
default: deny        # deny | allow
rules:
  - plane: data      # control | data (optional)
    action: "tools/call"
    target: "weather"           # exact target name (optional)
    target_tags: ["public"]     # every listed tag must be on the target (optional)
    allow_roles: ["mcp.engineer", "*"]   # "*" means any authenticated user
```

Rules are tried in order; the first rule whose plane, action, target and tags
match and whose `allow_roles` contains `*` or one of the caller's roles
allows the request, with reason `rule:<action>`. If nothing matches, the
`default` decides (`default-allow` or `default-deny`). A rule with no
`allow_roles` never allows anything. Only `version: 1` is accepted; anything
else, and any malformed document, raises `InternalError`.

Action patterns:

| pattern      | matches                                   |
|--------------|-------------------------------------------|
| `*`          | any action                                |
| `tools/call` | exactly `tools/call`                      |
| `adapters.*` | `adapters` and anything under `adapters.` |
| `tools/*`    | anything starting with `tools/`           |

```python
import asyncio

from mcpgate.identity import UserContext
from mcpgate.policy import Action, Env, Plane, PolicyInput, Resource, ResourceKind
from mcpgate.yaml_rbac import YamlRbacEngine, action_glob_matches

POLICY = """
version: 1
default: deny
rules:
  - plane: data
    action: "tools/call"
    target: "weather"
    allow_roles: ["mcp.engineer"]
"""

engine = YamlRbacEngine.from_str(POLICY, "inline")
user = UserContext(sub="alice", roles=["mcp.engineer"])
request = PolicyInput(
    user=user,
    action=Action(plane=Plane.DATA, method="tools/call"),
    resource=Resource(kind=ResourceKind.TOOL, name="weather"),
    env=Env(),
)

decision = asyncio.run(engine.decide(request))
print(decision.allow, decision.reason, decision.policy_id)
# True rule:tools/call yaml-rbac:inline

assert action_glob_matches("adapters.*", "adapters.read")
```

`YamlRbacEngine.from_path(path)` loads the same format from a file; the path
becomes part of the decision's `policy_id`. `DenyAllPolicyEngine` denies
every request with reason `default-deny`.

## Image references

```python
from mcpgate.image_ref import ImageRef

ref = ImageRef.parse("registry.local:5000/owner/repo:v1@sha256:abc")
ref.name                # "registry.local:5000/owner/repo"
ref.tag                 # "v1"
ref.digest              # "sha256:abc"
ref.is_digest_pinned()  # True

ImageRef.parse("alpine").effective_tag()  # "latest"
```

Empty references, a trailing `@`, a digest without `<algo>:<hex>`, an empty
tag and an empty name raise `InvalidRequest`.

## Deployment providers

Both providers implement `mcpgate.providers.DeploymentProvider`. All
operations are coroutines; `logs()` returns an asynchronous iterator of
`LogLine`, so it is used as `async for line in await provider.logs(handle)`.

`NoopExternalProvider` treats workloads as already running elsewhere: `apply`
returns a handle whose `endpoint_url` is the adapter's `upstream`, `delete`
does nothing, `status` always reports ready with message `external`, `logs`
yields nothing, and `endpoints` is empty when no upstream was given, so
callers fail closed.

`DockerProvider` talks to the Docker Engine API over its Unix socket. Create
it with `await DockerProvider.create(config)`, which also creates the
configured bridge network if it is missing; pass an `httpx.AsyncClient` as
`client` to use your own connection. Close it with `await provider.aclose()`
or use it as an `async with` block.

```python
import asyncio

from mcpgate.docker import DockerConfig, DockerProvider
from mcpgate.providers import DeploymentKind, DeploymentSpec


async def deploy(adapter):
    config = DockerConfig(allowed_registries=["ghcr.io"], require_digest_pinning=False)
    async with await DockerProvider.create(config) as provider:
        handle = await provider.apply(
            DeploymentSpec(name=adapter.name, kind=DeploymentKind.ADAPTER, adapter=adapter)
        )
        return await provider.endpoints(handle)
```

Containers are named `mcp-oxide-<kind>-<name>` and are reused when already
running. They run as user `65532:65532` with a read-only root filesystem, all
capabilities dropped, `no-new-privileges`, a 64 MB `/tmp` tmpfs, a limit of
256 processes, an `unless-stopped` restart policy, and CPU and memory limits
taken from the resource spec (swap equal to memory). `DockerConfig` can
restrict images to a list of registries (`docker.io` for unqualified names)
and require digest-pinned references; violations raise `InvalidRequest`
before anything is pulled. Daemon failures raise `InternalError`.

Resource strings are converted with:

```python
from mcpgate.docker import parse_cpu_limit, parse_memory_limit

parse_cpu_limit("500m")       # 500_000_000 nano-CPUs
parse_cpu_limit("1.5")        # 1_500_000_000
parse_memory_limit("512Mi")   # 536_870_912 bytes
parse_memory_limit("500M")    # 500_000_000
parse_memory_limit("256")     # 256
```

Values that cannot be parsed give `None`, meaning no limit.

## Audit

```python
import asyncio
import logging

from mcpgate.audit import AuditDecision, AuditRecord, AuditTarget, AuditUser
from mcpgate.audit_sink import StdoutAuditSink
from mcpgate.policy import Plane

logging.basicConfig(level=logging.INFO)

record = AuditRecord(
    ts="2024-01-01T00:00:00Z",
    trace_id="trace-1",
    user=AuditUser(sub="alice", roles=["mcp.viewer"]),
    plane=Plane.DATA,
    action="tools/call",
    target=AuditTarget(kind="tool", name="weather"),
    decision=AuditDecision.ALLOW,
    latency_ms=12,
    upstream_status="200",
    request_hash="abc123",
)
asyncio.run(StdoutAuditSink().emit(record))
```

Each record is logged at `INFO` on the `audit` logger as a single compact
JSON line (`AuditRecord.to_json()`); optional fields that are unset are left
out.

## What the package does not do

The package does not serve HTTP: there is no gateway server, no MCP proxy and
no control-plane API. It ships no implementation of `IdProvider` (no token
or JWT validation), `MetadataStore`, `SessionStore`, `SecretProvider` or
`ImageRegistry`; those are interfaces only, to be implemented by the
application. Audit records go only to the logging system through
`StdoutAuditSink`, and the only deployment runtimes are Docker and
externally managed workloads.