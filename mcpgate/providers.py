"""Provider interfaces: the pluggable core of the gateway.

Each interface has several implementations selected at startup from
configuration. Asynchronous operations are coroutines.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import AsyncIterator
from dataclasses import dataclass, field
from datetime import timedelta
from enum import Enum
from typing import Any

from .adapter import Adapter
from .audit import AuditRecord
from .errors import InternalError
from .identity import UserContext
from .policy import Decision, PolicyInput
from .session import BackendId, SessionId
from .tool import Tool

# --------------------------------------------------------------------------
# Identity
# --------------------------------------------------------------------------


class IdProvider(ABC):
    """Turns bearer tokens into user contexts."""

    @abstractmethod
    async def validate(self, token: str) -> UserContext:
        """Validate a bearer token and return the derived user context."""

    async def refresh_keys(self) -> None:
        """Force a refresh of signing keys; nothing to do by default."""
        return None

    @abstractmethod
    def kind(self) -> str:
        """Short provider identifier."""


# --------------------------------------------------------------------------
# Authorization
# --------------------------------------------------------------------------


class PolicyEngine(ABC):
    """Decides whether an action is permitted."""

    @abstractmethod
    async def decide(self, input: PolicyInput) -> Decision:  # noqa: A002
        """Evaluate ``input`` and return a decision."""

    @abstractmethod
    def kind(self) -> str:
        """Short engine identifier."""


# --------------------------------------------------------------------------
# Deployment
# --------------------------------------------------------------------------


class DeploymentKind(Enum):
    ADAPTER = "adapter"
    TOOL = "tool"


@dataclass
class DeploymentSpec:
    """What to deploy: an adapter or a tool."""

    name: str
    kind: DeploymentKind
    adapter: Adapter | None = None
    tool: Tool | None = None


@dataclass
class DeploymentHandle:
    """Reference to a deployed workload.

    ``endpoint_url`` is filled in by the provider on apply; it is only
    ``None`` for externally managed workloads whose URL lives elsewhere.
    """

    id: str
    namespace: str | None = None
    endpoint_url: str | None = None


@dataclass
class DeploymentStatus:
    ready: bool
    replicas: int
    ready_replicas: int
    message: str | None = None


@dataclass
class Endpoint:
    """A routable backend URL."""

    url: str
    backend_id: BackendId


@dataclass
class LogLine:
    ts: str
    line: str


class DeploymentProvider(ABC):
    """Runs adapters and tools on some runtime."""

    @abstractmethod
    async def apply(self, spec: DeploymentSpec) -> DeploymentHandle:
        """Create or update the deployment described by ``spec``."""

    @abstractmethod
    async def delete(self, handle: DeploymentHandle) -> None:
        """Tear the deployment down."""

    @abstractmethod
    async def status(self, handle: DeploymentHandle) -> DeploymentStatus:
        """Report the deployment's readiness."""

    @abstractmethod
    async def logs(self, handle: DeploymentHandle) -> AsyncIterator[LogLine]:
        """Return an asynchronous stream of log lines."""

    @abstractmethod
    async def endpoints(self, handle: DeploymentHandle) -> list[Endpoint]:
        """List the URLs traffic can be routed to."""

    @abstractmethod
    def kind(self) -> str:
        """Short provider identifier."""


# --------------------------------------------------------------------------
# Metadata store
# --------------------------------------------------------------------------


@dataclass
class Filter:
    tenant: str | None = None
    tags: list[str] = field(default_factory=list)


class MetadataStore(ABC):
    """Persists adapter and tool registrations."""

    @abstractmethod
    async def put_adapter(self, adapter: Adapter) -> None: ...

    @abstractmethod
    async def get_adapter(self, name: str) -> Adapter | None: ...

    @abstractmethod
    async def list_adapters(self, filter: Filter) -> list[Adapter]: ...  # noqa: A002

    @abstractmethod
    async def delete_adapter(self, name: str) -> None: ...

    @abstractmethod
    async def put_tool(self, tool: Tool) -> None: ...

    @abstractmethod
    async def get_tool(self, name: str) -> Tool | None: ...

    @abstractmethod
    async def list_tools(self, filter: Filter) -> list[Tool]: ...  # noqa: A002

    @abstractmethod
    async def delete_tool(self, name: str) -> None: ...

    @abstractmethod
    def kind(self) -> str:
        """Short store identifier."""


@dataclass
class EnvVarEntry:
    name: str = ""
    value: str = ""


@dataclass
class SecretRefEntry:
    name: str = ""
    provider: str = ""
    key: str = ""


@dataclass
class ResourcesSpec:
    cpu: str | None = None
    memory: str | None = None


@dataclass
class HealthProbeSpec:
    path: str = ""
    port: int = 0


@dataclass
class ToolDefinitionSpec:
    name: str = ""
    title: str | None = None
    description: str | None = None
    input_schema: Any = None
    annotations: Any = None


@dataclass
class CreateAdapterRequest:
    name: str = ""
    description: str | None = None
    image: str = ""
    endpoint_port: int = 0
    endpoint_path: str | None = None
    replicas: int | None = None
    env: list[EnvVarEntry] = field(default_factory=list)
    secret_refs: list[SecretRefEntry] = field(default_factory=list)
    required_roles: list[str] = field(default_factory=list)
    tags: list[str] = field(default_factory=list)
    resources: ResourcesSpec | None = None
    health: HealthProbeSpec | None = None
    session_affinity: str | None = None
    labels: dict[str, str] = field(default_factory=dict)


@dataclass
class CreateToolRequest:
    name: str = ""
    description: str | None = None
    image: str = ""
    endpoint_port: int = 0
    endpoint_path: str | None = None
    tool_definition: ToolDefinitionSpec = field(default_factory=ToolDefinitionSpec)
    env: list[EnvVarEntry] = field(default_factory=list)
    secret_refs: list[SecretRefEntry] = field(default_factory=list)
    required_roles: list[str] = field(default_factory=list)
    tags: list[str] = field(default_factory=list)
    resources: ResourcesSpec | None = None


@dataclass
class UpdateAdapterRequest:
    """Partial update; ``None`` leaves a field unchanged."""

    description: str | None = None
    image: str | None = None
    endpoint_port: int | None = None
    endpoint_path: str | None = None
    replicas: int | None = None
    env: list[EnvVarEntry] | None = None
    secret_refs: list[SecretRefEntry] | None = None
    required_roles: list[str] | None = None
    tags: list[str] | None = None
    resources: ResourcesSpec | None = None
    health: HealthProbeSpec | None = None
    session_affinity: str | None = None
    labels: dict[str, str] | None = None
    revision: int | None = None


@dataclass
class UpdateToolRequest:
    """Partial update; ``None`` leaves a field unchanged."""

    description: str | None = None
    image: str | None = None
    endpoint_port: int | None = None
    endpoint_path: str | None = None
    tool_definition: ToolDefinitionSpec | None = None
    env: list[EnvVarEntry] | None = None
    secret_refs: list[SecretRefEntry] | None = None
    required_roles: list[str] | None = None
    tags: list[str] | None = None
    resources: ResourcesSpec | None = None
    revision: int | None = None


# --------------------------------------------------------------------------
# Session store
# --------------------------------------------------------------------------


class SessionStore(ABC):
    """Remembers which backend serves a client session."""

    @abstractmethod
    async def resolve(self, session_id: SessionId, adapter: str) -> BackendId | None: ...

    @abstractmethod
    async def bind(
        self,
        session_id: SessionId,
        adapter: str,
        backend: BackendId,
        ttl: timedelta,
    ) -> None: ...

    @abstractmethod
    async def drop_session(self, session_id: SessionId) -> None: ...

    @abstractmethod
    def kind(self) -> str:
        """Short store identifier."""


# --------------------------------------------------------------------------
# Secrets
# --------------------------------------------------------------------------


@dataclass(frozen=True)
class SecretValue:
    data: bytes

    def as_str(self) -> str | None:
        """Decode as UTF-8, or ``None`` if the bytes are not valid UTF-8."""
        try:
            return self.data.decode("utf-8")
        except UnicodeDecodeError:
            return None


@dataclass(frozen=True)
class SecretLookup:
    provider: str
    key: str


class SecretProvider(ABC):
    @abstractmethod
    async def get(self, lookup: SecretLookup) -> SecretValue: ...

    @abstractmethod
    def kind(self) -> str:
        """Short provider identifier."""


# --------------------------------------------------------------------------
# Audit
# --------------------------------------------------------------------------


class AuditSink(ABC):
    @abstractmethod
    async def emit(self, record: AuditRecord) -> None: ...

    @abstractmethod
    def kind(self) -> str:
        """Short sink identifier."""


# --------------------------------------------------------------------------
# Image registry
# --------------------------------------------------------------------------


class ImageRegistry(ABC):
    @abstractmethod
    async def resolve(self, reference: str) -> str:
        """Resolve a tag to an immutable digest reference."""

    @abstractmethod
    def kind(self) -> str:
        """Short registry identifier."""


def internal(err: object) -> InternalError:
    """Wrap any error-like value into an :class:`InternalError`."""
    return InternalError(str(err))