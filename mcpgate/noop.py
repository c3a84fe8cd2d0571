"""Deployment provider for workloads managed outside the gateway.

The adapter or tool already runs somewhere reachable; the gateway only
proxies to the URL given in ``adapter.upstream``.
"""

from __future__ import annotations

from collections.abc import AsyncIterator

from .providers import (
    DeploymentHandle,
    DeploymentProvider,
    DeploymentSpec,
    DeploymentStatus,
    Endpoint,
    LogLine,
)
from .session import BackendId


async def _no_logs() -> AsyncIterator[LogLine]:
    return
    yield  # pragma: no cover


class NoopExternalProvider(DeploymentProvider):
    """Assumes every workload is deployed out of band."""

    def __repr__(self) -> str:
        return "NoopExternalProvider()"

    async def apply(self, spec: DeploymentSpec) -> DeploymentHandle:
        upstream = spec.adapter.upstream if spec.adapter is not None else None
        return DeploymentHandle(id=spec.name, namespace=None, endpoint_url=upstream)

    async def delete(self, handle: DeploymentHandle) -> None:
        return None

    async def status(self, handle: DeploymentHandle) -> DeploymentStatus:
        return DeploymentStatus(ready=True, replicas=1, ready_replicas=1, message="external")

    async def logs(self, handle: DeploymentHandle) -> AsyncIterator[LogLine]:
        return _no_logs()

    async def endpoints(self, handle: DeploymentHandle) -> list[Endpoint]:
        # Without a URL from apply time, report nothing so routing fails closed.
        if handle.endpoint_url is None:
            return []
        return [Endpoint(url=handle.endpoint_url, backend_id=BackendId(handle.id))]

    def kind(self) -> str:
        return "noop-external"