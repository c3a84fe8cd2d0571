"""Docker deployment provider for local development.

Runs adapters and tools as containers on a dedicated bridge network with a
hardened security context: non-root user, read-only root filesystem, all
capabilities dropped, ``no-new-privileges`` and resource limits. The gateway
routes to containers by their in-network IP, falling back to the container's
DNS name.
"""

from __future__ import annotations

import json
import logging
import math
import os
import re
from collections.abc import AsyncIterator
from dataclasses import dataclass, field
from typing import Any
from urllib.parse import quote

import httpx

from .adapter import Endpoint as AdapterEndpoint
from .adapter import EnvVar, Resources
from .errors import InternalError, InvalidRequest
from .image_ref import ImageRef
from .providers import (
    DeploymentHandle,
    DeploymentProvider,
    DeploymentSpec,
    DeploymentStatus,
    Endpoint,
    LogLine,
)
from .session import BackendId

_log = logging.getLogger(__name__)

_API_PREFIX = "/v1.41"
_DEFAULT_SOCKET = "/var/run/docker.sock"
_I64_MAX = 0x7FFF_FFFF_FFFF_FFFF
_U64_MAX = 0xFFFF_FFFF_FFFF_FFFF
_CPU_CEILING = 9.223_372e18

_FLOAT = re.compile(r"[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?")
_UNSIGNED = re.compile(r"\+?\d+")
_MEMORY_UNITS = (
    ("Gi", 1024 * 1024 * 1024),
    ("Mi", 1024 * 1024),
    ("Ki", 1024),
    ("G", 1_000_000_000),
    ("M", 1_000_000),
    ("K", 1_000),
)
_KNOWN_STATUSES = frozenset(
    {"created", "running", "paused", "restarting", "removing", "exited", "dead"}
)


@dataclass
class DockerConfig:
    """Settings for :class:`DockerProvider`.

    ``allowed_registries`` is matched against the first path component of the
    image name (``docker.io`` for unqualified names); empty means no check.
    """

    socket: str = _DEFAULT_SOCKET
    network: str = "mcp-oxide"
    connect_timeout_s: int = 120
    allowed_registries: list[str] = field(default_factory=list)
    require_digest_pinning: bool = False


class _DockerError(Exception):
    """A failed call to the Docker daemon; ``status`` is None for transport errors."""

    def __init__(self, message: str, status: int | None = None) -> None:
        super().__init__(message)
        self.status = status


def _error_message(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        body = None
    if isinstance(body, dict) and isinstance(body.get("message"), str):
        detail = body["message"]
    else:
        detail = response.text
    return f"Docker responded with status code {response.status_code}: {detail}"


def _socket_path(socket: str) -> str:
    if socket in ("", "unix:///var/run/docker.sock"):
        host = os.environ.get("DOCKER_HOST", "")
        if host.startswith("unix://"):
            return host[len("unix://") :]
        return _DEFAULT_SOCKET
    return socket[len("unix://") :] if socket.startswith("unix://") else socket


def _seg(value: str) -> str:
    return quote(value, safe="")


class DockerProvider(DeploymentProvider):
    """Deployment provider that runs workloads as Docker containers."""

    def __init__(
        self,
        client: httpx.AsyncClient,
        config: DockerConfig,
        *,
        owns_client: bool = False,
    ) -> None:
        self._client = client
        self._owns_client = owns_client
        self._timeout = config.connect_timeout_s
        self.network = config.network
        self.allowed_registries = list(config.allowed_registries)
        self.require_digest_pinning = config.require_digest_pinning

    def __repr__(self) -> str:
        return (
            f"DockerProvider(network={self.network!r}, "
            f"allowed_registries={self.allowed_registries!r}, "
            f"require_digest_pinning={self.require_digest_pinning!r}, ...)"
        )

    @classmethod
    async def create(
        cls,
        config: DockerConfig | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> DockerProvider:
        """Connect to the daemon and make sure the network exists.

        Without ``client`` a connection over the configured Unix socket is
        opened and owned by the provider.
        """
        config = config or DockerConfig()
        owns = client is None
        if client is None:
            client = httpx.AsyncClient(
                transport=httpx.AsyncHTTPTransport(uds=_socket_path(config.socket)),
                base_url="http://docker",
                timeout=config.connect_timeout_s,
            )
        provider = cls(client, config, owns_client=owns)
        try:
            await provider._ensure_network()
        except BaseException:
            await provider.aclose()
            raise
        return provider

    async def aclose(self) -> None:
        """Close the daemon connection if the provider opened it."""
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> DockerProvider:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    # ------------------------------------------------------------------
    # Daemon access
    # ------------------------------------------------------------------

    async def _request(
        self,
        method: str,
        path: str,
        *,
        params: dict[str, Any] | None = None,
        body: Any = None,
    ) -> httpx.Response:
        try:
            response = await self._client.request(
                method, _API_PREFIX + path, params=params, json=body
            )
        except httpx.HTTPError as exc:
            raise _DockerError(str(exc)) from exc
        if response.status_code >= 300:
            raise _DockerError(_error_message(response), response.status_code)
        return response

    async def _inspect_container(self, container_id: str) -> dict[str, Any]:
        response = await self._request("GET", f"/containers/{_seg(container_id)}/json")
        data = response.json()
        if not isinstance(data, dict):
            raise _DockerError("unexpected inspect response")
        return data

    async def _ensure_network(self) -> None:
        try:
            await self._request("GET", f"/networks/{_seg(self.network)}")
        except _DockerError as exc:
            if exc.status != 404:
                raise InternalError(f"inspect network: {exc}") from exc
            _log.info("Creating Docker network %s", self.network)
            try:
                await self._request(
                    "POST",
                    "/networks/create",
                    body={"Name": self.network, "Driver": "bridge", "CheckDuplicate": True},
                )
            except _DockerError as create_exc:
                raise InternalError(f"create network: {create_exc}") from create_exc
        else:
            _log.debug("Docker network %s exists", self.network)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @staticmethod
    def container_name(kind: str, name: str) -> str:
        """Name of the container that runs ``name`` of the given kind."""
        return f"mcp-oxide-{kind}-{name}"

    def check_image_policy(self, image: ImageRef) -> None:
        """Raise :class:`InvalidRequest` if ``image`` violates the configured policy."""
        if self.require_digest_pinning and not image.is_digest_pinned():
            raise InvalidRequest(
                f"image '{image.name}' is not digest-pinned and require_digest_pinning=true"
            )
        if self.allowed_registries:
            head = image.name.split("/", 1)[0]
            registry = head if "." in head or ":" in head else "docker.io"
            if registry not in self.allowed_registries:
                raise InvalidRequest(
                    f"image registry '{registry}' is not in the allowed_registries list"
                )

    async def _pull_image(self, image: ImageRef) -> None:
        # Only the name is logged, to keep private registry paths out of logs.
        _log.info("Pulling image %s", image.name)
        tag = f"@{image.digest}" if image.digest is not None else image.effective_tag()
        try:
            async with self._client.stream(
                "POST",
                f"{_API_PREFIX}/images/create",
                params={"fromImage": image.name, "tag": tag},
                timeout=httpx.Timeout(self._timeout, read=None),
            ) as response:
                if response.status_code >= 300:
                    await response.aread()
                    raise _DockerError(_error_message(response), response.status_code)
                async for line in response.aiter_lines():
                    if not line.strip():
                        continue
                    try:
                        event = json.loads(line)
                    except ValueError:
                        continue
                    if not isinstance(event, dict):
                        continue
                    if event.get("error"):
                        raise _DockerError(str(event["error"]))
                    if event.get("status"):
                        _log.debug("Pull progress: %s", event["status"])
        except httpx.HTTPError as exc:
            _log.warning("Pull failed: %s", exc)
            raise InternalError(f"pull image: {exc}") from exc
        except _DockerError as exc:
            _log.warning("Pull failed: %s", exc)
            raise InternalError(f"pull image: {exc}") from exc

    @staticmethod
    def _extract_spec(
        spec: DeploymentSpec,
    ) -> tuple[str, AdapterEndpoint, list[EnvVar], Resources]:
        if spec.adapter is not None:
            a = spec.adapter
            return a.image.reference, a.endpoint, a.env, a.resources
        if spec.tool is not None:
            t = spec.tool
            return t.image.reference, t.endpoint, t.env, t.resources
        raise InternalError("DeploymentSpec has neither adapter nor tool")

    async def _create_container(self, spec: DeploymentSpec) -> str:
        kind = spec.kind.value
        reference, endpoint, env, resources = self._extract_spec(spec)

        image = ImageRef.parse(reference)
        self.check_image_policy(image)
        await self._pull_image(image)

        name = self.container_name(kind, spec.name)
        nano_cpus = parse_cpu_limit(resources.cpu)
        memory = parse_memory_limit(resources.memory)

        host_config: dict[str, Any] = {
            "NetworkMode": self.network,
            "ReadonlyRootfs": True,
            "CapDrop": ["ALL"],
            "SecurityOpt": ["no-new-privileges:true"],
            "PidsLimit": 256,
            "AutoRemove": False,
            "RestartPolicy": {"Name": "unless-stopped"},
            "Tmpfs": {"/tmp": "rw,noexec,nosuid,size=64m"},
            "OomScoreAdj": 500,
        }
        if nano_cpus is not None:
            host_config["NanoCpus"] = nano_cpus
        if memory is not None:
            host_config["Memory"] = memory
            # Swap equal to memory leaves no swap to escape the limit into.
            host_config["MemorySwap"] = memory

        config = {
            "Image": reference,
            "Env": [f"{e.name}={e.value}" for e in env],
            "Labels": {
                "mcp-oxide.io/managed": "true",
                "mcp-oxide.io/kind": kind,
                "mcp-oxide.io/name": spec.name,
            },
            "ExposedPorts": {f"{endpoint.port}/tcp": {}},
            "User": "65532:65532",
            "HostConfig": host_config,
        }

        try:
            await self._request("POST", "/containers/create", params={"name": name}, body=config)
            _log.info("Container %s created", name)
        except _DockerError as exc:
            if exc.status != 409:
                raise InternalError(f"create container: {exc}") from exc
            _log.debug("Container %s already exists, reusing", name)

        try:
            await self._request(
                "POST",
                f"/networks/{_seg(self.network)}/connect",
                body={"Container": name, "EndpointConfig": {}},
            )
        except _DockerError:
            pass  # already connected is fine

        try:
            await self._request("POST", f"/containers/{_seg(name)}/start")
        except _DockerError as exc:
            raise InternalError(f"start container: {exc}") from exc

        _log.info("Container %s started", name)
        return name

    def _host_for(self, info: dict[str, Any], container_id: str) -> str:
        name = info.get("Name")
        if name is None:
            name = container_id
        dns = name[1:] if name.startswith("/") else name
        networks = (info.get("NetworkSettings") or {}).get("Networks") or {}
        ip = (networks.get(self.network) or {}).get("IPAddress")
        return ip if ip else dns

    async def _resolve_endpoint_url(self, container_id: str, port: int, path: str) -> str:
        try:
            info = await self._inspect_container(container_id)
        except _DockerError as exc:
            raise InternalError(f"inspect container: {exc}") from exc
        host = self._host_for(info, container_id)
        clean_path = path if path.startswith("/") else f"/{path}"
        return f"http://{host}:{port}{clean_path}"

    async def _url_or_none(self, container_id: str, endpoint: AdapterEndpoint) -> str | None:
        try:
            return await self._resolve_endpoint_url(container_id, endpoint.port, endpoint.path)
        except InternalError:
            return None

    # ------------------------------------------------------------------
    # DeploymentProvider
    # ------------------------------------------------------------------

    async def apply(self, spec: DeploymentSpec) -> DeploymentHandle:
        _, endpoint, _, _ = self._extract_spec(spec)
        name = self.container_name(spec.kind.value, spec.name)

        try:
            info = await self._inspect_container(name)
        except _DockerError:
            info = None
        if info is not None and (info.get("State") or {}).get("Running"):
            _log.debug("Container %s already running", name)
            url = await self._url_or_none(name, endpoint)
            return DeploymentHandle(id=name, namespace=self.network, endpoint_url=url)

        name = await self._create_container(spec)
        url = await self._url_or_none(name, endpoint)
        return DeploymentHandle(id=name, namespace=self.network, endpoint_url=url)

    async def delete(self, handle: DeploymentHandle) -> None:
        _log.debug("Deleting container %s", handle.id)
        try:
            await self._request("POST", f"/containers/{_seg(handle.id)}/stop", params={"t": 10})
        except _DockerError as exc:
            if exc.status not in (404, 304):
                _log.warning("stop of container %s failed: %s", handle.id, exc)

        try:
            await self._request(
                "DELETE", f"/containers/{_seg(handle.id)}", params={"force": "true"}
            )
        except _DockerError as exc:
            if exc.status != 404:
                raise InternalError(f"remove container: {exc}") from exc
            _log.debug("Container %s already gone", handle.id)
        _log.info("Container %s deleted", handle.id)

    async def status(self, handle: DeploymentHandle) -> DeploymentStatus:
        try:
            info = await self._inspect_container(handle.id)
        except _DockerError as exc:
            raise InternalError(f"inspect container: {exc}") from exc
        state = info.get("State")
        if state is None:
            raise InternalError("no state")
        running = bool(state.get("Running") or False)
        return DeploymentStatus(
            ready=running,
            replicas=1,
            ready_replicas=int(running),
            message=map_status(state.get("Status")),
        )

    async def logs(self, handle: DeploymentHandle) -> AsyncIterator[LogLine]:
        return self._follow_logs(handle.id)

    async def _follow_logs(self, container_id: str) -> AsyncIterator[LogLine]:
        params = {"follow": "true", "stdout": "true", "stderr": "true", "timestamps": "true"}
        try:
            async with self._client.stream(
                "GET",
                f"{_API_PREFIX}/containers/{_seg(container_id)}/logs",
                params=params,
                timeout=httpx.Timeout(self._timeout, read=None),
            ) as response:
                if response.status_code >= 300:
                    return
                async for payload in _log_messages(response.aiter_bytes()):
                    text = payload.decode("utf-8", errors="replace")
                    ts, sep, rest = text.partition(" ")
                    yield LogLine(ts=ts, line=rest) if sep else LogLine(ts="", line="")
        except httpx.HTTPError:
            return

    async def endpoints(self, handle: DeploymentHandle) -> list[Endpoint]:
        # The URL captured at apply time saves a daemon round-trip per call.
        if handle.endpoint_url is not None:
            return [Endpoint(url=handle.endpoint_url, backend_id=BackendId(handle.id))]

        try:
            info = await self._inspect_container(handle.id)
        except _DockerError as exc:
            raise InternalError(f"inspect container: {exc}") from exc
        host = self._host_for(info, handle.id)
        return [Endpoint(url=f"http://{host}:8080/mcp", backend_id=BackendId(handle.id))]

    def kind(self) -> str:
        return "docker"


async def _log_messages(chunks: AsyncIterator[bytes]) -> AsyncIterator[bytes]:
    """Split a log stream into messages, demultiplexing framed output."""
    buf = bytearray()
    multiplexed: bool | None = None
    async for chunk in chunks:
        buf.extend(chunk)
        if multiplexed is None:
            if len(buf) < 4:
                continue
            multiplexed = buf[0] in (0, 1, 2) and buf[1:4] == b"\x00\x00\x00"
        if multiplexed:
            while len(buf) >= 8:
                size = int.from_bytes(buf[4:8], "big")
                if len(buf) < 8 + size:
                    break
                yield bytes(buf[8 : 8 + size])
                del buf[: 8 + size]
        else:
            while (idx := buf.find(b"\n")) != -1:
                yield bytes(buf[: idx + 1])
                del buf[: idx + 1]
    if not multiplexed and buf:
        yield bytes(buf)


def parse_cpu_limit(value: str | None) -> int | None:
    """Convert ``"500m"``, ``"2"`` or ``"1.5"`` into billionths of a CPU.

    Returns ``None`` when unset, malformed, not positive or out of range.
    """
    if value is None:
        return None
    raw = value.strip()
    if not raw:
        return None
    if raw.endswith("m"):
        text, scale = raw[:-1], 1_000_000.0
    else:
        text, scale = raw, 1_000_000_000.0
    if not _FLOAT.fullmatch(text):
        return None
    num = float(text)
    if not math.isfinite(num) or num <= 0.0:
        return None
    product = num * scale
    if not math.isfinite(product):
        return None
    nanos = math.floor(product + 0.5)
    if nanos <= 0 or float(nanos) >= _CPU_CEILING:
        return None
    return nanos


def parse_memory_limit(value: str | None) -> int | None:
    """Convert ``"512Mi"``, ``"1Gi"``, ``"256M"`` or a byte count into bytes.

    The result is capped at the largest signed 64-bit integer.
    """
    if value is None:
        return None
    raw = value.strip()
    if not raw:
        return None
    num_str, mult = raw, 1
    for suffix, factor in _MEMORY_UNITS:
        if raw.endswith(suffix):
            num_str, mult = raw[: -len(suffix)], factor
            break
    num_str = num_str.strip()
    if not _UNSIGNED.fullmatch(num_str):
        return None
    num = int(num_str)
    if num > _U64_MAX:
        return None
    return min(num * mult, _I64_MAX)


def map_status(status: str | None) -> str | None:
    """Normalise a container state name; unknown or empty states map to ``unknown``."""
    if status is None:
        return None
    return status if status in _KNOWN_STATUSES else "unknown"