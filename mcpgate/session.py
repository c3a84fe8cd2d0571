"""Session-affinity types."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta


@dataclass(frozen=True)
class SessionId:
    """Opaque client session identifier."""

    value: str

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class BackendId:
    """Identifier of the backend replica a session is pinned to."""

    value: str

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class Binding:
    """A session pinned to a backend of an adapter for ``ttl``."""

    session: SessionId
    adapter: str
    backend: BackendId
    ttl: timedelta