"""Error hierarchy shared by every gateway component."""

from __future__ import annotations


class McpError(Exception):
    """Base class for all gateway errors.

    ``detail`` carries the human-readable context; ``str()`` renders it behind
    a short category prefix.
    """

    prefix = "error"

    def __init__(self, detail: str = "") -> None:
        super().__init__(detail)
        self.detail = detail

    def __str__(self) -> str:
        return f"{self.prefix}: {self.detail}"


class Unauthenticated(McpError):
    """The caller could not be authenticated."""

    prefix = "unauthenticated"


class Forbidden(McpError):
    """The caller is authenticated but not allowed to act."""

    prefix = "forbidden"


class NotFound(McpError):
    """The requested object does not exist."""

    prefix = "not found"


class Conflict(McpError):
    """The request conflicts with the current state (e.g. a stale revision)."""

    prefix = "conflict"


class InvalidRequest(McpError):
    """The request is malformed or violates a policy."""

    prefix = "invalid request"


class UpstreamUnavailable(McpError):
    """An upstream server could not be reached."""

    prefix = "upstream unavailable"


class UpstreamTimeout(McpError):
    """An upstream server did not answer in time."""

    prefix = "upstream timeout"


class RateLimited(McpError):
    """The caller exceeded its request budget."""

    prefix = "rate limited"

    def __init__(self) -> None:
        super().__init__("")

    def __str__(self) -> str:
        return "rate limited"


class InternalError(McpError):
    """An unexpected internal failure."""

    prefix = "internal"