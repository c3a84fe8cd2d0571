"""OCI image reference parsing.

Handles ``name``, ``name:tag``, ``registry[:port]/name[:tag]`` and any of
those with an ``@<algo>:<hex>`` digest suffix. A colon before the last slash
belongs to a registry port, never to a tag.
"""

from __future__ import annotations

from dataclasses import dataclass

from .errors import InvalidRequest


@dataclass(frozen=True)
class ImageRef:
    """A parsed image reference."""

    name: str
    tag: str | None = None
    digest: str | None = None

    @classmethod
    def parse(cls, reference: str) -> ImageRef:
        """Parse ``reference``; raise :class:`InvalidRequest` when malformed."""
        if not reference:
            raise InvalidRequest("image reference is empty")

        digest = None
        remainder = reference
        if "@" in reference:
            remainder, _, tail = reference.rpartition("@")
            if not tail:
                raise InvalidRequest("image reference ends with '@'")
            if ":" not in tail:
                raise InvalidRequest("image digest must be '<algo>:<hex>'")
            digest = tail

        search_from = remainder.rfind("/") + 1
        colon = remainder.rfind(":", search_from)
        if colon == -1:
            name, tag = remainder, None
        else:
            tag = remainder[colon + 1 :]
            if not tag:
                raise InvalidRequest("image tag must not be empty")
            name = remainder[:colon]

        if not name:
            raise InvalidRequest("image name must not be empty")
        return cls(name=name, tag=tag, digest=digest)

    def effective_tag(self) -> str:
        """The tag to pull: the given one, or ``latest``."""
        return self.tag if self.tag is not None else "latest"

    def is_digest_pinned(self) -> bool:
        """True if the reference pins an immutable digest."""
        return self.digest is not None