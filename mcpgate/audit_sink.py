"""Audit sinks."""

from __future__ import annotations

import logging

from .audit import AuditRecord
from .errors import InternalError
from .providers import AuditSink

_log = logging.getLogger("audit")


class StdoutAuditSink(AuditSink):
    """Emits each record as one JSON line at INFO level on the ``audit`` logger."""

    async def emit(self, record: AuditRecord) -> None:
        try:
            line = record.to_json()
        except (TypeError, ValueError) as exc:
            raise InternalError(f"audit serialize: {exc}") from exc
        _log.info("%s", line)

    def kind(self) -> str:
        return "stdout"