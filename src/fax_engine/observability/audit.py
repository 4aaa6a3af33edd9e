"""Best-effort audit writing on top of an AuditSink."""

from __future__ import annotations

import asyncio
from typing import Any

from fax_engine.observability.logger import get_logger
from fax_engine.protocols.audit import AuditSink

logger = get_logger("audit")


class AuditRecorder:
    """Writes audit events without ever failing the caller.

    ``emit`` schedules the write as a background task (fire and forget);
    ``write`` awaits it. Both swallow sink failures after logging them.
    """

    def __init__(self, sink: AuditSink | None) -> None:
        self._sink = sink
        self._pending: set[asyncio.Task] = set()

    def emit(
        self, entity_type: str, entity_id: str, operation: str, details: dict[str, Any]
    ) -> None:
        if self._sink is None:
            return
        try:
            task = asyncio.get_running_loop().create_task(
                self.write(entity_type, entity_id, operation, details)
            )
        except RuntimeError:
            logger.warning("audit_emit_without_loop", operation=operation)
            return
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def write(
        self, entity_type: str, entity_id: str, operation: str, details: dict[str, Any]
    ) -> None:
        if self._sink is None:
            return
        try:
            await self._sink.record(entity_type, entity_id, operation, details)
        except Exception:
            logger.warning(
                "audit_write_failed",
                entity_type=entity_type,
                operation=operation,
                exc_info=True,
            )

    async def drain(self) -> None:
        """Wait for scheduled writes. Used on shutdown and in tests."""
        if self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)
