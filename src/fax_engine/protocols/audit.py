"""Protocol for the fire-and-forget audit sink."""

from __future__ import annotations

from typing import Any, Protocol


class AuditSink(Protocol):
    async def record(
        self, entity_type: str, entity_id: str, operation: str, details: dict[str, Any]
    ) -> None: ...
