"""Protocol for the fax job status store."""

from __future__ import annotations

from typing import Any, Protocol

from fax_engine.models.enums import JobStatus


class JobStore(Protocol):
    async def update_status(
        self, job_id: str, status: JobStatus, metadata: dict[str, Any] | None = None
    ) -> None: ...
