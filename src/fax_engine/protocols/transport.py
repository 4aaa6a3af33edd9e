"""Protocol for the outbound fax transport."""

from __future__ import annotations

from typing import Protocol

from fax_engine.models.domain import SendResult


class FaxTransport(Protocol):
    async def send(self, to: str, pages: list[bytes], reference_id: str) -> SendResult: ...
