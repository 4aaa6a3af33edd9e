"""Protocol for response-document rendering."""

from __future__ import annotations

from typing import Any, Protocol


class ResponseRenderer(Protocol):
    async def generate(
        self, template_type: str, data: dict[str, Any], reference_id: str
    ) -> list[bytes]: ...
