"""Protocol for the vision/interpretation service."""

from __future__ import annotations

from typing import Protocol

from fax_engine.models.domain import InterpretationResult


class VisionInterpreter(Protocol):
    async def interpret(self, image_bytes: bytes, user_id: str) -> InterpretationResult: ...
