"""Protocol for the downstream action executor."""

from __future__ import annotations

from typing import Protocol

from fax_engine.models.domain import AgentResponse, InterpretationResult


class ActionAgent(Protocol):
    async def process(
        self, interpretation: InterpretationResult, user_id: str, job_id: str
    ) -> AgentResponse: ...
