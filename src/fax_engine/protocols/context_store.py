"""Protocol for the read-only conversation-context store."""

from __future__ import annotations

from datetime import timedelta
from typing import Protocol

from fax_engine.models.domain import ConversationContext


class ContextStore(Protocol):
    async def find_by_id(self, context_id: str) -> ConversationContext | None: ...

    async def find_by_reference_id(
        self, reference_id: str, user_id: str
    ) -> ConversationContext | None: ...

    async def find_recent_by_user(
        self, user_id: str, window: timedelta
    ) -> list[ConversationContext]: ...
