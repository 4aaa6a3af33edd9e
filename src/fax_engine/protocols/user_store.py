"""Protocol for the user store."""

from __future__ import annotations

from typing import Any, Protocol

from fax_engine.models.domain import User


class UserStore(Protocol):
    async def find_or_create(self, phone_number: str) -> tuple[User, bool]: ...

    async def update_preferences(self, user_id: str, preferences: dict[str, Any]) -> None: ...
