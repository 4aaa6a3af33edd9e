"""Protocol for fetching inbound fax media."""

from __future__ import annotations

from typing import Protocol


class MediaDownloader(Protocol):
    async def download(self, media_url: str) -> bytes: ...
