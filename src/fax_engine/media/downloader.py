"""Fetches inbound fax images over HTTP."""

from __future__ import annotations

import httpx

from fax_engine.config.settings import Settings
from fax_engine.exceptions import DownloadError
from fax_engine.observability.logger import get_logger

logger = get_logger("media_downloader")


class HttpMediaDownloader:
    """Downloads fax media with httpx.

    Error messages carry "timeout" or "network" so that the error classifier
    treats transport failures as temporary.
    """

    def __init__(self, settings: Settings, client: httpx.AsyncClient | None = None) -> None:
        self._timeout = httpx.Timeout(settings.media_download_timeout_s)
        self._client = client

    async def download(self, media_url: str) -> bytes:
        if self._client is not None:
            return await self._fetch(self._client, media_url)
        async with httpx.AsyncClient(timeout=self._timeout, follow_redirects=True) as client:
            return await self._fetch(client, media_url)

    async def _fetch(self, client: httpx.AsyncClient, media_url: str) -> bytes:
        try:
            response = await client.get(media_url)
        except httpx.TimeoutException as e:
            raise DownloadError(f"Failed to download fax image: timeout ({e})") from e
        except httpx.TransportError as e:
            raise DownloadError(f"Failed to download fax image: network error: {e}") from e

        if not response.is_success:
            raise DownloadError(
                f"Failed to download fax image: {response.status_code} {response.reason_phrase}"
            )

        logger.info("fax_media_downloaded", bytes=len(response.content))
        return response.content
