"""Client for a Plex-compatible media server.

Resolves a library metadata key to a media part. When the server shares a
filesystem with this process the part's file path is used directly;
otherwise the part is streamed down into managed storage.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

import httpx

from clipshare.config.models import MediaServerConfig
from clipshare.exceptions import UpstreamFetchFailure, ValidationFailure

logger = logging.getLogger(__name__)

DOWNLOAD_CHUNK_SIZE = 1024 * 1024

_PRODUCT_HEADERS = {
    "Accept": "application/json",
    "X-Plex-Product": "ClipShare",
    "X-Plex-Version": "1.0",
    "X-Plex-Client-Identifier": "clipshare-pipeline",
    "X-Plex-Platform": "Python",
}


class MediaServerClient:
    """Async HTTP client for library metadata and part downloads.

    Args:
        config: Server URL, token and timeouts.
        transport: Optional httpx transport (tests pass a MockTransport).
    """

    def __init__(
        self,
        config: MediaServerConfig,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        if not config.url:
            raise ValidationFailure("media server URL is not configured", field="url")
        self._base_url = config.url
        self._token = config.token or ""
        self._timeout = config.timeout
        self._download_timeout = config.download_timeout
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    def _headers(self) -> dict[str, str]:
        return {**_PRODUCT_HEADERS, "X-Plex-Token": self._token}

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self._base_url,
                timeout=self._timeout,
                headers=self._headers(),
                transport=self._transport,
            )
        return self._client

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> MediaServerClient:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

    @staticmethod
    def _raise_for_status(response: httpx.Response, what: str) -> None:
        if response.status_code in (401, 403):
            raise UpstreamFetchFailure(
                f"Media server rejected credentials while fetching {what} "
                f"(HTTP {response.status_code})",
                url=str(response.request.url),
                status_code=response.status_code,
            )
        try:
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise UpstreamFetchFailure(
                f"Media server returned HTTP {response.status_code} for {what}",
                url=str(response.request.url),
                status_code=response.status_code,
            ) from e

    async def get_metadata(self, key: str) -> dict[str, Any]:
        """Fetch the metadata document for a library key.

        Args:
            key: Library path such as ``/library/metadata/1234``.

        Raises:
            UpstreamFetchFailure: Connection, timeout or HTTP error.
            ValidationFailure: Response body is not JSON.
        """
        client = self._get_client()
        try:
            response = await client.get(key)
        except httpx.ConnectError as e:
            raise UpstreamFetchFailure(f"Cannot connect to media server: {e}") from e
        except httpx.TimeoutException as e:
            raise UpstreamFetchFailure(f"Media server timeout: {e}") from e
        except httpx.HTTPError as e:
            raise UpstreamFetchFailure(f"Media server request failed: {e}") from e
        self._raise_for_status(response, key)
        try:
            return response.json()
        except ValueError as e:
            raise ValidationFailure(f"Media server returned non-JSON for {key}") from e

    async def get_part(self, key: str) -> dict[str, Any]:
        """Resolve the first media part for a library key.

        Raises:
            ValidationFailure: The metadata has no part with an id.
        """
        data = await self.get_metadata(key)
        try:
            part = data["MediaContainer"]["Metadata"][0]["Media"][0]["Part"][0]
        except (KeyError, IndexError, TypeError) as e:
            raise ValidationFailure(
                f"Media server metadata for {key} has no media part", field="Part"
            ) from e
        if not isinstance(part, dict) or part.get("id") is None:
            raise ValidationFailure(
                f"Media server part for {key} has no id", field="Part.id"
            )
        return part

    async def download_part(self, part_id: int | str, destination: Path) -> int:
        """Stream a part's bytes to destination.

        The file is written under a temporary name and renamed on success,
        so a failed download never leaves a truncated source behind.

        Returns:
            Number of bytes written.
        """
        destination.parent.mkdir(parents=True, exist_ok=True)
        partial = destination.with_name(destination.name + ".part")
        client = self._get_client()
        url = f"/library/parts/{part_id}/file"
        written = 0
        try:
            async with client.stream(
                "GET",
                url,
                params={"download": "1"},
                timeout=self._download_timeout,
            ) as response:
                self._raise_for_status(response, url)
                with partial.open("wb") as f:
                    async for chunk in response.aiter_bytes(DOWNLOAD_CHUNK_SIZE):
                        f.write(chunk)
                        written += len(chunk)
        except httpx.TimeoutException as e:
            partial.unlink(missing_ok=True)
            raise UpstreamFetchFailure(f"Download of part {part_id} timed out") from e
        except httpx.HTTPError as e:
            partial.unlink(missing_ok=True)
            raise UpstreamFetchFailure(f"Download of part {part_id} failed: {e}") from e
        except UpstreamFetchFailure:
            partial.unlink(missing_ok=True)
            raise
        partial.replace(destination)
        logger.info("Downloaded part %s (%d bytes) to %s", part_id, written, destination)
        return written
