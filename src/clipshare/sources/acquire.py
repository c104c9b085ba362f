"""Source acquisition: resolve a Resource to a readable media file."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path

import httpx

from clipshare.config.models import MediaServerConfig
from clipshare.db import Resource, SourceKind
from clipshare.exceptions import ValidationFailure
from clipshare.sources.media_server import MediaServerClient
from clipshare.sources.video_host import VideoHostFetcher

logger = logging.getLogger(__name__)

MANAGED_SOURCE_NAME = "source.mp4"


@dataclass
class AcquiredSource:
    """A source file ready for transcoding.

    Attributes:
        path: File to read.
        managed: True if the file was fetched into our storage and may be
            deleted once the canonical file exists.
        duration_seconds: Duration reported by the source, when known.
    """

    path: Path
    managed: bool
    duration_seconds: float | None = None


class SourceAcquirer:
    """Dispatch acquisition on ``Resource.source_kind``."""

    def __init__(
        self,
        media_server: MediaServerConfig,
        video_host: VideoHostFetcher,
        media_server_transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._media_server_config = media_server
        self._video_host = video_host
        self._transport = media_server_transport

    async def acquire(self, resource: Resource, resource_dir: Path) -> AcquiredSource:
        """Make the resource's source media available locally.

        Raises:
            ValidationFailure: Missing local file or malformed metadata.
            UpstreamFetchFailure: Remote fetch failed.
        """
        if resource.source_kind == SourceKind.LOCAL:
            return self._acquire_local(resource)
        if resource.source_kind == SourceKind.MEDIA_SERVER:
            return await self._acquire_media_server(resource, resource_dir)
        if resource.source_kind == SourceKind.VIDEO_HOST:
            download = await self._video_host.download(
                resource.source_ref, resource.id, resource_dir
            )
            return AcquiredSource(
                download.path, managed=True, duration_seconds=download.duration_seconds
            )
        raise ValidationFailure(
            f"unsupported source kind {resource.source_kind}", field="source_kind"
        )

    @staticmethod
    def _acquire_local(resource: Resource) -> AcquiredSource:
        path = Path(resource.source_ref).expanduser()
        if not path.is_file():
            raise ValidationFailure(
                f"source file not found: {path}", field="source_ref"
            )
        return AcquiredSource(path, managed=False, duration_seconds=resource.duration_seconds)

    async def _acquire_media_server(
        self, resource: Resource, resource_dir: Path
    ) -> AcquiredSource:
        async with self._client() as client:
            part = await client.get_part(resource.source_ref)
            duration_ms = part.get("duration")
            duration = duration_ms / 1000 if isinstance(duration_ms, (int, float)) else None

            local_file = part.get("file")
            if local_file and Path(local_file).is_file():
                logger.info("Using media server part directly: %s", local_file)
                return AcquiredSource(Path(local_file), managed=False, duration_seconds=duration)

            destination = resource_dir / MANAGED_SOURCE_NAME
            await client.download_part(part["id"], destination)
            return AcquiredSource(destination, managed=True, duration_seconds=duration)

    def _client(self) -> MediaServerClient:
        return MediaServerClient(self._media_server_config, transport=self._transport)
