"""Video-host downloads through yt-dlp."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from clipshare.core.string_utils import clean_video_title
from clipshare.exceptions import ValidationFailure
from clipshare.executor import CommandRunner, RunOptions

logger = logging.getLogger(__name__)

YT_DLP = "yt-dlp"
DOWNLOAD_FORMAT = "best[height<=1080]/best"


@dataclass
class VideoHostDownload:
    """A finished video-host download."""

    path: Path
    title: str
    duration_seconds: float | None
    metadata: dict[str, Any]


class VideoHostFetcher:
    """Fetch metadata and media for a video-host URL.

    Args:
        runner: Process executor used for every yt-dlp call.
        timeout: Per-invocation timeout in seconds.
        retries: Extra attempts on spawn/exit failure.
        retry_delay: Fixed delay between attempts.
    """

    def __init__(
        self,
        runner: CommandRunner,
        timeout: float = 1800.0,
        retries: int = 2,
        retry_delay: float = 5.0,
    ) -> None:
        self._runner = runner
        self._options = RunOptions(
            timeout=timeout,
            retries=retries,
            retry_delay=retry_delay,
            label="yt-dlp",
        )

    async def fetch_metadata(self, url: str) -> dict[str, Any]:
        """Return yt-dlp's single-JSON metadata for url.

        Raises:
            ValidationFailure: yt-dlp printed something other than a JSON
                object.
        """
        result = await self._runner.run(
            YT_DLP,
            [
                "--dump-single-json",
                "--no-check-certificates",
                "--no-warnings",
                "--prefer-free-formats",
                url,
            ],
            self._options,
        )
        try:
            data = json.loads(result.stdout)
        except json.JSONDecodeError as e:
            raise ValidationFailure(f"yt-dlp returned invalid metadata for {url}") from e
        if not isinstance(data, dict):
            raise ValidationFailure(f"yt-dlp metadata for {url} is not an object")
        return data

    async def download(self, url: str, resource_id: str, resource_dir: Path) -> VideoHostDownload:
        """Download url into ``{resource_dir}/videos`` as an .mp4.

        Returns:
            The downloaded file with its cleaned title and duration.
        """
        metadata = await self.fetch_metadata(url)
        title = clean_video_title(metadata.get("title")) or "video"
        videos_dir = resource_dir / "videos"
        videos_dir.mkdir(parents=True, exist_ok=True)
        stem = f"{title}_{resource_id}"

        await self._runner.run(
            YT_DLP,
            [
                "-f", DOWNLOAD_FORMAT,
                "--no-playlist",
                "--no-warnings",
                "-o", str(videos_dir / f"{stem}.%(ext)s"),
                url,
            ],
            self._options,
        )  # fmt: skip

        downloaded = sorted(
            p for p in videos_dir.glob(f"{stem}.*") if not p.name.endswith(".part")
        )
        if not downloaded:
            raise ValidationFailure(f"yt-dlp reported success but wrote no file for {url}")
        path = downloaded[0]
        if path.suffix != ".mp4":
            target = path.with_suffix(".mp4")
            path.replace(target)
            path = target

        duration = metadata.get("duration")
        logger.info("Downloaded %s to %s", url, path)
        return VideoHostDownload(
            path=path,
            title=title,
            duration_seconds=float(duration) if isinstance(duration, (int, float)) else None,
            metadata=metadata,
        )
