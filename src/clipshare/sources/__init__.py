"""Media acquisition from local files, a media server or a video host."""

from clipshare.sources.acquire import AcquiredSource, SourceAcquirer
from clipshare.sources.media_server import MediaServerClient
from clipshare.sources.video_host import VideoHostDownload, VideoHostFetcher

__all__ = [
    "AcquiredSource",
    "MediaServerClient",
    "SourceAcquirer",
    "VideoHostDownload",
    "VideoHostFetcher",
]
