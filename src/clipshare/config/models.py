"""Configuration models for clipshare.

Each section is a dataclass validated in __post_init__; ClipshareConfig
aggregates them and derives the data directory layout.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path


def _require_positive(name: str, value: float) -> None:
    if value <= 0:
        raise ValueError(f"{name} must be positive, got {value}")


@dataclass
class ToolPathsConfig:
    """Executable paths for external tools (names resolve through PATH)."""

    ffmpeg: str = "ffmpeg"
    ffprobe: str = "ffprobe"
    yt_dlp: str = "yt-dlp"

    def as_mapping(self) -> dict[str, str]:
        """Logical command name -> executable, as the executor expects."""
        return {"ffmpeg": self.ffmpeg, "ffprobe": self.ffprobe, "yt-dlp": self.yt_dlp}


@dataclass
class ExecutorConfig:
    """Timeouts and retry policy for external commands, in seconds."""

    kill_grace: float = 5.0
    retry_delay: float = 5.0
    transcode_timeout: float = 1800.0
    shot_detect_timeout: float = 1800.0
    frame_batch_timeout: float = 600.0
    clip_timeout: float = 300.0
    export_clip_timeout: float = 900.0
    thumbnail_timeout: float = 300.0
    download_timeout: float = 1800.0
    probe_timeout: float = 60.0

    def __post_init__(self) -> None:
        """Validate configuration."""
        for name in (
            "kill_grace",
            "transcode_timeout",
            "shot_detect_timeout",
            "frame_batch_timeout",
            "clip_timeout",
            "export_clip_timeout",
            "thumbnail_timeout",
            "download_timeout",
            "probe_timeout",
        ):
            _require_positive(name, getattr(self, name))
        if self.retry_delay < 0:
            raise ValueError(f"retry_delay must be >= 0, got {self.retry_delay}")


@dataclass
class PipelineConfig:
    """Constants for the processing stages."""

    # Timestamps per frame-extraction invocation (argument length ceiling)
    frame_batch_size: int = 1000
    frame_interval_seconds: float = 10.0
    # Interval points closer than this to a shot cut are skipped
    frame_dedupe_seconds: float = 1.0
    frame_warning_threshold: int = 100_000
    scene_threshold: float = 0.4
    ticker_interval_seconds: float = 1.0
    ticker_step_percent: float = 7.0
    # Use one claim table for processing and export triggers on a resource
    shared_resource_guard: bool = False

    def __post_init__(self) -> None:
        """Validate configuration."""
        if self.frame_batch_size < 1:
            raise ValueError(
                f"frame_batch_size must be >= 1, got {self.frame_batch_size}"
            )
        _require_positive("frame_interval_seconds", self.frame_interval_seconds)
        _require_positive("ticker_interval_seconds", self.ticker_interval_seconds)
        if not 0 < self.scene_threshold < 1:
            raise ValueError(
                f"scene_threshold must be between 0 and 1, got {self.scene_threshold}"
            )


@dataclass
class RegenerationConfig:
    """Debounced per-range clip regeneration."""

    debounce_seconds: float = 1.2

    def __post_init__(self) -> None:
        """Validate configuration."""
        if self.debounce_seconds < 0:
            raise ValueError(
                f"debounce_seconds must be >= 0, got {self.debounce_seconds}"
            )


@dataclass
class ExportConfig:
    """Defaults for export packages (overridable per request)."""

    quality: str = "1080p"
    hotkey_pattern: str = "sequential"
    theme: str = "dark"
    naming_convention: str = "workspace-content-label"
    # Broadcast tool remote-control settings written into the setup script
    websocket_port: int = 4455
    websocket_password: str = "clipshare_vtr"

    def __post_init__(self) -> None:
        """Validate configuration."""
        if self.quality not in {"1080p", "720p", "480p"}:
            raise ValueError(f"quality must be 1080p, 720p or 480p, got {self.quality}")
        if self.theme not in {"dark", "light"}:
            raise ValueError(f"theme must be dark or light, got {self.theme}")
        if not 1 <= self.websocket_port <= 65535:
            raise ValueError(
                f"websocket_port must be 1-65535, got {self.websocket_port}"
            )


@dataclass
class MediaServerConfig:
    """Remote media server connection (Plex-compatible API)."""

    url: str | None = None
    token: str | None = None
    timeout: float = 30.0
    download_timeout: float = 300.0

    def __post_init__(self) -> None:
        """Validate configuration."""
        if self.url is not None:
            self.url = self.url.rstrip("/")
        _require_positive("timeout", self.timeout)
        _require_positive("download_timeout", self.download_timeout)


@dataclass
class ServerConfig:
    """Configuration for `clipshare serve`."""

    bind: str = "127.0.0.1"
    """Network address to bind to. Default localhost."""

    port: int = 8420
    """Port number for the HTTP API."""

    shutdown_timeout: float = 30.0
    """Seconds to wait for graceful shutdown before cancelling tasks."""

    def __post_init__(self) -> None:
        """Validate configuration."""
        if not 1 <= self.port <= 65535:
            raise ValueError(f"port must be 1-65535, got {self.port}")
        _require_positive("shutdown_timeout", self.shutdown_timeout)


@dataclass
class LoggingConfig:
    """Configuration for structured logging."""

    # Log level: debug, info, warning, error
    level: str = "info"

    # Log file path (None = stderr only)
    file: Path | None = None

    # Log format: text or json
    format: str = "text"

    # Also log to stderr when file is set
    include_stderr: bool = False

    # Rotation threshold in bytes (default 10MB)
    max_bytes: int = 10_485_760

    # Number of rotated files to keep
    backup_count: int = 5

    def __post_init__(self) -> None:
        """Validate configuration."""
        valid_levels = {"debug", "info", "warning", "error"}
        if self.level.lower() not in valid_levels:
            raise ValueError(f"level must be one of {valid_levels}, got {self.level}")
        valid_formats = {"text", "json"}
        if self.format.lower() not in valid_formats:
            raise ValueError(
                f"format must be one of {valid_formats}, got {self.format}"
            )
        if self.file is not None and not isinstance(self.file, Path):
            self.file = Path(self.file).expanduser()


@dataclass
class ClipshareConfig:
    """Main configuration container.

    The data directory holds everything the service writes:

        {data_dir}/processed-files/{resource_id}/...   derived artifacts
        {data_dir}/temp/                               export staging
        {data_dir}/db/clipshare.db                     persisted store
        {data_dir}/logs/                               log files
    """

    data_dir: Path = field(default_factory=Path.cwd)
    tools: ToolPathsConfig = field(default_factory=ToolPathsConfig)
    executor: ExecutorConfig = field(default_factory=ExecutorConfig)
    pipeline: PipelineConfig = field(default_factory=PipelineConfig)
    regeneration: RegenerationConfig = field(default_factory=RegenerationConfig)
    export: ExportConfig = field(default_factory=ExportConfig)
    media_server: MediaServerConfig = field(default_factory=MediaServerConfig)
    server: ServerConfig = field(default_factory=ServerConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    @property
    def processed_dir(self) -> Path:
        return self.data_dir / "processed-files"

    @property
    def temp_dir(self) -> Path:
        return self.data_dir / "temp"

    @property
    def db_path(self) -> Path:
        return self.data_dir / "db" / "clipshare.db"

    @property
    def logs_dir(self) -> Path:
        return self.data_dir / "logs"

    def ensure_directories(self) -> None:
        """Create the data directory layout if missing."""
        for path in (
            self.processed_dir,
            self.temp_dir,
            self.db_path.parent,
            self.logs_dir,
        ):
            path.mkdir(parents=True, exist_ok=True)
