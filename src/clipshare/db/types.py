"""Type definitions for the clipshare store.

Enums and record dataclasses for the four persisted entities: Resource,
Range, Job and ShotBoundary.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from enum import Enum
from typing import Any


class JobKind(Enum):
    """What a Job derives."""

    PROCESS_RESOURCE = "process_resource"  # acquire → transcode → shots → frames → clips
    EXPORT_CLIP = "export_clip"  # Debounced per-range regeneration
    EXPORT_PACKAGE = "export_package"  # Multi-clip control package archive


class JobStatus(Enum):
    """Status of a Job over its lifetime."""

    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_STATUSES


TERMINAL_STATUSES = frozenset(
    {JobStatus.COMPLETED, JobStatus.FAILED, JobStatus.CANCELLED}
)


class SourceKind(Enum):
    """Where a Resource's source media comes from."""

    LOCAL = "local"  # source_ref is a filesystem path
    MEDIA_SERVER = "media_server"  # source_ref is a library metadata key
    VIDEO_HOST = "video_host"  # source_ref is a video-host URL


class ProcessingStatus(Enum):
    """Resource-level mirror of its latest processing Job."""

    IDLE = "idle"  # No processing Job yet
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"

    @classmethod
    def from_job_status(cls, status: JobStatus) -> ProcessingStatus:
        return cls(status.value)


class DetectionMethod(Enum):
    """How a shot boundary was detected."""

    FFPROBE_SCENE = "ffprobe_scene"
    FFMPEG_SCENE = "ffmpeg_scene"
    HISTOGRAM_DIFFERENCE = "histogram_difference"


@dataclass
class Resource:
    """Database record for resources table."""

    id: str
    title: str
    content_title: str | None
    source_kind: SourceKind
    source_ref: str
    duration_seconds: float | None  # None until known or probed
    processing_status: ProcessingStatus
    processing_progress: float  # 0.0 - 100.0
    created_at: str  # ISO 8601 UTC
    updated_at: str  # ISO 8601 UTC


@dataclass
class Range:
    """Database record for ranges table (a user bookmark)."""

    id: str
    resource_id: str
    label: str | None
    start_ms: int
    end_ms: int
    created_by: str | None
    clip_path: str | None  # Derived clip, relative to the resource directory
    created_at: str
    updated_at: str

    @property
    def duration_ms(self) -> int:
        return self.end_ms - self.start_ms


@dataclass
class Job:
    """Database record for jobs table."""

    id: str  # UUID v4
    resource_id: str
    kind: JobKind
    status: JobStatus
    progress_percent: float  # 0.0 - 100.0, never decreases while processing
    created_at: str
    updated_at: str
    range_id: str | None = None  # Set for EXPORT_CLIP jobs
    error_text: str | None = None
    payload_json: str | None = None  # Kind-specific inputs and results
    started_at: str | None = None
    completed_at: str | None = None

    @property
    def payload(self) -> dict[str, Any] | None:
        """Decoded payload_json."""
        return json.loads(self.payload_json) if self.payload_json else None


@dataclass
class ShotBoundary:
    """Database record for shot_boundaries table."""

    id: int | None
    resource_id: str
    timestamp_ms: int
    confidence: float
    detection_method: DetectionMethod

    @property
    def timestamp_seconds(self) -> float:
        return self.timestamp_ms / 1000
