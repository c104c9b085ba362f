"""Resource processing pipeline and debounced range regeneration."""

from clipshare.pipeline.clips import (
    ClipBatchResult,
    clip_relpath,
    generate_range_clips,
    trim_range_clip,
)
from clipshare.pipeline.frames import (
    FrameSampler,
    FrameSampleResult,
    iter_batches,
    plan_frame_times,
    write_sidecar,
)
from clipshare.pipeline.orchestrator import (
    CANONICAL_NAME,
    FRAMES_DIRNAME,
    PipelineOrchestrator,
    frames_progress,
)
from clipshare.pipeline.regeneration import (
    DELETED_REASON,
    SUPERSEDED_REASON,
    RegenerationScheduler,
    validate_offsets,
)
from clipshare.pipeline.shots import ShotDetector, histogram_cuts

__all__ = [
    "CANONICAL_NAME",
    "ClipBatchResult",
    "DELETED_REASON",
    "FRAMES_DIRNAME",
    "FrameSampleResult",
    "FrameSampler",
    "PipelineOrchestrator",
    "RegenerationScheduler",
    "SUPERSEDED_REASON",
    "ShotDetector",
    "clip_relpath",
    "frames_progress",
    "generate_range_clips",
    "histogram_cuts",
    "iter_batches",
    "plan_frame_times",
    "trim_range_clip",
    "validate_offsets",
    "write_sidecar",
]
