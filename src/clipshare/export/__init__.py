"""Export package building: clips, control page, OBS setup and metadata."""

from clipshare.export.hotkeys import (
    DISTINCT_SLOTS,
    SLOTS_PER_TIER,
    Hotkey,
    assign_hotkey,
    build_hotkeys,
)
from clipshare.export.naming import clip_filename, unique_clip_filenames
from clipshare.export.options import ExportOptions
from clipshare.export.packager import ExportPackager, zip_directory
from clipshare.export.rendering import PackageClip

__all__ = [
    "DISTINCT_SLOTS",
    "ExportOptions",
    "ExportPackager",
    "Hotkey",
    "PackageClip",
    "SLOTS_PER_TIER",
    "assign_hotkey",
    "build_hotkeys",
    "clip_filename",
    "unique_clip_filenames",
    "zip_directory",
]
