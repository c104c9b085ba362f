"""JSON metadata written into export packages."""

from __future__ import annotations

import json
from collections.abc import Sequence
from pathlib import Path
from typing import Any

from clipshare.db import Range, Resource
from clipshare.export.rendering import PackageClip


def collaborators_for(ranges: Sequence[Range]) -> list[str]:
    """Distinct range creators in first-seen order."""
    seen: dict[str, None] = {}
    for range_ in ranges:
        if range_.created_by:
            seen.setdefault(range_.created_by, None)
    return list(seen)


def clips_document(clips: Sequence[PackageClip]) -> list[dict[str, Any]]:
    return [
        {
            "id": c.range_id,
            "label": c.label,
            "filename": c.filename,
            "startMs": c.start_ms,
            "endMs": c.end_ms,
            "duration": c.duration_seconds,
            "creator": c.creator,
            "createdAt": c.created_at,
            "hotkey": c.hotkey,
        }
        for c in clips
    ]


def hotkeys_document(clips: Sequence[PackageClip]) -> list[dict[str, object]]:
    return [c.hotkey_binding.to_dict() for c in clips]


def resource_info_document(
    resource: Resource,
    clip_count: int,
    collaborators: Sequence[str],
    created_at: str,
) -> dict[str, Any]:
    return {
        "id": resource.id,
        "title": resource.title,
        "contentTitle": resource.content_title,
        "durationSeconds": resource.duration_seconds,
        "createdAt": created_at,
        "totalClips": clip_count,
        "collaborators": list(collaborators),
    }


def obs_config_document(
    resource: Resource,
    clips: Sequence[PackageClip],
    package_name: str,
) -> dict[str, Any]:
    """config.json read by setup_obs.py."""
    return {
        "resource": {
            "id": resource.id,
            "title": resource.title,
            "contentTitle": resource.content_title,
        },
        "clips": [
            {
                "id": c.range_id,
                "label": c.label,
                "filename": c.filename,
                "startMs": c.start_ms,
                "endMs": c.end_ms,
                "duration": c.duration_seconds,
                "creator": c.creator,
            }
            for c in clips
        ],
        "hotkeys": hotkeys_document(clips),
        "packagePath": package_name,
    }


def write_json(path: Path, data: Any) -> Path:
    path.write_text(json.dumps(data, indent=2), encoding="utf-8")
    return path
