"""Clip filenames for export packages."""

from __future__ import annotations

from collections.abc import Sequence

from clipshare.core.string_utils import sanitize_filename_component
from clipshare.db import Range, Resource


def clip_filename(resource: Resource, range_: Range, convention: str) -> str:
    """Filename stem for a range under a naming convention.

    Conventions: ``workspace-content-label``, ``content-label``,
    ``label-only``; anything else gives ``{title}-{label}``.
    """
    title = sanitize_filename_component(resource.title)
    content = sanitize_filename_component(resource.content_title or resource.title)
    label = sanitize_filename_component(range_.label)
    if convention == "workspace-content-label":
        return f"{title}-{content}-{label}"
    if convention == "content-label":
        return f"{content}-{label}"
    if convention == "label-only":
        return label
    return f"{title}-{label}"


def unique_clip_filenames(
    resource: Resource, ranges: Sequence[Range], convention: str
) -> dict[str, str]:
    """Map range id to a ``.mp4`` filename, suffixing repeats with -2, -3..."""
    used: set[str] = set()
    names: dict[str, str] = {}
    for range_ in ranges:
        stem = clip_filename(resource, range_, convention)
        candidate, n = stem, 1
        while candidate in used:
            n += 1
            candidate = f"{stem}-{n}"
        used.add(candidate)
        names[range_.id] = f"{candidate}.mp4"
    return names
