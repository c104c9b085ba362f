"""Jinja2 rendering of the export package's text artifacts."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from functools import lru_cache
from typing import Any

import jinja2

from clipshare.db import Resource
from clipshare.export.hotkeys import Hotkey

# Buttons shown above the full clip grid
QUICK_ACCESS_COUNT = 8

WEB_TEMPLATES = {
    "index.html": "index.html.j2",
    "style.css": "style.css.j2",
    "script.js": "script.js.j2",
}

OBS_TEMPLATES = {
    "setup_obs.py": "setup_obs.py.j2",
    "setup_obs.sh": "setup_obs.sh.j2",
    "setup_obs.bat": "setup_obs.bat.j2",
}


@dataclass(frozen=True)
class PackageClip:
    """One exported range as the templates and metadata files see it."""

    range_id: str
    label: str
    filename: str
    start_ms: int
    end_ms: int
    creator: str
    created_at: str
    hotkey_binding: Hotkey

    @property
    def duration_seconds(self) -> float:
        return (self.end_ms - self.start_ms) / 1000.0

    @property
    def duration(self) -> str:
        """Duration with one decimal, as shown to the operator."""
        return f"{self.duration_seconds:.1f}"

    @property
    def key(self) -> str:
        return self.hotkey_binding.key

    @property
    def hotkey(self) -> str:
        return self.hotkey_binding.combo


@lru_cache(maxsize=1)
def get_environment() -> jinja2.Environment:
    """Shared template environment; HTML templates are autoescaped."""
    return jinja2.Environment(
        loader=jinja2.PackageLoader("clipshare.export", "templates"),
        autoescape=jinja2.select_autoescape(enabled_extensions=("html.j2",)),
        keep_trailing_newline=True,
        undefined=jinja2.StrictUndefined,
    )


def _render_all(templates: dict[str, str], context: dict[str, Any]) -> dict[str, str]:
    env = get_environment()
    return {
        filename: env.get_template(name).render(**context)
        for filename, name in templates.items()
    }


def render_web_interface(
    resource: Resource,
    clips: Sequence[PackageClip],
    theme: str,
) -> dict[str, str]:
    """Render index.html, style.css and script.js.

    Returns:
        Mapping of output filename to rendered text.
    """
    return _render_all(
        WEB_TEMPLATES,
        {
            "resource": resource,
            "clips": list(clips),
            "theme": theme,
            "quick_access_count": QUICK_ACCESS_COUNT,
            "hotkeys": [c.hotkey_binding.to_dict() for c in clips],
        },
    )


def render_obs_scripts(
    resource: Resource,
    clips: Sequence[PackageClip],
    websocket_port: int,
    websocket_password: str,
) -> dict[str, str]:
    """Render the OBS setup script and its shell/batch launchers.

    The setup script carries one hotkey registration per clip.
    """
    return _render_all(
        OBS_TEMPLATES,
        {
            "resource": resource,
            "clips": list(clips),
            "websocket_port": websocket_port,
            "websocket_password": websocket_password,
        },
    )


def render_readme(
    resource: Resource,
    clips: Sequence[PackageClip],
    *,
    quality: str,
    collaborators: Sequence[str],
    created_at: str,
    websocket_port: int,
    websocket_password: str,
) -> str:
    return get_environment().get_template("README.md.j2").render(
        resource=resource,
        clips=list(clips),
        quality=quality,
        collaborators=list(collaborators),
        created_at=created_at,
        websocket_port=websocket_port,
        websocket_password=websocket_password,
    )
