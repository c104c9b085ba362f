"""Export request options."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

from clipshare.config.models import ExportConfig

Quality = Literal["1080p", "720p", "480p"]
HotkeyPattern = Literal["sequential", "creator-based", "time-based"]
Theme = Literal["dark", "light"]
NamingConvention = Literal[
    "workspace-content-label", "content-label", "label-only", "workspace-label"
]


class ExportOptions(BaseModel):
    """Options for one export package build.

    Field aliases match the camelCase keys accepted by the HTTP API.
    """

    model_config = ConfigDict(extra="forbid", frozen=True, populate_by_name=True)

    quality: Quality = "1080p"
    hotkey_pattern: HotkeyPattern = Field(default="sequential", alias="hotkeyPattern")
    theme: Theme = Field(default="dark", alias="webInterfaceTheme")
    naming_convention: NamingConvention = Field(
        default="workspace-content-label", alias="namingConvention"
    )
    include_collaborators: bool = Field(default=True, alias="includeCollaborators")

    @field_validator("quality", mode="before")
    @classmethod
    def normalize_quality(cls, v: object) -> object:
        """Accept "1080P" and similar spellings."""
        if isinstance(v, str):
            return v.strip().lower()
        return v

    @classmethod
    def from_config(cls, config: ExportConfig, **overrides: object) -> ExportOptions:
        """Build options from configured defaults plus request overrides."""
        data: dict[str, object] = {
            "quality": config.quality,
            "hotkey_pattern": config.hotkey_pattern,
            "theme": config.theme,
            "naming_convention": config.naming_convention,
        }
        data.update({k: v for k, v in overrides.items() if v is not None})
        return cls.model_validate(data)

    @classmethod
    def from_request(cls, config: ExportConfig, body: Mapping[str, Any]) -> ExportOptions:
        """Overlay a camelCase request body on the configured defaults.

        Raises:
            pydantic.ValidationError: Unknown keys or invalid values.
        """
        data = cls.from_config(config).model_dump(by_alias=True)
        data.update(body)
        return cls.model_validate(data)
