"""Tests for export request options."""

import pydantic
import pytest

from clipshare.config.models import ExportConfig
from clipshare.export import ExportOptions


class TestExportOptions:
    def test_defaults_from_config(self):
        config = ExportConfig(quality="720p", theme="light")
        options = ExportOptions.from_config(config)
        assert options.quality == "720p"
        assert options.theme == "light"
        assert options.include_collaborators

    def test_request_overlays_defaults(self):
        """camelCase request keys override configured defaults."""
        options = ExportOptions.from_request(
            ExportConfig(), {"quality": "480P", "webInterfaceTheme": "light"}
        )
        assert options.quality == "480p"
        assert options.theme == "light"
        assert options.naming_convention == "workspace-content-label"

    def test_dump_uses_aliases(self):
        data = ExportOptions().model_dump(by_alias=True)
        assert data == {
            "quality": "1080p",
            "hotkeyPattern": "sequential",
            "webInterfaceTheme": "dark",
            "namingConvention": "workspace-content-label",
            "includeCollaborators": True,
        }

    @pytest.mark.parametrize(
        "body", [{"quality": "4k"}, {"theme2": "dark"}, {"hotkeyPattern": "random"}]
    )
    def test_rejects_invalid_requests(self, body):
        with pytest.raises(pydantic.ValidationError):
            ExportOptions.from_request(ExportConfig(), body)
