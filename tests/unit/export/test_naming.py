"""Tests for export clip filenames."""

import pytest

from conftest import make_range, make_resource
from clipshare.export import clip_filename, unique_clip_filenames


@pytest.fixture
def resource():
    return make_resource(title="Cup Final", content_title="2nd Half")


class TestClipFilename:
    @pytest.mark.parametrize(
        "convention,expected",
        [
            ("workspace-content-label", "Cup_Final-2nd_Half-Great_save_"),
            ("content-label", "2nd_Half-Great_save_"),
            ("label-only", "Great_save_"),
            ("workspace-label", "Cup_Final-Great_save_"),
        ],
    )
    def test_conventions(self, resource, convention, expected):
        range_ = make_range(resource.id, 0, 1000, label="Great save!")
        assert clip_filename(resource, range_, convention) == expected

    def test_missing_content_title_uses_title(self):
        resource = make_resource(title="Cup Final", content_title=None)
        range_ = make_range(resource.id, 0, 1000, label="Goal")
        assert clip_filename(resource, range_, "content-label") == "Cup_Final-Goal"

    def test_missing_label(self, resource):
        range_ = make_range(resource.id, 0, 1000)
        assert clip_filename(resource, range_, "label-only") == "untitled"


class TestUniqueClipFilenames:
    def test_repeats_are_suffixed(self, resource):
        """Ranges with the same label get -2, -3 suffixes."""
        ranges = [make_range(resource.id, 0, 1000, label="Goal") for _ in range(3)]
        names = unique_clip_filenames(resource, ranges, "label-only")
        assert [names[r.id] for r in ranges] == ["Goal.mp4", "Goal-2.mp4", "Goal-3.mp4"]
