"""Tests for hotkey assignment."""

import pytest

from conftest import make_range
from clipshare.export import DISTINCT_SLOTS, assign_hotkey, build_hotkeys


class TestAssignHotkey:
    def test_first_tier_unmodified(self):
        assert assign_hotkey(0) == ("F1", ())
        assert assign_hotkey(11) == ("F12", ())

    def test_modifier_tiers(self):
        """Each block of twelve adds the next modifier."""
        assert assign_hotkey(12) == ("F1", ("Ctrl",))
        assert assign_hotkey(24) == ("F1", ("Alt",))
        assert assign_hotkey(36) == ("F1", ("Shift",))
        assert assign_hotkey(47) == ("F12", ("Shift",))

    def test_wraps_after_distinct_slots(self):
        assert DISTINCT_SLOTS == 48
        assert assign_hotkey(48) == assign_hotkey(0)
        assert assign_hotkey(61) == assign_hotkey(13)

    def test_second_tier_position(self):
        assert assign_hotkey(14) == ("F3", ("Ctrl",))

    def test_negative_index(self):
        with pytest.raises(ValueError):
            assign_hotkey(-1)


class TestBuildHotkeys:
    def test_labels_fall_back_to_position(self):
        """Unlabelled ranges are named by their position."""
        ranges = [make_range("r", 0, 1000, label="Goal"), make_range("r", 0, 1000)]
        hotkeys = build_hotkeys(ranges)
        assert [h.label for h in hotkeys] == ["Goal", "Clip 2"]
        assert hotkeys[1].combo == "F2"
        assert hotkeys[0].to_dict() == {
            "rangeId": ranges[0].id,
            "key": "F1",
            "modifiers": [],
            "label": "Goal",
        }

    def test_combo_with_modifier(self):
        ranges = [make_range("r", 0, 1000) for _ in range(15)]
        assert build_hotkeys(ranges)[14].combo == "Ctrl+F3"
