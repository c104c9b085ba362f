"""Hotkey assignment for exported clips.

Four tiers of twelve function keys: F1-F12 unmodified, then with Ctrl,
Alt and Shift. Index 48 wraps back to F1, so packages with more than 48
ranges share keys.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import asdict, dataclass, field

from clipshare.db import Range

SLOTS_PER_TIER = 12
TIER_MODIFIERS: tuple[tuple[str, ...], ...] = ((), ("Ctrl",), ("Alt",), ("Shift",))
DISTINCT_SLOTS = SLOTS_PER_TIER * len(TIER_MODIFIERS)


@dataclass(frozen=True)
class Hotkey:
    """A key binding for one exported range."""

    range_id: str
    key: str
    modifiers: tuple[str, ...] = field(default_factory=tuple)
    label: str = ""

    @property
    def combo(self) -> str:
        """Display form, e.g. ``Ctrl+F3``."""
        return "+".join((*self.modifiers, self.key))

    def to_dict(self) -> dict[str, object]:
        data = asdict(self)
        data["rangeId"] = data.pop("range_id")
        data["modifiers"] = list(self.modifiers)
        return data


def assign_hotkey(index: int) -> tuple[str, tuple[str, ...]]:
    """Key and modifiers for the range at a position.

    Pure in index. Every hotkey pattern an export can request maps onto
    this same four-tier scheme, so the pattern is not an input.

    Returns:
        (key, modifiers), e.g. ("F1", ()) for index 0 and ("F1", ("Ctrl",))
        for index 12.
    """
    if index < 0:
        raise ValueError(f"index must be >= 0, got {index}")
    slot = index % DISTINCT_SLOTS
    tier, position = divmod(slot, SLOTS_PER_TIER)
    return f"F{position + 1}", TIER_MODIFIERS[tier]


def build_hotkeys(ranges: Sequence[Range]) -> list[Hotkey]:
    """Assign hotkeys to ranges in list order."""
    hotkeys = []
    for i, range_ in enumerate(ranges):
        key, modifiers = assign_hotkey(i)
        hotkeys.append(
            Hotkey(
                range_id=range_.id,
                key=key,
                modifiers=modifiers,
                label=range_.label or f"Clip {i + 1}",
            )
        )
    return hotkeys
