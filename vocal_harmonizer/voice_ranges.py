"""Vocal range tables and the two octave-correction policies.

Each voice role owns a closed MIDI interval.  Two correction policies keep
generated pitches inside that interval and are intentionally *not* unified:

``shift_once_then_clamp``
    Used by the probabilistic harmonizer.  A pitch below the range moves up a
    single octave, a pitch above moves down a single octave and the result is
    then hard-clamped.  Pitches far outside the range therefore collapse onto
    the boundary instead of landing in the nearest octave.

``search_then_clamp``
    Used by the chord harmonizer.  Octaves are added or removed repeatedly
    until the pitch enters the range, then the result is clamped.  The clamp
    only matters for ranges narrower than an octave.

Two named profiles are provided.  ``"wide"`` matches the ranges used by the
interactive singer display while ``"narrow"`` follows the classic SATB table.

Example
-------
>>> wide = RANGE_PROFILES["wide"]
>>> shift_once_then_clamp(30, wide.range_for("bass"))
42
>>> search_then_clamp(30, wide.range_for("bass"))
42
>>> shift_once_then_clamp(20, wide.range_for("bass"))
40
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Dict, Mapping, Tuple

__all__ = [
    "VoiceRange",
    "RangeProfile",
    "DEFAULT_RANGE",
    "RANGE_PROFILES",
    "shift_once_then_clamp",
    "search_then_clamp",
    "get_range_profile",
]

OCTAVE = 12


@dataclass(frozen=True)
class VoiceRange:
    """Closed pitch interval ``[low, high]``."""

    low: int
    high: int

    def __post_init__(self) -> None:
        if self.low > self.high:
            raise ValueError(f"range low {self.low} exceeds high {self.high}")

    def __contains__(self, pitch: int) -> bool:
        return self.low <= pitch <= self.high

    def clamp(self, pitch: int) -> int:
        return max(self.low, min(self.high, pitch))


# Range assumed for a role that is absent from a profile.
DEFAULT_RANGE = VoiceRange(40, 84)


@dataclass(frozen=True)
class RangeProfile:
    """Named mapping of voice roles to :class:`VoiceRange` values."""

    name: str
    ranges: Tuple[Tuple[str, VoiceRange], ...]

    @classmethod
    def from_mapping(
        cls, name: str, ranges: Mapping[str, Tuple[int, int]]
    ) -> "RangeProfile":
        """Create a profile from ``{role: (low, high)}`` pairs."""

        items = []
        for voice, bounds in ranges.items():
            if isinstance(bounds, VoiceRange):
                items.append((voice, bounds))
                continue
            low, high = bounds
            items.append((voice, VoiceRange(int(low), int(high))))
        return cls(name, tuple(items))

    def range_for(self, voice: str) -> VoiceRange:
        """Return the range for ``voice`` or :data:`DEFAULT_RANGE` when unknown."""

        for name, rng in self.ranges:
            if name == voice:
                return rng
        return DEFAULT_RANGE

    def as_dict(self) -> Dict[str, Tuple[int, int]]:
        return {voice: (rng.low, rng.high) for voice, rng in self.ranges}


RANGE_PROFILES: Dict[str, RangeProfile] = {
    "wide": RangeProfile.from_mapping(
        "wide",
        {"bass": (40, 64), "tenor": (48, 69), "mezzo_soprano": (57, 77), "soprano": (60, 84)},
    ),
    "narrow": RangeProfile.from_mapping(
        "narrow",
        {"bass": (36, 55), "tenor": (48, 67), "mezzo_soprano": (55, 72), "soprano": (60, 84)},
    ),
}


def get_range_profile(name: str) -> RangeProfile:
    """Return the built-in profile called ``name``.

    Raises
    ------
    ValueError
        If ``name`` is not a known profile.
    """

    try:
        return RANGE_PROFILES[name]
    except KeyError:
        known = ", ".join(sorted(RANGE_PROFILES))
        raise ValueError(f"Unknown range profile '{name}' (expected one of {known})")


def shift_once_then_clamp(pitch: int, voice_range: VoiceRange) -> int:
    """Move ``pitch`` by at most one octave toward ``voice_range`` then clamp."""

    if pitch < voice_range.low:
        pitch += OCTAVE
    elif pitch > voice_range.high:
        pitch -= OCTAVE
    return voice_range.clamp(pitch)


def search_then_clamp(pitch: int, voice_range: VoiceRange) -> int:
    """Shift ``pitch`` by whole octaves until it enters ``voice_range`` then clamp."""

    while pitch < voice_range.low:
        pitch += OCTAVE
    while pitch > voice_range.high:
        pitch -= OCTAVE
    return voice_range.clamp(pitch)


RangePolicy = Callable[[int, VoiceRange], int]
