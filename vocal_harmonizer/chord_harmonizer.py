"""Deterministic triad harmonizer with octave-based voice-leading smoothing.

``ChordHarmonizer`` builds a root-position style voicing directly from the
lead pitch: the bass doubles the lead an octave lower, the tenor takes the
fifth below and the mezzo-soprano the third below, while the soprano carries
the lead pitch itself.  Whether the third is major or minor depends only on
the lead's pitch class.

Each voice is fitted into its range by repeated octave shifts.  When a
previous harmony exists, voices that would leap by more than a tritone try the
octave above and below and keep whichever in-range option lands closest to
the previous pitch.

This strategy needs no vocabulary, so the probabilistic harmonizer delegates
to it whenever the lead pitch cannot be encoded.  It may also be selected on
its own.

Example
-------
>>> import random
>>> h = ChordHarmonizer(rng=random.Random(1))
>>> h.generate("soprano", Note(60, 0.8, "A"), 0.8).pitches()
{'bass': 48, 'tenor': 53, 'mezzo_soprano': 68, 'soprano': 60}
"""

from __future__ import annotations

import random
from typing import Dict, Optional

from .config import HarmonizerConfig
from .notes import VOICES, HarmonyResult, Note, alternate_vowel
from .voice_ranges import search_then_clamp

__all__ = ["ChordHarmonizer", "MAJOR_THIRD", "MINOR_THIRD", "FIFTH"]

MAJOR_THIRD = 4
MINOR_THIRD = 3
FIFTH = 7


class ChordHarmonizer:
    """Harmonize a lead note with a triad voiced across four ranges."""

    def __init__(
        self,
        config: Optional[HarmonizerConfig] = None,
        *,
        rng: Optional[random.Random] = None,
    ) -> None:
        self.config = config or HarmonizerConfig()
        self.ranges = self.config.ranges()
        self.rng = rng or random.Random()
        self.previous: Optional[HarmonyResult] = None

    def third_for(self, pitch: int) -> int:
        """Return the third above the chord root implied by ``pitch``."""

        if pitch % 12 in self.config.major_pitch_classes:
            return MAJOR_THIRD
        return MINOR_THIRD

    def voice_triad(self, lead_pitch: int) -> Dict[str, int]:
        """Return range-fitted pitches for every voice before smoothing."""

        offsets = {
            "bass": -12,
            "tenor": -FIFTH,
            "mezzo_soprano": -self.third_for(lead_pitch),
            "soprano": 0,
        }
        return {
            voice: search_then_clamp(lead_pitch + offset, self.ranges.range_for(voice))
            for voice, offset in offsets.items()
        }

    def smooth(self, pitches: Dict[str, int], previous: HarmonyResult) -> Dict[str, int]:
        """Octave-shift voices that leap too far from ``previous``."""

        smoothed = dict(pitches)
        for voice, pitch in pitches.items():
            prev_pitch = previous[voice].pitch
            interval = abs(pitch - prev_pitch)
            if interval <= self.config.smoothing_threshold:
                continue
            voice_range = self.ranges.range_for(voice)
            best, best_interval = pitch, interval
            for alt in (pitch + 12, pitch - 12):
                if alt not in voice_range:
                    continue
                alt_interval = abs(alt - prev_pitch)
                # Strictly smaller so ties keep the earlier candidate.
                if alt_interval < best_interval:
                    best, best_interval = alt, alt_interval
            smoothed[voice] = best
        return smoothed

    def generate(self, lead_voice: str, lead_note: Note, volume: float) -> HarmonyResult:
        """Return a four-voice harmony for ``lead_note``.

        The lead role receives ``volume`` and the lead's vowel; every other
        role receives ``volume`` scaled by ``harmony_velocity_scale`` and keeps
        the lead's vowel with ``primary_vowel_probability``.
        """

        pitches = self.voice_triad(lead_note.pitch)
        if self.previous is not None:
            pitches = self.smooth(pitches, self.previous)

        notes: Dict[str, Note] = {}
        for voice in VOICES:
            if voice == lead_voice:
                notes[voice] = Note(pitches[voice], volume, lead_note.vowel)
                continue
            if self.rng.random() < self.config.primary_vowel_probability:
                vowel = lead_note.vowel
            else:
                vowel = alternate_vowel(lead_note.vowel)
            notes[voice] = Note(
                pitches[voice], volume * self.config.harmony_velocity_scale, vowel
            )

        result = HarmonyResult.from_mapping(notes)
        self.previous = result
        return result

    def reset(self) -> None:
        """Forget the previous harmony so the next call skips smoothing."""

        self.previous = None

