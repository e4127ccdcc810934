"""Value types shared by every harmonizer strategy.

``Note`` describes a single sung pitch while :class:`HarmonyResult` groups one
``Note`` per voice role.  Both are frozen dataclasses so a harmony returned to
the caller can never be altered by a later generation step; strategies build
new instances with :func:`dataclasses.replace` instead.

Example
-------
>>> lead = Note(60, 0.8, "A")
>>> harmony = HarmonyResult.from_mapping({v: lead for v in VOICES})
>>> harmony["soprano"].pitch
60
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Dict, Iterator, Mapping, Tuple

__all__ = ["VOICES", "VOWELS", "Note", "HarmonyResult", "alternate_vowel"]

# Voice roles ordered from lowest to highest.  Strategies iterate in this
# order so random draws happen in a stable sequence for seeded tests.
VOICES: Tuple[str, ...] = ("bass", "tenor", "mezzo_soprano", "soprano")

# Vowel (timbre) tags understood by the downstream synthesizer.
VOWELS: Tuple[str, ...] = ("A", "O")


def alternate_vowel(vowel: str) -> str:
    """Return the other member of :data:`VOWELS`."""

    return VOWELS[1] if vowel == VOWELS[0] else VOWELS[0]


@dataclass(frozen=True)
class Note:
    """A single pitched event for one voice."""

    pitch: int
    velocity: float
    vowel: str = "A"
    tie: bool = False


@dataclass(frozen=True)
class HarmonyResult:
    """One :class:`Note` for each of the four voice roles."""

    bass: Note
    tenor: Note
    mezzo_soprano: Note
    soprano: Note

    @classmethod
    def from_mapping(cls, notes: Mapping[str, Note]) -> "HarmonyResult":
        """Build a result from a ``role -> Note`` mapping.

        Raises
        ------
        ValueError
            If any role in :data:`VOICES` is missing.
        """

        missing = [v for v in VOICES if v not in notes]
        if missing:
            raise ValueError(f"missing voices: {', '.join(missing)}")
        return cls(**{v: notes[v] for v in VOICES})

    def __getitem__(self, voice: str) -> Note:
        if voice not in VOICES:
            raise KeyError(voice)
        return getattr(self, voice)

    def items(self) -> Iterator[Tuple[str, Note]]:
        for voice in VOICES:
            yield voice, getattr(self, voice)

    def as_dict(self) -> Dict[str, Note]:
        return dict(self.items())

    def pitches(self) -> Dict[str, int]:
        """Return ``role -> pitch`` for quick inspection."""

        return {voice: note.pitch for voice, note in self.items()}

    def replace(self, voice: str, note: Note) -> "HarmonyResult":
        """Return a copy with ``voice`` set to ``note``."""

        if voice not in VOICES:
            raise KeyError(voice)
        return replace(self, **{voice: note})
