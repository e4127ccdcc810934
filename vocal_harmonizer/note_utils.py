"""Utility functions for translating note names to MIDI numbers.

The harmonizer works purely on MIDI numbers, but the command line and the
display layer speak in scientific pitch names (``C4``).  This module keeps the
conversions in one place together with :func:`pitch_to_midi`, which maps a
continuous control value onto the white keys of a singer's span so lead notes
always land inside the harmonizer vocabulary.

Example
-------
>>> from vocal_harmonizer.note_utils import note_to_midi, midi_to_note
>>> note_to_midi("C4")
60
>>> midi_to_note(69)
'A4'
>>> pitch_to_midi(0.0, "soprano")
60
"""

from __future__ import annotations

import logging
import math
import re
from functools import lru_cache
from typing import Dict, List, Tuple

__all__ = [
    "NOTES",
    "NOTE_TO_SEMITONE",
    "WHITE_KEY_PATTERN",
    "SINGER_SPANS",
    "note_to_midi",
    "midi_to_note",
    "parse_note",
    "is_valid_midi_note",
    "white_keys_for",
    "pitch_to_midi",
]

NOTES = ["C", "C#", "D", "D#", "E", "F", "F#", "G", "G#", "A", "A#", "B"]

NOTE_TO_SEMITONE: Dict[str, int] = {name: idx for idx, name in enumerate(NOTES)}

WHITE_KEY_PATTERN = (0, 2, 4, 5, 7, 9, 11)

# Span of each singer expressed as ``(start_octave, start_degree, end_octave,
# end_degree)`` over :data:`WHITE_KEY_PATTERN`.  Bass G2-G4, tenor C3-A4,
# mezzo-soprano A3-F5 and soprano C4-C6.
SINGER_SPANS: Dict[str, Tuple[int, int, int, int]] = {
    "bass": (2, 4, 4, 4),
    "tenor": (3, 0, 4, 5),
    "mezzo_soprano": (3, 5, 5, 3),
    "soprano": (4, 0, 6, 0),
}

_FLAT_TO_SHARP = {
    "Db": "C#",
    "Eb": "D#",
    "Fb": "E",
    "Gb": "F#",
    "Ab": "G#",
    "Bb": "A#",
    "Cb": "B",
}


@lru_cache(maxsize=None)
def note_to_midi(note: str) -> int:
    """Convert a note string such as ``C#4`` into a MIDI number.

    Raises
    ------
    ValueError
        If ``note`` is malformed or the result falls outside ``0-127``.
    """

    match = re.fullmatch(r"([A-Ga-g][#b]?)(-?\d+)", note.strip())
    if not match:
        logging.error("Invalid note format: %s", note)
        raise ValueError(f"Invalid note format: {note}")

    note_name, octave_str = match.groups()
    # MIDI octave numbers are offset by one from scientific pitch notation.
    octave = int(octave_str) + 1
    note_name = note_name.capitalize()
    note_name = _FLAT_TO_SHARP.get(note_name, note_name)

    try:
        note_idx = NOTE_TO_SEMITONE[note_name]
    except KeyError:
        logging.error("Unknown note name: %s", note_name)
        raise ValueError(f"Unknown note name: {note_name}")

    midi_val = note_idx + octave * 12
    if not 0 <= midi_val <= 127:
        logging.error("MIDI value out of range: %s -> %d", note, midi_val)
        raise ValueError(
            f"Computed MIDI value {midi_val} out of range 0-127 for note {note}"
        )
    return midi_val


def midi_to_note(midi_note: int) -> str:
    """Convert a MIDI number into a note name using sharps.

    >>> midi_to_note(61)
    'C#4'
    """

    if not 0 <= midi_note <= 127:
        raise ValueError(f"MIDI note {midi_note} out of range 0-127")
    octave = midi_note // 12 - 1
    return f"{NOTES[midi_note % 12]}{octave}"


def parse_note(token: str) -> int:
    """Return the MIDI number for ``token`` given as a name or an integer."""

    token = token.strip()
    if re.fullmatch(r"\d+", token):
        value = int(token)
        if not 0 <= value <= 127:
            raise ValueError(f"MIDI note {value} out of range 0-127")
        return value
    return note_to_midi(token)


def is_valid_midi_note(note: int) -> bool:
    """Return ``True`` when ``note`` is an integer on the 88-key piano (21-108)."""

    return isinstance(note, int) and not isinstance(note, bool) and 21 <= note <= 108


@lru_cache(maxsize=None)
def white_keys_for(voice: str) -> Tuple[int, ...]:
    """Return the ascending white-key MIDI numbers within ``voice``'s span.

    Raises
    ------
    ValueError
        If ``voice`` has no entry in :data:`SINGER_SPANS`.
    """

    try:
        start_octave, start_degree, end_octave, end_degree = SINGER_SPANS[voice]
    except KeyError:
        raise ValueError(f"Unknown voice '{voice}'")

    keys: List[int] = []
    for octave in range(start_octave, end_octave + 1):
        first = start_degree if octave == start_octave else 0
        last = end_degree if octave == end_octave else len(WHITE_KEY_PATTERN) - 1
        for degree in range(first, last + 1):
            keys.append((octave + 1) * 12 + WHITE_KEY_PATTERN[degree])
    return tuple(keys)


def pitch_to_midi(pitch: float, voice: str) -> int:
    """Map a control value in ``[0, 1]`` onto ``voice``'s white keys.

    Values outside the unit interval are clamped.  The key index is
    ``floor(pitch * (n - 1))`` so the top key is only reached at ``1.0``.
    """

    keys = white_keys_for(voice)
    pitch = max(0.0, min(1.0, float(pitch)))
    return keys[int(math.floor(pitch * (len(keys) - 1)))]
