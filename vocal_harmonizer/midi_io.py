"""Helpers for turning harmonies into MIDI messages and files.

The harmonizer itself never produces audio.  These helpers translate its
results into :mod:`mido` messages so a synthesizer, a virtual MIDI port or a
standard MIDI file can take over from there.

Each voice is assigned its own channel and the vowel tag selects the channel
program (choir "aah" or voice "ooh").  :func:`harmony_messages` mirrors the
behaviour of a live voice bank: a voice whose pitch or vowel changed is
released and retriggered, with a ``program_change`` preceding the new note
whenever the vowel differs, while a voice holding the same pitch and vowel
only receives a channel volume update so the note keeps sounding.

Example
-------
>>> from vocal_harmonizer.notes import Note, HarmonyResult, VOICES
>>> chord = HarmonyResult.from_mapping({v: Note(60, 0.5) for v in VOICES})
>>> [m.type for m in harmony_messages(chord)][:2]
['program_change', 'note_on']
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Dict, List, Optional, Sequence

import mido
from mido import Message, MetaMessage, MidiFile, MidiTrack

from .notes import VOICES, HarmonyResult

__all__ = [
    "VOICE_CHANNELS",
    "VOICE_PROGRAMS",
    "velocity_to_midi",
    "program_for",
    "harmony_messages",
    "release_messages",
    "create_midi_file",
]

VOICE_CHANNELS: Dict[str, int] = {voice: idx for idx, voice in enumerate(VOICES)}

# General MIDI "Choir Aahs" (52) for the "A" vowel and "Voice Oohs" (53) for
# "O".  Programs are zero-based here.
VOICE_PROGRAMS: Dict[str, int] = {"A": 52, "O": 53}

# Controller number for channel volume.
_CHANNEL_VOLUME = 7


def velocity_to_midi(velocity: float) -> int:
    """Scale a ``0-1`` velocity to the ``1-127`` MIDI range."""

    return max(1, min(127, int(round(velocity * 127))))


def program_for(vowel: str) -> int:
    """Return the General MIDI program for ``vowel`` (``"A"`` when unknown)."""

    return VOICE_PROGRAMS.get(vowel, VOICE_PROGRAMS["A"])


def harmony_messages(
    harmony: HarmonyResult,
    previous: Optional[HarmonyResult] = None,
    channels: Optional[Dict[str, int]] = None,
) -> List[Message]:
    """Return the messages needed to move from ``previous`` to ``harmony``.

    Parameters
    ----------
    harmony:
        Harmony that should sound after the messages are sent.
    previous:
        Harmony currently sounding, or ``None`` when all voices are silent.
        Without a previous harmony every voice receives its program first.
    channels:
        Optional ``voice -> channel`` override.  Defaults to
        :data:`VOICE_CHANNELS`.
    """

    channels = channels or VOICE_CHANNELS
    messages: List[Message] = []
    for voice, note in harmony.items():
        channel = channels[voice]
        velocity = velocity_to_midi(note.velocity)
        prev_note = previous[voice] if previous is not None else None
        if prev_note is not None:
            if prev_note.pitch == note.pitch and prev_note.vowel == note.vowel:
                messages.append(
                    Message(
                        "control_change",
                        channel=channel,
                        control=_CHANNEL_VOLUME,
                        value=velocity,
                    )
                )
                continue
            messages.append(
                Message("note_off", channel=channel, note=prev_note.pitch, velocity=0)
            )
        if prev_note is None or prev_note.vowel != note.vowel:
            messages.append(
                Message("program_change", channel=channel, program=program_for(note.vowel))
            )
        messages.append(Message("note_on", channel=channel, note=note.pitch, velocity=velocity))
    return messages


def release_messages(
    harmony: HarmonyResult, channels: Optional[Dict[str, int]] = None
) -> List[Message]:
    """Return ``note_off`` messages silencing every voice of ``harmony``."""

    channels = channels or VOICE_CHANNELS
    return [
        Message("note_off", channel=channels[voice], note=note.pitch, velocity=0)
        for voice, note in harmony.items()
    ]


def create_midi_file(
    harmonies: Sequence[HarmonyResult],
    output_file: str,
    *,
    bpm: int = 120,
    beats_per_chord: float = 1.0,
    ticks_per_beat: int = 480,
) -> MidiFile:
    """Write ``harmonies`` to ``output_file`` with one track per voice.

    Consecutive harmonies are spaced ``beats_per_chord`` apart.  A voice
    holding the same pitch and vowel across chords sustains rather than
    re-attacking; a vowel change re-attacks the note after a
    ``program_change``.  The in-memory :class:`mido.MidiFile` is returned
    for inspection.

    Raises
    ------
    ValueError
        If ``harmonies`` is empty or ``bpm``/``beats_per_chord`` are not
        positive.
    """

    if not harmonies:
        raise ValueError("harmonies must contain at least one chord")
    if bpm <= 0:
        raise ValueError("bpm must be a positive integer")
    if beats_per_chord <= 0:
        raise ValueError("beats_per_chord must be positive")

    step = int(round(beats_per_chord * ticks_per_beat))
    mid = MidiFile(ticks_per_beat=ticks_per_beat)
    for voice in VOICES:
        channel = VOICE_CHANNELS[voice]
        track = MidiTrack()
        mid.tracks.append(track)
        track.append(MetaMessage("track_name", name=voice, time=0))
        if voice == VOICES[0]:
            track.append(MetaMessage("set_tempo", tempo=mido.bpm2tempo(bpm), time=0))

        # ``pending`` accumulates delta ticks until the next event is written.
        pending = 0
        sounding: Optional[int] = None
        program: Optional[int] = None
        for harmony in harmonies:
            note = harmony[voice]
            wanted = program_for(note.vowel)
            if sounding == note.pitch and program == wanted:
                pending += step
                continue
            if sounding is not None:
                track.append(
                    Message("note_off", channel=channel, note=sounding, velocity=0, time=pending)
                )
                pending = 0
            if program != wanted:
                track.append(
                    Message("program_change", channel=channel, program=wanted, time=pending)
                )
                program = wanted
                pending = 0
            track.append(
                Message(
                    "note_on",
                    channel=channel,
                    note=note.pitch,
                    velocity=velocity_to_midi(note.velocity),
                    time=pending,
                )
            )
            sounding = note.pitch
            pending = step
        track.append(
            Message("note_off", channel=channel, note=sounding, velocity=0, time=pending)
        )

    Path(output_file).expanduser().parent.mkdir(parents=True, exist_ok=True)
    mid.save(output_file)
    logging.info("MIDI file saved to %s", output_file)
    return mid
