"""Command line front end for the harmonization engine.

The CLI feeds a lead line through :class:`HarmonizationEngine` one note at a
time, exactly as a live caller would, and prints the resulting four-voice
harmony per step.  Optionally the harmonies are written to a MIDI file with
one track per voice.

Example
-------
Running ``python -m vocal_harmonizer --notes C4,E4,G4,C5 --lead soprano
--seed 3 --output harmony.mid`` prints four harmony lines and writes
``harmony.mid``.  Notes may be given as names (``C4``, ``Bb3``) or as MIDI
numbers.  Black keys and notes outside the vocabulary span are harmonized by
the chord fallback.
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional, Sequence

from .config import DEFAULT_CONFIG_FILE, load_config
from .engine import STRATEGIES, HarmonizationEngine
from .note_utils import midi_to_note, parse_note
from .notes import VOICES, VOWELS, HarmonyResult, Note
from .voice_ranges import RANGE_PROFILES

__all__ = ["build_parser", "run_cli", "format_harmony"]

_LABELS = {"soprano": "S", "mezzo_soprano": "M", "tenor": "T", "bass": "B"}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Harmonize a lead line with three generated voices."
    )
    parser.add_argument("--notes", type=str, required=True, help="Comma-separated lead notes (e.g. C4,E4,G4 or 60,64,67).")
    parser.add_argument("--lead", type=str, default="soprano", choices=VOICES, help="Voice singing the lead line (default: soprano).")
    parser.add_argument("--volume", type=float, default=0.8, help="Lead volume between 0 and 1 (default: 0.8).")
    parser.add_argument("--vowel", type=str, default="A", choices=VOWELS, help="Vowel sung by the lead (default: A).")
    parser.add_argument("--tie", action="store_true", help="Mark repeated lead notes as tied.")
    parser.add_argument("--strategy", type=str, default="probabilistic", choices=STRATEGIES, help="Harmonizer strategy (default: probabilistic).")
    parser.add_argument("--profile", type=str, choices=sorted(RANGE_PROFILES), help="Named voice range profile.")
    parser.add_argument("--seed", type=int, help="Random seed for reproducible output")
    parser.add_argument("--config", type=str, help=f"JSON config file (default: {DEFAULT_CONFIG_FILE})")
    parser.add_argument("--output", type=str, help="Optional MIDI file to write.")
    parser.add_argument("--bpm", type=int, default=120, help="Tempo used for --output (default: 120).")
    return parser


def format_harmony(harmony: HarmonyResult) -> str:
    """Return ``S: C5 | M: A4 | T: F4 | B: C4`` style text."""

    parts = [
        f"{_LABELS[voice]}: {midi_to_note(harmony[voice].pitch)}"
        for voice in reversed(VOICES)
    ]
    return " | ".join(parts)


def _lead_notes(tokens: Sequence[int], vowel: str, volume: float, tie: bool) -> List[Note]:
    notes: List[Note] = []
    previous: Optional[int] = None
    for pitch in tokens:
        notes.append(Note(pitch, volume, vowel, tie and pitch == previous))
        previous = pitch
    return notes


def run_cli(argv: Optional[Sequence[str]] = None) -> List[HarmonyResult]:
    """Parse ``argv`` and harmonize the requested lead line.

    Invalid arguments are logged and terminate the process with status ``1``.
    Returns the generated harmonies so callers and tests can inspect them.
    """

    args = build_parser().parse_args(argv)

    if not 0.0 <= args.volume <= 1.0:
        logging.error("Volume must be between 0 and 1.")
        sys.exit(1)
    if args.bpm <= 0:
        logging.error("BPM must be a positive integer.")
        sys.exit(1)

    try:
        pitches = [parse_note(tok) for tok in args.notes.split(",") if tok.strip()]
    except ValueError as exc:
        logging.error(f"Invalid lead note: {exc}")
        sys.exit(1)
    if not pitches:
        logging.error("At least one lead note is required.")
        sys.exit(1)

    try:
        config = load_config(Path(args.config)) if args.config else load_config()
        if args.profile:
            config = config.with_overrides(range_profile=args.profile, voice_ranges=None)
        engine = HarmonizationEngine(config, strategy=args.strategy, seed=args.seed)
    except (TypeError, ValueError) as exc:
        logging.error(f"Invalid configuration: {exc}")
        sys.exit(1)

    harmonies: List[HarmonyResult] = []
    for note in _lead_notes(pitches, args.vowel, args.volume, args.tie):
        harmony = engine.generate_harmony(args.lead, note, args.volume)
        harmonies.append(harmony)
        print(format_harmony(harmony))

    if args.output:
        from .midi_io import create_midi_file

        try:
            create_midi_file(harmonies, args.output, bpm=args.bpm)
        except OSError as exc:
            logging.error("Could not write MIDI file: %s", exc)
            sys.exit(1)
    logging.info("Harmonized %d lead notes.", len(harmonies))
    return harmonies


def main(argv: Optional[Sequence[str]] = None) -> None:
    """Console entry point."""

    logging.basicConfig(level=logging.INFO, format="%(levelname)s: %(message)s")
    run_cli(argv)
