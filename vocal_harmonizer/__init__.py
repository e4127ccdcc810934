"""Vocal Harmonizer library.

This package turns a single sung lead line into four-part vocal harmony in
real time.  A caller creates one :class:`HarmonizationEngine` and invokes
:meth:`~HarmonizationEngine.generate_harmony` for every new lead note; the
engine immediately returns a :class:`HarmonyResult` with one note for each of
the bass, tenor, mezzo-soprano and soprano voices.

Underlying Algorithm
--------------------
Lead notes are encoded into a closed vocabulary of white-key pitches (with a
tie flag) spanning five octaves.  A hand-authored transition table assigns
each pair of states a probability favouring small, consonant intervals and
sustained unisons.  For every harmony voice the sampler combines the table row
of the voice's last state with rows from its recent history and from the
lead's history, smooths the scores with a temperature softmax and picks a
state with rank-biased randomness.  Finally each note is moved into its
voice's range.

Algorithm Pseudocode
--------------------
The following outlines one call to :meth:`HarmonizationEngine.generate_harmony`::

    idx = vocabulary.encode(lead.pitch, lead.tie)
    if idx is None:
        return chord_harmonizer.generate(lead)   # triad + smoothing
    history[lead_voice].push(idx)
    for voice in other_voices:
        context = history[voice][-4:] + history[lead_voice][-2:]
        state = sampler.next_index(history[voice].last(), context)
        notes[voice] = decode(state)
        history[voice].push(state)
    return shift_once_then_clamp(notes)

Features include:
- Rank-biased stochastic sampling with an injectable random source.
- Deterministic chord fallback with octave voice-leading smoothing.
- Two named vocal range profiles (``"wide"`` and ``"narrow"``).
- JSON configuration via :func:`load_config` / :func:`save_config`.
- MIDI message and file export through :mod:`mido`.
- A command line interface (``python -m vocal_harmonizer``).
"""

__version__ = "0.1.0"

from .notes import VOICES, VOWELS, HarmonyResult, Note  # noqa: F401
from .config import (  # noqa: F401
    DEFAULT_CONFIG_FILE,
    HarmonizerConfig,
    load_config,
    save_config,
)
from .voice_ranges import (  # noqa: F401
    DEFAULT_RANGE,
    RANGE_PROFILES,
    RangeProfile,
    VoiceRange,
    get_range_profile,
    search_then_clamp,
    shift_once_then_clamp,
)
from .note_utils import (  # noqa: F401
    is_valid_midi_note,
    midi_to_note,
    note_to_midi,
    pitch_to_midi,
)
from .vocabulary import Vocabulary  # noqa: F401
from .transition_model import HarmonyModel, TransitionModel, load_harmony_model  # noqa: F401
from .sampler import StochasticGenerator  # noqa: F401
from .chord_harmonizer import ChordHarmonizer  # noqa: F401
from .probabilistic import ProbabilisticHarmonizer, VoiceHistory  # noqa: F401
from .engine import STRATEGIES, HarmonizationEngine, create_harmonizer  # noqa: F401


def main():
    """Entry point for ``python -m vocal_harmonizer`` and the console script."""

    from .cli import main as _main

    _main()
