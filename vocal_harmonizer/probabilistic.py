"""Probabilistic four-voice harmonizer driven by per-voice history.

For every lead event the harmonizer encodes the lead note, records it in the
lead voice's history and then samples a successor state for each remaining
voice.  The sampling context for a voice consists of its own most recent
states followed by the lead's most recent states, so harmonies follow both
their own line and the melody.  Sampled states are decoded into notes with a
lightly randomised velocity and vowel, after which every voice is moved into
its range by at most one octave and clamped.

Lead pitches that do not encode (black keys or notes outside the vocabulary
span) are handed to the owned :class:`~vocal_harmonizer.chord_harmonizer.ChordHarmonizer`.

Example
-------
>>> import random
>>> h = ProbabilisticHarmonizer(rng=random.Random(3))
>>> result = h.generate("soprano", Note(72, 0.9, "A"), 0.9)
>>> result.soprano.pitch
72
"""

from __future__ import annotations

import logging
import random
from collections import deque
from typing import Deque, Dict, List, Optional, Tuple

from .chord_harmonizer import ChordHarmonizer
from .config import HarmonizerConfig
from .notes import VOICES, HarmonyResult, Note, alternate_vowel
from .sampler import StochasticGenerator
from .transition_model import HarmonyModel, load_harmony_model
from .voice_ranges import shift_once_then_clamp

__all__ = ["VoiceHistory", "ProbabilisticHarmonizer", "model_for_config"]


class VoiceHistory:
    """Bounded most-recent-last sequence of vocabulary indices."""

    def __init__(self, capacity: int, initial: Tuple[int, ...] = ()) -> None:
        self._items: Deque[int] = deque(initial, maxlen=capacity)

    def push(self, index: int) -> None:
        self._items.append(index)

    def reset(self, start_index: int) -> None:
        self._items.clear()
        self._items.append(start_index)

    def last(self) -> Optional[int]:
        return self._items[-1] if self._items else None

    def recent(self, count: int) -> List[int]:
        """Return up to ``count`` newest entries, oldest first."""

        if count <= 0:
            return []
        return list(self._items)[-count:]

    def snapshot(self) -> Tuple[int, ...]:
        return tuple(self._items)

    def __len__(self) -> int:
        return len(self._items)


def model_for_config(config: HarmonizerConfig) -> HarmonyModel:
    """Return the cached vocabulary and transition table for ``config``."""

    return load_harmony_model(
        config.diatonic_pattern,
        config.min_octave,
        config.max_octave,
        config.consonant_intervals,
    )


class ProbabilisticHarmonizer:
    """Sample harmony voices from a transition model with history context."""

    def __init__(
        self,
        config: Optional[HarmonizerConfig] = None,
        *,
        model: Optional[HarmonyModel] = None,
        rng: Optional[random.Random] = None,
        fallback: Optional[ChordHarmonizer] = None,
    ) -> None:
        """Create a harmonizer.

        Parameters
        ----------
        config:
            Tunable parameters; defaults to :class:`HarmonizerConfig`.
        model:
            Shared vocabulary and transition table.  When ``None`` the cached
            model matching ``config`` is used.
        rng:
            Random source for sampling and velocity/vowel jitter.
        fallback:
            Harmonizer used for lead pitches outside the vocabulary.  Shares
            ``rng`` when created here.
        """

        self.config = config or HarmonizerConfig()
        self.model = model or model_for_config(self.config)
        self.vocabulary = self.model.vocabulary
        self.rng = rng or random.Random()
        self.ranges = self.config.ranges()
        self.generator = StochasticGenerator(
            self.model.transitions,
            context_weight=self.config.context_weight,
            context_decay=self.config.context_decay,
            temperature=self.config.temperature,
            rank_thresholds=self.config.rank_thresholds,
            top_k=self.config.top_k,
            rng=self.rng,
        )
        self.fallback = fallback or ChordHarmonizer(self.config, rng=self.rng)
        self._histories: Dict[str, VoiceHistory] = {}
        self.reset()

    def _history_for(self, voice: str) -> VoiceHistory:
        history = self._histories.get(voice)
        if history is None:
            # Unknown lead roles get their own history rather than failing.
            history = VoiceHistory(self.config.max_history)
            self._histories[voice] = history
        return history

    def history(self, voice: str) -> Tuple[int, ...]:
        """Return a snapshot of ``voice``'s history, oldest first."""

        history = self._histories.get(voice)
        return history.snapshot() if history is not None else ()

    def save_state(self) -> Dict[str, Tuple[int, ...]]:
        """Return a copy of every voice history for :meth:`restore_state`."""

        return {voice: history.snapshot() for voice, history in self._histories.items()}

    def restore_state(self, state: Dict[str, Tuple[int, ...]]) -> None:
        """Replace all voice histories with ``state`` from :meth:`save_state`.

        Histories created after the snapshot (unknown lead roles) are dropped.
        """

        self._histories = {
            voice: VoiceHistory(self.config.max_history, items)
            for voice, items in state.items()
        }

    def _decode(self, index: int, volume: float) -> Optional[Note]:
        """Turn a sampled index into a :class:`Note` or ``None`` for control tokens."""

        state = self.vocabulary.decode(index)
        if not isinstance(state, tuple):
            return None
        pitch, tie = state
        cfg = self.config
        # Two draws per voice, velocity jitter first and vowel second, after
        # the sampler's own draws.  Seeded runs depend on this order.
        variation = (self.rng.random() - 0.5) * 2 * cfg.velocity_jitter
        velocity = volume * cfg.harmony_velocity_scale + variation
        velocity = max(cfg.min_velocity, min(cfg.max_velocity, velocity))
        if self.rng.random() < cfg.primary_vowel_probability:
            vowel = cfg.primary_vowel
        else:
            vowel = alternate_vowel(cfg.primary_vowel)
        return Note(pitch, velocity, vowel, tie)

    def generate(self, lead_voice: str, lead_note: Note, volume: float) -> HarmonyResult:
        """Return a harmony for ``lead_note`` sung by ``lead_voice``."""

        lead_index = self.vocabulary.encode(lead_note.pitch, lead_note.tie)
        if lead_index is None:
            logging.debug(
                "Lead pitch %s (tie=%s) outside vocabulary; using chord fallback",
                lead_note.pitch,
                lead_note.tie,
            )
            return self.fallback.generate(lead_voice, lead_note, volume)

        lead_history = self._history_for(lead_voice)
        lead_history.push(lead_index)

        notes: Dict[str, Note] = {}
        for voice in VOICES:
            if voice == lead_voice:
                notes[voice] = Note(lead_note.pitch, volume, lead_note.vowel, lead_note.tie)
                continue

            history = self._history_for(voice)
            context = history.recent(self.config.voice_context)
            context += lead_history.recent(self.config.lead_context)
            current = history.last()
            if current is None:
                current = lead_index

            selected = self.generator.next_index(current, context)
            note = self._decode(selected, volume)
            if note is None:
                # Control token sampled: fall back to a quiet copy of the lead.
                notes[voice] = Note(
                    lead_note.pitch,
                    volume * self.config.fallback_velocity_scale,
                    lead_note.vowel,
                    lead_note.tie,
                )
                continue
            notes[voice] = note
            history.push(selected)

        return self.constrain(notes)

    def constrain(self, notes: Dict[str, Note]) -> HarmonyResult:
        """Apply the single-octave range correction to every voice."""

        fitted = {}
        for voice, note in notes.items():
            pitch = shift_once_then_clamp(note.pitch, self.ranges.range_for(voice))
            fitted[voice] = note if pitch == note.pitch else Note(pitch, note.velocity, note.vowel, note.tie)
        return HarmonyResult.from_mapping(fitted)

    def reset(self) -> None:
        """Reset every voice history to the ``START`` token.

        The chord fallback keeps its previous harmony so smoothing continues
        across a reset of the sampling context.
        """

        start = self.vocabulary.start_index
        for voice in VOICES:
            self._history_for(voice).reset(start)
        for voice, history in self._histories.items():
            if voice not in VOICES:
                history.reset(start)
