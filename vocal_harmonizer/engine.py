"""Top-level harmonization engine.

``HarmonizationEngine`` is the object callers hold on to.  It owns one
harmonizer strategy together with all of its mutable state and serialises
access to it with a single re-entrant lock, because every call both reads and
updates the history of all four voices.

Two strategies are available:

``"probabilistic"``
    :class:`~vocal_harmonizer.probabilistic.ProbabilisticHarmonizer`, which
    itself falls back to chords for lead pitches outside the vocabulary.
``"chord"``
    :class:`~vocal_harmonizer.chord_harmonizer.ChordHarmonizer` only.

``generate_harmony`` never raises.  Should the probabilistic path fail
unexpectedly the voice histories are rolled back to their state before the
call, the exception is logged and the chord harmonizer answers instead, so an
interactive render loop is never interrupted.

Example
-------
>>> engine = HarmonizationEngine(seed=7)
>>> harmony = engine.generate_harmony("soprano", Note(67, 0.7, "O"), 0.7)
>>> sorted(harmony.pitches())
['bass', 'mezzo_soprano', 'soprano', 'tenor']
"""

from __future__ import annotations

import logging
import random
import threading
from typing import Optional

from .chord_harmonizer import ChordHarmonizer
from .config import HarmonizerConfig
from .notes import HarmonyResult, Note
from .probabilistic import ProbabilisticHarmonizer
from .transition_model import HarmonyModel

__all__ = ["STRATEGIES", "HarmonizationEngine", "create_harmonizer"]

STRATEGIES = ("probabilistic", "chord")


class HarmonizationEngine:
    """Thread-safe facade dispatching lead events to a harmonizer strategy."""

    def __init__(
        self,
        config: Optional[HarmonizerConfig] = None,
        *,
        strategy: str = "probabilistic",
        rng: Optional[random.Random] = None,
        seed: Optional[int] = None,
        model: Optional[HarmonyModel] = None,
    ) -> None:
        """Create an engine.

        Parameters
        ----------
        config:
            Tunable parameters shared by both strategies.
        strategy:
            ``"probabilistic"`` (default) or ``"chord"``.
        rng:
            Random source.  Takes precedence over ``seed``.
        seed:
            Seed for a private :class:`random.Random` when ``rng`` is omitted.
        model:
            Optional pre-built vocabulary/transition model to share.

        Raises
        ------
        ValueError
            If ``strategy`` is unknown.
        """

        if strategy not in STRATEGIES:
            raise ValueError(
                f"Unknown strategy '{strategy}' (expected one of {', '.join(STRATEGIES)})"
            )
        self.config = config or HarmonizerConfig()
        self.strategy = strategy
        self.rng = rng or random.Random(seed)
        self._lock = threading.RLock()
        self._current: Optional[HarmonyResult] = None

        self.chord = ChordHarmonizer(self.config, rng=self.rng)
        self.probabilistic: Optional[ProbabilisticHarmonizer] = None
        if strategy == "probabilistic":
            self.probabilistic = ProbabilisticHarmonizer(
                self.config, model=model, rng=self.rng, fallback=self.chord
            )

    @property
    def current_harmony(self) -> Optional[HarmonyResult]:
        """The most recent harmony returned, or ``None`` before the first call."""

        return self._current

    def generate_harmony(self, lead_voice: str, lead_note: Note, volume: float) -> HarmonyResult:
        """Return a four-voice harmony for the lead event."""

        with self._lock:
            if self.probabilistic is None:
                result = self.chord.generate(lead_voice, lead_note, volume)
            else:
                state = self.probabilistic.save_state()
                try:
                    result = self.probabilistic.generate(lead_voice, lead_note, volume)
                except Exception:  # noqa: BLE001
                    # Drop any histories pushed before the failure.
                    self.probabilistic.restore_state(state)
                    logging.exception(
                        "Probabilistic harmonization failed; using chord harmony instead."
                    )
                    result = self.chord.generate(lead_voice, lead_note, volume)
            self._current = result
            return result

    def reset(self) -> None:
        """Clear per-voice state for the active strategy.

        The probabilistic strategy resets its voice histories only; the chord
        strategy forgets its previous harmony.
        """

        with self._lock:
            if self.probabilistic is not None:
                self.probabilistic.reset()
            else:
                self.chord.reset()


def create_harmonizer(use_probabilistic: bool = True, **kwargs) -> HarmonizationEngine:
    """Return an engine using the probabilistic or the chord strategy."""

    strategy = "probabilistic" if use_probabilistic else "chord"
    return HarmonizationEngine(strategy=strategy, **kwargs)
