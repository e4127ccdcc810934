"""Hand-authored transition probabilities between vocabulary states.

The table is a static prior rather than a trained network.  For every ordered
pair of pitch states the interval ``d`` between them selects a base weight,
consonant interval classes receive a ``1.5`` bonus and a held (tied) unison
receives an additional ``1.2`` bonus.  Each row is then normalised to a
probability distribution.  Rows belonging to control tokens stay zero so they
never contribute mass when used as sampling context.

The resulting matrix favours stepwise motion, consonant leaps and sustained
notes while strongly discouraging large dissonant jumps, independent of key.

Design Notes
------------
- The table is a ``numpy`` array built once and marked read-only; harmonizer
  instances share it through :func:`load_harmony_model`, which caches one
  model per distinct vocabulary configuration.
- Weights are filled with vectorised interval arithmetic.  The result is
  identical to filling the table pair by pair.
"""

from __future__ import annotations

from dataclasses import dataclass
from functools import lru_cache
from typing import FrozenSet, Iterable, Sequence, Tuple

import numpy as np

from .vocabulary import Vocabulary

__all__ = [
    "interval_weight",
    "TransitionModel",
    "HarmonyModel",
    "load_harmony_model",
]

# (upper interval bound, base weight) checked in order; ``d == 12`` is handled
# separately because the octave sits outside the contiguous buckets.
_INTERVAL_BUCKETS: Tuple[Tuple[int, float], ...] = (
    (0, 0.30),  # unison
    (2, 0.25),  # stepwise motion
    (4, 0.20),  # thirds
    (7, 0.15),  # fourths and fifths
)
_OCTAVE_WEIGHT = 0.08
_LEAP_WEIGHT = 0.02
_CONSONANCE_BONUS = 1.5
_TIE_BONUS = 1.2

DEFAULT_CONSONANT_INTERVALS: FrozenSet[int] = frozenset({0, 3, 4, 5, 7, 8, 9})


def interval_weight(
    interval: int,
    tie: bool = False,
    consonant_intervals: Iterable[int] = DEFAULT_CONSONANT_INTERVALS,
) -> float:
    """Return the unnormalised weight for moving by ``interval`` semitones.

    >>> round(interval_weight(7), 3)
    0.225
    >>> interval_weight(13)
    0.02
    """

    d = abs(int(interval))
    for upper, weight in _INTERVAL_BUCKETS:
        if d <= upper:
            break
    else:
        weight = _OCTAVE_WEIGHT if d == 12 else _LEAP_WEIGHT
    if d % 12 in set(consonant_intervals):
        weight *= _CONSONANCE_BONUS
    if tie and d == 0:
        weight *= _TIE_BONUS
    return weight


class TransitionModel:
    """Row-stochastic transition table over a :class:`Vocabulary`."""

    def __init__(
        self,
        vocabulary: Vocabulary,
        consonant_intervals: Iterable[int] = DEFAULT_CONSONANT_INTERVALS,
    ) -> None:
        self.vocabulary = vocabulary
        self.consonant_intervals = frozenset(int(i) % 12 for i in consonant_intervals)
        self.matrix = self._build()

    def _build(self) -> np.ndarray:
        size = self.vocabulary.size
        matrix = np.zeros((size, size), dtype=np.float64)

        states = list(self.vocabulary.pitch_states())
        if not states:
            matrix.flags.writeable = False
            return matrix
        idx = np.fromiter((s[0] for s in states), dtype=np.intp)
        pitches = np.fromiter((s[1] for s in states), dtype=np.int64)
        ties = np.fromiter((s[2] for s in states), dtype=bool)

        # ``d[i, j]`` is the interval from state ``i`` to state ``j``.
        d = np.abs(pitches[None, :] - pitches[:, None])
        weights = np.full(d.shape, _LEAP_WEIGHT, dtype=np.float64)
        weights[d == 12] = _OCTAVE_WEIGHT
        # ``d <= upper`` also matches every narrower interval, so the buckets
        # are written widest first and each narrower pass overwrites the
        # previous one.  The octave lies above the widest bucket and is set
        # beforehand.
        for upper, weight in reversed(_INTERVAL_BUCKETS):
            weights[d <= upper] = weight

        consonant = np.isin(d % 12, sorted(self.consonant_intervals))
        weights[consonant] *= _CONSONANCE_BONUS
        # The sustain bonus depends on the destination state: moving onto the
        # tied copy of the same pitch.
        weights[(d == 0) & ties[None, :]] *= _TIE_BONUS

        # Rows summing to zero stay all zero instead of dividing by zero.
        sums = weights.sum(axis=1, keepdims=True)
        np.divide(weights, sums, out=weights, where=sums > 0)
        weights[(sums <= 0).ravel()] = 0.0

        matrix[np.ix_(idx, idx)] = weights
        matrix.flags.writeable = False
        return matrix

    @property
    def size(self) -> int:
        return self.matrix.shape[0]

    def row(self, index: int) -> np.ndarray:
        """Return the outgoing distribution for ``index``.

        Control tokens and out-of-range indices yield an all-zero row.
        """

        if not 0 <= index < self.size:
            return np.zeros(self.size, dtype=np.float64)
        return self.matrix[index]

    def weight(self, from_index: int, to_index: int) -> float:
        """Return ``P(to | from)``; ``0.0`` for indices outside the table."""

        if not (0 <= from_index < self.size and 0 <= to_index < self.size):
            return 0.0
        return float(self.matrix[from_index, to_index])


@dataclass(frozen=True)
class HarmonyModel:
    """Immutable vocabulary plus transition table shared between engines."""

    vocabulary: Vocabulary
    transitions: TransitionModel


@lru_cache(maxsize=None)
def load_harmony_model(
    diatonic_pattern: Sequence[int] = (0, 2, 4, 5, 7, 9, 11),
    min_octave: int = 2,
    max_octave: int = 6,
    consonant_intervals: FrozenSet[int] = DEFAULT_CONSONANT_INTERVALS,
) -> HarmonyModel:
    """Return a cached :class:`HarmonyModel` for the given vocabulary settings.

    Arguments must be hashable; :class:`~vocal_harmonizer.config.HarmonizerConfig`
    stores them as tuples and frozensets so ``load_harmony_model(*cfg_fields)``
    always hits the cache for equal configurations.
    """

    vocabulary = Vocabulary(tuple(diatonic_pattern), min_octave, max_octave)
    return HarmonyModel(vocabulary, TransitionModel(vocabulary, consonant_intervals))
