"""Context-weighted stochastic selection of the next vocabulary state.

``StochasticGenerator`` combines the transition row of the current state with
the rows of recent context states, smooths the accumulated scores with a
temperature softmax and finally picks a state with *rank-biased* sampling.

Rank-biased sampling deliberately ignores the exact softmax weights: the
distribution only establishes an ordering.  A single uniform draw then selects
the best candidate 60% of the time, the runner-up 20%, the third 10% and one
of the top five uniformly for the remaining 10%.  The policy is simple to
reason about and reproducible for a seeded random source.

Example
-------
>>> import random
>>> from vocal_harmonizer.transition_model import load_harmony_model
>>> model = load_harmony_model()
>>> gen = StochasticGenerator(model.transitions, rng=random.Random(0))
>>> idx = gen.next_index(32, [30, 32])
>>> model.vocabulary.is_control(idx)
False
"""

from __future__ import annotations

import math
import random
from typing import Optional, Sequence, Tuple

import numpy as np

from .transition_model import TransitionModel

__all__ = ["StochasticGenerator", "softmax", "rank_order"]


def softmax(scores: np.ndarray, temperature: float) -> np.ndarray:
    """Return ``exp((s - max) / T)`` normalised to sum to one."""

    if temperature <= 0:
        raise ValueError("temperature must be positive")
    if scores.size == 0:
        return scores.astype(np.float64)
    shifted = (scores - scores.max()) / temperature
    exp = np.exp(shifted)
    return exp / exp.sum()


def rank_order(probabilities: np.ndarray) -> np.ndarray:
    """Return indices sorted by descending probability.

    The sort is stable so equal probabilities keep ascending index order.
    """

    return np.argsort(-np.asarray(probabilities), kind="stable")


class StochasticGenerator:
    """Sample the next state for one voice from transition and context rows."""

    def __init__(
        self,
        transitions: TransitionModel,
        *,
        context_weight: float = 0.3,
        context_decay: float = 0.5,
        temperature: float = 1.2,
        rank_thresholds: Tuple[float, float, float] = (0.6, 0.8, 0.9),
        top_k: int = 5,
        rng: Optional[random.Random] = None,
    ) -> None:
        self.transitions = transitions
        self.context_weight = context_weight
        self.context_decay = context_decay
        self.temperature = temperature
        self.rank_thresholds = tuple(rank_thresholds)
        self.top_k = top_k
        self.rng = rng or random.Random()

    def scores(
        self,
        current: int,
        context: Sequence[int] = (),
        context_decay: Optional[float] = None,
    ) -> np.ndarray:
        """Return the accumulated, unnormalised scores.

        ``context`` is ordered oldest first; the last element is the most
        recent state and receives the full ``context_weight``.  Each step back
        in time multiplies the weight by ``exp(-context_decay)``.
        """

        decay = self.context_decay if context_decay is None else context_decay
        scores = np.array(self.transitions.row(current), dtype=np.float64)
        for distance, state in enumerate(reversed(list(context))):
            if not 0 <= state < self.transitions.size:
                continue
            weight = self.context_weight * math.exp(-distance * decay)
            scores += weight * self.transitions.row(state)
        return scores

    def probabilities(
        self,
        current: int,
        context: Sequence[int] = (),
        temperature: Optional[float] = None,
        context_decay: Optional[float] = None,
    ) -> np.ndarray:
        """Return the temperature-smoothed distribution over the vocabulary."""

        temp = self.temperature if temperature is None else temperature
        return softmax(self.scores(current, context, context_decay), temp)

    def sample(self, probabilities: np.ndarray) -> int:
        """Pick an index from ``probabilities`` using rank-biased selection."""

        order = rank_order(probabilities)
        if order.size == 0:
            raise ValueError("probabilities must not be empty")
        best, second, third = self.rank_thresholds
        r = self.rng.random()
        if r < best:
            return int(order[0])
        if r < second:
            return int(order[1]) if order.size > 1 else int(order[0])
        if r < third:
            return int(order[2]) if order.size > 2 else int(order[0])
        pool = min(self.top_k, order.size)
        return int(order[int(self.rng.random() * pool)])

    def next_index(
        self,
        current: int,
        context: Sequence[int] = (),
        temperature: Optional[float] = None,
        context_decay: Optional[float] = None,
    ) -> int:
        """Return the sampled successor of ``current`` given ``context``."""

        return self.sample(self.probabilities(current, context, temperature, context_decay))
