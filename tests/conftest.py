"""Shared fixtures for the harmonizer test-suite.

Every test module inserts the project root on ``sys.path`` so the package can
be imported straight from a checkout.  ``sequence_rng`` provides a random
source replaying fixed values, letting tests force each branch of the
rank-biased sampler and of the velocity/vowel jitter.
"""

from __future__ import annotations

import sys
from itertools import cycle
from pathlib import Path
from typing import Iterable

import pytest

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))


class SequenceRandom:
    """Minimal ``random.Random`` stand-in returning ``values`` in a loop."""

    def __init__(self, values: Iterable[float]) -> None:
        self.values = list(values)
        self._it = cycle(self.values)
        self.calls = 0

    def random(self) -> float:
        self.calls += 1
        return next(self._it)

    def seed(self, *_args) -> None:
        self._it = cycle(self.values)


@pytest.fixture()
def sequence_rng():
    """Return the :class:`SequenceRandom` factory."""

    return SequenceRandom
