"""Closed note vocabulary shared by the transition model and sampler.

Every representable state is assigned a small integer index.  The first
indices hold the control tokens ``START``, ``END`` and ``SEPARATOR``; the
remaining slots enumerate ``(pitch, tie)`` pairs for a diatonic pattern over a
fixed octave span.  Enumeration runs octave by octave, then degree by degree,
with the tied variant of each pitch preceding the untied one.

Pitches outside the diatonic pattern or the octave span simply do not encode.
``encode`` returns ``None`` for them, which callers treat as a request to use
the chord-based fallback rather than as an error.

Example
-------
>>> vocab = Vocabulary()
>>> vocab.encode(60, False)
32
>>> vocab.decode(32)
(60, False)
>>> vocab.encode(61, False) is None
True
"""

from __future__ import annotations

from typing import Dict, Iterator, List, Optional, Sequence, Tuple, Union

__all__ = ["START", "END", "SEPARATOR", "CONTROL_TOKENS", "Vocabulary"]

START = "START"
END = "END"
SEPARATOR = "|"
CONTROL_TOKENS = (START, END, SEPARATOR)

PitchState = Tuple[int, bool]


class Vocabulary:
    """Bidirectional mapping between vocabulary indices and note states."""

    def __init__(
        self,
        diatonic_pattern: Sequence[int] = (0, 2, 4, 5, 7, 9, 11),
        min_octave: int = 2,
        max_octave: int = 6,
    ) -> None:
        """Enumerate the vocabulary.

        Parameters
        ----------
        diatonic_pattern:
            Semitone offsets from ``C`` included in every octave.
        min_octave, max_octave:
            Inclusive octave span in scientific pitch notation (``C4`` = 60).
        """

        if min_octave > max_octave:
            raise ValueError("min_octave must not exceed max_octave")

        self._states: List[Union[str, PitchState]] = list(CONTROL_TOKENS)
        for octave in range(min_octave, max_octave + 1):
            for offset in diatonic_pattern:
                pitch = (octave + 1) * 12 + offset
                for tie in (True, False):
                    self._states.append((pitch, tie))
        self._index: Dict[Union[str, PitchState], int] = {
            state: idx for idx, state in enumerate(self._states)
        }
        # Tuples keep the instance effectively immutable after construction.
        self._states = tuple(self._states)

    def __len__(self) -> int:
        return len(self._states)

    @property
    def size(self) -> int:
        return len(self._states)

    @property
    def start_index(self) -> int:
        return self._index[START]

    def index_of(self, token: str) -> int:
        """Return the index of a control ``token``."""

        if token not in CONTROL_TOKENS:
            raise KeyError(token)
        return self._index[token]

    def encode(self, pitch: int, tie: bool = False) -> Optional[int]:
        """Return the index for ``(pitch, tie)`` or ``None`` when unknown."""

        return self._index.get((int(pitch), bool(tie)))

    def decode(self, index: int) -> Union[PitchState, str, None]:
        """Return the state at ``index``.

        Pitch states decode to ``(pitch, tie)`` tuples, control tokens to their
        name and out-of-range indices to ``None``.
        """

        if not 0 <= index < len(self._states):
            return None
        return self._states[index]

    def is_control(self, index: int) -> bool:
        return 0 <= index < len(self._states) and isinstance(self._states[index], str)

    def pitch_states(self) -> Iterator[Tuple[int, int, bool]]:
        """Yield ``(index, pitch, tie)`` for every non-control entry."""

        for idx, state in enumerate(self._states):
            if isinstance(state, tuple):
                pitch, tie = state
                yield idx, pitch, tie
