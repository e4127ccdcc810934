"""Tests for the thread-safe engine facade and its fallback behaviour."""

import importlib
import logging
import random
import sys
import threading
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

engine_mod = importlib.import_module("vocal_harmonizer.engine")
notes = importlib.import_module("vocal_harmonizer.notes")
HarmonizationEngine = engine_mod.HarmonizationEngine
Note = notes.Note


def test_unknown_strategy_rejected():
    """Only the probabilistic and chord strategies exist."""

    with pytest.raises(ValueError):
        HarmonizationEngine(strategy="neural")


def test_chord_strategy_and_reset():
    """The chord strategy alone voices C4 as C3/F3/G#4/C4 and resets cleanly."""

    engine = HarmonizationEngine(strategy="chord", seed=1)
    assert engine.probabilistic is None
    result = engine.generate_harmony("soprano", Note(60, 0.8, "A"), 0.8)
    assert result.pitches() == {"bass": 48, "tenor": 53, "mezzo_soprano": 68, "soprano": 60}
    engine.reset()
    assert engine.chord.previous is None


def test_current_harmony_tracks_last_result():
    """``current_harmony`` is empty until the first call, then the last result."""

    engine = HarmonizationEngine(seed=2)
    assert engine.current_harmony is None
    result = engine.generate_harmony("soprano", Note(67, 0.7, "A"), 0.7)
    assert engine.current_harmony is result


def test_seeded_engines_agree():
    """Two engines with the same seed produce identical harmonies."""

    melody = [60, 62, 64, 65, 67, 65, 64, 62, 60]
    a = HarmonizationEngine(seed=11)
    b = HarmonizationEngine(seed=11)
    for pitch in melody:
        note = Note(pitch, 0.8, "A")
        assert a.generate_harmony("soprano", note, 0.8) == b.generate_harmony("soprano", note, 0.8)


def test_rng_takes_precedence_over_seed():
    """An injected random source is shared by both strategies."""

    rng = random.Random(4)
    engine = HarmonizationEngine(rng=rng, seed=99)
    assert engine.rng is rng
    assert engine.probabilistic.rng is rng
    assert engine.chord.rng is rng


def test_probabilistic_failure_falls_back_to_chords(monkeypatch, caplog):
    """An unexpected error is logged and answered with the chord voicing."""

    engine = HarmonizationEngine(seed=3)

    def boom(*_args):
        raise RuntimeError("sampler exploded")

    monkeypatch.setattr(engine.probabilistic, "generate", boom)
    with caplog.at_level(logging.ERROR):
        result = engine.generate_harmony("soprano", Note(60, 0.8, "A"), 0.8)
    assert result.pitches() == {"bass": 48, "tenor": 53, "mezzo_soprano": 68, "soprano": 60}
    assert "Probabilistic harmonization failed" in caplog.text
    assert engine.current_harmony is result


def test_failure_mid_call_leaves_histories_untouched(monkeypatch):
    """Histories pushed before a failing voice are rolled back."""

    engine = HarmonizationEngine(seed=3)
    engine.generate_harmony("soprano", Note(60, 0.8, "A"), 0.8)
    before = {v: engine.probabilistic.history(v) for v in notes.VOICES}

    calls = []

    def fail_on_second_voice(current, context):
        calls.append(current)
        if len(calls) == 2:
            raise RuntimeError("sampler exploded")
        return 32

    monkeypatch.setattr(engine.probabilistic.generator, "next_index", fail_on_second_voice)
    engine.generate_harmony("soprano", Note(62, 0.8, "A"), 0.8)

    # The lead and the bass had already been pushed when the tenor failed.
    assert len(calls) == 2
    assert {v: engine.probabilistic.history(v) for v in notes.VOICES} == before


def test_failure_drops_histories_created_during_the_call(monkeypatch):
    """A lead role first seen in a failing call leaves no history behind."""

    engine = HarmonizationEngine(seed=3)

    def boom(current, context):
        raise RuntimeError("sampler exploded")

    monkeypatch.setattr(engine.probabilistic.generator, "next_index", boom)
    engine.generate_harmony("alto", Note(60, 0.8, "A"), 0.8)
    assert engine.probabilistic.history("alto") == ()
    assert engine.probabilistic.history("bass") == (0,)


def test_out_of_vocabulary_lead_updates_shared_chord_state():
    """Black keys go through the engine's own chord harmonizer."""

    engine = HarmonizationEngine(seed=5)
    assert engine.probabilistic.fallback is engine.chord
    result = engine.generate_harmony("soprano", Note(61, 0.8, "A"), 0.8)
    assert engine.chord.previous == result


def test_reset_keeps_chord_memory_for_probabilistic_strategy():
    """Resetting the probabilistic strategy clears histories only."""

    engine = HarmonizationEngine(seed=6)
    engine.generate_harmony("soprano", Note(61, 0.8, "A"), 0.8)
    engine.generate_harmony("soprano", Note(60, 0.8, "A"), 0.8)
    engine.reset()
    assert engine.chord.previous is not None
    assert engine.probabilistic.history("bass") == (0,)


def test_concurrent_calls_are_serialised():
    """Parallel callers never corrupt histories or produce out-of-range notes."""

    engine = HarmonizationEngine(seed=8)
    ranges = engine.config.ranges()
    errors = []

    def worker(offset):
        try:
            for i in range(50):
                pitch = (60, 62, 64, 65, 67, 69, 71)[(i + offset) % 7]
                result = engine.generate_harmony("soprano", Note(pitch, 0.6, "A"), 0.6)
                for voice, note in result.items():
                    assert note.pitch in ranges.range_for(voice)
        except Exception as exc:  # pragma: no cover - reported below
            errors.append(exc)

    threads = [threading.Thread(target=worker, args=(n,)) for n in range(4)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()
    assert errors == []
    for voice in notes.VOICES:
        assert len(engine.probabilistic.history(voice)) <= 8


def test_create_harmonizer_factory():
    """The factory picks the strategy from a boolean flag."""

    chord = engine_mod.create_harmonizer(False, seed=1)
    assert chord.strategy == "chord"
    prob = engine_mod.create_harmonizer(seed=1)
    assert prob.strategy == "probabilistic"


def test_engines_share_the_cached_model():
    """Engines with equal configuration reuse one transition table."""

    a = HarmonizationEngine(seed=1)
    b = HarmonizationEngine(seed=2)
    assert a.probabilistic.model is b.probabilistic.model
