"""Tests for the history-driven probabilistic harmonizer."""

import importlib
import random
import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

prob = importlib.import_module("vocal_harmonizer.probabilistic")
notes = importlib.import_module("vocal_harmonizer.notes")
Note = notes.Note
VOICES = notes.VOICES


def _harmonizer(seed=0, **kwargs):
    return prob.ProbabilisticHarmonizer(rng=random.Random(seed), **kwargs)


def test_voice_history_is_bounded():
    """Histories drop their oldest entry once full."""

    history = prob.VoiceHistory(3, (0,))
    for idx in (10, 11, 12, 13):
        history.push(idx)
    assert history.snapshot() == (11, 12, 13)
    assert history.recent(2) == [12, 13]
    assert history.recent(0) == []
    assert history.last() == 13
    history.reset(0)
    assert history.snapshot() == (0,)


def test_fresh_histories_hold_start_token():
    """A new harmonizer starts every voice on ``START``."""

    h = _harmonizer()
    for voice in VOICES:
        assert h.history(voice) == (h.vocabulary.start_index,)


def test_lead_is_recorded_and_returned_unchanged():
    """The lead is pushed to its history and echoed in the result."""

    h = _harmonizer()
    lead = Note(60, 0.8, "A")
    result = h.generate("soprano", lead, 0.8)
    assert h.history("soprano") == (0, 32)
    assert result.soprano == lead
    for voice in ("bass", "tenor", "mezzo_soprano"):
        assert len(h.history(voice)) == 2


def test_every_voice_stays_in_range():
    """Random leads never push any voice outside its range."""

    h = _harmonizer(seed=42)
    ranges = h.config.ranges()
    leads = [pitch for _, pitch, _ in h.vocabulary.pitch_states()]
    picker = random.Random(7)
    for _ in range(300):
        pitch = picker.choice(leads)
        result = h.generate("soprano", Note(pitch, 0.7, "A"), 0.7)
        for voice, note in result.items():
            assert note.pitch in ranges.range_for(voice)
            assert 0.1 <= note.velocity <= 1.0


def test_out_of_vocabulary_uses_chord_fallback():
    """Black keys are voiced by the chord harmonizer without touching histories."""

    h = _harmonizer()
    result = h.generate("soprano", Note(61, 0.8, "A"), 0.8)
    assert h.fallback.previous == result
    for voice in VOICES:
        assert h.history(voice) == (0,)


def test_tied_lead_outside_span_uses_fallback():
    """Tied notes above the vocabulary span also use the fallback."""

    h = _harmonizer()
    h.generate("soprano", Note(96, 0.8, "A", tie=True), 0.8)
    assert h.fallback.previous is not None
    assert h.history("soprano") == (0,)


def test_control_token_yields_quiet_lead_copy(monkeypatch):
    """A sampled control token becomes a quiet, range-fitted copy of the lead."""

    h = _harmonizer()
    monkeypatch.setattr(h.generator, "next_index", lambda current, context: 0)
    result = h.generate("soprano", Note(72, 0.5, "O"), 0.5)
    for voice in ("bass", "tenor", "mezzo_soprano"):
        assert result[voice].velocity == pytest.approx(0.2)
        assert result[voice].vowel == "O"
        assert h.history(voice) == (0,)
    # The copied lead pitch is still range-corrected.
    assert result.bass.pitch == 60
    assert result.tenor.pitch == 60
    assert result.mezzo_soprano.pitch == 72


def test_sampling_context_combines_voice_and_lead_history(monkeypatch):
    """Context is the voice's recent states followed by the lead's."""

    h = _harmonizer()
    calls = []

    def record(current, context):
        calls.append((current, list(context)))
        return 32

    monkeypatch.setattr(h.generator, "next_index", record)
    h.generate("soprano", Note(60, 0.8, "A"), 0.8)
    assert calls[0] == (0, [0, 0, 32])

    calls.clear()
    h.generate("soprano", Note(62, 0.8, "A"), 0.8)
    # Own history (START, 32) followed by the lead's two newest entries.
    assert calls[0] == (32, [0, 32, 32, 34])


def test_histories_never_exceed_capacity():
    """Long melodies keep every history at eight entries or fewer."""

    h = _harmonizer(seed=3)
    for pitch in (60, 62, 64, 65, 67, 69, 71, 72, 71, 69, 67, 65, 64, 62):
        h.generate("soprano", Note(pitch, 0.8, "A"), 0.8)
    for voice in VOICES:
        assert len(h.history(voice)) <= 8
    assert len(h.history("soprano")) == 8


def test_velocity_and_vowel_centre(sequence_rng):
    """A mid draw gives exactly the scaled velocity and the primary vowel."""

    h = prob.ProbabilisticHarmonizer(rng=sequence_rng([0.5]))
    result = h.generate("soprano", Note(60, 0.8, "A"), 0.8)
    for voice in ("bass", "tenor", "mezzo_soprano"):
        assert result[voice].velocity == pytest.approx(0.48)
        assert result[voice].vowel == "A"


def test_velocity_is_clamped(sequence_rng):
    """Very quiet leads still produce the minimum velocity."""

    h = prob.ProbabilisticHarmonizer(rng=sequence_rng([0.5]))
    result = h.generate("soprano", Note(60, 0.1, "A"), 0.1)
    assert result.bass.velocity == pytest.approx(0.1)


def test_high_draw_raises_velocity_and_switches_vowel(sequence_rng):
    """A high draw adds jitter and selects the alternate vowel."""

    h = prob.ProbabilisticHarmonizer(rng=sequence_rng([0.99]))
    result = h.generate("soprano", Note(60, 0.8, "A"), 0.8)
    assert result.tenor.velocity == pytest.approx(0.578)
    assert result.tenor.vowel == "O"


def test_reset_keeps_fallback_previous():
    """``reset`` clears histories but keeps chord smoothing state."""

    h = _harmonizer()
    h.generate("soprano", Note(61, 0.8, "A"), 0.8)
    h.generate("soprano", Note(60, 0.8, "A"), 0.8)
    h.reset()
    assert h.fallback.previous is not None
    for voice in VOICES:
        assert h.history(voice) == (0,)


def test_reset_and_reseed_reproduces_output():
    """Reset plus reseed replays the same harmonies."""

    h = _harmonizer(seed=5)
    melody = [60, 64, 67, 72, 67, 64, 60]

    def run():
        return [h.generate("tenor", Note(p - 12, 0.7, "A"), 0.7).pitches() for p in melody]

    first = run()
    h.reset()
    h.rng.seed(5)
    assert run() == first


def test_unknown_lead_role_harmonizes_all_voices():
    """An unknown lead role gets its own history."""

    h = _harmonizer()
    result = h.generate("alto", Note(60, 0.8, "A"), 0.8)
    assert h.history("alto") == (32,)
    for voice in VOICES:
        assert len(h.history(voice)) == 2
    assert set(result.pitches()) == set(VOICES)


def test_model_is_shared_between_harmonizers():
    """Harmonizers with the default config share the cached model."""

    assert _harmonizer().model is _harmonizer(seed=1).model
