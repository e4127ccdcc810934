"""Tests for range profiles and the two octave-correction policies."""

import importlib
import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

vr = importlib.import_module("vocal_harmonizer.voice_ranges")

WIDE = vr.RANGE_PROFILES["wide"]
BASS = WIDE.range_for("bass")


@pytest.mark.parametrize(
    "pitch, expected",
    [
        (50, 50),
        (30, 42),
        (20, 40),  # one octave up is not enough, so the pitch clamps
        (70, 58),
        (90, 64),
    ],
)
def test_shift_once_then_clamp(pitch, expected):
    """Pitches move at most one octave before clamping."""

    assert vr.shift_once_then_clamp(pitch, BASS) == expected


@pytest.mark.parametrize(
    "pitch, expected",
    [
        (50, 50),
        (30, 42),
        (20, 44),
        (70, 58),
        (90, 54),
    ],
)
def test_search_then_clamp(pitch, expected):
    """Pitches move by as many octaves as needed before clamping."""

    assert vr.search_then_clamp(pitch, BASS) == expected


def test_policies_diverge_far_outside_range():
    """The single-step policy collapses onto the boundary, the search does not."""

    soprano = WIDE.range_for("soprano")
    assert vr.shift_once_then_clamp(30, soprano) == 60
    assert vr.search_then_clamp(30, soprano) == 66


def test_search_clamps_for_ranges_narrower_than_an_octave():
    """Narrow ranges fall back to the clamp after the octave search."""

    narrow = vr.VoiceRange(60, 64)
    assert vr.search_then_clamp(54, narrow) == 60
    assert vr.search_then_clamp(67, narrow) == 60


def test_profiles_cover_every_voice():
    """Every built-in profile defines all four roles."""

    for profile in vr.RANGE_PROFILES.values():
        assert set(profile.as_dict()) == {"bass", "tenor", "mezzo_soprano", "soprano"}


def test_narrow_profile_values():
    """The narrow profile follows the classic SATB table."""

    narrow = vr.get_range_profile("narrow")
    assert narrow.as_dict() == {
        "bass": (36, 55),
        "tenor": (48, 67),
        "mezzo_soprano": (55, 72),
        "soprano": (60, 84),
    }


def test_unknown_voice_uses_default_range():
    """Roles missing from a profile use the 40-84 default."""

    assert WIDE.range_for("alto") == vr.DEFAULT_RANGE == vr.VoiceRange(40, 84)


def test_unknown_profile_raises():
    """Unknown profile names raise ``ValueError``."""

    with pytest.raises(ValueError):
        vr.get_range_profile("baritone")


def test_invalid_voice_range():
    """Inverted bounds are rejected and membership is inclusive."""

    with pytest.raises(ValueError):
        vr.VoiceRange(70, 60)
    assert 64 in BASS
    assert 65 not in BASS
