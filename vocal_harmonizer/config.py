"""Tunable parameters for the harmonization engine.

Every constant the harmonizers rely on lives in :class:`HarmonizerConfig` so
callers can override individual values without editing module globals.  The
dataclass is frozen and hashable which lets :func:`load_harmony_model` cache
one shared vocabulary/transition table per distinct configuration.

Configuration may also be persisted as JSON.  :func:`load_config` mirrors the
preferences helpers used elsewhere: a missing or unreadable file is logged
and the defaults are returned so a broken preferences file never prevents
harmonies from being produced.

Example
-------
>>> cfg = HarmonizerConfig(temperature=1.0, range_profile="narrow")
>>> cfg.ranges().range_for("bass")
VoiceRange(low=36, high=55)
"""

from __future__ import annotations

import json
import logging
import os
from dataclasses import asdict, dataclass, field, fields, replace
from pathlib import Path
from typing import Any, Dict, FrozenSet, Mapping, Optional, Tuple

from .notes import VOWELS
from .voice_ranges import RANGE_PROFILES, RangeProfile, get_range_profile

__all__ = [
    "HarmonizerConfig",
    "DEFAULT_CONFIG_FILE",
    "load_config",
    "save_config",
]

# Default location of the JSON configuration file.  The environment variable
# lets tests and kiosk installs point at an alternative file.
env_path = os.environ.get("VOCAL_HARMONIZER_CONFIG")
if env_path:
    DEFAULT_CONFIG_FILE = Path(env_path).expanduser()
else:
    DEFAULT_CONFIG_FILE = Path.home() / ".vocal_harmonizer_config.json"


_INT_FIELDS = (
    "min_octave",
    "max_octave",
    "voice_context",
    "lead_context",
    "max_history",
    "top_k",
    "smoothing_threshold",
)
_FLOAT_FIELDS = (
    "context_decay",
    "context_weight",
    "temperature",
    "harmony_velocity_scale",
    "fallback_velocity_scale",
    "velocity_jitter",
    "min_velocity",
    "max_velocity",
    "primary_vowel_probability",
)


@dataclass(frozen=True)
class HarmonizerConfig:
    """Parameters controlling vocabulary, sampling and voicing.

    Attributes
    ----------
    diatonic_pattern:
        Semitone offsets within an octave that form the vocabulary.  Defaults
        to the white keys ``C D E F G A B``.
    min_octave, max_octave:
        Inclusive scientific-pitch octave span covered by the vocabulary.
    voice_context, lead_context, max_history:
        Number of a voice's own history entries and of the lead's history
        entries used as sampling context, and the capacity of every history.
    context_decay, context_weight:
        Exponential decay per recency step and base weight for context rows.
    temperature:
        Softmax temperature applied to the accumulated scores.
    rank_thresholds:
        Cumulative bands selecting the best, second and third ranked states.
    top_k:
        Size of the candidate pool for the uniform random tail.
    range_profile:
        Name of a built-in profile in :data:`RANGE_PROFILES`.
    voice_ranges:
        Optional ``((role, (low, high)), ...)`` overriding the named profile.
    consonant_intervals:
        Interval classes (``interval % 12``) receiving the consonance bonus.
    major_pitch_classes:
        Lead pitch classes harmonized with a major third by the chord fallback.
    """

    diatonic_pattern: Tuple[int, ...] = (0, 2, 4, 5, 7, 9, 11)
    min_octave: int = 2
    max_octave: int = 6
    voice_context: int = 4
    lead_context: int = 2
    max_history: int = 8
    context_decay: float = 0.5
    context_weight: float = 0.3
    temperature: float = 1.2
    rank_thresholds: Tuple[float, float, float] = (0.6, 0.8, 0.9)
    top_k: int = 5
    range_profile: str = "wide"
    voice_ranges: Optional[Tuple[Tuple[str, Tuple[int, int]], ...]] = None
    consonant_intervals: FrozenSet[int] = field(
        default_factory=lambda: frozenset({0, 3, 4, 5, 7, 8, 9})
    )
    major_pitch_classes: FrozenSet[int] = field(
        default_factory=lambda: frozenset({0, 2, 4, 5, 7, 9})
    )
    harmony_velocity_scale: float = 0.6
    fallback_velocity_scale: float = 0.4
    velocity_jitter: float = 0.1
    min_velocity: float = 0.1
    max_velocity: float = 1.0
    primary_vowel: str = "A"
    primary_vowel_probability: float = 0.8
    smoothing_threshold: int = 6

    def __post_init__(self) -> None:
        # Normalise container types so configs built from JSON lists still
        # hash and compare equal to the defaults.
        try:
            object.__setattr__(self, "diatonic_pattern", tuple(int(p) for p in self.diatonic_pattern))
            object.__setattr__(self, "rank_thresholds", tuple(float(t) for t in self.rank_thresholds))
            object.__setattr__(self, "consonant_intervals", frozenset(int(i) % 12 for i in self.consonant_intervals))
            object.__setattr__(self, "major_pitch_classes", frozenset(int(i) % 12 for i in self.major_pitch_classes))
            if self.voice_ranges is not None:
                items = self.voice_ranges.items() if isinstance(self.voice_ranges, Mapping) else self.voice_ranges
                object.__setattr__(
                    self,
                    "voice_ranges",
                    tuple((str(v), (int(lo), int(hi))) for v, (lo, hi) in items),
                )
        except TypeError as exc:
            # Malformed JSON shapes such as ``"voice_ranges": {"bass": 5}``.
            raise ValueError(f"malformed configuration value: {exc}") from exc
        self.validate()

    def _check_types(self) -> None:
        for name in _INT_FIELDS:
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int):
                raise ValueError(f"{name} must be an integer, got {value!r}")
        for name in _FLOAT_FIELDS:
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                raise ValueError(f"{name} must be a number, got {value!r}")
        for name in ("range_profile", "primary_vowel"):
            if not isinstance(getattr(self, name), str):
                raise ValueError(f"{name} must be a string")

    def validate(self) -> None:
        """Raise ``ValueError`` describing the first invalid parameter.

        Wrongly typed values (``"top_k": "5"`` in a JSON file) and custom
        ``voice_ranges`` with ``low > high`` are reported here too, so an
        invalid configuration never reaches the harmonizers.
        """

        self._check_types()
        if not self.diatonic_pattern:
            raise ValueError("diatonic_pattern must not be empty")
        if any(not 0 <= p < 12 for p in self.diatonic_pattern):
            raise ValueError("diatonic_pattern offsets must lie in 0-11")
        if len(set(self.diatonic_pattern)) != len(self.diatonic_pattern):
            raise ValueError("diatonic_pattern must not repeat offsets")
        if self.min_octave > self.max_octave:
            raise ValueError("min_octave must not exceed max_octave")
        if (self.min_octave + 1) * 12 < 0 or (self.max_octave + 1) * 12 + 11 > 127:
            raise ValueError("vocabulary octaves must stay within MIDI 0-127")
        for name in ("voice_context", "lead_context"):
            if getattr(self, name) < 0:
                raise ValueError(f"{name} must be non-negative")
        if self.max_history <= 0:
            raise ValueError("max_history must be positive")
        if self.temperature <= 0:
            raise ValueError("temperature must be positive")
        if self.context_decay < 0 or self.context_weight < 0:
            raise ValueError("context_decay and context_weight must be non-negative")
        if len(self.rank_thresholds) != 3:
            raise ValueError("rank_thresholds must contain three values")
        first, second, third = self.rank_thresholds
        if not 0.0 <= first <= second <= third <= 1.0:
            raise ValueError("rank_thresholds must be ascending within 0-1")
        if self.top_k <= 0:
            raise ValueError("top_k must be positive")
        if self.voice_ranges is None and self.range_profile not in RANGE_PROFILES:
            # ``get_range_profile`` produces the descriptive message.
            get_range_profile(self.range_profile)
        if self.primary_vowel not in VOWELS:
            raise ValueError(f"primary_vowel must be one of {', '.join(VOWELS)}")
        if not 0.0 <= self.primary_vowel_probability <= 1.0:
            raise ValueError("primary_vowel_probability must lie in 0-1")
        if not 0.0 <= self.min_velocity <= self.max_velocity:
            raise ValueError("velocity bounds must satisfy 0 <= min <= max")
        if self.smoothing_threshold < 0:
            raise ValueError("smoothing_threshold must be non-negative")
        # Builds the custom profile, raising for inverted bounds.
        self.ranges()

    def ranges(self) -> RangeProfile:
        """Return the active :class:`RangeProfile`."""

        if self.voice_ranges is not None:
            return RangeProfile.from_mapping("custom", dict(self.voice_ranges))
        return get_range_profile(self.range_profile)

    def with_overrides(self, **overrides: Any) -> "HarmonizerConfig":
        """Return a copy with ``overrides`` applied."""

        return replace(self, **overrides)

    def to_dict(self) -> Dict[str, Any]:
        """Return a JSON-serialisable representation."""

        data = asdict(self)
        data["diatonic_pattern"] = list(self.diatonic_pattern)
        data["rank_thresholds"] = list(self.rank_thresholds)
        data["consonant_intervals"] = sorted(self.consonant_intervals)
        data["major_pitch_classes"] = sorted(self.major_pitch_classes)
        if self.voice_ranges is not None:
            data["voice_ranges"] = {v: list(b) for v, b in self.voice_ranges}
        return data

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "HarmonizerConfig":
        """Build a config from ``data`` ignoring unknown keys.

        Unknown keys are logged rather than rejected so older configuration
        files keep loading after parameters are renamed.
        """

        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            logging.warning("Ignoring unknown config keys: %s", ", ".join(unknown))
        return cls(**{k: v for k, v in data.items() if k in known})


def load_config(path: Path = DEFAULT_CONFIG_FILE) -> HarmonizerConfig:
    """Load a :class:`HarmonizerConfig` from ``path`` if it exists.

    Parameters
    ----------
    path:
        Location of the JSON file.

    Returns
    -------
    HarmonizerConfig
        Parsed configuration, or the defaults when the file is missing or
        cannot be read.

    Raises
    ------
    ValueError
        If the file parses but contains invalid parameter values.
    """

    path = Path(path)
    if path.is_file():
        try:
            with open(path, "r", encoding="utf-8") as fh:
                data = json.load(fh)
        except (OSError, json.JSONDecodeError) as exc:
            logging.error(f"Could not load config: {exc}")
            return HarmonizerConfig()
        if not isinstance(data, dict):
            logging.error("Config file %s does not contain a JSON object", path)
            return HarmonizerConfig()
        return HarmonizerConfig.from_dict(data)
    return HarmonizerConfig()


def save_config(config: HarmonizerConfig, path: Path = DEFAULT_CONFIG_FILE) -> None:
    """Save ``config`` to ``path`` as JSON.

    Failures are logged but ignored so an unwritable home directory never
    interrupts a performance.
    """

    try:
        with open(path, "w", encoding="utf-8") as fh:
            json.dump(config.to_dict(), fh, indent=2)
    except OSError as exc:
        logging.error(f"Could not save config: {exc}")
