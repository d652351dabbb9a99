"""
Core data models for the beat-sync structural analysis package.

Immutable domain models for waveforms, beat grids and the structural
analysis result.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Optional, Sequence, Tuple

import numpy as np

DEFAULT_TEMPO: float = 120.0
BEATS_PER_BAR: int = 4


def _frozen_array(values: Any, dtype: Any = np.float64) -> np.ndarray:
    """Return a read-only 1-D copy so the caller's buffer stays theirs."""
    array = np.array(values, dtype=dtype).reshape(-1)
    array.setflags(write=False)
    return array


@dataclass(frozen=True, eq=False)
class Waveform:
    """
    Fully buffered mono recording.

    The sample buffer is copied on construction and marked read-only, so a
    pipeline run owns it exclusively.
    """

    samples: np.ndarray
    sample_rate: int
    source: Optional[Path] = None

    def __post_init__(self) -> None:
        if self.sample_rate <= 0:
            raise ValueError(f"Sample rate must be positive, got {self.sample_rate}")
        data = np.asarray(self.samples)
        if data.ndim > 1:
            raise ValueError(f"Waveform must be mono, got shape {data.shape}")
        object.__setattr__(self, "samples", _frozen_array(data, dtype=np.float32))

    @property
    def duration(self) -> float:
        """Duration in seconds."""
        return len(self.samples) / self.sample_rate

    def __len__(self) -> int:
        return len(self.samples)


@dataclass(frozen=True)
class BeatGrid:
    """Beat data supplied by the upstream beat tracker."""

    beat_times: Tuple[float, ...]
    bar_times: Tuple[float, ...]
    tempo: float

    @classmethod
    def from_beat_times(
        cls, beat_times: Sequence[float], beats_per_bar: int = BEATS_PER_BAR
    ) -> "BeatGrid":
        """
        Derive tempo and bar starts from sorted beat timestamps.

        Tempo is 60 / mean inter-beat interval (DEFAULT_TEMPO below two
        beats). A bar timestamp is emitted for the first beat of every
        complete bar, i.e. beat indices 0, 4, 8, ... with all of the bar's
        beats present. Ordering is trusted as supplied.
        """
        beats = tuple(float(t) for t in beat_times)

        tempo = DEFAULT_TEMPO
        if len(beats) >= 2:
            mean_interval = (beats[-1] - beats[0]) / (len(beats) - 1)
            if mean_interval > 0:
                tempo = 60.0 / mean_interval

        bars = tuple(
            beats[i] for i in range(0, len(beats) - beats_per_bar + 1, beats_per_bar)
        )
        return cls(beat_times=beats, bar_times=bars, tempo=tempo)

    @property
    def beat_count(self) -> int:
        return len(self.beat_times)

    @property
    def bar_count(self) -> int:
        return len(self.bar_times)


class SectionType(str, Enum):
    """Closed set of structural section labels."""

    INTRO = "intro"
    VERSE = "verse"
    CHORUS = "chorus"
    DROP = "drop"
    BREAKDOWN = "breakdown"
    OUTRO = "outro"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class MusicSection:
    """A labelled time range [start_time, end_time) with its mean energy."""

    type: SectionType
    start_time: float
    end_time: float
    energy: float

    @property
    def duration(self) -> float:
        return self.end_time - self.start_time

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.type.value,
            "start_time": self.start_time,
            "end_time": self.end_time,
            "energy": self.energy,
        }


@dataclass(frozen=True)
class EnergyChange:
    """A significant rise (delta > 0) or fall (delta < 0) in the envelope."""

    time: float
    delta: float


@dataclass(frozen=True)
class DrumPattern:
    """Per-band drum hit timestamps plus the repeating-pattern length estimate."""

    kick_times: Tuple[float, ...] = ()
    snare_times: Tuple[float, ...] = ()
    hihat_times: Tuple[float, ...] = ()
    pattern_length: float = 0.0

    @classmethod
    def empty(cls) -> "DrumPattern":
        return cls()

    @property
    def hit_count(self) -> int:
        return len(self.kick_times) + len(self.snare_times) + len(self.hihat_times)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kick_times": list(self.kick_times),
            "snare_times": list(self.snare_times),
            "hihat_times": list(self.hihat_times),
            "pattern_length": self.pattern_length,
        }


@dataclass(frozen=True)
class DownbeatResult:
    """Parallel downbeat index/time sequences."""

    indices: Tuple[int, ...] = ()
    times: Tuple[float, ...] = ()


@dataclass(frozen=True, eq=False)
class AnalysisResult:
    """Complete structural analysis of one recording. Created once per run."""

    # Upstream beat data
    beat_times: Tuple[float, ...]
    bar_times: Tuple[float, ...]
    tempo: float

    # Derived beat data
    downbeat_indices: Tuple[int, ...]
    downbeat_times: Tuple[float, ...]
    beat_strengths: Tuple[float, ...]

    # Structure
    drum_pattern: DrumPattern
    sections: Tuple[MusicSection, ...]
    energy_curve: np.ndarray
    phrase_boundaries: Tuple[float, ...]

    # Metadata
    duration: float
    sample_rate: int
    analysis_time_ms: float = 0.0
    analysis_version: int = 2
    analyzer_versions: Dict[str, str] = field(default_factory=dict)
    source: Optional[Path] = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "energy_curve", _frozen_array(self.energy_curve))

    @property
    def beat_count(self) -> int:
        return len(self.beat_times)

    @property
    def bar_count(self) -> int:
        return len(self.bar_times)

    def nearest_beat(self, time: float) -> float:
        """Beat timestamp closest to ``time``; ``time`` itself if there are no beats."""
        if not self.beat_times:
            return time
        return min(self.beat_times, key=lambda beat: abs(beat - time))

    def nearest_snare(self, time: float, max_distance: float = 0.5) -> Optional[float]:
        """Snare hit closest to ``time``, or None if none lies within ``max_distance``."""
        snares = self.drum_pattern.snare_times
        if not snares:
            return None
        nearest = min(snares, key=lambda snare: abs(snare - time))
        return nearest if abs(nearest - time) <= max_distance else None

    def section_at(self, time: float) -> Optional[MusicSection]:
        """Section whose [start_time, end_time) range contains ``time``."""
        for section in self.sections:
            if section.start_time <= time < section.end_time:
                return section
        return None

    def uniform_clip_duration(self, target_bars: int = 2) -> float:
        """Length in seconds of ``target_bars`` 4/4 bars at the detected tempo."""
        return (60.0 / self.tempo) * BEATS_PER_BAR * target_bars

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "source": str(self.source) if self.source else None,
            "duration": self.duration,
            "sample_rate": self.sample_rate,
            "tempo": self.tempo,
            "beat_count": self.beat_count,
            "bar_count": self.bar_count,
            "beat_times": list(self.beat_times),
            "bar_times": list(self.bar_times),
            "downbeat_indices": list(self.downbeat_indices),
            "downbeat_times": list(self.downbeat_times),
            "beat_strengths": list(self.beat_strengths),
            "drum_pattern": self.drum_pattern.to_dict(),
            "sections": [s.to_dict() for s in self.sections],
            "energy_curve": self.energy_curve.tolist(),
            "phrase_boundaries": list(self.phrase_boundaries),
            "analysis_version": self.analysis_version,
            "analysis_time_ms": self.analysis_time_ms,
            "analyzer_versions": dict(self.analyzer_versions),
        }

    def to_json(self, indent: int = 2) -> str:
        """Export as JSON string."""
        return json.dumps(self.to_dict(), indent=indent, default=str)

    def get_summary(self) -> str:
        """Get human-readable one-line summary."""
        parts = [f"Tempo: {self.tempo:.2f} BPM", f"Beats: {self.beat_count}"]
        if self.sections:
            parts.append(
                "Sections: " + " > ".join(s.type.value for s in self.sections)
            )
        if self.drum_pattern.hit_count:
            parts.append(
                f"Drums: {len(self.drum_pattern.kick_times)}K/"
                f"{len(self.drum_pattern.snare_times)}S/"
                f"{len(self.drum_pattern.hihat_times)}H"
            )
        parts.append(f"Phrases: {len(self.phrase_boundaries)}")
        return " | ".join(parts)
