"""
Beat refinement: per-beat loudness and downbeat inference on top of the
beat grid supplied by the upstream tracker.
"""

from typing import Sequence, Tuple

import numpy as np

from beatsync.core.analyzer_base import BaseAnalyzer
from beatsync.core.models import BEATS_PER_BAR, BeatGrid, DownbeatResult, Waveform

STRENGTH_WINDOW: int = 2048
DOWNBEAT_STD_FACTOR: float = 0.3


def beat_strengths(
    samples: np.ndarray,
    sample_rate: int,
    beat_times: Sequence[float],
    window: int = STRENGTH_WINDOW,
) -> np.ndarray:
    """
    RMS loudness around each beat, normalized by the loudest beat.

    The window spans ``window // 2`` samples either side of the beat's sample
    index and is clamped to the buffer. A beat whose window falls entirely
    outside the buffer scores 0.
    """
    if len(beat_times) == 0:
        return np.zeros(0, dtype=np.float64)

    half = window // 2
    n = len(samples)
    squares = np.concatenate(([0.0], np.cumsum(np.square(samples, dtype=np.float64))))

    centers = np.floor(np.asarray(beat_times, dtype=np.float64) * sample_rate).astype(np.int64)
    starts = np.clip(centers - half, 0, n)
    ends = np.clip(centers + half, 0, n)
    sizes = ends - starts

    raw = np.zeros(len(centers), dtype=np.float64)
    filled = sizes > 0
    raw[filled] = np.sqrt((squares[ends[filled]] - squares[starts[filled]]) / sizes[filled])

    peak = raw.max()
    if peak <= 0.0:
        return np.zeros_like(raw)
    return raw / peak


def detect_downbeats(
    beat_times: Sequence[float],
    strengths: Sequence[float],
    std_factor: float = DOWNBEAT_STD_FACTOR,
    beats_per_bar: int = BEATS_PER_BAR,
) -> DownbeatResult:
    """
    A beat is a downbeat if its strength exceeds mean + std_factor * std
    (population standard deviation) or its index falls on the bar grid.

    Both criteria are applied independently, so noisy strengths can mark more
    than one beat per bar.
    """
    values = np.asarray(strengths, dtype=np.float64)
    if len(values) == 0:
        return DownbeatResult()

    threshold = values.mean() + std_factor * values.std()
    index = np.arange(len(values))
    selected = np.flatnonzero((values > threshold) | (index % beats_per_bar == 0))

    indices = tuple(int(i) for i in selected)
    times = tuple(float(beat_times[i]) for i in indices if i < len(beat_times))
    return DownbeatResult(indices=indices, times=times)


class BeatRefiner(BaseAnalyzer[Tuple[np.ndarray, DownbeatResult]]):
    """Pipeline stage producing beat strengths and downbeats."""

    def __init__(
        self,
        window: int = STRENGTH_WINDOW,
        std_factor: float = DOWNBEAT_STD_FACTOR,
        beats_per_bar: int = BEATS_PER_BAR,
    ):
        super().__init__("beats", "1.0.0")
        self.window = window
        self.std_factor = std_factor
        self.beats_per_bar = beats_per_bar

    def _analyze_impl(
        self, waveform: Waveform, grid: BeatGrid
    ) -> Tuple[np.ndarray, DownbeatResult]:
        strengths = beat_strengths(
            waveform.samples, waveform.sample_rate, grid.beat_times, self.window
        )
        downbeats = detect_downbeats(
            grid.beat_times, strengths, self.std_factor, self.beats_per_bar
        )
        self.logger.debug(
            f"{len(downbeats.indices)} downbeats among {len(grid.beat_times)} beats"
        )
        return strengths, downbeats
