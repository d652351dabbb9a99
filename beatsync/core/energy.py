"""
Energy analyzer: RMS loudness envelope sampled at a fixed 10 Hz.

The envelope drives section detection (energy level and gradient) and is
normalized so its loudest point is exactly 1.0.
"""

import math
from typing import Iterator, List

import numpy as np

from beatsync.core.analyzer_base import BaseAnalyzer
from beatsync.core.models import EnergyChange, Waveform

ENVELOPE_RATE: int = 10  # samples per second, i.e. 100 ms windows
SMOOTHING_RADIUS: int = 2
CHANGE_THRESHOLD: float = 0.2


def _windowed_rms(samples: np.ndarray, window: int, count: int) -> np.ndarray:
    """RMS of ``count`` consecutive windows; the tail window may be partial."""
    squares = np.concatenate(([0.0], np.cumsum(np.square(samples, dtype=np.float64))))
    starts = np.minimum(np.arange(count) * window, len(samples))
    ends = np.minimum(starts + window, len(samples))
    sizes = ends - starts
    sums = squares[ends] - squares[starts]
    rms = np.zeros(count, dtype=np.float64)
    filled = sizes > 0
    rms[filled] = np.sqrt(sums[filled] / sizes[filled])
    return rms


def moving_average(values: np.ndarray, radius: int) -> np.ndarray:
    """Centered moving average; the support shrinks at the edges."""
    n = len(values)
    if n == 0 or radius <= 0:
        return np.asarray(values, dtype=np.float64).copy()
    totals = np.concatenate(([0.0], np.cumsum(values, dtype=np.float64)))
    index = np.arange(n)
    lo = np.maximum(index - radius, 0)
    hi = np.minimum(index + radius + 1, n)
    return (totals[hi] - totals[lo]) / (hi - lo)


def compute_envelope(
    samples: np.ndarray,
    sample_rate: int,
    rate: int = ENVELOPE_RATE,
    smoothing_radius: int = SMOOTHING_RADIUS,
) -> np.ndarray:
    """
    Downsample raw samples into a smoothed, normalized RMS envelope.

    Args:
        samples: Mono samples
        sample_rate: Sample rate of ``samples`` in Hz
        rate: Envelope rate in Hz
        smoothing_radius: Moving-average radius in envelope samples

    Returns:
        np.ndarray: ceil(duration * rate) values in [0, 1]; max is 1.0
        unless the input is silent, in which case all values are 0.
    """
    samples = np.asarray(samples)
    if len(samples) == 0:
        return np.zeros(0, dtype=np.float64)

    count = math.ceil(len(samples) * rate / sample_rate)
    window = max(1, int(sample_rate // rate))

    smoothed = moving_average(_windowed_rms(samples, window, count), smoothing_radius)

    peak = float(smoothed.max())
    if peak <= 0.0:
        return np.zeros(count, dtype=np.float64)
    return smoothed / peak


def average_energy(
    envelope: np.ndarray, start_time: float, end_time: float, rate: int = ENVELOPE_RATE
) -> float:
    """
    Mean envelope value over [start_time, end_time); 0 for an empty range.

    Indices run from floor(start * rate) to ceil(end * rate), so a
    non-empty time range covers every envelope value it touches.
    """
    if end_time <= start_time:
        return 0.0
    start = max(0, math.floor(start_time * rate))
    end = min(math.ceil(end_time * rate), len(envelope))
    if start >= end:
        return 0.0
    return float(np.mean(envelope[start:end]))


def iter_energy_changes(
    envelope: np.ndarray,
    threshold: float = CHANGE_THRESHOLD,
    rate: int = ENVELOPE_RATE,
) -> Iterator[EnergyChange]:
    """
    Yield significant energy changes.

    At every interior index the mean of the preceding second is compared
    with the mean of the following second. A change is emitted where
    |after - before| >= threshold, skipping any that fall within one second
    of the previously emitted change. Each call starts a fresh scan.
    """
    look = rate
    n = len(envelope)
    if n <= 2 * look:
        return

    totals = np.concatenate(([0.0], np.cumsum(envelope, dtype=np.float64)))
    index = np.arange(look, n - look)
    before = (totals[index] - totals[index - look]) / look
    after = (totals[index + look] - totals[index]) / look
    deltas = after - before

    last_index = None
    for i in np.flatnonzero(np.abs(deltas) >= threshold):
        position = int(index[i])
        if last_index is not None and position - last_index < look:
            continue
        last_index = position
        yield EnergyChange(time=position / rate, delta=float(deltas[i]))


def detect_energy_changes(
    envelope: np.ndarray,
    threshold: float = CHANGE_THRESHOLD,
    rate: int = ENVELOPE_RATE,
) -> List[EnergyChange]:
    return list(iter_energy_changes(envelope, threshold, rate))


class EnergyAnalyzer(BaseAnalyzer[np.ndarray]):
    """Pipeline stage producing the normalized energy envelope of a waveform."""

    def __init__(self, rate: int = ENVELOPE_RATE, smoothing_radius: int = SMOOTHING_RADIUS):
        super().__init__("energy", "1.0.0")
        self.rate = rate
        self.smoothing_radius = smoothing_radius

    def _analyze_impl(self, waveform: Waveform) -> np.ndarray:
        envelope = compute_envelope(
            waveform.samples,
            waveform.sample_rate,
            rate=self.rate,
            smoothing_radius=self.smoothing_radius,
        )
        self.logger.debug(f"Envelope: {len(envelope)} values at {self.rate} Hz")
        return envelope

    def average_energy(self, envelope: np.ndarray, start_time: float, end_time: float) -> float:
        return average_energy(envelope, start_time, end_time, self.rate)

    def detect_changes(
        self, envelope: np.ndarray, threshold: float = CHANGE_THRESHOLD
    ) -> Iterator[EnergyChange]:
        return iter_energy_changes(envelope, threshold, self.rate)
