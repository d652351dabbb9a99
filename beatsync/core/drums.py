"""
Drum onset detector for kick, snare and hi-hat hits.

Each overlapping frame is windowed and transformed by the spectral engine;
RMS energy in three fixed frequency bands then goes through an adaptive
onset rule:

- Kick (20-200 Hz): low-end transients
- Snare (200-2000 Hz): needs a higher ratio to cut through a busy band
- Hi-hat (5000-15000 Hz): short, dense hits

A frame is an onset when its band energy exceeds ``threshold`` times the
mean of the preceding warm-up frames and is also higher than the previous
frame (rising edge), so sustained loudness does not fire repeatedly.
"""

import math
from dataclasses import dataclass
from typing import Dict, List, Sequence, Tuple

import numpy as np

from beatsync.core.analyzer_base import BaseAnalyzer
from beatsync.core.models import DrumPattern, Waveform
from beatsync.core.spectral import FFT_SIZE, magnitude_spectrum

HOP_SIZE: int = 512  # 75% overlap at FFT_SIZE 2048
WARMUP_FRAMES: int = 10
PATTERN_BEATS: int = 16  # 4 bars of 4 beats

# Frames transformed per FFT batch; bounds peak memory on long tracks.
_FRAME_BATCH: int = 256


@dataclass(frozen=True)
class DrumBand:
    """A frequency band and its onset-detection parameters."""

    name: str
    low_hz: float
    high_hz: float
    threshold: float
    min_interval: float


DEFAULT_BANDS: Tuple[DrumBand, ...] = (
    DrumBand("kick", 20.0, 200.0, threshold=1.8, min_interval=0.15),
    DrumBand("snare", 200.0, 2000.0, threshold=2.0, min_interval=0.12),
    DrumBand("hihat", 5000.0, 15000.0, threshold=1.6, min_interval=0.05),
)


def band_bins(
    band: DrumBand, sample_rate: float, spectrum_length: int
) -> Tuple[int, int]:
    """Inclusive bin range [low, high] covering the band."""
    resolution = sample_rate / (spectrum_length * 2)
    low_bin = math.floor(band.low_hz / resolution)
    high_bin = min(math.ceil(band.high_hz / resolution), spectrum_length - 1)
    return low_bin, high_bin


def band_energy(spectra: np.ndarray, low_bin: int, high_bin: int) -> np.ndarray:
    """RMS magnitude over bins [low_bin, high_bin] for each spectrum row."""
    if high_bin < low_bin:
        # band lies above Nyquist for this sample rate
        return np.zeros(spectra.shape[:-1], dtype=np.float64)
    band = spectra[..., low_bin:high_bin + 1]
    return np.sqrt(np.mean(np.square(band), axis=-1))


def detect_onsets(
    energy: np.ndarray,
    frame_times: np.ndarray,
    threshold: float,
    min_interval: float,
    warmup: int = WARMUP_FRAMES,
) -> List[float]:
    """
    Adaptive-threshold onset picking over one band's energy track.

    The final frame is never a candidate. Candidates closer than
    ``min_interval`` to the last accepted onset are discarded.
    """
    n = len(energy)
    if n <= warmup + 1:
        return []

    totals = np.concatenate(([0.0], np.cumsum(energy, dtype=np.float64)))
    index = np.arange(warmup, n - 1)
    local_mean = (totals[index] - totals[index - warmup]) / warmup
    current = energy[index]
    candidates = index[(current > threshold * local_mean) & (current > energy[index - 1])]

    onsets: List[float] = []
    for i in candidates:
        time = float(frame_times[i])
        if not onsets or time - onsets[-1] >= min_interval:
            onsets.append(time)
    return onsets


def estimate_pattern_length(beat_times: Sequence[float], beats: int = PATTERN_BEATS) -> float:
    """Mean beat interval times ``beats``; 0 with fewer than two beats."""
    if len(beat_times) < 2:
        return 0.0
    interval = (beat_times[-1] - beat_times[0]) / (len(beat_times) - 1)
    return interval * beats


class DrumOnsetDetector(BaseAnalyzer[DrumPattern]):
    """Pipeline stage turning a waveform into a DrumPattern."""

    def __init__(
        self,
        fft_size: int = FFT_SIZE,
        hop_size: int = HOP_SIZE,
        bands: Sequence[DrumBand] = DEFAULT_BANDS,
        warmup_frames: int = WARMUP_FRAMES,
        pattern_beats: int = PATTERN_BEATS,
    ):
        super().__init__("drums", "1.0.0")
        self.fft_size = fft_size
        self.hop_size = hop_size
        self.bands = tuple(bands)
        self.warmup_frames = warmup_frames
        self.pattern_beats = pattern_beats

    def frame_count(self, sample_count: int) -> int:
        return max(0, (sample_count - self.fft_size) // self.hop_size)

    def _analyze_impl(self, waveform: Waveform, beat_times: Sequence[float] = ()) -> DrumPattern:
        samples = waveform.samples
        sample_rate = waveform.sample_rate
        num_frames = self.frame_count(len(samples))

        if num_frames <= 0:
            self.logger.debug("Waveform shorter than one analysis frame")
            return DrumPattern.empty()

        energies = self.band_energies(samples, sample_rate, num_frames)
        frame_times = (
            np.arange(num_frames) * self.hop_size + self.fft_size / 2
        ) / sample_rate

        hits = {
            band.name: tuple(
                detect_onsets(
                    energies[band.name],
                    frame_times,
                    band.threshold,
                    band.min_interval,
                    self.warmup_frames,
                )
            )
            for band in self.bands
        }

        pattern = DrumPattern(
            kick_times=hits.get("kick", ()),
            snare_times=hits.get("snare", ()),
            hihat_times=hits.get("hihat", ()),
            pattern_length=estimate_pattern_length(beat_times, self.pattern_beats),
        )
        self.logger.debug(
            f"Drums: {len(pattern.kick_times)} kicks, {len(pattern.snare_times)} snares, "
            f"{len(pattern.hihat_times)} hi-hats over {num_frames} frames"
        )
        return pattern

    def band_energies(
        self, samples: np.ndarray, sample_rate: int, num_frames: int
    ) -> Dict[str, np.ndarray]:
        """Per-band RMS energy for each of the ``num_frames`` analysis frames."""
        spectrum_length = self.fft_size // 2
        ranges = {
            band.name: band_bins(band, sample_rate, spectrum_length) for band in self.bands
        }
        energies = {band.name: np.zeros(num_frames, dtype=np.float64) for band in self.bands}

        frames = np.lib.stride_tricks.sliding_window_view(samples, self.fft_size)[
            :: self.hop_size
        ][:num_frames]

        for start in range(0, num_frames, _FRAME_BATCH):
            spectra = magnitude_spectrum(frames[start:start + _FRAME_BATCH])
            for name, (low_bin, high_bin) in ranges.items():
                energies[name][start:start + len(spectra)] = band_energy(
                    spectra, low_bin, high_bin
                )

        return energies
