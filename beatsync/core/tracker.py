"""
Beat tracker backed by librosa.

Supplies the beat grid the structural pipeline refines; tempo and bar
derivation follow BeatGrid.from_beat_times.
"""

import logging
from typing import Any, Dict, Optional, Tuple

import librosa
import numpy as np

from beatsync.core.models import BEATS_PER_BAR, BeatGrid, Waveform
from beatsync.utils.errors import BeatTrackingError


class LibrosaBeatTracker:
    """
    Tracks beats with ``librosa.beat.beat_track``.

    Args:
        tempo_range: Plausible tempo range (min_bpm, max_bpm); beats of a
            track whose estimated tempo falls outside it are still returned,
            only logged.
        beats_per_bar: Beats grouped into one bar
    """

    name = "librosa_beats"
    version = "1.0.0"

    def __init__(
        self,
        tempo_range: Tuple[float, float] = (60.0, 200.0),
        beats_per_bar: int = BEATS_PER_BAR,
        hop_length: int = 512,
    ):
        self.tempo_range = tempo_range
        self.beats_per_bar = beats_per_bar
        self.hop_length = hop_length
        self.logger = logging.getLogger(f"analyzer.{self.name}")

    def track(self, waveform: Waveform) -> BeatGrid:
        """
        Raises:
            BeatTrackingError: If librosa fails on the waveform
        """
        if len(waveform) == 0:
            return BeatGrid.from_beat_times((), self.beats_per_bar)

        try:
            tempo, beat_times = librosa.beat.beat_track(
                y=np.asarray(waveform.samples, dtype=np.float32),
                sr=waveform.sample_rate,
                hop_length=self.hop_length,
                start_bpm=120.0,
                units="time",
            )
        except Exception as e:
            raise BeatTrackingError(f"Beat tracking failed: {e}", original_error=e) from e

        estimate = float(np.atleast_1d(tempo)[0])
        if not (self.tempo_range[0] <= estimate <= self.tempo_range[1]):
            self.logger.warning(
                f"Estimated tempo {estimate:.1f} BPM outside {self.tempo_range}"
            )

        grid = BeatGrid.from_beat_times(np.sort(beat_times).tolist(), self.beats_per_bar)
        self.logger.info(f"Tracked {grid.beat_count} beats ({grid.tempo:.1f} BPM)")
        return grid


def create_beat_tracker(config: Optional[Dict[str, Any]] = None) -> LibrosaBeatTracker:
    """Factory reading ``analysis.beats`` from a config dict."""
    beats = ((config or {}).get("analysis") or {}).get("beats", {})
    return LibrosaBeatTracker(
        tempo_range=tuple(beats.get("tempo_range", (60.0, 200.0))),
        beats_per_bar=beats.get("beats_per_bar", BEATS_PER_BAR),
    )
