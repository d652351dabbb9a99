"""Tests for beat grids, beat strengths and downbeat detection."""

import numpy as np
import pytest

from beatsync.core.beats import BeatRefiner, beat_strengths, detect_downbeats
from beatsync.core.models import BeatGrid, DownbeatResult, Waveform


class TestBeatGrid:
    def test_nine_beats_at_120_bpm(self):
        grid = BeatGrid.from_beat_times([0, 0.5, 1.0, 1.5, 2.0, 2.5, 3.0, 3.5, 4.0])
        assert grid.tempo == pytest.approx(120.0)
        assert grid.bar_times == (0.0, 2.0)
        assert grid.beat_count == 9
        assert grid.bar_count == 2

    @pytest.mark.parametrize("beats", [[], [1.5]])
    def test_default_tempo_below_two_beats(self, beats):
        grid = BeatGrid.from_beat_times(beats)
        assert grid.tempo == 120.0
        assert grid.bar_times == ()

    def test_complete_bars_only(self):
        grid = BeatGrid.from_beat_times(np.arange(0.0, 4.0, 0.5))
        assert grid.bar_times == (0.0, 2.0)
        grid = BeatGrid.from_beat_times(np.arange(0.0, 1.5, 0.5))
        assert grid.bar_times == ()

    def test_custom_meter(self):
        grid = BeatGrid.from_beat_times(np.arange(0.0, 3.0, 0.5), beats_per_bar=3)
        assert grid.bar_times == (0.0, 1.5)


class TestBeatStrengths:
    def test_normalized_by_loudest_beat(self):
        samples = np.zeros(10000)
        samples[:2000] = 1.0
        samples[4000:6000] = 0.5
        strengths = beat_strengths(samples, 1000, [1.0, 5.0, 8.0])
        assert strengths.max() == pytest.approx(1.0)
        assert strengths[0] > strengths[1] > strengths[2]
        assert strengths[2] == 0.0

    def test_beat_outside_buffer_scores_zero(self):
        samples = np.ones(10000)
        strengths = beat_strengths(samples, 1000, [1.0, 20.0])
        assert strengths.tolist() == [1.0, 0.0]

    def test_silence_gives_zeros(self):
        strengths = beat_strengths(np.zeros(44100), 44100, [0.1, 0.5])
        assert strengths.tolist() == [0.0, 0.0]

    def test_no_beats(self):
        assert len(beat_strengths(np.ones(100), 44100, [])) == 0


class TestDownbeats:
    def test_flat_strengths_fall_back_to_bar_grid(self):
        beats = np.arange(8) * 0.5
        result = detect_downbeats(beats, [0.5] * 8)
        assert result.indices == (0, 4)
        assert result.times == (0.0, 2.0)

    def test_outlier_is_downbeat(self):
        beats = np.arange(8) * 0.5
        strengths = [0.2, 0.2, 1.0, 0.2, 0.2, 0.2, 0.2, 0.2]
        result = detect_downbeats(beats, strengths)
        assert result.indices == (0, 2, 4)
        assert result.times == (0.0, 1.0, 2.0)

    def test_empty(self):
        assert detect_downbeats([], []) == DownbeatResult()


class TestBeatRefiner:
    def test_analyze(self, click_track, click_grid):
        strengths, downbeats = BeatRefiner().analyze(click_track, click_grid)
        assert len(strengths) == click_grid.beat_count
        assert strengths.max() == pytest.approx(1.0)
        assert 0 in downbeats.indices
        assert len(downbeats.indices) == len(downbeats.times)

    def test_empty_grid(self, silent_waveform):
        strengths, downbeats = BeatRefiner().analyze(
            silent_waveform, BeatGrid.from_beat_times([])
        )
        assert len(strengths) == 0
        assert downbeats == DownbeatResult()

    def test_wraps_unexpected_errors(self):
        from beatsync.utils.errors import AnalysisError

        waveform = Waveform(samples=np.ones(100, dtype=np.float32), sample_rate=1000)
        with pytest.raises(AnalysisError) as exc_info:
            BeatRefiner().analyze(waveform, None)
        assert exc_info.value.analyzer_name == "beats"
