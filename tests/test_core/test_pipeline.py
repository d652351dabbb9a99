"""Tests for the analysis pipeline and its configuration."""

import dataclasses
from unittest.mock import MagicMock

import numpy as np
import pytest

from beatsync.core.models import AnalysisResult, BeatGrid, SectionType
from beatsync.core.pipeline import (
    PROGRESS_BEATS_TRACKED,
    PROGRESS_DONE,
    PROGRESS_STARTED,
    AnalysisPipeline,
    PipelineConfig,
    ProgressReporter,
    create_pipeline_config,
)
from beatsync.utils.errors import AnalysisError, BeatTrackingError, ConfigurationError


class TestPipelineRun:
    def test_complete_result(self, click_track, click_grid):
        result = AnalysisPipeline().run(click_track, click_grid)

        assert isinstance(result, AnalysisResult)
        assert result.tempo == pytest.approx(120.0)
        assert result.beat_times == click_grid.beat_times
        assert result.bar_times == click_grid.bar_times
        assert len(result.beat_strengths) == click_grid.beat_count
        assert len(result.energy_curve) == 80
        assert result.duration == pytest.approx(8.0)
        assert result.sample_rate == 44100
        assert result.sections[0].start_time == 0.0
        assert result.sections[-1].end_time == pytest.approx(8.0)
        assert len(result.drum_pattern.kick_times) > 0
        assert result.drum_pattern.pattern_length == pytest.approx(8.0)
        assert 0.0 in result.phrase_boundaries
        assert result.analysis_time_ms > 0
        assert set(result.analyzer_versions) == {"beats", "energy", "sections", "drums"}

    def test_progress_is_monotonic_and_completes(self, click_track, click_grid):
        values = []
        AnalysisPipeline().run(click_track, click_grid, progress=values.append)

        assert values[0] == PROGRESS_STARTED
        assert values[-1] == PROGRESS_DONE
        assert values == sorted(values)
        assert all(0.0 <= v <= 1.0 for v in values)
        assert PROGRESS_BEATS_TRACKED not in values

    def test_result_is_immutable(self, click_track, click_grid):
        result = AnalysisPipeline().run(click_track, click_grid)
        with pytest.raises(dataclasses.FrozenInstanceError):
            result.tempo = 90.0
        with pytest.raises(ValueError):
            result.energy_curve[0] = 0.5

    def test_caller_buffer_not_shared(self, sample_rate):
        from beatsync.core.models import Waveform

        samples = np.random.default_rng(3).normal(0, 0.1, sample_rate * 2).astype(np.float32)
        waveform = Waveform(samples=samples, sample_rate=sample_rate)
        samples[:] = 0.0
        result = AnalysisPipeline().run(waveform, BeatGrid.from_beat_times([]))
        assert result.energy_curve.max() == pytest.approx(1.0)

    def test_silent_input_completes(self, silent_waveform):
        result = AnalysisPipeline().run(silent_waveform, BeatGrid.from_beat_times([]))
        assert np.all(result.energy_curve == 0.0)
        assert len(result.energy_curve) == 50
        assert result.drum_pattern.hit_count == 0
        assert result.drum_pattern.pattern_length == 0
        assert [s.type for s in result.sections] == [SectionType.UNKNOWN]
        assert result.phrase_boundaries == (0.0,)

    def test_uses_tracker_without_grid(self, click_track, click_grid):
        tracker = MagicMock()
        tracker.track.return_value = click_grid
        values = []

        result = AnalysisPipeline(tracker=tracker).run(click_track, progress=values.append)

        tracker.track.assert_called_once_with(click_track)
        assert result.beat_times == click_grid.beat_times
        assert PROGRESS_BEATS_TRACKED in values

    def test_no_grid_and_no_tracker(self, click_track):
        with pytest.raises(AnalysisError) as exc_info:
            AnalysisPipeline().run(click_track)
        assert exc_info.value.analyzer_name == "pipeline"

    def test_single_terminal_error_without_partial_result(self, click_track):
        tracker = MagicMock()
        tracker.track.side_effect = RuntimeError("decoder exploded")
        values = []

        with pytest.raises(AnalysisError) as exc_info:
            AnalysisPipeline(tracker=tracker).run(click_track, progress=values.append)

        assert isinstance(exc_info.value.original_error, RuntimeError)
        assert PROGRESS_DONE not in values

    def test_package_errors_propagate_unchanged(self, click_track):
        tracker = MagicMock()
        tracker.track.side_effect = BeatTrackingError("no beats")
        with pytest.raises(BeatTrackingError):
            AnalysisPipeline(tracker=tracker).run(click_track)

    def test_failing_sink_does_not_abort(self, click_track, click_grid):
        def sink(value):
            raise RuntimeError("display closed")

        result = AnalysisPipeline().run(click_track, click_grid, progress=sink)
        assert isinstance(result, AnalysisResult)

    def test_concurrent_runs_share_nothing(self, click_track, click_grid):
        first = AnalysisPipeline().run(click_track, click_grid)
        second = AnalysisPipeline().run(click_track, click_grid)
        assert first.sections == second.sections
        assert first.drum_pattern == second.drum_pattern
        np.testing.assert_array_equal(first.energy_curve, second.energy_curve)


class TestProgressReporter:
    def test_never_decreases(self):
        values = []
        reporter = ProgressReporter(values.append)
        for value in (0.1, 0.5, 0.3, 1.5):
            reporter.report(value)
        assert values == [0.1, 0.5, 0.5, 1.0]
        assert reporter.last == 1.0

    def test_without_sink(self):
        reporter = ProgressReporter()
        reporter.report(0.4)
        assert reporter.last == 0.4


class TestCreatePipelineConfig:
    def test_defaults(self):
        assert create_pipeline_config({}) == PipelineConfig()
        assert create_pipeline_config(None) == PipelineConfig()

    def test_overrides(self):
        config = create_pipeline_config({
            "analysis": {
                "energy": {"rate": 20},
                "sections": {"change_threshold": 0.3},
                "drums": {"hop_size": 256, "bands": {"snare": {"threshold": 2.2}}},
                "beats": {"downbeat_std_factor": 0.5},
            }
        })
        assert config.energy_rate == 20
        assert config.sections.change_threshold == 0.3
        assert config.sections.min_section_duration == 4.0
        assert config.hop_size == 256
        assert config.downbeat_std_factor == 0.5
        snare = [band for band in config.drum_bands if band.name == "snare"][0]
        assert snare.threshold == 2.2
        assert snare.min_interval == 0.12

    def test_unknown_band(self):
        with pytest.raises(ConfigurationError) as exc_info:
            create_pipeline_config({"analysis": {"drums": {"bands": {"cowbell": {}}}}})
        assert exc_info.value.config_key == "analysis.drums.bands"

    def test_unknown_section_rule(self):
        with pytest.raises(ConfigurationError):
            create_pipeline_config({"analysis": {"sections": {"bogus": 1}}})

    def test_unknown_band_setting(self):
        with pytest.raises(ConfigurationError):
            create_pipeline_config({"analysis": {"drums": {"bands": {"kick": {"gain": 2}}}}})
