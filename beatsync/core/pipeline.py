"""
Pipeline orchestrator: one sequential structural-analysis pass.

raw waveform + beat grid -> beat strengths/downbeats -> energy envelope
    -> sections -> drum onsets -> phrase boundaries -> AnalysisResult

Each stage consumes the complete output of its predecessor. A fresh
AnalysisPipeline is built per run from an injected PipelineConfig, so
concurrent runs share nothing mutable.
"""

import logging
import time
from dataclasses import dataclass, field, replace
from typing import Any, Callable, Dict, Optional, Tuple

from beatsync.core.beats import DOWNBEAT_STD_FACTOR, STRENGTH_WINDOW, BeatRefiner
from beatsync.core.drums import (
    DEFAULT_BANDS,
    HOP_SIZE,
    PATTERN_BEATS,
    WARMUP_FRAMES,
    DrumBand,
    DrumOnsetDetector,
)
from beatsync.core.energy import ENVELOPE_RATE, SMOOTHING_RADIUS, EnergyAnalyzer
from beatsync.core.models import BEATS_PER_BAR, AnalysisResult, BeatGrid, Waveform
from beatsync.core.sections import SectionAnalyzer, SectionRules, detect_phrase_boundaries
from beatsync.core.spectral import FFT_SIZE
from beatsync.utils.errors import AnalysisError, AudioAnalysisError, ConfigurationError
from beatsync.utils.logging import create_run_logger

ProgressSink = Callable[[float], None]

# Fractional progress reported after each step of a run.
PROGRESS_STARTED = 0.05
PROGRESS_INPUT_READY = 0.10
PROGRESS_BEATS_TRACKED = 0.20
PROGRESS_GRID_READY = 0.35
PROGRESS_BEATS_REFINED = 0.45
PROGRESS_ENERGY = 0.60
PROGRESS_SECTIONS = 0.75
PROGRESS_DRUMS = 0.90
PROGRESS_DONE = 1.0

logger = logging.getLogger("pipeline")


@dataclass(frozen=True)
class PipelineConfig:
    """All tunable constants of one analysis run."""

    energy_rate: int = ENVELOPE_RATE
    smoothing_radius: int = SMOOTHING_RADIUS
    sections: SectionRules = field(default_factory=SectionRules)
    fft_size: int = FFT_SIZE
    hop_size: int = HOP_SIZE
    warmup_frames: int = WARMUP_FRAMES
    pattern_beats: int = PATTERN_BEATS
    drum_bands: Tuple[DrumBand, ...] = DEFAULT_BANDS
    strength_window: int = STRENGTH_WINDOW
    downbeat_std_factor: float = DOWNBEAT_STD_FACTOR
    beats_per_bar: int = BEATS_PER_BAR


def create_pipeline_config(config: Optional[Dict[str, Any]] = None) -> PipelineConfig:
    """
    Build a PipelineConfig from the ``analysis`` section of a config dict.

    Missing keys keep their defaults. Drum bands may be overridden per band,
    e.g. ``analysis.drums.bands.snare.threshold: 2.2``.

    Raises:
        ConfigurationError: On unknown section rule or band keys
    """
    analysis = (config or {}).get("analysis", {})
    energy = analysis.get("energy", {})
    drums = analysis.get("drums", {})
    beats = analysis.get("beats", {})

    try:
        rules = SectionRules(**analysis.get("sections", {}))
    except TypeError as e:
        raise ConfigurationError(
            f"Invalid section rules: {e}", config_key="analysis.sections"
        ) from e

    band_overrides = drums.get("bands", {})
    unknown = set(band_overrides) - {band.name for band in DEFAULT_BANDS}
    if unknown:
        raise ConfigurationError(
            f"Unknown drum bands: {sorted(unknown)}", config_key="analysis.drums.bands"
        )
    try:
        bands = tuple(
            replace(band, **band_overrides.get(band.name, {})) for band in DEFAULT_BANDS
        )
    except TypeError as e:
        raise ConfigurationError(
            f"Invalid drum band settings: {e}", config_key="analysis.drums.bands"
        ) from e

    return PipelineConfig(
        energy_rate=energy.get("rate", ENVELOPE_RATE),
        smoothing_radius=energy.get("smoothing_radius", SMOOTHING_RADIUS),
        sections=rules,
        fft_size=drums.get("fft_size", FFT_SIZE),
        hop_size=drums.get("hop_size", HOP_SIZE),
        warmup_frames=drums.get("warmup_frames", WARMUP_FRAMES),
        pattern_beats=drums.get("pattern_beats", PATTERN_BEATS),
        drum_bands=bands,
        strength_window=beats.get("strength_window", STRENGTH_WINDOW),
        downbeat_std_factor=beats.get("downbeat_std_factor", DOWNBEAT_STD_FACTOR),
        beats_per_bar=beats.get("beats_per_bar", BEATS_PER_BAR),
    )


class ProgressReporter:
    """
    Forwards monotonically non-decreasing progress to a caller-supplied sink.

    A failing sink is logged and otherwise ignored; progress reporting never
    interrupts the computation.
    """

    def __init__(self, sink: Optional[ProgressSink] = None):
        self._sink = sink
        self._last = 0.0

    @property
    def last(self) -> float:
        return self._last

    def report(self, value: float) -> None:
        value = min(1.0, max(self._last, float(value)))
        self._last = value
        if self._sink is None:
            return
        try:
            self._sink(value)
        except Exception as e:
            logger.warning(f"Progress sink raised {type(e).__name__}: {e}")


class AnalysisPipeline:
    """
    Runs every structural-analysis stage once over one waveform.

    When no beat grid is supplied, ``tracker`` (an object with
    ``track(waveform) -> BeatGrid``) provides it.
    """

    def __init__(self, config: Optional[PipelineConfig] = None, tracker: Optional[Any] = None):
        self.config = config or PipelineConfig()
        self.tracker = tracker
        self.beats = BeatRefiner(
            window=self.config.strength_window,
            std_factor=self.config.downbeat_std_factor,
            beats_per_bar=self.config.beats_per_bar,
        )
        self.energy = EnergyAnalyzer(
            rate=self.config.energy_rate,
            smoothing_radius=self.config.smoothing_radius,
        )
        self.sections = SectionAnalyzer(rules=self.config.sections, rate=self.config.energy_rate)
        self.drums = DrumOnsetDetector(
            fft_size=self.config.fft_size,
            hop_size=self.config.hop_size,
            bands=self.config.drum_bands,
            warmup_frames=self.config.warmup_frames,
            pattern_beats=self.config.pattern_beats,
        )

    @property
    def analyzer_versions(self) -> Dict[str, str]:
        stages = (self.beats, self.energy, self.sections, self.drums)
        return {stage.name: stage.version for stage in stages}

    def run(
        self,
        waveform: Waveform,
        beat_grid: Optional[BeatGrid] = None,
        progress: Optional[ProgressSink] = None,
        run_id: Optional[str] = None,
    ) -> AnalysisResult:
        """
        Analyze one waveform.

        Returns:
            AnalysisResult: The complete, immutable result

        Raises:
            AudioAnalysisError: The single terminal error of a failed run
        """
        run_logger = create_run_logger("pipeline", run_id)
        reporter = ProgressReporter(progress)
        start = time.perf_counter()

        try:
            result = self._run_stages(waveform, beat_grid, reporter, run_logger)
        except AudioAnalysisError as e:
            run_logger.error(f"Analysis aborted: {e}")
            raise
        except Exception as e:
            run_logger.error(f"Analysis aborted: {e}")
            raise AnalysisError(
                f"pipeline failed: {e}", analyzer_name="pipeline", original_error=e
            ) from e

        elapsed_ms = (time.perf_counter() - start) * 1000.0
        result = replace(result, analysis_time_ms=elapsed_ms)
        run_logger.info(
            f"Analysis complete in {elapsed_ms:.0f}ms: {len(result.sections)} sections, "
            f"{result.drum_pattern.hit_count} drum hits, "
            f"{len(result.phrase_boundaries)} phrase boundaries"
        )
        reporter.report(PROGRESS_DONE)
        return result

    def _run_stages(
        self,
        waveform: Waveform,
        beat_grid: Optional[BeatGrid],
        reporter: ProgressReporter,
        run_logger: logging.LoggerAdapter,
    ) -> AnalysisResult:
        reporter.report(PROGRESS_STARTED)
        duration = waveform.duration
        run_logger.info(
            f"Analyzing {duration:.2f}s of audio at {waveform.sample_rate} Hz"
        )
        reporter.report(PROGRESS_INPUT_READY)

        if beat_grid is None:
            if self.tracker is None:
                raise AnalysisError(
                    "No beat grid supplied and no beat tracker configured",
                    analyzer_name="pipeline",
                )
            beat_grid = self.tracker.track(waveform)
            reporter.report(PROGRESS_BEATS_TRACKED)
        run_logger.debug(
            f"Beat grid: {beat_grid.beat_count} beats, {beat_grid.bar_count} bars, "
            f"{beat_grid.tempo:.1f} BPM"
        )
        reporter.report(PROGRESS_GRID_READY)

        strengths, downbeats = self.beats.analyze(waveform, beat_grid)
        reporter.report(PROGRESS_BEATS_REFINED)

        envelope = self.energy.analyze(waveform)
        reporter.report(PROGRESS_ENERGY)

        sections = self.sections.analyze(envelope, beat_grid.bar_times, duration)
        reporter.report(PROGRESS_SECTIONS)

        drum_pattern = self.drums.analyze(waveform, beat_grid.beat_times)
        reporter.report(PROGRESS_DRUMS)

        phrases = detect_phrase_boundaries(beat_grid.bar_times, sections, self.config.sections)

        return AnalysisResult(
            beat_times=beat_grid.beat_times,
            bar_times=beat_grid.bar_times,
            tempo=beat_grid.tempo,
            downbeat_indices=downbeats.indices,
            downbeat_times=downbeats.times,
            beat_strengths=tuple(float(s) for s in strengths),
            drum_pattern=drum_pattern,
            sections=tuple(sections),
            energy_curve=envelope,
            phrase_boundaries=tuple(phrases),
            duration=duration,
            sample_rate=waveform.sample_rate,
            analyzer_versions=self.analyzer_versions,
            source=waveform.source,
        )
