"""
Analysis engine: runs pipeline passes on a worker pool so the caller's
thread never blocks on analysis.

Each submitted run gets its own AnalysisPipeline and its own progress
channel; the only shared objects are the stateless loader and tracker.
"""

import logging
import queue
from concurrent.futures import Future, ThreadPoolExecutor, as_completed
from pathlib import Path
from typing import Any, Dict, List, Optional

from beatsync.core.loader import AudioLoader, create_audio_loader
from beatsync.core.models import AnalysisResult, BeatGrid, Waveform
from beatsync.core.pipeline import (
    AnalysisPipeline,
    PipelineConfig,
    ProgressSink,
    create_pipeline_config,
)
from beatsync.core.tracker import create_beat_tracker


class ProgressChannel:
    """
    One-way channel of progress values from a worker to its caller.

    ``put`` never blocks. The caller polls with ``get`` or ``drain``.
    """

    def __init__(self):
        self._queue: "queue.SimpleQueue[float]" = queue.SimpleQueue()
        self._latest = 0.0

    def put(self, value: float) -> None:
        self._latest = value
        self._queue.put(value)

    __call__ = put

    def get(self, timeout: Optional[float] = None) -> Optional[float]:
        """Next value, or None if none arrives within ``timeout`` seconds."""
        try:
            return self._queue.get(timeout=timeout)
        except queue.Empty:
            return None

    def drain(self) -> List[float]:
        """All values currently queued, oldest first."""
        values: List[float] = []
        while True:
            try:
                values.append(self._queue.get_nowait())
            except queue.Empty:
                break
        return values

    @property
    def latest(self) -> float:
        """Most recent value put on the channel; reading it consumes nothing."""
        return self._latest


class AnalysisTask:
    """
    Handle on one submitted analysis run: a future plus its progress channel.

    Cancellation is only possible before the run starts; a started run
    always completes or fails as a whole.
    """

    def __init__(self, future: "Future[AnalysisResult]", channel: ProgressChannel):
        self.future = future
        self.progress = channel

    def result(self, timeout: Optional[float] = None) -> AnalysisResult:
        """
        Wait for the result.

        Raises:
            AudioAnalysisError: The run's terminal error
            concurrent.futures.CancelledError: If the task was cancelled
            concurrent.futures.TimeoutError: If ``timeout`` elapses
        """
        return self.future.result(timeout=timeout)

    def cancel(self) -> bool:
        return self.future.cancel()

    def done(self) -> bool:
        return self.future.done()


class StructureAnalysisEngine:
    """
    Orchestrates loading, beat tracking and structural analysis.

    Design:
    - Dependency Injection: loader, tracker and pipeline config are injected
    - One pipeline object per run, no state shared between runs
    - Runs execute on a ThreadPoolExecutor; batch runs execute concurrently
    """

    def __init__(
        self,
        loader: Optional[AudioLoader] = None,
        tracker: Optional[Any] = None,
        pipeline_config: Optional[PipelineConfig] = None,
        max_workers: int = 4,
    ):
        """
        Args:
            loader: AudioLoader used by ``analyze_file``
            tracker: Beat tracker used when no beat grid is supplied
            pipeline_config: Constants injected into every pipeline run
            max_workers: Worker threads for submitted runs
        """
        self.loader = loader
        self.tracker = tracker
        self.pipeline_config = pipeline_config or PipelineConfig()
        self.executor = ThreadPoolExecutor(max_workers=max_workers)
        self.logger = logging.getLogger('engine')

    def create_pipeline(self) -> AnalysisPipeline:
        return AnalysisPipeline(self.pipeline_config, tracker=self.tracker)

    def analyze(
        self,
        waveform: Waveform,
        beat_grid: Optional[BeatGrid] = None,
        progress: Optional[ProgressSink] = None,
    ) -> AnalysisResult:
        """Run one analysis on the calling thread."""
        return self.create_pipeline().run(waveform, beat_grid, progress)

    def submit(
        self,
        waveform: Waveform,
        beat_grid: Optional[BeatGrid] = None,
    ) -> AnalysisTask:
        """Start one analysis on the worker pool and return its task handle."""
        channel = ProgressChannel()
        future = self.executor.submit(
            self.create_pipeline().run, waveform, beat_grid, channel
        )
        return AnalysisTask(future, channel)

    def analyze_file(
        self,
        file_path: Path,
        progress: Optional[ProgressSink] = None,
    ) -> AnalysisResult:
        """
        Load, beat-track and analyze an audio file.

        Raises:
            RuntimeError: If the engine has no loader
        """
        if self.loader is None:
            raise RuntimeError(
                "No loader configured. Build the engine with create_analysis_engine()."
            )
        file_path = Path(file_path)
        self.logger.info(f"Loading audio: {file_path}")
        waveform = self.loader.load(file_path)
        return self.analyze(waveform, progress=progress)

    def analyze_batch(self, file_paths: List[Path]) -> List[Optional[AnalysisResult]]:
        """
        Analyze several files concurrently.

        Returns:
            Results in input order; None for files that failed
        """
        self.logger.info(f"Analyzing batch of {len(file_paths)} files")

        futures = {
            self.executor.submit(self.analyze_file, path): index
            for index, path in enumerate(file_paths)
        }

        results: Dict[int, Optional[AnalysisResult]] = {}
        for future in as_completed(futures):
            index = futures[future]
            try:
                results[index] = future.result()
            except Exception as e:
                self.logger.error(f"Failed to analyze {file_paths[index]}: {e}")
                results[index] = None

        return [results[i] for i in range(len(file_paths))]

    def shutdown(self) -> None:
        """Shutdown thread pool gracefully."""
        self.logger.info("Shutting down analysis engine")
        self.executor.shutdown(wait=True)

    def __enter__(self) -> "StructureAnalysisEngine":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.shutdown()


def create_analysis_engine(config: Dict[str, Any]) -> StructureAnalysisEngine:
    """
    Factory function to create a fully configured engine.

    Args:
        config: Configuration dict (see beatsync.utils.config)

    Returns:
        StructureAnalysisEngine: Configured engine
    """
    performance_config = config.get('performance', {})
    return StructureAnalysisEngine(
        loader=create_audio_loader(config.get('audio', {})),
        tracker=create_beat_tracker(config),
        pipeline_config=create_pipeline_config(config),
        max_workers=performance_config.get('max_workers', 4),
    )
