"""
Core module containing data models, analysis stages, pipeline and engine.

Uses lazy imports for modules that depend on librosa.
"""

# Models and numpy-only stages are lightweight - import directly
from beatsync.core.models import (
    Waveform,
    BeatGrid,
    SectionType,
    MusicSection,
    EnergyChange,
    DrumPattern,
    DownbeatResult,
    AnalysisResult,
)
from beatsync.core.analyzer_base import Analyzer, BaseAnalyzer
from beatsync.core.pipeline import AnalysisPipeline, PipelineConfig, create_pipeline_config

__all__ = [
    # Models (always available)
    "Waveform",
    "BeatGrid",
    "SectionType",
    "MusicSection",
    "EnergyChange",
    "DrumPattern",
    "DownbeatResult",
    "AnalysisResult",
    "Analyzer",
    "BaseAnalyzer",
    "AnalysisPipeline",
    "PipelineConfig",
    "create_pipeline_config",
    # librosa-backed modules (lazy loaded)
    "AudioLoader",
    "create_audio_loader",
    "LibrosaBeatTracker",
    "create_beat_tracker",
    "StructureAnalysisEngine",
    "AnalysisTask",
    "create_analysis_engine",
    # Batch processing and export
    "BatchProcessor",
    "BatchResult",
    "ResultWriter",
    "TextResultWriter",
    "JSONResultWriter",
    "create_result_writer",
]


def __getattr__(name: str):
    """Lazy load modules with heavy dependencies."""
    if name in ("AudioLoader", "create_audio_loader"):
        from beatsync.core.loader import AudioLoader, create_audio_loader
        return AudioLoader if name == "AudioLoader" else create_audio_loader
    elif name in ("LibrosaBeatTracker", "create_beat_tracker"):
        from beatsync.core.tracker import LibrosaBeatTracker, create_beat_tracker
        return LibrosaBeatTracker if name == "LibrosaBeatTracker" else create_beat_tracker
    elif name in ("StructureAnalysisEngine", "AnalysisTask", "create_analysis_engine"):
        from beatsync.core import engine
        return getattr(engine, name)
    elif name in ("BatchProcessor", "BatchResult"):
        from beatsync.core.batch_processor import BatchProcessor, BatchResult
        return BatchProcessor if name == "BatchProcessor" else BatchResult
    elif name in ("ResultWriter", "TextResultWriter", "JSONResultWriter", "create_result_writer"):
        from beatsync.core import result_writer
        return getattr(result_writer, name)
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
