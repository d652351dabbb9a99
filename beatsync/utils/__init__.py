"""
Utility modules for configuration, logging, and error handling.
"""

from beatsync.utils.errors import (
    AudioAnalysisError,
    InvalidFrameSizeError,
    AudioLoadError,
    UnsupportedFormatError,
    FileTooLargeError,
    BeatTrackingError,
    AnalysisError,
    ConfigurationError,
)
from beatsync.utils.logging import setup_logging, create_run_logger, JSONFormatter
from beatsync.utils.config import ConfigManager, load_config

__all__ = [
    "AudioAnalysisError",
    "InvalidFrameSizeError",
    "AudioLoadError",
    "UnsupportedFormatError",
    "FileTooLargeError",
    "BeatTrackingError",
    "AnalysisError",
    "ConfigurationError",
    "setup_logging",
    "create_run_logger",
    "JSONFormatter",
    "ConfigManager",
    "load_config",
]
