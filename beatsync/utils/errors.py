"""
Custom exceptions for the beat-sync structural analysis package.

Every error raised by the package derives from AudioAnalysisError so callers
can catch the whole family with one clause.
"""

from typing import Any, Optional


class AudioAnalysisError(Exception):
    """Base exception for all structural analysis errors."""

    def __init__(self, message: str, details: Optional[Any] = None):
        super().__init__(message)
        self.message = message
        self.details = details

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} (Details: {self.details})"
        return self.message


class InvalidFrameSizeError(AudioAnalysisError, ValueError):
    """Raised when an FFT frame length is not a power of two (>= 2)."""

    def __init__(self, frame_size: int):
        super().__init__(
            f"FFT requires a power-of-two frame length, got {frame_size}",
            details={"frame_size": frame_size},
        )
        self.frame_size = frame_size


class AudioLoadError(AudioAnalysisError):
    """Raised when an audio file cannot be decoded into a waveform."""

    def __init__(self, message: str, file_path: Optional[str] = None):
        super().__init__(message, details={"file_path": file_path})
        self.file_path = file_path


class UnsupportedFormatError(AudioLoadError):
    """Raised when the audio container is not supported."""

    def __init__(self, message: str, format: Optional[str] = None):
        super().__init__(message)
        self.format = format
        self.details = {"format": format}


class FileTooLargeError(AudioLoadError):
    """Raised when an audio file exceeds the configured size limit."""

    def __init__(
        self,
        message: str,
        file_size: Optional[int] = None,
        max_size: Optional[int] = None,
    ):
        super().__init__(message)
        self.file_size = file_size
        self.max_size = max_size
        self.details = {"file_size": file_size, "max_size": max_size}


class BeatTrackingError(AudioAnalysisError):
    """Raised when the upstream beat tracker fails."""

    def __init__(self, message: str, original_error: Optional[Exception] = None):
        super().__init__(
            message,
            details={"original_error": str(original_error) if original_error else None},
        )
        self.original_error = original_error


class AnalysisError(AudioAnalysisError):
    """Raised when a pipeline stage fails; terminates the whole run."""

    def __init__(
        self,
        message: str,
        analyzer_name: Optional[str] = None,
        original_error: Optional[Exception] = None,
    ):
        super().__init__(message)
        self.analyzer_name = analyzer_name
        self.original_error = original_error
        self.details = {
            "analyzer_name": analyzer_name,
            "original_error": str(original_error) if original_error else None,
        }


class ConfigurationError(AudioAnalysisError):
    """Raised when configuration is invalid or missing."""

    def __init__(self, message: str, config_key: Optional[str] = None):
        super().__init__(message)
        self.config_key = config_key
        self.details = {"config_key": config_key}
