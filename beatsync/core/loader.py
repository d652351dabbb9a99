"""
Audio loader: decodes audio files into mono Waveforms for the pipeline.
"""

import logging
from pathlib import Path
from typing import Any, Dict, Iterable, Optional, Set

import librosa
import numpy as np
import soundfile as sf

from beatsync.core.models import Waveform
from beatsync.utils.errors import AudioLoadError, FileTooLargeError, UnsupportedFormatError

SUPPORTED_FORMATS: Set[str] = {'.wav', '.aif', '.aiff', '.flac', '.mp3', '.ogg'}
TARGET_SAMPLE_RATE: int = 44100  # Hz
MAX_FILE_SIZE: int = 524288000  # 500 MB

logger = logging.getLogger(__name__)


class AudioLoader:
    """
    Loads audio files as mono Waveforms at a fixed sample rate.

    Stateless - safe to share between threads.
    """

    def __init__(
        self,
        target_sr: Optional[int] = TARGET_SAMPLE_RATE,
        max_file_size: int = MAX_FILE_SIZE,
        supported_formats: Optional[Iterable[str]] = None,
    ):
        """
        Args:
            target_sr: Resample to this rate; None keeps the file's native rate
            max_file_size: Maximum file size in bytes
            supported_formats: Accepted file suffixes (lowercase, with dot)
        """
        self.target_sr = target_sr
        self.max_file_size = max_file_size
        self.supported_suffixes: Set[str] = {
            s.lower() for s in (supported_formats or SUPPORTED_FORMATS)
        }

    def load(self, file_path: Path) -> Waveform:
        """
        Decode an audio file into a mono Waveform.

        Raises:
            FileNotFoundError: File doesn't exist
            UnsupportedFormatError: Suffix not supported
            FileTooLargeError: File exceeds size limit
            AudioLoadError: Decoding failed or produced no samples
        """
        file_path = Path(file_path)
        self._validate_file(file_path)

        try:
            samples, sample_rate = librosa.load(
                str(file_path),
                sr=self.target_sr,
                mono=True,
                dtype=np.float32
            )
        except Exception as e:
            raise AudioLoadError(
                f"Failed to decode audio from {file_path}: {e}",
                file_path=str(file_path)
            ) from e

        samples = self._validate_samples(samples, file_path)
        logger.info(
            f"Loaded {file_path.name}: {len(samples) / sample_rate:.2f}s at {sample_rate} Hz"
        )
        return Waveform(samples=samples, sample_rate=int(sample_rate), source=file_path)

    def _validate_file(self, file_path: Path) -> None:
        if not file_path.exists():
            raise FileNotFoundError(f"Audio file not found: {file_path}")

        suffix = file_path.suffix.lower()
        if suffix not in self.supported_suffixes:
            raise UnsupportedFormatError(
                f"Format {suffix} not supported. "
                f"Supported formats: {', '.join(sorted(self.supported_suffixes))}",
                format=suffix
            )

        file_size = file_path.stat().st_size
        if file_size > self.max_file_size:
            raise FileTooLargeError(
                f"File too large: {file_size / 1024 / 1024:.1f} MB. "
                f"Maximum: {self.max_file_size / 1024 / 1024:.1f} MB",
                file_size=file_size,
                max_size=self.max_file_size
            )

    def _validate_samples(self, samples: np.ndarray, file_path: Path) -> np.ndarray:
        if samples.size == 0:
            raise AudioLoadError(f"Audio file is empty: {file_path}", file_path=str(file_path))

        if np.sqrt(np.mean(np.square(samples, dtype=np.float64))) < 1e-6:
            logger.warning(f"Audio appears to be silent: {file_path}")

        peak = float(np.max(np.abs(samples)))
        if peak > 1.0:
            logger.warning(f"Audio contains clipping (max: {peak:.2f}), normalizing: {file_path}")
            samples = samples / peak

        return samples

    def get_duration(self, file_path: Path) -> float:
        """Duration in seconds from the file header, without decoding."""
        try:
            with sf.SoundFile(str(file_path)) as f:
                return f.frames / f.samplerate
        except Exception as e:
            logger.debug(f"soundfile could not read {file_path}: {e}")
        try:
            return float(librosa.get_duration(path=str(file_path)))
        except Exception as e:
            raise AudioLoadError(
                f"Could not read duration of {file_path}: {e}", file_path=str(file_path)
            ) from e


def create_audio_loader(config: Optional[Dict[str, Any]] = None) -> AudioLoader:
    """
    Factory function to create AudioLoader from the ``audio`` config section.
    """
    config = config or {}
    return AudioLoader(
        target_sr=config.get('target_sample_rate', TARGET_SAMPLE_RATE),
        max_file_size=config.get('max_file_size', MAX_FILE_SIZE),
        supported_formats=config.get('supported_formats'),
    )
