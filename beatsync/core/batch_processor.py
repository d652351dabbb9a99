"""
Batch processor for analyzing multiple audio files.

Collects files, hands each to the engine and gathers results and failures;
the analysis itself stays in the engine.
"""

import logging
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Dict, List, Optional, Union

from beatsync.core.loader import SUPPORTED_FORMATS
from beatsync.core.models import AnalysisResult


@dataclass
class BatchResult:
    """Result of a batch processing operation."""
    successful: Dict[Path, AnalysisResult] = field(default_factory=dict)
    failed: Dict[Path, str] = field(default_factory=dict)
    total_files: int = 0
    total_time: float = 0.0

    @property
    def success_count(self) -> int:
        return len(self.successful)

    @property
    def failure_count(self) -> int:
        return len(self.failed)

    @property
    def success_rate(self) -> float:
        """Success rate as percentage."""
        if self.total_files == 0:
            return 0.0
        return (self.success_count / self.total_files) * 100


class BatchProcessor:
    """
    Runs ``engine.analyze_file`` over every audio file found in the inputs.

    Files are processed one after another so progress arrives in order;
    each run still uses its own pipeline.
    """

    AUDIO_EXTENSIONS = set(SUPPORTED_FORMATS)

    def __init__(
        self,
        engine,
        progress_callback: Optional[Callable[[int, int, Path], None]] = None
    ):
        """
        Args:
            engine: Object exposing ``analyze_file(path) -> AnalysisResult``
            progress_callback: Optional callback(current, total, file_path)
        """
        self.engine = engine
        self.progress_callback = progress_callback
        self.logger = logging.getLogger("batch_processor")

    def process(
        self,
        inputs: Union[Path, List[Path]],
        recursive: bool = False
    ) -> BatchResult:
        """
        Process one or more audio files or directories.

        Args:
            inputs: Single path or list of paths (files or directories)
            recursive: If True, search directories recursively

        Returns:
            BatchResult containing all results and any errors
        """
        start_time = time.time()
        files = self.collect_files(inputs, recursive)

        if not files:
            self.logger.warning("No audio files found to process")
            return BatchResult()

        self.logger.info(f"Processing {len(files)} audio files")
        result = self._process_files(files)
        result.total_time = time.time() - start_time

        self.logger.info(
            f"Batch complete: {result.success_count}/{result.total_files} succeeded "
            f"in {result.total_time:.2f}s"
        )
        return result

    def collect_files(
        self,
        inputs: Union[Path, List[Path]],
        recursive: bool = False
    ) -> List[Path]:
        """Audio files named by or contained in ``inputs``, sorted, without duplicates."""
        if isinstance(inputs, (str, Path)):
            inputs = [inputs]

        files = []
        for path in inputs:
            path = Path(path)
            if path.is_file():
                if self._is_audio_file(path):
                    files.append(path)
                else:
                    self.logger.warning(f"Skipping non-audio file: {path}")
            elif path.is_dir():
                files.extend(self._scan_directory(path, recursive))
            else:
                self.logger.warning(f"Path not found: {path}")

        return sorted(set(files))

    def _scan_directory(self, directory: Path, recursive: bool) -> List[Path]:
        pattern = "**/*" if recursive else "*"
        return [
            path for path in directory.glob(pattern)
            if path.is_file() and self._is_audio_file(path)
        ]

    def _is_audio_file(self, path: Path) -> bool:
        return path.suffix.lower() in self.AUDIO_EXTENSIONS

    def _process_files(self, files: List[Path]) -> BatchResult:
        result = BatchResult(total_files=len(files))

        for processed, file_path in enumerate(files, start=1):
            if self.progress_callback:
                self.progress_callback(processed, len(files), file_path)

            try:
                result.successful[file_path] = self.engine.analyze_file(file_path)
                self.logger.debug(f"Successfully processed: {file_path}")
            except Exception as e:
                result.failed[file_path] = str(e)
                self.logger.error(f"Failed to process {file_path}: {e}")

        return result
