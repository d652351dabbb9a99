"""
Result writers for exporting structural analysis results (Strategy Pattern).
"""

import json
import logging
from abc import ABC, abstractmethod
from datetime import datetime
from pathlib import Path
from typing import Dict, TextIO

from beatsync.core.models import AnalysisResult


def format_time(seconds: float) -> str:
    """Format seconds as m:ss.s"""
    minutes, rest = divmod(max(0.0, seconds), 60.0)
    return f"{int(minutes)}:{rest:04.1f}"


class ResultWriter(ABC):
    """Abstract base class for result writers."""

    @abstractmethod
    def write(self, results: Dict[Path, AnalysisResult], output_path: Path) -> None:
        """Write results to the specified path."""


class TextResultWriter(ResultWriter):
    """Writes analysis results to a human-readable text report."""

    def __init__(self, include_timestamp: bool = True):
        self.include_timestamp = include_timestamp
        self.logger = logging.getLogger("result_writer.text")

    def write(self, results: Dict[Path, AnalysisResult], output_path: Path) -> None:
        output_path = Path(output_path)
        output_path.parent.mkdir(parents=True, exist_ok=True)

        with open(output_path, 'w', encoding='utf-8') as f:
            f.write("=" * 70 + "\n")
            f.write("BEATSYNC STRUCTURE ANALYSIS\n")
            f.write("=" * 70 + "\n")
            if self.include_timestamp:
                f.write(f"Generated: {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}\n")
            f.write(f"Total Files Analyzed: {len(results)}\n")
            f.write("=" * 70 + "\n\n")

            for file_path, result in results.items():
                f.write("-" * 70 + "\n")
                f.write(f"FILE: {Path(file_path).name}\n")
                f.write(f"PATH: {file_path}\n")
                f.write("-" * 70 + "\n")
                write_report(f, result)
                f.write("\n")

            f.write("=" * 70 + "\n")
            f.write("END OF REPORT\n")
            f.write("=" * 70 + "\n")

        self.logger.info(f"Results written to: {output_path}")


def write_report(f: TextIO, result: AnalysisResult) -> None:
    """Write the report body for one result; shared by the text writer and the CLI."""
    f.write(f"Duration: {format_time(result.duration)} ({result.sample_rate} Hz)\n")
    f.write(f"Analysis Time: {result.analysis_time_ms:.0f}ms\n")
    f.write(f"\nSummary: {result.get_summary()}\n")

    f.write("\nBeats:\n")
    f.write(f"  Tempo: {result.tempo:.2f} BPM\n")
    f.write(f"  Beats: {result.beat_count}  Bars: {result.bar_count}\n")
    f.write(f"  Downbeats: {len(result.downbeat_indices)}\n")

    f.write("\nSections:\n")
    for section in result.sections:
        f.write(
            f"  {format_time(section.start_time):>8} - {format_time(section.end_time):>8}"
            f"  {section.type.value:<10} energy {section.energy:.2f}\n"
        )

    drums = result.drum_pattern
    f.write("\nDrums:\n")
    f.write(f"  Kicks: {len(drums.kick_times)}\n")
    f.write(f"  Snares: {len(drums.snare_times)}\n")
    f.write(f"  Hi-hats: {len(drums.hihat_times)}\n")
    if drums.pattern_length > 0:
        f.write(f"  Pattern Length: {drums.pattern_length:.2f}s\n")

    f.write("\nPhrase Boundaries:\n")
    if result.phrase_boundaries:
        f.write("  " + ", ".join(format_time(t) for t in result.phrase_boundaries) + "\n")
    else:
        f.write("  (none)\n")


class JSONResultWriter(ResultWriter):
    """Writes analysis results to a JSON file."""

    def __init__(self, indent: int = 2):
        self.indent = indent
        self.logger = logging.getLogger("result_writer.json")

    def write(self, results: Dict[Path, AnalysisResult], output_path: Path) -> None:
        output_path = Path(output_path)
        output_path.parent.mkdir(parents=True, exist_ok=True)

        output_data = {
            "generated": datetime.now().isoformat(),
            "total_files": len(results),
            "results": {
                str(path): result.to_dict()
                for path, result in results.items()
            }
        }

        with open(output_path, 'w', encoding='utf-8') as f:
            json.dump(output_data, f, indent=self.indent, default=str)

        self.logger.info(f"Results written to: {output_path}")


def create_result_writer(format: str = "text", **kwargs) -> ResultWriter:
    """
    Factory function to create appropriate result writer.

    Args:
        format: Output format ("text", "txt" or "json")
        **kwargs: Additional arguments for the writer

    Raises:
        ValueError: On an unknown format
    """
    writers = {
        "text": TextResultWriter,
        "txt": TextResultWriter,
        "json": JSONResultWriter,
    }

    writer_class = writers.get(format.lower())
    if writer_class is None:
        raise ValueError(f"Unknown format: {format}. Supported: {list(writers.keys())}")

    return writer_class(**kwargs)
