"""
beatsync - Music Structure Analysis CLI

Installed as the 'beatsync' console script.

Example usage:
    # Single file analysis
    beatsync path/to/track.wav
    beatsync --output structure.json path/to/track.wav

    # Batch processing
    beatsync --batch path/to/directory/
    beatsync --batch --recursive path/to/directory/
    beatsync --batch --output-txt report.txt track1.wav track2.flac
"""

import argparse
import sys
from pathlib import Path
from typing import List, Optional

from beatsync import __version__
from beatsync.core.batch_processor import BatchProcessor
from beatsync.core.engine import create_analysis_engine
from beatsync.core.models import AnalysisResult
from beatsync.core.result_writer import JSONResultWriter, TextResultWriter, write_report
from beatsync.utils.config import load_config
from beatsync.utils.errors import AudioAnalysisError
from beatsync.utils.logging import setup_logging_from_config


def print_progress(value: float) -> None:
    """Progress sink rendering a single updating percentage line."""
    print(f"\rProgress: {value * 100:5.1f}%", end="", flush=True)
    if value >= 1.0:
        print()


def print_single_result(file_path: Path, result: AnalysisResult) -> None:
    """Print the structure report for a single file to the console."""
    print("\n" + "=" * 60)
    print("BEATSYNC STRUCTURE ANALYSIS")
    print("=" * 60)
    print(f"File: {file_path.name}")
    print("-" * 60)
    write_report(sys.stdout, result)
    print("-" * 60)


def analyze_single_file(
    audio_file: Path,
    config: dict,
    output_json: Optional[Path] = None,
    output_txt: Optional[Path] = None,
    verbose: bool = False,
) -> int:
    """
    Analyze a single audio file.

    Returns:
        Exit code (0 for success, 1 for error)
    """
    if not audio_file.exists():
        print(f"Error: Audio file not found: {audio_file}")
        return 1

    print(f"Analyzing: {audio_file}")
    engine = create_analysis_engine(config)

    try:
        result = engine.analyze_file(audio_file, progress=print_progress)
        print_single_result(audio_file, result)

        if output_json:
            JSONResultWriter().write({audio_file: result}, output_json)
            print(f"\nJSON results saved to: {output_json}")

        if output_txt:
            TextResultWriter().write({audio_file: result}, output_txt)
            print(f"Text results saved to: {output_txt}")

        return 0

    except (AudioAnalysisError, OSError) as e:
        print(f"\nError during analysis: {e}")
        if verbose:
            import traceback
            traceback.print_exc()
        return 1

    finally:
        engine.shutdown()


def analyze_batch(
    inputs: List[Path],
    config: dict,
    recursive: bool = False,
    output_json: Optional[Path] = None,
    output_txt: Optional[Path] = None,
) -> int:
    """
    Analyze multiple audio files in batch mode.

    Returns:
        Exit code (0 when every file succeeded, 1 otherwise)
    """
    engine = create_analysis_engine(config)

    def progress_callback(current: int, total: int, file_path: Path) -> None:
        print(f"[{current}/{total}] Processing: {file_path.name}")

    try:
        processor = BatchProcessor(engine=engine, progress_callback=progress_callback)
        batch_result = processor.process(inputs, recursive=recursive)

        print("\n" + "=" * 60)
        print("BATCH PROCESSING COMPLETE")
        print("=" * 60)
        print(f"Total Files: {batch_result.total_files}")
        print(f"Successful: {batch_result.success_count}")
        print(f"Failed: {batch_result.failure_count}")
        print(f"Success Rate: {batch_result.success_rate:.1f}%")
        print(f"Total Time: {batch_result.total_time:.2f}s")

        if batch_result.failed:
            print("\nFailed Files:")
            for path, error in batch_result.failed.items():
                print(f"  {path.name}: {error}")

        for path, result in batch_result.successful.items():
            print(f"  {path.name}: {result.get_summary()}")

        if output_txt:
            TextResultWriter().write(batch_result.successful, output_txt)
            print(f"\nText results saved to: {output_txt}")

        if output_json:
            JSONResultWriter().write(batch_result.successful, output_json)
            print(f"JSON results saved to: {output_json}")

        if batch_result.total_files == 0:
            return 1
        return 0 if batch_result.failure_count == 0 else 1

    finally:
        engine.shutdown()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="beatsync",
        description="Detect song structure, drum hits and phrase boundaries in music files",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  Single file:
    beatsync track.wav
    beatsync --output structure.json track.wav

  Batch processing:
    beatsync --batch music/
    beatsync --batch --recursive music/
    beatsync --batch --output-txt report.txt track1.wav track2.wav
        """
    )
    parser.add_argument(
        "inputs",
        type=Path,
        nargs="+",
        help="Audio file(s) or directory to analyze"
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Path to configuration file"
    )
    parser.add_argument(
        "--output",
        type=Path,
        default=None,
        help="Path to save JSON output"
    )
    parser.add_argument(
        "--output-txt",
        type=Path,
        default=None,
        help="Path to save a text report"
    )
    parser.add_argument(
        "--batch",
        "-b",
        action="store_true",
        help="Enable batch processing mode for multiple files or directories"
    )
    parser.add_argument(
        "--recursive",
        "-r",
        action="store_true",
        help="Search directories recursively (only with --batch)"
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Enable verbose output"
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"beatsync {__version__}"
    )
    return parser


def main(argv: Optional[List[str]] = None) -> None:
    """Main entry point for beatsync structure analysis."""
    args = build_parser().parse_args(argv)

    try:
        config = load_config(str(args.config) if args.config else None)
    except AudioAnalysisError as e:
        print(f"Error: {e}")
        sys.exit(1)

    setup_logging_from_config(config, verbose=args.verbose)

    is_batch = args.batch or len(args.inputs) > 1 or args.inputs[0].is_dir()

    if is_batch:
        exit_code = analyze_batch(
            inputs=args.inputs,
            config=config,
            recursive=args.recursive,
            output_json=args.output,
            output_txt=args.output_txt,
        )
    else:
        exit_code = analyze_single_file(
            audio_file=args.inputs[0],
            config=config,
            output_json=args.output,
            output_txt=args.output_txt,
            verbose=args.verbose,
        )

    sys.exit(exit_code)


if __name__ == "__main__":
    main()
