"""Tests for BatchProcessor."""

from pathlib import Path
from unittest.mock import MagicMock

import pytest

from beatsync.core.batch_processor import BatchProcessor, BatchResult
from beatsync.utils.errors import AudioLoadError


@pytest.fixture
def audio_tree(tmp_path):
    (tmp_path / "a.wav").write_bytes(b"")
    (tmp_path / "b.FLAC").write_bytes(b"")
    (tmp_path / "notes.txt").write_text("not audio")
    nested = tmp_path / "nested"
    nested.mkdir()
    (nested / "c.mp3").write_bytes(b"")
    return tmp_path


class TestCollectFiles:
    def test_directory(self, audio_tree):
        processor = BatchProcessor(engine=MagicMock())
        files = processor.collect_files(audio_tree)
        assert [f.name for f in files] == ["a.wav", "b.FLAC"]

    def test_recursive(self, audio_tree):
        processor = BatchProcessor(engine=MagicMock())
        files = processor.collect_files([audio_tree], recursive=True)
        assert {f.name for f in files} == {"a.wav", "b.FLAC", "c.mp3"}

    def test_skips_missing_and_non_audio(self, audio_tree):
        processor = BatchProcessor(engine=MagicMock())
        files = processor.collect_files(
            [audio_tree / "notes.txt", audio_tree / "gone.wav", audio_tree / "a.wav"]
        )
        assert files == [audio_tree / "a.wav"]

    def test_duplicates_removed(self, audio_tree):
        processor = BatchProcessor(engine=MagicMock())
        files = processor.collect_files([audio_tree / "a.wav", audio_tree / "a.wav"])
        assert len(files) == 1


class TestProcess:
    def test_successes_and_failures(self, audio_tree, make_result):
        def analyze_file(path):
            if path.name == "b.FLAC":
                raise AudioLoadError("cannot decode", file_path=str(path))
            return make_result(source=path)

        engine = MagicMock()
        engine.analyze_file.side_effect = analyze_file
        progress = []

        processor = BatchProcessor(
            engine=engine,
            progress_callback=lambda current, total, path: progress.append((current, total, path.name)),
        )
        result = processor.process(audio_tree)

        assert result.total_files == 2
        assert result.success_count == 1
        assert result.failure_count == 1
        assert result.success_rate == pytest.approx(50.0)
        assert "cannot decode" in result.failed[audio_tree / "b.FLAC"]
        assert progress == [(1, 2, "a.wav"), (2, 2, "b.FLAC")]

    def test_nothing_to_process(self, tmp_path):
        engine = MagicMock()
        result = BatchProcessor(engine=engine).process(tmp_path)
        assert result.total_files == 0
        assert result.success_rate == 0.0
        engine.analyze_file.assert_not_called()


def test_batch_result_defaults():
    result = BatchResult()
    assert result.successful == {}
    assert result.failed == {}
    assert result.success_count == 0
