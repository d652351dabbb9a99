"""Tests for the command-line interface."""

import json
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest

from beatsync import cli
from beatsync.utils.errors import AudioLoadError


@pytest.fixture
def fake_engine(make_result):
    engine = MagicMock()

    def analyze_file(path, progress=None):
        if progress:
            for value in (0.05, 0.5, 1.0):
                progress(value)
        if Path(path).name.startswith("bad"):
            raise AudioLoadError("cannot decode", file_path=str(path))
        return make_result(source=Path(path))

    engine.analyze_file.side_effect = analyze_file
    return engine


def run_cli(argv, engine):
    with patch.object(cli, "create_analysis_engine", return_value=engine), \
            patch.object(cli, "setup_logging_from_config"):
        with pytest.raises(SystemExit) as exc_info:
            cli.main(argv)
    return exc_info.value.code


class TestSingleFile:
    def test_success_with_outputs(self, tmp_path, fake_engine, capsys):
        audio = tmp_path / "track.wav"
        audio.write_bytes(b"")
        json_out = tmp_path / "out.json"
        txt_out = tmp_path / "out.txt"

        code = run_cli(
            [str(audio), "--output", str(json_out), "--output-txt", str(txt_out)], fake_engine
        )

        assert code == 0
        out = capsys.readouterr().out
        assert "Progress: 100.0%" in out
        assert "Tempo: 120.00 BPM" in out
        assert json.loads(json_out.read_text())["total_files"] == 1
        assert "FILE: track.wav" in txt_out.read_text()
        fake_engine.shutdown.assert_called_once()

    def test_missing_file(self, tmp_path, fake_engine):
        assert run_cli([str(tmp_path / "missing.wav")], fake_engine) == 1

    def test_analysis_failure(self, tmp_path, fake_engine, capsys):
        audio = tmp_path / "bad.wav"
        audio.write_bytes(b"")
        assert run_cli([str(audio)], fake_engine) == 1
        assert "cannot decode" in capsys.readouterr().out


class TestBatch:
    def test_directory_batch(self, tmp_path, fake_engine, capsys):
        (tmp_path / "a.wav").write_bytes(b"")
        (tmp_path / "b.wav").write_bytes(b"")

        assert run_cli([str(tmp_path)], fake_engine) == 0
        out = capsys.readouterr().out
        assert "[2/2] Processing: b.wav" in out
        assert "Successful: 2" in out

    def test_failure_gives_exit_code_one(self, tmp_path, fake_engine):
        (tmp_path / "a.wav").write_bytes(b"")
        (tmp_path / "bad.wav").write_bytes(b"")
        report = tmp_path / "report.txt"

        assert run_cli(["--batch", str(tmp_path), "--output-txt", str(report)], fake_engine) == 1
        assert "FILE: a.wav" in report.read_text()

    def test_empty_directory(self, tmp_path, fake_engine):
        assert run_cli(["--batch", str(tmp_path)], fake_engine) == 1


def test_bad_config_path(tmp_path, fake_engine, capsys):
    audio = tmp_path / "track.wav"
    audio.write_bytes(b"")
    code = run_cli(["--config", str(tmp_path / "none.yaml"), str(audio)], fake_engine)
    assert code == 1
    assert "Configuration file not found" in capsys.readouterr().out
