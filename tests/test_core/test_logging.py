"""Tests for logging setup and the analyzer base class."""

import json
import logging

import pytest

from beatsync.core.analyzer_base import Analyzer, BaseAnalyzer
from beatsync.utils.errors import AnalysisError, InvalidFrameSizeError
from beatsync.utils.logging import (
    ColoredFormatter,
    JSONFormatter,
    create_run_logger,
    setup_logging,
)


def make_record(msg="hello", **extra):
    record = logging.LogRecord("pipeline", logging.INFO, __file__, 10, msg, (), None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestFormatters:
    def test_json_formatter(self):
        data = json.loads(JSONFormatter().format(make_record(run_id="abc123")))
        assert data["level"] == "INFO"
        assert data["logger"] == "pipeline"
        assert data["message"] == "hello"
        assert data["extra"] == {"run_id": "abc123"}

    def test_json_formatter_without_extra(self):
        data = json.loads(JSONFormatter().format(make_record()))
        assert "extra" not in data

    def test_colored_formatter_restores_levelname(self):
        record = make_record()
        output = ColoredFormatter("%(levelname)s %(message)s").format(record)
        assert "\033[32m" in output
        assert record.levelname == "INFO"


class TestSetupLogging:
    def test_file_output_is_json(self, tmp_path):
        log_file = tmp_path / "logs" / "run.log"
        root = logging.getLogger()
        saved_handlers, saved_level = list(root.handlers), root.level
        try:
            setup_logging(level="DEBUG", log_file=str(log_file), console_enabled=False)
            logging.getLogger("engine").info("started")
            for handler in root.handlers:
                handler.flush()
            line = log_file.read_text().strip().splitlines()[-1]
            assert json.loads(line)["message"] == "started"
        finally:
            for handler in root.handlers:
                handler.close()
            root.handlers = saved_handlers
            root.setLevel(saved_level)


class TestRunLogger:
    def test_prefixes_run_id(self, caplog):
        run_logger = create_run_logger("pipeline", "run42")
        with caplog.at_level(logging.INFO, logger="pipeline"):
            run_logger.info("stage done")
        assert caplog.records[-1].getMessage() == "[run42] stage done"
        assert caplog.records[-1].run_id == "run42"

    def test_generates_run_id(self):
        run_logger = create_run_logger("pipeline")
        assert len(run_logger.extra["run_id"]) == 8


class DoublingAnalyzer(BaseAnalyzer[int]):
    def __init__(self):
        super().__init__("doubler", "0.1.0")

    def _analyze_impl(self, value):
        if value < 0:
            raise ValueError("negative")
        if value == 0:
            raise InvalidFrameSizeError(0)
        return value * 2


class TestBaseAnalyzer:
    def test_result_and_metadata(self):
        analyzer = DoublingAnalyzer()
        assert analyzer.analyze(4) == 8
        assert analyzer.name == "doubler"
        assert analyzer.version == "0.1.0"
        assert analyzer.logger.name == "analyzer.doubler"

    def test_wraps_unexpected_errors(self):
        with pytest.raises(AnalysisError) as exc_info:
            DoublingAnalyzer().analyze(-1)
        assert exc_info.value.analyzer_name == "doubler"
        assert isinstance(exc_info.value.original_error, ValueError)

    def test_package_errors_pass_through(self):
        with pytest.raises(InvalidFrameSizeError):
            DoublingAnalyzer().analyze(0)

    def test_satisfies_protocol(self):
        analyzer: Analyzer[int] = DoublingAnalyzer()
        assert callable(analyzer.analyze)
