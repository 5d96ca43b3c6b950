"""
Tests for logging helpers.
"""

import json
import logging

from kbfeed.utils.logging import (
    StructuredFormatter,
    ColoredConsoleFormatter,
    get_logger_for_component,
    setup_logger,
    PerformanceLogger,
)


def _record(**extra):
    record = logging.LogRecord("kbfeed.pipeline", logging.ERROR, __file__, 10, "Upload failed", None, None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestFormatters:

    def test_structured_formatter_scope_and_context(self):
        record = _record(feed_id="blog", entry_guid="abc123", error_code="E001")
        output = json.loads(StructuredFormatter().format(record))

        assert output["level"] == "ERROR"
        assert output["message"] == "Upload failed"
        assert output["feed_id"] == "blog"
        assert output["entry_guid"] == "abc123"
        assert output["context"] == {"error_code": "E001"}

    def test_structured_formatter_without_extra(self):
        output = json.loads(StructuredFormatter().format(_record()))
        assert "context" not in output
        assert "feed_id" not in output

    def test_console_formatter_scope(self):
        output = ColoredConsoleFormatter().format(_record(feed_id="blog", entry_guid="abc123"))
        assert "kbfeed.pipeline [blog abc123] - Upload failed" in output

    def test_console_formatter_without_scope(self):
        output = ColoredConsoleFormatter().format(_record())
        assert "kbfeed.pipeline - Upload failed" in output


class TestComponentLogger:

    def test_adapter_context(self):
        adapter = get_logger_for_component("pipeline", feed_id="blog", entry_guid="abc123")

        assert adapter.logger.name == "kbfeed.pipeline"
        assert adapter.extra == {"component": "pipeline", "feed_id": "blog", "entry_guid": "abc123"}

    def test_adapter_merges_extra(self):
        adapter = get_logger_for_component("pipeline", feed_id="blog")
        _, kwargs = adapter.process("msg", {"extra": {"error_code": "F004"}})
        assert kwargs["extra"] == {"error_code": "F004", "component": "pipeline", "feed_id": "blog"}

    def test_rotating_file_is_json(self, tmp_path):
        log_file = tmp_path / "logs" / "kbfeed.log"
        logger = setup_logger("kbfeed.test_file", level="INFO", log_file=str(log_file), console=False)

        logger.info("Ingest run finished", extra={"feed_id": "blog"})
        for handler in logger.handlers:
            handler.flush()

        line = log_file.read_text(encoding="utf-8").strip().splitlines()[-1]
        assert json.loads(line)["feed_id"] == "blog"

        for handler in list(logger.handlers):
            handler.close()
            logger.removeHandler(handler)


class TestPerformanceLogger:

    def test_records_duration(self):
        with PerformanceLogger(logging.getLogger("kbfeed.test"), "ingest run") as perf:
            pass
        assert perf.duration is not None
        assert perf.duration >= 0
