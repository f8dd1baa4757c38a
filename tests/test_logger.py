"""
Tests for logging infrastructure
"""
import io
import json
import logging

import pytest

from rest_api_template.utils.logger import (
    ROOT_LOGGER_NAME,
    JSONFormatter,
    KeyValueFormatter,
    LogConfig,
    LoggerConfigError,
    get_logger,
    setup_logger,
)


def make_record(msg="hello", level=logging.INFO, **fields):
    record = logging.LogRecord("rest_api_template.test", level, __file__, 42, msg, (), None)
    record.fields = fields
    return record


class TestKeyValueFormatter:
    def test_appends_fields(self):
        line = KeyValueFormatter().format(make_record(version="1.0", port=8080))
        assert line == "[INFO] rest_api_template.test: hello version=1.0 port=8080"

    def test_quotes_values_with_spaces(self):
        line = KeyValueFormatter().format(make_record(error="connection refused"))
        assert line.endswith('error="connection refused"')

    def test_caller(self):
        line = KeyValueFormatter(caller=True).format(make_record())
        assert line.endswith("caller=test_logger.py:42")


class TestJSONFormatter:
    def test_renders_json_object(self):
        payload = json.loads(JSONFormatter().format(make_record("boom", logging.CRITICAL, error="x")))
        assert payload == {
            "level": "critical",
            "logger": "rest_api_template.test",
            "msg": "boom",
            "error": "x",
        }

    def test_fields_named_like_record_keys_are_kept(self):
        record = make_record("boom")
        record.fields = {"level": "warn", "msg": "shadow", "logger": "other"}

        payload = json.loads(JSONFormatter().format(record))

        assert payload["level"] == "info"
        assert payload["msg"] == "boom"
        assert payload["logger"] == "rest_api_template.test"
        assert payload["fields.level"] == "warn"
        assert payload["fields.msg"] == "shadow"
        assert payload["fields.logger"] == "other"


class TestSetupLogger:
    def test_unknown_format_is_rejected(self):
        with pytest.raises(LoggerConfigError):
            setup_logger(LogConfig(format="xml"))

    def test_bad_config_keeps_previous_handler(self):
        setup_logger()
        before = list(logging.getLogger(ROOT_LOGGER_NAME).handlers)

        with pytest.raises(LoggerConfigError):
            setup_logger(LogConfig(format="xml"))

        assert logging.getLogger(ROOT_LOGGER_NAME).handlers == before

    def test_debug_level(self):
        logger = setup_logger(LogConfig(debug=True))
        assert logger.level == logging.DEBUG
        assert setup_logger(LogConfig()).level == logging.INFO

    def test_disabled_logs_use_null_handler(self):
        logger = setup_logger(LogConfig(disabled=True))
        assert len(logger.handlers) == 1
        assert isinstance(logger.handlers[0], logging.NullHandler)

    def test_reconfigure_replaces_handler(self):
        setup_logger()
        logger = setup_logger(LogConfig(format="json"))
        assert len(logger.handlers) == 1
        assert isinstance(logger.handlers[0].formatter, JSONFormatter)


class TestStructuredLogger:
    def test_fields_reach_output(self):
        stream = io.StringIO()
        setup_logger(stream=stream)

        get_logger("rest_api_template.main").info("starting application", version="dev")

        assert stream.getvalue().strip() == "[INFO] rest_api_template.main: starting application version=dev"

    def test_fatal_logs_critical_without_exiting(self):
        stream = io.StringIO()
        setup_logger(LogConfig(format="json"), stream=stream)

        get_logger("main").fatal("failed to initialize application", error="boom")

        payload = json.loads(stream.getvalue())
        assert payload["level"] == "critical"
        assert payload["msg"] == "failed to initialize application"
        assert payload["error"] == "boom"

    def test_get_logger_auto_configures(self):
        assert not logging.getLogger(ROOT_LOGGER_NAME).handlers
        get_logger(__name__).info("auto configured")
        assert logging.getLogger(ROOT_LOGGER_NAME).handlers

    def test_stacktrace_included_when_enabled(self):
        stream = io.StringIO()
        setup_logger(LogConfig(stacktrace=True), stream=stream)

        try:
            raise ValueError("bad value")
        except ValueError:
            get_logger("main").error("operation failed", exc_info=True)

        assert "Traceback" in stream.getvalue()
        assert "ValueError: bad value" in stream.getvalue()

    def test_stacktrace_omitted_by_default(self):
        stream = io.StringIO()
        setup_logger(stream=stream)

        try:
            raise ValueError("bad value")
        except ValueError:
            get_logger("main").error("operation failed", exc_info=True)

        assert "Traceback" not in stream.getvalue()
