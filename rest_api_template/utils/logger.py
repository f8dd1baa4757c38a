"""
Logging configuration for rest-api-template
Provides structured logging with key/value fields and text or JSON output
"""
import json
import logging
import sys
import traceback
from dataclasses import dataclass
from typing import Any, Dict, Optional

ROOT_LOGGER_NAME = "rest_api_template"
DEFAULT_FORMAT = "[%(levelname)s] %(name)s: %(message)s"

LOG_FORMATS = ("text", "json")


class LoggerConfigError(ValueError):
    """Raised when the logger cannot be built from the given settings"""


@dataclass(frozen=True)
class LogConfig:
    """Logging settings (DEBUG, DISABLE_LOGS, LOG_FORMAT, LOG_CALLER, LOG_STACKTRACE)"""
    debug: bool = False
    disabled: bool = False
    format: str = "text"
    caller: bool = False
    stacktrace: bool = False


class KeyValueFormatter(logging.Formatter):
    """
    Text formatter that appends structured fields as key=value pairs.

    Output looks like:
        [CRITICAL] rest_api_template.main: failed to initialize application error="boom"
    """

    def __init__(
        self,
        format_string: Optional[str] = None,
        caller: bool = False,
        stacktrace: bool = False
    ):
        super().__init__(format_string or DEFAULT_FORMAT)
        self.caller = caller
        self.stacktrace = stacktrace

    def format(self, record: logging.LogRecord) -> str:
        line = self.formatMessage(self._prepare(record))
        fields = getattr(record, "fields", None) or {}
        for key, value in fields.items():
            line += f" {key}={_render_value(value)}"
        if self.caller:
            line += f" caller={record.filename}:{record.lineno}"
        if self.stacktrace:
            if record.exc_info:
                line += "\n" + self.formatException(record.exc_info)
            if record.stack_info:
                line += "\n" + self.formatStack(record.stack_info)
        return line

    def _prepare(self, record: logging.LogRecord) -> logging.LogRecord:
        record.message = record.getMessage()
        if self.usesTime():
            record.asctime = self.formatTime(record, self.datefmt)
        return record


class JSONFormatter(logging.Formatter):
    """Formatter emitting one JSON object per record"""

    def __init__(self, caller: bool = False, stacktrace: bool = False):
        super().__init__()
        self.caller = caller
        self.stacktrace = stacktrace

    def format(self, record: logging.LogRecord) -> str:
        payload: Dict[str, Any] = {
            "level": record.levelname.lower(),
            "logger": record.name,
            "msg": record.getMessage(),
        }
        if self.caller:
            payload["caller"] = f"{record.filename}:{record.lineno}"
        if self.stacktrace and record.exc_info:
            payload["stacktrace"] = "".join(traceback.format_exception(*record.exc_info))
        fields = getattr(record, "fields", None) or {}
        for key, value in fields.items():
            # Colliding names are prefixed rather than dropped
            if key in payload:
                key = f"fields.{key}"
            payload[key] = value
        return json.dumps(payload, default=str)


class StructuredLogger(logging.LoggerAdapter):
    """
    Logger adapter accepting structured fields as keyword arguments.

    Example:
        logger.info("starting application", version="1.2.0", commit="abc123")
        logger.fatal("failed to initialize application", error=str(exc))

    `fatal` only logs at CRITICAL level. Terminating the process is left to
    the outermost caller.
    """

    _PASSTHROUGH = ("exc_info", "stack_info", "stacklevel", "extra")

    def process(self, msg, kwargs):
        fields = {key: kwargs.pop(key) for key in list(kwargs) if key not in self._PASSTHROUGH}
        extra = dict(self.extra or {})
        extra.update(kwargs.pop("extra", None) or {})
        extra["fields"] = fields
        kwargs["extra"] = extra
        return msg, kwargs

    def fatal(self, msg, *args, **kwargs):
        kwargs.setdefault("stacklevel", 2)
        self.critical(msg, *args, **kwargs)


def build_formatter(config: LogConfig) -> logging.Formatter:
    """
    Build the formatter matching a LogConfig

    Raises:
        LoggerConfigError: If the format is not one of LOG_FORMATS
    """
    fmt = (config.format or "text").lower()
    if fmt == "text":
        return KeyValueFormatter(caller=config.caller, stacktrace=config.stacktrace)
    if fmt == "json":
        return JSONFormatter(caller=config.caller, stacktrace=config.stacktrace)
    raise LoggerConfigError(
        f"unsupported LOG_FORMAT {config.format!r} (expected one of {', '.join(LOG_FORMATS)})"
    )


def setup_logger(config: Optional[LogConfig] = None, stream=None) -> logging.Logger:
    """
    Configure the project root logger, replacing any handler set up earlier

    Args:
        config: Logging settings (default: LogConfig())
        stream: Output stream (default: sys.stdout)

    Returns:
        The configured root project logger

    Raises:
        LoggerConfigError: If the settings are invalid
    """
    config = config or LogConfig()
    # Build before touching the logger so a bad config leaves the old setup intact
    formatter = build_formatter(config)
    level = logging.DEBUG if config.debug else logging.INFO

    logger = logging.getLogger(ROOT_LOGGER_NAME)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)

    if config.disabled:
        handler: logging.Handler = logging.NullHandler()
    else:
        handler = logging.StreamHandler(stream or sys.stdout)
        handler.setFormatter(formatter)
    handler.setLevel(level)

    logger.setLevel(level)
    logger.addHandler(handler)
    # Prevent propagation to root logger
    logger.propagate = False

    return logger


def reset_logger() -> None:
    """Remove all handlers from the project logger (useful in tests)"""
    logger = logging.getLogger(ROOT_LOGGER_NAME)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)


def get_logger(name: str) -> StructuredLogger:
    """
    Get or create a logger for a module

    Args:
        name: Module name (typically __name__)

    Returns:
        StructuredLogger wrapping the child of the project logger
    """
    if not logging.getLogger(ROOT_LOGGER_NAME).handlers:
        setup_logger()
    logger_name = name.split('.')[-1] if '.' in name else name
    return StructuredLogger(logging.getLogger(f"{ROOT_LOGGER_NAME}.{logger_name}"), {})


def _render_value(value: Any) -> str:
    if isinstance(value, str):
        if value == "" or any(ch.isspace() or ch in '"=' for ch in value):
            return json.dumps(value)
        return value
    return str(value)
