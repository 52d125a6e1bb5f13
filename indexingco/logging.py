"""
Logging setup shared by the command line and the dashboard.

Every record carries the fields in ``CONTEXT_FIELDS`` so the text and JSON
formatters can reference them unconditionally. Call sites pass context with
``extra=log_extra(...)`` and keep the message itself a short event key.
"""

import json
import logging
import os
from typing import Any, Dict, Optional

PACKAGE_LOGGER = "indexingco"
CONTEXT_FIELDS = ("command", "resource", "tab", "item")
JSON_EXTRAS = (
    "error",
    "error_type",
    "error_category",
    "method",
    "path",
    "status_code",
    "duration_ms",
    "count",
)
TEXT_FORMAT = (
    "%(asctime)s %(levelname)s %(name)s %(message)s "
    "[command=%(command)s resource=%(resource)s tab=%(tab)s item=%(item)s]"
)
TRUTHY = ("1", "true", "yes", "on")

EXIT_OK = 0
EXIT_RUNTIME_ERROR = 1
EXIT_CONFIG_ERROR = 2


def _resolve_level(level: Optional[str]) -> int:
    name = level or os.environ.get("INDEXINGCO_LOG_LEVEL") or "info"
    return getattr(logging, str(name).upper(), logging.INFO)


class ContextFilter(logging.Filter):
    """Fill in any missing context field with a placeholder."""

    def __init__(self, placeholder: str = "-") -> None:
        super().__init__()
        self.placeholder = placeholder

    def filter(self, record: logging.LogRecord) -> bool:
        for field in CONTEXT_FIELDS:
            if not hasattr(record, field):
                setattr(record, field, self.placeholder)
        return True


class JsonFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        data: Dict[str, Any] = {
            "timestamp": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        data.update({field: getattr(record, field, "-") for field in CONTEXT_FIELDS})
        data.update({key: getattr(record, key) for key in JSON_EXTRAS if hasattr(record, key)})
        if record.exc_info:
            data["exception"] = self.formatException(record.exc_info)
        return json.dumps(data, default=str)


def _make_handler(log_file: Optional[str]) -> logging.Handler:
    if log_file:
        return logging.FileHandler(os.path.expanduser(log_file), encoding="utf-8")
    return logging.StreamHandler()


def setup_logging(level: Optional[str] = None, json_output: bool = False, log_file: Optional[str] = None) -> logging.Logger:
    """
    Install a single root handler and return the package logger.

    With ``log_file`` set, records go to that file instead of stderr; the
    dashboard relies on this so log lines never paint over the screen.
    """
    handler = _make_handler(log_file)
    handler.addFilter(ContextFilter())
    handler.setFormatter(JsonFormatter() if json_output else logging.Formatter(TEXT_FORMAT))
    root = logging.getLogger()
    for existing in list(root.handlers):
        root.removeHandler(existing)
    root.setLevel(_resolve_level(level))
    root.addHandler(handler)
    return get_logger()


def get_logger(name: str = PACKAGE_LOGGER) -> logging.Logger:
    return logging.getLogger(name)


def json_logging_from_env() -> bool:
    return os.environ.get("INDEXINGCO_LOG_JSON", "").lower() in TRUTHY


def init_cli_logging(
    level: Optional[str] = None,
    json_output: Optional[bool] = None,
    log_file: Optional[str] = None,
) -> logging.Logger:
    """Logging for CLI entry points. JSON output defaults to ``INDEXINGCO_LOG_JSON``."""
    if json_output is None:
        json_output = json_logging_from_env()
    return setup_logging(level, json_output=json_output, log_file=log_file)


def set_package_level(level: str) -> None:
    get_logger().setLevel(_resolve_level(level))


def log_extra(**fields: Any) -> Dict[str, Any]:
    """``extra=`` payload with ``None`` values dropped, so ContextFilter defaults still apply."""
    return {key: value for key, value in fields.items() if value is not None}
