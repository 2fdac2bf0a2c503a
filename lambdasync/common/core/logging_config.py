"""
Logging Configuration
JSON log formatting and YAML-driven logging setup.

Provides:
- CustomJsonFormatter: one JSON object per line, tagged with the invocation id
- setup_logging: dictConfig loader with ${VAR} environment substitution
"""

import json
import logging
import logging.config
import os
import string
from datetime import datetime, timezone

import yaml


class CustomJsonFormatter(logging.Formatter):
    """
    JSON line formatter for the operator console.

    Fields:
      - _time: ISO8601 timestamp (millisecond precision)
      - level: Log level
      - logger: Logger name (e.g. uvicorn.access, devserver.main)
      - message: Log message
      - aws_request_id: Invocation id of the in-flight request, when any
    """

    # Attributes every LogRecord carries; anything else came in via `extra`.
    STANDARD_ATTRS = frozenset(
        {
            "args",
            "asctime",
            "created",
            "exc_info",
            "exc_text",
            "filename",
            "funcName",
            "levelname",
            "levelno",
            "lineno",
            "module",
            "msecs",
            "message",
            "msg",
            "name",
            "pathname",
            "process",
            "processName",
            "relativeCreated",
            "stack_info",
            "taskName",
            "thread",
            "threadName",
        }
    )

    def format(self, record: logging.LogRecord) -> str:
        request_id = getattr(record, "aws_request_id", None)
        if not request_id:
            from .request_context import get_request_id

            request_id = get_request_id()

        log_data = {
            "_time": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(
                timespec="milliseconds"
            ),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        if request_id:
            log_data["aws_request_id"] = request_id

        for key, value in record.__dict__.items():
            if key not in self.STANDARD_ATTRS and not key.startswith("_"):
                log_data[key] = value

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_data, ensure_ascii=False, default=str)


def setup_logging(config_path: str = "logging.yml", log_level: str = "INFO") -> bool:
    """
    Load the YAML config, substitute environment variables, and initialize logging.

    Returns:
        True if the YAML config was applied, False if basicConfig was used instead.
    """
    if not os.path.exists(config_path):
        logging.basicConfig(
            level=log_level.upper(),
            format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
        )
        return False

    with open(config_path, "r", encoding="utf-8") as f:
        # Supports ${LOG_LEVEL} format.
        template = string.Template(f.read())

    mapping = os.environ.copy()
    mapping["LOG_LEVEL"] = log_level.upper()
    mapping.setdefault("LOG_FORMAT", "console")

    content = template.safe_substitute(mapping)
    config = yaml.safe_load(content)
    logging.config.dictConfig(config)
    return True
