"""
Logging Configuration
Custom JSON Logger implementation optimized for VictoriaLogs.

Provides:
- CustomJsonFormatter: VictoriaLogs optimized JSON formatter
- VictoriaLogsHandler: Direct HTTP logging with stderr fallback
- configure_queue_logging: Async logging for the long-lived runtime process
"""

import atexit
import json
import logging
import logging.config
import logging.handlers
import os
import queue
import string
import sys
import urllib.error
import urllib.parse
import urllib.request
from datetime import datetime, timezone

import yaml

from .request_context import get_log_id


_STANDARD_ATTRS = {
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


class CustomJsonFormatter(logging.Formatter):
    """
    VictoriaLogs optimized JSON Formatter.

    Fields:
      - _time: ISO8601 timestamp (millisecond precision)
      - level: Log level
      - logger: Logger name (e.g. uvicorn.access, runtime.engine)
      - message: Log message
      - log_id: Correlation id of the invocation being served, if any
    """

    def format(self, record: logging.LogRecord) -> str:
        log_id = getattr(record, "log_id", None) or get_log_id()

        log_data = {
            "_time": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(
                timespec="milliseconds"
            ),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        if log_id:
            log_data["log_id"] = log_id

        # Include extra fields
        for key, value in record.__dict__.items():
            if key not in _STANDARD_ATTRS and not key.startswith("_") and key not in log_data:
                log_data[key] = value

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_data, ensure_ascii=False, default=str)


def setup_logging(config_path: str = "logging.yml"):
    """
    Load the YAML config, substitute environment variables, and initialize logging.
    """
    if not os.path.exists(config_path):
        logging.basicConfig(level=logging.INFO)
        return

    with open(config_path, "r", encoding="utf-8") as f:
        # Substitute environment variables using string.Template.
        # Supports ${LOG_LEVEL} format.
        template = string.Template(f.read())

        mapping = os.environ.copy()
        if "LOG_LEVEL" not in mapping:
            mapping["LOG_LEVEL"] = "INFO"

        content = template.safe_substitute(mapping)
        config = yaml.safe_load(content)
        logging.config.dictConfig(config)


class VictoriaLogsHandler(logging.Handler):
    """
    Handler that sends logs directly to VictoriaLogs over HTTP.
    On failure, fall back to the original stderr.
    """

    def __init__(self, url: str, stream_fields: dict = None, timeout: float = 0.5):
        super().__init__()
        self.url = url
        self.stream_fields = stream_fields or {}
        self.timeout = timeout

    def emit(self, record: logging.LogRecord):
        try:
            if self.formatter:
                msg = self.formatter.format(record)
            else:
                msg = record.getMessage()

            # Expect JSON; wrap otherwise.
            try:
                log_entry = json.loads(msg)
            except json.JSONDecodeError:
                log_entry = {"message": msg, "level": record.levelname}

            for k, v in self.stream_fields.items():
                log_entry.setdefault(k, v)

            params = [
                ("_stream_fields", ",".join(self.stream_fields.keys())),
                ("_msg_field", "message"),
                ("_time_field", "_time"),
            ]
            for k, v in self.stream_fields.items():
                params.append((k, str(v)))

            full_url = f"{self.url}?{urllib.parse.urlencode(params)}"

            data = json.dumps(log_entry, ensure_ascii=False).encode("utf-8")
            req = urllib.request.Request(
                full_url,
                data=data,
                headers={"Content-Type": "application/json"},
                method="POST",
            )

            try:
                with urllib.request.urlopen(req, timeout=self.timeout) as res:
                    res.read()
            except (OSError, urllib.error.URLError) as e:
                # sys.__stderr__ bypasses the invocation stream proxy.
                fallback_msg = json.dumps(
                    {
                        "fallback": "victorialogs_failed",
                        "error": str(e),
                        "original_log": log_entry,
                    },
                    ensure_ascii=False,
                )
                stream = getattr(sys, "__stderr__", None) or sys.stderr
                try:
                    stream.write(fallback_msg + "\n")
                except (OSError, ValueError):
                    pass

        except Exception:
            self.handleError(record)

    def flush(self):
        pass


def normalize_victorialogs_url(url: str) -> str:
    """Append the jsonline ingestion path when only a base URL is configured."""
    if not url:
        return ""
    if url.endswith("/insert/jsonline"):
        return url
    return f"{url.rstrip('/')}/insert/jsonline"


def configure_queue_logging(service_name: str, vl_url: str = None):
    """
    Configure async QueueLogging.
    Used for the long-running runtime server.
    """
    if not vl_url:
        return

    # 1. Real handler for sending (runs on a separate thread).
    real_handler = VictoriaLogsHandler(
        url=vl_url, stream_fields={"container_name": service_name, "job": "runtime"}
    )
    real_handler.setFormatter(CustomJsonFormatter())

    # 2. Queue and QueueHandler (app side).
    log_queue = queue.Queue(-1)
    queue_handler = logging.handlers.QueueHandler(log_queue)

    # 3. Start listener.
    listener = logging.handlers.QueueListener(log_queue, real_handler)
    listener.start()
    atexit.register(listener.stop)

    # 4. Add to root logger.
    root = logging.getLogger()
    root.addHandler(queue_handler)
