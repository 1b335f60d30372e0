"""
Handler log capture.

Every invocation gets its own RuntimeLogger. Records written through
`context.log()` / `context.error()` and anything the handler prints are
buffered on that logger and flushed once to a LogSink when the capture
session is released.

Native output (print, sys.stdout, sys.stderr) is process-global. Instead of
swapping sys.stdout per request, a single InvocationStream proxy is installed
for the lifetime of the process and routes each write to the logger bound to
the writer's context (see `_active_logger`). Worker threads inherit the
binding through `contextvars.copy_context()`, so concurrent invocations never
see each other's output.
"""

import json
import logging
import os
import secrets
import sys
import time
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Any, Dict, Iterator, List, Optional, Protocol

from services.common.core.request_context import get_log_id, set_log_id

from ..models.log_record import LogRecord, LogType
from .exceptions import Failure, FailureKind, LoggingUnavailableError

logger = logging.getLogger("runtime.log_capture")

STATUS_ENABLED = "enabled"
STATUS_DISABLED = "disabled"

MAX_LOG_SIZE = 8 * 1024 * 1024
TRUNCATED_MESSAGE = "Log file has been truncated to 8.00MB."
NATIVE_LOGS_MESSAGE = (
    "Native logs detected. Use context.log() or context.error() for better experience."
)

_active_logger: ContextVar[Optional["RuntimeLogger"]] = ContextVar(
    "active_runtime_logger", default=None
)


def generate_log_id() -> str:
    """Hex seconds + hex microseconds + random suffix, 20 characters."""
    now = time.time()
    seconds = int(now)
    micros = int((now - seconds) * 1_000_000)
    return f"{seconds:08x}{micros:05x}{secrets.token_hex(4)[:7]}"


class LogSink(Protocol):
    def open(self, log_id: str) -> None:
        """Prepare storage for a session. Raises LoggingUnavailableError."""
        ...

    def write(self, log_id: str, records: List[LogRecord]) -> None:
        ...


class FileLogSink:
    """
    Writes `<id>_logs.log` and `<id>_errors.log` under `logs_dir`.
    """

    def __init__(self, logs_dir: str):
        self.logs_dir = logs_dir

    def _path(self, log_id: str, log_type: LogType) -> str:
        suffix = "logs" if log_type is LogType.LOG else "errors"
        return os.path.join(self.logs_dir, f"{log_id}_{suffix}.log")

    def open(self, log_id: str) -> None:
        if os.path.basename(log_id) != log_id or log_id in (".", ".."):
            raise LoggingUnavailableError(log_id, ValueError("log id is not a plain file name"))
        try:
            for log_type in LogType:
                with open(self._path(log_id, log_type), "a", encoding="utf-8"):
                    pass
        except OSError as e:
            raise LoggingUnavailableError(log_id, e) from e

    def write(self, log_id: str, records: List[LogRecord]) -> None:
        grouped: Dict[LogType, List[str]] = {LogType.LOG: [], LogType.ERROR: []}
        for record in records:
            grouped[record.type].append(record.message)

        for log_type, messages in grouped.items():
            if not messages:
                continue
            with open(self._path(log_id, log_type), "a", encoding="utf-8") as f:
                for message in messages:
                    f.write(message + "\n")


def _stringify(message: Any) -> str:
    if isinstance(message, (dict, list)):
        return json.dumps(message, default=str)
    if isinstance(message, bytes):
        return message.decode("utf-8", errors="replace")
    return str(message)


class RuntimeLogger:
    """
    Per-invocation log buffer.

    A disabled logger (logging header set to anything but "enabled", or an
    unreachable sink) has an empty id and drops every write.
    """

    def __init__(self, status: Optional[str], log_id: Optional[str], sink: Optional[LogSink]):
        self.enabled = (status or STATUS_ENABLED) == STATUS_ENABLED and sink is not None
        self.sink = sink
        self.id = (log_id or generate_log_id()) if self.enabled else ""
        self._records: List[LogRecord] = []
        self._sizes: Dict[LogType, int] = {LogType.LOG: 0, LogType.ERROR: 0}
        self._truncated: Dict[LogType, bool] = {LogType.LOG: False, LogType.ERROR: False}
        self._native: Dict[LogType, str] = {LogType.LOG: "", LogType.ERROR: ""}
        self._native_detected = False
        self._closed = False
        # Set when this logger stands in for a sink that could not be opened.
        self.failure: Optional[Failure] = None

        if self.enabled:
            self.sink.open(self.id)

    @classmethod
    def disabled(cls, failure: Optional[Failure] = None) -> "RuntimeLogger":
        runtime_logger = cls(STATUS_DISABLED, "", None)
        runtime_logger.failure = failure
        return runtime_logger

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def records(self) -> List[LogRecord]:
        return list(self._records)

    def log(self, *messages: Any) -> None:
        self.write(messages, LogType.LOG)

    def error(self, *messages: Any) -> None:
        self.write(messages, LogType.ERROR)

    def write(self, messages, log_type: LogType = LogType.LOG) -> None:
        if not self.enabled or self._closed:
            return
        if isinstance(messages, (list, tuple)):
            text = " ".join(_stringify(m) for m in messages)
        else:
            text = _stringify(messages)
        self._append(text, log_type)

    def write_native(self, text: str, log_type: LogType) -> None:
        """Collect raw stream output; complete lines become records."""
        if not self.enabled or self._closed or not text:
            return
        buffered = self._native[log_type] + text
        *lines, rest = buffered.split("\n")
        self._native[log_type] = rest
        for line in lines:
            self._append_native(line, log_type)

    def _append_native(self, line: str, log_type: LogType) -> None:
        if not line.strip():
            return
        if not self._native_detected:
            self._native_detected = True
            self._append(NATIVE_LOGS_MESSAGE, LogType.LOG)
        self._append(line.rstrip(), log_type)

    def _append(self, text: str, log_type: LogType) -> None:
        if self._truncated[log_type]:
            return
        size = len(text) + 1
        if self._sizes[log_type] + size > MAX_LOG_SIZE:
            self._truncated[log_type] = True
            self._records.append(LogRecord(id=self.id, type=log_type, message=TRUNCATED_MESSAGE))
            return
        self._sizes[log_type] += size
        self._records.append(LogRecord(id=self.id, type=log_type, message=text))

    def end(self) -> None:
        """
        Flush buffered records to the sink once and stop accepting writes.

        Sink failures are logged and swallowed.
        """
        if self._closed:
            return
        for log_type in LogType:
            rest = self._native[log_type]
            self._native[log_type] = ""
            self._append_native(rest, log_type)
        self._closed = True

        if not self.enabled or not self._records:
            return

        try:
            self.sink.write(self.id, list(self._records))
        except Exception as e:
            logger.warning(
                f"Failed to flush logs for {self.id}: {e}",
                extra={"log_id": self.id, "error_type": type(e).__name__},
            )


class InvocationStream:
    """
    Stand-in for sys.stdout / sys.stderr.

    Writes made while an invocation logger is bound to the current context go
    to that logger; everything else reaches the original stream.
    """

    def __init__(self, original, log_type: LogType):
        self.original = original
        self.log_type = log_type

    def write(self, text: str) -> int:
        runtime_logger = _active_logger.get()
        if runtime_logger is None:
            return self.original.write(text)
        runtime_logger.write_native(text, self.log_type)
        return len(text)

    def writelines(self, lines) -> None:
        for line in lines:
            self.write(line)

    def flush(self) -> None:
        if _active_logger.get() is None:
            self.original.flush()

    def __getattr__(self, name):
        return getattr(self.original, name)


def install_stream_capture() -> None:
    """Install the stdout/stderr proxies once per process."""
    if not isinstance(sys.stdout, InvocationStream):
        sys.stdout = InvocationStream(sys.stdout, LogType.LOG)
    if not isinstance(sys.stderr, InvocationStream):
        sys.stderr = InvocationStream(sys.stderr, LogType.ERROR)


def uninstall_stream_capture() -> None:
    if isinstance(sys.stdout, InvocationStream):
        sys.stdout = sys.stdout.original
    if isinstance(sys.stderr, InvocationStream):
        sys.stderr = sys.stderr.original


class LogCapture:
    """Opens one capture session per invocation against a shared sink."""

    def __init__(self, sink: Optional[LogSink]):
        self.sink = sink

    def open_logger(self, status: Optional[str], log_id: Optional[str]) -> RuntimeLogger:
        try:
            return RuntimeLogger(status, log_id, self.sink)
        except LoggingUnavailableError as e:
            logger.warning(
                f"Log sink unavailable, continuing with logging disabled: {e}",
                extra={
                    "error_type": type(e.cause).__name__,
                    "failure_kind": FailureKind.LOGGING_UNAVAILABLE.value,
                },
            )
            return RuntimeLogger.disabled(
                Failure(kind=FailureKind.LOGGING_UNAVAILABLE, detail=str(e))
            )

    @contextmanager
    def session(self, status: Optional[str], log_id: Optional[str]) -> Iterator[RuntimeLogger]:
        """
        Bind a fresh RuntimeLogger to the current context.

        The logger is flushed and unbound on every exit path.
        """
        runtime_logger = self.open_logger(status, log_id)
        previous_log_id = get_log_id()
        token = _active_logger.set(runtime_logger)
        set_log_id(runtime_logger.id)
        try:
            yield runtime_logger
        finally:
            _active_logger.reset(token)
            set_log_id(previous_log_id)
            runtime_logger.end()
