"""
Execution context models.

An ExecutionContext belongs to exactly one in-flight invocation and is what
the user handler receives:

    def main(context):
        context.log("hello")
        return context.res.json({"path": context.req.path})
"""

import json
import threading
from typing import TYPE_CHECKING, Any, Dict, Optional, Union

from .request import IncomingRequest
from .result import FunctionOutput

if TYPE_CHECKING:
    from ..core.log_capture import RuntimeLogger


class CancellationToken:
    """
    Cooperative cancellation signal.

    The engine sets it when a bounded invocation times out. Setting it does
    not stop a handler running on a worker thread; long-running handlers are
    expected to poll `is_cancelled` or block on `wait()`.
    """

    def __init__(self):
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def is_cancelled(self) -> bool:
        return self._event.is_set()

    def wait(self, timeout: Optional[float] = None) -> bool:
        """Block until cancelled or `timeout` elapses. Returns True if cancelled."""
        return self._event.wait(timeout)


class RuntimeResponse:
    """Builder handlers use to produce their FunctionOutput."""

    def send(
        self,
        body: Union[bytes, str],
        status_code: int = 200,
        headers: Optional[Dict[str, str]] = None,
    ) -> FunctionOutput:
        return FunctionOutput(status_code=status_code, body=body, headers=dict(headers or {}))

    def binary(
        self, body: bytes, status_code: int = 200, headers: Optional[Dict[str, str]] = None
    ) -> FunctionOutput:
        return self.send(body, status_code, headers)

    def text(
        self, body: str, status_code: int = 200, headers: Optional[Dict[str, str]] = None
    ) -> FunctionOutput:
        return self.send(body, status_code, headers)

    def json(
        self, obj: Any, status_code: int = 200, headers: Optional[Dict[str, str]] = None
    ) -> FunctionOutput:
        headers = dict(headers or {})
        headers["content-type"] = "application/json"
        return self.send(json.dumps(obj), status_code, headers)

    def empty(self) -> FunctionOutput:
        return self.send(b"", 204)

    def redirect(
        self, url: str, status_code: int = 301, headers: Optional[Dict[str, str]] = None
    ) -> FunctionOutput:
        headers = dict(headers or {})
        headers["location"] = url
        return self.send(b"", status_code, headers)


class ExecutionContext:
    """Request, response builder, logger and cancellation token of one invocation."""

    def __init__(
        self,
        req: IncomingRequest,
        logger: "RuntimeLogger",
        cancellation: Optional[CancellationToken] = None,
    ):
        self.req = req
        self.res = RuntimeResponse()
        self.logger = logger
        self.cancellation = cancellation or CancellationToken()

    def log(self, *messages: Any) -> None:
        self.logger.log(*messages)

    def error(self, *messages: Any) -> None:
        self.logger.error(*messages)
