"""
Data model definitions package.

Aggregates the models passed between normalizer, engine and assembler.
"""

from .context import CancellationToken, ExecutionContext, RuntimeResponse
from .log_record import LogRecord, LogType
from .request import IncomingRequest, RawRequest
from .result import FunctionOutput, InvocationOutcome

__all__ = [
    "CancellationToken",
    "ExecutionContext",
    "RuntimeResponse",
    "LogRecord",
    "LogType",
    "IncomingRequest",
    "RawRequest",
    "FunctionOutput",
    "InvocationOutcome",
]
