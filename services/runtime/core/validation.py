"""
Pre-invocation validation.

Both checks return a Failure instead of raising; a failure short-circuits the
invocation before any handler runs.
"""

import re
import threading
from typing import Optional, Tuple

from .exceptions import Failure, FailureKind

UNAUTHORIZED_MESSAGE = 'Unauthorized. Provide correct "x-open-runtimes-secret" header.'
INVALID_TIMEOUT_MESSAGE = 'Header "x-open-runtimes-timeout" must be an integer greater than 0.'

_INTEGER = re.compile(r"[+-]?[0-9]+")

# Largest bound the event loop can schedule; bigger values are clamped to it.
MAX_TIMEOUT = int(threading.TIMEOUT_MAX)


def validate_secret(configured_secret: str, provided: Optional[str]) -> Optional[Failure]:
    """Open mode when no secret is configured; otherwise an exact match is required."""
    if not configured_secret:
        return None
    if (provided or "") != configured_secret:
        return Failure(kind=FailureKind.VALIDATION, detail=UNAUTHORIZED_MESSAGE)
    return None


def parse_timeout(value: Optional[str]) -> Tuple[Optional[int], Optional[Failure]]:
    """
    Parse the timeout header.

    Returns (None, None) for an unbounded invocation, (seconds, None) for a
    bounded one, and (None, failure) when the header is not a positive
    base-10 integer. Values above MAX_TIMEOUT are clamped.
    """
    if value is None or value == "":
        return None, None

    if not _INTEGER.fullmatch(value) or value.startswith("-"):
        return None, Failure(kind=FailureKind.VALIDATION, detail=INVALID_TIMEOUT_MESSAGE)

    digits = value.lstrip("+").lstrip("0")
    if not digits:
        return None, Failure(kind=FailureKind.VALIDATION, detail=INVALID_TIMEOUT_MESSAGE)
    # Compare lengths first; int() refuses very long digit strings.
    if len(digits) > len(str(MAX_TIMEOUT)):
        return MAX_TIMEOUT, None
    return min(int(digits), MAX_TIMEOUT), None
