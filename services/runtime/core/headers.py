"""
Header names and prefixes shared by the normalizer and the assembler.
"""

INTERNAL_PREFIX = "x-open-runtimes-"

SECRET_HEADER = "x-open-runtimes-secret"
TIMEOUT_HEADER = "x-open-runtimes-timeout"
LOGGING_HEADER = "x-open-runtimes-logging"
LOG_ID_HEADER = "x-open-runtimes-log-id"

FORWARDED_PROTO_HEADER = "x-forwarded-proto"


def is_internal(name: str) -> bool:
    return name.lower().startswith(INTERNAL_PREFIX)
