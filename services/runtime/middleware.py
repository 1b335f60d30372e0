"""
Runtime HTTP middleware for structured access logging.
"""

import logging
import time

from fastapi import Request

from .core.headers import LOG_ID_HEADER

logger = logging.getLogger("runtime.main")


async def access_log_middleware(request: Request, call_next):
    """One structured line per request, tagged with the invocation log id."""
    start_time = time.perf_counter()

    response = await call_next(request)

    process_time_ms = round((time.perf_counter() - start_time) * 1000, 2)
    log_id = response.headers.get(LOG_ID_HEADER, "")

    logger.info(
        f"{request.method} {request.url.path} {response.status_code}",
        extra={
            "log_id": log_id,
            "method": request.method,
            "path": request.url.path,
            "query_params": str(request.query_params),
            "status": response.status_code,
            "latency_ms": process_time_ms,
            "user_agent": request.headers.get("user-agent"),
            "client_ip": request.client.host if request.client else None,
        },
    )

    return response
