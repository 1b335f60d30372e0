"""
Invocation Pipeline

One end-to-end invocation: capture session, validation, normalization,
execution and response assembly. The capture session wraps everything so the
log-id header is present on every response and buffered records are flushed
on every exit path.
"""

import logging
import time
from typing import Mapping, Optional, Tuple

from fastapi.responses import Response

from ..config import RuntimeConfig
from ..core.assembler import ResponseAssembler
from ..core.exceptions import Failure
from ..core.headers import LOG_ID_HEADER, LOGGING_HEADER, SECRET_HEADER, TIMEOUT_HEADER
from ..core.log_capture import LogCapture
from ..core.normalizer import RequestNormalizer
from ..core.validation import parse_timeout, validate_secret
from ..models.context import ExecutionContext
from ..models.request import RawRequest
from ..models.result import FunctionOutput, InvocationOutcome
from .execution_engine import ExecutionEngine

logger = logging.getLogger("runtime.invocation")


class InvocationPipeline:
    def __init__(
        self,
        config: RuntimeConfig,
        engine: ExecutionEngine,
        log_capture: LogCapture,
        normalizer: Optional[RequestNormalizer] = None,
        assembler: Optional[ResponseAssembler] = None,
    ):
        self.config = config
        self.engine = engine
        self.log_capture = log_capture
        self.normalizer = normalizer or RequestNormalizer(config.enforced_headers)
        self.assembler = assembler or ResponseAssembler(config.enforced_headers)

    def validate(self, headers: Mapping[str, str]) -> Tuple[Optional[int], Optional[Failure]]:
        timeout, failure = parse_timeout(headers.get(TIMEOUT_HEADER))
        if failure is None:
            failure = validate_secret(self.config.OPEN_RUNTIMES_SECRET, headers.get(SECRET_HEADER))
        return timeout, failure

    async def handle(self, raw: RawRequest) -> Response:
        inbound = self.normalizer.lowercase_headers(raw)
        start_time = time.perf_counter()

        with self.log_capture.session(
            inbound.get(LOGGING_HEADER), inbound.get(LOG_ID_HEADER)
        ) as runtime_logger:
            timeout, failure = self.validate(inbound)
            if failure is not None:
                logger.warning(
                    f"Rejected {raw.method} {raw.path}: {failure.detail}",
                    extra={"failure_kind": failure.kind.value},
                )
                outcome = InvocationOutcome(
                    output=FunctionOutput(
                        status_code=500,
                        body=failure.detail,
                        headers={"content-type": "text/plain"},
                    ),
                    failure=failure,
                )
            else:
                request = self.normalizer.normalize(raw)
                context = ExecutionContext(request, runtime_logger)
                outcome = await self.engine.execute(context, timeout)

        logger.debug(
            f"Invocation finished with {outcome.output.status_code}",
            extra={
                "log_id": runtime_logger.id,
                "failure_kind": outcome.failure.kind.value if outcome.failure else None,
                "logging_failure": (
                    runtime_logger.failure.kind.value if runtime_logger.failure else None
                ),
                "duration_ms": round((time.perf_counter() - start_time) * 1000, 2),
            },
        )
        return self.assembler.assemble(outcome.output, runtime_logger.id)
