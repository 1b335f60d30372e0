"""
Execution Engine

Resolves the configured entrypoint and runs it with an ExecutionContext,
optionally bounded by a wall-clock timeout. Every outcome, including
failures, comes back as an InvocationOutcome carrying a FunctionOutput.

Synchronous handlers run on the engine's thread pool; coroutine handlers run
on the event loop. When a bounded invocation times out the engine stops
waiting and answers immediately. Cancellation is cooperative only: the
context's CancellationToken is set and coroutine handlers are cancelled at
their next await, but a synchronous handler that never checks the token keeps
its worker thread busy until it returns. Whatever it returns then is dropped,
and its capture session is already closed, so late log writes are dropped too.

Coroutine handlers share the event loop with the server. One that blocks
without awaiting (a CPU loop, time.sleep, blocking I/O) stalls the loop: its
timeout cannot fire and no other request is served until it yields. Blocking
work belongs in a synchronous handler, which runs on the thread pool.
"""

import asyncio
import contextvars
import inspect
import logging
import traceback
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Optional

from ..core.exceptions import EntrypointNotFoundError, Failure, FailureKind
from ..models.context import ExecutionContext
from ..models.result import FunctionOutput, InvocationOutcome
from .handler_registry import HandlerRegistry

logger = logging.getLogger("runtime.engine")

TIMEOUT_MESSAGE = "Execution timed out."
MISSING_RETURN_MESSAGE = (
    "Return statement missing. return context.res.empty() if no response is expected."
)


def _discard_result(task: "asyncio.Future") -> None:
    # Retrieve the late outcome so asyncio does not report it as unhandled.
    if not task.cancelled():
        task.exception()


class ExecutionEngine:
    def __init__(
        self,
        registry: HandlerRegistry,
        entrypoint: str,
        pool_size: int = 32,
        executor: Optional[ThreadPoolExecutor] = None,
    ):
        """
        Args:
            registry: HandlerRegistry to resolve the entrypoint from
            entrypoint: Registered handler name
            pool_size: Worker threads for synchronous handlers
            executor: Pre-built executor (overrides pool_size)
        """
        self.registry = registry
        self.entrypoint = entrypoint
        self.executor = executor or ThreadPoolExecutor(
            max_workers=pool_size, thread_name_prefix="handler"
        )

    def shutdown(self) -> None:
        """Stop accepting work. Threads still running a timed-out handler are not joined."""
        self.executor.shutdown(wait=False, cancel_futures=True)

    async def execute(
        self, context: ExecutionContext, timeout: Optional[int] = None
    ) -> InvocationOutcome:
        """
        Run the entrypoint handler.

        Args:
            context: Context of this invocation
            timeout: Seconds to wait for the handler, or None for no bound

        Returns:
            InvocationOutcome; `failure` is set whenever the output was synthesized
        """
        try:
            handler = self.registry.resolve(self.entrypoint)
        except EntrypointNotFoundError:
            return self._contain(context, FailureKind.ENTRYPOINT_NOT_FOUND)

        task = None
        try:
            if timeout is None:
                result = await self._call(handler, context)
            else:
                task = asyncio.ensure_future(self._call(handler, context))
                done, _ = await asyncio.wait({task}, timeout=timeout)
                if task not in done:
                    return self._time_out(context, task, timeout)
                result = task.result()
        except Exception:
            if task is not None and not task.done():
                # The wait itself failed; the handler must not outlive the request.
                self._abandon(context, task)
            return self._contain(context, FailureKind.INVOCATION)

        if not isinstance(result, FunctionOutput):
            context.error(MISSING_RETURN_MESSAGE)
            logger.error(
                MISSING_RETURN_MESSAGE,
                extra={"entrypoint": self.entrypoint, "returned_type": type(result).__name__},
            )
            return InvocationOutcome(
                output=FunctionOutput.server_error(),
                failure=Failure(kind=FailureKind.MISSING_RETURN, detail=MISSING_RETURN_MESSAGE),
            )

        return InvocationOutcome(output=result)

    async def _call(self, handler, context: ExecutionContext) -> Any:
        if inspect.iscoroutinefunction(handler):
            return await handler(context)

        loop = asyncio.get_running_loop()
        # copy_context keeps the invocation's log binding inside the worker thread.
        ctx = contextvars.copy_context()
        result = await loop.run_in_executor(self.executor, ctx.run, handler, context)
        if inspect.isawaitable(result):
            result = await result
        return result

    @staticmethod
    def _abandon(context: ExecutionContext, task: "asyncio.Future") -> None:
        context.cancellation.cancel()
        task.cancel()
        task.add_done_callback(_discard_result)

    def _time_out(
        self, context: ExecutionContext, task: "asyncio.Future", timeout: int
    ) -> InvocationOutcome:
        self._abandon(context, task)

        context.error(TIMEOUT_MESSAGE)
        logger.error(
            TIMEOUT_MESSAGE,
            extra={"entrypoint": self.entrypoint, "timeout": timeout},
        )
        return InvocationOutcome(
            output=FunctionOutput.server_error(),
            failure=Failure(kind=FailureKind.TIMEOUT, detail=TIMEOUT_MESSAGE),
        )

    def _contain(self, context: ExecutionContext, kind: FailureKind) -> InvocationOutcome:
        """Must be called from an except block."""
        detail = traceback.format_exc()
        context.error(detail)
        logger.error(
            f"Handler {self.entrypoint!r} failed",
            exc_info=True,
            extra={"entrypoint": self.entrypoint, "failure_kind": kind.value},
        )
        return InvocationOutcome(
            output=FunctionOutput.server_error(),
            failure=Failure(kind=kind, detail=detail),
        )
