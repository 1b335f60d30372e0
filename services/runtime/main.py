"""
Function Runtime - HTTP invocation adapter

Accepts every verb on every path, turns the call into an ExecutionContext,
runs the configured handler and returns its output as the HTTP response.
"""

from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
import logging

from .api.deps import InvocationPipelineDep
from .config import RuntimeConfig, config
from .core.headers import LOG_ID_HEADER
from .core.log_capture import FileLogSink, LogCapture, install_stream_capture, uninstall_stream_capture
from .core.logging_config import setup_logging
from .exceptions import register_exception_handlers
from .middleware import access_log_middleware
from .models.request import RawRequest
from .services.execution_engine import ExecutionEngine
from .services.handler_registry import HandlerRegistry, load_handlers, registry
from .services.invocation import InvocationPipeline

# Logger setup
setup_logging()
logger = logging.getLogger("runtime.main")

HTTP_METHODS = ["GET", "POST", "PUT", "DELETE", "PATCH", "OPTIONS", "HEAD"]


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage application lifecycle."""
    # Logging handlers already hold the real streams, so operational logs
    # bypass the proxies installed here.
    install_stream_capture()
    logger.info(
        "Runtime initialized.",
        extra={"entrypoint": app.state.config.OPEN_RUNTIMES_ENTRYPOINT},
    )

    yield

    logger.info("Runtime shutting down.")
    app.state.execution_engine.shutdown()
    uninstall_stream_capture()


async def invoke(request: Request, pipeline: InvocationPipelineDep):
    """
    Catch-all route: forward the call to the invocation pipeline.
    """
    request.state.log_id = request.headers.get(LOG_ID_HEADER, "")
    raw = RawRequest(
        method=request.method,
        path=request.url.path,
        headers=dict(request.headers),
        raw_query=request.url.query,
        cookies=request.cookies,
        body=await request.body(),
    )
    return await pipeline.handle(raw)


def create_app(
    runtime_config: Optional[RuntimeConfig] = None,
    handler_registry: Optional[HandlerRegistry] = None,
) -> FastAPI:
    """
    Build the runtime application.

    Args:
        runtime_config: Settings to use (defaults to the environment singleton)
        handler_registry: Handler table (defaults to the process-wide registry,
            populated from OPEN_RUNTIMES_HANDLERS)
    """
    runtime_config = runtime_config or config
    if handler_registry is None:
        load_handlers(runtime_config.OPEN_RUNTIMES_HANDLERS)
        handler_registry = registry

    engine = ExecutionEngine(
        registry=handler_registry,
        entrypoint=runtime_config.OPEN_RUNTIMES_ENTRYPOINT,
        pool_size=runtime_config.HANDLER_POOL_SIZE,
    )
    pipeline = InvocationPipeline(
        config=runtime_config,
        engine=engine,
        log_capture=LogCapture(FileLogSink(runtime_config.LOGS_DIR)),
    )

    # No docs routes: every path belongs to the handler.
    app = FastAPI(
        title="Function Runtime",
        version="1.0.0",
        lifespan=lifespan,
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
    )
    # Store in app.state for DI
    app.state.config = runtime_config
    app.state.execution_engine = engine
    app.state.invocation_pipeline = pipeline

    app.middleware("http")(access_log_middleware)
    register_exception_handlers(app)

    app.add_api_route("/", invoke, methods=HTTP_METHODS, include_in_schema=False)
    app.add_api_route("/{path:path}", invoke, methods=HTTP_METHODS, include_in_schema=False)

    return app


app = create_app()


def run() -> None:
    import uvicorn

    uvicorn.run(
        "services.runtime.main:app",
        host=config.bind_host,
        port=config.bind_port,
        workers=config.UVICORN_WORKERS,
    )


if __name__ == "__main__":
    run()
