"""
Handler registry.

Explicit entrypoint-name-to-callable table. Handlers are registered at
startup, either directly or with the decorator:

    registry = HandlerRegistry()

    @registry.register("index")
    def main(context):
        return context.res.text("ok")

Lookups never fall back to dynamic imports, so an unknown entrypoint is a
typed EntrypointNotFoundError.
"""

import importlib
import logging
from typing import Callable, Dict, Iterator, Optional

from ..core.exceptions import EntrypointNotFoundError, HandlerRegistrationError

logger = logging.getLogger("runtime.registry")

Handler = Callable[..., object]


class HandlerRegistry:
    def __init__(self, handlers: Optional[Dict[str, Handler]] = None):
        self._handlers: Dict[str, Handler] = {}
        for name, handler in (handlers or {}).items():
            self.add(name, handler)

    def add(self, name: str, handler: Handler) -> None:
        if not callable(handler):
            raise HandlerRegistrationError(name, "handler is not callable")
        if name in self._handlers:
            raise HandlerRegistrationError(name, "name already registered")
        self._handlers[name] = handler
        logger.debug(f"Registered handler {name!r}")

    def register(self, name: str) -> Callable[[Handler], Handler]:
        def decorator(handler: Handler) -> Handler:
            self.add(name, handler)
            return handler

        return decorator

    def resolve(self, name: str) -> Handler:
        try:
            return self._handlers[name]
        except KeyError:
            raise EntrypointNotFoundError(name) from None

    def __contains__(self, name: str) -> bool:
        return name in self._handlers

    def __iter__(self) -> Iterator[str]:
        return iter(self._handlers)

    def __len__(self) -> int:
        return len(self._handlers)


# Process-wide table populated by handler modules at import time.
registry = HandlerRegistry()


def load_handlers(module_name: str) -> None:
    """
    Import the module that registers the process's handlers.

    Runs once at startup; request-time resolution only reads the table.
    """
    if not module_name:
        return
    importlib.import_module(module_name)
    logger.info(
        f"Loaded handlers from {module_name}",
        extra={"handlers": sorted(registry)},
    )
