"""
Runtime configuration definition.

Loads configuration from environment variables and provides a Pydantic model.
Uses pydantic-settings for type safety and defaults. The instance is frozen:
it is read once at startup and shared read-only by every invocation.
"""

import json
import sys
from typing import Annotated, Any, Dict

from pydantic import Field, field_validator
from pydantic_settings import NoDecode, SettingsConfigDict

from services.common.core.config import BaseAppConfig


class RuntimeConfig(BaseAppConfig):
    """
    Configuration management for the function runtime.
    """

    # Server settings
    UVICORN_WORKERS: int = Field(default=1, description="Number of worker processes")
    UVICORN_BIND_ADDR: str = Field(default="0.0.0.0:3000", description="Listen address")

    # Invocation settings
    OPEN_RUNTIMES_SECRET: str = Field(
        default="", description="Required x-open-runtimes-secret value (empty disables the check)"
    )
    OPEN_RUNTIMES_HEADERS: Annotated[Dict[str, str], NoDecode] = Field(
        default_factory=dict, description="JSON object of headers forced onto every response"
    )
    OPEN_RUNTIMES_ENTRYPOINT: str = Field(
        default="index", description="Registered handler name that serves requests"
    )
    OPEN_RUNTIMES_HANDLERS: str = Field(
        default="", description="Module imported at startup to register handlers"
    )
    HANDLER_POOL_SIZE: int = Field(
        default=32, ge=1, description="Worker threads available to synchronous handlers"
    )

    # Log sink
    LOGS_DIR: str = Field(default="/mnt/logs", description="Directory for invocation log files")

    model_config = SettingsConfigDict(frozen=True)

    @field_validator("OPEN_RUNTIMES_HEADERS", mode="before")
    @classmethod
    def parse_enforced_headers(cls, value: Any) -> Dict[str, str]:
        if value is None:
            return {}
        if isinstance(value, (str, bytes)):
            value = value.strip()
            if not value:
                return {}
            value = json.loads(value)
        if not isinstance(value, dict):
            raise ValueError("OPEN_RUNTIMES_HEADERS must be a JSON object")
        return {str(k).lower(): v if isinstance(v, str) else json.dumps(v) for k, v in value.items()}

    @property
    def enforced_headers(self) -> Dict[str, str]:
        return dict(self.OPEN_RUNTIMES_HEADERS)

    @property
    def bind_host(self) -> str:
        return self.UVICORN_BIND_ADDR.rsplit(":", 1)[0]

    @property
    def bind_port(self) -> int:
        return int(self.UVICORN_BIND_ADDR.rsplit(":", 1)[1])


# Load config as a singleton.
# pydantic-settings reads environment variables during instantiation.
try:
    config = RuntimeConfig()
except Exception as e:
    sys.stderr.write(f"Failed to load configuration: {e}\n")
    raise
