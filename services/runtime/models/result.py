"""
Invocation result models.

Standardizes the output of the handler and of the invocation pipeline.
"""

from typing import Dict, Optional, Union

from pydantic import BaseModel, Field

from ..core.exceptions import Failure


class FunctionOutput(BaseModel):
    """What a handler returns, or what the engine synthesizes in its place."""

    status_code: int = 200
    body: Union[bytes, str] = b""
    headers: Dict[str, str] = Field(default_factory=dict)

    @property
    def body_bytes(self) -> bytes:
        if isinstance(self.body, str):
            return self.body.encode("utf-8")
        return self.body

    @classmethod
    def server_error(cls) -> "FunctionOutput":
        """Opaque 500 used for every post-invocation failure."""
        return cls(status_code=500, body=b"")


class InvocationOutcome(BaseModel):
    """
    Unified result of one handler invocation.

    `output` is always set; `failure` tells why it was synthesized.
    """

    output: FunctionOutput
    failure: Optional[Failure] = None

    @property
    def success(self) -> bool:
        return self.failure is None
