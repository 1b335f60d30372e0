"""
Request models.

RawRequest is what the transport hands over; IncomingRequest is the
normalized, read-only view a handler receives.
"""

import json
from typing import Any, Dict

from pydantic import BaseModel, ConfigDict, Field


class RawRequest(BaseModel):
    """
    Transport input before normalization.

    Decouples the normalizer from FastAPI's Request object.
    """

    method: str
    path: str = "/"
    headers: Dict[str, str] = Field(default_factory=dict)
    raw_query: str = ""
    cookies: Dict[str, str] = Field(default_factory=dict)
    body: bytes = b""


class IncomingRequest(BaseModel):
    """Canonical request seen by a handler."""

    model_config = ConfigDict(frozen=True)

    method: str
    scheme: str
    host: str
    port: int
    path: str
    query: Dict[str, str] = Field(default_factory=dict)
    raw_query: str = ""
    headers: Dict[str, str] = Field(default_factory=dict)
    body: bytes = b""
    url: str

    @property
    def body_binary(self) -> bytes:
        return self.body

    @property
    def body_text(self) -> str:
        return self.body.decode("utf-8")

    @property
    def body_raw(self) -> str:
        return self.body_text

    @property
    def body_json(self) -> Any:
        """Parse the body as JSON. Raises ValueError on malformed input."""
        return json.loads(self.body_text)

    @property
    def body_parsed(self) -> Any:
        """
        JSON for `application/json` requests, text otherwise.

        An empty JSON body parses to an empty dict.
        """
        content_type = self.headers.get("content-type", "").lower()
        if not content_type.startswith("application/json"):
            return self.body_text
        if not self.body:
            return {}
        return self.body_json
