"""
Response assembly.

Applies the outbound header policy to a FunctionOutput and produces the
transport response.
"""

from typing import Dict, Mapping, Optional

from fastapi.responses import Response

from ..models.result import FunctionOutput
from .headers import LOG_ID_HEADER, is_internal


def normalize_content_type(value: str) -> str:
    """Lowercase and default the charset to UTF-8, except for multipart bodies."""
    if value.startswith("multipart/"):
        return value
    value = value.lower()
    if "charset=" not in value:
        value += "; charset=utf-8"
    return value


class ResponseAssembler:
    def __init__(self, enforced_headers: Optional[Mapping[str, str]] = None):
        self.enforced_headers = {k.lower(): v for k, v in (enforced_headers or {}).items()}

    def build_headers(self, output: FunctionOutput, log_id: str) -> Dict[str, str]:
        headers: Dict[str, str] = {}
        for key, value in output.headers.items():
            name = key.lower()
            if is_internal(name):
                continue
            headers[name] = str(value)

        for name, value in self.enforced_headers.items():
            if not is_internal(name):
                headers[name] = value

        if "content-type" in headers:
            headers["content-type"] = normalize_content_type(headers["content-type"])

        headers[LOG_ID_HEADER] = log_id
        return headers

    def assemble(self, output: FunctionOutput, log_id: str) -> Response:
        return Response(
            content=output.body_bytes,
            status_code=output.status_code,
            headers=self.build_headers(output, log_id),
        )
