"""
Request normalization.

Builds the canonical IncomingRequest from transport input:
cookies folded into a `cookie` header, lowercase header keys with internal
control headers removed, scheme/host/port resolution, query parsing and the
reconstructed absolute URL.
"""

import logging
from typing import Dict, Mapping, Optional, Tuple

from ..models.request import IncomingRequest, RawRequest
from .headers import FORWARDED_PROTO_HEADER, is_internal

logger = logging.getLogger("runtime.normalizer")


def default_port(scheme: str) -> int:
    return 443 if scheme == "https" else 80


def serialize_cookies(cookies: Mapping[str, str]) -> str:
    return "; ".join(f"{key}={value}" for key, value in cookies.items())


def parse_query(raw_query: str) -> Dict[str, str]:
    """
    Split on `&`, then on the first `=`.

    A key without `=` gets an empty value, an empty key is skipped and the
    last occurrence of a key wins.
    """
    query: Dict[str, str] = {}
    for param in raw_query.split("&"):
        key, _, value = param.partition("=")
        if not key:
            continue
        query[key] = value
    return query


def split_host(host_header: str, scheme: str) -> Tuple[str, int]:
    port = default_port(scheme)
    if ":" not in host_header:
        return host_header, port

    parts = host_header.split(":")
    host = parts[0]
    try:
        port = int(parts[1])
    except ValueError:
        logger.warning(f"Ignoring non-numeric port in host header: {host_header!r}")
    return host, port


def build_url(scheme: str, host: str, port: int, path: str, raw_query: str) -> str:
    url = f"{scheme}://{host}"
    if port != default_port(scheme):
        url += f":{port}"
    url += path
    if raw_query:
        url += f"?{raw_query}"
    return url


class RequestNormalizer:
    """Turns a RawRequest into an IncomingRequest."""

    def __init__(self, enforced_headers: Optional[Mapping[str, str]] = None):
        self.enforced_headers = dict(enforced_headers or {})

    def lowercase_headers(self, raw: RawRequest) -> Dict[str, str]:
        """All inbound headers with lowercase keys, cookies folded in."""
        headers = {key.lower(): value for key, value in raw.headers.items()}
        if raw.cookies:
            headers["cookie"] = serialize_cookies(raw.cookies)
        return headers

    def normalize(self, raw: RawRequest) -> IncomingRequest:
        inbound = self.lowercase_headers(raw)

        headers = {key: value for key, value in inbound.items() if not is_internal(key)}
        for key, value in self.enforced_headers.items():
            if not is_internal(key):
                headers[key.lower()] = value

        scheme = inbound.get(FORWARDED_PROTO_HEADER) or "http"
        host, port = split_host(inbound.get("host", ""), scheme)
        path = raw.path or "/"

        return IncomingRequest(
            method=raw.method.upper(),
            scheme=scheme,
            host=host,
            port=port,
            path=path,
            query=parse_query(raw.raw_query),
            raw_query=raw.raw_query,
            headers=headers,
            body=raw.body,
            url=build_url(scheme, host, port, path, raw.raw_query),
        )
