import pytest

from services.runtime.core.normalizer import (
    RequestNormalizer,
    build_url,
    parse_query,
    serialize_cookies,
    split_host,
)
from services.runtime.models.request import RawRequest


def _raw(**kwargs):
    kwargs.setdefault("method", "GET")
    return RawRequest(**kwargs)


def test_url_round_trip_with_default_https_port():
    url = build_url("https", "example.com", 443, "/a/b", "x=1&y=2")

    assert url == "https://example.com/a/b?x=1&y=2"
    assert parse_query(url.split("?", 1)[1]) == {"x": "1", "y": "2"}


def test_url_keeps_non_default_port_and_drops_empty_query():
    assert build_url("http", "localhost", 3000, "/", "") == "http://localhost:3000/"
    assert build_url("https", "example.com", 80, "/", "") == "https://example.com:80/"


@pytest.mark.parametrize(
    "raw_query, expected",
    [
        ("", {}),
        ("a=1&b=2", {"a": "1", "b": "2"}),
        ("flag", {"flag": ""}),
        ("a=1&a=2", {"a": "2"}),
        ("=skipped&b=2", {"b": "2"}),
        ("a=b=c", {"a": "b=c"}),
        ("a=&&b", {"a": "", "b": ""}),
    ],
)
def test_parse_query(raw_query, expected):
    assert parse_query(raw_query) == expected


def test_split_host():
    assert split_host("example.com:8080", "http") == ("example.com", 8080)
    assert split_host("example.com", "https") == ("example.com", 443)
    assert split_host("", "http") == ("", 80)


def test_split_host_non_numeric_port_falls_back_to_default():
    assert split_host("example.com:abc", "https") == ("example.com", 443)


def test_serialize_cookies():
    assert serialize_cookies({"a": "1", "b": "2"}) == "a=1; b=2"


def test_normalize_builds_canonical_request():
    raw = _raw(
        method="post",
        path="/a/b",
        raw_query="x=1&y=2",
        headers={
            "Host": "example.com",
            "X-Forwarded-Proto": "https",
            "Content-Type": "application/json",
            "X-Open-Runtimes-Secret": "s3cr3t",
            "x-open-runtimes-timeout": "5",
        },
        body=b'{"hello": "world"}',
    )

    request = RequestNormalizer().normalize(raw)

    assert request.method == "POST"
    assert request.scheme == "https"
    assert request.host == "example.com"
    assert request.port == 443
    assert request.url == "https://example.com/a/b?x=1&y=2"
    assert request.query == {"x": "1", "y": "2"}
    assert request.raw_query == "x=1&y=2"
    assert request.body_json == {"hello": "world"}
    assert request.body_text == '{"hello": "world"}'
    assert request.headers == {
        "host": "example.com",
        "x-forwarded-proto": "https",
        "content-type": "application/json",
    }


def test_normalize_headers_are_lowercase_without_internal_prefix():
    raw = _raw(
        headers={
            "Accept": "*/*",
            "X-OPEN-RUNTIMES-LOG-ID": "abc",
            "x-open-runtimes-logging": "enabled",
            "X-Custom-Header": "Value",
        }
    )

    request = RequestNormalizer().normalize(raw)

    assert all(key == key.lower() for key in request.headers)
    assert not any(key.startswith("x-open-runtimes-") for key in request.headers)
    assert request.headers["x-custom-header"] == "Value"


def test_normalize_folds_cookies_into_header():
    raw = _raw(headers={"cookie": "ignored=1"}, cookies={"session": "abc", "theme": "dark"})

    request = RequestNormalizer().normalize(raw)

    assert request.headers["cookie"] == "session=abc; theme=dark"


def test_normalize_without_host_header():
    request = RequestNormalizer().normalize(_raw(path="/ping"))

    assert request.host == ""
    assert request.port == 80
    assert request.url == "http:///ping"


def test_normalize_merges_enforced_headers_into_request():
    normalizer = RequestNormalizer({"X-App": "v1", "x-open-runtimes-internal": "hidden"})

    request = normalizer.normalize(_raw(headers={"x-app": "client"}))

    assert request.headers["x-app"] == "v1"
    assert "x-open-runtimes-internal" not in request.headers


def test_incoming_request_is_immutable():
    request = RequestNormalizer().normalize(_raw())

    with pytest.raises(Exception):
        request.path = "/changed"


@pytest.mark.parametrize(
    "content_type, body, expected",
    [
        ("application/json", b'{"a": [1, 2]}', {"a": [1, 2]}),
        ("Application/JSON; charset=utf-8", b"[1]", [1]),
        ("application/json", b"", {}),
        ("text/plain", b'{"a": 1}', '{"a": 1}'),
        (None, b"plain", "plain"),
    ],
)
def test_body_parsed_follows_content_type(content_type, body, expected):
    headers = {"content-type": content_type} if content_type else {}

    request = RequestNormalizer().normalize(_raw(method="POST", headers=headers, body=body))

    assert request.body_parsed == expected
    assert request.body_raw == body.decode("utf-8")
