import pytest
from fastapi import Request

from services.runtime.core.exceptions import global_exception_handler
from services.runtime.core.headers import LOG_ID_HEADER
from services.runtime.models.context import CancellationToken, RuntimeResponse


def test_response_builders():
    res = RuntimeResponse()

    assert res.send("x").status_code == 200
    assert res.text("hi", 202, {"x-a": "1"}).headers == {"x-a": "1"}
    assert res.binary(b"\x01").body == b"\x01"
    assert res.empty().status_code == 204
    assert res.empty().body == b""

    json_output = res.json({"a": [1, 2]}, 201)
    assert json_output.status_code == 201
    assert json_output.body == '{"a": [1, 2]}'
    assert json_output.headers == {"content-type": "application/json"}

    redirect = res.redirect("/elsewhere", 302, {"x-b": "2"})
    assert redirect.status_code == 302
    assert redirect.headers == {"x-b": "2", "location": "/elsewhere"}


def test_builders_do_not_mutate_caller_headers():
    headers = {"x-a": "1"}

    RuntimeResponse().json({}, headers=headers)

    assert headers == {"x-a": "1"}


def test_cancellation_token():
    token = CancellationToken()

    assert not token.is_cancelled
    assert token.wait(0.01) is False

    token.cancel()

    assert token.is_cancelled
    assert token.wait(0) is True


@pytest.mark.asyncio
async def test_global_exception_handler_hides_detail(caplog):
    scope = {"type": "http", "method": "GET", "path": "/boom", "headers": [], "query_string": b""}
    request = Request(scope)
    request.state.log_id = "abc"

    response = await global_exception_handler(request, RuntimeError("internal detail"))

    assert response.status_code == 500
    assert response.body == b""
    assert response.headers[LOG_ID_HEADER] == "abc"
    assert "internal detail" in caplog.text
