from services.runtime.core.assembler import ResponseAssembler, normalize_content_type
from services.runtime.core.headers import LOG_ID_HEADER
from services.runtime.models.result import FunctionOutput


def test_content_type_gets_utf8_charset():
    assert normalize_content_type("text/plain") == "text/plain; charset=utf-8"
    assert normalize_content_type("Application/JSON") == "application/json; charset=utf-8"


def test_content_type_with_charset_is_only_lowercased():
    assert normalize_content_type("text/html; Charset=ISO-8859-1") == "text/html; charset=iso-8859-1"


def test_multipart_content_type_is_untouched():
    value = "multipart/form-data; boundary=AbC"
    assert normalize_content_type(value) == value


def test_build_headers_applies_policy():
    assembler = ResponseAssembler({"X-App": "v1"})
    output = FunctionOutput(
        status_code=201,
        body="created",
        headers={
            "Content-Type": "text/plain",
            "X-App": "other",
            "X-Open-Runtimes-Log-Id": "forged",
            "x-open-runtimes-anything": "dropped",
            "X-Custom": "kept",
        },
    )

    headers = assembler.build_headers(output, "log123")

    assert headers == {
        "content-type": "text/plain; charset=utf-8",
        "x-app": "v1",
        "x-custom": "kept",
        LOG_ID_HEADER: "log123",
    }


def test_assemble_sets_status_body_and_log_id():
    response = ResponseAssembler().assemble(FunctionOutput(status_code=418, body="teapot"), "")

    assert response.status_code == 418
    assert response.body == b"teapot"
    assert response.headers[LOG_ID_HEADER] == ""


def test_assemble_binary_body():
    response = ResponseAssembler().assemble(FunctionOutput(body=b"\x00\xff"), "id")

    assert response.body == b"\x00\xff"
