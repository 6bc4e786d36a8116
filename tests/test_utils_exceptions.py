import asyncio

import pytest

from seamrpc.utils.exceptions import (
    ErrorCategory,
    ErrorKind,
    RpcError,
    classify_exception,
    forbidden,
    missing_parameter,
    sanitize_error_message,
    unauthorized,
    validation_error,
)


@pytest.mark.parametrize(
    "kind,status",
    [
        (ErrorKind.NETWORK_ERROR, 503),
        (ErrorKind.TIMEOUT, 408),
        (ErrorKind.CONNECTION_FAILED, 0),
        (ErrorKind.INTERNAL_SERVER_ERROR, 500),
        (ErrorKind.FUNCTION_NOT_FOUND, 404),
        (ErrorKind.INVALID_ARGUMENTS, 400),
        (ErrorKind.SERIALIZATION_ERROR, 500),
        (ErrorKind.DESERIALIZATION_ERROR, 400),
        (ErrorKind.UNSUPPORTED_TYPE, 400),
        (ErrorKind.UNAUTHORIZED, 401),
        (ErrorKind.FORBIDDEN, 403),
        (ErrorKind.VALIDATION_ERROR, 400),
        (ErrorKind.MISSING_PARAMETER, 400),
    ],
)
def test_default_status_per_kind(kind, status):
    assert RpcError("x", kind).status_code == status


def test_only_transport_kinds_are_retryable():
    retryable = {k for k in ErrorKind if k.retryable}
    assert retryable == {ErrorKind.NETWORK_ERROR, ErrorKind.TIMEOUT, ErrorKind.CONNECTION_FAILED}
    assert all(k.category is ErrorCategory.TRANSPORT for k in retryable)


def test_payload_omits_stack_unless_requested():
    err = RpcError("boom", ErrorKind.INTERNAL_SERVER_ERROR, server_stack="Traceback...", context={"a": 1})
    assert err.to_payload() == {
        "code": "INTERNAL_SERVER_ERROR",
        "message": "boom",
        "statusCode": 500,
        "serverStack": "Traceback...",
        "context": {"a": 1},
    }
    assert "serverStack" not in err.to_payload(include_stack=False)


def test_from_payload_keeps_kind_status_and_context():
    err = RpcError.from_payload(
        {"code": "VALIDATION_ERROR", "message": "bad email", "statusCode": 422, "context": {"field": "email"}}
    )
    assert err.kind is ErrorKind.VALIDATION_ERROR
    assert err.status_code == 422
    assert err.context == {"field": "email"}
    assert str(err) == "[VALIDATION_ERROR] bad email"


def test_from_payload_unknown_code_becomes_internal():
    err = RpcError.from_payload({"code": "TEAPOT", "message": "short and stout"})
    assert err.kind is ErrorKind.INTERNAL_SERVER_ERROR
    assert err.status_code == 500
    assert err.context == {"code": "TEAPOT"}


def test_helpers_build_reserved_kinds():
    assert validation_error("bad", "email").context == {"field": "email"}
    assert validation_error("bad").context is None
    missing = missing_parameter("id")
    assert missing.kind is ErrorKind.MISSING_PARAMETER
    assert "id" in missing.message
    assert unauthorized().status_code == 401
    denied = forbidden("nope", "posts/1")
    assert denied.kind is ErrorKind.FORBIDDEN
    assert denied.context == {"resource": "posts/1"}


def test_sanitize_error_message_redacts_secrets():
    text = sanitize_error_message("failed with api_key=abc123 and Bearer eyJhbGciOi.payload")
    assert "abc123" not in text
    assert "eyJhbGciOi" not in text
    assert "[REDACTED]" in text


class TestClassifyException:
    def test_rpc_error_keeps_kind(self):
        assert classify_exception(RpcError("x", ErrorKind.FORBIDDEN)) is ErrorKind.FORBIDDEN

    def test_timeout(self):
        assert classify_exception(asyncio.TimeoutError()) is ErrorKind.TIMEOUT

    def test_connection(self):
        assert classify_exception(ConnectionRefusedError("refused")) is ErrorKind.CONNECTION_FAILED

    def test_message_text_does_not_change_the_kind(self):
        assert classify_exception(RuntimeError("read timed out")) is ErrorKind.INTERNAL_SERVER_ERROR
        assert classify_exception(TypeError("network unreachable")) is ErrorKind.INTERNAL_SERVER_ERROR

    def test_unknown(self):
        assert classify_exception(KeyError("x")) is ErrorKind.INTERNAL_SERVER_ERROR
