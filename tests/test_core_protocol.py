from seamrpc.core.protocol import RpcRequest, error_response, is_request_shape, ok_response, parse_response


def test_request_create_assigns_id_and_timestamp():
    a = RpcRequest.create("m", [1])
    b = RpcRequest.create("m", [1])
    assert a.id != b.id
    assert isinstance(a.timestamp, int)
    assert a.to_dict() == {"id": a.id, "method": "m", "params": [1], "timestamp": a.timestamp}


def test_ok_response_keeps_null_result():
    payload = ok_response("r1", None).to_dict()
    assert "result" in payload and payload["result"] is None
    assert "error" not in payload


def test_error_response_has_no_result():
    payload = error_response("r1", {"code": "TIMEOUT", "message": "x", "statusCode": 408}).to_dict()
    assert "result" not in payload
    assert payload["error"]["code"] == "TIMEOUT"


def test_is_request_shape():
    good = {"id": "a", "method": "m", "params": [], "timestamp": 1}
    assert is_request_shape(good)
    assert not is_request_shape({**good, "params": {}})
    assert not is_request_shape({**good, "timestamp": True})
    assert not is_request_shape({**good, "id": 5})
    assert not is_request_shape([good])


def test_parse_response_requires_exactly_one_outcome():
    assert parse_response({"id": "a", "timestamp": 1}) is None
    assert parse_response({"id": "a", "result": 1, "error": {}, "timestamp": 1}) is None
    assert parse_response({"id": "a", "error": "boom", "timestamp": 1}) is None
    parsed = parse_response({"id": "a", "result": None, "timestamp": 1})
    assert parsed is not None and parsed.has_result and parsed.result is None
