import base64
import json
from unittest.mock import patch

import pytest

from lambdasync.devserver.core.event_builder import (
    V1ProxyEventBuilder,
    encode_body,
    is_binary_content,
)


def test_v1_event_builder_build(inbound_request):
    """Test V1ProxyEventBuilder builds correct event structure"""
    # Arrange
    builder = V1ProxyEventBuilder(stage="dev")
    request = inbound_request(
        method="POST",
        path="/test/path",
        headers={"Content-Type": "application/json", "User-Agent": "test-agent"},
        multi_headers={"Content-Type": ["application/json"], "User-Agent": ["test-agent"]},
        query_params={"foo": "bar"},
        multi_query_params={"foo": ["bar"]},
        body=b'{"key": "value"}',
        source_ip="10.1.2.3",
    )

    # Act
    with patch(
        "lambdasync.devserver.core.event_builder.get_request_id", return_value="test-req-id"
    ):
        event = builder.build(request)

    # Assert
    assert event["resource"] == "/{proxy+}"
    assert event["path"] == "/test/path"
    assert event["httpMethod"] == "POST"
    assert event["headers"]["Content-Type"] == "application/json"
    assert event["multiValueHeaders"]["Content-Type"] == ["application/json"]
    assert event["queryStringParameters"] == {"foo": "bar"}
    assert event["multiValueQueryStringParameters"] == {"foo": ["bar"]}
    assert event["pathParameters"] == {"proxy": "test/path"}
    assert event["body"] == '{"key": "value"}'
    assert event["isBase64Encoded"] is False

    # Context checks
    context = event["requestContext"]
    assert context["requestId"] == "test-req-id"
    assert context["stage"] == "dev"
    assert context["resourcePath"] == "/{proxy+}"
    assert context["httpMethod"] == "POST"
    assert context["identity"]["sourceIp"] == "10.1.2.3"
    assert context["identity"]["userAgent"] == "test-agent"


def test_event_round_trips_method_path_and_header_keys(inbound_request):
    headers = {"X-Custom-Header": "1", "accept": "*/*", "Authorization": "Bearer t"}
    request = inbound_request(method="delete", path="/a/b%20c/", headers=headers)

    event = V1ProxyEventBuilder().build(request, request_id="rid")

    assert event["httpMethod"] == "DELETE"
    assert event["path"] == "/a/b%20c/"
    assert list(event["headers"].keys()) == list(headers.keys())


def test_query_string_last_value_wins_and_multi_values_keep_order(inbound_request):
    request = inbound_request(
        query_string="a=1&a=2&b=x",
        query_params={"a": "2", "b": "x"},
        multi_query_params={"a": ["1", "2"], "b": ["x"]},
    )

    event = V1ProxyEventBuilder().build(request, request_id="rid")

    assert event["queryStringParameters"] == {"a": "2", "b": "x"}
    assert event["multiValueQueryStringParameters"] == {"a": ["1", "2"], "b": ["x"]}


def test_empty_query_and_body_are_null(inbound_request):
    event = V1ProxyEventBuilder().build(inbound_request(path="/"), request_id="rid")

    assert event["queryStringParameters"] is None
    assert event["multiValueQueryStringParameters"] is None
    assert event["pathParameters"] is None
    assert event["resource"] == "/"
    assert event["body"] is None
    assert event["isBase64Encoded"] is False


def test_binary_content_type_is_base64_encoded(inbound_request):
    payload = b"\x89PNG\r\n\x1a\n\x00\x00"
    request = inbound_request(
        method="PUT", path="/upload", headers={"Content-Type": "image/png"}, body=payload
    )

    event = V1ProxyEventBuilder().build(request, request_id="rid")

    assert event["isBase64Encoded"] is True
    assert base64.b64decode(event["body"]) == payload


def test_gzip_content_encoding_is_base64_encoded(inbound_request):
    request = inbound_request(
        method="POST",
        headers={"content-type": "application/json", "content-encoding": "gzip"},
        body=b"\x1f\x8b\x08\x00",
    )

    event = V1ProxyEventBuilder().build(request, request_id="rid")

    assert event["isBase64Encoded"] is True


def test_text_body_with_invalid_utf8_falls_back_to_text(inbound_request):
    request = inbound_request(
        method="POST", headers={"Content-Type": "text/plain"}, body=b"caf\xe9"
    )

    event = V1ProxyEventBuilder().build(request, request_id="rid")

    assert event["isBase64Encoded"] is False
    assert event["body"] == "café"


def test_event_is_a_fresh_copy(inbound_request):
    request = inbound_request(headers={"A": "1"}, multi_headers={"A": ["1"]})
    event = V1ProxyEventBuilder().build(request, request_id="rid")

    event["headers"]["A"] = "mutated"
    event["multiValueHeaders"]["A"].append("2")

    assert request.headers == {"A": "1"}
    assert request.multi_headers == {"A": ["1"]}


@pytest.mark.parametrize(
    "content_type, expected",
    [
        ("", False),
        ("text/html; charset=utf-8", False),
        ("application/json", False),
        ("application/vnd.api+json", False),
        ("application/x-www-form-urlencoded", False),
        ("application/octet-stream", True),
        ("image/jpeg", True),
        ("multipart/form-data; boundary=xyz", True),
    ],
)
def test_is_binary_content(content_type, expected):
    assert is_binary_content(content_type) is expected


def test_encode_body_honours_declared_charset():
    body, is_base64 = encode_body("grüße".encode("latin-1"), "text/plain; charset=latin-1")

    assert body == "grüße"
    assert is_base64 is False


@pytest.mark.parametrize("charset", ["rot13", "base64", "hex", "no-such-charset"])
def test_encode_body_non_text_charset_falls_back_to_utf8(charset):
    body, is_base64 = encode_body("héllo".encode("utf-8"), f"text/plain; charset={charset}")

    assert body == "héllo"
    assert is_base64 is False


def test_encode_body_non_text_charset_with_invalid_utf8_uses_latin1():
    body, is_base64 = encode_body(b"caf\xe9", "text/plain; charset=rot13")

    assert body == "café"
    assert is_base64 is False


def test_event_headers_ignore_case(inbound_request):
    request = inbound_request(
        method="POST",
        headers={"content-type": "application/json", "x-api-key": "k"},
        multi_headers={"content-type": ["application/json"], "x-api-key": ["k"]},
        body=b"{}",
    )

    event = V1ProxyEventBuilder().build(request, request_id="rid")

    headers = event["headers"]
    assert headers["Content-Type"] == "application/json"
    assert headers.get("X-API-KEY") == "k"
    assert headers.get("X-Missing") is None
    assert "CONTENT-TYPE" in headers
    assert event["multiValueHeaders"]["X-Api-Key"] == ["k"]
    assert list(headers) == ["content-type", "x-api-key"]


def test_event_headers_serialize_as_plain_objects(inbound_request):
    request = inbound_request(headers={"Accept": "*/*"}, multi_headers={"Accept": ["*/*"]})

    event = V1ProxyEventBuilder().build(request, request_id="rid")

    assert isinstance(event["headers"], dict)
    decoded = json.loads(json.dumps(event))
    assert decoded["headers"] == {"Accept": "*/*"}
    assert decoded["multiValueHeaders"] == {"Accept": ["*/*"]}


def test_event_header_writes_keep_one_key_per_name(inbound_request):
    request = inbound_request(headers={"X-Trace": "a"})
    event = V1ProxyEventBuilder().build(request, request_id="rid")

    event["headers"]["x-trace"] = "b"
    del event["headers"]["X-TRACE"]

    assert event["headers"] == {}
