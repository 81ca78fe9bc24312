import base64
import json
from http.cookies import SimpleCookie

import pytest

from mindhub.gqlclient import (
    Client,
    RawJSONError,
    Request,
    add_cookie,
    add_header,
    basic_auth,
    operation,
    path,
    var,
)


def make_app(captured, body=b"{}", status="200 OK"):
    def app(environ, start_response):
        length = int(environ.get("CONTENT_LENGTH") or 0)
        captured.append((environ, environ["wsgi.input"].read(length)))
        start_response(status, [("Content-Type", "application/json")])
        return [body]

    return app


def test_client_posts_query_and_variables():
    captured = []
    reply = json.dumps({"data": {"name": "bob"}}).encode()
    client = Client(make_app(captured, reply))

    data = client.must_post("user(id:$id){name}", var("id", 1))

    assert captured[0][1] == b'{"query":"user(id:$id){name}","variables":{"id":1}}'
    assert data == {"name": "bob"}


def test_add_header():
    captured = []
    client = Client(make_app(captured))
    client.must_post("{ id }", add_header("Test-Key", "ASDF"))
    assert captured[0][0]["HTTP_TEST_KEY"] == "ASDF"


def test_add_client_header():
    captured = []
    client = Client(make_app(captured), add_header("Test-Key", "ASDF"))
    client.must_post("{ id }")
    assert captured[0][0]["HTTP_TEST_KEY"] == "ASDF"


def test_basic_auth():
    captured = []
    client = Client(make_app(captured))
    client.must_post("{ id }", basic_auth("user", "pass"))
    scheme, encoded = captured[0][0]["HTTP_AUTHORIZATION"].split(" ", 1)
    assert scheme == "Basic"
    assert base64.b64decode(encoded).decode() == "user:pass"


def test_add_cookie():
    captured = []
    client = Client(make_app(captured))
    client.must_post("{ id }", add_cookie("foo", "value"))
    cookie = SimpleCookie(captured[0][0]["HTTP_COOKIE"])
    assert cookie["foo"].value == "value"


def test_several_cookies_share_one_header():
    captured = []
    client = Client(make_app(captured))
    client.post("{ id }", add_cookie("a", "1"), add_cookie("b", "2"))
    assert captured[0][0]["HTTP_COOKIE"] == "a=1; b=2"


def test_content_type_is_json():
    captured = []
    Client(make_app(captured)).post("{ id }")
    assert captured[0][0]["CONTENT_TYPE"] == "application/json"
    assert captured[0][0]["REQUEST_METHOD"] == "POST"


def test_path_option_sets_request_path():
    captured = []
    Client(make_app(captured)).post("{ id }", path("/graphql"))
    assert captured[0][0]["PATH_INFO"] == "/graphql"


def test_operation_name_is_sent():
    captured = []
    Client(make_app(captured)).post("{ id }", operation("Thing"))
    assert captured[0][1] == b'{"query":"{ id }","operationName":"Thing"}'


def test_variables_are_sorted_by_name():
    captured = []
    Client(make_app(captured)).post("q", var("b", 2), var("a", 1))
    assert captured[0][1] == b'{"query":"q","variables":{"a":1,"b":2}}'


def test_html_characters_are_escaped():
    request = Request(query="<a>&")
    assert request.body() == b'{"query":"\\u003ca\\u003e\\u0026"}'


def test_graphql_errors_raise_with_partial_data():
    reply = json.dumps({"data": {"a": 1}, "errors": [{"message": "boom"}]}).encode()
    client = Client(make_app([], reply))
    with pytest.raises(RawJSONError) as info:
        client.post("{ a }")
    assert str(info.value) == '[{"message":"boom"}]'
    assert info.value.data == {"a": 1}


def test_http_error_status_raises():
    client = Client(make_app([], b"oops", "500 Internal Server Error"))
    with pytest.raises(RuntimeError, match="http 500: oops"):
        client.post("{ a }")


def test_invalid_json_reply_raises_decode_error():
    client = Client(make_app([], b"not json"))
    with pytest.raises(RuntimeError, match="^decode: "):
        client.raw_post("{ a }")


def test_raw_post_exposes_extensions():
    reply = json.dumps({"data": None, "extensions": {"cost": 3}}).encode()
    response = Client(make_app([], reply)).raw_post("{ a }")
    assert response.extensions == {"cost": 3}
    assert response.errors is None


def test_unsupported_content_type_is_rejected():
    captured = []

    def text_plain(request):
        request.set_header("Content-Type", "text/plain")

    client = Client(make_app(captured))
    with pytest.raises(ValueError, match="unsupported encoding text/plain"):
        client.post("{ a }", text_plain)
    assert captured == []


def test_unencodable_variable_raises():
    client = Client(make_app([]))
    with pytest.raises(ValueError, match="^encode: "):
        client.post("{ a }", var("x", object()))