import json

import pytest

from gqlc.errors import InvalidPathError, PluginProtocolError
from gqlc.protocol import (
    PluginFile,
    PluginRequest,
    PluginResponse,
    decode_request,
    decode_response,
    encode_request,
    encode_response,
    validate_file_name,
)
from gqlc.schema_ast import SchemaParser

SOURCE = '''
"""
Query represents the queries this example provides.
"""
type Query {
  hello(name: String = "world"): String @deprecated(reason: "use greet")
  greet: [String!]!
}

enum Color { RED GREEN }
'''


def parse(source, name="test"):
    return SchemaParser().parse(source, f"{name}.gql", name)


class TestRequest:
    def test_request_survives_the_wire(self):
        doc = parse(SOURCE)
        request = PluginRequest(file_to_generate=["test"], parameter='{"title": "x"}', documents=[doc])

        decoded = decode_request(encode_request(request))

        assert decoded == request
        assert decoded.documents[0].types[0].fields[0].args[0].default.raw == '"world"'

    def test_empty_document(self):
        request = PluginRequest(file_to_generate=["empty"], documents=[parse("", "empty")])
        assert decode_request(encode_request(request)) == request

    def test_encoding_is_utf8_json(self):
        doc = parse('"Grüße" scalar Greeting')
        data = encode_request(PluginRequest(file_to_generate=["test"], documents=[doc]))

        message = json.loads(data.decode("utf-8"))
        assert message["file_to_generate"] == ["test"]
        assert message["documents"][0]["types"][0]["kind"] == "scalar"
        assert message["documents"][0]["types"][0]["description"] == "Grüße"

    def test_malformed_request(self):
        with pytest.raises(PluginProtocolError):
            decode_request(b"{")


class TestResponse:
    def test_response_survives_the_wire(self):
        response = PluginResponse(file=[PluginFile("a.txt", "hello"), PluginFile("dir/b.txt", "ünïcode")])
        assert decode_response(encode_response(response)) == response

    def test_error_response(self):
        response = decode_response(b'{"error": "boom"}')
        assert response.error == "boom"
        assert response.file == []

    def test_empty_object_is_success(self):
        response = decode_response(b"{}")
        assert response.error == ""
        assert response.file == []

    @pytest.mark.parametrize(
        "data",
        [
            b"",
            b"not json",
            b"\xff\xfe",
            b"[]",
            b'{"error": 1}',
            b'{"file": {}}',
            b'{"file": ["a.txt"]}',
            b'{"file": [{"name": 1, "content": ""}]}',
            b'{"file": [{"name": "a.txt", "content": [1]}]}',
        ],
    )
    def test_malformed_response(self, data):
        with pytest.raises(PluginProtocolError):
            decode_response(data)


class TestValidateFileName:
    @pytest.mark.parametrize("name", ["a.txt", "dir/sub/a.md", "..hidden", "a..b"])
    def test_accepts_relative_names(self, name):
        validate_file_name(name)

    @pytest.mark.parametrize(
        "name",
        ["", "../evil.txt", "/etc/passwd", "a/../../b", "a/./b", "a//b", "dir/", "C:/x", "a\\b"],
    )
    def test_rejects_escaping_names(self, name):
        with pytest.raises(InvalidPathError):
            validate_file_name(name)
