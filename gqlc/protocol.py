"""
Wire protocol spoken with plugin executables.

A plugin reads exactly one encoded PluginRequest from its standard input
and writes exactly one encoded PluginResponse to its standard output. The
end of each stream delimits the message. Messages are UTF-8 JSON.

A plugin must exit with status zero even when it reports a failure through
PluginResponse.error; a non-zero exit status is a protocol failure.
"""

from __future__ import annotations

import json
import re
from dataclasses import dataclass, field
from typing import Any

from .errors import InvalidPathError, PluginProtocolError
from .schema_ast.nodes import Document

_DRIVE_RE = re.compile(r"^[A-Za-z]:")


@dataclass
class PluginRequest:
    """Everything a plugin needs to generate output for one document."""

    # Names of the documents to generate
    file_to_generate: list[str] = field(default_factory=list)

    # Generator options passed on the command line, encoded as JSON
    parameter: str = ""

    # Parsed documents
    documents: list[Document] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "file_to_generate": list(self.file_to_generate),
            "parameter": self.parameter,
            "documents": [doc.to_dict() for doc in self.documents],
        }

    @staticmethod
    def from_dict(d: dict[str, Any]) -> PluginRequest:
        return PluginRequest(
            file_to_generate=list(d.get("file_to_generate", [])),
            parameter=d.get("parameter", ""),
            documents=[Document.from_dict(x) for x in d.get("documents", [])],
        )


@dataclass
class PluginFile:
    """A generated file.

    The name is relative to the generator's output directory, uses "/" as
    the separator, and must not contain "." or ".." components.
    """

    name: str = ""
    content: str = ""


@dataclass
class PluginResponse:
    """The outcome of one plugin invocation."""

    # If non-empty, code generation failed
    error: str = ""

    file: list[PluginFile] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "error": self.error,
            "file": [{"name": f.name, "content": f.content} for f in self.file],
        }

    @staticmethod
    def from_dict(d: dict[str, Any]) -> PluginResponse:
        return PluginResponse(
            error=d.get("error", ""),
            file=[PluginFile(name=f.get("name", ""), content=f.get("content", "")) for f in d.get("file", [])],
        )


def _encode(message: Any) -> bytes:
    return json.dumps(message.to_dict(), sort_keys=True, separators=(",", ":")).encode("utf-8")


def _decode_object(data: bytes, what: str) -> dict[str, Any]:
    try:
        decoded = json.loads(data.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        raise PluginProtocolError(f"malformed {what}: {e}") from e
    if not isinstance(decoded, dict):
        raise PluginProtocolError(f"malformed {what}: expected a JSON object, got {type(decoded).__name__}")
    return decoded


def encode_request(request: PluginRequest) -> bytes:
    """Serialize a request for a plugin's standard input."""
    return _encode(request)


def decode_request(data: bytes) -> PluginRequest:
    """Deserialize a request. Used by plugins written in Python and by tests."""
    d = _decode_object(data, "request")
    try:
        return PluginRequest.from_dict(d)
    except (AttributeError, TypeError, ValueError) as e:
        raise PluginProtocolError(f"malformed request: {e}") from e


def encode_response(response: PluginResponse) -> bytes:
    """Serialize a response for a plugin's standard output."""
    return _encode(response)


def decode_response(data: bytes) -> PluginResponse:
    """
    Deserialize a plugin response.

    Args:
        data: Raw bytes captured from the plugin's standard output

    Returns:
        The decoded response

    Raises:
        PluginProtocolError: If the data is not a well-formed response
    """
    d = _decode_object(data, "response")
    error = d.get("error", "")
    files = d.get("file", [])
    if not isinstance(error, str):
        raise PluginProtocolError("malformed response: error must be a string")
    if not isinstance(files, list):
        raise PluginProtocolError("malformed response: file must be a list")
    for f in files:
        if not isinstance(f, dict) or not isinstance(f.get("name", ""), str) or not isinstance(f.get("content", ""), str):
            raise PluginProtocolError("malformed response: files must have string name and content")
    return PluginResponse.from_dict(d)


def validate_file_name(name: str) -> None:
    """
    Check that a generated file name stays inside its output directory.

    Raises:
        InvalidPathError: If the name is empty, absolute, uses "\\" or has
            empty, "." or ".." components
    """
    if not name:
        raise InvalidPathError("empty file name")
    if name.startswith("/") or _DRIVE_RE.match(name):
        raise InvalidPathError(f"{name}: file name must be relative")
    if "\\" in name:
        raise InvalidPathError(f"{name}: file name must use '/' as the path separator")
    for part in name.split("/"):
        if part in ("", ".", ".."):
            raise InvalidPathError(f"{name}: file name must not contain empty, '.' or '..' components")
