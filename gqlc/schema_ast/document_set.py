"""
Shared naming and parsing context for every document of one run.
"""

from __future__ import annotations

from pathlib import PurePath

from ..errors import InvalidInputError
from .nodes import Document
from .parser import SchemaParser


def document_name(path: str) -> str:
    """Derive a document name from its source path ("schema/test.gql" -> "test")."""
    return PurePath(path).stem


class DocumentSet:
    """Parses documents into one namespace, in the order they are added.

    Documents are keyed by their source path so that a file reached both
    from the command line and through an import is parsed only once.
    """

    def __init__(self):
        self._parser = SchemaParser()
        self._by_path: dict[str, Document] = {}
        self._by_name: dict[str, Document] = {}

    def __contains__(self, path: str) -> bool:
        return path in self._by_path

    def parse(self, path: str, source: str) -> Document:
        """
        Parse a source file into the set.

        Args:
            path: Source path, used for naming and error positions
            source: File contents

        Returns:
            The parsed document (the existing one if the path was already parsed)

        Raises:
            ParseError: If the source cannot be parsed
            InvalidInputError: If another file already produced a document with the same name
        """
        if path in self._by_path:
            return self._by_path[path]

        name = document_name(path)
        if name in self._by_name:
            other = self._by_name[name].path
            raise InvalidInputError(f"{path} and {other} both produce document {name!r}")

        doc = self._parser.parse(source, path, name)
        self._by_path[path] = doc
        self._by_name[name] = doc
        return doc

    def documents(self) -> list[Document]:
        """All documents in the order they were parsed."""
        return list(self._by_path.values())
