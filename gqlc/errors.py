"""
Error types raised by the compiler.

Every failure the compiler reports is a GqlcError. Errors that can be
attributed to a generator carry the generator and document names so that
the command line can print a single line identifying where a run failed.
"""

from __future__ import annotations

from dataclasses import dataclass


class GqlcError(Exception):
    """Base error for all compiler failures.

    Attributes:
        message: Human readable description of the failure
        generator: Name of the generator the failure is attributed to, if any
        document: Name of the document being processed, if any
    """

    def __init__(self, message: str, generator: str | None = None, document: str | None = None):
        super().__init__(message)
        self.message = message
        self.generator = generator
        self.document = document

    def attribute(self, generator: str, document: str | None) -> GqlcError:
        """Tag the error with a generator and document, keeping existing tags.

        Args:
            generator: Generator identity
            document: Document name

        Returns:
            The same error instance, for use in ``raise err.attribute(...)``
        """
        if self.generator is None:
            self.generator = generator
        if self.document is None:
            self.document = document
        return self

    def __str__(self) -> str:
        parts = ["gqlc"]
        if self.generator:
            parts.append(f"generator {self.generator}")
        if self.document:
            parts.append(f"document {self.document}")
        parts.append(self.message)
        return ": ".join(parts)


class InvalidInputError(GqlcError):
    """Bad input file name or invalid command line combination."""


class DuplicateGeneratorError(GqlcError):
    """Two generators were registered under the same switch name."""


class DanglingOptionsError(GqlcError):
    """A generator options switch was given without its output switch."""


class ParseError(GqlcError):
    """A schema source file could not be parsed."""

    def __init__(self, message: str, file: str, line: int = 0, column: int = 0):
        super().__init__(f"{file}:{line}:{column}: {message}")
        self.reason = message
        self.file = file
        self.line = line
        self.column = column


@dataclass(frozen=True)
class Diagnostic:
    """A single semantic problem found by the type checker."""

    document: str
    line: int
    column: int
    message: str

    def __str__(self) -> str:
        return f"{self.document}:{self.line}:{self.column}: {self.message}"


class TypeCheckError(GqlcError):
    """One or more type checking diagnostics, reported together."""

    def __init__(self, diagnostics: list[Diagnostic]):
        lines = "\n".join(f"  {d}" for d in diagnostics)
        count = len(diagnostics)
        noun = "error" if count == 1 else "errors"
        super().__init__(f"type checking failed with {count} {noun}:\n{lines}")
        self.diagnostics = list(diagnostics)


class PluginNotFoundError(GqlcError):
    """The plugin executable could not be located on the search path."""


class PluginProtocolError(GqlcError):
    """The plugin exited abnormally or wrote a malformed response."""


class GeneratorReportedError(GqlcError):
    """A generator reported a failure through the normal channel."""


class InvalidPathError(GqlcError):
    """An output file name would escape the output directory."""


class FileIOError(GqlcError):
    """Reading inputs or writing outputs failed."""


class CancelledError(GqlcError):
    """The run was cancelled or its deadline expired."""


class InternalFault(GqlcError):
    """An unexpected exception was recovered at the top of a run."""

    def __init__(self, cause: BaseException, stack: str):
        super().__init__(f"recovered from unexpected fault: {cause!r}")
        self.cause = cause
        self.stack = stack

    def __str__(self) -> str:
        return f"{super().__str__()}\n\n{self.stack}"
