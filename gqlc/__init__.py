"""gqlc - a GraphQL IDL compiler

Parses GraphQL schema files, type checks them, and runs built-in
generators and external plugin executables on every document.
"""

__version__ = "0.1.0"

from .cli import CommandLine, default_command_line, main
from .compiler import Compiler
from .context import RunContext
from .errors import (
    CancelledError,
    DanglingOptionsError,
    Diagnostic,
    DuplicateGeneratorError,
    FileIOError,
    GeneratorReportedError,
    GqlcError,
    InternalFault,
    InvalidInputError,
    InvalidPathError,
    ParseError,
    PluginNotFoundError,
    PluginProtocolError,
    TypeCheckError,
)
from .generator import Generator, GeneratorContext
from .output import MemoryFileSystem, OsFileSystem, OutputContext
from .plugin import PluginGenerator
from .registry import GeneratorRegistry, RegistryEntry

__all__ = [
    "CommandLine",
    "default_command_line",
    "main",
    "Compiler",
    "RunContext",
    "Generator",
    "GeneratorContext",
    "GeneratorRegistry",
    "RegistryEntry",
    "PluginGenerator",
    "OutputContext",
    "OsFileSystem",
    "MemoryFileSystem",
    "GqlcError",
    "InvalidInputError",
    "DuplicateGeneratorError",
    "DanglingOptionsError",
    "ParseError",
    "Diagnostic",
    "TypeCheckError",
    "PluginNotFoundError",
    "PluginProtocolError",
    "GeneratorReportedError",
    "InvalidPathError",
    "FileIOError",
    "CancelledError",
    "InternalFault",
]
