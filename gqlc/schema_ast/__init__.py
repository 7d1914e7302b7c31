"""
Schema AST module.

Contains the Document model, the schema language parser and the
document set shared by all inputs of a run.
"""

from __future__ import annotations

from .document_set import DocumentSet, document_name
from .nodes import (
    BUILTIN_SCALARS,
    Argument,
    DeclKind,
    Directive,
    Document,
    EnumValue,
    FieldDef,
    InputValue,
    ObjectField,
    RootOperation,
    TypeDecl,
    TypeRef,
    Value,
)
from .parser import Lexer, SchemaParser

__all__ = [
    "BUILTIN_SCALARS",
    "Argument",
    "DeclKind",
    "Directive",
    "Document",
    "DocumentSet",
    "EnumValue",
    "FieldDef",
    "InputValue",
    "Lexer",
    "ObjectField",
    "RootOperation",
    "SchemaParser",
    "TypeDecl",
    "TypeRef",
    "Value",
    "document_name",
]
