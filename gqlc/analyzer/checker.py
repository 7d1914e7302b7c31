"""
Type checker for a set of schema documents.

Phase 2 of the compiler: resolve every type reference across all
documents of a run and report semantic problems. The checker never stops
at the first problem; it returns every diagnostic it finds.
"""

from __future__ import annotations

from dataclasses import dataclass

from ..errors import Diagnostic
from ..schema_ast.nodes import (
    BUILTIN_SCALARS,
    DeclKind,
    Directive,
    Document,
    FieldDef,
    InputValue,
    TypeDecl,
    TypeRef,
)

BUILTIN_DIRECTIVES = ("deprecated", "include", "skip", "specifiedBy", "import")

ROOT_OPERATIONS = ("query", "mutation", "subscription")

DIRECTIVE_LOCATIONS = {
    "QUERY",
    "MUTATION",
    "SUBSCRIPTION",
    "FIELD",
    "FRAGMENT_DEFINITION",
    "FRAGMENT_SPREAD",
    "INLINE_FRAGMENT",
    "VARIABLE_DEFINITION",
    "SCHEMA",
    "SCALAR",
    "OBJECT",
    "FIELD_DEFINITION",
    "ARGUMENT_DEFINITION",
    "INTERFACE",
    "UNION",
    "ENUM",
    "ENUM_VALUE",
    "INPUT_OBJECT",
    "INPUT_FIELD_DEFINITION",
}

_INPUT_KINDS = {DeclKind.SCALAR, DeclKind.ENUM, DeclKind.INPUT}
_OUTPUT_KINDS = {DeclKind.SCALAR, DeclKind.OBJECT, DeclKind.INTERFACE, DeclKind.UNION, DeclKind.ENUM}


@dataclass
class _Declared:
    decl: TypeDecl
    doc: Document


class TypeChecker:
    """Checks a set of documents together so cross-document references resolve."""

    def check(self, documents: list[Document]) -> list[Diagnostic]:
        """
        Type check documents.

        Args:
            documents: Every document of the run, including imported ones

        Returns:
            All diagnostics found, in document and declaration order
        """
        self._documents = documents
        self._diagnostics: list[Diagnostic] = []
        self._types: dict[str, _Declared] = {}
        self._directives: dict[str, _Declared] = {}

        self._collect(documents)
        for doc in documents:
            self._check_directive_uses(doc, doc.directives)
            for decl in doc.types:
                self._check_decl(doc, decl)
        return self._diagnostics

    def _report(self, doc: Document, line: int, column: int, message: str) -> None:
        self._diagnostics.append(Diagnostic(doc.name, line, column, message))

    def _collect(self, documents: list[Document]) -> None:
        for doc in documents:
            schemas = 0
            for decl in doc.types:
                if decl.extend:
                    continue
                if decl.kind == DeclKind.SCHEMA:
                    schemas += 1
                    if schemas > 1:
                        self._report(doc, decl.line, decl.column, "schema is declared more than once")
                    continue
                if decl.kind == DeclKind.DIRECTIVE:
                    table = self._directives
                    label = f"directive @{decl.name}"
                    if decl.name in BUILTIN_DIRECTIVES:
                        self._report(doc, decl.line, decl.column, f"cannot redeclare built-in {label}")
                        continue
                else:
                    table = self._types
                    label = f"type {decl.name}"
                    if decl.name in BUILTIN_SCALARS:
                        self._report(doc, decl.line, decl.column, f"cannot redeclare built-in scalar {decl.name}")
                        continue
                if decl.name in table:
                    first = table[decl.name]
                    self._report(
                        doc,
                        decl.line,
                        decl.column,
                        f"{label} is already declared in {first.doc.name}:{first.decl.line}",
                    )
                    continue
                table[decl.name] = _Declared(decl, doc)

    def _kind_of(self, name: str) -> DeclKind | None:
        if name in BUILTIN_SCALARS:
            return DeclKind.SCALAR
        declared = self._types.get(name)
        return declared.decl.kind if declared else None

    def _check_decl(self, doc: Document, decl: TypeDecl) -> None:
        self._check_directive_uses(doc, decl.directives)

        if decl.extend and decl.kind != DeclKind.SCHEMA:
            kind = self._kind_of(decl.name)
            if kind is None:
                self._report(doc, decl.line, decl.column, f"cannot extend undeclared type {decl.name}")
            elif kind != decl.kind:
                self._report(
                    doc, decl.line, decl.column, f"cannot extend {kind.value} {decl.name} as {decl.kind.value}"
                )

        if decl.kind == DeclKind.SCHEMA:
            self._check_schema(doc, decl)
        elif decl.kind in (DeclKind.OBJECT, DeclKind.INTERFACE):
            self._check_fields(doc, decl)
        elif decl.kind == DeclKind.UNION:
            for member in decl.members:
                if self._kind_of(member) != DeclKind.OBJECT:
                    self._report(
                        doc, decl.line, decl.column, f"union {decl.name} member {member} is not an object type"
                    )
        elif decl.kind == DeclKind.ENUM:
            seen: set[str] = set()
            for value in decl.values:
                if value.name in seen:
                    self._report(doc, decl.line, decl.column, f"enum {decl.name} repeats value {value.name}")
                seen.add(value.name)
                self._check_directive_uses(doc, value.directives)
        elif decl.kind == DeclKind.INPUT:
            self._check_input_values(doc, decl.input_fields, f"input {decl.name}")
        elif decl.kind == DeclKind.DIRECTIVE:
            self._check_input_values(doc, decl.args, f"directive @{decl.name}")
            for location in decl.locations:
                if location not in DIRECTIVE_LOCATIONS:
                    self._report(
                        doc, decl.line, decl.column, f"directive @{decl.name} has unknown location {location}"
                    )

    def _check_schema(self, doc: Document, decl: TypeDecl) -> None:
        seen: set[str] = set()
        for op in decl.root_operations:
            if op.operation not in ROOT_OPERATIONS:
                self._report(doc, op.line, op.column, f"unknown root operation {op.operation}")
            elif op.operation in seen:
                self._report(doc, op.line, op.column, f"root operation {op.operation} is declared more than once")
            seen.add(op.operation)
            if self._kind_of(op.type_name) != DeclKind.OBJECT:
                self._report(doc, op.line, op.column, f"root operation {op.operation} type {op.type_name} is not an object type")

    def _check_fields(self, doc: Document, decl: TypeDecl) -> None:
        owner = f"{decl.kind.value} {decl.name}"
        seen: set[str] = set()
        for f in decl.fields:
            if f.name in seen:
                self._report(doc, f.line, f.column, f"{owner} repeats field {f.name}")
            seen.add(f.name)
            self._check_type_ref(doc, f, f.type, _OUTPUT_KINDS, f"{owner} field {f.name}", "an output type")
            self._check_input_values(doc, f.args, f"{owner} field {f.name}")
            self._check_directive_uses(doc, f.directives)

        for iface in decl.interfaces:
            declared = self._types.get(iface)
            if declared is None or declared.decl.kind != DeclKind.INTERFACE:
                self._report(doc, decl.line, decl.column, f"{owner} implements {iface}, which is not an interface")
                continue
            if decl.extend:
                continue
            provided = {f.name for f in self._all_fields(decl.name)}
            for f in self._all_fields(iface):
                if f.name not in provided:
                    self._report(
                        doc, decl.line, decl.column, f"{owner} does not provide field {f.name} of interface {iface}"
                    )

    def _all_fields(self, type_name: str) -> list[FieldDef]:
        """Fields of a type including those added by extensions."""
        fields: list[FieldDef] = []
        declared = self._types.get(type_name)
        if declared is None:
            return fields
        fields.extend(declared.decl.fields)
        for ext in self._extensions(type_name):
            fields.extend(ext.fields)
        return fields

    def _extensions(self, type_name: str) -> list[TypeDecl]:
        return [decl for doc in self._documents for decl in doc.types if decl.extend and decl.name == type_name]

    def _check_input_values(self, doc: Document, values: list[InputValue], owner: str) -> None:
        seen: set[str] = set()
        for value in values:
            if value.name in seen:
                self._report(doc, value.line, value.column, f"{owner} repeats argument {value.name}")
            seen.add(value.name)
            self._check_type_ref(doc, value, value.type, _INPUT_KINDS, f"{owner} argument {value.name}", "an input type")
            self._check_directive_uses(doc, value.directives)

    def _check_type_ref(
        self,
        doc: Document,
        node: FieldDef | InputValue,
        ref: TypeRef,
        allowed: set[DeclKind],
        owner: str,
        expected: str,
    ) -> None:
        name = ref.named_type()
        kind = self._kind_of(name)
        if kind is None:
            self._report(doc, node.line, node.column, f"{owner} has undeclared type {name}")
        elif kind not in allowed:
            self._report(doc, node.line, node.column, f"{owner} type {name} is not {expected}")

    def _check_directive_uses(self, doc: Document, directives: list[Directive]) -> None:
        for directive in directives:
            if directive.name in BUILTIN_DIRECTIVES or directive.name in self._directives:
                continue
            self._report(doc, directive.line, directive.column, f"undeclared directive @{directive.name}")


def check_types(documents: list[Document]) -> list[Diagnostic]:
    """Convenience wrapper around TypeChecker.check."""
    return TypeChecker().check(documents)
