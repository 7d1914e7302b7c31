"""
Document model for parsed GraphQL schema files.

A Document is produced by the parser, checked by the analyzer, and then
shared read-only by every generator in a run. All nodes convert to and
from plain dictionaries so they can be sent to plugins.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any

# Scalars every schema can reference without declaring them
BUILTIN_SCALARS = ("Int", "Float", "String", "Boolean", "ID")


class DeclKind(str, Enum):
    """Kind of a top level declaration."""

    SCHEMA = "schema"
    SCALAR = "scalar"
    OBJECT = "object"
    INTERFACE = "interface"
    UNION = "union"
    ENUM = "enum"
    INPUT = "input"
    DIRECTIVE = "directive"


@dataclass
class Value:
    """A literal value (argument or default value)."""

    kind: str = "null"  # int, float, string, boolean, null, enum, list, object
    raw: str = ""  # Source text for scalar kinds
    items: list[Value] = field(default_factory=list)
    fields: list[ObjectField] = field(default_factory=list)

    def to_source(self) -> str:
        """Render the value back to GraphQL syntax."""
        if self.kind == "list":
            return "[" + ", ".join(item.to_source() for item in self.items) + "]"
        if self.kind == "object":
            return "{" + ", ".join(f"{f.name}: {f.value.to_source()}" for f in self.fields) + "}"
        return self.raw

    @staticmethod
    def from_dict(d: dict[str, Any]) -> Value:
        return Value(
            kind=d.get("kind", "null"),
            raw=d.get("raw", ""),
            items=[Value.from_dict(i) for i in d.get("items", [])],
            fields=[ObjectField.from_dict(f) for f in d.get("fields", [])],
        )


@dataclass
class ObjectField:
    name: str = ""
    value: Value = field(default_factory=Value)

    @staticmethod
    def from_dict(d: dict[str, Any]) -> ObjectField:
        return ObjectField(name=d.get("name", ""), value=Value.from_dict(d.get("value") or {}))


@dataclass
class TypeRef:
    """A reference to a type: named when of_type is None, a list otherwise."""

    name: str = ""
    of_type: TypeRef | None = None
    non_null: bool = False

    @property
    def is_list(self) -> bool:
        return self.of_type is not None

    def named_type(self) -> str:
        """Return the innermost named type."""
        ref = self
        while ref.of_type is not None:
            ref = ref.of_type
        return ref.name

    def to_source(self) -> str:
        inner = f"[{self.of_type.to_source()}]" if self.of_type is not None else self.name
        return inner + ("!" if self.non_null else "")

    @staticmethod
    def from_dict(d: dict[str, Any]) -> TypeRef:
        of_type = d.get("of_type")
        return TypeRef(
            name=d.get("name", ""),
            of_type=TypeRef.from_dict(of_type) if of_type else None,
            non_null=d.get("non_null", False),
        )


@dataclass
class Argument:
    name: str = ""
    value: Value = field(default_factory=Value)

    @staticmethod
    def from_dict(d: dict[str, Any]) -> Argument:
        return Argument(name=d.get("name", ""), value=Value.from_dict(d.get("value") or {}))


@dataclass
class Directive:
    """A directive application, e.g. ``@deprecated(reason: "old")``."""

    name: str = ""
    args: list[Argument] = field(default_factory=list)
    line: int = 0
    column: int = 0

    def arg(self, name: str) -> Value | None:
        for a in self.args:
            if a.name == name:
                return a.value
        return None

    @staticmethod
    def from_dict(d: dict[str, Any]) -> Directive:
        return Directive(
            name=d.get("name", ""),
            args=[Argument.from_dict(a) for a in d.get("args", [])],
            line=d.get("line", 0),
            column=d.get("column", 0),
        )


@dataclass
class InputValue:
    """An argument definition or an input object field."""

    name: str = ""
    type: TypeRef = field(default_factory=TypeRef)
    default: Value | None = None
    description: str = ""
    directives: list[Directive] = field(default_factory=list)
    line: int = 0
    column: int = 0

    @staticmethod
    def from_dict(d: dict[str, Any]) -> InputValue:
        default = d.get("default")
        return InputValue(
            name=d.get("name", ""),
            type=TypeRef.from_dict(d.get("type") or {}),
            default=Value.from_dict(default) if default is not None else None,
            description=d.get("description", ""),
            directives=[Directive.from_dict(x) for x in d.get("directives", [])],
            line=d.get("line", 0),
            column=d.get("column", 0),
        )


@dataclass
class FieldDef:
    """A field of an object or interface type."""

    name: str = ""
    type: TypeRef = field(default_factory=TypeRef)
    args: list[InputValue] = field(default_factory=list)
    description: str = ""
    directives: list[Directive] = field(default_factory=list)
    line: int = 0
    column: int = 0

    @staticmethod
    def from_dict(d: dict[str, Any]) -> FieldDef:
        return FieldDef(
            name=d.get("name", ""),
            type=TypeRef.from_dict(d.get("type") or {}),
            args=[InputValue.from_dict(a) for a in d.get("args", [])],
            description=d.get("description", ""),
            directives=[Directive.from_dict(x) for x in d.get("directives", [])],
            line=d.get("line", 0),
            column=d.get("column", 0),
        )


@dataclass
class EnumValue:
    name: str = ""
    description: str = ""
    directives: list[Directive] = field(default_factory=list)

    @staticmethod
    def from_dict(d: dict[str, Any]) -> EnumValue:
        return EnumValue(
            name=d.get("name", ""),
            description=d.get("description", ""),
            directives=[Directive.from_dict(x) for x in d.get("directives", [])],
        )


@dataclass
class RootOperation:
    """A ``query: Query`` style entry of a schema declaration."""

    operation: str = ""
    type_name: str = ""
    line: int = 0
    column: int = 0

    @staticmethod
    def from_dict(d: dict[str, Any]) -> RootOperation:
        return RootOperation(
            operation=d.get("operation", ""),
            type_name=d.get("type_name", ""),
            line=d.get("line", 0),
            column=d.get("column", 0),
        )


@dataclass
class TypeDecl:
    """A top level declaration.

    Only the attributes relevant to ``kind`` are populated; the others keep
    their empty defaults.
    """

    kind: DeclKind = DeclKind.OBJECT
    name: str = ""
    description: str = ""
    directives: list[Directive] = field(default_factory=list)

    # object, interface
    fields: list[FieldDef] = field(default_factory=list)
    interfaces: list[str] = field(default_factory=list)

    # union
    members: list[str] = field(default_factory=list)

    # enum
    values: list[EnumValue] = field(default_factory=list)

    # input
    input_fields: list[InputValue] = field(default_factory=list)

    # directive
    args: list[InputValue] = field(default_factory=list)
    locations: list[str] = field(default_factory=list)

    # schema
    root_operations: list[RootOperation] = field(default_factory=list)

    # Whether this is an ``extend`` declaration
    extend: bool = False

    line: int = 0
    column: int = 0

    @staticmethod
    def from_dict(d: dict[str, Any]) -> TypeDecl:
        return TypeDecl(
            kind=DeclKind(d.get("kind", DeclKind.OBJECT.value)),
            name=d.get("name", ""),
            description=d.get("description", ""),
            directives=[Directive.from_dict(x) for x in d.get("directives", [])],
            fields=[FieldDef.from_dict(x) for x in d.get("fields", [])],
            interfaces=list(d.get("interfaces", [])),
            members=list(d.get("members", [])),
            values=[EnumValue.from_dict(x) for x in d.get("values", [])],
            input_fields=[InputValue.from_dict(x) for x in d.get("input_fields", [])],
            args=[InputValue.from_dict(x) for x in d.get("args", [])],
            locations=list(d.get("locations", [])),
            root_operations=[RootOperation.from_dict(x) for x in d.get("root_operations", [])],
            extend=d.get("extend", False),
            line=d.get("line", 0),
            column=d.get("column", 0),
        )


@dataclass
class Document:
    """One parsed schema file."""

    name: str = ""
    path: str = ""
    directives: list[Directive] = field(default_factory=list)
    types: list[TypeDecl] = field(default_factory=list)

    @property
    def schema(self) -> TypeDecl | None:
        """Return the schema declaration, if the document has one."""
        for decl in self.types:
            if decl.kind == DeclKind.SCHEMA and not decl.extend:
                return decl
        return None

    def to_dict(self) -> dict[str, Any]:
        """Convert the document to JSON compatible primitives."""
        return asdict(self, dict_factory=_dict_factory)

    @staticmethod
    def from_dict(d: dict[str, Any]) -> Document:
        """Rebuild a document from the output of ``to_dict``."""
        return Document(
            name=d.get("name", ""),
            path=d.get("path", ""),
            directives=[Directive.from_dict(x) for x in d.get("directives", [])],
            types=[TypeDecl.from_dict(x) for x in d.get("types", [])],
        )


def _dict_factory(items: list[tuple[str, Any]]) -> dict[str, Any]:
    return {k: (v.value if isinstance(v, Enum) else v) for k, v in items}
