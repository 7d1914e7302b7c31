"""
GraphQL schema definition language parser.

Phase 1 of the compiler: turn source text into a Document without
resolving any type references. Type resolution happens in the analyzer.
"""

from __future__ import annotations

import bisect
import json
import re
from dataclasses import dataclass

from ..errors import ParseError
from .nodes import (
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

_TOKEN_RE = re.compile(
    r"""
    (?P<ignored>[\s,\ufeff]+|\#[^\n\r]*)
  | (?P<block_string>\"\"\"(?:\\\"\"\"|[\s\S])*?\"\"\")
  | (?P<string>"(?:[^"\\\n\r]|\\.)*")
  | (?P<number>-?(?:0|[1-9][0-9]*)(?:\.[0-9]+)?(?:[eE][+-]?[0-9]+)?)
  | (?P<name>[_A-Za-z][_0-9A-Za-z]*)
  | (?P<punct>\.\.\.|[!$&():=@\[\]{|}])
    """,
    re.VERBOSE,
)

# Keywords that may start a definition
_DEFINITION_KEYWORDS = {"schema", "scalar", "type", "interface", "union", "enum", "input", "directive"}


@dataclass
class Token:
    kind: str  # name, number, string, block_string, punct, eof
    value: str
    line: int
    column: int


class Lexer:
    """Splits GraphQL source into tokens, dropping whitespace, commas and comments."""

    def __init__(self, source: str, filename: str):
        self.source = source
        self.filename = filename
        self._line_starts = [0] + [m.end() for m in re.finditer(r"\r\n|\n|\r", source)]

    def _position(self, offset: int) -> tuple[int, int]:
        index = bisect.bisect_right(self._line_starts, offset) - 1
        return index + 1, offset - self._line_starts[index] + 1

    def tokens(self) -> list[Token]:
        result: list[Token] = []
        pos = 0
        length = len(self.source)
        while pos < length:
            match = _TOKEN_RE.match(self.source, pos)
            if match is None:
                line, column = self._position(pos)
                char = self.source[pos]
                if char == '"':
                    raise ParseError("unterminated string", self.filename, line, column)
                raise ParseError(f"unexpected character {char!r}", self.filename, line, column)
            kind = match.lastgroup
            if kind != "ignored":
                line, column = self._position(pos)
                result.append(Token(kind, match.group(), line, column))
            pos = match.end()
        line, column = self._position(length)
        result.append(Token("eof", "", line, column))
        return result


def block_string_value(raw: str) -> str:
    """Return the value of a block string token, with common indentation removed."""
    body = raw[3:-3].replace('\\"""', '"""')
    lines = re.split(r"\r\n|\n|\r", body)

    common = None
    for line in lines[1:]:
        stripped = line.lstrip(" \t")
        if not stripped:
            continue
        indent = len(line) - len(stripped)
        if common is None or indent < common:
            common = indent
    if common:
        lines = [lines[0]] + [line[common:] for line in lines[1:]]

    while lines and not lines[0].strip(" \t"):
        lines.pop(0)
    while lines and not lines[-1].strip(" \t"):
        lines.pop()
    return "\n".join(lines)


class SchemaParser:
    """Recursive descent parser for schema documents."""

    def parse(self, source: str, filename: str, name: str) -> Document:
        """
        Parse schema source text.

        Args:
            source: The GraphQL source
            filename: Path used in error messages
            name: Name to give the resulting document

        Returns:
            The parsed Document

        Raises:
            ParseError: If the source is not valid schema language
        """
        self._filename = filename
        self._tokens = Lexer(source, filename).tokens()
        self._pos = 0

        doc = Document(name=name, path=filename)
        doc.directives = self._parse_directives()
        while self._peek().kind != "eof":
            doc.types.append(self._parse_definition())
        return doc

    # Token helpers

    def _peek(self, offset: int = 0) -> Token:
        index = min(self._pos + offset, len(self._tokens) - 1)
        return self._tokens[index]

    def _advance(self) -> Token:
        tok = self._tokens[self._pos]
        if tok.kind != "eof":
            self._pos += 1
        return tok

    def _error(self, message: str, tok: Token | None = None) -> ParseError:
        tok = tok or self._peek()
        return ParseError(message, self._filename, tok.line, tok.column)

    def _describe(self, tok: Token) -> str:
        return "end of file" if tok.kind == "eof" else repr(tok.value)

    def _at(self, value: str) -> bool:
        tok = self._peek()
        return tok.kind in ("punct", "name") and tok.value == value

    def _accept(self, value: str) -> bool:
        if self._at(value):
            self._advance()
            return True
        return False

    def _expect(self, value: str) -> Token:
        if not self._at(value):
            raise self._error(f"expected {value!r}, found {self._describe(self._peek())}")
        return self._advance()

    def _expect_name(self) -> Token:
        tok = self._peek()
        if tok.kind != "name":
            raise self._error(f"expected a name, found {self._describe(tok)}")
        return self._advance()

    # Definitions

    def _string_value(self, tok: Token) -> str:
        try:
            return json.loads(tok.value, strict=False)
        except ValueError:
            raise self._error("invalid string escape", tok) from None

    def _parse_description(self) -> str:
        tok = self._peek()
        if tok.kind == "string":
            self._advance()
            return self._string_value(tok)
        if tok.kind == "block_string":
            self._advance()
            return block_string_value(tok.value)
        return ""

    def _parse_definition(self) -> TypeDecl:
        description = self._parse_description()
        tok = self._peek()
        if tok.kind == "name" and tok.value == "extend":
            if description:
                raise self._error("extensions cannot have a description", tok)
            self._advance()
            keyword = self._peek()
            if keyword.value == "directive":
                raise self._error("directives cannot be extended", keyword)
            decl = self._parse_keyword_definition()
            decl.extend = True
            return decl
        if tok.kind != "name" or tok.value not in _DEFINITION_KEYWORDS:
            raise self._error(f"expected a definition, found {self._describe(tok)}", tok)
        decl = self._parse_keyword_definition()
        decl.description = description
        return decl

    def _parse_keyword_definition(self) -> TypeDecl:
        tok = self._peek()
        if tok.kind != "name" or tok.value not in _DEFINITION_KEYWORDS:
            raise self._error(f"expected a definition, found {self._describe(tok)}", tok)
        self._advance()
        parse = getattr(self, f"_parse_{tok.value}")
        decl = parse()
        decl.line, decl.column = tok.line, tok.column
        return decl

    def _parse_schema(self) -> TypeDecl:
        decl = TypeDecl(kind=DeclKind.SCHEMA)
        decl.directives = self._parse_directives()
        if self._accept("{"):
            while not self._accept("}"):
                op = self._expect_name()
                self._expect(":")
                decl.root_operations.append(
                    RootOperation(
                        operation=op.value,
                        type_name=self._expect_name().value,
                        line=op.line,
                        column=op.column,
                    )
                )
        return decl

    def _parse_scalar(self) -> TypeDecl:
        decl = TypeDecl(kind=DeclKind.SCALAR, name=self._expect_name().value)
        decl.directives = self._parse_directives()
        return decl

    def _parse_type(self) -> TypeDecl:
        return self._parse_fielded(DeclKind.OBJECT)

    def _parse_interface(self) -> TypeDecl:
        return self._parse_fielded(DeclKind.INTERFACE)

    def _parse_fielded(self, kind: DeclKind) -> TypeDecl:
        decl = TypeDecl(kind=kind, name=self._expect_name().value)
        if self._accept("implements"):
            self._accept("&")
            decl.interfaces.append(self._expect_name().value)
            while self._accept("&"):
                decl.interfaces.append(self._expect_name().value)
        decl.directives = self._parse_directives()
        if self._accept("{"):
            while not self._accept("}"):
                decl.fields.append(self._parse_field())
        return decl

    def _parse_field(self) -> FieldDef:
        description = self._parse_description()
        name = self._expect_name()
        args = self._parse_arguments_definition()
        self._expect(":")
        return FieldDef(
            name=name.value,
            type=self._parse_type_ref(),
            args=args,
            description=description,
            directives=self._parse_directives(),
            line=name.line,
            column=name.column,
        )

    def _parse_arguments_definition(self) -> list[InputValue]:
        args: list[InputValue] = []
        if self._accept("("):
            while not self._accept(")"):
                args.append(self._parse_input_value())
        return args

    def _parse_input_value(self) -> InputValue:
        description = self._parse_description()
        name = self._expect_name()
        self._expect(":")
        value = InputValue(
            name=name.value,
            type=self._parse_type_ref(),
            description=description,
            line=name.line,
            column=name.column,
        )
        if self._accept("="):
            value.default = self._parse_value()
        value.directives = self._parse_directives()
        return value

    def _parse_union(self) -> TypeDecl:
        decl = TypeDecl(kind=DeclKind.UNION, name=self._expect_name().value)
        decl.directives = self._parse_directives()
        if self._accept("="):
            self._accept("|")
            decl.members.append(self._expect_name().value)
            while self._accept("|"):
                decl.members.append(self._expect_name().value)
        return decl

    def _parse_enum(self) -> TypeDecl:
        decl = TypeDecl(kind=DeclKind.ENUM, name=self._expect_name().value)
        decl.directives = self._parse_directives()
        if self._accept("{"):
            while not self._accept("}"):
                description = self._parse_description()
                name = self._expect_name()
                if name.value in ("true", "false", "null"):
                    raise self._error(f"{name.value!r} is not a valid enum value", name)
                decl.values.append(
                    EnumValue(name=name.value, description=description, directives=self._parse_directives())
                )
        return decl

    def _parse_input(self) -> TypeDecl:
        decl = TypeDecl(kind=DeclKind.INPUT, name=self._expect_name().value)
        decl.directives = self._parse_directives()
        if self._accept("{"):
            while not self._accept("}"):
                decl.input_fields.append(self._parse_input_value())
        return decl

    def _parse_directive(self) -> TypeDecl:
        self._expect("@")
        decl = TypeDecl(kind=DeclKind.DIRECTIVE, name=self._expect_name().value)
        decl.args = self._parse_arguments_definition()
        self._accept("repeatable")
        self._expect("on")
        self._accept("|")
        decl.locations.append(self._expect_name().value)
        while self._accept("|"):
            decl.locations.append(self._expect_name().value)
        return decl

    # Types, values and directives

    def _parse_type_ref(self) -> TypeRef:
        if self._accept("["):
            ref = TypeRef(of_type=self._parse_type_ref())
            self._expect("]")
        else:
            ref = TypeRef(name=self._expect_name().value)
        ref.non_null = self._accept("!")
        return ref

    def _parse_value(self) -> Value:
        tok = self._peek()
        if tok.kind == "number":
            self._advance()
            is_float = any(c in tok.value for c in ".eE")
            return Value(kind="float" if is_float else "int", raw=tok.value)
        if tok.kind in ("string", "block_string"):
            self._advance()
            if tok.kind == "string":
                self._string_value(tok)
            return Value(kind="string", raw=tok.value)
        if tok.kind == "name":
            self._advance()
            if tok.value in ("true", "false"):
                return Value(kind="boolean", raw=tok.value)
            if tok.value == "null":
                return Value(kind="null", raw=tok.value)
            return Value(kind="enum", raw=tok.value)
        if self._accept("["):
            value = Value(kind="list")
            while not self._accept("]"):
                value.items.append(self._parse_value())
            return value
        if self._accept("{"):
            value = Value(kind="object")
            while not self._accept("}"):
                name = self._expect_name().value
                self._expect(":")
                value.fields.append(ObjectField(name=name, value=self._parse_value()))
            return value
        raise self._error(f"expected a value, found {self._describe(tok)}")

    def _parse_directives(self) -> list[Directive]:
        directives: list[Directive] = []
        while self._at("@"):
            at = self._advance()
            directive = Directive(name=self._expect_name().value, line=at.line, column=at.column)
            if self._accept("("):
                while not self._accept(")"):
                    name = self._expect_name().value
                    self._expect(":")
                    directive.args.append(Argument(name=name, value=self._parse_value()))
            directives.append(directive)
        return directives
