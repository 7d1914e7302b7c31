import pytest

from gqlc.errors import InvalidInputError, ParseError
from gqlc.schema_ast import DeclKind, DocumentSet, SchemaParser, TypeRef, document_name
from gqlc.schema_ast.parser import Lexer, block_string_value


def parse(source, name="test"):
    return SchemaParser().parse(source, f"{name}.gql", name)


class TestLexer:
    def test_ignores_commas_and_comments(self):
        tokens = Lexer("type A { # comment\n  a: Int, b: Int }", "t.gql").tokens()
        values = [t.value for t in tokens if t.kind != "eof"]
        assert values == ["type", "A", "{", "a", ":", "Int", "b", ":", "Int", "}"]

    def test_positions(self):
        tokens = Lexer("type A {\n  field: Int\n}", "t.gql").tokens()
        field = tokens[3]
        assert (field.value, field.line, field.column) == ("field", 2, 3)

    def test_unterminated_string(self):
        with pytest.raises(ParseError, match="unterminated string") as exc_info:
            Lexer('type A {\n  "abc\n}', "t.gql").tokens()
        assert (exc_info.value.line, exc_info.value.column) == (2, 3)

    def test_block_string_dedent(self):
        raw = '"""\n    First line\n      indented\n    last\n  """'
        assert block_string_value(raw) == "First line\n  indented\nlast"


class TestSchemaParser:
    def test_object_type(self):
        doc = parse('"""\nThe root.\n"""\ntype Query {\n  hello: String\n  "Greets"\n  greet(name: String!): [String!]!\n}')

        assert doc.name == "test"
        assert doc.path == "test.gql"
        (query,) = doc.types
        assert query.kind == DeclKind.OBJECT
        assert query.name == "Query"
        assert query.description == "The root."
        assert (query.line, query.column) == (4, 1)
        assert [f.name for f in query.fields] == ["hello", "greet"]

        greet = query.fields[1]
        assert greet.description == "Greets"
        assert greet.args[0].name == "name"
        assert greet.args[0].type == TypeRef(name="String", non_null=True)
        assert greet.type == TypeRef(of_type=TypeRef(name="String", non_null=True), non_null=True)
        assert greet.type.to_source() == "[String!]!"
        assert greet.type.named_type() == "String"

    def test_schema(self):
        doc = parse("schema { query: Query mutation: Mutation }")
        schema = doc.schema
        assert schema.kind == DeclKind.SCHEMA
        assert [(op.operation, op.type_name) for op in schema.root_operations] == [
            ("query", "Query"),
            ("mutation", "Mutation"),
        ]

    def test_interfaces(self):
        doc = parse("type User implements & Node & Entity { id: ID! }")
        assert doc.types[0].interfaces == ["Node", "Entity"]

    def test_union(self):
        doc = parse("union Result = | A | B")
        assert doc.types[0].kind == DeclKind.UNION
        assert doc.types[0].members == ["A", "B"]

    def test_enum(self):
        doc = parse('enum Color { RED "Green things" GREEN @deprecated }')
        color = doc.types[0]
        assert [v.name for v in color.values] == ["RED", "GREEN"]
        assert color.values[1].description == "Green things"
        assert color.values[1].directives[0].name == "deprecated"

    def test_enum_value_cannot_be_boolean(self):
        with pytest.raises(ParseError, match="not a valid enum value"):
            parse("enum Bad { true }")

    def test_input_with_defaults(self):
        doc = parse('input Filter { limit: Int = 10 tags: [String] = ["a", "b"] where: Where = {field: NAME, desc: true} }')
        limit, tags, where = doc.types[0].input_fields
        assert (limit.default.kind, limit.default.raw) == ("int", "10")
        assert tags.default.kind == "list"
        assert tags.default.to_source() == '["a", "b"]'
        assert where.default.to_source() == "{field: NAME, desc: true}"

    def test_directive_definition(self):
        doc = parse("directive @auth(role: String = \"admin\") repeatable on FIELD_DEFINITION | OBJECT")
        auth = doc.types[0]
        assert auth.kind == DeclKind.DIRECTIVE
        assert auth.name == "auth"
        assert auth.args[0].default.raw == '"admin"'
        assert auth.locations == ["FIELD_DEFINITION", "OBJECT"]

    def test_scalar_with_directive(self):
        doc = parse('scalar Date @specifiedBy(url: "https://example.com")')
        date = doc.types[0]
        assert date.kind == DeclKind.SCALAR
        assert date.directives[0].arg("url").raw == '"https://example.com"'
        assert date.directives[0].arg("missing") is None

    def test_extensions(self):
        doc = parse("extend type Query { more: Int }\nextend schema { mutation: Mutation }")
        query, schema = doc.types
        assert query.extend and query.kind == DeclKind.OBJECT
        assert schema.extend and schema.kind == DeclKind.SCHEMA
        assert doc.schema is None

    def test_document_directives(self):
        doc = parse('@import(paths: ["types.gql", "other.gql"])\ntype Query { a: Int }')
        (directive,) = doc.directives
        assert directive.name == "import"
        assert [item.raw for item in directive.arg("paths").items] == ['"types.gql"', '"other.gql"']
        assert doc.types[0].name == "Query"

    def test_empty_document(self):
        doc = parse("  # nothing here\n")
        assert doc.types == []
        assert doc.directives == []

    @pytest.mark.parametrize(
        "source, message, line, column",
        [
            ("type Query {\n  hello String\n}", "expected ':', found 'String'", 2, 9),
            ("type Query { hello: String", "expected a name, found end of file", 1, 27),
            ("query { a }", "expected a definition, found 'query'", 1, 1),
            ("type A { b: Int ? }", "unexpected character '?'", 1, 17),
            ('"desc" extend type A { b: Int }', "extensions cannot have a description", 1, 8),
            ("extend directive @a on FIELD", "directives cannot be extended", 1, 8),
            ('"bad \\q escape"\nscalar S', "invalid string escape", 1, 1),
            ('@import(paths: ["a\\xb.gql"])', "invalid string escape", 1, 17),
        ],
    )
    def test_errors(self, source, message, line, column):
        with pytest.raises(ParseError) as exc_info:
            parse(source)
        err = exc_info.value
        assert err.reason == message
        assert (err.file, err.line, err.column) == ("test.gql", line, column)
        assert err.message == f"test.gql:{line}:{column}: {message}"


class TestDocumentSet:
    def test_document_name(self):
        assert document_name("schema/test.gql") == "test"
        assert document_name("a.b.graphql") == "a.b"

    def test_same_path_parsed_once(self):
        docs = DocumentSet()
        first = docs.parse("a.gql", "scalar A")
        assert docs.parse("a.gql", "scalar Ignored") is first
        assert "a.gql" in docs
        assert [d.name for d in docs.documents()] == ["a"]

    def test_name_collision(self):
        docs = DocumentSet()
        docs.parse("one/a.gql", "scalar A")
        with pytest.raises(InvalidInputError, match="both produce document 'a'"):
            docs.parse("two/a.graphql", "scalar B")

    def test_documents_in_parse_order(self):
        docs = DocumentSet()
        docs.parse("b.gql", "scalar B")
        docs.parse("a.gql", "scalar A")
        assert [d.name for d in docs.documents()] == ["b", "a"]
