import pytest

from gqlc.analyzer import TypeChecker, check_types
from gqlc.errors import Diagnostic, TypeCheckError
from gqlc.schema_ast import DocumentSet


def documents(**sources):
    docs = DocumentSet()
    for name, source in sources.items():
        docs.parse(f"{name}.gql", source)
    return docs.documents()


def messages(**sources):
    return [d.message for d in check_types(documents(**sources))]


VALID = """
schema { query: Query }

scalar Date

interface Node { id: ID! }

type Query implements Node {
  id: ID!
  users(role: Role = GUEST, filter: Filter): [User!]!
  when: Date @deprecated(reason: "no")
}

type User implements Node { id: ID! name: String }

union Result = Query | User

enum Role { ADMIN GUEST }

input Filter { name: String role: Role }

directive @auth(role: Role) on FIELD_DEFINITION | OBJECT

extend type User @auth { email: String @auth(role: ADMIN) }
"""


def test_valid_schema():
    assert check_types(documents(test=VALID)) == []


def test_all_diagnostics_are_reported():
    diagnostics = TypeChecker().check(documents(test="type Query {\n  a: Missing\n  b: AlsoMissing\n}"))

    assert diagnostics == [
        Diagnostic("test", 2, 3, "object Query field a has undeclared type Missing"),
        Diagnostic("test", 3, 3, "object Query field b has undeclared type AlsoMissing"),
    ]


def test_type_check_error_message():
    diagnostics = check_types(documents(test="type Query { a: Missing b: AlsoMissing }"))
    err = TypeCheckError(diagnostics)

    assert err.diagnostics == diagnostics
    assert err.message.startswith("type checking failed with 2 errors:\n")
    assert "  test:1:14: object Query field a has undeclared type Missing" in err.message


def test_references_resolve_across_documents():
    assert messages(main="type Query { user: User }", types="type User { name: String }") == []


def test_duplicate_across_documents():
    assert messages(a="scalar Date", b="\nscalar Date") == ["type Date is already declared in a:1"]


@pytest.mark.parametrize(
    "source, expected",
    [
        ("scalar String", "cannot redeclare built-in scalar String"),
        ("directive @skip on FIELD", "cannot redeclare built-in directive @skip"),
        ("schema { query: Q } schema { query: Q } type Q { a: Int }", "schema is declared more than once"),
        ("schema { query: Int }", "root operation query type Int is not an object type"),
        ("schema { fetch: Q } type Q { a: Int }", "unknown root operation fetch"),
        ("schema { query: Q query: Q } type Q { a: Int }", "root operation query is declared more than once"),
        ("type A { a: Int a: String }", "object A repeats field a"),
        ("input I { a: Int } type A { a: I }", "object A field a type I is not an output type"),
        ("type B { b: Int } type A { a(x: B): Int }", "object A field a argument x type B is not an input type"),
        ("type B { b: Int } input I { b: B }", "input I argument b type B is not an input type"),
        ("type A implements B { a: Int } type B { b: Int }", "object A implements B, which is not an interface"),
        ("interface N { id: ID } type A implements N { a: Int }", "object A does not provide field id of interface N"),
        ("input I { a: Int } union U = I", "union U member I is not an object type"),
        ("enum E { A A }", "enum E repeats value A"),
        ("directive @d on NOWHERE", "directive @d has unknown location NOWHERE"),
        ("type A { a: Int @nope }", "undeclared directive @nope"),
        ("extend type Missing { a: Int }", "cannot extend undeclared type Missing"),
        ("scalar S extend type S { a: Int }", "cannot extend scalar S as object"),
    ],
)
def test_diagnostics(source, expected):
    assert expected in messages(test=source)


def test_extension_provides_interface_field():
    source = "interface N { id: ID } type A implements N { a: Int } extend type A { id: ID }"
    assert messages(test=source) == []


def test_document_directive_import_is_builtin():
    assert messages(test='@import(paths: ["x.gql"]) scalar S') == []
