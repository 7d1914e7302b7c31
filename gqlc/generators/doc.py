"""
Documentation generator.

Writes one ``<document>.md`` file per document: a table of contents
followed by a section per kind of declaration. With the ``html`` option the
same page is also written as ``<document>.html``.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import jinja2

from ..errors import InvalidInputError
from ..generator import Generator, GeneratorContext
from ..schema_ast.nodes import BUILTIN_SCALARS, DeclKind, Directive, Document, InputValue, TypeDecl, TypeRef, Value

# Section order and titles
SECTIONS = [
    (DeclKind.SCALAR, "Scalars"),
    (DeclKind.OBJECT, "Objects"),
    (DeclKind.INTERFACE, "Interfaces"),
    (DeclKind.UNION, "Unions"),
    (DeclKind.ENUM, "Enums"),
    (DeclKind.INPUT, "Inputs"),
    (DeclKind.DIRECTIVE, "Directives"),
]


def type_markdown(ref: TypeRef) -> str:
    """Render a type, linking to declared types: ``[[Test](#Test)]!``."""
    if ref.of_type is not None:
        inner = f"[{type_markdown(ref.of_type)}]"
    elif ref.name in BUILTIN_SCALARS:
        inner = ref.name
    else:
        inner = f"[{ref.name}](#{ref.name})"
    return inner + ("!" if ref.non_null else "")


def type_parts(ref: TypeRef) -> list[tuple[str, str | None]]:
    """Split a type into text pieces, each paired with the anchor it links to (or None)."""
    if ref.of_type is not None:
        parts = [("[", None), *type_parts(ref.of_type), ("]", None)]
    elif ref.name in BUILTIN_SCALARS:
        parts = [(ref.name, None)]
    else:
        parts = [(ref.name, ref.name)]
    return parts + [("!", None)] if ref.non_null else parts


def _deprecation(directives: list[Directive]) -> str | None:
    for directive in directives:
        if directive.name == "deprecated":
            reason = directive.arg("reason")
            return f"*Deprecated*: {reason.to_source()}" if reason else "*Deprecated*"
    return None


def field_lines(
    name: str,
    ref: TypeRef,
    description: str = "",
    args: list[InputValue] | None = None,
    default: Value | None = None,
    directives: list[Directive] | None = None,
    indent: str = "",
) -> list[str]:
    """Render a field, argument or input field as Markdown list lines."""
    lines = [f"{indent}- {name} **({type_markdown(ref)})**"]

    detail = [f"{indent}\t{line}" for line in description.splitlines()]
    deprecation = _deprecation(directives or [])
    if deprecation:
        detail.append(f"{indent}\t{deprecation}")
    if default is not None:
        detail.append(f"{indent}\t*Default Value*: `{default.to_source()}`")
    if args:
        if detail:
            detail.append("")
        detail.append(f"{indent}\t*Args*:")
        for arg in args:
            detail.extend(
                field_lines(arg.name, arg.type, arg.description, None, arg.default, arg.directives, indent + "\t")
            )

    if detail:
        lines.append("")
        lines.extend(detail)
    return lines


def _links(title: str, names: list[str]) -> list[str]:
    return ["", f"*{title}*:"] + [f"- [{n}](#{n})" for n in names]


def schema_block(decl: TypeDecl) -> str:
    lines = decl.description.splitlines()
    if lines:
        lines.append("")
    lines.append("*Root Operations*:")
    for op in decl.root_operations:
        lines.append(f"- {op.operation} **([{op.type_name}](#{op.type_name}))**")
    return "\n".join(lines)


def decl_block(decl: TypeDecl) -> str:
    """Render one declaration as a ``### Name`` block."""
    if decl.kind == DeclKind.SCHEMA:
        return "### schema\n" + schema_block(decl)

    lines = [f"### {decl.name}"]
    lines.extend(decl.description.splitlines())

    if decl.kind in (DeclKind.OBJECT, DeclKind.INTERFACE):
        if decl.interfaces:
            lines.extend(_links("Interfaces", decl.interfaces))
        if decl.fields:
            lines.extend(["", "*Fields*:"])
            for f in decl.fields:
                lines.extend(field_lines(f.name, f.type, f.description, f.args, None, f.directives))
    elif decl.kind == DeclKind.UNION:
        lines.extend(_links("Types", decl.members))
    elif decl.kind == DeclKind.ENUM:
        lines.extend(["", "*Values*:"])
        for value in decl.values:
            lines.append(f"- {value.name}")
            detail = [f"\t{line}" for line in value.description.splitlines()]
            deprecation = _deprecation(value.directives)
            if deprecation:
                detail.append(f"\t{deprecation}")
            if detail:
                lines.append("")
                lines.extend(detail)
    elif decl.kind == DeclKind.INPUT:
        lines.extend(["", "*Fields*:"])
        for f in decl.input_fields:
            lines.extend(field_lines(f.name, f.type, f.description, None, f.default, f.directives))
    elif decl.kind == DeclKind.DIRECTIVE:
        if decl.args:
            lines.extend(["", "*Args*:"])
            for arg in decl.args:
                lines.extend(field_lines(arg.name, arg.type, arg.description, None, arg.default, arg.directives))
        lines.extend(["", "*Locations*:"] + [f"- {loc}" for loc in decl.locations])

    return "\n".join(lines)


class DocGenerator(Generator):
    """Generates Markdown, and optionally HTML, documentation for a schema document.

    Options:
        title: Title of the page (defaults to the document name)
        html: Also write an HTML page (defaults to false)
    """

    name = "doc"

    def __init__(self, logger: logging.Logger | None = None):
        super().__init__(logger)
        self._setup_templates()

    def _setup_templates(self) -> None:
        """Set up Jinja2 templates."""
        template_dir = Path(__file__).parent.parent / "templates" / "doc"
        self.jinja_env = jinja2.Environment(
            loader=jinja2.FileSystemLoader(str(template_dir)),
            autoescape=jinja2.select_autoescape(["html.jinja2"]),
            lstrip_blocks=True,
            trim_blocks=True,
        )
        self.jinja_env.filters["type_parts"] = type_parts
        self.document_template = self.jinja_env.get_template("document.md.jinja2")
        self.html_template = self.jinja_env.get_template("document.html.jinja2")

    def _sections(self, doc: Document) -> list[dict[str, Any]]:
        sections = []
        schema = doc.schema
        if schema is not None:
            sections.append({"title": "Schema", "names": [], "decls": [schema], "blocks": [schema_block(schema)]})

        for kind, title in SECTIONS:
            decls = [d for d in doc.types if d.kind == kind and not d.extend]
            if decls:
                sections.append(
                    {
                        "title": title,
                        "names": [d.name for d in decls],
                        "decls": decls,
                        "blocks": [decl_block(d) for d in decls],
                    }
                )

        extensions = [d for d in doc.types if d.extend]
        if extensions:
            sections.append(
                {
                    "title": "Extensions",
                    "names": [d.name or "schema" for d in extensions],
                    "decls": extensions,
                    "blocks": [decl_block(d) for d in extensions],
                }
            )
        return sections

    def render(self, doc: Document, title: str) -> str:
        """Render the Markdown for a document."""
        return self.document_template.render(title=title, sections=self._sections(doc))

    def render_html(self, doc: Document, title: str) -> str:
        """Render the HTML page for a document."""
        return self.html_template.render(title=title, sections=self._sections(doc))

    def generate(self, ctx: GeneratorContext, doc: Document, options: Mapping[str, Any]) -> None:
        title = options.get("title", doc.name)
        if not isinstance(title, str):
            raise InvalidInputError("title option must be a string")
        html = options.get("html", False)
        if not isinstance(html, bool):
            raise InvalidInputError("html option must be a boolean")

        self.logger.info("rendering %s", doc.name)
        content = self.render(doc, title)

        ctx.raise_if_cancelled()
        with ctx.open(f"{doc.name}.md") as f:
            f.write(content)
        if html:
            with ctx.open(f"{doc.name}.html") as f:
                f.write(self.render_html(doc, title))
