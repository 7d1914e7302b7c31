"""
The compile pipeline.

1. Validate input file names
2. Parse every input (and its imports) into one DocumentSet
3. Type check all documents together
4. Run every active generator on every input document

The pipeline does not recover partially: the first failure aborts the run
and files already generated are left in place.
"""

from __future__ import annotations

import json
import logging
import posixpath
from collections.abc import Sequence
from concurrent.futures import ThreadPoolExecutor

from .analyzer import TypeChecker
from .context import RunContext
from .errors import FileIOError, GqlcError, InvalidInputError, ParseError, TypeCheckError
from .generator import GeneratorContext
from .output import FileSystem, OsFileSystem, OutputContext
from .registry import RegistryEntry
from .schema_ast import Document, DocumentSet
from .schema_ast.parser import block_string_value

DEFAULT_EXTENSIONS = (".gql", ".graphql")


class Compiler:
    """Sequences parsing, type checking and generator dispatch."""

    def __init__(
        self,
        fs: FileSystem | None = None,
        logger: logging.Logger | None = None,
        import_paths: Sequence[str] = (".",),
        extensions: Sequence[str] = DEFAULT_EXTENSIONS,
        max_workers: int = 1,
    ):
        """
        Args:
            fs: File system inputs are read from and outputs written to
            logger: Logger for progress messages
            import_paths: Directories searched, in order, for imported files
            extensions: Accepted schema source extensions
            max_workers: Generator invocations run concurrently; 1 runs them in order
        """
        self.fs = fs or OsFileSystem()
        self.logger = logger or logging.getLogger("gqlc.compiler")
        self.import_paths = list(import_paths) or ["."]
        self.extensions = tuple(extensions)
        self.max_workers = max(1, max_workers)

    def compile(
        self,
        inputs: Sequence[str],
        entries: Sequence[RegistryEntry],
        ctx: RunContext | None = None,
    ) -> list[Document]:
        """
        Run the whole pipeline.

        Args:
            inputs: Schema source paths, in command line order
            entries: Activated generators, in registration order
            ctx: Cancellation context for the run

        Returns:
            The generated input documents

        Raises:
            GqlcError: On the first validation, parse, check or generation failure
        """
        ctx = ctx or RunContext()
        self.validate_inputs(inputs)
        documents, all_documents = self.parse(inputs)
        self.check(all_documents)
        self.generate(entries, documents, ctx)
        return documents

    def validate_inputs(self, inputs: Sequence[str]) -> None:
        """Fail before any work unless every input has a schema extension."""
        if not inputs:
            raise InvalidInputError("no input files")
        for path in inputs:
            if not self._has_schema_extension(path):
                raise InvalidInputError(f"invalid file extension: {path}")

    def _has_schema_extension(self, path: str) -> bool:
        return posixpath.splitext(path)[1] in self.extensions

    def _read(self, path: str) -> str:
        try:
            data = self.fs.read_bytes(path)
        except OSError as e:
            raise FileIOError(f"cannot read {path}: {e}") from e
        try:
            return data.decode("utf-8")
        except UnicodeDecodeError as e:
            raise ParseError(f"source is not valid UTF-8: {e.reason}", path) from e

    def parse(self, inputs: Sequence[str]) -> tuple[list[Document], list[Document]]:
        """
        Parse inputs and everything they import.

        Returns:
            The input documents in command line order, and every parsed
            document (inputs and imports) in parse order
        """
        docset = DocumentSet()
        documents = []
        for path in inputs:
            path = posixpath.normpath(path)
            self.logger.info("parsing %s", path)
            documents.append(docset.parse(path, self._read(path)))

        queue = list(documents)
        while queue:
            doc = queue.pop(0)
            for imported in self._imports(doc):
                if imported in docset:
                    continue
                self.logger.info("parsing import %s of %s", imported, doc.name)
                queue.append(docset.parse(imported, self._read(imported)))
        return documents, docset.documents()

    def _imports(self, doc: Document) -> list[str]:
        """Resolve the paths named by a document's @import directives."""
        resolved = []
        for directive in doc.directives:
            if directive.name != "import":
                continue
            paths = directive.arg("paths")
            if paths is None or paths.kind != "list" or any(item.kind != "string" for item in paths.items):
                raise InvalidInputError(f"{doc.path}: @import requires a paths argument listing strings")
            for item in paths.items:
                resolved.append(self._resolve_import(doc, _string_value(item.raw)))
        return resolved

    def _resolve_import(self, doc: Document, name: str) -> str:
        if not self._has_schema_extension(name):
            raise InvalidInputError(f"{doc.path}: invalid import file extension: {name}")
        if posixpath.isabs(name):
            candidates = [name]
        else:
            base = posixpath.dirname(doc.path) or "."
            candidates = [posixpath.join(d, name) for d in [base, *self.import_paths]]
        for candidate in candidates:
            candidate = posixpath.normpath(candidate)
            if self.fs.exists(candidate):
                return candidate
        raise InvalidInputError(f"{doc.path}: cannot resolve import {name!r} in {', '.join(self.import_paths)}")

    def check(self, documents: list[Document]) -> None:
        """
        Type check all documents together.

        Raises:
            TypeCheckError: Carrying every diagnostic found
        """
        self.logger.info("type checking %d documents", len(documents))
        diagnostics = TypeChecker().check(documents)
        if diagnostics:
            raise TypeCheckError(diagnostics)

    def generate(self, entries: Sequence[RegistryEntry], documents: list[Document], ctx: RunContext) -> None:
        """
        Run every entry's generator on every document.

        Sequentially, pairs run in (registration, document) order and the first
        failure stops the run. Concurrently, all pairs finish and the first
        failure in that same order is raised.
        """
        pairs = []
        for entry in entries:
            output = OutputContext(self.fs, entry.output_dir, self.logger.getChild("output"))
            for doc in documents:
                pairs.append((entry, output, doc))

        if self.max_workers == 1 or len(pairs) <= 1:
            for pair in pairs:
                self._generate_one(ctx, *pair)
            return

        with ThreadPoolExecutor(max_workers=self.max_workers, thread_name_prefix="gqlc") as pool:
            futures = [pool.submit(self._generate_one, ctx, *pair) for pair in pairs]
        for future in futures:
            error = future.exception()
            if error is not None:
                raise error

    def _generate_one(self, ctx: RunContext, entry: RegistryEntry, output: OutputContext, doc: Document) -> None:
        ctx.raise_if_done()
        name = entry.generator.name or entry.name
        self.logger.info("generating %s with %s into %s", doc.name, name, entry.output_dir)
        gen_ctx = GeneratorContext(ctx, output)
        try:
            entry.generator.generate(gen_ctx, doc, entry.options)
        except GqlcError as e:
            gen_ctx.release(failed=True)
            raise e.attribute(name, doc.name)
        except BaseException:
            gen_ctx.release(failed=True)
            raise
        try:
            gen_ctx.release(failed=False)
        except GqlcError as e:
            raise e.attribute(name, doc.name)


def _string_value(raw: str) -> str:
    if raw.startswith('"""'):
        return block_string_value(raw)
    return json.loads(raw, strict=False)
