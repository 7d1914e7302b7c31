"""
The Generator capability.

Built-in generators and plugins both implement Generator. The registry and
the pipeline only ever see this interface.
"""

from __future__ import annotations

import logging
import threading
from abc import ABC, abstractmethod
from collections.abc import Mapping
from typing import Any

from .context import RunContext
from .output import OutputContext, OutputFile
from .schema_ast.nodes import Document


class GeneratorContext:
    """What a generator receives for one invocation.

    Bundles the run's cancellation context with the output context of the
    registry entry being executed. Handles opened through it are released
    when the invocation ends, whether or not the generator closed them.
    """

    def __init__(self, run: RunContext, output: OutputContext):
        self.run = run
        self.output = output
        self._lock = threading.Lock()
        self._files: list[OutputFile] = []

    def open(self, name: str) -> OutputFile:
        """Open a file relative to the generator's output directory."""
        f = self.output.open(name)
        with self._lock:
            self._files.append(f)
        return f

    def release(self, failed: bool) -> None:
        """Discard (failed) or commit the handles this invocation left open."""
        with self._lock:
            files = list(self._files)
        self.output.release(files, failed)

    @property
    def cancelled(self) -> bool:
        return self.run.done

    def raise_if_cancelled(self) -> None:
        self.run.raise_if_done()


class Generator(ABC):
    """Abstract base class for code generators."""

    # Identity used when attributing errors
    name: str = ""

    def __init__(self, logger: logging.Logger | None = None):
        self.logger = logger or logging.getLogger(f"gqlc.{self.name or type(self).__name__}")

    @abstractmethod
    def generate(self, ctx: GeneratorContext, doc: Document, options: Mapping[str, Any]) -> None:
        """
        Generate output for one document.

        Args:
            ctx: Invocation context; files must be created through ctx.open
            doc: The type-checked document. It must not be modified.
            options: Decoded generator options (empty when none were given)

        Raises:
            GqlcError: If generation fails
        """
