"""
Runs external plugin executables as generators.

A plugin is looked up on the search path as ``prefix + name`` and spoken
to through the wire protocol in gqlc.protocol: one request on stdin, one
response on stdout, one subprocess per generate call.
"""

from __future__ import annotations

import json
import logging
import shutil
import subprocess
import threading
from collections.abc import Mapping
from typing import Any

from .errors import (
    CancelledError,
    FileIOError,
    GeneratorReportedError,
    GqlcError,
    PluginNotFoundError,
    PluginProtocolError,
)
from .generator import Generator, GeneratorContext
from .protocol import PluginRequest, decode_response, encode_request, validate_file_name
from .schema_ast.nodes import Document

DEFAULT_PREFIX = "gqlc-gen-"

# Amount of the plugin's stderr included in error messages
_STDERR_TAIL = 2000


class PluginGenerator(Generator):
    """Presents an external executable as a Generator.

    The executable path is resolved once per instance and cached, including
    a failed lookup. Concurrent calls each get their own subprocess.
    """

    def __init__(
        self,
        name: str,
        prefix: str = DEFAULT_PREFIX,
        logger: logging.Logger | None = None,
        search_path: str | None = None,
        poll_interval: float = 0.05,
    ):
        """
        Args:
            name: Plugin name, as used in its ``<name>_out`` switch
            prefix: Prepended to name to form the executable name
            logger: Logger for progress messages
            search_path: PATH-style directory list; the process PATH when None
            poll_interval: Seconds between cancellation checks while the plugin runs
        """
        self.name = prefix + name
        self.plugin_name = name
        self.prefix = prefix
        super().__init__(logger or logging.getLogger("gqlc.plugin").getChild(self.name))
        self.search_path = search_path
        self.poll_interval = poll_interval

        self._lookup_lock = threading.Lock()
        self._looked_up = False
        self._path: str | None = None
        self._lookup_error: PluginNotFoundError | None = None

    def __repr__(self) -> str:
        return f"PluginGenerator({self.name!r})"

    def executable(self) -> str:
        """
        Resolve the plugin executable, once.

        Raises:
            PluginNotFoundError: If no executable named prefix+name is on the search path
        """
        with self._lookup_lock:
            if not self._looked_up:
                self._looked_up = True
                self._path = shutil.which(self.name, path=self.search_path)
                if self._path is None:
                    self._lookup_error = PluginNotFoundError(f"executable {self.name!r} not found in search path")
                else:
                    self.logger.info("resolved plugin %s to %s", self.name, self._path)
        if self._lookup_error is not None:
            raise self._lookup_error
        return self._path

    def generate(self, ctx: GeneratorContext, doc: Document, options: Mapping[str, Any]) -> None:
        try:
            self._generate(ctx, doc, options)
        except GqlcError as e:
            # The cached lookup error is shared between calls; attribute a copy
            if isinstance(e, PluginNotFoundError):
                raise PluginNotFoundError(e.message, self.name, doc.name) from e
            raise e.attribute(self.name, doc.name)
        except OSError as e:
            raise FileIOError(str(e), self.name, doc.name) from e

    def _generate(self, ctx: GeneratorContext, doc: Document, options: Mapping[str, Any]) -> None:
        path = self.executable()

        try:
            parameter = json.dumps(dict(options), sort_keys=True)
        except (TypeError, ValueError) as e:
            raise PluginProtocolError(f"cannot encode options: {e}") from e
        payload = encode_request(
            PluginRequest(
                file_to_generate=[doc.name],
                parameter=parameter,
                documents=[doc],
            )
        )

        ctx.raise_if_cancelled()
        self.logger.info("running plugin %s for %s", self.name, doc.name)
        stdout, stderr, returncode = self._run(ctx, path, payload)

        if returncode != 0:
            message = f"plugin exited with status {returncode}"
            tail = stderr.decode("utf-8", errors="replace").strip()[-_STDERR_TAIL:]
            if tail:
                message = f"{message}: {tail}"
            raise PluginProtocolError(message)
        if stderr:
            self.logger.debug("plugin %s stderr: %s", self.name, stderr.decode("utf-8", errors="replace"))

        response = decode_response(stdout)
        if response.error:
            raise GeneratorReportedError(response.error)

        for f in response.file:
            validate_file_name(f.name)
        for f in response.file:
            self.logger.info("writing %s", f.name)
            with ctx.open(f.name) as out:
                out.write(f.content)

    def _run(self, ctx: GeneratorContext, path: str, payload: bytes) -> tuple[bytes, bytes, int]:
        """Run the plugin to completion, or kill it when the run is cancelled.

        The child process is always reaped before this returns or raises.
        """
        try:
            proc = subprocess.Popen(
                [path],
                stdin=subprocess.PIPE,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
            )
        except OSError as e:
            raise PluginProtocolError(f"cannot execute {path}: {e}") from e
        pending: bytes | None = payload
        try:
            while True:
                timeout = self.poll_interval
                remaining = ctx.run.remaining()
                if remaining is not None:
                    timeout = min(timeout, remaining)
                try:
                    # communicate() may only be given input on its first call
                    stdout, stderr = proc.communicate(pending, timeout=timeout)
                    return stdout, stderr, proc.returncode
                except subprocess.TimeoutExpired:
                    pending = None
                    if ctx.cancelled:
                        raise CancelledError(f"plugin {self.name} was cancelled")
        except BaseException:
            proc.kill()
            proc.communicate()
            raise
