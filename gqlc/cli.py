"""
The gqlc command line.

Generators contribute their switches to a click command built at run
time. click only parses; the registry turns the parsed switch values into
entries, and the compiler does the rest. CommandLine.run is the single
guarded entry point: nothing raised below it escapes as anything but a
GqlcError.
"""

from __future__ import annotations

import logging
import sys
import traceback
from collections.abc import Sequence
from typing import Any, TextIO

import click

from .compiler import Compiler
from .config import CompilerConfig
from .context import RunContext
from .errors import CancelledError, GqlcError, InternalFault, InvalidInputError
from .generator import Generator
from .generators import DocGenerator
from .log import get_logger, make_logger
from .output import FileSystem, OsFileSystem
from .plugin import DEFAULT_PREFIX
from .registry import GeneratorRegistry, GeneratorSpec


class CommandLine:
    """The compiler command line, with helpers for registering generators."""

    def __init__(
        self,
        fs: FileSystem | None = None,
        registry: GeneratorRegistry | None = None,
        log_stream: TextIO | None = None,
    ):
        """
        Args:
            fs: File system for inputs and outputs (the real one by default)
            registry: Generator registry to use (a new one by default)
            log_stream: Where verbose logging goes (stderr by default)
        """
        self.fs = fs or OsFileSystem()
        self.logger = logging.getLogger("gqlc")
        self.registry = registry or GeneratorRegistry(self.logger.getChild("registry"))
        self.log_stream = log_stream

    def allow_plugins(self, prefix: str = DEFAULT_PREFIX) -> None:
        """Allow unknown ``--<name>_out`` switches to run the ``<prefix><name>`` plugin."""
        self.registry.allow_plugins(prefix)

    def register_generator(self, generator: Generator, name: str, opt: str = "", help: str = "") -> GeneratorSpec:
        """Register a generator under an activation switch and an optional options switch."""
        return self.registry.register(generator, name, opt, help)

    def build_command(self) -> click.Command:
        """Build the click command for the currently registered generators."""
        switches: dict[str, str] = {}

        def callback(**kwargs: Any) -> tuple[dict[str, Any], dict[str, str | None]]:
            values = {switch: kwargs.pop(param) for param, switch in switches.items()}
            return kwargs, values

        params: list[click.Parameter] = [
            click.Option(
                ["-I", "--import_path", "import_paths"],
                multiple=True,
                help="Directory in which to search for imports. May be repeated; searched in order.",
            ),
            click.Option(["-v", "--verbose"], is_flag=True, default=False, help="Output logging."),
            click.Option(
                ["--config", "config_path"],
                type=click.Path(exists=True, dir_okay=False),
                default=None,
                help="JSON file with compiler configuration.",
            ),
            click.Option(["--timeout"], type=float, default=None, help="Cancel the run after this many seconds."),
            click.Option(
                ["-j", "--jobs"],
                type=click.IntRange(min=1),
                default=None,
                help="Number of generator invocations to run concurrently.",
            ),
        ]

        for i, spec in enumerate(self.registry):
            param = f"generator_{i}_out"
            switches[param] = spec.name
            params.append(click.Option([f"--{spec.name}", param], metavar="DIR", default=None, help=spec.help))
            if spec.opt:
                param = f"generator_{i}_opt"
                switches[param] = spec.opt
                params.append(
                    click.Option(
                        [f"--{spec.opt}", param],
                        metavar="JSON",
                        default=None,
                        help="Pass additional options to generator.",
                    )
                )

        params.append(click.Argument(["files"], nargs=-1))
        return click.Command(
            "gqlc",
            callback=callback,
            params=params,
            help="A GraphQL IDL compiler.",
        )

    def run(self, args: Sequence[str], ctx: RunContext | None = None) -> None:
        """
        Run the compiler. This is the single guarded entry point.

        Args:
            args: Command line arguments, without the program name
            ctx: Cancellation context; built from --timeout when None

        Raises:
            GqlcError: On any failure. Unexpected exceptions are converted
                to InternalFault carrying the traceback.
        """
        try:
            self._run(list(args), ctx)
        except GqlcError:
            raise
        except Exception as e:
            raise InternalFault(e, traceback.format_exc()) from e

    def _parse(self, args: list[str]) -> tuple[dict[str, Any], dict[str, str | None]] | None:
        command = self.build_command()
        try:
            rv = command.main(args, prog_name="gqlc", standalone_mode=False)
        except click.exceptions.Abort as e:
            raise CancelledError("aborted") from e
        except click.ClickException as e:
            raise InvalidInputError(e.format_message()) from e
        if not isinstance(rv, tuple):
            # --help was printed
            return None
        return rv

    def _config(self, params: dict[str, Any]) -> CompilerConfig:
        if params["config_path"] is not None:
            config = CompilerConfig.from_file(params["config_path"])
        else:
            config = CompilerConfig()
        if params["import_paths"]:
            config.import_paths = list(params["import_paths"])
        if params["verbose"]:
            config.verbose = True
        if params["timeout"] is not None:
            config.timeout = params["timeout"]
        if params["jobs"] is not None:
            config.jobs = params["jobs"]
        return config

    def _run(self, args: list[str], ctx: RunContext | None) -> None:
        self.registry.register_plugins(args, self.logger.getChild("plugin"))

        parsed = self._parse(args)
        if parsed is None:
            return
        params, switch_values = parsed

        config = self._config(params)
        logger = make_logger(config.verbose, self.log_stream)

        entries = self.registry.resolve(switch_values)
        compiler = Compiler(
            fs=self.fs,
            logger=get_logger(logger, "compiler"),
            import_paths=config.import_paths,
            extensions=config.extensions,
            max_workers=config.jobs,
        )
        ctx = ctx or RunContext(timeout=config.timeout)
        if not entries:
            logger.warning("no generators activated; only checking inputs")
        compiler.compile(params["files"], entries, ctx)


def default_command_line(fs: FileSystem | None = None) -> CommandLine:
    """The command line with the built-in generators and plugins enabled."""
    cli = CommandLine(fs=fs)
    cli.allow_plugins(DEFAULT_PREFIX)
    cli.register_generator(
        DocGenerator(cli.logger.getChild("doc")),
        "doc_out",
        "doc_opt",
        "Generate Documentation from GraphQL schema.",
    )
    return cli


def main(argv: Sequence[str] | None = None) -> None:
    """Console script entry point."""
    cli = default_command_line()
    try:
        cli.run(sys.argv[1:] if argv is None else argv)
    except GqlcError as e:
        click.echo(str(e), err=True)
        sys.exit(1)
    except KeyboardInterrupt:
        click.echo("gqlc: interrupted", err=True)
        sys.exit(1)
