"""
Registry binding generators to command line switches.

Registration declares the switches; resolution happens afterwards, from
the values the command line parser collected, and produces the ordered
list of RegistryEntry objects for one run. Parsing never mutates the
registry.
"""

from __future__ import annotations

import json
import logging
import re
from collections.abc import Iterator, Mapping, Sequence
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any

from .errors import DanglingOptionsError, DuplicateGeneratorError, InvalidInputError
from .generator import Generator
from .plugin import DEFAULT_PREFIX, PluginGenerator

OUT_SUFFIX = "_out"
OPT_SUFFIX = "_opt"

_SWITCH_RE = re.compile(r"^[A-Za-z0-9][A-Za-z0-9_-]*$")
_PLUGIN_ARG_RE = re.compile(r"^--([A-Za-z0-9][A-Za-z0-9_-]*?)(_out|_opt)(?:=.*)?$")


@dataclass(frozen=True)
class GeneratorSpec:
    """A registered generator and the switches bound to it."""

    generator: Generator

    # Activation switch, its value is the output directory (e.g. "doc_out")
    name: str

    # Options switch, its value is a JSON object (e.g. "doc_opt"); empty for none
    opt: str = ""

    # Help text for the activation switch
    help: str = ""


@dataclass(frozen=True)
class RegistryEntry:
    """An activated generator with its output directory and options for one run."""

    generator: Generator
    name: str
    output_dir: str
    options: Mapping[str, Any] = field(default_factory=lambda: MappingProxyType({}))
    activated: bool = True


def decode_options(switch: str, raw: str) -> Mapping[str, Any]:
    """
    Decode the JSON value of an options switch.

    Raises:
        InvalidInputError: If the value is not a JSON object
    """
    try:
        options = json.loads(raw)
    except json.JSONDecodeError as e:
        raise InvalidInputError(f"--{switch}: invalid JSON: {e}") from e
    if not isinstance(options, dict):
        raise InvalidInputError(f"--{switch}: options must be a JSON object")
    return MappingProxyType(options)


class GeneratorRegistry:
    """Ordered set of generators addressable by switch name."""

    def __init__(self, logger: logging.Logger | None = None):
        self._logger = logger or logging.getLogger("gqlc.registry")
        self._specs: list[GeneratorSpec] = []
        self._switches: dict[str, GeneratorSpec] = {}
        self.plugin_prefix: str | None = None

    def __iter__(self) -> Iterator[GeneratorSpec]:
        return iter(list(self._specs))

    def __len__(self) -> int:
        return len(self._specs)

    def __contains__(self, switch: str) -> bool:
        return switch in self._switches

    def register(self, generator: Generator, name: str, opt: str = "", help: str = "") -> GeneratorSpec:
        """
        Register a generator.

        Args:
            generator: The generator
            name: Activation switch name, e.g. "doc_out"
            opt: Options switch name, e.g. "doc_opt", or "" for none
            help: Description shown in --help

        Returns:
            The registered spec

        Raises:
            DuplicateGeneratorError: If either switch name is already registered
        """
        for switch in (name, opt):
            if switch and not _SWITCH_RE.match(switch):
                raise ValueError(f"invalid switch name: {switch!r}")
        if name in self._switches:
            raise DuplicateGeneratorError(f"--{name} is already registered to {self._switches[name].generator.name}")
        if opt and (opt in self._switches or opt == name):
            raise DuplicateGeneratorError(f"--{opt} is already registered")

        spec = GeneratorSpec(generator=generator, name=name, opt=opt, help=help)
        self._specs.append(spec)
        self._switches[name] = spec
        if opt:
            self._switches[opt] = spec
        self._logger.debug("registered %s as --%s", generator.name or type(generator).__name__, name)
        return spec

    def allow_plugins(self, prefix: str = DEFAULT_PREFIX) -> None:
        """Enable plugin generators, looked up as prefix + name."""
        self.plugin_prefix = prefix

    def register_plugins(self, argv: Sequence[str], logger: logging.Logger | None = None) -> list[GeneratorSpec]:
        """
        Register a plugin for every unknown ``--<name>_out`` switch in argv.

        Plugins are appended after the existing generators, in order of
        first appearance. Nothing happens unless plugins are allowed.
        An unknown ``--<name>_opt`` without its ``--<name>_out`` is reported
        before anything is registered.

        Args:
            argv: Raw command line arguments (without the program name)
            logger: Logger handed to the created plugin generators

        Returns:
            The newly registered specs

        Raises:
            DanglingOptionsError: If a plugin options switch has no activation switch
        """
        if self.plugin_prefix is None:
            return []
        outs: list[str] = []
        opts: list[str] = []
        for arg in argv:
            if arg == "--":
                break
            match = _PLUGIN_ARG_RE.match(arg)
            if match is not None:
                (outs if match.group(2) == OUT_SUFFIX else opts).append(match.group(1))

        for plugin_name in opts:
            opt = plugin_name + OPT_SUFFIX
            if opt not in self._switches and plugin_name not in outs:
                raise DanglingOptionsError(f"--{opt} was given without --{plugin_name}{OUT_SUFFIX}")

        added = []
        for plugin_name in outs:
            switch = plugin_name + OUT_SUFFIX
            if switch in self._switches:
                continue
            plugin = PluginGenerator(plugin_name, prefix=self.plugin_prefix, logger=logger)
            added.append(
                self.register(plugin, switch, plugin_name + OPT_SUFFIX, f"Generate output with the {plugin.name} plugin.")
            )
        return added

    def resolve(self, values: Mapping[str, str | None]) -> list[RegistryEntry]:
        """
        Turn parsed switch values into registry entries.

        Args:
            values: Switch name to value, None (or missing) when the switch was absent

        Returns:
            Entries for the activated generators, in registration order

        Raises:
            DanglingOptionsError: If an options switch was given without its activation switch
            InvalidInputError: If an output directory is empty or options are not a JSON object
        """
        entries = []
        for spec in self._specs:
            out = values.get(spec.name)
            opt = values.get(spec.opt) if spec.opt else None
            if out is None:
                if opt is not None:
                    raise DanglingOptionsError(f"--{spec.opt} was given without --{spec.name}")
                continue
            if not out:
                raise InvalidInputError(f"--{spec.name} requires an output directory")

            options = decode_options(spec.opt, opt) if opt is not None else MappingProxyType({})
            entries.append(RegistryEntry(generator=spec.generator, name=spec.name, output_dir=out, options=options))
        return entries
