"""
Configuration for a compiler run.

Values come from an optional JSON config file; command line switches
override them.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path

from .errors import InvalidInputError


@dataclass
class CompilerConfig:
    """Configuration options for the compiler."""

    # Directories searched, in order, for imported schema files
    import_paths: list[str] = field(default_factory=lambda: ["."])

    # Whether to log progress to stderr
    verbose: bool = False

    # Seconds before the whole run is cancelled (None = no deadline)
    timeout: float | None = None

    # Number of (generator, document) pairs generated concurrently
    jobs: int = 1

    # Accepted schema source file extensions
    extensions: list[str] = field(default_factory=lambda: [".gql", ".graphql"])

    @staticmethod
    def from_dict(d: dict) -> CompilerConfig:
        """Create a config from a dictionary, ignoring unknown keys."""
        config = CompilerConfig()
        for k, v in d.items():
            if hasattr(config, k):
                setattr(config, k, v)
        return config

    @staticmethod
    def from_file(path: str | Path) -> CompilerConfig:
        """
        Load a config from a JSON file.

        Raises:
            InvalidInputError: If the file is not a JSON object
        """
        try:
            with open(path, encoding="utf-8") as f:
                d = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise InvalidInputError(f"cannot read config {path}: {e}") from e
        if not isinstance(d, dict):
            raise InvalidInputError(f"config {path} must contain a JSON object")
        return CompilerConfig.from_dict(d)

    def to_dict(self) -> dict:
        """Convert config to a dictionary."""
        return {
            "import_paths": self.import_paths,
            "verbose": self.verbose,
            "timeout": self.timeout,
            "jobs": self.jobs,
            "extensions": self.extensions,
        }
