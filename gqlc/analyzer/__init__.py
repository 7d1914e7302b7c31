"""
Analyzer module.

Contains the cross-document type checker.
"""

from __future__ import annotations

from .checker import BUILTIN_DIRECTIVES, TypeChecker, check_types

__all__ = [
    "BUILTIN_DIRECTIVES",
    "TypeChecker",
    "check_types",
]
