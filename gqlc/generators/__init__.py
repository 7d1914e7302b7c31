"""
Built-in generators.
"""

from __future__ import annotations

from .doc import DocGenerator

__all__ = [
    "DocGenerator",
]
