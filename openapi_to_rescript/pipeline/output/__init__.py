"""
Output handling for generated modules.
"""

from __future__ import annotations

from .atomic_writer import AtomicWriter, validate_brackets

__all__ = [
    "AtomicWriter",
    "validate_brackets",
]
