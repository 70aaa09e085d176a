"""
Post-processing formatters for generated code.
"""

from __future__ import annotations

from .base import Formatter
from .rescript_formatter import RescriptFormatter

__all__ = [
    "Formatter",
    "RescriptFormatter",
]
