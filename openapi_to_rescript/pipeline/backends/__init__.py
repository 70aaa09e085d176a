"""
Code generation backends.

One backend per generated ReScript module.
"""

from __future__ import annotations

from .base import CodeBackend
from .client_backend import ClientBackend
from .schema_backend import SchemaBackend
from .types_backend import TypesBackend

__all__ = [
    "CodeBackend",
    "TypesBackend",
    "SchemaBackend",
    "ClientBackend",
]
