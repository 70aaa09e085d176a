"""
Analyzer module.

Contains reference resolution, name resolution, IR building and
dependency ordering.
"""

from __future__ import annotations

from .analyzer import SchemaAnalyzer
from .dependency_resolver import DeclarationGroup, DependencyResolver, resolve_dependencies
from .ir_nodes import (
    IR,
    Alias,
    ClosedEnum,
    Container,
    ContainerKind,
    FieldDef,
    IrType,
    IrTypeRef,
    NamedRef,
    OperationDef,
    Primitive,
    PrimitiveKind,
    Record,
    TaggedUnion,
    VariantDef,
)
from .reference_resolver import ReferenceResolver

__all__ = [
    "IR",
    "Alias",
    "ClosedEnum",
    "Container",
    "ContainerKind",
    "FieldDef",
    "IrType",
    "IrTypeRef",
    "NamedRef",
    "OperationDef",
    "Primitive",
    "PrimitiveKind",
    "Record",
    "TaggedUnion",
    "VariantDef",
    "SchemaAnalyzer",
    "ReferenceResolver",
    "DependencyResolver",
    "DeclarationGroup",
    "resolve_dependencies",
]
