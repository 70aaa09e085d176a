"""
Pipeline - OpenAPI 3.x to ReScript generator.

This module provides a multi-phase architecture for generating ReScript
types, rescript-schema validators and an HTTP client from OpenAPI
documents:

1. Phase 1 (Document): Load JSON/YAML and parse it into the document model
2. Phase 2 (Analyzer): Resolve references and build IR
3. Phase 3 (Ordering): Order declarations, grouping recursive types
4. Phase 4 (Backends): Render the Types, Schema and Client modules
5. Phase 5 (Formatter): Optional post-processing with `rescript format`
"""

from __future__ import annotations

from .config import CodeGeneratorConfig, FormatterConfig, OutputConfig, OutputMode
from .errors import (
    AmbiguousSchemaError,
    CircularReferenceError,
    EmitterError,
    GenerationError,
    NameCollisionError,
    OutputError,
    ParseError,
    SchemaError,
    UnresolvableCycleError,
    UnresolvedReferenceError,
)
from .generator import GenerationResult, PipelineGenerator
from .output import AtomicWriter

__all__ = [
    "PipelineGenerator",
    "GenerationResult",
    "CodeGeneratorConfig",
    "FormatterConfig",
    "OutputConfig",
    "OutputMode",
    "AtomicWriter",
    "GenerationError",
    "ParseError",
    "SchemaError",
    "AmbiguousSchemaError",
    "UnresolvedReferenceError",
    "CircularReferenceError",
    "NameCollisionError",
    "UnresolvableCycleError",
    "EmitterError",
    "OutputError",
]
