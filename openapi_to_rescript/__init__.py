"""OpenAPI to ReScript Generator

A Python package for generating type-safe ReScript clients from OpenAPI
3.x documents: type declarations, rescript-schema validators and an HTTP
client with a pluggable transport.
"""

__version__ = "0.1.0"

from .pipeline import (
    AtomicWriter,
    CodeGeneratorConfig,
    FormatterConfig,
    GenerationError,
    GenerationResult,
    OutputConfig,
    OutputMode,
    PipelineGenerator,
)

__all__ = [
    "PipelineGenerator",
    "GenerationResult",
    "CodeGeneratorConfig",
    "FormatterConfig",
    "OutputConfig",
    "OutputMode",
    "GenerationError",
    "AtomicWriter",
]
