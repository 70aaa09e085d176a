"""
Document model module.

Contains the loader, node definitions and parser for OpenAPI documents.
"""

from __future__ import annotations

from .loader import detect_format, load_document, load_document_file
from .nodes import (
    AllOfNode,
    ArrayNode,
    Document,
    FreeFormNode,
    ObjectNode,
    Operation,
    Parameter,
    ParameterLocation,
    PrimitiveNode,
    RefNode,
    RequestBody,
    Response,
    SchemaKind,
    SchemaNode,
    SecurityScheme,
    SecuritySchemeKind,
    UnionNode,
)
from .parser import DocumentParser, parse_document

__all__ = [
    "SchemaNode",
    "SchemaKind",
    "PrimitiveNode",
    "RefNode",
    "ArrayNode",
    "ObjectNode",
    "UnionNode",
    "AllOfNode",
    "FreeFormNode",
    "Parameter",
    "ParameterLocation",
    "RequestBody",
    "Response",
    "Operation",
    "SecurityScheme",
    "SecuritySchemeKind",
    "Document",
    "DocumentParser",
    "parse_document",
    "load_document",
    "load_document_file",
    "detect_format",
]
