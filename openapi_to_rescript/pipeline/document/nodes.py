"""
Document model node definitions for OpenAPI documents.

These nodes represent the parsed structure of an OpenAPI document before
any reference resolution or IR building. They are independent of the
source syntax (JSON or YAML).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class SchemaKind(Enum):
    """Kind of a schema node."""

    OBJECT = "object"
    ARRAY = "array"
    STRING = "string"
    NUMBER = "number"
    INTEGER = "integer"
    BOOLEAN = "boolean"
    ONE_OF = "oneOf"
    ANY_OF = "anyOf"
    ALL_OF = "allOf"
    REFERENCE = "reference"
    FREE_FORM = "free-form"


@dataclass(eq=False)
class SchemaNode:
    """Base class for all schema nodes.

    Nodes compare by identity: two structurally equal schemas written in
    different places are different sources.
    """

    # Original source location in document (for error messages)
    source_path: str = ""

    nullable: bool = False
    description: str | None = None

    # Scaffolding values
    default_value: Any = None
    has_default: bool = False
    example: Any = None
    has_example: bool = False

    @property
    def kind(self) -> SchemaKind:
        raise NotImplementedError


@dataclass(eq=False)
class PrimitiveNode(SchemaNode):
    """Represents a primitive type (string, integer, number, boolean)."""

    type_name: str = "string"
    format: str | None = None

    # Literal set for closed string domains; None when the schema has no enum
    enum: list[Any] | None = None

    @property
    def kind(self) -> SchemaKind:
        return SchemaKind(self.type_name)


@dataclass(eq=False)
class RefNode(SchemaNode):
    """Represents a $ref into the component registry."""

    ref_path: str = ""  # e.g., "#/components/schemas/Pet"

    # Set by the reference resolver
    target_name: str | None = None
    target: SchemaNode | None = None

    @property
    def kind(self) -> SchemaKind:
        return SchemaKind.REFERENCE

    @property
    def ref_name(self) -> str:
        return self.ref_path.rsplit("/", 1)[-1]


@dataclass(eq=False)
class ArrayNode(SchemaNode):
    """Represents an array type."""

    items: SchemaNode | None = None

    # Set when the source also declared object properties
    has_properties: bool = False

    @property
    def kind(self) -> SchemaKind:
        return SchemaKind.ARRAY


@dataclass(eq=False)
class ObjectNode(SchemaNode):
    """Represents an object type with properties."""

    properties: dict[str, SchemaNode] = field(default_factory=dict)
    required: list[str] = field(default_factory=list)

    # Schema for map values, True for an open map, False for a closed object
    additional_properties: SchemaNode | bool | None = None

    @property
    def kind(self) -> SchemaKind:
        return SchemaKind.OBJECT


@dataclass(eq=False)
class UnionNode(SchemaNode):
    """Represents a oneOf or anyOf union type."""

    variants: list[SchemaNode] = field(default_factory=list)
    union_type: str = "oneOf"  # "oneOf" or "anyOf"

    # OpenAPI discriminator.propertyName, if any
    discriminator: str | None = None

    # Properties declared next to the union keyword (kept for ambiguity checks)
    own_properties: dict[str, SchemaNode] = field(default_factory=dict)

    # Both oneOf and anyOf were present
    conflicting_keyword: str | None = None

    @property
    def kind(self) -> SchemaKind:
        return SchemaKind.ONE_OF if self.union_type == "oneOf" else SchemaKind.ANY_OF


@dataclass(eq=False)
class AllOfNode(SchemaNode):
    """Represents composition via allOf."""

    branches: list[SchemaNode] = field(default_factory=list)

    @property
    def kind(self) -> SchemaKind:
        return SchemaKind.ALL_OF


@dataclass(eq=False)
class FreeFormNode(SchemaNode):
    """Represents a schema with no type constraints."""

    @property
    def kind(self) -> SchemaKind:
        return SchemaKind.FREE_FORM


class ParameterLocation(str, Enum):
    PATH = "path"
    QUERY = "query"
    HEADER = "header"


@dataclass
class Parameter:
    name: str = ""
    location: ParameterLocation = ParameterLocation.QUERY
    schema: SchemaNode | None = None
    required: bool = False
    description: str | None = None
    source_path: str = ""


@dataclass
class RequestBody:
    schema: SchemaNode | None = None
    required: bool = False
    content_type: str = "application/json"


@dataclass
class Response:
    status: str = ""  # "200", "404", "default", ...
    schema: SchemaNode | None = None
    description: str | None = None


@dataclass
class Operation:
    """A single HTTP operation (method + path)."""

    method: str = "GET"
    path: str = ""
    operation_id: str | None = None
    summary: str | None = None
    description: str | None = None
    parameters: list[Parameter] = field(default_factory=list)
    request_body: RequestBody | None = None
    responses: list[Response] = field(default_factory=list)

    # Alternatives of requirements; each maps scheme name -> scopes.
    # None means "inherit the document default".
    security: list[dict[str, list[str]]] | None = None
    source_path: str = ""


class SecuritySchemeKind(str, Enum):
    BEARER = "bearer"
    API_KEY = "apiKey"


@dataclass
class SecurityScheme:
    name: str = ""
    kind: SecuritySchemeKind = SecuritySchemeKind.BEARER

    # For apiKey schemes
    location: str | None = None  # "header" or "query"
    param_name: str | None = None


@dataclass
class Document:
    """Root of the parsed OpenAPI document."""

    openapi_version: str = ""
    title: str = ""
    version: str = ""
    description: str | None = None
    servers: list[str] = field(default_factory=list)

    # Component registry (declaration order preserved)
    schemas: dict[str, SchemaNode] = field(default_factory=dict)

    operations: list[Operation] = field(default_factory=list)
    security_schemes: dict[str, SecurityScheme] = field(default_factory=dict)
    security: list[dict[str, list[str]]] = field(default_factory=list)

    # Raw document for reference
    raw: dict[str, Any] = field(default_factory=dict)
