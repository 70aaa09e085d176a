"""
IR (Intermediate Representation) node definitions.

These nodes represent the analyzed and resolved document, ready for
code generation. All references are resolved, every type has its final
canonical name, and nothing refers back to raw schemas.

Type nodes are frozen: they are built once per run and never mutated.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Union


class PrimitiveKind(Enum):
    """Kind of a primitive type."""

    STRING = "string"
    NUMBER = "number"
    INTEGER = "integer"
    BOOLEAN = "boolean"
    BINARY = "binary"
    JSON = "json"  # Free-form value


class ContainerKind(Enum):
    """Kind of a container type."""

    LIST = "list"  # array<T>
    NULLABLE = "nullable"  # T | null
    DICT = "dict"  # string-keyed map of T


@dataclass(frozen=True)
class Primitive:
    kind: PrimitiveKind = PrimitiveKind.STRING
    format: str | None = None


@dataclass(frozen=True)
class Container:
    element: IrTypeRef = field(default_factory=Primitive)
    kind: ContainerKind = ContainerKind.LIST


@dataclass(frozen=True)
class NamedRef:
    """Reference to a named IR type by canonical name."""

    name: str = ""


IrTypeRef = Union[NamedRef, Primitive, Container]


@dataclass(frozen=True)
class FieldDef:
    """A field definition in a record."""

    name: str = ""  # Canonical (escaped) name
    original_name: str = ""  # Wire name from the document
    type_ref: IrTypeRef = field(default_factory=Primitive)
    optional: bool = False
    description: str | None = None

    # Scaffolding values
    default_value: Any = None
    has_default: bool = False
    example: Any = None
    has_example: bool = False

    @property
    def nullable(self) -> bool:
        return isinstance(self.type_ref, Container) and self.type_ref.kind == ContainerKind.NULLABLE


@dataclass(frozen=True)
class Record:
    name: str = ""
    fields: tuple[FieldDef, ...] = ()
    description: str | None = None
    source_path: str = ""

    # additionalProperties: false
    closed: bool = False


@dataclass(frozen=True)
class ClosedEnum:
    name: str = ""
    variants: tuple[str, ...] = ()
    description: str | None = None
    source_path: str = ""


@dataclass(frozen=True)
class VariantDef:
    """A labeled alternative of a tagged union."""

    label: str = ""
    type_ref: IrTypeRef = field(default_factory=Primitive)

    # Component name the branch referenced, None for inline branches
    source_name: str | None = None


@dataclass(frozen=True)
class TaggedUnion:
    name: str = ""
    variants: tuple[VariantDef, ...] = ()
    union_type: str = "oneOf"
    discriminator: str | None = None
    description: str | None = None
    source_path: str = ""


@dataclass(frozen=True)
class Alias:
    name: str = ""
    target: IrTypeRef = field(default_factory=Primitive)
    description: str | None = None
    source_path: str = ""


IrType = Union[Record, ClosedEnum, TaggedUnion, Alias]


def unwrap_nullable(type_ref: IrTypeRef) -> tuple[IrTypeRef, bool]:
    """Strip one nullable wrapper, reporting whether there was one."""
    if isinstance(type_ref, Container) and type_ref.kind == ContainerKind.NULLABLE:
        return type_ref.element, True
    return type_ref, False


class ParameterLocation(str, Enum):
    PATH = "path"
    QUERY = "query"
    HEADER = "header"


@dataclass(frozen=True)
class ParameterDef:
    name: str = ""  # Canonical (escaped) argument name
    original_name: str = ""
    location: ParameterLocation = ParameterLocation.QUERY
    type_ref: IrTypeRef = field(default_factory=Primitive)
    required: bool = False
    description: str | None = None


@dataclass(frozen=True)
class RequestBodyDef:
    type_ref: IrTypeRef = field(default_factory=Primitive)
    required: bool = False
    content_type: str = "application/json"


@dataclass(frozen=True)
class ResponseDef:
    status: str = ""
    type_ref: IrTypeRef | None = None
    description: str | None = None


def select_success_status(responses: list[tuple[str, bool]]) -> str | None:
    """
    Pick the status decoded on success.

    Args:
        responses: (status, has_body) pairs of one operation

    Returns:
        The lowest 2xx with a body, else the lowest 2xx, else "default" if present
    """
    successes = sorted((not has_body, status) for status, has_body in responses if status.startswith("2"))
    if successes:
        return successes[0][1]
    if any(status == "default" for status, _ in responses):
        return "default"
    return None


@dataclass(frozen=True)
class SecuritySchemeDef:
    name: str = ""  # Canonical credential name
    original_name: str = ""
    kind: str = "bearer"  # "bearer" or "apiKey"
    location: str | None = None  # "header" or "query" for apiKey
    param_name: str | None = None


@dataclass(frozen=True)
class OperationDef:
    name: str = ""  # Canonical function name
    operation_id: str = ""
    method: str = "GET"
    path: str = ""
    summary: str | None = None
    parameters: tuple[ParameterDef, ...] = ()
    request_body: RequestBodyDef | None = None
    responses: tuple[ResponseDef, ...] = ()
    security: tuple[str, ...] = ()  # Canonical scheme names

    @property
    def success_response(self) -> ResponseDef | None:
        """The response decoded on success, see select_success_status."""
        status = select_success_status([(r.status, r.type_ref is not None) for r in self.responses])
        return next((r for r in self.responses if r.status == status), None)


@dataclass
class IR:
    """The complete Intermediate Representation."""

    title: str = ""
    version: str = ""
    description: str | None = None
    base_url: str = ""

    # Canonical name -> type, in declaration order
    types: dict[str, IrType] = field(default_factory=dict)

    operations: list[OperationDef] = field(default_factory=list)

    # Canonical name -> scheme
    security_schemes: dict[str, SecuritySchemeDef] = field(default_factory=dict)
