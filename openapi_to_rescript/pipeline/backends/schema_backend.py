"""
Validator backend.

Generates the <Prefix>Schema module: one rescript-schema value `S.t<T>`
per IR type, named after the type it validates. Recursive groups are
rendered with S.recursive, inlining the members that are not declared yet.

The module is not executed by the generator, so `accepts()` exposes the
semantics the emitted expressions encode, evaluated directly on Python
values decoded from JSON.
"""

from __future__ import annotations

import logging
from typing import Any

from ..analyzer.dependency_resolver import DeclarationGroup
from ..analyzer.ir_nodes import (
    IR,
    Alias,
    ClosedEnum,
    Container,
    ContainerKind,
    IrType,
    IrTypeRef,
    NamedRef,
    Primitive,
    PrimitiveKind,
    Record,
    TaggedUnion,
    VariantDef,
)
from ..errors import EmitterError
from .base import CodeBackend, string_literal
from .types_backend import polymorphic_variant

logger = logging.getLogger(__name__)

PRIMITIVE_VALIDATORS = {
    PrimitiveKind.STRING: "S.string",
    PrimitiveKind.NUMBER: "S.float",
    PrimitiveKind.INTEGER: "S.int",
    PrimitiveKind.BOOLEAN: "S.bool",
    PrimitiveKind.BINARY: "S.string",
    PrimitiveKind.JSON: "S.json(~validate=true)",
}

CONTAINER_VALIDATORS = {
    ContainerKind.LIST: "S.array",
    ContainerKind.NULLABLE: "S.null",
    ContainerKind.DICT: "S.dict",
}

INDENT = "  "


class SchemaBackend(CodeBackend):
    """rescript-schema validators."""

    TEMPLATE_NAME = "schema"

    def __init__(self, config):
        super().__init__(config)
        self.ir: IR | None = None
        self._object_param = "s"

    @property
    def module_name(self) -> str:
        return self.config.schema_module

    @property
    def types_qualifier(self) -> str:
        return f"{self.config.types_module}."

    def bind(self, ir: IR) -> SchemaBackend:
        """Attach the IR that named references are looked up in."""
        self.ir = ir
        self._object_param = "s"
        counter = 2
        while self._object_param in ir.types:
            self._object_param = f"s{counter}"
            counter += 1
        return self

    def build_context(self, ir: IR, groups: list[DeclarationGroup]) -> dict[str, Any]:
        self.bind(ir)
        declarations = []
        declared: set[str] = set()
        for group in groups:
            members = set(group.names)
            for name in group.names:
                ir_type = ir.types[name]
                if group.recursive:
                    pending = members - declared
                    expr = self._recursive_expr(name, frozenset({name}), pending, 0)
                else:
                    expr = self.type_expr(ir_type, frozenset(), frozenset(), 0)
                declared.add(name)
                declarations.append(
                    {
                        "name": name,
                        "type": f"S.t<{self.types_qualifier}{name}>",
                        "expr": expr,
                    }
                )
        logger.debug("Rendered %d validators", len(declarations))
        return {"declarations": declarations}

    # ------------------------------------------------------------------
    # Expressions
    # ------------------------------------------------------------------

    def validator_expr(
        self,
        type_ref: IrTypeRef,
        bound: frozenset[str] = frozenset(),
        pending: frozenset[str] | set[str] = frozenset(),
        level: int = 0,
        qualifier: str = "",
    ) -> str:
        """
        Build the validator expression for a type reference.

        Args:
            type_ref: The type reference
            bound: Names bound by an enclosing S.recursive
            pending: Members of the current recursive group not declared yet
            level: Indentation level of the expression
            qualifier: Module prefix for declared validators (e.g. "ApiSchema.")

        Returns:
            ReScript expression of type S.t<T>
        """
        if isinstance(type_ref, NamedRef):
            if type_ref.name in bound:
                return type_ref.name
            if type_ref.name in pending:
                return self._recursive_expr(type_ref.name, bound | {type_ref.name}, pending, level)
            return f"{qualifier}{type_ref.name}"
        if isinstance(type_ref, Container):
            inner = self.validator_expr(type_ref.element, bound, pending, level, qualifier)
            return f"{CONTAINER_VALIDATORS[type_ref.kind]}({inner})"
        if isinstance(type_ref, Primitive):
            return PRIMITIVE_VALIDATORS[type_ref.kind]
        raise EmitterError(f"Unknown type reference {type_ref!r}", self.file_name)

    def _recursive_expr(self, name: str, bound: frozenset[str], pending: frozenset[str] | set[str], level: int) -> str:
        annotation = f"S.t<{self.types_qualifier}{name}>"
        body = self.type_expr(self._lookup(name), bound, pending, level)
        return f"S.recursive(({name}: {annotation}) => {body})"

    def type_expr(
        self,
        ir_type: IrType,
        bound: frozenset[str],
        pending: frozenset[str] | set[str],
        level: int,
    ) -> str:
        """Validator expression for the body of a named type."""
        if isinstance(ir_type, Record):
            return self._record_expr(ir_type, bound, pending, level)
        if isinstance(ir_type, ClosedEnum):
            literals = [f"S.literal({polymorphic_variant(v)})" for v in ir_type.variants]
            return literals[0] if len(literals) == 1 else f"S.union([{', '.join(literals)}])"
        if isinstance(ir_type, TaggedUnion):
            branches = [self._variant_expr(v, bound, pending, level + 1) for v in ir_type.variants]
            if len(branches) == 1:
                return branches[0]
            pad = INDENT * (level + 1)
            return "S.union([\n" + "".join(f"{pad}{b},\n" for b in branches) + INDENT * level + "])"
        if isinstance(ir_type, Alias):
            return self.validator_expr(ir_type.target, bound, pending, level)
        raise EmitterError(f"Unknown IR type {type(ir_type).__name__}", ir_type.name)

    def _record_expr(self, record: Record, bound, pending, level: int) -> str:
        if not record.fields:
            return f"S.dict({PRIMITIVE_VALIDATORS[PrimitiveKind.JSON]})"

        s = self._object_param
        pad = INDENT * (level + 1)
        lines = []
        for field in record.fields:
            inner = self.validator_expr(field.type_ref, bound, pending, level + 1)
            wire = string_literal(field.original_name)
            if field.optional:
                lines.append(f"{pad}{field.name}: ?{s}.field({wire}, S.option({inner})),\n")
            else:
                lines.append(f"{pad}{field.name}: {s}.field({wire}, {inner}),\n")

        expr = f"S.object(({s}): {self.types_qualifier}{record.name} => {{\n" + "".join(lines) + INDENT * level + "})"
        if record.closed:
            expr += "->S.strict"
        return expr

    def _variant_expr(self, variant: VariantDef, bound, pending, level: int) -> str:
        inner = self.validator_expr(variant.type_ref, bound, pending, level)
        return f"{inner}->S.shape(v => {self.types_qualifier}{variant.label}(v))"

    def _lookup(self, name: str) -> IrType:
        if self.ir is None:
            raise EmitterError("Validator backend is not bound to an IR", self.file_name)
        if name not in self.ir.types:
            raise EmitterError(f"Unknown type '{name}'", self.file_name)
        return self.ir.types[name]

    # ------------------------------------------------------------------
    # Reference semantics
    # ------------------------------------------------------------------

    def accepts(self, type_ref: IrTypeRef, value: Any) -> bool:
        """
        Whether the validator rendered for a type reference accepts a value.

        Args:
            type_ref: The type reference
            value: A value as decoded from JSON (dict, list, str, int, ...)

        Returns:
            True if parsing the value would succeed
        """
        if isinstance(type_ref, NamedRef):
            return self.accepts_type(self._lookup(type_ref.name), value)
        if isinstance(type_ref, Container):
            if type_ref.kind == ContainerKind.NULLABLE:
                return value is None or self.accepts(type_ref.element, value)
            if type_ref.kind == ContainerKind.LIST:
                return isinstance(value, list) and all(self.accepts(type_ref.element, v) for v in value)
            return (
                isinstance(value, dict)
                and all(isinstance(k, str) for k in value)
                and all(self.accepts(type_ref.element, v) for v in value.values())
            )
        if isinstance(type_ref, Primitive):
            return _accepts_primitive(type_ref.kind, value)
        return False

    def accepts_type(self, ir_type: IrType, value: Any) -> bool:
        """Whether the validator of a named type accepts a value."""
        if isinstance(ir_type, Record):
            if not isinstance(value, dict):
                return False
            if not ir_type.fields:
                return True
            for field in ir_type.fields:
                if field.original_name not in value:
                    if not field.optional:
                        return False
                elif not self.accepts(field.type_ref, value[field.original_name]):
                    return False
            if ir_type.closed:
                known = {f.original_name for f in ir_type.fields}
                return all(key in known for key in value)
            return True
        if isinstance(ir_type, ClosedEnum):
            return isinstance(value, str) and value in ir_type.variants
        if isinstance(ir_type, TaggedUnion):
            return self.matching_variant(ir_type, value) is not None
        if isinstance(ir_type, Alias):
            return self.accepts(ir_type.target, value)
        return False

    def matching_variant(self, union: TaggedUnion, value: Any) -> str | None:
        """Label of the first variant that accepts the value, in declaration order."""
        for variant in union.variants:
            if self.accepts(variant.type_ref, value):
                return variant.label
        return None


def _accepts_primitive(kind: PrimitiveKind, value: Any) -> bool:
    if kind in (PrimitiveKind.STRING, PrimitiveKind.BINARY):
        return isinstance(value, str)
    if kind == PrimitiveKind.BOOLEAN:
        return isinstance(value, bool)
    if kind == PrimitiveKind.INTEGER:
        if isinstance(value, bool):
            return False
        if isinstance(value, float):
            return value.is_integer() and -(2**31) <= value < 2**31
        return isinstance(value, int) and -(2**31) <= value < 2**31
    if kind == PrimitiveKind.NUMBER:
        return isinstance(value, (int, float)) and not isinstance(value, bool)
    return True
