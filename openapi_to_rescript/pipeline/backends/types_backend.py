"""
Type declaration backend.

Generates the <Prefix>Types module: records, closed polymorphic-variant
enums, variants for unions and aliases, with recursive groups declared
together as `type rec ... and ...`.
"""

from __future__ import annotations

from typing import Any

from ..analyzer.dependency_resolver import DeclarationGroup
from ..analyzer.ir_nodes import IR, Alias, ClosedEnum, FieldDef, IrType, Record, TaggedUnion
from ..errors import EmitterError
from .base import CodeBackend, string_literal

# Object schemas without static properties
EMPTY_RECORD_TYPE = "dict<JSON.t>"


class TypesBackend(CodeBackend):
    """ReScript type declarations."""

    TEMPLATE_NAME = "types"

    @property
    def module_name(self) -> str:
        return self.config.types_module

    def build_context(self, ir: IR, groups: list[DeclarationGroup]) -> dict[str, Any]:
        return {
            "groups": [
                {
                    "recursive": group.recursive,
                    "declarations": [self._prepare_declaration(ir.types[name]) for name in group.names],
                }
                for group in groups
            ],
        }

    def _prepare_declaration(self, ir_type: IrType) -> dict[str, Any]:
        context: dict[str, Any] = {"name": ir_type.name, "doc": ir_type.description}

        if isinstance(ir_type, Record):
            if not ir_type.fields:
                context.update(kind="alias", target=EMPTY_RECORD_TYPE)
            else:
                context.update(kind="record", fields=[self._prepare_field(f) for f in ir_type.fields])
        elif isinstance(ir_type, ClosedEnum):
            context.update(kind="enum", variants=[polymorphic_variant(v) for v in ir_type.variants])
        elif isinstance(ir_type, TaggedUnion):
            context.update(
                kind="variant",
                variants=[{"label": v.label, "type": self.translate_type(v.type_ref)} for v in ir_type.variants],
            )
            if ir_type.discriminator:
                note = f"Discriminated by `{ir_type.discriminator}`; variants are tried in declaration order."
                context["doc"] = f"{ir_type.description}\n\n{note}" if ir_type.description else note
        elif isinstance(ir_type, Alias):
            context.update(kind="alias", target=self.translate_type(ir_type.target))
        else:
            raise EmitterError(f"Unknown IR type {type(ir_type).__name__}", ir_type.name)
        return context

    def _prepare_field(self, field: FieldDef) -> dict[str, Any]:
        doc_lines = [field.description] if field.description else []
        if self.config.include_scaffolding:
            if field.has_default:
                doc_lines.append(f"Default: {self.format_value(field.default_value)}")
            if field.has_example:
                doc_lines.append(f"Example: {self.format_value(field.example)}")

        return {
            "name": field.name,
            "wire_name": string_literal(field.original_name) if field.original_name != field.name else None,
            "type": self.translate_type(field.type_ref),
            "optional": field.optional,
            "doc": "\n".join(doc_lines),
        }


def polymorphic_variant(literal: str) -> str:
    """Render an enum literal as a quoted polymorphic variant tag."""
    return "#" + string_literal(literal)
