"""
HTTP client backend.

Generates the <Prefix>Client module: a pluggable transport record with a
fetch-based default, a client record holding base URL, transport and
credentials, and one async function per operation.
"""

from __future__ import annotations

from typing import Any

from ..analyzer.analyzer import PATH_PLACEHOLDER
from ..analyzer.dependency_resolver import DeclarationGroup
from ..analyzer.ir_nodes import (
    IR,
    Alias,
    ClosedEnum,
    Container,
    ContainerKind,
    IrTypeRef,
    NamedRef,
    OperationDef,
    ParameterDef,
    ParameterLocation,
    Primitive,
    PrimitiveKind,
    unwrap_nullable,
)
from ..config import CodeGeneratorConfig
from ..document.parser import is_json_media_type
from .base import CodeBackend, string_literal
from .schema_backend import SchemaBackend

# Placeholder arguments for example calls
EXAMPLE_VALUES = {
    PrimitiveKind.STRING: '"..."',
    PrimitiveKind.NUMBER: "0.0",
    PrimitiveKind.INTEGER: "0",
    PrimitiveKind.BOOLEAN: "false",
    PrimitiveKind.BINARY: '"..."',
}


class ClientBackend(CodeBackend):
    """ReScript HTTP client."""

    TEMPLATE_NAME = "client"

    def __init__(self, config: CodeGeneratorConfig):
        super().__init__(config)
        self.schemas = SchemaBackend(config)
        self.ir: IR | None = None

    @property
    def module_name(self) -> str:
        return self.config.client_module

    @property
    def types_qualifier(self) -> str:
        return f"{self.config.types_module}."

    @property
    def schema_qualifier(self) -> str:
        return f"{self.config.schema_module}."

    def build_context(self, ir: IR, groups: list[DeclarationGroup]) -> dict[str, Any]:
        self.ir = ir
        self.schemas.bind(ir)
        return {
            "base_url": string_literal(ir.base_url),
            "schemes": list(ir.security_schemes.values()),
            "operations": [self._prepare_operation(op) for op in ir.operations],
            "module_name": self.module_name,
        }

    def _prepare_operation(self, op: OperationDef) -> dict[str, Any]:
        args = []
        query = []
        headers = []
        for param in op.parameters:
            required = param.required or param.location == ParameterLocation.PATH
            value_type, _ = unwrap_nullable(param.type_ref)
            type_str = self.translate_type(value_type, self.types_qualifier)
            args.append(f"~{param.name}: {type_str}" if required else f"~{param.name}: {type_str}=?")

            entry = {
                "wire_name": string_literal(param.original_name),
                "name": param.name,
                "required": required,
                "value": self.serialize_expr(value_type, param.name),
            }
            if param.location == ParameterLocation.QUERY:
                query.append(entry)
            elif param.location == ParameterLocation.HEADER:
                headers.append(entry)

        body = None
        if op.request_body is not None:
            request_body = op.request_body
            type_str = self.translate_type(request_body.type_ref, self.types_qualifier)
            args.append(f"~body: {type_str}" if request_body.required else f"~body: {type_str}=?")
            if is_json_media_type(request_body.content_type):
                encoded = self._to_json_string(request_body.type_ref, "body")
            else:
                encoded = "body"
            body = {
                "content_type": string_literal(request_body.content_type),
                "required": request_body.required,
                "value": encoded,
            }

        success = op.success_response
        decoder = None
        if success is not None and success.type_ref is not None:
            decoder = self.schemas.validator_expr(success.type_ref, qualifier=self.schema_qualifier)

        return {
            "name": op.name,
            "doc": self._operation_doc(op),
            "example": self._example_call(op) if self.config.include_scaffolding else None,
            "method": string_literal(op.method.upper()),
            "args": args,
            "path": self._path_expr(op),
            "query": query,
            "headers": headers,
            "body": body,
            "security": [self.ir.security_schemes[name] for name in op.security],
            "decoder": decoder,
        }

    def _operation_doc(self, op: OperationDef) -> str:
        lines = [op.summary] if op.summary else []
        lines.append(f"{op.method.upper()} {op.path}")
        return "\n".join(lines)

    def _path_expr(self, op: OperationDef) -> str:
        """Concatenation of literal path segments and encoded path parameters."""
        by_wire = {p.original_name: p for p in op.parameters if p.location == ParameterLocation.PATH}
        parts = []
        position = 0
        for match in PATH_PLACEHOLDER.finditer(op.path):
            param = by_wire[match.group(1)]
            if match.start() > position:
                parts.append(string_literal(op.path[position : match.start()]))
            value_type, _ = unwrap_nullable(param.type_ref)
            parts.append(f"encodeURIComponent({self.serialize_expr(value_type, param.name)})")
            position = match.end()
        if position < len(op.path):
            parts.append(string_literal(op.path[position:]))
        return " ++ ".join(parts) if parts else '""'

    def serialize_expr(self, type_ref: IrTypeRef, var: str) -> str:
        """
        Expression turning a parameter value into its wire string.

        Args:
            type_ref: Parameter type (without a nullable wrapper)
            var: Name of the ReScript variable holding the value

        Returns:
            ReScript expression of type string
        """
        if isinstance(type_ref, Primitive):
            if type_ref.kind == PrimitiveKind.INTEGER:
                return f"Int.toString({var})"
            if type_ref.kind == PrimitiveKind.NUMBER:
                return f"Float.toString({var})"
            if type_ref.kind == PrimitiveKind.BOOLEAN:
                return f'({var} ? "true" : "false")'
            if type_ref.kind in (PrimitiveKind.STRING, PrimitiveKind.BINARY):
                return var
        elif isinstance(type_ref, Container) and type_ref.kind == ContainerKind.LIST:
            element, nullable = unwrap_nullable(type_ref.element)
            if not nullable:
                return f'{var}->Array.map(item => {self.serialize_expr(element, "item")})->Array.join(",")'
        elif isinstance(type_ref, NamedRef):
            target = self.ir.types.get(type_ref.name)
            if isinstance(target, ClosedEnum):
                return f"({var} :> string)"
            if isinstance(target, Alias) and not isinstance(target.target, NamedRef):
                inner, nullable = unwrap_nullable(target.target)
                if not nullable:
                    return self.serialize_expr(inner, var)
        return self._to_json_string(type_ref, var)

    def _to_json_string(self, type_ref: IrTypeRef, var: str) -> str:
        validator = self.schemas.validator_expr(type_ref, qualifier=self.schema_qualifier)
        return f"{var}->S.reverseConvertToJsonStringOrThrow({validator})"

    def _example_call(self, op: OperationDef) -> str:
        args = ["client"]
        for param in op.parameters:
            if param.required or param.location == ParameterLocation.PATH:
                args.append(f"~{param.name}={self._example_value(param)}")
        if op.request_body is not None and op.request_body.required:
            args.append("~body")
        args.append("()")
        return f"let result = await {self.module_name}.{op.name}({', '.join(args)})"

    def _example_value(self, param: ParameterDef) -> str:
        value_type, _ = unwrap_nullable(param.type_ref)
        if isinstance(value_type, Primitive):
            return EXAMPLE_VALUES.get(value_type.kind, param.name)
        if isinstance(value_type, NamedRef):
            target = self.ir.types.get(value_type.name)
            if isinstance(target, ClosedEnum) and target.variants:
                return "#" + string_literal(target.variants[0])
        return param.name
