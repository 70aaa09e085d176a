"""
Schema analyzer that transforms the document model to IR.

Phase 2 of the pipeline: resolve references, classify every schema into
one of the IR type variants, promote inline records/enums/unions to named
types, and assign every type, field, operation and parameter its canonical
name.
"""

from __future__ import annotations

import logging
import re

from ..config import CodeGeneratorConfig
from ..document.nodes import (
    AllOfNode,
    ArrayNode,
    Document,
    FreeFormNode,
    ObjectNode,
    Operation,
    PrimitiveNode,
    RefNode,
    SchemaNode,
    UnionNode,
)
from ..errors import AmbiguousSchemaError, SchemaError
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
    ParameterDef,
    ParameterLocation,
    Primitive,
    PrimitiveKind,
    Record,
    RequestBodyDef,
    ResponseDef,
    SecuritySchemeDef,
    TaggedUnion,
    VariantDef,
    select_success_status,
)
from .name_resolver import NameRegistry, escape_constructor, to_camel_case, to_pascal_case
from .reference_resolver import ReferenceResolver

logger = logging.getLogger(__name__)

PRIMITIVE_KINDS = {
    "string": PrimitiveKind.STRING,
    "number": PrimitiveKind.NUMBER,
    "integer": PrimitiveKind.INTEGER,
    "boolean": PrimitiveKind.BOOLEAN,
}

# Top-level helpers of the generated client module
CLIENT_HELPERS = ("make", "decode", "encodeQuery", "encodeURIComponent", "fetchTransport", "noCredentials")

# Locals of generated client functions; parameters must not shadow them
CLIENT_LOCALS = ("client", "path", "query", "headers", "url", "result") + CLIENT_HELPERS

# {name} placeholders of a path template
PATH_PLACEHOLDER = re.compile(r"\{([^}]+)\}")


class SchemaAnalyzer:
    """Analyzes the document model and builds IR."""

    def __init__(self, config: CodeGeneratorConfig | None = None):
        """
        Initialize the analyzer.

        Args:
            config: Code generation configuration
        """
        self.config = config or CodeGeneratorConfig()

        # Will be set during analysis
        self.document: Document | None = None
        self.type_names = NameRegistry()
        self.component_names: dict[str, str] = {}
        self.nullable_components: set[str] = set()

        # id(schema node) -> reference, so shared schemas produce one IR type
        self._memo: dict[int, IrTypeRef] = {}

        # Canonical names in declaration order, and the built types
        self._order: list[str] = []
        self._types: dict[str, IrType] = {}

    def analyze(self, document: Document) -> IR:
        """
        Analyze the document and build IR.

        Args:
            document: The parsed document

        Returns:
            IR ready for dependency ordering and code generation
        """
        self.document = ReferenceResolver(document).resolve()
        self.type_names = NameRegistry()
        self.component_names = {}
        self.nullable_components = set()
        self._memo = {}
        self._order = []
        self._types = {}

        # Components claim their names first so they win over inline types
        for name, node in document.schemas.items():
            self.component_names[name] = self.type_names.claim(to_camel_case(name) or name, f"#/components/schemas/{name}")
            if self._is_nominal(node) and self._is_nullable(node):
                self.nullable_components.add(name)

        for name, node in document.schemas.items():
            self._build_component(name, node)

        ir = IR(
            title=document.title,
            version=document.version,
            description=document.description,
            base_url=self.config.default_base_url or (document.servers[0] if document.servers else ""),
        )
        ir.security_schemes = self._build_security_schemes()

        function_names = NameRegistry()
        for helper in CLIENT_HELPERS:
            function_names.reserve(helper, f"<helper {helper}>")
        for op in document.operations:
            ir.operations.append(self._build_operation(op, function_names, ir.security_schemes))

        ir.types = {name: self._types[name] for name in self._order}
        logger.debug("Built IR: %d types, %d operations", len(ir.types), len(ir.operations))
        return ir

    # ------------------------------------------------------------------
    # Classification helpers
    # ------------------------------------------------------------------

    def _is_nominal(self, node: SchemaNode) -> bool:
        """Whether a component body becomes a record, enum or union (not an alias)."""
        if isinstance(node, UnionNode):
            return True
        if isinstance(node, AllOfNode):
            return len(node.branches) > 1 or not isinstance(node.branches[0], RefNode)
        if isinstance(node, ObjectNode):
            return bool(node.properties)
        if isinstance(node, PrimitiveNode):
            return node.type_name == "string" and bool(node.enum)
        return False

    def _is_nullable(self, node: SchemaNode) -> bool:
        if node.nullable:
            return True
        if isinstance(node, UnionNode):
            return any(self._is_null_branch(v) for v in node.variants)
        if isinstance(node, PrimitiveNode) and node.enum:
            return None in node.enum
        return False

    def _is_null_branch(self, node: SchemaNode) -> bool:
        return isinstance(node, FreeFormNode) and node.nullable

    def _is_object_shaped(self, node: SchemaNode) -> bool:
        while isinstance(node, RefNode):
            node = node.target
        if isinstance(node, AllOfNode):
            return all(self._is_object_shaped(b) for b in node.branches)
        return isinstance(node, (ObjectNode, FreeFormNode))

    def _nullable(self, type_ref: IrTypeRef, nullable: bool) -> IrTypeRef:
        """Wrap in a nullable container unless already nullable."""
        if not nullable:
            return type_ref
        if isinstance(type_ref, Container) and type_ref.kind == ContainerKind.NULLABLE:
            return type_ref
        return Container(element=type_ref, kind=ContainerKind.NULLABLE)

    # ------------------------------------------------------------------
    # Named types
    # ------------------------------------------------------------------

    def _declare(self, node: SchemaNode, hint: str) -> str:
        """Claim a name for an inline type and register it before building."""
        name = self.type_names.claim(hint, node.source_path or f"inline:{id(node)}")
        self._order.append(name)
        self._memo[id(node)] = self._nullable(NamedRef(name), self._is_nullable(node))
        return name

    def _build_component(self, component: str, node: SchemaNode) -> None:
        name = self.component_names[component]
        if name in self._types:
            # Already built through a shared (anchored) schema
            return
        self._order.append(name)
        self._memo[id(node)] = self._nullable(NamedRef(name), component in self.nullable_components)

        if self._is_nominal(node):
            self._build_nominal(node, name)
        else:
            # Primitives, arrays, maps and bare references become aliases
            target = self._convert_structural(node, name)
            self._types[name] = Alias(name=name, target=target, description=node.description, source_path=node.source_path)

    def _build_nominal(self, node: SchemaNode, name: str) -> None:
        if isinstance(node, UnionNode):
            self._types[name] = self._build_union(node, name)
        elif isinstance(node, AllOfNode):
            properties, required, closed = self._collect_allof(node)
            self._types[name] = self._build_record(node, name, properties, required, closed)
        elif isinstance(node, ObjectNode):
            self._types[name] = self._build_record(
                node, name, node.properties, set(node.required), node.additional_properties is False
            )
        elif isinstance(node, PrimitiveNode):
            self._types[name] = self._build_enum(node, name)

    def _build_record(
        self,
        node: SchemaNode,
        name: str,
        properties: dict[str, SchemaNode],
        required: set[str],
        closed: bool,
    ) -> Record:
        field_names = NameRegistry()
        fields = []
        for prop_name, prop_node in properties.items():
            field_name = field_names.claim(to_camel_case(prop_name), prop_name)
            type_ref = self.type_ref(prop_node, f"{name}{to_pascal_case(prop_name)}")
            fields.append(
                FieldDef(
                    name=field_name,
                    original_name=prop_name,
                    type_ref=type_ref,
                    optional=prop_name not in required,
                    description=prop_node.description,
                    default_value=prop_node.default_value,
                    has_default=prop_node.has_default,
                    example=prop_node.example,
                    has_example=prop_node.has_example,
                )
            )

        missing = required - set(properties)
        if missing:
            logger.debug("Required names without properties at %s: %s", node.source_path, sorted(missing))

        return Record(
            name=name,
            fields=tuple(fields),
            description=node.description,
            source_path=node.source_path,
            closed=closed,
        )

    def _build_enum(self, node: PrimitiveNode, name: str) -> ClosedEnum:
        literals = [v for v in node.enum if v is not None]
        if not all(isinstance(v, str) for v in literals):
            raise SchemaError("String enum contains non-string literals", f"{node.source_path}/enum")
        if len(set(literals)) != len(literals):
            raise SchemaError("Enum literals must be unique", f"{node.source_path}/enum")
        return ClosedEnum(
            name=name,
            variants=tuple(literals),
            description=node.description,
            source_path=node.source_path,
        )

    def _build_union(self, node: UnionNode, name: str) -> TaggedUnion:
        if node.conflicting_keyword:
            raise AmbiguousSchemaError("Schema declares both oneOf and anyOf", node.source_path)
        if node.own_properties:
            if not all(self._is_object_shaped(v) for v in node.variants if not self._is_null_branch(v)):
                raise AmbiguousSchemaError(
                    f"Schema declares properties next to {node.union_type} with non-object branches",
                    node.source_path,
                )
            logger.debug("Properties next to %s at %s are ignored", node.union_type, node.source_path)

        labels = NameRegistry(escape_constructor)
        seen: set[tuple[str | None, IrTypeRef]] = set()
        variants = []
        for index, branch in enumerate(node.variants, start=1):
            if self._is_null_branch(branch):
                continue

            source_name = branch.target_name if isinstance(branch, RefNode) else None
            type_ref = self.type_ref(branch, f"{name}Case{index}")

            key = (source_name, type_ref)
            if key in seen:
                logger.debug("Merged duplicate branch %d of %s", index, node.source_path)
                continue
            seen.add(key)

            if source_name is not None:
                canonical = self.component_names[source_name]
                base_label = canonical[:1].upper() + canonical[1:]
            else:
                base_label = f"Case{index}"
            variants.append(
                VariantDef(
                    label=labels.claim(base_label, str(index)),
                    type_ref=type_ref,
                    source_name=source_name,
                )
            )

        if not variants:
            raise SchemaError(f"{node.union_type} has no non-null branches", node.source_path)

        return TaggedUnion(
            name=name,
            variants=tuple(variants),
            union_type=node.union_type,
            discriminator=node.discriminator,
            description=node.description,
            source_path=node.source_path,
        )

    def _collect_allof(self, node: AllOfNode) -> tuple[dict[str, SchemaNode], set[str], bool]:
        """Merge the object branches of an allOf (later branches win)."""
        properties: dict[str, SchemaNode] = {}
        required: set[str] = set()
        closed = False
        for branch in node.branches:
            target = branch
            while isinstance(target, RefNode):
                target = target.target

            if isinstance(target, AllOfNode):
                sub_properties, sub_required, sub_closed = self._collect_allof(target)
                properties.update(sub_properties)
                required |= sub_required
                closed = closed or sub_closed
            elif isinstance(target, ObjectNode):
                properties.update(target.properties)
                required |= set(target.required)
                closed = closed or target.additional_properties is False
            elif isinstance(target, FreeFormNode):
                continue
            else:
                raise AmbiguousSchemaError("allOf branch is not an object schema", branch.source_path)
        return properties, required, closed

    # ------------------------------------------------------------------
    # Type references
    # ------------------------------------------------------------------

    def type_ref(self, node: SchemaNode, hint: str) -> IrTypeRef:
        """
        Convert a schema into a type reference, memoized by source identity.

        Args:
            node: The schema node
            hint: Name to use if the schema must be promoted to a named type

        Returns:
            NamedRef, Primitive or Container
        """
        cached = self._memo.get(id(node))
        if cached is not None:
            return cached

        if self._is_nominal(node):
            name = self._declare(node, hint)
            self._build_nominal(node, name)
            return self._memo[id(node)]

        result = self._convert_structural(node, hint)
        self._memo[id(node)] = result
        return result

    def _convert_structural(self, node: SchemaNode, hint: str) -> IrTypeRef:
        """Convert a schema that does not become a named type of its own."""
        if isinstance(node, RefNode):
            target = NamedRef(self.component_names[node.target_name])
            return self._nullable(target, node.nullable or node.target_name in self.nullable_components)

        if isinstance(node, AllOfNode):
            # A single reference branch: the common "nullable $ref" wrapper
            return self._nullable(self.type_ref(node.branches[0], hint), node.nullable)

        if isinstance(node, ArrayNode):
            if node.has_properties:
                raise AmbiguousSchemaError("Array schema also declares object properties", node.source_path)
            element = self.type_ref(node.items, f"{hint}Item") if node.items is not None else Primitive(PrimitiveKind.JSON)
            return self._nullable(Container(element=element, kind=ContainerKind.LIST), node.nullable)

        if isinstance(node, ObjectNode):
            if isinstance(node.additional_properties, SchemaNode):
                element = self.type_ref(node.additional_properties, f"{hint}Value")
                return self._nullable(Container(element=element, kind=ContainerKind.DICT), node.nullable)
            return self._nullable(Primitive(PrimitiveKind.JSON), node.nullable)

        if isinstance(node, PrimitiveNode):
            if node.enum and node.type_name != "string":
                logger.warning("enum on %s schema at %s is not enforced", node.type_name, node.source_path)
            kind = PRIMITIVE_KINDS[node.type_name]
            if kind == PrimitiveKind.STRING and node.format == "binary":
                kind = PrimitiveKind.BINARY
            return self._nullable(Primitive(kind=kind, format=node.format), node.nullable)

        if isinstance(node, UnionNode):
            # Unions are always nominal; reaching here means a logic error upstream
            raise SchemaError("Union schema was not promoted to a named type", node.source_path)

        return self._nullable(Primitive(PrimitiveKind.JSON), node.nullable)

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    def _build_security_schemes(self) -> dict[str, SecuritySchemeDef]:
        names = NameRegistry()
        schemes = {}
        for original, scheme in self.document.security_schemes.items():
            name = names.claim(to_camel_case(original), original)
            schemes[name] = SecuritySchemeDef(
                name=name,
                original_name=original,
                kind=scheme.kind.value,
                location=scheme.location,
                param_name=scheme.param_name,
            )
        return schemes

    def _build_operation(
        self,
        op: Operation,
        function_names: NameRegistry,
        schemes: dict[str, SecuritySchemeDef],
    ) -> OperationDef:
        operation_id = op.operation_id or f"{op.method.lower()}_{op.path.replace('/', '_')}"
        name = function_names.claim(to_camel_case(operation_id), op.source_path)

        param_names = NameRegistry()
        for local in CLIENT_LOCALS:
            param_names.reserve(local, f"<local {local}>")
        if op.request_body is not None:
            param_names.reserve("body", "<body>")

        parameters = []
        for param in op.parameters:
            parameters.append(
                ParameterDef(
                    name=param_names.claim(to_camel_case(param.name), f"{param.location.value}:{param.name}"),
                    original_name=param.name,
                    location=ParameterLocation(param.location.value),
                    type_ref=self.type_ref(param.schema, f"{name}{to_pascal_case(param.name)}"),
                    required=param.required,
                    description=param.description,
                )
            )

        path_params = {p.original_name for p in parameters if p.location == ParameterLocation.PATH}
        for placeholder in PATH_PLACEHOLDER.findall(op.path):
            if placeholder not in path_params:
                raise SchemaError(f"Path {op.path} has no path parameter named '{placeholder}'", op.source_path)

        request_body = None
        if op.request_body is not None:
            body = op.request_body
            request_body = RequestBodyDef(
                type_ref=self.type_ref(body.schema, f"{name}Request") if body.schema is not None else Primitive(PrimitiveKind.JSON),
                required=body.required,
                content_type=body.content_type,
            )

        primary = self._primary_status(op)
        responses = []
        for response in op.responses:
            type_ref = None
            if response.schema is not None:
                suffix = "" if response.status == primary else to_pascal_case(response.status)
                type_ref = self.type_ref(response.schema, f"{name}Response{suffix}")
            responses.append(ResponseDef(status=response.status, type_ref=type_ref, description=response.description))

        requirements = op.security if op.security is not None else self.document.security
        by_original = {s.original_name: s.name for s in schemes.values()}
        security = []
        for requirement in requirements:
            for scheme_name in requirement:
                if scheme_name not in by_original:
                    logger.warning("Operation %s requires unknown security scheme '%s'", operation_id, scheme_name)
                elif by_original[scheme_name] not in security:
                    security.append(by_original[scheme_name])

        return OperationDef(
            name=name,
            operation_id=operation_id,
            method=op.method,
            path=op.path,
            summary=op.summary or op.description,
            parameters=tuple(parameters),
            request_body=request_body,
            responses=tuple(responses),
            security=tuple(security),
        )

    def _primary_status(self, op: Operation) -> str | None:
        return select_success_status([(r.status, r.schema is not None) for r in op.responses])
