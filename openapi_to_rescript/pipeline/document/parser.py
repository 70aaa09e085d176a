"""
OpenAPI document parser that builds the document model.

Phase 1 of the pipeline: turn the decoded mapping into typed nodes without
resolving schema references or doing any language-specific processing.
Schema kinds are assigned by an ordered list of classification rules; the
first rule whose keyword is present wins.
"""

from __future__ import annotations

import logging
from typing import Any

from ..errors import SchemaError, UnresolvedReferenceError
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
    SchemaNode,
    SecurityScheme,
    SecuritySchemeKind,
    UnionNode,
)

logger = logging.getLogger(__name__)

HTTP_METHODS = ("get", "put", "post", "delete", "options", "head", "patch", "trace")

PRIMITIVE_TYPES = {"string", "integer", "number", "boolean"}


def is_json_media_type(media_type: str) -> bool:
    """Check whether a media type carries JSON (application/json, */*+json)."""
    base = media_type.split(";", 1)[0].strip().lower()
    return base == "application/json" or base.endswith("+json")


class DocumentParser:
    """Parses a decoded OpenAPI 3.x mapping into a Document."""

    def __init__(self):
        self._raw: dict[str, Any] = {}
        # id(raw schema dict) -> node, so shared (anchored) schemas map to one node
        self._memo: dict[int, SchemaNode] = {}

    def parse(self, raw: dict[str, Any]) -> Document:
        """
        Parse an OpenAPI document.

        Args:
            raw: The decoded document mapping

        Returns:
            Document with components, operations and security schemes

        Raises:
            SchemaError: If the mapping is not a minimal OpenAPI 3.x document
        """
        self._raw = raw
        self._memo = {}

        version = raw.get("openapi")
        if version is None:
            raise SchemaError("Missing 'openapi' version field", "#")
        if not str(version).startswith("3."):
            raise SchemaError(f"Unsupported OpenAPI version '{version}', expected 3.x", "#/openapi")

        info = raw.get("info")
        if not isinstance(info, dict):
            raise SchemaError("Missing or invalid 'info' object", "#/info")

        if "paths" not in raw:
            raise SchemaError("Missing 'paths' object", "#/paths")
        paths = raw["paths"] or {}
        if not isinstance(paths, dict):
            raise SchemaError("'paths' must be a mapping", "#/paths")

        components = raw.get("components") or {}
        if not isinstance(components, dict):
            raise SchemaError("'components' must be a mapping", "#/components")

        document = Document(
            openapi_version=str(version),
            title=str(info.get("title", "")),
            version=str(info.get("version", "")),
            description=info.get("description"),
            servers=[s["url"] for s in raw.get("servers") or [] if isinstance(s, dict) and "url" in s],
            raw=raw,
        )

        schemas = components.get("schemas") or {}
        if not isinstance(schemas, dict):
            raise SchemaError("'components.schemas' must be a mapping", "#/components/schemas")
        for name, schema in schemas.items():
            document.schemas[str(name)] = self.parse_schema(schema, f"#/components/schemas/{name}")

        document.security_schemes = self._parse_security_schemes(components.get("securitySchemes") or {})
        document.security = self._parse_security_requirements(raw.get("security"), "#/security") or []

        for path, path_item in paths.items():
            document.operations.extend(self._parse_path_item(str(path), path_item))

        logger.debug(
            "Parsed document '%s': %d schemas, %d operations",
            document.title,
            len(document.schemas),
            len(document.operations),
        )
        return document

    # ------------------------------------------------------------------
    # Schemas
    # ------------------------------------------------------------------

    def parse_schema(self, schema: Any, path: str) -> SchemaNode:
        """
        Parse a schema node recursively.

        Args:
            schema: The schema value
            path: Current path in document (for error messages)

        Returns:
            Appropriate SchemaNode subclass
        """
        if isinstance(schema, bool):
            return FreeFormNode(source_path=path)
        if not isinstance(schema, dict):
            raise SchemaError(f"Schema must be a mapping, got {type(schema).__name__}", path)

        cached = self._memo.get(id(schema))
        if cached is not None:
            return cached

        node = self._classify(schema, path)
        self._apply_common(node, schema)
        self._memo[id(schema)] = node
        return node

    def _classify(self, schema: dict[str, Any], path: str) -> SchemaNode:
        # Handle $ref
        if "$ref" in schema:
            return RefNode(ref_path=str(schema["$ref"]), source_path=path)

        # Handle oneOf/anyOf (takes precedence over structural object inference)
        if "oneOf" in schema or "anyOf" in schema:
            return self._parse_union_node(schema, path)

        # Handle allOf
        if "allOf" in schema:
            branches = self._schema_list(schema, "allOf", path)
            return AllOfNode(
                branches=[self.parse_schema(b, f"{path}/allOf/{i}") for i, b in enumerate(branches)],
                source_path=path,
            )

        # Handle type-based parsing
        if "type" in schema:
            return self._parse_type_node(schema, schema["type"], path)

        # Handle standalone enum (infer type from the literals)
        if "enum" in schema:
            values = schema["enum"] or []
            if values and all(isinstance(v, str) for v in values):
                return PrimitiveNode(type_name="string", enum=list(values), source_path=path)
            logger.warning("Untyped non-string enum at %s treated as free-form", path)
            return FreeFormNode(source_path=path)

        # Handle object with properties but no type
        if "properties" in schema or "additionalProperties" in schema:
            return self._parse_object_node(schema, path)

        if "items" in schema:
            return self._parse_array_node(schema, path)

        # Fallback: no constraints at all
        return FreeFormNode(source_path=path)

    def _apply_common(self, node: SchemaNode, schema: dict[str, Any]) -> None:
        """Copy the annotations every kind can carry."""
        if schema.get("nullable") is True:
            node.nullable = True
        if isinstance(schema.get("description"), str):
            node.description = schema["description"]
        if "default" in schema:
            node.default_value = schema["default"]
            node.has_default = True
        if "example" in schema:
            node.example = schema["example"]
            node.has_example = True

    def _schema_list(self, schema: dict[str, Any], key: str, path: str) -> list[Any]:
        value = schema[key]
        if not isinstance(value, list) or not value:
            raise SchemaError(f"'{key}' must be a non-empty list", f"{path}/{key}")
        return value

    def _parse_union_node(self, schema: dict[str, Any], path: str) -> UnionNode:
        """Parse a oneOf or anyOf union node."""
        union_type = "oneOf" if "oneOf" in schema else "anyOf"
        variants_schema = self._schema_list(schema, union_type, path)

        variants = [self.parse_schema(v, f"{path}/{union_type}/{i}") for i, v in enumerate(variants_schema)]

        discriminator = schema.get("discriminator")
        own_properties = {
            str(name): self.parse_schema(prop, f"{path}/properties/{name}")
            for name, prop in (schema.get("properties") or {}).items()
        }

        return UnionNode(
            variants=variants,
            union_type=union_type,
            discriminator=discriminator.get("propertyName") if isinstance(discriminator, dict) else None,
            own_properties=own_properties,
            conflicting_keyword="anyOf" if "oneOf" in schema and "anyOf" in schema else None,
            source_path=path,
        )

    def _parse_type_node(self, schema: dict[str, Any], type_value: Any, path: str) -> SchemaNode:
        """Parse a type-based node."""
        # Handle array of types (OpenAPI 3.1)
        if isinstance(type_value, list):
            types = [t for t in type_value if t != "null"]
            nullable = len(types) != len(type_value)
            if not types:
                node = FreeFormNode(source_path=path)
            elif len(types) == 1:
                node = self._parse_type_node(schema, types[0], path)
            else:
                node = UnionNode(
                    variants=[
                        self._parse_type_node({k: v for k, v in schema.items() if k != "type"}, t, f"{path}/type/{t}")
                        for t in types
                    ],
                    union_type="anyOf",
                    source_path=path,
                )
            node.nullable = node.nullable or nullable
            return node

        if type_value == "array":
            return self._parse_array_node(schema, path)

        if type_value == "object":
            return self._parse_object_node(schema, path)

        if type_value == "null":
            return FreeFormNode(source_path=path, nullable=True)

        if type_value in PRIMITIVE_TYPES:
            enum = schema.get("enum")
            if enum is not None and not isinstance(enum, list):
                raise SchemaError("'enum' must be a list", f"{path}/enum")
            return PrimitiveNode(
                type_name=type_value,
                format=schema.get("format"),
                enum=list(enum) if enum is not None else None,
                source_path=path,
            )

        raise SchemaError(f"Unknown schema type '{type_value}'", f"{path}/type")

    def _parse_array_node(self, schema: dict[str, Any], path: str) -> ArrayNode:
        """Parse an array type node."""
        items = schema.get("items")
        return ArrayNode(
            items=self.parse_schema(items, f"{path}/items") if items is not None else None,
            has_properties="properties" in schema,
            source_path=path,
        )

    def _parse_object_node(self, schema: dict[str, Any], path: str) -> ObjectNode:
        """Parse an object type node."""
        raw_properties = schema.get("properties") or {}
        if not isinstance(raw_properties, dict):
            raise SchemaError("'properties' must be a mapping", f"{path}/properties")

        properties = {
            str(name): self.parse_schema(prop, f"{path}/properties/{name}") for name, prop in raw_properties.items()
        }

        required = schema.get("required") or []
        if not isinstance(required, list):
            raise SchemaError("'required' must be a list", f"{path}/required")

        additional = schema.get("additionalProperties")
        if isinstance(additional, dict):
            additional = self.parse_schema(additional, f"{path}/additionalProperties")

        return ObjectNode(
            properties=properties,
            required=[str(r) for r in required],
            additional_properties=additional,
            source_path=path,
        )

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    def _parse_path_item(self, path: str, path_item: Any) -> list[Operation]:
        item_path = f"#/paths/{_escape_pointer(path)}"
        if not isinstance(path_item, dict):
            raise SchemaError("Path item must be a mapping", item_path)

        shared = [self._parse_parameter(p, f"{item_path}/parameters/{i}") for i, p in enumerate(path_item.get("parameters") or [])]

        operations = []
        for method in HTTP_METHODS:
            op = path_item.get(method)
            if op is None:
                continue
            op_path = f"{item_path}/{method}"
            if not isinstance(op, dict):
                raise SchemaError("Operation must be a mapping", op_path)
            operations.append(self._parse_operation(path, method, op, shared, op_path))
        return operations

    def _parse_operation(
        self,
        path: str,
        method: str,
        op: dict[str, Any],
        shared: list[Parameter | None],
        op_path: str,
    ) -> Operation:
        # Operation-level parameters override path-level ones with the same name and location
        parameters: dict[tuple[str, str], Parameter] = {}
        for param in shared:
            if param is not None:
                parameters[(param.name, param.location.value)] = param
        for i, raw_param in enumerate(op.get("parameters") or []):
            param = self._parse_parameter(raw_param, f"{op_path}/parameters/{i}")
            if param is not None:
                parameters[(param.name, param.location.value)] = param

        request_body = None
        if op.get("requestBody") is not None:
            request_body = self._parse_request_body(op["requestBody"], f"{op_path}/requestBody")

        responses = []
        raw_responses = op.get("responses") or {}
        if not isinstance(raw_responses, dict):
            raise SchemaError("'responses' must be a mapping", f"{op_path}/responses")
        for status, raw_response in raw_responses.items():
            responses.append(self._parse_response(str(status), raw_response, f"{op_path}/responses/{status}"))

        operation_id = op.get("operationId")
        return Operation(
            method=method.upper(),
            path=path,
            operation_id=str(operation_id) if operation_id is not None else None,
            summary=op.get("summary"),
            description=op.get("description"),
            parameters=list(parameters.values()),
            request_body=request_body,
            responses=responses,
            security=self._parse_security_requirements(op.get("security"), f"{op_path}/security"),
            source_path=op_path,
        )

    def _parse_parameter(self, raw: Any, path: str) -> Parameter | None:
        raw, path = self._follow_component_ref(raw, "parameters", path)
        if not isinstance(raw, dict) or "name" not in raw:
            raise SchemaError("Parameter must be a mapping with a 'name'", path)

        location = raw.get("in")
        if location == "cookie":
            logger.warning("Cookie parameter '%s' at %s is not supported and was dropped", raw["name"], path)
            return None
        try:
            param_location = ParameterLocation(location)
        except ValueError as e:
            raise SchemaError(f"Unsupported parameter location '{location}'", f"{path}/in") from e

        if "schema" in raw:
            schema = self.parse_schema(raw["schema"], f"{path}/schema")
        elif isinstance(raw.get("content"), dict) and raw["content"]:
            media_type, media = next(iter(raw["content"].items()))
            schema = self.parse_schema((media or {}).get("schema", {}), f"{path}/content/{_escape_pointer(media_type)}/schema")
        else:
            schema = PrimitiveNode(type_name="string", source_path=path)

        return Parameter(
            name=str(raw["name"]),
            location=param_location,
            schema=schema,
            # Path parameters are always required
            required=bool(raw.get("required", False)) or param_location == ParameterLocation.PATH,
            description=raw.get("description"),
            source_path=path,
        )

    def _parse_request_body(self, raw: Any, path: str) -> RequestBody:
        raw, path = self._follow_component_ref(raw, "requestBodies", path)
        if not isinstance(raw, dict):
            raise SchemaError("Request body must be a mapping", path)

        content = raw.get("content") or {}
        required = bool(raw.get("required", False))
        for media_type, media in content.items():
            if is_json_media_type(media_type):
                schema_path = f"{path}/content/{_escape_pointer(media_type)}/schema"
                schema = (media or {}).get("schema")
                return RequestBody(
                    schema=self.parse_schema(schema, schema_path) if schema is not None else FreeFormNode(source_path=schema_path),
                    required=required,
                    content_type=media_type,
                )

        if content:
            media_type = next(iter(content))
            logger.warning("Non-JSON request body '%s' at %s is sent as raw text", media_type, path)
            return RequestBody(
                schema=PrimitiveNode(type_name="string", format="binary", source_path=path),
                required=required,
                content_type=media_type,
            )
        return RequestBody(schema=None, required=required)

    def _parse_response(self, status: str, raw: Any, path: str) -> Response:
        raw, path = self._follow_component_ref(raw, "responses", path)
        if not isinstance(raw, dict):
            raise SchemaError("Response must be a mapping", path)

        schema = None
        for media_type, media in (raw.get("content") or {}).items():
            if is_json_media_type(media_type) and (media or {}).get("schema") is not None:
                schema = self.parse_schema(media["schema"], f"{path}/content/{_escape_pointer(media_type)}/schema")
                break

        return Response(status=status, schema=schema, description=raw.get("description"))

    def _follow_component_ref(self, raw: Any, section: str, path: str) -> tuple[Any, str]:
        """Follow a $ref into #/components/<section>/ (parameters, responses, ...)."""
        seen = []
        while isinstance(raw, dict) and "$ref" in raw:
            ref = str(raw["$ref"])
            prefix = f"#/components/{section}/"
            if ref in seen:
                raise SchemaError(f"Reference loop through '{ref}'", path)
            seen.append(ref)
            registry = (self._raw.get("components") or {}).get(section) or {}
            target = registry.get(ref[len(prefix) :]) if ref.startswith(prefix) else None
            if target is None:
                raise UnresolvedReferenceError(ref, path)
            raw, path = target, ref
        return raw, path

    # ------------------------------------------------------------------
    # Security
    # ------------------------------------------------------------------

    def _parse_security_schemes(self, raw: Any) -> dict[str, SecurityScheme]:
        if not isinstance(raw, dict):
            raise SchemaError("'securitySchemes' must be a mapping", "#/components/securitySchemes")

        schemes = {}
        for name, scheme in raw.items():
            path = f"#/components/securitySchemes/{name}"
            if not isinstance(scheme, dict):
                raise SchemaError("Security scheme must be a mapping", path)

            scheme_type = scheme.get("type")
            if scheme_type == "http" and str(scheme.get("scheme", "")).lower() == "bearer":
                schemes[name] = SecurityScheme(name=name, kind=SecuritySchemeKind.BEARER)
            elif scheme_type in ("oauth2", "openIdConnect"):
                # Both end up as a bearer token on the wire
                schemes[name] = SecurityScheme(name=name, kind=SecuritySchemeKind.BEARER)
            elif scheme_type == "apiKey" and scheme.get("in") in ("header", "query"):
                if "name" not in scheme:
                    raise SchemaError("apiKey security scheme needs a 'name'", path)
                schemes[name] = SecurityScheme(
                    name=name,
                    kind=SecuritySchemeKind.API_KEY,
                    location=scheme["in"],
                    param_name=str(scheme["name"]),
                )
            else:
                logger.warning("Security scheme '%s' (%s) is not supported and was dropped", name, scheme_type)
        return schemes

    def _parse_security_requirements(self, raw: Any, path: str) -> list[dict[str, list[str]]] | None:
        if raw is None:
            return None
        if not isinstance(raw, list) or not all(isinstance(r, dict) for r in raw):
            raise SchemaError("Security requirements must be a list of mappings", path)
        return [{str(k): list(v or []) for k, v in requirement.items()} for requirement in raw]


def _escape_pointer(segment: str) -> str:
    """Escape a JSON pointer segment."""
    return segment.replace("~", "~0").replace("/", "~1")


def parse_document(raw: dict[str, Any]) -> Document:
    """Convenience wrapper around DocumentParser."""
    return DocumentParser().parse(raw)
