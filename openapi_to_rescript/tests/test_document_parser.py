"""
Tests for the document parser (phase 1).
"""

from __future__ import annotations

from pathlib import Path

import pytest

from openapi_to_rescript.pipeline.document import (
    AllOfNode,
    ArrayNode,
    FreeFormNode,
    ObjectNode,
    ParameterLocation,
    PrimitiveNode,
    RefNode,
    SchemaKind,
    SecuritySchemeKind,
    UnionNode,
    load_document_file,
    parse_document,
)
from openapi_to_rescript.pipeline.errors import SchemaError, UnresolvedReferenceError

TEST_DATA = Path(__file__).parent / "test_data"


def make_document(schemas=None, paths=None, **extra):
    """Build a minimal OpenAPI document around some components."""
    document = {
        "openapi": "3.0.3",
        "info": {"title": "Test", "version": "1.0"},
        "paths": paths or {},
        "components": {"schemas": schemas or {}},
    }
    document.update(extra)
    return document


class TestDocumentShape:
    """Tests for the minimal OpenAPI 3.x shape checks."""

    def test_missing_openapi_field(self):
        with pytest.raises(SchemaError, match="openapi"):
            parse_document({"info": {"title": "x", "version": "1"}, "paths": {}})

    def test_swagger_2_rejected(self):
        with pytest.raises(SchemaError, match="3.x"):
            parse_document({"openapi": "2.0", "info": {}, "paths": {}})

    def test_missing_info(self):
        with pytest.raises(SchemaError) as exc_info:
            parse_document({"openapi": "3.0.0", "paths": {}})
        assert exc_info.value.path == "#/info"

    def test_missing_paths(self):
        with pytest.raises(SchemaError, match="paths"):
            parse_document({"openapi": "3.0.0", "info": {"title": "x", "version": "1"}})

    def test_non_mapping_schema(self):
        with pytest.raises(SchemaError) as exc_info:
            parse_document(make_document({"Bad": [1, 2]}))
        assert exc_info.value.path == "#/components/schemas/Bad"

    def test_info_fields(self):
        document = parse_document(load_document_file(TEST_DATA / "petstore.yaml"))
        assert document.title == "Petstore"
        assert document.version == "1.0.0"
        assert document.description == "A sample pet store"
        assert document.servers == ["https://petstore.example.com/v1"]
        assert list(document.schemas) == ["Pet", "PetStatus", "NewPet", "Error"]


class TestSchemaClassification:
    """Tests for schema kind classification order."""

    def parse(self, schema):
        return parse_document(make_document({"S": schema})).schemas["S"]

    def test_ref(self):
        node = self.parse({"$ref": "#/components/schemas/Other", "type": "object"})
        assert isinstance(node, RefNode)
        assert node.kind == SchemaKind.REFERENCE

    def test_union_wins_over_type(self):
        node = self.parse({"type": "object", "oneOf": [{"type": "string"}, {"type": "integer"}]})
        assert isinstance(node, UnionNode)
        assert node.union_type == "oneOf"

    def test_conflicting_union_keywords_recorded(self):
        node = self.parse({"oneOf": [{"type": "string"}], "anyOf": [{"type": "integer"}]})
        assert node.conflicting_keyword == "anyOf"

    def test_discriminator(self):
        node = self.parse({"oneOf": [{"type": "object"}], "discriminator": {"propertyName": "kind"}})
        assert node.discriminator == "kind"

    def test_allof(self):
        node = self.parse({"allOf": [{"$ref": "#/components/schemas/A"}, {"type": "object"}]})
        assert isinstance(node, AllOfNode)
        assert len(node.branches) == 2

    def test_object(self):
        node = self.parse({"type": "object", "required": ["a"], "properties": {"a": {"type": "string"}}})
        assert isinstance(node, ObjectNode)
        assert node.required == ["a"]
        assert isinstance(node.properties["a"], PrimitiveNode)

    def test_object_without_type(self):
        assert isinstance(self.parse({"properties": {"a": {"type": "string"}}}), ObjectNode)

    def test_additional_properties_schema(self):
        node = self.parse({"type": "object", "additionalProperties": {"type": "integer"}})
        assert isinstance(node.additional_properties, PrimitiveNode)

    def test_array(self):
        node = self.parse({"type": "array", "items": {"type": "string"}})
        assert isinstance(node, ArrayNode)
        assert node.items.kind == SchemaKind.STRING

    def test_array_with_properties_is_flagged(self):
        assert self.parse({"type": "array", "properties": {"a": {}}}).has_properties

    def test_string_enum(self):
        node = self.parse({"type": "string", "enum": ["a", "b"]})
        assert node.enum == ["a", "b"]

    def test_untyped_string_enum(self):
        node = self.parse({"enum": ["x", "y"]})
        assert isinstance(node, PrimitiveNode)
        assert node.type_name == "string"

    def test_free_form(self):
        assert isinstance(self.parse({}), FreeFormNode)
        assert isinstance(self.parse({"description": "anything"}), FreeFormNode)

    def test_type_list_with_null(self):
        node = self.parse({"type": ["string", "null"]})
        assert isinstance(node, PrimitiveNode)
        assert node.nullable

    def test_type_list_with_several_types(self):
        node = self.parse({"type": ["string", "integer"]})
        assert isinstance(node, UnionNode)
        assert node.union_type == "anyOf"
        assert [v.kind for v in node.variants] == [SchemaKind.STRING, SchemaKind.INTEGER]

    def test_unknown_type(self):
        with pytest.raises(SchemaError, match="Unknown schema type"):
            self.parse({"type": "decimal"})

    def test_common_annotations(self):
        node = self.parse({"type": "integer", "nullable": True, "description": "d", "default": 3, "example": 4})
        assert node.nullable
        assert node.description == "d"
        assert node.has_default and node.default_value == 3
        assert node.has_example and node.example == 4

    def test_default_none_is_kept(self):
        node = self.parse({"type": "string", "default": None})
        assert node.has_default
        assert node.default_value is None

    def test_shared_schema_objects_parse_once(self):
        shared = {"type": "object", "properties": {"x": {"type": "string"}}}
        document = parse_document(
            make_document({"A": {"type": "object", "properties": {"one": shared, "two": shared}}})
        )
        properties = document.schemas["A"].properties
        assert properties["one"] is properties["two"]


class TestOperations:
    """Tests for paths, parameters, bodies and responses."""

    @pytest.fixture
    def document(self):
        return parse_document(load_document_file(TEST_DATA / "petstore.yaml"))

    def test_operations_in_order(self, document):
        assert [(op.method, op.path) for op in document.operations] == [
            ("GET", "/pets"),
            ("POST", "/pets"),
            ("GET", "/pets/{petId}"),
            ("DELETE", "/pets/{petId}"),
        ]

    def test_path_level_parameters_are_shared(self, document):
        get_pet = document.operations[2]
        assert [(p.name, p.location) for p in get_pet.parameters] == [
            ("petId", ParameterLocation.PATH),
            ("X-Request-Id", ParameterLocation.HEADER),
        ]
        assert get_pet.parameters[0].required

    def test_request_body(self, document):
        body = document.operations[1].request_body
        assert body.required
        assert body.content_type == "application/json"
        assert isinstance(body.schema, RefNode)

    def test_responses(self, document):
        assert [r.status for r in document.operations[2].responses] == ["200", "default"]
        assert document.operations[3].responses[0].schema is None

    def test_security(self, document):
        assert document.security == [{"bearerAuth": []}]
        assert document.operations[0].security is None
        assert document.operations[3].security == [{"apiKeyAuth": []}]
        assert document.security_schemes["bearerAuth"].kind == SecuritySchemeKind.BEARER
        api_key = document.security_schemes["apiKeyAuth"]
        assert (api_key.kind, api_key.location, api_key.param_name) == (SecuritySchemeKind.API_KEY, "header", "X-API-Key")

    def test_operation_parameters_override_shared(self):
        paths = {
            "/items/{id}": {
                "parameters": [{"name": "id", "in": "path", "schema": {"type": "string"}}],
                "get": {
                    "parameters": [{"name": "id", "in": "path", "schema": {"type": "integer"}}],
                    "responses": {},
                },
            }
        }
        op = parse_document(make_document(paths=paths)).operations[0]
        assert len(op.parameters) == 1
        assert op.parameters[0].schema.type_name == "integer"

    def test_cookie_parameters_dropped(self):
        paths = {"/x": {"get": {"parameters": [{"name": "session", "in": "cookie"}], "responses": {}}}}
        assert parse_document(make_document(paths=paths)).operations[0].parameters == []

    def test_parameter_without_name(self):
        paths = {"/x": {"get": {"parameters": [{"in": "query"}], "responses": {}}}}
        with pytest.raises(SchemaError, match="name"):
            parse_document(make_document(paths=paths))

    def test_unsupported_parameter_location(self):
        paths = {"/x": {"get": {"parameters": [{"name": "a", "in": "body"}], "responses": {}}}}
        with pytest.raises(SchemaError, match="location"):
            parse_document(make_document(paths=paths))

    def test_component_parameter_ref(self):
        document = make_document(paths={"/x": {"get": {"parameters": [{"$ref": "#/components/parameters/Limit"}], "responses": {}}}})
        document["components"]["parameters"] = {"Limit": {"name": "limit", "in": "query", "schema": {"type": "integer"}}}
        param = parse_document(document).operations[0].parameters[0]
        assert param.name == "limit"
        assert param.source_path == "#/components/parameters/Limit"

    def test_missing_component_response(self):
        paths = {"/x": {"get": {"responses": {"200": {"$ref": "#/components/responses/Missing"}}}}}
        with pytest.raises(UnresolvedReferenceError) as exc_info:
            parse_document(make_document(paths=paths))
        assert exc_info.value.ref == "#/components/responses/Missing"

    def test_non_json_body_is_raw_text(self):
        paths = {"/upload": {"post": {"requestBody": {"content": {"application/octet-stream": {}}}, "responses": {}}}}
        body = parse_document(make_document(paths=paths)).operations[0].request_body
        assert body.content_type == "application/octet-stream"
        assert body.schema.format == "binary"

    def test_unsupported_security_scheme_dropped(self):
        document = make_document()
        document["components"]["securitySchemes"] = {"basic": {"type": "http", "scheme": "basic"}}
        assert parse_document(document).security_schemes == {}
