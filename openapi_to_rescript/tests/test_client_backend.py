"""
Tests for the ReScript HTTP client backend.
"""

from __future__ import annotations

from pathlib import Path

import pytest

from openapi_to_rescript.pipeline.analyzer import SchemaAnalyzer, resolve_dependencies
from openapi_to_rescript.pipeline.backends import ClientBackend
from openapi_to_rescript.pipeline.config import CodeGeneratorConfig
from openapi_to_rescript.pipeline.document import load_document_file, parse_document

TEST_DATA = Path(__file__).parent / "test_data"


def render(raw, config=None):
    config = config or CodeGeneratorConfig()
    ir = SchemaAnalyzer(config).analyze(parse_document(raw))
    return ClientBackend(config).generate(ir, resolve_dependencies(ir))


def render_paths(paths, schemas=None, **extra):
    document = {
        "openapi": "3.0.3",
        "info": {"title": "T", "version": "1"},
        "paths": paths,
        "components": {"schemas": schemas or {}},
    }
    document.update(extra)
    return render(document)


def function_body(code, name):
    """The text of one generated client function."""
    start = code.index(f"let {name} = async")
    end = code.find("\nlet ", start + 1)
    return code[start:] if end == -1 else code[start:end]


@pytest.fixture
def petstore_client():
    return render(load_document_file(TEST_DATA / "petstore.yaml"))


class TestClientRuntime:
    """Tests for the transport, credentials and helpers."""

    def test_header(self, petstore_client):
        assert petstore_client.startswith("// ApiClient: Petstore (1.0.0)\n")

    def test_transport_and_errors(self, petstore_client):
        assert "type transport = {send: request => promise<result<response, error>>}" in petstore_client
        assert "  | HttpError({status: int, body: string})\n" in petstore_client
        assert "let fetchTransport: transport = {" in petstore_client

    def test_credentials(self, petstore_client):
        assert "type credentials = {\n  bearerAuth: option<string>,\n  apiKeyAuth: option<string>,\n}" in petstore_client
        assert "let noCredentials = {\n  bearerAuth: None,\n  apiKeyAuth: None,\n}" in petstore_client

    def test_no_credentials(self):
        code = render(load_document_file(TEST_DATA / "minimal.json"))
        assert "type credentials = unit\n" in code
        assert "let noCredentials = ()\n" in code

    def test_make_uses_first_server(self, petstore_client):
        assert (
            'let make = (~baseUrl="https://petstore.example.com/v1", ~transport=fetchTransport, ~credentials=noCredentials, ()) => {'
            in petstore_client
        )

    def test_base_url_override(self):
        config = CodeGeneratorConfig(default_base_url="http://localhost:3000")
        code = render(load_document_file(TEST_DATA / "petstore.yaml"), config)
        assert '~baseUrl="http://localhost:3000"' in code

    def test_decode_helper(self, petstore_client):
        assert "Ok(response.body->S.parseJsonStringOrThrow(schema))" in petstore_client
        assert "| S.Error(e) => Error(DecodeError(e->S.Error.message))" in petstore_client


class TestOperations:
    """Tests for the generated operation functions."""

    def test_path_and_header_parameters(self, petstore_client):
        body = function_body(petstore_client, "getPetById")
        assert body.startswith("let getPetById = async (client: client, ~petId: int, ~xRequestId: string=?, ()) => {")
        assert '  let path = "/pets/" ++ encodeURIComponent(Int.toString(petId))\n' in body
        assert '  | Some(xRequestId) => headers->Dict.set("X-Request-Id", xRequestId)\n' in body
        assert "    decode(response, ApiSchema.pet)\n" in body
        assert '    method: "GET",\n' in body

    def test_query_parameters(self, petstore_client):
        body = function_body(petstore_client, "listPets")
        assert "~limit: int=?, ~status: ApiTypes.petStatus=?, ~tags: array<string>=?" in body
        assert '  | Some(limit) => query->Array.push(("limit", Int.toString(limit)))\n' in body
        assert '  | Some(status) => query->Array.push(("status", (status :> string)))\n' in body
        assert '  | Some(tags) => query->Array.push(("tags", tags->Array.map(item => item)->Array.join(",")))\n' in body
        assert "    decode(response, S.array(ApiSchema.pet))\n" in body

    def test_operation_doc(self, petstore_client):
        assert "/**\nList all pets\nGET /pets\n*/\nlet listPets = async" in petstore_client

    def test_bearer_security(self, petstore_client):
        body = function_body(petstore_client, "listPets")
        assert "  switch client.credentials.bearerAuth {\n" in body
        assert '  | Some(token) => headers->Dict.set("Authorization", "Bearer " ++ token)\n' in body

    def test_api_key_security(self, petstore_client):
        body = function_body(petstore_client, "deletePet")
        assert "client.credentials.apiKeyAuth" in body
        assert '  | Some(key) => headers->Dict.set("X-API-Key", key)\n' in body
        assert "bearerAuth" not in body

    def test_api_key_in_query(self):
        code = render_paths(
            {"/items": {"get": {"operationId": "listItems", "responses": {}}}},
            security=[{"key": []}],
        )
        assert "type credentials = unit" in code

        document = {
            "openapi": "3.0.3",
            "info": {"title": "T", "version": "1"},
            "paths": {"/items": {"get": {"operationId": "listItems", "responses": {}}}},
            "components": {"securitySchemes": {"key": {"type": "apiKey", "in": "query", "name": "api_key"}}},
            "security": [{"key": []}],
        }
        code = render(document)
        assert '  | Some(key) => query->Array.push(("api_key", key))\n' in code

    def test_json_request_body(self, petstore_client):
        body = function_body(petstore_client, "createPet")
        assert "~body: ApiTypes.newPet, ()" in body
        assert '  headers->Dict.set("Content-Type", "application/json")\n' in body
        assert "    body: Some(body->S.reverseConvertToJsonStringOrThrow(ApiSchema.newPet)),\n" in body

    def test_no_content_response(self, petstore_client):
        body = function_body(petstore_client, "deletePet")
        assert "    body: None,\n" in body
        assert "    Ok()\n" in body
        assert 'let path = "/pets/" ++ encodeURIComponent(Int.toString(petId))' in body

    def test_http_error_branch(self, petstore_client):
        body = function_body(petstore_client, "deletePet")
        assert "  | Ok(response) if response.status >= 200 && response.status < 300 =>\n" in body
        assert "  | Ok(response) => Error(HttpError({status: response.status, body: response.body}))\n" in body

    def test_optional_and_raw_bodies(self):
        paths = {
            "/notes": {
                "post": {
                    "operationId": "addNote",
                    "requestBody": {"content": {"application/json": {"schema": {"type": "object", "properties": {"text": {"type": "string"}}}}}},
                    "responses": {},
                },
                "put": {
                    "operationId": "uploadNote",
                    "requestBody": {"required": True, "content": {"text/plain": {"schema": {"type": "string"}}}},
                    "responses": {},
                },
            }
        }
        code = render_paths(paths)
        add_note = function_body(code, "addNote")
        assert "~body: ApiTypes.addNoteRequest=?" in add_note
        assert "    body: body->Option.map(body => body->S.reverseConvertToJsonStringOrThrow(ApiSchema.addNoteRequest)),\n" in add_note
        upload = function_body(code, "uploadNote")
        assert '  headers->Dict.set("Content-Type", "text/plain")\n' in upload
        assert "    body: Some(body),\n" in upload

    def test_json_body_with_media_type_parameters(self):
        paths = {
            "/pets": {
                "post": {
                    "operationId": "addPet",
                    "requestBody": {"required": True, "content": {"application/json; charset=utf-8": {"schema": {"$ref": "#/components/schemas/Pet"}}}},
                    "responses": {},
                }
            }
        }
        schemas = {"Pet": {"type": "object", "required": ["name"], "properties": {"name": {"type": "string"}}}}
        body = function_body(render_paths(paths, schemas), "addPet")
        assert "~body: ApiTypes.pet, ()" in body
        assert '  headers->Dict.set("Content-Type", "application/json; charset=utf-8")\n' in body
        assert "    body: Some(body->S.reverseConvertToJsonStringOrThrow(ApiSchema.pet)),\n" in body

    def test_parameter_serialization(self):
        paths = {
            "/search/{flag}": {
                "get": {
                    "operationId": "search",
                    "parameters": [
                        {"name": "flag", "in": "path", "schema": {"type": "boolean"}},
                        {"name": "ratio", "in": "query", "required": True, "schema": {"type": "number"}},
                        {"name": "filter", "in": "query", "required": True, "schema": {"type": "object", "properties": {"a": {"type": "string"}}}},
                    ],
                    "responses": {},
                }
            }
        }
        body = function_body(render_paths(paths), "search")
        assert '"/search/" ++ encodeURIComponent((flag ? "true" : "false"))' in body
        assert '  query->Array.push(("ratio", Float.toString(ratio)))\n' in body
        assert '  query->Array.push(("filter", filter->S.reverseConvertToJsonStringOrThrow(ApiSchema.searchFilter)))\n' in body

    def test_scaffolding_example_calls(self):
        config = CodeGeneratorConfig(include_scaffolding=True)
        code = render(load_document_file(TEST_DATA / "petstore.yaml"), config)
        assert "// Example:\n// let result = await ApiClient.getPetById(client, ~petId=0, ())\n" in code
        assert "// let result = await ApiClient.createPet(client, ~body, ())\n" in code

    def test_no_examples_by_default(self, petstore_client):
        assert "// Example:" not in petstore_client
