"""
Tests for the ReScript type declaration backend.
"""

from __future__ import annotations

from pathlib import Path

import pytest

from openapi_to_rescript.pipeline.analyzer import SchemaAnalyzer, resolve_dependencies
from openapi_to_rescript.pipeline.backends import TypesBackend
from openapi_to_rescript.pipeline.backends.base import doc_comment, line_comment, string_literal
from openapi_to_rescript.pipeline.config import CodeGeneratorConfig
from openapi_to_rescript.pipeline.document import load_document_file, parse_document

TEST_DATA = Path(__file__).parent / "test_data"


def render(raw, config=None):
    config = config or CodeGeneratorConfig()
    ir = SchemaAnalyzer(config).analyze(parse_document(raw))
    return TypesBackend(config).generate(ir, resolve_dependencies(ir))


def render_schemas(schemas, config=None):
    return render(
        {"openapi": "3.0.3", "info": {"title": "T", "version": "1"}, "paths": {}, "components": {"schemas": schemas}},
        config,
    )


@pytest.fixture
def petstore_types():
    return render(load_document_file(TEST_DATA / "petstore.yaml"))


class TestTypesBackend:
    """Tests for TypesBackend."""

    def test_header(self, petstore_types):
        assert petstore_types.startswith("// ApiTypes: Petstore (1.0.0)\n")

    def test_generation_comment(self):
        config = CodeGeneratorConfig()
        ir = SchemaAnalyzer(config).analyze(parse_document(load_document_file(TEST_DATA / "minimal.json")))
        code = TypesBackend(config).generate(ir, [], "openapi_to_rescript generate api.json")
        assert code.startswith("// Generated by openapi_to_rescript generate api.json\n// Do not edit by hand.\n")

    def test_generation_comment_disabled(self):
        config = CodeGeneratorConfig(add_generation_comment=False)
        ir = SchemaAnalyzer(config).analyze(parse_document(load_document_file(TEST_DATA / "minimal.json")))
        assert "Generated by" not in TypesBackend(config).generate(ir, [], "cmd")

    def test_enum(self, petstore_types):
        assert 'type petStatus = [#"available" | #"pending" | #"sold"]\n' in petstore_types

    def test_record(self, petstore_types):
        expected = (
            "/** A pet in the store */\n"
            "type pet = {\n"
            "  id: int,\n"
            "  name: string,\n"
            "  status: petStatus,\n"
            "  tag?: option<string>,\n"
            '  @as("owner_name") ownerName?: string,\n'
            "}\n"
        )
        assert expected in petstore_types

    def test_declaration_order(self, petstore_types):
        assert petstore_types.index("type petStatus") < petstore_types.index("type pet =")

    def test_scaffolding_comments(self):
        config = CodeGeneratorConfig(include_scaffolding=True)
        code = render(load_document_file(TEST_DATA / "petstore.yaml"), config)
        assert '  /** Example: "Rex" */\n  name: string,' in code
        assert "  /** Default: 1 */\n  age?: int," in code

    def test_no_scaffolding_by_default(self, petstore_types):
        assert "Example:" not in petstore_types
        assert "Default:" not in petstore_types

    def test_variant_with_discriminator_note(self):
        code = render(load_document_file(TEST_DATA / "shapes.json"))
        assert "/** Discriminated by `kind`; variants are tried in declaration order. */\ntype shape =\n  | Circle(circle)\n  | Square(square)\n" in code
        assert "type amount =\n  | Case1(int)\n  | Case2(string)\n" in code

    def test_recursive_group(self):
        code = render(load_document_file(TEST_DATA / "shapes.json"))
        assert "type rec treeNode = {\n  value: int,\n  children?: array<treeNode>,\n}\n" in code

    def test_mutually_recursive_group_uses_and(self):
        code = render_schemas(
            {
                "Author": {"type": "object", "description": "Writes books", "properties": {"books": {"type": "array", "items": {"$ref": "#/components/schemas/Book"}}}},
                "Book": {"type": "object", "required": ["author"], "properties": {"author": {"$ref": "#/components/schemas/Author"}}},
            }
        )
        assert "// Writes books\ntype rec author = {" in code
        assert "\nand book = {\n  author: author,\n}" in code

    def test_aliases(self):
        code = render_schemas(
            {
                "Id": {"type": "string"},
                "Tags": {"type": "array", "items": {"type": "string"}},
                "Scores": {"type": "object", "additionalProperties": {"type": "number"}},
                "Anything": {},
                "Empty": {"type": "object", "properties": {}},
            }
        )
        assert "type id = string\n" in code
        assert "type tags = array<string>\n" in code
        assert "type scores = dict<float>\n" in code
        assert "type anything = JSON.t\n" in code
        assert "type empty = JSON.t\n" in code

    def test_empty_record_is_json_dict(self):
        code = render_schemas({"Meta": {"allOf": [{"type": "object"}, {"type": "object"}]}})
        assert "type meta = dict<JSON.t>\n" in code

    def test_reserved_field_name(self):
        code = render_schemas({"Item": {"type": "object", "required": ["type"], "properties": {"type": {"type": "string"}}}})
        assert '  @as("type") type_: string,\n' in code

    def test_module_prefix(self):
        config = CodeGeneratorConfig(module_prefix="Petstore")
        backend = TypesBackend(config)
        assert backend.file_name == "PetstoreTypes.res"


class TestCommentHelpers:
    """Tests for the comment and literal filters."""

    def test_doc_comment_single_line(self):
        assert doc_comment("Hello") == "/** Hello */\n"

    def test_doc_comment_multi_line(self):
        assert doc_comment("One\nTwo", "  ") == "  /**\n  One\n  Two\n  */\n"

    def test_doc_comment_cannot_close_early(self):
        assert "*/ evil" not in doc_comment("a */ evil")

    def test_empty_doc(self):
        assert doc_comment(None) == ""
        assert doc_comment("   ") == ""
        assert line_comment("") == ""

    def test_line_comment(self):
        assert line_comment("a\nb") == "// a\n// b\n"

    def test_string_literal(self):
        assert string_literal('say "hi"\n') == '"say \\"hi\\"\\n"'
        assert string_literal("back\\slash") == '"back\\\\slash"'
