"""
Tests for the rescript-schema validator backend.
"""

from __future__ import annotations

from pathlib import Path

import pytest

from openapi_to_rescript.pipeline.analyzer import (
    Container,
    ContainerKind,
    NamedRef,
    Primitive,
    PrimitiveKind,
    SchemaAnalyzer,
    resolve_dependencies,
)
from openapi_to_rescript.pipeline.backends import SchemaBackend
from openapi_to_rescript.pipeline.config import CodeGeneratorConfig
from openapi_to_rescript.pipeline.document import load_document_file, parse_document

TEST_DATA = Path(__file__).parent / "test_data"


def analyze(raw):
    return SchemaAnalyzer().analyze(parse_document(raw))


def analyze_schemas(schemas):
    return analyze({"openapi": "3.0.3", "info": {"title": "T", "version": "1"}, "paths": {}, "components": {"schemas": schemas}})


def render(ir):
    return SchemaBackend(CodeGeneratorConfig()).generate(ir, resolve_dependencies(ir))


@pytest.fixture
def petstore_ir():
    return analyze(load_document_file(TEST_DATA / "petstore.yaml"))


@pytest.fixture
def shapes_ir():
    return analyze(load_document_file(TEST_DATA / "shapes.json"))


class TestValidatorRendering:
    """Tests for the emitted rescript-schema expressions."""

    def test_header(self, petstore_ir):
        assert render(petstore_ir).startswith("// ApiSchema: Petstore (1.0.0)\n")

    def test_record(self, petstore_ir):
        expected = (
            "let pet: S.t<ApiTypes.pet> = S.object((s): ApiTypes.pet => {\n"
            '  id: s.field("id", S.int),\n'
            '  name: s.field("name", S.string),\n'
            '  status: s.field("status", petStatus),\n'
            '  tag: ?s.field("tag", S.option(S.null(S.string))),\n'
            '  ownerName: ?s.field("owner_name", S.option(S.string)),\n'
            "})\n"
        )
        assert expected in render(petstore_ir)

    def test_enum(self, petstore_ir):
        code = render(petstore_ir)
        assert 'let petStatus: S.t<ApiTypes.petStatus> = S.union([S.literal(#"available"), S.literal(#"pending"), S.literal(#"sold")])' in code
        assert code.index("let petStatus") < code.index("let pet:")

    def test_single_literal_enum(self, shapes_ir):
        assert 'let circleKind: S.t<ApiTypes.circleKind> = S.literal(#"circle")\n' in render(shapes_ir)

    def test_union(self, shapes_ir):
        expected = (
            "let shape: S.t<ApiTypes.shape> = S.union([\n"
            "  circle->S.shape(v => ApiTypes.Circle(v)),\n"
            "  square->S.shape(v => ApiTypes.Square(v)),\n"
            "])\n"
        )
        assert expected in render(shapes_ir)

    def test_recursive(self, shapes_ir):
        expected = (
            "let treeNode: S.t<ApiTypes.treeNode> = S.recursive((treeNode: S.t<ApiTypes.treeNode>) => "
            "S.object((s): ApiTypes.treeNode => {\n"
            '  value: s.field("value", S.int),\n'
            '  children: ?s.field("children", S.option(S.array(treeNode))),\n'
            "}))\n"
        )
        assert expected in render(shapes_ir)

    def test_mutual_recursion_inlines_pending_members(self):
        ir = analyze_schemas(
            {
                "Author": {"type": "object", "properties": {"books": {"type": "array", "items": {"$ref": "#/components/schemas/Book"}}}},
                "Book": {"type": "object", "required": ["author"], "properties": {"author": {"$ref": "#/components/schemas/Author"}}},
            }
        )
        code = render(ir)
        author = code[code.index("let author:") : code.index("let book:")]
        assert "S.recursive((book: S.t<ApiTypes.book>) =>" in author
        assert 's.field("author", author)' in author
        book = code[code.index("let book:") :]
        assert book.startswith("let book: S.t<ApiTypes.book> = S.recursive((book: S.t<ApiTypes.book>) =>")
        assert 's.field("author", author)' in book

    def test_containers_and_json(self):
        ir = analyze_schemas(
            {
                "Bag": {
                    "type": "object",
                    "additionalProperties": False,
                    "required": ["meta"],
                    "properties": {
                        "meta": {},
                        "counts": {"type": "object", "additionalProperties": {"type": "integer"}},
                    },
                },
                "Empty": {"allOf": [{"type": "object"}, {"type": "object"}]},
            }
        )
        code = render(ir)
        assert '  meta: s.field("meta", S.json(~validate=true)),\n' in code
        assert '  counts: ?s.field("counts", S.option(S.dict(S.int))),\n' in code
        assert "})->S.strict\n" in code
        assert "let empty: S.t<ApiTypes.empty> = S.dict(S.json(~validate=true))\n" in code

    def test_object_parameter_avoids_type_names(self):
        code = render(analyze_schemas({"S": {"type": "object", "properties": {"a": {"type": "string"}}}}))
        assert 'S.object((s2): ApiTypes.s => {\n  a: ?s2.field("a", S.option(S.string)),\n})' in code

    def test_validator_expr_with_qualifier(self, petstore_ir):
        backend = SchemaBackend(CodeGeneratorConfig()).bind(petstore_ir)
        expr = backend.validator_expr(Container(NamedRef("pet"), ContainerKind.LIST), qualifier="ApiSchema.")
        assert expr == "S.array(ApiSchema.pet)"


class TestAcceptance:
    """Tests for the validation semantics of the emitted validators."""

    def test_pet(self, petstore_ir):
        backend = SchemaBackend(CodeGeneratorConfig()).bind(petstore_ir)
        pet = NamedRef("pet")
        assert backend.accepts(pet, {"id": 1, "name": "Rex", "status": "available"})
        assert backend.accepts(pet, {"id": 1, "name": "Rex", "status": "sold", "tag": None, "extra": True})
        assert not backend.accepts(pet, {"id": 1, "name": "Rex", "status": "unknown"})
        assert not backend.accepts(pet, {"id": 1, "status": "available"})
        assert not backend.accepts(pet, {"id": 1, "name": "Rex", "status": "sold", "tag": 3})
        assert not backend.accepts(pet, {"id": 1, "name": "Rex", "status": "sold", "owner_name": None})
        assert not backend.accepts(pet, [])

    @pytest.mark.parametrize(
        "value,expected",
        [(1, True), (1.0, True), (1.5, False), (True, False), (2**31, False), (-(2**31), True), ("1", False)],
    )
    def test_integer(self, petstore_ir, value, expected):
        backend = SchemaBackend(CodeGeneratorConfig()).bind(petstore_ir)
        assert backend.accepts(Primitive(PrimitiveKind.INTEGER), value) is expected

    def test_primitives(self, petstore_ir):
        backend = SchemaBackend(CodeGeneratorConfig()).bind(petstore_ir)
        assert backend.accepts(Primitive(PrimitiveKind.NUMBER), 1)
        assert not backend.accepts(Primitive(PrimitiveKind.NUMBER), False)
        assert backend.accepts(Primitive(PrimitiveKind.BOOLEAN), False)
        assert backend.accepts(Primitive(PrimitiveKind.JSON), {"any": [1, None]})
        assert backend.accepts(Container(Primitive(), ContainerKind.DICT), {"a": "b"})
        assert not backend.accepts(Container(Primitive(), ContainerKind.DICT), {"a": 1})

    def test_closed_record_rejects_extra_keys(self):
        ir = analyze_schemas({"Point": {"type": "object", "additionalProperties": False, "properties": {"x": {"type": "number"}}}})
        backend = SchemaBackend(CodeGeneratorConfig()).bind(ir)
        assert backend.accepts(NamedRef("point"), {"x": 1.5})
        assert not backend.accepts(NamedRef("point"), {"x": 1.5, "y": 2})

    def test_union_first_match_wins(self, shapes_ir):
        backend = SchemaBackend(CodeGeneratorConfig()).bind(shapes_ir)
        shape = shapes_ir.types["shape"]
        assert backend.matching_variant(shape, {"kind": "circle", "radius": 1.0}) == "Circle"
        assert backend.matching_variant(shape, {"kind": "square", "side": 2}) == "Square"
        assert backend.matching_variant(shape, {"kind": "triangle"}) is None

        amount = shapes_ir.types["amount"]
        assert backend.matching_variant(amount, 5) == "Case1"
        assert backend.matching_variant(amount, "5") == "Case2"
        assert backend.matching_variant(amount, 5.5) is None

    def test_overlapping_variants_take_the_first(self):
        ir = analyze_schemas({"U": {"anyOf": [{"type": "number"}, {"type": "integer"}]}})
        backend = SchemaBackend(CodeGeneratorConfig()).bind(ir)
        assert backend.matching_variant(ir.types["u"], 3) == "Case1"

    def test_recursive_values(self, shapes_ir):
        backend = SchemaBackend(CodeGeneratorConfig()).bind(shapes_ir)
        tree = NamedRef("treeNode")
        assert backend.accepts(tree, {"value": 1, "children": [{"value": 2, "children": []}]})
        assert not backend.accepts(tree, {"value": 1, "children": [{"value": "x"}]})
