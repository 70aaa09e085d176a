"""
Base class for code generation backends.

Each backend renders one ReScript module from the ordered IR through a
Jinja2 template.
"""

from __future__ import annotations

import json
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any

import jinja2

from ..analyzer.dependency_resolver import DeclarationGroup
from ..analyzer.ir_nodes import IR, Container, ContainerKind, IrTypeRef, NamedRef, Primitive, PrimitiveKind
from ..config import CodeGeneratorConfig
from ..errors import EmitterError


class CodeBackend(ABC):
    """Abstract base class for code generation backends."""

    # Type mapping from primitive kinds to ReScript types
    TYPE_MAP: dict[PrimitiveKind, str] = {
        PrimitiveKind.STRING: "string",
        PrimitiveKind.NUMBER: "float",
        PrimitiveKind.INTEGER: "int",
        PrimitiveKind.BOOLEAN: "bool",
        PrimitiveKind.BINARY: "string",
        PrimitiveKind.JSON: "JSON.t",
    }

    CONTAINER_MAP: dict[ContainerKind, str] = {
        ContainerKind.LIST: "array",
        ContainerKind.NULLABLE: "option",
        ContainerKind.DICT: "dict",
    }

    # Template directory name
    TEMPLATE_LANG: str = "rescript"

    # File extension
    FILE_EXTENSION: str = "res"

    # Template rendered by generate()
    TEMPLATE_NAME: str = ""

    def __init__(self, config: CodeGeneratorConfig):
        """
        Initialize the backend.

        Args:
            config: Code generation configuration
        """
        self.config = config
        self._setup_templates()

    def _setup_templates(self) -> None:
        """Set up Jinja2 templates."""
        template_dir = Path(__file__).parent.parent.parent / "templates" / self.TEMPLATE_LANG
        self.jinja_env = jinja2.Environment(
            loader=jinja2.FileSystemLoader(str(template_dir)),
            lstrip_blocks=True,
            trim_blocks=True,
            keep_trailing_newline=True,
            undefined=jinja2.StrictUndefined,
        )
        self.jinja_env.filters["doc_comment"] = doc_comment
        self.jinja_env.filters["line_comment"] = line_comment
        self.jinja_env.filters["string_literal"] = string_literal

        self.prefix_template = self.jinja_env.get_template(f"prefix.{self.FILE_EXTENSION}.jinja2")
        self.module_template = self.jinja_env.get_template(f"{self.TEMPLATE_NAME}.{self.FILE_EXTENSION}.jinja2")

    @property
    @abstractmethod
    def module_name(self) -> str:
        """Name of the generated module (also its file stem)."""

    @property
    def file_name(self) -> str:
        return f"{self.module_name}.{self.FILE_EXTENSION}"

    def generate(self, ir: IR, groups: list[DeclarationGroup], generation_comment: str | None = None) -> str:
        """
        Generate code from IR.

        Args:
            ir: The intermediate representation
            groups: Declaration groups in emission order
            generation_comment: Comment placed at the top of the module

        Returns:
            Generated code as a string

        Raises:
            EmitterError: If the module cannot be rendered
        """
        try:
            context = self.build_context(ir, groups)
            prefix = self.prefix_template.render(
                generation_comment=generation_comment if self.config.add_generation_comment else None,
                title=ir.title,
                version=ir.version,
                module_name=self.module_name,
            )
            body = self.module_template.render(**context)
        except jinja2.TemplateError as e:
            raise EmitterError(f"Template rendering failed: {e}", self.file_name) from e
        return prefix + body

    @abstractmethod
    def build_context(self, ir: IR, groups: list[DeclarationGroup]) -> dict[str, Any]:
        """
        Prepare the template context for the module.

        Args:
            ir: The intermediate representation
            groups: Declaration groups in emission order

        Returns:
            Dictionary of template variables
        """

    def translate_type(self, type_ref: IrTypeRef, qualifier: str = "") -> str:
        """
        Translate an IR type reference to a ReScript type expression.

        Args:
            type_ref: The type reference
            qualifier: Module prefix for named types (e.g. "ApiTypes.")

        Returns:
            ReScript type string
        """
        if isinstance(type_ref, NamedRef):
            return f"{qualifier}{type_ref.name}"
        if isinstance(type_ref, Container):
            return f"{self.CONTAINER_MAP[type_ref.kind]}<{self.translate_type(type_ref.element, qualifier)}>"
        if isinstance(type_ref, Primitive):
            return self.TYPE_MAP[type_ref.kind]
        raise EmitterError(f"Unknown type reference {type_ref!r}", self.file_name)

    def format_value(self, value: Any) -> str:
        """Render a document value (default, example) for a comment."""
        return json.dumps(value, ensure_ascii=False, sort_keys=True)


def doc_comment(text: str | None, indent: str = "") -> str:
    """Render a ReScript doc comment, or nothing for empty text."""
    if not text or not text.strip():
        return ""
    lines = [line.rstrip() for line in text.strip().replace("*/", "* /").splitlines()]
    if len(lines) == 1:
        return f"{indent}/** {lines[0]} */\n"
    body = "\n".join(f"{indent}{line}".rstrip() for line in lines)
    return f"{indent}/**\n{body}\n{indent}*/\n"


def string_literal(text: str) -> str:
    """Quote text as a ReScript string literal."""
    escaped = text.replace("\\", "\\\\").replace('"', '\\"').replace("\n", "\\n").replace("\r", "\\r").replace("\t", "\\t")
    return f'"{escaped}"'


def line_comment(text: str | None, indent: str = "") -> str:
    """Render text as `//` comment lines, or nothing for empty text."""
    if not text or not text.strip():
        return ""
    return "".join(f"{indent}// {line}".rstrip() + "\n" for line in text.strip().splitlines())
