"""
Non-fatal diagnostics for the `validate` command.

Diagnostics flag constructs that generate but deserve attention. Fatal
problems are still raised as GenerationError by the pipeline stages and
reported as error diagnostics by the caller.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from .document.nodes import Document, UnionNode
from .errors import GenerationError


class Severity(str, Enum):
    ERROR = "error"
    WARNING = "warning"


@dataclass(frozen=True)
class Diagnostic:
    severity: Severity
    message: str
    path: str | None = None

    def __str__(self) -> str:
        if self.path:
            return f"{self.severity.value}: {self.message} (at {self.path})"
        return f"{self.severity.value}: {self.message}"

    @staticmethod
    def from_error(error: GenerationError) -> Diagnostic:
        return Diagnostic(Severity.ERROR, error.message, error.path or None)


def validate_document(document: Document) -> list[Diagnostic]:
    """
    Collect warnings for a parsed document.

    Args:
        document: The parsed document

    Returns:
        Diagnostics in document order
    """
    diagnostics = []
    for op in document.operations:
        if not op.operation_id:
            diagnostics.append(
                Diagnostic(
                    Severity.WARNING,
                    f"Missing operationId for {op.method.lower()} {op.path} - will generate from path",
                    op.source_path,
                )
            )

    for name, schema in document.schemas.items():
        if not isinstance(schema, UnionNode):
            continue
        if schema.union_type == "oneOf":
            message = f"Schema '{name}' uses oneOf - will generate as variant type"
        else:
            message = f"Schema '{name}' uses anyOf - support is experimental"
        diagnostics.append(Diagnostic(Severity.WARNING, message, schema.source_path))
    return diagnostics
