"""
Error taxonomy for the generation pipeline.

Every stage raises a subclass of GenerationError carrying enough structural
context (schema path, type name or reference chain) to locate the offending
fragment of the input document.
"""

from __future__ import annotations


class GenerationError(Exception):
    """Base class for all pipeline failures.

    Attributes:
        message: Human readable description
        path: Location of the problem (JSON pointer, type name, or chain)
    """

    def __init__(self, message: str, path: str = ""):
        self.message = message
        self.path = path
        super().__init__(self._format())

    def _format(self) -> str:
        if self.path:
            return f"{self.message} (at {self.path})"
        return self.message


class ParseError(GenerationError):
    """Raised when the input is not well-formed JSON or YAML."""


class SchemaError(GenerationError):
    """Raised when the document does not have the minimal OpenAPI 3.x shape."""


class AmbiguousSchemaError(SchemaError):
    """Raised when a schema carries contradictory kind markers."""


class UnresolvedReferenceError(GenerationError):
    """Raised when a $ref points at a component that does not exist."""

    def __init__(self, ref: str, path: str = ""):
        self.ref = ref
        super().__init__(f"Unresolved reference '{ref}'", path)


class CircularReferenceError(GenerationError):
    """Raised when resolving a reference would expand forever."""

    def __init__(self, chain: list[str]):
        self.chain = list(chain)
        super().__init__("Circular reference", " -> ".join(self.chain))


class NameCollisionError(GenerationError):
    """Raised when two distinct entities end up with the same identifier."""


class UnresolvableCycleError(GenerationError):
    """Raised when types depend on each other through hard edges only."""

    def __init__(self, members: list[str]):
        self.members = list(members)
        super().__init__(
            "Types form a dependency cycle without an optional or container edge",
            " -> ".join(self.members),
        )


class EmitterError(GenerationError):
    """Raised when an emitter cannot render its artifact."""


class OutputError(GenerationError):
    """Raised when a generated artifact cannot be written."""
