"""
Reference resolver for $ref resolution.

Links every reference node in the document to its component schema and
detects references that cannot be expanded in finite steps.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator

from ..document.nodes import (
    AllOfNode,
    ArrayNode,
    Document,
    ObjectNode,
    RefNode,
    SchemaNode,
    UnionNode,
)
from ..errors import CircularReferenceError, UnresolvedReferenceError

logger = logging.getLogger(__name__)

COMPONENT_SCHEMA_PREFIX = "#/components/schemas/"


def child_nodes(node: SchemaNode) -> Iterator[SchemaNode]:
    """Yield the direct child schemas of a node."""
    if isinstance(node, ObjectNode):
        yield from node.properties.values()
        if isinstance(node.additional_properties, SchemaNode):
            yield node.additional_properties
    elif isinstance(node, ArrayNode):
        if node.items is not None:
            yield node.items
    elif isinstance(node, UnionNode):
        yield from node.variants
        yield from node.own_properties.values()
    elif isinstance(node, AllOfNode):
        yield from node.branches


class ReferenceResolver:
    """Resolves $ref nodes against the component registry."""

    def __init__(self, document: Document):
        """
        Initialize the resolver.

        Args:
            document: The parsed document
        """
        self.document = document

    def resolve(self) -> Document:
        """
        Link every reference in the document.

        Returns:
            The same document, with RefNode.target set everywhere

        Raises:
            UnresolvedReferenceError: If a reference has no target
            CircularReferenceError: If a component expands into itself
        """
        visited: set[int] = set()
        for node in self._roots():
            self._link(node, visited)

        self._check_expansion_cycles()
        logger.debug("Resolved references for %d component schemas", len(self.document.schemas))
        return self.document

    def _roots(self) -> Iterator[SchemaNode]:
        yield from self.document.schemas.values()
        for op in self.document.operations:
            for param in op.parameters:
                if param.schema is not None:
                    yield param.schema
            if op.request_body and op.request_body.schema is not None:
                yield op.request_body.schema
            for response in op.responses:
                if response.schema is not None:
                    yield response.schema

    def _link(self, root: SchemaNode, visited: set[int]) -> None:
        stack = [root]
        while stack:
            node = stack.pop()
            if id(node) in visited:
                continue
            visited.add(id(node))
            if isinstance(node, RefNode):
                self._resolve_ref(node)
            stack.extend(child_nodes(node))

    def _resolve_ref(self, ref_node: RefNode) -> None:
        ref_path = ref_node.ref_path
        if not ref_path.startswith(COMPONENT_SCHEMA_PREFIX):
            # External documents and other sections are not supported
            raise UnresolvedReferenceError(ref_path, ref_node.source_path)

        name = ref_path[len(COMPONENT_SCHEMA_PREFIX) :].replace("~1", "/").replace("~0", "~")
        target = self.document.schemas.get(name)
        if target is None:
            raise UnresolvedReferenceError(ref_path, ref_node.source_path)

        ref_node.target_name = name
        ref_node.target = target

    def _expansion_targets(self, node: SchemaNode) -> Iterator[str]:
        """Components that must be expanded to know the shape of a node."""
        if isinstance(node, RefNode):
            yield node.target_name
        elif isinstance(node, AllOfNode):
            for branch in node.branches:
                yield from self._expansion_targets(branch)

    def _check_expansion_cycles(self) -> None:
        done: set[str] = set()

        def visit(name: str, chain: list[str]) -> None:
            if name in chain:
                raise CircularReferenceError(chain[chain.index(name) :] + [name])
            if name in done:
                return
            chain.append(name)
            for target in self._expansion_targets(self.document.schemas[name]):
                visit(target, chain)
            chain.pop()
            done.add(name)

        for name in self.document.schemas:
            visit(name, [])

    def get_definition(self, name: str) -> SchemaNode | None:
        """Get a component schema by name."""
        return self.document.schemas.get(name)
