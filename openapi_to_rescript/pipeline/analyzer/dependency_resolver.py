"""
Dependency resolver that orders IR declarations.

Every type must be declared no later than the types that reference it
through a hard edge (a required record field, an alias target, or a union
variant other than a self reference). References behind a container or an
optional field are soft: they only need a forward declaration, which the
emitters provide by declaring strongly connected types together.
A cycle of hard edges is legal only when it passes through a union, whose
variant constructor boxes the value.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum

from ..errors import NameCollisionError, SchemaError, UnresolvableCycleError
from .ir_nodes import IR, Alias, Container, IrType, IrTypeRef, NamedRef, Record, TaggedUnion
from .name_resolver import escape_constructor, escape_identifier

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Edge:
    target: str
    hard: bool


@dataclass(frozen=True)
class DeclarationGroup:
    """Types declared together.

    A recursive group needs forward declaration (more than one member, or
    a member that refers to itself).
    """

    names: tuple[str, ...]
    recursive: bool = False


class Color(Enum):
    WHITE = 0  # unvisited
    GRAY = 1  # in progress
    BLACK = 2  # done


def type_edges(ir_type: IrType) -> list[Edge]:
    """Outgoing references of a type, in declaration order."""
    edges: list[Edge] = []
    if isinstance(ir_type, Record):
        for field in ir_type.fields:
            _collect_edges(field.type_ref, not field.optional, edges)
    elif isinstance(ir_type, Alias):
        _collect_edges(ir_type.target, True, edges)
    elif isinstance(ir_type, TaggedUnion):
        for variant in ir_type.variants:
            self_reference = isinstance(variant.type_ref, NamedRef) and variant.type_ref.name == ir_type.name
            _collect_edges(variant.type_ref, not self_reference, edges)
    return edges


def _collect_edges(type_ref: IrTypeRef, hard: bool, edges: list[Edge]) -> None:
    if isinstance(type_ref, NamedRef):
        edges.append(Edge(target=type_ref.name, hard=hard))
    elif isinstance(type_ref, Container):
        _collect_edges(type_ref.element, False, edges)


class DependencyResolver:
    """Orders IR types for emission."""

    def __init__(self, ir: IR):
        self.ir = ir
        self.names = list(ir.types)
        self.edges: dict[str, list[Edge]] = {name: type_edges(t) for name, t in ir.types.items()}

    def resolve(self) -> list[DeclarationGroup]:
        """
        Compute the declaration groups in emission order.

        Returns:
            Groups such that every hard dependency of a type is declared in
            an earlier group or earlier within the same group

        Raises:
            NameCollisionError: If canonical names are not unique and valid
            UnresolvableCycleError: If types form a cycle of hard edges only
        """
        self.check_names()

        groups = []
        for component in self._strongly_connected_components():
            members = self._order_members(component)
            recursive = len(members) > 1 or any(e.target == members[0] for e in self.edges[members[0]])
            groups.append(DeclarationGroup(names=tuple(members), recursive=recursive))

        logger.debug(
            "Ordered %d types into %d groups (%d recursive)",
            len(self.names),
            len(groups),
            sum(1 for g in groups if g.recursive),
        )
        return groups

    def order(self) -> list[str]:
        """Flattened emission order covering every type exactly once."""
        return [name for group in self.resolve() for name in group.names]

    def check_names(self) -> None:
        """Verify canonical names are unique, valid, and referenced names exist."""
        seen: dict[str, str] = {}
        for key, ir_type in self.ir.types.items():
            if ir_type.name != key:
                raise NameCollisionError(f"Type registered as '{key}' is named '{ir_type.name}'", ir_type.source_path)
            if escape_identifier(key) != key:
                raise NameCollisionError(f"'{key}' is not a valid escaped identifier", ir_type.source_path)
            if key in seen:
                raise NameCollisionError(f"Type name '{key}' is used twice", f"{seen[key]}, {ir_type.source_path}")
            seen[key] = ir_type.source_path

            if isinstance(ir_type, Record):
                self._check_unique(
                    [f.name for f in ir_type.fields], escape_identifier, f"field of '{key}'", ir_type.source_path
                )
            elif isinstance(ir_type, TaggedUnion):
                self._check_unique(
                    [v.label for v in ir_type.variants], escape_constructor, f"variant of '{key}'", ir_type.source_path
                )

            for edge in self.edges[key]:
                if edge.target not in self.ir.types:
                    raise SchemaError(f"'{key}' references undeclared type '{edge.target}'", ir_type.source_path)

    def _check_unique(self, names: list[str], escape, what: str, path: str) -> None:
        seen: set[str] = set()
        for name in names:
            if escape(name) != name:
                raise NameCollisionError(f"'{name}' is not a valid {what}", path)
            if name in seen:
                raise NameCollisionError(f"'{name}' is used twice as {what}", path)
            seen.add(name)

    def _strongly_connected_components(self) -> list[list[str]]:
        """Tarjan's algorithm over all edges; components come out dependencies first."""
        index: dict[str, int] = {}
        low: dict[str, int] = {}
        stack: list[str] = []
        on_stack: set[str] = set()
        components: list[list[str]] = []
        counter = 0

        for root in self.names:
            if root in index:
                continue
            work = [(root, 0)]
            while work:
                node, i = work.pop()
                if i == 0:
                    index[node] = low[node] = counter
                    counter += 1
                    stack.append(node)
                    on_stack.add(node)

                successors = self.edges[node]
                descended = False
                while i < len(successors):
                    target = successors[i].target
                    i += 1
                    if target not in index:
                        work.append((node, i))
                        work.append((target, 0))
                        descended = True
                        break
                    if target in on_stack:
                        low[node] = min(low[node], index[target])
                if descended:
                    continue

                if low[node] == index[node]:
                    component = []
                    while True:
                        member = stack.pop()
                        on_stack.discard(member)
                        component.append(member)
                        if member == node:
                            break
                    components.append(component)

                if work:
                    parent = work[-1][0]
                    low[parent] = min(low[parent], low[node])

        return components

    def _order_members(self, component: list[str]) -> list[str]:
        """
        Order the members of one component by their hard edges.

        Hard cycles are searched for among the members that are not unions,
        since a union variant constructor boxes its payload. The members are
        then ordered by a three-color DFS that ignores the remaining back edges.
        """
        if len(component) == 1:
            name = component[0]
            if any(e.target == name and e.hard for e in self.edges[name]):
                raise UnresolvableCycleError([name, name])
            return component

        unboxed = [name for name in component if not isinstance(self.ir.types[name], TaggedUnion)]
        self._hard_dfs(unboxed, fail_on_cycle=True)
        return self._hard_dfs(component, fail_on_cycle=False)

    def _hard_dfs(self, members: list[str], fail_on_cycle: bool) -> list[str]:
        """Three-color DFS over hard edges between members, in declaration order."""
        member_set = set(members)
        position = {name: i for i, name in enumerate(self.names)}
        color = {name: Color.WHITE for name in members}
        ordered: list[str] = []
        path: list[str] = []

        def visit(name: str) -> None:
            color[name] = Color.GRAY
            path.append(name)
            for edge in self.edges[name]:
                if not edge.hard or edge.target not in member_set:
                    continue
                if color[edge.target] == Color.GRAY and fail_on_cycle:
                    raise UnresolvableCycleError(path[path.index(edge.target) :] + [edge.target])
                if color[edge.target] == Color.WHITE:
                    visit(edge.target)
            path.pop()
            color[name] = Color.BLACK
            ordered.append(name)

        for name in sorted(members, key=position.__getitem__):
            if color[name] == Color.WHITE:
                visit(name)
        return ordered


def resolve_dependencies(ir: IR) -> list[DeclarationGroup]:
    """Convenience wrapper around DependencyResolver."""
    return DependencyResolver(ir).resolve()
