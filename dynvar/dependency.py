# Copyright 2025 Ralph Lemke
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""Dependency ordering of dynamic variable definitions.

Builds a graph over all definitions known at build time and orders them
so that producers come before consumers. The order only speeds up the
first refresh pass; the refresh loop converges in any order.
"""

import logging
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, field

from .runtime.definition import DynamicVariable
from .runtime.errors import DependencyCycleError

logger = logging.getLogger(__name__)


@dataclass
class DependencyGraph:
    """Dependency graph over dynamic variable definitions.

    Vertices are definitions (not names, since a name may have several).
    An edge ``a -> b`` means the expression of ``a`` references the name
    of ``b``.
    """

    # Vertices in registration order
    vertices: list[DynamicVariable] = field(default_factory=list)

    # Map of vertex index -> indexes of the definitions it references
    edges: dict[int, list[int]] = field(default_factory=dict)

    # Cycles found by the last ordering, as lists of vertex indexes
    cycles: list[list[int]] = field(default_factory=list)

    @classmethod
    def from_definitions(
        cls, definitions: Mapping[str, Sequence[DynamicVariable]]
    ) -> "DependencyGraph":
        """Build the graph from definitions grouped by name.

        Args:
            definitions: Map of variable name -> definitions for that name

        Returns:
            DependencyGraph over every definition
        """
        graph = cls()
        index_by_name: dict[str, list[int]] = {}

        # First pass: collect all vertices
        for name, group in definitions.items():
            for definition in group:
                index = len(graph.vertices)
                graph.vertices.append(definition)
                graph.edges[index] = []
                index_by_name.setdefault(name, []).append(index)

        # Second pass: fan out to every definition of each referenced name
        for index, definition in enumerate(graph.vertices):
            for child_name in sorted(definition.unresolved_variable_names):
                for child in index_by_name.get(child_name, []):
                    if child != index:
                        graph.edges[index].append(child)

        return graph

    def dependencies_of(self, definition: DynamicVariable) -> list[DynamicVariable]:
        """Return the definitions *definition* references."""
        for index, vertex in enumerate(self.vertices):
            if vertex is definition:
                return [self.vertices[child] for child in self.edges[index]]
        return []

    def ordered(self, cycle_policy: str = "fallback") -> list[DynamicVariable]:
        """Return all definitions with producers before consumers.

        Args:
            cycle_policy: ``fallback`` emits every definition in best-effort
                order when the graph has cycles; ``fail`` raises

        Returns:
            Every definition exactly once

        Raises:
            DependencyCycleError: If the graph has a cycle and the policy
                is ``fail``
        """
        self.cycles = []
        visited: set[int] = set()
        stack: list[int] = []
        on_stack: set[int] = set()
        order: list[int] = []

        def visit(index: int) -> None:
            if index in on_stack:
                # back edge: leave the cycle for the caller to report
                self.cycles.append(stack[stack.index(index) :] + [index])
                return
            if index in visited:
                return
            stack.append(index)
            on_stack.add(index)
            for child in self.edges.get(index, []):
                visit(child)
            stack.pop()
            on_stack.discard(index)
            visited.add(index)
            order.append(index)

        for index in range(len(self.vertices)):
            visit(index)

        for cycle in self.cycles:
            names = [self.vertices[i].name for i in cycle]
            if cycle_policy == "fail":
                raise DependencyCycleError(names)
            logger.warning(
                "Cyclic dependency between dynamic variables: %s", " -> ".join(names)
            )

        return [self.vertices[i] for i in order]


def group_by_name(definitions: Iterable[DynamicVariable]) -> dict[str, list[DynamicVariable]]:
    """Group definitions by variable name, keeping registration order."""
    grouped: dict[str, list[DynamicVariable]] = {}
    for definition in definitions:
        grouped.setdefault(definition.name, []).append(definition)
    return grouped


def order_definitions_for_serialization(
    definitions: Mapping[str, Sequence[DynamicVariable]] | Iterable[DynamicVariable],
    cycle_policy: str = "fallback",
) -> list[DynamicVariable]:
    """Order dynamic variable definitions for serialization.

    Args:
        definitions: Definitions grouped by name, or a flat iterable
        cycle_policy: ``fallback`` or ``fail`` (see :meth:`DependencyGraph.ordered`)

    Returns:
        Every definition, producers first
    """
    if not isinstance(definitions, Mapping):
        definitions = group_by_name(definitions)
    return DependencyGraph.from_definitions(definitions).ordered(cycle_policy)
