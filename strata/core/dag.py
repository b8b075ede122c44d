"""
Dependency graph builder and analyzer for deferred values.
"""

import threading
from typing import Dict, List, Set, Optional, Any, Iterable, TYPE_CHECKING
from dataclasses import dataclass, field
from collections import deque

from strata.core.errors import CyclicDependencyError

if TYPE_CHECKING:
    from strata.core.deferred import DeferredValue


@dataclass(eq=False)
class DAGNode:
    """Represents a deferred value in the dependency graph."""

    value: "DeferredValue"
    dependencies: List["DeferredValue"] = field(default_factory=list)
    dependents: List["DeferredValue"] = field(default_factory=list)
    metadata: Dict[str, Any] = field(default_factory=dict)

    @property
    def name(self) -> str:
        return self.value.name


class DependencyGraph:
    """
    Directed acyclic graph of deferred values.

    Edges point from a consumer to the values it depends on. Every value
    created in an orchestration run is a node here, so the graph doubles as
    the registry of the run.

    Provides:
    1. Cycle-checked edge insertion
    2. Topological sorting
    3. Reachability from a set of roots
    4. Execution levels for parallel resolution
    """

    def __init__(self):
        self.nodes: Dict["DeferredValue", DAGNode] = {}
        self._lock = threading.RLock()

    def __contains__(self, value: "DeferredValue") -> bool:
        return value in self.nodes

    def __len__(self) -> int:
        return len(self.nodes)

    def add_node(
        self,
        value: "DeferredValue",
        dependencies: Iterable["DeferredValue"] = (),
        metadata: Optional[Dict[str, Any]] = None,
    ) -> None:
        """
        Add a value and its dependency edges.

        Raises:
            CyclicDependencyError: If an edge would close a cycle. The graph
                is left unchanged.
        """
        with self._lock:
            if value in self.nodes:
                raise ValueError(f"'{value.name}' is already in the graph")
            self._check_edges(value, dependencies)

            self.nodes[value] = DAGNode(value=value, metadata=metadata or {})
            self._link(value, dependencies)

    def add_edges(self, consumer: "DeferredValue", dependencies: Iterable["DeferredValue"]) -> None:
        """
        Add edges from an existing consumer to its new dependencies.

        Either every edge is added or none is.

        Raises:
            CyclicDependencyError: If any edge would close a cycle
        """
        dependencies = list(dependencies)
        with self._lock:
            if consumer not in self.nodes:
                raise ValueError(f"'{consumer.name}' is not in the graph")
            self._check_edges(consumer, dependencies)
            self._link(consumer, dependencies)

    def _check_edges(self, consumer: "DeferredValue", dependencies: Iterable["DeferredValue"]) -> None:
        for dep in dependencies:
            if dep not in self.nodes:
                raise ValueError(
                    f"Dependency '{dep.name}' of '{consumer.name}' belongs to another graph"
                )
            if dep is consumer:
                raise CyclicDependencyError([consumer.name, consumer.name])
            path = self._path(dep, consumer)
            if path is not None:
                raise CyclicDependencyError(
                    [consumer.name] + [v.name for v in path]
                )

    def _path(self, start: "DeferredValue", target: "DeferredValue") -> Optional[List["DeferredValue"]]:
        """Find a dependency path from start to target, following dependency edges."""
        if target not in self.nodes:
            return None

        parents: Dict["DeferredValue", Optional["DeferredValue"]] = {start: None}
        queue = deque([start])
        while queue:
            node = queue.popleft()
            if node is target:
                path = []
                while node is not None:
                    path.append(node)
                    node = parents[node]
                return list(reversed(path))
            for dep in self.nodes[node].dependencies:
                if dep not in parents:
                    parents[dep] = node
                    queue.append(dep)
        return None

    def _link(self, consumer: "DeferredValue", dependencies: Iterable["DeferredValue"]) -> None:
        node = self.nodes[consumer]
        for dep in dependencies:
            if dep in node.dependencies:
                continue
            node.dependencies.append(dep)
            self.nodes[dep].dependents.append(consumer)

    def get_dependencies(self, value: "DeferredValue") -> List["DeferredValue"]:
        """Get all values this value depends on, in declaration order."""
        with self._lock:
            node = self.nodes.get(value)
            return list(node.dependencies) if node else []

    def get_dependents(self, value: "DeferredValue") -> List["DeferredValue"]:
        """Get all values that depend on this value."""
        with self._lock:
            node = self.nodes.get(value)
            return list(node.dependents) if node else []

    def ancestors(self, value: "DeferredValue") -> Set["DeferredValue"]:
        """Get every value this value depends on, transitively."""
        return self.reachable(self.get_dependencies(value))

    def reachable(self, roots: Iterable["DeferredValue"]) -> Set["DeferredValue"]:
        """Get the roots plus everything they transitively depend on."""
        with self._lock:
            seen: Set["DeferredValue"] = set()
            stack = list(roots)
            while stack:
                value = stack.pop()
                if value in seen:
                    continue
                seen.add(value)
                stack.extend(self.nodes[value].dependencies)
            return seen

    def resource_handles(self) -> List["DeferredValue"]:
        """Get the side-effecting values registered in this graph, in creation order."""
        with self._lock:
            return [v for v in self.nodes if v.has_side_effect]

    def topological_sort(self, nodes: Optional[Iterable["DeferredValue"]] = None) -> List["DeferredValue"]:
        """
        Return a topological ordering, dependencies first.

        Args:
            nodes: Restrict the ordering to this subgraph (default: whole graph)

        Raises:
            CyclicDependencyError: If the graph contains cycles
        """
        with self._lock:
            if nodes is None:
                subset = list(self.nodes)
            else:
                wanted = set(nodes)
                subset = [v for v in self.nodes if v in wanted]
            members = set(subset)

            # Calculate in-degrees within the subgraph
            in_degree = {
                v: sum(1 for dep in self.nodes[v].dependencies if dep in members)
                for v in subset
            }

            queue = deque([v for v in subset if in_degree[v] == 0])
            result = []

            while queue:
                value = queue.popleft()
                result.append(value)

                for dependent in self.nodes[value].dependents:
                    if dependent not in members:
                        continue
                    in_degree[dependent] -= 1
                    if in_degree[dependent] == 0:
                        queue.append(dependent)

            if len(result) != len(subset):
                cycle = self.detect_cycles() or []
                raise CyclicDependencyError([v.name for v in cycle])

            return result

    def detect_cycles(self) -> Optional[List["DeferredValue"]]:
        """
        Detect if there are any cycles in the graph.

        Returns:
            A cycle path if one exists, None otherwise
        """
        with self._lock:
            visited = set()
            rec_stack = set()
            path = []

            def dfs(value) -> Optional[List["DeferredValue"]]:
                visited.add(value)
                rec_stack.add(value)
                path.append(value)

                for dep in self.nodes[value].dependencies:
                    if dep not in visited:
                        cycle = dfs(dep)
                        if cycle:
                            return cycle
                    elif dep in rec_stack:
                        cycle_start = path.index(dep)
                        return path[cycle_start:] + [dep]

                path.pop()
                rec_stack.remove(value)
                return None

            for value in self.nodes:
                if value not in visited:
                    cycle = dfs(value)
                    if cycle:
                        return cycle

            return None

    def get_execution_levels(self, nodes: Optional[Iterable["DeferredValue"]] = None) -> List[List["DeferredValue"]]:
        """
        Get execution levels for parallel resolution.

        Returns a list of lists, where each inner list contains values whose
        dependencies all sit in earlier levels.
        """
        with self._lock:
            sorted_values = self.topological_sort(nodes)
            level_of: Dict["DeferredValue", int] = {}
            levels: List[List["DeferredValue"]] = []

            for value in sorted_values:
                level_idx = 0
                for dep in self.nodes[value].dependencies:
                    if dep in level_of:
                        level_idx = max(level_idx, level_of[dep] + 1)

                while len(levels) <= level_idx:
                    levels.append([])

                levels[level_idx].append(value)
                level_of[value] = level_idx

            return levels

    def to_dict(self) -> Dict[str, Any]:
        """Convert the graph to a dictionary keyed by value names."""
        with self._lock:
            return {
                "nodes": [
                    {
                        "name": node.name,
                        "state": node.value.state.value,
                        "secret": node.value.is_secret,
                        "dependencies": [dep.name for dep in node.dependencies],
                        "dependents": [dep.name for dep in node.dependents],
                        "metadata": node.metadata,
                    }
                    for node in self.nodes.values()
                ],
                "edges": [
                    {"from": node.name, "to": dep.name}
                    for node in self.nodes.values()
                    for dep in node.dependencies
                ],
            }

    def __repr__(self) -> str:
        edges = sum(len(node.dependencies) for node in self.nodes.values())
        return f"DependencyGraph(nodes={len(self.nodes)}, edges={edges})"
