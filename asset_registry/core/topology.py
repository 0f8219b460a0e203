"""
Hierarchy Topology
==================

Structural analysis of the flat node collection as a directed graph
(edge parent -> child for every parent_id that resolves).

CORRUPTION TOLERANCE:
=====================
Stored or imported data may contain parent cycles or dangling parents.
Every traversal here works on a fixed snapshot of the collection and
keeps a visited set, so a corrupted dataset terminates instead of
recursing forever.

ALLOWED:
- Descendant closure (cascade delete, reparent guard)
- Ancestor chains (pivot export)
- Cycle detection (structure audit)

FORBIDDEN:
- Mutating the collection
"""

from __future__ import annotations
from typing import Dict, FrozenSet, Iterable, List, Optional, Tuple
import networkx as nx

from ..contracts.nodes import Node


class HierarchyTopology:
    """
    Directed parent->child graph over a snapshot of the collection.

    Wraps NetworkX; built once per query, never updated in place.
    """

    def __init__(self, nodes: Iterable[Node]):
        self._nodes: Dict[str, Node] = {}
        self._graph = nx.DiGraph()

        for node in nodes:
            self._nodes[node.id] = node
            self._graph.add_node(node.id)

        for node in self._nodes.values():
            if node.parent_id is not None and node.parent_id in self._nodes:
                self._graph.add_edge(node.parent_id, node.id)

    def __contains__(self, node_id: str) -> bool:
        return node_id in self._nodes

    def get(self, node_id: Optional[str]) -> Optional[Node]:
        if node_id is None:
            return None
        return self._nodes.get(node_id)

    def descendant_ids(self, node_id: str) -> FrozenSet[str]:
        """
        The node itself plus the transitive closure of its children.

        An id that is not in the collection yields just {node_id}.
        """
        if node_id not in self._graph:
            return frozenset({node_id})
        return frozenset(nx.descendants(self._graph, node_id) | {node_id})

    def children_ids(self, node_id: str) -> Tuple[str, ...]:
        if node_id not in self._graph:
            return ()
        return tuple(child for child in self._graph.successors(node_id) if child != node_id)

    def has_children(self, node_id: str) -> bool:
        return len(self.children_ids(node_id)) > 0

    def ancestor_chain(self, node_id: str) -> List[Node]:
        """
        Ancestors of a node, nearest first.

        Stops at a root, at a dangling parent, or when a stored cycle
        leads back to an already visited node.
        """
        chain: List[Node] = []
        visited = {node_id}
        current = self._nodes.get(node_id)

        while current is not None and current.parent_id is not None:
            if current.parent_id in visited:
                break
            parent = self._nodes.get(current.parent_id)
            if parent is None:
                break
            visited.add(parent.id)
            chain.append(parent)
            current = parent

        return chain

    def find_cycles(self) -> List[Tuple[str, ...]]:
        """
        Parent cycles present in the stored data, each as sorted ids.

        Every node has at most one parent, so cycles are disjoint.
        """
        cycles = [tuple(sorted(cycle)) for cycle in nx.simple_cycles(self._graph)]
        return sorted(cycles)

    def root_ids(self) -> Tuple[str, ...]:
        """Nodes without a resolvable parent (dangling parents included)."""
        return tuple(
            node_id for node_id in self._graph.nodes
            if self._graph.in_degree(node_id) == 0
        )


def descendant_ids(node_id: str, nodes: Iterable[Node]) -> FrozenSet[str]:
    """Convenience wrapper: descendant closure over a one-off snapshot."""
    return HierarchyTopology(nodes).descendant_ids(node_id)
