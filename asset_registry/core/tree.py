"""
Tree Builder
============

Converts the flat node collection into a sorted, nested tree for display
and export.

RULES:
======
- A node attaches under its parent when the parent exists in the
  collection; otherwise it becomes a root (dangling-parent tolerance).
- Sort order at every level: System, Subsystem, Component; then name
  case-insensitively; then exact name and id so the order is total.
- Output depends only on the set of nodes, never on input order.
- The input collection is never mutated.

Nodes caught in a stored parent cycle are unreachable from any root. Each
such cycle is broken at its smallest-sorting member, which is rendered as
a root, so every distinct id appears exactly once.

Ids are expected to be unique. When a collection repeats an id, the last
record carrying it is the one placed and earlier ones are dropped from
the tree; query.audit_structure reports the repeat as DUPLICATE_ID.
"""

from __future__ import annotations
from typing import Dict, Iterable, List, Set, Tuple

from ..contracts.nodes import Node, TreeNode


def tree_sort_key(node: Node) -> Tuple[int, str, str, str]:
    return (node.type.rank, node.name.casefold(), node.name, node.id)


def build_tree(nodes: Iterable[Node]) -> Tuple[TreeNode, ...]:
    """Build the sorted forest of TreeNodes for a collection."""
    index: Dict[str, Node] = {node.id: node for node in nodes}
    children: Dict[str, List[str]] = {}
    root_ids: List[str] = []

    for node in index.values():
        parent_id = node.parent_id
        if parent_id is not None and parent_id in index and parent_id != node.id:
            children.setdefault(parent_id, []).append(node.id)
        elif parent_id is None or parent_id not in index:
            root_ids.append(node.id)
        # a self-parented node is neither; it is picked up as a cycle below

    visited: Set[str] = set()
    roots: List[TreeNode] = []

    for root_id in root_ids:
        roots.append(_build_subtree(root_id, index, children, visited))

    remaining = [node for node in index.values() if node.id not in visited]
    while remaining:
        start = min(remaining, key=tree_sort_key)
        cycle = _cycle_members(start.id, index)
        breaker = min((index[node_id] for node_id in cycle), key=tree_sort_key)
        roots.append(_build_subtree(breaker.id, index, children, visited))
        remaining = [node for node in remaining if node.id not in visited]

    return tuple(sorted(roots, key=lambda t: tree_sort_key(t.node)))


def _cycle_members(start_id: str, index: Dict[str, Node]) -> List[str]:
    """
    Follow parents from an unreachable node until an id repeats.

    Unreachable nodes always have a resolvable parent, so the walk ends
    inside the cycle that cuts them off from every root.
    """
    seen: List[str] = []
    seen_set: Set[str] = set()
    current = start_id
    while current not in seen_set:
        seen.append(current)
        seen_set.add(current)
        current = index[current].parent_id
    return seen[seen.index(current):]


def _build_subtree(
    root_id: str,
    index: Dict[str, Node],
    children: Dict[str, List[str]],
    visited: Set[str]
) -> TreeNode:
    """Iterative construction: collect pre-order, then assemble bottom-up."""
    visited.add(root_id)
    pre_order: List[str] = []
    included: Dict[str, List[str]] = {}
    stack = [root_id]

    while stack:
        node_id = stack.pop()
        pre_order.append(node_id)
        included[node_id] = []
        for child_id in children.get(node_id, ()):
            if child_id in visited:
                continue
            visited.add(child_id)
            included[node_id].append(child_id)
            stack.append(child_id)

    built: Dict[str, TreeNode] = {}
    for node_id in reversed(pre_order):
        kids = sorted(
            (built[child_id] for child_id in included[node_id]),
            key=lambda t: tree_sort_key(t.node)
        )
        built[node_id] = TreeNode(node=index[node_id], children=tuple(kids))

    return built[root_id]


def flatten_tree(roots: Iterable[TreeNode]) -> List[Node]:
    """Nodes of a forest in display (pre-order) order."""
    flat: List[Node] = []
    for root in roots:
        flat.extend(tree_node.node for tree_node in root.walk())
    return flat
