"""
Duplicate Resolver
==================

Names are unique only within a structural slot, not globally. A slot is
(type, parent_id[, level]); two nodes collide when they share a slot and
their trimmed names are equal case-insensitively. Level discriminates
only for Subsystems.

A collision is resolved deterministically with an indexed name: the
smallest free "(m)" suffix among the slot's siblings, filling gaps.
"""

from __future__ import annotations
from typing import Iterable, List, Optional, Set
import re

from ..contracts.nodes import Node, NodeType

_INDEXED_NAME = re.compile(r"^(.*?)\((\d+)\)$")


def normalize_name(name: str) -> str:
    return name.strip().casefold()


def same_slot(a: Node, b: Node) -> bool:
    """Same type, same parent (both None or equal), same level for Subsystems."""
    if a.type is not b.type or a.parent_id != b.parent_id:
        return False
    if a.type is NodeType.SUBSYSTEM:
        return a.level == b.level
    return True


def slot_siblings(
    nodes: Iterable[Node],
    candidate: Node,
    ignore_id: Optional[str] = None
) -> List[Node]:
    """Nodes occupying the candidate's slot, regardless of name."""
    return [
        node for node in nodes
        if node.id != ignore_id and same_slot(node, candidate)
    ]


def find_collision(
    nodes: Iterable[Node],
    candidate: Node,
    ignore_id: Optional[str] = None
) -> Optional[Node]:
    """First node colliding with the candidate, or None."""
    wanted = normalize_name(candidate.name)
    for node in slot_siblings(nodes, candidate, ignore_id):
        if normalize_name(node.name) == wanted:
            return node
    return None


def split_indexed_name(name: str):
    """Return (root, index) for "root(n)", or (name, None)."""
    stripped = name.strip()
    match = _INDEXED_NAME.match(stripped)
    if match and match.group(1):
        return match.group(1), int(match.group(2))
    return stripped, None


def next_indexed_name(base_name: str, sibling_names: Iterable[str]) -> str:
    """
    Smallest free indexed variant of base_name among siblings.

        next_indexed_name("Router", ["Router", "Router(1)", "Router(3)"]) -> "Router(2)"
        next_indexed_name("Pump", []) -> "Pump(1)"
    """
    root, _ = split_indexed_name(base_name)
    wanted = root.casefold()
    used: Set[int] = set()

    for sibling in sibling_names:
        sibling_root, index = split_indexed_name(sibling)
        if sibling_root.casefold() != wanted:
            continue
        used.add(0 if index is None else index)

    candidate = 1
    while candidate in used:
        candidate += 1
    return f"{root}({candidate})"
