"""
Query & Analysis Interfaces

RESPONSIBILITY: Read-only views over the node collection
ALLOWED INPUTS: Node collections with explicit parameters
OUTPUTS: Filtered nodes, parent option lists, structural issues

WHAT THIS LAYER MUST NOT DO:
============================
- Mutate the collection
- Reject or repair malformed data (issues are reported, never fixed)
"""

from __future__ import annotations
from collections import Counter
from typing import Iterable, List, Optional, Tuple, Union

from ..contracts.nodes import Node, NodeType
from ..contracts.events import StructuralIssue
from ..core.rules import eligible_parents, validate_parent
from ..core.topology import HierarchyTopology


def filter_nodes(nodes: Iterable[Node], query: Optional[str]) -> List[Node]:
    """Case-insensitive substring search over name, type and id."""
    current = list(nodes)
    needle = (query or "").strip().casefold()
    if not needle:
        return current
    return [
        node for node in current
        if any(needle in field.casefold() for field in (node.name, node.type.value, node.id))
    ]


def parent_options(
    nodes: Iterable[Node],
    child_type: Union[NodeType, str],
    level: Optional[int] = None,
    editing_id: Optional[str] = None
) -> Tuple[Node, ...]:
    """
    Admissible parents for a form.

    When editing, the edited node and all of its descendants are excluded.
    """
    current = tuple(nodes)
    blocked = ()
    if editing_id:
        blocked = HierarchyTopology(current).descendant_ids(editing_id)
    return eligible_parents(current, child_type, level, blocked)


def audit_structure(nodes: Iterable[Node]) -> List[StructuralIssue]:
    """
    Report every structural rule violation in a collection.

    Covers duplicate ids, extra Systems, Systems with a parent, dangling
    parents, parent rule violations and parent cycles.
    """
    current = tuple(nodes)
    topology = HierarchyTopology(current)
    issues: List[StructuralIssue] = []

    id_counts = Counter(node.id for node in current)
    for node_id, count in id_counts.items():
        if count > 1:
            issues.append(StructuralIssue(node_id, "DUPLICATE_ID", f"Id appears {count} times"))

    systems = [node for node in current if node.is_system]
    if len(systems) > 1:
        for node in systems:
            issues.append(StructuralIssue(
                node.id, "SYSTEM_ALREADY_EXISTS", f"{len(systems)} Systems present"
            ))

    for node in current:
        if node.is_system:
            if node.parent_id is not None:
                issues.append(StructuralIssue(
                    node.id, "WRONG_PARENT_TYPE", "A System must not have a parent"
                ))
            continue
        if node.parent_id is not None and node.parent_id not in topology:
            issues.append(StructuralIssue(
                node.id, "DANGLING_PARENT", f"Parent {node.parent_id} does not exist"
            ))
            continue
        rule = validate_parent(node.type, node.level, topology.get(node.parent_id))
        if rule.is_failure:
            issues.append(StructuralIssue(node.id, rule.error.code.name, rule.error.message))

    for cycle in topology.find_cycles():
        for node_id in cycle:
            issues.append(StructuralIssue(
                node_id, "CYCLIC_PARENT", f"Parent cycle: {' -> '.join(cycle)}"
            ))

    return sorted(issues, key=lambda issue: (issue.node_id, issue.code))
