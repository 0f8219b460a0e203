"""
Parent Rule Validator
=====================

Single source of truth for structural admissibility: which node may be
whose parent.

    System                  -> no parent check (singleton enforced by callers)
    Subsystem L1            -> parent must be a System
    Subsystem Ln (n > 1)    -> parent must be a Subsystem at level n-1
    Component               -> parent must be a Subsystem (any level)

Pure functions only. No side effects, no I/O.
"""

from __future__ import annotations
from typing import Iterable, Optional, Tuple, Union

from ..contracts.base import Error, ErrorCode, Result
from ..contracts.nodes import Node, NodeType, is_valid_level


def validate_parent(
    child_type: Union[NodeType, str],
    level: Optional[int],
    parent: Optional[Node]
) -> Result:
    """
    Decide whether `parent` may hold a child of the given type and level.

    Returns Result.success(None) or a failure naming the violated rule.
    """
    node_type = NodeType.parse(child_type)
    if node_type is None:
        return Result.failure(Error.create(
            ErrorCode.UNKNOWN_TYPE,
            f"Unknown type: {child_type!r}"
        ))

    if node_type is NodeType.SYSTEM:
        return Result.success()

    if node_type is NodeType.SUBSYSTEM:
        if not is_valid_level(level):
            return Result.failure(Error.create(
                ErrorCode.INVALID_LEVEL,
                "Subsystem level must be a number >= 1",
                level=level
            ))
        if parent is None:
            return Result.failure(Error.create(
                ErrorCode.MISSING_PARENT,
                "Subsystem requires a parent"
            ))
        if level == 1:
            if parent.type is NodeType.SYSTEM:
                return Result.success()
            return Result.failure(Error.create(
                ErrorCode.WRONG_PARENT_TYPE,
                "Parent of Subsystem L1 must be a System",
                parent_id=parent.id
            ))
        if parent.type is NodeType.SUBSYSTEM and parent.level == level - 1:
            return Result.success()
        return Result.failure(Error.create(
            ErrorCode.WRONG_PARENT_LEVEL,
            f"Parent of Subsystem L{level} must be Subsystem L{level - 1}",
            parent_id=parent.id
        ))

    # Component
    if parent is not None and parent.type is NodeType.SUBSYSTEM:
        return Result.success()
    return Result.failure(Error.create(
        ErrorCode.WRONG_PARENT_TYPE,
        "Parent of Component must be a Subsystem",
        parent_id=parent.id if parent else None
    ))


def eligible_parents(
    nodes: Iterable[Node],
    child_type: Union[NodeType, str],
    level: Optional[int] = None,
    blocked_ids: Iterable[str] = ()
) -> Tuple[Node, ...]:
    """
    All nodes that would pass validate_parent for the given child, sorted
    by name. Nodes in `blocked_ids` are skipped (edit forms block the
    edited node and its descendants).
    """
    if NodeType.parse(child_type) is NodeType.SYSTEM:
        return ()
    blocked = set(blocked_ids)
    candidates = [
        node for node in nodes
        if node.id not in blocked and validate_parent(child_type, level, node).is_success
    ]
    return tuple(sorted(candidates, key=lambda n: (n.name.casefold(), n.name, n.id)))
