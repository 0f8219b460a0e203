"""
Node Model

The sole entity of the asset registry. A node is one entry in a flat
collection; the hierarchy is expressed only through parent_id lookups
into that same collection.

INVARIANTS CARRIED BY THE TYPES:
================================
- level is present iff the node is a Subsystem (enforced by NodeKind)
- id and created_at are assigned once, at creation
- Nodes are frozen; edits produce new Node values

INVARIANTS NOT CARRIED BY THE TYPES:
====================================
Parent admissibility, the System singleton and acyclicity are collection
properties. They are enforced by the mutation operations in core/, and
tolerated when violated by stored or imported data.
"""

from __future__ import annotations
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Dict, Optional, Tuple, Union


class NodeType(Enum):
    """Closed enumeration of asset node types."""
    SYSTEM = "System"
    SUBSYSTEM = "Subsystem"
    COMPONENT = "Component"

    @property
    def rank(self) -> int:
        """Display rank: System before Subsystem before Component."""
        return _TYPE_RANK[self]

    @staticmethod
    def parse(value: Union[NodeType, str, None]) -> Optional[NodeType]:
        """Map a raw value onto NodeType; None when unrecognized."""
        if isinstance(value, NodeType):
            return value
        if isinstance(value, str):
            for member in NodeType:
                if member.value == value:
                    return member
        return None


_TYPE_RANK = {
    NodeType.SYSTEM: 0,
    NodeType.SUBSYSTEM: 1,
    NodeType.COMPONENT: 2,
}


def is_valid_level(level: Any) -> bool:
    """A Subsystem level is an integer >= 1 (bools excluded)."""
    return isinstance(level, int) and not isinstance(level, bool) and level >= 1


@dataclass(frozen=True)
class NodeKind:
    """
    Tagged variant over node type and subsystem level.

    Use the factories: NodeKind.system(), NodeKind.subsystem(level),
    NodeKind.component(). Construction rejects a level on a non-Subsystem
    and a missing or invalid level on a Subsystem.
    """
    type: NodeType
    level: Optional[int] = None

    def __post_init__(self):
        if self.type is NodeType.SUBSYSTEM:
            if not is_valid_level(self.level):
                raise ValueError(f"Subsystem level must be an integer >= 1, got {self.level!r}")
        elif self.level is not None:
            raise ValueError(f"{self.type.value} nodes carry no level")

    @staticmethod
    def system() -> NodeKind:
        return NodeKind(NodeType.SYSTEM)

    @staticmethod
    def subsystem(level: int) -> NodeKind:
        return NodeKind(NodeType.SUBSYSTEM, level)

    @staticmethod
    def component() -> NodeKind:
        return NodeKind(NodeType.COMPONENT)

    @staticmethod
    def of(node_type: NodeType, level: Optional[int] = None) -> NodeKind:
        """Build a kind from a type, dropping the level unless it is a Subsystem."""
        if node_type is NodeType.SUBSYSTEM:
            return NodeKind(node_type, level)
        return NodeKind(node_type)

    def label(self) -> str:
        if self.type is NodeType.SUBSYSTEM:
            return f"Subsystem L{self.level}"
        return self.type.value


@dataclass(frozen=True)
class Node:
    """
    Immutable asset node.

    Wire shape (storage and interchange):
        {"id", "name", "type", "parentId", "level", "createdAt"}
    """
    id: str
    name: str
    kind: NodeKind
    parent_id: Optional[str] = None
    created_at: int = 0

    @property
    def type(self) -> NodeType:
        return self.kind.type

    @property
    def level(self) -> Optional[int]:
        return self.kind.level

    @property
    def is_system(self) -> bool:
        return self.kind.type is NodeType.SYSTEM

    @property
    def is_subsystem(self) -> bool:
        return self.kind.type is NodeType.SUBSYSTEM

    @property
    def is_component(self) -> bool:
        return self.kind.type is NodeType.COMPONENT

    def evolve(self, **changes: Any) -> Node:
        """Return a copy with the given fields replaced."""
        return replace(self, **changes)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "type": self.type.value,
            "parentId": self.parent_id,
            "level": self.level,
            "createdAt": self.created_at,
        }

    @staticmethod
    def from_dict(data: Dict[str, Any]) -> Node:
        """
        Strict reconstruction from the wire shape.

        Raises ValueError/KeyError on malformed data; untrusted input goes
        through interchange.sanitize_records instead.
        """
        node_type = NodeType.parse(data["type"])
        if node_type is None:
            raise ValueError(f"Unknown node type: {data['type']!r}")
        return Node(
            id=str(data["id"]),
            name=str(data["name"]),
            kind=NodeKind.of(node_type, data.get("level")),
            parent_id=data.get("parentId"),
            created_at=int(data.get("createdAt") or 0),
        )


@dataclass(frozen=True)
class TreeNode:
    """A node with its sorted children, produced by the tree builder."""
    node: Node
    children: Tuple[TreeNode, ...] = field(default_factory=tuple)

    def walk(self):
        """Pre-order iteration over this subtree (iterative)."""
        stack = [self]
        while stack:
            current = stack.pop()
            yield current
            stack.extend(reversed(current.children))

    def to_dict(self) -> Dict[str, Any]:
        """Nested wire dict with a "children" list, built bottom-up (iterative)."""
        built: Dict[int, Dict[str, Any]] = {}
        order = list(self.walk())
        for current in reversed(order):
            data = current.node.to_dict()
            data["children"] = [built.pop(id(child)) for child in current.children]
            built[id(current)] = data
        return built[id(self)]


@dataclass(frozen=True)
class NodeDraft:
    """
    Raw operation input for Add and Edit.

    Fields are taken as the caller provided them; type may be an
    unrecognized string and level may be missing or invalid. The
    mutation operations validate everything.
    """
    name: str
    type: Union[NodeType, str]
    level: Optional[int] = None
    parent_id: Optional[str] = None
