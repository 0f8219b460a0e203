"""
Mutation Operations
===================

Add, Edit, Delete, Clear and Load Sample as pure functions over the node collection:

    (nodes, input, decision) -> MutationOutcome

Each operation computes the complete next collection before returning it.
On rejection, or when a caller decision is still required, the input
collection is returned unchanged. Nothing here persists, logs or prompts;
the registry facade installs APPLIED outcomes.

DECISIONS:
==========
- Same-slot name collision on Add: OVERWRITE, INDEX or ABORT
- Same-slot name collision on Edit: INDEX or ABORT
- Delete of a node with descendants: explicit cascade confirmation
- Clear of a non-empty collection: explicit confirmation
- Loading the sample hierarchy: explicit confirmation
"""

from __future__ import annotations
from typing import Callable, Iterable, Optional, Tuple, Union
import uuid

from ..contracts.base import Error, ErrorCode, now_millis
from ..contracts.nodes import Node, NodeDraft, NodeKind, NodeType, is_valid_level
from ..contracts.events import (
    DecisionKind, MutationOutcome, PendingDecision, Resolution
)
from .duplicates import find_collision, next_indexed_name, slot_siblings
from .rules import eligible_parents, validate_parent
from .topology import HierarchyTopology

Clock = Callable[[], int]
IdFactory = Callable[[], str]

ADD_COLLISION_CHOICES = (Resolution.OVERWRITE, Resolution.INDEX, Resolution.ABORT)
EDIT_COLLISION_CHOICES = (Resolution.INDEX, Resolution.ABORT)


def generate_node_id() -> str:
    """Short opaque id."""
    return uuid.uuid4().hex[:10]


# =============================================================================
# DRAFT PARSING
# =============================================================================

def _parse_draft(draft: NodeDraft) -> Union[Error, Tuple[str, NodeType, Optional[int]]]:
    """Validate the field-level shape of a draft: name, type, level."""
    name = str(draft.name or "").strip()
    if not name:
        return Error.create(ErrorCode.EMPTY_NAME, "Name is required")

    node_type = NodeType.parse(draft.type)
    if node_type is None:
        return Error.create(ErrorCode.UNKNOWN_TYPE, f"Unknown type: {draft.type!r}")

    if node_type is NodeType.SUBSYSTEM:
        if not is_valid_level(draft.level):
            return Error.create(
                ErrorCode.INVALID_LEVEL,
                "Subsystem Level must be a number >= 1",
                level=draft.level
            )
        return name, node_type, draft.level

    return name, node_type, None


def _fresh_id(existing: Iterable[str], id_factory: IdFactory) -> str:
    taken = set(existing)
    node_id = id_factory()
    while node_id in taken:
        node_id = id_factory()
    return node_id


def _parent_label(level: int) -> str:
    return "System" if level == 1 else f"Subsystem L{level - 1}"


# =============================================================================
# ADD
# =============================================================================

def add_node(
    nodes: Iterable[Node],
    draft: NodeDraft,
    resolution: Optional[Resolution] = None,
    clock: Clock = now_millis,
    id_factory: IdFactory = generate_node_id
) -> MutationOutcome:
    """
    Create a node from a draft.

    A Subsystem without an explicit parent gets the only eligible parent
    when exactly one exists. A same-slot collision stops with a
    NEEDS_DECISION outcome until the caller supplies a Resolution.
    """
    current = tuple(nodes)
    parsed = _parse_draft(draft)
    if isinstance(parsed, Error):
        return MutationOutcome.rejected(current, parsed)
    name, node_type, level = parsed

    topology = HierarchyTopology(current)
    parent: Optional[Node] = None

    if node_type is NodeType.SYSTEM:
        if any(node.is_system for node in current):
            return MutationOutcome.rejected(current, Error.create(
                ErrorCode.SYSTEM_ALREADY_EXISTS,
                "A System already exists"
            ))
    elif node_type is NodeType.SUBSYSTEM:
        if draft.parent_id:
            parent = topology.get(draft.parent_id)
            if parent is None:
                return MutationOutcome.rejected(current, Error.create(
                    ErrorCode.MISSING_PARENT,
                    "Selected parent does not exist",
                    parent_id=draft.parent_id
                ))
        else:
            candidates = eligible_parents(current, node_type, level)
            if not candidates:
                return MutationOutcome.rejected(current, Error.create(
                    ErrorCode.NO_ELIGIBLE_PARENT,
                    f"No {_parent_label(level)} exists to hold Subsystem L{level}"
                ))
            if len(candidates) > 1:
                return MutationOutcome.rejected(current, Error.create(
                    ErrorCode.AMBIGUOUS_PARENT,
                    f"Choose Parent: {_parent_label(level)}",
                    candidates=",".join(c.id for c in candidates)
                ))
            parent = candidates[0]
    else:
        parent = topology.get(draft.parent_id)

    kind = NodeKind.of(node_type, level)
    candidate = Node(
        id="",
        name=name,
        kind=kind,
        parent_id=parent.id if parent else None
    )

    overwrite_target: Optional[Node] = None
    collision = find_collision(current, candidate)
    if collision is not None:
        suggested = next_indexed_name(name, (n.name for n in slot_siblings(current, candidate)))
        if resolution is None:
            return MutationOutcome.pending(current, PendingDecision(
                kind=DecisionKind.RESOLVE_COLLISION,
                message=f"'{collision.name}' already exists in this position",
                choices=ADD_COLLISION_CHOICES,
                collision=collision,
                suggested_name=suggested,
                affected_ids=(collision.id,)
            ))
        if resolution is Resolution.INDEX:
            candidate = candidate.evolve(name=suggested)
        elif resolution is Resolution.OVERWRITE:
            overwrite_target = collision
        else:
            return MutationOutcome.rejected(current, Error.create(
                ErrorCode.COLLISION_UNRESOLVED,
                "Add aborted: name collision left unresolved",
                collision_id=collision.id
            ))

    rule = validate_parent(node_type, level, parent)
    if rule.is_failure:
        return MutationOutcome.rejected(current, rule.error)

    if overwrite_target is not None:
        updated = overwrite_target.evolve(
            name=candidate.name,
            kind=candidate.kind,
            parent_id=candidate.parent_id,
            created_at=clock()
        )
        next_nodes = tuple(updated if n.id == overwrite_target.id else n for n in current)
        return MutationOutcome.applied(next_nodes, updated)

    created = candidate.evolve(
        id=_fresh_id((n.id for n in current), id_factory),
        created_at=clock()
    )
    return MutationOutcome.applied(current + (created,), created)


# =============================================================================
# EDIT
# =============================================================================

def edit_node(
    nodes: Iterable[Node],
    node_id: str,
    draft: NodeDraft,
    resolution: Optional[Resolution] = None
) -> MutationOutcome:
    """
    Replace name, type, level and parent of an existing node in place.

    id and created_at never change. Overwrite is not offered: an edit
    already targets a specific identity.
    """
    current = tuple(nodes)
    topology = HierarchyTopology(current)
    existing = topology.get(node_id)
    if existing is None:
        return MutationOutcome.rejected(current, Error.create(
            ErrorCode.NODE_NOT_FOUND,
            f"Node {node_id} does not exist",
            node_id=node_id
        ))

    parsed = _parse_draft(draft)
    if isinstance(parsed, Error):
        return MutationOutcome.rejected(current, parsed)
    name, node_type, level = parsed

    parent_id = draft.parent_id or None
    if node_type is NodeType.SYSTEM:
        if any(node.is_system and node.id != node_id for node in current):
            return MutationOutcome.rejected(current, Error.create(
                ErrorCode.SYSTEM_ALREADY_EXISTS,
                "Another System already exists"
            ))
        parent_id = None

    if parent_id is not None and parent_id in topology.descendant_ids(node_id):
        message = (
            "Parent cannot be itself" if parent_id == node_id
            else "Parent cannot be one of its own descendants"
        )
        return MutationOutcome.rejected(current, Error.create(
            ErrorCode.CYCLIC_PARENT,
            message,
            parent_id=parent_id
        ))

    if node_type is NodeType.COMPONENT and topology.has_children(node_id):
        return MutationOutcome.rejected(current, Error.create(
            ErrorCode.WOULD_ORPHAN_CHILDREN,
            "Cannot change to Component because this node has children"
        ))

    candidate = existing.evolve(
        name=name,
        kind=NodeKind.of(node_type, level),
        parent_id=parent_id
    )

    collision = find_collision(current, candidate, ignore_id=node_id)
    if collision is not None:
        suggested = next_indexed_name(
            name, (n.name for n in slot_siblings(current, candidate, ignore_id=node_id))
        )
        if resolution is None:
            return MutationOutcome.pending(current, PendingDecision(
                kind=DecisionKind.RESOLVE_COLLISION,
                message=f"'{collision.name}' already exists in this position",
                choices=EDIT_COLLISION_CHOICES,
                collision=collision,
                suggested_name=suggested,
                affected_ids=(collision.id,)
            ))
        if resolution is not Resolution.INDEX:
            return MutationOutcome.rejected(current, Error.create(
                ErrorCode.COLLISION_UNRESOLVED,
                "Edit aborted: name collision left unresolved",
                collision_id=collision.id,
                resolution=resolution.value
            ))
        candidate = candidate.evolve(name=suggested)

    rule = validate_parent(node_type, level, topology.get(parent_id))
    if rule.is_failure:
        return MutationOutcome.rejected(current, rule.error)

    next_nodes = tuple(candidate if n.id == node_id else n for n in current)
    return MutationOutcome.applied(next_nodes, candidate)


# =============================================================================
# DELETE / CLEAR
# =============================================================================

def delete_node(
    nodes: Iterable[Node],
    node_id: str,
    confirm_cascade: bool = False
) -> MutationOutcome:
    """
    Remove a node and every transitive descendant.

    Removing more than one node requires confirm_cascade=True.
    """
    current = tuple(nodes)
    topology = HierarchyTopology(current)
    existing = topology.get(node_id)
    if existing is None:
        return MutationOutcome.rejected(current, Error.create(
            ErrorCode.NODE_NOT_FOUND,
            f"Node {node_id} does not exist",
            node_id=node_id
        ))

    doomed = topology.descendant_ids(node_id)
    removed = tuple(sorted(doomed))

    if len(doomed) > 1 and not confirm_cascade:
        return MutationOutcome.pending(current, PendingDecision(
            kind=DecisionKind.CONFIRM_CASCADE,
            message=(
                f"Deleting '{existing.name}' also removes "
                f"{len(doomed) - 1} descendant node(s)"
            ),
            affected_ids=removed
        ))

    next_nodes = tuple(n for n in current if n.id not in doomed)
    return MutationOutcome.applied(next_nodes, existing, removed_ids=removed)


def clear_nodes(nodes: Iterable[Node], confirm: bool = False) -> MutationOutcome:
    """Remove everything; a non-empty collection requires confirm=True."""
    current = tuple(nodes)
    removed = tuple(n.id for n in current)

    if current and not confirm:
        return MutationOutcome.pending(current, PendingDecision(
            kind=DecisionKind.CONFIRM_CLEAR,
            message=f"Clear all data? {len(current)} node(s) will be removed",
            affected_ids=removed
        ))

    return MutationOutcome.applied((), removed_ids=removed)


# =============================================================================
# SAMPLE DATA
# =============================================================================

# (key, name, kind, parent key); parents precede children
SAMPLE_HIERARCHY = (
    ("root", "Trainset Series 12", NodeKind.system(), None),
    ("propulsion", "Propulsion", NodeKind.subsystem(1), "root"),
    ("brake", "Brake", NodeKind.subsystem(1), "root"),
    ("traction", "Traction Control", NodeKind.subsystem(2), "propulsion"),
    ("inverter", "Traction Inverter", NodeKind.component(), "traction"),
    ("controller", "Master Controller", NodeKind.component(), "propulsion"),
)


def load_sample(
    nodes: Iterable[Node],
    confirm: bool = False,
    clock: Clock = now_millis,
    id_factory: IdFactory = generate_node_id
) -> MutationOutcome:
    """
    Prepend a small demonstration hierarchy rooted at a new System.

    Requires confirm=True. Rejected with SYSTEM_ALREADY_EXISTS when the
    collection already has a System, since the sample brings its own.
    All sample nodes share one createdAt; the outcome's node is the System.
    """
    current = tuple(nodes)
    if any(node.is_system for node in current):
        return MutationOutcome.rejected(current, Error.create(
            ErrorCode.SYSTEM_ALREADY_EXISTS,
            "Sample data brings its own System; clear the existing one first"
        ))

    if not confirm:
        return MutationOutcome.pending(current, PendingDecision(
            kind=DecisionKind.CONFIRM_SAMPLE,
            message=f"Load sample data? {len(SAMPLE_HIERARCHY)} sample node(s) will be added"
        ))

    created_at = clock()
    taken = [n.id for n in current]
    ids = {}
    sample = []
    for key, name, kind, parent_key in SAMPLE_HIERARCHY:
        ids[key] = _fresh_id(taken, id_factory)
        taken.append(ids[key])
        sample.append(Node(
            id=ids[key],
            name=name,
            kind=kind,
            parent_id=ids[parent_key] if parent_key else None,
            created_at=created_at
        ))
    return MutationOutcome.applied(tuple(sample) + current, sample[0])
