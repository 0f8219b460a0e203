"""
Layer-Specific Contracts

These contracts define the explicit interfaces between layers.
Each layer exposes its contracts here, and other layers consume only these.

- core/ produces MutationOutcome (applied, rejected or awaiting a decision)
- storage/ produces StorageWriteResult
- interchange/ produces ImportReport
- observability/ records AuditLogEntry
"""

from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Tuple

from .base import Error
from .nodes import Node


# =============================================================================
# MUTATION CONTRACTS
# =============================================================================

class Resolution(Enum):
    """Caller choices for a same-slot name collision."""
    OVERWRITE = "overwrite"
    INDEX = "index"
    ABORT = "abort"


class DecisionKind(Enum):
    """Why an operation stopped before committing."""
    RESOLVE_COLLISION = "resolve_collision"
    CONFIRM_CASCADE = "confirm_cascade"
    CONFIRM_CLEAR = "confirm_clear"
    CONFIRM_SAMPLE = "confirm_sample"


class OutcomeStatus(Enum):
    APPLIED = "applied"
    REJECTED = "rejected"
    NEEDS_DECISION = "needs_decision"


@dataclass(frozen=True)
class PendingDecision:
    """
    A decision the caller must supply before the operation can commit.

    The operation is re-invoked with the chosen Resolution (collisions)
    or an explicit confirmation flag (cascade delete, clear all, sample load).
    """
    kind: DecisionKind
    message: str
    choices: Tuple[Resolution, ...] = field(default_factory=tuple)
    collision: Optional[Node] = None
    suggested_name: Optional[str] = None
    affected_ids: Tuple[str, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class MutationOutcome:
    """
    Result of a pure mutation over the node collection.

    APPLIED carries the complete next collection. REJECTED and
    NEEDS_DECISION carry the input collection unchanged.
    """
    status: OutcomeStatus
    nodes: Tuple[Node, ...]
    node: Optional[Node] = None
    error: Optional[Error] = None
    decision: Optional[PendingDecision] = None
    removed_ids: Tuple[str, ...] = field(default_factory=tuple)

    @property
    def is_applied(self) -> bool:
        return self.status is OutcomeStatus.APPLIED

    @property
    def is_rejected(self) -> bool:
        return self.status is OutcomeStatus.REJECTED

    @property
    def needs_decision(self) -> bool:
        return self.status is OutcomeStatus.NEEDS_DECISION

    @staticmethod
    def applied(
        nodes: Tuple[Node, ...],
        node: Optional[Node] = None,
        removed_ids: Tuple[str, ...] = ()
    ) -> MutationOutcome:
        return MutationOutcome(
            status=OutcomeStatus.APPLIED,
            nodes=nodes,
            node=node,
            removed_ids=removed_ids
        )

    @staticmethod
    def rejected(nodes: Tuple[Node, ...], error: Error) -> MutationOutcome:
        return MutationOutcome(status=OutcomeStatus.REJECTED, nodes=nodes, error=error)

    @staticmethod
    def pending(nodes: Tuple[Node, ...], decision: PendingDecision) -> MutationOutcome:
        return MutationOutcome(
            status=OutcomeStatus.NEEDS_DECISION,
            nodes=nodes,
            decision=decision
        )


# =============================================================================
# STORAGE CONTRACTS
# =============================================================================

@dataclass(frozen=True)
class StorageWriteResult:
    """Result of a best-effort write to the persistence store."""
    success: bool
    key: str
    record_count: int = 0
    error: Optional[Error] = None


# =============================================================================
# INTERCHANGE CONTRACTS
# =============================================================================

class ImportPolicy(Enum):
    """How imported nodes merge with existing ones sharing an id."""
    SKIP_EXISTING = "skip_existing"
    UPDATE_IF_NEWER = "update_if_newer"


@dataclass(frozen=True)
class StructuralIssue:
    """One structural rule violation found in a collection."""
    node_id: str
    code: str
    message: str


@dataclass(frozen=True)
class ImportReport:
    """Summary of a merge of imported records into the collection."""
    nodes: Tuple[Node, ...]
    added: int = 0
    updated: int = 0
    skipped: int = 0
    dropped: int = 0
    issues: Tuple[StructuralIssue, ...] = field(default_factory=tuple)


# =============================================================================
# OBSERVABILITY CONTRACTS
# =============================================================================

class AuditEventType(Enum):
    MUTATION = "mutation"
    IMPORT = "import"
    STORAGE = "storage"
    SYSTEM = "system"


@dataclass(frozen=True)
class AuditLogEntry:
    """Immutable audit log entry."""
    entry_id: str
    event_type: AuditEventType
    timestamp: int
    action: str
    entity_id: Optional[str] = None
    metadata: Tuple[Tuple[str, str], ...] = field(default_factory=tuple)
