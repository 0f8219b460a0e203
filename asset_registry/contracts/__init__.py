"""
Contracts Module

This module defines the explicit data types that form the contracts
between layers. All inter-layer communication MUST use these contracts.

DESIGN PRINCIPLES:
==================
1. All contract types are immutable (frozen dataclasses)
2. All contracts include explicit error states
3. Errors are values, never exceptions crossing a layer boundary
4. Timestamps are integer epoch milliseconds (UTC)
"""

from .base import Error, ErrorCode, Result, now_millis, millis_to_iso
from .nodes import Node, NodeDraft, NodeKind, NodeType, TreeNode, is_valid_level
from .events import (
    AuditEventType, AuditLogEntry, DecisionKind, ImportPolicy, ImportReport,
    MutationOutcome, OutcomeStatus, PendingDecision, Resolution,
    StorageWriteResult, StructuralIssue
)

__all__ = [
    "Error", "ErrorCode", "Result", "now_millis", "millis_to_iso",
    "Node", "NodeDraft", "NodeKind", "NodeType", "TreeNode", "is_valid_level",
    "AuditEventType", "AuditLogEntry", "DecisionKind", "ImportPolicy",
    "ImportReport", "MutationOutcome", "OutcomeStatus", "PendingDecision",
    "Resolution", "StorageWriteResult", "StructuralIssue",
]
