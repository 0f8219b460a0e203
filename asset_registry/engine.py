"""
Engine Orchestration Module

This module provides the unified interface (AssetRegistry) that owns the
working collection and coordinates the layers.

DESIGN PRINCIPLES:
==================
1. core/ operations are pure; the registry only installs APPLIED outcomes
2. Persistence is a best-effort side effect after every applied mutation;
   a failed write is logged and audited, never reported as a failed mutation
3. The in-memory collection is authoritative for the session
4. Previous collections are kept in a bounded internal history buffer
"""

from __future__ import annotations
from collections import deque
from dataclasses import dataclass
from typing import Callable, Deque, List, Optional, Tuple, Union
import logging
import os

from .contracts.base import Result, now_millis
from .contracts.nodes import Node, NodeDraft, NodeType, TreeNode
from .contracts.events import (
    AuditEventType, ImportPolicy, ImportReport, MutationOutcome, Resolution,
    StorageWriteResult, StructuralIssue
)
from .core import add_node, build_tree, clear_nodes, delete_node, edit_node, load_sample
from .interchange import export_csv, export_json, export_pivot_csv, import_json
from .migration import CURRENT_KEY, load_initial
from .observability import AuditLog
from .query import audit_structure, filter_nodes, parent_options
from .storage import KeyValueStore, StorageConfig, create_store

logger = logging.getLogger(__name__)


@dataclass
class RegistryConfig:
    """Unified configuration for the registry."""
    storage: StorageConfig = None
    history_limit: int = 50
    import_policy: ImportPolicy = ImportPolicy.SKIP_EXISTING
    audit_max_entries: int = 1000

    def __post_init__(self):
        self.storage = self.storage or StorageConfig()

    @staticmethod
    def from_env() -> RegistryConfig:
        """
        Build configuration from environment variables:

            ASSET_REGISTRY_BACKEND         memory | file (default: file when a dir is set)
            ASSET_REGISTRY_STORAGE_DIR     directory for the file store
            ASSET_REGISTRY_HISTORY_LIMIT   history buffer depth (default 50)
            ASSET_REGISTRY_IMPORT_POLICY   skip_existing | update_if_newer
        """
        storage_dir = os.environ.get("ASSET_REGISTRY_STORAGE_DIR")
        backend_type = os.environ.get(
            "ASSET_REGISTRY_BACKEND", "file" if storage_dir else "memory"
        )
        return RegistryConfig(
            storage=StorageConfig(backend_type=backend_type, storage_dir=storage_dir),
            history_limit=int(os.environ.get("ASSET_REGISTRY_HISTORY_LIMIT", "50")),
            import_policy=ImportPolicy(
                os.environ.get("ASSET_REGISTRY_IMPORT_POLICY", ImportPolicy.SKIP_EXISTING.value)
            ),
        )


class AssetRegistry:
    """
    Unified facade over the hierarchy consistency engine.

    OPERATION FLOW:
    ===============
    1. Caller submits a draft / id plus any decision already made
    2. core/ computes a MutationOutcome against the current collection
    3. APPLIED: history snapshot, install, persist (best effort), audit
    4. REJECTED / NEEDS_DECISION: returned untouched to the caller
    """

    def __init__(
        self,
        config: Optional[RegistryConfig] = None,
        store: Optional[KeyValueStore] = None,
        clock: Callable[[], int] = now_millis
    ):
        self._config = config or RegistryConfig()
        self._store = store or create_store(self._config.storage)
        self._clock = clock
        self._history: Deque[Tuple[Node, ...]] = deque(maxlen=max(0, self._config.history_limit))
        self._audit = AuditLog(self._config.audit_max_entries)
        self._nodes: Tuple[Node, ...] = tuple(load_initial(self._store, clock))
        logger.info("Registry loaded with %d node(s)", len(self._nodes))
        self._audit.record(
            AuditEventType.SYSTEM, "registry_loaded",
            metadata={"node_count": len(self._nodes)}
        )

    # =========================================================================
    # READ INTERFACE
    # =========================================================================

    @property
    def nodes(self) -> Tuple[Node, ...]:
        return self._nodes

    @property
    def config(self) -> RegistryConfig:
        return self._config

    @property
    def history_depth(self) -> int:
        return len(self._history)

    @property
    def audit_log(self) -> AuditLog:
        return self._audit

    def get(self, node_id: str) -> Optional[Node]:
        for node in self._nodes:
            if node.id == node_id:
                return node
        return None

    def tree(self) -> Tuple[TreeNode, ...]:
        return build_tree(self._nodes)

    def search(self, query: Optional[str]) -> List[Node]:
        return filter_nodes(self._nodes, query)

    def parent_options(
        self,
        child_type: Union[NodeType, str],
        level: Optional[int] = None,
        editing_id: Optional[str] = None
    ) -> Tuple[Node, ...]:
        return parent_options(self._nodes, child_type, level, editing_id)

    def audit(self) -> List[StructuralIssue]:
        return audit_structure(self._nodes)

    # =========================================================================
    # MUTATION INTERFACE
    # =========================================================================

    def add(self, draft: NodeDraft, resolution: Optional[Resolution] = None) -> MutationOutcome:
        outcome = add_node(self._nodes, draft, resolution, clock=self._clock)
        return self._install(outcome, "node_added")

    def edit(
        self,
        node_id: str,
        draft: NodeDraft,
        resolution: Optional[Resolution] = None
    ) -> MutationOutcome:
        outcome = edit_node(self._nodes, node_id, draft, resolution)
        return self._install(outcome, "node_edited")

    def delete(self, node_id: str, confirm_cascade: bool = False) -> MutationOutcome:
        outcome = delete_node(self._nodes, node_id, confirm_cascade)
        return self._install(outcome, "node_deleted")

    def clear(self, confirm: bool = False) -> MutationOutcome:
        outcome = clear_nodes(self._nodes, confirm)
        return self._install(outcome, "nodes_cleared")

    def load_sample(self, confirm: bool = False) -> MutationOutcome:
        outcome = load_sample(self._nodes, confirm, clock=self._clock)
        return self._install(outcome, "sample_loaded")

    def import_json(self, text: str, policy: Optional[ImportPolicy] = None) -> Result:
        """
        Merge an import payload. Value is an ImportReport.

        Imported structure is not re-validated; violations are listed
        in ImportReport.issues.
        """
        policy = policy or self._config.import_policy
        result = import_json(self._nodes, text, policy, clock=self._clock)
        if result.is_failure:
            return result

        report: ImportReport = result.value
        self._commit(report.nodes)
        self._audit.record(
            AuditEventType.IMPORT, "nodes_imported",
            metadata={
                "policy": policy.value,
                "added": report.added,
                "updated": report.updated,
                "skipped": report.skipped,
                "dropped": report.dropped,
                "issues": len(report.issues),
            }
        )
        return result

    # =========================================================================
    # EXPORT INTERFACE
    # =========================================================================

    def export_json(self) -> str:
        return export_json(self._nodes)

    def export_csv(self) -> str:
        return export_csv(self._nodes)

    def export_pivot_csv(self) -> str:
        return export_pivot_csv(self._nodes)

    # =========================================================================
    # INTERNALS
    # =========================================================================

    def _install(self, outcome: MutationOutcome, action: str) -> MutationOutcome:
        if not outcome.is_applied:
            return outcome

        self._commit(outcome.nodes)
        metadata = {"node_count": len(outcome.nodes)}
        if outcome.removed_ids:
            metadata["removed"] = len(outcome.removed_ids)
        self._audit.record(
            AuditEventType.MUTATION, action,
            entity_id=outcome.node.id if outcome.node else None,
            metadata=metadata
        )
        return outcome

    def _commit(self, next_nodes: Tuple[Node, ...]):
        if self._history.maxlen:
            self._history.appendleft(self._nodes)
        self._nodes = tuple(next_nodes)
        self._persist()

    def _persist(self) -> StorageWriteResult:
        """Write the collection; failures are logged and audited, then dropped."""
        result = self._store.save(CURRENT_KEY, [node.to_dict() for node in self._nodes])

        if not result.success:
            logger.warning("Persisting %s failed: %s", CURRENT_KEY, result.error.message)
            self._audit.record(
                AuditEventType.STORAGE, "write_failed",
                metadata={"key": CURRENT_KEY, "message": result.error.message}
            )
        return result
