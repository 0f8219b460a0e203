"""
Legacy Migration & Merge

RESPONSIBILITY: Normalize historical snapshots into the current Node shape
ALLOWED INPUTS: Raw arrays read from legacy store keys
OUTPUTS: One merged collection, newest record per id

SCHEMA HISTORY:
===============
- module1_asset_nodes        current schema
- module1_asset_nodes_v4/v3  one-based Subsystem levels
- module1_asset_nodes_v2/v1  zero-based Subsystem levels (shifted by +1)
"""

from __future__ import annotations
from typing import Any, Callable, Iterable, List, Optional
import logging

from ..contracts.base import now_millis
from ..contracts.nodes import Node, NodeKind, NodeType
from ..interchange import coerce_level, coerce_millis, coerce_parent_id, sanitize_records
from ..storage import KeyValueStore

logger = logging.getLogger(__name__)

Clock = Callable[[], int]

CURRENT_KEY = "module1_asset_nodes"
LEGACY_KEYS = (
    "module1_asset_nodes_v4",
    "module1_asset_nodes_v3",
    "module1_asset_nodes_v2",
    "module1_asset_nodes_v1",
)
ZERO_BASED_KEYS = frozenset({"module1_asset_nodes_v2", "module1_asset_nodes_v1"})


def normalize_legacy(
    records: Iterable[Any],
    zero_based: bool = False,
    clock: Clock = now_millis
) -> List[Node]:
    """
    Bring one legacy array into the current shape.

    Unrecognized types become Component. Subsystem levels default to 1,
    shift by +1 for zero-based schemas and are floored at 1. Records
    without an id or a name are skipped.
    """
    nodes: List[Node] = []
    for raw in records:
        if not isinstance(raw, dict) or raw.get("id") in (None, ""):
            continue
        name = str(raw.get("name") or "").strip()
        if not name:
            continue

        node_type = NodeType.parse(raw.get("type")) or NodeType.COMPONENT
        level = None
        if node_type is NodeType.SUBSYSTEM:
            level = coerce_level(raw.get("level"), shift=1 if zero_based else 0)

        nodes.append(Node(
            id=str(raw["id"]),
            name=name,
            kind=NodeKind.of(node_type, level),
            parent_id=coerce_parent_id(raw.get("parentId")),
            created_at=coerce_millis(raw.get("createdAt"), clock)
        ))
    return nodes


def merge_by_id_newest(collections: Iterable[Iterable[Node]]) -> List[Node]:
    """
    Keep, for every id, the node with the greatest created_at.

    Ties go to the last one seen. Ids keep their first-seen position.
    """
    by_id = {}
    for collection in collections:
        for node in collection:
            previous: Optional[Node] = by_id.get(node.id)
            if previous is None or node.created_at >= previous.created_at:
                by_id[node.id] = node
    return list(by_id.values())


def load_initial(store: KeyValueStore, clock: Clock = now_millis) -> List[Node]:
    """
    Load the working collection.

    The current key wins when it holds a non-empty array. Otherwise every
    legacy key is normalized, the results are merged by newest, and the
    merge is written back under the current key.
    """
    current = store.load(CURRENT_KEY)
    if current:
        nodes, dropped = sanitize_records(current, clock)
        if dropped:
            logger.warning("Dropped %d malformed stored record(s)", dropped)
        return nodes

    migrated: List[List[Node]] = []
    for key in LEGACY_KEYS:
        records = store.load(key)
        if records:
            migrated.append(normalize_legacy(records, key in ZERO_BASED_KEYS, clock))

    if not migrated:
        return []

    merged = merge_by_id_newest(migrated)
    result = store.save(CURRENT_KEY, [node.to_dict() for node in merged])
    if result.success:
        logger.info("Migrated %d node(s) from %d legacy snapshot(s)", len(merged), len(migrated))
    else:
        logger.warning("Migration write-back failed: %s", result.error.message)
    return merged
