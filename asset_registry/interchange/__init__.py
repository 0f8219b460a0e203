"""
Interchange Layer (Import / Export)

RESPONSIBILITY: Turn the node collection into JSON/CSV text and back
ALLOWED INPUTS: Untrusted JSON text or decoded arrays; node collections
OUTPUTS: Sanitized Nodes, ImportReport, export text

WHAT THIS LAYER MUST NOT DO:
============================
- Run the Parent Rule Validator or the Duplicate Resolver on imports.
  Imported structure is accepted as-is and only REPORTED through
  structure audit issues.
- Reject a whole payload because of individual malformed entries;
  malformed entries are dropped and counted.
"""

from __future__ import annotations
from typing import Any, Callable, Iterable, List, Optional, Tuple
import csv
import io
import json
import math

from ..contracts.base import (
    MAX_MILLIS, MIN_MILLIS, Error, ErrorCode, Result, millis_to_iso, now_millis
)
from ..contracts.nodes import Node, NodeKind, NodeType
from ..contracts.events import ImportPolicy, ImportReport
from ..core.topology import HierarchyTopology
from ..core.tree import build_tree, flatten_tree
from ..query import audit_structure

Clock = Callable[[], int]

CSV_COLUMNS = ("Name", "Type", "Level", "ParentName", "ParentID", "ID", "CreatedISO")


# =============================================================================
# FIELD COERCION
# =============================================================================

def _as_number(value: Any) -> Optional[float]:
    if isinstance(value, str):
        value = value.strip()
        if not value:
            return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    return number if math.isfinite(number) else None


def coerce_level(value: Any, shift: int = 0) -> int:
    """Subsystem level: numeric values floored at 1, anything else 1."""
    number = _as_number(value)
    if number is None:
        return 1
    return max(1, int(number) + shift)


def coerce_millis(value: Any, clock: Clock = now_millis) -> int:
    """
    createdAt: a non-zero finite number, otherwise the current time.

    Numbers are clamped to the range a UTC datetime can represent.
    """
    number = _as_number(value)
    if not number:
        return clock()
    return min(MAX_MILLIS, max(MIN_MILLIS, int(number)))


def coerce_parent_id(value: Any) -> Optional[str]:
    return str(value) if value else None


# =============================================================================
# IMPORT
# =============================================================================

def sanitize_record(raw: Any, clock: Clock = now_millis) -> Optional[Node]:
    """
    Coerce one untrusted record into a Node, or None when it must be dropped.

    Records need a truthy id, name and type. Unknown types become
    Component.
    """
    if not isinstance(raw, dict):
        return None
    if not raw.get("id") or not raw.get("name") or not raw.get("type"):
        return None

    name = str(raw["name"]).strip()
    if not name:
        return None

    node_type = NodeType.parse(raw["type"]) or NodeType.COMPONENT
    level = coerce_level(raw.get("level")) if node_type is NodeType.SUBSYSTEM else None

    return Node(
        id=str(raw["id"]),
        name=name,
        kind=NodeKind.of(node_type, level),
        parent_id=coerce_parent_id(raw.get("parentId")),
        created_at=coerce_millis(raw.get("createdAt"), clock)
    )


def sanitize_records(records: Iterable[Any], clock: Clock = now_millis) -> Tuple[List[Node], int]:
    """Sanitize an array; returns (nodes, dropped_count)."""
    nodes: List[Node] = []
    dropped = 0
    for raw in records:
        node = sanitize_record(raw, clock)
        if node is None:
            dropped += 1
        else:
            nodes.append(node)
    return nodes, dropped


def parse_json_payload(text: str) -> Result:
    """Decode import text; the value must be a JSON array."""
    try:
        value = json.loads(text)
    except ValueError as e:
        return Result.failure(Error.create(
            ErrorCode.MALFORMED_PAYLOAD,
            f"Import failed: invalid JSON ({e})"
        ))
    if not isinstance(value, list):
        return Result.failure(Error.create(
            ErrorCode.MALFORMED_PAYLOAD,
            "Import failed: Unknown format (expected a JSON array)"
        ))
    return Result.success(value)


def merge_imported(
    existing: Iterable[Node],
    incoming: Iterable[Node],
    policy: ImportPolicy = ImportPolicy.SKIP_EXISTING,
    dropped: int = 0
) -> ImportReport:
    """
    Merge sanitized nodes into a collection by id.

    SKIP_EXISTING keeps the existing node on an id clash. UPDATE_IF_NEWER
    replaces it when the incoming created_at is strictly newer. New ids
    are appended in arrival order.
    """
    merged: List[Node] = list(existing)
    position = {node.id: i for i, node in enumerate(merged)}
    added = updated = skipped = 0

    for node in incoming:
        if node.id not in position:
            position[node.id] = len(merged)
            merged.append(node)
            added += 1
            continue

        index = position[node.id]
        if policy is ImportPolicy.UPDATE_IF_NEWER and node.created_at > merged[index].created_at:
            merged[index] = node
            updated += 1
        else:
            skipped += 1

    result = tuple(merged)
    return ImportReport(
        nodes=result,
        added=added,
        updated=updated,
        skipped=skipped,
        dropped=dropped,
        issues=tuple(audit_structure(result))
    )


def import_json(
    existing: Iterable[Node],
    text: str,
    policy: ImportPolicy = ImportPolicy.SKIP_EXISTING,
    clock: Clock = now_millis
) -> Result:
    """Parse, sanitize and merge an import payload. Value is an ImportReport."""
    parsed = parse_json_payload(text)
    if parsed.is_failure:
        return parsed
    nodes, dropped = sanitize_records(parsed.value, clock)
    return Result.success(merge_imported(existing, nodes, policy, dropped))


# =============================================================================
# EXPORT
# =============================================================================

def export_json(nodes: Iterable[Node]) -> str:
    """Pretty-printed array in the storage wire shape."""
    return json.dumps([node.to_dict() for node in nodes], indent=2, ensure_ascii=False)


def _write_csv(rows: Iterable[Iterable[str]]) -> str:
    buffer = io.StringIO()
    writer = csv.writer(buffer, quoting=csv.QUOTE_MINIMAL, lineterminator="\r\n")
    writer.writerows(rows)
    return buffer.getvalue()


def export_csv(nodes: Iterable[Node]) -> str:
    """Flat CSV, one row per node in display order."""
    current = tuple(nodes)
    topology = HierarchyTopology(current)
    rows = [CSV_COLUMNS]

    for node in flatten_tree(build_tree(current)):
        parent = topology.get(node.parent_id)
        rows.append((
            node.name,
            node.type.value,
            "" if node.level is None else str(node.level),
            parent.name if parent else "",
            node.parent_id or "",
            node.id,
            millis_to_iso(node.created_at),
        ))

    return _write_csv(rows)


def export_pivot_csv(nodes: Iterable[Node]) -> str:
    """
    Component-centric CSV: one row per Component, with each ancestor
    Subsystem's name in the column of its level.
    """
    current = tuple(nodes)
    topology = HierarchyTopology(current)
    max_level = max((n.level for n in current if n.is_subsystem), default=0)
    rows = [["Component Name"] + [f"Subsystem L{i}" for i in range(1, max_level + 1)]]

    for node in flatten_tree(build_tree(current)):
        if not node.is_component:
            continue
        row = [node.name] + [""] * max_level
        for ancestor in topology.ancestor_chain(node.id):
            if ancestor.is_subsystem and not row[ancestor.level]:
                row[ancestor.level] = ancestor.name
        rows.append(row)

    return _write_csv(rows)
