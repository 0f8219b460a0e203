"""
API Mapper
==========

Transforms registry contracts into JSON-ready DTOs and HTTP status codes.
No business logic: every decision has already been made by core/.
"""
from typing import Any, Dict, Iterable, Tuple
import json

from ..contracts.base import Error, ErrorCode
from ..contracts.nodes import Node, TreeNode
from ..contracts.events import (
    ImportReport, MutationOutcome, OutcomeStatus, PendingDecision, StructuralIssue
)


def map_node(node: Node) -> Dict[str, Any]:
    return node.to_dict()


def map_nodes(nodes: Iterable[Node]) -> list:
    return [map_node(node) for node in nodes]


def render_tree(roots: Iterable[TreeNode]) -> str:
    """
    JSON text of {"roots": [...]} with nested "children" lists.

    Built with an explicit stack; deep chains never recurse.
    """
    parts = ['{"roots": [']
    stack: list = [(root, index > 0) for index, root in reversed(list(enumerate(roots)))]
    while stack:
        item = stack.pop()
        if isinstance(item, str):
            parts.append(item)
            continue
        tree_node, comma = item
        if comma:
            parts.append(", ")
        fields = json.dumps(map_node(tree_node.node), ensure_ascii=False)
        parts.append(fields[:-1] + ', "children": [')
        stack.append("]}")
        stack.extend(
            (child, index > 0) for index, child in reversed(list(enumerate(tree_node.children)))
        )
    parts.append("]}")
    return "".join(parts)


def map_error(error: Error) -> Dict[str, Any]:
    return {
        "error": error.code.name,
        "message": error.message,
        "context": dict(error.context),
    }


def map_decision(decision: PendingDecision) -> Dict[str, Any]:
    return {
        "decision": decision.kind.value,
        "message": decision.message,
        "choices": [choice.value for choice in decision.choices],
        "collision": map_node(decision.collision) if decision.collision else None,
        "suggestedName": decision.suggested_name,
        "affectedIds": list(decision.affected_ids),
    }


def map_issue(issue: StructuralIssue) -> Dict[str, Any]:
    return {"nodeId": issue.node_id, "code": issue.code, "message": issue.message}


def map_import_report(report: ImportReport) -> Dict[str, Any]:
    return {
        "added": report.added,
        "updated": report.updated,
        "skipped": report.skipped,
        "dropped": report.dropped,
        "issues": [map_issue(issue) for issue in report.issues],
        "nodeCount": len(report.nodes),
    }


def error_status(error: Error) -> int:
    if error.code is ErrorCode.NODE_NOT_FOUND:
        return 404
    if error.code is ErrorCode.MALFORMED_PAYLOAD:
        return 400
    return 422


def map_outcome(outcome: MutationOutcome, applied_status: int = 200) -> Tuple[int, Dict[str, Any]]:
    """
    Map a MutationOutcome to (status_code, body).

    APPLIED -> applied_status, REJECTED -> 4xx with the error,
    NEEDS_DECISION -> 409 with the pending decision.
    """
    if outcome.status is OutcomeStatus.APPLIED:
        return applied_status, {
            "status": outcome.status.value,
            "node": map_node(outcome.node) if outcome.node else None,
            "removedIds": list(outcome.removed_ids),
        }
    if outcome.status is OutcomeStatus.NEEDS_DECISION:
        body = map_decision(outcome.decision)
        body["status"] = outcome.status.value
        return 409, body

    body = map_error(outcome.error)
    body["status"] = outcome.status.value
    return error_status(outcome.error), body
