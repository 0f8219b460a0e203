"""
Hierarchy Consistency Engine

RESPONSIBILITY: Structural rules over the flat node collection
ALLOWED INPUTS: Node collections and NodeDrafts (contracts only)
OUTPUTS: Result, MutationOutcome, TreeNode forests

WHAT THIS LAYER MUST NOT DO:
============================
- Persist anything (storage/ does that)
- Log, print or prompt (decisions are returned as NEEDS_DECISION)
- Hold state between calls; every function takes the collection explicitly
"""

from .rules import validate_parent, eligible_parents
from .tree import build_tree, flatten_tree, tree_sort_key
from .topology import HierarchyTopology, descendant_ids
from .duplicates import find_collision, next_indexed_name, same_slot, slot_siblings
from .mutations import (
    add_node, edit_node, delete_node, clear_nodes, load_sample, generate_node_id
)

__all__ = [
    "validate_parent", "eligible_parents",
    "build_tree", "flatten_tree", "tree_sort_key",
    "HierarchyTopology", "descendant_ids",
    "find_collision", "next_indexed_name", "same_slot", "slot_siblings",
    "add_node", "edit_node", "delete_node", "clear_nodes", "load_sample",
    "generate_node_id",
]
