"""
Asset Registry Backend

This package maintains a registry of physical/functional assets arranged
in a strict three-kind hierarchy (System -> Subsystem levels -> Component).
Each layer communicates only through explicit contracts, never through
shared mutable state.

LAYER STRUCTURE:
================

1. CONTRACTS (contracts/)
   - Responsibility: Node model, outcomes, errors as data
   - Outputs: Frozen dataclasses shared by every other layer
   - MUST NOT: Depend on any other layer

2. HIERARCHY CONSISTENCY ENGINE (core/)
   - Responsibility: Parent rules, tree building, duplicate resolution,
     Add/Edit/Delete/Clear as pure functions
   - Allowed inputs: Node collections and NodeDrafts
   - Outputs: MutationOutcome, TreeNode forests
   - MUST NOT: Persist, log or prompt

3. PERSISTENCE STORE (storage/)
   - Responsibility: Key-value blob persistence of JSON arrays
   - Outputs: Loaded arrays, StorageWriteResult
   - MUST NOT: Interpret node data

4. MIGRATION (migration/)
   - Responsibility: Normalize and merge legacy snapshots on load

5. INTERCHANGE (interchange/)
   - Responsibility: JSON import/export, flat and pivot CSV export
   - MUST NOT: Re-validate imported structure (issues are reported)

6. QUERY & ANALYSIS (query/)
   - Responsibility: Search, parent options, structure audit
   - MUST NOT: Mutate the collection

7. OBSERVABILITY & AUDIT (observability/)
   - Responsibility: Ordered record of what the registry did

8. PRESENTATION (api/, cli.py)
   - Responsibility: HTTP and command-line surfaces over AssetRegistry
   - MUST NOT: Bypass the registry facade

CONSTRAINTS ENFORCED:
=====================
- Immutability-first: Nodes and outcomes are frozen
- Deterministic: tree order depends only on the set of nodes
- Explicit errors: every rejection carries an ErrorCode
- Failed operations leave the collection unchanged
"""

from .engine import AssetRegistry, RegistryConfig

__all__ = ["AssetRegistry", "RegistryConfig"]
