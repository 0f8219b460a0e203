"""
Asset Registry CLI
==================

Command-line presentation layer over a file-backed AssetRegistry.

COMMANDS:
- list:    Flat node table (optional search)
- tree:    Hierarchy as an indented tree
- add:     Add a node
- edit:    Edit a node
- delete:  Delete a node (--yes confirms a cascade)
- clear:   Remove everything (--yes required)
- sample:  Load the demonstration hierarchy (--yes required)
- export:  Write JSON / CSV / pivot CSV to stdout or a file
- import:  Merge a JSON array file
- audit:   Report structural issues in the stored data

USAGE:
    python -m asset_registry.cli [--storage-dir DIR] COMMAND [ARGS]
"""
import argparse
import sys
from typing import Iterable, Optional

from .contracts.base import millis_to_iso
from .contracts.nodes import NodeDraft, TreeNode
from .contracts.events import ImportPolicy, MutationOutcome, Resolution
from .engine import AssetRegistry, RegistryConfig
from .storage import StorageConfig


def build_registry(storage_dir: str) -> AssetRegistry:
    config = RegistryConfig(storage=StorageConfig(backend_type="file", storage_dir=storage_dir))
    return AssetRegistry(config)


def report_outcome(outcome: MutationOutcome) -> int:
    """Print an outcome; returns the process exit code."""
    if outcome.is_applied:
        if outcome.node is not None:
            print(f"[OK] {outcome.node.type.value} '{outcome.node.name}' ({outcome.node.id})")
        if outcome.removed_ids:
            print(f"[OK] Removed {len(outcome.removed_ids)} node(s)")
        return 0
    if outcome.needs_decision:
        decision = outcome.decision
        print(f"[?] {decision.message}")
        if decision.choices:
            print(f"    Choices: {', '.join(c.value for c in decision.choices)} (use --on-collision)")
        if decision.suggested_name:
            print(f"    Indexed name would be: {decision.suggested_name}")
        if decision.affected_ids and not decision.choices:
            print(f"    Affected: {', '.join(decision.affected_ids)} (use --yes to confirm)")
        elif not decision.choices:
            print("    Use --yes to confirm")
        return 2
    print(f"[FAIL] {outcome.error.code.name}: {outcome.error.message}")
    return 1


def _print_tree(roots: Iterable[TreeNode]):
    stack = [(root, 0) for root in reversed(tuple(roots))]
    while stack:
        current, depth = stack.pop()
        node = current.node
        suffix = f" (L{node.level})" if node.level is not None else ""
        print(f"{'    ' * depth}[{node.type.value}] {node.name}{suffix}  {node.id}")
        stack.extend((child, depth + 1) for child in reversed(current.children))


def _resolution(value: Optional[str]) -> Optional[Resolution]:
    return Resolution(value) if value else None


def cmd_list(args, registry: AssetRegistry) -> int:
    nodes = registry.search(args.query)
    if not nodes:
        print("No data yet")
        return 0
    print(f"{'NAME':<30} | {'TYPE':<10} | LVL | {'PARENT':<20} | {'ID':<12} | CREATED")
    print("-" * 110)
    for node in nodes:
        parent = registry.get(node.parent_id) if node.parent_id else None
        level = str(node.level) if node.level is not None else "-"
        print(
            f"{node.name[:30]:<30} | {node.type.value:<10} | {level:<3} | "
            f"{(parent.name if parent else '-')[:20]:<20} | {node.id:<12} | "
            f"{millis_to_iso(node.created_at)}"
        )
    return 0


def cmd_tree(args, registry: AssetRegistry) -> int:
    roots = registry.tree()
    if not roots:
        print("No nodes yet. Add a System first, then Subsystems/Components.")
        return 0
    _print_tree(roots)
    return 0


def cmd_add(args, registry: AssetRegistry) -> int:
    draft = NodeDraft(name=args.name, type=args.type, level=args.level, parent_id=args.parent)
    return report_outcome(registry.add(draft, _resolution(args.on_collision)))


def cmd_edit(args, registry: AssetRegistry) -> int:
    existing = registry.get(args.node_id)
    if existing is None:
        print(f"[FAIL] NODE_NOT_FOUND: Node {args.node_id} does not exist")
        return 1
    draft = NodeDraft(
        name=args.name if args.name is not None else existing.name,
        type=args.type or existing.type,
        level=args.level if args.level is not None else existing.level,
        parent_id=args.parent if args.parent is not None else existing.parent_id
    )
    return report_outcome(registry.edit(args.node_id, draft, _resolution(args.on_collision)))


def cmd_delete(args, registry: AssetRegistry) -> int:
    return report_outcome(registry.delete(args.node_id, confirm_cascade=args.yes))


def cmd_clear(args, registry: AssetRegistry) -> int:
    return report_outcome(registry.clear(confirm=args.yes))


def cmd_sample(args, registry: AssetRegistry) -> int:
    return report_outcome(registry.load_sample(confirm=args.yes))


def cmd_export(args, registry: AssetRegistry) -> int:
    if args.format == "json":
        text = registry.export_json()
    elif args.format == "csv":
        text = registry.export_csv()
    else:
        text = registry.export_pivot_csv()

    if args.output:
        with open(args.output, 'w', encoding='utf-8', newline='') as f:
            f.write(text)
        print(f"[*] Wrote {args.format} export to {args.output}")
    else:
        sys.stdout.write(text)
    return 0


def cmd_import(args, registry: AssetRegistry) -> int:
    with open(args.file, 'r', encoding='utf-8') as f:
        text = f.read()
    result = registry.import_json(text, ImportPolicy(args.policy))
    if result.is_failure:
        print(f"[FAIL] {result.error.code.name}: {result.error.message}")
        return 1
    report = result.value
    print(
        f"[OK] added={report.added} updated={report.updated} "
        f"skipped={report.skipped} dropped={report.dropped}"
    )
    for issue in report.issues:
        print(f"[WARN] {issue.node_id}: {issue.code} - {issue.message}")
    return 0


def cmd_audit(args, registry: AssetRegistry) -> int:
    issues = registry.audit()
    if not issues:
        print("[PASS] No structural issues.")
        return 0
    for issue in issues:
        print(f"[WARN] {issue.node_id}: {issue.code} - {issue.message}")
    print(f"[FAIL] Found {len(issues)} issue(s).")
    return 1


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Asset Registry & Hierarchy")
    parser.add_argument("--storage-dir", default="./data/registry", help="Path to storage directory")

    subparsers = parser.add_subparsers(dest="command")

    list_parser = subparsers.add_parser("list", help="List nodes")
    list_parser.add_argument("query", nargs="?", default=None, help="Search name/type/ID")

    subparsers.add_parser("tree", help="Show hierarchy")

    add_parser = subparsers.add_parser("add", help="Add a node")
    add_parser.add_argument("name")
    add_parser.add_argument("type", choices=["System", "Subsystem", "Component"])
    add_parser.add_argument("--level", type=int, default=None)
    add_parser.add_argument("--parent", default=None, help="Parent node ID")
    add_parser.add_argument("--on-collision", choices=[r.value for r in Resolution], default=None)

    edit_parser = subparsers.add_parser("edit", help="Edit a node")
    edit_parser.add_argument("node_id")
    edit_parser.add_argument("--name", default=None)
    edit_parser.add_argument("--type", choices=["System", "Subsystem", "Component"], default=None)
    edit_parser.add_argument("--level", type=int, default=None)
    edit_parser.add_argument("--parent", default=None, help="Parent node ID")
    edit_parser.add_argument(
        "--on-collision", choices=[Resolution.INDEX.value, Resolution.ABORT.value], default=None
    )

    delete_parser = subparsers.add_parser("delete", help="Delete a node and its descendants")
    delete_parser.add_argument("node_id")
    delete_parser.add_argument("--yes", action="store_true", help="Confirm cascade delete")

    clear_parser = subparsers.add_parser("clear", help="Clear all data")
    clear_parser.add_argument("--yes", action="store_true", help="Confirm")

    sample_parser = subparsers.add_parser("sample", help="Load sample data")
    sample_parser.add_argument("--yes", action="store_true", help="Confirm")

    export_parser = subparsers.add_parser("export", help="Export nodes")
    export_parser.add_argument("format", choices=["json", "csv", "pivot"])
    export_parser.add_argument("--output", "-o", default=None)

    import_parser = subparsers.add_parser("import", help="Import a JSON array")
    import_parser.add_argument("file")
    import_parser.add_argument(
        "--policy", choices=[p.value for p in ImportPolicy], default=ImportPolicy.SKIP_EXISTING.value
    )

    subparsers.add_parser("audit", help="Report structural issues")
    return parser


COMMANDS = {
    "list": cmd_list,
    "tree": cmd_tree,
    "add": cmd_add,
    "edit": cmd_edit,
    "delete": cmd_delete,
    "clear": cmd_clear,
    "sample": cmd_sample,
    "export": cmd_export,
    "import": cmd_import,
    "audit": cmd_audit,
}


def main(argv=None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    handler = COMMANDS.get(args.command)
    if handler is None:
        parser.print_help()
        return 0
    return handler(args, build_registry(args.storage_dir))


if __name__ == "__main__":
    sys.exit(main())
