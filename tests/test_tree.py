"""
Tree Builder Tests
==================

The tree is the display and export order of the registry:
- System, then Subsystem, then Component at every level
- name case-insensitively within a type
- dangling parents and stored cycles never lose a node
"""

import random

from asset_registry.contracts.nodes import Node, NodeKind
from asset_registry.core.tree import build_tree, flatten_tree


def make(node_id, kind, parent_id=None, name=None):
    return Node(id=node_id, name=name or node_id, kind=kind, parent_id=parent_id)


def ids(roots):
    return [node.id for node in flatten_tree(roots)]


SAMPLE = (
    make("sys", NodeKind.system(), name="Plant"),
    make("cool", NodeKind.subsystem(1), "sys", name="cooling"),
    make("air", NodeKind.subsystem(1), "sys", name="Air"),
    make("pump", NodeKind.component(), "cool", name="Pump"),
    make("loop", NodeKind.subsystem(2), "cool", name="Loop"),
    make("valve", NodeKind.component(), "loop", name="Valve"),
    make("fan", NodeKind.component(), "air", name="fan"),
)


class TestBuildTree:

    def test_empty_collection(self):
        """No nodes, no roots."""
        assert build_tree([]) == ()

    def test_nesting_and_order(self):
        """Children nest under parents; Subsystems sort before Components."""
        roots = build_tree(SAMPLE)
        assert len(roots) == 1
        assert roots[0].node.id == "sys"
        assert [child.node.name for child in roots[0].children] == ["Air", "cooling"]

        cooling = roots[0].children[1]
        # Loop (Subsystem) before Pump (Component)
        assert [child.node.id for child in cooling.children] == ["loop", "pump"]

    def test_pre_order_flatten(self):
        """Flattening walks the tree depth-first in display order."""
        assert ids(build_tree(SAMPLE)) == ["sys", "air", "fan", "cool", "loop", "valve", "pump"]

    def test_order_independent_of_input_order(self):
        """Shuffling the input never changes the tree."""
        expected = build_tree(SAMPLE)
        shuffled = list(SAMPLE)
        rng = random.Random(7)
        for _ in range(10):
            rng.shuffle(shuffled)
            assert build_tree(shuffled) == expected

    def test_input_not_mutated(self):
        """The input sequence is left untouched."""
        nodes = list(SAMPLE)
        before = list(nodes)
        build_tree(nodes)
        assert nodes == before

    def test_dangling_parent_becomes_root(self):
        """A node whose parent is missing is rendered as a root."""
        nodes = [
            make("sys", NodeKind.system()),
            make("orphan", NodeKind.component(), "ghost"),
        ]
        roots = build_tree(nodes)
        assert [r.node.id for r in roots] == ["sys", "orphan"]

    def test_same_name_tie_broken_by_id(self):
        """Identical names still produce a total order."""
        nodes = [
            make("sys", NodeKind.system()),
            make("b", NodeKind.subsystem(1), "sys", name="Same"),
            make("a", NodeKind.subsystem(1), "sys", name="Same"),
        ]
        assert ids(build_tree(nodes)) == ["sys", "a", "b"]


class TestCorruptedStructure:

    def test_two_node_cycle_terminates(self):
        """A stored parent cycle is broken, every node appears once."""
        nodes = [
            make("x", NodeKind.subsystem(1), "y", name="X"),
            make("y", NodeKind.subsystem(2), "x", name="Y"),
        ]
        flat = ids(build_tree(nodes))
        assert sorted(flat) == ["x", "y"]

    def test_cycle_broken_at_smallest_member(self):
        """The smallest-sorting cycle member becomes the root."""
        nodes = [
            make("x", NodeKind.subsystem(1), "y", name="Beta"),
            make("y", NodeKind.subsystem(1), "x", name="Alpha"),
            make("c", NodeKind.component(), "x", name="Aaa"),
        ]
        roots = build_tree(nodes)
        assert len(roots) == 1
        assert roots[0].node.id == "y"
        assert ids(roots) == ["y", "x", "c"]

    def test_self_parented_node(self):
        """A node listing itself as parent is still rendered once."""
        nodes = [make("loop", NodeKind.subsystem(1), "loop")]
        roots = build_tree(nodes)
        assert [r.node.id for r in roots] == ["loop"]
        assert roots[0].children == ()

    def test_deep_chain_does_not_recurse(self):
        """Very deep hierarchies build without hitting the recursion limit."""
        nodes = [make("s0", NodeKind.system())]
        parent = "s0"
        for i in range(1, 3000):
            node_id = f"s{i}"
            nodes.append(make(node_id, NodeKind.subsystem(i), parent))
            parent = node_id
        flat = flatten_tree(build_tree(nodes))
        assert len(flat) == 3000

    def test_deep_chain_serializes_without_recursion(self):
        """to_dict nests a 3000-deep chain without hitting the recursion limit."""
        nodes = [make("s0", NodeKind.system())]
        for i in range(1, 3000):
            nodes.append(make(f"s{i}", NodeKind.subsystem(i), f"s{i - 1}"))
        data = build_tree(nodes)[0].to_dict()

        depth = 0
        while data["children"]:
            assert len(data["children"]) == 1
            data = data["children"][0]
            depth += 1
        assert depth == 2999
        assert data["id"] == "s2999"

    def test_to_dict_keeps_sibling_order(self):
        """Children serialize in tree order."""
        data = build_tree(SAMPLE)[0].to_dict()
        assert [child["name"] for child in data["children"]] == ["Air", "cooling"]
        assert [c["id"] for c in data["children"][1]["children"]] == ["loop", "pump"]

    def test_duplicate_ids_collapse_to_last_record(self):
        """A repeated id is placed once, using the last record carrying it."""
        nodes = [
            make("sys", NodeKind.system(), name="Plant"),
            make("pump", NodeKind.component(), "sys", name="Old pump"),
            make("pump", NodeKind.component(), "sys", name="New pump"),
        ]
        flat = flatten_tree(build_tree(nodes))
        assert [node.id for node in flat] == ["sys", "pump"]
        assert flat[1].name == "New pump"
