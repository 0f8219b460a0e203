"""
Duplicate Resolver Tests
========================

Names are unique per slot (type, parent, level for Subsystems),
compared trimmed and case-insensitively. Indexed names fill gaps.
"""

import pytest

from asset_registry.contracts.nodes import Node, NodeKind
from asset_registry.core.duplicates import (
    find_collision, next_indexed_name, normalize_name, same_slot, split_indexed_name
)


def make(node_id, kind, parent_id=None, name=None):
    return Node(id=node_id, name=name or node_id, kind=kind, parent_id=parent_id)


class TestSlots:

    def test_same_slot_requires_type_and_parent(self):
        """Different parents or types are different slots."""
        a = make("a", NodeKind.component(), "p1", name="Pump")
        assert same_slot(a, make("b", NodeKind.component(), "p1"))
        assert not same_slot(a, make("c", NodeKind.component(), "p2"))
        assert not same_slot(a, make("d", NodeKind.subsystem(1), "p1"))

    def test_level_discriminates_subsystems(self):
        """Subsystems at different levels under one parent do not collide."""
        a = make("a", NodeKind.subsystem(1), "p")
        b = make("b", NodeKind.subsystem(2), "p")
        assert not same_slot(a, b)

    def test_collision_is_case_and_space_insensitive(self):
        """'  pump ' collides with 'Pump'."""
        existing = [make("a", NodeKind.component(), "s", name="Pump")]
        candidate = make("", NodeKind.component(), "s", name="  pump ")
        assert find_collision(existing, candidate).id == "a"

    def test_no_collision_across_parents(self):
        """Same name under another parent is fine."""
        existing = [make("a", NodeKind.component(), "s1", name="Pump")]
        candidate = make("", NodeKind.component(), "s2", name="Pump")
        assert find_collision(existing, candidate) is None

    def test_ignore_id_skips_self(self):
        """Editing a node never collides with itself."""
        existing = [make("a", NodeKind.component(), "s", name="Pump")]
        candidate = make("a", NodeKind.component(), "s", name="PUMP")
        assert find_collision(existing, candidate, ignore_id="a") is None

    def test_normalize_name(self):
        """Trimmed and casefolded."""
        assert normalize_name("  Main Pump ") == "main pump"


class TestIndexedNames:

    @pytest.mark.parametrize("name,expected", [
        ("Router(2)", ("Router", 2)),
        ("Router (10)", ("Router ", 10)),
        ("Router", ("Router", None)),
        ("(3)", ("(3)", None)),
    ])
    def test_split(self, name, expected):
        """Only a trailing '(digits)' with a non-empty root is an index."""
        assert split_indexed_name(name) == expected

    def test_first_index_is_one(self):
        """The first indexed variant is (1)."""
        assert next_indexed_name("Router", ["Router"]) == "Router(1)"

    def test_fills_gaps(self):
        """The smallest unused index is chosen."""
        siblings = ["Router", "Router(1)", "Router(3)"]
        assert next_indexed_name("Router", siblings) == "Router(2)"

    def test_indexing_an_indexed_name_uses_its_root(self):
        """Indexing 'Router(1)' continues the Router sequence."""
        siblings = ["Router", "Router(1)"]
        assert next_indexed_name("Router(1)", siblings) == "Router(2)"

    def test_sibling_roots_compared_case_insensitively(self):
        """'router(1)' occupies index 1 for 'Router'."""
        assert next_indexed_name("Router", ["Router", "router(1)"]) == "Router(2)"

    def test_unrelated_siblings_ignored(self):
        """Other names do not consume indexes."""
        assert next_indexed_name("Pump", ["Valve(1)", "Pumpkin(1)"]) == "Pump(1)"
