"""
Tests for the in-memory tree builder, active filtering and the tree arena
"""
import logging

import pytest

from marketplace.services.category_navigation import flatten_for_picker
from marketplace.services.category_tree import TreeArena, build_tree, filter_active


def _edges(tree):
    return {(c.id, c.parent_id) for c in tree.category_map.values()}, [r.id for r in tree.root_categories]


def _shape(nodes):
    return [(n.id, _shape(n.children)) for n in nodes]


@pytest.mark.unit
class TestBuildTree:

    def test_end_to_end_scenario(self, sample_flat):
        tree = build_tree(sample_flat)
        assert [c.id for c in tree.root_categories] == [1]
        a = tree.category_map[1]
        assert [c.id for c in a.children] == [2, 4]
        assert [c.id for c in tree.category_map[2].children] == [3]
        assert tree.category_map[3].children == []

    def test_unordered_input(self, sample_flat):
        shuffled = [sample_flat[2], sample_flat[3], sample_flat[1], sample_flat[0]]
        tree = build_tree(shuffled)
        # Equal display_order, so siblings keep the order they arrived in
        assert _shape(tree.root_categories) == [(1, [(4, []), (2, [(3, [])])])]

    def test_children_follow_display_order_then_input_order(self, make_category):
        flat = [
            make_category(1, "Root"),
            make_category(2, "Late", 1, display_order=5),
            make_category(3, "First tie", 1, display_order=1),
            make_category(4, "Second tie", 1, display_order=1),
        ]
        tree = build_tree(flat)
        assert [c.id for c in tree.category_map[1].children] == [3, 4, 2]

    def test_orphan_is_promoted_to_root(self, make_category, caplog):
        flat = [make_category(1, "Root"), make_category(2, "Orphan", 99)]
        with caplog.at_level(logging.WARNING, logger="marketplace.services.category_tree"):
            tree = build_tree(flat)
        assert {c.id for c in tree.root_categories} == {1, 2}
        assert 2 in tree.category_map
        assert "missing parent 99" in caplog.text

    def test_round_trip_flatten_and_rebuild(self, sample_flat, make_category):
        flat = sample_flat + [make_category(5, "E", 99), make_category(6, "F", 3)]
        tree = build_tree(flat)
        flattened = flatten_for_picker(tree.root_categories)
        rebuilt = build_tree(flattened)
        assert _edges(rebuilt) == _edges(tree)
        assert _shape(rebuilt.root_categories) == _shape(tree.root_categories)

    def test_idempotent_and_input_untouched(self, sample_flat):
        first = build_tree(sample_flat)
        second = build_tree(sample_flat)
        assert _shape(first.root_categories) == _shape(second.root_categories)
        assert all(c.children == [] for c in sample_flat)

    def test_levels_follow_parent_chain(self, sample_flat):
        tree = build_tree(sample_flat)
        for category in tree.category_map.values():
            if category.parent_id is None:
                assert category.level == 0
            else:
                assert category.level == tree.category_map[category.parent_id].level + 1

    def test_self_parent_is_broken(self, make_category, caplog):
        flat = [make_category(1, "Root"), make_category(2, "Loop", 2)]
        with caplog.at_level(logging.WARNING):
            tree = build_tree(flat)
        assert {c.id for c in tree.root_categories} == {1, 2}
        assert tree.category_map[2].children == []
        assert "parent cycle" in caplog.text

    def test_two_node_cycle_is_broken(self, make_category):
        flat = [make_category(1, "Root"), make_category(2, "X", 3), make_category(3, "Y", 2)]
        tree = build_tree(flat)
        # The first cycle member in input order becomes a root; the other stays its child
        assert [c.id for c in tree.root_categories] == [1, 2]
        assert [c.id for c in tree.category_map[2].children] == [3]
        assert tree.category_map[3].children == []

    def test_cycle_tail_stays_attached(self, make_category):
        flat = [
            make_category(1, "A"),
            make_category(4, "Tail", 3),
            make_category(2, "X", 3),
            make_category(3, "Y", 2),
        ]
        tree = build_tree(flat)
        assert [c.id for c in tree.root_categories] == [1, 2]
        assert [c.id for c in tree.category_map[2].children] == [3]
        assert [c.id for c in tree.category_map[3].children] == [4]
        assert tree.category_map[4].children == []

    def test_accepts_dicts(self):
        tree = build_tree([
            {"id": 1, "name": "A", "slug": "a"},
            {"id": 2, "name": "B", "slug": "b", "parent_id": 1},
        ])
        assert [c.id for c in tree.category_map[1].children] == [2]

    def test_empty_input(self):
        tree = build_tree([])
        assert tree.root_categories == []
        assert tree.category_map == {}


@pytest.mark.unit
class TestFilterActive:

    def test_inactive_ancestor_hides_subtree(self, make_category):
        flat = [
            make_category(1, "A"),
            make_category(2, "B", 1, is_active=False),
            make_category(3, "C", 2),
            make_category(4, "D", 1),
        ]
        assert [c.id for c in filter_active(flat)] == [1, 4]

    def test_orphan_with_active_flag_is_kept(self, make_category):
        flat = [make_category(1, "A", 42)]
        assert [c.id for c in filter_active(flat)] == [1]

    def test_filtered_tree_has_no_promoted_children(self, make_category):
        flat = [
            make_category(1, "A", is_active=False),
            make_category(2, "B", 1),
        ]
        tree = build_tree(filter_active(flat))
        assert tree.root_categories == []


@pytest.mark.unit
class TestTreeArena:

    def test_collapsed_shows_roots_only(self, sample_flat, make_category):
        arena = TreeArena.from_tree(build_tree(sample_flat + [make_category(5, "E")]))
        rows = arena.visible_rows()
        assert [(r.category.id, r.depth, r.has_children, r.is_expanded) for r in rows] == [
            (1, 0, True, False),
            (5, 0, False, False),
        ]

    def test_expand_state_is_passed_in(self, sample_flat):
        arena = TreeArena.from_tree(build_tree(sample_flat))
        rows = arena.visible_rows({1})
        assert [(r.category.id, r.depth) for r in rows] == [(1, 0), (2, 1), (4, 1)]
        rows = arena.visible_rows({1, 2})
        assert [(r.category.id, r.depth) for r in rows] == [(1, 0), (2, 1), (3, 2), (4, 1)]

    def test_expanding_hidden_node_has_no_effect(self, sample_flat):
        arena = TreeArena.from_tree(build_tree(sample_flat))
        assert [r.category.id for r in arena.visible_rows({2})] == [1]

    def test_index_arrays(self, sample_flat):
        arena = TreeArena.from_tree(build_tree(sample_flat))
        assert [n.id for n in arena.nodes] == [1, 2, 3, 4]
        assert arena.parent == [None, 0, 1, 0]
        assert arena.children == [[1, 3], [2], [], []]
        assert arena.roots == [0]

    def test_ancestor_ids(self, sample_flat):
        arena = TreeArena.from_tree(build_tree(sample_flat))
        assert arena.ancestor_ids(3) == [1, 2]
        assert arena.ancestor_ids(1) == []
        assert arena.ancestor_ids(404) == []

    def test_deep_chain_does_not_recurse(self, make_category):
        flat = [make_category(1, "N1")] + [make_category(i, f"N{i}", i - 1) for i in range(2, 3001)]
        arena = TreeArena.from_tree(build_tree(flat))
        rows = arena.visible_rows(range(1, 3001))
        assert len(rows) == 3000
        assert rows[-1].depth == 2999
