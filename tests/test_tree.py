"""Tests for recursive tree traversals."""

from __future__ import annotations

import itertools

from family_tree.core import tree
from family_tree.core.models import Gender, Person


def _ids(persons):
    return [p.id for p in persons]


class TestTraversal:

    def test_flatten_is_pre_order(self, sample_members):
        assert _ids(tree.flatten(sample_members)) == [1, 2, 4, 3, 5]

    def test_iter_persons_levels_and_parents(self, sample_members):
        entries = {e.person.id: e for e in tree.iter_persons(sample_members)}

        assert entries[1].level == 0
        assert entries[4].level == 2
        assert entries[4].parent.id == 2
        assert entries[5].parent is None

    def test_find_person(self, sample_members):
        assert tree.find_person(sample_members, 4).given_name == "Lucas"
        assert tree.find_person(sample_members, 99) is None

    def test_find_parent(self, sample_members):
        assert tree.find_parent(sample_members, 4).id == 2
        assert tree.find_parent(sample_members, 1) is None

    def test_is_descendant(self, sample_members):
        assert tree.is_descendant(sample_members, 1, 4)
        assert not tree.is_descendant(sample_members, 2, 3)
        assert not tree.is_descendant(sample_members, 1, 1)

    def test_generation_of(self, sample_members):
        assert tree.generation_of(sample_members, 1) == 0
        assert tree.generation_of(sample_members, 4) == 2
        assert tree.generation_of(sample_members, 99) is None

    def test_max_depth(self, sample_members):
        assert tree.max_depth([]) == 0
        assert tree.max_depth([Person(given_name="A", surname="B")]) == 1
        assert tree.max_depth(sample_members) == 3

    def test_counts(self, sample_members):
        assert tree.count_persons(sample_members) == 5
        assert tree.count_by_gender(sample_members) == {Gender.MALE: 3, Gender.FEMALE: 2}


class TestMutation:

    def test_insert_under(self, sample_members):
        child = Person(id=6, given_name="New", surname="Martin")

        assert tree.insert_under(sample_members, child, 3)
        assert child.parent_id == 3
        assert tree.find_person(sample_members, 3).children == [child]

    def test_insert_under_missing_parent(self, sample_members):
        assert not tree.insert_under(sample_members, Person(id=6, given_name="N", surname="M"), 99)

    def test_remove_takes_subtree(self, sample_members):
        removed = tree.remove_person(sample_members, 2)

        assert removed.id == 2
        assert _ids(removed.children) == [4]
        assert _ids(tree.flatten(sample_members)) == [1, 3, 5]

    def test_remove_missing(self, sample_members):
        assert tree.remove_person(sample_members, 99) is None
        assert tree.count_persons(sample_members) == 5

    def test_duplicate_ids(self, sample_members):
        assert tree.duplicate_ids(sample_members) == set()
        sample_members.append(Person(id=4, given_name="Dup", surname="X"))
        assert tree.duplicate_ids(sample_members) == {4}

    def test_relink(self, sample_members):
        lucas = tree.find_person(sample_members, 4)
        lucas.parent_id = 99
        sample_members[1].parent_id = 1

        tree.relink(sample_members)

        assert lucas.parent_id == 2
        assert sample_members[1].parent_id is None


class TestCloneForest:

    def test_clone_gets_fresh_ids(self, sample_members):
        clones = tree.clone_forest(sample_members, itertools.count(1000).__next__)

        assert _ids(tree.flatten(clones)) == [1000, 1001, 1002, 1003, 1004]
        assert _ids(tree.flatten(sample_members)) == [1, 2, 4, 3, 5]

    def test_clone_remaps_parent_ids(self, sample_members):
        clones = tree.clone_forest(sample_members, itertools.count(1000).__next__)

        for entry in tree.iter_persons(clones):
            expected = entry.parent.id if entry.parent else None
            assert entry.person.parent_id == expected

    def test_clone_is_deep(self, sample_members):
        clones = tree.clone_forest(sample_members, itertools.count(1000).__next__)
        clones[0].children[0].given_name = "Changed"

        assert tree.find_person(sample_members, 2).given_name == "Alice"


class TestBuildTreeFromFlat:

    def test_rebuilds_nesting(self):
        flat = [
            Person(id=1, given_name="A", surname="X"),
            Person(id=2, given_name="B", surname="X", parent_id=1),
            Person(id=3, given_name="C", surname="X", parent_id=2),
            Person(id=4, given_name="D", surname="X", parent_id=1),
        ]

        roots = tree.build_tree_from_flat(flat)

        assert _ids(roots) == [1]
        assert _ids(roots[0].children) == [2, 4]
        assert _ids(roots[0].children[0].children) == [3]

    def test_orphan_becomes_root(self):
        flat = [
            Person(id=1, given_name="A", surname="X"),
            Person(id=2, given_name="B", surname="X", parent_id=999),
        ]

        roots = tree.build_tree_from_flat(flat)

        assert _ids(roots) == [1, 2]
        assert roots[1].parent_id is None

    def test_cycle_members_become_roots(self):
        flat = [
            Person(id=1, given_name="A", surname="X", parent_id=2),
            Person(id=2, given_name="B", surname="X", parent_id=1),
            Person(id=3, given_name="C", surname="X", parent_id=1),
        ]

        roots = tree.build_tree_from_flat(flat)

        assert _ids(roots) == [1, 2]
        assert _ids(roots[0].children) == [3]

    def test_cycle_detection_ignores_input_order(self):
        flat = [
            Person(id=3, given_name="C", surname="X", parent_id=1),
            Person(id=2, given_name="B", surname="X", parent_id=1),
            Person(id=1, given_name="A", surname="X", parent_id=2),
            Person(id=4, given_name="D", surname="X", parent_id=4),
        ]

        roots = tree.build_tree_from_flat(flat)

        assert _ids(roots) == [2, 1, 4]
        assert _ids(roots[1].children) == [3]
        assert all(p.parent_id is None for p in roots)
