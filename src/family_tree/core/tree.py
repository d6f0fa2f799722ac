"""
Recursive traversals over a forest of persons.

Every function takes the list of root persons of one family
(``Family.members``) and walks it depth-first in pre-order, which is
the order the tree is displayed and exported in.
"""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass
from typing import Callable, Iterator

from family_tree.core.models import Gender, Person


@dataclass
class TreeEntry:
    """A person visited during flattening, with its position in the tree."""
    person: Person
    level: int
    parent: Person | None = None


def iter_persons(
    members: list[Person],
    level: int = 0,
    parent: Person | None = None,
) -> Iterator[TreeEntry]:
    """Yield every person in pre-order with its generation level and parent."""
    for person in members:
        yield TreeEntry(person=person, level=level, parent=parent)
        if person.children:
            yield from iter_persons(person.children, level + 1, person)


def flatten(members: list[Person]) -> list[Person]:
    """Return every person of the forest in pre-order."""
    return [entry.person for entry in iter_persons(members)]


def find_person(members: list[Person], person_id: int) -> Person | None:
    """Find a person anywhere in the forest."""
    for person in members:
        if person.id == person_id:
            return person
        if person.children:
            found = find_person(person.children, person_id)
            if found is not None:
                return found
    return None


def find_parent(members: list[Person], person_id: int) -> Person | None:
    """Return the node whose children contain ``person_id`` (None for roots)."""
    for person in members:
        for child in person.children:
            if child.id == person_id:
                return person
        if person.children:
            found = find_parent(person.children, person_id)
            if found is not None:
                return found
    return None


def insert_under(members: list[Person], person: Person, parent_id: int) -> bool:
    """Append ``person`` to the children of ``parent_id``."""
    parent = find_person(members, parent_id)
    if parent is None:
        return False
    person.parent_id = parent.id
    parent.children.append(person)
    return True


def remove_person(members: list[Person], person_id: int) -> Person | None:
    """
    Remove a person and its whole subtree.

    Descendants go with the removed node; they are never re-parented.
    Returns the removed node, or None if the ID is not in the forest.
    """
    for index, person in enumerate(members):
        if person.id == person_id:
            return members.pop(index)
        if person.children:
            removed = remove_person(person.children, person_id)
            if removed is not None:
                return removed
    return None


def is_descendant(members: list[Person], ancestor_id: int, person_id: int) -> bool:
    """True if ``person_id`` sits in the subtree rooted at ``ancestor_id``."""
    ancestor = find_person(members, ancestor_id)
    if ancestor is None:
        return False
    return find_person(ancestor.children, person_id) is not None


def max_depth(members: list[Person]) -> int:
    """
    Number of generations in the forest.

    0 for an empty forest, 1 when there are only roots.
    """
    if not members:
        return 0
    return max(1 + max_depth(person.children) for person in members)


def generation_of(members: list[Person], person_id: int, level: int = 0) -> int | None:
    """0-based generation of a person, None if it is not in the forest."""
    for person in members:
        if person.id == person_id:
            return level
        if person.children:
            found = generation_of(person.children, person_id, level + 1)
            if found is not None:
                return found
    return None


def count_persons(members: list[Person]) -> int:
    return sum(1 + count_persons(person.children) for person in members)


def count_by_gender(members: list[Person]) -> dict[Gender, int]:
    counts = Counter(person.gender for person in flatten(members))
    return {gender: counts.get(gender, 0) for gender in Gender}


def duplicate_ids(members: list[Person]) -> set[int]:
    """IDs that appear more than once in the forest."""
    counts = Counter(person.id for person in flatten(members))
    return {person_id for person_id, n in counts.items() if n > 1}


def relink(members: list[Person], parent: Person | None = None) -> None:
    """Reset every ``parent_id`` from the nesting."""
    for person in members:
        person.parent_id = parent.id if parent else None
        if person.children:
            relink(person.children, person)


def clone_forest(
    members: list[Person],
    id_factory: Callable[[], int],
    parent_id: int | None = None,
) -> list[Person]:
    """
    Deep-copy a forest with fresh IDs.

    ``parent_id`` references are remapped to the cloned parents so the
    copy keeps the children/parent agreement.
    """
    clones = []
    for person in members:
        clone = person.model_copy(deep=True)
        clone.id = id_factory()
        clone.parent_id = parent_id
        clone.children = clone_forest(person.children, id_factory, clone.id)
        clones.append(clone)
    return clones


def build_tree_from_flat(persons: list[Person]) -> list[Person]:
    """
    Rebuild a forest from a flat list using ``parent_id``.

    Persons whose parent is not in the list, or whose parent chain loops
    back to themselves, become roots. Input order is kept among siblings.
    """
    by_id: dict[int, Person] = {}
    for person in persons:
        person.children = []
        by_id[person.id] = person
    # Links as given; roots get their parent_id cleared below
    parents = {person.id: person.parent_id for person in persons}

    roots = []
    for person in persons:
        parent = by_id.get(person.parent_id) if person.parent_id is not None else None
        if parent is not None and not _loops_back(person.id, parents):
            parent.children.append(person)
        else:
            person.parent_id = None
            roots.append(person)
    return roots


def _loops_back(person_id: int, parents: dict[int, int | None]) -> bool:
    seen: set[int] = set()
    current = parents.get(person_id)
    while current is not None and current in parents:
        if current == person_id:
            return True
        if current in seen:
            return False
        seen.add(current)
        current = parents[current]
    return False
