"""
In-memory category hierarchy.

The record store hands out flat category rows. ``build_tree`` links them into
parent -> children lists plus an id-keyed map. The result is a disposable view:
it is rebuilt from scratch on every fetch and never patched in place, so these
functions never mutate their input.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Iterable, Optional

from marketplace.schemas.category import CategoryOut

logger = logging.getLogger(__name__)


@dataclass
class CategoryTree:
    root_categories: list[CategoryOut]
    category_map: dict[int, CategoryOut]


def sibling_sort_key(category: CategoryOut) -> int:
    """Siblings sort by display_order; ``list.sort`` keeps input order for ties."""
    return category.display_order or 0


def to_record(item: Any) -> CategoryOut:
    """Copy a CategoryOut, dict or ORM row into a fresh record with no children."""
    if isinstance(item, CategoryOut):
        return item.model_copy(update={"children": []})
    return CategoryOut.model_validate(item).model_copy(update={"children": []})


def _reachable_ids(roots: Iterable[CategoryOut]) -> set[int]:
    seen: set[int] = set()
    stack = list(roots)
    while stack:
        node = stack.pop()
        if node.id in seen:
            continue
        seen.add(node.id)
        stack.extend(node.children)
    return seen


def build_tree(flat_categories: Iterable[Any]) -> CategoryTree:
    """
    Build the category forest from an unordered flat list.

    Categories whose parent is missing from the list (orphans) are promoted to
    roots instead of being dropped. Parent cycles coming from corrupt data are
    broken by promoting the first member of each cycle (in input order), so the
    result is always a forest.
    """
    category_map: dict[int, CategoryOut] = {}
    for item in flat_categories:
        record = to_record(item)
        category_map[record.id] = record

    root_categories: list[CategoryOut] = []
    for record in category_map.values():
        parent_id = record.parent_id
        if parent_id is None:
            root_categories.append(record)
        elif parent_id in category_map:
            category_map[parent_id].children.append(record)
        else:
            logger.warning(
                "Category %s (%s) references missing parent %s; treating it as a root",
                record.id, record.slug, parent_id,
            )
            root_categories.append(record)

    reachable = _reachable_ids(root_categories)
    if len(reachable) < len(category_map):
        position = {category_id: index for index, category_id in enumerate(category_map)}
        for record in category_map.values():
            if record.id in reachable:
                continue
            # Unreachable records always lead into a cycle; a tail hanging off it stays attached
            walk: list[int] = []
            current_id = record.id
            while current_id not in walk:
                walk.append(current_id)
                current_id = category_map[current_id].parent_id
            cycle = walk[walk.index(current_id):]
            promoted = category_map[min(cycle, key=position.__getitem__)]
            parent = category_map[promoted.parent_id]
            parent.children[:] = [child for child in parent.children if child is not promoted]
            root_categories.append(promoted)
            reachable |= _reachable_ids([promoted])
            logger.warning(
                "Category %s (%s) is part of a parent cycle; detached from %s and treated as a root",
                promoted.id, promoted.slug, parent.id,
            )

    root_categories.sort(key=sibling_sort_key)
    for record in category_map.values():
        record.children.sort(key=sibling_sort_key)

    return CategoryTree(root_categories=root_categories, category_map=category_map)


def filter_active(flat_categories: Iterable[Any]) -> list[CategoryOut]:
    """Keep active categories whose whole (resolvable) ancestor chain is active too."""
    records = [to_record(item) for item in flat_categories]
    by_id = {record.id: record for record in records}
    visible: dict[int, bool] = {}

    for record in records:
        chain: list[int] = []
        seen: set[int] = set()
        result = True
        current: Optional[CategoryOut] = record
        while current is not None:
            if current.id in visible:
                result = visible[current.id]
                break
            if current.id in seen:
                break
            seen.add(current.id)
            chain.append(current.id)
            if not current.is_active:
                result = False
                break
            current = by_id.get(current.parent_id) if current.parent_id is not None else None
        for category_id in chain:
            visible[category_id] = result

    return [record for record in records if visible[record.id]]


@dataclass
class TreeRow:
    category: CategoryOut
    depth: int
    has_children: bool
    is_expanded: bool


@dataclass
class TreeArena:
    """
    Flat, index-based copy of a CategoryTree for tree widgets.

    ``nodes[i]`` is a category, ``parent[i]`` the index of its parent (None for
    roots) and ``children[i]`` the indexes of its children in display order.
    Expand/collapse state is passed in by the caller and never stored here.
    """
    nodes: list[CategoryOut] = field(default_factory=list)
    parent: list[Optional[int]] = field(default_factory=list)
    children: list[list[int]] = field(default_factory=list)
    roots: list[int] = field(default_factory=list)
    index: dict[int, int] = field(default_factory=dict)

    @classmethod
    def from_tree(cls, tree: CategoryTree) -> "TreeArena":
        arena = cls()
        stack: list[tuple[CategoryOut, Optional[int]]] = [
            (node, None) for node in reversed(tree.root_categories)
        ]
        while stack:
            node, parent_index = stack.pop()
            if node.id in arena.index:
                continue
            position = len(arena.nodes)
            arena.index[node.id] = position
            arena.nodes.append(node)
            arena.parent.append(parent_index)
            arena.children.append([])
            if parent_index is None:
                arena.roots.append(position)
            else:
                arena.children[parent_index].append(position)
            stack.extend((child, position) for child in reversed(node.children))
        return arena

    def ancestor_ids(self, category_id: int) -> list[int]:
        """Ids from the root down to the category's parent; empty if unknown."""
        position = self.index.get(category_id)
        if position is None:
            return []
        ids: list[int] = []
        parent_index = self.parent[position]
        while parent_index is not None:
            ids.append(self.nodes[parent_index].id)
            parent_index = self.parent[parent_index]
        ids.reverse()
        return ids

    def visible_rows(self, expanded: Iterable[int] = ()) -> list[TreeRow]:
        """Rows a tree widget shows: roots, plus children of every expanded node."""
        expanded_ids = set(expanded)
        rows: list[TreeRow] = []
        stack = [(position, 0) for position in reversed(self.roots)]
        while stack:
            position, depth = stack.pop()
            node = self.nodes[position]
            child_positions = self.children[position]
            is_expanded = node.id in expanded_ids
            rows.append(TreeRow(
                category=node,
                depth=depth,
                has_children=bool(child_positions),
                is_expanded=is_expanded,
            ))
            if is_expanded:
                stack.extend((child, depth + 1) for child in reversed(child_positions))
        return rows
