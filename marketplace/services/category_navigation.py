"""
Derived relationships over a category map: breadcrumbs, descendants, siblings,
picker listings, and lineage (level / ancestors / path) recomputation.

All functions are pure and tolerate inconsistent data: they return partial
results and log instead of raising.
"""
from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass
from typing import Iterable, Mapping, Optional, Union

from marketplace.schemas.category import Breadcrumb, CategoryAncestor, CategoryOut, PickerCategory
from marketplace.services.category_tree import sibling_sort_key

logger = logging.getLogger(__name__)

CategoryMap = Mapping[int, CategoryOut]

PICKER_INDENT = "\u00a0\u00a0"
PICKER_BRANCH = "└─ "


@dataclass
class Lineage:
    level: int
    ancestors: list[CategoryAncestor]
    path: str


@dataclass
class IntegrityIssue:
    category_id: int
    kind: str
    message: str


def build_path(slugs: Iterable[str]) -> str:
    return "/" + "/".join(slugs)


def _children_index(category_map: CategoryMap) -> dict[Optional[int], list[CategoryOut]]:
    index: dict[Optional[int], list[CategoryOut]] = defaultdict(list)
    for category in category_map.values():
        index[category.parent_id].append(category)
    for siblings in index.values():
        siblings.sort(key=sibling_sort_key)
    return index


def get_breadcrumbs(category: Union[CategoryOut, int], category_map: CategoryMap) -> list[Breadcrumb]:
    """
    Root-to-category chain built from the category's stored ancestors plus itself.

    The parent chain is not re-walked, so stale ancestors give a stale (but
    non-failing) chain. An unknown id gives an empty list.
    """
    if not isinstance(category, CategoryOut):
        category = category_map.get(category)
        if category is None:
            return []
    breadcrumbs = [Breadcrumb(id=a.id, name=a.name, slug=a.slug) for a in category.ancestors]
    breadcrumbs.append(Breadcrumb(id=category.id, name=category.name, slug=category.slug))
    return breadcrumbs


def get_descendants(category_id: int, category_map: CategoryMap) -> list[CategoryOut]:
    """Every category below ``category_id``, in pre-order."""
    index = _children_index(category_map)
    descendants: list[CategoryOut] = []
    visited = {category_id}
    stack = list(reversed(index.get(category_id, [])))
    while stack:
        category = stack.pop()
        if category.id in visited:
            logger.warning(
                "Category %s reached twice while walking descendants of %s; parent chain is corrupt",
                category.id, category_id,
            )
            continue
        visited.add(category.id)
        descendants.append(category)
        stack.extend(reversed(index.get(category.id, [])))
    return descendants


def get_siblings(category_id: int, category_map: CategoryMap) -> list[CategoryOut]:
    """Other categories with the same parent_id (None included for root level)."""
    category = category_map.get(category_id)
    if category is None:
        return []
    siblings = [
        other for other in category_map.values()
        if other.id != category_id and other.parent_id == category.parent_id
    ]
    siblings.sort(key=sibling_sort_key)
    return siblings


def flatten_for_picker(
    categories: Iterable[CategoryOut],
    exclude_id: Optional[int] = None,
) -> list[PickerCategory]:
    """
    Pre-order listing of built tree nodes for dropdowns.

    ``level`` is the depth below the given top nodes and ``display_name`` is
    the indented name. ``exclude_id`` drops that node together with its subtree,
    which is how the edit form keeps a category from becoming its own parent.
    """
    flattened: list[PickerCategory] = []
    seen: set[int] = set()
    stack = [(category, 0) for category in reversed(list(categories))]
    while stack:
        category, level = stack.pop()
        if category.id == exclude_id or category.id in seen:
            continue
        seen.add(category.id)
        indicator = PICKER_BRANCH if level > 0 else ""
        data = category.model_dump(exclude={"children", "level"})
        flattened.append(PickerCategory.model_validate({
            **data,
            "level": level,
            "display_name": f"{PICKER_INDENT * level}{indicator}{category.name}",
        }))
        stack.extend((child, level + 1) for child in reversed(category.children))
    return flattened


def compute_lineage(category_id: int, category_map: CategoryMap) -> Optional[Lineage]:
    """Level, ancestors and path obtained by walking parent_id through the map.

    The walk stops at a parent missing from the map or at a repeated id.
    """
    category = category_map.get(category_id)
    if category is None:
        return None
    chain: list[CategoryOut] = []
    seen = {category.id}
    parent_id = category.parent_id
    while parent_id is not None and parent_id in category_map and parent_id not in seen:
        parent = category_map[parent_id]
        seen.add(parent_id)
        chain.append(parent)
        parent_id = parent.parent_id
    chain.reverse()
    return Lineage(
        level=len(chain),
        ancestors=[CategoryAncestor(id=a.id, name=a.name, slug=a.slug) for a in chain],
        path=build_path([a.slug for a in chain] + [category.slug]),
    )


def lineage_for_child(parent: Optional[CategoryOut], slug: str, category_map: CategoryMap) -> Lineage:
    """Lineage of a category with ``slug`` placed under ``parent`` (a root when None)."""
    if parent is None:
        return Lineage(level=0, ancestors=[], path=build_path([slug]))
    parent_lineage = compute_lineage(parent.id, category_map)
    if parent_lineage is None:
        parent_lineage = Lineage(level=parent.level, ancestors=list(parent.ancestors), path=parent.path)
    return Lineage(
        level=parent_lineage.level + 1,
        ancestors=[*parent_lineage.ancestors, CategoryAncestor(id=parent.id, name=parent.name, slug=parent.slug)],
        path=f"{parent_lineage.path}/{slug}",
    )


def _in_cycle(category: CategoryOut, category_map: CategoryMap) -> bool:
    seen: set[int] = set()
    parent_id = category.parent_id
    while parent_id is not None and parent_id in category_map:
        if parent_id == category.id:
            return True
        if parent_id in seen:
            return False
        seen.add(parent_id)
        parent_id = category_map[parent_id].parent_id
    return False


def check_integrity(category_map: CategoryMap) -> list[IntegrityIssue]:
    """Compare every category's stored level/ancestors/path against its parent chain."""
    issues: list[IntegrityIssue] = []
    for category in category_map.values():
        if category.parent_id is not None and category.parent_id not in category_map:
            issues.append(IntegrityIssue(
                category.id, "orphan", f"parent {category.parent_id} does not exist",
            ))
            continue
        if _in_cycle(category, category_map):
            issues.append(IntegrityIssue(category.id, "cycle", "category is its own ancestor"))
            continue

        expected = compute_lineage(category.id, category_map)
        if category.level != expected.level:
            issues.append(IntegrityIssue(
                category.id, "level_mismatch", f"level is {category.level}, expected {expected.level}",
            ))
        stored = [(a.id, a.name, a.slug) for a in category.ancestors]
        if stored != [(a.id, a.name, a.slug) for a in expected.ancestors]:
            issues.append(IntegrityIssue(
                category.id, "ancestors_mismatch", "stored ancestors differ from the parent chain",
            ))
        if category.path != expected.path:
            issues.append(IntegrityIssue(
                category.id, "path_mismatch", f"path is {category.path!r}, expected {expected.path!r}",
            ))
    return issues
