from __future__ import annotations

from typing import Mapping

from marketplace.schemas.category import CategoryOut


def search_categories(term: str, category_map: Mapping[int, CategoryOut]) -> list[CategoryOut]:
    """
    Case-insensitive substring search over name, description and slug.

    Results keep the map's iteration order. A blank term matches nothing;
    callers show the root categories instead. No limit is applied here.
    """
    needle = (term or "").strip().lower()
    if not needle:
        return []
    return [
        category for category in category_map.values()
        if needle in category.name.lower()
        or (category.description and needle in category.description.lower())
        or needle in category.slug.lower()
    ]
