from __future__ import annotations

import logging
import math
from collections import Counter
from typing import Iterable, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from marketplace.core.config import settings
from marketplace.core.exceptions import (
    CategoryConflictError,
    CategoryNotFoundError,
    CategoryValidationError,
)
from marketplace.core.slug import generate_slug, is_valid_slug
from marketplace.models.category import Category
from marketplace.repositories.category_repository import CategoryRepository
from marketplace.repositories.product_repository import ProductRepository
from marketplace.schemas.category import (
    Breadcrumb,
    CategoryCreate,
    CategoryDeleteResult,
    CategoryOut,
    CategoryUpdate,
    PickerCategory,
)
from marketplace.schemas.product import CategoryProductsPage, ProductOut
from marketplace.services.audit_service import AuditService
from marketplace.services.category_navigation import (
    IntegrityIssue,
    check_integrity,
    compute_lineage,
    flatten_for_picker,
    get_breadcrumbs,
    get_descendants,
    get_siblings,
    lineage_for_child,
)
from marketplace.services.category_search import search_categories
from marketplace.services.category_tree import (
    CategoryTree,
    TreeArena,
    TreeRow,
    build_tree,
    filter_active,
    to_record,
)

logger = logging.getLogger(__name__)

NAME_MAX_LENGTH = 255
SLUG_MAX_LENGTH = 255
DESCRIPTION_MAX_LENGTH = 1000


def _flat(records: Iterable[CategoryOut]) -> list[CategoryOut]:
    return [to_record(record) for record in records]


def _with_direct_children(record: CategoryOut) -> CategoryOut:
    return record.model_copy(update={"children": _flat(record.children)})


class CategoryService:
    """
    Gateway for every category read and write.

    Each operation fetches the flat category list and rebuilds the tree; no
    tree is cached between calls. Writes keep level / ancestors / path
    consistent for the whole affected subtree and fail with typed
    CategoryError subclasses.
    """

    def __init__(self, db: AsyncSession, delete_policy: Optional[str] = None):
        self.db = db
        self.category_repository = CategoryRepository(db)
        self.product_repository = ProductRepository(db)
        self.audit_service = AuditService(db)
        self.delete_policy = delete_policy or settings.CATEGORY_DELETE_POLICY

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def load_tree(self, include_inactive: bool = True) -> CategoryTree:
        rows = await self.category_repository.list()
        if not include_inactive:
            return build_tree(filter_active(rows))
        return build_tree(rows)

    async def list_categories(self, include_inactive: bool = False) -> list[CategoryOut]:
        tree = await self.load_tree(include_inactive=include_inactive)
        return _flat(tree.category_map.values())

    async def get_tree(self, include_inactive: bool = False) -> CategoryTree:
        return await self.load_tree(include_inactive=include_inactive)

    async def _get_record(self, category_id: int, tree: CategoryTree | None = None) -> CategoryOut:
        tree = tree or await self.load_tree()
        record = tree.category_map.get(category_id)
        if record is None:
            raise CategoryNotFoundError("Category not found", field="id")
        return record

    async def get(self, category_id: int) -> CategoryOut:
        """Category with its direct children populated"""
        return _with_direct_children(await self._get_record(category_id))

    async def get_by_slug(self, slug: str) -> CategoryOut:
        tree = await self.load_tree()
        for record in tree.category_map.values():
            if record.slug == slug:
                return _with_direct_children(record)
        raise CategoryNotFoundError("Category not found", field="slug")

    async def breadcrumbs(self, category_id: int) -> list[Breadcrumb]:
        tree = await self.load_tree()
        record = await self._get_record(category_id, tree)
        return get_breadcrumbs(record, tree.category_map)

    async def descendants(self, category_id: int) -> list[CategoryOut]:
        tree = await self.load_tree()
        await self._get_record(category_id, tree)
        return _flat(get_descendants(category_id, tree.category_map))

    async def siblings(self, category_id: int) -> list[CategoryOut]:
        tree = await self.load_tree()
        await self._get_record(category_id, tree)
        return _flat(get_siblings(category_id, tree.category_map))

    async def picker(self, exclude_id: Optional[int] = None) -> list[PickerCategory]:
        tree = await self.load_tree()
        return flatten_for_picker(tree.root_categories, exclude_id=exclude_id)

    async def search(
        self,
        term: str,
        limit: Optional[int] = None,
        include_inactive: bool = False,
    ) -> list[CategoryOut]:
        tree = await self.load_tree(include_inactive=include_inactive)
        matches = search_categories(term, tree.category_map)
        return _flat(matches[: limit or settings.CATEGORY_SEARCH_LIMIT])

    async def tree_rows(
        self,
        expanded: Iterable[int] = (),
        reveal_id: Optional[int] = None,
        include_inactive: bool = False,
    ) -> list[TreeRow]:
        """Visible rows of an expandable tree; ``reveal_id`` also expands its ancestors."""
        arena = TreeArena.from_tree(await self.load_tree(include_inactive=include_inactive))
        expanded_ids = set(expanded)
        if reveal_id is not None:
            expanded_ids.update(arena.ancestor_ids(reveal_id))
        rows = arena.visible_rows(expanded_ids)
        for row in rows:
            row.category = to_record(row.category)
        return rows

    async def integrity_report(self) -> list[IntegrityIssue]:
        tree = await self.load_tree()
        return check_integrity(tree.category_map)

    async def list_products(self, category_id: int, page: int = 1, limit: int = 20) -> CategoryProductsPage:
        if await self.category_repository.get(category_id) is None:
            raise CategoryNotFoundError("Category not found", field="id")
        offset = (page - 1) * limit
        products = await self.product_repository.list_by_category(category_id, limit=limit, offset=offset)
        total = await self.product_repository.count_by_category(category_id)
        return CategoryProductsPage(
            category_id=category_id,
            items=[ProductOut.model_validate(p) for p in products],
            total=total,
            page=page,
            limit=limit,
            pages=math.ceil(total / limit) if limit else 0,
        )

    # ------------------------------------------------------------------
    # Validation helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _clean_name(name: Optional[str]) -> str:
        name = (name or "").strip()
        if not name:
            raise CategoryValidationError("Category name is required", field="name")
        if len(name) > NAME_MAX_LENGTH:
            raise CategoryValidationError(
                f"Category name must be at most {NAME_MAX_LENGTH} characters", field="name"
            )
        return name

    @staticmethod
    def _resolve_slug(explicit: Optional[str], name: str) -> str:
        slug = explicit.strip().lower() if explicit and explicit.strip() else generate_slug(name)
        if not slug:
            raise CategoryValidationError(
                "Category slug is required; the name has no characters usable in a slug", field="slug"
            )
        if len(slug) > SLUG_MAX_LENGTH:
            raise CategoryValidationError(
                f"Category slug must be at most {SLUG_MAX_LENGTH} characters", field="slug"
            )
        if not is_valid_slug(slug):
            raise CategoryValidationError(
                "Slug may only contain lowercase letters, digits and single hyphens", field="slug"
            )
        return slug

    @staticmethod
    def _check_description(description: Optional[str]) -> None:
        if description and len(description) > DESCRIPTION_MAX_LENGTH:
            raise CategoryValidationError(
                f"Category description must be at most {DESCRIPTION_MAX_LENGTH} characters",
                field="description",
            )

    async def _refresh_counts(self, category_ids: Iterable[Optional[int]]) -> None:
        """Recount children and products for the given categories (synchronous counters)."""
        rows = await self.category_repository.get_many({i for i in category_ids if i is not None})
        if not rows:
            return
        for row in rows:
            row.children_count = await self.category_repository.count_children(row.id)
            row.product_count = await self.product_repository.count_by_category(row.id)
        await self.category_repository.save_all(rows)

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    async def create(self, data: CategoryCreate, user_id: Optional[int] = None) -> CategoryOut:
        name = self._clean_name(data.name)
        slug = self._resolve_slug(data.slug, name)
        self._check_description(data.description)

        tree = await self.load_tree()
        parent = None
        if data.parent_id is not None:
            parent = tree.category_map.get(data.parent_id)
            if parent is None:
                raise CategoryNotFoundError("Parent category not found", field="parent_id")
            if not parent.is_active:
                raise CategoryValidationError(
                    "Cannot create a subcategory under an inactive category", field="parent_id"
                )

        if await self.category_repository.slug_taken(slug):
            raise CategoryConflictError(f"A category with slug '{slug}' already exists", field="slug")

        lineage = lineage_for_child(parent, slug, tree.category_map)
        category = Category(
            name=name,
            slug=slug,
            description=data.description,
            parent_id=data.parent_id,
            level=lineage.level,
            path=lineage.path,
            ancestors=[a.model_dump() for a in lineage.ancestors],
            display_order=data.display_order,
            is_active=data.is_active,
            image_url=data.image_url,
            seo_metadata=data.metadata.model_dump() if data.metadata else None,
            created_by=user_id,
        )
        created = await self.category_repository.create(category)
        await self._refresh_counts([data.parent_id])

        await self.audit_service.log_category_action(
            user_id=user_id,
            action='create',
            category_id=created.id,
            details={'name': created.name, 'slug': created.slug, 'parent_id': created.parent_id},
        )
        logger.info("Created category %s (%s) at %s", created.id, created.slug, created.path)
        return to_record(created)

    async def update(self, category_id: int, patch: CategoryUpdate, user_id: Optional[int] = None) -> CategoryOut:
        row = await self.category_repository.get(category_id)
        if row is None:
            raise CategoryNotFoundError("Category not found", field="id")

        tree = await self.load_tree()
        category_map = dict(tree.category_map)
        current = category_map[category_id]
        changes = patch.model_dump(exclude_unset=True)

        if "name" in changes:
            changes["name"] = self._clean_name(changes["name"])
        if "slug" in changes:
            slug = self._resolve_slug(changes["slug"], changes.get("name", current.name))
            if slug != current.slug and await self.category_repository.slug_taken(slug, exclude_id=category_id):
                raise CategoryConflictError(f"A category with slug '{slug}' already exists", field="slug")
            changes["slug"] = slug
        if "description" in changes:
            self._check_description(changes["description"])
        for key in ("display_order", "is_active"):
            if key in changes and changes[key] is None:
                raise CategoryValidationError(f"{key} cannot be null", field=key)

        old_parent_id = current.parent_id
        if "parent_id" in changes:
            new_parent_id = changes["parent_id"]
            if new_parent_id is not None:
                if new_parent_id == category_id:
                    raise CategoryConflictError("A category cannot be its own parent", field="parent_id")
                descendant_ids = {d.id for d in get_descendants(category_id, category_map)}
                if new_parent_id in descendant_ids:
                    raise CategoryConflictError(
                        "A category cannot be moved under one of its own subcategories", field="parent_id"
                    )
                new_parent = category_map.get(new_parent_id)
                if new_parent is None:
                    raise CategoryNotFoundError("Parent category not found", field="parent_id")
                if new_parent_id != old_parent_id and not new_parent.is_active:
                    raise CategoryValidationError(
                        "Cannot move a category under an inactive category", field="parent_id"
                    )
            if new_parent_id == old_parent_id:
                del changes["parent_id"]

        for key, value in changes.items():
            if key == "metadata":
                row.seo_metadata = value
            else:
                setattr(row, key, value)

        touched = [row]
        lineage_keys = {"parent_id", "name", "slug"} & changes.keys()
        if lineage_keys:
            patched = current.model_copy(update={key: changes[key] for key in lineage_keys})
            category_map[category_id] = patched
            affected = [patched, *get_descendants(category_id, category_map)]
            rows_by_id = {r.id: r for r in await self.category_repository.get_many(c.id for c in affected)}
            rows_by_id[category_id] = row
            for record in affected:
                lineage = compute_lineage(record.id, category_map)
                target = rows_by_id.get(record.id)
                if target is None:
                    continue
                target.level = lineage.level
                target.ancestors = [a.model_dump() for a in lineage.ancestors]
                target.path = lineage.path
            touched = list(rows_by_id.values())

        await self.category_repository.save_all(touched)
        await self.category_repository.refresh(row)
        if "parent_id" in changes:
            await self._refresh_counts([old_parent_id, changes["parent_id"]])

        await self.audit_service.log_category_action(
            user_id=user_id,
            action='update',
            category_id=category_id,
            details={'changes': changes, 'recomputed': len(touched) if lineage_keys else 0},
        )
        logger.info(
            "Updated category %s (%s); fields=%s, lineage recomputed for %d categories",
            category_id, row.slug, sorted(changes), len(touched) if lineage_keys else 0,
        )
        return to_record(row)

    async def delete(self, category_id: int, user_id: Optional[int] = None) -> CategoryDeleteResult:
        """
        Delete a category according to the configured policy:

        - ``reject``: refuse while the category has subcategories
        - ``cascade``: delete the whole subtree
        - ``reparent``: move direct children up to the deleted category's parent

        Products of deleted categories move to the surviving parent under
        ``reparent`` and are detached otherwise.
        """
        tree = await self.load_tree()
        category_map = dict(tree.category_map)
        category = category_map.get(category_id)
        if category is None:
            raise CategoryNotFoundError("Category not found", field="id")

        descendants = get_descendants(category_id, category_map)
        parent_id = category.parent_id if category.parent_id in category_map else None
        deleted_ids = [category_id]
        reparented_ids: list[int] = []

        if self.delete_policy == "reject":
            if descendants:
                raise CategoryConflictError(
                    f"Category has {len(descendants)} subcategories; delete or move them first",
                    field="id",
                )
            detached = await self.product_repository.reassign_category(deleted_ids, None)
        elif self.delete_policy == "cascade":
            deleted_ids.extend(d.id for d in descendants)
            detached = await self.product_repository.reassign_category(deleted_ids, None)
        else:
            children = [c for c in category_map.values() if c.parent_id == category_id]
            del category_map[category_id]
            for child in children:
                category_map[child.id] = child.model_copy(update={"parent_id": parent_id})
            moved = [d for d in descendants if d.id in category_map]
            rows_by_id = {r.id: r for r in await self.category_repository.get_many(d.id for d in moved)}
            for record in moved:
                target = rows_by_id.get(record.id)
                if target is None:
                    continue
                lineage = compute_lineage(record.id, category_map)
                if target.parent_id == category_id:
                    target.parent_id = parent_id
                target.level = lineage.level
                target.ancestors = [a.model_dump() for a in lineage.ancestors]
                target.path = lineage.path
            reparented_ids = [c.id for c in children]
            detached = await self.product_repository.reassign_category(deleted_ids, parent_id)

        await self.category_repository.delete_many(deleted_ids)
        await self.category_repository.commit()
        await self._refresh_counts([parent_id])

        await self.audit_service.log_category_action(
            user_id=user_id,
            action='delete',
            category_id=category_id,
            details={
                'name': category.name,
                'policy': self.delete_policy,
                'deleted_ids': deleted_ids,
                'reparented_ids': reparented_ids,
            },
        )
        logger.info(
            "Deleted category %s (%s) with policy %s; removed %d, reparented %d, products moved %d",
            category_id, category.slug, self.delete_policy, len(deleted_ids), len(reparented_ids), detached,
        )
        return CategoryDeleteResult(
            id=category_id,
            policy=self.delete_policy,
            deleted_ids=deleted_ids,
            reparented_ids=reparented_ids,
            detached_product_count=detached,
        )

    async def refresh_counters(self) -> int:
        """Recompute children_count and product_count for every category; returns rows changed."""
        rows = await self.category_repository.list()
        product_counts = await self.product_repository.counts_by_category()
        child_counts = Counter(r.parent_id for r in rows if r.parent_id is not None)
        changed = 0
        for row in rows:
            products = product_counts.get(row.id, 0)
            children = child_counts.get(row.id, 0)
            if row.product_count != products or row.children_count != children:
                row.product_count = products
                row.children_count = children
                changed += 1
        await self.category_repository.save_all(rows)
        logger.info("Refreshed category counters; %d categories changed", changed)
        return changed
