from __future__ import annotations
from typing import Iterable, List
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func, delete

from marketplace.models import Category


class CategoryRepository:
    """Flat category record store; the hierarchy itself is rebuilt in memory by the services."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def list(self, include_inactive: bool = True) -> List[Category]:
        """List all categories, optionally excluding inactive ones"""
        query = select(Category)
        if not include_inactive:
            query = query.where(Category.is_active == True)
        query = query.order_by(Category.display_order, Category.id)
        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def get(self, category_id: int) -> Category | None:
        result = await self.db.execute(select(Category).where(Category.id == category_id))
        return result.scalar_one_or_none()

    async def get_by_slug(self, slug: str) -> Category | None:
        result = await self.db.execute(select(Category).where(Category.slug == slug))
        return result.scalar_one_or_none()

    async def get_many(self, category_ids: Iterable[int]) -> List[Category]:
        ids = list(category_ids)
        if not ids:
            return []
        result = await self.db.execute(select(Category).where(Category.id.in_(ids)))
        return list(result.scalars().all())

    async def slug_taken(self, slug: str, exclude_id: int | None = None) -> bool:
        """Check whether another category already uses the slug"""
        query = select(Category.id).where(Category.slug == slug)
        if exclude_id is not None:
            query = query.where(Category.id != exclude_id)
        result = await self.db.execute(query.limit(1))
        return result.scalar_one_or_none() is not None

    async def count_children(self, parent_id: int) -> int:
        result = await self.db.execute(
            select(func.count(Category.id)).where(Category.parent_id == parent_id)
        )
        return result.scalar_one() or 0

    async def create(self, category: Category) -> Category:
        """Create a new category"""
        self.db.add(category)
        await self.db.commit()
        await self.db.refresh(category)
        return category

    async def save_all(self, categories: Iterable[Category]) -> None:
        """Persist pending changes to several categories in one commit"""
        for category in categories:
            self.db.add(category)
        await self.db.commit()

    async def delete_many(self, category_ids: Iterable[int]) -> int:
        """Delete categories in a single statement so parent/child order does not matter. No commit."""
        ids = list(category_ids)
        if not ids:
            return 0
        await self.db.flush()
        result = await self.db.execute(
            delete(Category).where(Category.id.in_(ids)).execution_options(synchronize_session="fetch")
        )
        return result.rowcount or 0

    async def refresh(self, category: Category) -> Category:
        await self.db.refresh(category)
        return category

    async def commit(self) -> None:
        await self.db.commit()
