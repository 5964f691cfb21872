from __future__ import annotations
from typing import Iterable
from sqlalchemy import select, func, update
from sqlalchemy.ext.asyncio import AsyncSession

from marketplace.models.product import Product


class ProductRepository:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def create(self, product: Product) -> Product:
        self.db.add(product)
        await self.db.commit()
        await self.db.refresh(product)
        return product

    async def list_by_category(self, category_id: int, limit: int = 20, offset: int = 0) -> list[Product]:
        """Active products directly assigned to a category"""
        query = (
            select(Product)
            .where(Product.category_id == category_id, Product.is_active == True)
            .order_by(Product.id)
            .limit(limit)
            .offset(offset)
        )
        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def count_by_category(self, category_id: int) -> int:
        result = await self.db.execute(
            select(func.count(Product.id)).where(Product.category_id == category_id, Product.is_active == True)
        )
        return result.scalar_one() or 0

    async def counts_by_category(self) -> dict[int, int]:
        """Active product count per category id, for every category that has products"""
        result = await self.db.execute(
            select(Product.category_id, func.count(Product.id))
            .where(Product.category_id.is_not(None), Product.is_active == True)
            .group_by(Product.category_id)
        )
        return {category_id: count for category_id, count in result.all()}

    async def reassign_category(self, category_ids: Iterable[int], new_category_id: int | None) -> int:
        """Point products of the given categories at another category (or none). No commit."""
        ids = list(category_ids)
        if not ids:
            return 0
        result = await self.db.execute(
            update(Product)
            .where(Product.category_id.in_(ids))
            .values(category_id=new_category_id)
            .execution_options(synchronize_session="fetch")
        )
        return result.rowcount or 0
