from __future__ import annotations
from typing import List, Optional
from sqlalchemy import select, and_
from sqlalchemy.ext.asyncio import AsyncSession

from marketplace.models.category_request import CategoryRequest


class CategoryRequestRepository:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def create(self, request: CategoryRequest) -> CategoryRequest:
        self.db.add(request)
        await self.db.commit()
        await self.db.refresh(request)
        return request

    async def get(self, request_id: int) -> CategoryRequest | None:
        result = await self.db.execute(select(CategoryRequest).where(CategoryRequest.id == request_id))
        return result.scalar_one_or_none()

    async def list(self, status: Optional[str] = None, seller_id: Optional[int] = None) -> List[CategoryRequest]:
        """List requests, newest first, optionally filtered by status and seller"""
        query = select(CategoryRequest)

        conditions = []
        if status:
            conditions.append(CategoryRequest.status == status)
        if seller_id is not None:
            conditions.append(CategoryRequest.seller_id == seller_id)
        if conditions:
            query = query.where(and_(*conditions))

        query = query.order_by(CategoryRequest.created_at.desc(), CategoryRequest.id.desc())
        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def update(self, request: CategoryRequest) -> CategoryRequest:
        await self.db.commit()
        await self.db.refresh(request)
        return request
