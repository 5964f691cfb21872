from sqlalchemy import select, and_
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Optional
from marketplace.models.audit_log import AuditLog


class AuditRepository:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def create(self, log: AuditLog) -> AuditLog:
        self.db.add(log)
        await self.db.commit()
        await self.db.refresh(log)
        return log

    async def list(
        self,
        limit: int = 100,
        offset: int = 0,
        entity: Optional[str] = None,
        entity_id: Optional[str] = None,
        action: Optional[str] = None,
    ) -> list[AuditLog]:
        """List audit logs with optional filtering"""
        query = select(AuditLog)

        conditions = []
        if entity:
            conditions.append(AuditLog.entity == entity)
        if entity_id is not None:
            conditions.append(AuditLog.entity_id == str(entity_id))
        if action:
            conditions.append(AuditLog.action == action)

        if conditions:
            query = query.where(and_(*conditions))

        query = query.order_by(AuditLog.id.desc()).limit(limit).offset(offset)
        res = await self.db.execute(query)
        return list(res.scalars().all())
