import json
from typing import Any, Optional
from sqlalchemy.ext.asyncio import AsyncSession
from marketplace.models.audit_log import AuditLog
from marketplace.repositories.audit_repository import AuditRepository


class AuditService:
    """Service for logging audit events"""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.repository = AuditRepository(db)

    async def log_action(
        self,
        user_id: Optional[int],
        action: str,
        entity: str,
        entity_id: str,
        details: Optional[dict[str, Any]] = None
    ) -> AuditLog:
        """
        Log an audit action

        Args:
            user_id: ID of the user performing the action (None for system actions)
            action: Action type (e.g., 'create', 'update', 'delete', 'approve')
            entity: Entity type (e.g., 'category', 'category_request')
            entity_id: ID of the entity being acted upon
            details: Optional dictionary with additional details about the action
        """
        details_str = json.dumps(details, ensure_ascii=False, default=str) if details else None

        log = AuditLog(
            user_id=user_id,
            action=action,
            entity=entity,
            entity_id=str(entity_id),
            details=details_str
        )

        return await self.repository.create(log)

    async def log_category_action(
        self,
        user_id: Optional[int],
        action: str,
        category_id: int,
        details: Optional[dict[str, Any]] = None
    ) -> AuditLog:
        """Log a category-related action"""
        return await self.log_action(
            user_id=user_id,
            action=action,
            entity='category',
            entity_id=str(category_id),
            details=details
        )

    async def log_category_request_action(
        self,
        user_id: Optional[int],
        action: str,
        request_id: int,
        details: Optional[dict[str, Any]] = None
    ) -> AuditLog:
        """Log a category-request-related action"""
        return await self.log_action(
            user_id=user_id,
            action=action,
            entity='category_request',
            entity_id=str(request_id),
            details=details
        )
