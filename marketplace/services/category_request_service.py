from __future__ import annotations

import logging
from datetime import datetime
from typing import List, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from marketplace.core.exceptions import (
    CategoryNotFoundError,
    CategoryRequestNotFoundError,
    CategoryRequestStateError,
    CategoryValidationError,
)
from marketplace.core.slug import generate_slug, is_valid_slug
from marketplace.models.category_request import CategoryRequest, CategoryRequestStatus
from marketplace.repositories.category_repository import CategoryRepository
from marketplace.repositories.category_request_repository import CategoryRequestRepository
from marketplace.schemas.category import CategoryCreate
from marketplace.schemas.category_request import CategoryRequestCreate
from marketplace.services.audit_service import AuditService
from marketplace.services.category_service import CategoryService

logger = logging.getLogger(__name__)


class CategoryRequestService:
    """Sellers propose categories; admins approve (which creates the category) or reject."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.repository = CategoryRequestRepository(db)
        self.category_repository = CategoryRepository(db)
        self.audit_service = AuditService(db)

    async def submit(self, data: CategoryRequestCreate, seller_id: int) -> CategoryRequest:
        proposed_slug = (data.proposed_slug or "").strip().lower() or generate_slug(data.proposed_name)
        if not proposed_slug:
            raise CategoryValidationError(
                "Proposed slug is required; the name has no characters usable in a slug",
                field="proposed_slug",
            )
        if not is_valid_slug(proposed_slug):
            raise CategoryValidationError(
                "Proposed slug may only contain lowercase letters, digits and single hyphens",
                field="proposed_slug",
            )

        parent_name = None
        parent_path = None
        if data.parent_category_id is not None:
            parent = await self.category_repository.get(data.parent_category_id)
            if parent is None:
                raise CategoryNotFoundError("Parent category not found", field="parent_category_id")
            parent_name = parent.name
            parent_path = parent.path

        request = CategoryRequest(
            seller_id=seller_id,
            proposed_name=data.proposed_name,
            proposed_slug=proposed_slug,
            parent_category_id=data.parent_category_id,
            parent_category_name=parent_name,
            parent_category_path=parent_path,
            description=data.description,
            seller_reason=data.seller_reason,
            image_url=data.image_url,
            status=CategoryRequestStatus.PENDING.value,
        )
        request = await self.repository.create(request)

        await self.audit_service.log_category_request_action(
            user_id=seller_id,
            action='submit',
            request_id=request.id,
            details={'proposed_name': request.proposed_name, 'proposed_slug': request.proposed_slug},
        )
        logger.info("Seller %s submitted category request %s (%s)", seller_id, request.id, proposed_slug)
        return request

    async def list(self, status: Optional[str] = None, seller_id: Optional[int] = None) -> List[CategoryRequest]:
        return await self.repository.list(status=status, seller_id=seller_id)

    async def list_for_seller(self, seller_id: int, status: Optional[str] = None) -> List[CategoryRequest]:
        return await self.repository.list(status=status, seller_id=seller_id)

    async def get(self, request_id: int) -> CategoryRequest:
        request = await self.repository.get(request_id)
        if request is None:
            raise CategoryRequestNotFoundError("Category request not found", field="id")
        return request

    async def _get_pending(self, request_id: int) -> CategoryRequest:
        request = await self.get(request_id)
        if request.status != CategoryRequestStatus.PENDING.value:
            raise CategoryRequestStateError(
                f"Category request has already been {request.status}", field="status"
            )
        return request

    async def approve(
        self,
        request_id: int,
        admin_id: int,
        admin_notes: Optional[str] = None,
    ) -> CategoryRequest:
        """Create the proposed category through the category gateway, then mark the request approved.

        Gateway failures (slug conflict, missing parent) leave the request pending.
        """
        request = await self._get_pending(request_id)

        category = await CategoryService(self.db).create(
            CategoryCreate(
                name=request.proposed_name,
                slug=request.proposed_slug,
                description=request.description,
                parent_id=request.parent_category_id,
                image_url=request.image_url,
            ),
            user_id=admin_id,
        )

        request.status = CategoryRequestStatus.APPROVED.value
        request.reviewed_by = admin_id
        request.reviewed_at = datetime.utcnow()
        request.admin_notes = admin_notes
        request.category_id = category.id
        request = await self.repository.update(request)

        await self.audit_service.log_category_request_action(
            user_id=admin_id,
            action='approve',
            request_id=request.id,
            details={'category_id': category.id, 'slug': category.slug},
        )
        logger.info("Category request %s approved by %s; created category %s", request.id, admin_id, category.id)
        return request

    async def reject(
        self,
        request_id: int,
        admin_id: int,
        rejection_reason: Optional[str] = None,
    ) -> CategoryRequest:
        request = await self._get_pending(request_id)
        request.status = CategoryRequestStatus.REJECTED.value
        request.reviewed_by = admin_id
        request.reviewed_at = datetime.utcnow()
        request.rejection_reason = rejection_reason
        request = await self.repository.update(request)

        await self.audit_service.log_category_request_action(
            user_id=admin_id,
            action='reject',
            request_id=request.id,
            details={'rejection_reason': rejection_reason},
        )
        logger.info("Category request %s rejected by %s", request.id, admin_id)
        return request

    async def cancel(self, request_id: int, seller_id: int) -> CategoryRequest:
        """Sellers can only cancel their own pending requests"""
        request = await self.get(request_id)
        if request.seller_id != seller_id:
            raise CategoryRequestNotFoundError("Category request not found", field="id")
        if request.status != CategoryRequestStatus.PENDING.value:
            raise CategoryRequestStateError(
                f"Category request has already been {request.status}", field="status"
            )
        request.status = CategoryRequestStatus.CANCELLED.value
        request = await self.repository.update(request)

        await self.audit_service.log_category_request_action(
            user_id=seller_id,
            action='cancel',
            request_id=request.id,
        )
        logger.info("Category request %s cancelled by seller %s", request.id, seller_id)
        return request
