from typing import Optional

from fastapi import APIRouter, Depends, Query, status

from marketplace.core.deps import DBSessionDep, require_admin, require_seller
from marketplace.schemas.category_request import (
    CategoryRequestApprove,
    CategoryRequestCreate,
    CategoryRequestOut,
    CategoryRequestReject,
)
from marketplace.services.category_request_service import CategoryRequestService

router = APIRouter()


@router.post("/", response_model=CategoryRequestOut, status_code=status.HTTP_201_CREATED)
async def submit_category_request(
    data: CategoryRequestCreate,
    db: DBSessionDep,
    user = Depends(require_seller())
):
    """Propose a new category - Seller only"""
    return await CategoryRequestService(db).submit(data, seller_id=user.id)


@router.get("/mine", response_model=list[CategoryRequestOut])
async def list_my_category_requests(
    db: DBSessionDep,
    status_filter: Optional[str] = Query(None, alias="status"),
    user = Depends(require_seller())
):
    return await CategoryRequestService(db).list_for_seller(user.id, status=status_filter)


@router.get("/", response_model=list[CategoryRequestOut])
async def list_category_requests(
    db: DBSessionDep,
    status_filter: Optional[str] = Query(None, alias="status"),
    seller_id: Optional[int] = Query(None),
    user = Depends(require_admin())
):
    """List category requests, newest first - Admin only"""
    return await CategoryRequestService(db).list(status=status_filter, seller_id=seller_id)


@router.get("/{request_id}", response_model=CategoryRequestOut)
async def get_category_request(request_id: int, db: DBSessionDep, user = Depends(require_admin())):
    return await CategoryRequestService(db).get(request_id)


@router.patch("/{request_id}/approve", response_model=CategoryRequestOut)
async def approve_category_request(
    request_id: int,
    db: DBSessionDep,
    data: Optional[CategoryRequestApprove] = None,
    user = Depends(require_admin())
):
    """Approve a pending request and create the category - Admin only"""
    notes = data.admin_notes if data else None
    return await CategoryRequestService(db).approve(request_id, admin_id=user.id, admin_notes=notes)


@router.patch("/{request_id}/reject", response_model=CategoryRequestOut)
async def reject_category_request(
    request_id: int,
    db: DBSessionDep,
    data: Optional[CategoryRequestReject] = None,
    user = Depends(require_admin())
):
    reason = data.rejection_reason if data else None
    return await CategoryRequestService(db).reject(request_id, admin_id=user.id, rejection_reason=reason)


@router.patch("/{request_id}/cancel", response_model=CategoryRequestOut)
async def cancel_category_request(request_id: int, db: DBSessionDep, user = Depends(require_seller())):
    """Cancel one's own pending request - Seller only"""
    return await CategoryRequestService(db).cancel(request_id, seller_id=user.id)
