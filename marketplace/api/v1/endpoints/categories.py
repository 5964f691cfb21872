from typing import Optional

from fastapi import APIRouter, Depends, Query, status

from marketplace.core.deps import DBSessionDep, require_admin
from marketplace.core.exceptions import CategoryValidationError
from marketplace.schemas.category import (
    Breadcrumb,
    CategoryCreate,
    CategoryDeleteResult,
    CategoryOut,
    CategoryTreeOut,
    CategoryUpdate,
    IntegrityIssueOut,
    PickerCategory,
    TreeRowOut,
)
from marketplace.schemas.product import CategoryProductsPage
from marketplace.services.category_service import CategoryService

router = APIRouter()


def _parse_ids(raw: Optional[str]) -> list[int]:
    if not raw:
        return []
    try:
        return [int(part) for part in raw.split(",") if part.strip()]
    except ValueError:
        raise CategoryValidationError("expanded must be a comma-separated list of category ids", field="expanded")


@router.get("/", response_model=list[CategoryOut])
async def list_categories(
    db: DBSessionDep,
    include_inactive: bool = Query(False),
    tree: bool = Query(False, description="Return root categories with nested children"),
):
    """List categories - public"""
    service = CategoryService(db)
    if tree:
        return (await service.get_tree(include_inactive=include_inactive)).root_categories
    return await service.list_categories(include_inactive=include_inactive)


@router.get("/tree", response_model=CategoryTreeOut)
async def get_category_tree(db: DBSessionDep, include_inactive: bool = Query(False)):
    tree = await CategoryService(db).get_tree(include_inactive=include_inactive)
    return CategoryTreeOut(root_categories=tree.root_categories, total=len(tree.category_map))


@router.get("/rows", response_model=list[TreeRowOut])
async def get_tree_rows(
    db: DBSessionDep,
    expanded: Optional[str] = Query(None, description="Comma-separated ids of expanded categories"),
    reveal: Optional[int] = Query(None, description="Also expand every ancestor of this category"),
    include_inactive: bool = Query(False),
):
    """Visible rows of an expandable category tree"""
    rows = await CategoryService(db).tree_rows(
        expanded=_parse_ids(expanded),
        reveal_id=reveal,
        include_inactive=include_inactive,
    )
    return [
        TreeRowOut(category=row.category, depth=row.depth, has_children=row.has_children, is_expanded=row.is_expanded)
        for row in rows
    ]


@router.get("/picker", response_model=list[PickerCategory])
async def get_category_picker(db: DBSessionDep, exclude_id: Optional[int] = Query(None)):
    """Indented flat listing for parent dropdowns; ``exclude_id`` hides that category and its subtree"""
    return await CategoryService(db).picker(exclude_id=exclude_id)


@router.get("/search", response_model=list[CategoryOut])
async def search_categories(
    db: DBSessionDep,
    q: str = Query("", description="Case-insensitive substring of name, description or slug"),
    limit: Optional[int] = Query(None, ge=1, le=100),
):
    return await CategoryService(db).search(q, limit=limit)


@router.get("/integrity", response_model=list[IntegrityIssueOut])
async def get_integrity_report(db: DBSessionDep, user = Depends(require_admin())):
    """Report categories whose stored level / ancestors / path disagree with the parent chain - Admin only"""
    issues = await CategoryService(db).integrity_report()
    return [IntegrityIssueOut(category_id=i.category_id, kind=i.kind, message=i.message) for i in issues]


@router.post("/refresh-counters")
async def refresh_counters(db: DBSessionDep, user = Depends(require_admin())):
    """Recompute children and product counters - Admin only"""
    changed = await CategoryService(db).refresh_counters()
    return {"updated": changed}


@router.get("/slug/{slug}", response_model=CategoryOut)
async def get_category_by_slug(slug: str, db: DBSessionDep):
    return await CategoryService(db).get_by_slug(slug)


@router.get("/{category_id}", response_model=CategoryOut)
async def get_category(category_id: int, db: DBSessionDep):
    """Get category by ID with its direct children"""
    return await CategoryService(db).get(category_id)


@router.get("/{category_id}/breadcrumbs", response_model=list[Breadcrumb])
async def get_category_breadcrumbs(category_id: int, db: DBSessionDep):
    return await CategoryService(db).breadcrumbs(category_id)


@router.get("/{category_id}/descendants", response_model=list[CategoryOut])
async def get_category_descendants(category_id: int, db: DBSessionDep):
    return await CategoryService(db).descendants(category_id)


@router.get("/{category_id}/siblings", response_model=list[CategoryOut])
async def get_category_siblings(category_id: int, db: DBSessionDep):
    return await CategoryService(db).siblings(category_id)


@router.get("/{category_id}/products", response_model=CategoryProductsPage)
async def get_category_products(
    category_id: int,
    db: DBSessionDep,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
):
    return await CategoryService(db).list_products(category_id, page=page, limit=limit)


@router.post("/", response_model=CategoryOut, status_code=status.HTTP_201_CREATED)
async def create_category(data: CategoryCreate, db: DBSessionDep, user = Depends(require_admin())):
    """Create a new category - Admin only"""
    return await CategoryService(db).create(data, user_id=user.id)


@router.put("/{category_id}", response_model=CategoryOut)
async def update_category(
    category_id: int,
    data: CategoryUpdate,
    db: DBSessionDep,
    user = Depends(require_admin())
):
    """Update a category - Admin only. Moving or renaming recomputes the whole subtree's lineage."""
    return await CategoryService(db).update(category_id, data, user_id=user.id)


@router.delete("/{category_id}", response_model=CategoryDeleteResult)
async def delete_category(category_id: int, db: DBSessionDep, user = Depends(require_admin())):
    """Delete a category according to the configured delete policy - Admin only"""
    return await CategoryService(db).delete(category_id, user_id=user.id)
