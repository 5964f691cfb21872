from fastapi import APIRouter

from marketplace.api.v1.endpoints import auth, categories, category_requests

api_router = APIRouter()
api_router.include_router(auth.router, prefix="/auth", tags=["auth"])
api_router.include_router(categories.router, prefix="/categories", tags=["categories"])
api_router.include_router(category_requests.router, prefix="/category-requests", tags=["category-requests"])
