from decimal import Decimal
from pydantic import BaseModel, ConfigDict
from typing import Optional


class ProductOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    slug: str
    category_id: int | None
    seller_id: int | None = None
    price: Optional[Decimal] = None
    is_active: bool


class CategoryProductsPage(BaseModel):
    category_id: int
    items: list[ProductOut]
    total: int
    page: int
    limit: int
    pages: int
