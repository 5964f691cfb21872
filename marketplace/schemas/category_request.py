from datetime import datetime
from pydantic import BaseModel, ConfigDict, Field, field_validator
from typing import Optional


class CategoryRequestCreate(BaseModel):
    proposed_name: str = Field(min_length=1, max_length=255)
    proposed_slug: Optional[str] = Field(default=None, max_length=255)
    parent_category_id: int | None = None
    description: Optional[str] = Field(default=None, max_length=1000)
    seller_reason: str = Field(min_length=1, max_length=2000)
    image_url: Optional[str] = Field(default=None, max_length=1024)

    @field_validator('proposed_name', 'seller_reason')
    @classmethod
    def strip_required(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError('Field cannot be empty')
        return v.strip()


class CategoryRequestApprove(BaseModel):
    admin_notes: Optional[str] = None


class CategoryRequestReject(BaseModel):
    rejection_reason: Optional[str] = None


class CategoryRequestOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    seller_id: int
    proposed_name: str
    proposed_slug: str
    parent_category_id: int | None
    parent_category_name: Optional[str] = None
    parent_category_path: Optional[str] = None
    description: Optional[str] = None
    seller_reason: str
    image_url: Optional[str] = None
    status: str
    reviewed_by: int | None = None
    reviewed_at: Optional[datetime] = None
    admin_notes: Optional[str] = None
    rejection_reason: Optional[str] = None
    category_id: int | None = None
    created_at: datetime
    updated_at: datetime
