from datetime import datetime
from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator
from typing import Optional


class CategoryAncestor(BaseModel):
    id: int
    name: str
    slug: str


class Breadcrumb(CategoryAncestor):
    pass


class CategoryMetadata(BaseModel):
    meta_title: Optional[str] = Field(default=None, max_length=255)
    meta_description: Optional[str] = Field(default=None, max_length=1000)
    keywords: list[str] = Field(default_factory=list)


class CategoryBase(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    slug: Optional[str] = Field(default=None, max_length=255, description="Derived from name when omitted")
    description: Optional[str] = Field(default=None, max_length=1000)
    parent_id: int | None = Field(default=None, description="ID of parent category; omitted for root categories")
    display_order: int = 0
    is_active: bool = True
    image_url: Optional[str] = Field(default=None, max_length=1024)
    metadata: Optional[CategoryMetadata] = None

    @field_validator('name')
    @classmethod
    def validate_name(cls, v: str) -> str:
        """Validate category name - trim whitespace"""
        if not v or not v.strip():
            raise ValueError('Category name cannot be empty')
        return v.strip()


class CategoryCreate(CategoryBase):
    pass


class CategoryUpdate(BaseModel):
    """Partial update; only fields present in the request body are applied."""
    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    slug: Optional[str] = Field(default=None, max_length=255)
    description: Optional[str] = Field(default=None, max_length=1000)
    parent_id: int | None = None
    display_order: Optional[int] = None
    is_active: Optional[bool] = None
    image_url: Optional[str] = Field(default=None, max_length=1024)
    metadata: Optional[CategoryMetadata] = None


class CategoryOut(BaseModel):
    """A category record as held in memory; ``children`` is filled only by the tree builder."""
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    slug: str
    description: Optional[str] = None
    parent_id: int | None = None
    level: int = 0
    path: str = ""
    ancestors: list[CategoryAncestor] = Field(default_factory=list)
    display_order: int = 0
    is_active: bool = True
    image_url: Optional[str] = None
    # ORM rows expose this as ``seo_metadata``; API payloads use ``metadata``
    metadata: Optional[CategoryMetadata] = Field(
        default=None,
        validation_alias=AliasChoices("seo_metadata", "metadata"),
    )
    product_count: int = 0
    children_count: int = 0
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    children: list["CategoryOut"] = Field(default_factory=list)


class PickerCategory(CategoryOut):
    """Flattened entry for parent pickers; ``level`` is the depth in the flattened listing."""
    display_name: str


class CategoryTreeOut(BaseModel):
    root_categories: list[CategoryOut]
    total: int


class TreeRowOut(BaseModel):
    category: CategoryOut
    depth: int
    has_children: bool
    is_expanded: bool


class CategoryDeleteResult(BaseModel):
    id: int
    policy: str
    deleted_ids: list[int]
    reparented_ids: list[int] = Field(default_factory=list)
    detached_product_count: int = 0


class IntegrityIssueOut(BaseModel):
    category_id: int
    kind: str
    message: str


CategoryOut.model_rebuild()
