from __future__ import annotations
from datetime import datetime
from typing import Any
from sqlalchemy import String, DateTime, Boolean, ForeignKey, Integer, Text, JSON, Index
from sqlalchemy.orm import Mapped, mapped_column

from marketplace.db.base import Base


class Category(Base):
    __tablename__ = "categories"
    __table_args__ = (
        Index("ix_categories_active_order", "is_active", "display_order"),
    )

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    name: Mapped[str] = mapped_column(String(255), index=True)
    slug: Mapped[str] = mapped_column(String(255), unique=True, index=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    # No ORM relationship to children: the hierarchy is rebuilt in memory from the flat list
    parent_id: Mapped[int | None] = mapped_column(ForeignKey("categories.id"), nullable=True, index=True)

    # Denormalized lineage, recomputed by CategoryService on create/reparent/rename
    level: Mapped[int] = mapped_column(Integer, default=0, index=True)
    path: Mapped[str] = mapped_column(String(2048), index=True)
    ancestors: Mapped[list[dict[str, Any]]] = mapped_column(JSON, default=list)

    display_order: Mapped[int] = mapped_column(Integer, default=0)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, index=True)
    image_url: Mapped[str | None] = mapped_column(String(1024), nullable=True)
    # "metadata" is reserved on declarative classes, so the attribute is renamed
    seo_metadata: Mapped[dict[str, Any] | None] = mapped_column("metadata", JSON, nullable=True)

    product_count: Mapped[int] = mapped_column(Integer, default=0)
    children_count: Mapped[int] = mapped_column(Integer, default=0)

    created_by: Mapped[int | None] = mapped_column(ForeignKey("users.id"), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
