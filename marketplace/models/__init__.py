# Import all models to ensure they are registered with SQLAlchemy
from marketplace.models.user import User, UserRole
from marketplace.models.audit_log import AuditLog
from marketplace.models.category import Category
from marketplace.models.category_request import CategoryRequest, CategoryRequestStatus
from marketplace.models.product import Product

__all__ = [
    "User",
    "UserRole",
    "AuditLog",
    "Category",
    "CategoryRequest",
    "CategoryRequestStatus",
    "Product",
]
