"""
Typed failures raised by the category gateway and the category-request workflow.

Each error carries a ``kind`` (validation / conflict / not_found) and the
offending ``field`` so callers can render a field-level message.
"""
from typing import Any, Optional


class CategoryError(Exception):
    kind: str = "error"
    status_code: int = 400

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.field = field

    def to_dict(self) -> dict[str, Any]:
        return {"detail": self.message, "kind": self.kind, "field": self.field}


class CategoryValidationError(CategoryError):
    kind = "validation"
    status_code = 422


class CategoryConflictError(CategoryError):
    kind = "conflict"
    status_code = 409


class CategoryNotFoundError(CategoryError):
    kind = "not_found"
    status_code = 404


class CategoryRequestNotFoundError(CategoryNotFoundError):
    pass


class CategoryRequestStateError(CategoryConflictError):
    """Raised when a request is not in a state that allows the transition"""
