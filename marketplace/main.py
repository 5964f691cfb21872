import logging

import uvicorn
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.openapi.utils import get_openapi
from fastapi.responses import JSONResponse
from sqlalchemy.exc import DataError, IntegrityError

from marketplace import __version__
from marketplace.api.v1.router import api_router
from marketplace.core.config import settings
from marketplace.core.exceptions import CategoryError
from marketplace.core.logging import configure_logging
from marketplace.db.init_db import init_database
from marketplace.db.session import engine

logger = logging.getLogger(__name__)


def create_app() -> FastAPI:
    configure_logging()

    tags_metadata = [
        {"name": "auth", "description": "User authentication and token issuing"},
        {"name": "categories", "description": "Category hierarchy: tree, navigation, search and admin edits"},
        {"name": "category-requests", "description": "Seller proposals for new categories and their review"},
    ]

    try:
        settings.validate_security()
    except ValueError as e:
        logger.warning("[SECURITY WARNING] %s", e)

    app = FastAPI(
        title="Marketplace Catalog",
        version=__version__,
        description="Category hierarchy service for a B2B marketplace",
        openapi_url="/openapi.json",
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_tags=tags_metadata,
    )

    @app.exception_handler(CategoryError)
    async def category_error_handler(request: Request, exc: CategoryError):
        """Typed category failures carry their own status code and offending field"""
        logger.info("%s at %s: %s (field=%s)", exc.kind, request.url.path, exc.message, exc.field)
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

    @app.exception_handler(IntegrityError)
    async def integrity_error_handler(request: Request, exc: IntegrityError):
        """Handle database integrity errors (unique constraints, foreign keys)"""
        error_msg = str(exc.orig) if exc.orig else str(exc)
        lowered = error_msg.lower()
        if "unique" in lowered:
            detail = "The record already exists."
            status_code = 409
        elif "foreign key" in lowered:
            detail = "The operation conflicts with records that depend on this one."
            status_code = 400
        else:
            detail = "Database error."
            status_code = 400

        logger.warning("Integrity error at %s: %s - %s", request.url.path, detail, error_msg)
        return JSONResponse(
            status_code=status_code,
            content={"detail": detail, "kind": "conflict" if status_code == 409 else "error", "field": None},
        )

    @app.exception_handler(DataError)
    async def data_error_handler(request: Request, exc: DataError):
        """Handle database data errors (invalid types, values too long)"""
        return JSONResponse(
            status_code=400,
            content={"detail": "Invalid data (wrong type or value too long).", "kind": "validation", "field": None},
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        """Handle Pydantic validation errors with cleaner messages"""
        errors = []
        for error in exc.errors():
            field = ".".join(str(x) for x in error["loc"] if x != "body")
            errors.append(f"{field}: {error['msg']}")

        first_field = None
        if exc.errors():
            first_field = ".".join(str(x) for x in exc.errors()[0]["loc"] if x not in ("body", "query", "path")) or None
        return JSONResponse(
            status_code=422,
            content={"detail": "Validation error", "kind": "validation", "field": first_field, "errors": errors},
        )

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        logger.exception("Unhandled error at %s", request.url.path)
        return JSONResponse(
            status_code=500,
            content={"detail": "Internal Server Error. Please contact support."},
        )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS", "PATCH", "HEAD"],
        allow_headers=["*"],
        max_age=3600,
    )

    @app.on_event("startup")
    async def on_startup() -> None:
        await init_database(engine)

        from marketplace.core.seed import create_super_admin
        await create_super_admin()

    def custom_openapi():
        if app.openapi_schema:
            return app.openapi_schema
        openapi_schema = get_openapi(
            title=app.title,
            version=app.version,
            description=app.description,
            routes=app.routes,
        )
        openapi_schema.setdefault("components", {}).setdefault("securitySchemes", {}).update({
            "bearerAuth": {
                "type": "http",
                "scheme": "bearer",
                "bearerFormat": "JWT",
            }
        })
        openapi_schema["security"] = [{"bearerAuth": []}]
        app.openapi_schema = openapi_schema
        return app.openapi_schema

    app.openapi = custom_openapi  # type: ignore[assignment]

    app.include_router(api_router, prefix=settings.API_V1_STR)

    @app.get("/health")
    def health() -> dict[str, str]:
        return {"status": "ok"}

    return app


app = create_app()


if __name__ == "__main__":
    uvicorn.run("marketplace.main:app", host="0.0.0.0", port=8000, reload=False)
