"""
Database initialization - creates all tables and indexes.
All schema is defined in the SQLAlchemy models in marketplace/models/.
"""
import logging

from sqlalchemy.ext.asyncio import AsyncEngine

from marketplace.db.base import Base

# Import all models to ensure they are registered with Base.metadata
from marketplace.models import (  # noqa: F401
    User,
    AuditLog,
    Category,
    CategoryRequest,
    Product,
)

logger = logging.getLogger(__name__)


async def init_database(engine: AsyncEngine):
    """
    Create all tables, indexes and foreign keys from the models.
    Called on application startup; failures are logged so the app can still start
    and the next startup retries.
    """
    try:
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info("Database initialization completed successfully")
    except OSError as e:
        # Connection errors - the database is not running or not reachable
        logger.error("Cannot connect to the database (%s). Check DATABASE_URL.", e)
    except Exception:
        logger.exception("Error during database initialization")
