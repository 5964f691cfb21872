"""
Database seeding utilities for initial admin user creation
"""
import asyncio
import logging

from sqlalchemy.exc import SQLAlchemyError

from marketplace.core.config import settings
from marketplace.core.security import hash_password
from marketplace.db.session import get_db
from marketplace.models.user import User, UserRole
from marketplace.repositories.user_repository import UserRepository

logger = logging.getLogger(__name__)


async def create_super_admin() -> User | None:
    """Create super admin user from environment variables"""
    async for db in get_db():
        try:
            user_repo = UserRepository(db)

            existing_admin = await user_repo.get_by_email(settings.SUPER_ADMIN_EMAIL)
            if existing_admin:
                return existing_admin

            super_admin = User(
                email=settings.SUPER_ADMIN_EMAIL,
                full_name=settings.SUPER_ADMIN_NAME,
                password_hash=hash_password(settings.SUPER_ADMIN_PASSWORD),
                role=UserRole.ADMIN.value,
                is_active=True,
            )
            created_admin = await user_repo.create(super_admin)
            logger.info("Created super admin %s", created_admin.email)
            return created_admin
        except (SQLAlchemyError, OSError):
            logger.exception("Could not create the super admin user")
            return None
    return None


if __name__ == "__main__":
    asyncio.run(create_super_admin())
