from sqlalchemy.ext.asyncio import AsyncSession

from marketplace.core.security import verify_password
from marketplace.models.user import User
from marketplace.repositories.user_repository import UserRepository


class AuthService:
    def __init__(self, db: AsyncSession):
        self.db = db
        self.users = UserRepository(db)

    async def authenticate_user(self, email: str, password: str) -> User | None:
        """Authenticate user and return user object if valid"""
        user = await self.users.get_by_email(email)
        if not user or not verify_password(password, user.password_hash):
            return None
        if not user.is_active:
            return None
        return user
