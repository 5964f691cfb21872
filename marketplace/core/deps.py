from typing import Annotated
from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.ext.asyncio import AsyncSession

from marketplace.db.session import get_db
from marketplace.core.security import decode_token
from marketplace.repositories.user_repository import UserRepository
from marketplace.models.user import UserRole


oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/v1/auth/login")


DBSessionDep = Annotated[AsyncSession, Depends(get_db)]


async def get_current_user(db: DBSessionDep, token: Annotated[str, Depends(oauth2_scheme)]):
    try:
        payload = decode_token(token)
        if not payload or "sub" not in payload:
            raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token")
        user_id = int(payload["sub"])
        user = await UserRepository(db).get_by_id(user_id)
        if not user or not user.is_active:
            raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Inactive user")
        return user
    except HTTPException:
        raise
    except (TypeError, ValueError) as e:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=f"Authentication error: {str(e)}")


def require_roles(*roles: UserRole | str):
    async def _role_dep(user = Depends(get_current_user)):
        allowed = {r.value if hasattr(r, "value") else r for r in roles}
        if allowed and user.role not in allowed:
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Insufficient role")
        return user
    return _role_dep


def require_admin():
    """Require Admin role"""
    async def _admin_dep(user = Depends(get_current_user)):
        if user.role != UserRole.ADMIN.value:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Access denied. Admin role required"
            )
        return user
    return _admin_dep


def require_seller():
    """Require Seller role"""
    return require_roles(UserRole.SELLER)
