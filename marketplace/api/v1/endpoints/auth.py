from fastapi import APIRouter, HTTPException, status

from marketplace.core.config import settings
from marketplace.core.deps import DBSessionDep
from marketplace.core.security import create_access_token
from marketplace.schemas.auth import LoginInput, Token
from marketplace.services.auth_service import AuthService

router = APIRouter()


@router.get("/health")
def health() -> dict[str, str]:
    return {"status": "ok"}


@router.post("/login", response_model=Token)
async def login(db: DBSessionDep, login_data: LoginInput):
    """Login endpoint - accepts email and password"""
    user = await AuthService(db).authenticate_user(email=login_data.email, password=login_data.password)
    if not user:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid credentials")

    token = create_access_token(user.id)
    return {
        "access_token": token,
        "token_type": "bearer",
        "expires_in": settings.ACCESS_TOKEN_EXPIRE_MINUTES,
    }
