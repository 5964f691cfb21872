"""
Pytest configuration and fixtures for marketplace tests
"""
from typing import AsyncGenerator, Optional

import pytest
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.pool import StaticPool

from marketplace.main import create_app
from marketplace.db.base import Base
from marketplace.db.session import get_db
from marketplace.models import User, Product  # noqa: F401  (registers every table)
from marketplace.models.user import UserRole
from marketplace.repositories.user_repository import UserRepository
from marketplace.core.security import hash_password
from marketplace.schemas.category import CategoryAncestor, CategoryOut


# Test database URL - use in-memory SQLite for tests
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"
TEST_PASSWORD = "testpass123"


@pytest.fixture(scope="function")
async def test_db() -> AsyncGenerator[AsyncSession, None]:
    """
    Create a test database session with in-memory SQLite.
    Each test gets a fresh database.
    """
    engine = create_async_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        echo=False,
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async_session = async_sessionmaker(
        engine, class_=AsyncSession, expire_on_commit=False, autoflush=False
    )

    async with async_session() as session:
        yield session
        await session.rollback()

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest.fixture
async def test_client(test_db: AsyncSession) -> AsyncGenerator[AsyncClient, None]:
    """
    Create a test client with dependency override for database.
    """
    app = create_app()

    async def override_get_db():
        yield test_db

    app.dependency_overrides[get_db] = override_get_db

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test"
    ) as client:
        yield client

    app.dependency_overrides.clear()


async def _create_user(db: AsyncSession, email: str, role: UserRole, full_name: str) -> User:
    return await UserRepository(db).create(User(
        email=email,
        full_name=full_name,
        password_hash=hash_password(TEST_PASSWORD),
        role=role.value,
        is_active=True,
    ))


@pytest.fixture
async def admin_user(test_db: AsyncSession) -> User:
    """Create an admin user for testing."""
    return await _create_user(test_db, "admin@test.com", UserRole.ADMIN, "Test Admin")


@pytest.fixture
async def seller_user(test_db: AsyncSession) -> User:
    """Create a seller user for testing."""
    return await _create_user(test_db, "seller@test.com", UserRole.SELLER, "Test Seller")


@pytest.fixture
async def other_seller_user(test_db: AsyncSession) -> User:
    return await _create_user(test_db, "seller2@test.com", UserRole.SELLER, "Other Seller")


async def _login(client: AsyncClient, email: str) -> str:
    response = await client.post(
        "/api/v1/auth/login",
        json={"email": email, "password": TEST_PASSWORD}
    )
    assert response.status_code == 200
    return response.json()["access_token"]


@pytest.fixture
async def admin_token(test_client: AsyncClient, admin_user: User) -> str:
    """Get authentication token for admin user."""
    return await _login(test_client, admin_user.email)


@pytest.fixture
async def seller_token(test_client: AsyncClient, seller_user: User) -> str:
    """Get authentication token for seller user."""
    return await _login(test_client, seller_user.email)


@pytest.fixture
async def other_seller_token(test_client: AsyncClient, other_seller_user: User) -> str:
    return await _login(test_client, other_seller_user.email)


@pytest.fixture
def admin_headers(admin_token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {admin_token}"}


@pytest.fixture
def seller_headers(seller_token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {seller_token}"}


@pytest.fixture
def make_category():
    """
    Build an in-memory category record. Lineage fields are taken as given so
    tests can also describe inconsistent data.
    """
    def _make(
        category_id: int,
        name: str,
        parent_id: Optional[int] = None,
        *,
        slug: Optional[str] = None,
        level: int = 0,
        ancestors: Optional[list[tuple[int, str, str]]] = None,
        path: Optional[str] = None,
        display_order: int = 0,
        is_active: bool = True,
        description: Optional[str] = None,
    ) -> CategoryOut:
        slug = slug or name.lower().replace(" ", "-")
        return CategoryOut(
            id=category_id,
            name=name,
            slug=slug,
            parent_id=parent_id,
            level=level,
            ancestors=[CategoryAncestor(id=i, name=n, slug=s) for i, n, s in (ancestors or [])],
            path=path or f"/{slug}",
            display_order=display_order,
            is_active=is_active,
            description=description,
        )
    return _make


@pytest.fixture
def sample_flat(make_category) -> list[CategoryOut]:
    """A(root) > B > C, A > D, with consistent lineage."""
    a = make_category(1, "A")
    b = make_category(2, "B", 1, level=1, ancestors=[(1, "A", "a")], path="/a/b")
    c = make_category(3, "C", 2, level=2, ancestors=[(1, "A", "a"), (2, "B", "b")], path="/a/b/c")
    d = make_category(4, "D", 1, level=1, ancestors=[(1, "A", "a")], path="/a/d")
    return [a, b, c, d]
