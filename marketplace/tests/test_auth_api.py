"""
Tests for authentication API endpoints
"""
import pytest
from httpx import AsyncClient

from marketplace.core.security import create_access_token


@pytest.mark.api
@pytest.mark.asyncio
class TestAuthAPI:
    """Test authentication endpoints"""

    async def test_health_check(self, test_client: AsyncClient):
        response = await test_client.get("/api/v1/auth/health")
        assert response.status_code == 200
        assert response.json() == {"status": "ok"}

    async def test_app_health_check(self, test_client: AsyncClient):
        response = await test_client.get("/health")
        assert response.status_code == 200

    async def test_login_success(self, test_client: AsyncClient, admin_user):
        response = await test_client.post(
            "/api/v1/auth/login",
            json={"email": "admin@test.com", "password": "testpass123"}
        )
        assert response.status_code == 200
        data = response.json()
        assert data["token_type"] == "bearer"
        assert data["access_token"]

    async def test_login_invalid_email(self, test_client: AsyncClient):
        response = await test_client.post(
            "/api/v1/auth/login",
            json={"email": "nonexistent@test.com", "password": "testpass123"}
        )
        assert response.status_code == 401

    async def test_login_invalid_password(self, test_client: AsyncClient, admin_user):
        response = await test_client.post(
            "/api/v1/auth/login",
            json={"email": "admin@test.com", "password": "wrongpassword"}
        )
        assert response.status_code == 401

    async def test_login_missing_fields(self, test_client: AsyncClient):
        response = await test_client.post(
            "/api/v1/auth/login",
            json={"email": "admin@test.com"}
        )
        assert response.status_code == 422

    async def test_invalid_token_rejected(self, test_client: AsyncClient):
        response = await test_client.post(
            "/api/v1/categories/refresh-counters",
            headers={"Authorization": "Bearer invalid_token"}
        )
        assert response.status_code == 401

    async def test_token_for_missing_user_rejected(self, test_client: AsyncClient):
        token = create_access_token(12345)
        response = await test_client.get(
            "/api/v1/categories/integrity",
            headers={"Authorization": f"Bearer {token}"}
        )
        assert response.status_code == 401
