"""
Tests for registration, login, /me and startup signatory provisioning.
"""

from httpx import AsyncClient
from sqlalchemy import func, select

from paperdesk.auth import service as auth_service
from paperdesk.auth.models import User, UserRole
from paperdesk.config import settings
from paperdesk.main import app, lifespan
from tests.conftest import TestSession, UserFactory, _create_test_user


class TestRegister:
    """POST /api/auth/register"""

    async def test_register_customer(self, client: AsyncClient):
        data = UserFactory()
        resp = await client.post("/api/auth/register", json=data)
        assert resp.status_code == 201
        body = resp.json()
        assert body["email"] == data["email"]
        assert body["role"] == "customer"
        assert "password_hash" not in body

    async def test_register_shop_owner(self, client: AsyncClient):
        resp = await client.post("/api/auth/register", json=UserFactory(role="shop_owner"))
        assert resp.status_code == 201
        assert resp.json()["role"] == "shop_owner"

    async def test_cannot_self_register_signatory(self, client: AsyncClient):
        resp = await client.post("/api/auth/register", json=UserFactory(role="authorized_signatory"))
        assert resp.status_code == 422

    async def test_duplicate_email(self, client: AsyncClient):
        data = UserFactory()
        assert (await client.post("/api/auth/register", json=data)).status_code == 201
        assert (await client.post("/api/auth/register", json=data)).status_code == 409


class TestLogin:
    """POST /api/auth/login"""

    async def test_login_valid_credentials(self, client: AsyncClient):
        await _create_test_user(email="login-ok@test.com", password="GoodPassword1!", role=UserRole.customer)
        resp = await client.post("/api/auth/login", json={"email": "login-ok@test.com", "password": "GoodPassword1!"})
        assert resp.status_code == 200
        body = resp.json()
        assert "access_token" in body
        assert body["token_type"] == "bearer"

        me = await client.get("/api/auth/me", headers={"Authorization": f"Bearer {body['access_token']}"})
        assert me.status_code == 200
        assert me.json()["email"] == "login-ok@test.com"

    async def test_login_wrong_password(self, client: AsyncClient):
        await _create_test_user(email="login-bad@test.com", password="CorrectPassword1!", role=UserRole.customer)
        resp = await client.post(
            "/api/auth/login", json={"email": "login-bad@test.com", "password": "WrongPassword1!"}
        )
        assert resp.status_code == 401
        assert resp.json()["detail"] == "Invalid credentials"

    async def test_inactive_user_cannot_login(self, client: AsyncClient):
        await _create_test_user(
            email="inactive@test.com", password="InactivePass1!", role=UserRole.customer, is_active=False
        )
        resp = await client.post("/api/auth/login", json={"email": "inactive@test.com", "password": "InactivePass1!"})
        assert resp.status_code == 401


class TestMe:
    """GET /api/auth/me"""

    async def test_me_with_fixture_client(self, signatory_client: AsyncClient):
        resp = await signatory_client.get("/api/auth/me")
        assert resp.status_code == 200
        assert resp.json()["role"] == "authorized_signatory"

    async def test_invalid_token(self, client: AsyncClient):
        resp = await client.get("/api/auth/me", headers={"Authorization": "Bearer not-a-token"})
        assert resp.status_code == 401


class TestBootstrapSignatory:
    """Startup provisioning of the first authorized signatory."""

    async def test_signatory_exists_after_startup(self, client: AsyncClient, monkeypatch):
        monkeypatch.setattr(auth_service, "async_session", TestSession)

        async with lifespan(app):
            pass

        async with TestSession() as session:
            result = await session.execute(select(User).where(User.role == UserRole.authorized_signatory))
            signatories = result.scalars().all()
        assert [s.email for s in signatories] == [settings.first_signatory_email]
        assert signatories[0].name == settings.first_signatory_name

        resp = await client.post(
            "/api/auth/login",
            json={"email": settings.first_signatory_email, "password": settings.first_signatory_password},
        )
        assert resp.status_code == 200

    async def test_second_startup_creates_nothing(self, monkeypatch):
        monkeypatch.setattr(auth_service, "async_session", TestSession)

        async with lifespan(app):
            pass
        async with lifespan(app):
            pass

        async with TestSession() as session:
            count = (await session.execute(select(func.count(User.id)))).scalar_one()
        assert count == 1

    async def test_existing_signatory_is_kept(self, signatory_user: User, monkeypatch):
        monkeypatch.setattr(auth_service, "async_session", TestSession)

        await auth_service.bootstrap_signatory()

        async with TestSession() as session:
            result = await session.execute(select(User).where(User.role == UserRole.authorized_signatory))
            assert [u.id for u in result.scalars().all()] == [signatory_user.id]
