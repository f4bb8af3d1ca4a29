"""
Tests for accounts, tokens and listing ownership.
"""

from datetime import timedelta
import uuid

import pytest
from httpx import AsyncClient
from jose import JWTError

from rental_market.config import settings
from rental_market.models.user import User
from rental_market.services.auth import AuthService
from rental_market.schemas.auth import RegisterRequest
from rental_market.utils.auth import create_access_token, hash_password, verify_password, verify_token
from rental_market.utils.dependencies import resolve_owner_id
from rental_market.utils.exceptions import (
    DuplicateResourceError,
    ForbiddenError,
    InactiveUserError,
    InvalidCredentialsError,
    InvalidTokenError,
    UnauthorizedError,
)
from tests.conftest import PropertyFactory, UserFactory, assert_error


async def register(client: AsyncClient, email: str = "renter@example.com", password: str = "s3cret-pass") -> dict:
    response = await client.post(
        "/api/auth/register",
        json={"name": "Renter", "email": email, "password": password}
    )
    assert response.status_code == 201, response.text
    return response.json()


def bearer(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


class TestPasswordAndTokens:
    """Password hashing and JWT helpers."""

    def test_hash_and_verify(self):
        hashed = hash_password("testpassword123")

        assert hashed != "testpassword123"
        assert verify_password("testpassword123", hashed)
        assert not verify_password("wrongpassword", hashed)

    def test_hash_rejects_short_password(self):
        with pytest.raises(ValueError):
            hash_password("short")

    def test_token_round_trip(self):
        user_id = uuid.uuid4()
        token = create_access_token(user_id, "owner@example.com")

        payload = verify_token(token)

        assert payload.user_id == str(user_id)
        assert payload.email == "owner@example.com"

    def test_expired_token(self):
        token = create_access_token("someone", "owner@example.com", expires_delta=timedelta(seconds=-1))

        with pytest.raises(JWTError):
            verify_token(token)


class TestAuthService:
    """AuthService behaviour against the test database."""

    @pytest.mark.asyncio
    async def test_register_and_login(self, auth_service: AuthService):
        user, token = await auth_service.register(
            RegisterRequest(name="New User", email="New.User@Example.com", password="password123")
        )

        assert user.email == "new.user@example.com"
        assert verify_token(token).user_id == str(user.id)

        logged_in, _ = await auth_service.login("new.user@example.com", "password123")
        assert logged_in.id == user.id

    @pytest.mark.asyncio
    async def test_register_duplicate(self, auth_service: AuthService, test_user: User):
        with pytest.raises(DuplicateResourceError):
            await auth_service.register(
                RegisterRequest(name="Again", email=test_user.email, password="password123")
            )

    @pytest.mark.asyncio
    async def test_authenticate_wrong_password(self, auth_service: AuthService, test_user: User):
        with pytest.raises(InvalidCredentialsError):
            await auth_service.authenticate_user(test_user.email, "wrongpassword")

    @pytest.mark.asyncio
    async def test_authenticate_unknown_user(self, auth_service: AuthService):
        with pytest.raises(InvalidCredentialsError):
            await auth_service.authenticate_user("nobody@example.com", "password123")

    @pytest.mark.asyncio
    async def test_current_user_from_token(self, auth_service: AuthService, test_user: User):
        user = await auth_service.get_current_user(auth_service.create_token(test_user))

        assert user.id == test_user.id

    @pytest.mark.asyncio
    async def test_current_user_bad_token(self, auth_service: AuthService):
        with pytest.raises(InvalidTokenError):
            await auth_service.get_current_user("not-a-token")

    @pytest.mark.asyncio
    async def test_current_user_inactive(self, auth_service: AuthService, user_repository):
        inactive = await UserFactory.create_user(user_repository, email="inactive@example.com", is_active=False)

        with pytest.raises(InactiveUserError):
            await auth_service.get_current_user(auth_service.create_token(inactive))


class TestResolveOwnerId:
    """Owner resolution for new listings."""

    def test_claimed_id_without_token(self):
        assert resolve_owner_id(" user-9 ", None) == "user-9"

    def test_missing_id_without_token(self):
        assert resolve_owner_id(None, None) is None

    def test_token_wins(self):
        user = User(name="Owner", email="owner@example.com", hashed_password="x")
        user.id = uuid.uuid4()

        assert resolve_owner_id(None, user) == str(user.id)
        assert resolve_owner_id(str(user.id), user) == str(user.id)

    def test_mismatched_claim(self):
        user = User(name="Owner", email="owner@example.com", hashed_password="x")
        user.id = uuid.uuid4()

        with pytest.raises(ForbiddenError):
            resolve_owner_id("someone-else", user)

    def test_authentication_required(self, monkeypatch):
        monkeypatch.setattr(settings, "require_authentication", True)

        with pytest.raises(UnauthorizedError):
            resolve_owner_id("user-1", None)


class TestAuthEndpoints:
    """/api/auth endpoints and token-based listing ownership."""

    @pytest.mark.asyncio
    async def test_register(self, async_client: AsyncClient):
        data = await register(async_client)

        assert data["token"]
        assert data["token_type"] == "bearer"
        assert data["expires_in"] == settings.access_token_expire_minutes * 60
        assert data["user"]["email"] == "renter@example.com"
        assert data["user"]["isActive"] is True
        assert "hashed_password" not in data["user"]

    @pytest.mark.asyncio
    async def test_register_duplicate_email(self, async_client: AsyncClient):
        await register(async_client)

        response = await async_client.post(
            "/api/auth/register",
            json={"name": "Renter", "email": "renter@example.com", "password": "another-pass"}
        )

        assert_error(response, 409, "CONFLICT")

    @pytest.mark.asyncio
    async def test_register_short_password(self, async_client: AsyncClient):
        response = await async_client.post(
            "/api/auth/register",
            json={"name": "Renter", "email": "renter@example.com", "password": "short"}
        )

        assert_error(response, 400, "VALIDATION_ERROR")

    @pytest.mark.asyncio
    async def test_login(self, async_client: AsyncClient):
        await register(async_client)

        response = await async_client.post(
            "/api/auth/login",
            json={"email": "renter@example.com", "password": "s3cret-pass"}
        )

        assert response.status_code == 200
        assert response.json()["user"]["email"] == "renter@example.com"

    @pytest.mark.asyncio
    async def test_login_wrong_password(self, async_client: AsyncClient):
        await register(async_client)

        response = await async_client.post(
            "/api/auth/login",
            json={"email": "renter@example.com", "password": "wrong-pass"}
        )

        assert_error(response, 401, "UNAUTHORIZED")

    @pytest.mark.asyncio
    async def test_me(self, async_client: AsyncClient):
        data = await register(async_client)

        response = await async_client.get("/api/auth/me", headers=bearer(data["token"]))

        assert response.status_code == 200
        assert response.json()["id"] == data["user"]["id"]

    @pytest.mark.asyncio
    async def test_me_without_token(self, async_client: AsyncClient):
        response = await async_client.get("/api/auth/me")

        assert_error(response, 401, "UNAUTHORIZED")

    @pytest.mark.asyncio
    async def test_me_with_invalid_token(self, async_client: AsyncClient):
        response = await async_client.get("/api/auth/me", headers=bearer("garbage"))

        assert_error(response, 401, "UNAUTHORIZED")

    @pytest.mark.asyncio
    async def test_create_property_owned_by_token_user(self, async_client: AsyncClient):
        data = await register(async_client)

        response = await async_client.post(
            "/api/properties",
            data=PropertyFactory.form_data(user_id=None),
            headers=bearer(data["token"])
        )

        assert response.status_code == 201
        assert response.json()["userId"] == data["user"]["id"]

        mine = await async_client.get("/api/properties", params={"userId": data["user"]["id"]})
        assert len(mine.json()) == 1

    @pytest.mark.asyncio
    async def test_create_property_with_mismatched_user_id(self, async_client: AsyncClient):
        data = await register(async_client)

        response = await async_client.post(
            "/api/properties",
            data=PropertyFactory.form_data(user_id="someone-else"),
            headers=bearer(data["token"])
        )

        assert_error(response, 403, "FORBIDDEN")

    @pytest.mark.asyncio
    async def test_create_property_with_invalid_token(self, async_client: AsyncClient):
        response = await async_client.post(
            "/api/properties",
            data=PropertyFactory.form_data(),
            headers=bearer("garbage")
        )

        assert_error(response, 401, "UNAUTHORIZED")

    @pytest.mark.asyncio
    async def test_create_property_when_authentication_required(self, async_client: AsyncClient, monkeypatch):
        monkeypatch.setattr(settings, "require_authentication", True)

        response = await async_client.post("/api/properties", data=PropertyFactory.form_data())

        assert_error(response, 401, "UNAUTHORIZED")
