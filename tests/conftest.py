"""
Test configuration and fixtures for the Rental Market API.
Provides an in-memory database, an isolated image store, an ASGI test client
and test data factories.
"""

import io
import os
import tempfile
import uuid
from typing import AsyncGenerator, Dict, List, Optional, Tuple

# Settings are read at import time, so the environment is prepared first
os.environ.setdefault("ENVIRONMENT", "testing")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite://")
os.environ.setdefault("UPLOAD_DIR", tempfile.mkdtemp(prefix="rental-market-uploads-"))
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key-with-at-least-32-characters")

import pytest
from httpx import ASGITransport, AsyncClient
from PIL import Image
from sqlalchemy.ext.asyncio import AsyncSession

from rental_market.main import app
from rental_market.database import Database, get_db
from rental_market.models.property import Property
from rental_market.models.user import User
from rental_market.repositories.property import PropertyRepository
from rental_market.repositories.user import UserRepository
from rental_market.services.auth import AuthService
from rental_market.services.image import ImageService
from rental_market.services.property import PropertyService
from rental_market.utils.auth import hash_password
from rental_market.utils.dependencies import get_image_storage
from rental_market.utils.file_utils import ImageStorage


TEST_DATABASE_URL = "sqlite+aiosqlite://"


@pytest.fixture
async def test_database() -> AsyncGenerator[Database, None]:
    """Fresh in-memory database with all tables."""
    database = Database(TEST_DATABASE_URL)
    await database.create_tables()
    yield database
    await database.disconnect()


@pytest.fixture
async def db_session(test_database: Database) -> AsyncGenerator[AsyncSession, None]:
    """Create a test database session."""
    async with test_database.session() as session:
        yield session


@pytest.fixture
def image_storage(tmp_path) -> ImageStorage:
    """Image store rooted in a per-test directory."""
    return ImageStorage(tmp_path / "uploads", "/uploads")


@pytest.fixture
async def async_client(test_database: Database, image_storage: ImageStorage) -> AsyncGenerator[AsyncClient, None]:
    """Create an async test client wired to the test database and image store."""
    async def override_get_db():
        async with test_database.session() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_image_storage] = lambda: image_storage

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()


# Repository fixtures
@pytest.fixture
def user_repository(db_session: AsyncSession) -> UserRepository:
    return UserRepository(db_session)


@pytest.fixture
def property_repository(db_session: AsyncSession) -> PropertyRepository:
    return PropertyRepository(db_session)


# Service fixtures
@pytest.fixture
def auth_service(db_session: AsyncSession) -> AuthService:
    return AuthService(db_session)


@pytest.fixture
def image_service(image_storage: ImageStorage) -> ImageService:
    return ImageService(image_storage, max_images=5)


@pytest.fixture
def property_service(db_session: AsyncSession, image_service: ImageService) -> PropertyService:
    return PropertyService(db_session, image_service)


# Test data factories
def make_image_bytes(fmt: str = "PNG", size: Tuple[int, int] = (16, 12), color: str = "red") -> bytes:
    """Create a small image in memory."""
    img = Image.new("RGB", size, color=color)
    buffer = io.BytesIO()
    img.save(buffer, format=fmt)
    return buffer.getvalue()


IMAGE_FORMATS = {
    ".png": ("PNG", "image/png"),
    ".jpg": ("JPEG", "image/jpeg"),
    ".jpeg": ("JPEG", "image/jpeg"),
    ".webp": ("WEBP", "image/webp"),
    ".gif": ("GIF", "image/gif"),
}


def image_part(filename: str = "photo.png") -> Tuple[str, Tuple[str, bytes, str]]:
    """Multipart ``images`` entry holding a valid image of the extension's type."""
    fmt, mime_type = IMAGE_FORMATS[os.path.splitext(filename)[1].lower()]
    return ("images", (filename, make_image_bytes(fmt), mime_type))


def image_parts(count: int, extension: str = ".png") -> List[Tuple[str, Tuple[str, bytes, str]]]:
    return [image_part(f"photo{i}{extension}") for i in range(count)]


def stored_files(storage: ImageStorage) -> List[str]:
    """Names of the files currently in the image store."""
    return sorted(p.name for p in storage.base_dir.iterdir() if p.is_file())


class UploadStub:
    """Stand-in for an UploadFile, for service-level tests."""

    def __init__(self, filename: str, content: bytes, content_type: str):
        self.filename = filename
        self.content_type = content_type
        self._buffer = io.BytesIO(content)

    async def read(self, size: int = -1) -> bytes:
        return self._buffer.read(size)

    async def seek(self, offset: int) -> None:
        self._buffer.seek(offset)


def upload_stub(filename: str = "photo.png") -> UploadStub:
    _, (name, content, mime_type) = image_part(filename)
    return UploadStub(name, content, mime_type)


class PropertyFactory:
    """Factory for creating test listings."""

    @staticmethod
    def form_data(user_id: Optional[str] = "user-1", **overrides) -> Dict[str, str]:
        """Multipart form fields for a create request."""
        data = {
            "title": "Sunny 2BHK near the metro",
            "description": "Bright flat with balcony and covered parking",
            "price": "32000",
            "type": "Flats",
            "location": "Indiranagar, Bengaluru",
            "bedrooms": "2",
            "bathrooms": "2",
            "area": "1100",
        }
        if user_id is not None:
            data["userId"] = user_id
        data.update({key: str(value) for key, value in overrides.items()})
        return data

    @staticmethod
    def create_property_data(user_id: str = "user-1", images: Optional[List[str]] = None, **overrides) -> dict:
        """Column values for creating a listing directly through the repository."""
        data = {
            "title": "Test Property",
            "description": "A beautiful test property",
            "property_type": "House Villas",
            "location": "Test City",
            "price": 1500.0,
            "bedrooms": 3,
            "bathrooms": 2,
            "area": 1800.0,
            "images": images or [],
            "user_id": user_id,
        }
        data.update(overrides)
        return data

    @staticmethod
    async def create_property(property_repo: PropertyRepository, **kwargs) -> Property:
        return await property_repo.create_property(PropertyFactory.create_property_data(**kwargs))


class UserFactory:
    """Factory for creating test users."""

    @staticmethod
    async def create_user(
        user_repo: UserRepository,
        email: Optional[str] = None,
        password: str = "testpassword123",
        name: str = "Test User",
        is_active: bool = True
    ) -> User:
        return await user_repo.create_user({
            "name": name,
            "email": email or f"test{uuid.uuid4().hex[:8]}@example.com",
            "hashed_password": hash_password(password),
            "is_active": is_active,
        })


@pytest.fixture
async def test_user(user_repository: UserRepository) -> User:
    return await UserFactory.create_user(user_repository, email="owner@example.com", name="Owner")


@pytest.fixture
async def created_property(async_client: AsyncClient) -> dict:
    """A listing with two images, created through the API."""
    response = await async_client.post(
        "/api/properties",
        data=PropertyFactory.form_data(),
        files=image_parts(2)
    )
    assert response.status_code == 201, response.text
    return response.json()


def assert_error(response, status_code: int, code: str) -> dict:
    """Assert the structured error body and return its ``error`` member."""
    assert response.status_code == status_code, response.text
    body = response.json()
    assert "error" in body
    assert body["error"]["code"] == code
    assert body["error"]["message"]
    assert "timestamp" in body["error"]
    return body["error"]
