"""
Tests for the listing and image services and the repositories beneath them.
"""

import uuid

import pytest
from pydantic import ValidationError as PydanticValidationError

from rental_market.repositories.property import PropertyRepository
from rental_market.schemas.property import PropertyCreate, PropertyUpdate, parse_keep_images
from rental_market.services.image import ImageService
from rental_market.services.property import PropertyService, merge_images
from rental_market.utils.exceptions import (
    FileUploadError,
    ImageLimitExceededError,
    PropertyNotFoundError,
    StoreError,
    ValidationError,
)
from rental_market.utils.file_utils import ImageStorage
from tests.conftest import PropertyFactory, UploadStub, stored_files, upload_stub


def property_create(**overrides) -> PropertyCreate:
    data = {
        "title": "Test Property",
        "description": "A beautiful test property",
        "type": "Flats",
        "location": "Test City",
        "price": 1200,
        "bedrooms": 2,
        "bathrooms": 1,
        "area": 900,
    }
    data.update(overrides)
    return PropertyCreate(**data)


class TestMergeImages:
    """merge_images rules."""

    def test_no_uploads_keeps_current(self):
        assert merge_images(["/uploads/a.png", "/uploads/b.png"], []) == ["/uploads/a.png", "/uploads/b.png"]

    def test_no_uploads_ignores_keep_list(self):
        assert merge_images(["/uploads/a.png"], [], keep_images=[]) == ["/uploads/a.png"]

    def test_uploads_replace_without_keep_list(self):
        assert merge_images(["/uploads/a.png"], ["/uploads/new.png"]) == ["/uploads/new.png"]

    def test_kept_images_come_first(self):
        merged = merge_images(
            ["/uploads/a.png", "/uploads/b.png", "/uploads/c.png"],
            ["/uploads/n1.png", "/uploads/n2.png"],
            keep_images=["/uploads/c.png", "/uploads/a.png"]
        )

        assert merged == ["/uploads/c.png", "/uploads/a.png", "/uploads/n1.png", "/uploads/n2.png"]

    def test_empty_keep_list_with_uploads(self):
        assert merge_images(["/uploads/a.png"], ["/uploads/n.png"], keep_images=[]) == ["/uploads/n.png"]


class TestParseKeepImages:
    """keepImages form field decoding."""

    @pytest.mark.parametrize("raw", [None, "", "   "])
    def test_absent(self, raw):
        assert parse_keep_images(raw) is None

    def test_list_of_paths(self):
        assert parse_keep_images('["/uploads/a.png", "/uploads/b.png"]') == ["/uploads/a.png", "/uploads/b.png"]

    def test_empty_list(self):
        assert parse_keep_images("[]") == []

    @pytest.mark.parametrize("raw", ["not json", '"/uploads/a.png"', "[1, 2]", '{"a": 1}'])
    def test_invalid(self, raw):
        with pytest.raises(ValidationError):
            parse_keep_images(raw)


class TestImageService:
    """Image intake, limits and cleanup."""

    def test_check_limit(self, image_service: ImageService):
        image_service.check_limit(5)

        with pytest.raises(ImageLimitExceededError):
            image_service.check_limit(6)

    @pytest.mark.asyncio
    async def test_store_uploads_in_order(self, image_service: ImageService, image_storage: ImageStorage):
        paths = await image_service.store_uploads([upload_stub("a.jpg"), upload_stub("b.png")])

        assert len(paths) == 2
        assert paths[0].endswith(".jpg")
        assert paths[1].endswith(".png")
        assert all(image_storage.exists(path) for path in paths)

    @pytest.mark.asyncio
    async def test_invalid_file_writes_nothing(self, image_service: ImageService, image_storage: ImageStorage):
        files = [upload_stub("a.png"), UploadStub("b.png", b"garbage", "image/png")]

        with pytest.raises(ValidationError):
            await image_service.store_uploads(files)

        assert stored_files(image_storage) == []

    @pytest.mark.asyncio
    async def test_failed_write_rolls_back(
        self,
        image_service: ImageService,
        image_storage: ImageStorage,
        monkeypatch
    ):
        original_save = image_storage.save
        calls = []

        async def flaky_save(content, filename):
            calls.append(filename)
            if len(calls) == 2:
                raise FileUploadError("disk full")
            return await original_save(content, filename)

        monkeypatch.setattr(image_storage, "save", flaky_save)

        with pytest.raises(FileUploadError):
            await image_service.store_uploads([upload_stub("a.png"), upload_stub("b.png"), upload_stub("c.png")])

        assert stored_files(image_storage) == []

    @pytest.mark.asyncio
    async def test_discard(self, image_service: ImageService, image_storage: ImageStorage):
        paths = await image_service.store_uploads([upload_stub("a.png")])

        removed = image_service.discard(paths + ["/uploads/missing.png", "/elsewhere/x.png"])

        assert removed == 1
        assert stored_files(image_storage) == []


class TestPropertyService:
    """PropertyService against the test database and image store."""

    @pytest.mark.asyncio
    async def test_create(self, property_service: PropertyService):
        prop = await property_service.create_property(property_create(), "user-1", [upload_stub("a.png")])

        assert prop.user_id == "user-1"
        assert prop.property_type == "Flats"
        assert len(prop.images) == 1
        assert prop.primary_image == prop.images[0]

    @pytest.mark.asyncio
    async def test_create_without_owner(self, property_service: PropertyService, image_storage: ImageStorage):
        with pytest.raises(ValidationError):
            await property_service.create_property(property_create(), "  ", [upload_stub("a.png")])

        assert stored_files(image_storage) == []
        assert await property_service.list_properties() == []

    def test_schema_rejects_non_finite_numbers(self):
        with pytest.raises(PydanticValidationError):
            property_create(price=float("inf"))
        with pytest.raises(PydanticValidationError):
            PropertyUpdate(area=float("nan"))

    @pytest.mark.asyncio
    async def test_create_store_failure_discards_images(
        self,
        property_service: PropertyService,
        image_storage: ImageStorage,
        monkeypatch
    ):
        async def failing_create(data):
            raise StoreError("Failed to create property")

        monkeypatch.setattr(property_service.property_repo, "create_property", failing_create)

        with pytest.raises(StoreError):
            await property_service.create_property(property_create(), "user-1", [upload_stub("a.png")])

        assert stored_files(image_storage) == []

    @pytest.mark.asyncio
    async def test_list_by_owner(self, property_service: PropertyService, property_repository: PropertyRepository):
        await PropertyFactory.create_property(property_repository, user_id="alice", title="A")
        await PropertyFactory.create_property(property_repository, user_id="bob", title="B")

        everything = await property_service.list_properties()
        alices = await property_service.list_properties(user_id="alice")

        assert [p.title for p in everything] == ["A", "B"]
        assert [p.title for p in alices] == ["A"]

    @pytest.mark.asyncio
    async def test_get_missing(self, property_service: PropertyService):
        with pytest.raises(PropertyNotFoundError):
            await property_service.get_property(str(uuid.uuid4()))

        with pytest.raises(PropertyNotFoundError):
            await property_service.get_property("42")

    @pytest.mark.asyncio
    async def test_update_fields(self, property_service: PropertyService):
        prop = await property_service.create_property(property_create(), "user-1")

        updated = await property_service.update_property(str(prop.id), PropertyUpdate(price=1500, title="Bigger"))

        assert updated.price == 1500
        assert updated.title == "Bigger"
        assert updated.location == "Test City"
        assert updated.updated_at >= updated.created_at

    @pytest.mark.asyncio
    async def test_update_merges_and_cleans_up(self, property_service: PropertyService, image_storage: ImageStorage):
        prop = await property_service.create_property(
            property_create(), "user-1", [upload_stub("a.png"), upload_stub("b.png")]
        )
        first, second = prop.images

        updated = await property_service.update_property(
            str(prop.id), PropertyUpdate(), files=[upload_stub("c.jpg")], keep_images=[second]
        )

        assert updated.images[0] == second
        assert updated.images[1].endswith(".jpg")
        assert len(updated.images) == 2
        assert not image_storage.exists(first)
        assert image_storage.exists(second)

    @pytest.mark.asyncio
    async def test_update_over_limit_writes_nothing(
        self,
        property_service: PropertyService,
        image_storage: ImageStorage
    ):
        prop = await property_service.create_property(
            property_create(), "user-1", [upload_stub(f"{i}.png") for i in range(4)]
        )
        files_before = stored_files(image_storage)

        with pytest.raises(ImageLimitExceededError):
            await property_service.update_property(
                str(prop.id), PropertyUpdate(), files=[upload_stub("x.png"), upload_stub("y.png")],
                keep_images=list(prop.images)
            )

        assert stored_files(image_storage) == files_before

    @pytest.mark.asyncio
    async def test_update_store_failure_discards_new_images(
        self,
        property_service: PropertyService,
        image_storage: ImageStorage,
        monkeypatch
    ):
        prop = await property_service.create_property(property_create(), "user-1", [upload_stub("a.png")])

        async def failing_update(property_id, data):
            raise StoreError("Failed to update property")

        monkeypatch.setattr(property_service.property_repo, "update_property", failing_update)

        with pytest.raises(StoreError):
            await property_service.update_property(str(prop.id), PropertyUpdate(), files=[upload_stub("b.png")])

        assert [image_storage.public_path(name) for name in stored_files(image_storage)] == prop.images

    @pytest.mark.asyncio
    async def test_delete_removes_images(self, property_service: PropertyService, image_storage: ImageStorage):
        prop = await property_service.create_property(property_create(), "user-1", [upload_stub("a.png")])

        await property_service.delete_property(str(prop.id))

        assert stored_files(image_storage) == []
        with pytest.raises(PropertyNotFoundError):
            await property_service.get_property(str(prop.id))


class TestPropertyRepository:
    """Repository-level guarantees."""

    @pytest.mark.asyncio
    async def test_update_ignores_protected_fields(self, property_repository: PropertyRepository):
        prop = await PropertyFactory.create_property(property_repository, user_id="owner")
        original_id = prop.id
        original_created = prop.created_at

        updated = await property_repository.update_property(
            prop.id,
            {"user_id": "thief", "id": uuid.uuid4(), "created_at": None, "bedrooms": 5}
        )

        assert updated.id == original_id
        assert updated.user_id == "owner"
        assert updated.created_at == original_created
        assert updated.bedrooms == 5

    @pytest.mark.asyncio
    async def test_update_missing(self, property_repository: PropertyRepository):
        assert await property_repository.update_property(uuid.uuid4(), {"bedrooms": 1}) is None

    @pytest.mark.asyncio
    async def test_delete_missing(self, property_repository: PropertyRepository):
        assert await property_repository.delete(uuid.uuid4()) is False

    @pytest.mark.asyncio
    async def test_to_dict_uses_public_names(self, property_repository: PropertyRepository):
        prop = await PropertyFactory.create_property(property_repository, images=["/uploads/a.png"])

        data = prop.to_dict()

        assert data["type"] == "House Villas"
        assert data["userId"] == "user-1"
        assert data["images"] == ["/uploads/a.png"]
        assert set(data) == {
            "id", "title", "description", "price", "type", "location", "bedrooms",
            "bathrooms", "area", "images", "userId", "createdAt", "updatedAt",
        }
