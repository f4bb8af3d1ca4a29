"""
Property listing API endpoints.
Multipart create/update with image uploads, owner-filtered listing, get and delete.
"""

from fastapi import APIRouter, Depends, File, Form, Query, UploadFile, status
from typing import List, Optional

from rental_market.models.user import User
from rental_market.services.property import PropertyService
from rental_market.services.error_handler import error_responses
from rental_market.schemas.property import (
    PropertyCreate,
    PropertyUpdate,
    PropertyResponse,
    DeleteResponse,
    parse_keep_images,
)
from rental_market.utils.dependencies import (
    get_property_service,
    get_optional_current_user,
    resolve_owner_id,
)


router = APIRouter(prefix="/properties", tags=["Properties"])


@router.get(
    "",
    response_model=List[PropertyResponse],
    status_code=status.HTTP_200_OK,
    summary="List properties",
    description="All listings in insertion order, or only those of one owner when userId is given.",
    responses=error_responses(500)
)
async def list_properties(
    user_id: Optional[str] = Query(None, alias="userId", description="Only listings owned by this user"),
    property_service: PropertyService = Depends(get_property_service)
) -> List[PropertyResponse]:
    properties = await property_service.list_properties(user_id=user_id)
    return [PropertyResponse.model_validate(prop.to_dict()) for prop in properties]


@router.get(
    "/{property_id}",
    response_model=PropertyResponse,
    status_code=status.HTTP_200_OK,
    summary="Get property by ID",
    responses=error_responses(404, 500)
)
async def get_property(
    property_id: str,
    property_service: PropertyService = Depends(get_property_service)
) -> PropertyResponse:
    """
    Get a single listing.

    Raises:
        PropertyNotFoundError: If the identifier does not resolve
    """
    property_obj = await property_service.get_property(property_id)
    return PropertyResponse.model_validate(property_obj.to_dict())


@router.post(
    "",
    response_model=PropertyResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create new property",
    description="Create a listing from multipart form fields and up to five `images` files.",
    responses=error_responses(400, 401, 403, 500)
)
async def create_property(
    title: str = Form(...),
    description: str = Form(...),
    price: float = Form(...),
    property_type: str = Form(..., alias="type"),
    location: str = Form(...),
    bedrooms: int = Form(...),
    bathrooms: int = Form(...),
    area: float = Form(...),
    user_id: Optional[str] = Form(None, alias="userId"),
    images: Optional[List[UploadFile]] = File(None),
    current_user: Optional[User] = Depends(get_optional_current_user),
    property_service: PropertyService = Depends(get_property_service)
) -> PropertyResponse:
    """
    Create a new property listing.

    Raises:
        ValidationError: If the owner is missing, a field is invalid or an image is rejected
        ForbiddenError: If userId contradicts the bearer token
    """
    owner_id = resolve_owner_id(user_id, current_user)

    property_data = PropertyCreate(
        title=title,
        description=description,
        price=price,
        property_type=property_type,
        location=location,
        bedrooms=bedrooms,
        bathrooms=bathrooms,
        area=area,
    )

    property_obj = await property_service.create_property(property_data, owner_id, images or [])
    return PropertyResponse.model_validate(property_obj.to_dict())


@router.put(
    "/{property_id}",
    response_model=PropertyResponse,
    status_code=status.HTTP_200_OK,
    summary="Update property",
    description=(
        "Partially update a listing. New `images` files replace the current images, "
        "or are appended to `keepImages` (a JSON array of current image paths) when given."
    ),
    responses=error_responses(400, 404, 500)
)
async def update_property(
    property_id: str,
    title: Optional[str] = Form(None),
    description: Optional[str] = Form(None),
    price: Optional[float] = Form(None),
    property_type: Optional[str] = Form(None, alias="type"),
    location: Optional[str] = Form(None),
    bedrooms: Optional[int] = Form(None),
    bathrooms: Optional[int] = Form(None),
    area: Optional[float] = Form(None),
    keep_images: Optional[str] = Form(None, alias="keepImages"),
    images: Optional[List[UploadFile]] = File(None),
    property_service: PropertyService = Depends(get_property_service)
) -> PropertyResponse:
    """
    Update an existing listing.

    Raises:
        PropertyNotFoundError: If the identifier does not resolve
        ValidationError: If a field, keepImages or an image is invalid
    """
    property_data = PropertyUpdate(
        title=title,
        description=description,
        price=price,
        property_type=property_type,
        location=location,
        bedrooms=bedrooms,
        bathrooms=bathrooms,
        area=area,
    )

    property_obj = await property_service.update_property(
        property_id,
        property_data,
        files=images or [],
        keep_images=parse_keep_images(keep_images),
    )
    return PropertyResponse.model_validate(property_obj.to_dict())


@router.delete(
    "/{property_id}",
    response_model=DeleteResponse,
    status_code=status.HTTP_200_OK,
    summary="Delete property",
    responses=error_responses(404, 500)
)
async def delete_property(
    property_id: str,
    property_service: PropertyService = Depends(get_property_service)
) -> DeleteResponse:
    """
    Delete a listing together with its image files.
    """
    await property_service.delete_property(property_id)
    return DeleteResponse()
