"""
Pydantic schemas for property requests and responses.
Handles listing field validation and the keepImages form field.
"""

from pydantic import BaseModel, ConfigDict, Field, field_validator
from typing import Optional, List
from datetime import datetime
import json

from rental_market.utils.exceptions import ValidationError

# Categories offered by the client forms; any non-empty text is accepted
PROPERTY_TYPES = (
    "Flats",
    "Builder Floors",
    "House Villas",
    "Plots",
    "Farmhouses",
    "Hotels",
    "Lands",
    "Office Spaces",
    "Hostels",
    "Shops Showrooms",
)

TEXT_FIELDS = ("title", "description", "property_type", "location")


def _clean_text(v):
    if v is None:
        return v
    if not v.strip():
        raise ValueError("must not be empty")
    return v.strip()


class PropertyBase(BaseModel):
    """Base property schema with common fields."""

    model_config = ConfigDict(populate_by_name=True)

    title: str = Field(..., max_length=255, description="Property listing title")
    description: str = Field(..., description="Detailed property description")
    property_type: str = Field(..., alias="type", max_length=100, description="Property category")
    location: str = Field(..., max_length=255, description="Property location/address")
    price: float = Field(..., ge=0, allow_inf_nan=False, description="Property price in local currency")
    bedrooms: int = Field(..., ge=0, description="Number of bedrooms")
    bathrooms: int = Field(..., ge=0, description="Number of bathrooms")
    area: float = Field(..., ge=0, allow_inf_nan=False, description="Property area")

    @field_validator(*TEXT_FIELDS)
    @classmethod
    def validate_text(cls, v):
        """Reject blank text and trim surrounding whitespace."""
        return _clean_text(v)


class PropertyCreate(PropertyBase):
    """Schema for creating a new property."""

    model_config = ConfigDict(
        populate_by_name=True,
        json_schema_extra={
            "example": {
                "title": "Sunny 2BHK near the metro",
                "description": "Bright flat with balcony, covered parking and power backup.",
                "type": "Flats",
                "location": "Indiranagar, Bengaluru",
                "price": 32000,
                "bedrooms": 2,
                "bathrooms": 2,
                "area": 1100
            }
        }
    )


class PropertyUpdate(BaseModel):
    """Schema for partially updating an existing property."""

    model_config = ConfigDict(populate_by_name=True)

    title: Optional[str] = Field(None, max_length=255)
    description: Optional[str] = None
    property_type: Optional[str] = Field(None, alias="type", max_length=100)
    location: Optional[str] = Field(None, max_length=255)
    price: Optional[float] = Field(None, ge=0, allow_inf_nan=False)
    bedrooms: Optional[int] = Field(None, ge=0)
    bathrooms: Optional[int] = Field(None, ge=0)
    area: Optional[float] = Field(None, ge=0, allow_inf_nan=False)

    @field_validator(*TEXT_FIELDS)
    @classmethod
    def validate_text(cls, v):
        return _clean_text(v)

    def changes(self) -> dict:
        """Fields that were actually supplied, keyed by column name."""
        return self.model_dump(exclude_none=True)


class PropertyResponse(BaseModel):
    """Schema for property response."""

    id: str
    title: str
    description: str
    price: float
    type: str
    location: str
    bedrooms: int
    bathrooms: int
    area: float
    images: List[str] = Field(default_factory=list, description="Image paths, primary first")
    userId: str
    createdAt: datetime
    updatedAt: datetime


class DeleteResponse(BaseModel):
    """Confirmation returned by delete."""

    message: str = "Property deleted"


def parse_keep_images(raw: Optional[str]) -> Optional[List[str]]:
    """
    Decode the keepImages form field.

    An absent or empty value means "not supplied" and returns None.

    Raises:
        ValidationError: If the value is not a JSON array of strings
    """
    if raw is None or not raw.strip():
        return None

    try:
        value = json.loads(raw)
    except json.JSONDecodeError as e:
        raise ValidationError(
            "keepImages must be a JSON array of image paths",
            field_errors=[{"field": "keepImages", "message": str(e)}]
        )

    if not isinstance(value, list) or not all(isinstance(item, str) for item in value):
        raise ValidationError(
            "keepImages must be a JSON array of image paths",
            field_errors=[{"field": "keepImages", "message": "expected a list of strings"}]
        )

    return value
