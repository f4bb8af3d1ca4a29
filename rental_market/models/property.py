"""
Property model for rental and sale listings.
Holds listing details, the ordered image path list and the owner identifier.
"""

from sqlalchemy import String, Text, Integer, Float, JSON, Index
from sqlalchemy.orm import Mapped, mapped_column
from rental_market.database import Base
from typing import List, Optional


class Property(Base):
    """
    Property model for managing listings.
    The first entry of ``images`` is the primary image.
    """

    __tablename__ = "properties"

    # Basic property information
    title: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        comment="Property listing title"
    )

    description: Mapped[str] = mapped_column(
        Text,
        nullable=False,
        comment="Detailed property description"
    )

    property_type: Mapped[str] = mapped_column(
        String(100),
        nullable=False,
        index=True,
        comment="Property category, e.g. Flats or Plots"
    )

    location: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        index=True,
        comment="Property location/address"
    )

    # Pricing and size
    price: Mapped[float] = mapped_column(
        Float,
        nullable=False,
        comment="Property price in local currency"
    )

    bedrooms: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        comment="Number of bedrooms"
    )

    bathrooms: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        comment="Number of bathrooms"
    )

    area: Mapped[float] = mapped_column(
        Float,
        nullable=False,
        comment="Property area"
    )

    # Public paths of uploaded images, in display order
    images: Mapped[List[str]] = mapped_column(
        JSON,
        nullable=False,
        default=list,
        comment="Relative image paths, first one is the primary image"
    )

    # Owner identifier, set once at creation
    user_id: Mapped[str] = mapped_column(
        String(64),
        nullable=False,
        index=True,
        comment="Identifier of the user who created the listing"
    )

    def __repr__(self) -> str:
        """String representation of the property."""
        return f"<Property(id={self.id}, title={self.title[:30]}, price={self.price})>"

    @property
    def primary_image(self) -> Optional[str]:
        """Get the primary image path for this property."""
        return self.images[0] if self.images else None

    def to_dict(self) -> dict:
        """
        Convert property to its public dictionary form.

        Returns:
            Dictionary with camelCase keys as served by the API
        """
        return {
            "id": str(self.id),
            "title": self.title,
            "description": self.description,
            "price": self.price,
            "type": self.property_type,
            "location": self.location,
            "bedrooms": self.bedrooms,
            "bathrooms": self.bathrooms,
            "area": self.area,
            "images": list(self.images or []),
            "userId": self.user_id,
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
        }


# Composite index for "my listings" queries in insertion order
owner_created_index = Index(
    'idx_properties_owner_created',
    Property.user_id,
    Property.created_at
)
