"""
Pydantic schemas for account registration, login and the current user.
"""

from pydantic import BaseModel, EmailStr, Field, field_validator
from datetime import datetime


class RegisterRequest(BaseModel):
    """Schema for registering a new account."""

    name: str = Field(..., min_length=1, max_length=255, description="Display name")
    email: EmailStr = Field(..., description="Account email address")
    password: str = Field(..., min_length=8, max_length=72, description="Account password")

    @field_validator("name")
    @classmethod
    def validate_name(cls, v):
        if not v.strip():
            raise ValueError("Name cannot be empty")
        return v.strip()


class LoginRequest(BaseModel):
    """Schema for login credentials."""

    email: EmailStr
    password: str = Field(..., min_length=1)


class UserResponse(BaseModel):
    """Public user information."""

    id: str
    name: str
    email: str
    isActive: bool
    createdAt: datetime


class AuthResponse(BaseModel):
    """Token plus the user it was issued for."""

    token: str
    token_type: str = "bearer"
    expires_in: int = Field(..., description="Token lifetime in seconds")
    user: UserResponse
