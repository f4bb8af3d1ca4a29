"""
Configuration management using Pydantic settings.
Handles database URL, upload storage, JWT secrets, and environment variables.
"""

from pydantic import field_validator
from pydantic_settings import BaseSettings
from typing import List
from functools import lru_cache
import os


class Settings(BaseSettings):
    """Application settings with environment variable support."""

    # Application configuration
    app_name: str = "Rental Market API"
    app_version: str = "1.0.0"
    environment: str = "development"
    debug: bool = False

    # Database configuration
    database_url: str = "sqlite+aiosqlite:///./rental_market.db"
    auto_create_tables: bool = True

    # JWT configuration
    jwt_secret_key: str = "your-secret-key-change-in-production"
    jwt_algorithm: str = "HS256"
    access_token_expire_minutes: int = 60 * 24

    # When enabled, listings can only be created with a verified bearer token
    require_authentication: bool = False

    # File upload configuration
    upload_dir: str = "./uploads"
    upload_url_prefix: str = "/uploads"
    max_images_per_property: int = 5
    max_file_size: int = 10 * 1024 * 1024  # 10MB
    max_request_size: int = 60 * 1024 * 1024  # five images plus form fields
    allowed_file_types: List[str] = ["image/jpeg", "image/png", "image/webp", "image/gif"]

    # API configuration
    api_prefix: str = "/api"
    cors_origins: List[str] = ["http://localhost:3000", "http://localhost:5173", "http://localhost:8080"]

    # Server configuration
    host: str = "0.0.0.0"
    port: int = 8000

    @field_validator("database_url")
    @classmethod
    def validate_database_url(cls, v):
        """Ensure an async driver is used."""
        if v.startswith("postgresql://"):
            return v.replace("postgresql://", "postgresql+asyncpg://", 1)
        if v.startswith("sqlite://"):
            return v.replace("sqlite://", "sqlite+aiosqlite://", 1)
        if not v.startswith(("postgresql+asyncpg://", "sqlite+aiosqlite://")):
            raise ValueError("database_url must use postgresql+asyncpg or sqlite+aiosqlite")
        return v

    @field_validator("jwt_secret_key")
    @classmethod
    def validate_jwt_secret_key(cls, v):
        """Validate JWT secret key strength."""
        if not v:
            raise ValueError("JWT_SECRET_KEY is required")
        if len(v) < 32 and v != "your-secret-key-change-in-production":
            raise ValueError("JWT_SECRET_KEY must be at least 32 characters long")
        return v

    @field_validator("environment")
    @classmethod
    def validate_environment(cls, v):
        """Validate environment setting."""
        allowed_envs = ["development", "testing", "staging", "production"]
        if v not in allowed_envs:
            raise ValueError(f"Environment must be one of: {allowed_envs}")
        return v

    @field_validator("upload_dir")
    @classmethod
    def create_upload_directory(cls, v):
        """Ensure the upload directory exists."""
        if v and not os.path.exists(v):
            os.makedirs(v, exist_ok=True)
        return v

    @field_validator("upload_url_prefix")
    @classmethod
    def validate_upload_url_prefix(cls, v):
        """Normalize the public prefix to '/name' form."""
        v = "/" + v.strip("/")
        if v == "/":
            raise ValueError("upload_url_prefix cannot be the root path")
        return v

    @property
    def is_production(self) -> bool:
        """Check if running in production mode."""
        return self.environment == "production"

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": False,
    }


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.
    This ensures we only create one instance of settings throughout the app lifecycle.
    """
    return Settings()


# Global settings instance
settings = get_settings()
