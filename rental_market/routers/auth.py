"""
Authentication API endpoints for registration, login and the current user.
"""

from fastapi import APIRouter, Depends, status
from rental_market.config import settings
from rental_market.models.user import User
from rental_market.services.auth import AuthService
from rental_market.services.error_handler import error_responses
from rental_market.schemas.auth import (
    RegisterRequest,
    LoginRequest,
    AuthResponse,
    UserResponse,
)
from rental_market.utils.dependencies import get_auth_service, get_current_user


router = APIRouter(prefix="/auth", tags=["Authentication"])


def _auth_response(user: User, token: str) -> AuthResponse:
    return AuthResponse(
        token=token,
        expires_in=settings.access_token_expire_minutes * 60,
        user=UserResponse.model_validate(user.to_dict()),
    )


@router.post(
    "/register",
    response_model=AuthResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Register a new account",
    responses=error_responses(400, 409)
)
async def register(
    register_data: RegisterRequest,
    auth_service: AuthService = Depends(get_auth_service)
) -> AuthResponse:
    """
    Create an account and return an access token for it.

    Raises:
        DuplicateResourceError: If the email is already registered
    """
    user, token = await auth_service.register(register_data)
    return _auth_response(user, token)


@router.post(
    "/login",
    response_model=AuthResponse,
    status_code=status.HTTP_200_OK,
    summary="User login",
    responses=error_responses(400, 401)
)
async def login(
    login_data: LoginRequest,
    auth_service: AuthService = Depends(get_auth_service)
) -> AuthResponse:
    """
    Authenticate with email and password.

    Raises:
        InvalidCredentialsError: If credentials are invalid
    """
    user, token = await auth_service.login(login_data.email, login_data.password)
    return _auth_response(user, token)


@router.get(
    "/me",
    response_model=UserResponse,
    status_code=status.HTTP_200_OK,
    summary="Current user",
    responses=error_responses(401)
)
async def get_me(current_user: User = Depends(get_current_user)) -> UserResponse:
    return UserResponse.model_validate(current_user.to_dict())
