from fastapi import APIRouter, status, Depends

from app.models.user import (
    UserSignupRequest,
    UserLoginRequest,
    RefreshTokenRequest,
    TokenResponse,
    UserResponse
)
from app.core.dependencies import get_auth_service
from app.middleware.auth_middleware import get_current_user_id
from app.services.auth_service import AuthService

router = APIRouter()


@router.post("/signup", response_model=TokenResponse, status_code=status.HTTP_201_CREATED)
async def signup(request: UserSignupRequest, auth_service: AuthService = Depends(get_auth_service)):
    """
    Register a new user

    Args:
        request: User signup data (name, email, password)

    Returns:
        Access token, refresh token, and user data

    Raises:
        InvalidInput: If email already exists
    """
    return auth_service.signup(request)


@router.post("/login", response_model=TokenResponse)
async def login(request: UserLoginRequest, auth_service: AuthService = Depends(get_auth_service)):
    """
    Authenticate a user

    Raises:
        AuthenticationRequired: If credentials are invalid
    """
    return auth_service.login(request)


@router.post("/refresh")
async def refresh_token(request: RefreshTokenRequest, auth_service: AuthService = Depends(get_auth_service)):
    """
    Exchange a refresh token for a new access token

    Returns:
        New access token
    """
    return auth_service.refresh_access_token(request.refresh_token)


@router.post("/logout")
async def logout():
    """
    Logout user

    Tokens are stateless; the client drops them. Kept for API symmetry.
    """
    return {"message": "Logged out successfully"}


@router.get("/me", response_model=UserResponse)
async def get_current_user(
    user_id: str = Depends(get_current_user_id),
    auth_service: AuthService = Depends(get_auth_service),
):
    """Current authenticated user's information"""
    return auth_service.get_user(user_id)
