import logging
from typing import Dict, Any

from pymongo.errors import DuplicateKeyError

from app.core.exceptions import AuthenticationRequired, InvalidInput
from app.models.quota import PlanTier
from app.models.user import (
    UserSignupRequest,
    UserLoginRequest,
    UserResponse,
    TokenResponse,
)
from app.repository.user_repository import UserRepository
from app.services.password_service import PasswordService
from app.services.token_service import TokenService

logger = logging.getLogger(__name__)

INVALID_CREDENTIALS = "Invalid email or password"


def to_user_response(user_doc: Dict[str, Any]) -> UserResponse:
    """Public view of a user document"""
    return UserResponse(
        id=str(user_doc["_id"]),
        name=user_doc["name"],
        email=user_doc["email"],
        photo_url=user_doc.get("photo_url"),
        plan=user_doc.get("plan") or PlanTier.FREE.value,
        subscription_status=user_doc.get("subscription_status") or "none",
        fact_checks_count=user_doc.get("fact_checks_count") or 0,
        created_at=user_doc["created_at"],
    )


class AuthService:
    """Service for authentication operations (signup, login, token refresh)"""

    def __init__(self, user_repo: UserRepository, token_service: TokenService, password_service: PasswordService = None):
        """
        Args:
            user_repo: User repository instance
            token_service: Token service instance
            password_service: Password hashing, bcrypt by default
        """
        self.user_repo = user_repo
        self.token_service = token_service
        self.password_service = password_service or PasswordService()

    def _issue_tokens(self, user_doc: Dict[str, Any]) -> TokenResponse:
        user_id = str(user_doc["_id"])
        return TokenResponse(
            access_token=self.token_service.create_access_token(user_id, user_doc["email"]),
            refresh_token=self.token_service.create_refresh_token(user_id, user_doc["email"]),
            user=to_user_response(user_doc),
        )

    def signup(self, request: UserSignupRequest) -> TokenResponse:
        """
        Register a new user

        Args:
            request: User signup request data

        Returns:
            Tokens and user data

        Raises:
            InvalidInput: Email already registered
        """
        if self.user_repo.email_exists(request.email):
            raise InvalidInput("email", "already registered")

        password_hash = self.password_service.hash_password(request.password)
        try:
            user_doc = self.user_repo.create_user(
                name=request.name,
                email=request.email,
                password_hash=password_hash
            )
        except DuplicateKeyError:
            raise InvalidInput("email", "already registered")

        logger.info("New user registered: %s", user_doc["_id"])
        return self._issue_tokens(user_doc)

    def login(self, request: UserLoginRequest) -> TokenResponse:
        """
        Authenticate a user and generate tokens

        Raises:
            AuthenticationRequired: Unknown email or wrong password
        """
        user_doc = self.user_repo.find_by_email(request.email)
        if not user_doc:
            raise AuthenticationRequired(INVALID_CREDENTIALS)

        if not self.password_service.verify_password(request.password, user_doc.get("password_hash")):
            raise AuthenticationRequired(INVALID_CREDENTIALS)

        return self._issue_tokens(user_doc)

    def refresh_access_token(self, refresh_token: str) -> Dict[str, str]:
        """
        Generate a new access token using a refresh token

        Args:
            refresh_token: Valid refresh token

        Returns:
            New access token and its type

        Raises:
            AuthenticationRequired: Invalid token or deleted user
        """
        payload = self.token_service.verify_refresh_token(refresh_token)
        if not payload:
            raise AuthenticationRequired("Invalid or expired refresh token")

        user_doc = self.user_repo.find_by_id(payload["user_id"])
        if not user_doc:
            raise AuthenticationRequired("User not found")

        return {
            "access_token": self.token_service.create_access_token(payload["user_id"], user_doc["email"]),
            "token_type": "bearer"
        }

    def get_user(self, user_id: str) -> UserResponse:
        """
        Raises:
            AuthenticationRequired: User no longer exists
        """
        user_doc = self.user_repo.find_by_id(user_id)
        if not user_doc:
            raise AuthenticationRequired("User not found")
        return to_user_response(user_doc)

    def change_password(self, user_id: str, current_password: str, new_password: str):
        """
        Replace the user's password after checking the current one

        Raises:
            AuthenticationRequired: Wrong current password or deleted user
            InvalidInput: New password equals the current one
        """
        user_doc = self.user_repo.find_by_id(user_id)
        if not user_doc:
            raise AuthenticationRequired("User not found")

        if not self.password_service.verify_password(current_password, user_doc.get("password_hash")):
            raise AuthenticationRequired("Current password is incorrect")
        if current_password == new_password:
            raise InvalidInput("new_password", "must differ from the current password")

        self.user_repo.set_password_hash(user_id, self.password_service.hash_password(new_password))
        logger.info("Password changed for user %s", user_id)
