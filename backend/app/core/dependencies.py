"""
FastAPI dependency providers.

Routes ask for their collaborators through these functions so tests can
swap them with app.dependency_overrides.
"""

from functools import lru_cache

from fastapi import Depends

from app.core.config import (
    JWT_SECRET_KEY,
    JWT_ALGORITHM,
    ACCESS_TOKEN_EXPIRE_MINUTES,
    REFRESH_TOKEN_EXPIRE_DAYS,
    MAX_IMAGE_BYTES,
    IMAGE_FETCH_TIMEOUT_SECONDS,
)
from app.core.database import users_collection, fact_checks_collection, settings_collection
from app.repository.fact_check_repository import FactCheckRepository
from app.repository.settings_repository import SettingsRepository
from app.repository.user_repository import UserRepository
from app.services.auth_service import AuthService
from app.services.gemini_service import GeminiService
from app.services.image_service import ImageService
from app.services.quota_service import QuotaGate
from app.services.subscription_service import SubscriptionService
from app.services.suggestion_service import SuggestionService
from app.services.token_service import TokenService
from app.services.verification_pipeline import VerificationPipeline


def get_user_repository() -> UserRepository:
    return UserRepository(users_collection)


def get_settings_repository() -> SettingsRepository:
    return SettingsRepository(settings_collection)


def get_fact_check_repository() -> FactCheckRepository:
    return FactCheckRepository(fact_checks_collection)


@lru_cache()
def get_token_service() -> TokenService:
    return TokenService(
        JWT_SECRET_KEY,
        JWT_ALGORITHM,
        access_token_expire_minutes=ACCESS_TOKEN_EXPIRE_MINUTES,
        refresh_token_expire_days=REFRESH_TOKEN_EXPIRE_DAYS,
    )


def get_auth_service(
    user_repository: UserRepository = Depends(get_user_repository),
    token_service: TokenService = Depends(get_token_service),
) -> AuthService:
    return AuthService(user_repository, token_service)


def get_quota_gate(
    user_repository: UserRepository = Depends(get_user_repository),
    settings_repository: SettingsRepository = Depends(get_settings_repository),
) -> QuotaGate:
    return QuotaGate(user_repository, settings_repository)


@lru_cache()
def get_reasoning_service() -> GeminiService:
    return GeminiService()


def get_verification_pipeline(reasoning=Depends(get_reasoning_service)) -> VerificationPipeline:
    return VerificationPipeline(reasoning)


def get_suggestion_service(reasoning=Depends(get_reasoning_service)) -> SuggestionService:
    return SuggestionService(reasoning)


def get_image_service() -> ImageService:
    return ImageService(max_bytes=MAX_IMAGE_BYTES, timeout=IMAGE_FETCH_TIMEOUT_SECONDS)


def get_subscription_service(
    user_repository: UserRepository = Depends(get_user_repository),
) -> SubscriptionService:
    return SubscriptionService(user_repository)
