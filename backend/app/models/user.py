from pydantic import BaseModel, EmailStr, Field, field_validator
from typing import Optional
from datetime import datetime
import re

from app.models.quota import PlanTier


def check_password_strength(v: str) -> str:
    """Validate password strength"""
    if not re.search(r'[A-Z]', v):
        raise ValueError('Password must contain at least one uppercase letter')
    if not re.search(r'[a-z]', v):
        raise ValueError('Password must contain at least one lowercase letter')
    if not re.search(r'[0-9]', v):
        raise ValueError('Password must contain at least one digit')
    return v


class UserSignupRequest(BaseModel):
    """Request model for user signup"""
    name: str = Field(..., min_length=2, max_length=100)
    email: EmailStr
    password: str = Field(..., min_length=8)

    @field_validator('password')
    @classmethod
    def validate_password(cls, v: str) -> str:
        return check_password_strength(v)


class UserLoginRequest(BaseModel):
    """Request model for user login"""
    email: EmailStr
    password: str


class ProfileUpdateRequest(BaseModel):
    """Fields a user may change on their own profile; omitted fields are left alone"""
    name: Optional[str] = Field(None, min_length=2, max_length=100)
    photo_url: Optional[str] = Field(None, max_length=2048)

    @field_validator('photo_url')
    @classmethod
    def validate_photo_url(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and not v.lower().startswith(("http://", "https://")):
            raise ValueError('Photo URL must be an http(s) URL')
        return v


class ChangePasswordRequest(BaseModel):
    current_password: str = Field(..., min_length=1)
    new_password: str = Field(..., min_length=8)

    @field_validator('new_password')
    @classmethod
    def validate_new_password(cls, v: str) -> str:
        return check_password_strength(v)


class UserResponse(BaseModel):
    """Response model for user data (without password)"""
    id: str
    name: str
    email: str
    photo_url: Optional[str] = None
    plan: PlanTier = PlanTier.FREE
    subscription_status: str = "none"
    fact_checks_count: int = 0
    created_at: datetime


class TokenResponse(BaseModel):
    """Response model for authentication tokens"""
    access_token: str
    refresh_token: str
    token_type: str = "bearer"
    user: UserResponse


class RefreshTokenRequest(BaseModel):
    """Request model for token refresh"""
    refresh_token: str


class QuotaSnapshot(BaseModel):
    """Quota view returned with the profile"""
    plan: PlanTier
    daily_requests_count: int
    daily_limit: int
    unlimited: bool
    remaining: Optional[int] = None


class ProfileResponse(BaseModel):
    user: UserResponse
    quota: QuotaSnapshot
