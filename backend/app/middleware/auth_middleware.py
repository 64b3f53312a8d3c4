import hmac

from fastapi import Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from typing import Dict, Optional

from app.core.config import ADMIN_EMAILS, REVENUECAT_WEBHOOK_SECRET
from app.core.dependencies import get_token_service
from app.core.exceptions import AuthenticationRequired, Forbidden
from app.services.token_service import TokenService

# auto_error=False: a missing header must be a 401, 403 belongs to the quota paywall
security = HTTPBearer(auto_error=False)


async def verify_token(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    token_service: TokenService = Depends(get_token_service),
) -> Dict:
    """
    Verify the bearer token and return its payload

    Args:
        credentials: Bearer token from Authorization header

    Returns:
        Token payload with user_id and email

    Raises:
        AuthenticationRequired: Missing, invalid or expired token
    """
    if credentials is None or not credentials.credentials:
        raise AuthenticationRequired("Missing bearer token")

    payload = token_service.verify_access_token(credentials.credentials)
    if not payload:
        raise AuthenticationRequired("Invalid or expired token")

    return payload


async def get_current_user_id(token_payload: Dict = Depends(verify_token)) -> str:
    return token_payload["user_id"]


async def require_admin(token_payload: Dict = Depends(verify_token)) -> Dict:
    """
    Allow only accounts listed in ADMIN_EMAILS

    Raises:
        Forbidden: Authenticated but not an admin
    """
    if (token_payload.get("email") or "").lower() not in ADMIN_EMAILS:
        raise Forbidden("Admin access required")
    return token_payload


async def verify_webhook_secret(credentials: Optional[HTTPAuthorizationCredentials] = Depends(security)):
    """
    Check the shared secret the subscription store sends as a bearer token

    Raises:
        AuthenticationRequired: Secret missing, wrong, or not configured
    """
    if not REVENUECAT_WEBHOOK_SECRET:
        raise AuthenticationRequired("Webhook secret not configured")
    if credentials is None or not hmac.compare_digest(
        credentials.credentials.encode("utf-8"), REVENUECAT_WEBHOOK_SECRET.encode("utf-8")
    ):
        raise AuthenticationRequired("Invalid webhook secret")
