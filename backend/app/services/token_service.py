import jwt
from datetime import datetime, timedelta, timezone
from typing import Dict, Optional
import secrets

ACCESS = "access"
REFRESH = "refresh"


class TokenService:
    """Issues and checks the bearer tokens that identify a user to the API"""

    def __init__(
        self,
        secret_key: str,
        algorithm: str = "HS256",
        access_token_expire_minutes: int = 30,
        refresh_token_expire_days: int = 30,
    ):
        """
        Args:
            secret_key: Secret key for JWT signing
            algorithm: JWT algorithm (default: HS256)
            access_token_expire_minutes: Access token lifetime
            refresh_token_expire_days: Refresh token lifetime
        """
        self.secret_key = secret_key
        self.algorithm = algorithm
        self.access_lifetime = timedelta(minutes=access_token_expire_minutes)
        self.refresh_lifetime = timedelta(days=refresh_token_expire_days)

    def _issue(self, user_id: str, email: str, token_type: str, lifetime: timedelta) -> str:
        now = datetime.now(timezone.utc)
        payload = {
            "user_id": user_id,
            "email": email,
            "type": token_type,
            "iat": now,
            "exp": now + lifetime,
        }
        if token_type == REFRESH:
            payload["jti"] = secrets.token_urlsafe(16)
        return jwt.encode(payload, self.secret_key, algorithm=self.algorithm)

    def _verify(self, token: str, token_type: str) -> Optional[Dict]:
        try:
            payload = jwt.decode(token, self.secret_key, algorithms=[self.algorithm])
        except jwt.InvalidTokenError:
            return None
        if payload.get("type") != token_type or not payload.get("user_id"):
            return None
        return payload

    def create_access_token(self, user_id: str, email: str) -> str:
        return self._issue(user_id, email, ACCESS, self.access_lifetime)

    def create_refresh_token(self, user_id: str, email: str) -> str:
        return self._issue(user_id, email, REFRESH, self.refresh_lifetime)

    def verify_access_token(self, token: str) -> Optional[Dict]:
        """
        Decode an access token

        Args:
            token: JWT access token

        Returns:
            Payload with user_id and email, None if invalid, expired or not an access token
        """
        return self._verify(token, ACCESS)

    def verify_refresh_token(self, token: str) -> Optional[Dict]:
        return self._verify(token, REFRESH)
