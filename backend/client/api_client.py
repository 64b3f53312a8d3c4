import logging
import mimetypes
from pathlib import Path
from typing import Any, Dict, List, Optional

import requests
from pydantic import ValidationError

from app.models.verdict import StoredFactCheck, VerdictRecord

logger = logging.getLogger(__name__)

NETWORK_ERROR = "NETWORK_ERROR"
BAD_RESPONSE = "BAD_RESPONSE"


class ApiError(Exception):
    """Non-2xx answer from the Veritas API, or no answer at all (status 0)."""

    def __init__(self, status: int, message: str, code: Optional[str] = None):
        self.status = status
        self.message = message
        self.code = code
        super().__init__(f"{status} {code or ''}: {message}".strip())


class QuotaExceededError(ApiError):
    """403 QUOTA_EXCEEDED: show the upgrade flow, not a generic error."""


class VeritasApiClient:
    """Thin requests wrapper around the Veritas HTTP API."""

    def __init__(self, base_url: str, token: Optional[str] = None, timeout: int = 90, session: Optional[requests.Session] = None):
        self.base_url = base_url.rstrip("/")
        self.token = token
        self.timeout = timeout
        self.session = session or requests.Session()

    @property
    def authenticated(self) -> bool:
        return bool(self.token)

    def set_token(self, token: Optional[str]):
        self.token = token

    def _request(self, method: str, path: str, **kwargs) -> Any:
        headers = kwargs.pop("headers", {})
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"

        try:
            response = self.session.request(
                method, f"{self.base_url}{path}", headers=headers, timeout=self.timeout, **kwargs
            )
        except requests.RequestException as e:
            raise ApiError(0, str(e), NETWORK_ERROR) from e

        if response.status_code >= 400:
            raise self._to_error(response)
        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as e:
            # Captive portals and proxies answer 2xx with an HTML page
            raise ApiError(response.status_code, "Response body is not JSON", BAD_RESPONSE) from e

    @staticmethod
    def _parse(model, payload):
        try:
            return model.model_validate(payload)
        except ValidationError as e:
            raise ApiError(200, f"Unexpected response shape: {e.error_count()} errors", BAD_RESPONSE) from e

    @staticmethod
    def _to_error(response: requests.Response) -> ApiError:
        try:
            body = response.json()
        except ValueError:
            body = {}
        if not isinstance(body, dict):
            body = {}

        code = body.get("error")
        message = body.get("message") or body.get("detail") or response.reason or "Request failed"
        if response.status_code == 403 and code == "QUOTA_EXCEEDED":
            return QuotaExceededError(response.status_code, message, code)
        return ApiError(response.status_code, str(message), code)

    def verify(
        self,
        claim: Optional[str] = None,
        image_path: Optional[str] = None,
        image_url: Optional[str] = None,
        image_context: Optional[str] = None,
    ) -> VerdictRecord:
        """
        Run a verification on the server.

        Args:
            claim: Claim text
            image_path: Local image to upload
            image_url: Remote image reference, used when no local file is given
            image_context: Embedded metadata already extracted on the device

        Returns:
            VerdictRecord

        Raises:
            QuotaExceededError: Daily limit reached
            ApiError: Any other failure
        """
        data: Dict[str, str] = {}
        if claim:
            data["claim"] = claim
        if image_url:
            data["image_url"] = image_url
        if image_context:
            data["image_context"] = image_context

        if image_path:
            path = Path(image_path)
            mime_type = mimetypes.guess_type(path.name)[0] or "application/octet-stream"
            with path.open("rb") as f:
                payload = self._request(
                    "POST", "/api/fact-checks/verify", data=data, files={"file": (path.name, f, mime_type)}
                )
        else:
            payload = self._request("POST", "/api/fact-checks/verify", data=data)
        return self._parse(VerdictRecord, payload)

    def save_fact_check(self, record: VerdictRecord) -> StoredFactCheck:
        payload = self._request("POST", "/api/fact-checks", json=record.model_dump(mode="json", by_alias=True))
        return self._parse(StoredFactCheck, payload)

    def delete_fact_check(self, fact_check_id: str):
        self._request("DELETE", f"/api/fact-checks/{fact_check_id}")

    def clear_history(self):
        self._request("DELETE", "/api/fact-checks")

    def get_history(self, page: int = 1, limit: int = 100) -> List[StoredFactCheck]:
        payload = self._request("GET", "/api/fact-checks", params={"page": page, "limit": limit})
        if not isinstance(payload, dict):
            raise ApiError(200, "Unexpected response shape", BAD_RESPONSE)
        return [self._parse(StoredFactCheck, item) for item in payload.get("factChecks", [])]
