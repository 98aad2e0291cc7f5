"""
IAM API key authentication for httpx.

Exchanges the API key for a bearer token at the IAM token endpoint the first
time a request is sent, reuses the token until shortly before it expires and
refreshes it once if the store answers 401.
"""
import json
import time
import logging
from typing import Generator, Optional

import httpx

from .errors import StoreError

logger = logging.getLogger(__name__)

IAM_GRANT_TYPE = "urn:ibm:params:oauth:grant-type:apikey"


class IamTokenAuth(httpx.Auth):
    """httpx auth flow that injects an IAM bearer token."""

    requires_response_body = True

    def __init__(self, api_key: str, token_url: str, refresh_margin_seconds: int = 60):
        self.api_key = api_key
        self.token_url = token_url
        self.refresh_margin_seconds = refresh_margin_seconds
        self._access_token: Optional[str] = None
        self._expires_at = 0.0

    def has_valid_token(self) -> bool:
        return bool(self._access_token) and time.time() < self._expires_at - self.refresh_margin_seconds

    def build_token_request(self) -> httpx.Request:
        return httpx.Request(
            "POST",
            self.token_url,
            data={"grant_type": IAM_GRANT_TYPE, "apikey": self.api_key},
            headers={"Accept": "application/json"},
        )

    def update_token(self, response: httpx.Response) -> None:
        """Store the token from a token endpoint response, or raise StoreError."""
        try:
            body = response.json()
        except json.JSONDecodeError:
            body = {}

        if response.status_code != 200 or "access_token" not in body:
            logger.error(f"[IAM] Token request to {self.token_url} failed: {response.status_code}")
            raise StoreError.from_response(response.status_code, {
                "error": body.get("errorCode", "iam_token_error"),
                "reason": body.get("errorMessage", "Failed to obtain IAM access token"),
            })

        self._access_token = body["access_token"]
        if body.get("expiration"):
            self._expires_at = float(body["expiration"])
        else:
            self._expires_at = time.time() + float(body.get("expires_in", 3600))
        logger.info(f"[IAM] ✓ Obtained access token (expires at {int(self._expires_at)})")

    def auth_flow(self, request: httpx.Request) -> Generator[httpx.Request, httpx.Response, None]:
        if not self.has_valid_token():
            token_response = yield self.build_token_request()
            self.update_token(token_response)

        request.headers["Authorization"] = f"Bearer {self._access_token}"
        response = yield request

        if response.status_code == 401:
            # Token may have been revoked server-side; refresh once
            logger.info("[IAM] Store answered 401, refreshing access token")
            token_response = yield self.build_token_request()
            self.update_token(token_response)
            request.headers["Authorization"] = f"Bearer {self._access_token}"
            yield request
