"""
Sign-in, sign-out and token refresh against the MemeForge backend.
"""

import base64
import json
import time
from typing import Any, Dict, Optional

from memeforge.services.api_client import ApiClient, ApiError, InvalidResponseError
from memeforge.services.logging_service import get_logger
from memeforge.services.session_store import SessionStore

# Refresh a restored token when it expires within this many seconds
REFRESH_WINDOW = 60 * 60


def token_expiry(token: str) -> Optional[float]:
    """Return the JWT ``exp`` claim (epoch seconds), or None if unreadable."""
    try:
        payload = token.split(".")[1]
        payload += "=" * (-len(payload) % 4)
        claims = json.loads(base64.urlsafe_b64decode(payload))
    except (IndexError, ValueError):
        return None

    exp = claims.get("exp") if isinstance(claims, dict) else None
    return float(exp) if isinstance(exp, (int, float)) else None


def token_expires_soon(token: str, within: float = REFRESH_WINDOW) -> bool:
    expiry = token_expiry(token)
    if expiry is None:
        return False
    return expiry - time.time() < within


class AuthService:
    """Owns the session lifecycle on top of ApiClient and SessionStore."""

    def __init__(self, client: ApiClient, store: SessionStore) -> None:
        self._logger = get_logger(__name__)
        self._client = client
        self._store = store

    @property
    def is_authenticated(self) -> bool:
        return self._store.is_authenticated

    @property
    def user(self) -> Optional[Dict[str, Any]]:
        return self._store.user

    def sign_in(self, email: str, password: str) -> Dict[str, Any]:
        """
        Log in and persist the session.

        Returns:
            The signed-in user record.

        Raises:
            ApiError: Bad credentials or backend failure.
        """
        response = self._client.post(
            "/auth/login", {"email": email, "password": password}, auth_retry=False
        )
        data = (response or {}).get("data") if isinstance(response, dict) else None
        if not isinstance(data, dict) or not data.get("token"):
            raise InvalidResponseError("Login response did not contain a token")

        user = data.get("user") or {}
        self._store.save(user, data["token"])
        self._logger.info(f"Signed in as {user.get('username') or email}")
        return user

    def sign_out(self) -> None:
        """Tell the backend, then forget the session regardless of the outcome."""
        if self._store.is_authenticated:
            try:
                self._client.post("/auth/logout", auth_retry=False)
            except ApiError as e:
                self._logger.warning(f"Logout request failed: {e.message}")
        self._store.clear()
        self._logger.info("Signed out")

    def refresh_if_expiring(self) -> bool:
        """Refresh a restored token that is about to expire."""
        token = self._store.token
        if not token or not token_expires_soon(token):
            return False
        self._logger.info("Stored token expires soon, refreshing")
        return self.refresh_token()

    def refresh_token(self) -> bool:
        """Swap the current token for a fresh one. False when signed out or rejected."""
        return self._client.refresh_token()
