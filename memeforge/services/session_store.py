"""
Persisted sign-in state for MemeForge.

The signed-in user and bearer token are kept as one JSON document under a
fixed key, rehydrated at startup and injected wherever authentication
context is needed (API client, auth service, main window).
"""

import json
from pathlib import Path
from typing import Any, Dict, Optional

from memeforge.services.logging_service import get_logger

SESSION_KEY = "meme-app-auth"
DEFAULT_SESSION_FILE = Path.home() / ".config" / "memeforge" / f"{SESSION_KEY}.json"


class SessionStore:
    """Load/save/clear lifecycle for the ``{user, token}`` session document."""

    def __init__(self, path: Optional[Path] = None) -> None:
        self._logger = get_logger(__name__)
        self._path = path or DEFAULT_SESSION_FILE
        self._user: Optional[Dict[str, Any]] = None
        self._token: Optional[str] = None

    @property
    def path(self) -> Path:
        return self._path

    @property
    def token(self) -> Optional[str]:
        return self._token

    @property
    def user(self) -> Optional[Dict[str, Any]]:
        return self._user

    @property
    def is_authenticated(self) -> bool:
        return bool(self._token)

    def load(self) -> bool:
        """
        Rehydrate the session from disk.

        Returns:
            True if a token was found. A missing or unreadable file leaves
            the store signed out.
        """
        if not self._path.exists():
            return False

        try:
            with open(self._path, "r", encoding="utf-8") as f:
                stored = json.load(f)
        except (json.JSONDecodeError, OSError) as e:
            self._logger.warning(f"Stored session unreadable, ignoring it: {e}")
            return False

        if not isinstance(stored, dict) or not stored.get("token"):
            return False

        self._user = stored.get("user")
        self._token = stored["token"]
        self._logger.info("Session restored")
        return True

    def save(self, user: Optional[Dict[str, Any]], token: str) -> None:
        """Replace the current session and persist it."""
        self._user = user
        self._token = token

        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            with open(self._path, "w", encoding="utf-8") as f:
                json.dump({"user": user, "token": token}, f)
        except OSError as e:
            self._logger.error(f"Could not persist session: {e}")

    def clear(self) -> None:
        """Forget the session in memory and on disk."""
        self._user = None
        self._token = None

        try:
            self._path.unlink(missing_ok=True)
        except OSError as e:
            self._logger.error(f"Could not remove stored session: {e}")
