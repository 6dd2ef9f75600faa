"""
Request/response client for the MemeForge backend.

Provides:
- GET/POST/PUT/DELETE returning parsed JSON
- JSON or multipart bodies
- Bearer token from the SessionStore (overridable per call)
- One silent token refresh on 401, then sign-out + sign-in prompt
"""

from typing import Any, Callable, Dict, Optional

import httpx

from memeforge.services.logging_service import get_logger
from memeforge.services.session_store import SessionStore

REFRESH_PATH = "/auth/refresh-token"


# =================== Exceptions ===================


class ApiError(Exception):
    """Base exception for backend errors."""

    def __init__(self, message: str, status: Optional[int] = None) -> None:
        super().__init__(message)
        self.message = message
        self.status = status


class ApiConnectionError(ApiError):
    """The backend could not be reached."""
    pass


class ApiAuthError(ApiError):
    """Authentication failed and could not be refreshed."""
    pass


class InvalidResponseError(ApiError):
    """The backend answered with a body we cannot use."""
    pass


def error_message(response: httpx.Response, fallback: Optional[str] = None) -> str:
    """Pull the backend's ``error``/``message`` field out of a failed response."""
    try:
        body = response.json()
    except ValueError:
        body = None

    if isinstance(body, dict):
        for key in ("error", "message"):
            if isinstance(body.get(key), str) and body[key]:
                return body[key]

    return fallback or f"Request failed with status {response.status_code}"


# =================== Client ===================


class ApiClient:
    """
    Synchronous client for the MemeForge REST API.

    Calls run on the GUI thread; each call returns the parsed JSON body or
    raises an ApiError subclass.
    """

    def __init__(
        self,
        base_url: str,
        session_store: SessionStore,
        on_auth_failed: Optional[Callable[[], None]] = None,
        timeout: float = 30.0,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        """
        Args:
            base_url: API root, e.g. http://localhost:7894/api
            session_store: Source of the bearer token; cleared on auth failure
            on_auth_failed: Called after a failed refresh (show sign-in)
            timeout: Request timeout in seconds
            transport: Optional httpx transport (tests use MockTransport)
        """
        self._logger = get_logger(__name__)
        self.base_url = base_url.rstrip("/")
        self._store = session_store
        self._on_auth_failed = on_auth_failed
        self._timeout = timeout
        self._transport = transport
        self._client: Optional[httpx.Client] = None

    def _get_client(self) -> httpx.Client:
        """Get or create the HTTP client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.Client(
                base_url=self.base_url,
                timeout=httpx.Timeout(self._timeout),
                transport=self._transport,
            )
        return self._client

    @property
    def http(self) -> httpx.Client:
        """The underlying httpx client, shared with the image loader."""
        return self._get_client()

    def close(self) -> None:
        if self._client and not self._client.is_closed:
            self._client.close()
            self._client = None

    def __enter__(self) -> "ApiClient":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    def set_auth_failed_handler(self, handler: Optional[Callable[[], None]]) -> None:
        self._on_auth_failed = handler

    # =================== Verbs ===================

    def get(self, path: str, token: Optional[str] = None) -> Any:
        return self.request("GET", path, token=token)

    def post(
        self,
        path: str,
        body: Optional[Dict[str, Any]] = None,
        token: Optional[str] = None,
        files: Optional[Dict[str, Any]] = None,
        auth_retry: bool = True,
    ) -> Any:
        return self.request(
            "POST", path, body=body, token=token, files=files, auth_retry=auth_retry
        )

    def put(
        self,
        path: str,
        body: Optional[Dict[str, Any]] = None,
        token: Optional[str] = None,
        files: Optional[Dict[str, Any]] = None,
    ) -> Any:
        return self.request("PUT", path, body=body, token=token, files=files)

    def delete(self, path: str, token: Optional[str] = None) -> Any:
        return self.request("DELETE", path, token=token)

    # =================== Core ===================

    def request(
        self,
        method: str,
        path: str,
        body: Optional[Dict[str, Any]] = None,
        token: Optional[str] = None,
        files: Optional[Dict[str, Any]] = None,
        auth_retry: bool = True,
    ) -> Any:
        """
        Send a request and return the parsed JSON body.

        With ``files`` the request is multipart and ``body`` becomes the
        form fields; otherwise ``body`` is sent as JSON. With ``auth_retry=False``
        a 401 is an ordinary ApiError and the session is left alone; login
        and logout pass False.

        Raises:
            ApiConnectionError: Network failure
            ApiAuthError: 401 that survived the single refresh attempt
            ApiError: Any other non-2xx status
            InvalidResponseError: 2xx with a body that is not JSON
        """
        response = self._send(method, path, body, token or self._store.token, files)

        if response.status_code == 401 and auth_retry:
            self._logger.info(f"Got 401 from {method} {path}, attempting token refresh...")
            if self.refresh_token():
                response = self._send(method, path, body, self._store.token, files)

            if response.status_code == 401:
                self._handle_auth_failure()
                raise ApiAuthError(error_message(response, "Session expired"), 401)

        if not response.is_success:
            message = error_message(response)
            self._logger.error(f"{method} {path} failed ({response.status_code}): {message}")
            raise ApiError(message, response.status_code)

        return self._parse(response)

    def refresh_token(self) -> bool:
        """
        Exchange the current token for a fresh one.

        Returns:
            True if a new token was stored.
        """
        current = self._store.token
        if not current:
            return False

        try:
            response = self._get_client().post(
                REFRESH_PATH, headers={"Authorization": f"Bearer {current}"}
            )
        except httpx.RequestError as e:
            self._logger.warning(f"Token refresh request failed: {e}")
            return False

        if not response.is_success:
            self._logger.warning(f"Token refresh rejected ({response.status_code})")
            return False

        try:
            data = response.json().get("data") or {}
        except (ValueError, AttributeError):
            data = {}

        new_token = data.get("token") if isinstance(data, dict) else None
        if not new_token:
            self._logger.warning("Token refresh returned no token")
            return False

        self._store.save(data.get("user", self._store.user), new_token)
        self._logger.info("Token refreshed successfully")
        return True

    def _send(
        self,
        method: str,
        path: str,
        body: Optional[Dict[str, Any]],
        token: Optional[str],
        files: Optional[Dict[str, Any]],
    ) -> httpx.Response:
        headers = {"Authorization": f"Bearer {token}"} if token else {}
        kwargs: Dict[str, Any] = {"headers": headers}
        if files:
            kwargs["files"] = files
            if body:
                kwargs["data"] = {k: str(v) for k, v in body.items() if v is not None}
        elif body is not None:
            kwargs["json"] = body

        try:
            return self._get_client().request(method, path, **kwargs)
        except httpx.RequestError as e:
            self._logger.error(f"{method} {path} could not reach the backend: {e}")
            raise ApiConnectionError(f"Connection failed: {e}") from e

    def _parse(self, response: httpx.Response) -> Any:
        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as e:
            raise InvalidResponseError(
                "Backend returned a non-JSON response", response.status_code
            ) from e

    def _handle_auth_failure(self) -> None:
        self._logger.warning("Authentication failed, clearing session")
        self._store.clear()
        if self._on_auth_failed:
            self._on_auth_failed()
