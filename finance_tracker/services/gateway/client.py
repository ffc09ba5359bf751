"""
REST Gateway Implementation

Talks JSON over HTTP to the backend with a requests session.

Each call:
- attaches "Authorization: Bearer <token>", reading the token from local
  state at call time (sign-in/sign-out take effect immediately)
- on a non-success response, notifies the user and raises RequestError
  carrying the server's message (falling back to the status text)
- returns None for 204 No Content instead of parsing a body

TRADEOFFS:
- requests is blocking; calls run inline on the event loop. Collections
  are small and calls are sequential per user action.
- No timeout unless one is configured (transport default).
"""

from typing import Any, Optional

import requests
import structlog
from pydantic import ValidationError as PydanticValidationError

from finance_tracker.config import get_settings
from finance_tracker.services.gateway.interface import (
    ConfigurationError,
    GatewayInterface,
    RequestError,
)
from finance_tracker.services.notifications import LogNotifier, Notifier
from finance_tracker.services.storage import KeyValueStoreInterface


logger = structlog.get_logger(__name__)


class RestGateway(GatewayInterface):
    """
    requests-based implementation of the gateway.

    Usage:
        gateway = RestGateway(local_store, notifier)
        rows = await gateway.get("accounts", params={"order": "created_at.desc"})
    """

    def __init__(
        self,
        local_store: KeyValueStoreInterface,
        notifier: Optional[Notifier] = None,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        session: Optional[requests.Session] = None,
    ):
        """
        Args:
            local_store: Where the bearer token lives
            notifier: Sink for failure notifications (defaults to the log)
            base_url: API root; read from FINANCE_API_BASE_URL when omitted
            timeout: Per-request timeout in seconds; None keeps the transport default
            session: requests session to reuse (tests pass a fake)

        Raises:
            ConfigurationError: If no base URL is configured
        """
        settings = get_settings()
        if base_url is None:
            try:
                api = settings.api
            except PydanticValidationError as e:
                raise ConfigurationError(
                    "Backend API base URL is not configured (FINANCE_API_BASE_URL)"
                ) from e
            base_url = api.base_url
            if timeout is None:
                timeout = api.timeout_seconds
        if not base_url or not base_url.strip():
            raise ConfigurationError("Backend API base URL is empty")

        self._base_url = base_url.strip().rstrip("/")
        self._timeout = timeout
        self._store = local_store
        self._notifier = notifier or LogNotifier()
        self._session = session or requests.Session()
        self._token_key = settings.storage.auth_token_key

    @property
    def base_url(self) -> str:
        return self._base_url

    def _url(self, path: str) -> str:
        return f"{self._base_url}/{path.lstrip('/')}"

    def _headers(self) -> dict[str, str]:
        headers = {"Content-Type": "application/json"}
        token = self._store.get(self._token_key)
        if token:
            headers["Authorization"] = f"Bearer {token}"
        return headers

    @staticmethod
    def _error_message(response: requests.Response) -> str:
        """Server-provided message, else the transport status text."""
        try:
            body = response.json()
        except ValueError:
            body = None
        if isinstance(body, dict):
            for key in ("message", "error"):
                if body.get(key):
                    return str(body[key])
        return response.reason or f"HTTP {response.status_code}"

    def _fail(self, error: RequestError, method: str, path: str, notify: bool) -> RequestError:
        logger.warning(
            "request_failed",
            method=method,
            path=path,
            status_code=error.status_code,
            error=error.message,
        )
        if notify:
            self._notifier.error(error.message)
        return error

    async def _request(
        self,
        method: str,
        path: str,
        params: Optional[dict[str, Any]] = None,
        payload: Optional[dict[str, Any]] = None,
        notify: bool = True,
    ) -> Any:
        try:
            response = self._session.request(
                method,
                self._url(path),
                params=params,
                json=payload,
                headers=self._headers(),
                timeout=self._timeout,
            )
        except requests.RequestException as e:
            error = RequestError(f"Could not reach the server: {e}")
            raise self._fail(error, method, path, notify) from e

        if not response.ok:
            error = RequestError(
                self._error_message(response),
                status_code=response.status_code,
            )
            raise self._fail(error, method, path, notify)

        if response.status_code == 204 or not response.content:
            return None

        try:
            return response.json()
        except ValueError as e:
            error = RequestError(
                f"Invalid JSON in response: {e}",
                status_code=response.status_code,
            )
            raise self._fail(error, method, path, notify) from e

    async def get(
        self,
        path: str,
        params: Optional[dict[str, Any]] = None,
        notify: bool = True,
    ) -> Any:
        return await self._request("GET", path, params=params, notify=notify)

    async def post(
        self,
        path: str,
        payload: dict[str, Any],
        notify: bool = True,
    ) -> Any:
        return await self._request("POST", path, payload=payload, notify=notify)

    async def put(
        self,
        path: str,
        payload: dict[str, Any],
        notify: bool = True,
    ) -> Any:
        return await self._request("PUT", path, payload=payload, notify=notify)

    async def delete(self, path: str, notify: bool = True) -> Any:
        return await self._request("DELETE", path, notify=notify)
