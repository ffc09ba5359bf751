"""
Abstract Remote Data Gateway Interface

DESIGN DECISION: Every backend call goes through ONE gateway. This allows us to:
1. Attach the bearer credential in one place
2. Surface request failures to the user in one place
3. Run the stores against an in-memory backend in tests

The gateway does NOT retry on its own. Retrying is a caller decision,
made explicitly with retry_request().
"""

from abc import ABC, abstractmethod
from typing import Any, Optional


class GatewayInterface(ABC):
    """
    Abstract interface for authenticated CRUD against the backend.

    Paths are resource paths relative to the API base URL
    (e.g. "accounts", "transactions/42").
    """

    @abstractmethod
    async def get(
        self,
        path: str,
        params: Optional[dict[str, Any]] = None,
        notify: bool = True,
    ) -> Any:
        """
        Fetch a resource.

        Args:
            path: Resource path
            params: Query string parameters (filters, ordering)
            notify: Show a notification if the request fails

        Returns:
            Decoded JSON body, or None for an empty response

        Raises:
            RequestError: On a non-success response
        """
        pass

    @abstractmethod
    async def post(
        self,
        path: str,
        payload: dict[str, Any],
        notify: bool = True,
    ) -> Any:
        """
        Create a resource (or call a remote procedure).

        Returns:
            Decoded JSON body, or None for an empty response

        Raises:
            RequestError: On a non-success response
        """
        pass

    @abstractmethod
    async def put(
        self,
        path: str,
        payload: dict[str, Any],
        notify: bool = True,
    ) -> Any:
        """
        Update a resource with the given fields only.

        Raises:
            RequestError: On a non-success response
        """
        pass

    @abstractmethod
    async def delete(self, path: str, notify: bool = True) -> Any:
        """
        Delete a resource.

        Raises:
            RequestError: On a non-success response
        """
        pass


class RequestError(Exception):
    """
    The backend answered with a non-success status, or could not be reached.

    Attributes:
        status_code: HTTP status, or None when no response was received
    """

    def __init__(self, message: str, status_code: Optional[int] = None):
        self.message = message
        self.status_code = status_code
        super().__init__(message)


class ConfigurationError(Exception):
    """The gateway cannot be built from the current settings."""
    pass
