"""
Marketplace - Backend API client.

Thin wrapper over httpx.AsyncClient shared by the service clients:
- Base URL, timeout and bearer token from settings / caller
- Unwraps JSON bodies
- Normalizes every failure into APIError with a human-readable message
"""

import logging
from typing import Any

import httpx

from marketplace.config import settings

logger = logging.getLogger(__name__)

DEFAULT_ERROR_MESSAGE = "An unexpected error occurred"


class APIError(Exception):
    """Backend call failed. `message` is safe to show to the user."""

    def __init__(self, message: str, status: int | None = None, data: Any = None):
        super().__init__(message)
        self.message = message
        self.status = status
        self.data = data


def _error_message(response: httpx.Response) -> str:
    """Pick the server-provided message out of an error body."""
    try:
        body = response.json()
    except ValueError:
        return response.reason_phrase or DEFAULT_ERROR_MESSAGE
    if isinstance(body, dict):
        for key in ("message", "detail", "error"):
            if isinstance(body.get(key), str) and body[key]:
                return body[key]
    return response.reason_phrase or DEFAULT_ERROR_MESSAGE


class ApiClient:
    """Async JSON client for the marketplace backend."""

    def __init__(
        self,
        access_token: str | None = None,
        base_url: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.access_token = access_token
        self.base_url = (base_url or settings.api_base_url).rstrip("/")
        self.timeout = timeout if timeout is not None else settings.api_timeout_seconds
        self.transport = transport

    def _headers(self) -> dict[str, str]:
        headers = {"Accept": "application/json"}
        if self.access_token:
            headers["Authorization"] = f"Bearer {self.access_token}"
        return headers

    async def request(self, method: str, path: str, **kwargs) -> Any:
        """Send a request and return the decoded JSON body."""
        url = f"{self.base_url}/{path.lstrip('/')}"
        try:
            async with httpx.AsyncClient(
                timeout=self.timeout,
                headers=self._headers(),
                transport=self.transport,
            ) as client:
                response = await client.request(method, url, **kwargs)
        except httpx.TimeoutException as e:
            logger.warning(f"{method} {path} timed out")
            raise APIError("Request timed out. Please try again.") from e
        except httpx.HTTPError as e:
            logger.warning(f"{method} {path} failed: {e}")
            raise APIError(str(e) or DEFAULT_ERROR_MESSAGE) from e

        if response.is_error:
            message = _error_message(response)
            logger.warning(f"{method} {path} -> HTTP {response.status_code}: {message}")
            try:
                data = response.json()
            except ValueError:
                data = None
            raise APIError(message, status=response.status_code, data=data)

        try:
            return response.json()
        except ValueError as e:
            raise APIError("Invalid response from server", status=response.status_code) from e

    async def get(self, path: str, **kwargs) -> Any:
        return await self.request("GET", path, **kwargs)

    async def post(self, path: str, **kwargs) -> Any:
        return await self.request("POST", path, **kwargs)
