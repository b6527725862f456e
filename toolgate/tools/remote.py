"""
Shared HTTP plumbing for tools that talk to hosted APIs.

A RemoteTools group owns one ``httpx.Client`` (thread-safe, so it is shared
by concurrent calls) and turns HTTP failures into ToolErrors:

- no token configured      -> MissingCredentialError
- status >= 400            -> RemoteAPIError(status, body)
- connection/timeout error -> httpx.HTTPError, reported as operational
"""

import logging
import threading
from abc import abstractmethod
from typing import Any, Dict, Optional

import httpx

from toolgate.config import Settings
from toolgate.gateway.errors import MissingCredentialError, RemoteAPIError, ToolError
from toolgate.tools.base import ToolGroup

logger = logging.getLogger(__name__)


def clean_params(params: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    """Drop unset query parameters and render booleans the way REST APIs expect."""
    cleaned = {}
    for key, value in (params or {}).items():
        if value is None:
            continue
        if isinstance(value, bool):
            value = "true" if value else "false"
        cleaned[key] = value
    return cleaned


class RemoteTools(ToolGroup):
    """
    Base class for tool groups backed by an authenticated REST API.

    Subclasses set ``service`` and ``token_env`` and implement ``token``,
    ``base_url`` and ``auth_headers``.
    """

    service: str = ""
    token_env: str = ""

    def __init__(self, settings: Settings, client: Optional[httpx.Client] = None):
        """
        Initialize the group.

        Args:
            settings: Process-wide settings.
            client: HTTP client to use instead of creating one (tests pass
                a client wired to ``httpx.MockTransport``).
        """
        super().__init__(settings)
        self._client = client
        self._client_lock = threading.Lock()

    @property
    @abstractmethod
    def token(self) -> Optional[str]:
        """API token from settings, or None when unset."""
        pass

    @property
    @abstractmethod
    def base_url(self) -> str:
        pass

    @abstractmethod
    def auth_headers(self, token: str) -> Dict[str, str]:
        pass

    @property
    def client(self) -> httpx.Client:
        with self._client_lock:
            if self._client is None:
                self._client = httpx.Client(
                    timeout=self.settings.http_timeout,
                    follow_redirects=True,
                )
            return self._client

    def close(self) -> None:
        with self._client_lock:
            if self._client is not None:
                self._client.close()
                self._client = None

    def request(
        self,
        method: str,
        path: str,
        *,
        params: Optional[Dict[str, Any]] = None,
        json: Any = None,
    ) -> httpx.Response:
        """Send an authenticated request; raise on missing token or error status."""
        token = self.token
        if not token:
            raise MissingCredentialError(self.token_env, self.service)

        url = f"{self.base_url}{path}"
        logger.debug("%s %s", method, url)
        response = self.client.request(
            method,
            url,
            params=clean_params(params),
            json=json,
            headers=self.auth_headers(token),
        )
        if response.status_code >= 400:
            logger.warning("%s %s -> %s", method, url, response.status_code)
            raise RemoteAPIError(self.service, response.status_code, response.text)
        return response

    def get_json(self, path: str, params: Optional[Dict[str, Any]] = None) -> Any:
        return self.decode(self.request("GET", path, params=params))

    def send_json(self, method: str, path: str, body: Optional[Dict[str, Any]] = None) -> Any:
        payload = {k: v for k, v in (body or {}).items() if v is not None}
        response = self.request(method, path, json=payload or None)
        if not response.content:
            return {"success": True}
        return self.decode(response)

    def decode(self, response: httpx.Response) -> Any:
        try:
            return response.json()
        except ValueError:
            raise ToolError(
                f"{self.service} returned a non-JSON response (HTTP {response.status_code})",
                details={"status_code": response.status_code, "body": response.text[:2000]},
            )
