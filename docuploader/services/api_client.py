"""HTTP adapter for project docs API operations."""
from __future__ import annotations

import json
import logging
from typing import Any, Dict, Optional

import httpx

from ..errors import HttpStatusError, ResponseParseError, TransportError
from ..models import DEFAULT_BASE_URL, AuthContext

logger = logging.getLogger(__name__)

REDACTED_HEADERS = {"cookie", "authorization"}


def redact_headers(headers) -> Dict[str, str]:
    return {
        key: "[REDACTED]" if key.lower() in REDACTED_HEADERS else value
        for key, value in headers.items()
    }


class DocsAPIClient:
    """
    HTTP client adapter for the project docs endpoints.

    Implements IDocsClient protocol. Requests are never retried: every
    failure is raised to the caller as a DocsAPIError subclass.
    """

    def __init__(
        self,
        auth: AuthContext,
        base_url: str = DEFAULT_BASE_URL,
        timeout: float = 60,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self._auth = auth
        self._base_url = base_url
        self._timeout = timeout
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    async def __aenter__(self):
        self._client = httpx.AsyncClient(
            base_url=self._base_url,
            headers=dict(self._auth.headers),
            timeout=self._timeout,
            transport=self._transport,
        )
        return self

    async def __aexit__(self, *args):
        if self._client:
            await self._client.aclose()
            self._client = None

    def _require_client(self) -> httpx.AsyncClient:
        if not self._client:
            raise RuntimeError("DocsAPIClient not initialized. Use 'async with' context.")
        return self._client

    async def _send(self, method: str, endpoint: str, payload: Optional[Dict] = None) -> httpx.Response:
        client = self._require_client()
        try:
            if payload is None:
                return await client.request(method, endpoint)
            return await client.request(method, endpoint, json=payload)
        except (httpx.RequestError, httpx.TimeoutException) as exc:
            raise TransportError(str(exc) or exc.__class__.__name__) from exc

    async def create_doc(self, file_name: str, content: str) -> Dict[str, Any]:
        """
        Create a project doc.

        Returns:
            Parsed response body, guaranteed to carry ``uuid`` and ``file_name``

        Raises:
            HttpStatusError: status other than 200/201
            ResponseParseError: success status but unusable body
            TransportError: remote not reachable
        """
        endpoint = self._auth.docs_path
        response = await self._send("POST", endpoint, {"file_name": file_name, "content": content})

        if response.status_code not in (200, 201):
            raise HttpStatusError(response.status_code, response.text, method="POST")

        try:
            body = response.json()
        except (json.JSONDecodeError, UnicodeDecodeError) as exc:
            raise ResponseParseError(str(exc)) from exc

        if not isinstance(body, dict):
            raise ResponseParseError(f"expected a JSON object, got {type(body).__name__}")
        for key in ("uuid", "file_name"):
            if not isinstance(body.get(key), str):
                raise ResponseParseError(f"missing field `{key}`")
        return body

    async def delete_doc(self, uuid: str) -> None:
        """Delete a project doc by its remote identifier."""
        endpoint = self._auth.doc_path(uuid)
        response = await self._send("DELETE", endpoint)

        if not response.is_success:
            raise HttpStatusError(response.status_code, response.text, method="DELETE")
        logger.debug(f"Deleted doc {uuid}")

