"""
Generic REST client for the back office API.

Turns (table, operation, filter) into one HTTP request and always resolves
to an ``Envelope``: transport failures, error statuses and malformed bodies
come back as ``Envelope(data=None, error=<message>)`` instead of raising.
No retries, caching or de-duplication; every call is a fresh request.
"""

import json
import logging
from typing import Any, Dict, Optional, Tuple

import httpx
from pydantic import ValidationError
from pydantic_core import to_jsonable_python

from busnet.config import settings
from busnet.schemas import ConnectionStatus, Envelope

logger = logging.getLogger(__name__)


def _error_message(error: Any) -> str:
    """Backends sometimes send structured errors; the envelope carries text."""
    if not error:
        return "Request failed"
    if isinstance(error, str):
        return error
    if isinstance(error, dict) and isinstance(error.get("message"), str):
        return error["message"]
    return json.dumps(error, default=str)


class RestClient:
    """
    Async client for the envelope REST API.

    Usage:
        async with RestClient() as api:
            result = await api.select("stations", ("city_id", 3))
    """

    # Records come back flat; the store stitches relations itself
    embeds_relations = False

    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        self.base_url = base_url or settings.API_URL
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=timeout if timeout is not None else settings.REQUEST_TIMEOUT,
            headers={"Content-Type": "application/json"},
            transport=transport,
        )

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.aclose()

    async def aclose(self):
        await self._client.aclose()

    async def _request(
        self,
        method: str,
        path: str,
        params: Optional[Dict[str, Any]] = None,
        body: Any = None
    ) -> Envelope:
        try:
            response = await self._client.request(
                method,
                path,
                params=params,
                json=to_jsonable_python(body) if body is not None else None,
            )
        except httpx.HTTPError as e:
            message = str(e) or e.__class__.__name__
            logger.error("API error on %s %s: %s", method, path, message)
            return Envelope(error=message)

        try:
            payload = response.json()
        except ValueError as e:
            logger.error("Invalid JSON from %s %s (HTTP %s): %s",
                         method, path, response.status_code, e)
            if response.is_error:
                return Envelope(error=f"Request failed with status {response.status_code}")
            return Envelope(error=f"Invalid JSON in response: {e}")

        if not isinstance(payload, dict):
            logger.error("Malformed envelope from %s %s: %r", method, path, payload)
            return Envelope(error="Malformed response: expected a JSON object")

        if response.is_error:
            return Envelope(error=_error_message(payload.get("error")))

        if payload.get("error") is not None and not isinstance(payload["error"], str):
            payload = {**payload, "error": _error_message(payload["error"])}

        try:
            return Envelope.model_validate(payload)
        except ValidationError as e:
            logger.error("Malformed envelope from %s %s: %s", method, path, e)
            return Envelope(error="Malformed response envelope")

    @staticmethod
    def _path(table: str, record_id: Any = None) -> str:
        path = f"/{table.lower()}"
        if record_id is not None:
            path = f"{path}/{record_id}"
        return path

    async def select(self, table: str, filter: Optional[Tuple[str, Any]] = None) -> Envelope:
        """Read all records of ``table``, or those where ``column == value``."""
        params = None
        if filter is not None:
            column, value = filter
            params = {column: value}
        return await self._request("GET", self._path(table), params=params)

    async def insert(self, table: str, record) -> Envelope:
        """Create a record; a list sends only its first element."""
        if isinstance(record, (list, tuple)):
            record = record[0] if record else {}
        return await self._request("POST", self._path(table), body=record)

    async def update(self, table: str, record_id: Any, changes: Dict[str, Any]) -> Envelope:
        return await self._request("PUT", self._path(table, record_id), body=changes)

    async def delete(self, table: str, record_id: Any) -> Envelope:
        return await self._request("DELETE", self._path(table, record_id))

    async def test_connection(self) -> ConnectionStatus:
        """Check that the backend answers its health endpoint."""
        result = await self._request("GET", "/health")
        data = result.data if isinstance(result.data, dict) else {}
        return ConnectionStatus(
            success=data.get("status") == "healthy",
            error=result.error,
        )
