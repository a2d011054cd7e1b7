"""
Remote table clients.
"""

import logging
from typing import Any, Dict, List, Optional, Protocol

import httpx

from ..exceptions import ConfigError, RemoteInsertError

logger = logging.getLogger(__name__)


class RemoteTableClient(Protocol):
    async def insert(self, table: str, rows: List[Dict[str, Any]]) -> None:
        """Insert all ``rows`` or raise ``RemoteInsertError``."""

    async def close(self) -> None: ...


class RestTableClient:
    """
    Bulk inserts over a PostgREST-style HTTP interface.

    ``POST {endpoint}/rest/v1/{table}`` with a JSON array body. The credential
    is sent both as ``apikey`` and as a bearer token.
    """

    def __init__(
        self,
        endpoint: str,
        credential: str,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        if not endpoint:
            raise ConfigError("remote endpoint is not configured")
        if not credential:
            raise ConfigError("remote credential is not configured")

        self.endpoint = endpoint.rstrip("/")
        self.client = httpx.AsyncClient(
            base_url=self.endpoint,
            timeout=timeout,
            transport=transport,
            headers={
                "apikey": credential,
                "Authorization": f"Bearer {credential}",
                "Content-Type": "application/json",
                "Prefer": "return=minimal",
            },
        )

    async def insert(self, table: str, rows: List[Dict[str, Any]]) -> None:
        """
        Insert ``rows`` into ``table`` in one request.

        Raises:
            RemoteInsertError: On a non-2xx response, timeout or connection failure
        """
        try:
            response = await self.client.post(f"/rest/v1/{table}", json=rows)
        except httpx.TimeoutException as e:
            raise RemoteInsertError(f"Timed out inserting into {table}: {e}") from e
        except httpx.HTTPError as e:
            raise RemoteInsertError(f"Could not reach {self.endpoint}: {e}") from e

        if response.is_success:
            logger.debug(f"Inserted {len(rows)} rows into {table}")
            return

        raise RemoteInsertError(
            self._error_message(response), status_code=response.status_code
        )

    @staticmethod
    def _error_message(response: httpx.Response) -> str:
        try:
            body = response.json()
        except ValueError:
            body = None
        if isinstance(body, dict):
            message = body.get("message") or body.get("error") or body.get("msg")
            if message:
                return str(message)
        text = response.text.strip()
        return text or f"HTTP {response.status_code}"

    async def close(self) -> None:
        await self.client.aclose()
