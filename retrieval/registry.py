"""
Data Source Registry Client

Lists the data source connections known to the Lighthouse backend.

GUARANTEES:
- Never raises to the caller
- Empty, missing (404), invalid or unreachable registry → one default connection
"""

import logging
from typing import List, Optional

import httpx
from pydantic import ValidationError

from observability.http_client import client_scope
from schemas.datasource import DEFAULT_CONNECTION, DataSourceConnection


logger = logging.getLogger(__name__)


DEFAULT_REGISTRY_ENDPOINT = "http://localhost:8080/api/database-connections"


class DataSourceRegistry:
    """Read-only client for the connection registry."""

    def __init__(
        self,
        api_key: str,
        endpoint: str = DEFAULT_REGISTRY_ENDPOINT,
        client: Optional[httpx.AsyncClient] = None,
        timeout: float = 5.0,
    ):
        self._api_key = api_key
        self._endpoint = endpoint
        self._client = client
        self._timeout = timeout

    async def list_connections(self) -> List[DataSourceConnection]:
        """Ordered connection list, or [DEFAULT_CONNECTION] when none can be loaded."""
        connections = await self._fetch()
        if not connections:
            logger.info("Registry returned no connections; using default connection")
            return [DEFAULT_CONNECTION]
        return connections

    async def active_connections(self) -> List[DataSourceConnection]:
        """Connections whose status is active, falling back to the default."""
        active = [conn for conn in await self.list_connections() if conn.is_active]
        return active or [DEFAULT_CONNECTION]

    async def _fetch(self) -> List[DataSourceConnection]:
        try:
            async with client_scope(self._client, self._timeout) as client:
                response = await client.get(
                    self._endpoint,
                    headers={
                        "Content-Type": "application/json",
                        "X-API-Key": self._api_key,
                    },
                )
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            logger.warning(f"Could not reach data source registry at {self._endpoint}: {e}")
            return []

        if response.status_code == 404:
            return []
        if response.is_error:
            logger.warning(f"Data source registry returned {response.status_code}")
            return []

        try:
            payload = response.json()
            if not isinstance(payload, list):
                raise ValueError(f"expected a list, got {type(payload).__name__}")
            return [DataSourceConnection.model_validate(item) for item in payload]
        except (ValueError, ValidationError) as e:
            logger.warning(f"Invalid data source registry payload: {e}")
            return []
