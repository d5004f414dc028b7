"""
Inventory source adapters and the process-wide cache in front of them.

Fetch failures are hard failures: the cache never falls back to stale or
empty data, so a broken feed is visible to the turn handler.
"""

import asyncio
import logging
import time
from typing import Callable, Optional, Protocol

import httpx
from pydantic import ValidationError

from salesbot.config import settings
from salesbot.schemas.inventory_schema import InventoryUnit

logger = logging.getLogger(__name__)


class InventoryFetchError(Exception):
    """Raised when the inventory feed cannot be read or parsed."""


class InventorySource(Protocol):
    async def fetch_all(self) -> list[InventoryUnit]: ...


def parse_inventory_payload(payload) -> list[InventoryUnit]:
    """Accept a bare list of rows or the ``{"ok": ..., "items": [...]}`` envelope."""
    if isinstance(payload, dict):
        if payload.get("ok") is False:
            raise InventoryFetchError(f"Inventory API reported failure: {payload.get('error')!r}")
        rows = payload.get("items")
    else:
        rows = payload
    if not isinstance(rows, list):
        raise InventoryFetchError("Inventory payload has no list of items")

    units = []
    for row in rows:
        if not isinstance(row, dict):
            continue
        try:
            units.append(InventoryUnit.model_validate(row))
        except ValidationError as e:
            logger.warning("Skipping malformed inventory row %r: %s", row.get("SKU"), e)
    return units


class HttpInventorySource:
    """GETs the spreadsheet-backed inventory API."""

    def __init__(
        self,
        url: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._url = url if url is not None else settings.integrations.inventory_api_url
        self._timeout = timeout if timeout is not None else settings.integrations.http_timeout_sec
        self._transport = transport

    async def fetch_all(self) -> list[InventoryUnit]:
        if not self._url:
            raise InventoryFetchError("INVENTORY_API_URL is not configured")
        try:
            async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as client:
                response = await client.get(self._url)
                response.raise_for_status()
                payload = response.json()
        except httpx.HTTPError as e:
            raise InventoryFetchError(f"Inventory request failed: {e}") from e
        except ValueError as e:
            raise InventoryFetchError(f"Inventory response is not JSON: {e}") from e
        return parse_inventory_payload(payload)


class StaticInventorySource:
    """Fixed in-memory inventory for the console demo and tests."""

    def __init__(self, units: list[InventoryUnit]) -> None:
        self._units = list(units)
        self.fetch_count = 0

    async def fetch_all(self) -> list[InventoryUnit]:
        self.fetch_count += 1
        return list(self._units)


class CachedInventory:
    """Caches the full inventory for a fixed number of seconds.

    Concurrent misses share one refresh.
    """

    def __init__(
        self,
        source: InventorySource,
        ttl_seconds: Optional[float] = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._source = source
        self._ttl = ttl_seconds if ttl_seconds is not None else settings.integrations.inventory_cache_seconds
        self._clock = clock
        self._units: Optional[list[InventoryUnit]] = None
        self._fetched_at = 0.0
        self._lock = asyncio.Lock()

    def _fresh(self) -> bool:
        return self._units is not None and self._clock() - self._fetched_at < self._ttl

    async def fetch_all(self) -> list[InventoryUnit]:
        if self._fresh():
            return list(self._units)
        async with self._lock:
            if not self._fresh():
                units = await self._source.fetch_all()
                self._units = units
                self._fetched_at = self._clock()
                logger.info("Inventory refreshed: %d units", len(units))
            return list(self._units)
