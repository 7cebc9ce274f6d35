"""PSGC client for the public address endpoints."""

from __future__ import annotations

import asyncio
from typing import Any

import httpx

from citizenly.cascade.models import Option
from citizenly.core.config import PSGCConfig
from citizenly.psgc.models import AddressMatch


class PSGCClient:
    """Talks to a Citizenly-compatible ``/api/addresses`` service.

    Every list endpoint answers ``{"data": [...]}``. Server errors and
    transport failures are retried with backoff up to ``max_retries`` times;
    anything else raises ``httpx.HTTPStatusError``.
    """

    def __init__(
        self,
        config: PSGCConfig | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.config = config or PSGCConfig()
        self._http = httpx.AsyncClient(
            base_url=self.config.base_url,
            timeout=httpx.Timeout(self.config.timeout_seconds),
            transport=transport,
        )
        self._max_retries = self.config.max_retries

    # -- public API ----------------------------------------------------------

    async def list_regions(self) -> list[Option]:
        return await self._list("/api/addresses/regions/public")

    async def list_provinces(self, region_code: str) -> list[Option]:
        return await self._list("/api/addresses/provinces/public", regionCode=region_code)

    async def list_cities(self, province_code: str) -> list[Option]:
        return await self._list("/api/addresses/cities/public", provinceCode=province_code)

    async def list_region_cities(self, region_code: str) -> list[Option]:
        return await self._list("/api/addresses/cities/public", regionCode=region_code)

    async def list_barangays(self, city_code: str) -> list[Option]:
        return await self._list("/api/addresses/barangays/public", cityCode=city_code)

    async def search(self, query: str, limit: int = 10) -> list[AddressMatch]:
        body = await self._get("/api/addresses/search", {"q": query, "limit": limit})
        return [AddressMatch.model_validate(item) for item in body.get("data") or []]

    async def close(self) -> None:
        await self._http.aclose()

    # -- internal ------------------------------------------------------------

    async def _list(self, path: str, **params: str) -> list[Option]:
        body = await self._get(path, params)
        return [Option.model_validate(item) for item in body.get("data") or []]

    async def _get(self, path: str, params: dict[str, Any]) -> dict:
        last_exc: Exception | None = None
        for attempt in range(self._max_retries + 1):
            try:
                resp = await self._http.get(path, params=params)
                if resp.status_code >= 500 and attempt < self._max_retries:
                    last_exc = httpx.HTTPStatusError(
                        f"Server error {resp.status_code}",
                        request=resp.request,
                        response=resp,
                    )
                    await asyncio.sleep(2**attempt * 0.5)
                    continue
                resp.raise_for_status()
                return resp.json()
            except httpx.TransportError as exc:
                last_exc = exc
                if attempt < self._max_retries:
                    await asyncio.sleep(2**attempt * 0.5)
                    continue
                raise
        raise last_exc  # type: ignore[misc]
