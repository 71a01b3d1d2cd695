"""TzKT REST API client."""

from typing import Any

import httpx

from nftbot.exceptions import MarketplaceError


class TzktClient:
    """Minimal TzKT client, used for connectivity checks."""

    def __init__(self, api_url: str, client: httpx.AsyncClient | None = None) -> None:
        self.api_url = api_url.rstrip("/")
        self._client = client or httpx.AsyncClient(timeout=30.0)

    async def aclose(self) -> None:
        await self._client.aclose()

    async def get(self, endpoint: str) -> Any:
        try:
            response = await self._client.get(f"{self.api_url}{endpoint}")
            response.raise_for_status()
            return response.json()
        except (httpx.HTTPError, ValueError) as e:
            raise MarketplaceError(f"TzKT API error: {e}") from e

    async def head(self) -> dict[str, Any]:
        """Current chain head (``level``, ``timestamp``, ...)."""
        return await self.get("/v1/head")
