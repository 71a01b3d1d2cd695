"""objkt.com GraphQL client."""

from typing import Any

import httpx
from loguru import logger

from nftbot.exceptions import MarketplaceError
from nftbot.utils.helpers import utcnow

HOLDER_FIELDS = """
            holders {
              holder_address
              holder {
                address
                alias
                twitter
                tzdomain
              }
            }
"""

MINTED_TOKENS_QUERY = """
query MyQuery($wallets: [String!]!) {
  token(
    where: {
      creators: { creator_address: { _in: $wallets } },
      listings_active: { seller_address: { _in: $wallets } }
    }
    order_by: { timestamp: desc }
  ) {
    description
    last_listed
    name
    supply
    timestamp
    fa_contract
    token_id
    listings_active(where: { seller_address: { _in: $wallets } }) {
      amount
      amount_left
      price_xtz
    }
  }
}
"""

ACTIVE_OPEN_EDITIONS_QUERY = """
query ActiveOpenEditions($wallets: [String!]!, $currentTime: timestamptz!) {
  open_edition(
    where: {
      seller_address: { _in: $wallets }
      end_time: { _gt: $currentTime }
    }
    order_by: { timestamp: desc }
  ) {
    end_time
    start_time
    timestamp
    fa_contract
    token_pk
    seller_address
    price
    max_per_wallet
    token {
      token_id
      fa_contract
      pk
      name
      timestamp
      display_uri
      description
      mime
      artifact_uri
      supply
      creators {
        creator_address
      }
    }
  }
}
"""

GENERATIVE_COLLECTIONS_QUERY = """
query GenerativeCollections($wallets: [String!]!) {
  fa(
    where: {
      creator_address: { _in: $wallets },
      collection_type: { _eq: "generative" }
    }
    order_by: { timestamp: desc }
  ) {
    contract
    name
    description
    timestamp
    collection_type
    tokens(limit: 1, order_by: { token_id: asc }) {
      token_id
      fa_contract
      pk
      name
      timestamp
      display_uri
      description
      mime
      artifact_uri
      supply
      metadata
      creators {
        creator_address
      }
      fa {
        editions
      }
    }
  }
}
"""

LISTING_SALES_QUERY = """
query ListingSales($wallets: [String!]!, $limit: Int!) {
  listing_sale(
    where: {
      seller_address: { _in: $wallets }
      token: { creators: { creator_address: { _in: $wallets } } }
    }
    order_by: { timestamp: desc }
    limit: $limit
  ) {
    id
    buyer {
      address
      alias
      twitter
      tzdomain
    }
    token {
      fa_contract
      token_id
      name
      description
    }
    timestamp
  }
}
"""

OPEN_EDITION_SALES_QUERY = """
query OpenEditionSales($wallets: [String!]!, $currentTime: timestamptz!) {
  open_edition(
    where: {
      seller_address: { _in: $wallets }
      end_time: { _gt: $currentTime }
    }
    order_by: { timestamp: desc }
  ) {
    fa_contract
    token_pk
    token {
      fa_contract
      token_id
      name
      description
    }
  }
}
"""

OPEN_EDITION_INSTANCES_QUERY = """
query OETokenInstances($faContract: String!, $tokenId: String!) {
  token(
    where: {
      fa_contract: { _eq: $faContract }
      token_id: { _eq: $tokenId }
    }
  ) {
    token_id
    timestamp
%s  }
}
""" % HOLDER_FIELDS

GENERATIVE_SALES_QUERY = """
query GenerativeSales($wallets: [String!]!) {
  fa(
    where: {
      creator_address: { _in: $wallets }
      collection_type: { _eq: "generative" }
    }
    order_by: { timestamp: desc }
  ) {
    contract
    name
    description
    tokens(order_by: { timestamp: desc }, limit: 100) {
      token_id
      fa_contract
      timestamp
%s    }
  }
}
""" % HOLDER_FIELDS

PING_QUERY = """
query {
  token(limit: 1) {
    name
    fa_contract
  }
}
"""


class ObjktClient:
    """
    Thin GraphQL-over-HTTP client for the objkt.com data API.

    Every query returns the ``data`` object of the response.
    """

    def __init__(self, endpoint: str, client: httpx.AsyncClient | None = None) -> None:
        self.endpoint = endpoint
        self._client = client or httpx.AsyncClient(timeout=30.0)

    async def aclose(self) -> None:
        await self._client.aclose()

    async def request(self, query: str, variables: dict[str, Any] | None = None) -> dict[str, Any]:
        """
        Execute a GraphQL query.

        Raises:
            MarketplaceError: HTTP failure or GraphQL errors in the response.
        """
        try:
            response = await self._client.post(self.endpoint, json={"query": query, "variables": variables or {}})
            response.raise_for_status()
            payload = response.json()
        except (httpx.HTTPError, ValueError) as e:
            raise MarketplaceError(f"objkt request failed: {e}") from e

        if payload.get("errors"):
            messages = "; ".join(str(err.get("message", err)) for err in payload["errors"])
            raise MarketplaceError(f"objkt GraphQL error: {messages}")
        return payload.get("data") or {}

    async def get_minted_tokens(self, wallets: list[str]) -> list[dict[str, Any]]:
        data = await self.request(MINTED_TOKENS_QUERY, {"wallets": wallets})
        return data.get("token", [])

    async def get_active_open_editions(self, wallets: list[str]) -> list[dict[str, Any]]:
        data = await self.request(
            ACTIVE_OPEN_EDITIONS_QUERY,
            {"wallets": wallets, "currentTime": utcnow().isoformat()},
        )
        return data.get("open_edition", [])

    async def get_generative_collections(self, wallets: list[str]) -> list[dict[str, Any]]:
        data = await self.request(GENERATIVE_COLLECTIONS_QUERY, {"wallets": wallets})
        return data.get("fa", [])

    async def get_listing_sales(self, wallets: list[str], limit: int = 20) -> list[dict[str, Any]]:
        """Recent primary sales of tokens the wallets created."""
        data = await self.request(LISTING_SALES_QUERY, {"wallets": wallets, "limit": limit})
        return data.get("listing_sale", [])

    async def get_open_edition_sales(self, wallets: list[str]) -> list[dict[str, Any]]:
        """
        Mints of active open editions.

        Fetches the editions first, then the token instances and their
        holders for each edition.

        Returns:
            One ``{"token": {...}, "tokens": [...]}`` entry per edition.
        """
        data = await self.request(
            OPEN_EDITION_SALES_QUERY,
            {"wallets": wallets, "currentTime": utcnow().isoformat()},
        )

        results = []
        for edition in data.get("open_edition", []):
            token = edition["token"]
            instances = await self.request(
                OPEN_EDITION_INSTANCES_QUERY,
                {"faContract": token["fa_contract"], "tokenId": token["token_id"]},
            )
            results.append({"token": token, "tokens": instances.get("token", [])})
        logger.debug(f"Fetched instances for {len(results)} open edition(s)")
        return results

    async def get_generative_sales(self, wallets: list[str]) -> list[dict[str, Any]]:
        data = await self.request(GENERATIVE_SALES_QUERY, {"wallets": wallets})
        return data.get("fa", [])

    async def ping(self) -> int:
        """Run a one-token query and return the number of tokens returned."""
        data = await self.request(PING_QUERY)
        return len(data.get("token", []))
