"""Tests for the objkt and TzKT HTTP clients."""

import json

import httpx
import pytest

from nftbot.exceptions import MarketplaceError
from nftbot.marketplace.objkt import OPEN_EDITION_INSTANCES_QUERY, ObjktClient
from nftbot.marketplace.tzkt import TzktClient

ENDPOINT = "https://objkt.test/v3/graphql"


def objkt_client(handler) -> ObjktClient:
    return ObjktClient(ENDPOINT, client=httpx.AsyncClient(transport=httpx.MockTransport(handler)))


@pytest.mark.asyncio
async def test_request_returns_data_and_sends_variables():
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(json.loads(request.content))
        return httpx.Response(200, json={"data": {"token": [{"token_id": "1"}]}})

    client = objkt_client(handler)

    tokens = await client.get_minted_tokens(["tz1a"])

    assert tokens == [{"token_id": "1"}]
    assert seen[0]["variables"] == {"wallets": ["tz1a"]}
    await client.aclose()


@pytest.mark.asyncio
async def test_graphql_errors_raise():
    client = objkt_client(lambda request: httpx.Response(200, json={"errors": [{"message": "field not found"}]}))

    with pytest.raises(MarketplaceError, match="field not found"):
        await client.get_generative_collections(["tz1a"])


@pytest.mark.asyncio
async def test_http_errors_raise():
    client = objkt_client(lambda request: httpx.Response(502, text="bad gateway"))

    with pytest.raises(MarketplaceError):
        await client.ping()


@pytest.mark.asyncio
async def test_open_edition_sales_fetches_instances_per_edition():
    def handler(request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content)
        if body["query"] == OPEN_EDITION_INSTANCES_QUERY:
            token_id = body["variables"]["tokenId"]
            return httpx.Response(200, json={"data": {"token": [{"token_id": token_id, "holders": []}]}})
        return httpx.Response(
            200,
            json={
                "data": {
                    "open_edition": [
                        {"token": {"fa_contract": "KT1oe", "token_id": "5", "name": "Open"}},
                        {"token": {"fa_contract": "KT1oe", "token_id": "6", "name": "Other"}},
                    ]
                }
            },
        )

    client = objkt_client(handler)

    sales = await client.get_open_edition_sales(["tz1a"])

    assert [s["token"]["name"] for s in sales] == ["Open", "Other"]
    assert sales[1]["tokens"] == [{"token_id": "6", "holders": []}]


@pytest.mark.asyncio
async def test_tzkt_head():
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.path == "/v1/head"
        return httpx.Response(200, json={"level": 5000000, "timestamp": "2024-03-01T00:00:00Z"})

    client = TzktClient("https://api.tzkt.test/", client=httpx.AsyncClient(transport=httpx.MockTransport(handler)))

    head = await client.head()

    assert head["level"] == 5000000
    await client.aclose()


@pytest.mark.asyncio
async def test_tzkt_error_raises():
    client = TzktClient(
        "https://api.tzkt.test",
        client=httpx.AsyncClient(transport=httpx.MockTransport(lambda request: httpx.Response(500))),
    )

    with pytest.raises(MarketplaceError):
        await client.get("/v1/head")
