"""Tests for MarketplaceSync."""

from unittest.mock import AsyncMock, MagicMock

import pytest
from sqlalchemy import select

from nftbot.db.models import NftSaleRecord, TokenRecord
from nftbot.exceptions import MarketplaceError
from nftbot.marketplace.sync import MarketplaceSync
from nftbot.marketplace.transformers import mint_sale_id

WALLET = "tz1artist"


def holder(address, alias=None, twitter=None):
    return {"holder_address": address, "holder": {"address": address, "alias": alias, "twitter": twitter, "tzdomain": None}}


@pytest.fixture
def client():
    client = MagicMock()
    client.get_minted_tokens = AsyncMock(
        return_value=[
            {
                "description": "first light",
                "last_listed": "2024-03-01T00:00:00Z",
                "name": "Dawn",
                "supply": 10,
                "timestamp": "2024-02-01T00:00:00Z",
                "fa_contract": "KT1one",
                "token_id": "1",
                "listings_active": [{"amount": 10, "amount_left": 6, "price_xtz": 2000000}],
            }
        ]
    )
    client.get_active_open_editions = AsyncMock(
        return_value=[
            {
                "timestamp": "2024-03-02T00:00:00Z",
                "seller_address": WALLET,
                "price": 1000000,
                "token": {
                    "token_id": "5",
                    "fa_contract": "KT1oe",
                    "name": "Open",
                    "timestamp": "2024-03-02T00:00:00Z",
                    "description": None,
                    "supply": 20,
                },
            }
        ]
    )
    client.get_generative_collections = AsyncMock(return_value=[])
    client.get_listing_sales = AsyncMock(
        return_value=[
            {
                "id": "555",
                "buyer": {"address": "tz1buyer", "alias": "collector", "twitter": None, "tzdomain": None},
                "token": {"fa_contract": "KT1one", "token_id": "1", "name": "Dawn"},
                "timestamp": "2024-03-03T00:00:00Z",
            }
        ]
    )
    client.get_open_edition_sales = AsyncMock(
        return_value=[
            {
                "token": {"fa_contract": "KT1oe", "token_id": "5", "name": "Open"},
                "tokens": [
                    {
                        "token_id": "5",
                        "timestamp": "2024-03-04T00:00:00Z",
                        "holders": [holder(WALLET), holder("tz1minter", twitter="https://x.com/minter")],
                    }
                ],
            }
        ]
    )
    client.get_generative_sales = AsyncMock(return_value=[])
    return client


@pytest.mark.asyncio
async def test_sync_writes_tokens_and_sales(database, client):
    sync = MarketplaceSync(database, client, [WALLET], "tz1ref")

    summary = await sync.run()

    assert summary.minted == 1
    assert summary.open_editions == 1
    assert summary.sales == 1
    # the artist's own holding is not a sale
    assert summary.open_edition_sales == 1
    assert summary.total == 4

    async with database.session() as session:
        tokens = {t.name: t for t in await session.scalars(select(TokenRecord))}
        sales = {s.sale_id: s for s in await session.scalars(select(NftSaleRecord))}

    assert tokens["Dawn"].listing_amount_left == 6
    assert tokens["Dawn"].token_url == "https://objkt.com/tokens/KT1one/1?ref=tz1ref"
    assert tokens["Open"].listing_price_xtz == 1000000
    assert set(sales) == {555, mint_sale_id("KT1oe", "5")}
    assert sales[555].buyer_alias == "collector"
    assert all(not s.processed for s in sales.values())


@pytest.mark.asyncio
async def test_sync_is_idempotent_and_updates_tokens(database, client):
    sync = MarketplaceSync(database, client, [WALLET], "tz1ref")
    await sync.run()

    async with database.session() as session:
        await session.execute(NftSaleRecord.__table__.update().values(processed=True))
        await session.commit()

    client.get_minted_tokens.return_value[0]["name"] = "Dawn (remastered)"
    await sync.run()

    async with database.session() as session:
        tokens = list(await session.scalars(select(TokenRecord)))
        sales = list(await session.scalars(select(NftSaleRecord)))

    assert len(tokens) == 2
    assert "Dawn (remastered)" in {t.name for t in tokens}
    assert len(sales) == 2
    # existing sales are never overwritten
    assert all(s.processed for s in sales)


@pytest.mark.asyncio
async def test_dry_run_writes_nothing(database, client):
    sync = MarketplaceSync(database, client, [WALLET], "tz1ref")

    summary = await sync.run(dry_run=True)

    assert summary.total == 4
    async with database.session() as session:
        assert list(await session.scalars(select(TokenRecord))) == []
        assert list(await session.scalars(select(NftSaleRecord))) == []


@pytest.mark.asyncio
async def test_client_failure_propagates(database, client):
    client.get_minted_tokens.side_effect = MarketplaceError("objkt down")
    sync = MarketplaceSync(database, client, [WALLET], "tz1ref")

    with pytest.raises(MarketplaceError):
        await sync.run()
