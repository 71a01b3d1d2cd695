"""Tests for objkt payload transformers."""

from datetime import datetime, timezone

import pytest

from nftbot.exceptions import MarketplaceError
from nftbot.marketplace.transformers import (
    TEIA_CONTRACT,
    Listing,
    mint_sale_id,
    select_best_listing,
    token_url,
    transform_generative_collection,
    transform_listing_sale,
    transform_mint_sale,
    transform_minted_token,
    transform_open_edition,
)

REF = "tz1ref"


def test_token_url():
    assert token_url(TEIA_CONTRACT, "42", REF) == "https://teia.art/objkt/42"
    assert token_url("KT1abc", "7", REF) == "https://objkt.com/tokens/KT1abc/7?ref=tz1ref"


def test_mint_sale_id_is_stable_uint32():
    # ((97 * 31) + 58) * 31 + 49
    assert mint_sale_id("a", "1") == 95064
    long_id = mint_sale_id("KT1RJ6PbjHpwc3M5rw5s2Nbmefwbuwbdxton", "123456")
    assert 0 <= long_id < 2**32
    assert long_id == mint_sale_id("KT1RJ6PbjHpwc3M5rw5s2Nbmefwbuwbdxton", "123456")


def test_select_best_listing():
    partial = Listing(amount=10, amount_left=None, price_xtz=1000)
    complete = Listing(amount=5, amount_left=3, price_xtz=2000)

    assert select_best_listing([partial, complete]) is complete
    assert select_best_listing([partial]) is partial
    assert select_best_listing([]) == Listing(None, None, None)


def test_transform_minted_token():
    token = transform_minted_token(
        {
            "description": None,
            "last_listed": "2024-03-01T12:00:00+00:00",
            "name": "Dawn",
            "supply": 10,
            "timestamp": "2024-02-01T08:30:00Z",
            "fa_contract": "KT1abc",
            "token_id": "3",
            "listings_active": [{"amount": 10, "amount_left": 4, "price_xtz": 5000000}],
        },
        REF,
    )

    assert token.description == ""
    assert token.timestamp == datetime(2024, 2, 1, 8, 30, tzinfo=timezone.utc)
    assert token.last_listed == datetime(2024, 3, 1, 12, 0, tzinfo=timezone.utc)
    assert token.token_url.endswith("?ref=tz1ref")
    assert token.listings == [Listing(10, 4, 5000000)]


def test_transform_open_edition_refers_to_seller():
    token = transform_open_edition(
        {
            "timestamp": "2024-03-01T00:00:00Z",
            "seller_address": "tz1seller",
            "price": 1500000,
            "token": {
                "token_id": "9",
                "fa_contract": "KT1oe",
                "name": "Open",
                "timestamp": "2024-02-28T00:00:00Z",
                "description": "desc",
                "supply": 50,
            },
        }
    )

    assert token.token_url == "https://objkt.com/tokens/KT1oe/9?ref=tz1seller"
    assert token.listings == [Listing(50, None, 1500000)]


def test_transform_generative_collection():
    token = transform_generative_collection(
        {
            "contract": "KT1gen",
            "name": "Series",
            "description": "series desc",
            "timestamp": "2024-01-05T00:00:00Z",
            "tokens": [
                {
                    "token_id": "0",
                    "fa_contract": "KT1gen",
                    "timestamp": "2024-01-06T00:00:00Z",
                    "description": None,
                    "supply": 1,
                    "fa": {"editions": 256},
                }
            ],
        }
    )

    assert token.name == "Series"
    assert token.description == "series desc"
    assert token.supply == 256
    assert token.token_url == "https://www.editart.xyz/series/KT1gen"


def test_generative_collection_without_tokens_raises():
    with pytest.raises(MarketplaceError):
        transform_generative_collection({"contract": "KT1gen", "name": "Empty", "tokens": []})


@pytest.mark.parametrize(
    "buyer,expected",
    [
        ({"address": "tz1a", "alias": "alice", "tzdomain": "a.tez"}, "alice"),
        ({"address": "tz1a", "alias": None, "tzdomain": "a.tez"}, "a.tez"),
        ({"address": "tz1a", "alias": "", "tzdomain": None}, "tz1a"),
    ],
)
def test_listing_sale_buyer_alias_fallback(buyer, expected):
    sale = transform_listing_sale(
        {
            "id": "123",
            "buyer": {**buyer, "twitter": "https://x.com/alice"},
            "token": {"fa_contract": "KT1abc", "token_id": "1", "name": "Dawn"},
            "timestamp": "2024-03-01T00:00:00Z",
        }
    )

    assert sale.sale_id == 123
    assert sale.buyer_alias == expected
    assert sale.buyer_twitter == "https://x.com/alice"


def test_transform_mint_sale_uses_derived_id():
    sale = transform_mint_sale(
        token_id="1",
        fa_contract="a",
        token_name="Open",
        timestamp="2024-03-01T00:00:00Z",
        holder={"address": "tz1b", "alias": None, "tzdomain": None, "twitter": None},
    )

    assert sale.sale_id == 95064
    assert sale.buyer_alias == "tz1b"
