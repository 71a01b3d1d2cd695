"""Normalize objkt.com API payloads into database rows."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from nftbot.config.schema import DEFAULT_WALLET
from nftbot.exceptions import MarketplaceError
from nftbot.utils.helpers import as_utc

TEIA_CONTRACT = "KT1RJ6PbjHpwc3M5rw5s2Nbmefwbuwbdxton"


@dataclass
class Listing:
    amount: int | None
    amount_left: int | None
    price_xtz: int | None


@dataclass
class TokenData:
    """A token ready to be upserted into ``tokens``."""

    token_id: str
    fa_contract: str
    name: str
    description: str
    supply: int | None
    timestamp: datetime
    last_listed: datetime | None
    token_url: str
    listings: list[Listing] = field(default_factory=list)


@dataclass
class SaleData:
    """A sale or mint ready to be inserted into ``nft_sales``."""

    sale_id: int
    token_name: str
    fa_contract: str
    token_id: str
    buyer_alias: str | None
    buyer_twitter: str | None
    sale_ts: datetime
    token_url: str


def parse_timestamp(value: str | None) -> datetime | None:
    if not value:
        return None
    return as_utc(datetime.fromisoformat(value.replace("Z", "+00:00")))


def token_url(fa_contract: str, token_id: str, ref: str = DEFAULT_WALLET) -> str:
    """Marketplace link for a token; Teia tokens link to teia.art."""
    if fa_contract == TEIA_CONTRACT:
        return f"https://teia.art/objkt/{token_id}"
    return f"https://objkt.com/tokens/{fa_contract}/{token_id}?ref={ref}"


def buyer_alias(holder: dict[str, Any]) -> str | None:
    return holder.get("alias") or holder.get("tzdomain") or holder.get("address")


def mint_sale_id(fa_contract: str, token_id: str) -> int:
    """
    Derive a stable numeric id for a mint, which has no marketplace sale id.

    A 31-multiplier string hash over ``"<contract>:<token_id>"`` kept to
    32 unsigned bits.
    """
    sale_id = 0
    for char in f"{fa_contract}:{token_id}":
        sale_id = (sale_id * 31 + ord(char)) & 0xFFFFFFFF
    return sale_id


def select_best_listing(listings: list[Listing]) -> Listing:
    """
    Pick the listing to store on the token row.

    Prefers the first listing with both ``amount_left`` and ``price_xtz``
    set, then the first listing, then an empty one.
    """
    for listing in listings:
        if listing.amount_left is not None and listing.price_xtz is not None:
            return listing
    if listings:
        return listings[0]
    return Listing(amount=None, amount_left=None, price_xtz=None)


def transform_minted_token(token: dict[str, Any], ref: str = DEFAULT_WALLET) -> TokenData:
    return TokenData(
        token_id=token["token_id"],
        fa_contract=token["fa_contract"],
        name=token["name"],
        description=token.get("description") or "",
        supply=token.get("supply"),
        timestamp=parse_timestamp(token["timestamp"]),
        last_listed=parse_timestamp(token.get("last_listed")),
        token_url=token_url(token["fa_contract"], token["token_id"], ref),
        listings=[
            Listing(
                amount=item.get("amount"),
                amount_left=item.get("amount_left"),
                price_xtz=item.get("price_xtz"),
            )
            for item in token.get("listings_active") or []
        ],
    )


def transform_open_edition(edition: dict[str, Any]) -> TokenData:
    """Open editions refer buyers to the seller's own wallet."""
    token = edition["token"]
    return TokenData(
        token_id=token["token_id"],
        fa_contract=token["fa_contract"],
        name=token["name"],
        description=token.get("description") or "",
        supply=token.get("supply"),
        timestamp=parse_timestamp(token["timestamp"]),
        last_listed=parse_timestamp(edition.get("timestamp")),
        token_url=token_url(token["fa_contract"], token["token_id"], edition["seller_address"]),
        listings=[Listing(amount=token.get("supply"), amount_left=None, price_xtz=edition.get("price"))],
    )


def transform_generative_collection(fa: dict[str, Any]) -> TokenData:
    """
    Represent a generative collection by its first token.

    Raises:
        MarketplaceError: The collection has no tokens yet.
    """
    tokens = fa.get("tokens") or []
    if not tokens:
        raise MarketplaceError(f"Generative collection {fa.get('contract')} has no tokens")
    token = tokens[0]
    editions = (token.get("fa") or {}).get("editions")
    supply = editions if editions is not None else token.get("supply")

    return TokenData(
        token_id=token["token_id"],
        fa_contract=token["fa_contract"],
        name=fa["name"],
        description=token.get("description") or fa.get("description") or "",
        supply=supply,
        timestamp=parse_timestamp(token["timestamp"]),
        last_listed=parse_timestamp(fa.get("timestamp")),
        token_url=f"https://www.editart.xyz/series/{fa['contract']}",
        listings=[Listing(amount=supply, amount_left=None, price_xtz=None)],
    )


def transform_listing_sale(sale: dict[str, Any], ref: str = DEFAULT_WALLET) -> SaleData:
    token = sale["token"]
    buyer = sale.get("buyer") or {}
    return SaleData(
        sale_id=int(sale["id"]),
        token_name=token["name"],
        fa_contract=token["fa_contract"],
        token_id=token["token_id"],
        buyer_alias=buyer_alias(buyer),
        buyer_twitter=buyer.get("twitter"),
        sale_ts=parse_timestamp(sale["timestamp"]),
        token_url=token_url(token["fa_contract"], token["token_id"], ref),
    )


def transform_mint_sale(
    token_id: str,
    fa_contract: str,
    token_name: str,
    timestamp: str,
    holder: dict[str, Any],
    ref: str = DEFAULT_WALLET,
) -> SaleData:
    return SaleData(
        sale_id=mint_sale_id(fa_contract, token_id),
        token_name=token_name,
        fa_contract=fa_contract,
        token_id=token_id,
        buyer_alias=buyer_alias(holder),
        buyer_twitter=holder.get("twitter"),
        sale_ts=parse_timestamp(timestamp),
        token_url=token_url(fa_contract, token_id, ref),
    )
