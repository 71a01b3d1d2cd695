"""Sync objkt.com tokens and sales into the database."""

from dataclasses import dataclass
from typing import Any

from loguru import logger
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.sql import func

from nftbot.db.database import Database
from nftbot.db.models import NftSaleRecord, TokenRecord
from nftbot.marketplace.objkt import ObjktClient
from nftbot.marketplace.transformers import (
    SaleData,
    TokenData,
    select_best_listing,
    transform_generative_collection,
    transform_listing_sale,
    transform_mint_sale,
    transform_minted_token,
    transform_open_edition,
)

TOKEN_UPDATE_COLUMNS = (
    "name",
    "description",
    "supply",
    "timestamp",
    "last_listed",
    "listing_amount",
    "listing_amount_left",
    "listing_price_xtz",
    "token_url",
)


@dataclass
class SyncSummary:
    minted: int = 0
    open_editions: int = 0
    generative: int = 0
    sales: int = 0
    open_edition_sales: int = 0
    generative_sales: int = 0

    @property
    def total(self) -> int:
        return (
            self.minted
            + self.open_editions
            + self.generative
            + self.sales
            + self.open_edition_sales
            + self.generative_sales
        )


def _insert(database: Database, table: Any):
    if database.dialect == "postgresql":
        return postgresql.insert(table)
    if database.dialect == "sqlite":
        return sqlite.insert(table)
    raise NotImplementedError(f"Upserts are not supported on {database.dialect}")


class MarketplaceSync:
    """
    Pulls the artist's tokens and sales from objkt.com.

    Tokens are upserted on ``(token_id, fa_contract)``; sales are inserted
    once and never overwritten, so re-running a sync is harmless.
    """

    def __init__(
        self,
        database: Database,
        client: ObjktClient,
        wallets: list[str],
        referral_address: str,
        listing_sales_limit: int = 20,
    ) -> None:
        self.database = database
        self.client = client
        self.wallets = wallets
        self.referral_address = referral_address
        self.listing_sales_limit = listing_sales_limit

    async def upsert_token(self, token: TokenData, dry_run: bool = False) -> None:
        if dry_run:
            logger.info(f"[DRY RUN] Would upsert token: {token.name} ({token.fa_contract}/{token.token_id})")
            return

        listing = select_best_listing(token.listings)
        stmt = _insert(self.database, TokenRecord).values(
            token_id=token.token_id,
            fa_contract=token.fa_contract,
            name=token.name,
            description=token.description,
            supply=token.supply,
            timestamp=token.timestamp,
            last_listed=token.last_listed,
            listing_amount=listing.amount,
            listing_amount_left=listing.amount_left,
            listing_price_xtz=listing.price_xtz,
            token_url=token.token_url,
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=["token_id", "fa_contract"],
            set_={**{col: stmt.excluded[col] for col in TOKEN_UPDATE_COLUMNS}, "updated_at": func.now()},
        )
        async with self.database.session() as session:
            await session.execute(stmt)
            await session.commit()

    async def insert_sale(self, sale: SaleData, dry_run: bool = False) -> None:
        if dry_run:
            logger.info(f"[DRY RUN] Would insert sale: {sale.token_name} bought by {sale.buyer_alias}")
            return

        stmt = (
            _insert(self.database, NftSaleRecord)
            .values(
                sale_id=sale.sale_id,
                token_name=sale.token_name,
                fa_contract=sale.fa_contract,
                token_id=sale.token_id,
                buyer_alias=sale.buyer_alias,
                buyer_twitter=sale.buyer_twitter,
                sale_ts=sale.sale_ts,
                processed=False,
            )
            .on_conflict_do_nothing(index_elements=["sale_id"])
        )
        async with self.database.session() as session:
            await session.execute(stmt)
            await session.commit()

    def _mint_sales(self, token_name: str, fa_contract: str, tokens: list[dict[str, Any]]) -> list[SaleData]:
        """Turn token instances into one sale per non-watched holder."""
        sales = []
        for token in tokens:
            for holder_info in token.get("holders") or []:
                holder = holder_info.get("holder") or {}
                if holder.get("address") in self.wallets:
                    continue
                sales.append(
                    transform_mint_sale(
                        token_id=token["token_id"],
                        fa_contract=token.get("fa_contract") or fa_contract,
                        token_name=token_name,
                        timestamp=token["timestamp"],
                        holder=holder,
                        ref=self.referral_address,
                    )
                )
        return sales

    async def run(self, dry_run: bool = False) -> SyncSummary:
        """
        Sync everything in a fixed order.

        Raises:
            MarketplaceError: An objkt request failed.
            SQLAlchemyError: A database write failed.
        """
        if dry_run:
            logger.info("Starting objkt data sync (DRY RUN - no changes will be made)")
        else:
            logger.info("Starting objkt data sync")

        summary = SyncSummary()

        logger.info("Syncing minted tokens...")
        for token in await self.client.get_minted_tokens(self.wallets):
            await self.upsert_token(transform_minted_token(token, self.referral_address), dry_run)
            summary.minted += 1
        logger.info(f"Synced {summary.minted} minted tokens")

        logger.info("Syncing open editions...")
        for edition in await self.client.get_active_open_editions(self.wallets):
            await self.upsert_token(transform_open_edition(edition), dry_run)
            summary.open_editions += 1
        logger.info(f"Synced {summary.open_editions} open editions")

        logger.info("Syncing generative collections...")
        for fa in await self.client.get_generative_collections(self.wallets):
            await self.upsert_token(transform_generative_collection(fa), dry_run)
            summary.generative += 1
        logger.info(f"Synced {summary.generative} generative collections")

        logger.info("Syncing listing sales...")
        for sale in await self.client.get_listing_sales(self.wallets, self.listing_sales_limit):
            await self.insert_sale(transform_listing_sale(sale, self.referral_address), dry_run)
            summary.sales += 1
        logger.info(f"Synced {summary.sales} sales")

        logger.info("Syncing open edition sales...")
        for edition in await self.client.get_open_edition_sales(self.wallets):
            token = edition["token"]
            for sale in self._mint_sales(token["name"], token["fa_contract"], edition["tokens"]):
                await self.insert_sale(sale, dry_run)
                summary.open_edition_sales += 1
        logger.info(f"Synced {summary.open_edition_sales} open edition sales")

        logger.info("Syncing generative collection sales...")
        for fa in await self.client.get_generative_sales(self.wallets):
            for sale in self._mint_sales(fa["name"], fa["contract"], fa.get("tokens") or []):
                await self.insert_sale(sale, dry_run)
                summary.generative_sales += 1
        logger.info(f"Synced {summary.generative_sales} generative sales")

        if dry_run:
            logger.info(f"Dry run complete, would have synced {summary.total} items")
        else:
            logger.info(f"Sync complete, total items synced: {summary.total}")
        return summary
