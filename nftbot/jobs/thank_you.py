"""Thank-you tweets for new sales."""

from dataclasses import dataclass, field

from loguru import logger
from sqlalchemy import select, update

from nftbot.channels.base import BaseChannel
from nftbot.db.database import Database
from nftbot.db.models import NftSaleRecord, TokenRecord
from nftbot.exceptions import PostingError
from nftbot.jobs import prompts
from nftbot.marketplace.sync import MarketplaceSync
from nftbot.providers.base import LLMProvider
from nftbot.utils.helpers import clean_twitter_handle, split_into_thread

TWEET_LIMIT = 280
# Room for the "i/N " prefix split_into_thread adds.
THREAD_PART_LIMIT = TWEET_LIMIT - 6


@dataclass
class PendingSale:
    sale_id: int
    token_name: str
    fa_contract: str
    token_id: str
    token_url: str
    buyer_twitter: str | None = None
    buyer_alias: str | None = None


@dataclass
class SaleBatch:
    """All unprocessed sales of one artwork, thanked in a single tweet."""

    token_name: str
    token_url: str
    buyers: list[str] = field(default_factory=list)
    sale_ids: list[int] = field(default_factory=list)


def batch_sales(sales: list[PendingSale]) -> list[SaleBatch]:
    """
    Group sales by token name, keeping first-seen order.

    Grouping by name covers both repeated sales of one token id and
    generative mints spread over many token ids. Buyers are mentioned by
    twitter handle when known, else by alias, each at most once.
    """
    batches: dict[str, SaleBatch] = {}
    for sale in sales:
        batch = batches.get(sale.token_name)
        if batch is None:
            batch = SaleBatch(token_name=sale.token_name, token_url=sale.token_url)
            batches[sale.token_name] = batch

        batch.sale_ids.append(sale.sale_id)
        mention = clean_twitter_handle(sale.buyer_twitter) or sale.buyer_alias
        if mention and mention not in batch.buyers:
            batch.buyers.append(mention)
    return list(batches.values())


class ThankYouJob:
    """Sync, then thank the buyers of every unprocessed sale."""

    def __init__(
        self,
        database: Database,
        sync: MarketplaceSync,
        provider: LLMProvider,
        channel: BaseChannel,
        model: str | None = None,
        max_tokens: int = 2000,
    ) -> None:
        self.database = database
        self.sync = sync
        self.provider = provider
        self.channel = channel
        self.model = model
        self.max_tokens = max_tokens

    async def fetch_unprocessed(self) -> list[PendingSale]:
        """Unprocessed sales joined with their token, oldest first."""
        stmt = (
            select(
                NftSaleRecord.sale_id,
                NftSaleRecord.token_name,
                NftSaleRecord.fa_contract,
                NftSaleRecord.token_id,
                TokenRecord.token_url,
                NftSaleRecord.buyer_twitter,
                NftSaleRecord.buyer_alias,
            )
            .join(
                TokenRecord,
                (NftSaleRecord.fa_contract == TokenRecord.fa_contract)
                & (NftSaleRecord.token_id == TokenRecord.token_id),
            )
            .where(NftSaleRecord.processed.is_(False))
            .order_by(NftSaleRecord.sale_ts.asc())
        )
        async with self.database.session() as session:
            rows = (await session.execute(stmt)).all()
        return [PendingSale(**row._asdict()) for row in rows]

    async def mark_processed(self, sale_ids: list[int]) -> None:
        if not sale_ids:
            return
        async with self.database.session() as session:
            await session.execute(
                update(NftSaleRecord).where(NftSaleRecord.sale_id.in_(sale_ids)).values(processed=True)
            )
            await session.commit()

    async def send(self, text: str) -> str:
        """
        Post a thank-you tweet, as a numbered reply chain when it is too long.

        Returns the id of the first tweet. A failed part raises PostingError;
        parts already posted stay up.
        """
        if len(text) <= TWEET_LIMIT:
            return await self.channel.post(text)

        parts = split_into_thread(text, max_length=THREAD_PART_LIMIT)
        logger.info(f"Tweet is {len(text)} chars, posting as {len(parts)} replies")
        first_id = last_id = await self.channel.post(parts[0])
        for part in parts[1:]:
            last_id = await self.channel.post(part, reply_to=last_id)
        return first_id

    async def run(self, dry_run: bool = False) -> None:
        logger.info("Starting thank-you tweet process")
        await self.sync.run(dry_run)

        sales = await self.fetch_unprocessed()
        logger.info(f"Found {len(sales)} unprocessed sales")
        if not sales:
            logger.info("No sales to thank")
            return

        batches = batch_sales(sales)
        logger.info(f"Batched into {len(batches)} thank-you tweets")

        succeeded = failed = 0
        for batch in batches:
            logger.info(
                f"Processing batch for '{batch.token_name}' "
                f"({len(batch.sale_ids)} sales, {len(batch.buyers)} buyers)"
            )
            text = await self.provider.complete(
                prompts.THANK_YOU_SYSTEM,
                prompts.thank_you_user(batch.token_name, " ".join(batch.buyers), batch.token_url),
                model=self.model,
                max_tokens=self.max_tokens,
            )
            if not text:
                logger.error(f"Failed to generate tweet for '{batch.token_name}'")
                failed += 1
                continue

            logger.info(f"Generated tweet ({len(text)} chars): {text}")
            if dry_run:
                logger.info("[DRY RUN] Would send tweet and mark as processed")
                succeeded += 1
                continue

            try:
                tweet_id = await self.send(text)
            except PostingError as e:
                logger.error(f"Failed to send tweet for '{batch.token_name}': {e}")
                failed += 1
                continue

            logger.info(f"Tweet sent: {tweet_id}")
            await self.mark_processed(batch.sale_ids)
            logger.info(f"Marked {len(batch.sale_ids)} sales as processed")
            succeeded += 1

        logger.info(f"Thank-you process complete: {succeeded} successful, {failed} failed")


async def mark_all_sales_processed(database: Database) -> int:
    """Mark every unprocessed sale as processed. Returns the row count."""
    async with database.session() as session:
        result = await session.execute(
            update(NftSaleRecord).where(NftSaleRecord.processed.is_(False)).values(processed=True)
        )
        await session.commit()
    count = result.rowcount or 0
    logger.info(f"Marked {count} sales as processed")
    return count
