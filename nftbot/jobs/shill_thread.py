"""Weekly self-promotion thread."""

from loguru import logger
from sqlalchemy import select

from nftbot.channels.twitter import TwitterChannel
from nftbot.db.database import Database
from nftbot.db.models import TokenRecord
from nftbot.exceptions import PostingError
from nftbot.jobs import prompts
from nftbot.marketplace.sync import MarketplaceSync
from nftbot.providers.base import LLMProvider


class ShillThreadJob:
    """Sync, then post an intro tweet followed by one tweet per recent token."""

    def __init__(
        self,
        database: Database,
        sync: MarketplaceSync,
        provider: LLMProvider,
        channel: TwitterChannel,
        model: str | None = None,
        max_tokens: int = 2000,
        token_limit: int = 5,
    ) -> None:
        self.database = database
        self.sync = sync
        self.provider = provider
        self.channel = channel
        self.model = model
        self.max_tokens = max_tokens
        self.token_limit = token_limit

    async def recent_tokens(self) -> list[TokenRecord]:
        async with self.database.session() as session:
            result = await session.scalars(
                select(TokenRecord).order_by(TokenRecord.timestamp.desc()).limit(self.token_limit)
            )
            return list(result)

    async def _generate(self, system: str, user: str) -> str | None:
        return await self.provider.complete(system, user, model=self.model, max_tokens=self.max_tokens)

    async def build_thread(self, tokens: list[TokenRecord]) -> list[str]:
        """
        Generate the thread text.

        Returns an empty list when the intro or every token tweet failed.
        """
        intro = await self._generate(prompts.SHILL_INTRO_SYSTEM, prompts.SHILL_INTRO_USER)
        if not intro:
            logger.error("Failed to generate intro tweet")
            return []
        logger.info(f"Generated intro ({len(intro)} chars): {intro}")

        token_tweets = []
        for token in tokens:
            tweet = await self._generate(
                prompts.SHILL_TOKEN_SYSTEM,
                prompts.shill_token_user(token.name, token.description, token.token_url),
            )
            if not tweet:
                logger.error(f"Failed to generate tweet for '{token.name}'")
                continue
            logger.info(f"Generated tweet ({len(tweet)} chars): {tweet}")
            token_tweets.append(tweet)

        if not token_tweets:
            logger.error("Failed to generate any token tweets")
            return []
        return [intro, *token_tweets]

    async def run(self, dry_run: bool = False) -> None:
        """
        Raises:
            PostingError: The thread stopped part-way through posting.
        """
        logger.info("Starting weekly shill thread process")
        await self.sync.run(dry_run)

        tokens = await self.recent_tokens()
        logger.info(f"Found {len(tokens)} tokens")
        if not tokens:
            logger.info("No tokens found")
            return
        for token in tokens:
            logger.info(f"  - {token.name} ({token.timestamp:%Y-%m-%d})")

        thread = await self.build_thread(tokens)
        if not thread:
            return
        logger.info(f"Thread compiled: {len(thread)} tweets total")

        if dry_run:
            logger.info("[DRY RUN] Would post thread:")
            for i, tweet in enumerate(thread, start=1):
                logger.info(f"[{i}/{len(thread)}] {tweet}")
            return

        if not await self.channel.post_thread(thread):
            raise PostingError("Thread posting failed")
        logger.info("Thread posted successfully")
