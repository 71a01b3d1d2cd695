"""Composition root: builds every collaborator from the root config."""

from dataclasses import dataclass
from datetime import timedelta

from loguru import logger

from nftbot.channels.twitter import TwitterChannel
from nftbot.config.schema import Config
from nftbot.db.database import Database
from nftbot.jobs.shill_thread import ShillThreadJob
from nftbot.jobs.thank_you import ThankYouJob
from nftbot.marketplace.objkt import ObjktClient
from nftbot.marketplace.sync import MarketplaceSync
from nftbot.marketplace.tzkt import TzktClient
from nftbot.providers.litellm_provider import LiteLLMProvider
from nftbot.scheduler.executor import JobExecutor
from nftbot.scheduler.locks import LockManager, create_lock_manager
from nftbot.scheduler.recurrence import RecurrenceCalculator
from nftbot.scheduler.registry import JobRegistry
from nftbot.scheduler.store import ScheduleStore
from nftbot.scheduler.supervisor import SchedulerSupervisor
from nftbot.scheduler.types import ScheduleType
from nftbot.utils.helpers import format_error


@dataclass
class CheckResult:
    service: str
    ok: bool
    detail: str


class BotRuntime:
    """Owns the database handle, the API clients and the scheduler parts."""

    def __init__(
        self,
        config: Config,
        database: Database,
        calculator: RecurrenceCalculator,
        store: ScheduleStore,
        locks: LockManager,
        objkt: ObjktClient,
        tzkt: TzktClient,
        provider: LiteLLMProvider,
        channel: TwitterChannel,
        sync: MarketplaceSync,
        thank_you: ThankYouJob,
        shill: ShillThreadJob,
        registry: JobRegistry,
        executor: JobExecutor,
    ) -> None:
        self.config = config
        self.database = database
        self.calculator = calculator
        self.store = store
        self.locks = locks
        self.objkt = objkt
        self.tzkt = tzkt
        self.provider = provider
        self.channel = channel
        self.sync = sync
        self.thank_you = thank_you
        self.shill = shill
        self.registry = registry
        self.executor = executor

    @classmethod
    def from_config(cls, config: Config) -> "BotRuntime":
        """Create a runtime from the root config."""
        database = Database(config.database.url, echo=config.database.echo, pool_size=config.database.pool_size)
        calculator = RecurrenceCalculator()
        store = ScheduleStore(database, calculator)
        locks = create_lock_manager(
            database,
            backend=config.scheduler.lock_backend,
            lease_seconds=config.scheduler.lease_seconds,
        )

        objkt = ObjktClient(config.objkt.graphql_endpoint)
        tzkt = TzktClient(config.tzkt.api_url)
        provider = LiteLLMProvider(
            api_key=config.llm.api_key or None,
            api_base=config.llm.api_base,
            default_model=config.llm.model,
        )
        channel = TwitterChannel(
            api_key=config.twitter.api_key,
            api_secret=config.twitter.api_secret,
            access_token=config.twitter.access_token,
            access_secret=config.twitter.access_secret,
            api_base=config.twitter.api_base,
        )

        sync = MarketplaceSync(database, objkt, config.wallets.addresses, config.wallets.referral_address)
        thank_you = ThankYouJob(
            database, sync, provider, channel, model=config.llm.model, max_tokens=config.llm.max_tokens
        )
        shill = ShillThreadJob(
            database,
            sync,
            provider,
            channel,
            model=config.llm.model,
            max_tokens=config.llm.max_tokens,
            token_limit=config.scheduler.shill_token_limit,
        )

        registry = JobRegistry({ScheduleType.THANK.value: thank_you.run, ScheduleType.SHILL.value: shill.run})
        executor = JobExecutor(
            store,
            locks,
            registry,
            calculator,
            min_interval=timedelta(seconds=config.scheduler.min_interval_seconds),
        )

        return cls(
            config=config,
            database=database,
            calculator=calculator,
            store=store,
            locks=locks,
            objkt=objkt,
            tzkt=tzkt,
            provider=provider,
            channel=channel,
            sync=sync,
            thank_you=thank_you,
            shill=shill,
            registry=registry,
            executor=executor,
        )

    def supervisor(self) -> SchedulerSupervisor:
        return SchedulerSupervisor(
            self.database, self.store, self.locks, self.executor, self.calculator, self.registry
        )

    async def aclose(self) -> None:
        """Close HTTP clients and the database pool."""
        await self.objkt.aclose()
        await self.tzkt.aclose()
        await self.channel.stop()
        await self.database.close()

    async def check_connections(self) -> list[CheckResult]:
        """Probe every external service once; failures are reported, not raised."""
        results: list[CheckResult] = []

        async def check_service(service: str, coro) -> None:
            try:
                detail = await coro
            except Exception as e:
                logger.error(f"{service} connection failed: {e}")
                results.append(CheckResult(service, False, format_error(e)))
                return
            logger.info(f"{service} connection successful")
            results.append(CheckResult(service, True, detail))

        async def database() -> str:
            info = await self.database.ping()
            return f"{info['version']} at {info['time']}"

        async def llm() -> str:
            response = await self.provider.chat(
                [{"role": "user", "content": "Reply with OK."}],
                max_tokens=self.config.llm.max_tokens,
            )
            return f"{self.provider.get_default_model()}: {(response.content or '').strip()[:40]}"

        async def objkt() -> str:
            count = await self.objkt.ping()
            return f"{self.objkt.endpoint} returned {count} token(s)"

        async def tzkt() -> str:
            head = await self.tzkt.head()
            return f"block {head.get('level')} at {head.get('timestamp')}"

        async def twitter() -> str:
            me = await self.channel.me()
            return f"@{me.get('username')} ({me.get('id')})"

        await check_service("Database", database())
        await check_service("LLM", llm())
        await check_service("objkt", objkt())
        await check_service("TzKT", tzkt())
        if self.config.has_twitter_credentials():
            await check_service("Twitter", twitter())
        else:
            results.append(CheckResult("Twitter", False, "credentials not configured"))
        return results
