"""Configuration schema using Pydantic."""

from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_WALLET = "tz1Qi77tcJn9foeHHP1QHj6UX1m1vLVLMbuY"


class TwitterConfig(BaseModel):
    """X/Twitter API credentials (OAuth 1.0a user context)."""

    api_key: str = ""
    api_secret: str = ""
    access_token: str = ""
    access_secret: str = ""
    bearer_token: str = ""
    api_base: str = "https://api.twitter.com/2"


class BotConfig(BaseModel):
    """Top-level bot switches."""

    enabled: bool = True
    debug: bool = False


class DatabaseConfig(BaseModel):
    """Relational store configuration."""

    url: str = "postgresql+asyncpg://localhost:5432/nftbot"
    echo: bool = False
    pool_size: int = 5


class LLMConfig(BaseModel):
    """Language model configuration."""

    api_key: str = ""
    api_base: str | None = None
    model: str = "o3-mini"
    max_tokens: int = 2000
    temperature: float | None = None


class ObjktConfig(BaseModel):
    """objkt.com GraphQL API configuration."""

    graphql_endpoint: str = "https://data.objkt.com/v3/graphql"


class TzktConfig(BaseModel):
    """TzKT REST API configuration."""

    api_url: str = "https://api.tzkt.io"


class WalletsConfig(BaseModel):
    """Watched artist wallets."""

    addresses: list[str] = Field(default_factory=lambda: [DEFAULT_WALLET])
    referral_address: str = DEFAULT_WALLET

    @field_validator("addresses", mode="before")
    @classmethod
    def parse_addresses(cls, value: object) -> list[str]:
        if isinstance(value, str):
            items = [item.strip() for item in value.split(",")]
            return [item for item in items if item]
        return value  # type: ignore[return-value]


class SchedulerConfig(BaseModel):
    """Schedule execution engine configuration."""

    min_interval_seconds: int = 60
    lock_backend: str = "auto"  # auto / advisory / lease
    lease_seconds: int = 1800
    shill_token_limit: int = 5


class Config(BaseSettings):
    """Root configuration for nftbot."""

    model_config = SettingsConfigDict(
        env_prefix="NFTBOT_",
        env_nested_delimiter="__",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    twitter: TwitterConfig = Field(default_factory=TwitterConfig)
    bot: BotConfig = Field(default_factory=BotConfig)
    database: DatabaseConfig = Field(default_factory=DatabaseConfig)
    llm: LLMConfig = Field(default_factory=LLMConfig)
    objkt: ObjktConfig = Field(default_factory=ObjktConfig)
    tzkt: TzktConfig = Field(default_factory=TzktConfig)
    wallets: WalletsConfig = Field(default_factory=WalletsConfig)
    scheduler: SchedulerConfig = Field(default_factory=SchedulerConfig)

    def has_twitter_credentials(self) -> bool:
        """Whether all four OAuth 1.0a values are configured."""
        tw = self.twitter
        return all((tw.api_key, tw.api_secret, tw.access_token, tw.access_secret))
