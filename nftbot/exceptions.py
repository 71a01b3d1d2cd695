"""Error taxonomy for nftbot."""


class NftBotError(Exception):
    """Base class for all nftbot errors."""


class ConfigurationError(NftBotError):
    """The bot or a schedule is misconfigured."""


class InvalidScheduleError(ConfigurationError):
    """A cron pattern or timezone cannot produce a next run instant."""

    def __init__(self, cron_pattern: str, timezone: str, reason: str) -> None:
        self.cron_pattern = cron_pattern
        self.timezone = timezone
        self.reason = reason
        super().__init__(f"Invalid schedule {cron_pattern!r} ({timezone}): {reason}")


class MarketplaceError(NftBotError):
    """A marketplace or indexer API request failed."""


class PostingError(NftBotError):
    """Posting to the social channel failed."""
