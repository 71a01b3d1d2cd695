"""objkt.com and TzKT data access."""

from nftbot.marketplace.objkt import ObjktClient
from nftbot.marketplace.sync import MarketplaceSync, SyncSummary
from nftbot.marketplace.tzkt import TzktClient

__all__ = ["MarketplaceSync", "ObjktClient", "SyncSummary", "TzktClient"]
