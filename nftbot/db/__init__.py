"""Relational store: engine handle and ORM models."""

from nftbot.db.database import Database
from nftbot.db.models import Base, NftSaleRecord, ScheduleLockRecord, ScheduleRecord, TokenRecord

__all__ = [
    "Base",
    "Database",
    "NftSaleRecord",
    "ScheduleLockRecord",
    "ScheduleRecord",
    "TokenRecord",
]
