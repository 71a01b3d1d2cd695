"""ORM models for schedules, locks, tokens and sales."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import BigInteger, Boolean, DateTime, Index, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.sql import func


class Base(DeclarativeBase):
    pass


class ScheduleRecord(Base):
    """A persisted recurring job definition."""

    __tablename__ = "schedules"
    __table_args__ = (
        Index("idx_schedules_type_enabled", "type", "enabled"),
        Index("idx_schedules_next_run", "next_run_at"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    # No CHECK constraint: new job kinds only need a registry entry.
    type: Mapped[str] = mapped_column(String(50), nullable=False)
    cron_pattern: Mapped[str] = mapped_column(String(255), nullable=False)
    timezone: Mapped[str] = mapped_column(String(100), nullable=False, default="UTC", server_default="UTC")
    enabled: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, server_default="1")
    last_run_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    next_run_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False
    )

    def __repr__(self) -> str:
        return f"<ScheduleRecord id={self.id!r} type={self.type!r} cron={self.cron_pattern!r}>"


class ScheduleLockRecord(Base):
    """Row lease used when the database has no advisory locks."""

    __tablename__ = "schedule_locks"

    schedule_id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=False)
    holder: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    acquired_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)


class TokenRecord(Base):
    """An NFT token synced from objkt.com."""

    __tablename__ = "tokens"
    __table_args__ = (
        UniqueConstraint("token_id", "fa_contract", name="tokens_unique_contract_token"),
        Index("idx_tokens_timestamp", "timestamp"),
        Index("idx_tokens_contract", "fa_contract"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    token_id: Mapped[str] = mapped_column(String(255), nullable=False)
    fa_contract: Mapped[str] = mapped_column(String(255), nullable=False)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    description: Mapped[str | None] = mapped_column(Text)
    supply: Mapped[int | None] = mapped_column(Integer, default=1)
    timestamp: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    last_listed: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    listing_amount: Mapped[int | None] = mapped_column(Integer)
    listing_amount_left: Mapped[int | None] = mapped_column(Integer)
    listing_price_xtz: Mapped[int | None] = mapped_column(BigInteger)
    token_url: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False
    )


class NftSaleRecord(Base):
    """A sale or mint of one of the artist's tokens."""

    __tablename__ = "nft_sales"
    __table_args__ = (
        Index("idx_nft_sales_processed", "processed"),
        Index("idx_nft_sales_timestamp", "sale_ts"),
        Index("idx_nft_sales_token", "fa_contract", "token_id"),
    )

    sale_id: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=False)
    token_name: Mapped[str] = mapped_column(Text, nullable=False)
    fa_contract: Mapped[str] = mapped_column(String(255), nullable=False)
    token_id: Mapped[str] = mapped_column(String(255), nullable=False)
    buyer_alias: Mapped[str | None] = mapped_column(String(255))
    buyer_twitter: Mapped[str | None] = mapped_column(Text)
    processed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default="0")
    sale_ts: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
