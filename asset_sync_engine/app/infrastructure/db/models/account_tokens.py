from __future__ import annotations

from datetime import datetime

from sqlalchemy import (
    BigInteger,
    Boolean,
    DateTime,
    Float,
    Index,
    Integer,
    PrimaryKeyConstraint,
    Text,
)
from sqlalchemy.orm import Mapped, mapped_column

from asset_sync_engine.app.infrastructure.db.db_base import BaseDB


class AccountTokensDB(BaseDB):
    """
    Reconciled token holdings per account.

    One row = one token_slug per (chain_id, account_address).
    Balances and prices are stored as text to keep arbitrary precision;
    synced_by_chain_at is epoch milliseconds (NULL unless the balance came
    from a direct chain read).
    """

    __tablename__ = "account_tokens"
    __table_args__ = (
        PrimaryKeyConstraint("chain_id", "account_address", "token_slug"),
        Index("ix_account_tokens_account_type", "chain_id", "account_address", "token_type"),
        {"schema": "domain"},
    )

    chain_id: Mapped[int] = mapped_column(Integer, nullable=False)
    account_address: Mapped[str] = mapped_column(Text, nullable=False)
    token_slug: Mapped[str] = mapped_column(Text, nullable=False)

    token_type: Mapped[str] = mapped_column(Text, nullable=False)
    status: Mapped[str] = mapped_column(Text, nullable=False)

    symbol: Mapped[str] = mapped_column(Text, nullable=False)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    decimals: Mapped[int] = mapped_column(Integer, nullable=False)
    logo_url: Mapped[str | None] = mapped_column(Text, nullable=True)

    raw_balance: Mapped[str] = mapped_column(Text, nullable=False)
    price_usd: Mapped[str | None] = mapped_column(Text, nullable=True)
    price_usd_change_24h: Mapped[str | None] = mapped_column(Text, nullable=True)
    balance_usd: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)

    synced_by_chain_at: Mapped[int | None] = mapped_column(BigInteger, nullable=True)
    manually_status_changed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
    )
