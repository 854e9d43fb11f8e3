from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Iterable, Mapping, Sequence

from sqlalchemy import select
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.ext.asyncio import AsyncEngine

from asset_sync_engine.app.domain.models import TokenRecord, TokenStatus, TokenType
from asset_sync_engine.app.domain.ports.out import TokenRepository
from asset_sync_engine.app.infrastructure.db.models.account_tokens import AccountTokensDB

logger = logging.getLogger(__name__)

_TABLE = AccountTokensDB.__table__
_KEY_COLUMNS = ("chain_id", "account_address", "token_slug")

_INSERTS = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}


def _chunks(seq: list[Any], size: int) -> Iterable[list[Any]]:
    for i in range(0, len(seq), size):
        yield seq[i : i + size]


def _to_millis(value: datetime | None) -> int | None:
    if value is None:
        return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return round(value.timestamp() * 1000)


def _from_millis(value: int | None) -> datetime | None:
    if value is None:
        return None
    seconds, millis = divmod(value, 1000)
    return datetime.fromtimestamp(seconds, tz=timezone.utc) + timedelta(milliseconds=millis)


def _to_row(record: TokenRecord, *, updated_at: datetime) -> dict[str, Any]:
    return {
        "chain_id": record.chain_id,
        "account_address": record.account_address,
        "token_slug": record.token_slug,
        "token_type": record.token_type.value,
        "status": record.status.value,
        "symbol": record.symbol,
        "name": record.name,
        "decimals": record.decimals,
        "logo_url": record.logo_url,
        "raw_balance": record.raw_balance,
        "price_usd": record.price_usd,
        "price_usd_change_24h": record.price_usd_change_24h,
        "balance_usd": record.balance_usd,
        "synced_by_chain_at": _to_millis(record.synced_by_chain_at),
        "manually_status_changed": record.manually_status_changed,
        "updated_at": updated_at,
    }


def _to_record(row: Mapping[str, Any]) -> TokenRecord:
    return TokenRecord(
        chain_id=row["chain_id"],
        account_address=row["account_address"],
        token_slug=row["token_slug"],
        token_type=TokenType(row["token_type"]),
        status=TokenStatus(row["status"]),
        symbol=row["symbol"],
        name=row["name"],
        decimals=row["decimals"],
        logo_url=row["logo_url"],
        raw_balance=row["raw_balance"],
        price_usd=row["price_usd"],
        price_usd_change_24h=row["price_usd_change_24h"],
        balance_usd=float(row["balance_usd"] or 0.0),
        synced_by_chain_at=_from_millis(row["synced_by_chain_at"]),
        manually_status_changed=bool(row["manually_status_changed"]),
    )


class SqlAlchemyTokenRepository(TokenRepository):
    """
    Token repository backed by domain.account_tokens.

    Strategy:
    - Snapshot = plain SELECT scoped by (chain_id, account_address, token_type).
    - Commit = INSERT ... ON CONFLICT (chain_id, account_address, token_slug)
      DO UPDATE for every staged record, in batches, inside one transaction.

    Writes are idempotent upserts; rows are never deleted here.
    """

    def __init__(
        self,
        engine: AsyncEngine,
        *,
        batch_size: int = 500,
    ) -> None:
        self._engine = engine
        self._batch_size = batch_size

    async def load_account_tokens(
        self,
        *,
        chain_id: int,
        account_address: str,
        token_type: TokenType,
    ) -> list[TokenRecord]:
        stmt = (
            select(_TABLE)
            .where(
                _TABLE.c.chain_id == chain_id,
                _TABLE.c.account_address == account_address,
                _TABLE.c.token_type == token_type.value,
            )
            .order_by(_TABLE.c.token_slug)
        )

        async with self._engine.connect() as conn:
            result = await conn.execute(stmt)
            rows = result.mappings().all()

        return [_to_record(r) for r in rows]

    async def upsert_tokens(self, records: Sequence[TokenRecord]) -> None:
        if not records:
            return

        try:
            insert = _INSERTS[self._engine.dialect.name]
        except KeyError:
            raise ValueError(f"Unsupported database dialect: {self._engine.dialect.name!r}")

        stmt = insert(_TABLE)
        stmt = stmt.on_conflict_do_update(
            index_elements=[_TABLE.c[name] for name in _KEY_COLUMNS],
            set_={
                column.name: stmt.excluded[column.name]
                for column in _TABLE.columns
                if column.name not in _KEY_COLUMNS
            },
        )

        # Keep a single timestamp per commit (nicer for debugging)
        updated_at = datetime.now(timezone.utc)
        payload = [_to_row(r, updated_at=updated_at) for r in records]

        async with self._engine.begin() as conn:
            for rows in _chunks(payload, self._batch_size):
                await conn.execute(stmt, rows)

        logger.info(
            "Upserted %s tokens into domain.account_tokens",
            len(payload),
        )
