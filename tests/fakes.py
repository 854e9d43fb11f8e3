from __future__ import annotations

import asyncio
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Any, Sequence

from asset_sync_engine.app.domain.models import IndexerToken, PriceQuote, TokenRecord
from asset_sync_engine.app.domain.tokens import create_token_slug

# Digit-only addresses are their own EIP-55 checksum form
ACCOUNT = "0x1111111111111111111111111111111111111111"
TOKEN_A = "0x2222222222222222222222222222222222222222"
TOKEN_B = "0x3333333333333333333333333333333333333333"
TOKEN_C = "0x4444444444444444444444444444444444444444"
ZERO = "0x0000000000000000000000000000000000000000"
DEAD_LOWER = "0xdeaddeaddeaddeaddeaddeaddeaddeaddead0000"


def slug(address: str) -> str:
    return create_token_slug(address=address)


def indexer_row(address: str, **overrides: Any) -> IndexerToken:
    data: dict[str, Any] = {
        "contract_address": address,
        "balance": "1000000000000000000",
        "contract_ticker_symbol": "TKN",
        "contract_name": "Token",
        "contract_decimals": 18,
    }
    data.update(overrides)
    return IndexerToken.model_validate(data)


def make_record(address: str, *, chain_id: int = 1, account: str = ACCOUNT, **overrides: Any) -> TokenRecord:
    data: dict[str, Any] = {
        "chain_id": chain_id,
        "account_address": account,
        "token_slug": slug(address),
        "symbol": "OLD",
        "name": "Old Token",
        "decimals": 18,
        "raw_balance": "1000000000000000000",
    }
    data.update(overrides)
    return TokenRecord(**data)


def quote(usd: str, *, change: str | None = None, reserve: str | None = None) -> PriceQuote:
    return PriceQuote(
        usd=Decimal(usd),
        usd_24h_change=Decimal(change) if change is not None else None,
        usd_reserve=Decimal(reserve) if reserve is not None else None,
    )


class FakeClock:
    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> None:
        self.now += timedelta(**kwargs)


class FakeMonotonic:
    def __init__(self, start: float = 1_000.0) -> None:
        self.value = start

    def __call__(self) -> float:
        return self.value

    def advance(self, seconds: float) -> None:
        self.value += seconds


class FakeIndexerClient:
    def __init__(self, rows: Sequence[IndexerToken] = ()) -> None:
        self.rows = list(rows)
        self.error: Exception | None = None
        self.calls: list[tuple[int, str]] = []
        self.gate: asyncio.Event | None = None

    async def fetch_account_tokens(self, *, chain_id: int, account_address: str) -> list[IndexerToken]:
        self.calls.append((chain_id, account_address))
        if self.gate is not None:
            await self.gate.wait()
        if self.error is not None:
            raise self.error
        return list(self.rows)


class FakeChainBalanceReader:
    def __init__(self, balances: dict[str, int | None] | None = None) -> None:
        self.balances = dict(balances or {})
        self.errors: dict[str, Exception] = {}
        self.calls: list[str] = []

    async def fetch_balance(self, *, chain_id: int, token_slug: str, account_address: str) -> int | None:
        self.calls.append(token_slug)
        if token_slug in self.errors:
            raise self.errors[token_slug]
        return self.balances.get(token_slug)


class FakePriceOracle:
    def __init__(self, quotes: dict[str, PriceQuote] | None = None) -> None:
        self.quotes = dict(quotes or {})
        self.error: Exception | None = None
        self.calls: list[list[str]] = []

    async def fetch_prices(self, *, addresses: Sequence[str], chain_id: int) -> dict[str, PriceQuote]:
        self.calls.append(list(addresses))
        if self.error is not None:
            raise self.error
        return {a: q for a, q in self.quotes.items() if a in addresses}
