from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, field_validator


class TokenType(str, Enum):
    ASSET = "ASSET"


class TokenStatus(str, Enum):
    ENABLED = "ENABLED"
    DISABLED = "DISABLED"


class TokenStandard(str, Enum):
    ERC20 = "ERC20"


NetworkType = Literal["mainnet", "testnet"]


@dataclass(frozen=True)
class Network:
    chain_id: int
    name: str
    type: NetworkType
    rpc_url: str | None = None

    @property
    def is_mainnet(self) -> bool:
        return self.type == "mainnet"


@dataclass
class TokenRecord:
    """
    Reconciled fungible token holding of one account on one chain.

    One record = one (chain_id, account_address, token_slug).

    Volumes:
      - raw_balance: non-negative integer in base units (decimal string)
      - price_usd / price_usd_change_24h: decimal strings, None when unknown
      - balance_usd: raw_balance / 10**decimals * price_usd (capped by reserve)

    synced_by_chain_at is only set when raw_balance came from a direct
    chain read. manually_status_changed freezes automatic enable/disable.
    """

    chain_id: int
    account_address: str
    token_slug: str
    token_type: TokenType = TokenType.ASSET
    status: TokenStatus = TokenStatus.ENABLED

    symbol: str = "NONAME"
    name: str = "Unknown"
    decimals: int = 18
    logo_url: str | None = None

    raw_balance: str = "0"
    price_usd: str | None = None
    price_usd_change_24h: str | None = None
    balance_usd: float = 0.0

    synced_by_chain_at: datetime | None = None
    manually_status_changed: bool = False


class IndexerToken(BaseModel):
    """Raw token row as returned by the indexer assets endpoint."""

    model_config = ConfigDict(extra="ignore")

    contract_address: str
    native_token: bool | None = None
    balance: str = "0"
    contract_ticker_symbol: str | None = None
    contract_name: str | None = None
    contract_decimals: int | None = None
    logo_url: str | None = None
    quote: float | None = None
    quote_rate: str | None = None
    quote_rate_24h: str | None = None

    @field_validator("balance", "quote_rate", "quote_rate_24h", mode="before")
    @classmethod
    def _number_to_str(cls, value: Any) -> Any:
        # indexer sends numbers for some chains; keep full precision as text
        if isinstance(value, bool):
            return value
        if isinstance(value, (int, float)):
            return str(value)
        return value

    @field_validator("balance", mode="before")
    @classmethod
    def _missing_balance_is_zero(cls, value: Any) -> Any:
        return "0" if value is None else value


@dataclass(frozen=True)
class PriceQuote:
    usd: Decimal
    usd_24h_change: Decimal | None = None
    usd_reserve: Decimal | None = None
