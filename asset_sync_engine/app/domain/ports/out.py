from __future__ import annotations

from typing import Protocol, Sequence

from asset_sync_engine.app.domain.models import (
    IndexerToken,
    Network,
    PriceQuote,
    TokenRecord,
    TokenType,
)


class NetworkRegistry(Protocol):
    """
    Port resolving a chain id into its network configuration.

    Implementations must raise UnsupportedChainError for unknown chains.
    """

    async def get_network(self, chain_id: int) -> Network: ...


class IndexerClient(Protocol):
    """
    Port for the third-party indexer (balances + metadata per address).

    Implementations return raw rows as delivered by the indexer and raise
    IndexerError (or IndexerChainNotSupportedError) on any failure.
    Callers decide how to degrade.
    """

    async def fetch_account_tokens(
        self,
        *,
        chain_id: int,
        account_address: str,
    ) -> list[IndexerToken]:
        ...


class ChainBalanceReader(Protocol):
    """
    Direct on-chain balance read (fallback for the indexer).

    Returns the integer balance in base units, or None when the balance
    is unavailable (revert, provider error, unknown token slug).
    """

    async def fetch_balance(
        self,
        *,
        chain_id: int,
        token_slug: str,
        account_address: str,
    ) -> int | None:
        ...


class PriceOracle(Protocol):
    """
    Batched USD quotes for token contracts.

    Returned mapping is keyed by checksum address. Addresses without a
    quote are simply absent. Raises PriceOracleError on total failure.
    """

    async def fetch_prices(
        self,
        *,
        addresses: Sequence[str],
        chain_id: int,
    ) -> dict[str, PriceQuote]:
        ...


class TokenRepository(Protocol):
    """
    Durable store of reconciled token records.

    Scoped per (chain_id, account_address, token_type):
      - load_account_tokens returns a snapshot of the current records,
      - upsert_tokens writes all given records in one commit (idempotent).
    """

    async def load_account_tokens(
        self,
        *,
        chain_id: int,
        account_address: str,
        token_type: TokenType,
    ) -> list[TokenRecord]:
        ...

    async def upsert_tokens(self, records: Sequence[TokenRecord]) -> None: ...
