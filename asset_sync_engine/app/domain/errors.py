from __future__ import annotations


class AssetSyncError(Exception):
    """Base error for the account assets sync pipeline."""


class UnsupportedChainError(AssetSyncError, ValueError):
    def __init__(self, chain_id: int) -> None:
        super().__init__(f"Chain not supported: {chain_id!r}")
        self.chain_id = chain_id


class InvalidAccountAddressError(AssetSyncError, ValueError):
    def __init__(self, account_address: str) -> None:
        super().__init__(f"Invalid account address: {account_address!r}")
        self.account_address = account_address


class IndexerError(AssetSyncError):
    """Indexer request failed or returned an unusable payload."""


class IndexerChainNotSupportedError(IndexerError):
    def __init__(self, chain_id: int) -> None:
        super().__init__(f"Indexer does not support chain {chain_id!r}")
        self.chain_id = chain_id


class PriceOracleError(AssetSyncError):
    """Price quote request failed or returned an unusable payload."""
