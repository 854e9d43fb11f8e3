from __future__ import annotations

import logging
import time
from typing import Callable, Final

from asset_sync_engine.app.application.services.reconcile_account_assets import (
    AccountAssetsReconciler,
)
from asset_sync_engine.app.application.services.single_flight import (
    TtlSingleFlightCache,
    make_cache_key,
)
from asset_sync_engine.app.domain.models import IndexerToken
from asset_sync_engine.app.domain.ports.out import IndexerClient
from asset_sync_engine.app.domain.tokens import to_checksum_address

logger = logging.getLogger(__name__)

SYNC_TTL_SECONDS: Final[float] = 40.0
INDEXER_TTL_SECONDS: Final[float] = 10.0


class MemoizedIndexerClient(IndexerClient):
    """
    IndexerClient decorator: memoizes raw indexer fetches per (chain_id, account).

    Failures are never cached; they propagate to the caller (the reconciler
    degrades them to an empty list) and the next call fetches again.
    """

    def __init__(self, inner: IndexerClient, *, cache: TtlSingleFlightCache[list[IndexerToken]]) -> None:
        self._inner = inner
        self._cache = cache

    async def fetch_account_tokens(
        self,
        *,
        chain_id: int,
        account_address: str,
    ) -> list[IndexerToken]:
        key = make_cache_key(chain_id, account_address)
        return await self._cache.get_or_run(
            key,
            lambda: self._inner.fetch_account_tokens(
                chain_id=chain_id,
                account_address=account_address,
            ),
        )


class AccountAssetsSyncController:
    """
    Entry point for account asset syncs.

    Owns both process-wide memos:
      - sync memo (40s): at most one reconciliation per (chain_id, account)
        per window; concurrent callers share the in-flight run,
      - indexer memo (10s): raw indexer fetches, shared with the reconciler.

    Create one per process (see the factory) and call `clear_caches()` in tests.
    """

    def __init__(
        self,
        *,
        reconciler: AccountAssetsReconciler,
        sync_cache: TtlSingleFlightCache[None],
        indexer_cache: TtlSingleFlightCache[list[IndexerToken]] | None = None,
    ) -> None:
        self._reconciler = reconciler
        self._sync_cache = sync_cache
        self._indexer_cache = indexer_cache

    @classmethod
    def create(
        cls,
        *,
        reconciler_factory: Callable[[IndexerClient], AccountAssetsReconciler],
        indexer: IndexerClient,
        sync_ttl_seconds: float = SYNC_TTL_SECONDS,
        indexer_ttl_seconds: float = INDEXER_TTL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ) -> "AccountAssetsSyncController":
        """
        Wire the memos around a reconciler.

        The reconciler is built with the memoized indexer so that the raw
        fetch cache is shared by every reconciliation.
        """
        indexer_cache: TtlSingleFlightCache[list[IndexerToken]] = TtlSingleFlightCache(
            name="indexer_account_tokens",
            ttl_seconds=indexer_ttl_seconds,
            clock=clock,
        )
        sync_cache: TtlSingleFlightCache[None] = TtlSingleFlightCache(
            name="sync_account_assets",
            ttl_seconds=sync_ttl_seconds,
            clock=clock,
        )
        reconciler = reconciler_factory(MemoizedIndexerClient(indexer, cache=indexer_cache))

        return cls(
            reconciler=reconciler,
            sync_cache=sync_cache,
            indexer_cache=indexer_cache,
        )

    async def sync_account_assets(
        self,
        *,
        chain_id: int,
        account_address: str,
    ) -> None:
        # Normalize first so "0xabc" and "0xAbC" share one flight
        account_address = to_checksum_address(account_address)
        key = make_cache_key(chain_id, account_address)

        await self._sync_cache.get_or_run(
            key,
            lambda: self._reconciler.reconcile(
                chain_id=chain_id,
                account_address=account_address,
            ),
        )

    def clear_caches(self) -> None:
        self._sync_cache.clear()
        if self._indexer_cache is not None:
            self._indexer_cache.clear()
        logger.debug("Account assets sync caches cleared")


async def sync_account_assets(
    *,
    controller: AccountAssetsSyncController,
    chain_id: int,
    account_address: str,
) -> None:
    if chain_id <= 0:
        raise ValueError("chain_id must be positive")
    if not account_address:
        raise ValueError("account_address must not be empty")

    await controller.sync_account_assets(
        chain_id=chain_id,
        account_address=account_address,
    )
