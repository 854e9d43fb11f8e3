from __future__ import annotations

from typing import Callable, Dict

import httpx
from sqlalchemy.ext.asyncio import AsyncEngine
from web3 import AsyncHTTPProvider, AsyncWeb3

from asset_sync_engine.app.application.services.reconcile_account_assets import (
    AccountAssetsReconciler,
)
from asset_sync_engine.app.application.services.sync_account_assets import (
    AccountAssetsSyncController,
)
from asset_sync_engine.app.config import settings
from asset_sync_engine.app.domain.ports.out import IndexerClient, TokenRepository
from asset_sync_engine.app.infrastructure.adapters.account_tokens_repository import (
    SqlAlchemyTokenRepository,
)
from asset_sync_engine.app.infrastructure.adapters.memory_tokens_repository import (
    InMemoryTokenRepository,
)
from asset_sync_engine.app.infrastructure.fetchers.dex_prices_fetcher import HttpDexPriceOracle
from asset_sync_engine.app.infrastructure.fetchers.erc20_balance_fetcher import (
    Web3Erc20BalanceReader,
)
from asset_sync_engine.app.infrastructure.fetchers.indexer_assets_fetcher import (
    HttpIndexerClient,
)
from asset_sync_engine.app.infrastructure.registry.networks import StaticNetworkRegistry

TokenRepositoryFactory = Callable[[AsyncEngine | None], TokenRepository]

_TOKEN_REPOSITORY_REGISTRY: Dict[str, TokenRepositoryFactory] = {
    "sqlalchemy": lambda engine: SqlAlchemyTokenRepository(engine=_require_engine(engine)),
    "memory": lambda engine: InMemoryTokenRepository(),
}


def _require_engine(engine: AsyncEngine | None) -> AsyncEngine:
    if engine is None:
        raise ValueError("sqlalchemy backend requires an engine")
    return engine


class AsyncWeb3Pool:
    """One AsyncWeb3 per chain id, created lazily from settings.rpc_url()."""

    def __init__(self, *, timeout: float) -> None:
        self._timeout = timeout
        self._instances: dict[int, AsyncWeb3] = {}

    def __call__(self, chain_id: int) -> AsyncWeb3:
        w3 = self._instances.get(chain_id)
        if w3 is None:
            w3 = AsyncWeb3(
                AsyncHTTPProvider(
                    settings.rpc_url(chain_id),
                    request_kwargs={"timeout": self._timeout},
                )
            )
            self._instances[chain_id] = w3
        return w3


def create_indexer_http_client() -> httpx.AsyncClient:
    return httpx.AsyncClient(
        base_url=str(settings.indexer_api_url),
        timeout=settings.indexer_timeout_seconds,
    )


def create_price_http_client() -> httpx.AsyncClient:
    return httpx.AsyncClient(
        base_url=str(settings.price_api_url),
        timeout=settings.price_timeout_seconds,
    )


def account_assets_sync_factory(
    *,
    backend: str,
    engine: AsyncEngine | None,
    indexer_http: httpx.AsyncClient,
    price_http: httpx.AsyncClient,
) -> AccountAssetsSyncController:
    """
    Create the account assets sync controller for the given repository backend.

    The factory wires:
    - static network registry (+ RPC urls from settings),
    - httpx indexer client, memoized by the controller,
    - web3 ERC-20 balance reader (one AsyncWeb3 per chain),
    - httpx price oracle client,
    - token repository (sqlalchemy or memory).

    HTTP clients are owned by the caller and must be closed by it.
    """
    try:
        repository_factory = _TOKEN_REPOSITORY_REGISTRY[backend]
    except KeyError:
        raise ValueError(f"Unsupported token repository backend: {backend!r}")

    repository = repository_factory(engine)
    networks = StaticNetworkRegistry(rpc_urls=settings.rpc_urls)
    chain_reader = Web3Erc20BalanceReader(
        w3_provider=AsyncWeb3Pool(timeout=settings.rpc_timeout_seconds),
    )
    price_oracle = HttpDexPriceOracle(
        client=price_http,
        batch_size=settings.price_batch_size,
    )
    indexer = HttpIndexerClient(
        client=indexer_http,
        api_version=settings.indexer_api_version,
    )

    def _make_reconciler(memoized_indexer: IndexerClient) -> AccountAssetsReconciler:
        return AccountAssetsReconciler(
            networks=networks,
            indexer=memoized_indexer,
            chain_reader=chain_reader,
            price_oracle=price_oracle,
            repository=repository,
        )

    return AccountAssetsSyncController.create(
        reconciler_factory=_make_reconciler,
        indexer=indexer,
        sync_ttl_seconds=settings.sync_ttl_seconds,
        indexer_ttl_seconds=settings.indexer_ttl_seconds,
    )
