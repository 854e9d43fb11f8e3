from __future__ import annotations

import os
from datetime import datetime, timezone

import pytest

os.environ.setdefault("PROJECT_NAME", "asset-sync-engine-tests")
os.environ.setdefault("POSTGRES_USER", "pytest")
os.environ.setdefault("POSTGRES_PASSWORD", "pytest")
os.environ.setdefault("POSTGRES_SERVER", "localhost")
os.environ.setdefault("POSTGRES_PORT", "5432")
os.environ.setdefault("POSTGRES_DB", "pytest")
os.environ.setdefault("INDEXER_API_URL", "https://indexer.test")
os.environ.setdefault("PRICE_API_URL", "https://prices.test")
os.environ.setdefault("RPC_URLS", '{"1": "https://rpc.test/1", "11155111": "https://rpc.test/sepolia"}')

from fakes import (  # noqa: E402
    ACCOUNT,
    FakeChainBalanceReader,
    FakeClock,
    FakeIndexerClient,
    FakePriceOracle,
)
from asset_sync_engine.app.application.services.reconcile_account_assets import (  # noqa: E402
    AccountAssetsReconciler,
)
from asset_sync_engine.app.infrastructure.adapters.memory_tokens_repository import (  # noqa: E402
    InMemoryTokenRepository,
)
from asset_sync_engine.app.infrastructure.registry.networks import StaticNetworkRegistry  # noqa: E402


@pytest.fixture()
def account() -> str:
    return ACCOUNT


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock(datetime(2026, 10, 19, 12, 0, tzinfo=timezone.utc))


@pytest.fixture()
def indexer() -> FakeIndexerClient:
    return FakeIndexerClient()


@pytest.fixture()
def chain_reader() -> FakeChainBalanceReader:
    return FakeChainBalanceReader()


@pytest.fixture()
def price_oracle() -> FakePriceOracle:
    return FakePriceOracle()


@pytest.fixture()
def repository() -> InMemoryTokenRepository:
    return InMemoryTokenRepository()


@pytest.fixture()
def networks() -> StaticNetworkRegistry:
    return StaticNetworkRegistry()


@pytest.fixture()
def reconciler(
    networks: StaticNetworkRegistry,
    indexer: FakeIndexerClient,
    chain_reader: FakeChainBalanceReader,
    price_oracle: FakePriceOracle,
    repository: InMemoryTokenRepository,
    clock: FakeClock,
) -> AccountAssetsReconciler:
    return AccountAssetsReconciler(
        networks=networks,
        indexer=indexer,
        chain_reader=chain_reader,
        price_oracle=price_oracle,
        repository=repository,
        clock=clock,
    )
