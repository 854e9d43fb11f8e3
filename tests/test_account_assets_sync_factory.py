from __future__ import annotations

import httpx
import pytest

from asset_sync_engine.app.config import settings
from asset_sync_engine.app.domain.errors import UnsupportedChainError
from asset_sync_engine.app.infrastructure.factories.account_assets_sync_factory import (
    account_assets_sync_factory,
)
from fakes import ACCOUNT, TOKEN_A


def test_settings_expose_rpc_urls() -> None:
    assert settings.rpc_url(1) == "https://rpc.test/1"
    assert settings.database_url.startswith("postgresql+asyncpg://")

    with pytest.raises(UnsupportedChainError):
        settings.rpc_url(424242)


def test_unknown_backend_is_rejected() -> None:
    with pytest.raises(ValueError):
        account_assets_sync_factory(
            backend="mongo",
            engine=None,
            indexer_http=httpx.AsyncClient(),
            price_http=httpx.AsyncClient(),
        )


def test_sqlalchemy_backend_requires_engine() -> None:
    with pytest.raises(ValueError):
        account_assets_sync_factory(
            backend="sqlalchemy",
            engine=None,
            indexer_http=httpx.AsyncClient(),
            price_http=httpx.AsyncClient(),
        )


@pytest.mark.asyncio
async def test_memory_backend_wires_http_sources() -> None:
    requests: list[str] = []

    def indexer_handler(request: httpx.Request) -> httpx.Response:
        requests.append(request.url.path)
        return httpx.Response(
            200,
            json=[
                {
                    "contract_address": TOKEN_A,
                    "balance": "2000000",
                    "contract_ticker_symbol": "USDX",
                    "contract_decimals": 6,
                }
            ],
        )

    def price_handler(request: httpx.Request) -> httpx.Response:
        requests.append(request.url.path)
        return httpx.Response(200, json={TOKEN_A: {"usd": 1}})

    async with httpx.AsyncClient(
        base_url="https://indexer.test", transport=httpx.MockTransport(indexer_handler)
    ) as indexer_http, httpx.AsyncClient(
        base_url="https://prices.test", transport=httpx.MockTransport(price_handler)
    ) as price_http:
        controller = account_assets_sync_factory(
            backend="memory",
            engine=None,
            indexer_http=indexer_http,
            price_http=price_http,
        )

        await controller.sync_account_assets(chain_id=1, account_address=ACCOUNT)
        await controller.sync_account_assets(chain_id=1, account_address=ACCOUNT)

    assert requests == [f"/u/v1/1/address/{ACCOUNT}/assets", "/v1/1/prices"]
