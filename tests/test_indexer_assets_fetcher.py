from __future__ import annotations

import httpx
import pytest

from asset_sync_engine.app.domain.errors import IndexerChainNotSupportedError, IndexerError
from asset_sync_engine.app.infrastructure.fetchers.indexer_assets_fetcher import HttpIndexerClient
from fakes import ACCOUNT, TOKEN_A, TOKEN_B


def _client(handler) -> httpx.AsyncClient:
    return httpx.AsyncClient(
        base_url="https://indexer.test",
        transport=httpx.MockTransport(handler),
    )


@pytest.mark.asyncio
async def test_fetch_account_tokens_parses_rows() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(
            200,
            json=[
                {
                    "contract_address": TOKEN_A,
                    "balance": 1500000000000000000,
                    "contract_ticker_symbol": "TKN",
                    "contract_name": "Token",
                    "contract_decimals": 18,
                    "quote": 3.0,
                    "quote_rate": 2.0,
                    "logo_url": None,
                    "unknown_field": "ignored",
                },
                {"contract_address": "0x0000000000000000000000000000000000000000", "native_token": True},
            ],
        )

    async with _client(handler) as http:
        rows = await HttpIndexerClient(client=http).fetch_account_tokens(
            chain_id=1,
            account_address=ACCOUNT,
        )

    assert seen[0].url.path == f"/u/v1/1/address/{ACCOUNT}/assets"
    assert seen[0].url.params["verified"] == "true"
    assert seen[0].url.params["_authAddress"] == ACCOUNT

    assert len(rows) == 2
    assert rows[0].balance == "1500000000000000000"
    assert rows[0].quote_rate == "2.0"
    assert rows[0].contract_decimals == 18
    assert rows[1].native_token is True
    assert rows[1].balance == "0"


@pytest.mark.asyncio
async def test_fetch_account_tokens_accepts_wrapped_payload() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"data": [{"contract_address": TOKEN_A, "balance": "5"}]})

    async with _client(handler) as http:
        rows = await HttpIndexerClient(client=http, api_version="/v2/").fetch_account_tokens(
            chain_id=137,
            account_address=ACCOUNT,
        )

    assert [r.balance for r in rows] == ["5"]


@pytest.mark.asyncio
async def test_unsupported_chain_fails_without_request() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise AssertionError("no request expected")

    async with _client(handler) as http:
        with pytest.raises(IndexerChainNotSupportedError):
            await HttpIndexerClient(client=http).fetch_account_tokens(
                chain_id=11155111,
                account_address=ACCOUNT,
            )


@pytest.mark.parametrize(
    "response",
    [
        httpx.Response(500, json={"error": "boom"}),
        httpx.Response(200, content=b"not json"),
        httpx.Response(200, json={"unexpected": True}),
        httpx.Response(200, json="not a list"),
    ],
)
@pytest.mark.asyncio
async def test_bad_responses_raise_indexer_error(response: httpx.Response) -> None:
    async with _client(lambda request: response) as http:
        with pytest.raises(IndexerError):
            await HttpIndexerClient(client=http).fetch_account_tokens(
                chain_id=1,
                account_address=ACCOUNT,
            )


@pytest.mark.asyncio
async def test_malformed_rows_are_skipped_and_good_rows_kept() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(
            200,
            json=[
                {"contract_address": TOKEN_B, "balance": "7", "contract_decimals": "n/a"},
                {"balance": "1"},
                "garbage",
                {"contract_address": TOKEN_A, "balance": "5", "contract_decimals": 6},
            ],
        )

    async with _client(handler) as http:
        rows = await HttpIndexerClient(client=http).fetch_account_tokens(
            chain_id=1,
            account_address=ACCOUNT,
        )

    assert [(r.contract_address, r.balance, r.contract_decimals) for r in rows] == [(TOKEN_A, "5", 6)]
