from __future__ import annotations

import logging
from typing import Any, Final

import httpx
from pydantic import TypeAdapter, ValidationError

from asset_sync_engine.app.domain.errors import IndexerChainNotSupportedError, IndexerError
from asset_sync_engine.app.domain.models import IndexerToken
from asset_sync_engine.app.domain.ports.out import IndexerClient

logger = logging.getLogger(__name__)

# Chains served by the indexer assets endpoint
INDEXER_CHAINS: Final[frozenset[int]] = frozenset(
    {
        1, 56, 137, 42220, 8217, 25, 106, 42161, 43114, 50, 32769, 250, 122,
        1313161554, 1088, 5000, 1101, 1284, 10, 8453, 34443, 169,
    }
)

_TOKEN_ADAPTER: Final[TypeAdapter[IndexerToken]] = TypeAdapter(IndexerToken)


class HttpIndexerClient(IndexerClient):
    """
    Indexer client over httpx.

    GET /{version}/{chain_id}/address/{account}/assets?verified=true

    The httpx client is owned by the caller (base_url, timeouts, transport).
    Allow-list misses, transport errors, non-2xx responses and payloads that
    are not a list of rows are raised as IndexerError. Individual rows that
    fail validation are logged and skipped.
    """

    def __init__(
        self,
        *,
        client: httpx.AsyncClient,
        api_version: str = "u/v1",
        supported_chains: frozenset[int] = INDEXER_CHAINS,
    ) -> None:
        self._client = client
        self._api_version = api_version.strip("/")
        self._supported_chains = supported_chains

    async def fetch_account_tokens(
        self,
        *,
        chain_id: int,
        account_address: str,
    ) -> list[IndexerToken]:
        if chain_id not in self._supported_chains:
            raise IndexerChainNotSupportedError(chain_id)

        path = f"/{self._api_version}/{chain_id}/address/{account_address}/assets"

        try:
            response = await self._client.get(
                path,
                params={"_authAddress": account_address, "verified": "true"},
            )
            response.raise_for_status()
            payload: Any = response.json()
        except (httpx.HTTPError, ValueError) as exc:
            raise IndexerError(f"Indexer request failed for chain {chain_id}: {exc}") from exc

        # Some deployments wrap the list: {"data": [...]}
        if isinstance(payload, dict):
            payload = payload.get("data", payload.get("items"))

        if not isinstance(payload, list):
            raise IndexerError(f"Unexpected indexer payload for chain {chain_id}")

        tokens: list[IndexerToken] = []
        skipped = 0

        # One malformed row must not hide the rest of the account
        for row in payload:
            try:
                tokens.append(_TOKEN_ADAPTER.validate_python(row))
            except ValidationError as exc:
                skipped += 1
                logger.warning(
                    "Skipping malformed indexer row: %s",
                    exc.errors(include_url=False),
                    extra={"chain_id": chain_id, "account_address": account_address},
                )

        logger.debug(
            "Fetched %s indexer rows (%s skipped)",
            len(tokens),
            skipped,
            extra={"chain_id": chain_id, "account_address": account_address},
        )
        return tokens
