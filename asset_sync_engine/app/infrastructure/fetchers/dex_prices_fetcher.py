from __future__ import annotations

import asyncio
import logging
from typing import Any, Iterable, Sequence

import httpx

from asset_sync_engine.app.domain.errors import InvalidAccountAddressError, PriceOracleError
from asset_sync_engine.app.domain.models import PriceQuote
from asset_sync_engine.app.domain.ports.out import PriceOracle
from asset_sync_engine.app.domain.tokens import parse_decimal, to_checksum_address

logger = logging.getLogger(__name__)


def _chunks(seq: Sequence[str], size: int) -> Iterable[Sequence[str]]:
    for i in range(0, len(seq), size):
        yield seq[i : i + size]


class HttpDexPriceOracle(PriceOracle):
    """
    Batched USD quotes over httpx.

    GET /v1/{chain_id}/prices?addresses=0x..,0x..

    Response body maps contract address -> quote:
        {"0xabc...": {"usd": 1.02, "usd_24h_change": -0.4, "usd_reserve": 15000.0}}

    Addresses are requested in chunks of `batch_size` concurrently. A failed
    chunk fails the whole call (PriceOracleError): a partial map would zero
    the valuation of every token in the missing chunk.
    """

    def __init__(
        self,
        *,
        client: httpx.AsyncClient,
        batch_size: int = 100,
    ) -> None:
        if batch_size <= 0:
            raise ValueError("batch_size must be positive")

        self._client = client
        self._batch_size = batch_size

    async def fetch_prices(
        self,
        *,
        addresses: Sequence[str],
        chain_id: int,
    ) -> dict[str, PriceQuote]:
        unique = list(dict.fromkeys(addresses))
        if not unique:
            return {}

        chunks = await asyncio.gather(
            *(
                self._fetch_chunk(chunk, chain_id=chain_id)
                for chunk in _chunks(unique, self._batch_size)
            )
        )

        prices: dict[str, PriceQuote] = {}
        for chunk_prices in chunks:
            prices.update(chunk_prices)

        logger.debug(
            "Fetched %s/%s price quotes",
            len(prices),
            len(unique),
            extra={"chain_id": chain_id},
        )
        return prices

    async def _fetch_chunk(
        self,
        addresses: Sequence[str],
        *,
        chain_id: int,
    ) -> dict[str, PriceQuote]:
        try:
            response = await self._client.get(
                f"/v1/{chain_id}/prices",
                params={"addresses": ",".join(addresses)},
            )
            response.raise_for_status()
            payload: Any = response.json()
        except (httpx.HTTPError, ValueError) as exc:
            raise PriceOracleError(f"Price request failed for chain {chain_id}: {exc}") from exc

        if not isinstance(payload, dict):
            raise PriceOracleError(f"Unexpected price payload for chain {chain_id}")

        return self._parse_quotes(payload)

    @staticmethod
    def _parse_quotes(payload: dict[str, Any]) -> dict[str, PriceQuote]:
        quotes: dict[str, PriceQuote] = {}

        for address, raw in payload.items():
            if not isinstance(raw, dict):
                continue

            usd = parse_decimal(raw.get("usd"))
            if usd is None:
                continue

            try:
                key = to_checksum_address(address)
            except InvalidAccountAddressError:
                continue

            quotes[key] = PriceQuote(
                usd=usd,
                usd_24h_change=parse_decimal(raw.get("usd_24h_change")),
                usd_reserve=parse_decimal(raw.get("usd_reserve")),
            )

        return quotes
