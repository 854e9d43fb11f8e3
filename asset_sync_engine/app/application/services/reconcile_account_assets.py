from __future__ import annotations

import asyncio
import logging
from dataclasses import replace
from datetime import datetime, timedelta, timezone
from typing import Callable, Final, Sequence

from asset_sync_engine.app.domain.models import (
    IndexerToken,
    Network,
    PriceQuote,
    TokenRecord,
    TokenStatus,
    TokenType,
)
from asset_sync_engine.app.domain.ports.out import (
    ChainBalanceReader,
    IndexerClient,
    NetworkRegistry,
    PriceOracle,
    TokenRepository,
)
from asset_sync_engine.app.domain.staging import AccountTokensStage
from asset_sync_engine.app.domain.tokens import (
    balance_usd_from_quote,
    compute_balance_usd,
    create_token_slug,
    decimal_to_str,
    is_dead_address,
    is_native_token,
    is_zero_address,
    merge_decimals,
    merge_field,
    merge_optional_field,
    parse_decimal,
    parse_raw_balance,
    parse_token_slug,
    to_checksum_address,
)

logger = logging.getLogger(__name__)

CHAIN_SYNC_FRESHNESS: Final[timedelta] = timedelta(minutes=3)
CHAIN_FALLBACK_MAX_TOKENS: Final[int] = 200

SYMBOL_MAX_LENGTH: Final[int] = 8
DEFAULT_SYMBOL: Final[str] = "NONAME"
DEFAULT_NAME: Final[str] = "Unknown"
DEFAULT_DECIMALS: Final[int] = 18


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _slug_address(token_slug: str) -> str | None:
    try:
        return parse_token_slug(token_slug).address
    except ValueError:
        logger.warning("Skipping record with malformed token slug %r", token_slug)
        return None


class AccountAssetsReconciler:
    """
    Reconciles the fungible token holdings of one account on one chain.

    Sources, in order of application:
      1) indexer rows (balances + metadata), merged over the repository snapshot,
      2) direct chain reads for every previously known token (balance fallback),
      3) batched USD quotes from the price oracle (valuation + auto status).

    Each pass reads the cumulative staged state of the previous one. Only an
    unsupported chain or an invalid account address fails the call; every
    source failure degrades to an empty result.
    """

    def __init__(
        self,
        *,
        networks: NetworkRegistry,
        indexer: IndexerClient,
        chain_reader: ChainBalanceReader,
        price_oracle: PriceOracle,
        repository: TokenRepository,
        clock: Callable[[], datetime] = _utcnow,
        chain_sync_freshness: timedelta = CHAIN_SYNC_FRESHNESS,
        chain_fallback_max_tokens: int = CHAIN_FALLBACK_MAX_TOKENS,
    ) -> None:
        self._networks = networks
        self._indexer = indexer
        self._chain_reader = chain_reader
        self._price_oracle = price_oracle
        self._repository = repository
        self._clock = clock
        self._chain_sync_freshness = chain_sync_freshness
        self._chain_fallback_max_tokens = chain_fallback_max_tokens

    async def reconcile(
        self,
        *,
        chain_id: int,
        account_address: str,
    ) -> None:
        account_address = to_checksum_address(account_address)
        # Fail fast on unknown chains, before any source is hit
        network = await self._networks.get_network(chain_id)

        logger.info(
            "Starting account assets reconciliation",
            extra={"chain_id": chain_id, "account_address": account_address},
        )

        indexer_tokens, existing = await asyncio.gather(
            self._fetch_indexer_tokens(chain_id=chain_id, account_address=account_address),
            self._repository.load_account_tokens(
                chain_id=chain_id,
                account_address=account_address,
                token_type=TokenType.ASSET,
            ),
        )
        stage = AccountTokensStage(existing)

        merged = self._merge_indexer_tokens(
            stage,
            indexer_tokens,
            network=network,
            account_address=account_address,
        )
        chain_synced = await self._sync_balances_from_chain(
            stage,
            chain_id=chain_id,
            account_address=account_address,
        )
        priced = await self._enrich_prices(stage, chain_id=chain_id)

        if len(stage) > 0:
            await self._repository.upsert_tokens(stage.tokens)

        logger.info(
            "Finished account assets reconciliation",
            extra={
                "chain_id": chain_id,
                "account_address": account_address,
                "indexer_rows": len(indexer_tokens),
                "existing": len(existing),
                "merged": merged,
                "chain_synced": chain_synced,
                "priced": priced,
                "committed": len(stage),
            },
        )

    async def _fetch_indexer_tokens(
        self,
        *,
        chain_id: int,
        account_address: str,
    ) -> list[IndexerToken]:
        try:
            return await self._indexer.fetch_account_tokens(
                chain_id=chain_id,
                account_address=account_address,
            )
        except Exception:
            logger.exception(
                "Indexer fetch failed, continuing without indexer data",
                extra={"chain_id": chain_id, "account_address": account_address},
            )
            return []

    def _merge_indexer_tokens(
        self,
        stage: AccountTokensStage,
        indexer_tokens: Sequence[IndexerToken],
        *,
        network: Network,
        account_address: str,
    ) -> int:
        fresh_since = self._clock() - self._chain_sync_freshness
        merged = 0

        for token in indexer_tokens:
            # Native tokens are synced in a separate module
            if is_native_token(address=token.contract_address, native_flag=token.native_token):
                continue

            try:
                token_address = to_checksum_address(token.contract_address)
            except ValueError:
                logger.warning(
                    "Skipping indexer row with invalid contract address %r",
                    token.contract_address,
                )
                continue

            token_slug = create_token_slug(address=token_address)
            existing = stage.get_existing(token_slug)

            # Direct chain data is fresher than the indexer
            if (
                existing is not None
                and existing.synced_by_chain_at is not None
                and existing.synced_by_chain_at > fresh_since
            ):
                continue

            raw_balance = parse_raw_balance(token.balance)
            if raw_balance is None:
                logger.warning(
                    "Skipping indexer row with unparsable balance",
                    extra={"token_slug": token_slug, "balance": token.balance},
                )
                continue

            if (
                (existing is None and raw_balance == 0)
                or (
                    network.is_mainnet
                    and (not token.contract_ticker_symbol or not token.contract_decimals)
                )
                or is_dead_address(token_address)
            ):
                continue

            stage.add_token(
                self._build_merged_record(
                    token,
                    existing=existing,
                    network=network,
                    account_address=account_address,
                    token_slug=token_slug,
                    raw_balance=raw_balance,
                )
            )
            merged += 1

        return merged

    def _build_merged_record(
        self,
        token: IndexerToken,
        *,
        existing: TokenRecord | None,
        network: Network,
        account_address: str,
        token_slug: str,
        raw_balance: int,
    ) -> TokenRecord:
        base = existing or TokenRecord(
            chain_id=network.chain_id,
            account_address=account_address,
            token_slug=token_slug,
            token_type=TokenType.ASSET,
            status=TokenStatus.ENABLED,
        )

        symbol = merge_field(
            (token.contract_ticker_symbol or "")[:SYMBOL_MAX_LENGTH] or None,
            existing.symbol if existing else None,
            DEFAULT_SYMBOL,
        )
        name = merge_field(
            token.contract_name,
            existing.name if existing else None,
            DEFAULT_NAME,
        )
        decimals = merge_decimals(
            token.contract_decimals,
            existing.decimals if existing else None,
            DEFAULT_DECIMALS,
        )
        # Indexer logos are only trusted on mainnets
        if network.is_mainnet:
            logo_url = token.logo_url or None
        else:
            logo_url = existing.logo_url if existing else None

        new_price = parse_decimal(token.quote_rate)
        price_usd = merge_optional_field(
            decimal_to_str(new_price) if new_price is not None else None,
            existing.price_usd if existing else None,
        )
        new_change = parse_decimal(token.quote_rate_24h)
        price_usd_change_24h = merge_optional_field(
            decimal_to_str(new_change) if new_change is not None else None,
            existing.price_usd_change_24h if existing else None,
        )

        balance_usd = self._indexer_balance_usd(
            token,
            raw_balance=raw_balance,
            decimals=decimals,
            price_usd=price_usd,
            existing=existing,
        )

        return replace(
            base,
            symbol=symbol,
            name=name,
            decimals=decimals,
            logo_url=logo_url,
            raw_balance=str(raw_balance),
            price_usd=price_usd,
            price_usd_change_24h=price_usd_change_24h,
            balance_usd=balance_usd,
        )

    @staticmethod
    def _indexer_balance_usd(
        token: IndexerToken,
        *,
        raw_balance: int,
        decimals: int,
        price_usd: str | None,
        existing: TokenRecord | None,
    ) -> float:
        if token.quote:
            return max(float(token.quote), 0.0)

        price = parse_decimal(price_usd)
        if price is not None:
            return compute_balance_usd(
                raw_balance=raw_balance,
                decimals=decimals,
                price_usd=price,
            )

        return existing.balance_usd if existing else 0.0

    async def _sync_balances_from_chain(
        self,
        stage: AccountTokensStage,
        *,
        chain_id: int,
        account_address: str,
    ) -> int:
        candidates = [
            token_slug
            for token_slug in stage.existing
            if (address := _slug_address(token_slug)) is not None and not is_zero_address(address)
        ]

        if not candidates:
            return 0

        if len(candidates) >= self._chain_fallback_max_tokens:
            logger.info(
                "Skipping chain balance fallback: %s tokens (limit %s)",
                len(candidates),
                self._chain_fallback_max_tokens,
                extra={"chain_id": chain_id, "account_address": account_address},
            )
            return 0

        balances = await asyncio.gather(
            *(
                self._read_chain_balance(
                    chain_id=chain_id,
                    token_slug=token_slug,
                    account_address=account_address,
                )
                for token_slug in candidates
            )
        )

        now = self._clock()
        synced = 0

        for token_slug, balance in zip(candidates, balances):
            if balance is None:
                continue

            record = stage.get(token_slug)
            if record is None:
                continue

            stage.add_token(
                replace(
                    record,
                    raw_balance=str(balance),
                    synced_by_chain_at=now,
                )
            )
            synced += 1

        return synced

    async def _read_chain_balance(
        self,
        *,
        chain_id: int,
        token_slug: str,
        account_address: str,
    ) -> int | None:
        try:
            balance = await self._chain_reader.fetch_balance(
                chain_id=chain_id,
                token_slug=token_slug,
                account_address=account_address,
            )
        except Exception:
            logger.debug(
                "Chain balance read failed",
                exc_info=True,
                extra={"chain_id": chain_id, "token_slug": token_slug},
            )
            return None

        if balance is None or balance < 0:
            return None
        return balance

    async def _enrich_prices(
        self,
        stage: AccountTokensStage,
        *,
        chain_id: int,
    ) -> int:
        tokens = stage.tokens
        addresses = [_slug_address(t.token_slug) for t in tokens]

        if not tokens:
            return 0

        quotes = await self._fetch_prices(
            addresses=list(dict.fromkeys(a for a in addresses if a is not None)),
            chain_id=chain_id,
        )

        # Total price failure: keep previous valuation and statuses
        if not quotes:
            return 0

        priced = 0

        for token, address in zip(tokens, addresses):
            # The dead address never gets a quote and is left untouched
            if address is None or is_dead_address(address):
                continue

            quote = quotes.get(address)
            record = self._apply_quote(token, quote)
            if quote is not None and quote.usd:
                priced += 1

            stage.add_token(record)

        return priced

    async def _fetch_prices(
        self,
        *,
        addresses: list[str],
        chain_id: int,
    ) -> dict[str, PriceQuote]:
        try:
            return await self._price_oracle.fetch_prices(
                addresses=addresses,
                chain_id=chain_id,
            )
        except Exception:
            logger.warning(
                "Price oracle fetch failed, skipping price updates",
                exc_info=True,
                extra={"chain_id": chain_id, "tokens": len(addresses)},
            )
            return {}

    @staticmethod
    def _apply_quote(token: TokenRecord, quote: PriceQuote | None) -> TokenRecord:
        raw_balance = parse_raw_balance(token.raw_balance) or 0

        if quote is not None and quote.usd:
            record = replace(
                token,
                price_usd=decimal_to_str(quote.usd),
                price_usd_change_24h=(
                    decimal_to_str(quote.usd_24h_change)
                    if quote.usd_24h_change is not None
                    else None
                ),
                balance_usd=balance_usd_from_quote(
                    raw_balance=raw_balance,
                    decimals=token.decimals,
                    quote=quote,
                ),
            )
        else:
            record = replace(
                token,
                price_usd=None,
                price_usd_change_24h=None,
                balance_usd=0.0,
            )

        # The only place where automatic enable/disable happens
        if not record.manually_status_changed:
            record.status = TokenStatus.ENABLED if raw_balance != 0 else TokenStatus.DISABLED

        return record
