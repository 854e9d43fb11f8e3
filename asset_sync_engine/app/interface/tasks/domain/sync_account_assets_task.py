from __future__ import annotations

from asset_sync_engine.app.application.services.sync_account_assets import (
    AccountAssetsSyncController,
    sync_account_assets,
)
from asset_sync_engine.app.infrastructure.db.engine import create_app_async_engine
from asset_sync_engine.app.infrastructure.factories.account_assets_sync_factory import (
    account_assets_sync_factory,
    create_indexer_http_client,
    create_price_http_client,
)


async def sync_account_assets_task(
    *,
    chain_id: int,
    account_address: str,
    backend: str = "sqlalchemy",
) -> None:
    """
    Task: reconcile domain.account_tokens for one account on one chain.

    - fetches indexer rows, repository snapshot, chain balances and USD quotes,
    - merges them (indexer -> chain fallback -> prices),
    - upserts the staged records into domain.account_tokens.
    """
    engine = create_app_async_engine() if backend == "sqlalchemy" else None
    try:
        async with create_indexer_http_client() as indexer_http, create_price_http_client() as price_http:
            controller: AccountAssetsSyncController = account_assets_sync_factory(
                backend=backend,
                engine=engine,
                indexer_http=indexer_http,
                price_http=price_http,
            )

            await sync_account_assets(
                controller=controller,
                chain_id=chain_id,
                account_address=account_address,
            )
    finally:
        if engine is not None:
            await engine.dispose()
