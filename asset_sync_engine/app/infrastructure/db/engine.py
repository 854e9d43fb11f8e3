from __future__ import annotations

from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine

from asset_sync_engine.app.config import settings


def create_app_async_engine(*, echo: bool = False) -> AsyncEngine:
    """
    AsyncEngine for the domain.account_tokens repository.

    Created once per `sync_account_assets_task` run (and so per CLI
    invocation) and disposed by the task when the sync finishes.
    """
    return create_async_engine(
        settings.database_url,  # postgresql+asyncpg://...
        echo=echo,
        pool_pre_ping=True,
    )
