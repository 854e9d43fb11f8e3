from __future__ import annotations

import inspect

import httpx
import pytest

from asset_sync_engine.app.interface.tasks import TASKS
from asset_sync_engine.app.interface.tasks.domain import sync_account_assets_task as task_module
from fakes import ACCOUNT


def test_tasks_registry_exposes_sync_task() -> None:
    task = TASKS["domain__sync_account_assets_task"]

    params = inspect.signature(task).parameters
    assert {"chain_id", "account_address", "backend"} <= set(params)


@pytest.mark.asyncio
async def test_sync_task_runs_with_memory_backend(monkeypatch) -> None:
    calls: list[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request.url.host)
        return httpx.Response(200, json=[])

    def fake_client() -> httpx.AsyncClient:
        return httpx.AsyncClient(base_url="https://sources.test", transport=httpx.MockTransport(handler))

    monkeypatch.setattr(task_module, "create_indexer_http_client", fake_client)
    monkeypatch.setattr(task_module, "create_price_http_client", fake_client)

    await task_module.sync_account_assets_task(
        chain_id=1,
        account_address=ACCOUNT,
        backend="memory",
    )

    # indexer only: nothing staged, so no price request
    assert calls == ["sources.test"]


@pytest.mark.asyncio
async def test_sync_task_rejects_non_positive_chain(monkeypatch) -> None:
    monkeypatch.setattr(task_module, "create_indexer_http_client", httpx.AsyncClient)
    monkeypatch.setattr(task_module, "create_price_http_client", httpx.AsyncClient)

    with pytest.raises(ValueError):
        await task_module.sync_account_assets_task(chain_id=0, account_address=ACCOUNT, backend="memory")
