from __future__ import annotations

from collections.abc import Awaitable, Callable

from .domain.sync_account_assets_task import sync_account_assets_task as domain__sync_account_assets_task

TaskFn = Callable[..., Awaitable[None]]

TASKS: dict[str, TaskFn] = {
    "domain__sync_account_assets_task": domain__sync_account_assets_task,
}
