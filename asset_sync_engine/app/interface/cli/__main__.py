import asyncio
import inspect
import logging

import typer
from dotenv import load_dotenv
from InquirerPy import inquirer

from asset_sync_engine.app.interface.tasks import TASKS


load_dotenv()

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
)

app = typer.Typer()
assets_app = typer.Typer(help="cli for syncing account token holdings.")
app.add_typer(assets_app, name="assets")


@assets_app.command("run")
def run() -> None:
    task_name = inquirer.select(
        message="Select task:",
        choices=list(TASKS.keys()),
        pointer="❯",
        instruction="Use ↑/↓ to move, Enter to select",
    ).execute()
    chain_id = int(
        inquirer.text(
            message="Chain ID (e.g. 1 for Ethereum mainnet):",
            default="1",
        ).execute()
    )

    task = TASKS[task_name]

    kwargs: dict[str, object] = {"chain_id": chain_id}

    params = inspect.signature(task).parameters

    if "account_address" in params:
        kwargs["account_address"] = inquirer.text(
            message="Account address (0x...):",
            validate=lambda value: value.startswith("0x") and len(value) == 42,
            invalid_message="Expected a 0x-prefixed 20-byte address",
        ).execute()

    if "backend" in params:
        kwargs["backend"] = inquirer.select(
            message="Repository backend:",
            choices=["sqlalchemy", "memory"],
            default="sqlalchemy",
        ).execute()

    asyncio.run(task(**kwargs))


@assets_app.command("sync")
def sync(
    chain_id: int = typer.Option(..., "--chain-id", help="Chain ID, e.g. 1 for Ethereum mainnet."),
    account: str = typer.Option(..., "--account", help="Account address (0x...)."),
    backend: str = typer.Option("sqlalchemy", "--backend", help="Repository backend."),
) -> None:
    task = TASKS["domain__sync_account_assets_task"]
    asyncio.run(task(chain_id=chain_id, account_address=account, backend=backend))


if __name__ == "__main__":
    typer.echo("--- Asset Sync Engine CLI ---")
    app()
