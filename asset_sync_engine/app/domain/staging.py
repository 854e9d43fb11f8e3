from __future__ import annotations

from dataclasses import replace
from typing import Iterable

from asset_sync_engine.app.domain.models import TokenRecord


class AccountTokensStage:
    """
    Write staging for one (chain_id, account_address) reconciliation pass.

    Holds the repository snapshot (`existing`, never mutated) and the
    cumulative staged state. Every pass reads what the previous pass staged;
    the final `tokens` list is what gets committed.
    """

    def __init__(self, existing: Iterable[TokenRecord]) -> None:
        self._existing: dict[str, TokenRecord] = {}
        self._staged: dict[str, TokenRecord] = {}

        for record in existing:
            self._existing[record.token_slug] = record
            self._staged[record.token_slug] = replace(record)

    @property
    def existing(self) -> dict[str, TokenRecord]:
        return self._existing

    def get_existing(self, token_slug: str) -> TokenRecord | None:
        return self._existing.get(token_slug)

    def get(self, token_slug: str) -> TokenRecord | None:
        return self._staged.get(token_slug)

    def add_token(self, record: TokenRecord) -> None:
        """Stage an upsert; a later write for the same slug replaces the earlier one."""
        self._staged[record.token_slug] = record

    @property
    def tokens(self) -> list[TokenRecord]:
        return list(self._staged.values())

    def __len__(self) -> int:
        return len(self._staged)
