from __future__ import annotations

from dataclasses import replace
from typing import Sequence

from asset_sync_engine.app.domain.models import TokenRecord, TokenType
from asset_sync_engine.app.domain.ports.out import TokenRepository

_Key = tuple[int, str, str]


class InMemoryTokenRepository(TokenRepository):
    """
    Process-local token repository.

    Same contract as the SQL backend: snapshots and writes are copies, so
    callers never share mutable records with the store.
    """

    def __init__(self, records: Sequence[TokenRecord] = ()) -> None:
        self._records: dict[_Key, TokenRecord] = {}
        self.commits = 0
        for record in records:
            self._records[self._key(record)] = replace(record)

    @staticmethod
    def _key(record: TokenRecord) -> _Key:
        return (record.chain_id, record.account_address, record.token_slug)

    async def load_account_tokens(
        self,
        *,
        chain_id: int,
        account_address: str,
        token_type: TokenType,
    ) -> list[TokenRecord]:
        return [
            replace(record)
            for (c, a, _), record in sorted(self._records.items())
            if c == chain_id and a == account_address and record.token_type == token_type
        ]

    async def upsert_tokens(self, records: Sequence[TokenRecord]) -> None:
        for record in records:
            self._records[self._key(record)] = replace(record)
        self.commits += 1

    def all(self) -> list[TokenRecord]:
        return [replace(r) for _, r in sorted(self._records.items())]

    def get(self, chain_id: int, account_address: str, token_slug: str) -> TokenRecord | None:
        record = self._records.get((chain_id, account_address, token_slug))
        return replace(record) if record is not None else None
