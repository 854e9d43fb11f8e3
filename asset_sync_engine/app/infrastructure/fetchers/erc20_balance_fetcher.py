from __future__ import annotations

import logging
from typing import Any, Callable

from web3 import AsyncWeb3
from web3.contract.async_contract import AsyncContract
from web3.exceptions import BadFunctionCallOutput, ContractLogicError

from asset_sync_engine.app.domain.models import TokenStandard
from asset_sync_engine.app.domain.ports.out import ChainBalanceReader
from asset_sync_engine.app.domain.tokens import parse_token_slug

logger = logging.getLogger(__name__)

# Minimal ERC-20 ABI fragment
_ERC20_BALANCE_ABI = [
    {
        "name": "balanceOf",
        "type": "function",
        "stateMutability": "view",
        "inputs": [{"name": "owner", "type": "address"}],
        "outputs": [{"name": "", "type": "uint256"}],
    },
]

Web3Provider = Callable[[int], AsyncWeb3]


class Web3Erc20BalanceReader(ChainBalanceReader):
    """
    ERC-20 balance reader using AsyncWeb3.

    Calls balanceOf(account) on the token contract encoded in the slug.
    Any failure (unknown chain, non-ERC20 slug, revert, provider error)
    yields None so a single token never breaks a batch.

    `w3_provider` returns the AsyncWeb3 instance for a chain id.
    """

    def __init__(self, *, w3_provider: Web3Provider) -> None:
        self._w3_provider = w3_provider

    async def fetch_balance(
        self,
        *,
        chain_id: int,
        token_slug: str,
        account_address: str,
    ) -> int | None:
        try:
            standard, token_address, _ = parse_token_slug(token_slug)
        except ValueError:
            return None

        if standard is not TokenStandard.ERC20:
            return None

        try:
            w3 = self._w3_provider(chain_id)
            contract: AsyncContract = w3.eth.contract(
                address=w3.to_checksum_address(token_address),
                abi=_ERC20_BALANCE_ABI,
            )
            owner = w3.to_checksum_address(account_address)
        except ValueError:
            # Unsupported chain (no RPC) or malformed address
            logger.debug(
                "Cannot build balanceOf call",
                extra={"chain_id": chain_id, "token_slug": token_slug},
            )
            return None

        raw = await self._safe_call(contract, "balanceOf", owner)

        if isinstance(raw, int) and not isinstance(raw, bool) and raw >= 0:
            return raw
        return None

    async def _safe_call(self, contract: AsyncContract, fn_name: str, *args: Any) -> Any | None:
        try:
            fn = getattr(contract.functions, fn_name)
            return await fn(*args).call()
        except (BadFunctionCallOutput, ContractLogicError, ValueError):
            # Non-ERC20, proxy weirdness, revert, or empty response
            return None
        except Exception:
            # Network / timeout / provider error
            logger.debug("balanceOf call failed", exc_info=True)
            return None
