from __future__ import annotations

from typing import Final, Mapping

from asset_sync_engine.app.domain.errors import UnsupportedChainError
from asset_sync_engine.app.domain.models import Network, NetworkType
from asset_sync_engine.app.domain.ports.out import NetworkRegistry

# chain_id -> (name, type)
KNOWN_NETWORKS: Final[dict[int, tuple[str, NetworkType]]] = {
    1: ("Ethereum", "mainnet"),
    10: ("OP Mainnet", "mainnet"),
    25: ("Cronos", "mainnet"),
    50: ("XDC Network", "mainnet"),
    56: ("BNB Smart Chain", "mainnet"),
    106: ("Velas", "mainnet"),
    122: ("Fuse", "mainnet"),
    137: ("Polygon", "mainnet"),
    169: ("Manta Pacific", "mainnet"),
    250: ("Fantom", "mainnet"),
    1088: ("Metis", "mainnet"),
    1101: ("Polygon zkEVM", "mainnet"),
    1284: ("Moonbeam", "mainnet"),
    5000: ("Mantle", "mainnet"),
    8217: ("Klaytn", "mainnet"),
    8453: ("Base", "mainnet"),
    32769: ("Zilliqa EVM", "mainnet"),
    34443: ("Mode", "mainnet"),
    42161: ("Arbitrum One", "mainnet"),
    42220: ("Celo", "mainnet"),
    43114: ("Avalanche C-Chain", "mainnet"),
    1313161554: ("Aurora", "mainnet"),
    # testnets
    97: ("BNB Smart Chain Testnet", "testnet"),
    17000: ("Holesky", "testnet"),
    80002: ("Polygon Amoy", "testnet"),
    84532: ("Base Sepolia", "testnet"),
    421614: ("Arbitrum Sepolia", "testnet"),
    11155111: ("Sepolia", "testnet"),
}


class StaticNetworkRegistry(NetworkRegistry):
    """
    Network configuration from the built-in table above.

    RPC urls come from settings; a known chain without an RPC url is still
    resolvable (the indexer and price passes do not need it).
    """

    def __init__(
        self,
        *,
        rpc_urls: Mapping[int, str] | None = None,
        networks: Mapping[int, tuple[str, NetworkType]] = KNOWN_NETWORKS,
    ) -> None:
        self._rpc_urls = dict(rpc_urls or {})
        self._networks = dict(networks)

    async def get_network(self, chain_id: int) -> Network:
        try:
            name, network_type = self._networks[chain_id]
        except KeyError:
            raise UnsupportedChainError(chain_id)

        return Network(
            chain_id=chain_id,
            name=name,
            type=network_type,
            rpc_url=self._rpc_urls.get(chain_id),
        )
