"""ChainData: web3.py implementation of the chain-data collaborator."""

from __future__ import annotations

import json
import logging
import os
from collections.abc import Mapping
from pathlib import Path

from web3 import AsyncWeb3
from web3.contract import AsyncContract
from web3.exceptions import ContractLogicError

from .errors import InsufficientHistoryError
from .readers.base import RoundData

logger = logging.getLogger(__name__)

# Public RPC endpoints by chain ID. RPC_URL_<CHAIN_ID> env vars override them.
DEFAULT_RPC_URLS: dict[int, str] = {
    1: "https://ethereum-rpc.publicnode.com",
    10: "https://mainnet.optimism.io",
    8453: "https://mainnet.base.org",
    42161: "https://arb1.arbitrum.io/rpc",
}

# Revert reason of UniswapV3Pool.observe() when secondsAgo predates the
# oldest stored observation.
OLD_OBSERVATION_REVERT = "OLD"


def get_abi(contract_name: str) -> list:
    """Load a contract ABI from the bundled abi folder.

    :param contract_name: Name of the contract (e.g., "UniswapV3Pool").
    :returns: ABI list.
    """
    abi_path = (Path(__file__).parent / "abi" / f"{contract_name}.json").resolve()
    with open(abi_path, "r") as file:
        return json.load(file)["abi"]


def resolve_rpc_urls(
    overrides: Mapping[int, str] | None = None,
    environ: Mapping[str, str] | None = None,
) -> dict[int, str]:
    """Merge default RPC URLs with environment and explicit overrides.

    Precedence: explicit overrides, then RPC_URL_<CHAIN_ID>, then defaults.

    :param overrides: Explicit chain ID → URL overrides.
    :param environ: Environment mapping (defaults to ``os.environ``).
    :returns: Chain ID → URL mapping.
    """
    env = os.environ if environ is None else environ
    urls = dict(DEFAULT_RPC_URLS)
    for key, value in env.items():
        if key.startswith("RPC_URL_") and value:
            suffix = key[len("RPC_URL_"):]
            if suffix.isdigit():
                urls[int(suffix)] = value
    if overrides:
        urls.update(overrides)
    return urls


class Web3ChainData:
    """Reads Chainlink feeds and Uniswap V3 pools over JSON-RPC.

    One AsyncWeb3 instance is created lazily per chain.

    :ivar rpc_urls: Chain ID → RPC URL mapping.
    """

    def __init__(self, rpc_urls: Mapping[int, str] | None = None) -> None:
        """Initialize the chain-data source.

        :param rpc_urls: Chain ID → RPC URL overrides.
        """
        self.rpc_urls = resolve_rpc_urls(rpc_urls)
        self._aggregator_abi = get_abi("AggregatorV3Interface")
        self._pool_abi = get_abi("UniswapV3Pool")
        self._clients: dict[int, AsyncWeb3] = {}

    def get_client(self, chain_id: int) -> AsyncWeb3:
        """Get or create the AsyncWeb3 client for a chain.

        :param chain_id: EVM chain ID.
        :returns: AsyncWeb3 instance.
        :raises ValueError: If no RPC URL is configured for the chain.
        """
        if chain_id not in self._clients:
            url = self.rpc_urls.get(chain_id)
            if not url:
                raise ValueError(
                    f"No RPC URL configured for chain {chain_id}. "
                    f"Set RPC_URL_{chain_id} or pass --rpc-url"
                )
            logger.debug(f"Connecting to chain {chain_id} via {url}")
            self._clients[chain_id] = AsyncWeb3(AsyncWeb3.AsyncHTTPProvider(url))
        return self._clients[chain_id]

    def _aggregator(self, chain_id: int, address: str) -> AsyncContract:
        w3 = self.get_client(chain_id)
        return w3.eth.contract(
            address=AsyncWeb3.to_checksum_address(address), abi=self._aggregator_abi
        )

    def _pool(self, chain_id: int, pool: str) -> AsyncContract:
        w3 = self.get_client(chain_id)
        return w3.eth.contract(
            address=AsyncWeb3.to_checksum_address(pool), abi=self._pool_abi
        )

    async def latest_round_data(self, chain_id: int, address: str) -> RoundData:
        """Read ``latestRoundData()`` from an aggregator."""
        result = await self._aggregator(chain_id, address).functions.latestRoundData().call()
        return RoundData(*result)

    async def decimals(self, chain_id: int, address: str) -> int:
        """Read ``decimals()`` from an aggregator."""
        return await self._aggregator(chain_id, address).functions.decimals().call()

    async def observe(
        self, chain_id: int, pool: str, seconds_agos: list[int]
    ) -> list[int]:
        """Read tick cumulatives from ``observe()``.

        :raises InsufficientHistoryError: If the pool reverts with ``OLD``.
        """
        try:
            tick_cumulatives, _ = await (
                self._pool(chain_id, pool).functions.observe(seconds_agos).call()
            )
        except ContractLogicError as e:
            if OLD_OBSERVATION_REVERT in str(e):
                raise InsufficientHistoryError(
                    f"Pool {pool} on chain {chain_id} lacks {max(seconds_agos)}s of history",
                    pool=pool,
                    chain_id=chain_id,
                ) from e
            raise
        return list(tick_cumulatives)

    async def current_tick(self, chain_id: int, pool: str) -> int:
        """Read the current tick from ``slot0()``."""
        slot0 = await self._pool(chain_id, pool).functions.slot0().call()
        return slot0[1]

    async def close(self) -> None:
        """Close provider sessions for all connected chains."""
        for w3 in self._clients.values():
            disconnect = getattr(w3.provider, "disconnect", None)
            if disconnect is not None:
                await disconnect()
        self._clients.clear()
