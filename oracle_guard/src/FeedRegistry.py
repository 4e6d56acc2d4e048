"""FeedRegistry: Chain → pair → Chainlink feed address lookup.

Each chain maps pair keys ("ETH/USD") to aggregator addresses. The reserved
key ``SEQUENCER`` names the chain's L2 sequencer uptime feed; a chain without
it is treated as always up (L1, or an L2 without a canonical feed).

The registry is seeded from a copy of the built-in table so registrations
never leak into other registries or into ``DEFAULT_FEEDS``.

.. code-block:: python

    >>> registry = FeedRegistry()
    >>> registry.has_sequencer_feed(42161)
    True
    >>> registry.list_pairs(8453)
    ['ETH/USD', 'USDC/USD']
"""

from __future__ import annotations

import logging
from collections.abc import Mapping

from web3 import Web3

from .PricePair import PricePair, normalize_pair

logger = logging.getLogger(__name__)

# Reserved pair key for the L2 sequencer uptime feed.
SEQUENCER_KEY = "SEQUENCER"

CHAIN_NAMES: dict[int, str] = {
    1: "ethereum",
    10: "optimism",
    8453: "base",
    42161: "arbitrum",
}

# Chainlink aggregator addresses by chain.
DEFAULT_FEEDS: Mapping[int, Mapping[str, str]] = {
    1: {
        "ETH/USD": "0x5f4eC3Df9cbd43714FE2740f5E3616155c5b8419",
        "BTC/USD": "0xF4030086522a5bEEa4988F8cA5B36dbC97BeE88c",
        "USDC/USD": "0x8fFfFfd4AfB6115b954Bd326cbe7B4BA576818f6",
        "USDT/USD": "0x3E7d1eAB13ad0104d2750B8863b489D65364e32D",
        "DAI/USD": "0xAed0c38402a5d19df6E4c03F4E2DceD6e29c1ee9",
        "LINK/USD": "0x2c1d072e956AFFC0D435Cb7AC38EF18d24d9127c",
    },
    42161: {
        "ETH/USD": "0x639Fe6ab55C921f74e7fac1ee960C0B6293ba612",
        "BTC/USD": "0x6ce185860a4963106506C203335A526995e4e028",
        "USDC/USD": "0x50834F3163758fcC1Df9973b6e91f0F0F0434aD3",
        "USDT/USD": "0x3f3f5dF88dC9F13eac63DF89EC16ef6e7E25DdE7",
        "ARB/USD": "0xb2A824043730FE05F3DA2efaFa1CBbe83fa548D6",
        SEQUENCER_KEY: "0xFdB631F5EE196F0ed6FAa767959853A9F217697D",
    },
    10: {
        "ETH/USD": "0x13e3Ee699D1909E989722E753853AE30b17e08c5",
        "BTC/USD": "0xD702DD976Fb76Fffc2D3963D037dfDae5b04E593",
        "USDC/USD": "0x16a9FA2FDa030272Ce99B29CF780dFA30361E0f3",
        "OP/USD": "0x0D276FC14719f9292D5C1eA2198673d1f4269246",
        SEQUENCER_KEY: "0x371EAD81c9102C9BF4874A9075FFFf170F2Ee389",
    },
    8453: {
        "ETH/USD": "0x71041dddad3595F9CEd3DcCFBe3D1F4b0a16Bb70",
        "USDC/USD": "0x7e860098F58bBFC8648a4311b374B1D669a2bc6B",
        SEQUENCER_KEY: "0xBCF85224fc0756B9Fa45aA7892530B47e10b6433",
    },
}

DEFAULT_HEARTBEAT_SECONDS = 3600

# Stablecoin feeds only update on deviation, so they get a 24h heartbeat.
DEFAULT_ASSET_HEARTBEATS: Mapping[str, int] = {
    "ETH/USD": 3600,
    "BTC/USD": 3600,
    "USDC/USD": 86400,
    "USDT/USD": 86400,
    "DAI/USD": 3600,
}


def _registry_key(pair: str | PricePair) -> str:
    if isinstance(pair, str) and pair.strip().upper() == SEQUENCER_KEY:
        return SEQUENCER_KEY
    return normalize_pair(pair)


class FeedRegistry:
    """Registry of Chainlink feed addresses per chain.

    :ivar feeds: Mapping of chain ID to {pair key: checksum address}.
    """

    def __init__(
        self, feeds: Mapping[int, Mapping[str, str]] | None = None
    ) -> None:
        """Initialize the registry.

        :param feeds: Seed table (defaults to ``DEFAULT_FEEDS``). It is copied,
            never mutated.
        :raises ValueError: If a seed address is not a valid hex address.
        """
        self.feeds: dict[int, dict[str, str]] = {}
        for chain_id, pairs in (DEFAULT_FEEDS if feeds is None else feeds).items():
            for pair, address in pairs.items():
                self._set(int(chain_id), _registry_key(pair), address)

    def _set(self, chain_id: int, key: str, address: str) -> str:
        try:
            checksum = Web3.to_checksum_address(address)
        except (ValueError, TypeError) as e:
            raise ValueError(
                f"Invalid feed address for {key} on chain {chain_id}: {address}"
            ) from e
        self.feeds.setdefault(chain_id, {})[key] = checksum
        return checksum

    def resolve_feed(self, chain_id: int, pair: str | PricePair) -> str | None:
        """Look up the feed address for a pair.

        :param chain_id: EVM chain ID.
        :param pair: Pair key (or ``SEQUENCER``).
        :returns: Checksum address, or None if not configured.
        """
        return self.feeds.get(chain_id, {}).get(_registry_key(pair))

    def register_feed(self, chain_id: int, pair: str | PricePair, address: str) -> None:
        """Add or overwrite a feed address.

        :param chain_id: EVM chain ID.
        :param pair: Pair key, or ``SEQUENCER`` for the uptime feed.
        :param address: Feed contract address.
        :raises ValueError: If the pair or address is malformed.
        """
        key = _registry_key(pair)
        checksum = self._set(chain_id, key, address)
        logger.info(f"Added Chainlink feed: {key} on chain {chain_id} ({checksum})")

    def list_pairs(self, chain_id: int) -> list[str]:
        """List price pairs configured for a chain, excluding the sequencer feed.

        :param chain_id: EVM chain ID.
        :returns: Pair keys in registration order.
        """
        return [k for k in self.feeds.get(chain_id, {}) if k != SEQUENCER_KEY]

    def sequencer_feed(self, chain_id: int) -> str | None:
        """Return the sequencer uptime feed address for a chain, if any."""
        return self.feeds.get(chain_id, {}).get(SEQUENCER_KEY)

    def has_sequencer_feed(self, chain_id: int) -> bool:
        """Check whether a chain is an L2 with a sequencer uptime feed."""
        return self.sequencer_feed(chain_id) is not None


class HeartbeatRegistry:
    """Per-pair maximum acceptable oracle update age.

    :ivar default_seconds: Heartbeat used for pairs without an override.
    :ivar heartbeats: Mapping of pair key to heartbeat seconds.
    """

    def __init__(
        self,
        heartbeats: Mapping[str, int] | None = None,
        default_seconds: int = DEFAULT_HEARTBEAT_SECONDS,
    ) -> None:
        """Initialize the registry.

        :param heartbeats: Per-pair overrides (defaults to
            ``DEFAULT_ASSET_HEARTBEATS``). Copied, never mutated.
        :param default_seconds: Heartbeat for unregistered pairs.
        :raises ValueError: If any heartbeat is not positive.
        """
        default_seconds = int(default_seconds)
        if default_seconds <= 0:
            raise ValueError("default heartbeat must be positive")
        self.default_seconds = default_seconds
        self.heartbeats: dict[str, int] = {}
        seed = DEFAULT_ASSET_HEARTBEATS if heartbeats is None else heartbeats
        for pair, seconds in seed.items():
            self._set(pair, seconds)

    def _set(self, pair: str | PricePair, seconds: int) -> str:
        seconds = int(seconds)
        if seconds <= 0:
            raise ValueError(f"heartbeat for {pair} must be positive")
        key = normalize_pair(pair)
        self.heartbeats[key] = seconds
        return key

    def lookup(self, pair: str | PricePair) -> int:
        """Return the heartbeat for a pair, falling back to the default."""
        return self.heartbeats.get(normalize_pair(pair), self.default_seconds)

    def set_heartbeat(self, pair: str | PricePair, seconds: int) -> None:
        """Set a per-pair heartbeat.

        :param pair: Pair key.
        :param seconds: Maximum acceptable update age.
        :raises ValueError: If seconds is not positive.
        """
        key = self._set(pair, seconds)
        logger.info(f"Set heartbeat for {key}: {seconds}s")
