"""OracleGuard: Facade over the oracle guard components.

Wires the feed/heartbeat registries, the three readers, the reconciler and
the quote validator from a single GuardConfig and chain-data collaborator.

Architecture:
    - SequencerHealthChecker gates every request (hard fail when down)
    - ChainlinkReader and TwapReader are read concurrently, each contained
    - PriceReconciler applies the deviation policy and confidence tiers
    - QuoteValidator compares external quotes against the reconciled price
"""

from __future__ import annotations

import logging
from decimal import Decimal

from .FeedRegistry import FeedRegistry, HeartbeatRegistry
from .GuardConfig import GuardConfig
from .PricePair import PricePair
from .PriceReconciler import PriceReconciler
from .PriceTypes import PriceObservation, QuoteVerdict, SequencerStatus, ValidatedPrice
from .QuoteValidator import QuoteValidator
from .readers import ChainDataSource, ChainlinkReader, SequencerHealthChecker, TwapReader

logger = logging.getLogger(__name__)


class OracleGuard:
    """Dual-oracle price validation with L2 sequencer gating.

    :ivar config: Configuration the guard was built from.
    :ivar feeds: Runtime feed registry (seeded from ``config.feeds``).
    :ivar heartbeats: Runtime heartbeat registry.
    :ivar reconciler: Price reconciler.
    :ivar quotes: Quote validator.
    """

    def __init__(
        self, chain_data: ChainDataSource, config: GuardConfig | None = None
    ) -> None:
        """Initialize the guard.

        :param chain_data: Read-only chain-data collaborator.
        :param config: Guard configuration (defaults to ``GuardConfig()``).
        """
        self.config = config or GuardConfig()
        self.chain_data = chain_data

        self.feeds = FeedRegistry(self.config.feeds)
        self.heartbeats = HeartbeatRegistry(
            self.config.asset_heartbeats,
            default_seconds=self.config.default_heartbeat_seconds,
        )

        timeout = self.config.read_timeout
        self.sequencer = SequencerHealthChecker(
            chain_data,
            self.feeds,
            grace_period_seconds=self.config.sequencer_grace_period_seconds,
            read_timeout=timeout,
        )
        self.chainlink = ChainlinkReader(
            chain_data, self.feeds, self.heartbeats, read_timeout=timeout
        )
        self.twap = TwapReader(
            chain_data,
            period_seconds=self.config.twap_period_seconds,
            read_timeout=timeout,
        )
        self.reconciler = PriceReconciler(
            self.sequencer,
            self.chainlink,
            self.twap,
            warning_threshold=self.config.deviation_warning_threshold,
            reject_threshold=self.config.deviation_reject_threshold,
        )
        self.quotes = QuoteValidator(self.reconciler)

        logger.info(
            f"OracleGuard initialized: chains={sorted(self.feeds.feeds)}, "
            f"deviation warn/reject={self.config.deviation_warning_threshold}/"
            f"{self.config.deviation_reject_threshold}, "
            f"twap_period={self.config.twap_period_seconds}s, "
            f"read_timeout={timeout}"
        )

    async def get_chainlink_price(
        self, pair: str | PricePair, chain_id: int
    ) -> PriceObservation:
        """Read and validate a single Chainlink price (no reconciliation)."""
        return await self.chainlink.fetch_price(pair, chain_id)

    async def get_twap_price(
        self, chain_id: int, pool_address: str, period_seconds: int | None = None
    ) -> PriceObservation:
        """Read a TWAP (or spot fallback) from a pool."""
        return await self.twap.fetch_twap(chain_id, pool_address, period_seconds)

    async def check_sequencer_health(self, chain_id: int) -> SequencerStatus:
        """Check L2 sequencer liveness for a chain."""
        return await self.sequencer.check_sequencer(chain_id)

    async def get_validated_price(
        self,
        pair: str | PricePair,
        chain_id: int,
        twap_pool_address: str | None = None,
    ) -> ValidatedPrice:
        """Get a reconciled price. See ``PriceReconciler.get_validated_price``."""
        return await self.reconciler.get_validated_price(pair, chain_id, twap_pool_address)

    async def validate_quote(
        self,
        quoted_price: Decimal | float | str,
        pair: str | PricePair,
        chain_id: int,
        twap_pool_address: str | None = None,
        require_oracle: bool = False,
    ) -> QuoteVerdict:
        """Validate a quote. See ``QuoteValidator.validate_quote``."""
        return await self.quotes.validate_quote(
            quoted_price,
            pair,
            chain_id,
            twap_pool_address=twap_pool_address,
            require_oracle=require_oracle,
        )

    def add_feed(self, chain_id: int, pair: str | PricePair, address: str) -> None:
        """Register or replace a feed address at runtime."""
        self.feeds.register_feed(chain_id, pair, address)

    def set_asset_heartbeat(self, pair: str | PricePair, seconds: int) -> None:
        """Set a per-pair heartbeat at runtime."""
        self.heartbeats.set_heartbeat(pair, seconds)

    def get_supported_pairs(self, chain_id: int) -> list[str]:
        """List pairs with a configured feed on a chain."""
        return self.feeds.list_pairs(chain_id)

    def is_l2_with_sequencer(self, chain_id: int) -> bool:
        """Check whether a chain has a sequencer uptime feed."""
        return self.feeds.has_sequencer_feed(chain_id)
