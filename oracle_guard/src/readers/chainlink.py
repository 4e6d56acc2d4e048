"""Chainlink-style price feed reader.

Interface: AggregatorV3Interface (``latestRoundData()``, ``decimals()``)
Validation: round completeness, positive answer, per-pair heartbeat staleness
"""

from __future__ import annotations

import asyncio
import logging
import time
from decimal import Decimal

from ..errors import IncompleteRoundError, InvalidPriceError, UnsupportedPairError
from ..FeedRegistry import FeedRegistry, HeartbeatRegistry
from ..PricePair import PricePair, normalize_pair
from ..PriceTypes import PriceObservation, SourceKind
from .base import BaseReader, ChainDataSource

logger = logging.getLogger(__name__)


class ChainlinkReader(BaseReader):
    """Reads and validates a Chainlink aggregator round.

    Staleness is reported on the observation rather than raised; the
    reconciler downgrades confidence for stale prices.

    :ivar feeds: Feed address registry.
    :ivar heartbeats: Per-pair heartbeat registry.
    """

    name = "chainlink"

    def __init__(
        self,
        chain_data: ChainDataSource,
        feeds: FeedRegistry,
        heartbeats: HeartbeatRegistry,
        read_timeout: float | None = None,
    ) -> None:
        """Initialize the reader.

        :param chain_data: Chain-data collaborator.
        :param feeds: Feed address registry.
        :param heartbeats: Heartbeat registry.
        :param read_timeout: Per-read deadline in seconds.
        """
        super().__init__(chain_data, read_timeout)
        self.feeds = feeds
        self.heartbeats = heartbeats

    async def fetch_price(self, pair: str | PricePair, chain_id: int) -> PriceObservation:
        """Fetch and validate the latest oracle price for a pair.

        :param pair: Pair key (e.g., "ETH/USD").
        :param chain_id: EVM chain ID.
        :returns: Observation tagged ORACLE.
        :raises UnsupportedPairError: If no feed is configured.
        :raises IncompleteRoundError: If the round is not finalized.
        :raises InvalidPriceError: If the answer is not positive.
        :raises ReadTimeoutError: If a read exceeds the deadline.
        """
        key = normalize_pair(pair)
        address = self.feeds.resolve_feed(chain_id, key)
        if address is None:
            raise UnsupportedPairError(key, chain_id)

        round_data, decimals = await asyncio.gather(
            self._read(
                chain_id,
                "latestRoundData",
                self.chain_data.latest_round_data(chain_id, address),
            ),
            self._read(chain_id, "decimals", self.chain_data.decimals(chain_id, address)),
        )

        if round_data.answered_in_round < round_data.round_id:
            raise IncompleteRoundError(
                key, chain_id, round_data.round_id, round_data.answered_in_round
            )

        if round_data.answer <= 0:
            raise InvalidPriceError(key, chain_id, round_data.answer)

        heartbeat = self.heartbeats.lookup(key)
        age = int(time.time()) - round_data.updated_at
        if age < 0:
            logger.warning(
                f"[{self.name}] {key} on chain {chain_id} updated {-age}s in the future, "
                f"treating as age 0"
            )
            age = 0
        is_stale = age > heartbeat
        if is_stale:
            logger.warning(
                f"[{self.name}] Stale price for {key} on chain {chain_id}: "
                f"{age}s old (heartbeat: {heartbeat}s)"
            )

        price = Decimal(round_data.answer).scaleb(-decimals)
        logger.debug(f"[{self.name}] {key} on chain {chain_id}: {price} (round {round_data.round_id})")

        return PriceObservation(
            price=price,
            age_seconds=age,
            is_stale=is_stale,
            source_kind=SourceKind.ORACLE,
            round_id=str(round_data.round_id),
            decimals=decimals,
            updated_at=round_data.updated_at,
            heartbeat_seconds=heartbeat,
        )
