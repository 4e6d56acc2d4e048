"""L2 sequencer uptime checker.

Interface: Chainlink sequencer uptime feed ``latestRoundData()``
Answer: 0 = up, 1 = down; ``startedAt`` is when the current status began.
"""

from __future__ import annotations

import logging
import time

from ..FeedRegistry import FeedRegistry
from ..PriceTypes import SequencerStatus
from .base import BaseReader, ChainDataSource

logger = logging.getLogger(__name__)

SEQUENCER_DOWN_MESSAGE = "Sequencer is down - DO NOT EXECUTE TRADES"


class SequencerHealthChecker(BaseReader):
    """Classifies L2 sequencer liveness and post-recovery grace period.

    A down sequencer is a hard gate: callers must not use any price on that
    chain, since ordering and pricing cannot be trusted during an outage.

    :ivar feeds: Feed registry holding the sequencer feed entries.
    :ivar grace_period_seconds: Window after recovery flagged as volatile.
    """

    name = "sequencer"

    def __init__(
        self,
        chain_data: ChainDataSource,
        feeds: FeedRegistry,
        grace_period_seconds: int = 3600,
        read_timeout: float | None = None,
    ) -> None:
        """Initialize the checker.

        :param chain_data: Chain-data collaborator.
        :param feeds: Feed registry.
        :param grace_period_seconds: Post-recovery grace window (default: 3600).
        :param read_timeout: Per-read deadline in seconds.
        """
        super().__init__(chain_data, read_timeout)
        self.feeds = feeds
        self.grace_period_seconds = grace_period_seconds

    async def check_sequencer(self, chain_id: int) -> SequencerStatus:
        """Check sequencer liveness for a chain.

        Chains without a sequencer feed are reported up without any read.

        :param chain_id: EVM chain ID.
        :returns: SequencerStatus.
        :raises ReadTimeoutError: If the read exceeds the deadline.
        """
        address = self.feeds.sequencer_feed(chain_id)
        if address is None:
            return SequencerStatus(is_up=True, is_l1=True)

        round_data = await self._read(
            chain_id,
            "latestRoundData",
            self.chain_data.latest_round_data(chain_id, address),
        )

        if round_data.answer != 0:
            logger.error(f"[{self.name}] Sequencer down on chain {chain_id}")
            return SequencerStatus(is_up=False, message=SEQUENCER_DOWN_MESSAGE)

        now = int(time.time())
        seconds_since_up = now - round_data.started_at
        grace_period_active = seconds_since_up < self.grace_period_seconds

        if grace_period_active:
            logger.warning(
                f"[{self.name}] Grace period active on chain {chain_id}: "
                f"{seconds_since_up}s since recovery "
                f"(grace period: {self.grace_period_seconds}s)"
            )

        return SequencerStatus(
            is_up=True,
            up_since=round_data.started_at,
            seconds_since_up=seconds_since_up,
            grace_period_active=grace_period_active,
            grace_period_remaining_seconds=(
                self.grace_period_seconds - seconds_since_up if grace_period_active else 0
            ),
        )
