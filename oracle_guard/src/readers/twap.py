"""Uniswap V3 style TWAP reader.

Interface: ``observe(uint32[] secondsAgos)`` for tick cumulatives,
``slot0().tick`` for the spot fallback.
Price: ``1.0001 ** tick`` (raw token1/token0 ratio, no decimal adjustment)
"""

from __future__ import annotations

import logging
from decimal import Decimal, localcontext

from ..errors import InsufficientHistoryError
from ..PriceTypes import PriceObservation, SourceKind
from .base import BaseReader, ChainDataSource

logger = logging.getLogger(__name__)

TICK_BASE = Decimal("1.0001")

# Working precision for tick exponentiation; ticks reach +/-887272.
TICK_PRECISION = 50

SPOT_FALLBACK_WARNING = "TWAP unavailable, using spot price"


def tick_to_price(tick: int) -> Decimal:
    """Convert a pool tick to a price.

    :param tick: Integer tick.
    :returns: ``1.0001 ** tick`` computed in high-precision Decimal.

    .. code-block:: python

        >>> tick_to_price(0)
        Decimal('1')
    """
    with localcontext() as ctx:
        ctx.prec = TICK_PRECISION
        return TICK_BASE ** tick


def average_tick(tick_cumulatives: list[int], period_seconds: int) -> int:
    """Average tick over a window, floored toward negative infinity.

    :param tick_cumulatives: Cumulatives for ``[period_seconds, 0]`` seconds ago.
    :param period_seconds: Window length in seconds.
    :returns: Floor of the cumulative delta divided by the window.
    """
    delta = tick_cumulatives[1] - tick_cumulatives[0]
    return delta // period_seconds


class TwapReader(BaseReader):
    """Derives a time-weighted average price from pool tick cumulatives.

    Pools too young to serve the full window fall back to the current tick,
    tagged SPOT with a warning.

    :ivar period_seconds: Default TWAP window.
    """

    name = "twap"

    def __init__(
        self,
        chain_data: ChainDataSource,
        period_seconds: int = 1800,
        read_timeout: float | None = None,
    ) -> None:
        """Initialize the reader.

        :param chain_data: Chain-data collaborator.
        :param period_seconds: Default TWAP window (default: 1800).
        :param read_timeout: Per-read deadline in seconds.
        """
        super().__init__(chain_data, read_timeout)
        self.period_seconds = period_seconds

    async def fetch_twap(
        self, chain_id: int, pool_address: str, period_seconds: int | None = None
    ) -> PriceObservation:
        """Fetch the TWAP for a pool.

        :param chain_id: EVM chain ID.
        :param pool_address: Pool contract address.
        :param period_seconds: Window override (defaults to ``self.period_seconds``).
        :returns: Observation tagged TWAP, or SPOT on fallback.
        :raises ValueError: If the period is not positive.
        :raises ReadTimeoutError: If a read exceeds the deadline.
        """
        period = self.period_seconds if period_seconds is None else period_seconds
        if period <= 0:
            raise ValueError("TWAP period must be positive")

        try:
            cumulatives = await self._read(
                chain_id,
                "observe",
                self.chain_data.observe(chain_id, pool_address, [period, 0]),
            )
        except InsufficientHistoryError:
            logger.warning(
                f"[{self.name}] Observation too old for pool {pool_address} "
                f"on chain {chain_id}, falling back to spot"
            )
            return await self._fetch_spot(chain_id, pool_address)

        tick = average_tick(cumulatives, period)
        return PriceObservation(
            price=tick_to_price(tick),
            age_seconds=0,
            is_stale=False,
            source_kind=SourceKind.TWAP,
            tick=tick,
            period_seconds=period,
        )

    async def _fetch_spot(self, chain_id: int, pool_address: str) -> PriceObservation:
        """Read the current tick as a spot price.

        :param chain_id: EVM chain ID.
        :param pool_address: Pool contract address.
        :returns: Observation tagged SPOT with a fallback warning.
        """
        tick = await self._read(
            chain_id, "slot0", self.chain_data.current_tick(chain_id, pool_address)
        )
        return PriceObservation(
            price=tick_to_price(tick),
            age_seconds=0,
            is_stale=False,
            source_kind=SourceKind.SPOT,
            tick=tick,
            period_seconds=0,
            warning=SPOT_FALLBACK_WARNING,
        )
