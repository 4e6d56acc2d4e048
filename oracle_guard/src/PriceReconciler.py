"""PriceReconciler: Dual-source price validation with sequencer gating.

Algorithm:
    1. Check the L2 sequencer; fail with SequencerDownError if it is down
       (no price reads are issued)
    2. Warn if the sequencer is inside its post-recovery grace period
    3. Read the Chainlink oracle and (if a pool is given) the TWAP
       concurrently; a failed read becomes a warning, never an abort
    4. Reconcile:
       - both: reject if deviation > reject threshold, warn if > warning
         threshold; oracle price is primary; HIGH (MEDIUM if oracle stale)
       - oracle only: MEDIUM (LOW if stale)
       - TWAP only: LOW
       - neither: AllOraclesFailedError

.. code-block:: python

    >>> reconciler = PriceReconciler(sequencer, chainlink, twap)
    >>> result = await reconciler.get_validated_price("ETH/USD", 1, pool_address)
    >>> result.confidence
    <ConfidenceTier.HIGH: 'high'>
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable
from decimal import Decimal

from .errors import (
    AllOraclesFailedError,
    DeviationExceededError,
    SequencerDownError,
    format_percent,
)
from .PricePair import PricePair, normalize_pair
from .PriceTypes import ConfidenceTier, PriceObservation, ValidatedPrice
from .readers import ChainlinkReader, SequencerHealthChecker, TwapReader

logger = logging.getLogger(__name__)

SINGLE_ORACLE_WARNING = "Single oracle mode (no TWAP validation)"
TWAP_ONLY_WARNING = "TWAP-only mode (Chainlink unavailable)"


def compute_deviation(reference: Decimal, candidate: Decimal) -> Decimal:
    """Relative deviation of ``candidate`` from ``reference``.

    :param reference: Reference price (must be positive).
    :param candidate: Price being compared.
    :returns: ``|reference - candidate| / reference``.
    :raises ValueError: If the reference price is not positive.

    .. code-block:: python

        >>> compute_deviation(Decimal("2000"), Decimal("2060"))
        Decimal('0.03')
    """
    if reference <= 0:
        raise ValueError("reference price must be positive")
    return abs(reference - candidate) / reference


class PriceReconciler:
    """Combines sequencer, oracle and TWAP reads into one validated price.

    :ivar sequencer: Sequencer health checker (hard gate).
    :ivar chainlink: Oracle reader (primary source).
    :ivar twap: TWAP reader (validation source).
    :ivar warning_threshold: Deviation ratio that triggers a warning.
    :ivar reject_threshold: Deviation ratio that triggers rejection.
    """

    def __init__(
        self,
        sequencer: SequencerHealthChecker,
        chainlink: ChainlinkReader,
        twap: TwapReader,
        warning_threshold: Decimal = Decimal("0.02"),
        reject_threshold: Decimal = Decimal("0.05"),
    ) -> None:
        """Initialize the reconciler.

        :param sequencer: Sequencer health checker.
        :param chainlink: Oracle reader.
        :param twap: TWAP reader.
        :param warning_threshold: Deviation warning ratio (default 2%).
        :param reject_threshold: Deviation reject ratio (default 5%).
        :raises ValueError: If thresholds are not positive or out of order.
        """
        if warning_threshold <= 0 or reject_threshold <= 0:
            raise ValueError("deviation thresholds must be positive")
        if warning_threshold > reject_threshold:
            raise ValueError("warning threshold must not exceed reject threshold")

        self.sequencer = sequencer
        self.chainlink = chainlink
        self.twap = twap
        self.warning_threshold = warning_threshold
        self.reject_threshold = reject_threshold

    async def get_validated_price(
        self,
        pair: str | PricePair,
        chain_id: int,
        twap_pool_address: str | None = None,
    ) -> ValidatedPrice:
        """Produce a validated price for a pair.

        :param pair: Pair key (e.g., "ETH/USD").
        :param chain_id: EVM chain ID.
        :param twap_pool_address: Optional pool for TWAP cross-validation.
        :returns: ValidatedPrice with a positive price.
        :raises SequencerDownError: If the chain's sequencer is down.
        :raises DeviationExceededError: If oracle and TWAP disagree beyond
            the reject threshold.
        :raises AllOraclesFailedError: If no source produced a price.
        """
        key = normalize_pair(pair)
        warnings: list[str] = []
        sources: dict[str, PriceObservation] = {}
        failures: dict[str, str] = {}

        sequencer_status = await self.sequencer.check_sequencer(chain_id)
        if not sequencer_status.is_up:
            raise SequencerDownError(chain_id)
        if sequencer_status.grace_period_active:
            warnings.append(
                f"Sequencer recently recovered ({sequencer_status.seconds_since_up}s ago). "
                f"Prices may be volatile."
            )

        reads: dict[str, Awaitable[PriceObservation]] = {
            "oracle": self.chainlink.fetch_price(key, chain_id),
        }
        if twap_pool_address:
            reads["twap"] = self.twap.fetch_twap(chain_id, twap_pool_address)

        results = await asyncio.gather(*reads.values(), return_exceptions=True)

        for name, result in zip(reads, results, strict=True):
            if isinstance(result, Exception):
                label = "Chainlink oracle" if name == "oracle" else "TWAP oracle"
                logger.warning(f"{key} on chain {chain_id}: {label} failed: {result}")
                warnings.append(f"{label} failed: {result}")
                failures[name] = str(result)
            elif isinstance(result, BaseException):
                raise result
            else:
                sources[name] = result
                if name == "oracle" and result.is_stale:
                    warnings.append(f"Chainlink price is stale ({result.age_seconds}s old)")
                if result.warning:
                    warnings.append(result.warning)

        oracle = sources.get("oracle")
        twap = sources.get("twap")

        if oracle is not None and twap is not None:
            deviation = compute_deviation(oracle.price, twap.price)
            if deviation > self.reject_threshold:
                logger.error(
                    f"{key} on chain {chain_id}: oracle deviation {format_percent(deviation)} "
                    f"exceeds {format_percent(self.reject_threshold)}"
                )
                raise DeviationExceededError(
                    key, chain_id, oracle.price, twap.price, deviation, self.reject_threshold
                )
            if deviation > self.warning_threshold:
                warnings.append(
                    f"Oracle deviation: {format_percent(deviation)} "
                    f"(warning threshold: {format_percent(self.warning_threshold)})"
                )
            price = oracle.price
            confidence = ConfidenceTier.MEDIUM if oracle.is_stale else ConfidenceTier.HIGH
        elif oracle is not None:
            price = oracle.price
            confidence = ConfidenceTier.LOW if oracle.is_stale else ConfidenceTier.MEDIUM
            warnings.append(SINGLE_ORACLE_WARNING)
        elif twap is not None:
            price = twap.price
            confidence = ConfidenceTier.LOW
            warnings.append(TWAP_ONLY_WARNING)
        else:
            raise AllOraclesFailedError(key, chain_id, failures)

        logger.info(
            f"{key} on chain {chain_id}: {price} "
            f"(confidence={confidence.value}, sources={list(sources)})"
        )
        return ValidatedPrice(
            price=price,
            confidence=confidence,
            sources=sources,
            warnings=warnings,
            sequencer_status=sequencer_status,
        )
