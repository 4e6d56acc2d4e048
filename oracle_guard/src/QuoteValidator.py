"""QuoteValidator: Checks an external quote against the reconciled price.

A quote that deviates beyond the reject threshold is rejected. When the
oracle itself cannot produce a price, strict callers (``require_oracle``)
get a rejection; everyone else gets an accepted verdict flagged
``bypassed_validation`` with a warning, so degraded-oracle operation is
always visible in the verdict.
"""

from __future__ import annotations

import logging
from decimal import Decimal

from .errors import format_percent
from .GuardConfig import parse_decimal
from .PricePair import PricePair, normalize_pair
from .PriceReconciler import PriceReconciler, compute_deviation
from .PriceTypes import QuoteVerdict

logger = logging.getLogger(__name__)


class QuoteValidator:
    """Validates swap quotes against the oracle guard.

    :ivar reconciler: Source of validated oracle prices.
    :ivar warning_threshold: Quote deviation ratio that triggers a warning.
    :ivar reject_threshold: Quote deviation ratio that triggers rejection.
    """

    def __init__(
        self,
        reconciler: PriceReconciler,
        warning_threshold: Decimal | None = None,
        reject_threshold: Decimal | None = None,
    ) -> None:
        """Initialize the validator.

        :param reconciler: Price reconciler.
        :param warning_threshold: Defaults to the reconciler's threshold.
        :param reject_threshold: Defaults to the reconciler's threshold.
        """
        self.reconciler = reconciler
        self.warning_threshold = (
            reconciler.warning_threshold if warning_threshold is None else warning_threshold
        )
        self.reject_threshold = (
            reconciler.reject_threshold if reject_threshold is None else reject_threshold
        )

    async def validate_quote(
        self,
        quoted_price: Decimal | float | str,
        pair: str | PricePair,
        chain_id: int,
        twap_pool_address: str | None = None,
        require_oracle: bool = False,
    ) -> QuoteVerdict:
        """Validate a quoted price before execution.

        :param quoted_price: Price implied by the external quote.
        :param pair: Pair key (e.g., "ETH/USD").
        :param chain_id: EVM chain ID.
        :param twap_pool_address: Optional pool for TWAP cross-validation.
        :param require_oracle: Reject instead of bypassing when the oracle fails.
        :returns: QuoteVerdict.
        :raises ValueError: If the quoted price is not a positive number.
        """
        quote = parse_decimal(quoted_price)
        if quote <= 0:
            raise ValueError(f"quoted price must be positive, got {quoted_price}")
        key = normalize_pair(pair)

        try:
            validated = await self.reconciler.get_validated_price(
                key, chain_id, twap_pool_address
            )
        except Exception as e:
            if require_oracle:
                logger.warning(f"{key} on chain {chain_id}: quote rejected, oracle failed: {e}")
                return QuoteVerdict(
                    accepted=False,
                    quoted_price=quote,
                    warnings=[str(e)],
                    rejection_reason=f"Oracle validation failed: {e}",
                    oracle_error=e,
                )
            logger.warning(
                f"{key} on chain {chain_id}: oracle unavailable, bypassing quote validation: {e}"
            )
            return QuoteVerdict(
                accepted=True,
                quoted_price=quote,
                warnings=[f"Oracle unavailable: {e}"],
                bypassed_validation=True,
                oracle_error=e,
            )

        warnings = list(validated.warnings)
        deviation = compute_deviation(validated.price, quote)

        if deviation > self.reject_threshold:
            reason = (
                f"Quote deviates {format_percent(deviation)} from oracle "
                f"(quoted: {quote}, oracle: {validated.price}, "
                f"max: {format_percent(self.reject_threshold)})"
            )
            logger.warning(f"{key} on chain {chain_id}: {reason}")
            return QuoteVerdict(
                accepted=False,
                quoted_price=quote,
                deviation=deviation,
                oracle_price=validated.price,
                confidence=validated.confidence,
                warnings=warnings,
                rejection_reason=reason,
            )

        if deviation > self.warning_threshold:
            warnings.append(
                f"Quote deviates {format_percent(deviation)} from oracle - proceed with caution"
            )

        return QuoteVerdict(
            accepted=True,
            quoted_price=quote,
            deviation=deviation,
            oracle_price=validated.price,
            confidence=validated.confidence,
            warnings=warnings,
        )
