"""Typed failures raised by the oracle guard.

Readers always raise one of these; only the PriceReconciler decides whether
a read failure can be absorbed into a warning.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Any


def format_percent(ratio: Decimal | float) -> str:
    """Format a ratio (0.05) as a percentage string ("5.00%")."""
    return f"{Decimal(ratio) * 100:.2f}%"


class OracleGuardError(Exception):
    """Base exception for oracle guard failures.

    :ivar details: Structured context (chain, pair, prices, thresholds)
        sufficient to act on the failure without re-querying the chain.
    """

    def __init__(self, message: str, **details: Any) -> None:
        """Initialize the error.

        :param message: Human-readable failure description.
        :param details: Structured context attached to the failure.
        """
        super().__init__(message)
        self.details = details

    def to_dict(self) -> dict[str, Any]:
        """Serialize the error for logs and CLI output."""
        return {
            "error": type(self).__name__,
            "message": str(self),
            "details": {
                k: str(v) if isinstance(v, Decimal) else v
                for k, v in self.details.items()
            },
        }


class UnsupportedPairError(OracleGuardError):
    """Raised when no feed is configured for a pair on a chain."""

    def __init__(self, pair: str, chain_id: int) -> None:
        """Initialize the error.

        :param pair: Pair key that has no feed.
        :param chain_id: EVM chain ID.
        """
        super().__init__(
            f"No Chainlink feed configured for {pair} on chain {chain_id}",
            pair=pair,
            chain_id=chain_id,
        )


class IncompleteRoundError(OracleGuardError):
    """Raised when the latest oracle round has not been finalized."""

    def __init__(
        self, pair: str, chain_id: int, round_id: int, answered_in_round: int
    ) -> None:
        """Initialize the error.

        :param pair: Pair key.
        :param chain_id: EVM chain ID.
        :param round_id: Latest round ID.
        :param answered_in_round: Round in which the answer was computed.
        """
        super().__init__(
            f"Chainlink round {round_id} not complete for {pair} on chain {chain_id} "
            f"(answered in round {answered_in_round})",
            pair=pair,
            chain_id=chain_id,
            round_id=round_id,
            answered_in_round=answered_in_round,
        )


class InvalidPriceError(OracleGuardError):
    """Raised when the oracle reports a non-positive answer."""

    def __init__(self, pair: str, chain_id: int, answer: int) -> None:
        """Initialize the error.

        :param pair: Pair key.
        :param chain_id: EVM chain ID.
        :param answer: Raw aggregator answer.
        """
        super().__init__(
            f"Invalid Chainlink price for {pair} on chain {chain_id}: {answer}",
            pair=pair,
            chain_id=chain_id,
            answer=answer,
        )


class ReadTimeoutError(OracleGuardError):
    """Raised when a chain read does not complete within the read deadline."""

    def __init__(self, operation: str, timeout: float, chain_id: int) -> None:
        """Initialize the error.

        :param operation: Contract call that timed out.
        :param timeout: Deadline in seconds.
        :param chain_id: EVM chain ID.
        """
        super().__init__(
            f"Chain read {operation} timed out after {timeout}s on chain {chain_id}",
            operation=operation,
            timeout=timeout,
            chain_id=chain_id,
        )


class InsufficientHistoryError(OracleGuardError):
    """Raised by a chain-data source when a pool lacks the requested history."""

    pass


class SequencerDownError(OracleGuardError):
    """Raised when the L2 sequencer reports itself as down."""

    def __init__(self, chain_id: int) -> None:
        """Initialize the error.

        :param chain_id: EVM chain ID.
        """
        super().__init__(
            f"L2 sequencer is down on chain {chain_id} - cannot get reliable price",
            chain_id=chain_id,
        )


class AllOraclesFailedError(OracleGuardError):
    """Raised when neither the oracle nor the TWAP produced a usable price.

    :ivar failures: Mapping of source name to failure reason.
    """

    def __init__(self, pair: str, chain_id: int, failures: dict[str, str]) -> None:
        """Initialize the error.

        :param pair: Pair key.
        :param chain_id: EVM chain ID.
        :param failures: Mapping of source name to failure reason.
        """
        reasons = "; ".join(f"{k}: {v}" for k, v in failures.items())
        message = f"All oracles failed for {pair} on chain {chain_id} - cannot determine price"
        if reasons:
            message += f" ({reasons})"
        super().__init__(message, pair=pair, chain_id=chain_id, failures=failures)
        self.failures = failures


class DeviationExceededError(OracleGuardError):
    """Raised when oracle and TWAP disagree beyond the reject threshold."""

    def __init__(
        self,
        pair: str,
        chain_id: int,
        oracle_price: Decimal,
        twap_price: Decimal,
        deviation: Decimal,
        threshold: Decimal,
    ) -> None:
        """Initialize the error.

        :param pair: Pair key.
        :param chain_id: EVM chain ID.
        :param oracle_price: Chainlink price.
        :param twap_price: TWAP price.
        :param deviation: Relative deviation of the TWAP from the oracle.
        :param threshold: Reject threshold that was exceeded.
        """
        super().__init__(
            f"Oracle deviation too high for {pair} on chain {chain_id}: "
            f"{format_percent(deviation)} (Chainlink: {oracle_price:.6g}, "
            f"TWAP: {twap_price:.6g}). Max allowed: {format_percent(threshold)}",
            pair=pair,
            chain_id=chain_id,
            oracle_price=oracle_price,
            twap_price=twap_price,
            deviation=deviation,
            threshold=threshold,
        )


class OracleValidationFailedError(OracleGuardError):
    """Raised for a quote rejected because the oracle could not validate it."""

    pass


class QuoteDeviationError(OracleGuardError):
    """Raised for a quote rejected because it deviates too far from the oracle."""

    pass
