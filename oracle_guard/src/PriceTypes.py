"""Result types produced by the oracle guard.

All of these are created fresh per call and never cached.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import Any

from .errors import OracleValidationFailedError, QuoteDeviationError


class SourceKind(str, Enum):
    """Where an observed price came from."""

    ORACLE = "oracle"
    TWAP = "twap"
    SPOT = "spot"


class ConfidenceTier(str, Enum):
    """Qualitative trust label for a validated price."""

    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


def _jsonable(value: Any) -> Any:
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, dict):
        return {k: _jsonable(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_jsonable(v) for v in value]
    if hasattr(value, "to_dict"):
        return value.to_dict()
    return value


@dataclass
class PriceObservation:
    """A single price read from one source.

    :ivar price: Observed price.
    :ivar age_seconds: Seconds since the source last updated (0 for pool reads).
    :ivar is_stale: Whether the age exceeds the pair's heartbeat.
    :ivar source_kind: ORACLE, TWAP or SPOT.
    :ivar round_id: Oracle round identifier.
    :ivar decimals: Oracle answer decimals.
    :ivar updated_at: Oracle update timestamp.
    :ivar heartbeat_seconds: Heartbeat used for the staleness check.
    :ivar tick: Average (TWAP) or current (SPOT) pool tick.
    :ivar period_seconds: TWAP window, 0 for spot.
    :ivar warning: Degradation note from the reader (e.g., spot fallback).
    """

    price: Decimal
    age_seconds: int
    is_stale: bool
    source_kind: SourceKind
    round_id: str | None = None
    decimals: int | None = None
    updated_at: int | None = None
    heartbeat_seconds: int | None = None
    tick: int | None = None
    period_seconds: int | None = None
    warning: str | None = None

    def to_dict(self) -> dict[str, Any]:
        """Serialize, dropping unset optional fields."""
        return {
            k: _jsonable(v) for k, v in self.__dict__.items() if v is not None
        }


@dataclass
class SequencerStatus:
    """L2 sequencer liveness.

    ``grace_period_active`` is only meaningful when ``is_up`` is True.
    """

    is_up: bool
    is_l1: bool = False
    up_since: int | None = None
    seconds_since_up: int | None = None
    grace_period_active: bool = False
    grace_period_remaining_seconds: int = 0
    message: str | None = None

    def to_dict(self) -> dict[str, Any]:
        """Serialize, dropping unset optional fields."""
        return {k: v for k, v in self.__dict__.items() if v is not None}


@dataclass
class ValidatedPrice:
    """Reconciled price. Only ever constructed with a positive price.

    :ivar price: Final price.
    :ivar confidence: Trust tier derived from source agreement and freshness.
    :ivar sources: Observations keyed "oracle" / "twap".
    :ivar warnings: Degradations accumulated during reconciliation, in order.
    :ivar sequencer_status: Sequencer check performed before any price read.
    """

    price: Decimal
    confidence: ConfidenceTier
    sources: dict[str, PriceObservation]
    warnings: list[str]
    sequencer_status: SequencerStatus

    def to_dict(self) -> dict[str, Any]:
        """Serialize, including nested observations and sequencer status."""
        return _jsonable(dict(self.__dict__))


@dataclass
class QuoteVerdict:
    """Outcome of validating an external quote against the oracle.

    :ivar accepted: Whether the quote may be executed.
    :ivar quoted_price: The quote that was checked.
    :ivar deviation: Quote deviation from the oracle price, if computed.
    :ivar oracle_price: Reconciled oracle price, if available.
    :ivar confidence: Confidence tier of the oracle price.
    :ivar warnings: Warnings from reconciliation and quote comparison.
    :ivar bypassed_validation: True when accepted without an oracle price.
    :ivar rejection_reason: Why the quote was rejected.
    :ivar oracle_error: The reconciliation failure, if any.
    """

    accepted: bool
    quoted_price: Decimal
    deviation: Decimal | None = None
    oracle_price: Decimal | None = None
    confidence: ConfidenceTier | None = None
    warnings: list[str] = field(default_factory=list)
    bypassed_validation: bool = False
    rejection_reason: str | None = None
    oracle_error: Exception | None = None

    def raise_for_rejection(self) -> None:
        """Raise if the verdict is a rejection.

        :raises OracleValidationFailedError: If rejected because the oracle
            could not produce a price.
        :raises QuoteDeviationError: If rejected because the quote deviates
            beyond the reject threshold.
        """
        if self.accepted:
            return
        if self.oracle_error is not None:
            raise OracleValidationFailedError(
                self.rejection_reason or str(self.oracle_error),
                quoted_price=self.quoted_price,
            ) from self.oracle_error
        raise QuoteDeviationError(
            self.rejection_reason or "Quote rejected",
            quoted_price=self.quoted_price,
            oracle_price=self.oracle_price,
            deviation=self.deviation,
        )

    def to_dict(self) -> dict[str, Any]:
        """Serialize, replacing the oracle error with its dict form."""
        data = {k: v for k, v in self.__dict__.items() if k != "oracle_error"}
        if self.oracle_error is not None:
            data["oracle_error"] = (
                self.oracle_error.to_dict()
                if hasattr(self.oracle_error, "to_dict")
                else str(self.oracle_error)
            )
        return _jsonable(data)
