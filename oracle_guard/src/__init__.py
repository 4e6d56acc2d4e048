"""
Oracle Guard - Dual-Source Price Validation Module

This module validates on-chain prices before an agent acts on them:
- FeedRegistry / HeartbeatRegistry: Chainlink feed addresses and staleness limits
- readers: Chainlink, TWAP and L2 sequencer readers over a chain-data source
- PriceReconciler: Sequencer gating, deviation policy and confidence tiers
- QuoteValidator: External quote checks with an auditable bypass mode
- OracleGuard: Facade wiring everything from a GuardConfig
"""

from .errors import (
    AllOraclesFailedError,
    DeviationExceededError,
    IncompleteRoundError,
    InsufficientHistoryError,
    InvalidPriceError,
    OracleGuardError,
    OracleValidationFailedError,
    QuoteDeviationError,
    ReadTimeoutError,
    SequencerDownError,
    UnsupportedPairError,
)
from .FeedRegistry import SEQUENCER_KEY, FeedRegistry, HeartbeatRegistry
from .GuardConfig import GuardConfig
from .OracleGuard import OracleGuard
from .PricePair import PricePair
from .PriceReconciler import PriceReconciler, compute_deviation
from .PriceTypes import (
    ConfidenceTier,
    PriceObservation,
    QuoteVerdict,
    SequencerStatus,
    SourceKind,
    ValidatedPrice,
)
from .QuoteValidator import QuoteValidator

__all__ = [
    "AllOraclesFailedError",
    "ConfidenceTier",
    "DeviationExceededError",
    "FeedRegistry",
    "GuardConfig",
    "HeartbeatRegistry",
    "IncompleteRoundError",
    "InsufficientHistoryError",
    "InvalidPriceError",
    "OracleGuard",
    "OracleGuardError",
    "OracleValidationFailedError",
    "PriceObservation",
    "PricePair",
    "PriceReconciler",
    "QuoteDeviationError",
    "QuoteValidator",
    "QuoteVerdict",
    "ReadTimeoutError",
    "SEQUENCER_KEY",
    "SequencerDownError",
    "SequencerStatus",
    "SourceKind",
    "UnsupportedPairError",
    "ValidatedPrice",
    "compute_deviation",
]
