"""
Chain readers for the oracle guard.

Each reader wraps one on-chain data source and raises typed failures;
containment happens in the PriceReconciler.

Usage:
    from oracle_guard.src.readers import ChainlinkReader, TwapReader

    reader = ChainlinkReader(chain_data, feeds, heartbeats)
    observation = await reader.fetch_price("ETH/USD", 1)
"""

from .base import BaseReader, ChainDataSource, RoundData
from .chainlink import ChainlinkReader
from .sequencer import SEQUENCER_DOWN_MESSAGE, SequencerHealthChecker
from .twap import SPOT_FALLBACK_WARNING, TwapReader, average_tick, tick_to_price

__all__ = [
    "BaseReader",
    "ChainDataSource",
    "RoundData",
    "ChainlinkReader",
    "SequencerHealthChecker",
    "TwapReader",
    "SEQUENCER_DOWN_MESSAGE",
    "SPOT_FALLBACK_WARNING",
    "average_tick",
    "tick_to_price",
]
