"""GuardConfig: Immutable oracle guard configuration.

Built once at startup. Override helpers return a new config instead of
mutating the shared built-in tables.

.. code-block:: python

    >>> config = GuardConfig().with_heartbeat("ARB/USD", 86400)
    >>> config.asset_heartbeats["ARB/USD"]
    86400
    >>> GuardConfig().asset_heartbeats.get("ARB/USD") is None
    True
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from decimal import Decimal, InvalidOperation
from types import MappingProxyType
from typing import Any

from .FeedRegistry import (
    DEFAULT_ASSET_HEARTBEATS,
    DEFAULT_FEEDS,
    DEFAULT_HEARTBEAT_SECONDS,
)


def parse_decimal(value: str | float | Decimal) -> Decimal:
    """Parse a threshold or price into a finite Decimal.

    Floats are converted through ``str`` so 0.02 becomes Decimal("0.02").

    :raises ValueError: If the value is not a finite number.
    """
    try:
        result = Decimal(str(value).strip())
    except InvalidOperation as e:
        raise ValueError(f"Not a number: {value!r}") from e
    if not result.is_finite():
        raise ValueError(f"Not a finite number: {value!r}")
    return result


def _freeze_feeds(feeds: Mapping[int, Mapping[str, str]]) -> Mapping[int, Mapping[str, str]]:
    return MappingProxyType(
        {int(chain): MappingProxyType(dict(pairs)) for chain, pairs in feeds.items()}
    )


@dataclass(frozen=True)
class GuardConfig:
    """Oracle guard tunables.

    :ivar deviation_warning_threshold: Ratio above which source disagreement
        is reported as a warning (default 2%).
    :ivar deviation_reject_threshold: Ratio above which source disagreement
        is fatal (default 5%).
    :ivar default_heartbeat_seconds: Staleness limit for pairs without an
        override.
    :ivar asset_heartbeats: Per-pair staleness limits.
    :ivar sequencer_grace_period_seconds: Window after sequencer recovery
        during which prices are flagged.
    :ivar twap_period_seconds: TWAP observation window.
    :ivar feeds: Seed feed table (chain → pair → address).
    :ivar read_timeout: Per-read deadline in seconds, None for unbounded.
    """

    deviation_warning_threshold: Decimal = Decimal("0.02")
    deviation_reject_threshold: Decimal = Decimal("0.05")
    default_heartbeat_seconds: int = DEFAULT_HEARTBEAT_SECONDS
    asset_heartbeats: Mapping[str, int] = field(
        default_factory=lambda: MappingProxyType(dict(DEFAULT_ASSET_HEARTBEATS))
    )
    sequencer_grace_period_seconds: int = 3600
    twap_period_seconds: int = 1800
    feeds: Mapping[int, Mapping[str, str]] = field(
        default_factory=lambda: _freeze_feeds(DEFAULT_FEEDS)
    )
    read_timeout: float | None = None

    def __post_init__(self) -> None:
        """Normalize numeric types and validate ranges.

        :raises ValueError: If any value is out of range.
        """
        # Thresholds may arrive as floats or strings from the CLI/env.
        object.__setattr__(
            self, "deviation_warning_threshold", parse_decimal(self.deviation_warning_threshold)
        )
        object.__setattr__(
            self, "deviation_reject_threshold", parse_decimal(self.deviation_reject_threshold)
        )
        # Durations are whole seconds; validate after truncation.
        object.__setattr__(
            self, "default_heartbeat_seconds", int(self.default_heartbeat_seconds)
        )
        object.__setattr__(
            self,
            "asset_heartbeats",
            MappingProxyType(
                {pair: int(seconds) for pair, seconds in self.asset_heartbeats.items()}
            ),
        )
        object.__setattr__(self, "feeds", _freeze_feeds(self.feeds))

        if self.deviation_warning_threshold <= 0:
            raise ValueError("deviation_warning_threshold must be positive")
        if self.deviation_reject_threshold <= 0:
            raise ValueError("deviation_reject_threshold must be positive")
        if self.deviation_warning_threshold > self.deviation_reject_threshold:
            raise ValueError(
                "deviation_warning_threshold must not exceed deviation_reject_threshold"
            )
        if self.default_heartbeat_seconds <= 0:
            raise ValueError("default_heartbeat_seconds must be positive")
        if any(seconds <= 0 for seconds in self.asset_heartbeats.values()):
            raise ValueError("asset heartbeats must be positive")
        if self.sequencer_grace_period_seconds < 0:
            raise ValueError("sequencer_grace_period_seconds must not be negative")
        if self.twap_period_seconds <= 0:
            raise ValueError("twap_period_seconds must be positive")
        if self.read_timeout is not None and self.read_timeout <= 0:
            raise ValueError("read_timeout must be positive if specified")

    def with_feed(self, chain_id: int, pair: str, address: str) -> GuardConfig:
        """Return a copy with one feed added or replaced."""
        feeds = {chain: dict(pairs) for chain, pairs in self.feeds.items()}
        feeds.setdefault(chain_id, {})[pair] = address
        return replace(self, feeds=feeds)

    def with_heartbeat(self, pair: str, seconds: int) -> GuardConfig:
        """Return a copy with one per-pair heartbeat added or replaced."""
        heartbeats = dict(self.asset_heartbeats)
        heartbeats[pair] = seconds
        return replace(self, asset_heartbeats=heartbeats)

    def with_overrides(self, **overrides: Any) -> GuardConfig:
        """Return a copy with the given fields replaced, skipping None values.

        Heartbeat and feed mappings are merged over the current tables
        rather than replacing them.
        """
        changes = {k: v for k, v in overrides.items() if v is not None}
        if "asset_heartbeats" in changes:
            changes["asset_heartbeats"] = {
                **self.asset_heartbeats,
                **changes["asset_heartbeats"],
            }
        if "feeds" in changes:
            merged = {chain: dict(pairs) for chain, pairs in self.feeds.items()}
            for chain, pairs in changes["feeds"].items():
                merged.setdefault(int(chain), {}).update(pairs)
            changes["feeds"] = merged
        return replace(self, **changes)

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> GuardConfig:
        """Build a config from environment variables.

        Reads DEVIATION_WARNING, DEVIATION_REJECT, DEFAULT_HEARTBEAT,
        SEQUENCER_GRACE_PERIOD, TWAP_PERIOD and READ_TIMEOUT. Unset
        variables keep their defaults.

        :param environ: Environment mapping (defaults to ``os.environ``).
        :returns: New GuardConfig.
        :raises ValueError: If a variable cannot be parsed or is out of range.
        """
        env = os.environ if environ is None else environ

        def _get(name: str, parse: Any) -> Any:
            raw = env.get(name)
            if not raw:
                return None
            try:
                return parse(raw)
            except (ValueError, ArithmeticError) as e:
                raise ValueError(f"Invalid value for {name}: {raw!r}") from e

        return cls().with_overrides(
            deviation_warning_threshold=_get("DEVIATION_WARNING", parse_decimal),
            deviation_reject_threshold=_get("DEVIATION_REJECT", parse_decimal),
            default_heartbeat_seconds=_get("DEFAULT_HEARTBEAT", int),
            sequencer_grace_period_seconds=_get("SEQUENCER_GRACE_PERIOD", int),
            twap_period_seconds=_get("TWAP_PERIOD", int),
            read_timeout=_get("READ_TIMEOUT", float),
        )
