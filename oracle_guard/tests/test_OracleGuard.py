"""Unit tests for the OracleGuard facade."""

from decimal import Decimal

import pytest
from conftest import NOW, POOL

from oracle_guard.src.FeedRegistry import DEFAULT_FEEDS
from oracle_guard.src.GuardConfig import GuardConfig
from oracle_guard.src.OracleGuard import OracleGuard
from oracle_guard.src.PriceTypes import SourceKind

UNI_USD = "0x553303d460EE0afB37EdFf9bE42922D8FF63220e"


class TestOracleGuardWiring:
    """Test that configuration reaches every component."""

    def test_default_config(self, chain_data) -> None:
        guard = OracleGuard(chain_data)
        assert guard.config == GuardConfig()
        assert guard.reconciler.reject_threshold == Decimal("0.05")
        assert guard.quotes.reject_threshold == Decimal("0.05")

    def test_config_propagates(self, chain_data) -> None:
        config = GuardConfig(
            deviation_warning_threshold="0.01",
            deviation_reject_threshold="0.03",
            sequencer_grace_period_seconds=600,
            twap_period_seconds=900,
            read_timeout=2.0,
        )
        guard = OracleGuard(chain_data, config)

        assert guard.reconciler.warning_threshold == Decimal("0.01")
        assert guard.quotes.reject_threshold == Decimal("0.03")
        assert guard.sequencer.grace_period_seconds == 600
        assert guard.twap.period_seconds == 900
        assert guard.chainlink.read_timeout == 2.0


class TestOracleGuardRegistries:
    """Test runtime feed and heartbeat management."""

    def test_supported_pairs(self, guard) -> None:
        assert guard.get_supported_pairs(8453) == ["ETH/USD", "USDC/USD"]
        assert guard.get_supported_pairs(999) == []

    def test_is_l2_with_sequencer(self, guard) -> None:
        assert guard.is_l2_with_sequencer(42161) is True
        assert guard.is_l2_with_sequencer(1) is False

    @pytest.mark.asyncio
    async def test_add_feed(self, guard, chain_data) -> None:
        """A runtime feed should be readable immediately."""
        chain_data.set_round(1, UNI_USD, answer=750_000_000)
        guard.add_feed(1, "UNI/USD", UNI_USD)

        result = await guard.get_chainlink_price("UNI/USD", 1)

        assert result.price == Decimal("7.5")
        assert "UNI/USD" in guard.get_supported_pairs(1)
        assert "UNI/USD" not in DEFAULT_FEEDS[1]

    def test_add_feed_isolated_between_guards(self, chain_data) -> None:
        first = OracleGuard(chain_data)
        second = OracleGuard(chain_data)

        first.add_feed(1, "UNI/USD", UNI_USD)

        assert "UNI/USD" not in second.get_supported_pairs(1)

    def test_add_sequencer_feed(self, guard) -> None:
        guard.add_feed(137, "SEQUENCER", UNI_USD)
        assert guard.is_l2_with_sequencer(137) is True

    @pytest.mark.asyncio
    async def test_set_asset_heartbeat(self, guard, chain_data) -> None:
        """A shorter heartbeat should make a fresh-looking price stale."""
        result = await guard.get_chainlink_price("ETH/USD", 1)
        assert result.is_stale is False

        guard.set_asset_heartbeat("ETH/USD", 30)
        result = await guard.get_chainlink_price("ETH/USD", 1)

        assert result.is_stale is True
        assert result.heartbeat_seconds == 30


class TestOracleGuardReads:
    """Test the read pass-throughs."""

    @pytest.mark.asyncio
    async def test_get_twap_price(self, guard, chain_data) -> None:
        chain_data.set_pool_tick(1, POOL, 76013, period=600)

        result = await guard.get_twap_price(1, POOL, period_seconds=600)

        assert result.source_kind is SourceKind.TWAP
        assert result.period_seconds == 600

    @pytest.mark.asyncio
    async def test_check_sequencer_health(self, guard) -> None:
        status = await guard.check_sequencer_health(42161)
        assert status.is_up is True
        assert status.up_since == NOW - 7200

    @pytest.mark.asyncio
    async def test_validated_price_serializes(self, guard, chain_data) -> None:
        chain_data.set_pool_tick(1, POOL, 76013)

        data = (await guard.get_validated_price("ETH/USD", 1, POOL)).to_dict()

        assert data["confidence"] == "high"
        assert data["sources"]["twap"]["source_kind"] == "twap"
        assert data["sources"]["oracle"]["round_id"] == "100"
        assert data["sequencer_status"]["is_l1"] is True
