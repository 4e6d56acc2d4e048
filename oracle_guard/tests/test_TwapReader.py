"""Unit tests for TwapReader and the tick math helpers."""

import math
from decimal import Decimal

import pytest
from conftest import POOL

from oracle_guard.src.PriceTypes import SourceKind
from oracle_guard.src.readers import (
    SPOT_FALLBACK_WARNING,
    TwapReader,
    average_tick,
    tick_to_price,
)


def tick_for(price: float) -> int:
    return math.floor(math.log(price) / math.log(1.0001))


class TestTickMath:
    """Test tick_to_price() and average_tick()."""

    def test_tick_zero_is_one(self) -> None:
        assert tick_to_price(0) == Decimal(1)

    def test_tick_one(self) -> None:
        assert tick_to_price(1) == Decimal("1.0001")

    def test_negative_tick_is_reciprocal(self) -> None:
        """1.0001 ** -t should equal 1 / 1.0001 ** t."""
        product = tick_to_price(-500) * tick_to_price(500)
        assert abs(product - 1) < Decimal("1e-25")

    def test_monotonic(self) -> None:
        """Higher ticks should always give higher prices."""
        ticks = [-887272, -76013, -1, 0, 1, 76013, 887272]
        prices = [tick_to_price(t) for t in ticks]
        assert prices == sorted(prices)
        assert len(set(prices)) == len(prices)

    def test_eth_usd_tick(self) -> None:
        """Tick 76013 should be about $2000."""
        assert abs(tick_to_price(76013) - 2000) < 1

    def test_average_tick(self) -> None:
        assert average_tick([0, 76013 * 1800], 1800) == 76013

    def test_average_tick_floors_negative(self) -> None:
        """Negative averages should round toward negative infinity."""
        assert average_tick([0, -3], 2) == -2
        assert average_tick([10, 13], 2) == 1


class TestTwapReader:
    """Test TWAP reads and the spot fallback."""

    @pytest.mark.asyncio
    async def test_fetch_twap(self, chain_data) -> None:
        """TWAP should use the average tick over the default window."""
        chain_data.set_pool_tick(1, POOL, 76013)
        reader = TwapReader(chain_data)

        result = await reader.fetch_twap(1, POOL)

        assert result.source_kind is SourceKind.TWAP
        assert result.tick == 76013
        assert result.period_seconds == 1800
        assert result.price == tick_to_price(76013)
        assert result.is_stale is False
        assert result.warning is None
        assert chain_data.calls_to("observe") == [("observe", 1, POOL, (1800, 0))]

    @pytest.mark.asyncio
    async def test_custom_period(self, chain_data) -> None:
        """A period override should be passed to observe()."""
        chain_data.set_pool_tick(1, POOL, tick_for(2060), period=300)
        reader = TwapReader(chain_data)

        result = await reader.fetch_twap(1, POOL, period_seconds=300)

        assert result.period_seconds == 300
        assert result.tick == tick_for(2060)
        assert chain_data.calls_to("observe") == [("observe", 1, POOL, (300, 0))]

    @pytest.mark.asyncio
    async def test_reader_default_period(self, chain_data) -> None:
        """The reader's configured window should apply without an override."""
        chain_data.set_pool_tick(1, POOL, 100, period=600)
        reader = TwapReader(chain_data, period_seconds=600)

        result = await reader.fetch_twap(1, POOL)

        assert result.tick == 100
        assert chain_data.calls_to("observe")[0][3] == (600, 0)

    @pytest.mark.asyncio
    @pytest.mark.parametrize("period", [0, -60])
    async def test_invalid_period(self, chain_data, period: int) -> None:
        with pytest.raises(ValueError, match="must be positive"):
            await TwapReader(chain_data).fetch_twap(1, POOL, period_seconds=period)
        assert chain_data.calls == []

    @pytest.mark.asyncio
    async def test_spot_fallback(self, chain_data, caplog) -> None:
        """Insufficient pool history should fall back to the current tick."""
        chain_data.set_current_tick(1, POOL, 76013)
        reader = TwapReader(chain_data)

        result = await reader.fetch_twap(1, POOL)

        assert result.source_kind is SourceKind.SPOT
        assert result.tick == 76013
        assert result.period_seconds == 0
        assert result.warning == SPOT_FALLBACK_WARNING
        assert result.price == tick_to_price(76013)
        assert len(chain_data.calls_to("current_tick")) == 1
        assert "falling back to spot" in caplog.text

    @pytest.mark.asyncio
    async def test_other_errors_propagate(self, chain_data) -> None:
        """Failures other than insufficient history should not fall back."""
        chain_data.set_current_tick(1, POOL, 76013)
        chain_data.fail("observe", 1, POOL, ConnectionError("rpc down"))

        with pytest.raises(ConnectionError, match="rpc down"):
            await TwapReader(chain_data).fetch_twap(1, POOL)
        assert chain_data.calls_to("current_tick") == []
