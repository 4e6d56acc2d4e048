"""Shared fixtures: an in-memory chain-data source and a frozen clock."""

import asyncio
from unittest.mock import patch

import pytest

from oracle_guard.src.errors import InsufficientHistoryError
from oracle_guard.src.GuardConfig import GuardConfig
from oracle_guard.src.OracleGuard import OracleGuard
from oracle_guard.src.readers.base import RoundData

NOW = 1_700_000_000

ETH_USD_MAINNET = "0x5f4eC3Df9cbd43714FE2740f5E3616155c5b8419"
ETH_USD_ARBITRUM = "0x639Fe6ab55C921f74e7fac1ee960C0B6293ba612"
ARBITRUM_SEQUENCER = "0xFdB631F5EE196F0ed6FAa767959853A9F217697D"
POOL = "0x88e6a0c2ddd26feeb64f039a2c41296fcb3f5640"

# $2000 with 8 decimals
ANSWER_2000 = 200_000_000_000


class FakeChainData:
    """In-memory ChainDataSource that records every call."""

    def __init__(self) -> None:
        self.rounds: dict[tuple[int, str], RoundData] = {}
        self.feed_decimals: dict[tuple[int, str], int] = {}
        self.cumulatives: dict[tuple[int, str], list[int]] = {}
        self.ticks: dict[tuple[int, str], int] = {}
        self.errors: dict[tuple[str, int, str], Exception] = {}
        self.delays: dict[str, float] = {}
        self.calls: list[tuple] = []

    def set_round(
        self,
        chain_id: int,
        address: str,
        answer: int = ANSWER_2000,
        updated_at: int = NOW - 60,
        started_at: int | None = None,
        round_id: int = 100,
        answered_in_round: int | None = None,
        decimals: int = 8,
    ) -> None:
        key = (chain_id, address.lower())
        self.rounds[key] = RoundData(
            round_id=round_id,
            answer=answer,
            started_at=updated_at if started_at is None else started_at,
            updated_at=updated_at,
            answered_in_round=round_id if answered_in_round is None else answered_in_round,
        )
        self.feed_decimals[key] = decimals

    def set_sequencer(self, chain_id: int, address: str, answer: int, started_at: int) -> None:
        self.set_round(chain_id, address, answer=answer, updated_at=NOW - 60,
                       started_at=started_at, round_id=1)

    def set_pool_tick(self, chain_id: int, pool: str, tick: int, period: int = 1800) -> None:
        self.cumulatives[(chain_id, pool.lower())] = [0, tick * period]

    def set_current_tick(self, chain_id: int, pool: str, tick: int) -> None:
        self.ticks[(chain_id, pool.lower())] = tick

    def fail(self, method: str, chain_id: int, address: str, error: Exception) -> None:
        self.errors[(method, chain_id, address.lower())] = error

    def calls_to(self, method: str) -> list[tuple]:
        return [c for c in self.calls if c[0] == method]

    async def _enter(self, method: str, chain_id: int, address: str, *extra) -> None:
        self.calls.append((method, chain_id, address.lower(), *extra))
        if method in self.delays:
            await asyncio.sleep(self.delays[method])
        error = self.errors.get((method, chain_id, address.lower()))
        if error is not None:
            raise error

    async def latest_round_data(self, chain_id: int, address: str) -> RoundData:
        await self._enter("latest_round_data", chain_id, address)
        return self.rounds[(chain_id, address.lower())]

    async def decimals(self, chain_id: int, address: str) -> int:
        await self._enter("decimals", chain_id, address)
        return self.feed_decimals[(chain_id, address.lower())]

    async def observe(self, chain_id: int, pool: str, seconds_agos: list[int]) -> list[int]:
        await self._enter("observe", chain_id, pool, tuple(seconds_agos))
        key = (chain_id, pool.lower())
        if key not in self.cumulatives:
            raise InsufficientHistoryError("OLD")
        return self.cumulatives[key]

    async def current_tick(self, chain_id: int, pool: str) -> int:
        await self._enter("current_tick", chain_id, pool)
        return self.ticks[(chain_id, pool.lower())]


@pytest.fixture
def frozen_time():
    """Pin time.time() to NOW."""
    with patch("time.time", return_value=float(NOW)):
        yield NOW


@pytest.fixture
def chain_data(frozen_time) -> FakeChainData:
    """Fake chain with a fresh $2000 ETH/USD feed on mainnet and Arbitrum.

    The Arbitrum sequencer has been up for two hours.
    """
    fake = FakeChainData()
    fake.set_round(1, ETH_USD_MAINNET)
    fake.set_round(42161, ETH_USD_ARBITRUM)
    fake.set_sequencer(42161, ARBITRUM_SEQUENCER, answer=0, started_at=NOW - 7200)
    return fake


@pytest.fixture
def guard(chain_data) -> OracleGuard:
    """OracleGuard with default configuration over the fake chain."""
    return OracleGuard(chain_data, GuardConfig())
