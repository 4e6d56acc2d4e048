"""Chain-data collaborator interface and shared reader plumbing.

Readers never talk to an RPC node directly. They are handed a
``ChainDataSource`` (see ``ChainData.Web3ChainData`` for the web3.py
implementation, or an in-memory fake in tests) and wrap each call with the
configured per-read deadline.

.. code-block:: python

    class MyReader(BaseReader):
        name = "myreader"

        async def fetch(self, chain_id: int, address: str) -> int:
            return await self._read(
                chain_id, "decimals", self.chain_data.decimals(chain_id, address)
            )
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable
from typing import ClassVar, NamedTuple, Protocol, TypeVar, runtime_checkable

from ..errors import ReadTimeoutError

logger = logging.getLogger(__name__)

T = TypeVar("T")


class RoundData(NamedTuple):
    """Return value of ``AggregatorV3Interface.latestRoundData()``."""

    round_id: int
    answer: int
    started_at: int
    updated_at: int
    answered_in_round: int


@runtime_checkable
class ChainDataSource(Protocol):
    """Read-only access to on-chain state.

    Implementations own retries and transport concerns; readers call each
    method once.
    """

    async def latest_round_data(self, chain_id: int, address: str) -> RoundData:
        """Read the latest round of a Chainlink-style feed."""
        ...

    async def decimals(self, chain_id: int, address: str) -> int:
        """Read the answer decimals of a Chainlink-style feed."""
        ...

    async def observe(
        self, chain_id: int, pool: str, seconds_agos: list[int]
    ) -> list[int]:
        """Read tick cumulatives for each seconds-ago offset.

        :raises InsufficientHistoryError: If the pool cannot serve the
            oldest offset.
        """
        ...

    async def current_tick(self, chain_id: int, pool: str) -> int:
        """Read the pool's current tick."""
        ...


class BaseReader:
    """Base class for chain readers.

    :cvar name: Component tag used in log messages.
    :ivar chain_data: Chain-data collaborator.
    :ivar read_timeout: Per-read deadline in seconds, None for unbounded.
    """

    name: ClassVar[str] = ""

    def __init__(
        self, chain_data: ChainDataSource, read_timeout: float | None = None
    ) -> None:
        """Initialize the reader.

        :param chain_data: Chain-data collaborator.
        :param read_timeout: Per-read deadline in seconds (None disables it).
        """
        self.chain_data = chain_data
        self.read_timeout = read_timeout

    async def _read(self, chain_id: int, operation: str, call: Awaitable[T]) -> T:
        """Await a collaborator call under the read deadline.

        :param chain_id: Chain being read (for error context).
        :param operation: Operation name (for error context).
        :param call: Awaitable returned by the collaborator.
        :returns: The call's result.
        :raises ReadTimeoutError: If the deadline expires.
        """
        if self.read_timeout is None:
            return await call
        try:
            return await asyncio.wait_for(call, timeout=self.read_timeout)
        except asyncio.TimeoutError as e:
            logger.warning(
                f"[{self.name}] {operation} on chain {chain_id} timed out "
                f"after {self.read_timeout}s"
            )
            raise ReadTimeoutError(operation, self.read_timeout, chain_id) from e
