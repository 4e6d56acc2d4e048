"""PricePair: Trading pair representation used as a feed registry key.

Pairs are normalized to uppercase ``BASE/QUOTE`` form, matching the way
Chainlink names its feeds ("ETH / USD").

.. code-block:: python

    >>> pair = PricePair("eth", "usd")
    >>> str(pair)
    'ETH/USD'
    >>> PricePair.from_string("btc/usd").base
    'BTC'
"""

from __future__ import annotations


class PricePair:
    """A base/quote price pair.

    :ivar base: Base asset symbol (uppercase).
    :ivar quote: Quote asset symbol (uppercase).
    """

    def __init__(self, base: str, quote: str) -> None:
        """Initialize a price pair.

        :param base: Base asset symbol (e.g., "ETH", "BTC", "USDC").
        :param quote: Quote asset symbol (e.g., "USD").
        :raises ValueError: If either symbol is empty.
        """
        base = base.strip().upper()
        quote = quote.strip().upper()
        if not base or not quote:
            raise ValueError("Pair symbols must not be empty")
        self.base = base
        self.quote = quote

    def __str__(self) -> str:
        """Return the registry key for this pair."""
        return f"{self.base}/{self.quote}"

    def __repr__(self) -> str:
        """Return a developer-friendly string representation."""
        return f"PricePair({self.base!r}, {self.quote!r})"

    def __hash__(self) -> int:
        """Return hash for use in dicts and sets."""
        return hash(str(self))

    def __eq__(self, other: object) -> bool:
        """Check equality based on string representation."""
        if not isinstance(other, PricePair):
            return NotImplemented
        return str(self) == str(other)

    @classmethod
    def from_string(cls, pair_str: str) -> PricePair:
        """Parse a pair string in format "base/quote".

        Whitespace around the separator is tolerated so Chainlink feed
        descriptions ("ETH / USD") parse as well.

        :param pair_str: Pair string like "ETH/USD" or "eth / usd".
        :returns: New PricePair instance.
        :raises ValueError: If pair string format is invalid.
        """
        parts = pair_str.split("/")
        if len(parts) != 2 or not parts[0].strip() or not parts[1].strip():
            raise ValueError(
                f"Invalid pair format '{pair_str}'. Expected 'BASE/QUOTE' (e.g., 'ETH/USD')"
            )
        return cls(parts[0], parts[1])


def normalize_pair(pair: str | PricePair) -> str:
    """Return the canonical registry key for a pair.

    :param pair: Pair string or PricePair instance.
    :returns: Canonical "BASE/QUOTE" string.
    :raises ValueError: If the pair string is malformed.
    """
    if isinstance(pair, PricePair):
        return str(pair)
    return str(PricePair.from_string(pair))
