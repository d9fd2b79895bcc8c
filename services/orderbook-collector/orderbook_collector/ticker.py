"""
交易对模型

A ``Ticker`` is the parsed form of a ``"BASE_QUOTE"`` symbol string such as
``"BTC_USDT"``. The first ``_`` splits base from quote; case is preserved.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from .exceptions import TickerFormatError

SEPARATOR = "_"


@dataclass(frozen=True)
class Ticker:
    """Immutable base/quote pair."""

    base: str
    quote: str

    def __post_init__(self) -> None:
        if not self.base or not self.quote:
            raise TickerFormatError(
                f"base and quote must be non-empty: {self.base!r}/{self.quote!r}",
                symbol=f"{self.base}{SEPARATOR}{self.quote}",
            )

    @classmethod
    def parse(cls, symbol: str) -> Optional["Ticker"]:
        """Parse ``symbol``; returns None when it is not a valid pair."""
        try:
            return cls.from_symbol(symbol)
        except TickerFormatError:
            return None

    @classmethod
    def from_symbol(cls, symbol: str) -> "Ticker":
        """Strict variant of :meth:`parse` that raises ``TickerFormatError``."""
        if not isinstance(symbol, str) or SEPARATOR not in symbol:
            raise TickerFormatError(f"Invalid symbol format: {symbol!r}", symbol=str(symbol))
        base, quote = symbol.split(SEPARATOR, 1)
        return cls(base=base, quote=quote)

    @property
    def symbol(self) -> str:
        return f"{self.base}{SEPARATOR}{self.quote}"

    def __str__(self) -> str:
        return self.symbol
