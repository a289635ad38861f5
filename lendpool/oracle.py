"""
oracle.py - Price oracle boundary for the lending pool

Provides the pricing interface the pool consumes and the integer conversions
between the native asset and the stable asset.

Classes:
- PriceQuote: An oracle answer with its fixed-point precision
- PriceOracle: Protocol defining the quote() interface
- StaticPriceOracle: Settable oracle for simulations and tests

Functions:
- convert_stable_to_native: stable units -> native units (floor)
- convert_native_to_stable: native units -> stable units (floor)

Quotes are stable-asset units per one whole native unit, scaled by
10**decimals (8 decimals by convention: 2000_00000000 means 2000 stable
per native). The pool performs no caching or staleness checking; every
call to quote() is treated as fresh and valid.
"""

from dataclasses import dataclass
from typing import Protocol, runtime_checkable

from .core import NATIVE_DECIMALS, InvalidPrice, mul_div


# Chainlink-style feeds answer with 8 decimals.
DEFAULT_PRICE_DECIMALS = 8


@dataclass(frozen=True, slots=True)
class PriceQuote:
    """
    A single oracle answer.

    Attributes:
        answer: Stable units per whole native unit, scaled by 10**decimals
        decimals: Fixed-point precision of answer
    """
    answer: int
    decimals: int = DEFAULT_PRICE_DECIMALS

    def __post_init__(self):
        if isinstance(self.answer, bool) or not isinstance(self.answer, int):
            raise TypeError(f"PriceQuote answer must be int, got {type(self.answer).__name__}")
        if self.answer <= 0:
            raise InvalidPrice(f"Oracle answer must be positive, got {self.answer}")
        if self.decimals < 0:
            raise InvalidPrice(f"Oracle decimals must be non-negative, got {self.decimals}")

    @classmethod
    def from_whole(cls, price: int, decimals: int = DEFAULT_PRICE_DECIMALS) -> 'PriceQuote':
        """Build a quote from a whole-number price, e.g. from_whole(2000)."""
        return cls(answer=price * 10 ** decimals, decimals=decimals)

    def __repr__(self):
        whole, frac = divmod(self.answer, 10 ** self.decimals)
        return f"PriceQuote({whole}.{frac:0{self.decimals}d})" if self.decimals else f"PriceQuote({whole})"


@runtime_checkable
class PriceOracle(Protocol):
    """
    Protocol for price oracles.

    An oracle supplies the current exchange rate between the native asset
    and the stable asset. Aggregation and staleness are its own concern.
    """

    def quote(self) -> PriceQuote:
        """Return the current native/stable exchange rate."""
        ...


class StaticPriceOracle:
    """
    Oracle with a settable price.

    The price stays fixed until update_price() is called, which makes it
    suitable for deterministic simulations and stress scenarios.
    """

    def __init__(self, price: int, decimals: int = DEFAULT_PRICE_DECIMALS):
        """
        Initialize with a whole-number price.

        Args:
            price: Stable units per whole native unit (e.g. 2000)
            decimals: Fixed-point precision of the quotes produced
        """
        self._quote = PriceQuote.from_whole(price, decimals)

    @classmethod
    def from_answer(cls, answer: int, decimals: int = DEFAULT_PRICE_DECIMALS) -> 'StaticPriceOracle':
        """Initialize from a raw fixed-point answer (e.g. 2500_00000000)."""
        oracle = cls.__new__(cls)
        oracle._quote = PriceQuote(answer=answer, decimals=decimals)
        return oracle

    def quote(self) -> PriceQuote:
        return self._quote

    def update_price(self, price: int):
        """Update the whole-number price, keeping the precision."""
        self._quote = PriceQuote.from_whole(price, self._quote.decimals)

    def update_answer(self, answer: int):
        """Update the raw fixed-point answer."""
        self._quote = PriceQuote(answer=answer, decimals=self._quote.decimals)

    def __repr__(self):
        return f"StaticPriceOracle({self._quote!r})"


def convert_stable_to_native(amount: int, quote: PriceQuote, stable_decimals: int) -> int:
    """
    Convert a stable-asset amount to native units at the quoted price.

    native = amount * 10**NATIVE_DECIMALS * 10**quote.decimals
             / (quote.answer * 10**stable_decimals)

    Rounds down.

    Example:
        # 10_000 USDT (6 decimals) at 2000 USD/ETH -> 5 ETH in wei
        convert_stable_to_native(10_000 * 10**6, PriceQuote.from_whole(2000), 6)
        # 5_000_000_000_000_000_000
    """
    numerator_scale = 10 ** (NATIVE_DECIMALS + quote.decimals)
    return mul_div(amount, numerator_scale, quote.answer * 10 ** stable_decimals)


def convert_native_to_stable(amount: int, quote: PriceQuote, stable_decimals: int) -> int:
    """
    Convert a native-asset amount to stable units at the quoted price.

    Rounds down.
    """
    return mul_div(
        amount,
        quote.answer * 10 ** stable_decimals,
        10 ** (NATIVE_DECIMALS + quote.decimals),
    )
