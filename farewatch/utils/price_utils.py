"""
Price utility functions for FareWatch.

Rounding follows the "half up" convention used for displayed percentages
and scores (2.5 -> 3, -2.5 -> -2), not Python's banker's rounding.
"""

import math
from typing import Optional

CURRENCY_SYMBOLS = {
    "USD": "$",
    "EUR": "€",
    "GBP": "£",
    "JPY": "¥",
}


def round_half_up(value: float, digits: int = 0) -> float:
    """
    Round with halves going towards positive infinity.

    Examples:
        >>> round_half_up(2.5)
        3.0
        >>> round_half_up(-2.5)
        -2.0
        >>> round_half_up(14.25, 1)
        14.3
    """
    factor = 10 ** digits
    return math.floor(value * factor + 0.5) / factor


def percent_change(current: float, previous: Optional[float]) -> int:
    """
    Whole-number percent change from ``previous`` to ``current``.

    Examples:
        >>> percent_change(490, 500)
        -2
        >>> percent_change(450, None)
        0
    """
    if not previous:
        return 0
    return int(round_half_up((current - previous) / previous * 100))


def format_price(price: Optional[float], currency: str = "USD", decimals: int = 0) -> str:
    """
    Format price with its currency symbol and thousands separator.

    Examples:
        >>> format_price(1234.56)
        '$1,235'
        >>> format_price(99.5, "EUR", decimals=2)
        '€99.50'
        >>> format_price(80, "CHF")
        'CHF 80'
    """
    if price is None:
        price = 0.0

    amount = round_half_up(price, decimals)
    formatted = f"{amount:,.{decimals}f}"

    symbol = CURRENCY_SYMBOLS.get((currency or "").upper())
    if symbol:
        return f"{symbol}{formatted}"
    return f"{currency} {formatted}"
