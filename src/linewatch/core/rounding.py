from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal


def round_half_up(value: float, ndigits: int = 0) -> float:
    """Round like a shop-floor calculator: 0.5 goes up, not to the even neighbour.

    The value goes through ``str`` first so 8.95 rounds to 9.0 instead of
    following its binary expansion down to 8.9.
    """
    quantum = Decimal(1).scaleb(-ndigits)
    return float(Decimal(str(value)).quantize(quantum, rounding=ROUND_HALF_UP))


def round_int(value: float) -> int:
    return int(round_half_up(value))
