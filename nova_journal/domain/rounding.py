"""Rounding shared by money, ratio and rate fields."""

from decimal import Decimal, ROUND_HALF_DOWN, ROUND_HALF_UP


def round_half_up(value: float, places: int = 0) -> float:
    """
    Round to `places` decimals with halves going toward positive infinity.

    0.125 -> 0.13, 12.5 -> 13, -0.125 -> -0.12. Works on the shortest
    decimal repr of the float, so 1.005 rounds to 1.01.
    """
    d = Decimal(repr(float(value)))
    rounding = ROUND_HALF_UP if d >= 0 else ROUND_HALF_DOWN
    return float(d.quantize(Decimal(1).scaleb(-places), rounding=rounding))
