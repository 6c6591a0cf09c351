# servicepro/core/numbers.py
import math


def round_half_up(value: float, digits: int = 0) -> float:
    """Round ties toward +infinity (4.25 -> 4.3) instead of Python's round-half-to-even."""
    factor = 10 ** digits
    return math.floor(value * factor + 0.5) / factor
