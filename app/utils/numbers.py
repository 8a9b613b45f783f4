"""Numeric helpers shared by the score and progress calculators."""
import math


def round_half_up(value: float) -> int:
    """
    Round to the nearest integer, with halves going up.

    Unlike ``round``, there is no banker's rounding: ``round_half_up(62.5)``
    is 63 and ``round_half_up(-2.5)`` is -2.
    """
    return int(math.floor(value + 0.5))
