from decimal import ROUND_HALF_UP, Decimal
from typing import Union

# Amounts are whole units of the operating currency (UZS has no minor unit in use)
Money = int

Number = Union[Decimal, float, int, str]


def round_half_up(value: Number) -> int:
    """
    Round to the nearest integer, halves going up.

    Examples:
        >>> round_half_up(68.5)
        69
        >>> round_half_up("49.49")
        49
    """
    if not isinstance(value, Decimal):
        value = Decimal(str(value))
    return int(value.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def percent_of(part: Number, whole: Number) -> int:
    """Whole-number percentage of part in whole, rounded half up. 0 when whole is 0."""
    whole_d = Decimal(str(whole))
    if whole_d == 0:
        return 0
    return round_half_up(Decimal(str(part)) * 100 / whole_d)
