import calendar
from datetime import date
from decimal import Decimal, ROUND_HALF_UP
from typing import Tuple

MONEY_SCALE = 2
MONTHS_PER_YEAR = Decimal("12")
ZERO = Decimal("0.00")


def to_decimal(value, default=ZERO) -> Decimal:
    if value is None:
        return default
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def round_money(value) -> Decimal:
    """The single rounding policy for money: two decimals, half up."""
    if value is None:
        return ZERO
    quant = Decimal("1").scaleb(-MONEY_SCALE)
    return to_decimal(value).quantize(quant, rounding=ROUND_HALF_UP)


def monthly_base(annual_base) -> Decimal:
    return round_money(to_decimal(annual_base) / MONTHS_PER_YEAR)


def month_bounds(year: int, month: int) -> Tuple[date, date, int]:
    last_day = calendar.monthrange(year, month)[1]
    start = date(year, month, 1)
    end = date(year, month, last_day)
    return start, end, last_day


def days_inclusive(start: date, end: date) -> int:
    if start > end:
        return 0
    return (end - start).days + 1
