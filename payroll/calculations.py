"""
Loss of pay for unpaid (sick/casual) leave inside a pay period.
"""
import logging
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Iterable, Tuple

from timeoff.services import approved_unpaid_leave_between

from .utils import ZERO, days_inclusive, monthly_base, round_money

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LossOfPay:
    unpaid_days: int
    per_day_rate: Decimal
    deduction: Decimal


def unpaid_days_in_period(intervals: Iterable[Tuple[date, date]], period_start: date, period_end: date) -> int:
    """Sum of leave days clipped to the period; intervals outside it count zero."""
    total = 0
    for leave_start, leave_end in intervals:
        if leave_start > period_end or leave_end < period_start:
            continue
        total += days_inclusive(max(leave_start, period_start), min(leave_end, period_end))
    return total


def compute_loss_of_pay(
    intervals: Iterable[Tuple[date, date]],
    period_start: date,
    period_end: date,
    annual_base,
    days_in_month: int,
) -> LossOfPay:
    unpaid_days = unpaid_days_in_period(intervals, period_start, period_end)
    if unpaid_days == 0:
        return LossOfPay(unpaid_days=0, per_day_rate=ZERO, deduction=ZERO)

    per_day = round_money(monthly_base(annual_base) / Decimal(days_in_month))
    deduction = round_money(per_day * unpaid_days)
    return LossOfPay(unpaid_days=unpaid_days, per_day_rate=per_day, deduction=deduction)


def loss_of_pay_for_employee(
    employee_id,
    period_start: date,
    period_end: date,
    annual_base,
    days_in_month: int,
    db_alias: str = "default",
) -> LossOfPay:
    leaves = approved_unpaid_leave_between(employee_id, period_start, period_end, db_alias=db_alias)
    result = compute_loss_of_pay(
        [(leave.start_date, leave.end_date) for leave in leaves],
        period_start,
        period_end,
        annual_base,
        days_in_month,
    )
    if result.unpaid_days:
        logger.debug(
            "Employee %s: %s unpaid days at %s/day, deduction %s",
            employee_id,
            result.unpaid_days,
            result.per_day_rate,
            result.deduction,
        )
    return result
