"""
Bonus policies attached to a salary structure.

A policy is one of three closed variants. Structures persist it as JSON;
``parse_bonus_policy`` is the only place that interprets that JSON.
"""
import logging
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Union

from .utils import ZERO, monthly_base, round_money

logger = logging.getLogger(__name__)

TYPE_NONE = "none"
TYPE_PERCENTAGE = "percentage"
TYPE_FIXED_AMOUNT = "fixed_amount"

# Flat payloads written before the tagged format, checked in this order
LEGACY_KEYS = (
    ("percentage", TYPE_PERCENTAGE),
    ("amount", TYPE_FIXED_AMOUNT),
    ("fixed", TYPE_FIXED_AMOUNT),
)

TYPE_ALIASES = {
    "none": TYPE_NONE,
    "percentage": TYPE_PERCENTAGE,
    "percent": TYPE_PERCENTAGE,
    "fixed_amount": TYPE_FIXED_AMOUNT,
    "fixed": TYPE_FIXED_AMOUNT,
    "amount": TYPE_FIXED_AMOUNT,
}


class BonusPolicyError(ValueError):
    pass


@dataclass(frozen=True)
class NoBonus:
    def to_json(self) -> dict:
        return {"type": TYPE_NONE}


@dataclass(frozen=True)
class PercentageBonus:
    percentage: Decimal

    def to_json(self) -> dict:
        return {"type": TYPE_PERCENTAGE, "value": str(self.percentage)}


@dataclass(frozen=True)
class FixedAmountBonus:
    amount: Decimal

    def to_json(self) -> dict:
        return {"type": TYPE_FIXED_AMOUNT, "value": str(self.amount)}


BonusPolicy = Union[NoBonus, PercentageBonus, FixedAmountBonus]


def _parse_value(raw) -> Decimal:
    if raw is None or isinstance(raw, bool):
        raise BonusPolicyError(f"Bonus value must be a number, got {raw!r}.")
    try:
        value = Decimal(str(raw).strip())
    except (InvalidOperation, ValueError):
        raise BonusPolicyError(f"Bonus value must be a number, got {raw!r}.")
    if not value.is_finite():
        raise BonusPolicyError(f"Bonus value must be finite, got {raw!r}.")
    if value < 0:
        raise BonusPolicyError("Bonus value cannot be negative.")
    return value


def _build(kind: str, raw_value) -> BonusPolicy:
    if kind == TYPE_NONE:
        return NoBonus()
    value = _parse_value(raw_value)
    if kind == TYPE_PERCENTAGE:
        return PercentageBonus(percentage=value)
    return FixedAmountBonus(amount=value)


def parse_bonus_policy(payload) -> BonusPolicy:
    """
    Turn a bonus payload into a policy.

    Accepts ``None``/``{}`` (no bonus), the tagged form
    ``{"type": "percentage", "value": 10}`` and the legacy flat forms
    ``{"percentage": 10}``, ``{"amount": 500}`` and ``{"fixed": 500}``.
    Raises ``BonusPolicyError`` for anything else.
    """
    if isinstance(payload, (NoBonus, PercentageBonus, FixedAmountBonus)):
        return payload
    if payload is None:
        return NoBonus()
    if not isinstance(payload, dict):
        raise BonusPolicyError(f"Bonus policy must be an object, got {type(payload).__name__}.")
    if not payload:
        return NoBonus()

    if "type" in payload:
        kind = TYPE_ALIASES.get(str(payload["type"]).strip().lower())
        if kind is None:
            raise BonusPolicyError(f"Unknown bonus type: {payload['type']!r}.")
        return _build(kind, payload.get("value"))

    for key, kind in LEGACY_KEYS:
        if key in payload:
            return _build(kind, payload[key])

    raise BonusPolicyError(f"Unrecognized bonus policy keys: {sorted(payload)}.")


def calculate_bonus(policy, annual_base) -> Decimal:
    """
    Monthly bonus for a structure's annual base salary.

    ``policy`` is a parsed policy or the raw stored payload. A payload that
    cannot be parsed yields no bonus; one employee's bad data must not stop
    a payroll run.
    """
    try:
        policy = parse_bonus_policy(policy)
    except BonusPolicyError as exc:
        logger.warning("Ignoring malformed bonus policy %r: %s", policy, exc)
        return ZERO

    if isinstance(policy, PercentageBonus):
        return round_money(monthly_base(annual_base) * policy.percentage / Decimal("100"))
    if isinstance(policy, FixedAmountBonus):
        return round_money(policy.amount)
    return ZERO
