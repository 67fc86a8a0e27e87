"""
Salary structure timeline: per-employee, non-overlapping, date-ordered
compensation history.
"""
import logging
from datetime import date, timedelta
from decimal import Decimal, InvalidOperation
from typing import List, Optional

from django.db import transaction
from django.db.models import Q
from django.utils import timezone
from rest_framework.exceptions import NotFound

from employees.exceptions import Conflict, InvalidRange
from employees.models import Employee

from .bonus import BonusPolicyError, parse_bonus_policy
from .models import SalaryStructure
from .utils import to_decimal

logger = logging.getLogger(__name__)

# Stand-in upper bound for open-ended structures in interval comparisons
FAR_FUTURE = date(9999, 12, 31)

UPDATABLE_FIELDS = ("base_salary", "bonus_details", "effective_from", "effective_to")


def _ensure_employee(employee_id, db_alias: str, lock: bool = False) -> Employee:
    qs = Employee.objects.using(db_alias)
    if lock:
        qs = qs.select_for_update()
    employee = qs.filter(id=employee_id).first()
    if not employee:
        raise NotFound(f"Employee not found with ID: {employee_id}")
    return employee


def _validate_structure_fields(base_salary: Decimal, effective_from: Optional[date], effective_to: Optional[date]):
    if effective_from is None:
        raise InvalidRange("Effective from date is required.")
    if effective_to is not None and effective_to <= effective_from:
        raise InvalidRange("Effective to date must be after effective from date.")
    if base_salary is None or base_salary <= 0:
        raise InvalidRange({"base_salary": "Base salary must be positive."})

    one_year_ago = timezone.localdate() - timedelta(days=365)
    if effective_from < one_year_ago:
        logger.warning("Effective from date is more than a year in the past: %s", effective_from)


def _parse_base_salary(value):
    try:
        return to_decimal(value, default=None)
    except (InvalidOperation, ValueError):
        raise InvalidRange({"base_salary": "Base salary must be a number."})


def _normalize_bonus(bonus_details) -> dict:
    """Store policies in their tagged form; an empty payload stays empty."""
    if not bonus_details:
        return {}
    try:
        return parse_bonus_policy(bonus_details).to_json()
    except BonusPolicyError as exc:
        raise InvalidRange({"bonus_details": str(exc)})


def find_overlapping_structures(
    employee_id,
    effective_from: date,
    effective_to: Optional[date],
    db_alias: str = "default",
    exclude_structure_id=None,
):
    """Structures of the employee whose [from, to] intersects the given interval."""
    upper = effective_to or FAR_FUTURE
    qs = SalaryStructure.objects.using(db_alias).filter(
        employee_id=employee_id,
        effective_from__lte=upper,
    ).filter(_open_or_ends_after(effective_from))
    if exclude_structure_id:
        qs = qs.exclude(id=exclude_structure_id)
    return qs


def _open_or_ends_after(on_date: date) -> Q:
    return Q(effective_to__isnull=True) | Q(effective_to__gte=on_date)


def _close_open_structures(employee_id, new_effective_from: date, db_alias: str) -> int:
    """Close open structures that started before the new one on the day before it starts."""
    close_on = new_effective_from - timedelta(days=1)
    to_close = SalaryStructure.objects.using(db_alias).filter(
        employee_id=employee_id,
        effective_to__isnull=True,
        effective_from__lt=new_effective_from,
    )
    closed = 0
    for structure in to_close:
        structure.effective_to = close_on
        structure.save(using=db_alias, update_fields=["effective_to", "updated_at"])
        closed += 1
        logger.info("Closed salary structure %s for employee %s on %s", structure.id, employee_id, close_on)
    return closed


def assign_salary_structure(
    *,
    employee_id,
    base_salary,
    bonus_details=None,
    effective_from: date,
    effective_to: Optional[date] = None,
    db_alias: str = "default",
) -> SalaryStructure:
    """
    Assign a new structure and close the employee's previous open one.

    Raises ``NotFound`` for an unknown employee, ``InvalidRange`` for bad
    dates or salary, and ``Conflict`` when the new interval would still
    overlap an existing structure after the open one is closed.
    """
    _ensure_employee(employee_id, db_alias)
    base_salary = _parse_base_salary(base_salary)
    _validate_structure_fields(base_salary, effective_from, effective_to)
    bonus_payload = _normalize_bonus(bonus_details)

    with transaction.atomic(using=db_alias):
        employee = _ensure_employee(employee_id, db_alias, lock=True)
        _close_open_structures(employee.id, effective_from, db_alias)

        if find_overlapping_structures(employee.id, effective_from, effective_to, db_alias=db_alias).exists():
            raise Conflict("The new salary structure would overlap with existing salary structures.")

        return SalaryStructure.objects.using(db_alias).create(
            employee=employee,
            base_salary=base_salary,
            bonus_details=bonus_payload,
            effective_from=effective_from,
            effective_to=effective_to,
        )


def get_salary_structure(structure_id, db_alias: str = "default") -> SalaryStructure:
    structure = SalaryStructure.objects.using(db_alias).filter(id=structure_id).first()
    if not structure:
        raise NotFound(f"Salary structure not found with ID: {structure_id}")
    return structure


def update_salary_structure(*, structure_id, changes: dict, db_alias: str = "default") -> SalaryStructure:
    """
    Apply ``changes`` (any of base_salary, bonus_details, effective_from,
    effective_to) after re-checking overlap against the employee's other
    structures.
    """
    unknown = set(changes) - set(UPDATABLE_FIELDS)
    if unknown:
        raise InvalidRange({field: "This field cannot be updated." for field in sorted(unknown)})

    with transaction.atomic(using=db_alias):
        structure = SalaryStructure.objects.using(db_alias).select_for_update().filter(id=structure_id).first()
        if not structure:
            raise NotFound(f"Salary structure not found with ID: {structure_id}")

        base_salary = _parse_base_salary(changes.get("base_salary", structure.base_salary))
        effective_from = changes.get("effective_from", structure.effective_from)
        effective_to = changes.get("effective_to", structure.effective_to)
        _validate_structure_fields(base_salary, effective_from, effective_to)

        overlapping = find_overlapping_structures(
            structure.employee_id,
            effective_from,
            effective_to,
            db_alias=db_alias,
            exclude_structure_id=structure.id,
        )
        if overlapping.exists():
            raise Conflict("The updated dates would overlap with existing salary structures.")

        structure.base_salary = base_salary
        structure.effective_from = effective_from
        structure.effective_to = effective_to
        if "bonus_details" in changes:
            structure.bonus_details = _normalize_bonus(changes["bonus_details"])
        structure.save(using=db_alias)
    return structure


def delete_salary_structure(structure_id, db_alias: str = "default") -> None:
    deleted, _ = SalaryStructure.objects.using(db_alias).filter(id=structure_id).delete()
    if not deleted:
        raise NotFound(f"Salary structure not found with ID: {structure_id}")


def get_active_structure(employee_id, on_date: date, db_alias: str = "default") -> SalaryStructure:
    """The structure whose interval contains ``on_date``; ``NotFound`` if none does."""
    structure = (
        SalaryStructure.objects.using(db_alias)
        .filter(employee_id=employee_id, effective_from__lte=on_date)
        .filter(_open_or_ends_after(on_date))
        .order_by("-effective_from")
        .first()
    )
    if not structure:
        raise NotFound(f"No active salary structure found for employee {employee_id} on {on_date}.")
    return structure


def get_current_structure(employee_id, db_alias: str = "default") -> SalaryStructure:
    _ensure_employee(employee_id, db_alias)
    return get_active_structure(employee_id, timezone.localdate(), db_alias=db_alias)


def structure_history(employee_id, db_alias: str = "default") -> List[SalaryStructure]:
    _ensure_employee(employee_id, db_alias)
    return list(
        SalaryStructure.objects.using(db_alias).filter(employee_id=employee_id).order_by("-effective_from")
    )
