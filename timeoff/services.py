"""
Core helpers for leave requests and the paid leave balance.
"""
import logging
from datetime import date
from decimal import Decimal
from typing import List

from django.conf import settings
from django.db import transaction
from rest_framework.exceptions import NotFound, PermissionDenied

from employees.exceptions import InsufficientBalance, InvalidRange, InvalidState, Overlap
from employees.models import Employee

from .models import LeaveRequest

logger = logging.getLogger(__name__)

DEFAULT_MAX_REQUEST_DAYS = 30


def _max_request_days() -> int:
    return int(getattr(settings, "TIMEOFF_MAX_REQUEST_DAYS", DEFAULT_MAX_REQUEST_DAYS))


def calculate_duration_days(start_date: date, end_date: date) -> int:
    """Inclusive day count of a leave interval."""
    return (end_date - start_date).days + 1


def _get_employee(employee_id, db_alias: str, lock: bool = False) -> Employee:
    qs = Employee.objects.using(db_alias)
    if lock:
        qs = qs.select_for_update()
    employee = qs.filter(id=employee_id).first()
    if not employee:
        raise NotFound(f"Employee not found with ID: {employee_id}")
    return employee


def has_overlap(employee_id, start_date: date, end_date: date, db_alias: str = "default", exclude_request_id=None) -> bool:
    """Check overlapping requests in PENDING/APPROVED state."""
    qs = LeaveRequest.objects.using(db_alias).filter(
        employee_id=employee_id,
        status__in=LeaveRequest.BLOCKING_STATUSES,
        start_date__lte=end_date,
        end_date__gte=start_date,
    )
    if exclude_request_id:
        qs = qs.exclude(id=exclude_request_id)
    return qs.exists()


def apply_for_leave(
    *,
    employee_id,
    leave_type: str,
    start_date: date,
    end_date: date,
    reason: str = "",
    db_alias: str = "default",
) -> LeaveRequest:
    """
    Create a PENDING leave request.

    The employee row stays locked for the duration so a concurrent application
    or approval cannot interleave with the paid balance check.
    """
    if leave_type not in dict(LeaveRequest.TYPE_CHOICES):
        raise InvalidRange({"leave_type": f"Unknown leave type: {leave_type}"})
    if start_date > end_date:
        raise InvalidRange("Start date cannot be after end date.")

    duration = calculate_duration_days(start_date, end_date)
    max_days = _max_request_days()
    if duration > max_days:
        raise InvalidRange(f"Leave requests cannot exceed {max_days} days.")

    with transaction.atomic(using=db_alias):
        employee = _get_employee(employee_id, db_alias, lock=True)

        if has_overlap(employee.id, start_date, end_date, db_alias=db_alias):
            raise Overlap(
                "You already have pending or approved leave requests that overlap with the requested dates."
            )

        if leave_type == LeaveRequest.TYPE_PAID and employee.leave_balance < Decimal(duration):
            raise InsufficientBalance(
                f"Insufficient paid leave balance. Requested: {duration} days, "
                f"Available: {employee.leave_balance} days."
            )

        return LeaveRequest.objects.using(db_alias).create(
            employee=employee,
            leave_type=leave_type,
            start_date=start_date,
            end_date=end_date,
            reason=reason or "",
            status=LeaveRequest.STATUS_PENDING,
        )


def _debit_leave_balance(request: LeaveRequest, db_alias: str) -> Employee:
    """Debit the request's duration from the employee balance; never lets it go negative."""
    employee = _get_employee(request.employee_id, db_alias, lock=True)
    days = Decimal(request.duration_days)
    current = employee.leave_balance
    new_balance = current - days
    if new_balance < 0:
        raise InvalidState(
            f"Cannot approve leave. Would result in negative balance. Current: {current}, Requested: {days}"
        )
    employee.leave_balance = new_balance
    employee.save(using=db_alias, update_fields=["leave_balance", "updated_at"])
    logger.info(
        "Leave balance deducted for employee %s: %s -> %s (-%s days)",
        employee.employee_id,
        current,
        new_balance,
        days,
    )
    return employee


def set_leave_status(*, leave_id, status: str, db_alias: str = "default") -> LeaveRequest:
    """
    Move a PENDING request to APPROVED or REJECTED.

    Approving PAID leave debits the balance in the same transaction as the
    status change. Rejections and non-paid approvals leave the balance alone.
    """
    if status not in (LeaveRequest.STATUS_APPROVED, LeaveRequest.STATUS_REJECTED):
        raise InvalidState(f"Leave requests can only be approved or rejected, not moved to {status}.")

    with transaction.atomic(using=db_alias):
        request = LeaveRequest.objects.using(db_alias).select_for_update().filter(id=leave_id).first()
        if not request:
            raise NotFound(f"Leave request not found with ID: {leave_id}")
        if not request.is_pending:
            raise InvalidState("Only pending leave requests can have their status updated.")

        if status == LeaveRequest.STATUS_APPROVED:
            if request.is_paid_leave:
                _debit_leave_balance(request, db_alias)
            request.mark_approved()
        else:
            request.mark_rejected()
        request.save(using=db_alias)
    return request


def cancel_leave_request(*, leave_id, employee_id, db_alias: str = "default") -> None:
    """Owner cancellation of a PENDING request; the request is deleted."""
    with transaction.atomic(using=db_alias):
        request = LeaveRequest.objects.using(db_alias).select_for_update().filter(id=leave_id).first()
        if not request:
            raise NotFound(f"Leave request not found with ID: {leave_id}")
        if str(request.employee_id) != str(employee_id):
            raise PermissionDenied("You can only cancel your own leave requests.")
        if not request.is_pending:
            raise InvalidState("Only pending leave requests can be cancelled.")
        request.delete(using=db_alias)


def get_leave_request(leave_id, db_alias: str = "default") -> LeaveRequest:
    request = LeaveRequest.objects.using(db_alias).filter(id=leave_id).first()
    if not request:
        raise NotFound(f"Leave request not found with ID: {leave_id}")
    return request


def leave_requests_for_employee(employee_id, db_alias: str = "default") -> List[LeaveRequest]:
    _get_employee(employee_id, db_alias)
    return list(LeaveRequest.objects.using(db_alias).filter(employee_id=employee_id).order_by("-created_at"))


def leave_requests_by_status(status: str, db_alias: str = "default") -> List[LeaveRequest]:
    return list(LeaveRequest.objects.using(db_alias).filter(status=status).order_by("created_at"))


def all_leave_requests(db_alias: str = "default") -> List[LeaveRequest]:
    return list(LeaveRequest.objects.using(db_alias).order_by("-created_at"))


def approved_unpaid_leave_between(
    employee_id,
    start_date: date,
    end_date: date,
    db_alias: str = "default",
) -> List[LeaveRequest]:
    """Approved SICK/CASUAL requests intersecting [start_date, end_date]."""
    return list(
        LeaveRequest.objects.using(db_alias)
        .filter(
            employee_id=employee_id,
            status=LeaveRequest.STATUS_APPROVED,
            leave_type__in=LeaveRequest.UNPAID_TYPES,
            start_date__lte=end_date,
            end_date__gte=start_date,
        )
        .order_by("start_date")
    )
