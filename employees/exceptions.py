"""
Error taxonomy shared by the time off and payroll services.

The API-facing errors subclass Django REST framework exceptions so views can
let them propagate and DRF renders the right status code.
"""
from rest_framework import status
from rest_framework.exceptions import APIException, ValidationError


class InvalidState(APIException):
    """Illegal state machine transition (leave status, payroll run lifecycle)."""

    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = "The requested transition is not allowed in the current state."
    default_code = "invalid_state"


class Conflict(APIException):
    status_code = status.HTTP_409_CONFLICT
    default_detail = "The request conflicts with existing data."
    default_code = "conflict"


class NotAvailable(APIException):
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = "The requested resource is not available yet."
    default_code = "not_available"


class InvalidRange(ValidationError):
    default_detail = "Invalid date range."
    default_code = "invalid_range"


class Overlap(ValidationError):
    default_detail = "The requested dates overlap an existing request."
    default_code = "overlap"


class InsufficientBalance(ValidationError):
    default_detail = "Insufficient paid leave balance."
    default_code = "insufficient_balance"


class ComputationSkip(Exception):
    """Raised while computing one employee's pay item; the run skips that employee."""

    def __init__(self, employee_id, reason):
        self.employee_id = employee_id
        self.reason = reason
        super().__init__(f"Skipping employee {employee_id}: {reason}")
