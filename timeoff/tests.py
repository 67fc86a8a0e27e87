from datetime import date
from decimal import Decimal
import uuid

from django.test import TestCase, override_settings
from rest_framework.exceptions import NotFound, PermissionDenied

from employees.exceptions import InsufficientBalance, InvalidRange, InvalidState, Overlap
from employees.models import Employee
from timeoff.models import LeaveRequest
from timeoff.serializers import LeaveRequestInputSerializer, LeaveRequestSerializer, LeaveStatusUpdateSerializer
from timeoff.services import (
    all_leave_requests,
    apply_for_leave,
    approved_unpaid_leave_between,
    calculate_duration_days,
    cancel_leave_request,
    get_leave_request,
    has_overlap,
    leave_requests_by_status,
    leave_requests_for_employee,
    set_leave_status,
)


class LeaveLedgerTests(TestCase):
    def setUp(self):
        self.employee = Employee.objects.create(
            employee_id="E1",
            first_name="Jane",
            last_name="Doe",
            email="jane@example.com",
            job_title="Engineer",
            leave_balance=Decimal("10.00"),
        )
        self.other = Employee.objects.create(
            employee_id="E2",
            first_name="John",
            last_name="Roe",
            email="john@example.com",
            leave_balance=Decimal("3.00"),
        )

    def _apply(self, employee=None, leave_type=LeaveRequest.TYPE_PAID, start=None, end=None, **kwargs):
        return apply_for_leave(
            employee_id=(employee or self.employee).id,
            leave_type=leave_type,
            start_date=start or date(2025, 9, 1),
            end_date=end or date(2025, 9, 3),
            **kwargs,
        )

    def _refresh_balance(self, employee):
        employee.refresh_from_db()
        return employee.leave_balance

    def test_duration_is_inclusive(self):
        self.assertEqual(calculate_duration_days(date(2025, 8, 1), date(2025, 8, 1)), 1)
        self.assertEqual(calculate_duration_days(date(2025, 8, 1), date(2025, 8, 2)), 2)

    def test_apply_creates_pending_request(self):
        request = self._apply(reason="Family trip")
        self.assertEqual(request.status, LeaveRequest.STATUS_PENDING)
        self.assertEqual(request.duration_days, 3)
        self.assertEqual(request.reason, "Family trip")
        # Balance is not touched until approval
        self.assertEqual(self._refresh_balance(self.employee), Decimal("10.00"))

    def test_apply_unknown_employee(self):
        with self.assertRaises(NotFound):
            apply_for_leave(
                employee_id=uuid.uuid4(),
                leave_type=LeaveRequest.TYPE_SICK,
                start_date=date(2025, 9, 1),
                end_date=date(2025, 9, 1),
            )

    def test_apply_rejects_start_after_end(self):
        with self.assertRaises(InvalidRange):
            self._apply(start=date(2025, 9, 5), end=date(2025, 9, 1))

    def test_apply_rejects_unknown_type(self):
        with self.assertRaises(InvalidRange):
            self._apply(leave_type="MATERNITY")

    def test_apply_rejects_requests_longer_than_thirty_days(self):
        with self.assertRaises(InvalidRange):
            self._apply(leave_type=LeaveRequest.TYPE_SICK, start=date(2025, 9, 1), end=date(2025, 10, 1))
        request = self._apply(leave_type=LeaveRequest.TYPE_SICK, start=date(2025, 9, 1), end=date(2025, 9, 30))
        self.assertEqual(request.duration_days, 30)

    @override_settings(TIMEOFF_MAX_REQUEST_DAYS=5)
    def test_maximum_duration_is_configurable(self):
        with self.assertRaises(InvalidRange):
            self._apply(leave_type=LeaveRequest.TYPE_SICK, start=date(2025, 9, 1), end=date(2025, 9, 6))

    def test_apply_rejects_overlap_with_pending_and_approved(self):
        first = self._apply(leave_type=LeaveRequest.TYPE_SICK)
        with self.assertRaises(Overlap):
            self._apply(leave_type=LeaveRequest.TYPE_CASUAL, start=date(2025, 9, 3), end=date(2025, 9, 4))

        set_leave_status(leave_id=first.id, status=LeaveRequest.STATUS_APPROVED)
        with self.assertRaises(Overlap):
            self._apply(leave_type=LeaveRequest.TYPE_CASUAL, start=date(2025, 8, 30), end=date(2025, 9, 1))

    def test_rejected_request_does_not_block(self):
        first = self._apply(leave_type=LeaveRequest.TYPE_SICK)
        set_leave_status(leave_id=first.id, status=LeaveRequest.STATUS_REJECTED)
        second = self._apply(leave_type=LeaveRequest.TYPE_SICK)
        self.assertEqual(second.status, LeaveRequest.STATUS_PENDING)

    def test_overlap_is_per_employee(self):
        self._apply(leave_type=LeaveRequest.TYPE_SICK)
        self.assertFalse(has_overlap(self.other.id, date(2025, 9, 1), date(2025, 9, 3)))
        self._apply(employee=self.other, leave_type=LeaveRequest.TYPE_SICK)

    def test_paid_leave_with_insufficient_balance_is_not_persisted(self):
        with self.assertRaises(InsufficientBalance):
            self._apply(employee=self.other, start=date(2025, 9, 1), end=date(2025, 9, 5))
        self.assertFalse(LeaveRequest.objects.filter(employee=self.other).exists())
        self.assertEqual(self._refresh_balance(self.other), Decimal("3.00"))

    def test_sick_leave_ignores_balance(self):
        request = self._apply(employee=self.other, leave_type=LeaveRequest.TYPE_SICK, end=date(2025, 9, 10))
        self.assertEqual(request.duration_days, 10)

    def test_approving_paid_leave_debits_balance(self):
        request = self._apply()
        approved = set_leave_status(leave_id=request.id, status=LeaveRequest.STATUS_APPROVED)
        self.assertEqual(approved.status, LeaveRequest.STATUS_APPROVED)
        self.assertIsNotNone(approved.approved_at)
        self.assertEqual(self._refresh_balance(self.employee), Decimal("7.00"))

    def test_approving_sick_or_casual_leave_keeps_balance(self):
        sick = self._apply(leave_type=LeaveRequest.TYPE_SICK)
        casual = self._apply(leave_type=LeaveRequest.TYPE_CASUAL, start=date(2025, 9, 10), end=date(2025, 9, 12))
        set_leave_status(leave_id=sick.id, status=LeaveRequest.STATUS_APPROVED)
        set_leave_status(leave_id=casual.id, status=LeaveRequest.STATUS_APPROVED)
        self.assertEqual(self._refresh_balance(self.employee), Decimal("10.00"))

    def test_rejecting_paid_leave_keeps_balance(self):
        request = self._apply()
        rejected = set_leave_status(leave_id=request.id, status=LeaveRequest.STATUS_REJECTED)
        self.assertEqual(rejected.status, LeaveRequest.STATUS_REJECTED)
        self.assertIsNotNone(rejected.rejected_at)
        self.assertEqual(self._refresh_balance(self.employee), Decimal("10.00"))

    def test_second_approval_cannot_drive_balance_negative(self):
        # Both requests pass the creation check against the same balance of 3
        first = self._apply(employee=self.other, start=date(2025, 9, 1), end=date(2025, 9, 3))
        second = self._apply(employee=self.other, start=date(2025, 9, 10), end=date(2025, 9, 12))

        set_leave_status(leave_id=first.id, status=LeaveRequest.STATUS_APPROVED)
        self.assertEqual(self._refresh_balance(self.other), Decimal("0.00"))

        with self.assertRaises(InvalidState):
            set_leave_status(leave_id=second.id, status=LeaveRequest.STATUS_APPROVED)

        second.refresh_from_db()
        self.assertEqual(second.status, LeaveRequest.STATUS_PENDING)
        self.assertIsNone(second.approved_at)
        self.assertEqual(self._refresh_balance(self.other), Decimal("0.00"))

    def test_status_change_only_from_pending(self):
        request = self._apply(leave_type=LeaveRequest.TYPE_SICK)
        set_leave_status(leave_id=request.id, status=LeaveRequest.STATUS_REJECTED)
        with self.assertRaises(InvalidState):
            set_leave_status(leave_id=request.id, status=LeaveRequest.STATUS_APPROVED)

    def test_status_change_rejects_pending_target(self):
        request = self._apply(leave_type=LeaveRequest.TYPE_SICK)
        with self.assertRaises(InvalidState):
            set_leave_status(leave_id=request.id, status=LeaveRequest.STATUS_PENDING)

    def test_status_change_unknown_request(self):
        with self.assertRaises(NotFound):
            set_leave_status(leave_id=uuid.uuid4(), status=LeaveRequest.STATUS_APPROVED)

    def test_owner_can_cancel_pending_request(self):
        request = self._apply()
        cancel_leave_request(leave_id=request.id, employee_id=self.employee.id)
        self.assertFalse(LeaveRequest.objects.filter(id=request.id).exists())
        self.assertEqual(self._refresh_balance(self.employee), Decimal("10.00"))

    def test_cancel_by_someone_else_is_denied(self):
        request = self._apply()
        with self.assertRaises(PermissionDenied):
            cancel_leave_request(leave_id=request.id, employee_id=self.other.id)
        self.assertTrue(LeaveRequest.objects.filter(id=request.id).exists())

    def test_cancel_after_decision_is_invalid(self):
        request = self._apply()
        set_leave_status(leave_id=request.id, status=LeaveRequest.STATUS_APPROVED)
        with self.assertRaises(InvalidState):
            cancel_leave_request(leave_id=request.id, employee_id=self.employee.id)

    def test_queries(self):
        first = self._apply(leave_type=LeaveRequest.TYPE_SICK)
        second = self._apply(leave_type=LeaveRequest.TYPE_PAID, start=date(2025, 9, 10), end=date(2025, 9, 11))
        other = self._apply(employee=self.other, leave_type=LeaveRequest.TYPE_CASUAL)
        set_leave_status(leave_id=first.id, status=LeaveRequest.STATUS_APPROVED)

        self.assertEqual(get_leave_request(second.id).id, second.id)
        with self.assertRaises(NotFound):
            get_leave_request(uuid.uuid4())

        mine = leave_requests_for_employee(self.employee.id)
        self.assertEqual({r.id for r in mine}, {first.id, second.id})
        with self.assertRaises(NotFound):
            leave_requests_for_employee(uuid.uuid4())

        pending = leave_requests_by_status(LeaveRequest.STATUS_PENDING)
        self.assertEqual({r.id for r in pending}, {second.id, other.id})
        self.assertEqual(len(all_leave_requests()), 3)

    def test_approved_unpaid_leave_between_filters_type_status_and_range(self):
        sick = self._apply(leave_type=LeaveRequest.TYPE_SICK, start=date(2025, 7, 30), end=date(2025, 8, 2))
        paid = self._apply(leave_type=LeaveRequest.TYPE_PAID, start=date(2025, 8, 10), end=date(2025, 8, 11))
        pending_casual = self._apply(
            leave_type=LeaveRequest.TYPE_CASUAL, start=date(2025, 8, 20), end=date(2025, 8, 20)
        )
        outside = self._apply(leave_type=LeaveRequest.TYPE_CASUAL, start=date(2025, 9, 1), end=date(2025, 9, 2))
        for request in (sick, paid, outside):
            set_leave_status(leave_id=request.id, status=LeaveRequest.STATUS_APPROVED)

        found = approved_unpaid_leave_between(self.employee.id, date(2025, 8, 1), date(2025, 8, 31))
        self.assertEqual([r.id for r in found], [sick.id])
        self.assertNotIn(pending_casual.id, [r.id for r in found])


class LeaveSerializerTests(TestCase):
    def test_input_serializer_accepts_valid_payload(self):
        serializer = LeaveRequestInputSerializer(
            data={"leave_type": "SICK", "start_date": "2025-08-01", "end_date": "2025-08-02"}
        )
        self.assertTrue(serializer.is_valid(), serializer.errors)
        self.assertEqual(serializer.validated_data["start_date"], date(2025, 8, 1))
        self.assertEqual(serializer.validated_data["reason"], "")

    def test_input_serializer_rejects_bad_range_and_type(self):
        serializer = LeaveRequestInputSerializer(
            data={"leave_type": "SICK", "start_date": "2025-08-05", "end_date": "2025-08-02"}
        )
        self.assertFalse(serializer.is_valid())
        self.assertIn("end_date", serializer.errors)

        serializer = LeaveRequestInputSerializer(
            data={"leave_type": "VACATION", "start_date": "2025-08-01", "end_date": "2025-08-02"}
        )
        self.assertFalse(serializer.is_valid())
        self.assertIn("leave_type", serializer.errors)

    def test_status_serializer_only_allows_decisions(self):
        self.assertTrue(LeaveStatusUpdateSerializer(data={"status": "APPROVED"}).is_valid())
        self.assertFalse(LeaveStatusUpdateSerializer(data={"status": "PENDING"}).is_valid())

    def test_output_serializer(self):
        employee = Employee.objects.create(
            employee_id="E9",
            first_name="Ada",
            middle_name="B",
            last_name="Lovelace",
            email="ada@example.com",
        )
        request = apply_for_leave(
            employee_id=employee.id,
            leave_type=LeaveRequest.TYPE_CASUAL,
            start_date=date(2025, 8, 4),
            end_date=date(2025, 8, 6),
        )
        data = LeaveRequestSerializer(request).data
        self.assertEqual(data["employee_name"], "Ada B Lovelace")
        self.assertEqual(data["duration_days"], 3)
        self.assertEqual(data["status"], "PENDING")
