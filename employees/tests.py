from decimal import Decimal

from django.db import IntegrityError, transaction
from django.test import SimpleTestCase, TestCase
from rest_framework import status

from employees.exceptions import (
    ComputationSkip,
    Conflict,
    InsufficientBalance,
    InvalidRange,
    InvalidState,
    NotAvailable,
    Overlap,
)
from employees.models import Employee


class EmployeeModelTests(TestCase):
    def test_full_name_includes_middle_name(self):
        employee = Employee.objects.create(
            employee_id='E1',
            first_name='Ada',
            middle_name='King',
            last_name='Lovelace',
            email='ada@example.com',
        )
        self.assertEqual(employee.full_name, 'Ada King Lovelace')
        self.assertEqual(employee.leave_balance, Decimal('0.00'))
        self.assertEqual(employee.employment_status, 'ACTIVE')

    def test_leave_balance_cannot_be_negative(self):
        with self.assertRaises(IntegrityError):
            with transaction.atomic():
                Employee.objects.create(
                    employee_id='E2',
                    first_name='Neg',
                    last_name='Ative',
                    email='neg@example.com',
                    leave_balance=Decimal('-1.00'),
                )

    def test_employee_id_is_unique(self):
        Employee.objects.create(employee_id='E3', first_name='A', last_name='B', email='a@example.com')
        with self.assertRaises(IntegrityError):
            with transaction.atomic():
                Employee.objects.create(employee_id='E3', first_name='C', last_name='D', email='c@example.com')


class ErrorTaxonomyTests(SimpleTestCase):
    def test_status_codes(self):
        self.assertEqual(InvalidState().status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(Conflict().status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(NotAvailable().status_code, status.HTTP_400_BAD_REQUEST)
        for exc_class in (InvalidRange, Overlap, InsufficientBalance):
            self.assertEqual(exc_class().status_code, status.HTTP_400_BAD_REQUEST)

    def test_validation_errors_keep_field_details(self):
        exc = InvalidRange({'base_salary': 'Base salary must be positive.'})
        self.assertIn('base_salary', exc.detail)

    def test_computation_skip_carries_employee(self):
        exc = ComputationSkip('EMP-7', 'no salary structure')
        self.assertEqual(exc.employee_id, 'EMP-7')
        self.assertIn('EMP-7', str(exc))
