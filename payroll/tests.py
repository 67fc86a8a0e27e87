from datetime import date
from decimal import Decimal
from io import StringIO
from unittest import mock
import uuid

from django.core.management import CommandError, call_command
from django.test import TestCase
from rest_framework.exceptions import NotFound

from employees.exceptions import Conflict, InvalidRange, InvalidState, NotAvailable
from employees.models import Employee
from timeoff.models import LeaveRequest
from timeoff.services import apply_for_leave, set_leave_status

from payroll.bonus import (
    BonusPolicyError,
    FixedAmountBonus,
    NoBonus,
    PercentageBonus,
    calculate_bonus,
    parse_bonus_policy,
)
from payroll.calculations import compute_loss_of_pay, unpaid_days_in_period
from payroll.models import PayrollItem, PayrollRun, SalaryStructure
from payroll.serializers import (
    PayrollItemSerializer,
    PayrollRunCreateSerializer,
    PayrollRunSerializer,
    SalaryStructureInputSerializer,
    SalaryStructureSerializer,
)
from payroll.services import (
    create_payroll_run,
    employee_payslip,
    employee_payslips,
    get_payroll_run,
    items_for_run,
    list_payroll_runs,
    lock_payroll_run,
    payroll_item_for_admin,
    payroll_run_exists,
    process_payroll_run,
    summarize_run,
)
from payroll.timeline import (
    assign_salary_structure,
    delete_salary_structure,
    get_active_structure,
    get_current_structure,
    get_salary_structure,
    structure_history,
    update_salary_structure,
)
from payroll.utils import month_bounds, monthly_base, round_money


def _make_employee(employee_id, first_name="Jane", last_name="Doe", **extra):
    return Employee.objects.create(
        employee_id=employee_id,
        first_name=first_name,
        last_name=last_name,
        email=f"{employee_id.lower()}@example.com",
        job_title="Engineer",
        hire_date=date(2024, 1, 1),
        **extra,
    )


class MoneyAndBonusTests(TestCase):
    def test_round_money_is_half_up(self):
        self.assertEqual(round_money(Decimal("322.585")), Decimal("322.59"))
        self.assertEqual(round_money(Decimal("322.584")), Decimal("322.58"))
        self.assertEqual(round_money(None), Decimal("0.00"))

    def test_monthly_base(self):
        self.assertEqual(monthly_base(Decimal("120000")), Decimal("10000.00"))
        self.assertEqual(monthly_base(Decimal("100000")), Decimal("8333.33"))

    def test_month_bounds(self):
        self.assertEqual(month_bounds(2025, 8), (date(2025, 8, 1), date(2025, 8, 31), 31))
        self.assertEqual(month_bounds(2024, 2), (date(2024, 2, 1), date(2024, 2, 29), 29))

    def test_parse_tagged_and_legacy_policies(self):
        self.assertEqual(parse_bonus_policy(None), NoBonus())
        self.assertEqual(parse_bonus_policy({}), NoBonus())
        self.assertEqual(parse_bonus_policy({"type": "none"}), NoBonus())
        self.assertEqual(
            parse_bonus_policy({"type": "percentage", "value": 10}),
            PercentageBonus(percentage=Decimal("10")),
        )
        self.assertEqual(
            parse_bonus_policy({"type": "fixed_amount", "value": "500.50"}),
            FixedAmountBonus(amount=Decimal("500.50")),
        )
        self.assertEqual(parse_bonus_policy({"percentage": 5}), PercentageBonus(percentage=Decimal("5")))
        self.assertEqual(parse_bonus_policy({"amount": 250}), FixedAmountBonus(amount=Decimal("250")))
        self.assertEqual(parse_bonus_policy({"fixed": 250}), FixedAmountBonus(amount=Decimal("250")))

    def test_parse_rejects_malformed_policies(self):
        for payload in (
            {"type": "stock_options", "value": 1},
            {"type": "percentage", "value": "ten"},
            {"type": "percentage", "value": -5},
            {"type": "fixed_amount"},
            {"bogus": 1},
            ["percentage", 10],
        ):
            with self.subTest(payload=payload):
                with self.assertRaises(BonusPolicyError):
                    parse_bonus_policy(payload)

    def test_calculate_bonus(self):
        annual = Decimal("120000")
        self.assertEqual(calculate_bonus(NoBonus(), annual), Decimal("0.00"))
        self.assertEqual(calculate_bonus({"type": "percentage", "value": 10}, annual), Decimal("1000.00"))
        self.assertEqual(calculate_bonus({"percentage": "12.5"}, Decimal("100000")), Decimal("1041.67"))
        self.assertEqual(calculate_bonus({"type": "fixed_amount", "value": 750}, annual), Decimal("750.00"))

    def test_malformed_bonus_degrades_to_zero_with_warning(self):
        with self.assertLogs("payroll.bonus", level="WARNING"):
            self.assertEqual(calculate_bonus({"type": "mystery"}, Decimal("120000")), Decimal("0.00"))

    def test_policy_to_json(self):
        self.assertEqual(PercentageBonus(Decimal("10")).to_json(), {"type": "percentage", "value": "10"})
        self.assertEqual(NoBonus().to_json(), {"type": "none"})


class LossOfPayTests(TestCase):
    def test_days_are_clipped_to_period(self):
        start, end, _ = month_bounds(2025, 8)
        intervals = [
            (date(2025, 7, 30), date(2025, 8, 2)),
            (date(2025, 8, 30), date(2025, 9, 3)),
            (date(2025, 9, 10), date(2025, 9, 12)),
        ]
        self.assertEqual(unpaid_days_in_period(intervals, start, end), 4)

    def test_deduction(self):
        start, end, days = month_bounds(2025, 8)
        result = compute_loss_of_pay([(date(2025, 8, 1), date(2025, 8, 2))], start, end, Decimal("120000"), days)
        self.assertEqual(result.unpaid_days, 2)
        self.assertEqual(result.per_day_rate, Decimal("322.58"))
        self.assertEqual(result.deduction, Decimal("645.16"))

    def test_no_leave_no_deduction(self):
        start, end, days = month_bounds(2025, 8)
        result = compute_loss_of_pay([], start, end, Decimal("120000"), days)
        self.assertEqual(result.unpaid_days, 0)
        self.assertEqual(result.deduction, Decimal("0.00"))


class SalaryTimelineTests(TestCase):
    def setUp(self):
        self.employee = _make_employee("EMP-001")

    def _assign(self, base="120000", bonus=None, start=date(2025, 1, 1), end=None, employee=None):
        return assign_salary_structure(
            employee_id=(employee or self.employee).id,
            base_salary=Decimal(base),
            bonus_details=bonus,
            effective_from=start,
            effective_to=end,
        )

    def _assert_no_overlaps(self):
        structures = list(SalaryStructure.objects.filter(employee=self.employee).order_by("effective_from"))
        self.assertLessEqual(sum(1 for s in structures if s.effective_to is None), 1)
        far = date(9999, 12, 31)
        for earlier, later in zip(structures, structures[1:]):
            self.assertLess(earlier.effective_to or far, later.effective_from)

    def test_assign_closes_previous_open_structure(self):
        first = self._assign()
        second = self._assign(base="150000", start=date(2025, 7, 1))
        first.refresh_from_db()
        self.assertEqual(first.effective_to, date(2025, 6, 30))
        self.assertIsNone(second.effective_to)
        self._assert_no_overlaps()

    def test_assign_normalizes_bonus_policy(self):
        structure = self._assign(bonus={"percentage": 10})
        self.assertEqual(structure.bonus_details, {"type": "percentage", "value": "10"})
        self.assertEqual(structure.bonus_policy, PercentageBonus(Decimal("10")))

    def test_assign_validations(self):
        with self.assertRaises(NotFound):
            assign_salary_structure(
                employee_id=uuid.uuid4(),
                base_salary=Decimal("1000"),
                effective_from=date(2025, 1, 1),
            )
        with self.assertRaises(InvalidRange):
            self._assign(start=date(2025, 5, 1), end=date(2025, 5, 1))
        with self.assertRaises(InvalidRange):
            self._assign(start=date(2025, 5, 1), end=date(2025, 4, 1))
        with self.assertRaises(InvalidRange):
            self._assign(base="0")
        with self.assertRaises(InvalidRange):
            self._assign(bonus={"type": "percentage", "value": -1})
        self.assertFalse(SalaryStructure.objects.exists())

    def test_backdated_assign_cannot_overlap(self):
        self._assign(start=date(2025, 1, 1))
        with self.assertRaises(Conflict):
            self._assign(start=date(2024, 6, 1))
        with self.assertRaises(Conflict):
            self._assign(start=date(2024, 6, 1), end=date(2025, 2, 1))
        self._assign(start=date(2024, 6, 1), end=date(2024, 12, 31))
        self._assert_no_overlaps()

    def test_sequence_of_assignments_never_overlaps(self):
        for start in (date(2025, 1, 1), date(2025, 3, 1), date(2025, 3, 15), date(2026, 1, 1)):
            self._assign(start=start)
        self._assert_no_overlaps()
        self.assertEqual(SalaryStructure.objects.filter(employee=self.employee).count(), 4)

    def test_active_structure_lookup(self):
        first = self._assign()
        second = self._assign(base="150000", start=date(2025, 7, 1))
        self.assertEqual(get_active_structure(self.employee.id, date(2025, 6, 30)).id, first.id)
        self.assertEqual(get_active_structure(self.employee.id, date(2025, 7, 1)).id, second.id)
        self.assertEqual(get_active_structure(self.employee.id, date(2030, 1, 1)).id, second.id)
        with self.assertRaises(NotFound):
            get_active_structure(self.employee.id, date(2024, 12, 31))

    def test_current_structure_uses_today(self):
        first = self._assign()
        self._assign(base="150000", start=date(2025, 7, 1))
        with mock.patch("django.utils.timezone.localdate", return_value=date(2025, 3, 1)):
            self.assertEqual(get_current_structure(self.employee.id).id, first.id)
        with self.assertRaises(NotFound):
            get_current_structure(uuid.uuid4())

    def test_update_revalidates_overlap(self):
        first = self._assign()
        self._assign(base="150000", start=date(2025, 7, 1))

        with self.assertRaises(Conflict):
            update_salary_structure(structure_id=first.id, changes={"effective_to": date(2025, 7, 15)})

        updated = update_salary_structure(
            structure_id=first.id,
            changes={"base_salary": Decimal("125000"), "bonus_details": {"amount": 100}},
        )
        self.assertEqual(updated.base_salary, Decimal("125000"))
        self.assertEqual(updated.bonus_details, {"type": "fixed_amount", "value": "100"})
        self.assertEqual(updated.effective_to, date(2025, 6, 30))

        with self.assertRaises(InvalidRange):
            update_salary_structure(structure_id=first.id, changes={"effective_to": date(2024, 12, 1)})
        with self.assertRaises(InvalidRange):
            update_salary_structure(structure_id=first.id, changes={"employee": self.employee.id})
        with self.assertRaises(NotFound):
            update_salary_structure(structure_id=uuid.uuid4(), changes={"base_salary": Decimal("1")})

    def test_history_get_and_delete(self):
        first = self._assign()
        second = self._assign(base="150000", start=date(2025, 7, 1))
        self.assertEqual([s.id for s in structure_history(self.employee.id)], [second.id, first.id])
        with self.assertRaises(NotFound):
            structure_history(uuid.uuid4())

        self.assertEqual(get_salary_structure(first.id).id, first.id)
        delete_salary_structure(first.id)
        with self.assertRaises(NotFound):
            get_salary_structure(first.id)
        with self.assertRaises(NotFound):
            delete_salary_structure(first.id)


class PayrollRunEngineTests(TestCase):
    def setUp(self):
        self.employee = _make_employee("EMP-001")
        self.structure = assign_salary_structure(
            employee_id=self.employee.id,
            base_salary=Decimal("120000"),
            effective_from=date(2025, 1, 1),
        )
        self.run = create_payroll_run(year=2025, month=8)

    def _item(self, run=None, employee=None):
        return PayrollItem.objects.get(run=run or self.run, employee=employee or self.employee)

    def _approve_leave(self, leave_type, start, end, employee=None):
        request = apply_for_leave(
            employee_id=(employee or self.employee).id,
            leave_type=leave_type,
            start_date=start,
            end_date=end,
        )
        return set_leave_status(leave_id=request.id, status=LeaveRequest.STATUS_APPROVED)

    def test_create_run_starts_as_draft(self):
        self.assertEqual(self.run.status, PayrollRun.STATUS_DRAFT)
        self.assertTrue(payroll_run_exists(2025, 8))
        self.assertFalse(payroll_run_exists(2025, 9))

    def test_duplicate_run_conflicts(self):
        with self.assertRaises(Conflict):
            create_payroll_run(year=2025, month=8)
        self.assertEqual(PayrollRun.objects.filter(year=2025, month=8).count(), 1)

    def test_create_run_rejects_bad_month(self):
        with self.assertRaises(InvalidRange):
            create_payroll_run(year=2025, month=13)

    def test_no_bonus_no_leave(self):
        summary = process_payroll_run(run_id=self.run.id)
        self.assertEqual(summary.processed_count, 1)
        self.assertEqual(summary.skipped_count, 0)

        item = self._item()
        self.assertEqual(item.base_salary, Decimal("10000.00"))
        self.assertEqual(item.bonus, Decimal("0.00"))
        self.assertEqual(item.deductions, Decimal("0.00"))
        self.assertEqual(item.net_salary, Decimal("10000.00"))
        self.assertIsNone(item.pay_date)

        self.run.refresh_from_db()
        self.assertEqual(self.run.status, PayrollRun.STATUS_PROCESSED)
        self.assertIsNotNone(self.run.processed_at)

    def test_percentage_bonus(self):
        update_salary_structure(
            structure_id=self.structure.id,
            changes={"bonus_details": {"type": "percentage", "value": 10}},
        )
        process_payroll_run(run_id=self.run.id)
        item = self._item()
        self.assertEqual(item.bonus, Decimal("1000.00"))
        self.assertEqual(item.net_salary, Decimal("11000.00"))

    def test_sick_leave_deduction(self):
        self._approve_leave(LeaveRequest.TYPE_SICK, date(2025, 8, 1), date(2025, 8, 2))
        process_payroll_run(run_id=self.run.id)
        item = self._item()
        self.assertEqual(item.unpaid_leave_days, 2)
        self.assertEqual(item.deductions, Decimal("645.16"))
        self.assertEqual(item.net_salary, Decimal("9354.84"))

    def test_paid_and_pending_leave_do_not_deduct(self):
        self.employee.leave_balance = Decimal("5.00")
        self.employee.save()
        self._approve_leave(LeaveRequest.TYPE_PAID, date(2025, 8, 4), date(2025, 8, 6))
        apply_for_leave(
            employee_id=self.employee.id,
            leave_type=LeaveRequest.TYPE_CASUAL,
            start_date=date(2025, 8, 11),
            end_date=date(2025, 8, 12),
        )
        process_payroll_run(run_id=self.run.id)
        item = self._item()
        self.assertEqual(item.deductions, Decimal("0.00"))
        self.assertEqual(item.net_salary, Decimal("10000.00"))

    def test_leave_spanning_months_is_charged_per_period(self):
        self._approve_leave(LeaveRequest.TYPE_CASUAL, date(2025, 7, 30), date(2025, 8, 1))
        process_payroll_run(run_id=self.run.id)
        self.assertEqual(self._item().unpaid_leave_days, 1)
        self.assertEqual(self._item().deductions, Decimal("322.58"))

    def test_structure_effective_at_period_start_is_used(self):
        assign_salary_structure(
            employee_id=self.employee.id,
            base_salary=Decimal("240000"),
            effective_from=date(2025, 8, 15),
        )
        process_payroll_run(run_id=self.run.id)
        self.assertEqual(self._item().base_salary, Decimal("10000.00"))

    def test_net_salary_identity_holds_for_every_item(self):
        second = _make_employee("EMP-002", first_name="John")
        assign_salary_structure(
            employee_id=second.id,
            base_salary=Decimal("100000"),
            bonus_details={"amount": "333.33"},
            effective_from=date(2025, 1, 1),
        )
        self._approve_leave(LeaveRequest.TYPE_SICK, date(2025, 8, 5), date(2025, 8, 7), employee=second)
        process_payroll_run(run_id=self.run.id)
        for item in PayrollItem.objects.filter(run=self.run):
            self.assertEqual(item.net_salary, item.base_salary + item.bonus - item.deductions)

    def test_employee_without_structure_is_skipped(self):
        _make_employee("EMP-002", first_name="John")
        with self.assertLogs("payroll.services", level="WARNING"):
            summary = process_payroll_run(run_id=self.run.id)
        self.assertEqual(summary.processed_count, 1)
        self.assertEqual(summary.skipped_count, 1)
        self.assertEqual(summary.skipped_employee_ids, ["EMP-002"])
        self.run.refresh_from_db()
        self.assertTrue(self.run.is_processed)

    def test_unexpected_error_skips_only_that_employee(self):
        second = _make_employee("EMP-002", first_name="John")
        assign_salary_structure(
            employee_id=second.id,
            base_salary=Decimal("60000"),
            effective_from=date(2025, 1, 1),
        )
        real_calculate_bonus = calculate_bonus

        def flaky_bonus(policy, annual_base):
            if annual_base == Decimal("60000"):
                raise RuntimeError("boom")
            return real_calculate_bonus(policy, annual_base)

        with mock.patch("payroll.services.calculate_bonus", side_effect=flaky_bonus):
            with self.assertLogs("payroll.services", level="ERROR"):
                summary = process_payroll_run(run_id=self.run.id)

        self.assertEqual(summary.processed_count, 1)
        self.assertEqual(summary.skipped_employee_ids, ["EMP-002"])
        self.assertFalse(PayrollItem.objects.filter(run=self.run, employee=second).exists())
        self.assertEqual(self._item().net_salary, Decimal("10000.00"))

    def test_reprocessing_replaces_items(self):
        process_payroll_run(run_id=self.run.id)
        process_payroll_run(run_id=self.run.id)
        self.assertEqual(PayrollItem.objects.filter(run=self.run).count(), 1)

        second = _make_employee("EMP-002", first_name="John")
        assign_salary_structure(
            employee_id=second.id,
            base_salary=Decimal("60000"),
            effective_from=date(2025, 1, 1),
        )
        update_salary_structure(structure_id=self.structure.id, changes={"base_salary": Decimal("132000")})
        summary = process_payroll_run(run_id=self.run.id)

        self.assertEqual(summary.processed_count, 2)
        self.assertEqual(PayrollItem.objects.filter(run=self.run).count(), 2)
        self.assertEqual(self._item().base_salary, Decimal("11000.00"))
        self.assertEqual(self._item(employee=second).base_salary, Decimal("5000.00"))

    def test_lock_stamps_pay_date_on_every_item(self):
        second = _make_employee("EMP-002", first_name="John")
        assign_salary_structure(
            employee_id=second.id,
            base_salary=Decimal("60000"),
            effective_from=date(2025, 1, 1),
        )
        process_payroll_run(run_id=self.run.id)
        self.assertFalse(PayrollItem.objects.filter(run=self.run, pay_date__isnull=False).exists())

        with mock.patch("django.utils.timezone.localdate", return_value=date(2025, 8, 31)):
            run = lock_payroll_run(run_id=self.run.id)

        self.assertEqual(run.status, PayrollRun.STATUS_LOCKED)
        self.assertIsNotNone(run.locked_at)
        pay_dates = set(PayrollItem.objects.filter(run=self.run).values_list("pay_date", flat=True))
        self.assertEqual(pay_dates, {date(2025, 8, 31)})

    def test_state_machine_guards(self):
        with self.assertRaises(InvalidState):
            lock_payroll_run(run_id=self.run.id)

        process_payroll_run(run_id=self.run.id)
        lock_payroll_run(run_id=self.run.id, pay_date=date(2025, 9, 1))

        with self.assertRaises(InvalidState):
            process_payroll_run(run_id=self.run.id)
        with self.assertRaises(InvalidState):
            lock_payroll_run(run_id=self.run.id)
        self.assertEqual(self._item().pay_date, date(2025, 9, 1))

    def test_unknown_run(self):
        with self.assertRaises(NotFound):
            process_payroll_run(run_id=uuid.uuid4())
        with self.assertRaises(NotFound):
            lock_payroll_run(run_id=uuid.uuid4())
        with self.assertRaises(NotFound):
            get_payroll_run(uuid.uuid4())

    def test_admin_and_employee_item_visibility(self):
        with self.assertRaises(NotAvailable):
            payroll_item_for_admin(run_id=self.run.id, employee_id=self.employee.id)

        process_payroll_run(run_id=self.run.id)
        item = payroll_item_for_admin(run_id=self.run.id, employee_id=self.employee.id)
        self.assertEqual(item.net_salary, Decimal("10000.00"))
        with self.assertRaises(NotAvailable):
            employee_payslip(run_id=self.run.id, employee_id=self.employee.id)
        self.assertEqual(employee_payslips(self.employee.id), [])

        lock_payroll_run(run_id=self.run.id)
        payslip = employee_payslip(run_id=self.run.id, employee_id=self.employee.id)
        self.assertEqual(payslip.id, item.id)

        stranger = _make_employee("EMP-404", first_name="Nobody")
        with self.assertRaises(NotFound):
            employee_payslip(run_id=self.run.id, employee_id=stranger.id)
        with self.assertRaises(NotFound):
            employee_payslips(uuid.uuid4())

    def test_employee_payslips_only_locked_newest_first(self):
        july = create_payroll_run(year=2025, month=7)
        september = create_payroll_run(year=2025, month=9)
        for run in (july, self.run, september):
            process_payroll_run(run_id=run.id)
        lock_payroll_run(run_id=july.id)
        lock_payroll_run(run_id=self.run.id)

        payslips = employee_payslips(self.employee.id)
        self.assertEqual([(p.run.year, p.run.month) for p in payslips], [(2025, 8), (2025, 7)])

    def test_listing_and_summary(self):
        create_payroll_run(year=2025, month=7)
        create_payroll_run(year=2024, month=12)
        self.assertEqual(
            [(run.year, run.month) for run in list_payroll_runs()],
            [(2025, 8), (2025, 7), (2024, 12)],
        )

        self.assertIsNone(summarize_run(self.run))
        self._approve_leave(LeaveRequest.TYPE_SICK, date(2025, 8, 1), date(2025, 8, 2))
        process_payroll_run(run_id=self.run.id)
        self.run.refresh_from_db()
        totals = summarize_run(self.run)
        self.assertEqual(totals["item_count"], 1)
        self.assertEqual(totals["total_base_salary"], Decimal("10000.00"))
        self.assertEqual(totals["total_deductions"], Decimal("645.16"))
        self.assertEqual(totals["total_net_salary"], Decimal("9354.84"))
        self.assertEqual(len(items_for_run(self.run.id)), 1)


class PayrollSerializerTests(TestCase):
    def test_structure_input_parses_bonus_policy(self):
        serializer = SalaryStructureInputSerializer(
            data={
                "base_salary": "120000.00",
                "bonus_details": {"percentage": 10},
                "effective_from": "2025-01-01",
            }
        )
        self.assertTrue(serializer.is_valid(), serializer.errors)
        self.assertEqual(serializer.validated_data["bonus_details"], PercentageBonus(Decimal("10")))

        serializer = SalaryStructureInputSerializer(
            data={"base_salary": "1000", "bonus_details": None, "effective_from": "2025-01-01"}
        )
        self.assertTrue(serializer.is_valid(), serializer.errors)
        self.assertEqual(serializer.validated_data["bonus_details"], NoBonus())

    def test_structure_input_rejections(self):
        cases = [
            ({"base_salary": "0", "effective_from": "2025-01-01"}, "base_salary"),
            (
                {"base_salary": "1000", "effective_from": "2025-01-01", "effective_to": "2025-01-01"},
                "effective_to",
            ),
            (
                {"base_salary": "1000", "effective_from": "2025-01-01", "bonus_details": {"amount": -5}},
                "bonus_details",
            ),
            (
                {"base_salary": "1000", "effective_from": "2025-01-01", "bonus_details": {"type": "shares"}},
                "bonus_details",
            ),
        ]
        for data, field in cases:
            with self.subTest(field=field, data=data):
                serializer = SalaryStructureInputSerializer(data=data)
                self.assertFalse(serializer.is_valid())
                self.assertIn(field, serializer.errors)

    def test_run_create_serializer(self):
        self.assertTrue(PayrollRunCreateSerializer(data={"year": 2025, "month": 8}).is_valid())
        self.assertFalse(PayrollRunCreateSerializer(data={"year": 2025, "month": 13}).is_valid())
        self.assertFalse(PayrollRunCreateSerializer(data={"year": 1999, "month": 1}).is_valid())

    def test_output_serializers(self):
        employee = _make_employee("EMP-001", middle_name="Q")
        structure = assign_salary_structure(
            employee_id=employee.id,
            base_salary=Decimal("120000"),
            bonus_details={"fixed": 200},
            effective_from=date(2025, 1, 1),
        )
        run = create_payroll_run(year=2025, month=8)

        data = PayrollRunSerializer(run).data
        self.assertEqual(data["status"], PayrollRun.STATUS_DRAFT)
        self.assertIsNone(data["summary"])

        process_payroll_run(run_id=run.id)
        run.refresh_from_db()
        data = PayrollRunSerializer(run).data
        self.assertEqual(data["summary"]["item_count"], 1)
        self.assertEqual(data["summary"]["total_net_salary"], "10200.00")

        item = PayrollItem.objects.get(run=run, employee=employee)
        data = PayrollItemSerializer(item).data
        self.assertEqual(data["employee_name"], "Jane Q Doe")
        self.assertEqual(data["year"], 2025)
        self.assertEqual(data["month"], 8)
        self.assertEqual(data["run_status"], PayrollRun.STATUS_PROCESSED)
        self.assertEqual(data["net_salary"], "10200.00")

        with mock.patch("django.utils.timezone.localdate", return_value=date(2025, 8, 15)):
            data = SalaryStructureSerializer(structure).data
        self.assertTrue(data["is_active"])
        self.assertEqual(data["bonus_details"], {"type": "fixed_amount", "value": "200"})
        self.assertEqual(data["employee_number"], "EMP-001")


class RunPayrollCommandTests(TestCase):
    def setUp(self):
        self.employee = _make_employee("EMP-001")
        assign_salary_structure(
            employee_id=self.employee.id,
            base_salary=Decimal("120000"),
            effective_from=date(2025, 1, 1),
        )

    def test_command_creates_processes_and_locks(self):
        out = StringIO()
        call_command("run_payroll", year=2025, month=8, lock=True, stdout=out)

        run = PayrollRun.objects.get(year=2025, month=8)
        self.assertTrue(run.is_locked)
        self.assertFalse(PayrollItem.objects.filter(run=run, pay_date__isnull=True).exists())
        output = out.getvalue()
        self.assertIn("1 items, 0 skipped", output)
        self.assertIn("total_net_salary: 10000.00", output)

    def test_command_reprocesses_existing_run(self):
        run = create_payroll_run(year=2025, month=8)
        call_command("run_payroll", year=2025, month=8, stdout=StringIO())
        call_command("run_payroll", year=2025, month=8, stdout=StringIO())
        run.refresh_from_db()
        self.assertTrue(run.is_processed)
        self.assertEqual(PayrollItem.objects.filter(run=run).count(), 1)

    def test_command_reports_engine_errors(self):
        call_command("run_payroll", year=2025, month=8, lock=True, stdout=StringIO())
        with self.assertRaises(CommandError):
            call_command("run_payroll", year=2025, month=8, stdout=StringIO())
