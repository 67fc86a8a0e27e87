import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Dict, List, Optional

from django.db import IntegrityError, transaction
from django.db.models import Count, Sum
from django.utils import timezone
from rest_framework.exceptions import NotFound

from employees.exceptions import ComputationSkip, Conflict, InvalidRange, InvalidState, NotAvailable
from employees.models import Employee

from .bonus import calculate_bonus
from .calculations import loss_of_pay_for_employee
from .models import PayrollItem, PayrollRun, SalaryStructure
from .timeline import get_active_structure
from .utils import ZERO, month_bounds, monthly_base, round_money

logger = logging.getLogger(__name__)


@dataclass
class PayrollRunSummary:
    run: PayrollRun
    processed_count: int = 0
    skipped_count: int = 0
    skipped_employee_ids: List = field(default_factory=list)


def create_payroll_run(*, year: int, month: int, db_alias: str = "default") -> PayrollRun:
    if not 1 <= month <= 12:
        raise InvalidRange({"month": "Month must be between 1 and 12."})
    if PayrollRun.objects.using(db_alias).filter(year=year, month=month).exists():
        raise Conflict(f"Payroll run for {year}-{month:02d} already exists.")
    try:
        with transaction.atomic(using=db_alias):
            run = PayrollRun.objects.using(db_alias).create(year=year, month=month)
    except IntegrityError:
        raise Conflict(f"Payroll run for {year}-{month:02d} already exists.")
    logger.info("Created payroll run %s for %s-%02d", run.id, year, month)
    return run


class PayrollCalculationService:
    """
    Computes one pay item per roster employee for a run.

    Each employee is computed inside its own savepoint so a failure rolls
    back that employee only; the caller owns the outer transaction.
    """

    def __init__(self, run: PayrollRun, db_alias: str = "default"):
        self.run = run
        self.db_alias = db_alias or "default"
        self.period_start, self.period_end, self.days_in_month = month_bounds(run.year, run.month)

    def _roster(self):
        return Employee.objects.using(self.db_alias).order_by("employee_id")

    def _resolve_structure(self, employee: Employee) -> SalaryStructure:
        try:
            return get_active_structure(employee.id, self.period_start, db_alias=self.db_alias)
        except NotFound:
            raise ComputationSkip(employee.employee_id, f"no salary structure effective on {self.period_start}")

    def compute_item(self, employee: Employee) -> PayrollItem:
        structure = self._resolve_structure(employee)

        base = monthly_base(structure.base_salary)
        bonus = calculate_bonus(structure.bonus_details, structure.base_salary)
        loss_of_pay = loss_of_pay_for_employee(
            employee.id,
            self.period_start,
            self.period_end,
            structure.base_salary,
            self.days_in_month,
            db_alias=self.db_alias,
        )
        net_salary = round_money(base + bonus - loss_of_pay.deduction)

        return PayrollItem.objects.using(self.db_alias).create(
            run=self.run,
            employee=employee,
            base_salary=base,
            bonus=bonus,
            deductions=loss_of_pay.deduction,
            net_salary=net_salary,
            unpaid_leave_days=loss_of_pay.unpaid_days,
            pay_date=None,
        )

    def run_all(self) -> PayrollRunSummary:
        summary = PayrollRunSummary(run=self.run)
        roster = list(self._roster())
        logger.info(
            "Processing payroll run %s for %s-%02d, roster size %s",
            self.run.id,
            self.run.year,
            self.run.month,
            len(roster),
        )

        for employee in roster:
            try:
                with transaction.atomic(using=self.db_alias):
                    self.compute_item(employee)
            except ComputationSkip as exc:
                logger.warning("Payroll run %s: %s", self.run.id, exc)
                summary.skipped_count += 1
                summary.skipped_employee_ids.append(employee.employee_id)
                continue
            except Exception:
                logger.exception(
                    "Payroll run %s: unexpected error computing employee %s, skipping",
                    self.run.id,
                    employee.employee_id,
                )
                summary.skipped_count += 1
                summary.skipped_employee_ids.append(employee.employee_id)
                continue
            summary.processed_count += 1

        return summary


def _get_run_for_update(run_id, db_alias: str) -> PayrollRun:
    run = PayrollRun.objects.using(db_alias).select_for_update().filter(id=run_id).first()
    if not run:
        raise NotFound(f"Payroll run not found with ID: {run_id}")
    return run


def process_payroll_run(*, run_id, db_alias: str = "default") -> PayrollRunSummary:
    """
    Compute (or recompute) every item of a Draft or Processed run.

    Existing items are replaced wholesale inside the same transaction, so a
    re-processed run never mixes stale and fresh items.
    """
    with transaction.atomic(using=db_alias):
        run = _get_run_for_update(run_id, db_alias)
        if run.is_locked:
            raise InvalidState("Locked payrolls cannot be processed.")

        if run.is_processed:
            deleted, _ = PayrollItem.objects.using(db_alias).filter(run=run).delete()
            logger.info("Re-processing payroll run %s, removed %s existing items", run.id, deleted)

        summary = PayrollCalculationService(run, db_alias=db_alias).run_all()

        run.mark_processed()
        run.save(using=db_alias, update_fields=["status", "processed_at", "updated_at"])

    logger.info(
        "Payroll run %s processed: %s items, %s skipped",
        run.id,
        summary.processed_count,
        summary.skipped_count,
    )
    return summary


def lock_payroll_run(*, run_id, pay_date: Optional[date] = None, db_alias: str = "default") -> PayrollRun:
    with transaction.atomic(using=db_alias):
        run = _get_run_for_update(run_id, db_alias)
        if not run.is_processed:
            raise InvalidState("Only processed payrolls can be locked.")

        pay_date = pay_date or timezone.localdate()
        updated = PayrollItem.objects.using(db_alias).filter(run=run).update(
            pay_date=pay_date,
            updated_at=timezone.now(),
        )
        run.mark_locked()
        run.save(using=db_alias, update_fields=["status", "locked_at", "updated_at"])

    logger.info("Locked payroll run %s: %s items paid on %s", run.id, updated, pay_date)
    return run


def get_payroll_run(run_id, db_alias: str = "default") -> PayrollRun:
    run = PayrollRun.objects.using(db_alias).filter(id=run_id).first()
    if not run:
        raise NotFound(f"Payroll run not found with ID: {run_id}")
    return run


def list_payroll_runs(db_alias: str = "default") -> List[PayrollRun]:
    return list(PayrollRun.objects.using(db_alias).order_by("-year", "-month"))


def payroll_run_exists(year: int, month: int, db_alias: str = "default") -> bool:
    return PayrollRun.objects.using(db_alias).filter(year=year, month=month).exists()


def summarize_run(run: PayrollRun, db_alias: str = "default") -> Optional[Dict]:
    """Item count and money totals; ``None`` while the run is still a draft."""
    if run.is_draft:
        return None
    totals = PayrollItem.objects.using(db_alias).filter(run=run).aggregate(
        item_count=Count("id"),
        total_base_salary=Sum("base_salary"),
        total_bonus=Sum("bonus"),
        total_deductions=Sum("deductions"),
        total_net_salary=Sum("net_salary"),
    )
    for key, value in totals.items():
        if key != "item_count":
            totals[key] = round_money(value if value is not None else ZERO)
    return totals


def items_for_run(run_id, db_alias: str = "default") -> List[PayrollItem]:
    run = get_payroll_run(run_id, db_alias=db_alias)
    return list(
        PayrollItem.objects.using(db_alias)
        .filter(run=run)
        .select_related("employee", "run")
        .order_by("employee__employee_id")
    )


def _item_for(run: PayrollRun, employee_id, db_alias: str) -> PayrollItem:
    item = (
        PayrollItem.objects.using(db_alias)
        .filter(run=run, employee_id=employee_id)
        .select_related("employee", "run")
        .first()
    )
    if not item:
        raise NotFound(f"Payroll item not found for employee {employee_id} in run {run.id}")
    return item


def payroll_item_for_admin(*, run_id, employee_id, db_alias: str = "default") -> PayrollItem:
    """Admin check of an item before locking; the run must have been processed."""
    run = get_payroll_run(run_id, db_alias=db_alias)
    if run.is_draft:
        raise NotAvailable("Payroll items not yet available. Payroll run must be processed first.")
    return _item_for(run, employee_id, db_alias)


def employee_payslip(*, run_id, employee_id, db_alias: str = "default") -> PayrollItem:
    run = get_payroll_run(run_id, db_alias=db_alias)
    if not run.is_locked:
        raise NotAvailable("Payslip not yet available. Payroll run must be locked first.")
    return _item_for(run, employee_id, db_alias)


def employee_payslips(employee_id, db_alias: str = "default") -> List[PayrollItem]:
    if not Employee.objects.using(db_alias).filter(id=employee_id).exists():
        raise NotFound(f"Employee not found with ID: {employee_id}")
    return list(
        PayrollItem.objects.using(db_alias)
        .filter(employee_id=employee_id, run__status=PayrollRun.STATUS_LOCKED)
        .select_related("run")
        .order_by("-run__year", "-run__month")
    )
