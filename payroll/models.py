import uuid
from datetime import date
from decimal import Decimal

from django.db import models
from django.db.models import Q
from django.utils import timezone

from .bonus import BonusPolicyError, NoBonus, parse_bonus_policy


class SalaryStructure(models.Model):
    """
    Compensation for one employee over an inclusive date interval.

    ``effective_to`` is null for the open-ended (current) structure; an
    employee has at most one of those.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    employee = models.ForeignKey(
        "employees.Employee",
        on_delete=models.CASCADE,
        related_name="salary_structures",
    )
    base_salary = models.DecimalField(
        max_digits=14,
        decimal_places=2,
        help_text="Annual base salary.",
    )
    bonus_details = models.JSONField(
        default=dict,
        blank=True,
        help_text="Bonus policy: {} or {'type': 'percentage'|'fixed_amount', 'value': ...}.",
    )
    effective_from = models.DateField()
    effective_to = models.DateField(null=True, blank=True, help_text="Inclusive; empty means open-ended.")
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "payroll_salary_structures"
        verbose_name = "Salary Structure"
        verbose_name_plural = "Salary Structures"
        ordering = ["employee", "-effective_from"]
        constraints = [
            models.UniqueConstraint(
                fields=["employee"],
                condition=Q(effective_to__isnull=True),
                name="uniq_open_salary_structure_per_employee",
            ),
        ]
        indexes = [
            models.Index(fields=["employee", "effective_from"], name="payroll_struct_emp_from_idx"),
        ]

    def __str__(self):
        until = self.effective_to or "open"
        return f"Structure {self.employee_id} {self.effective_from} -> {until}"

    @property
    def bonus_policy(self):
        try:
            return parse_bonus_policy(self.bonus_details)
        except BonusPolicyError:
            return NoBonus()

    def covers(self, on_date: date) -> bool:
        return self.effective_from <= on_date and (self.effective_to is None or self.effective_to >= on_date)

    @property
    def is_currently_active(self) -> bool:
        return self.covers(timezone.localdate())


class PayrollRun(models.Model):
    STATUS_DRAFT = "DRAFT"
    STATUS_PROCESSED = "PROCESSED"
    STATUS_LOCKED = "LOCKED"

    STATUS_CHOICES = [
        (STATUS_DRAFT, "Draft"),
        (STATUS_PROCESSED, "Processed"),
        (STATUS_LOCKED, "Locked"),
    ]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    year = models.PositiveSmallIntegerField()
    month = models.PositiveSmallIntegerField()
    status = models.CharField(max_length=10, choices=STATUS_CHOICES, default=STATUS_DRAFT, db_index=True)

    processed_at = models.DateTimeField(null=True, blank=True)
    locked_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "payroll_runs"
        verbose_name = "Payroll Run"
        verbose_name_plural = "Payroll Runs"
        ordering = ["-year", "-month"]
        constraints = [
            models.UniqueConstraint(fields=["year", "month"], name="uniq_payroll_run_per_period"),
        ]

    def __str__(self):
        return f"Payroll {self.month:02d}/{self.year} ({self.status})"

    @property
    def is_draft(self) -> bool:
        return self.status == self.STATUS_DRAFT

    @property
    def is_processed(self) -> bool:
        return self.status == self.STATUS_PROCESSED

    @property
    def is_locked(self) -> bool:
        return self.status == self.STATUS_LOCKED

    def mark_processed(self):
        self.status = self.STATUS_PROCESSED
        self.processed_at = timezone.now()

    def mark_locked(self):
        self.status = self.STATUS_LOCKED
        self.locked_at = timezone.now()


class PayrollItem(models.Model):
    """One employee's pay for one run. Amounts are monthly figures."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    run = models.ForeignKey(
        PayrollRun,
        on_delete=models.CASCADE,
        related_name="items",
    )
    employee = models.ForeignKey(
        "employees.Employee",
        on_delete=models.CASCADE,
        related_name="payroll_items",
    )
    base_salary = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal("0.00"))
    bonus = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal("0.00"))
    deductions = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal("0.00"))
    net_salary = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal("0.00"))
    unpaid_leave_days = models.PositiveSmallIntegerField(default=0)
    pay_date = models.DateField(null=True, blank=True, help_text="Set when the run is locked.")
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "payroll_items"
        verbose_name = "Payroll Item"
        verbose_name_plural = "Payroll Items"
        constraints = [
            models.UniqueConstraint(fields=["run", "employee"], name="uniq_payroll_item_per_employee"),
        ]
        indexes = [
            models.Index(fields=["employee", "run"], name="payroll_item_emp_run_idx"),
        ]

    def __str__(self):
        return f"Item {self.employee_id} in run {self.run_id}: {self.net_salary}"
