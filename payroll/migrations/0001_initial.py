from decimal import Decimal
import uuid

from django.db import migrations, models
import django.db.models.deletion


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ("employees", "0001_initial"),
    ]

    operations = [
        migrations.CreateModel(
            name="PayrollRun",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("year", models.PositiveSmallIntegerField()),
                ("month", models.PositiveSmallIntegerField()),
                (
                    "status",
                    models.CharField(
                        choices=[("DRAFT", "Draft"), ("PROCESSED", "Processed"), ("LOCKED", "Locked")],
                        db_index=True,
                        default="DRAFT",
                        max_length=10,
                    ),
                ),
                ("processed_at", models.DateTimeField(blank=True, null=True)),
                ("locked_at", models.DateTimeField(blank=True, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
            ],
            options={
                "verbose_name": "Payroll Run",
                "verbose_name_plural": "Payroll Runs",
                "db_table": "payroll_runs",
                "ordering": ["-year", "-month"],
                "constraints": [
                    models.UniqueConstraint(fields=("year", "month"), name="uniq_payroll_run_per_period"),
                ],
            },
        ),
        migrations.CreateModel(
            name="SalaryStructure",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("base_salary", models.DecimalField(decimal_places=2, help_text="Annual base salary.", max_digits=14)),
                (
                    "bonus_details",
                    models.JSONField(
                        blank=True,
                        default=dict,
                        help_text="Bonus policy: {} or {'type': 'percentage'|'fixed_amount', 'value': ...}.",
                    ),
                ),
                ("effective_from", models.DateField()),
                (
                    "effective_to",
                    models.DateField(blank=True, help_text="Inclusive; empty means open-ended.", null=True),
                ),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "employee",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="salary_structures",
                        to="employees.employee",
                    ),
                ),
            ],
            options={
                "verbose_name": "Salary Structure",
                "verbose_name_plural": "Salary Structures",
                "db_table": "payroll_salary_structures",
                "ordering": ["employee", "-effective_from"],
                "indexes": [
                    models.Index(fields=["employee", "effective_from"], name="payroll_struct_emp_from_idx"),
                ],
                "constraints": [
                    models.UniqueConstraint(
                        condition=models.Q(("effective_to__isnull", True)),
                        fields=("employee",),
                        name="uniq_open_salary_structure_per_employee",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="PayrollItem",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("base_salary", models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=14)),
                ("bonus", models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=14)),
                ("deductions", models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=14)),
                ("net_salary", models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=14)),
                ("unpaid_leave_days", models.PositiveSmallIntegerField(default=0)),
                ("pay_date", models.DateField(blank=True, help_text="Set when the run is locked.", null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "employee",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="payroll_items",
                        to="employees.employee",
                    ),
                ),
                (
                    "run",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="items",
                        to="payroll.payrollrun",
                    ),
                ),
            ],
            options={
                "verbose_name": "Payroll Item",
                "verbose_name_plural": "Payroll Items",
                "db_table": "payroll_items",
                "indexes": [
                    models.Index(fields=["employee", "run"], name="payroll_item_emp_run_idx"),
                ],
                "constraints": [
                    models.UniqueConstraint(fields=("run", "employee"), name="uniq_payroll_item_per_employee"),
                ],
            },
        ),
    ]
