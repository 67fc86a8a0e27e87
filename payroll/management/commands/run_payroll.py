from django.core.management import BaseCommand, CommandError
from rest_framework.exceptions import APIException

from payroll.models import PayrollRun
from payroll.services import create_payroll_run, lock_payroll_run, process_payroll_run, summarize_run


class Command(BaseCommand):
    help = (
        "Create (if needed) and process the payroll run for a month, then print "
        "its summary. With --lock the processed run is locked and pay dates are stamped."
    )

    def add_arguments(self, parser):
        parser.add_argument("--year", type=int, required=True)
        parser.add_argument("--month", type=int, required=True)
        parser.add_argument(
            "--lock",
            action="store_true",
            help="Lock the run after processing.",
        )
        parser.add_argument(
            "--database",
            dest="database",
            default="default",
            help="Database alias to run against (default: default).",
        )

    def handle(self, *args, **options):
        year = options["year"]
        month = options["month"]
        alias = options.get("database") or "default"

        try:
            run = PayrollRun.objects.using(alias).filter(year=year, month=month).first()
            if run is None:
                run = create_payroll_run(year=year, month=month, db_alias=alias)
                self.stdout.write(f"Created payroll run {run.id} for {year}-{month:02d}.")

            result = process_payroll_run(run_id=run.id, db_alias=alias)
            self.stdout.write(
                self.style.SUCCESS(
                    f"Processed {year}-{month:02d}: {result.processed_count} items, "
                    f"{result.skipped_count} skipped."
                )
            )
            if result.skipped_employee_ids:
                self.stdout.write(
                    self.style.WARNING("Skipped employees: " + ", ".join(map(str, result.skipped_employee_ids)))
                )

            if options.get("lock"):
                run = lock_payroll_run(run_id=run.id, db_alias=alias)
                self.stdout.write(self.style.SUCCESS(f"Locked payroll run {run.id}."))
        except APIException as exc:
            raise CommandError(str(exc.detail))

        totals = summarize_run(run, db_alias=alias) or {}
        for key in ("item_count", "total_base_salary", "total_bonus", "total_deductions", "total_net_salary"):
            self.stdout.write(f"  {key}: {totals.get(key)}")
