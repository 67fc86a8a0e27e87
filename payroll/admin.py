from django.contrib import admin

from .models import PayrollItem, PayrollRun, SalaryStructure


@admin.register(SalaryStructure)
class SalaryStructureAdmin(admin.ModelAdmin):
    list_display = ["employee", "base_salary", "effective_from", "effective_to"]
    search_fields = ["employee__employee_id", "employee__last_name"]
    readonly_fields = ["id", "created_at", "updated_at"]


class PayrollItemInline(admin.TabularInline):
    model = PayrollItem
    extra = 0
    can_delete = False
    readonly_fields = [
        "employee",
        "base_salary",
        "bonus",
        "deductions",
        "net_salary",
        "unpaid_leave_days",
        "pay_date",
    ]


@admin.register(PayrollRun)
class PayrollRunAdmin(admin.ModelAdmin):
    list_display = ["year", "month", "status", "processed_at", "locked_at"]
    list_filter = ["status"]
    readonly_fields = ["id", "status", "processed_at", "locked_at", "created_at", "updated_at"]
    inlines = [PayrollItemInline]


@admin.register(PayrollItem)
class PayrollItemAdmin(admin.ModelAdmin):
    list_display = ["run", "employee", "net_salary", "pay_date"]
    list_filter = ["run__status"]
    search_fields = ["employee__employee_id", "employee__last_name"]
    readonly_fields = ["id", "created_at", "updated_at"]
