from django.contrib import admin

from .models import LeaveRequest


@admin.register(LeaveRequest)
class LeaveRequestAdmin(admin.ModelAdmin):
    list_display = ["employee", "leave_type", "start_date", "end_date", "status", "created_at"]
    list_filter = ["leave_type", "status"]
    search_fields = ["employee__employee_id", "employee__last_name"]
    readonly_fields = ["id", "approved_at", "rejected_at", "created_at", "updated_at"]
