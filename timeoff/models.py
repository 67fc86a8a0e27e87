import uuid

from django.db import models
from django.utils import timezone


class LeaveRequest(models.Model):
    """Represents a leave request made by an employee."""

    TYPE_PAID = "PAID"
    TYPE_SICK = "SICK"
    TYPE_CASUAL = "CASUAL"

    TYPE_CHOICES = [
        (TYPE_PAID, "Paid"),
        (TYPE_SICK, "Sick"),
        (TYPE_CASUAL, "Casual"),
    ]

    # Sick and casual leave are not balance-backed and cost the employee pay
    UNPAID_TYPES = (TYPE_SICK, TYPE_CASUAL)

    STATUS_PENDING = "PENDING"
    STATUS_APPROVED = "APPROVED"
    STATUS_REJECTED = "REJECTED"

    STATUS_CHOICES = [
        (STATUS_PENDING, "Pending Approval"),
        (STATUS_APPROVED, "Approved"),
        (STATUS_REJECTED, "Rejected"),
    ]

    # Requests in these states block overlapping requests for the same employee
    BLOCKING_STATUSES = (STATUS_PENDING, STATUS_APPROVED)

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    employee = models.ForeignKey(
        "employees.Employee",
        on_delete=models.CASCADE,
        related_name="leave_requests",
        help_text="Employee requesting leave",
    )
    leave_type = models.CharField(max_length=10, choices=TYPE_CHOICES, db_index=True)
    start_date = models.DateField()
    end_date = models.DateField(help_text="Inclusive")
    reason = models.TextField(blank=True, default="")
    status = models.CharField(max_length=10, choices=STATUS_CHOICES, default=STATUS_PENDING, db_index=True)

    approved_at = models.DateTimeField(blank=True, null=True)
    rejected_at = models.DateTimeField(blank=True, null=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "timeoff_leave_requests"
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["employee", "status"], name="timeoff_emp_status_idx"),
            models.Index(fields=["start_date", "end_date"], name="timeoff_dates_idx"),
        ]

    def __str__(self):
        return f"{self.leave_type} leave by {self.employee_id} ({self.status})"

    @property
    def duration_days(self) -> int:
        return (self.end_date - self.start_date).days + 1

    @property
    def is_pending(self) -> bool:
        return self.status == self.STATUS_PENDING

    @property
    def is_paid_leave(self) -> bool:
        return self.leave_type == self.TYPE_PAID

    def mark_approved(self):
        self.status = self.STATUS_APPROVED
        self.approved_at = timezone.now()

    def mark_rejected(self):
        self.status = self.STATUS_REJECTED
        self.rejected_at = timezone.now()
