from rest_framework import serializers

from .models import LeaveRequest
from .services import calculate_duration_days


class LeaveRequestInputSerializer(serializers.Serializer):
    leave_type = serializers.ChoiceField(choices=LeaveRequest.TYPE_CHOICES)
    start_date = serializers.DateField()
    end_date = serializers.DateField()
    reason = serializers.CharField(required=False, allow_blank=True, default="")

    def validate(self, attrs):
        if attrs["start_date"] > attrs["end_date"]:
            raise serializers.ValidationError({"end_date": "End date cannot be before start date."})
        return attrs


class LeaveStatusUpdateSerializer(serializers.Serializer):
    status = serializers.ChoiceField(
        choices=[
            (LeaveRequest.STATUS_APPROVED, "Approved"),
            (LeaveRequest.STATUS_REJECTED, "Rejected"),
        ]
    )


class LeaveRequestSerializer(serializers.ModelSerializer):
    employee_name = serializers.CharField(source="employee.full_name", read_only=True)
    duration_days = serializers.SerializerMethodField()

    class Meta:
        model = LeaveRequest
        fields = [
            "id",
            "employee",
            "employee_name",
            "leave_type",
            "start_date",
            "end_date",
            "duration_days",
            "reason",
            "status",
            "approved_at",
            "rejected_at",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields

    def get_duration_days(self, obj):
        return calculate_duration_days(obj.start_date, obj.end_date)
