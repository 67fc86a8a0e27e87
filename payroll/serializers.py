from rest_framework import serializers

from .bonus import BonusPolicyError, parse_bonus_policy
from .models import PayrollItem, PayrollRun, SalaryStructure
from .services import summarize_run


class BonusPolicyField(serializers.Field):
    """
    Parses a bonus payload into a policy variant at the boundary.

    Accepts ``{}``/``null``, the tagged ``{"type": ..., "value": ...}`` form
    and the legacy flat ``{"percentage": p}`` / ``{"amount": a}`` /
    ``{"fixed": a}`` forms; always renders the tagged form.
    """

    def __init__(self, **kwargs):
        kwargs.setdefault("allow_null", True)
        kwargs.setdefault("required", False)
        super().__init__(**kwargs)

    def validate_empty_values(self, data):
        if data is None:
            return (True, parse_bonus_policy(None))
        return super().validate_empty_values(data)

    def to_internal_value(self, data):
        try:
            return parse_bonus_policy(data)
        except BonusPolicyError as exc:
            raise serializers.ValidationError(str(exc))

    def to_representation(self, value):
        try:
            return parse_bonus_policy(value).to_json()
        except BonusPolicyError:
            return value


class SalaryStructureInputSerializer(serializers.Serializer):
    base_salary = serializers.DecimalField(max_digits=14, decimal_places=2)
    bonus_details = BonusPolicyField()
    effective_from = serializers.DateField()
    effective_to = serializers.DateField(required=False, allow_null=True)

    def validate_base_salary(self, value):
        if value <= 0:
            raise serializers.ValidationError("Base salary must be positive.")
        return value

    def validate(self, attrs):
        effective_to = attrs.get("effective_to")
        if effective_to is not None and effective_to <= attrs["effective_from"]:
            raise serializers.ValidationError(
                {"effective_to": "Effective to date must be after effective from date."}
            )
        if "bonus_details" not in attrs:
            attrs["bonus_details"] = parse_bonus_policy(None)
        return attrs


class PayrollRunCreateSerializer(serializers.Serializer):
    year = serializers.IntegerField(min_value=2000)
    month = serializers.IntegerField(min_value=1, max_value=12)


def _employee_name(employee):
    if not employee:
        return ""
    return " ".join(part for part in [employee.first_name, employee.middle_name, employee.last_name] if part)


class SalaryStructureSerializer(serializers.ModelSerializer):
    employee_name = serializers.SerializerMethodField()
    employee_number = serializers.CharField(source="employee.employee_id", read_only=True)
    bonus_details = BonusPolicyField(read_only=True)
    is_active = serializers.BooleanField(source="is_currently_active", read_only=True)

    class Meta:
        model = SalaryStructure
        fields = [
            "id",
            "employee",
            "employee_name",
            "employee_number",
            "base_salary",
            "bonus_details",
            "effective_from",
            "effective_to",
            "is_active",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields

    def get_employee_name(self, obj):
        return _employee_name(obj.employee)


class PayrollRunSerializer(serializers.ModelSerializer):
    summary = serializers.SerializerMethodField()

    class Meta:
        model = PayrollRun
        fields = [
            "id",
            "year",
            "month",
            "status",
            "processed_at",
            "locked_at",
            "created_at",
            "summary",
        ]
        read_only_fields = fields

    def get_summary(self, obj):
        totals = summarize_run(obj, db_alias=self.context.get("db_alias", "default"))
        if totals is None:
            return None
        return {key: str(value) if key != "item_count" else value for key, value in totals.items()}


class PayrollItemSerializer(serializers.ModelSerializer):
    employee_name = serializers.SerializerMethodField()
    employee_number = serializers.CharField(source="employee.employee_id", read_only=True)
    year = serializers.IntegerField(source="run.year", read_only=True)
    month = serializers.IntegerField(source="run.month", read_only=True)
    run_status = serializers.CharField(source="run.status", read_only=True)

    class Meta:
        model = PayrollItem
        fields = [
            "id",
            "run",
            "year",
            "month",
            "run_status",
            "employee",
            "employee_name",
            "employee_number",
            "base_salary",
            "bonus",
            "deductions",
            "net_salary",
            "unpaid_leave_days",
            "pay_date",
        ]
        read_only_fields = fields

    def get_employee_name(self, obj):
        return _employee_name(obj.employee)
