from decimal import Decimal
import uuid

import django.core.validators
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name='Employee',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('employee_id', models.CharField(help_text='Company-assigned employee ID', max_length=50, unique=True)),
                ('first_name', models.CharField(max_length=100)),
                ('last_name', models.CharField(max_length=100)),
                ('middle_name', models.CharField(blank=True, max_length=100, null=True)),
                ('email', models.EmailField(help_text='Work email', max_length=254)),
                ('job_title', models.CharField(blank=True, default='', max_length=255)),
                (
                    'employment_status',
                    models.CharField(
                        choices=[
                            ('ACTIVE', 'Active'),
                            ('ON_LEAVE', 'On Leave'),
                            ('SUSPENDED', 'Suspended'),
                            ('TERMINATED', 'Terminated'),
                        ],
                        default='ACTIVE',
                        max_length=20,
                    ),
                ),
                ('hire_date', models.DateField(blank=True, null=True)),
                (
                    'leave_balance',
                    models.DecimalField(
                        decimal_places=2,
                        default=Decimal('0.00'),
                        max_digits=6,
                        validators=[django.core.validators.MinValueValidator(Decimal('0.00'))],
                    ),
                ),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
            ],
            options={
                'verbose_name': 'Employee',
                'verbose_name_plural': 'Employees',
                'db_table': 'employees',
                'ordering': ['last_name', 'first_name'],
                'indexes': [models.Index(fields=['email'], name='employees_email_idx')],
                'constraints': [
                    models.CheckConstraint(
                        condition=models.Q(('leave_balance__gte', 0)),
                        name='employee_leave_balance_non_negative',
                    ),
                ],
            },
        ),
    ]
