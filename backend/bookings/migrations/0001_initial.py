from decimal import Decimal

import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):
    initial = True

    dependencies = [
        ("vehicles", "0001_initial"),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="Booking",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("start_date", models.DateTimeField()),
                ("end_date", models.DateTimeField(help_text="Exclusive end instant, must be after start_date.")),
                (
                    "payment_method_type",
                    models.CharField(
                        choices=[("manual", "Manual transfer"), ("gateway", "Online payment"), ("cash", "Cash")],
                        default="manual",
                        max_length=16,
                    ),
                ),
                (
                    "payment_status",
                    models.CharField(
                        choices=[
                            ("pending_owner_approval", "Pending owner approval"),
                            ("declined_by_owner", "Declined by owner"),
                            ("pending_payment", "Pending payment"),
                            ("downpayment_pending_verification", "Downpayment pending verification"),
                            ("downpayment_verified", "Downpayment verified"),
                            ("paid", "Paid"),
                            ("confirmed", "Confirmed"),
                            ("pending_extension_payment", "Pending extension payment"),
                            ("returned", "Returned"),
                            ("completed", "Completed"),
                            ("cancelled_by_renter", "Cancelled by renter"),
                        ],
                        default="pending_owner_approval",
                        max_length=40,
                    ),
                ),
                ("total_cost", models.DecimalField(decimal_places=2, max_digits=12)),
                ("down_payment", models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=12)),
                ("remaining_balance", models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=12)),
                ("amount_paid", models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=12)),
                ("payment_reference_number", models.CharField(blank=True, default="", max_length=120)),
                ("payment_intent_id", models.CharField(blank=True, default="", max_length=120)),
                ("review_submitted", models.BooleanField(default=False)),
                ("extensions", models.JSONField(blank=True, default=list)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("approved_at", models.DateTimeField(blank=True, null=True)),
                ("declined_at", models.DateTimeField(blank=True, null=True)),
                ("payment_submitted_at", models.DateTimeField(blank=True, null=True)),
                ("downpayment_received_at", models.DateTimeField(blank=True, null=True)),
                ("paid_at", models.DateTimeField(blank=True, null=True)),
                ("confirmed_at", models.DateTimeField(blank=True, null=True)),
                ("returned_at", models.DateTimeField(blank=True, null=True)),
                ("completed_at", models.DateTimeField(blank=True, null=True)),
                ("cancelled_at", models.DateTimeField(blank=True, null=True)),
                (
                    "owner",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="bookings_as_owner",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
                (
                    "renter",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="bookings_as_renter",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
                (
                    "vehicle",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="bookings",
                        to="vehicles.vehicle",
                    ),
                ),
            ],
            options={
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(fields=["vehicle", "start_date", "end_date"], name="booking_vehicle_range_idx"),
                    models.Index(fields=["renter", "payment_status"], name="booking_renter_status_idx"),
                    models.Index(fields=["owner", "payment_status"], name="booking_owner_status_idx"),
                ],
            },
        ),
        migrations.CreateModel(
            name="Report",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("reason", models.CharField(max_length=120)),
                ("details", models.TextField()),
                (
                    "status",
                    models.CharField(
                        choices=[("submitted", "Submitted"), ("reviewed", "Reviewed"), ("resolved", "Resolved")],
                        default="submitted",
                        max_length=16,
                    ),
                ),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                (
                    "booking",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="reports",
                        to="bookings.booking",
                    ),
                ),
                (
                    "reporter",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="booking_reports",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "ordering": ["-created_at"],
            },
        ),
    ]
