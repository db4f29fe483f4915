"""Database models for vehicle bookings."""

from __future__ import annotations

from decimal import Decimal

from django.conf import settings
from django.db import models

from vehicles.models import Vehicle


class Booking(models.Model):
    """A renter's reservation of a vehicle over a half-open ``[start, end)`` range."""

    class PaymentStatus(models.TextChoices):
        PENDING_OWNER_APPROVAL = "pending_owner_approval", "Pending owner approval"
        DECLINED_BY_OWNER = "declined_by_owner", "Declined by owner"
        PENDING_PAYMENT = "pending_payment", "Pending payment"
        DOWNPAYMENT_PENDING_VERIFICATION = (
            "downpayment_pending_verification",
            "Downpayment pending verification",
        )
        DOWNPAYMENT_VERIFIED = "downpayment_verified", "Downpayment verified"
        PAID = "paid", "Paid"
        CONFIRMED = "confirmed", "Confirmed"
        PENDING_EXTENSION_PAYMENT = "pending_extension_payment", "Pending extension payment"
        RETURNED = "returned", "Returned"
        COMPLETED = "completed", "Completed"
        CANCELLED_BY_RENTER = "cancelled_by_renter", "Cancelled by renter"

    class PaymentMethod(models.TextChoices):
        MANUAL = "manual", "Manual transfer"
        GATEWAY = "gateway", "Online payment"
        CASH = "cash", "Cash"

    vehicle = models.ForeignKey(
        Vehicle,
        related_name="bookings",
        on_delete=models.CASCADE,
    )
    owner = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        related_name="bookings_as_owner",
        on_delete=models.CASCADE,
    )
    renter = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        related_name="bookings_as_renter",
        on_delete=models.CASCADE,
    )
    start_date = models.DateTimeField()
    end_date = models.DateTimeField(help_text="Exclusive end instant, must be after start_date.")
    payment_method_type = models.CharField(
        max_length=16,
        choices=PaymentMethod.choices,
        default=PaymentMethod.MANUAL,
    )
    payment_status = models.CharField(
        max_length=40,
        choices=PaymentStatus.choices,
        default=PaymentStatus.PENDING_OWNER_APPROVAL,
    )
    total_cost = models.DecimalField(max_digits=12, decimal_places=2)
    down_payment = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    remaining_balance = models.DecimalField(
        max_digits=12, decimal_places=2, default=Decimal("0.00")
    )
    amount_paid = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    payment_reference_number = models.CharField(max_length=120, blank=True, default="")
    payment_intent_id = models.CharField(max_length=120, blank=True, default="")
    review_submitted = models.BooleanField(default=False)
    extensions = models.JSONField(default=list, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)
    approved_at = models.DateTimeField(null=True, blank=True)
    declined_at = models.DateTimeField(null=True, blank=True)
    payment_submitted_at = models.DateTimeField(null=True, blank=True)
    downpayment_received_at = models.DateTimeField(null=True, blank=True)
    paid_at = models.DateTimeField(null=True, blank=True)
    confirmed_at = models.DateTimeField(null=True, blank=True)
    returned_at = models.DateTimeField(null=True, blank=True)
    completed_at = models.DateTimeField(null=True, blank=True)
    cancelled_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        ordering = ["-created_at"]
        indexes = [
            models.Index(
                fields=["vehicle", "start_date", "end_date"], name="booking_vehicle_range_idx"
            ),
            models.Index(fields=["renter", "payment_status"], name="booking_renter_status_idx"),
            models.Index(fields=["owner", "payment_status"], name="booking_owner_status_idx"),
        ]

    def __str__(self) -> str:
        return f"Booking #{self.pk} for vehicle {self.vehicle_id} ({self.payment_status})"

    def pending_extension(self) -> dict | None:
        """Return the extension awaiting payment, if any."""
        for entry in reversed(self.extensions or []):
            if entry.get("status") == "pending_payment":
                return entry
        return None


class Report(models.Model):
    """Issue raised by either party about a booking, triaged by admins."""

    class Status(models.TextChoices):
        SUBMITTED = "submitted", "Submitted"
        REVIEWED = "reviewed", "Reviewed"
        RESOLVED = "resolved", "Resolved"

    booking = models.ForeignKey(
        Booking,
        related_name="reports",
        on_delete=models.CASCADE,
    )
    reporter = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        related_name="booking_reports",
        on_delete=models.CASCADE,
    )
    reason = models.CharField(max_length=120)
    details = models.TextField()
    status = models.CharField(
        max_length=16,
        choices=Status.choices,
        default=Status.SUBMITTED,
    )
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-created_at"]

    def __str__(self) -> str:
        return f"Report #{self.pk} on booking {self.booking_id} ({self.status})"
