from django.conf import settings
from django.db import models


class WebhookEvent(models.Model):
    """Verified gateway delivery; the unique event id makes redelivery a no-op."""

    event_id = models.CharField(max_length=255, unique=True)
    event_type = models.CharField(max_length=64, blank=True)
    payment_id = models.CharField(max_length=255, blank=True)
    booking_ref = models.CharField(max_length=64, blank=True)
    user_ref = models.CharField(max_length=64, blank=True)
    processed = models.BooleanField(
        default=False,
        help_text="True when the event changed payment state.",
    )
    received_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-received_at"]

    def __str__(self) -> str:
        return f"{self.event_type or 'event'} {self.event_id}"


class GatewayPayment(models.Model):
    """
    Gateway-side payment record addressed by the ids carried in the webhook.

    Written with an upsert so it exists whether or not the booking row does.
    """

    class Status(models.TextChoices):
        PAID = "paid", "Paid"

    booking_ref = models.CharField(max_length=64)
    user_ref = models.CharField(max_length=64)
    status = models.CharField(max_length=16, choices=Status.choices, default=Status.PAID)
    payment_intent_id = models.CharField(max_length=255, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-updated_at"]
        constraints = [
            models.UniqueConstraint(
                fields=["booking_ref", "user_ref"],
                name="unique_gateway_payment_per_booking_user",
            )
        ]

    def __str__(self) -> str:
        return f"GatewayPayment booking={self.booking_ref} user={self.user_ref} {self.status}"


class PlatformFee(models.Model):
    """Monthly commission an owner pays to the platform, verified by an admin."""

    class Status(models.TextChoices):
        PENDING = "pending", "Pending"
        VERIFIED = "verified", "Verified"

    owner = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="platform_fees",
    )
    month = models.PositiveSmallIntegerField()
    year = models.PositiveSmallIntegerField()
    amount = models.DecimalField(max_digits=12, decimal_places=2)
    reference_number = models.CharField(max_length=128)
    status = models.CharField(max_length=16, choices=Status.choices, default=Status.PENDING)
    submitted_at = models.DateTimeField(auto_now_add=True)
    verified_at = models.DateTimeField(null=True, blank=True)
    verified_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="verified_platform_fees",
    )

    class Meta:
        ordering = ["-submitted_at", "-id"]
        indexes = [models.Index(fields=["owner", "status"], name="platform_fee_owner_status")]

    def __str__(self) -> str:
        return f"PlatformFee {self.owner_id} {self.year}-{self.month:02d} {self.status}"
