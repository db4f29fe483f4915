from django.conf import settings
from django.core.validators import MinValueValidator
from django.db import models


class Vehicle(models.Model):
    """A car or motorbike an owner rents out by the day."""

    class Type(models.TextChoices):
        SEDAN = "sedan", "Sedan"
        SUV = "suv", "SUV"
        VAN = "van", "Van"
        PICKUP = "pickup", "Pickup"
        HATCHBACK = "hatchback", "Hatchback"
        MOTORCYCLE = "motorcycle", "Motorcycle"

    class Transmission(models.TextChoices):
        AUTOMATIC = "automatic", "Automatic"
        MANUAL = "manual", "Manual"

    owner = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="vehicles",
    )
    make = models.CharField(max_length=60)
    model = models.CharField(max_length=60)
    year = models.PositiveIntegerField(null=True, blank=True)
    type = models.CharField(max_length=16, choices=Type.choices, default=Type.SEDAN)
    seats = models.PositiveSmallIntegerField(default=4)
    transmission = models.CharField(
        max_length=16,
        choices=Transmission.choices,
        default=Transmission.AUTOMATIC,
    )
    fuel_type = models.CharField(max_length=32, blank=True, default="")
    description = models.TextField(blank=True)
    rental_price_per_day = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        validators=[MinValueValidator(0)],
        null=True,
        blank=True,
    )
    location = models.CharField(max_length=255, blank=True, default="")
    latitude = models.FloatField(null=True, blank=True)
    longitude = models.FloatField(null=True, blank=True)
    images = models.JSONField(default=list, blank=True)
    availability = models.JSONField(
        default=list,
        blank=True,
        help_text="Blocked intervals as {start, end, bookingId?}; unsorted, may overlap.",
    )
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["owner", "created_at"], name="vehicle_owner_created_idx"),
            models.Index(fields=["make"], name="vehicle_make_idx"),
        ]

    def __str__(self) -> str:
        label = f"{self.make} {self.model}".strip()
        return f"{label} ({self.year})" if self.year else label
