import django.core.validators
import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):
    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="Vehicle",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("make", models.CharField(max_length=60)),
                ("model", models.CharField(max_length=60)),
                ("year", models.PositiveIntegerField(blank=True, null=True)),
                (
                    "type",
                    models.CharField(
                        choices=[
                            ("sedan", "Sedan"),
                            ("suv", "SUV"),
                            ("van", "Van"),
                            ("pickup", "Pickup"),
                            ("hatchback", "Hatchback"),
                            ("motorcycle", "Motorcycle"),
                        ],
                        default="sedan",
                        max_length=16,
                    ),
                ),
                ("seats", models.PositiveSmallIntegerField(default=4)),
                (
                    "transmission",
                    models.CharField(
                        choices=[("automatic", "Automatic"), ("manual", "Manual")],
                        default="automatic",
                        max_length=16,
                    ),
                ),
                ("fuel_type", models.CharField(blank=True, default="", max_length=32)),
                ("description", models.TextField(blank=True)),
                (
                    "rental_price_per_day",
                    models.DecimalField(
                        blank=True,
                        decimal_places=2,
                        max_digits=10,
                        null=True,
                        validators=[django.core.validators.MinValueValidator(0)],
                    ),
                ),
                ("location", models.CharField(blank=True, default="", max_length=255)),
                ("latitude", models.FloatField(blank=True, null=True)),
                ("longitude", models.FloatField(blank=True, null=True)),
                ("images", models.JSONField(blank=True, default=list)),
                (
                    "availability",
                    models.JSONField(
                        blank=True,
                        default=list,
                        help_text="Blocked intervals as {start, end, bookingId?}; unsorted, may overlap.",
                    ),
                ),
                ("is_active", models.BooleanField(default=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "owner",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="vehicles",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(fields=["owner", "created_at"], name="vehicle_owner_created_idx"),
                    models.Index(fields=["make"], name="vehicle_make_idx"),
                ],
            },
        ),
    ]
