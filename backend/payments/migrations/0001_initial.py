from django.db import migrations, models


class Migration(migrations.Migration):
    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="WebhookEvent",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("event_id", models.CharField(max_length=255, unique=True)),
                ("event_type", models.CharField(blank=True, max_length=64)),
                ("payment_id", models.CharField(blank=True, max_length=255)),
                ("booking_ref", models.CharField(blank=True, max_length=64)),
                ("user_ref", models.CharField(blank=True, max_length=64)),
                (
                    "processed",
                    models.BooleanField(default=False, help_text="True when the event changed payment state."),
                ),
                ("received_at", models.DateTimeField(auto_now_add=True)),
            ],
            options={
                "ordering": ["-received_at"],
            },
        ),
        migrations.CreateModel(
            name="GatewayPayment",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("booking_ref", models.CharField(max_length=64)),
                ("user_ref", models.CharField(max_length=64)),
                ("status", models.CharField(choices=[("paid", "Paid")], default="paid", max_length=16)),
                ("payment_intent_id", models.CharField(blank=True, max_length=255)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
            ],
            options={
                "ordering": ["-updated_at"],
                "constraints": [
                    models.UniqueConstraint(
                        fields=("booking_ref", "user_ref"),
                        name="unique_gateway_payment_per_booking_user",
                    )
                ],
            },
        ),
    ]
