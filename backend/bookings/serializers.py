"""Serializers for booking-related API endpoints."""

from __future__ import annotations

from rest_framework import serializers

from .models import Booking, Report


class BookingSerializer(serializers.ModelSerializer):
    """Read representation of a booking; writes go through the service layer."""

    vehicle_make = serializers.ReadOnlyField(source="vehicle.make")
    vehicle_model = serializers.ReadOnlyField(source="vehicle.model")
    owner_username = serializers.ReadOnlyField(source="owner.username")
    renter_username = serializers.ReadOnlyField(source="renter.username")
    renter_first_name = serializers.ReadOnlyField(source="renter.first_name")
    renter_last_name = serializers.ReadOnlyField(source="renter.last_name")

    class Meta:
        model = Booking
        fields = [
            "id",
            "vehicle",
            "vehicle_make",
            "vehicle_model",
            "owner",
            "owner_username",
            "renter",
            "renter_username",
            "renter_first_name",
            "renter_last_name",
            "start_date",
            "end_date",
            "payment_method_type",
            "payment_status",
            "total_cost",
            "down_payment",
            "remaining_balance",
            "amount_paid",
            "payment_reference_number",
            "payment_intent_id",
            "review_submitted",
            "extensions",
            "created_at",
            "updated_at",
            "approved_at",
            "confirmed_at",
            "returned_at",
            "completed_at",
            "cancelled_at",
        ]
        read_only_fields = fields


class BookingCreateSerializer(serializers.Serializer):
    vehicleId = serializers.IntegerField()
    startDate = serializers.CharField()
    endDate = serializers.CharField()
    paymentMethodType = serializers.ChoiceField(
        choices=Booking.PaymentMethod.choices,
        required=False,
        default=Booking.PaymentMethod.MANUAL,
    )


class ReportSerializer(serializers.ModelSerializer):
    class Meta:
        model = Report
        fields = ["id", "booking", "reporter", "reason", "details", "status", "created_at"]
        read_only_fields = fields
