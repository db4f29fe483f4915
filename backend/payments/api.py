"""Booking payment intent endpoint."""

from __future__ import annotations

import logging

from django.db import transaction
from rest_framework import serializers, status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from bookings.models import Booking
from core.exceptions import (
    ConfigurationError,
    Conflict,
    NotFound,
    PermissionDenied,
    UpstreamFailure,
)
from users.permissions import IsNotBlocked

from .paymongo import PayMongoConfigurationError, PayMongoError, create_payment_intent

logger = logging.getLogger(__name__)


class PaymentIntentRequestSerializer(serializers.Serializer):
    bookingId = serializers.IntegerField()


@api_view(["POST"])
@permission_classes([IsAuthenticated, IsNotBlocked])
def create_booking_payment_intent(request):
    """Start an online downpayment for an approved booking."""
    serializer = PaymentIntentRequestSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)

    booking = (
        Booking.objects.select_related("vehicle")
        .filter(pk=serializer.validated_data["bookingId"])
        .first()
    )
    if booking is None:
        raise NotFound("Booking not found.")
    if booking.renter_id != request.user.pk:
        raise PermissionDenied("Only the renter can pay for this booking.")
    if booking.payment_status != Booking.PaymentStatus.PENDING_PAYMENT:
        raise Conflict(
            "This booking is not awaiting payment.",
            currentState=booking.payment_status,
        )

    vehicle = booking.vehicle
    try:
        intent = create_payment_intent(
            booking.down_payment,
            booking_id=booking.pk,
            user_id=request.user.pk,
            description=f"DriveHub booking #{booking.pk} for {vehicle.make} {vehicle.model}",
        )
    except PayMongoConfigurationError as exc:
        logger.error("payments: %s", exc)
        raise ConfigurationError("Online payments are not configured.") from exc
    except PayMongoError as exc:
        raise UpstreamFailure(str(exc)) from exc

    intent_id = intent.get("id", "")
    with transaction.atomic():
        Booking.objects.filter(pk=booking.pk).update(
            payment_intent_id=intent_id,
            payment_method_type=Booking.PaymentMethod.GATEWAY,
        )

    return Response(
        {
            "paymentIntentId": intent_id,
            "clientKey": (intent.get("attributes") or {}).get("client_key", ""),
            "amount": str(booking.down_payment),
        },
        status=status.HTTP_201_CREATED,
    )
