"""Owner platform-fee submissions and admin verification."""

from __future__ import annotations

import logging
from decimal import Decimal

from django.db import transaction
from django.utils import timezone
from rest_framework import serializers, status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from core.exceptions import Conflict, NotFound
from notifications.services import create_notification
from users.permissions import IsAdminRole, IsNotBlocked, IsOwnerRole

from .models import PlatformFee

logger = logging.getLogger(__name__)


class PlatformFeeSubmitSerializer(serializers.Serializer):
    month = serializers.IntegerField(min_value=1, max_value=12)
    year = serializers.IntegerField(min_value=2000, max_value=9999)
    amount = serializers.DecimalField(
        max_digits=12, decimal_places=2, min_value=Decimal("0.01")
    )
    referenceNumber = serializers.CharField(max_length=128)

    def validate_referenceNumber(self, value: str) -> str:
        value = value.strip()
        if not value:
            raise serializers.ValidationError("Payment reference number is required.")
        return value


class PlatformFeeSerializer(serializers.ModelSerializer):
    ownerId = serializers.IntegerField(source="owner_id", read_only=True)
    hostName = serializers.SerializerMethodField()
    hostEmail = serializers.SerializerMethodField()
    referenceNumber = serializers.CharField(source="reference_number", read_only=True)
    submittedAt = serializers.DateTimeField(source="submitted_at", read_only=True)
    verifiedAt = serializers.DateTimeField(source="verified_at", read_only=True)

    class Meta:
        model = PlatformFee
        fields = (
            "id",
            "ownerId",
            "hostName",
            "hostEmail",
            "month",
            "year",
            "amount",
            "referenceNumber",
            "status",
            "submittedAt",
            "verifiedAt",
        )
        read_only_fields = fields

    def get_hostName(self, obj: PlatformFee) -> str:
        return obj.owner.get_full_name() or "Unknown"

    def get_hostEmail(self, obj: PlatformFee) -> str:
        return obj.owner.email or "N/A"


@api_view(["GET", "POST"])
@permission_classes([IsAuthenticated, IsNotBlocked, IsOwnerRole])
def owner_platform_fees(request):
    """List the caller's fee submissions, or submit a new one."""
    if request.method == "GET":
        fees = PlatformFee.objects.filter(owner=request.user).select_related("owner")
        return Response(PlatformFeeSerializer(fees, many=True).data)

    serializer = PlatformFeeSubmitSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    data = serializer.validated_data
    fee = PlatformFee.objects.create(
        owner=request.user,
        month=data["month"],
        year=data["year"],
        amount=data["amount"],
        reference_number=data["referenceNumber"],
    )
    logger.info(
        "payments: owner %s submitted platform fee %s for %s-%02d",
        request.user.pk,
        fee.pk,
        fee.year,
        fee.month,
    )
    return Response(
        {"message": "Payment submitted successfully.", "id": fee.pk},
        status=status.HTTP_201_CREATED,
    )


@api_view(["GET"])
@permission_classes([IsAuthenticated, IsAdminRole])
def all_platform_fees(request):
    fees = PlatformFee.objects.select_related("owner")
    return Response(PlatformFeeSerializer(fees, many=True).data)


@api_view(["PUT"])
@permission_classes([IsAuthenticated, IsAdminRole])
def verify_platform_fee(request, fee_id: int):
    with transaction.atomic():
        fee = (
            PlatformFee.objects.select_for_update()
            .select_related("owner")
            .filter(pk=fee_id)
            .first()
        )
        if fee is None:
            raise NotFound("Platform fee not found.")
        if fee.status == PlatformFee.Status.VERIFIED:
            raise Conflict("This fee has already been verified.", currentState=fee.status)
        fee.status = PlatformFee.Status.VERIFIED
        fee.verified_at = timezone.now()
        fee.verified_by = request.user
        fee.save(update_fields=["status", "verified_at", "verified_by"])

    logger.info("payments: admin %s verified platform fee %s", request.user.pk, fee.pk)
    create_notification(
        fee.owner,
        f"Your platform fee payment for {fee.year}-{fee.month:02d} has been verified.",
    )
    return Response(
        {"message": "Fee verified successfully.", "fee": PlatformFeeSerializer(fee).data}
    )
