"""API viewsets and views for bookings."""

from __future__ import annotations

import logging

from django.db.models import Q
from django.http import HttpResponse
from django.shortcuts import get_object_or_404
from rest_framework import mixins, permissions, status, viewsets
from rest_framework.decorators import action, api_view, permission_classes
from rest_framework.response import Response

from core.exceptions import PermissionDenied, ValidationFailed
from users.permissions import IsAdminRole, IsNotBlocked, is_admin
from vehicles.models import Vehicle

from . import availability, services
from .contracts import render_booking_contract_pdf
from .domain import assert_participant_or_admin
from .models import Booking, Report
from .serializers import BookingCreateSerializer, BookingSerializer, ReportSerializer

logger = logging.getLogger(__name__)


def _transition_response(booking: Booking, message: str, *, http_status=status.HTTP_200_OK):
    return Response(
        {"message": message, "booking": BookingSerializer(booking).data},
        status=http_status,
    )


def _date_filtered(qs, request, field: str = "created_at"):
    start_raw = request.query_params.get("startDate")
    end_raw = request.query_params.get("endDate")
    if start_raw:
        start = availability.parse_instant(start_raw)
        if start is None:
            raise ValidationFailed("startDate is not a valid date.")
        qs = qs.filter(**{f"{field}__gte": start})
    if end_raw:
        end = availability.parse_instant(end_raw)
        if end is None:
            raise ValidationFailed("endDate is not a valid date.")
        qs = qs.filter(**{f"{field}__lt": end})
    return qs


class BookingViewSet(
    mixins.ListModelMixin,
    mixins.RetrieveModelMixin,
    mixins.DestroyModelMixin,
    viewsets.GenericViewSet,
):
    """Booking requests and every lifecycle transition."""

    serializer_class = BookingSerializer
    permission_classes = [permissions.IsAuthenticated, IsNotBlocked]
    http_method_names = ["get", "post", "put", "delete", "head", "options"]

    def get_queryset(self):
        qs = Booking.objects.select_related("vehicle", "owner", "renter")
        if self.action == "list":
            user = self.request.user
            qs = qs.filter(Q(renter=user) | Q(owner=user))
            status_param = self.request.query_params.get("status")
            if status_param in Booking.PaymentStatus.values:
                qs = qs.filter(payment_status=status_param)
        return qs

    def retrieve(self, request, *args, **kwargs):
        booking = self.get_object()
        assert_participant_or_admin(booking, request.user)
        return Response(self.get_serializer(booking).data)

    def create(self, request, *args, **kwargs):
        serializer = BookingCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        booking = services.create_booking(
            request.user,
            vehicle_id=data["vehicleId"],
            start_raw=data["startDate"],
            end_raw=data["endDate"],
            payment_method_type=data["paymentMethodType"],
        )
        return _transition_response(
            booking, "Booking request submitted.", http_status=status.HTTP_201_CREATED
        )

    def destroy(self, request, *args, **kwargs):
        services.delete_booking(kwargs["pk"], request.user)
        return Response({"message": "Booking deleted."}, status=status.HTTP_200_OK)

    @action(detail=True, methods=["put"], url_path="approve")
    def approve(self, request, pk=None):
        booking = services.approve_booking(pk, request.user)
        return _transition_response(booking, "Booking approved.")

    @action(detail=True, methods=["put"], url_path="decline")
    def decline(self, request, pk=None):
        booking = services.decline_booking(pk, request.user)
        return _transition_response(booking, "Booking declined.")

    @action(detail=True, methods=["put", "post"], url_path="cancel")
    def cancel(self, request, pk=None):
        booking = services.cancel_booking(pk, request.user)
        return _transition_response(booking, "Booking cancelled.")

    @action(detail=True, methods=["post"], url_path="confirm-downpayment-by-user")
    def confirm_downpayment_by_user(self, request, pk=None):
        booking = services.submit_payment(
            pk, request.user, reference_number=request.data.get("referenceNumber", "")
        )
        return _transition_response(booking, "Payment submitted for verification.")

    @action(detail=True, methods=["put"], url_path="verify-downpayment")
    def verify_downpayment(self, request, pk=None):
        booking = services.verify_downpayment(pk, request.user)
        return _transition_response(booking, "Downpayment verified.")

    @action(detail=True, methods=["put"], url_path="confirm-payment")
    def confirm_payment(self, request, pk=None):
        booking = services.confirm_payment(pk, request.user)
        return _transition_response(booking, "Payment confirmed and booking is now confirmed.")

    @action(detail=True, methods=["put"], url_path="status")
    def update_status(self, request, pk=None):
        new_status = request.data.get("newStatus") or request.data.get("status")
        booking = services.update_status(pk, request.user, new_status)
        return _transition_response(booking, f"Booking marked as {booking.payment_status}.")

    @action(detail=True, methods=["post"], url_path="extensions")
    def request_extension(self, request, pk=None):
        booking = services.request_extension(
            pk, request.user, hours=request.data.get("extensionHours")
        )
        return _transition_response(
            booking, "Extension requested.", http_status=status.HTTP_201_CREATED
        )

    @action(detail=True, methods=["post"], url_path="extensions/confirm")
    def confirm_extension(self, request, pk=None):
        booking = services.confirm_extension(
            pk,
            request.user,
            reference_number=request.data.get("referenceNumber", ""),
            amount=request.data.get("amount"),
        )
        return _transition_response(booking, "Extension payment confirmed.")

    @action(detail=True, methods=["post"], url_path="extensions/defer")
    def defer_extension(self, request, pk=None):
        booking = services.defer_extension(pk, request.user)
        return _transition_response(booking, "Extension approved; payment due on return.")

    @action(detail=True, methods=["post"], url_path="report")
    def report(self, request, pk=None):
        report = services.submit_report(
            pk,
            request.user,
            reason=request.data.get("reason", ""),
            details=request.data.get("details", ""),
        )
        return Response(
            {"message": "Report submitted.", "reportId": report.pk},
            status=status.HTTP_201_CREATED,
        )

    @action(detail=True, methods=["get"], url_path="contract")
    def contract(self, request, pk=None):
        booking = self.get_object()
        assert_participant_or_admin(booking, request.user)
        pdf_bytes = render_booking_contract_pdf(booking)
        response = HttpResponse(pdf_bytes, content_type="application/pdf")
        response["Content-Disposition"] = f'attachment; filename="contract-{booking.pk}.pdf"'
        return response

    @action(detail=False, methods=["get"], url_path="owner")
    def owner_bookings(self, request):
        qs = Booking.objects.select_related("vehicle", "owner", "renter").filter(
            owner=request.user
        )
        return Response(BookingSerializer(qs, many=True).data)

    @action(
        detail=False,
        methods=["get"],
        url_path="all",
        permission_classes=[permissions.IsAuthenticated, IsNotBlocked, IsAdminRole],
    )
    def all_bookings(self, request):
        qs = _date_filtered(Booking.objects.select_related("vehicle", "owner", "renter"), request)
        return Response(BookingSerializer(qs, many=True).data)

    @action(detail=False, methods=["get"], url_path=r"user/(?P<user_id>\d+)")
    def user_bookings(self, request, user_id=None):
        if int(user_id) != request.user.pk and not is_admin(request.user):
            raise PermissionDenied("You can only view your own bookings.")
        qs = Booking.objects.select_related("vehicle", "owner", "renter").filter(
            renter_id=user_id
        )
        return Response(BookingSerializer(qs, many=True).data)

    @action(detail=False, methods=["get"], url_path=r"vehicle/(?P<vehicle_id>\d+)")
    def vehicle_bookings(self, request, vehicle_id=None):
        vehicle = get_object_or_404(Vehicle, pk=vehicle_id)
        if vehicle.owner_id != request.user.pk and not is_admin(request.user):
            raise PermissionDenied("Only the vehicle owner can view its bookings.")
        qs = Booking.objects.select_related("vehicle", "owner", "renter").filter(vehicle=vehicle)
        return Response(BookingSerializer(qs, many=True).data)

    @action(
        detail=False,
        methods=["get"],
        url_path="reports",
        permission_classes=[permissions.IsAuthenticated, IsNotBlocked, IsAdminRole],
    )
    def reports(self, request):
        qs = Report.objects.all()
        status_param = request.query_params.get("status")
        if status_param in Report.Status.values:
            qs = qs.filter(status=status_param)
        return Response(ReportSerializer(qs, many=True).data)


@api_view(["GET"])
@permission_classes([permissions.AllowAny])
def vehicle_availability(request, vehicle_id: int):
    """Quote ``[startDate, endDate)`` for a vehicle."""
    vehicle = get_object_or_404(Vehicle, pk=vehicle_id)
    requested = availability.parse_interval(
        request.query_params.get("startDate"), request.query_params.get("endDate")
    )
    result = availability.check_availability(vehicle, requested.start, requested.end)
    return Response(
        {
            "isAvailable": result.is_available,
            "message": result.message,
            "reason": result.reason,
            "totalCost": str(result.total_cost) if result.total_cost is not None else None,
            "billableDays": result.billable_days,
        }
    )
