from __future__ import annotations

import logging

from django.db import IntegrityError, transaction
from django.shortcuts import get_object_or_404
from django.utils import timezone
from rest_framework import permissions, status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response

from bookings.domain import REVIEWABLE_STATUSES
from bookings.models import Booking
from core.exceptions import Conflict, NotFound, PermissionDenied
from notifications.services import create_notification
from users.permissions import IsNotBlocked
from vehicles.models import Vehicle

from .models import Review
from .serializers import (
    ReviewCreateSerializer,
    ReviewReplySerializer,
    ReviewSerializer,
    summarize,
)

logger = logging.getLogger(__name__)


def _create_review(user, data: dict) -> Review:
    """Store the review and flag the booking in one transaction."""
    with transaction.atomic():
        booking = (
            Booking.objects.select_for_update(of=("self",))
            .select_related("vehicle")
            .filter(pk=data["bookingId"])
            .first()
        )
        if booking is None:
            raise NotFound("Booking not found.")
        if booking.renter_id != user.pk:
            raise PermissionDenied("Only the renter of this booking can review it.")
        if booking.payment_status not in REVIEWABLE_STATUSES:
            raise Conflict(
                "Reviews are only allowed after the vehicle is returned.",
                currentState=booking.payment_status,
            )
        if booking.review_submitted:
            raise Conflict("You have already reviewed this booking.")

        try:
            with transaction.atomic():
                review = Review.objects.create(
                    booking=booking,
                    vehicle=booking.vehicle,
                    renter=user,
                    owner_id=booking.owner_id,
                    rating=data["rating"],
                    categorical_ratings=data.get("categoricalRatings") or {},
                    comment=(data.get("comment") or "").strip(),
                )
        except IntegrityError:
            raise Conflict("You have already reviewed this booking.") from None

        booking.review_submitted = True
        booking.save(update_fields=["review_submitted", "updated_at"])
    return review


@api_view(["POST"])
@permission_classes([permissions.IsAuthenticated, IsNotBlocked])
def review_create(request):
    serializer = ReviewCreateSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    review = _create_review(request.user, serializer.validated_data)
    create_notification(
        review.owner,
        f"You received a {review.rating}-star review for your {review.vehicle.make}.",
        f"/vehicles/{review.vehicle_id}",
    )
    return Response(
        {"message": "Review submitted.", "review": ReviewSerializer(review).data},
        status=status.HTTP_201_CREATED,
    )


@api_view(["GET"])
@permission_classes([permissions.AllowAny])
def host_reviews(request, host_id: int):
    reviews = list(Review.objects.select_related("renter").filter(owner_id=host_id))
    return Response(
        {"reviews": ReviewSerializer(reviews, many=True).data, **summarize(reviews)}
    )


@api_view(["GET"])
@permission_classes([permissions.AllowAny])
def vehicle_reviews(request, vehicle_id: int):
    get_object_or_404(Vehicle, pk=vehicle_id)
    reviews = list(Review.objects.select_related("renter").filter(vehicle_id=vehicle_id))
    return Response(
        {"reviews": ReviewSerializer(reviews, many=True).data, **summarize(reviews)}
    )


@api_view(["POST"])
@permission_classes([permissions.IsAuthenticated, IsNotBlocked])
def review_reply(request, pk: int):
    serializer = ReviewReplySerializer(data=request.data)
    serializer.is_valid(raise_exception=True)

    with transaction.atomic():
        review = Review.objects.select_for_update().filter(pk=pk).first()
        if review is None:
            raise NotFound("Review not found.")
        if review.owner_id != request.user.pk:
            raise PermissionDenied("Only the vehicle owner can reply to this review.")
        if review.has_reply:
            raise Conflict("You have already replied to this review.")
        review.reply = {
            "text": serializer.validated_data["text"],
            "createdAt": timezone.now().isoformat(),
        }
        review.save(update_fields=["reply", "updated_at"])

    logger.info("reviews: owner %s replied to review %s", request.user.pk, review.pk)
    return Response({"message": "Reply posted.", "review": ReviewSerializer(review).data})
