from __future__ import annotations

from typing import Any

from rest_framework import serializers

from .models import Review

RATING_MIN = 1
RATING_MAX = 5


class ReviewCreateSerializer(serializers.Serializer):
    bookingId = serializers.IntegerField()
    rating = serializers.IntegerField(min_value=RATING_MIN, max_value=RATING_MAX)
    categoricalRatings = serializers.DictField(
        child=serializers.IntegerField(min_value=RATING_MIN, max_value=RATING_MAX),
        required=False,
        default=dict,
    )
    comment = serializers.CharField(required=False, allow_blank=True, default="", max_length=4000)


class ReviewReplySerializer(serializers.Serializer):
    text = serializers.CharField(max_length=4000)

    def validate_text(self, value: str) -> str:
        value = value.strip()
        if not value:
            raise serializers.ValidationError("Reply text cannot be empty.")
        return value


class ReviewSerializer(serializers.ModelSerializer):
    bookingId = serializers.IntegerField(source="booking_id", read_only=True)
    vehicleId = serializers.IntegerField(source="vehicle_id", read_only=True)
    renterId = serializers.IntegerField(source="renter_id", read_only=True)
    ownerId = serializers.IntegerField(source="owner_id", read_only=True)
    renterName = serializers.SerializerMethodField()
    categoricalRatings = serializers.JSONField(source="categorical_ratings", read_only=True)
    createdAt = serializers.DateTimeField(source="created_at", read_only=True)

    class Meta:
        model = Review
        fields = (
            "id",
            "bookingId",
            "vehicleId",
            "renterId",
            "ownerId",
            "renterName",
            "rating",
            "categoricalRatings",
            "comment",
            "reply",
            "createdAt",
        )
        read_only_fields = fields

    def get_renterName(self, obj: Review) -> str:
        renter = getattr(obj, "renter", None)
        if renter is None:
            return "User"
        return renter.display_name()


def summarize(reviews: Any) -> dict:
    """Average rating and count for a review queryset or list."""
    ratings = [review.rating for review in reviews]
    if not ratings:
        return {"averageRating": None, "reviewCount": 0}
    return {
        "averageRating": round(sum(ratings) / len(ratings), 2),
        "reviewCount": len(ratings),
    }
