from rest_framework import serializers

from .models import Vehicle


class VehicleSerializer(serializers.ModelSerializer):
    """Vehicle listing; coordinates are filled by geocoding, not by clients."""

    owner = serializers.PrimaryKeyRelatedField(read_only=True)
    owner_username = serializers.ReadOnlyField(source="owner.username")
    rental_price_per_day = serializers.DecimalField(
        max_digits=10,
        decimal_places=2,
        min_value=0,
        required=False,
        allow_null=True,
    )
    images = serializers.ListField(
        child=serializers.URLField(max_length=500),
        required=False,
    )

    class Meta:
        model = Vehicle
        fields = [
            "id",
            "owner",
            "owner_username",
            "make",
            "model",
            "year",
            "type",
            "seats",
            "transmission",
            "fuel_type",
            "description",
            "rental_price_per_day",
            "location",
            "latitude",
            "longitude",
            "images",
            "availability",
            "is_active",
            "created_at",
            "updated_at",
        ]
        read_only_fields = [
            "id",
            "owner",
            "owner_username",
            "latitude",
            "longitude",
            "availability",
            "created_at",
            "updated_at",
        ]

    def validate_make(self, value: str) -> str:
        value = (value or "").strip()
        if not value:
            raise serializers.ValidationError("Make is required.")
        return value


class BlockSerializer(serializers.Serializer):
    start = serializers.CharField()
    end = serializers.CharField()
