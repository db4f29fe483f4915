import logging

from django.db import transaction
from rest_framework import permissions, status, viewsets
from rest_framework.decorators import action
from rest_framework.response import Response

from bookings import availability
from users.permissions import IsNotBlocked, IsOwnerRole, is_admin

from .geocoding import geocode_location
from .models import Vehicle
from .serializers import BlockSerializer, VehicleSerializer

logger = logging.getLogger(__name__)

PUBLIC_ACTIONS = {"list", "retrieve", "owner_vehicles"}


class IsVehicleOwnerOrAdmin(permissions.BasePermission):
    message = "Only the vehicle owner can modify this vehicle."

    def has_object_permission(self, request, view, obj):
        if request.method in permissions.SAFE_METHODS:
            return True
        return obj.owner_id == getattr(request.user, "id", None) or is_admin(request.user)


def _apply_geocode(vehicle: Vehicle) -> None:
    coords = geocode_location(vehicle.location)
    if coords is None:
        logger.info("vehicles: no coordinates for vehicle %s", vehicle.pk)
        return
    vehicle.latitude, vehicle.longitude = coords
    vehicle.save(update_fields=["latitude", "longitude", "updated_at"])


class VehicleViewSet(viewsets.ModelViewSet):
    serializer_class = VehicleSerializer
    permission_classes = [
        permissions.IsAuthenticated,
        IsNotBlocked,
        IsOwnerRole,
        IsVehicleOwnerOrAdmin,
    ]
    filterset_fields = ["make", "type", "transmission", "owner"]
    search_fields = ["make", "model", "location", "description"]
    ordering_fields = ["created_at", "rental_price_per_day", "year"]

    def get_permissions(self):
        if getattr(self, "action", None) in PUBLIC_ACTIONS:
            return [permissions.AllowAny()]
        return [permission() for permission in self.permission_classes]

    def get_queryset(self):
        qs = Vehicle.objects.select_related("owner")
        if self.action in {"list", "owner_vehicles"}:
            qs = qs.filter(is_active=True)
        return qs

    def perform_create(self, serializer):
        vehicle = serializer.save(owner=self.request.user)
        _apply_geocode(vehicle)

    def perform_update(self, serializer):
        previous_location = serializer.instance.location
        vehicle = serializer.save()
        if vehicle.location != previous_location:
            vehicle.latitude = vehicle.longitude = None
            vehicle.save(update_fields=["latitude", "longitude", "updated_at"])
            _apply_geocode(vehicle)

    @action(detail=False, methods=["get"], url_path=r"owner/(?P<owner_id>\d+)")
    def owner_vehicles(self, request, owner_id=None):
        qs = self.filter_queryset(self.get_queryset().filter(owner_id=owner_id))
        return Response(self.get_serializer(qs, many=True).data)

    @action(detail=True, methods=["post", "delete"], url_path="blocks")
    def blocks(self, request, pk=None):
        """Add or remove an owner-defined unavailable period."""
        serializer = BlockSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        interval = availability.parse_interval(
            serializer.validated_data["start"], serializer.validated_data["end"]
        )
        with transaction.atomic():
            vehicle = self.get_object()
            vehicle = Vehicle.objects.select_for_update().get(pk=vehicle.pk)
            if request.method == "POST":
                availability.add_calendar_entry(vehicle, interval)
                http_status = status.HTTP_201_CREATED
            else:
                if not availability.remove_owner_block(vehicle, interval):
                    return Response(
                        {"message": "No matching block found."},
                        status=status.HTTP_404_NOT_FOUND,
                    )
                http_status = status.HTTP_200_OK
            vehicle.save(update_fields=["availability", "updated_at"])
        return Response({"availability": vehicle.availability}, status=http_status)
