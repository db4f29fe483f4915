"""URL routing for the bookings API."""

from django.urls import include, path
from rest_framework.routers import DefaultRouter

from .api import BookingViewSet, vehicle_availability

app_name = "bookings"

router = DefaultRouter()
router.register("", BookingViewSet, basename="booking")

urlpatterns = [
    path(
        "availability/<int:vehicle_id>/",
        vehicle_availability,
        name="vehicle-availability",
    ),
    path("", include(router.urls)),
]
