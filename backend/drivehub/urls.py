from django.conf import settings
from django.contrib import admin
from django.urls import include, path

from core.health import healthz
from payments.webhooks import paymongo_webhook

urlpatterns = [
    path("api/healthz", healthz),
    path("api/users/", include("users.urls")),
    path("api/vehicles/", include("vehicles.urls")),
    path("api/bookings/", include(("bookings.urls", "bookings"), namespace="bookings")),
    path("api/payments/", include("payments.urls")),
    path("api/webhooks/paymongo", paymongo_webhook, name="paymongo_webhook"),
    path("api/reviews/", include("reviews.urls")),
    path("api/notifications/", include("notifications.urls")),
    path("api/", include("chat.urls")),
]

if settings.ENABLE_DJANGO_ADMIN:
    urlpatterns.insert(0, path("admin/", admin.site.urls))
