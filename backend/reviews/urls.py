from django.urls import path

from . import api

app_name = "reviews"

urlpatterns = [
    path("", api.review_create, name="review-create"),
    path("host/<int:host_id>/", api.host_reviews, name="host-reviews"),
    path("vehicle/<int:vehicle_id>/", api.vehicle_reviews, name="vehicle-reviews"),
    path("<int:pk>/reply/", api.review_reply, name="review-reply"),
]
