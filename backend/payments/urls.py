from django.urls import path

from .api import create_booking_payment_intent
from .fees import all_platform_fees, owner_platform_fees, verify_platform_fee

app_name = "payments"

urlpatterns = [
    path("intents/", create_booking_payment_intent, name="payment_intent_create"),
    path("platform-fees/", owner_platform_fees, name="platform_fees"),
    path("platform-fees/all/", all_platform_fees, name="platform_fees_all"),
    path("platform-fees/<int:fee_id>/verify/", verify_platform_fee, name="platform_fee_verify"),
]
