"""HTTP-level tests for the bookings API."""

from __future__ import annotations

from datetime import timedelta

import pytest
from rest_framework.test import APIClient

from bookings.models import Booking, Report

pytestmark = pytest.mark.django_db

Status = Booking.PaymentStatus


def auth(user):
    client = APIClient()
    resp = client.post(
        "/api/users/token/",
        {"username": user.username, "password": "testpass"},
        format="json",
    )
    token = resp.data["access"]
    client.credentials(HTTP_AUTHORIZATION=f"Bearer {token}")
    return client


def test_availability_quote_is_public(vehicle):
    client = APIClient()
    resp = client.get(
        f"/api/bookings/availability/{vehicle.pk}/",
        {"startDate": "2030-07-01T00:00:00Z", "endDate": "2030-07-03T00:00:00Z"},
    )

    assert resp.status_code == 200
    assert resp.data["isAvailable"] is True
    assert resp.data["billableDays"] == 2
    assert resp.data["totalCost"] == "1000.00"


def test_availability_quote_rejects_inverted_range(vehicle):
    resp = APIClient().get(
        f"/api/bookings/availability/{vehicle.pk}/",
        {"startDate": "2030-07-03T00:00:00Z", "endDate": "2030-07-01T00:00:00Z"},
    )

    assert resp.status_code == 400
    assert "message" in resp.data


def test_availability_quote_reports_missing_price(vehicle):
    vehicle.rental_price_per_day = None
    vehicle.save(update_fields=["rental_price_per_day"])

    resp = APIClient().get(
        f"/api/bookings/availability/{vehicle.pk}/",
        {"startDate": "2030-07-01T00:00:00Z", "endDate": "2030-07-03T00:00:00Z"},
    )

    assert resp.status_code == 500
    assert resp.data["message"] == "Vehicle price not configured."


def test_availability_unknown_vehicle_is_404():
    resp = APIClient().get(
        "/api/bookings/availability/99999/",
        {"startDate": "2030-07-01T00:00:00Z", "endDate": "2030-07-03T00:00:00Z"},
    )
    assert resp.status_code == 404


def test_create_booking_endpoint(vehicle, renter_user, future_start):
    client = auth(renter_user)
    resp = client.post(
        "/api/bookings/",
        {
            "vehicleId": vehicle.pk,
            "startDate": future_start.isoformat(),
            "endDate": (future_start + timedelta(days=2)).isoformat(),
            "paymentMethodType": "manual",
        },
        format="json",
    )

    assert resp.status_code == 201, resp.data
    booking = Booking.objects.get(pk=resp.data["booking"]["id"])
    assert booking.renter == renter_user
    assert booking.payment_status == Status.PENDING_OWNER_APPROVAL


def test_create_booking_overlap_returns_409(vehicle, booking_factory, other_user, future_start):
    booking_factory(status=Status.CONFIRMED)
    client = auth(other_user)

    resp = client.post(
        "/api/bookings/",
        {
            "vehicleId": vehicle.pk,
            "startDate": (future_start + timedelta(days=1)).isoformat(),
            "endDate": (future_start + timedelta(days=3)).isoformat(),
        },
        format="json",
    )

    assert resp.status_code == 409
    assert resp.data["reason"] == "existing_booking"


def test_bookings_require_authentication():
    resp = APIClient().get("/api/bookings/")
    assert resp.status_code == 401


def test_list_only_shows_own_bookings(booking_factory, renter_user, other_user):
    mine = booking_factory()
    booking_factory(renter=other_user)

    resp = auth(renter_user).get("/api/bookings/")

    assert resp.status_code == 200
    assert [row["id"] for row in resp.data] == [mine.pk]


def test_approve_then_conflicting_cancel_flow(booking_factory, owner_user, renter_user):
    booking = booking_factory()
    renter = auth(renter_user)
    owner = auth(owner_user)

    cancel = renter.put(f"/api/bookings/{booking.pk}/cancel/")
    assert cancel.status_code == 200
    assert cancel.data["booking"]["payment_status"] == Status.CANCELLED_BY_RENTER

    approve = owner.put(f"/api/bookings/{booking.pk}/approve/")
    assert approve.status_code == 409
    assert approve.data["currentState"] == Status.CANCELLED_BY_RENTER


def test_renter_cancel_of_confirmed_booking_is_a_conflict(booking_factory, renter_user):
    booking = booking_factory(status=Status.CONFIRMED)

    resp = auth(renter_user).put(f"/api/bookings/{booking.pk}/cancel/")

    assert resp.status_code == 409
    assert resp.data["currentState"] == Status.CONFIRMED
    booking.refresh_from_db()
    assert booking.payment_status == Status.CONFIRMED


def test_oversized_extension_request_is_400(booking_factory, renter_user):
    booking = booking_factory(status=Status.CONFIRMED)

    resp = auth(renter_user).post(
        f"/api/bookings/{booking.pk}/extensions/", {"extensionHours": 10**12}, format="json"
    )

    assert resp.status_code == 400
    booking.refresh_from_db()
    assert booking.payment_status == Status.CONFIRMED


def test_renter_cannot_approve_via_api(booking_factory, renter_user):
    booking = booking_factory()

    resp = auth(renter_user).put(f"/api/bookings/{booking.pk}/approve/")

    assert resp.status_code == 403
    assert resp.data["message"] == "Access denied. Insufficient permissions."


def test_confirm_payment_endpoint(booking_factory, owner_user):
    booking = booking_factory(status=Status.DOWNPAYMENT_PENDING_VERIFICATION)

    resp = auth(owner_user).put(f"/api/bookings/{booking.pk}/confirm-payment/")

    assert resp.status_code == 200
    assert resp.data["booking"]["payment_status"] == Status.CONFIRMED


def test_renter_submits_payment_reference(booking_factory, renter_user):
    booking = booking_factory(status=Status.PENDING_PAYMENT)
    client = auth(renter_user)

    missing = client.post(f"/api/bookings/{booking.pk}/confirm-downpayment-by-user/", {}, format="json")
    assert missing.status_code == 400

    resp = client.post(
        f"/api/bookings/{booking.pk}/confirm-downpayment-by-user/",
        {"referenceNumber": "GCASH-42"},
        format="json",
    )
    assert resp.status_code == 200
    assert resp.data["booking"]["payment_status"] == Status.DOWNPAYMENT_PENDING_VERIFICATION


def test_status_endpoint_marks_returned(booking_factory, owner_user):
    booking = booking_factory(status=Status.CONFIRMED)

    resp = auth(owner_user).put(
        f"/api/bookings/{booking.pk}/status/", {"newStatus": "returned"}, format="json"
    )

    assert resp.status_code == 200
    booking.refresh_from_db()
    assert booking.payment_status == Status.RETURNED


def test_outsider_cannot_view_booking(booking_factory, other_user):
    booking = booking_factory()
    resp = auth(other_user).get(f"/api/bookings/{booking.pk}/")
    assert resp.status_code == 403


def test_all_bookings_is_admin_only(booking_factory, owner_user, admin_user):
    booking_factory()

    assert auth(owner_user).get("/api/bookings/all/").status_code == 403
    resp = auth(admin_user).get("/api/bookings/all/")
    assert resp.status_code == 200
    assert len(resp.data) == 1


def test_owner_bookings_list(booking_factory, owner_user):
    booking = booking_factory()
    resp = auth(owner_user).get("/api/bookings/owner/")
    assert resp.status_code == 200
    assert [row["id"] for row in resp.data] == [booking.pk]


def test_user_bookings_restricted_to_self(booking_factory, renter_user, other_user):
    booking_factory()
    assert auth(other_user).get(f"/api/bookings/user/{renter_user.pk}/").status_code == 403
    resp = auth(renter_user).get(f"/api/bookings/user/{renter_user.pk}/")
    assert resp.status_code == 200
    assert len(resp.data) == 1


def test_report_endpoint(booking_factory, renter_user, admin_user):
    booking = booking_factory()

    resp = auth(renter_user).post(
        f"/api/bookings/{booking.pk}/report/",
        {"reason": "No show", "details": "Owner never arrived."},
        format="json",
    )
    assert resp.status_code == 201
    assert Report.objects.filter(pk=resp.data["reportId"]).exists()

    listed = auth(admin_user).get("/api/bookings/reports/")
    assert listed.status_code == 200
    assert len(listed.data) == 1


def test_contract_pdf(booking_factory, renter_user):
    booking = booking_factory(status=Status.CONFIRMED)

    resp = auth(renter_user).get(f"/api/bookings/{booking.pk}/contract/")

    assert resp.status_code == 200
    assert resp["Content-Type"] == "application/pdf"
    assert resp.content.startswith(b"%PDF")


def test_blocked_user_is_rejected(booking_factory, renter_user):
    client = auth(renter_user)
    renter_user.is_blocked = True
    renter_user.save(update_fields=["is_blocked"])

    resp = client.get("/api/bookings/")

    assert resp.status_code == 403
    assert resp.data["message"] == "Your account has been blocked."
