"""Tests for booking lifecycle transitions."""

from __future__ import annotations

from datetime import timedelta
from decimal import Decimal

import pytest

from bookings import services
from bookings.domain import TERMINAL_STATUSES, TRANSITIONS, actor_roles, validate_transition
from bookings.models import Booking
from chat.models import BOOKING_WELCOME_TEXT, Chat
from core.exceptions import Conflict, NotFound, PermissionDenied, ValidationFailed
from notifications.models import Notification

pytestmark = pytest.mark.django_db

Status = Booking.PaymentStatus


def test_transition_table_never_leaves_a_terminal_status():
    for transition in TRANSITIONS.values():
        assert not transition.sources & TERMINAL_STATUSES


def test_actor_roles(booking_factory, owner_user, renter_user, admin_user, other_user):
    booking = booking_factory()
    assert actor_roles(booking, owner_user) == {"owner"}
    assert actor_roles(booking, renter_user) == {"renter"}
    assert actor_roles(booking, admin_user) == {"admin"}
    assert actor_roles(booking, other_user) == set()
    assert actor_roles(booking, None) == {"system"}


def test_create_booking_computes_cost_and_downpayment(vehicle, renter_user, owner_user, future_start):
    booking = services.create_booking(
        renter_user,
        vehicle_id=vehicle.pk,
        start_raw=future_start.isoformat(),
        end_raw=(future_start + timedelta(days=2)).isoformat(),
    )

    assert booking.payment_status == Status.PENDING_OWNER_APPROVAL
    assert booking.total_cost == Decimal("1000.00")
    assert booking.down_payment == Decimal("200.00")
    assert booking.remaining_balance == Decimal("800.00")
    assert booking.owner == owner_user
    assert Notification.objects.filter(
        user=owner_user, message="You have a new booking request for your Toyota."
    ).exists()


def test_create_booking_rejects_past_start(vehicle, renter_user):
    with pytest.raises(ValidationFailed):
        services.create_booking(
            renter_user,
            vehicle_id=vehicle.pk,
            start_raw="2020-01-01T00:00:00Z",
            end_raw="2020-01-03T00:00:00Z",
        )


def test_create_booking_rejects_unknown_vehicle(renter_user, future_start):
    with pytest.raises(NotFound):
        services.create_booking(
            renter_user,
            vehicle_id=999999,
            start_raw=future_start.isoformat(),
            end_raw=(future_start + timedelta(days=1)).isoformat(),
        )


def test_owner_cannot_book_own_vehicle(vehicle, owner_user, future_start):
    with pytest.raises(PermissionDenied):
        services.create_booking(
            owner_user,
            vehicle_id=vehicle.pk,
            start_raw=future_start.isoformat(),
            end_raw=(future_start + timedelta(days=1)).isoformat(),
        )


def test_create_booking_conflicts_with_confirmed_booking(
    vehicle, booking_factory, other_user, future_start
):
    booking_factory(
        start_date=future_start,
        end_date=future_start + timedelta(days=4),
        status=Status.CONFIRMED,
    )

    with pytest.raises(Conflict) as excinfo:
        services.create_booking(
            other_user,
            vehicle_id=vehicle.pk,
            start_raw=(future_start + timedelta(days=3)).isoformat(),
            end_raw=(future_start + timedelta(days=5)).isoformat(),
        )
    assert excinfo.value.details["reason"] == "existing_booking"


def test_cancelled_booking_cannot_be_approved(booking_factory, renter_user, owner_user):
    booking = booking_factory(status=Status.PENDING_OWNER_APPROVAL)

    services.cancel_booking(booking.pk, renter_user)
    booking.refresh_from_db()
    assert booking.payment_status == Status.CANCELLED_BY_RENTER

    with pytest.raises(Conflict) as excinfo:
        services.approve_booking(booking.pk, owner_user)
    assert excinfo.value.details["currentState"] == Status.CANCELLED_BY_RENTER
    booking.refresh_from_db()
    assert booking.payment_status == Status.CANCELLED_BY_RENTER


def test_confirm_payment_occupies_calendar_and_opens_chat(
    booking_factory, owner_user, renter_user, vehicle
):
    booking = booking_factory(status=Status.DOWNPAYMENT_PENDING_VERIFICATION)

    services.confirm_payment(booking.pk, owner_user)

    booking.refresh_from_db()
    vehicle.refresh_from_db()
    assert booking.payment_status == Status.CONFIRMED
    assert booking.amount_paid == booking.down_payment
    assert booking.confirmed_at is not None
    assert [entry.get("bookingId") for entry in vehicle.availability] == [booking.pk]

    chat = Chat.objects.get(pk=str(booking.pk))
    assert chat.booking_id == booking.pk
    assert set(chat.participants.values_list("pk", flat=True)) == {owner_user.pk, renter_user.pk}
    welcome = chat.messages.get()
    assert welcome.sender is None
    assert welcome.text == BOOKING_WELCOME_TEXT
    assert chat.last_message["senderId"] == "system"
    assert chat.last_message["readBy"] == [str(owner_user.pk)]


def test_confirm_payment_rolls_back_when_calendar_is_taken(booking_factory, owner_user, vehicle):
    booking = booking_factory(status=Status.DOWNPAYMENT_VERIFIED)
    vehicle.availability = [
        {"start": booking.start_date.isoformat(), "end": booking.end_date.isoformat()}
    ]
    vehicle.save(update_fields=["availability"])

    with pytest.raises(Conflict):
        services.confirm_payment(booking.pk, owner_user)

    booking.refresh_from_db()
    vehicle.refresh_from_db()
    assert booking.payment_status == Status.DOWNPAYMENT_VERIFIED
    assert len(vehicle.availability) == 1
    assert not Chat.objects.filter(pk=str(booking.pk)).exists()


@pytest.mark.parametrize(
    ("event", "status"),
    [
        ("approve", Status.PENDING_PAYMENT),
        ("decline", Status.CONFIRMED),
        ("verify_downpayment", Status.PENDING_PAYMENT),
        ("confirm_payment", Status.PENDING_OWNER_APPROVAL),
        ("confirm_payment", Status.CONFIRMED),
        ("mark_returned", Status.PENDING_PAYMENT),
        ("mark_completed", Status.CONFIRMED),
        ("confirm_extension", Status.CONFIRMED),
        ("approve", Status.COMPLETED),
        ("approve", Status.DECLINED_BY_OWNER),
    ],
)
def test_invalid_owner_transitions_leave_status_unchanged(
    booking_factory, owner_user, event, status
):
    booking = booking_factory(status=status)

    with pytest.raises(Conflict) as excinfo:
        validate_transition(booking, event, owner_user)

    assert excinfo.value.details["currentState"] == status
    booking.refresh_from_db()
    assert booking.payment_status == status


def test_renter_cannot_approve(booking_factory, renter_user):
    booking = booking_factory()

    with pytest.raises(PermissionDenied):
        services.approve_booking(booking.pk, renter_user)

    booking.refresh_from_db()
    assert booking.payment_status == Status.PENDING_OWNER_APPROVAL


def test_outsider_cannot_cancel(booking_factory, other_user):
    booking = booking_factory()

    with pytest.raises(PermissionDenied):
        services.cancel_booking(booking.pk, other_user)


def test_owner_cannot_submit_payment(booking_factory, owner_user):
    booking = booking_factory(status=Status.PENDING_PAYMENT)

    with pytest.raises(PermissionDenied):
        services.submit_payment(booking.pk, owner_user, reference_number="REF-1")


def test_full_happy_path(booking_factory, owner_user, renter_user):
    booking = booking_factory()

    services.approve_booking(booking.pk, owner_user)
    services.submit_payment(booking.pk, renter_user, reference_number="GCASH-123")
    services.verify_downpayment(booking.pk, owner_user)
    services.confirm_payment(booking.pk, owner_user)
    services.update_status(booking.pk, owner_user, Status.RETURNED)
    services.update_status(booking.pk, owner_user, Status.COMPLETED)

    booking.refresh_from_db()
    assert booking.payment_status == Status.COMPLETED
    assert booking.payment_reference_number == "GCASH-123"
    assert booking.returned_at is not None
    assert booking.completed_at is not None
    assert Notification.objects.filter(
        user=owner_user,
        message=f"Renter submitted payment (Ref: GCASH-123) for booking #{booking.pk}. Please verify.",
    ).exists()


def test_update_status_rejects_unknown_status(booking_factory, owner_user):
    booking = booking_factory(status=Status.CONFIRMED)
    with pytest.raises(ValidationFailed):
        services.update_status(booking.pk, owner_user, "paid")


def test_admin_cancel_of_confirmed_booking_frees_calendar(
    booking_factory, owner_user, admin_user, renter_user, vehicle
):
    booking = booking_factory(status=Status.DOWNPAYMENT_PENDING_VERIFICATION)
    services.confirm_payment(booking.pk, owner_user)

    with pytest.raises(Conflict) as excinfo:
        services.cancel_booking(booking.pk, renter_user)
    assert excinfo.value.details["currentState"] == Status.CONFIRMED

    services.cancel_booking(booking.pk, admin_user)

    booking.refresh_from_db()
    vehicle.refresh_from_db()
    assert booking.payment_status == Status.CANCELLED_BY_RENTER
    assert vehicle.availability == []


def test_extension_request_and_confirmation(booking_factory, owner_user, renter_user, vehicle):
    booking = booking_factory(status=Status.DOWNPAYMENT_PENDING_VERIFICATION)
    services.confirm_payment(booking.pk, owner_user)
    original_end = booking.end_date

    services.request_extension(booking.pk, renter_user, hours=12)
    booking.refresh_from_db()
    assert booking.payment_status == Status.PENDING_EXTENSION_PAYMENT
    assert booking.pending_extension()["cost"] == "250.00"

    with pytest.raises(ValidationFailed):
        services.confirm_extension(booking.pk, owner_user, reference_number="EXT-1", amount="10")

    services.confirm_extension(booking.pk, owner_user, reference_number="EXT-1", amount="250")
    booking.refresh_from_db()
    vehicle.refresh_from_db()
    assert booking.payment_status == Status.CONFIRMED
    assert booking.end_date == original_end + timedelta(hours=12)
    assert booking.total_cost == Decimal("1250.00")
    assert booking.extensions[0]["status"] == "paid"
    entry = vehicle.availability[0]
    assert entry["bookingId"] == booking.pk
    assert entry["end"] == booking.end_date.isoformat()


def test_extension_blocked_by_following_booking(
    booking_factory, owner_user, renter_user, other_user
):
    booking = booking_factory(status=Status.DOWNPAYMENT_PENDING_VERIFICATION)
    services.confirm_payment(booking.pk, owner_user)
    booking_factory(
        renter=other_user,
        start_date=booking.end_date + timedelta(hours=2),
        end_date=booking.end_date + timedelta(days=1),
        status=Status.CONFIRMED,
    )

    with pytest.raises(Conflict):
        services.request_extension(booking.pk, renter_user, hours=6)

    booking.refresh_from_db()
    assert booking.payment_status == Status.CONFIRMED


def test_extension_hours_are_bounded(booking_factory, owner_user, renter_user):
    booking = booking_factory(status=Status.DOWNPAYMENT_PENDING_VERIFICATION)
    services.confirm_payment(booking.pk, owner_user)

    with pytest.raises(ValidationFailed) as excinfo:
        services.request_extension(booking.pk, renter_user, hours=10**12)
    assert excinfo.value.details["maxHours"] == services.MAX_EXTENSION_HOURS

    services.request_extension(booking.pk, renter_user, hours=services.MAX_EXTENSION_HOURS)
    booking.refresh_from_db()
    assert booking.payment_status == Status.PENDING_EXTENSION_PAYMENT


@pytest.mark.parametrize("amount", ["NaN", "sNaN", "Infinity", "-Infinity"])
def test_confirm_extension_rejects_non_finite_amount(
    booking_factory, owner_user, renter_user, amount
):
    booking = booking_factory(status=Status.DOWNPAYMENT_PENDING_VERIFICATION)
    services.confirm_payment(booking.pk, owner_user)
    services.request_extension(booking.pk, renter_user, hours=12)

    with pytest.raises(ValidationFailed):
        services.confirm_extension(booking.pk, owner_user, reference_number="EXT-1", amount=amount)

    booking.refresh_from_db()
    assert booking.payment_status == Status.PENDING_EXTENSION_PAYMENT
    assert booking.total_cost == Decimal("1000.00")


def test_deferred_extension_adds_to_remaining_balance(booking_factory, owner_user, renter_user):
    booking = booking_factory(status=Status.DOWNPAYMENT_PENDING_VERIFICATION)
    services.confirm_payment(booking.pk, owner_user)
    services.request_extension(booking.pk, renter_user, hours=24)

    services.defer_extension(booking.pk, owner_user)

    booking.refresh_from_db()
    assert booking.payment_status == Status.CONFIRMED
    assert booking.total_cost == Decimal("1500.00")
    assert booking.remaining_balance == Decimal("1300.00")
    assert booking.extensions[0]["status"] == "pay_on_return"


def test_mark_gateway_paid_is_idempotent(booking_factory):
    booking = booking_factory(status=Status.PENDING_PAYMENT)

    assert services.mark_gateway_paid(booking.pk, payment_intent_id="pi_123") is True
    assert services.mark_gateway_paid(booking.pk, payment_intent_id="pi_123") is False

    booking.refresh_from_db()
    assert booking.payment_status == Status.PAID
    assert booking.payment_intent_id == "pi_123"
    assert booking.amount_paid == booking.down_payment


def test_mark_gateway_paid_ignores_unknown_booking():
    assert services.mark_gateway_paid("424242", payment_intent_id="pi_x") is False
    assert services.mark_gateway_paid("not-a-number", payment_intent_id="pi_x") is False


def test_submit_report_requires_participant(booking_factory, renter_user, other_user):
    booking = booking_factory()

    report = services.submit_report(
        booking.pk, renter_user, reason="Late pickup", details="Owner was an hour late."
    )
    assert report.booking_id == booking.pk

    with pytest.raises(PermissionDenied):
        services.submit_report(booking.pk, other_user, reason="Spam", details="Not mine.")
    with pytest.raises(ValidationFailed):
        services.submit_report(booking.pk, renter_user, reason="", details="")


def test_delete_booking_is_admin_only(booking_factory, owner_user, admin_user):
    booking = booking_factory()

    with pytest.raises(PermissionDenied):
        services.delete_booking(booking.pk, owner_user)

    services.delete_booking(booking.pk, admin_user)
    assert not Booking.objects.filter(pk=booking.pk).exists()
