"""
Booking lifecycle operations.

Every transition runs inside ``transaction.atomic()`` and re-reads the booking
with ``select_for_update`` before checking its status, so two concurrent
attempts cannot both pass the precondition. Notifications are sent after the
transaction closes and never fail the operation.
"""

from __future__ import annotations

import logging
from datetime import timedelta
from decimal import ROUND_HALF_UP, Decimal
from typing import Optional

from django.conf import settings
from django.db import transaction
from django.utils import timezone

from chat.models import get_or_create_booking_chat
from core.exceptions import Conflict, NotFound, PermissionDenied, ValidationFailed
from notifications.services import create_notification
from users.permissions import ensure_admin, is_admin
from vehicles.models import Vehicle

from . import availability
from .domain import TRANSITIONS, apply_transition, validate_transition
from .models import Booking, Report

logger = logging.getLogger(__name__)

Status = Booking.PaymentStatus
_TWO_PLACES = Decimal("0.01")
MAX_EXTENSION_HOURS = 24 * 30


def _money(value: Decimal) -> Decimal:
    return Decimal(value).quantize(_TWO_PLACES, rounding=ROUND_HALF_UP)


def _lock_booking(booking_id) -> Booking:
    try:
        return (
            Booking.objects.select_for_update(of=("self",))
            .select_related("vehicle", "owner", "renter")
            .get(pk=booking_id)
        )
    except (Booking.DoesNotExist, ValueError, TypeError):
        raise NotFound("Booking not found.") from None


def _lock_vehicle(vehicle_id) -> Vehicle:
    try:
        return Vehicle.objects.select_for_update().get(pk=vehicle_id)
    except Vehicle.DoesNotExist:
        raise NotFound("Vehicle not found.") from None


def _booking_link(booking: Booking, *, owner_view: bool) -> str:
    if owner_view:
        return f"/dashboard/my-bookings/{booking.pk}"
    return f"/my-bookings/{booking.pk}"


def _notify_owner(booking: Booking, message: str) -> None:
    create_notification(booking.owner, message, _booking_link(booking, owner_view=True))


def _notify_renter(booking: Booking, message: str) -> None:
    create_notification(booking.renter, message, _booking_link(booking, owner_view=False))


def _simple_transition(booking_id, user, event: str, *, stamp: Optional[str] = None) -> Booking:
    with transaction.atomic():
        booking = _lock_booking(booking_id)
        transition = validate_transition(booking, event, user)
        fields = apply_transition(booking, transition)
        if stamp:
            setattr(booking, stamp, timezone.now())
            fields.append(stamp)
        booking.save(update_fields=fields)
    logger.info(
        "bookings: %s moved booking %s to %s", event, booking.pk, booking.payment_status
    )
    return booking


def create_booking(
    renter,
    *,
    vehicle_id,
    start_raw,
    end_raw,
    payment_method_type: str = Booking.PaymentMethod.MANUAL,
) -> Booking:
    """Create a booking request; cost is always computed server-side."""
    requested = availability.parse_interval(start_raw, end_raw)
    if requested.start < timezone.now():
        raise ValidationFailed("Start date cannot be in the past.")

    try:
        vehicle = Vehicle.objects.select_related("owner").get(pk=vehicle_id, is_active=True)
    except (Vehicle.DoesNotExist, ValueError, TypeError):
        raise NotFound("Vehicle not found.") from None

    if vehicle.owner_id == renter.pk:
        raise PermissionDenied("You cannot book your own vehicle.")

    result = availability.check_availability(vehicle, requested.start, requested.end)
    if not result.is_available:
        raise Conflict(result.message, reason=result.reason)

    total = result.total_cost
    rate = Decimal(str(getattr(settings, "BOOKING_DOWNPAYMENT_RATE", "0.20")))
    down_payment = _money(total * rate)

    booking = Booking.objects.create(
        vehicle=vehicle,
        owner=vehicle.owner,
        renter=renter,
        start_date=requested.start,
        end_date=requested.end,
        payment_method_type=payment_method_type,
        total_cost=total,
        down_payment=down_payment,
        remaining_balance=total - down_payment,
        amount_paid=Decimal("0.00"),
    )
    _notify_owner(booking, f"You have a new booking request for your {vehicle.make}.")
    return booking


def approve_booking(booking_id, user) -> Booking:
    booking = _simple_transition(booking_id, user, "approve", stamp="approved_at")
    _notify_renter(
        booking, "Your booking request has been approved! Please proceed with payment."
    )
    return booking


def decline_booking(booking_id, user) -> Booking:
    booking = _simple_transition(booking_id, user, "decline", stamp="declined_at")
    _notify_renter(booking, "Unfortunately, your booking request has been declined.")
    return booking


def submit_payment(booking_id, user, *, reference_number: str) -> Booking:
    """Renter reports an out-of-band downpayment for the owner to verify."""
    reference_number = (reference_number or "").strip()
    if not reference_number:
        raise ValidationFailed("Payment reference number is required.")

    with transaction.atomic():
        booking = _lock_booking(booking_id)
        transition = validate_transition(booking, "submit_payment", user)
        fields = apply_transition(booking, transition)
        booking.payment_reference_number = reference_number
        booking.payment_submitted_at = timezone.now()
        booking.save(update_fields=fields + ["payment_reference_number", "payment_submitted_at"])

    _notify_owner(
        booking,
        f"Renter submitted payment (Ref: {reference_number}) for booking "
        f"#{booking.pk}. Please verify.",
    )
    return booking


def verify_downpayment(booking_id, user) -> Booking:
    return _simple_transition(
        booking_id, user, "verify_downpayment", stamp="downpayment_received_at"
    )


def confirm_payment(booking_id, user) -> Booking:
    """
    Confirm the downpayment and occupy the vehicle calendar.

    The booking update, the calendar append and the chat creation commit
    together or not at all.
    """
    with transaction.atomic():
        booking = _lock_booking(booking_id)
        transition = validate_transition(booking, "confirm_payment", user)
        vehicle = _lock_vehicle(booking.vehicle_id)

        interval = availability.Interval(booking.start_date, booking.end_date, booking.pk)
        reason = availability.find_conflict(vehicle, interval, exclude_booking_id=booking.pk)
        if reason is not None:
            raise Conflict(
                availability.MESSAGES[reason],
                reason=reason,
                currentState=booking.payment_status,
            )

        availability.add_calendar_entry(vehicle, interval)
        vehicle.save(update_fields=["availability", "updated_at"])

        now = timezone.now()
        fields = apply_transition(booking, transition)
        if booking.amount_paid < booking.down_payment:
            booking.amount_paid = booking.down_payment
        booking.remaining_balance = max(booking.total_cost - booking.amount_paid, Decimal("0.00"))
        booking.confirmed_at = now
        if booking.downpayment_received_at is None:
            booking.downpayment_received_at = now
        booking.save(
            update_fields=fields
            + ["amount_paid", "remaining_balance", "confirmed_at", "downpayment_received_at"]
        )
        get_or_create_booking_chat(booking, read_by=user)

    logger.info("bookings: booking %s confirmed on vehicle %s", booking.pk, vehicle.pk)
    _notify_renter(booking, "Your booking is confirmed! The owner has verified your payment.")
    return booking


def update_status(booking_id, user, new_status: str) -> Booking:
    """Owner-driven end of trip: ``returned`` then ``completed``."""
    if new_status == Status.RETURNED:
        booking = _simple_transition(booking_id, user, "mark_returned", stamp="returned_at")
        _notify_renter(
            booking, f"The owner has marked your trip for booking #{booking.pk} as returned."
        )
        return booking
    if new_status == Status.COMPLETED:
        booking = _simple_transition(booking_id, user, "mark_completed", stamp="completed_at")
        _notify_renter(booking, f"Your trip for booking #{booking.pk} is complete.")
        return booking
    raise ValidationFailed(f"Unsupported status: {new_status or 'missing'}.")


def cancel_booking(booking_id, user) -> Booking:
    """
    Cancel a booking.

    Renters may cancel before payment; admins may also cancel a confirmed
    booking, which frees its calendar entry.
    """
    with transaction.atomic():
        booking = _lock_booking(booking_id)
        if booking.payment_status == Status.CONFIRMED and is_admin(user):
            event = "cancel_confirmed"
        else:
            event = "cancel"
        transition = validate_transition(booking, event, user)
        if event == "cancel_confirmed":
            vehicle = _lock_vehicle(booking.vehicle_id)
            if availability.remove_calendar_entries(vehicle, booking.pk):
                vehicle.save(update_fields=["availability", "updated_at"])
        fields = apply_transition(booking, transition)
        booking.cancelled_at = timezone.now()
        booking.save(update_fields=fields + ["cancelled_at"])

    if event == "cancel_confirmed":
        message = f"Booking #{booking.pk} was cancelled by an administrator."
        _notify_renter(booking, message)
        _notify_owner(booking, message)
    else:
        _notify_owner(booking, f"The renter has cancelled booking #{booking.pk}.")
    return booking


def request_extension(booking_id, user, *, hours: int) -> Booking:
    try:
        hours = int(hours)
    except (TypeError, ValueError):
        hours = 0
    if hours <= 0:
        raise ValidationFailed("extensionHours must be a positive number.")
    if hours > MAX_EXTENSION_HOURS:
        raise ValidationFailed(
            f"extensionHours cannot exceed {MAX_EXTENSION_HOURS}.", maxHours=MAX_EXTENSION_HOURS
        )

    with transaction.atomic():
        booking = _lock_booking(booking_id)
        transition = validate_transition(booking, "request_extension", user)
        vehicle = booking.vehicle
        new_end = booking.end_date + timedelta(hours=hours)
        window = availability.Interval(booking.end_date, new_end)
        reason = availability.find_conflict(vehicle, window, exclude_booking_id=booking.pk)
        if reason is not None:
            raise Conflict(
                "The vehicle is not available for the requested extension.",
                reason=reason,
            )
        cost = availability.quote_hours(vehicle, hours)

        extensions = list(booking.extensions or [])
        extensions.append(
            {
                "id": len(extensions) + 1,
                "hours": hours,
                "cost": str(cost),
                "newEndDate": new_end.isoformat(),
                "status": "pending_payment",
                "requestedAt": timezone.now().isoformat(),
            }
        )
        booking.extensions = extensions
        fields = apply_transition(booking, transition)
        booking.save(update_fields=fields + ["extensions"])

    _notify_owner(
        booking,
        f"The renter requested a {hours}-hour extension for booking #{booking.pk}.",
    )
    return booking


def _settle_extension(booking: Booking, extension: dict) -> Decimal:
    """Move the end date and calendar entry to the extension's new end."""
    new_end = availability.parse_instant(extension["newEndDate"])
    vehicle = _lock_vehicle(booking.vehicle_id)
    availability.add_calendar_entry(
        vehicle, availability.Interval(booking.start_date, new_end, booking.pk)
    )
    vehicle.save(update_fields=["availability", "updated_at"])
    booking.end_date = new_end
    return Decimal(extension["cost"])


def confirm_extension(booking_id, user, *, reference_number: str, amount) -> Booking:
    reference_number = (reference_number or "").strip()
    if not reference_number:
        raise ValidationFailed("Payment reference number is required.")
    try:
        amount = Decimal(str(amount))
    except (ArithmeticError, ValueError):
        raise ValidationFailed("A valid payment amount is required.") from None
    if not amount.is_finite():
        raise ValidationFailed("A valid payment amount is required.")

    with transaction.atomic():
        booking = _lock_booking(booking_id)
        transition = validate_transition(booking, "confirm_extension", user)
        extension = booking.pending_extension()
        if extension is None:
            raise Conflict("No extension is awaiting payment.", currentState=booking.payment_status)
        if amount < Decimal(extension["cost"]):
            raise ValidationFailed(
                f"Payment amount must cover the extension cost of {extension['cost']}."
            )
        cost = _settle_extension(booking, extension)
        extension.update(
            {
                "status": "paid",
                "referenceNumber": reference_number,
                "paidAt": timezone.now().isoformat(),
            }
        )
        booking.total_cost += cost
        booking.amount_paid += cost
        fields = apply_transition(booking, transition)
        booking.save(update_fields=fields + ["extensions", "end_date", "total_cost", "amount_paid"])

    _notify_renter(booking, f"Your extension for booking #{booking.pk} is confirmed.")
    return booking


def defer_extension(booking_id, user) -> Booking:
    """Accept the extension now and collect its cost when the vehicle is returned."""
    with transaction.atomic():
        booking = _lock_booking(booking_id)
        transition = validate_transition(booking, "defer_extension", user)
        extension = booking.pending_extension()
        if extension is None:
            raise Conflict("No extension is awaiting payment.", currentState=booking.payment_status)
        cost = _settle_extension(booking, extension)
        extension["status"] = "pay_on_return"
        booking.total_cost += cost
        booking.remaining_balance += cost
        fields = apply_transition(booking, transition)
        booking.save(
            update_fields=fields + ["extensions", "end_date", "total_cost", "remaining_balance"]
        )

    _notify_renter(
        booking,
        f"Your extension for booking #{booking.pk} is approved; pay the balance on return.",
    )
    return booking


def mark_gateway_paid(booking_ref, *, payment_intent_id: str) -> bool:
    """
    Mirror a verified gateway payment onto the booking.

    Idempotent: a booking already marked paid (or further along) is left as is.
    Returns True when the booking changed.
    """
    try:
        booking_id = int(booking_ref)
    except (TypeError, ValueError):
        return False

    with transaction.atomic():
        try:
            booking = _lock_booking(booking_id)
        except NotFound:
            logger.info("bookings: gateway payment for unknown booking %s", booking_ref)
            return False
        if booking.payment_status not in TRANSITIONS["gateway_paid"].sources:
            return False
        fields = apply_transition(booking, TRANSITIONS["gateway_paid"])
        booking.payment_intent_id = payment_intent_id or booking.payment_intent_id
        if booking.amount_paid < booking.down_payment:
            booking.amount_paid = booking.down_payment
        booking.paid_at = timezone.now()
        booking.save(update_fields=fields + ["payment_intent_id", "amount_paid", "paid_at"])

    _notify_owner(booking, f"Online payment received for booking #{booking.pk}. Please confirm.")
    return True


def submit_report(booking_id, user, *, reason: str, details: str) -> Report:
    reason = (reason or "").strip()
    details = (details or "").strip()
    if not reason or not details:
        raise ValidationFailed("Both reason and details are required.")
    try:
        booking = Booking.objects.get(pk=booking_id)
    except (Booking.DoesNotExist, ValueError, TypeError):
        raise NotFound("Booking not found.") from None
    if user.pk not in (booking.owner_id, booking.renter_id):
        raise PermissionDenied("Only the renter or owner can report this booking.")
    return Report.objects.create(booking=booking, reporter=user, reason=reason, details=details)


def delete_booking(booking_id, user) -> None:
    ensure_admin(user)
    with transaction.atomic():
        booking = _lock_booking(booking_id)
        vehicle = _lock_vehicle(booking.vehicle_id)
        if availability.remove_calendar_entries(vehicle, booking.pk):
            vehicle.save(update_fields=["availability", "updated_at"])
        booking.delete()
    logger.info("bookings: booking %s deleted by admin %s", booking_id, user.pk)
