"""Booking lifecycle: the closed set of transitions and who may trigger them."""

from __future__ import annotations

from dataclasses import dataclass
from typing import FrozenSet

from core.exceptions import Conflict, PermissionDenied

from .models import Booking

Status = Booking.PaymentStatus

OWNER = "owner"
RENTER = "renter"
ADMIN = "admin"
SYSTEM = "system"

# Statuses whose bookings block the vehicle's calendar.
OCCUPYING_STATUSES = (
    Status.CONFIRMED,
    Status.PENDING_EXTENSION_PAYMENT,
    Status.RETURNED,
)

TERMINAL_STATUSES = frozenset(
    {
        Status.DECLINED_BY_OWNER,
        Status.COMPLETED,
        Status.CANCELLED_BY_RENTER,
    }
)

REVIEWABLE_STATUSES = frozenset({Status.RETURNED, Status.COMPLETED})


@dataclass(frozen=True)
class Transition:
    name: str
    sources: FrozenSet[str]
    target: str
    actors: FrozenSet[str]


def _transition(name: str, sources, target: str, actors) -> Transition:
    return Transition(name, frozenset(sources), target, frozenset(actors))


TRANSITIONS: dict[str, Transition] = {
    t.name: t
    for t in (
        _transition(
            "approve", [Status.PENDING_OWNER_APPROVAL], Status.PENDING_PAYMENT, [OWNER, ADMIN]
        ),
        _transition(
            "decline", [Status.PENDING_OWNER_APPROVAL], Status.DECLINED_BY_OWNER, [OWNER, ADMIN]
        ),
        _transition(
            "cancel",
            [Status.PENDING_OWNER_APPROVAL, Status.PENDING_PAYMENT],
            Status.CANCELLED_BY_RENTER,
            [RENTER, ADMIN],
        ),
        _transition(
            "cancel_confirmed", [Status.CONFIRMED], Status.CANCELLED_BY_RENTER, [ADMIN]
        ),
        _transition(
            "submit_payment",
            [Status.PENDING_PAYMENT],
            Status.DOWNPAYMENT_PENDING_VERIFICATION,
            [RENTER],
        ),
        _transition(
            "verify_downpayment",
            [Status.DOWNPAYMENT_PENDING_VERIFICATION],
            Status.DOWNPAYMENT_VERIFIED,
            [OWNER, ADMIN],
        ),
        _transition(
            "confirm_payment",
            [Status.DOWNPAYMENT_PENDING_VERIFICATION, Status.DOWNPAYMENT_VERIFIED, Status.PAID],
            Status.CONFIRMED,
            [OWNER, ADMIN],
        ),
        _transition("mark_returned", [Status.CONFIRMED], Status.RETURNED, [OWNER, ADMIN]),
        _transition("mark_completed", [Status.RETURNED], Status.COMPLETED, [OWNER, ADMIN]),
        _transition(
            "request_extension", [Status.CONFIRMED], Status.PENDING_EXTENSION_PAYMENT, [RENTER]
        ),
        _transition(
            "confirm_extension",
            [Status.PENDING_EXTENSION_PAYMENT],
            Status.CONFIRMED,
            [OWNER, ADMIN],
        ),
        _transition(
            "defer_extension",
            [Status.PENDING_EXTENSION_PAYMENT],
            Status.CONFIRMED,
            [OWNER, ADMIN],
        ),
        _transition(
            "gateway_paid",
            [Status.PENDING_PAYMENT, Status.DOWNPAYMENT_PENDING_VERIFICATION],
            Status.PAID,
            [SYSTEM],
        ),
    )
}


def actor_roles(booking: Booking, user) -> set[str]:
    """Return the roles ``user`` holds relative to ``booking``."""
    if user is None:
        return {SYSTEM}
    roles: set[str] = set()
    if getattr(user, "role", None) == "admin":
        roles.add(ADMIN)
    if user.pk == booking.owner_id:
        roles.add(OWNER)
    if user.pk == booking.renter_id:
        roles.add(RENTER)
    return roles


def assert_participant_or_admin(booking: Booking, user) -> None:
    if not actor_roles(booking, user) & {OWNER, RENTER, ADMIN}:
        raise PermissionDenied("You are not a participant in this booking.")


def validate_transition(booking: Booking, event: str, user) -> Transition:
    """
    Check that ``user`` may fire ``event`` on ``booking`` in its current status.

    ``user=None`` is the system actor (gateway callbacks). The actor is checked
    before the status so that outsiders learn nothing about the booking.
    """
    transition = TRANSITIONS[event]
    if not actor_roles(booking, user) & transition.actors:
        raise PermissionDenied("Access denied. Insufficient permissions.")
    if booking.payment_status not in transition.sources:
        raise Conflict(
            f"Cannot {event.replace('_', ' ')} a booking that is "
            f"{booking.get_payment_status_display().lower()}.",
            currentState=booking.payment_status,
        )
    return transition


def apply_transition(booking: Booking, transition: Transition) -> list[str]:
    """Set the new status in memory; returns the fields to persist."""
    booking.payment_status = transition.target
    return ["payment_status", "updated_at"]
