"""
Availability engine: interval overlap, calendar scans and cost quotes.

Every interval is half-open ``[start, end)`` over timezone-aware instants, so
a booking ending at 10:00 and another starting at 10:00 do not collide.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from datetime import date, datetime, time
from datetime import timezone as dt_timezone
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Iterable, Iterator, Optional

from django.utils import timezone
from django.utils.dateparse import parse_date, parse_datetime

from core.exceptions import ConfigurationError, ValidationFailed
from vehicles.models import Vehicle

from .domain import OCCUPYING_STATUSES
from .models import Booking

logger = logging.getLogger(__name__)

_TWO_PLACES = Decimal("0.01")
HOURS_PER_DAY = 24

REASON_OWNER_BLOCK = "owner_block"
REASON_EXISTING_BOOKING = "existing_booking"

MESSAGES = {
    None: "Vehicle is available for the selected dates.",
    REASON_OWNER_BLOCK: "Vehicle is unavailable for the selected dates (blocked by the owner).",
    REASON_EXISTING_BOOKING: "Vehicle is already booked for the selected dates.",
}


@dataclass(frozen=True)
class Interval:
    start: datetime
    end: datetime
    booking_id: Optional[int] = None

    @property
    def hours(self) -> float:
        return (self.end - self.start).total_seconds() / 3600

    def as_entry(self) -> dict:
        entry = {"start": self.start.isoformat(), "end": self.end.isoformat()}
        if self.booking_id is not None:
            entry["bookingId"] = self.booking_id
        return entry


@dataclass(frozen=True)
class AvailabilityResult:
    is_available: bool
    reason: Optional[str]
    billable_days: int = 0
    total_cost: Optional[Decimal] = None

    @property
    def message(self) -> str:
        return MESSAGES[self.reason]


def overlaps(a: Interval, b: Interval) -> bool:
    """Strict half-open overlap test; symmetric in its arguments."""
    return a.start < b.end and a.end > b.start


def parse_instant(value) -> Optional[datetime]:
    """Parse ISO 8601 datetimes or dates; naive values are read as UTC."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        parsed = datetime.combine(value, time.min)
    else:
        text = str(value).strip()
        try:
            parsed = parse_datetime(text)
            if parsed is None:
                day = parse_date(text)
                parsed = datetime.combine(day, time.min) if day else None
        except ValueError:
            parsed = None
        if parsed is None:
            return None
    if timezone.is_naive(parsed):
        parsed = parsed.replace(tzinfo=dt_timezone.utc)
    return parsed


def parse_interval(start_raw, end_raw, *, booking_id: Optional[int] = None) -> Interval:
    start = parse_instant(start_raw)
    end = parse_instant(end_raw)
    if start is None or end is None:
        raise ValidationFailed("Valid startDate and endDate are required.")
    if start >= end:
        raise ValidationFailed("Start date must be before end date.")
    return Interval(start, end, booking_id)


def billable_days(start: datetime, end: datetime) -> int:
    """Whole days charged for ``[start, end)``: partial days round up, minimum one."""
    hours = (end - start).total_seconds() / 3600
    return max(1, math.ceil(hours / HOURS_PER_DAY))


def require_daily_price(vehicle: Vehicle) -> Decimal:
    price = vehicle.rental_price_per_day
    try:
        price = Decimal(price) if price is not None else None
    except (InvalidOperation, TypeError, ValueError):
        price = None
    if price is None or not price.is_finite() or price <= 0:
        logger.error("availability: vehicle %s has no usable daily price", vehicle.pk)
        raise ConfigurationError("Vehicle price not configured.")
    return price


def quote_cost(vehicle: Vehicle, start: datetime, end: datetime) -> tuple[int, Decimal]:
    price = require_daily_price(vehicle)
    days = billable_days(start, end)
    return days, (price * days).quantize(_TWO_PLACES, rounding=ROUND_HALF_UP)


def quote_hours(vehicle: Vehicle, hours: int) -> Decimal:
    """Pro-rated cost of ``hours`` extra hours at the vehicle's daily rate."""
    price = require_daily_price(vehicle)
    return (price / HOURS_PER_DAY * hours).quantize(_TWO_PLACES, rounding=ROUND_HALF_UP)


def calendar_intervals(vehicle: Vehicle) -> Iterator[Interval]:
    """Yield the vehicle's blocked intervals; malformed entries are skipped."""
    for entry in vehicle.availability or []:
        if not isinstance(entry, dict):
            continue
        start = parse_instant(entry.get("start"))
        end = parse_instant(entry.get("end"))
        if start is None or end is None or start >= end:
            logger.warning(
                "availability: skipping malformed calendar entry on vehicle %s: %r",
                vehicle.pk,
                entry,
            )
            continue
        yield Interval(start, end, entry.get("bookingId"))


def occupying_bookings(vehicle: Vehicle, *, exclude_booking_id: Optional[int] = None):
    qs = Booking.objects.filter(vehicle=vehicle, payment_status__in=OCCUPYING_STATUSES)
    if exclude_booking_id is not None:
        qs = qs.exclude(pk=exclude_booking_id)
    return qs


def find_conflict(
    vehicle: Vehicle,
    requested: Interval,
    *,
    exclude_booking_id: Optional[int] = None,
    bookings: Optional[Iterable[Booking]] = None,
) -> Optional[str]:
    """Return the reason ``requested`` is unavailable, or None when it is free."""
    for blocked in calendar_intervals(vehicle):
        if exclude_booking_id is not None and blocked.booking_id == exclude_booking_id:
            continue
        if overlaps(requested, blocked):
            # Booking-tagged entries mirror confirmed bookings.
            if blocked.booking_id is not None:
                return REASON_EXISTING_BOOKING
            return REASON_OWNER_BLOCK

    if bookings is None:
        bookings = occupying_bookings(vehicle, exclude_booking_id=exclude_booking_id)
    for booking in bookings:
        if booking.pk == exclude_booking_id:
            continue
        if overlaps(requested, Interval(booking.start_date, booking.end_date, booking.pk)):
            return REASON_EXISTING_BOOKING
    return None


def check_availability(
    vehicle: Vehicle,
    start: datetime,
    end: datetime,
    *,
    exclude_booking_id: Optional[int] = None,
) -> AvailabilityResult:
    if start >= end:
        raise ValidationFailed("Start date must be before end date.")
    reason = find_conflict(vehicle, Interval(start, end), exclude_booking_id=exclude_booking_id)
    if reason is not None:
        return AvailabilityResult(is_available=False, reason=reason)
    days, cost = quote_cost(vehicle, start, end)
    return AvailabilityResult(is_available=True, reason=None, billable_days=days, total_cost=cost)


def add_calendar_entry(vehicle: Vehicle, interval: Interval) -> list[dict]:
    """Append ``interval`` in memory, replacing any entry tagged with the same booking."""
    entries = [
        entry
        for entry in (vehicle.availability or [])
        if interval.booking_id is None
        or not isinstance(entry, dict)
        or entry.get("bookingId") != interval.booking_id
    ]
    entries.append(interval.as_entry())
    vehicle.availability = entries
    return entries


def remove_calendar_entries(vehicle: Vehicle, booking_id: int) -> int:
    """Drop entries tagged with ``booking_id`` in memory; returns how many were removed."""
    before = list(vehicle.availability or [])
    vehicle.availability = [
        entry
        for entry in before
        if not (isinstance(entry, dict) and entry.get("bookingId") == booking_id)
    ]
    return len(before) - len(vehicle.availability)


def remove_owner_block(vehicle: Vehicle, interval: Interval) -> bool:
    """Remove untagged blocks matching ``interval`` exactly, in memory."""
    kept = []
    for entry in vehicle.availability or []:
        if isinstance(entry, dict) and entry.get("bookingId") is None:
            start = parse_instant(entry.get("start"))
            end = parse_instant(entry.get("end"))
            if start == interval.start and end == interval.end:
                continue
        kept.append(entry)
    removed = len(kept) != len(vehicle.availability or [])
    vehicle.availability = kept
    return removed
