"""Tests for the availability engine."""

from __future__ import annotations

from datetime import datetime, timedelta
from datetime import timezone as dt_timezone
from decimal import Decimal

import pytest

from bookings import availability
from bookings.availability import Interval
from bookings.models import Booking
from core.exceptions import ConfigurationError, ValidationFailed
from vehicles.models import Vehicle


def utc(year, month, day, hour=0) -> datetime:
    return datetime(year, month, day, hour, tzinfo=dt_timezone.utc)


@pytest.mark.parametrize(
    ("a", "b", "expected"),
    [
        ((utc(2025, 7, 1), utc(2025, 7, 5)), (utc(2025, 7, 4), utc(2025, 7, 6)), True),
        ((utc(2025, 7, 1), utc(2025, 7, 5)), (utc(2025, 7, 5), utc(2025, 7, 6)), False),
        ((utc(2025, 7, 1), utc(2025, 7, 5)), (utc(2025, 7, 2), utc(2025, 7, 3)), True),
        ((utc(2025, 7, 1), utc(2025, 7, 2)), (utc(2025, 7, 3), utc(2025, 7, 4)), False),
    ],
)
def test_overlap_is_symmetric(a, b, expected):
    first = Interval(*a)
    second = Interval(*b)
    assert availability.overlaps(first, second) is expected
    assert availability.overlaps(second, first) is expected


def test_interval_overlaps_itself():
    interval = Interval(utc(2025, 7, 1), utc(2025, 7, 2))
    assert availability.overlaps(interval, interval)


def test_billable_days_rounds_partial_days_up():
    assert availability.billable_days(utc(2025, 7, 1), utc(2025, 7, 3)) == 2
    assert availability.billable_days(utc(2025, 7, 1), utc(2025, 7, 3, 1)) == 3
    assert availability.billable_days(utc(2025, 7, 1), utc(2025, 7, 1, 2)) == 1


def test_quote_for_two_days_at_500():
    vehicle = Vehicle(rental_price_per_day=Decimal("500"))
    days, cost = availability.quote_cost(vehicle, utc(2025, 7, 1), utc(2025, 7, 3))
    assert days == 2
    assert cost == Decimal("1000.00")


@pytest.mark.parametrize("price", [None, Decimal("0"), Decimal("-5")])
def test_missing_price_is_a_configuration_error(price):
    vehicle = Vehicle(rental_price_per_day=price)
    with pytest.raises(ConfigurationError) as excinfo:
        availability.quote_cost(vehicle, utc(2025, 7, 1), utc(2025, 7, 2))
    assert excinfo.value.message == "Vehicle price not configured."


def test_parse_interval_rejects_inverted_and_empty_ranges():
    with pytest.raises(ValidationFailed):
        availability.parse_interval("2025-07-03T00:00:00Z", "2025-07-01T00:00:00Z")
    with pytest.raises(ValidationFailed):
        availability.parse_interval("2025-07-01T00:00:00Z", "2025-07-01T00:00:00Z")
    with pytest.raises(ValidationFailed):
        availability.parse_interval("not-a-date", "2025-07-01T00:00:00Z")


def test_parse_instant_reads_naive_values_as_utc():
    assert availability.parse_instant("2025-07-01T08:00:00") == utc(2025, 7, 1, 8)
    assert availability.parse_instant("2025-07-01") == utc(2025, 7, 1)


def test_owner_block_makes_vehicle_unavailable():
    vehicle = Vehicle(
        rental_price_per_day=Decimal("500"),
        availability=[{"start": "2025-07-02T00:00:00Z", "end": "2025-07-03T00:00:00Z"}],
    )
    reason = availability.find_conflict(
        vehicle, Interval(utc(2025, 7, 1), utc(2025, 7, 4)), bookings=[]
    )
    assert reason == availability.REASON_OWNER_BLOCK


def test_block_ending_at_request_start_does_not_conflict():
    vehicle = Vehicle(
        rental_price_per_day=Decimal("500"),
        availability=[{"start": "2025-06-28T00:00:00Z", "end": "2025-07-01T00:00:00Z"}],
    )
    reason = availability.find_conflict(
        vehicle, Interval(utc(2025, 7, 1), utc(2025, 7, 2)), bookings=[]
    )
    assert reason is None


def test_malformed_calendar_entries_are_skipped():
    vehicle = Vehicle(
        rental_price_per_day=Decimal("500"),
        availability=[
            "garbage",
            {"start": "bad", "end": "2025-07-03T00:00:00Z"},
            {"start": "2025-07-05T00:00:00Z", "end": "2025-07-04T00:00:00Z"},
        ],
    )
    reason = availability.find_conflict(
        vehicle, Interval(utc(2025, 7, 1), utc(2025, 7, 10)), bookings=[]
    )
    assert reason is None


def test_calendar_entries_are_scanned_unsorted():
    vehicle = Vehicle(
        rental_price_per_day=Decimal("500"),
        availability=[
            {"start": "2025-09-01T00:00:00Z", "end": "2025-09-02T00:00:00Z"},
            {"start": "2025-07-01T00:00:00Z", "end": "2025-07-10T00:00:00Z"},
            {"start": "2025-07-03T00:00:00Z", "end": "2025-07-04T00:00:00Z", "bookingId": 9},
        ],
    )
    reason = availability.find_conflict(
        vehicle, Interval(utc(2025, 7, 3, 12), utc(2025, 7, 3, 18)), bookings=[]
    )
    assert reason is not None


def test_tagged_calendar_entry_reports_existing_booking():
    vehicle = Vehicle(
        rental_price_per_day=Decimal("500"),
        availability=[
            {"start": "2025-07-01T00:00:00Z", "end": "2025-07-05T00:00:00Z", "bookingId": 3}
        ],
    )
    requested = Interval(utc(2025, 7, 4), utc(2025, 7, 6))
    assert (
        availability.find_conflict(vehicle, requested, bookings=[])
        == availability.REASON_EXISTING_BOOKING
    )
    assert availability.find_conflict(vehicle, requested, exclude_booking_id=3, bookings=[]) is None


@pytest.mark.django_db
def test_confirmed_booking_blocks_overlapping_request(vehicle, booking_factory):
    booking_factory(
        start_date=utc(2025, 7, 1),
        end_date=utc(2025, 7, 5),
        status=Booking.PaymentStatus.CONFIRMED,
    )

    result = availability.check_availability(vehicle, utc(2025, 7, 4), utc(2025, 7, 6))

    assert result.is_available is False
    assert result.reason == availability.REASON_EXISTING_BOOKING
    assert result.total_cost is None


@pytest.mark.django_db
def test_adjacent_request_after_confirmed_booking_is_available(vehicle, booking_factory):
    booking_factory(
        start_date=utc(2025, 7, 1),
        end_date=utc(2025, 7, 5),
        status=Booking.PaymentStatus.CONFIRMED,
    )

    result = availability.check_availability(vehicle, utc(2025, 7, 5), utc(2025, 7, 7))

    assert result.is_available is True
    assert result.billable_days == 2
    assert result.total_cost == Decimal("1000.00")


@pytest.mark.django_db
@pytest.mark.parametrize(
    "status",
    [
        Booking.PaymentStatus.PENDING_OWNER_APPROVAL,
        Booking.PaymentStatus.PENDING_PAYMENT,
        Booking.PaymentStatus.CANCELLED_BY_RENTER,
        Booking.PaymentStatus.DECLINED_BY_OWNER,
        Booking.PaymentStatus.COMPLETED,
    ],
)
def test_non_occupying_bookings_do_not_block(vehicle, booking_factory, status):
    booking_factory(start_date=utc(2025, 7, 1), end_date=utc(2025, 7, 5), status=status)

    result = availability.check_availability(vehicle, utc(2025, 7, 2), utc(2025, 7, 3))

    assert result.is_available is True


@pytest.mark.django_db
def test_excluded_booking_does_not_conflict_with_itself(vehicle, booking_factory):
    booking = booking_factory(
        start_date=utc(2025, 7, 1),
        end_date=utc(2025, 7, 5),
        status=Booking.PaymentStatus.CONFIRMED,
    )

    result = availability.check_availability(
        vehicle, utc(2025, 7, 1), utc(2025, 7, 5), exclude_booking_id=booking.pk
    )

    assert result.is_available is True


def test_add_calendar_entry_replaces_same_booking():
    vehicle = Vehicle(
        availability=[
            {"start": "2025-07-01T00:00:00+00:00", "end": "2025-07-02T00:00:00+00:00", "bookingId": 4},
            {"start": "2025-08-01T00:00:00+00:00", "end": "2025-08-02T00:00:00+00:00"},
        ]
    )

    availability.add_calendar_entry(vehicle, Interval(utc(2025, 7, 1), utc(2025, 7, 3), 4))

    tagged = [entry for entry in vehicle.availability if entry.get("bookingId") == 4]
    assert len(tagged) == 1
    assert tagged[0]["end"] == utc(2025, 7, 3).isoformat()
    assert len(vehicle.availability) == 2


def test_remove_calendar_entries_only_drops_matching_booking():
    vehicle = Vehicle(
        availability=[
            {"start": "2025-07-01T00:00:00Z", "end": "2025-07-02T00:00:00Z", "bookingId": 4},
            {"start": "2025-07-03T00:00:00Z", "end": "2025-07-04T00:00:00Z", "bookingId": 5},
            {"start": "2025-07-05T00:00:00Z", "end": "2025-07-06T00:00:00Z"},
        ]
    )

    assert availability.remove_calendar_entries(vehicle, 4) == 1
    assert [entry.get("bookingId") for entry in vehicle.availability] == [5, None]


def test_remove_owner_block_matches_exact_interval():
    vehicle = Vehicle(
        availability=[{"start": "2025-07-05T00:00:00Z", "end": "2025-07-06T00:00:00Z"}]
    )

    assert not availability.remove_owner_block(
        vehicle, Interval(utc(2025, 7, 5), utc(2025, 7, 7))
    )
    assert availability.remove_owner_block(vehicle, Interval(utc(2025, 7, 5), utc(2025, 7, 6)))
    assert vehicle.availability == []


def test_quote_hours_prorates_daily_price():
    vehicle = Vehicle(rental_price_per_day=Decimal("480"))
    assert availability.quote_hours(vehicle, 6) == Decimal("120.00")


def test_interval_hours():
    start = utc(2025, 7, 1)
    assert Interval(start, start + timedelta(hours=30)).hours == 30
