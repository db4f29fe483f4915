"""Shared pytest configuration and fixtures."""

from __future__ import annotations

from datetime import timedelta
from decimal import Decimal
from typing import Callable

import pytest
from django.contrib.auth import get_user_model
from django.utils import timezone
from rest_framework.test import APIClient

from bookings.models import Booking
from vehicles.models import Vehicle

User = get_user_model()


@pytest.fixture
def api_client():
    """DRF API client for request/response helpers."""
    return APIClient()


def _create_user(*, username: str, role: str) -> User:
    return User.objects.create_user(
        username=username,
        email=f"{username}@example.com",
        password="testpass",
        role=role,
        email_verified=True,
    )


@pytest.fixture
def owner_user():
    return _create_user(username="owner", role=User.Role.OWNER)


@pytest.fixture
def renter_user():
    return _create_user(username="renter", role=User.Role.RENTER)


@pytest.fixture
def other_user():
    return _create_user(username="other", role=User.Role.RENTER)


@pytest.fixture
def admin_user():
    return _create_user(username="admin", role=User.Role.ADMIN)


@pytest.fixture
def vehicle(owner_user):
    return Vehicle.objects.create(
        owner=owner_user,
        make="Toyota",
        model="Vios",
        year=2021,
        rental_price_per_day=Decimal("500.00"),
        location="Makati, Metro Manila",
    )


@pytest.fixture
def future_start():
    """A whole-hour instant safely in the future."""
    return (timezone.now() + timedelta(days=7)).replace(minute=0, second=0, microsecond=0)


@pytest.fixture
def booking_factory(vehicle, renter_user, future_start) -> Callable[..., Booking]:
    def _create_booking(
        *,
        vehicle_override: Vehicle | None = None,
        renter=None,
        start_date=None,
        end_date=None,
        status=Booking.PaymentStatus.PENDING_OWNER_APPROVAL,
        total_cost=Decimal("1000.00"),
        **extra_fields,
    ) -> Booking:
        selected_vehicle = vehicle_override or vehicle
        start = start_date or future_start
        end = end_date or start + timedelta(days=2)
        extra_fields.setdefault("down_payment", Decimal("200.00"))
        extra_fields.setdefault("remaining_balance", total_cost - extra_fields["down_payment"])
        return Booking.objects.create(
            vehicle=selected_vehicle,
            owner=selected_vehicle.owner,
            renter=renter or renter_user,
            start_date=start,
            end_date=end,
            payment_status=status,
            total_cost=total_cost,
            **extra_fields,
        )

    return _create_booking
