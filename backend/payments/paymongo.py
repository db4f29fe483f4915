"""PayMongo REST helpers for booking payments."""

from __future__ import annotations

import logging
from decimal import ROUND_HALF_UP, Decimal
from typing import Any

import requests
from django.conf import settings

logger = logging.getLogger(__name__)
STATEMENT_DESCRIPTOR = "DriveHub Booking"


class PayMongoConfigurationError(Exception):
    """PayMongo is not configured correctly in the environment."""


class PayMongoError(Exception):
    """The PayMongo API rejected the request or could not be reached."""


def _get_secret_key() -> str:
    """Return the configured PayMongo secret key or raise if missing."""
    secret_key = getattr(settings, "PAYMONGO_SECRET_KEY", "")
    if not secret_key:
        raise PayMongoConfigurationError("PayMongo secret key not configured.")
    return secret_key


def _to_centavos(amount: Decimal) -> int:
    """Convert Decimal pesos to integer centavos, rounding half up."""
    centavos = (Decimal(amount) * Decimal("100")).quantize(Decimal("1"), rounding=ROUND_HALF_UP)
    return int(centavos)


def _error_detail(response: requests.Response) -> str:
    try:
        errors = response.json().get("errors") or []
    except ValueError:
        errors = []
    if errors and isinstance(errors[0], dict):
        return errors[0].get("detail") or errors[0].get("code") or response.reason
    return response.reason or f"HTTP {response.status_code}"


def _request(method: str, path: str, *, payload: dict | None = None) -> dict[str, Any]:
    url = f"{settings.PAYMONGO_API_BASE.rstrip('/')}/{path.lstrip('/')}"
    try:
        response = requests.request(
            method,
            url,
            json=payload,
            auth=(_get_secret_key(), ""),
            headers={"Accept": "application/json"},
            timeout=settings.PAYMONGO_TIMEOUT,
        )
    except requests.RequestException as exc:
        logger.warning("paymongo: %s %s failed: %s", method, path, exc)
        raise PayMongoError("Payment gateway is temporarily unavailable.") from exc

    if response.status_code >= 400:
        detail = _error_detail(response)
        logger.warning(
            "paymongo: %s %s returned %s: %s", method, path, response.status_code, detail
        )
        raise PayMongoError(f"PayMongo request failed: {detail}")
    return response.json().get("data") or {}


def create_payment_intent(
    amount: Decimal,
    *,
    booking_id: int,
    user_id: int,
    description: str,
    payment_methods: list[str] | None = None,
) -> dict[str, Any]:
    """
    Create a payment intent for ``amount`` pesos.

    ``booking_id`` and ``user_id`` travel as string metadata so the webhook can
    correlate the payment back to the booking.
    """
    attributes = {
        "amount": _to_centavos(amount),
        "currency": settings.PAYMONGO_CURRENCY,
        "payment_method_allowed": list(payment_methods or settings.PAYMONGO_PAYMENT_METHODS),
        "description": description,
        "statement_descriptor": STATEMENT_DESCRIPTOR,
        "metadata": {"booking_id": str(booking_id), "user_id": str(user_id)},
    }
    intent = _request("POST", "payment_intents", payload={"data": {"attributes": attributes}})
    logger.info("paymongo: created payment intent %s for booking %s", intent.get("id"), booking_id)
    return intent


def retrieve_payment_intent(intent_id: str) -> dict[str, Any]:
    if not intent_id:
        raise PayMongoError("Payment intent id is required.")
    return _request("GET", f"payment_intents/{intent_id}")
