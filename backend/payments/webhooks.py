"""
PayMongo webhook verification and processing.

The ``Paymongo-Signature`` header carries ``t=<unix seconds>`` plus a hex
HMAC-SHA256 of ``"<t>." + raw body`` keyed with the webhook secret. The body
must be the exact bytes received; a parsed and re-serialized payload would not
match.
"""

from __future__ import annotations

import hashlib
import hmac
import json
import logging
import re
from dataclasses import dataclass
from typing import Any

from django.conf import settings
from django.db import DatabaseError, transaction
from rest_framework import status
from rest_framework.decorators import api_view, authentication_classes, permission_classes
from rest_framework.response import Response

from bookings.models import Booking
from bookings.services import mark_gateway_paid

from .models import GatewayPayment, WebhookEvent

logger = logging.getLogger(__name__)

SIGNATURE_HEADER = "HTTP_PAYMONGO_SIGNATURE"
PAID_EVENT = "payment.paid"
SUCCEEDED = "succeeded"

OUTCOME_DUPLICATE = "duplicate"
OUTCOME_IGNORED = "ignored"
OUTCOME_PAID = "paid"

_HEX_SIGNATURE = re.compile(r"[0-9a-fA-F]{64}")


class InvalidSignature(Exception):
    """The signature header is missing, malformed, or does not match."""


@dataclass(frozen=True)
class SignatureHeader:
    timestamp: str
    v1: str
    test: str = ""


@dataclass(frozen=True)
class GatewayEvent:
    event_id: str
    type: str
    payment_id: str
    status: str
    booking_ref: str
    user_ref: str

    @property
    def is_successful_payment(self) -> bool:
        return (
            self.type == PAID_EVENT
            and self.status == SUCCEEDED
            and bool(self.booking_ref)
            and bool(self.user_ref)
        )


def _hex_signature(value: str) -> str:
    if value and not _HEX_SIGNATURE.fullmatch(value):
        raise InvalidSignature("Malformed Paymongo-Signature header.")
    return value.lower()


def parse_signature_header(header: str | None) -> SignatureHeader:
    """Split ``t=..,v1=..`` into its parts; ``li`` stands in for ``v1``."""
    if not header:
        raise InvalidSignature("Missing Paymongo-Signature header.")

    parts: dict[str, str] = {}
    for chunk in header.split(","):
        key, sep, value = chunk.strip().partition("=")
        if not sep or not key:
            raise InvalidSignature("Malformed Paymongo-Signature header.")
        parts[key.strip()] = value.strip()

    timestamp = parts.get("t", "")
    if not (timestamp.isascii() and timestamp.isdigit()):
        raise InvalidSignature("Malformed Paymongo-Signature header.")
    v1 = _hex_signature(parts.get("v1") or parts.get("li") or "")
    test = _hex_signature(parts.get("te", ""))
    if not v1 and not test:
        raise InvalidSignature("Malformed Paymongo-Signature header.")
    return SignatureHeader(timestamp=timestamp, v1=v1, test=test)


def compute_signature(secret: str, timestamp: str, raw_body: bytes) -> str:
    signed = f"{timestamp}.".encode("utf-8") + raw_body
    return hmac.new(secret.encode("utf-8"), signed, hashlib.sha256).hexdigest()


def verify_signature(secret: str, header: str | None, raw_body: bytes) -> SignatureHeader:
    """Raise ``InvalidSignature`` unless ``header`` signs ``raw_body``."""
    parsed = parse_signature_header(header)
    expected = compute_signature(secret, parsed.timestamp, raw_body)
    received = parsed.v1 or parsed.test
    if not hmac.compare_digest(expected.encode("ascii"), received.encode("ascii")):
        raise InvalidSignature("Invalid Paymongo-Signature.")
    return parsed


def _dig(value: Any, *keys: str) -> Any:
    for key in keys:
        if not isinstance(value, dict):
            return None
        value = value.get(key)
    return value


def _text(value: Any) -> str:
    if value is None:
        return ""
    return str(value).strip()


def extract_event(payload: Any) -> GatewayEvent:
    """Pull the correlation fields out of a PayMongo event envelope."""
    resource = _dig(payload, "data", "attributes", "data")
    metadata = _dig(resource, "attributes", "metadata")
    return GatewayEvent(
        event_id=_text(_dig(payload, "data", "id")),
        type=_text(_dig(payload, "data", "attributes", "type")),
        payment_id=_text(_dig(resource, "id")),
        status=_text(_dig(resource, "attributes", "status")),
        booking_ref=_text(_dig(metadata, "booking_id")),
        user_ref=_text(_dig(metadata, "user_id")),
    )


def _event_key(event: GatewayEvent, raw_body: bytes) -> str:
    if event.event_id:
        return event.event_id
    return "derived_" + hashlib.sha256(raw_body).hexdigest()


def _booking_matches(event: GatewayEvent) -> bool:
    try:
        booking_id = int(event.booking_ref)
        renter_id = int(event.user_ref)
    except ValueError:
        return False
    return Booking.objects.filter(pk=booking_id, renter_id=renter_id).exists()


def process_event(event: GatewayEvent, raw_body: bytes) -> str:
    """
    Apply a verified event once.

    Redelivered events (same id) are skipped. A successful payment upserts the
    gateway record keyed by the webhook's ids and, when the booking exists for
    that renter, moves it to ``paid``.
    """
    with transaction.atomic():
        record, created = WebhookEvent.objects.get_or_create(
            event_id=_event_key(event, raw_body),
            defaults={
                "event_type": event.type[:64],
                "payment_id": event.payment_id,
                "booking_ref": event.booking_ref[:64],
                "user_ref": event.user_ref[:64],
            },
        )
        if not created:
            logger.info("paymongo_webhook: duplicate event %s skipped", record.event_id)
            return OUTCOME_DUPLICATE

        if not event.is_successful_payment:
            logger.info(
                "paymongo_webhook: event %s (%s/%s) not processed",
                record.event_id,
                event.type or "unknown",
                event.status or "unknown",
            )
            return OUTCOME_IGNORED

        GatewayPayment.objects.update_or_create(
            booking_ref=event.booking_ref,
            user_ref=event.user_ref,
            defaults={
                "status": GatewayPayment.Status.PAID,
                "payment_intent_id": event.payment_id,
            },
        )
        if _booking_matches(event):
            mark_gateway_paid(event.booking_ref, payment_intent_id=event.payment_id)
        else:
            logger.info(
                "paymongo_webhook: no booking %s for user %s yet; gateway record kept",
                event.booking_ref,
                event.user_ref,
            )

        record.processed = True
        record.save(update_fields=["processed"])
    return OUTCOME_PAID


@api_view(["POST"])
@authentication_classes([])
@permission_classes([])
def paymongo_webhook(request):
    """Verify and acknowledge PayMongo callbacks."""
    secret = getattr(settings, "PAYMONGO_WEBHOOK_SECRET", "")
    if not secret:
        logger.error("paymongo_webhook: PAYMONGO_WEBHOOK_SECRET is not configured")
        return Response(
            {"message": "Webhook secret not configured."},
            status=status.HTTP_500_INTERNAL_SERVER_ERROR,
        )

    raw_body = request.body
    try:
        verify_signature(secret, request.META.get(SIGNATURE_HEADER), raw_body)
    except InvalidSignature as exc:
        logger.warning("paymongo_webhook: rejected delivery: %s", exc)
        return Response({"message": str(exc)}, status=status.HTTP_401_UNAUTHORIZED)

    try:
        payload = json.loads(raw_body)
    except ValueError:
        return Response({"message": "Invalid JSON payload."}, status=status.HTTP_400_BAD_REQUEST)

    event = extract_event(payload)
    try:
        outcome = process_event(event, raw_body)
    except DatabaseError:
        logger.exception(
            "paymongo_webhook: failed to record event %s for booking %s; reconcile manually",
            event.event_id or "unknown",
            event.booking_ref or "unknown",
        )
        return Response({"received": True, "processed": False}, status=status.HTTP_200_OK)

    return Response(
        {"received": True, "processed": outcome == OUTCOME_PAID, "outcome": outcome},
        status=status.HTTP_200_OK,
    )
