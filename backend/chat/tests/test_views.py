"""Tests for chat threads, messages and read receipts."""

from __future__ import annotations

import pytest
from rest_framework.test import APIClient

from bookings import services
from bookings.models import Booking
from chat.models import Chat, Message, direct_chat_id, get_or_create_booking_chat

pytestmark = pytest.mark.django_db


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


def test_direct_chat_id_is_order_independent():
    assert direct_chat_id(12, 3) == "3_12"
    assert direct_chat_id(3, 12) == "3_12"


def test_booking_chat_is_created_once(booking_factory):
    booking = booking_factory(status=Booking.PaymentStatus.CONFIRMED)

    first = get_or_create_booking_chat(booking)
    second = get_or_create_booking_chat(booking)

    assert first.pk == second.pk == str(booking.pk)
    assert Message.objects.filter(chat=first).count() == 1


def test_create_direct_chat_is_idempotent(renter_user, owner_user):
    client = auth(renter_user)

    created = client.post("/api/chats/", {"recipientId": owner_user.pk}, format="json")
    again = client.post("/api/chats/", {"recipientId": owner_user.pk}, format="json")

    assert created.status_code == 201
    assert again.status_code == 200
    assert created.data["id"] == direct_chat_id(renter_user.pk, owner_user.pk)
    assert created.data["otherUser"]["id"] == owner_user.pk
    assert Chat.objects.count() == 1


def test_cannot_chat_with_self(renter_user):
    resp = auth(renter_user).post("/api/chats/", {"recipientId": renter_user.pk}, format="json")
    assert resp.status_code == 400


def test_chat_list_has_default_last_message(renter_user, owner_user):
    client = auth(renter_user)
    client.post("/api/chats/", {"recipientId": owner_user.pk}, format="json")

    resp = client.get("/api/chats/")

    assert resp.status_code == 200
    assert len(resp.data) == 1
    assert resp.data[0]["lastMessage"]["text"] == "No messages yet"
    assert resp.data[0]["otherUser"]["username"] == owner_user.username


def test_send_and_list_messages(renter_user, owner_user):
    renter = auth(renter_user)
    chat_id = renter.post("/api/chats/", {"recipientId": owner_user.pk}, format="json").data["id"]

    sent = renter.post(f"/api/chats/{chat_id}/messages/", {"text": "Hi there"}, format="json")
    assert sent.status_code == 201
    assert sent.data["senderId"] == str(renter_user.pk)

    history = auth(owner_user).get(f"/api/chats/{chat_id}/messages/")
    assert history.status_code == 200
    assert [row["text"] for row in history.data] == ["Hi there"]

    chat = Chat.objects.get(pk=chat_id)
    assert chat.last_message["readBy"] == [str(renter_user.pk)]


def test_empty_message_is_rejected(renter_user, owner_user):
    renter = auth(renter_user)
    chat_id = renter.post("/api/chats/", {"recipientId": owner_user.pk}, format="json").data["id"]

    resp = renter.post(f"/api/chats/{chat_id}/messages/", {"text": "   "}, format="json")

    assert resp.status_code == 400


def test_non_participant_cannot_read_or_post(renter_user, owner_user, other_user):
    chat_id = (
        auth(renter_user)
        .post("/api/chats/", {"recipientId": owner_user.pk}, format="json")
        .data["id"]
    )
    outsider = auth(other_user)

    assert outsider.get(f"/api/chats/{chat_id}/messages/").status_code == 403
    assert (
        outsider.post(f"/api/chats/{chat_id}/messages/", {"text": "hey"}, format="json").status_code
        == 403
    )
    assert outsider.get("/api/chats/missing/messages/").status_code == 404


def test_mark_read_adds_reader(booking_factory, owner_user, renter_user):
    booking = booking_factory(status=Booking.PaymentStatus.DOWNPAYMENT_PENDING_VERIFICATION)
    services.confirm_payment(booking.pk, owner_user)
    chat_id = str(booking.pk)

    resp = auth(renter_user).put(f"/api/chats/{chat_id}/read/")

    assert resp.status_code == 200
    assert sorted(resp.data["lastMessage"]["readBy"]) == sorted(
        [str(owner_user.pk), str(renter_user.pk)]
    )
    again = auth(renter_user).put(f"/api/chats/{chat_id}/read/")
    assert again.data["message"] == "Chat already read."
