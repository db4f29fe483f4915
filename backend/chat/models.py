"""Chat threads between two users and helper utilities."""

from __future__ import annotations

from typing import TYPE_CHECKING, Iterable

from django.conf import settings
from django.db import models
from django.utils import timezone

if TYPE_CHECKING:  # pragma: no cover
    from bookings.models import Booking
    from users.models import User

SYSTEM_SENDER = "system"
BOOKING_WELCOME_TEXT = "Booking confirmed! You can now chat to arrange the meetup."


class Chat(models.Model):
    """
    Two-party thread.

    Booking chats are keyed by the booking id; direct chats by the sorted pair
    of participant ids joined with ``_``.
    """

    id = models.CharField(primary_key=True, max_length=64)
    participants = models.ManyToManyField(
        settings.AUTH_USER_MODEL,
        related_name="chats",
    )
    booking = models.OneToOneField(
        "bookings.Booking",
        on_delete=models.SET_NULL,
        related_name="chat",
        null=True,
        blank=True,
    )
    last_message = models.JSONField(default=dict, blank=True)
    created_at = models.DateTimeField(default=timezone.now)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-updated_at"]

    def __str__(self) -> str:
        return f"Chat({self.id})"

    def has_participant(self, user) -> bool:
        return bool(user and self.participants.filter(pk=user.pk).exists())


class Message(models.Model):
    """Individual chat message; system messages have no sender."""

    chat = models.ForeignKey(
        Chat,
        on_delete=models.CASCADE,
        related_name="messages",
    )
    sender = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        null=True,
        blank=True,
        on_delete=models.SET_NULL,
        related_name="chat_messages",
    )
    text = models.TextField(blank=True)
    image_url = models.URLField(max_length=500, blank=True, default="")
    created_at = models.DateTimeField(default=timezone.now)

    class Meta:
        ordering = ["created_at", "id"]

    def __str__(self) -> str:
        return f"Message(chat={self.chat_id}, sender={self.sender_id or SYSTEM_SENDER})"


def direct_chat_id(user_a_id: int, user_b_id: int) -> str:
    return "_".join(str(pk) for pk in sorted((int(user_a_id), int(user_b_id))))


def _summary(message: Message, read_by: Iterable[str]) -> dict:
    return {
        "text": message.text or ("Sent an image" if message.image_url else ""),
        "senderId": str(message.sender_id) if message.sender_id else SYSTEM_SENDER,
        "timestamp": message.created_at.isoformat(),
        "readBy": sorted(set(read_by)),
    }


def get_or_create_booking_chat(booking: "Booking", *, read_by: "User | None" = None) -> Chat:
    """
    Return the booking's chat, creating it with a system welcome message.

    Callers run this inside the booking confirmation transaction.
    """
    chat, created = Chat.objects.get_or_create(
        id=str(booking.pk),
        defaults={"booking": booking},
    )
    if created:
        chat.participants.add(booking.owner_id, booking.renter_id)
        message = Message.objects.create(chat=chat, sender=None, text=BOOKING_WELCOME_TEXT)
        readers = [str(read_by.pk)] if read_by else []
        chat.last_message = _summary(message, readers)
        chat.save(update_fields=["last_message", "updated_at"])
    return chat


def get_or_create_direct_chat(user: "User", other: "User") -> tuple[Chat, bool]:
    chat, created = Chat.objects.get_or_create(id=direct_chat_id(user.pk, other.pk))
    if created:
        chat.participants.add(user.pk, other.pk)
    return chat, created


def create_user_message(chat: Chat, sender: "User", *, text: str = "", image_url: str = "") -> Message:
    """Store a message and refresh the chat's last-message summary."""
    message = Message.objects.create(chat=chat, sender=sender, text=text, image_url=image_url)
    chat.last_message = _summary(message, [str(sender.pk)])
    chat.save(update_fields=["last_message", "updated_at"])
    return message


def mark_chat_read(chat: Chat, user: "User") -> bool:
    """Add ``user`` to the last message's readers; returns True when it changed."""
    summary = dict(chat.last_message or {})
    if not summary:
        return False
    readers = set(summary.get("readBy") or [])
    if str(user.pk) in readers:
        return False
    readers.add(str(user.pk))
    summary["readBy"] = sorted(readers)
    chat.last_message = summary
    chat.save(update_fields=["last_message", "updated_at"])
    return True
